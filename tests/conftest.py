"""Shared fixtures: sample test data and throwaway client credentials."""

import logging
from collections import namedtuple
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

PASSPHRASE = "CWAQuicktestPassphrase"

ANONYMOUS_DATA = {
    "timestamp": 1618386548,
    "salt": "759F8FF3554F0E1BBF6EFF8DE298D9E9",
}

PERSONAL_DATA = {
    "timestamp": 1618386548,
    "fn": "Erika",
    "ln": "Mustermann",
    "dob": "1990-12-23",
    "testid": "52cddd8e-ff32-4478-af64-cb867cea1db5",
    "salt": "759F8FF3554F0E1BBF6EFF8DE298D9E9",
}

ANONYMOUS_HASH = "80232838046d2a65ab1b7a1be3dd1250ba9c91c969476c093bc34001ef460af8"
PERSONAL_HASH = "67a50cba5952bf4f6c7eca896c0030516ab2f228f157237712e52d66489d9960"

Credentials = namedtuple("Credentials", ["cert_path", "key_path", "passphrase"])


def _write_credentials(directory, passphrase):
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "cwa-quicktest test site")])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .sign(key, hashes.SHA256())
    )

    if passphrase:
        encryption = serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
    else:
        encryption = serialization.NoEncryption()

    directory.mkdir(parents=True, exist_ok=True)
    cert_path = directory / "test.cer"
    key_path = directory / "test.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            encryption,
        )
    )
    return Credentials(cert_path, key_path, passphrase)


@pytest.fixture
def anonymous_data():
    return dict(ANONYMOUS_DATA)


@pytest.fixture
def personal_data():
    return dict(PERSONAL_DATA)


@pytest.fixture
def credentials(tmp_path):
    """Certificate and passphrase-protected key."""
    return _write_credentials(tmp_path / "encrypted", PASSPHRASE)


@pytest.fixture
def plain_credentials(tmp_path):
    """Certificate and unencrypted key."""
    return _write_credentials(tmp_path / "plain", None)


@pytest.fixture(autouse=True)
def no_proxy_env(monkeypatch):
    """Keep proxy settings of the host from rerouting mocked requests."""
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging()."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    http_levels = {name: logging.getLogger(name).level for name in ("httpx", "httpcore")}
    yield root_logger
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    for name, http_level in http_levels.items():
        logging.getLogger(name).setLevel(http_level)
