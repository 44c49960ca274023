"""Client credential handling for mutual TLS.

This module resolves the certificate and key files obtained for the result
API, verifies up front that the private key can be unlocked with the given
passphrase, and builds the SSL context presented during the TLS handshake.

Security Impact:
    - Passphrase problems are detected at construction time (fail-fast)
      instead of surfacing as an opaque handshake failure later
    - Passphrases are never logged
    - OpenSSL's interactive passphrase prompt is never triggered

Architecture:
    - Infrastructure layer component
    - Used by the result submission adapter
    - Follows Hexagonal Architecture: isolated from domain core
"""

import logging
import ssl
from pathlib import Path
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from cwa_quicktest.domain.ports import ConfigurationError, CredentialError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def resolve_credential_path(path: Optional[PathLike], label: str) -> Path:
    """Resolve a credential file to an absolute path.

    Parameters:
        path: Path as given by the caller (relative paths and ~ allowed)
        label: Human-readable file kind used in the error message (".cer file")

    Returns:
        Absolute Path of an existing regular file

    Raises:
        ConfigurationError: If the file does not exist or cannot be resolved
    """
    if path is None or str(path).strip() == "":
        raise ConfigurationError(f"The specified path to the {label} is invalid", setting=label)

    try:
        resolved = Path(path).expanduser().resolve(strict=True)
    except (OSError, RuntimeError):
        raise ConfigurationError(f"The specified path to the {label} is invalid", setting=label) from None

    if not resolved.is_file():
        raise ConfigurationError(f"The specified path to the {label} is invalid", setting=label)

    return resolved


def _load_private_key(key_data: bytes, password: Optional[bytes]):
    try:
        return serialization.load_pem_private_key(key_data, password=password)
    except ValueError:
        if b"-----BEGIN" in key_data:
            raise
    return serialization.load_der_private_key(key_data, password=password)


def verify_private_key(key_path: PathLike, passphrase: Optional[str] = None) -> None:
    """Load the private key once to validate the passphrase, then discard it.

    Parameters:
        key_path: Path to the PEM or DER encoded private key
        passphrase: Passphrase used when the key was created (optional)

    Raises:
        CredentialError: If a passphrase is required but missing, or the
            given passphrase does not unlock the key
    """
    key_data = Path(key_path).read_bytes()
    password = passphrase.encode("utf-8") if passphrase else None

    try:
        _load_private_key(key_data, password)
    except TypeError:
        if password is None:
            raise CredentialError(
                "The specified key file requires a passphrase",
                reason=CredentialError.PASSPHRASE_REQUIRED,
            ) from None
        # A passphrase was given for an unencrypted key; the key itself is usable
        logger.debug("Passphrase supplied for an unencrypted key file, ignoring it")
        _verify_unencrypted(key_data)
    except (ValueError, UnsupportedAlgorithm):
        if password is None:
            raise CredentialError(
                "The specified key file requires a passphrase",
                reason=CredentialError.PASSPHRASE_REQUIRED,
            ) from None
        raise CredentialError(
            "The password provided for the key file is not valid",
            reason=CredentialError.PASSPHRASE_INVALID,
        ) from None

    logger.debug(f"Private key {key_path} verified")


def _verify_unencrypted(key_data: bytes) -> None:
    try:
        _load_private_key(key_data, None)
    except (TypeError, ValueError, UnsupportedAlgorithm):
        raise CredentialError(
            "The password provided for the key file is not valid",
            reason=CredentialError.PASSPHRASE_INVALID,
        ) from None


def build_ssl_context(
    cert_path: PathLike,
    key_path: PathLike,
    passphrase: Optional[str] = None,
    server_ca: Optional[PathLike] = None,
) -> ssl.SSLContext:
    """Build the client SSL context presenting the certificate and key.

    Parameters:
        cert_path: PEM certificate (chain) issued for the client
        key_path: Private key matching the certificate
        passphrase: Key passphrase (optional)
        server_ca: CA bundle used to verify the server instead of the
                   system trust store (optional)

    Returns:
        ssl.SSLContext for use as httpx ``verify``

    Raises:
        CredentialError: If OpenSSL cannot load the certificate or key
    """
    try:
        context = ssl.create_default_context(cafile=str(server_ca) if server_ca else None)
        # An empty passphrase keeps OpenSSL from prompting on the terminal
        context.load_cert_chain(
            certfile=str(cert_path),
            keyfile=str(key_path),
            password=passphrase or "",
        )
    except (ssl.SSLError, OSError) as e:
        logger.error(f"Failed to load client certificate {cert_path}: {type(e).__name__}")
        raise CredentialError(
            f"The client certificate or key could not be loaded: {e}",
            reason=CredentialError.UNUSABLE,
        ) from e

    return context
