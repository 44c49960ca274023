"""Test Record Encoding Service.

This module provides the QuicktestEncoder class responsible for turning a
TestRecord into the exact byte-stable representation the Corona-Warn-App
expects: a salted SHA-256 hash over the canonical field order, compact JSON
and a standard base64 payload embedded in the app URL.

Security Impact:
    - Salts come from the operating system's secure random source only
    - Hash input order is fixed; any deviation breaks verification in the app
    - All methods are pure functions (no side effects)

Architecture:
    - Pure domain service with zero infrastructure dependencies
    - Stateless service that can be used across the application
"""

import base64
import binascii
import hashlib
import json
import logging
import secrets
from typing import Any, Dict, Mapping, TYPE_CHECKING, Union

from cwa_quicktest.domain.ports import QuicktestError, ValidationError

if TYPE_CHECKING:
    from cwa_quicktest.domain.quicktest_data import TestRecord

logger = logging.getLogger(__name__)

# Base URL for the data exchange with the app
APP_BASE_URL = "https://s.coronawarn.app?v=1"

SALT_BYTE_LENGTH = 16
SALT_WIDTH = 32

JSON_SEPARATORS = (",", ":")

HASH_SEPARATOR = "#"


class QuicktestEncoder:
    """Service for hashing and encoding test records.

    String formats hashed:
        - personal : [dob]#[fn]#[ln]#[timestamp]#[testid]#[salt]
        - anonymous: [timestamp]#[salt]
    """

    @staticmethod
    def hash(record: "TestRecord") -> str:
        """Return the lowercase SHA-256 hex digest of the record."""
        data_string = HASH_SEPARATOR.join(
            str(value) for value in record.get_data(include_hash=False).values()
        )
        return hashlib.sha256(data_string.encode("utf-8")).hexdigest()

    @staticmethod
    def to_json(record: "TestRecord") -> str:
        """Serialize the record plus trailing hash as compact JSON.

        The documentation examples use spaces and inconsistent key order, so
        the compact form is used; key order follows get_data().
        """
        return json.dumps(record.get_data(include_hash=True), separators=JSON_SEPARATORS)

    @staticmethod
    def to_encoded_payload(record: "TestRecord") -> str:
        """Return the standard-alphabet base64 encoding of to_json()."""
        return base64.b64encode(QuicktestEncoder.to_json(record).encode("utf-8")).decode("ascii")

    @staticmethod
    def generate_salt(width: int = SALT_WIDTH) -> str:
        """Produce a cryptographically random 128-bit uppercase hex salt.

        Parameters:
            width: Expected character count of the result

        Returns:
            Uppercase hex string of 32 characters

        Raises:
            QuicktestError: If no secure random source is available or the
                result does not have the expected width
        """
        try:
            random_bytes = secrets.token_bytes(SALT_BYTE_LENGTH)
        except NotImplementedError as e:
            raise QuicktestError(
                "This system provides no cryptographically secure random source, "
                "which is required to generate a salt"
            ) from e

        hex_value = random_bytes.hex().upper()

        if len(hex_value) != width:
            raise QuicktestError("The generated salt did not have the expected length")

        return hex_value

    @staticmethod
    def build_app_url(data: Union["TestRecord", Mapping[str, Any]]) -> str:
        """Return the URL for QR code generation or a direct app deep link.

        Parameters:
            data: A TestRecord, or a field mapping that is validated first

        Returns:
            https://s.coronawarn.app?v=1#<base64 JSON>

        Raises:
            ValidationError: If a mapping is given and it is not a valid record
        """
        from cwa_quicktest.domain.quicktest_data import TestRecord, create_test_record

        record = data if isinstance(data, TestRecord) else create_test_record(data)
        return f"{APP_BASE_URL}#{QuicktestEncoder.to_encoded_payload(record)}"

    @staticmethod
    def decode_payload(payload: str) -> Dict[str, Any]:
        """Decode an app URL (or just its fragment) back into its mapping.

        Parameters:
            payload: Full app URL or the base64 fragment

        Returns:
            The decoded JSON object, key order preserved

        Raises:
            ValidationError: If the payload is not base64-encoded JSON object
        """
        fragment = payload.split("#", 1)[1] if "#" in payload else payload
        try:
            raw = base64.b64decode(fragment.strip(), validate=True)
            decoded = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise ValidationError(f"Payload is not base64-encoded JSON: {e}") from e

        if not isinstance(decoded, dict):
            raise ValidationError("Payload does not contain a JSON object")

        return decoded

    @staticmethod
    def verify_hash(data: Mapping[str, Any]) -> bool:
        """Check that the hash in a decoded payload matches its fields.

        Raises:
            ValidationError: If the remaining fields are not a valid record
        """
        from cwa_quicktest.domain.quicktest_data import create_test_record

        expected = data.get("hash")
        if not expected:
            return False

        fields = {key: value for key, value in data.items() if key != "hash"}
        return create_test_record(fields).get_hash() == expected


def generate_salt(width: int = SALT_WIDTH) -> str:
    return QuicktestEncoder.generate_salt(width)


def build_app_url(data: Union["TestRecord", Mapping[str, Any]]) -> str:
    return QuicktestEncoder.build_app_url(data)
