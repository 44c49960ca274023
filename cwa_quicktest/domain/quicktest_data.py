"""Test Record Schema Definition.

This module defines the TestRecord model holding the data the Corona-Warn-App
needs to register a rapid test, either anonymously (timestamp and salt only)
or with personal data (name, date of birth and test id).

Data format according to
https://github.com/corona-warn-app/cwa-quicktest-onboarding/wiki/Anbindung-der-Partnersysteme

Security Impact:
    - The salt guarantees that the hash cannot be reversed by enumerating
      birth dates and names
    - Personal data is all-or-nothing; a partial set is rejected instead of
      silently downgraded to anonymous mode
    - Validation happens on construction; an instance is always valid

Architecture:
    - Pure domain model, immutable once constructed (Pydantic V2, frozen)
    - The canonical field order lives here; hashing and encoding live in
      QuicktestEncoder
"""

import logging
import re
import sys
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator, ValidationError as PydanticValidationError

from cwa_quicktest.domain.ports import ValidationError
from cwa_quicktest.domain.services import QuicktestEncoder

logger = logging.getLogger(__name__)

# Wire keys of the optional personal data fields
PERSONAL_DATA_FIELDS = ("fn", "ln", "dob", "testid")

# IMPORTANT: key order matters, these tuples also define the hash input
ANONYMOUS_FIELD_ORDER = ("timestamp", "salt")
PERSONAL_FIELD_ORDER = ("dob", "fn", "ln", "timestamp", "testid", "salt")

SALT_PATTERN = re.compile(r"[A-F0-9]{32}")

MAX_TIMESTAMP = sys.maxsize

# Python attribute names accepted as input next to the wire keys
_ATTRIBUTE_ALIASES = {
    "first_name": "fn",
    "last_name": "ln",
    "date_of_birth": "dob",
    "test_id": "testid",
}


def _to_wire_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[_ATTRIBUTE_ALIASES.get(key, key)] = value
    return normalized


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


class TestRecord(BaseModel):
    """Test metadata destined for the Corona-Warn-App.

    Parameters:
        timestamp: Unix timestamp of the test (positive integer)
        salt: Uppercase 128-bit hex string, 32 characters
        date_of_birth: Date of birth, ISO format by convention (wire key "dob")
        first_name: First name (wire key "fn")
        last_name: Last name (wire key "ln")
        test_id: Test identifier, typically a UUID (wire key "testid")

    Example Usage:
        ```python
        record = TestRecord(timestamp=1618386548, salt=generate_salt())
        record.get_hash()
        ```
    """

    __test__ = False

    timestamp: int = Field(..., description="Unix timestamp of the test")
    salt: str = Field(..., description="Uppercase 128-bit hex salt")
    date_of_birth: Optional[str] = Field(None, alias="dob", description="Date of birth (PII)")
    first_name: Optional[str] = Field(None, alias="fn", description="First name (PII)")
    last_name: Optional[str] = Field(None, alias="ln", description="Last name (PII)")
    test_id: Optional[str] = Field(None, alias="testid", description="Test identifier")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def validate_fields(cls, data: Any) -> Dict[str, Any]:
        """Apply the record invariants in a fixed order.

        Order: partial personal data, required fields, timestamp, salt.
        Raises the domain ValidationError directly so the messages stay
        stable for callers.
        """
        if not isinstance(data, Mapping):
            raise ValidationError("Test data must be provided as a mapping")

        fields = _to_wire_keys(data)

        present = [name for name in PERSONAL_DATA_FIELDS if fields.get(name) is not None]
        is_anonymous = not present
        if present and len(present) != len(PERSONAL_DATA_FIELDS):
            raise ValidationError(
                "Partial personal data: either all of the personal data fields have to be set, "
                "or none of them. Required personal data fields are: " + ", ".join(PERSONAL_DATA_FIELDS),
                details={"present": present},
            )

        required = ["salt", "timestamp"]
        if not is_anonymous:
            required.extend(PERSONAL_DATA_FIELDS)
        for name in required:
            value = fields.get(name)
            missing = value is None if name in ANONYMOUS_FIELD_ORDER else _is_missing(value)
            if missing:
                raise ValidationError(f"Required field missing: '{name}'", field=name)

        timestamp = fields["timestamp"]
        if (
            isinstance(timestamp, bool)
            or not isinstance(timestamp, int)
            or timestamp <= 0
            or timestamp > MAX_TIMESTAMP
        ):
            raise ValidationError(
                "Invalid timestamp: 'timestamp' must be a positive unix timestamp integer",
                field="timestamp",
            )

        salt = fields["salt"]
        if not isinstance(salt, str) or not salt or not SALT_PATTERN.fullmatch(salt):
            raise ValidationError(
                "Invalid salt format: 'salt' must be an uppercase 128-bit hex string "
                "with a fixed width of 32 chars",
                field="salt",
            )

        return fields

    @property
    def is_anonymous(self) -> bool:
        return all(
            value is None
            for value in (self.first_name, self.last_name, self.date_of_birth, self.test_id)
        )

    def get_data(self, include_hash: bool = True) -> Dict[str, Any]:
        """Return the record as an ordered mapping of wire keys.

        Parameters:
            include_hash: Whether to append the computed hash as last key

        Returns:
            dict in canonical order; anonymous: timestamp, salt;
            personal: dob, fn, ln, timestamp, testid, salt
        """
        if self.is_anonymous:
            data: Dict[str, Any] = {
                "timestamp": self.timestamp,
                "salt": self.salt,
            }
        else:
            data = {
                "dob": self.date_of_birth,
                "fn": self.first_name,
                "ln": self.last_name,
                "timestamp": self.timestamp,
                "testid": self.test_id,
                "salt": self.salt,
            }

        if include_hash:
            data["hash"] = self.get_hash()

        return data

    def get_hash(self) -> str:
        return QuicktestEncoder.hash(self)

    def to_json(self) -> str:
        return QuicktestEncoder.to_json(self)

    def to_json_base64(self) -> str:
        return QuicktestEncoder.to_encoded_payload(self)


def create_test_record(fields: Mapping[str, Any]) -> TestRecord:
    """Validate a flat field mapping and build a TestRecord.

    Parameters:
        fields: Mapping using wire keys (timestamp, salt, fn, ln, dob, testid)
                or the attribute names of TestRecord

    A personal field counts as set only when its value is not None, so
    ``{"fn": None, ...}`` alone is anonymous rather than partial. A check on
    key existence alone would report the same input as partial personal data.

    Returns:
        Validated, immutable TestRecord

    Raises:
        ValidationError: If the fields violate any record invariant
    """
    try:
        return TestRecord.model_validate(fields)
    except PydanticValidationError as e:
        first_error = e.errors()[0]
        loc = first_error.get("loc") or ()
        field = str(loc[0]) if loc else None
        logger.debug(f"Test record rejected by schema validation on field {field!r}")
        raise ValidationError(
            f"Invalid value for '{field}': {first_error.get('msg')}",
            field=field,
            details={
                "validation_errors": str(e),
                "error_count": e.error_count(),
            },
        ) from e
