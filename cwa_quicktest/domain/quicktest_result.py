"""Result Record Schema Definition.

This module defines the ResultRecord model: one test outcome to be pushed to
the result API, identified by the hash of the TestRecord issued to the app.

Security Impact:
    - All three fields are validated locally; malformed results never
      reach the network layer
"""

import time
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator, ValidationError as PydanticValidationError

from cwa_quicktest.domain.enums import ResultStatus
from cwa_quicktest.domain.ports import ValidationError
from cwa_quicktest.domain.quicktest_data import TestRecord

REQUIRED_PROPERTIES = ("id", "result", "sc")


class ResultRecord(BaseModel):
    """Test result information for the result API.

    Parameters:
        id: Hash of the quick test (also called CWA Test ID)
        result: Result status (6 = negative, 7 = positive, 8 = invalid)
        sc: Unix timestamp of the time when the result was obtained
    """

    id: str = Field(..., description="CWA test id (hash of the TestRecord)")
    result: ResultStatus = Field(..., description="Result status code")
    sc: int = Field(..., description="Unix timestamp of the result")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def validate_fields(cls, data: Any) -> Dict[str, Any]:
        if not isinstance(data, Mapping) or not data:
            raise ValidationError("Result data must be provided as a mapping")

        for prop in REQUIRED_PROPERTIES:
            if data.get(prop) is None:
                raise ValidationError(f"Missing property '{prop}'", field=prop)

        if not isinstance(data["id"], str) or not data["id"].strip():
            raise ValidationError("Property 'id' must not be empty", field="id")

        result = data["result"]
        if isinstance(result, bool) or result not in ResultStatus.values():
            allowed = ",".join(str(value) for value in ResultStatus.values())
            raise ValidationError(
                f"Invalid value for property 'result' (possible values: {allowed})",
                field="result",
            )

        sc = data["sc"]
        if isinstance(sc, bool) or not isinstance(sc, int) or sc <= 0:
            raise ValidationError("Property 'sc' must be a unix timestamp integer", field="sc")

        return {"id": data["id"], "result": ResultStatus(result), "sc": sc}

    @classmethod
    def for_test(
        cls,
        record: TestRecord,
        result: Union[ResultStatus, int],
        sc: Optional[int] = None,
    ) -> "ResultRecord":
        """Build the result for a previously issued TestRecord.

        Parameters:
            record: The TestRecord whose hash identifies the test
            result: Result status
            sc: Time the result was obtained (defaults to now)
        """
        return cls(
            id=record.get_hash(),
            result=result,
            sc=sc if sc is not None else int(time.time()),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "result": int(self.result),
            "sc": self.sc,
        }


def create_result_record(data: Mapping[str, Any]) -> ResultRecord:
    """Validate a result mapping and build a ResultRecord.

    Raises:
        ValidationError: If id, result or sc are missing or malformed
    """
    try:
        return ResultRecord.model_validate(data)
    except PydanticValidationError as e:
        first_error = e.errors()[0]
        loc = first_error.get("loc") or ()
        field = str(loc[0]) if loc else None
        raise ValidationError(
            f"Invalid value for property '{field}': {first_error.get('msg')}",
            field=field,
            details={"validation_errors": str(e), "error_count": e.error_count()},
        ) from e
