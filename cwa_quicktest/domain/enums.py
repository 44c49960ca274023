"""Enumerations for result status codes and deployment stages.

The integer status codes and the stage base URLs are fixed by the remote
result API and must not be changed.
"""

from enum import Enum, IntEnum
from typing import Union

from cwa_quicktest.domain.ports import ConfigurationError


class ResultStatus(IntEnum):
    """Test result status codes understood by the result API."""
    NEGATIVE = 6
    POSITIVE = 7
    INVALID = 8

    @classmethod
    def values(cls) -> list[int]:
        return [member.value for member in cls]


class Stage(str, Enum):
    """Deployment environments of the result API."""
    PRODUCTION = "PRODUCTION"
    WRU = "WRU"
    INT = "INT"

    @property
    def base_url(self) -> str:
        return STAGE_URLS[self]

    @classmethod
    def parse(cls, value: Union["Stage", str]) -> "Stage":
        """Convert a stage name (case-insensitive) to a Stage.

        Raises:
            ConfigurationError: If the name is not a recognized stage
        """
        if isinstance(value, Stage):
            return value
        name = value.strip().upper() if isinstance(value, str) else value
        try:
            return cls(name)
        except ValueError:
            supported = ",".join(member.value for member in cls)
            raise ConfigurationError(
                f"Invalid stage '{value}'. Supported values are: {supported}",
                setting="stage",
            ) from None


STAGE_URLS = {
    Stage.PRODUCTION: "https://quicktest-result.coronawarn.app",
    Stage.WRU: "https://quicktest-result-cff4f7147260.coronawarn.app",
    Stage.INT: "https://quicktest-result-dfe4f5c711db.coronawarn.app",
}

DEFAULT_STAGE = Stage.WRU

# Appended to the stage base URL
API_ENDPOINT_RESULTS = "/api/v1/quicktest/results"
