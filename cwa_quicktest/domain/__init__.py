"""Domain layer for cwa-quicktest.

This module contains the test and result record schemas, the encoder service
and the error taxonomy. All domain models are pure Python with no external
dependencies beyond Pydantic.
"""

from .enums import ResultStatus, Stage
from .ports import (
    ConfigurationError,
    CredentialError,
    QuicktestError,
    ResultSubmissionPort,
    SubmissionOutcome,
    TransportError,
    ValidationError,
)
from .quicktest_data import TestRecord, create_test_record
from .quicktest_result import ResultRecord, create_result_record
from .services import QuicktestEncoder, build_app_url, generate_salt

__all__ = [
    "ResultStatus",
    "Stage",
    "ConfigurationError",
    "CredentialError",
    "QuicktestError",
    "ResultSubmissionPort",
    "SubmissionOutcome",
    "TransportError",
    "ValidationError",
    "TestRecord",
    "create_test_record",
    "ResultRecord",
    "create_result_record",
    "QuicktestEncoder",
    "build_app_url",
    "generate_salt",
]
