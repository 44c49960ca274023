"""cwa-quicktest: Corona-Warn-App rapid test integration.

Builds the app URL (QR code payload) for a rapid test and reports test
results to the result API over mutually authenticated TLS.
"""

from cwa_quicktest.adapters import QuicktestResultClient
from cwa_quicktest.domain import (
    ConfigurationError,
    CredentialError,
    QuicktestEncoder,
    QuicktestError,
    ResultRecord,
    ResultStatus,
    Stage,
    TestRecord,
    TransportError,
    ValidationError,
    build_app_url,
    create_result_record,
    create_test_record,
    generate_salt,
)

__version__ = "1.0.0"

__all__ = [
    "QuicktestResultClient",
    "ConfigurationError",
    "CredentialError",
    "QuicktestEncoder",
    "QuicktestError",
    "ResultRecord",
    "ResultStatus",
    "Stage",
    "TestRecord",
    "TransportError",
    "ValidationError",
    "build_app_url",
    "create_result_record",
    "create_test_record",
    "generate_salt",
]
