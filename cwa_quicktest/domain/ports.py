"""Domain Ports - Error Taxonomy and the Result Submission Contract.

This module defines the exception hierarchy shared by every layer and the
Port interface (abstract contract) that result submission adapters implement.
Following Hexagonal Architecture, the Domain Core defines what it needs, not
how it is provided.

Security Impact:
    - Validation failures are raised locally before any network call
    - Credential failures are detected at construction time (fail-fast)
    - Transport failures are surfaced as a distinct type, never swallowed

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - The httpx adapter implements ResultSubmissionPort
    - Callers can distinguish validation, configuration, credential,
      transport and remote-rejection outcomes by type
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Mapping, Optional, TYPE_CHECKING, Union

if TYPE_CHECKING:
    from cwa_quicktest.domain.quicktest_result import ResultRecord


# Outcome of a submission: True for HTTP 204, otherwise the (normalized)
# response mapping returned by the remote API.
SubmissionOutcome = Union[bool, Dict[str, Any]]


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class QuicktestError(Exception):
    """Base exception for all errors raised by this library."""
    pass


class ValidationError(QuicktestError):
    """Raised when test or result data fails validation.

    Validation is always local and synchronous: a record that raises this
    error never reaches the network layer.

    Attributes:
        field: Name of the offending field (wire key), if known
        details: Additional error details or validation messages
    """

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.field = field
        self.details = details or {}


class ConfigurationError(QuicktestError):
    """Raised for unusable configuration.

    Covers unrecognized stage names and certificate, key or CA files that do
    not exist or cannot be resolved. Fatal, never retried.

    Attributes:
        setting: The configuration setting at fault
    """

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message)
        self.setting = setting


class CredentialError(QuicktestError):
    """Raised when the client credentials cannot be used.

    Attributes:
        reason: One of "passphrase_required", "passphrase_invalid", "unusable"
    """

    PASSPHRASE_REQUIRED = "passphrase_required"
    PASSPHRASE_INVALID = "passphrase_invalid"
    UNUSABLE = "unusable"

    def __init__(self, message: str, reason: str = UNUSABLE):
        super().__init__(message)
        self.reason = reason


class TransportError(QuicktestError):
    """Raised when the POST to the result API fails below the HTTP layer.

    Connection errors, timeouts, protocol errors, redirect loops and
    undecodable responses end up here. An HTTP error response is NOT a
    transport error; it is returned as an outcome.

    Attributes:
        url: The endpoint that could not be reached
    """

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


# ============================================================================
# Ports
# ============================================================================

class ResultSubmissionPort(ABC):
    """Abstract contract for pushing test results to the result API.

    Example Usage:
        ```python
        client: ResultSubmissionPort = QuicktestResultClient(cert, key, passphrase)
        outcome = client.submit_results([result])
        if outcome is True:
            ...
        ```
    """

    @abstractmethod
    def resolve_endpoint(self) -> str:
        """Return the absolute URL results are posted to.

        Raises:
            ConfigurationError: If the selected stage is not recognized
        """
        pass

    @abstractmethod
    def submit_results(
        self,
        results: Iterable[Union["ResultRecord", Mapping[str, Any]]],
    ) -> SubmissionOutcome:
        """Submit a batch of results in a single request.

        Parameters:
            results: ResultRecord objects (or raw mappings to be validated)

        Returns:
            True on HTTP 204, otherwise the remote response mapping

        Raises:
            ValidationError: If a raw mapping is not a valid result
            TransportError: If the request could not be completed
        """
        pass
