"""Result API client.

Synchronous client for the quick test result API. Results are posted as a
JSON envelope over mutually authenticated TLS, presenting the client
certificate and key issued for the test site.

Request:
    POST <stage base URL>/api/v1/quicktest/results
    Content-Type: application/json
    {"testResults": [{"id": ..., "result": 6, "sc": ...}, ...]}

Response handling:
    - 204: success, returned as True
    - other status with a JSON object body: the object, verbatim
    - other status otherwise: {"status": <code>, "response": <parsed or None>}
    - connection, timeout, protocol, redirect-loop or decoding failure: TransportError

Usage:
    client = QuicktestResultClient("site.cer", "site.key", "passphrase")
    client.stage = "PRODUCTION"
    outcome = client.submit_results([ResultRecord.for_test(record, ResultStatus.NEGATIVE)])
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

import httpx

from cwa_quicktest.domain.enums import API_ENDPOINT_RESULTS, DEFAULT_STAGE, Stage
from cwa_quicktest.domain.ports import ResultSubmissionPort, SubmissionOutcome, TransportError
from cwa_quicktest.domain.quicktest_result import ResultRecord, create_result_record
from cwa_quicktest.domain.services import JSON_SEPARATORS
from cwa_quicktest.infrastructure.config_manager import ClientConfig, DEFAULT_TIMEOUT
from cwa_quicktest.infrastructure.credentials import (
    build_ssl_context,
    resolve_credential_path,
    verify_private_key,
)

logger = logging.getLogger(__name__)


class QuicktestResultClient(ResultSubmissionPort):
    """
    Result API client with client-certificate authentication.

    Credentials are resolved and checked once at construction and are
    read-only afterwards. The stage selector is the only mutable state; it
    is not synchronized, so do not change it while another thread submits.

    Args:
        cert_path:             Client certificate (.cer) issued for the test site.
        key_path:              Private key (.key) created for the signing request.
        key_passphrase:        Passphrase of the private key, if any.
        skip_passphrase_check: Skip loading the key up front to validate the passphrase.
        stage:                 PRODUCTION, WRU or INT (default WRU).
        timeout:               HTTP request timeout in seconds.
        server_ca:             CA bundle for verifying the server; system trust
                               store when None.
        transport:             httpx transport to use instead of the network.
    """

    def __init__(
        self,
        cert_path: Union[str, Path],
        key_path: Union[str, Path],
        key_passphrase: Optional[str] = None,
        skip_passphrase_check: bool = False,
        stage: Union[Stage, str] = DEFAULT_STAGE,
        timeout: float = DEFAULT_TIMEOUT,
        server_ca: Optional[Union[str, Path]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.cert_path = resolve_credential_path(cert_path, ".cer file")
        self.key_path = resolve_credential_path(key_path, ".key file")
        self.server_ca = resolve_credential_path(server_ca, "CA bundle") if server_ca else None

        if not skip_passphrase_check:
            verify_private_key(self.key_path, key_passphrase)

        self._key_passphrase = key_passphrase
        self._stage = Stage.parse(stage)
        self.timeout = timeout
        self._transport = transport

        logger.debug(f"QuicktestResultClient initialised for stage {self._stage.value}")

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "QuicktestResultClient":
        """Build a client from a validated ClientConfig."""
        config.require_credentials()
        return cls(
            cert_path=config.cert_path,
            key_path=config.key_path,
            key_passphrase=config.get_passphrase(),
            skip_passphrase_check=config.skip_passphrase_check,
            stage=config.stage,
            timeout=config.timeout,
            server_ca=config.server_ca,
            transport=transport,
        )

    # ── Stage selection ──────────────────────────────────────────────────────

    @property
    def stage(self) -> Stage:
        return self._stage

    @stage.setter
    def stage(self, value: Union[Stage, str]) -> None:
        self._stage = Stage.parse(value)

    def resolve_endpoint(self) -> str:
        return f"{self._stage.base_url}{API_ENDPOINT_RESULTS}"

    # ── Submission ───────────────────────────────────────────────────────────

    def submit_results(
        self,
        results: Union[Iterable[Union[ResultRecord, Mapping]], ResultRecord, Mapping],
    ) -> SubmissionOutcome:
        """
        POST the results in one request.

        Raw mappings are validated first, so an invalid result raises
        ValidationError before any connection is opened. An empty list is
        still sent; rejecting it is up to the remote API.

        Returns:
            True on HTTP 204, otherwise the (normalized) response mapping.

        Raises:
            ValidationError:  A raw mapping is not a valid result.
            CredentialError:  The certificate or key cannot be loaded by OpenSSL.
            TransportError:   The request could not be completed.
        """
        records = self._coerce_records(results)
        url = self.resolve_endpoint()
        body = json.dumps(
            {"testResults": [record.to_payload() for record in records]},
            separators=JSON_SEPARATORS,
        )

        logger.info(
            f"Submitting {len(records)} test result(s) to stage {self._stage.value}",
            extra={"stage": self._stage.value, "endpoint": url, "result_count": len(records)},
        )

        try:
            with self._create_http_client() as http:
                response = http.post(
                    url,
                    content=body,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.RequestError as e:
            logger.error(
                f"Transmission to result API failed: {type(e).__name__}: {e}",
                extra={"stage": self._stage.value, "endpoint": url},
            )
            raise TransportError(f"Transmission to {url} failed: {e}", url=url) from e

        return self._normalize_response(response)

    def submit_result(self, result: Union[ResultRecord, Mapping]) -> SubmissionOutcome:
        return self.submit_results([result])

    # ── Helpers ──────────────────────────────────────────────────────────────

    @staticmethod
    def _coerce_records(
        results: Union[Iterable[Union[ResultRecord, Mapping]], ResultRecord, Mapping],
    ) -> List[ResultRecord]:
        if isinstance(results, (ResultRecord, Mapping)):
            results = [results]
        return [
            item if isinstance(item, ResultRecord) else create_result_record(item)
            for item in results
        ]

    def _create_http_client(self) -> httpx.Client:
        ssl_context = build_ssl_context(
            self.cert_path,
            self.key_path,
            passphrase=self._key_passphrase,
            server_ca=self.server_ca,
        )
        return httpx.Client(
            verify=ssl_context,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    @staticmethod
    def _normalize_response(response: httpx.Response) -> SubmissionOutcome:
        if response.status_code == 204:
            logger.info("Test results accepted by result API")
            return True

        parsed: Any
        try:
            parsed = response.json()
        except ValueError:
            parsed = None

        logger.warning(
            f"Result API rejected submission with HTTP {response.status_code}",
            extra={"status_code": response.status_code},
        )

        if isinstance(parsed, dict):
            return parsed

        return {"status": response.status_code, "response": parsed}
