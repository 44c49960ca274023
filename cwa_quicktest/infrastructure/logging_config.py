"""Logging setup for the cwa-quicktest command line.

Commands print their results (salts, app URLs, decoded payloads, submission
outcomes) on stdout so they can be piped; log records therefore go to stderr.
With --json-logs each record is one JSON line, and records emitted by the
result client carry their submission context (stage, endpoint, result count,
HTTP status) as top-level keys.

Security Impact:
    - The key passphrase and personal test data are never passed to loggers
    - httpx request logging is only enabled together with --verbose
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

# Attributes the result client attaches through ``extra=``
SUBMISSION_CONTEXT_FIELDS = ("stage", "endpoint", "result_count", "status_code")

# Third-party loggers that log every request at INFO
HTTP_LOGGERS = ("httpx", "httpcore")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """Formats each record as a single JSON object."""

    def __init__(self, app_name: str):
        super().__init__()
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "app": self.app_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in SUBMISSION_CONTEXT_FIELDS:
            value = getattr(record, attr, None)
            if value is not None:
                log_data[attr] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(
    use_json: bool = False,
    log_level: str = "INFO",
    app_name: str = "cwa-quicktest",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Install the single root handler used by the CLI.

    Parameters:
        use_json: Emit JSON lines instead of the human-readable format
        log_level: Logging level name; unknown names fall back to INFO
        app_name: Value of the "app" key in JSON records
        stream: Target stream (default: stderr)

    Returns:
        The installed handler
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    if use_json:
        handler.setFormatter(StructuredFormatter(app_name))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    # Per-request lines from httpx only in verbose mode
    http_level = level if level <= logging.DEBUG else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    return handler
