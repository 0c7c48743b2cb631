"""Structured logging configuration.

Uses standard library logging with a JSON formatter. The formatter masks
credentials: sensitive `extra` keys are replaced and ``appid=`` query values
are scrubbed from messages and tracebacks.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

REDACTED = "***"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {"api_key", "appid", "credential", "secret", "token"}
)
_APPID_PATTERN = re.compile(r"(appid=)[^&\s'\"]+", re.IGNORECASE)

# Attributes every LogRecord carries; anything else came in via `extra`.
_RESERVED_LOG_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"asctime", "message", "taskName"}


def scrub(text: str) -> str:
    return _APPID_PATTERN.sub(rf"\g<1>{REDACTED}", text)


def _redact(key: str, value: Any) -> Any:
    if key.lower() in _SENSITIVE_KEYS:
        return REDACTED
    if isinstance(value, str):
        return scrub(value)
    return value


class JsonFormatter(logging.Formatter):
    """JSON formatter for logging records, with credential redaction."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": scrub(record.getMessage()),
        }

        extra = {
            key: _redact(key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED_LOG_RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = scrub(self.formatException(record.exc_info))

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Configure root logging with structured JSON output."""

    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    # urllib3 logs full request URLs at DEBUG, including the API key.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.WARNING))
