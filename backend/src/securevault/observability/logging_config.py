"""Structured logging for the vault.

Every record gets the current request id. In JSON mode a record is one line
with the vault context fields (user, document, share, request timing) that
callers pass through ``extra=``.

Passwords, one-time codes and bearer tokens must never be logged. The
redaction filter is a backstop for bearer tokens and ``otp_code`` values that
end up in a message anyway.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone

from .request_id import NO_REQUEST_ID, get_request_id

# Attributes copied from ``extra=`` into the JSON line when present
CONTEXT_FIELDS = (
    "user_id",
    "document_id",
    "share_id",
    "action",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "errors",
)

_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
_OTP_VALUE = re.compile(r"(otp_code['\"]?\s*[:=]\s*['\"]?)\d{6}")

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "botocore", "boto3", "urllib3")


class RequestContextFilter(logging.Filter):

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class RedactionFilter(logging.Filter):
    """Mask bearer tokens and one-time codes in the rendered message."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _OTP_VALUE.sub(r"\1******", _BEARER.sub(r"\1[REDACTED]", message))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", NO_REQUEST_ID),
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["error"] = str(record.exc_info[1])
            entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: One JSON object per line when True, plain text otherwise
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestContextFilter())
    handler.addFilter(RedactionFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
