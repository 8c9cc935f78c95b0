"""
Structured logging for the saaskit logger.

Every record carries the request id of the request being served. Event
fields passed to log_event become top-level keys in the JSON output and
key=value pairs in the pretty output.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "saaskit"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes the logging module sets itself; extra= may not overwrite them
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}
_BASE_FIELDS = ("request_id", "event_type", "error_code", "user_id")


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def safe_extra(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Rename keys that collide with LogRecord attributes to ctx_<key>."""
    return {(f"ctx_{k}" if k in _RESERVED_ATTRS else k): v for k, v in fields.items()}


def _event_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: v
        for k, v in vars(record).items()
        if k not in _RESERVED_ATTRS and k not in _BASE_FIELDS and not k.startswith("_")
    }


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        for key in _BASE_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        payload.update(_event_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        parts = [f"{record.levelname:<7}", record.getMessage()]
        rid = getattr(record, "request_id", None)
        if rid:
            parts.append(f"rid={rid}")
        for key, value in _event_fields(record).items():
            parts.append(f"{key}={value}")
        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(env: str = "development") -> None:
    """JSON lines in production, one readable line per record elsewhere."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.handlers = [handler]


def log_event(
    level: str,
    event: str,
    *,
    user_id: Optional[str] = None,
    error_code: Optional[str] = None,
    **fields: Any,
) -> None:
    """
    Log a named event, e.g. log_event("info", "users.provision.created", user_id=uid).

    event_type is the event name without its last segment
    ("users.provision.created" -> "users.provision").
    """
    extra = safe_extra(fields)
    extra["event_type"] = event.rsplit(".", 1)[0]
    if user_id is not None:
        extra["user_id"] = user_id
    if error_code is not None:
        extra["error_code"] = error_code
    logging.getLogger(LOGGER_NAME).log(getattr(logging, level.upper()), event, extra=extra)
