"""Logging setup for the matching service.

Every line carries the current correlation id. In JSON mode the match
context passed through ``extra=`` (order, item, product, method, status) and
the HTTP access fields become top-level keys, so a single item can be
followed through the cascade in the log store.
"""

import logging
import json
import sys
from datetime import datetime, timezone

from .request_id import UNBOUND_REQUEST_ID, get_request_id

_CONTEXT_FIELDS = (
    "order_id",
    "item_id",
    "product_id",
    "method",
    "status",
    "http_method",
    "path",
    "status_code",
    "duration_ms",
)

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

_QUIET_LOGGERS = ("httpx", "openai", "sqlalchemy.engine", "uvicorn.access")


class RequestIDFilter(logging.Filter):
    """Stamp each record with the correlation id of its context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with match context when present."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "request_id": getattr(record, "request_id", UNBOUND_REQUEST_ID),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            payload["error"] = str(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        for name in _CONTEXT_FIELDS:
            if hasattr(record, name):
                payload[name] = str(getattr(record, name))

        return json.dumps(payload)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Calling it again replaces the handler, so app factories and tests can
    reconfigure freely.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, plain text otherwise
    """
    log_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(_TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())
    root_logger.addHandler(handler)

    # Client libraries log every request at INFO
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
