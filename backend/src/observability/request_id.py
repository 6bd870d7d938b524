"""Correlation ids for log lines of one request or match run.

The id lives in a context variable, so every item of a batch match logs
under the id of the HTTP request (or service call) that started the batch.
"""

import uuid
from contextvars import ContextVar
from typing import Optional

UNBOUND_REQUEST_ID = "no-request-id"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id() -> str:
    """New random (uuid4) correlation id."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Correlation id bound to the current context, or a placeholder."""
    return request_id_var.get() or UNBOUND_REQUEST_ID


def set_request_id(request_id: str) -> None:
    """Bind ``request_id`` to the current context (middleware entry point)."""
    request_id_var.set(request_id)


def ensure_request_id() -> str:
    """Bind a fresh request ID unless the caller already bound one.

    Service entry points call this so matching driven outside HTTP (scripts,
    ingest jobs) still gets one id per run.
    """
    current = request_id_var.get()
    if current:
        return current
    request_id = generate_request_id()
    request_id_var.set(request_id)
    return request_id
