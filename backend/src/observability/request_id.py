"""Request ID management for log correlation.

The ID lives in a ContextVar so it follows the request across awaits. CLI
runs set one per invocation.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Accepted shape for client-supplied IDs (anything else is replaced)
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Current request ID, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def normalize_request_id(value: Optional[str]) -> str:
    """Use the client's X-Request-ID when it is well-formed, else a new one.

    Example:
        >>> normalize_request_id("abc-123")
        'abc-123'
    """
    if value and _REQUEST_ID_PATTERN.match(value):
        return value
    return generate_request_id()
