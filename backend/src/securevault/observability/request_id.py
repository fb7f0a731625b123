"""Per-request correlation id carried in a ContextVar.

An inbound ``X-Request-ID`` is reused only when it looks like an opaque
token; anything else (too long, control characters, spaces) is replaced so a
client cannot inject text into log lines.
"""

import re
import uuid
from contextvars import ContextVar, Token
from typing import Optional

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "no-request-id"

_ACCEPTABLE_ID = re.compile(r"[A-Za-z0-9._:-]{1,64}")

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def resolve_request_id(inbound: Optional[str]) -> str:
    """Reuse the caller's id when acceptable, otherwise mint a UUID4."""
    if inbound and _ACCEPTABLE_ID.fullmatch(inbound):
        return inbound
    return str(uuid.uuid4())


def get_request_id() -> str:
    return request_id_var.get() or NO_REQUEST_ID


def bind_request_id(request_id: str) -> Token:
    return request_id_var.set(request_id)


def unbind_request_id(token: Token) -> None:
    request_id_var.reset(token)
