from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from typing import Optional

_request_id: ContextVar[Optional[str]] = ContextVar("catalog_request_id", default=None)


def bind_request_id(request_id: Optional[str] = None) -> Token:
    """Bind the id for the current request, minting a uuid4 when the caller sent none."""
    value = (request_id or "").strip() or uuid.uuid4().hex
    return _request_id.set(value)


def current_request_id() -> Optional[str]:
    return _request_id.get()


def release_request_id(token: Token) -> None:
    _request_id.reset(token)
