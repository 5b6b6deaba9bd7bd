"""Per-request log context.

The observability middleware opens one ``RequestLogContext`` per request.
Tenant resolution and session decoding fill it in as the request moves
through dependencies. The object is shared by reference, so values bound
inside a threadpool dependency still show up on later log lines of the
same request.
"""
from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rivr_api.services.sessions import SessionClaims
    from rivr_api.services.tenant_directory import TenantRecord


@dataclass
class RequestLogContext:
    request_id: str
    tenant: str | None = None
    schema: str | None = None
    role: str | None = None
    subject_id: int | None = None


_CURRENT: ContextVar[RequestLogContext | None] = ContextVar("rivr_request_log_context", default=None)


def open_request_context(request_id: str, *, tenant: str | None = None) -> Token:
    return _CURRENT.set(RequestLogContext(request_id=request_id, tenant=tenant))


def close_request_context(token: Token) -> None:
    _CURRENT.reset(token)


def current_request_context() -> RequestLogContext | None:
    return _CURRENT.get()


def bind_tenant(record: TenantRecord) -> None:
    context = _CURRENT.get()
    if context is not None:
        context.tenant = record.subdomain
        context.schema = record.schema_name


def bind_session(session: SessionClaims) -> None:
    context = _CURRENT.get()
    if context is not None:
        context.role = session.role.value
        context.subject_id = session.subject_id
