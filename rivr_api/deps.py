# rivr_api/deps.py
from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from rivr_api.core.database import get_db
from rivr_api.core.errors import TenantNotFoundError
from rivr_api.core.request_context import bind_session
from rivr_api.core.roles import RouteClass, policy_for
from rivr_api.services.authorization_service import AuthorizationService
from rivr_api.services.sessions import SessionClaims, decode_session_token, extract_session_token
from rivr_api.services.tenant_directory import TenantDirectory, TenantRecord, tenant_directory
from rivr_api.services.tenant_resolver import TenantResolver


@dataclass(frozen=True)
class AuthContext:
    session: SessionClaims
    tenant: TenantRecord | None


def get_tenant_directory() -> TenantDirectory:
    return tenant_directory


def get_optional_session(request: Request) -> SessionClaims | None:
    token = extract_session_token(request)
    if not token:
        return None
    session = decode_session_token(token)
    if session is not None:
        bind_session(session)
    return session


def require_route(route_class: RouteClass):
    """Gate a route class: authenticate, check the role table, then the tenant scope."""

    def _dependency(
        request: Request,
        db: Session = Depends(get_db),
        directory: TenantDirectory = Depends(get_tenant_directory),
        session: SessionClaims | None = Depends(get_optional_session),
    ) -> AuthContext:
        tenant = None
        if session is not None and route_class in policy_for(session.role).route_classes:
            policy = policy_for(session.role)
            # Platform-wide roles never trigger tenant resolution.
            if policy.tenant_scoped:
                tenant = TenantResolver.resolve(request, db, directory)
                if tenant is None and not policy.requires_tenant and session.business_id is not None:
                    tenant = _own_business_tenant(request, db, directory, session)

        AuthorizationService.enforce(
            request=request,
            session=session,
            route_class=route_class,
            tenant=tenant,
        )
        return AuthContext(session=session, tenant=tenant)

    return _dependency


def _own_business_tenant(
    request: Request,
    db: Session,
    directory: TenantDirectory,
    session: SessionClaims,
) -> TenantRecord | None:
    try:
        tenant = directory.resolve_business(db, int(session.business_id))
    except TenantNotFoundError:
        return None
    return TenantResolver.bind(request, tenant)
