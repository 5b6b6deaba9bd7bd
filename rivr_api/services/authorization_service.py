from __future__ import annotations

import logging
from enum import Enum

from fastapi import Request

from rivr_api.core.errors import ForbiddenError, TenantRequiredError, UnauthenticatedError
from rivr_api.core.roles import TENANT_REQUIRED_ROLES, Role, RouteClass, login_url_for, policy_for
from rivr_api.services.sessions import SessionClaims
from rivr_api.services.tenant_directory import TenantRecord

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    unauthenticated = "unauthenticated"
    wrong_role = "wrong_role"
    wrong_tenant = "wrong_tenant"
    tenant_required = "tenant_required"
    authorized = "authorized"


class AuthorizationService:
    """Centralize role and tenant-scope checks for every protected route class."""

    @staticmethod
    def evaluate(
        *,
        session: SessionClaims | None,
        route_class: RouteClass,
        tenant: TenantRecord | None,
    ) -> AccessDecision:
        if session is None:
            return AccessDecision.unauthenticated

        policy = policy_for(session.role)
        if route_class not in policy.route_classes:
            return AccessDecision.wrong_role

        if not policy.tenant_scoped:
            return AccessDecision.authorized

        if tenant is None:
            if policy.requires_tenant:
                return AccessDecision.tenant_required
            # Owners without a request tenant act on their own business only.
            return AccessDecision.authorized if session.business_id is not None else AccessDecision.wrong_tenant

        if session.business_id is None or int(session.business_id) != int(tenant.business_id):
            return AccessDecision.wrong_tenant
        return AccessDecision.authorized

    @classmethod
    def enforce(
        cls,
        *,
        request: Request,
        session: SessionClaims | None,
        route_class: RouteClass,
        tenant: TenantRecord | None,
    ) -> None:
        decision = cls.evaluate(session=session, route_class=route_class, tenant=tenant)
        if decision == AccessDecision.authorized:
            return
        if decision == AccessDecision.unauthenticated:
            raise UnauthenticatedError(login_url=login_url_for(route_class))

        cls.log_access_denied(reason=decision.value, session=session, tenant=tenant, request=request)
        if decision == AccessDecision.tenant_required:
            raise TenantRequiredError()
        if decision == AccessDecision.wrong_tenant:
            raise ForbiddenError("Tenant not authorized")
        raise ForbiddenError("Insufficient permissions")

    @staticmethod
    def log_access_denied(
        *,
        reason: str,
        session: SessionClaims | None,
        tenant: TenantRecord | None,
        request: Request,
    ) -> None:
        endpoint = f"{request.method} {request.url.path}"
        logger.warning(
            "Access denied (%s): user_id=%s user_role=%s user_business=%s tenant=%s endpoint=%s",
            reason,
            getattr(session, "subject_id", None),
            getattr(getattr(session, "role", None), "value", None),
            getattr(session, "business_id", None),
            getattr(tenant, "subdomain", None),
            endpoint,
        )


def candidate_roles(role: Role | None) -> tuple[Role, ...]:
    """Roles a password-reset request may target; ``None`` is the "auto" case."""
    if role is None:
        return tuple(Role)
    return (role,)


def includes_tenant_bound_role(candidates: tuple[Role, ...]) -> bool:
    return any(role in TENANT_REQUIRED_ROLES for role in candidates)


def requires_tenant_disambiguation(candidates: tuple[Role, ...], tenant: TenantRecord | None) -> bool:
    return tenant is None and includes_tenant_bound_role(candidates)
