"""Access-control policy table.

Every rule about which actor may reach which route class, and whether that
actor is confined to one tenant, lives here.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    rivr_admin = "rivr_admin"
    business_owner = "business_owner"
    driver = "driver"
    employee_viewer = "employee_viewer"


class RouteClass(str, Enum):
    platform = "platform"
    business_admin = "business_admin"
    driver = "driver"
    employee = "employee"


@dataclass(frozen=True)
class RolePolicy:
    # Session is confined to its own business.
    tenant_scoped: bool
    # A tenant must be resolved from the request before the role can act.
    requires_tenant: bool
    route_classes: frozenset[RouteClass]


ROLE_POLICIES: dict[Role, RolePolicy] = {
    Role.rivr_admin: RolePolicy(
        tenant_scoped=False,
        requires_tenant=False,
        route_classes=frozenset({RouteClass.platform}),
    ),
    Role.business_owner: RolePolicy(
        tenant_scoped=True,
        requires_tenant=False,
        route_classes=frozenset({RouteClass.business_admin}),
    ),
    Role.driver: RolePolicy(
        tenant_scoped=True,
        requires_tenant=True,
        route_classes=frozenset({RouteClass.driver}),
    ),
    Role.employee_viewer: RolePolicy(
        tenant_scoped=True,
        requires_tenant=True,
        route_classes=frozenset({RouteClass.employee}),
    ),
}

LOGIN_ROLE_BY_ROUTE_CLASS: dict[RouteClass, Role] = {
    RouteClass.platform: Role.rivr_admin,
    RouteClass.business_admin: Role.business_owner,
    RouteClass.driver: Role.driver,
    RouteClass.employee: Role.employee_viewer,
}

TENANT_REQUIRED_ROLES = frozenset(role for role, policy in ROLE_POLICIES.items() if policy.requires_tenant)


def parse_role(value: str | None) -> Role | None:
    normalized = (value or "").strip().lower()
    try:
        return Role(normalized)
    except ValueError:
        return None


def policy_for(role: Role) -> RolePolicy:
    return ROLE_POLICIES[role]


def roles_for_route(route_class: RouteClass) -> frozenset[Role]:
    return frozenset(role for role, policy in ROLE_POLICIES.items() if route_class in policy.route_classes)


def login_url_for(route_class: RouteClass) -> str:
    return f"/auth?role={LOGIN_ROLE_BY_ROUTE_CLASS[route_class].value}"
