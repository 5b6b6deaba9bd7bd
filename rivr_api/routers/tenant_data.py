from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from rivr_api.core.database import get_db
from rivr_api.core.errors import TenantNotFoundError
from rivr_api.core.roles import RouteClass
from rivr_api.deps import AuthContext, require_route
from rivr_api.models.business import Business
from rivr_api.services.tenant_db import tenant_connection
from rivr_api.tenancy.template import customers, pickup_requests, routes

router = APIRouter(tags=["tenant-data"])


def _rows(result) -> list[dict]:
    return [dict(row._mapping) for row in result]


@router.get("/api/business/customers")
def list_business_customers(
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_route(RouteClass.business_admin)),
):
    if context.tenant is None:
        raise TenantNotFoundError("Business has no tenant schema")
    with tenant_connection(db.get_bind(), context.tenant.schema_name) as connection:
        result = connection.execute(
            select(
                customers.c.id,
                customers.c.first_name,
                customers.c.last_name,
                customers.c.email,
                customers.c.business_name,
            ).order_by(customers.c.id)
        )
        return {"tenant": context.tenant.subdomain, "customers": _rows(result)}


@router.get("/api/driver/routes")
def list_driver_routes(
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_route(RouteClass.driver)),
):
    with tenant_connection(db.get_bind(), context.tenant.schema_name) as connection:
        result = connection.execute(
            select(routes.c.id, routes.c.name, routes.c.status, routes.c.start_time)
            .where(routes.c.driver_id == context.session.subject_id)
            .order_by(routes.c.id)
        )
        return {"tenant": context.tenant.subdomain, "routes": _rows(result)}


@router.get("/api/employee/pickups")
def list_employee_pickups(
    include_archived: bool = Query(False),
    db: Session = Depends(get_db),
    context: AuthContext = Depends(require_route(RouteClass.employee)),
):
    query = select(
        pickup_requests.c.id,
        pickup_requests.c.customer_id,
        pickup_requests.c.business_name,
        pickup_requests.c.wheel_count,
        pickup_requests.c.is_completed,
        pickup_requests.c.is_delivered,
        pickup_requests.c.production_status,
    ).order_by(pickup_requests.c.id)
    if not include_archived:
        query = query.where(pickup_requests.c.is_archived.is_(False))

    with tenant_connection(db.get_bind(), context.tenant.schema_name) as connection:
        return {"tenant": context.tenant.subdomain, "pickups": _rows(connection.execute(query))}


@router.get("/api/exec/businesses")
def list_businesses(
    db: Session = Depends(get_db),
    _context: AuthContext = Depends(require_route(RouteClass.platform)),
):
    businesses = db.query(Business).order_by(Business.id.asc()).all()
    return [
        {
            "id": business.id,
            "business_name": business.business_name,
            "subdomain": business.subdomain,
            "database_schema": business.database_schema,
            "status": business.status,
        }
        for business in businesses
    ]
