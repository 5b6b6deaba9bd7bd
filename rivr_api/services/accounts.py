from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from rivr_api.core.errors import UnauthenticatedError
from rivr_api.core.roles import Role
from rivr_api.models.business import Business
from rivr_api.models.business_employee import BusinessEmployee
from rivr_api.models.rivr_admin import RivrAdmin
from rivr_api.services.passwords import verify_password
from rivr_api.services.sessions import SessionClaims
from rivr_api.services.tenant_db import tenant_connection
from rivr_api.services.tenant_directory import TenantRecord
from rivr_api.tenancy.template import customers, drivers

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

POST_LOGIN_REDIRECTS: dict[Role, str] = {
    Role.rivr_admin: "/rivr-exec",
    Role.business_owner: "/business-admin",
    Role.driver: "/driver",
    Role.employee_viewer: "/employee",
}


@dataclass(frozen=True)
class AccountMatch:
    role: Role
    user_id: int
    email: str
    business_id: int | None = None


@dataclass(frozen=True)
class CustomerIdentity:
    customer_id: int
    email: str
    first_name: str
    last_name: str


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _reject(role: Role, email: str) -> UnauthenticatedError:
    logger.info("Login rejected role=%s email=%s", role.value, email)
    return UnauthenticatedError(INVALID_CREDENTIALS)


def authenticate_admin(db: Session, email: str, password: str) -> SessionClaims:
    normalized = normalize_email(email)
    admin = db.query(RivrAdmin).filter(func.lower(RivrAdmin.email) == normalized).first()
    if admin is None or not admin.is_active or not verify_password(password, admin.password_hash):
        raise _reject(Role.rivr_admin, normalized)

    admin.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return SessionClaims(subject_id=int(admin.id), role=Role.rivr_admin, email=admin.email)


def authenticate_business_owner(db: Session, email: str, password: str) -> SessionClaims:
    normalized = normalize_email(email)
    business = db.query(Business).filter(func.lower(Business.owner_email) == normalized).first()
    if business is None or not verify_password(password, business.owner_password_hash):
        raise _reject(Role.business_owner, normalized)

    return SessionClaims(
        subject_id=int(business.id),
        role=Role.business_owner,
        email=business.owner_email,
        business_id=int(business.id),
        tenant=business.subdomain,
    )


def authenticate_driver(engine: Engine, tenant: TenantRecord, email: str, password: str) -> SessionClaims:
    normalized = normalize_email(email)
    with tenant_connection(engine, tenant.schema_name) as connection:
        row = connection.execute(
            select(drivers.c.id, drivers.c.email, drivers.c.password_hash, drivers.c.is_active)
            .where(func.lower(drivers.c.email) == normalized)
            .limit(1)
        ).first()

    if row is None or not row.is_active or not verify_password(password, row.password_hash):
        raise _reject(Role.driver, normalized)

    return SessionClaims(
        subject_id=int(row.id),
        role=Role.driver,
        email=row.email,
        business_id=tenant.business_id,
        tenant=tenant.subdomain,
    )


def authenticate_employee(db: Session, tenant: TenantRecord, email: str, password: str) -> SessionClaims:
    normalized = normalize_email(email)
    employee = (
        db.query(BusinessEmployee)
        .filter(
            BusinessEmployee.business_id == tenant.business_id,
            func.lower(BusinessEmployee.email) == normalized,
        )
        .first()
    )
    if employee is None or not employee.is_active or not verify_password(password, employee.password_hash):
        raise _reject(Role.employee_viewer, normalized)

    return SessionClaims(
        subject_id=int(employee.id),
        role=Role.employee_viewer,
        email=employee.email,
        business_id=tenant.business_id,
        tenant=tenant.subdomain,
    )


def authenticate_customer(engine: Engine, tenant: TenantRecord, email: str, password: str) -> CustomerIdentity:
    normalized = normalize_email(email)
    with tenant_connection(engine, tenant.schema_name) as connection:
        row = connection.execute(
            select(
                customers.c.id,
                customers.c.email,
                customers.c.first_name,
                customers.c.last_name,
                customers.c.password_hash,
            )
            .where(func.lower(customers.c.email) == normalized)
            .limit(1)
        ).first()

    if row is None or not verify_password(password, row.password_hash):
        logger.info("Customer login rejected tenant=%s email=%s", tenant.subdomain, normalized)
        raise UnauthenticatedError(INVALID_CREDENTIALS)

    return CustomerIdentity(
        customer_id=int(row.id),
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
    )


def find_account(
    db: Session,
    engine: Engine,
    role: Role,
    email: str,
    tenant: TenantRecord | None,
) -> AccountMatch | None:
    """Look up one account of ``role`` by email; tenant-bound roles need ``tenant``."""
    normalized = normalize_email(email)

    if role == Role.rivr_admin:
        admin = db.query(RivrAdmin).filter(func.lower(RivrAdmin.email) == normalized).first()
        return AccountMatch(role, int(admin.id), admin.email) if admin else None

    if role == Role.business_owner:
        business = db.query(Business).filter(func.lower(Business.owner_email) == normalized).first()
        if business is None:
            return None
        return AccountMatch(role, int(business.id), business.owner_email, int(business.id))

    if tenant is None:
        return None

    if role == Role.driver:
        with tenant_connection(engine, tenant.schema_name) as connection:
            row = connection.execute(
                select(drivers.c.id, drivers.c.email).where(func.lower(drivers.c.email) == normalized).limit(1)
            ).first()
        return AccountMatch(role, int(row.id), row.email, tenant.business_id) if row else None

    employee = (
        db.query(BusinessEmployee)
        .filter(
            BusinessEmployee.business_id == tenant.business_id,
            func.lower(BusinessEmployee.email) == normalized,
        )
        .first()
    )
    return AccountMatch(role, int(employee.id), employee.email, tenant.business_id) if employee else None


def set_account_password(
    db: Session,
    engine: Engine,
    account: AccountMatch,
    password_hash: str,
    *,
    schema_name: str | None = None,
) -> bool:
    """Store a new hash on the account; returns False when the account is gone.

    Platform accounts are updated on ``db`` without committing. Driver rows
    live in the tenant schema and are committed on their own connection.
    """
    if account.role == Role.driver:
        if not schema_name:
            return False
        with tenant_connection(engine, schema_name) as connection:
            result = connection.execute(
                update(drivers).where(drivers.c.id == account.user_id).values(password_hash=password_hash)
            )
        return result.rowcount > 0

    if account.role == Role.rivr_admin:
        admin = db.query(RivrAdmin).filter(RivrAdmin.id == account.user_id).first()
        if admin is None:
            return False
        admin.password_hash = password_hash
        return True

    if account.role == Role.business_owner:
        business = db.query(Business).filter(Business.id == account.user_id).first()
        if business is None:
            return False
        business.owner_password_hash = password_hash
        return True

    employee = (
        db.query(BusinessEmployee)
        .filter(
            BusinessEmployee.id == account.user_id,
            BusinessEmployee.business_id == account.business_id,
        )
        .first()
    )
    if employee is None:
        return False
    employee.password_hash = password_hash
    return True
