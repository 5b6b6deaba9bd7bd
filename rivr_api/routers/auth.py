# rivr_api/routers/auth.py
from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from rivr_api.core.database import get_db
from rivr_api.core.errors import UnauthenticatedError
from rivr_api.core.roles import parse_role
from rivr_api.deps import get_optional_session, get_tenant_directory
from rivr_api.services import accounts
from rivr_api.services.authorization_service import candidate_roles, includes_tenant_bound_role
from rivr_api.services.password_reset import GENERIC_RESET_MESSAGE, request_password_reset, reset_password
from rivr_api.services.sessions import (
    SessionClaims,
    clear_session_cookie,
    create_access_token,
    create_customer_token,
    set_session_cookie,
)
from rivr_api.services.tenant_directory import TenantDirectory
from rivr_api.services.tenant_resolver import TenantResolver

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class TenantLoginPayload(LoginPayload):
    # Optional explicit tenant; otherwise header, host or cookie decide.
    tenant: Optional[str] = None


class ForgotPasswordPayload(BaseModel):
    email: EmailStr
    role: Optional[Literal["auto", "rivr_admin", "business_owner", "driver", "employee_viewer"]] = None
    tenant: Optional[str] = None


class ResetPasswordPayload(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


def _login_response(response: Response, claims: SessionClaims) -> dict:
    token = create_access_token(claims)
    set_session_cookie(response, token)
    return {
        "access_token": token,
        "token_type": "bearer",
        "role": claims.role.value,
        "business_id": claims.business_id,
        "tenant": claims.tenant,
        "redirect_url": accounts.POST_LOGIN_REDIRECTS[claims.role],
    }


@router.post("/admin/login")
def admin_login(payload: LoginPayload, response: Response, db: Session = Depends(get_db)):
    claims = accounts.authenticate_admin(db, payload.email, payload.password)
    return _login_response(response, claims)


@router.post("/business/login")
def business_login(payload: LoginPayload, response: Response, db: Session = Depends(get_db)):
    claims = accounts.authenticate_business_owner(db, payload.email, payload.password)
    return _login_response(response, claims)


@router.post("/driver/login")
def driver_login(
    payload: TenantLoginPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    tenant = TenantResolver.require(request, db, directory, explicit=payload.tenant)
    claims = accounts.authenticate_driver(db.get_bind(), tenant, payload.email, payload.password)
    return _login_response(response, claims)


@router.post("/employee/login")
def employee_login(
    payload: TenantLoginPayload,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    tenant = TenantResolver.require(request, db, directory, explicit=payload.tenant)
    claims = accounts.authenticate_employee(db, tenant, payload.email, payload.password)
    return _login_response(response, claims)


@router.post("/customer/login")
def customer_login(
    payload: TenantLoginPayload,
    request: Request,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    tenant = TenantResolver.require(request, db, directory, explicit=payload.tenant)
    customer = accounts.authenticate_customer(db.get_bind(), tenant, payload.email, payload.password)
    token = create_customer_token(
        customer_id=customer.customer_id,
        email=customer.email,
        business_id=tenant.business_id,
        tenant=tenant.subdomain,
    )
    return {
        "access_token": token,
        "token_type": "bearer",
        "tenant": tenant.subdomain,
        "customer": {
            "id": customer.customer_id,
            "email": customer.email,
            "first_name": customer.first_name,
            "last_name": customer.last_name,
        },
    }


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True}


@router.get("/profile")
def profile(session: SessionClaims | None = Depends(get_optional_session)):
    if session is None:
        raise UnauthenticatedError(login_url="/auth")
    return {
        "id": session.subject_id,
        "email": session.email,
        "role": session.role.value,
        "business_id": session.business_id,
        "tenant": session.tenant,
    }


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordPayload,
    request: Request,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    role = None if payload.role in (None, "auto") else parse_role(payload.role)
    # Tenant-free roles never look at tenant signals, stale cookies included.
    tenant = None
    if includes_tenant_bound_role(candidate_roles(role)):
        tenant = TenantResolver.resolve(request, db, directory, explicit=payload.tenant)
    request_password_reset(db, db.get_bind(), email=payload.email, role=role, tenant=tenant)
    return {"success": True, "message": GENERIC_RESET_MESSAGE}


@router.post("/reset-password")
def reset_password_endpoint(
    payload: ResetPasswordPayload,
    db: Session = Depends(get_db),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    reset_password(db, db.get_bind(), directory, token=payload.token, new_password=payload.new_password)
    return {"success": True, "message": "Password has been reset. Please sign in again."}
