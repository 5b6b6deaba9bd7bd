from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Request, Response
from jose import JWTError, jwt

from rivr_api.core import config
from rivr_api.core.roles import Role, parse_role

CUSTOMER_TOKEN_KIND = "customer"
STAFF_TOKEN_KIND = "staff"


@dataclass(frozen=True)
class SessionClaims:
    subject_id: int
    role: Role
    email: str
    business_id: int | None = None
    tenant: str | None = None


def create_access_token(claims: SessionClaims, *, expires_minutes: int | None = None) -> str:
    """Sign a staff session. ``sub`` must be a string for python-jose."""
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=expires_minutes or config.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(claims.subject_id),
        "kind": STAFF_TOKEN_KIND,
        "role": claims.role.value,
        "email": claims.email,
        "business_id": claims.business_id,
        "tenant": claims.tenant,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def create_customer_token(*, customer_id: int, email: str, business_id: int, tenant: str) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=config.JWT_EXPIRE_MINUTES)
    payload = {
        "sub": str(customer_id),
        "kind": CUSTOMER_TOKEN_KIND,
        "email": email,
        "business_id": business_id,
        "tenant": tenant,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> SessionClaims | None:
    """Return the staff claims, or None for anything invalid, expired or not a staff token."""
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None

    if payload.get("kind") != STAFF_TOKEN_KIND:
        return None
    role = parse_role(payload.get("role"))
    raw_subject = str(payload.get("sub") or "").strip()
    if role is None or not raw_subject.isdigit():
        return None

    business_id = payload.get("business_id")
    try:
        business_id = int(business_id) if business_id is not None else None
    except (TypeError, ValueError):
        return None

    return SessionClaims(
        subject_id=int(raw_subject),
        role=role,
        email=str(payload.get("email") or ""),
        business_id=business_id,
        tenant=payload.get("tenant"),
    )


def extract_session_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(config.SESSION_COOKIE_NAME) or None


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.JWT_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite=config.SESSION_COOKIE_SAMESITE,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=config.SESSION_COOKIE_NAME, path="/")
