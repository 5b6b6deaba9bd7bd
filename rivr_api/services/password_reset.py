from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from rivr_api.core import config
from rivr_api.core.errors import InvalidResetTokenError, TenantNotFoundError, TenantRequiredError
from rivr_api.core.roles import Role
from rivr_api.models.password_reset_request import PasswordResetRequest
from rivr_api.services import notifications
from rivr_api.services.accounts import AccountMatch, find_account, normalize_email, set_account_password
from rivr_api.services.authorization_service import candidate_roles, requires_tenant_disambiguation
from rivr_api.services.passwords import hash_password
from rivr_api.services.tenant_directory import TenantDirectory, TenantRecord

logger = logging.getLogger(__name__)

RESET_SALT = "password-reset"
GENERIC_RESET_MESSAGE = "If an account exists, a reset email has been sent."
SEARCH_ORDER = (Role.rivr_admin, Role.business_owner, Role.driver, Role.employee_viewer)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(config.RESET_TOKEN_SECRET, salt=RESET_SALT)


def create_reset_token(reset_id: int) -> str:
    return _serializer().dumps({"rid": int(reset_id)})


def decode_reset_token(token: str) -> int:
    try:
        payload = _serializer().loads(token, max_age=config.RESET_TOKEN_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired) as exc:
        raise InvalidResetTokenError() from exc
    try:
        return int(payload["rid"])
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidResetTokenError() from exc


def build_reset_url(token: str, tenant: TenantRecord | None) -> str:
    params = {"token": token}
    if tenant is not None:
        params["tenant"] = tenant.subdomain
    return f"{config.APP_BASE_URL.rstrip('/')}/auth/reset?{urlencode(params)}"


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def request_password_reset(
    db: Session,
    engine: Engine,
    *,
    email: str,
    role: Role | None,
    tenant: TenantRecord | None,
) -> str | None:
    """Create a reset request for the first matching account; returns the reset link or None.

    ``role=None`` is the "auto" case. When the candidate roles include a
    tenant-bound role and no tenant was resolved the caller must supply one,
    so ``TenantRequiredError`` is raised before any lookup.
    """
    candidates = candidate_roles(role)
    if requires_tenant_disambiguation(candidates, tenant):
        logger.info("Password reset needs a tenant roles=%s", ",".join(r.value for r in candidates))
        raise TenantRequiredError()

    normalized = normalize_email(email)
    match: AccountMatch | None = None
    for candidate in SEARCH_ORDER:
        if candidate not in candidates:
            continue
        match = find_account(db, engine, candidate, normalized, tenant)
        if match is not None:
            break

    if match is None:
        logger.info("Password reset requested for unknown account")
        return None

    reset = PasswordResetRequest(
        email=normalized,
        role=match.role.value,
        tenant_id=match.business_id if match.role in (Role.driver, Role.employee_viewer) else None,
        user_id=match.user_id,
        used=False,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=config.RESET_TOKEN_MAX_AGE_SECONDS),
    )
    db.add(reset)
    db.commit()
    db.refresh(reset)

    reset_url = build_reset_url(create_reset_token(reset.id), tenant if reset.tenant_id else None)
    notifications.send_password_reset(normalized, reset_url)
    logger.info("Password reset issued role=%s reset_id=%s", match.role.value, reset.id)
    return reset_url


def reset_password(
    db: Session,
    engine: Engine,
    directory: TenantDirectory,
    *,
    token: str,
    new_password: str,
) -> Role:
    reset_id = decode_reset_token(token)
    reset = db.query(PasswordResetRequest).filter(PasswordResetRequest.id == reset_id).first()
    if reset is None or reset.used or _aware(reset.expires_at) < datetime.now(timezone.utc):
        raise InvalidResetTokenError()

    role = Role(reset.role)
    account = AccountMatch(
        role=role,
        user_id=int(reset.user_id),
        email=reset.email,
        business_id=reset.tenant_id,
    )

    schema_name = None
    if role == Role.driver:
        try:
            schema_name = directory.resolve_business(db, int(reset.tenant_id)).schema_name
        except (TenantNotFoundError, TypeError) as exc:
            raise InvalidResetTokenError() from exc

    if not set_account_password(db, engine, account, hash_password(new_password), schema_name=schema_name):
        db.rollback()
        raise InvalidResetTokenError()

    reset.used = True
    db.commit()
    logger.info("Password reset completed role=%s reset_id=%s", role.value, reset.id)
    return role
