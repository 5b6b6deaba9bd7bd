from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from rivr_api.core.errors import ConfigError
from rivr_api.models.rivr_admin import RivrAdmin
from rivr_api.services.passwords import hash_password

logger = logging.getLogger(__name__)
ALLOWLIST_PREFIX = "[ADMIN_ALLOWLIST]"
ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AdminIdentity:
    email: str
    first_name: str
    last_name: str


@dataclass
class AllowlistSyncResult:
    removed: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)


DEFAULT_ADMIN_ALLOWLIST: tuple[AdminIdentity, ...] = (
    AdminIdentity(email="admin@rivr-workflow.com", first_name="RIVR", last_name="Admin"),
    AdminIdentity(email="support@rivr-workflow.com", first_name="RIVR", last_name="Support"),
    AdminIdentity(email="info@rivr-workflow.com", first_name="RIVR", last_name="Info"),
)


def ensure_admin_table(engine: Engine) -> None:
    if not inspect(engine).has_table(RivrAdmin.__tablename__):
        raise ConfigError("Table rivr_admins not found. Run the platform migrations first.")


def validate_allowlist(allowlist: Sequence[AdminIdentity]) -> list[AdminIdentity]:
    """Normalize emails and reject lists that must never reach the database."""
    if not allowlist:
        raise ConfigError("Admin allowlist is empty; refusing to remove every admin")

    normalized: list[AdminIdentity] = []
    seen: set[str] = set()
    for identity in allowlist:
        email = (identity.email or "").strip().lower()
        local, _, domain = email.partition("@")
        if not local or not domain:
            raise ConfigError(f"Invalid admin email in allowlist: {identity.email!r}")
        if email in seen:
            raise ConfigError(f"Duplicate admin email in allowlist: {email}")
        seen.add(email)
        normalized.append(
            AdminIdentity(
                email=email,
                first_name=(identity.first_name or "").strip(),
                last_name=(identity.last_name or "").strip(),
            )
        )
    return normalized


def sync_admin_allowlist(
    db: Session,
    allowlist: Sequence[AdminIdentity],
    *,
    password: str,
) -> AllowlistSyncResult:
    """Make rivr_admins match ``allowlist`` exactly.

    Deletes every account whose email is not listed, then upserts each listed
    account with a fresh hash of ``password``, role ``admin`` and active flag.
    Re-running with the same input converges to the same set.
    """
    identities = validate_allowlist(allowlist)
    if not password:
        raise ConfigError("Admin seed password is empty")

    allowed_emails = [identity.email for identity in identities]
    result = AllowlistSyncResult()

    try:
        stale = db.query(RivrAdmin).filter(RivrAdmin.email.notin_(allowed_emails)).all()
        for admin in stale:
            result.removed.append(admin.email)
            db.delete(admin)
        db.flush()
        logger.info("%s removed=%s", ALLOWLIST_PREFIX, ",".join(result.removed) or "-")

        password_hash = hash_password(password)
        for identity in identities:
            admin = db.query(RivrAdmin).filter(RivrAdmin.email == identity.email).first()
            if admin is None:
                admin = RivrAdmin(email=identity.email)
                db.add(admin)
                result.created.append(identity.email)
            else:
                result.updated.append(identity.email)
            admin.password_hash = password_hash
            admin.first_name = identity.first_name
            admin.last_name = identity.last_name
            admin.role = ADMIN_ROLE
            admin.is_active = True

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("%s sync failed", ALLOWLIST_PREFIX)
        raise

    logger.info(
        "%s done created=%s updated=%s",
        ALLOWLIST_PREFIX,
        ",".join(result.created) or "-",
        ",".join(result.updated) or "-",
    )
    return result
