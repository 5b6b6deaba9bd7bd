from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from threading import Lock

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rivr_api.core.config import TENANT_CACHE_TTL_SECONDS
from rivr_api.core.errors import TenantConflictError, TenantNotFoundError
from rivr_api.models.business import Business
from rivr_api.utils.identifiers import normalize_subdomain, validate_schema_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantRecord:
    subdomain: str
    schema_name: str
    business_id: int


def _record_from_business(business: Business) -> TenantRecord:
    return TenantRecord(
        subdomain=business.subdomain,
        schema_name=business.database_schema,
        business_id=int(business.id),
    )


class TenantDirectory:
    """Authoritative subdomain -> (schema, business) mapping.

    Lookups go through a small read-mostly TTL cache. Only hits are cached,
    and ``register`` evicts the subdomain so a freshly onboarded tenant
    resolves on the very next request.
    """

    def __init__(self, *, cache_ttl_seconds: float = TENANT_CACHE_TTL_SECONDS) -> None:
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache: dict[str, tuple[TenantRecord, float]] = {}
        self._lock = Lock()

    def resolve(self, db: Session, subdomain: str) -> TenantRecord:
        normalized = normalize_subdomain(subdomain)
        cached = self._cache_get(normalized)
        if cached is not None:
            return cached

        business = (
            db.query(Business)
            .filter(Business.subdomain == normalized, Business.database_schema.isnot(None))
            .first()
        )
        if business is None:
            logger.warning("Tenant resolution failed subdomain=%s", normalized)
            raise TenantNotFoundError()

        record = _record_from_business(business)
        self._cache_put(record)
        return record

    def resolve_business(self, db: Session, business_id: int) -> TenantRecord:
        business = (
            db.query(Business)
            .filter(
                Business.id == int(business_id),
                Business.subdomain.isnot(None),
                Business.database_schema.isnot(None),
            )
            .first()
        )
        if business is None:
            raise TenantNotFoundError()
        return _record_from_business(business)

    def register(
        self,
        db: Session,
        subdomain: str,
        schema_name: str,
        *,
        business_id: int | None = None,
        business_name: str | None = None,
    ) -> TenantRecord:
        normalized = normalize_subdomain(subdomain)
        schema_name = validate_schema_name(schema_name)

        clash = (
            db.query(Business)
            .filter(or_(Business.subdomain == normalized, Business.database_schema == schema_name))
            .first()
        )
        if clash is not None:
            field = "subdomain" if clash.subdomain == normalized else "schema name"
            logger.warning(
                "Tenant registration conflict field=%s subdomain=%s schema=%s",
                field,
                normalized,
                schema_name,
            )
            raise TenantConflictError(f"Tenant {field} already registered")

        if business_id is not None:
            business = db.query(Business).filter(Business.id == int(business_id)).first()
            if business is None:
                raise TenantNotFoundError(f"Business {business_id} not found")
            if business.subdomain or business.database_schema:
                raise TenantConflictError("Business already has a tenant")
        else:
            business = Business(business_name=(business_name or _display_name(normalized)).strip())
            db.add(business)

        business.subdomain = normalized
        business.database_schema = schema_name
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise TenantConflictError("Tenant subdomain or schema name already registered") from exc
        db.refresh(business)

        self.invalidate(normalized)
        record = _record_from_business(business)
        logger.info(
            "Tenant registered subdomain=%s schema=%s business_id=%s",
            record.subdomain,
            record.schema_name,
            record.business_id,
        )
        return record

    def find_registration(
        self,
        db: Session,
        subdomain: str,
        schema_name: str,
        *,
        business_id: int | None = None,
    ) -> TenantRecord | None:
        """Return the existing registration when it matches exactly, else None.

        Lets provisioning resume a tenant whose schema was left half-built;
        any partial match still goes through ``register`` and its conflict.
        """
        normalized = normalize_subdomain(subdomain)
        schema_name = validate_schema_name(schema_name)
        business = (
            db.query(Business)
            .filter(Business.subdomain == normalized, Business.database_schema == schema_name)
            .first()
        )
        if business is None:
            return None
        if business_id is not None and int(business.id) != int(business_id):
            return None
        return _record_from_business(business)

    def invalidate(self, subdomain: str | None = None) -> None:
        with self._lock:
            if subdomain is None:
                self._cache.clear()
            else:
                self._cache.pop(subdomain.strip().lower(), None)

    def _cache_get(self, subdomain: str) -> TenantRecord | None:
        if self.cache_ttl_seconds <= 0:
            return None
        with self._lock:
            entry = self._cache.get(subdomain)
            if entry is None:
                return None
            record, expires_at = entry
            if expires_at < time.monotonic():
                self._cache.pop(subdomain, None)
                return None
            return record

    def _cache_put(self, record: TenantRecord) -> None:
        if self.cache_ttl_seconds <= 0:
            return
        with self._lock:
            self._cache[record.subdomain] = (record, time.monotonic() + self.cache_ttl_seconds)


def _display_name(subdomain: str) -> str:
    return subdomain.replace("-", " ").title()


tenant_directory = TenantDirectory()
