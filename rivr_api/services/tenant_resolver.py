from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from fastapi import Request
from sqlalchemy.orm import Session

from rivr_api.core import config
from rivr_api.core.errors import TenantRequiredError
from rivr_api.core.request_context import bind_tenant
from rivr_api.services.tenant_directory import TenantDirectory, TenantRecord
from rivr_api.utils.identifiers import try_normalize_subdomain

logger = logging.getLogger(__name__)


class TenantSource(str, Enum):
    field = "field"
    header = "header"
    host = "host"
    cookie = "cookie"


@dataclass(frozen=True)
class TenantSignal:
    subdomain: str
    source: TenantSource


class TenantResolver:
    """Work out which tenant a request targets.

    Priority is strict: explicit body field, then ``X-Tenant-Subdomain``,
    then the subdomain of the host, then the ``tenant_subdomain`` cookie.
    A malformed value is skipped rather than trusted.
    """

    @staticmethod
    def normalize_host(host: str) -> str:
        normalized = (host or "").split(",")[0].strip().lower()
        if not normalized:
            return ""

        if "://" in normalized:
            normalized = urlsplit(normalized).hostname or ""
            return normalized.lower()

        normalized = normalized.split("/")[0].strip()
        if ":" in normalized:
            normalized = normalized.split(":")[0].strip()
        return normalized

    @classmethod
    def normalize_base_domain(cls, base_domain: str) -> str:
        normalized = cls.normalize_host(base_domain or "")
        if normalized.startswith("*."):
            normalized = normalized[2:]
        return normalized.lstrip(".")

    @classmethod
    def request_host(cls, request: Request) -> str:
        host = request.headers.get("x-forwarded-host") or request.headers.get("host") or ""
        return cls.normalize_host(host)

    @classmethod
    def extract_subdomain(cls, host: str) -> str | None:
        """Return the label left of the base domain, or None for the bare domain and the exec portal."""
        normalized_host = cls.normalize_host(host)
        base_domain = cls.normalize_base_domain(config.BASE_DOMAIN)
        if not normalized_host or not base_domain:
            return None

        suffix = f".{base_domain}"
        if normalized_host == base_domain or not normalized_host.endswith(suffix):
            return None

        label = normalized_host[: -len(suffix)]
        if not label or label in {"www", config.EXEC_SUBDOMAIN}:
            return None
        return try_normalize_subdomain(label)

    @classmethod
    def is_exec_host(cls, request: Request) -> bool:
        base_domain = cls.normalize_base_domain(config.BASE_DOMAIN)
        return bool(base_domain) and cls.request_host(request) == f"{config.EXEC_SUBDOMAIN}.{base_domain}"

    @classmethod
    def extract_signal(cls, request: Request, explicit: str | None = None) -> TenantSignal | None:
        candidates = (
            (explicit, TenantSource.field),
            (request.headers.get(config.TENANT_HEADER), TenantSource.header),
            (cls.extract_subdomain(cls.request_host(request)), TenantSource.host),
            (request.cookies.get(config.TENANT_COOKIE), TenantSource.cookie),
        )
        for raw_value, source in candidates:
            if raw_value is None or not str(raw_value).strip():
                continue
            subdomain = try_normalize_subdomain(raw_value)
            if subdomain is None:
                logger.warning("Ignoring malformed tenant value source=%s", source.value)
                continue
            return TenantSignal(subdomain=subdomain, source=source)
        return None

    @staticmethod
    def bound_tenant(request: Request) -> TenantRecord | None:
        return getattr(request.state, "tenant", None)

    @staticmethod
    def bind(request: Request, tenant: TenantRecord) -> TenantRecord:
        current = getattr(request.state, "tenant", None)
        if current is not None and current != tenant:
            raise RuntimeError("Tenant already bound to this request")
        request.state.tenant = tenant
        bind_tenant(tenant)
        return tenant

    @classmethod
    def resolve(
        cls,
        request: Request,
        db: Session,
        directory: TenantDirectory,
        *,
        explicit: str | None = None,
    ) -> TenantRecord | None:
        """Resolve and bind the request's tenant; None when the request carries no tenant signal."""
        bound = cls.bound_tenant(request)
        if bound is not None:
            return bound

        signal = getattr(request.state, "tenant_signal", None)
        if explicit is not None or signal is None:
            signal = cls.extract_signal(request, explicit=explicit)
        if signal is None:
            return None

        return cls.bind(request, directory.resolve(db, signal.subdomain))

    @classmethod
    def require(
        cls,
        request: Request,
        db: Session,
        directory: TenantDirectory,
        *,
        explicit: str | None = None,
    ) -> TenantRecord:
        tenant = cls.resolve(request, db, directory, explicit=explicit)
        if tenant is None:
            raise TenantRequiredError()
        return tenant
