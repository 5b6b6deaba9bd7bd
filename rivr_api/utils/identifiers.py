from __future__ import annotations

import re

from rivr_api.core.errors import InvalidIdentifierError

SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
SCHEMA_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")
RESERVED_SCHEMA_NAMES = {"public", "main", "temp", "information_schema"}


def normalize_subdomain(value: str | None) -> str:
    """Trim and lowercase; the result is later embedded in schema names and cookies."""
    normalized = (value or "").strip().lower()
    if not SUBDOMAIN_PATTERN.match(normalized):
        raise InvalidIdentifierError(f"Invalid subdomain: {value!r}")
    return normalized


def try_normalize_subdomain(value: str | None) -> str | None:
    try:
        return normalize_subdomain(value)
    except InvalidIdentifierError:
        return None


def validate_schema_name(value: str | None) -> str:
    normalized = (value or "").strip()
    if (
        not SCHEMA_NAME_PATTERN.match(normalized)
        or normalized in RESERVED_SCHEMA_NAMES
        or normalized.startswith("pg_")
        or normalized.startswith("sqlite_")
    ):
        raise InvalidIdentifierError(f"Invalid schema name: {value!r}")
    return normalized


def default_schema_name(subdomain: str) -> str:
    return validate_schema_name(f"tenant_{normalize_subdomain(subdomain).replace('-', '_')}")
