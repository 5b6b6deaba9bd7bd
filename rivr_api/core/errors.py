"""Domain error taxonomy.

Services raise these; ``register_exception_handlers`` installs one handler that renders
``{"detail": ..., "code": ...}`` with the error's status code. CLI scripts
catch ``RivrError`` and exit with status 1.
"""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class RivrError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_payload(self) -> dict:
        return {"detail": self.detail, "code": self.code}


class ConfigError(RivrError):
    code = "config_error"
    default_detail = "Invalid configuration"


class InvalidIdentifierError(RivrError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_identifier"
    default_detail = "Invalid identifier"


class TenantConflictError(RivrError):
    status_code = status.HTTP_409_CONFLICT
    code = "tenant_conflict"
    default_detail = "Tenant already exists"


class TenantNotFoundError(RivrError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "tenant_not_found"
    default_detail = "Tenant not found"


class TenantRequiredError(RivrError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "tenant_required"
    default_detail = "Tenant required"


class ProvisioningError(RivrError):
    code = "ddl_failure"
    default_detail = "Tenant provisioning failed"

    def __init__(self, schema_name: str, object_name: str) -> None:
        self.schema_name = schema_name
        self.object_name = object_name
        super().__init__(f"Failed to create {object_name} in schema {schema_name}")


class UnauthenticatedError(RivrError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_detail = "Not authenticated"

    def __init__(self, detail: str | None = None, *, login_url: str | None = None) -> None:
        self.login_url = login_url
        super().__init__(detail)

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.login_url:
            payload["login_url"] = self.login_url
        return payload


class ForbiddenError(RivrError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Insufficient permissions"


class InvalidResetTokenError(RivrError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_reset_token"
    default_detail = "Invalid or expired reset token"


async def rivr_error_handler(_: Request, exc: RivrError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RivrError, rivr_error_handler)
