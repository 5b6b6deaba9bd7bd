from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware

from rivr_api.core import config
from rivr_api.services.tenant_resolver import TenantResolver, TenantSource


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Capture the request's tenant signal once; directory lookup is left to the routes that need it."""

    async def dispatch(self, request, call_next):
        request.state.tenant = None
        request.state.tenant_signal = None

        if request.method == "OPTIONS":
            return await call_next(request)

        signal = TenantResolver.extract_signal(request)
        request.state.tenant_signal = signal

        response = await call_next(request)

        if TenantResolver.is_exec_host(request):
            response.delete_cookie(config.TENANT_COOKIE, path="/")
        elif signal is not None and signal.source == TenantSource.host:
            response.set_cookie(
                config.TENANT_COOKIE,
                signal.subdomain,
                path="/",
                samesite="lax",
            )
        return response
