from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rivr_api.core.request_context import close_request_context, open_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Open the log context for a request and write one access line when it ends.

    Runs inside ``TenantContextMiddleware`` so the raw tenant signal is already
    on ``request.state``; the resolved schema and session role are bound later
    by the dependencies that resolve them.
    """

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        signal = getattr(request.state, "tenant_signal", None)
        token = open_request_context(request_id, tenant=signal.subdomain if signal is not None else None)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            logger.log(
                logging.ERROR if status_code >= 500 else logging.INFO,
                "request completed %s %s status=%s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            close_request_context(token)
