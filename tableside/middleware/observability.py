from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from tableside.core.metrics import request_metrics
from tableside.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        organization_id = _extract_organization_id(request)
        request.state.request_id = request_id
        set_request_context(request_id=request_id, organization_id=organization_id)

        status_code = 500
        endpoint = request.url.path
        method = request.method

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            request_metrics.observe(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                organization_id=organization_id,
            )

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "organization_id": organization_id,
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
            clear_request_context()


def _extract_organization_id(request: Request) -> str | None:
    organization = request.query_params.get("organizationId")
    if organization:
        return str(organization)
    header_organization = request.headers.get("X-Organization-ID")
    if header_organization:
        return header_organization
    return None
