from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.context import bind_request_id, current_request_id, release_request_id

logger = logging.getLogger("app.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the lifetime of the request and logs its start and end."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:
        token = bind_request_id(request.headers.get("x-request-id"))
        request_id = current_request_id() or ""

        started = time.perf_counter()
        extra = {"path": request.url.path, "method": request.method}
        logger.info("request.start", extra=extra)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            extra.update(
                {
                    "status_code": status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                }
            )
            logger.info("request.end", extra=extra)
            release_request_id(token)

        response.headers["X-Request-ID"] = request_id
        return response
