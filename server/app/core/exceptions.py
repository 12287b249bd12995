from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("app.errors")


class AppError(Exception):
    status_code: int = 500
    error_type: str = "APP_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ClientInputError(AppError):
    status_code = 400
    error_type = "CLIENT_INPUT_ERROR"


class NotFoundError(AppError):
    status_code = 404
    error_type = "NOT_FOUND"


class UpstreamStoreError(AppError):
    status_code = 500
    error_type = "UPSTREAM_STORE_ERROR"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        # details stay in the logs; callers only ever see the static message
        level = logging.WARNING if exc.status_code < 500 else logging.ERROR
        logger.log(
            level,
            "request.failed",
            extra={
                "path": request.url.path,
                "error_type": exc.error_type,
                "status_code": exc.status_code,
                "details": exc.details,
            },
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
