"""
PawMatch — Exception handlers.

Renders every ``AppException`` as ``{"detail", "code", "field"?,
"metadata"?}`` with its status code, and request validation errors in the
same envelope.  Each response carries an ``X-Request-ID`` header that is
also bound to the log event.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pawmatch.exceptions import AppException, ErrorCode

logger = structlog.get_logger("pawmatch.api.errors")


def generate_request_id() -> str:
    return str(uuid.uuid4())[:8]


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    request_id = generate_request_id()
    log = logger.bind(request_id=request_id, path=request.url.path)
    if exc.status_code >= 500:
        log.error("app_exception", code=exc.code.value, detail=exc.message)
    else:
        log.info("app_exception", code=exc.code.value, detail=exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"X-Request-ID": request_id},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    request_id = generate_request_id()
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]
    logger.info(
        "request_validation_failed",
        request_id=request_id,
        path=request.url.path,
        errors=errors,
    )

    body: dict[str, Any] = {
        "detail": errors,
        "code": ErrorCode.VALIDATION_ERROR.value,
    }
    return JSONResponse(
        status_code=422,
        content=body,
        headers={"X-Request-ID": request_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
