"""Exception handlers mapping errors to the JSON error envelope.

Every error response has the shape
{"success": false, "error": <message>, "timestamp": <ISO 8601>}.
Unexpected errors become a generic 500; debug detail is attached only in
development.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.config import get_settings
from backend.app.errors import LegalQAError, ValidationError

logger = logging.getLogger(__name__)


def error_body(message: str, **extra: Any) -> dict[str, Any]:
    return {
        "success": False,
        "error": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


async def legal_qa_error_handler(request: Request, exc: LegalQAError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")} for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content=error_body(ValidationError.public_message, details=details),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    services = getattr(request.app.state, "services", None)
    settings = services.settings if services is not None else get_settings()

    extra: dict[str, Any] = {}
    if settings.is_development:
        extra["debug"] = {
            "message": str(exc),
            "type": type(exc).__name__,
            "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        }

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", **extra),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LegalQAError, legal_qa_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_error_handler)
