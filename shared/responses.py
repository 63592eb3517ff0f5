"""
Uniform response envelope and exception handlers.

Every endpoint answers with ``{success, data?, message?, error?}``; list
endpoints add ``pagination``.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from .exceptions import AppError, StoreError

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An internal server error occurred"


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    **extra: Any
) -> Dict[str, Any]:
    """Build a success envelope."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    body.update(extra)
    return jsonable_encoder(body)


def error_response(
    status_code: int,
    message: str,
    error: Optional[Any] = None
) -> JSONResponse:
    """Build a failure envelope as a JSONResponse."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("Store error",
                     path=request.url.path,
                     operation=exc.operation,
                     entity_id=exc.entity_id,
                     error=exc.message)
        return error_response(exc.status_code, GENERIC_ERROR_MESSAGE)

    logger.info("Request rejected",
                path=request.url.path,
                status_code=exc.status_code,
                reason=exc.message)
    return error_response(exc.status_code, exc.message, exc.details or None)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    logger.info("Request schema validation failed", path=request.url.path, errors=len(errors))
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request data", errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-rendering handlers to an application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
