"""
Application errors and their HTTP rendering.

Every failure the services raise is an ``AppError`` subclass so callers (and
tests) can tell the kinds apart; the handlers below turn them into a uniform
``{"error_code", "message", "details"}`` body.
"""

import logging
from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class Unauthenticated(AppError):
    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message, "ERR_UNAUTHENTICATED", status.HTTP_401_UNAUTHORIZED)


class Forbidden(AppError):
    def __init__(self, message: str = "Forbidden access", details: Dict[str, Any] = None):
        super().__init__(message, "ERR_FORBIDDEN", status.HTTP_403_FORBIDDEN, details)


class NotFound(AppError):
    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} {resource_id} not found"
        super().__init__(
            message,
            "ERR_NOT_FOUND",
            status.HTTP_404_NOT_FOUND,
            {"resource": resource, "id": resource_id},
        )


class InvalidInput(AppError):
    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ERR_INVALID_INPUT", status.HTTP_400_BAD_REQUEST, details)


class Conflict(AppError):
    """A conditional write matched nothing (e.g. the parcel is already paid)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message, "ERR_CONFLICT", status.HTTP_409_CONFLICT, details)


class GatewayError(AppError):
    """The payment gateway refused or could not be reached."""

    def __init__(self, message: str = "Payment gateway error"):
        super().__init__(message, "ERR_GATEWAY", status.HTTP_502_BAD_GATEWAY)


class StoreError(AppError):
    """The document store failed; details stay in the logs."""

    def __init__(self, message: str = "Storage operation failed"):
        super().__init__(message, "ERR_STORE", status.HTTP_503_SERVICE_UNAVAILABLE)


# ---------- Handlers ----------

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error_code": exc.error_code, "message": exc.message, "details": exc.details},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error_code": "ERR_INTERNAL", "message": "An internal server error occurred", "details": {}},
    )
