"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from typing import Any, Dict, Optional
import logging

from .responses import PrettyJSONResponse

logger = logging.getLogger(__name__)


class ManifestoException(HTTPException):
    """Base exception class for the Manifesto API"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code
        self.extra = extra or {}


class BadRequestException(ManifestoException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST", extra: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
            extra=extra,
        )


class ValidationException(BadRequestException):
    """400 for missing or malformed request fields"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(detail=detail, error_code=error_code)


class UnauthorizedException(ManifestoException):
    """401 Unauthorized"""

    def __init__(self, detail: str = "Unauthorized", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"}
        )


class MissingTokenException(UnauthorizedException):
    """No bearer token on a protected route"""

    def __init__(self, detail: str = "Missing token"):
        super().__init__(detail=detail, error_code="AUTH_MISSING")


class InvalidTokenException(UnauthorizedException):
    """Bearer token rejected by the identity service"""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail=detail, error_code="AUTH_INVALID")


class ForbiddenException(ManifestoException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )


class NotFoundException(ManifestoException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )


class ConflictException(ManifestoException):
    """409 Conflict"""

    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code=error_code
        )


class UpstreamException(ManifestoException):
    """The identity or storage service refused or failed a call"""

    def __init__(self, detail: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail, error_code="UPSTREAM_ERROR")


class InternalServerException(ManifestoException):
    """500 Internal Server Error"""

    def __init__(
        self,
        detail: str = "Internal server error",
        error_code: str = "INTERNAL_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            error_code=error_code
        )


# Business logic exceptions
class ManifestoNotFoundException(NotFoundException):
    """Login handle does not resolve to a profile"""

    def __init__(self):
        super().__init__(detail="Manifesto not found", error_code="MANIFESTO_NOT_FOUND")


class DuplicateResourceException(ConflictException):
    """Resource already exists"""

    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            detail=f"{resource} with {field} '{value}' already exists",
            error_code="DUPLICATE_RESOURCE"
        )


class OrderNotCancellableException(BadRequestException):
    """Order cannot be cancelled"""

    def __init__(self, current_status: str, detail: str = "Order cannot be cancelled in current status"):
        super().__init__(
            detail=detail,
            error_code="ORDER_NOT_CANCELLABLE",
            extra={"currentStatus": current_status},
        )


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location)
    if first.get("type") == "missing":
        return f"Missing required field: {field}" if field else "Request body is required"
    message = first.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f"{field}: {message}" if field else message


async def manifesto_exception_handler(request: Request, exc: ManifestoException) -> PrettyJSONResponse:
    content: Dict[str, Any] = {"error": exc.detail}
    if exc.error_code:
        content["code"] = exc.error_code
    content.update(exc.extra)
    return PrettyJSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> PrettyJSONResponse:
    return PrettyJSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> PrettyJSONResponse:
    return PrettyJSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _describe_validation_error(exc), "code": "VALIDATION_ERROR"},
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> PrettyJSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return PrettyJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Database operation failed", "details": str(getattr(exc, "orig", None) or exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> PrettyJSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    content: Dict[str, Any] = {"error": "Internal server error"}
    if request.app.state.settings.DEBUG:
        content["message"] = str(exc)
    return PrettyJSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as a JSON object with an error field"""
    app.add_exception_handler(ManifestoException, manifesto_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
