"""
Application errors and the handlers that render them as JSON

Every error response has the same shape:
    {"success": false, "error": {"code", "message", "details"?}, "request_id"?}
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base class for errors raised deliberately by the services

    Subclasses set the HTTP status and the machine-readable error code.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    default_detail: str = "An unexpected error occurred"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
        self.detail = detail or self.default_detail
        self.headers = headers
        super().__init__(self.detail)


class BadRequestError(AppException):
    """Input rejected by a service-level check (batch size, retention days)"""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    default_detail = "Bad request"


class UnauthorizedError(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_detail = "Authentication required"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    default_detail = "Access forbidden"


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(AppException):
    """Unique value already taken (SKU, username, email)"""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"
    default_detail = "Resource already exists"


class RateLimitError(AppException):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "RATE_LIMITED"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            f"Too many requests. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)}
        )


# Error codes for HTTPExceptions raised by FastAPI/Starlette themselves
ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    429: "RATE_LIMITED",
}

# Unique columns and the message shown when an insert collides with them
UNIQUE_VIOLATIONS = {
    "sku": "Product with this SKU already exists",
    "username": "Username already registered",
    "email": "Email already registered",
}


def create_error_response(
    detail: str,
    error_code: str = "ERROR",
    errors: Optional[List[Dict[str, Any]]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Build the standard error body

    Args:
        detail: Human-readable message
        error_code: Machine-readable code
        errors: Optional per-field details
        request_id: Correlation ID of the failing request

    Returns:
        Response body dict
    """
    error: Dict[str, Any] = {"code": error_code, "message": detail}
    if errors:
        error["details"] = errors

    body: Dict[str, Any] = {"success": False, "error": error}
    if request_id:
        body["request_id"] = request_id
    return body


def integrity_detail(exc: IntegrityError) -> str:
    """
    Message for a constraint violation, naming the duplicated field when known
    """
    text = str(exc.orig if exc.orig is not None else exc).lower()
    if "unique" in text or "duplicate" in text:
        for column, message in UNIQUE_VIOLATIONS.items():
            if column in text:
                return message
        return "A record with this value already exists"
    return "A database constraint was violated"


def _error_response(
    request: Request,
    status_code: int,
    detail: str,
    error_code: str,
    errors: Optional[List[Dict[str, Any]]] = None,
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(
            detail=detail,
            error_code=error_code,
            errors=errors,
            request_id=getattr(request.state, "correlation_id", None)
        ),
        headers=headers
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register the global exception handlers on the application
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        logger.warning(
            f"{exc.error_code}: {exc.detail}",
            extra={"status_code": exc.status_code}
        )
        return _error_response(request, exc.status_code, exc.detail, exc.error_code, headers=exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Routing errors and HTTPExceptions raised by FastAPI itself"""
        return _error_response(
            request,
            exc.status_code,
            str(exc.detail),
            ERROR_CODES.get(exc.status_code, "ERROR"),
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies and query parameters, one detail per field"""
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        logger.info(f"Validation error: {len(errors)} field(s)", extra={"errors": errors})
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            "VALIDATION_ERROR",
            errors=errors
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        """Constraint violations that slipped past the service-level checks"""
        logger.error(f"Database integrity error: {exc}")
        return _error_response(request, status.HTTP_409_CONFLICT, integrity_detail(exc), "CONFLICT")

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        from app.core.sentry import capture_exception

        logger.error(f"Database error: {exc}", exc_info=True)
        capture_exception(exc, {"request": {"path": request.url.path}})
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "A database error occurred",
            "DATABASE_ERROR"
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        from app.core.config import settings
        from app.core.sentry import capture_exception

        logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}", exc_info=True)
        capture_exception(exc, {"request": {"path": request.url.path}})

        detail = f"{type(exc).__name__}: {exc}" if settings.DEBUG else "An unexpected error occurred"
        return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, detail, "INTERNAL_ERROR")
