"""
Application Exception Handling

Single AppException class for all application errors with FastAPI integration.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the entire API.

    Usage:
        raise AppException("Product not found", "PRODUCT_NOT_FOUND", 404)
        raise AppException("Invalid input", "VALIDATION_ERROR", 400, {"missing": ["name"]})

    Error Codes:
        Authentication:
            - INVALID_CREDENTIALS (401)
            - TOKEN_EXPIRED (401)
            - TOKEN_INVALID (401)
            - ADMIN_REQUIRED (403)

        Catalog:
            - VALIDATION_ERROR (400)
            - PRODUCT_NOT_FOUND (404)
            - STORAGE_CONFLICT (409)

        General:
            - NOT_FOUND (404)
            - METHOD_NOT_ALLOWED (405)
            - INTERNAL_ERROR (500)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (e.g., "PRODUCT_NOT_FOUND")
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for JSON response.

        `error` is the display message; clients render it as-is.
        """
        error_dict = {
            "success": False,
            "error": self.message,
            "code": self.code,
            "timestamp": self.timestamp
        }

        if self.details:
            error_dict["details"] = self.details

        return error_dict


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    FastAPI exception handler for AppException.

    Converts AppException to consistent JSON error response.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework-level HTTP errors (404, 405) in the AppException envelope."""
    if exc.status_code == 405:
        app_exc = method_not_allowed()
    elif exc.status_code == 404:
        app_exc = AppException("Not found", "NOT_FOUND", 404)
    else:
        app_exc = AppException(str(exc.detail), "HTTP_ERROR", exc.status_code)

    return JSONResponse(
        status_code=app_exc.status_code,
        content=app_exc.to_dict(),
        headers=getattr(exc, "headers", None)
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422."""
    fields = [
        ".".join(str(part) for part in error.get("loc", ()))
        for error in exc.errors()
    ]
    app_exc = validation_error("Invalid request body", {"fields": fields})
    return JSONResponse(
        status_code=app_exc.status_code,
        content=app_exc.to_dict()
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: 500 with the exception message as detail."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    app_exc = internal_error(details={"reason": str(exc)})
    return JSONResponse(
        status_code=app_exc.status_code,
        content=app_exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Call this in main.py after creating the FastAPI instance.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def invalid_credentials() -> AppException:
    """Create invalid credentials exception."""
    return AppException("Invalid username or password", "INVALID_CREDENTIALS", 401)


def token_expired() -> AppException:
    """Create token expired exception."""
    return AppException("Token has expired", "TOKEN_EXPIRED", 401)


def token_invalid() -> AppException:
    """Create invalid token exception."""
    return AppException("Invalid or malformed token", "TOKEN_INVALID", 401)


def admin_required() -> AppException:
    """Create admin role required exception."""
    return AppException("Admin role required", "ADMIN_REQUIRED", 403)


def validation_error(
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> AppException:
    """Create validation exception for missing or malformed input."""
    return AppException(message, "VALIDATION_ERROR", 400, details)


def missing_fields(fields: list) -> AppException:
    """Create validation exception naming the absent required fields."""
    return validation_error(
        f"Required fields: {', '.join(fields)}",
        {"missing": fields}
    )


def product_id_required() -> AppException:
    """Create product ID required exception."""
    return validation_error("Product ID is required")


def product_not_found(product_id: Optional[str] = None) -> AppException:
    """Create product not found exception."""
    details = {"product_id": product_id} if product_id else {}
    return AppException("Product not found", "PRODUCT_NOT_FOUND", 404, details)


def method_not_allowed() -> AppException:
    """Create method not allowed exception."""
    return AppException("Method not allowed", "METHOD_NOT_ALLOWED", 405)


def storage_conflict(attempts: int) -> AppException:
    """Create exception for a mutation that kept losing revision races."""
    return AppException(
        "Catalog was modified concurrently, please retry",
        "STORAGE_CONFLICT",
        409,
        {"attempts": attempts}
    )


def internal_error(
    message: str = "Internal server error",
    details: Optional[Dict[str, Any]] = None
) -> AppException:
    """Create internal server error exception."""
    return AppException(message, "INTERNAL_ERROR", 500, details)
