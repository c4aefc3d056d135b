import logging
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

logger = logging.getLogger(__name__)


class CreditError(Exception):
    """Base exception for credit operations surfaced to callers."""
    code = "CREDIT_ERROR"
    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: Optional[int] = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status
        self.details = details or {}


class InvalidArgumentError(CreditError):
    """Empty user id, non-positive amount or unknown reason."""
    code = "INVALID_ARGUMENT"
    default_status = status.HTTP_400_BAD_REQUEST


class InsufficientCreditsError(CreditError):
    """Balance is lower than the requested deduction."""
    code = "INSUFFICIENT_CREDITS"
    default_status = status.HTTP_402_PAYMENT_REQUIRED


class NotFoundError(CreditError):
    code = "NOT_FOUND"
    default_status = status.HTTP_404_NOT_FOUND


class CreditConflictError(CreditError):
    """Balance kept changing underneath a write."""
    code = "CREDIT_CONFLICT"
    default_status = status.HTTP_409_CONFLICT


class StoreError(Exception):
    """
    Backing-store failure.

    Never raised to callers: store adapters return it inside a StoreResult
    and the ledger decides what to do with it.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


async def credit_exception_handler(request: Request, exc: CreditError):
    """Handle typed CreditError failures."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "code": exc.code,
            "error": exc.details
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "error": {
                "details": errors
            }
        }
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "error": {
                "type": type(exc).__name__,
                "detail": str(exc) if str(exc) else "An unexpected error occurred"
            }
        }
    )
