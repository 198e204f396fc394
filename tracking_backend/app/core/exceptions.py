"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes for the package workflow and global
exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict, List, Optional

logger = logging.getLogger("tracking")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when the actor's role doesn't allow an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None, error_code: str = "ERR_NOT_FOUND_001"):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class PackageNotFoundError(ResourceNotFoundError):
    """Raised when a package id resolves neither in the packages store nor inside any order."""

    def __init__(self, package_id: Any):
        self.package_id = package_id
        super().__init__("Package", package_id, error_code="ERR_PKG_NOT_FOUND")


class OrderNotFoundError(ResourceNotFoundError):
    """Raised when an order id does not exist."""

    def __init__(self, order_id: Any):
        self.order_id = order_id
        super().__init__("Order", order_id, error_code="ERR_ORDER_NOT_FOUND")


class IllegalTransitionError(AppException):
    """
    Raised when the requested status is not reachable by the actor's role
    from the package's current status.

    User-correctable: the caller should re-render the legal options.
    """

    def __init__(self, current_status: Any, requested_status: Any, role: Any, allowed: Optional[List[Any]] = None):
        self.current_status = current_status
        self.requested_status = requested_status
        self.role = role
        self.allowed = list(allowed or [])
        super().__init__(
            message=(
                f"Role {_value(role)} cannot move a package from "
                f"{_value(current_status)} to {_value(requested_status)}"
            ),
            error_code="ERR_ILLEGAL_TRANSITION",
            status_code=status.HTTP_409_CONFLICT,
            details={
                "current_status": _value(current_status),
                "requested_status": _value(requested_status),
                "role": _value(role),
                "allowed": [_value(s) for s in self.allowed],
            }
        )


class MalformedOrderError(AppException):
    """Raised when aggregation is attempted on an order with no packages."""

    def __init__(self, message: str = "Order has no packages", order_id: Any = None):
        super().__init__(
            message=message,
            error_code="ERR_MALFORMED_ORDER",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"order_id": order_id}
        )


class RepositoryIOError(AppException):
    """Raised for any underlying read/write failure of the dual-store."""

    def __init__(self, operation: str, message: str = "Repository operation failed"):
        self.operation = operation
        super().__init__(
            message=f"{message} ({operation})",
            error_code="ERR_REPOSITORY_IO",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": operation}
        )


class ConcurrentModificationError(AppException):
    """Raised when a version check fails between load and save. Reload and retry."""

    def __init__(self, resource: str, resource_id: Any, expected_version: int):
        self.resource = resource
        self.resource_id = resource_id
        self.expected_version = expected_version
        super().__init__(
            message=f"{resource} {resource_id} was modified concurrently",
            error_code="ERR_CONCURRENT_MODIFICATION",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "id": resource_id, "expected_version": expected_version}
        )


class PartialUpdateError(AppException):
    """
    Raised when a multi-write update (package transaction or order edit)
    failed after at least one of its writes already landed. Carries which
    steps completed so the caller can retry the remainder or alert an
    operator.
    """

    def __init__(
        self,
        target_id: Any,
        completed_steps: List[str],
        failed_step: str,
        cause: Exception,
        resource: str = "package",
    ):
        self.target_id = target_id
        self.resource = resource
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.cause = cause
        super().__init__(
            message=f"Update of {resource} {target_id} stopped at '{failed_step}'",
            error_code="ERR_PARTIAL_UPDATE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={
                "resource": resource,
                "id": target_id,
                "completed_steps": self.completed_steps,
                "failed_step": failed_step,
                "cause": getattr(cause, "error_code", type(cause).__name__),
            }
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if exc.status_code >= 500:
        logger.error("Application error", extra={"error_code": exc.error_code, "details": exc.details})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ]
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s", type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
