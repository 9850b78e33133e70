"""
Shared exception classes and error handling utilities for the Medical Records API.

This module provides:
- Custom exception hierarchy mirroring the error taxonomy
  (NotFound, Unauthenticated, Forbidden, Conflict, ValidationError, InternalError)
- Consistent error response formatting using the API envelope
- Exception handlers for FastAPI integration

Usage:
    from core.exceptions import PatientNotFoundError, ForbiddenError

    # In service layer - raise domain exceptions
    raise PatientNotFoundError(patient_id="PAT123456")

    # In FastAPI - register handlers via setup_exception_handlers(app)
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.permissions import DenyReason

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================

class MedicalRecordsError(Exception):
    """
    Base exception for all Medical Records domain errors.

    Provides consistent error structure with status code and detail message.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ):
        """
        Initialize the exception.

        Args:
            detail: Human-readable error message. Uses class default if not provided.
            status_code: HTTP status code. Uses class default if not provided.
            **kwargs: Additional context, logged with the error.
        """
        self.detail = detail or self.__class__.detail
        self.status_code = status_code or self.__class__.status_code
        self.context = kwargs
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to the error envelope."""
        return {"success": False, "message": self.detail}


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(MedicalRecordsError):
    """Raised when a requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    entity = "Resource"

    def __init__(self, detail: Optional[str] = None, **kwargs: Any):
        super().__init__(detail=detail or f"{self.entity} not found", **kwargs)


class InstitutionNotFoundError(NotFoundError):
    entity = "Institution"


class UserNotFoundError(NotFoundError):
    entity = "User"


class DoctorNotFoundError(NotFoundError):
    entity = "Doctor"


class PatientNotFoundError(NotFoundError):
    entity = "Patient"

    def __init__(self, patient_id: Optional[str] = None, **kwargs: Any):
        detail = f"Patient '{patient_id}' not found" if patient_id else None
        super().__init__(detail=detail, patient_id=patient_id, **kwargs)


class RecordNotFoundError(NotFoundError):
    entity = "Medical record"


class RoleNotFoundError(NotFoundError):
    entity = "Role"


# =============================================================================
# AUTHENTICATION / AUTHORIZATION
# =============================================================================

class UnauthenticatedError(MedicalRecordsError):
    """Raised when a request carries no usable credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Authentication required"

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["reason"] = DenyReason.UNAUTHENTICATED.value
        return result


class InvalidTokenError(UnauthenticatedError):
    """Raised when a bearer token is malformed, forged, or expired."""

    detail = "Invalid or expired token"


class InvalidCredentialsError(UnauthenticatedError):
    """Raised when a presented password does not match."""

    detail = "Invalid password"


class ForbiddenError(MedicalRecordsError):
    """Raised when the Authorization Engine denies an action."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "Insufficient permissions"

    def __init__(
        self,
        detail: Optional[str] = None,
        reason: DenyReason = DenyReason.INSUFFICIENT_PERMISSION,
        **kwargs: Any
    ):
        self.reason = reason
        super().__init__(detail=detail, reason=reason.value, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["reason"] = self.reason.value
        return result


# =============================================================================
# CONFLICT / VALIDATION
# =============================================================================

class ConflictError(MedicalRecordsError):
    """Raised when a write would violate a uniqueness or reference rule."""

    status_code = status.HTTP_409_CONFLICT
    detail = "Conflicting resource state"


class DuplicateError(ConflictError):
    """Raised when a unique field (email, license number, identifier) is taken."""

    detail = "Resource already exists"

    def __init__(self, field: Optional[str] = None, value: Optional[str] = None, **kwargs: Any):
        detail = f"{field} '{value}' is already in use" if field else None
        self.field = field
        super().__init__(detail=detail, field=field, **kwargs)


class ReferentialIntegrityError(ConflictError):
    """Raised when deleting an entity that other records still reference."""

    detail = "Resource is still referenced by other records"


class DataValidationError(MedicalRecordsError):
    """Raised when data breaks a domain rule that schema validation cannot see."""

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid data"


# =============================================================================
# INTERNAL
# =============================================================================

class DatabaseError(MedicalRecordsError):
    """Raised when a database operation fails."""

    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        detail = f"Database error during {operation}" if operation else None
        super().__init__(detail=detail, operation=operation, **kwargs)


class AuditWriteError(MedicalRecordsError):
    """Raised when an audit entry could not be persisted; the guarded action fails closed."""

    detail = "Audit trail unavailable; access refused"


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def medical_records_exception_handler(
    request: Request,
    exc: MedicalRecordsError
) -> JSONResponse:
    """Log the error and return the error envelope."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "context": exc.context
        }
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


async def request_validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Return schema validation failures inside the error envelope."""
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "error_count": len(exc.errors())}
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Logs the full exception for debugging but returns a safe error message.
    """
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "An internal server error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Example:
        app = FastAPI()
        setup_exception_handlers(app)
    """
    app.add_exception_handler(MedicalRecordsError, medical_records_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
