"""
Custom exception classes for the application.

Fatal import errors (format, input, columns) abort the pipeline before any
write. RowApplyError is raised per row inside the bulk apply fold and never
leaves it.
"""

from typing import Optional, Any, Sequence
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        code: Error code (e.g., "UNSUPPORTED_FORMAT")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper().replace(' ', '_')}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with current state (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# IMPORT PIPELINE ERRORS
# ===================

class UnsupportedFormatError(ValidationError):
    """Uploaded file extension is not a supported stock report format."""

    def __init__(self, filename: str, supported: Sequence[str]):
        super().__init__(
            code="UNSUPPORTED_FORMAT",
            message=f"Unsupported file format: {filename}",
            details={"filename": filename, "supported": list(supported)}
        )


class MalformedInputError(ValidationError):
    """File content could not be decoded into a header and data rows."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="MALFORMED_INPUT",
            message=message,
            details=details
        )


class UnresolvableColumnsError(ValidationError):
    """Required column roles could not be found in the header row."""

    def __init__(self, missing_roles: Sequence[str], headers: Sequence[str]):
        missing = list(missing_roles)
        super().__init__(
            code="UNRESOLVABLE_COLUMNS",
            message=f"Could not find a column for: {', '.join(missing)}",
            details={"missing_roles": missing, "headers": list(headers)}
        )
        self.missing_roles = missing


class RowApplyError(AppError):
    """A single staged row failed to apply. Counted, never propagated."""

    def __init__(self, row_id: str, product_name: str, message: str):
        super().__init__(
            code="ROW_APPLY_FAILED",
            message=message,
            status_code=500,
            details={"row_id": row_id, "product_name": product_name}
        )
        self.row_id = row_id
        self.product_name = product_name


# ===================
# IMPORT SESSION ERRORS
# ===================

class ImportSessionNotFoundError(NotFoundError):
    """No active import session for the owner."""

    def __init__(self, owner_id: str):
        super().__init__(
            resource="Import session",
            identifier=owner_id,
            code="IMPORT_SESSION_NOT_FOUND"
        )


class StagedRowNotFoundError(NotFoundError):
    """Row id is not part of the current import session."""

    def __init__(self, row_id: str):
        super().__init__(
            resource="Staged row",
            identifier=row_id,
            code="STAGED_ROW_NOT_FOUND"
        )


class SessionBusyError(ConflictError):
    """A bulk apply is already running for this owner."""

    def __init__(self, owner_id: str):
        super().__init__(
            code="IMPORT_SESSION_BUSY",
            message="A stock import is already being applied for this catalog",
            details={"owner_id": owner_id}
        )


# ===================
# STOCK ERRORS
# ===================

class ProductNotFoundError(NotFoundError):
    """Product not found in the owner's catalog."""

    def __init__(self, product_id: str):
        super().__init__(
            resource="Product",
            identifier=product_id,
            code="PRODUCT_NOT_FOUND"
        )


class InvalidApiKeyError(AppError):
    """Stock sync API key missing, malformed, unknown or revoked (401)."""

    def __init__(self, message: str = "Invalid or inactive API key"):
        super().__init__(
            code="INVALID_API_KEY",
            message=message,
            status_code=401
        )


class ApiKeyNotFoundError(NotFoundError):
    """API key not found among the owner's keys."""

    def __init__(self, key_id: str):
        super().__init__(
            resource="API key",
            identifier=key_id,
            code="API_KEY_NOT_FOUND"
        )
