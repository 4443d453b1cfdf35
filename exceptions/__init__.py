"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DatabaseError,

    # Import pipeline
    UnsupportedFormatError,
    MalformedInputError,
    UnresolvableColumnsError,
    RowApplyError,

    # Import sessions
    ImportSessionNotFoundError,
    StagedRowNotFoundError,
    SessionBusyError,

    # Stock
    ProductNotFoundError,
    InvalidApiKeyError,
    ApiKeyNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DatabaseError",

    # Import pipeline
    "UnsupportedFormatError",
    "MalformedInputError",
    "UnresolvableColumnsError",
    "RowApplyError",

    # Import sessions
    "ImportSessionNotFoundError",
    "StagedRowNotFoundError",
    "SessionBusyError",

    # Stock
    "ProductNotFoundError",
    "InvalidApiKeyError",
    "ApiKeyNotFoundError",
]
