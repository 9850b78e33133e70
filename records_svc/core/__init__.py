"""
Core module for configuration, security primitives and shared vocabulary.

This module provides:
- Settings: Application configuration via pydantic-settings
- Permissions: Closed role and permission enumerations
- Exceptions: Domain exception classes with HTTP status codes
- Datetime utilities: UTC-first datetime handling

Dependency injection lives in core.dependencies and bearer authentication in
core.auth; import those modules directly.
"""
from core.config import settings, Settings

from core.permissions import (
    Permission,
    RoleName,
    PrincipalKind,
    TokenKind,
    Operation,
    ResourceType,
    DenyReason,
    CascadePolicy,
)

from core.exceptions import (
    MedicalRecordsError,
    NotFoundError,
    UnauthenticatedError,
    ForbiddenError,
    ConflictError,
    DataValidationError,
    AuditWriteError,
    setup_exception_handlers,
)

from core.datetime_utils import (
    utc_now,
    to_utc,
    parse_datetime,
    format_iso,
    to_db_string,
)

__all__ = [
    "settings",
    "Settings",
    "Permission",
    "RoleName",
    "PrincipalKind",
    "TokenKind",
    "Operation",
    "ResourceType",
    "DenyReason",
    "CascadePolicy",
    "MedicalRecordsError",
    "NotFoundError",
    "UnauthenticatedError",
    "ForbiddenError",
    "ConflictError",
    "DataValidationError",
    "AuditWriteError",
    "setup_exception_handlers",
    "utc_now",
    "to_utc",
    "parse_datetime",
    "format_iso",
    "to_db_string",
]
