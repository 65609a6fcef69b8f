"""
Pydantic schemas for service inputs and serialized outputs.
"""

from checkbook.schemas.account import AccountCreate, AccountResponse, AccountUpdate
from checkbook.schemas.account_permission import (
    AccountPermissionCreate,
    AccountPermissionResponse,
)
from checkbook.schemas.audit import AuditLogFilterParams, AuditLogResponse
from checkbook.schemas.common import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    UserSummary,
)
from checkbook.schemas.permission_request import (
    PermissionRequestCreate,
    PermissionRequestFilterParams,
    PermissionRequestResponse,
    PermissionRequestReview,
)

__all__ = [
    # Common
    "PaginationParams",
    "PaginationMeta",
    "PaginatedResponse",
    "UserSummary",
    # Accounts
    "AccountCreate",
    "AccountUpdate",
    "AccountResponse",
    # Permissions
    "AccountPermissionCreate",
    "AccountPermissionResponse",
    # Permission requests
    "PermissionRequestCreate",
    "PermissionRequestReview",
    "PermissionRequestFilterParams",
    "PermissionRequestResponse",
    # Audit
    "AuditLogResponse",
    "AuditLogFilterParams",
]
