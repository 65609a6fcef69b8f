"""
Service layer for business logic.

Services own the unit of work: they validate, call repositories, write
audit entries and commit.
"""

from checkbook.services.account_service import AccountService
from checkbook.services.audit_service import AuditService
from checkbook.services.permission_request_service import PermissionRequestService
from checkbook.services.permission_validation_service import (
    PermissionValidationService,
)
from checkbook.services.retention_service import RetentionService

__all__ = [
    "AccountService",
    "AuditService",
    "PermissionRequestService",
    "PermissionValidationService",
    "RetentionService",
]
