"""
Repository layer for database operations.

This package provides the repository pattern for data access.
Repositories encapsulate all database queries and provide a clean API
for the service layer.
"""

from checkbook.repositories.account_permission_repository import (
    AccountPermissionRepository,
)
from checkbook.repositories.account_repository import AccountRepository
from checkbook.repositories.audit_repository import AuditLogRepository
from checkbook.repositories.base import BaseRepository
from checkbook.repositories.permission_request_repository import (
    PermissionRequestRepository,
)
from checkbook.repositories.user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "AccountRepository",
    "AccountPermissionRepository",
    "PermissionRequestRepository",
    "AuditLogRepository",
]
