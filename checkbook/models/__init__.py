"""
Database models for the Checkbook authorization core.

This module exports all SQLAlchemy models and the declarative base.
Import models from this module to ensure proper initialization.
"""

from checkbook.models.account import Account
from checkbook.models.account_permission import AccountPermission
from checkbook.models.audit_log import AuditLog
from checkbook.models.base import Base
from checkbook.models.enums import (
    PERMISSION_LEVELS,
    AccountType,
    AuditActionType,
    PermissionType,
    RequestStatus,
)
from checkbook.models.mixins import AuditFieldsMixin, TimestampMixin
from checkbook.models.permission_request import PermissionRequest
from checkbook.models.user import User

__all__ = [
    # Base
    "Base",
    # Mixins
    "TimestampMixin",
    "AuditFieldsMixin",
    # User models
    "User",
    # Account models
    "Account",
    "AccountType",
    "AccountPermission",
    "PermissionType",
    "PERMISSION_LEVELS",
    # Permission request models
    "PermissionRequest",
    "RequestStatus",
    # Audit models
    "AuditLog",
    "AuditActionType",
]
