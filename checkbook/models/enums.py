"""
Enums for accounts, permissions and the audit trail.

This module defines:
- PermissionType: Access levels a non-owner can hold on a shared account
- AccountType: Kinds of checkbook accounts
- RequestStatus: Lifecycle states of a permission request
- AuditActionType: Kinds of events recorded in the audit log

Every enum is a str subclass whose values equal the member names, so the
database column value, the API value and the Python name are the same string.
"""

import enum
from typing import Optional


class PermissionType(str, enum.Enum):
    """
    Access levels for shared accounts.

    Hierarchy (highest to lowest):
        FULL_ACCESS > TRANSACTION_ONLY > VIEW_ONLY

    Attributes:
        VIEW_ONLY: Can view account details and transaction history
        TRANSACTION_ONLY: Can view account details and add transactions
        FULL_ACCESS: Full access including account modification and balance updates

    Permission Matrix:
        | Operation              | View | Transaction | Full |
        |------------------------|------|-------------|------|
        | View account details   |  ✓   |      ✓      |  ✓   |
        | Add transactions       |  ✗   |      ✓      |  ✓   |
        | Modify account/balance |  ✗   |      ✗      |  ✓   |

    Managing permissions is reserved for the account owner and is never
    conferred by a stored grant, not even FULL_ACCESS.

    Ordering always goes through the explicit PERMISSION_LEVELS table, never
    through declaration order or string comparison.
    """

    VIEW_ONLY = "VIEW_ONLY"
    TRANSACTION_ONLY = "TRANSACTION_ONLY"
    FULL_ACCESS = "FULL_ACCESS"

    @property
    def level(self) -> int:
        """Numeric rank of this permission (1 = lowest)."""
        return PERMISSION_LEVELS[self]

    @property
    def display_name(self) -> str:
        return PERMISSION_DISPLAY_NAMES[self]

    @property
    def description(self) -> str:
        return PERMISSION_DESCRIPTIONS[self]

    def includes(self, other: "PermissionType") -> bool:
        """
        Check if this permission covers the capabilities of another.

        Args:
            other: Permission to compare against

        Returns:
            True if this permission's level is greater than or equal to other's
        """
        return self.level >= other.level

    @property
    def can_view(self) -> bool:
        return self.includes(PermissionType.VIEW_ONLY)

    @property
    def can_manage_transactions(self) -> bool:
        return self.includes(PermissionType.TRANSACTION_ONLY)

    @property
    def can_modify_account(self) -> bool:
        return self.includes(PermissionType.FULL_ACCESS)

    @property
    def next_level(self) -> Optional["PermissionType"]:
        """The permission one step above this one, or None at the top."""
        for permission in PermissionType:
            if permission.level == self.level + 1:
                return permission
        return None

    @property
    def previous_level(self) -> Optional["PermissionType"]:
        """The permission one step below this one, or None at the bottom."""
        for permission in PermissionType:
            if permission.level == self.level - 1:
                return permission
        return None


PERMISSION_LEVELS: dict[PermissionType, int] = {
    PermissionType.VIEW_ONLY: 1,
    PermissionType.TRANSACTION_ONLY: 2,
    PermissionType.FULL_ACCESS: 3,
}

PERMISSION_DISPLAY_NAMES: dict[PermissionType, str] = {
    PermissionType.VIEW_ONLY: "View Only",
    PermissionType.TRANSACTION_ONLY: "Transaction Only",
    PermissionType.FULL_ACCESS: "Full Access",
}

PERMISSION_DESCRIPTIONS: dict[PermissionType, str] = {
    PermissionType.VIEW_ONLY: "Can view account details and transaction history",
    PermissionType.TRANSACTION_ONLY: "Can view account details and add transactions",
    PermissionType.FULL_ACCESS: (
        "Full access including account modification and balance updates"
    ),
}


class AccountType(str, enum.Enum):
    """Kinds of accounts a user can keep in the checkbook."""

    CHECKING = "CHECKING"
    SAVINGS = "SAVINGS"
    CREDIT_CARD = "CREDIT_CARD"
    INVESTMENT = "INVESTMENT"
    CASH = "CASH"
    OTHER = "OTHER"


class RequestStatus(str, enum.Enum):
    """
    Lifecycle states of a permission request.

    PENDING is the only non-terminal state:
        PENDING -> APPROVED | DENIED | CANCELLED
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not RequestStatus.PENDING


class AuditActionType(str, enum.Enum):
    """
    Enumeration of audit log action types.

    Permission events are written by the account and permission request
    services; account and transaction events by the services that own
    those resources.
    """

    # Permission events
    PERMISSION_GRANTED = "PERMISSION_GRANTED"
    PERMISSION_MODIFIED = "PERMISSION_MODIFIED"
    PERMISSION_REVOKED = "PERMISSION_REVOKED"
    PERMISSION_REQUESTED = "PERMISSION_REQUESTED"
    PERMISSION_REQUEST_APPROVED = "PERMISSION_REQUEST_APPROVED"
    PERMISSION_REQUEST_DENIED = "PERMISSION_REQUEST_DENIED"

    # Account events
    ACCOUNT_VIEWED = "ACCOUNT_VIEWED"
    ACCOUNT_MODIFIED = "ACCOUNT_MODIFIED"

    # Transaction events
    TRANSACTION_ADDED = "TRANSACTION_ADDED"
    TRANSACTION_MODIFIED = "TRANSACTION_MODIFIED"
    TRANSACTION_DELETED = "TRANSACTION_DELETED"
