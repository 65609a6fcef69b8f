"""
Account model.

An account belongs to exactly one owner. The owner implicitly holds
FULL_ACCESS; other users reach a shared account only through an
AccountPermission grant.
"""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Enum, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkbook.models.base import Base
from checkbook.models.enums import AccountType
from checkbook.models.mixins import AuditFieldsMixin, TimestampMixin

if TYPE_CHECKING:
    from checkbook.models.user import User


class Account(Base, TimestampMixin, AuditFieldsMixin):
    """
    Checkbook account.

    Attributes:
        id: UUID primary key
        name: Account name, unique per owner (case-insensitive, checked in service)
        description: Free-form notes
        account_type: Kind of account (CHECKING, SAVINGS, ...)
        bank_name: Institution holding the account
        account_number_masked: Masked account number for display (e.g. ****1234)
        is_shared: Whether non-owners may hold grants on this account
        current_balance: Current balance (Decimal 12,2)
        owner_id: Owning user (foreign key to users)
        created_at/updated_at: Timestamps
        created_by/updated_by: Users who created / last updated the account

    Relationships:
        owner: User who owns the account

    Sharing:
        is_shared flips to True the first time the owner grants a permission.
        Grants on a non-shared account are ignored by permission checks.

    Deletion:
        AccountService.delete_account removes grants and permission requests
        before the account, in a single transaction. Audit log rows keep
        their account_id so the history survives.
    """

    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    account_type: Mapped[AccountType] = mapped_column(
        Enum(AccountType, name="account_type_enum", length=20),
        nullable=False,
        default=AccountType.CHECKING,
    )

    bank_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    account_number_masked: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    is_shared: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    owner: Mapped["User"] = relationship(
        "User",
        foreign_keys=[owner_id],
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_accounts_owner_shared", "owner_id", "is_shared"),
    )

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        """Check whether the given user owns this account."""
        return self.owner_id == user_id

    def __repr__(self) -> str:
        return (
            f"Account(id={self.id}, name={self.name}, owner_id={self.owner_id}, "
            f"is_shared={self.is_shared})"
        )
