"""
AccountPermission model.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkbook.models.base import Base
from checkbook.models.enums import PermissionType
from checkbook.models.mixins import TimestampMixin

if TYPE_CHECKING:
    from checkbook.models.user import User


class AccountPermission(Base, TimestampMixin):
    """
    Grant of one permission type to one non-owner user on one account.

    Attributes:
        id: UUID primary key
        account_id: Account being shared (foreign key to accounts)
        user_id: User being granted access (foreign key to users)
        permission_type: Level of access (VIEW_ONLY, TRANSACTION_ONLY, FULL_ACCESS)
        created_at: When the grant was created
        updated_at: When the grant was last changed

    Relationships:
        user: User holding the grant

    Uniqueness:
        At most one row per (account_id, user_id). Granting again updates
        permission_type on the existing row.

    Owners never have a row here; ownership is read from accounts.owner_id.
    """

    __tablename__ = "account_permissions"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    permission_type: Mapped[PermissionType] = mapped_column(
        Enum(PermissionType, name="permission_type_enum", length=20),
        nullable=False,
    )

    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("account_id", "user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"AccountPermission(id={self.id}, account_id={self.account_id}, "
            f"user_id={self.user_id}, permission={self.permission_type.value})"
        )
