"""
PermissionRequest model.

A user's request for a higher permission level on a shared account,
reviewed by the account owner.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from checkbook.models.base import Base
from checkbook.models.enums import PermissionType, RequestStatus
from checkbook.models.mixins import utc_now

if TYPE_CHECKING:
    from checkbook.models.account import Account
    from checkbook.models.user import User


class PermissionRequest(Base):
    """
    Permission request.

    Attributes:
        id: UUID primary key
        account_id: Account the requester wants more access to
        requester_id: User asking for access
        requested_permission: Permission level asked for
        current_permission: Requester's level when the request was filed (NULL if none)
        request_message: Optional note from the requester
        status: PENDING, APPROVED, DENIED or CANCELLED
        reviewed_by: Owner who approved or denied (NULL while pending or cancelled)
        review_message: Optional note from the reviewer
        created_at: When the request was filed
        reviewed_at: When the request left PENDING

    State machine:
        PENDING -> APPROVED | DENIED  (account owner)
        PENDING -> CANCELLED          (requester)
        Terminal states never change again.

    Uniqueness:
        At most one PENDING request per (account_id, requester_id), enforced
        by a partial unique index.
    """

    __tablename__ = "permission_requests"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    requester_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    requested_permission: Mapped[PermissionType] = mapped_column(
        Enum(PermissionType, name="permission_type_enum", length=20),
        nullable=False,
    )

    current_permission: Mapped[Optional[PermissionType]] = mapped_column(
        Enum(PermissionType, name="permission_type_enum", length=20),
        nullable=True,
    )

    request_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus, name="request_status_enum", length=20),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )

    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    review_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )

    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    account: Mapped["Account"] = relationship(
        "Account",
        foreign_keys=[account_id],
        lazy="selectin",
    )

    requester: Mapped["User"] = relationship(
        "User",
        foreign_keys=[requester_id],
        lazy="selectin",
    )

    reviewer: Mapped[Optional["User"]] = relationship(
        "User",
        foreign_keys=[reviewed_by],
        lazy="selectin",
    )

    __table_args__ = (
        Index(
            "uq_permission_requests_pending",
            "account_id",
            "requester_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("ix_permission_requests_account_status", "account_id", "status"),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def approve(self, reviewer_id: uuid.UUID, review_message: Optional[str] = None) -> None:
        """Move a pending request to APPROVED."""
        self.status = RequestStatus.APPROVED
        self.reviewed_by = reviewer_id
        self.review_message = review_message
        self.reviewed_at = utc_now()

    def deny(self, reviewer_id: uuid.UUID, review_message: Optional[str] = None) -> None:
        """Move a pending request to DENIED."""
        self.status = RequestStatus.DENIED
        self.reviewed_by = reviewer_id
        self.review_message = review_message
        self.reviewed_at = utc_now()

    def cancel(self) -> None:
        """Move a pending request to CANCELLED. No reviewer is recorded."""
        self.status = RequestStatus.CANCELLED
        self.reviewed_at = utc_now()

    def __repr__(self) -> str:
        return (
            f"PermissionRequest(id={self.id}, account_id={self.account_id}, "
            f"requester_id={self.requester_id}, "
            f"requested={self.requested_permission.value}, status={self.status.value})"
        )
