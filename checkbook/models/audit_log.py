"""
AuditLog model for the permission and data-access audit trail.

Audit logs are WRITE-ONCE. Rows are never updated; the only deletion is
the bulk retention cleanup by created_at cutoff.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from checkbook.models.base import Base
from checkbook.models.enums import AuditActionType
from checkbook.models.mixins import utc_now


class AuditLog(Base):
    """
    AuditLog model.

    Attributes:
        id: UUID primary key
        account_id: Account the event concerns
        user_id: User who performed the action
        action_type: Kind of event (enum)
        details_json: JSON object with event details (NULL if not serializable)
        ip_address: Client IP address (NULL when no request context)
        user_agent: Client User-Agent (NULL when no request context)
        created_at: When the event occurred

    account_id and user_id carry no foreign keys so the trail outlives
    deleted accounts and users.

    Example:
        audit_log = AuditLog(
            account_id=account.id,
            user_id=owner.id,
            action_type=AuditActionType.PERMISSION_GRANTED,
            details_json='{"target_user_id": "...", "permission_type": "VIEW_ONLY"}',
            ip_address="203.0.113.7",
            user_agent="Mozilla/5.0",
        )
    """

    __tablename__ = "audit_logs"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
    )

    action_type: Mapped[AuditActionType] = mapped_column(
        Enum(AuditActionType, name="audit_action_type_enum", length=50),
        nullable=False,
        index=True,
    )

    details_json: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    ip_address: Mapped[Optional[str]] = mapped_column(
        String(45),  # IPv6 max length
        nullable=True,
    )

    user_agent: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_logs_account_date", "account_id", "created_at"),
        Index("ix_audit_logs_account_action", "account_id", "action_type"),
        Index("ix_audit_logs_user_date", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"AuditLog(id={self.id}, account_id={self.account_id}, "
            f"user_id={self.user_id}, action={self.action_type.value})"
        )
