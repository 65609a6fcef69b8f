"""
Reusable mixins for database models.

- TimestampMixin: created_at and updated_at timestamps
- AuditFieldsMixin: created_by and updated_by tracking
"""

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column


def utc_now() -> datetime:
    """Current time in UTC, used as the default for every timestamp column."""
    return datetime.now(UTC)


class TimestampMixin:
    """
    Mixin to add timestamp columns to models.

    Adds:
    - created_at: Timestamp when record was created (auto-set)
    - updated_at: Timestamp when record was last updated (auto-updated)

    Both timestamps use UTC timezone.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )


class AuditFieldsMixin:
    """
    Mixin to track who created and updated records.

    Both fields are nullable to support system-generated records
    (the retention job, seed data).

    Setting audit fields:
        account = Account(
            name="Household",
            owner_id=current_user.id,
            created_by=current_user.id,
            updated_by=current_user.id,
        )
    """

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )

    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )
