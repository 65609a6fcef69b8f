"""
User model.

Users are the directory the authorization core resolves grant targets
against. Authentication (passwords, tokens) lives outside this package.
"""

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from checkbook.models.base import Base
from checkbook.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """
    User model.

    Attributes:
        id: UUID primary key
        username: Unique username
        email: Unique email address
        first_name: Given name
        last_name: Family name
        created_at: When the user was created
        updated_at: When the user was last updated
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    first_name: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    last_name: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    @property
    def full_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else self.username

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username})"
