"""
AuditLog repository for audit trail operations.

This module provides database operations for the AuditLog model.
Note: AuditLogs are IMMUTABLE - this repository supports creation,
reading and the bulk retention delete, never updates.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.audit_log import AuditLog
from checkbook.models.enums import AuditActionType


class AuditLogRepository:
    """
    Repository for AuditLog model operations.

    IMPORTANT: This repository does NOT extend BaseRepository because
    audit logs are immutable. Single rows are never updated or deleted.

    Operations:
    - Create audit log entries
    - Query audit logs by account, user, action, date range
    - Count audit logs for pagination
    - Delete logs older than the retention cutoff
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AuditLogRepository.

        Args:
            session: Async database session
        """
        self.session = session

    async def add(self, instance: AuditLog) -> AuditLog:
        """
        Persist a new audit log entry.

        This is the ONLY way to add audit logs. They cannot be modified after creation.

        Args:
            instance: AuditLog instance to persist

        Returns:
            Persisted AuditLog instance
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    def _apply_filters(
        self,
        query: Select[Any],
        account_id: uuid.UUID | None = None,
        action_type: AuditActionType | None = None,
        user_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Select[Any]:
        if account_id is not None:
            query = query.where(AuditLog.account_id == account_id)

        if action_type is not None:
            query = query.where(AuditLog.action_type == action_type)

        if user_id is not None:
            query = query.where(AuditLog.user_id == user_id)

        if start_date is not None:
            query = query.where(AuditLog.created_at >= start_date)

        if end_date is not None:
            query = query.where(AuditLog.created_at <= end_date)

        return query

    async def get_logs(
        self,
        account_id: uuid.UUID | None = None,
        action_type: AuditActionType | None = None,
        user_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[AuditLog]:
        """
        Get audit logs with filtering.

        Each filter is optional; an absent filter matches everything.

        Args:
            account_id: Filter by account
            action_type: Filter by action type
            user_id: Filter by acting user
            start_date: Filter logs at or after this date
            end_date: Filter logs at or before this date
            offset: Number of records to skip (pagination)
            limit: Maximum number of records to return

        Returns:
            List of AuditLog instances, newest first

        Example:
            # Everything Bob did on the household account last week
            logs = await audit_repo.get_logs(
                account_id=account.id,
                user_id=bob.id,
                start_date=datetime.now(UTC) - timedelta(days=7),
            )
        """
        query = self._apply_filters(
            select(AuditLog),
            account_id=account_id,
            action_type=action_type,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
        )

        # Order by created_at descending (newest first)
        query = query.order_by(AuditLog.created_at.desc())

        # Apply pagination
        query = query.offset(offset).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_logs(
        self,
        account_id: uuid.UUID | None = None,
        action_type: AuditActionType | None = None,
        user_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        """
        Count audit logs with filters.

        Used for pagination (total count).
        """
        query = self._apply_filters(
            select(func.count()).select_from(AuditLog),
            account_id=account_id,
            action_type=action_type,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
        )

        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_recent(self, account_id: uuid.UUID, limit: int = 10) -> list[AuditLog]:
        """Get the newest audit logs for an account."""
        query = (
            select(AuditLog)
            .where(AuditLog.account_id == account_id)
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_before(self, cutoff: datetime) -> int:
        """
        Delete audit logs created before a cutoff (retention policy).

        Args:
            cutoff: Logs created strictly before this time are removed

        Returns:
            Number of rows deleted
        """
        statement = (
            delete(AuditLog)
            .where(AuditLog.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(statement)
        return result.rowcount
