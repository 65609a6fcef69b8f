"""
PermissionRequest repository for database operations.

This module provides database operations for the PermissionRequest model:
- Standard CRUD operations (inherited from BaseRepository)
- Pending-request checks for the one-pending-per-requester rule
- Listing by requester, by account and by account owner
- Filtered queries with counts for pagination
- Retention cleanup of processed requests
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.account import Account
from checkbook.models.enums import RequestStatus
from checkbook.models.permission_request import PermissionRequest
from checkbook.repositories.base import BaseRepository


class PermissionRequestRepository(BaseRepository[PermissionRequest]):
    """
    Repository for PermissionRequest model database operations.

    All listings are ordered newest first.

    Usage:
        request_repo = PermissionRequestRepository(session)
        pending = await request_repo.get_pending_by_account_owner(owner.id)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize PermissionRequest repository.

        Args:
            session: Async database session
        """
        super().__init__(PermissionRequest, session)

    async def exists_pending(
        self,
        account_id: uuid.UUID,
        requester_id: uuid.UUID,
    ) -> bool:
        """
        Check whether the requester already has a pending request on the account.

        Args:
            account_id: ID of the account
            requester_id: ID of the requesting user

        Returns:
            True if a PENDING request exists
        """
        query = select(PermissionRequest.id).where(
            PermissionRequest.account_id == account_id,
            PermissionRequest.requester_id == requester_id,
            PermissionRequest.status == RequestStatus.PENDING,
        )

        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def get_by_requester(self, requester_id: uuid.UUID) -> list[PermissionRequest]:
        query = (
            select(PermissionRequest)
            .where(PermissionRequest.requester_id == requester_id)
            .order_by(PermissionRequest.created_at.desc())
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_account(self, account_id: uuid.UUID) -> list[PermissionRequest]:
        query = (
            select(PermissionRequest)
            .where(PermissionRequest.account_id == account_id)
            .order_by(PermissionRequest.created_at.desc())
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_account_owner(
        self,
        owner_id: uuid.UUID,
        status: RequestStatus | None = None,
    ) -> list[PermissionRequest]:
        """
        Get requests filed against any account owned by a user.

        Args:
            owner_id: ID of the account owner
            status: Optional status filter (None = all statuses)

        Returns:
            List of PermissionRequest instances
        """
        query = (
            select(PermissionRequest)
            .join(Account, Account.id == PermissionRequest.account_id)
            .where(Account.owner_id == owner_id)
        )

        if status is not None:
            query = query.where(PermissionRequest.status == status)

        query = query.order_by(PermissionRequest.created_at.desc())

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_account_owner(
        self,
        owner_id: uuid.UUID,
        status: RequestStatus | None = None,
    ) -> int:
        query = (
            select(func.count())
            .select_from(PermissionRequest)
            .join(Account, Account.id == PermissionRequest.account_id)
            .where(Account.owner_id == owner_id)
        )

        if status is not None:
            query = query.where(PermissionRequest.status == status)

        result = await self.session.execute(query)
        return result.scalar_one()

    def _apply_filters(
        self,
        query: Select[Any],
        account_id: uuid.UUID,
        status: RequestStatus | None = None,
        requester_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Select[Any]:
        query = query.where(PermissionRequest.account_id == account_id)

        if status is not None:
            query = query.where(PermissionRequest.status == status)

        if requester_id is not None:
            query = query.where(PermissionRequest.requester_id == requester_id)

        if start_date is not None:
            query = query.where(PermissionRequest.created_at >= start_date)

        if end_date is not None:
            query = query.where(PermissionRequest.created_at <= end_date)

        return query

    async def get_with_filters(
        self,
        account_id: uuid.UUID,
        status: RequestStatus | None = None,
        requester_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[PermissionRequest]:
        """
        Get an account's requests with optional filters.

        Each filter is optional; an absent filter matches everything.

        Args:
            account_id: ID of the account
            status: Filter by status
            requester_id: Filter by requesting user
            start_date: Only requests created at or after this time
            end_date: Only requests created at or before this time
            offset: Number of records to skip (pagination)
            limit: Maximum number of records to return

        Returns:
            List of PermissionRequest instances
        """
        query = self._apply_filters(
            select(PermissionRequest),
            account_id,
            status=status,
            requester_id=requester_id,
            start_date=start_date,
            end_date=end_date,
        )
        query = query.order_by(PermissionRequest.created_at.desc())
        query = query.offset(offset).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_with_filters(
        self,
        account_id: uuid.UUID,
        status: RequestStatus | None = None,
        requester_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        """Count an account's requests matching the same filters as get_with_filters."""
        query = self._apply_filters(
            select(func.count()).select_from(PermissionRequest),
            account_id,
            status=status,
            requester_id=requester_id,
            start_date=start_date,
            end_date=end_date,
        )

        result = await self.session.execute(query)
        return result.scalar_one()

    async def delete_processed_before(self, cutoff: datetime) -> int:
        """
        Delete non-pending requests created before a cutoff.

        Pending requests are never removed, however old.

        Args:
            cutoff: Requests created strictly before this time are eligible

        Returns:
            Number of rows deleted
        """
        statement = (
            delete(PermissionRequest)
            .where(
                PermissionRequest.status != RequestStatus.PENDING,
                PermissionRequest.created_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(statement)
        return result.rowcount

    async def delete_by_account(self, account_id: uuid.UUID) -> int:
        """Delete every request filed against an account. Returns rows deleted."""
        statement = (
            delete(PermissionRequest)
            .where(PermissionRequest.account_id == account_id)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(statement)
        return result.rowcount
