"""
AccountPermission repository for database operations.

This module provides database operations for the AccountPermission model:
- Standard CRUD operations (inherited from BaseRepository)
- Grant lookups: a user's grant on an account
- Listing: every grant on an account, newest first
- Bulk removal when an account is deleted
"""

import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.account_permission import AccountPermission
from checkbook.repositories.base import BaseRepository


class AccountPermissionRepository(BaseRepository[AccountPermission]):
    """
    Repository for AccountPermission model database operations.

    Usage:
        permission_repo = AccountPermissionRepository(session)
        grant = await permission_repo.get_by_account_and_user(account.id, user.id)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AccountPermission repository.

        Args:
            session: Async database session
        """
        super().__init__(AccountPermission, session)

    async def get_by_account_and_user(
        self,
        account_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> AccountPermission | None:
        """
        Get a user's grant on an account.

        This is the primary lookup for permission checks.

        Args:
            account_id: ID of the account
            user_id: ID of the user

        Returns:
            AccountPermission instance, or None if the user holds no grant
        """
        query = select(AccountPermission).where(
            AccountPermission.account_id == account_id,
            AccountPermission.user_id == user_id,
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def exists_by_account_and_user(
        self,
        account_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> bool:
        query = select(AccountPermission.id).where(
            AccountPermission.account_id == account_id,
            AccountPermission.user_id == user_id,
        )

        result = await self.session.execute(query)
        return result.scalar_one_or_none() is not None

    async def get_by_account(self, account_id: uuid.UUID) -> list[AccountPermission]:
        """
        Get all grants on an account, newest first.

        Args:
            account_id: ID of the account

        Returns:
            List of AccountPermission instances
        """
        query = (
            select(AccountPermission)
            .where(AccountPermission.account_id == account_id)
            .order_by(AccountPermission.created_at.desc(), AccountPermission.id)
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_by_account(self, account_id: uuid.UUID) -> int:
        """
        Delete every grant on an account.

        Args:
            account_id: ID of the account

        Returns:
            Number of rows deleted
        """
        statement = (
            delete(AccountPermission)
            .where(AccountPermission.account_id == account_id)
            .execution_options(synchronize_session=False)
        )

        result = await self.session.execute(statement)
        return result.rowcount
