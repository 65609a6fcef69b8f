"""
Account repository for database operations.

This module provides database operations for the Account model, including:
- Standard CRUD operations (inherited from BaseRepository)
- Ownership and accessibility queries
- Name uniqueness checks (case-insensitive, per owner)
"""

import uuid

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.account import Account
from checkbook.models.account_permission import AccountPermission
from checkbook.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """
    Repository for Account model database operations.

    Usage:
        account_repo = AccountRepository(session)
        accounts = await account_repo.get_accessible_by_user(user.id)
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize Account repository.

        Args:
            session: Async database session
        """
        super().__init__(Account, session)

    async def get_accessible_by_user(self, user_id: uuid.UUID) -> list[Account]:
        """
        Get every account a user can reach.

        That is the accounts the user owns plus shared accounts where the
        user holds a grant. Grants on accounts that are not shared do not
        count, matching PermissionValidationService.

        Args:
            user_id: ID of the user

        Returns:
            List of Account instances, newest first
        """
        has_grant = exists().where(
            AccountPermission.account_id == Account.id,
            AccountPermission.user_id == user_id,
        )
        query = (
            select(Account)
            .where(
                or_(
                    Account.owner_id == user_id,
                    Account.is_shared.is_(True) & has_grant,
                )
            )
            .order_by(Account.created_at.desc())
        )

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def exists_by_name(
        self,
        owner_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        """
        Check if an account with the given name exists for an owner.

        Case-insensitive comparison.

        Args:
            owner_id: ID of the owning user
            name: Name to check
            exclude_id: Optional account ID to exclude (for updates)

        Returns:
            True if account name exists, False otherwise

        Example:
            if await account_repo.exists_by_name(user.id, "Household"):
                raise AlreadyExistsError("Account")
        """
        query = select(Account.id).where(
            Account.owner_id == owner_id,
            func.lower(Account.name) == name.lower(),
        )

        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)

        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None
