"""
Permission validation service for account access control.

This module provides the authorization oracle every other service consults:
- Effective permission lookup (owner implies FULL_ACCESS)
- Minimum-level checks for view, transaction and full access
- Ownership checks for permission management
- Eligibility checks for permission requests and upgrades

Every check reads the current rows through the session; nothing is cached.
A missing account yields False (or None) rather than an error.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.enums import PERMISSION_LEVELS, PermissionType
from checkbook.models.user import User
from checkbook.repositories.account_permission_repository import (
    AccountPermissionRepository,
)
from checkbook.repositories.account_repository import AccountRepository

logger = logging.getLogger(__name__)


# Action names accepted by can_perform_action, mapped to the level they need.
# MANAGE_PERMISSIONS is checked against ownership, not a level.
ACTION_REQUIREMENTS: dict[str, PermissionType] = {
    "VIEW": PermissionType.VIEW_ONLY,
    "READ": PermissionType.VIEW_ONLY,
    "ADD_TRANSACTION": PermissionType.TRANSACTION_ONLY,
    "TRANSACTION": PermissionType.TRANSACTION_ONLY,
    "MODIFY": PermissionType.FULL_ACCESS,
    "UPDATE": PermissionType.FULL_ACCESS,
    "DELETE": PermissionType.FULL_ACCESS,
    "BALANCE_UPDATE": PermissionType.FULL_ACCESS,
}

MANAGE_PERMISSIONS_ACTION = "MANAGE_PERMISSIONS"


class PermissionValidationService:
    """
    Service for checking what a user may do on an account.

    Permission Rules:
        - The account owner holds FULL_ACCESS implicitly, whatever is stored
        - On a shared account, a non-owner holds exactly their stored grant
        - On a non-shared account, non-owners hold nothing, even with a grant
        - Only the owner may manage permissions; no grant confers that

    Usage:
        validation = PermissionValidationService(session)
        if not await validation.has_account_transaction_access(user, account_id):
            raise InsufficientPermissionsError()
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize PermissionValidationService.

        Args:
            session: Async database session
        """
        self.session = session
        self.account_repo = AccountRepository(session)
        self.permission_repo = AccountPermissionRepository(session)

    async def has_account_access(self, user: User, account_id: uuid.UUID) -> bool:
        """
        Check whether the user can reach the account at all.

        True for the owner, or for any user holding a stored grant on a
        shared account. The grant's level is not inspected.

        Args:
            user: User to check
            account_id: ID of the account

        Returns:
            True if the user has any access
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            logger.debug(f"Account {account_id} not found")
            return False

        if account.is_owned_by(user.id):
            logger.debug(f"User '{user.username}' has access to account {account_id} (owner)")
            return True

        if account.is_shared:
            has_grant = await self.permission_repo.exists_by_account_and_user(
                account_id, user.id
            )
            logger.debug(
                f"User '{user.username}' has access to shared account {account_id}: {has_grant}"
            )
            return has_grant

        logger.debug(f"User '{user.username}' does not have access to account {account_id}")
        return False

    async def get_user_permission_level(
        self,
        user: User,
        account_id: uuid.UUID,
    ) -> PermissionType | None:
        """
        Get the user's effective permission on an account.

        Args:
            user: User to check
            account_id: ID of the account

        Returns:
            FULL_ACCESS for the owner, the stored grant on a shared account,
            otherwise None (also None when the account does not exist)
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            logger.debug(f"Account {account_id} not found")
            return None

        if account.is_owned_by(user.id):
            return PermissionType.FULL_ACCESS

        if account.is_shared:
            grant = await self.permission_repo.get_by_account_and_user(account_id, user.id)
            if grant is not None:
                logger.debug(
                    f"User '{user.username}' has {grant.permission_type.value} "
                    f"permission for account {account_id}"
                )
                return grant.permission_type

        return None

    async def has_minimum_permission(
        self,
        user: User,
        account_id: uuid.UUID,
        required: PermissionType,
    ) -> bool:
        """
        Check whether the user's effective permission includes the required level.

        Args:
            user: User to check
            account_id: ID of the account
            required: Minimum permission needed

        Returns:
            True if the user holds required or higher
        """
        current = await self.get_user_permission_level(user, account_id)
        if current is None:
            logger.debug(f"User '{user.username}' has no permission for account {account_id}")
            return False

        has_minimum = current.includes(required)
        logger.debug(
            f"User '{user.username}' permission check for account {account_id}: "
            f"has={current.value}, required={required.value}, result={has_minimum}"
        )
        return has_minimum

    async def has_account_view_access(self, user: User, account_id: uuid.UUID) -> bool:
        return await self.has_minimum_permission(user, account_id, PermissionType.VIEW_ONLY)

    async def has_account_transaction_access(self, user: User, account_id: uuid.UUID) -> bool:
        return await self.has_minimum_permission(
            user, account_id, PermissionType.TRANSACTION_ONLY
        )

    async def has_account_full_access(self, user: User, account_id: uuid.UUID) -> bool:
        return await self.has_minimum_permission(user, account_id, PermissionType.FULL_ACCESS)

    async def is_account_owner(self, user: User, account_id: uuid.UUID) -> bool:
        """Check whether the user owns the account (False if it does not exist)."""
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            logger.debug(f"Account {account_id} not found")
            return False

        is_owner = account.is_owned_by(user.id)
        logger.debug(f"User '{user.username}' is owner of account {account_id}: {is_owner}")
        return is_owner

    async def can_manage_account_permissions(self, user: User, account_id: uuid.UUID) -> bool:
        """Only the owner may grant, revoke or review permissions."""
        return await self.is_account_owner(user, account_id)

    async def can_upgrade_permission(
        self,
        user: User,
        account_id: uuid.UUID,
        from_: PermissionType | None,
        to: PermissionType,
    ) -> bool:
        """
        Check whether the user may move a grant from one level to a higher one.

        Args:
            user: User attempting the change (must own the account)
            account_id: ID of the account
            from_: Current level (None when there is no grant yet)
            to: Target level

        Returns:
            True if the user is the owner and to is strictly above from_
        """
        if not await self.is_account_owner(user, account_id):
            logger.debug(
                f"User '{user.username}' cannot upgrade permissions - "
                f"not account owner for {account_id}"
            )
            return False

        if from_ is not None and from_.includes(to):
            logger.debug(f"Cannot downgrade permission from {from_.value} to {to.value}")
            return False

        return True

    async def can_request_permission(
        self,
        user: User,
        account_id: uuid.UUID,
        requested: PermissionType,
    ) -> bool:
        """
        Check whether the user may file a request for the given level.

        False when the account is missing, the user owns it, the account
        is not shared, or the user already holds requested or higher.
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            logger.debug(f"Account {account_id} not found")
            return False

        if account.is_owned_by(user.id):
            logger.debug(
                f"User '{user.username}' cannot request permission for own account {account_id}"
            )
            return False

        if not account.is_shared:
            logger.debug(f"Cannot request permission for non-shared account {account_id}")
            return False

        current = await self.get_user_permission_level(user, account_id)
        if current is not None and current.includes(requested):
            logger.debug(
                f"User '{user.username}' already has {requested.value} permission "
                f"or higher for account {account_id}"
            )
            return False

        return True

    async def can_perform_action(self, user: User, account_id: uuid.UUID, action: str) -> bool:
        """
        Check a named action against the user's permission.

        Args:
            user: User to check
            account_id: ID of the account
            action: Action name, case-insensitive (VIEW, READ, ADD_TRANSACTION,
                TRANSACTION, MODIFY, UPDATE, DELETE, BALANCE_UPDATE,
                MANAGE_PERMISSIONS)

        Returns:
            True if allowed; False for unknown actions
        """
        normalized = action.upper()

        if normalized == MANAGE_PERMISSIONS_ACTION:
            return await self.can_manage_account_permissions(user, account_id)

        required = ACTION_REQUIREMENTS.get(normalized)
        if required is None:
            logger.warning(f"Unknown action '{action}' for permission check")
            return False

        return await self.has_minimum_permission(user, account_id, required)

    async def validate_permission_request(
        self,
        requester: User,
        account_id: uuid.UUID,
        requested: PermissionType,
        current: PermissionType | None,
    ) -> bool:
        """
        Full eligibility check for a permission request.

        Combines can_request_permission with a check that requested is a
        known level strictly above the supplied current level.
        """
        if not await self.can_request_permission(requester, account_id, requested):
            return False

        if requested not in PERMISSION_LEVELS:
            logger.debug(f"Invalid permission level: {requested}")
            return False

        if current is not None and requested.level <= current.level:
            logger.debug(
                f"Cannot request permission {requested.value} when current "
                f"permission {current.value} is same or higher"
            )
            return False

        return True
