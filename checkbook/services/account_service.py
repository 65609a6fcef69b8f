"""
Account service for account lifecycle and permission management.

This module provides:
- Account creation, retrieval, update and deletion
- Balance updates for users with full access
- Owner-gated permission grant, revoke and listing
- Audit logging of account and permission events
"""

import logging
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.core.request_metadata import RequestMetadata
from checkbook.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InsufficientPermissionsError,
    NotFoundError,
    SelfGrantError,
)
from checkbook.models.account import Account
from checkbook.models.account_permission import AccountPermission
from checkbook.models.enums import PermissionType
from checkbook.models.user import User
from checkbook.repositories.account_permission_repository import (
    AccountPermissionRepository,
)
from checkbook.repositories.account_repository import AccountRepository
from checkbook.repositories.permission_request_repository import (
    PermissionRequestRepository,
)
from checkbook.repositories.user_repository import UserRepository
from checkbook.schemas.account import AccountCreate, AccountUpdate
from checkbook.schemas.account_permission import AccountPermissionCreate
from checkbook.services.audit_service import AuditService
from checkbook.services.permission_validation_service import (
    PermissionValidationService,
)

logger = logging.getLogger(__name__)


class AccountService:
    """
    Service class for account management operations.

    This service handles:
    - Account CRUD with permission checks
    - Granting, revoking and listing account permissions (owner only)
    - Audit logging for all account and permission changes

    Permission Rules:
        - Any access: view the account
        - FULL_ACCESS: update the balance
        - Owner only: update, delete, manage permissions

    Every mutation commits once, after its audit entry is written, so the
    change and its audit row land in the same transaction.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AccountService.

        Args:
            session: Async database session
        """
        self.session = session
        self.account_repo = AccountRepository(session)
        self.permission_repo = AccountPermissionRepository(session)
        self.request_repo = PermissionRequestRepository(session)
        self.user_repo = UserRepository(session)
        self.validation_service = PermissionValidationService(session)
        self.audit_service = AuditService(session)

    async def _get_owned_account(self, account_id: uuid.UUID, current_user: User) -> Account:
        """
        Load an account and require that current_user owns it.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If current_user is not the owner
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not await self.validation_service.can_manage_account_permissions(
            current_user, account_id
        ):
            logger.warning(
                f"User {current_user.id} attempted owner-only operation on account {account_id}"
            )
            raise InsufficientPermissionsError(
                "Only the account owner can perform this action"
            )

        return account

    # -------------------------------------------------------------------------
    # Account lifecycle
    # -------------------------------------------------------------------------

    async def create_account(
        self,
        data: AccountCreate,
        current_user: User,
    ) -> Account:
        """
        Create a new account owned by current_user.

        Args:
            data: Account creation data
            current_user: User creating the account (becomes the owner)

        Returns:
            Created Account instance

        Raises:
            AlreadyExistsError: If the owner already has an account with this name
        """
        if await self.account_repo.exists_by_name(current_user.id, data.name):
            raise AlreadyExistsError(
                "Account",
                message=f"Account with name '{data.name}' already exists",
            )

        account = Account(
            name=data.name,
            description=data.description,
            account_type=data.account_type,
            bank_name=data.bank_name,
            account_number_masked=data.account_number_masked,
            current_balance=data.current_balance,
            is_shared=False,
            owner_id=current_user.id,
            created_by=current_user.id,
            updated_by=current_user.id,
        )
        account = await self.account_repo.add(account)
        await self.session.commit()

        logger.info(
            f"Account created: {account.id} ({account.name}) for user {current_user.id}"
        )

        return account

    async def get_account(
        self,
        account_id: uuid.UUID,
        current_user: User,
        metadata: RequestMetadata | None = None,
    ) -> Account:
        """
        Get an account the user has access to and record the view.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If the user has no access
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not await self.validation_service.has_account_access(current_user, account_id):
            raise InsufficientPermissionsError("You don't have access to this account")

        await self.audit_service.log_account_viewed(
            account_id,
            current_user,
            metadata=metadata,
            extra_details={"account_name": account.name},
        )
        await self.session.commit()

        return account

    async def get_accessible_accounts(self, current_user: User) -> list[Account]:
        """Get every account the user owns or holds a grant on (shared only)."""
        return await self.account_repo.get_accessible_by_user(current_user.id)

    async def update_account(
        self,
        account_id: uuid.UUID,
        data: AccountUpdate,
        current_user: User,
        metadata: RequestMetadata | None = None,
    ) -> Account:
        """
        Update account details. Owner only.

        Only fields present in data are changed.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If current_user is not the owner
            AlreadyExistsError: If the new name collides with another owned account
        """
        account = await self._get_owned_account(account_id, current_user)

        changes = data.model_dump(exclude_unset=True)

        new_name = changes.get("name")
        if new_name is not None and new_name.lower() != account.name.lower():
            if await self.account_repo.exists_by_name(
                current_user.id, new_name, exclude_id=account_id
            ):
                raise AlreadyExistsError(
                    "Account",
                    message=f"Account with name '{new_name}' already exists",
                )

        old_values: dict[str, Any] = {}
        new_values: dict[str, Any] = {}
        for field, value in changes.items():
            if value is None and field in ("name", "account_type", "is_shared"):
                continue
            current = getattr(account, field)
            if current != value:
                old_values[field] = current
                new_values[field] = value
                setattr(account, field, value)

        if not new_values:
            return account

        account.updated_by = current_user.id
        account = await self.account_repo.update(account)

        await self.audit_service.log_account_modified(
            account_id,
            current_user,
            {"old_values": old_values, "new_values": new_values},
            metadata=metadata,
        )
        await self.session.commit()

        logger.info(
            f"Account {account_id} updated by user {current_user.id}: "
            f"{', '.join(new_values)}"
        )

        return account

    async def update_account_balance(
        self,
        account_id: uuid.UUID,
        new_balance: Decimal,
        current_user: User,
        metadata: RequestMetadata | None = None,
    ) -> Account:
        """
        Set an account's balance. Requires FULL_ACCESS.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If the user lacks FULL_ACCESS
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not await self.validation_service.has_account_full_access(current_user, account_id):
            raise InsufficientPermissionsError(
                "Full access is required to update the account balance"
            )

        old_balance = account.current_balance
        account.current_balance = new_balance
        account.updated_by = current_user.id
        account = await self.account_repo.update(account)

        await self.audit_service.log_account_modified(
            account_id,
            current_user,
            {"old_balance": old_balance, "new_balance": new_balance},
            metadata=metadata,
        )
        await self.session.commit()

        logger.info(
            f"Balance of account {account_id} set to {new_balance} by user {current_user.id}"
        )

        return account

    async def delete_account(
        self,
        account_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """
        Permanently delete an account. Owner only.

        Grants and permission requests are deleted first, then the account,
        all in one transaction. Audit logs are kept.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If current_user is not the owner
        """
        account = await self._get_owned_account(account_id, current_user)

        try:
            removed_permissions = await self.permission_repo.delete_by_account(account_id)
            removed_requests = await self.request_repo.delete_by_account(account_id)
            await self.account_repo.delete(account)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            f"Account {account_id} deleted by user {current_user.id} "
            f"({removed_permissions} permissions, {removed_requests} requests removed)"
        )

    # -------------------------------------------------------------------------
    # Permission management (owner only)
    # -------------------------------------------------------------------------

    async def upsert_permission(
        self,
        account: Account,
        acting_user: User,
        target_user: User,
        permission_type: PermissionType,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AccountPermission:
        """
        Create or update target_user's grant on account and audit it.

        Writes PERMISSION_MODIFIED when a grant already existed, otherwise
        PERMISSION_GRANTED. extra_details (e.g. the approved request) are
        added to the audit entry. Does not commit.

        Raises:
            ConflictError: If a concurrent insert created the grant first
        """
        audit_details = {"account_name": account.name, **(extra_details or {})}
        existing = await self.permission_repo.get_by_account_and_user(
            account.id, target_user.id
        )

        if existing is not None:
            old_permission = existing.permission_type
            existing.permission_type = permission_type
            permission = await self.permission_repo.update(existing)

            await self.audit_service.log_permission_modified(
                account.id,
                acting_user,
                target_user,
                old_permission,
                permission_type,
                metadata=metadata,
                extra_details=audit_details,
            )

            logger.info(
                f"Updated permission for user '{target_user.username}' on account "
                f"'{account.name}' from {old_permission.value} to {permission_type.value}"
            )
            return permission

        permission = AccountPermission(
            account_id=account.id,
            user_id=target_user.id,
            permission_type=permission_type,
        )
        try:
            async with self.session.begin_nested():
                permission = await self.permission_repo.add(permission)
        except IntegrityError:
            raise ConflictError(
                "Permission for this user was created concurrently, please retry",
                details={"account_id": str(account.id), "user_id": str(target_user.id)},
            )

        await self.audit_service.log_permission_granted(
            account.id,
            acting_user,
            target_user,
            permission_type,
            metadata=metadata,
            extra_details=audit_details,
        )

        logger.info(
            f"Granted {permission_type.value} permission to user "
            f"'{target_user.username}' for account '{account.name}'"
        )
        return permission

    async def grant_permission(
        self,
        account_id: uuid.UUID,
        data: AccountPermissionCreate,
        current_user: User,
        metadata: RequestMetadata | None = None,
    ) -> AccountPermission:
        """
        Grant (or change) a user's permission on an account.

        Only the account owner can grant permissions. Granting marks the
        account shared if it was not already.

        Args:
            account_id: ID of the account
            data: Target (username or email) and permission level
            current_user: Currently authenticated user (must be owner)
            metadata: Client IP and User-Agent for audit logging

        Returns:
            The created or updated AccountPermission

        Raises:
            NotFoundError: If the account or target user is not found
            InsufficientPermissionsError: If current user is not the owner
            SelfGrantError: If the owner names themselves
            ConflictError: If a concurrent grant for the same user won the race

        Example:
            permission = await account_service.grant_permission(
                account.id,
                AccountPermissionCreate(
                    username_or_email="bob@example.com",
                    permission_type=PermissionType.VIEW_ONLY,
                ),
                current_user=owner,
            )
        """
        account = await self._get_owned_account(account_id, current_user)

        target_user = await self.user_repo.get_by_username_or_email(data.username_or_email)
        if target_user is None:
            raise NotFoundError(
                "User",
                details={"username_or_email": data.username_or_email},
            )

        if target_user.id == current_user.id:
            raise SelfGrantError()

        if not account.is_shared:
            account.is_shared = True
            account.updated_by = current_user.id
            await self.account_repo.update(account)
            logger.info(f"Account {account_id} marked as shared")

        permission = await self.upsert_permission(
            account,
            current_user,
            target_user,
            data.permission_type,
            metadata=metadata,
        )
        await self.session.commit()

        return permission

    async def revoke_permission(
        self,
        account_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
        metadata: RequestMetadata | None = None,
    ) -> None:
        """
        Remove a user's grant on an account.

        Args:
            account_id: ID of the account
            user_id: ID of the user whose grant is removed
            current_user: Currently authenticated user (must be owner)
            metadata: Client IP and User-Agent for audit logging

        Raises:
            NotFoundError: If the account or the grant does not exist
            InsufficientPermissionsError: If current user is not the owner
        """
        account = await self._get_owned_account(account_id, current_user)

        permission = await self.permission_repo.get_by_account_and_user(account_id, user_id)
        if permission is None:
            raise NotFoundError(
                "Permission",
                details={"account_id": str(account_id), "user_id": str(user_id)},
            )

        target_user = permission.user
        revoked_type = permission.permission_type
        await self.permission_repo.delete(permission)

        await self.audit_service.log_permission_revoked(
            account_id,
            current_user,
            target_user,
            revoked_type,
            metadata=metadata,
            extra_details={"account_name": account.name},
        )
        await self.session.commit()

        logger.info(
            f"Revoked {revoked_type.value} permission from user '{target_user.username}' "
            f"for account '{account.name}'"
        )

    async def get_account_permissions(
        self,
        account_id: uuid.UUID,
        current_user: User,
    ) -> list[AccountPermission]:
        """
        List all grants on an account, newest first. Owner only.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If current user is not the owner
        """
        await self._get_owned_account(account_id, current_user)

        return await self.permission_repo.get_by_account(account_id)
