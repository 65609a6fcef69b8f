"""
Permission request service for the request/approval workflow.

This module provides:
- Filing a request for a higher permission level on a shared account
- Owner approval (which grants the permission) and denial
- Requester cancellation
- Request listings scoped to the requester or the account owner
- Retention cleanup of processed requests

State machine:
    PENDING -> APPROVED | DENIED | CANCELLED
Terminal states never change again.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.core.request_metadata import RequestMetadata
from checkbook.exceptions import (
    AccountNotSharedError,
    DuplicatePendingRequestError,
    InsufficientPermissionsError,
    NotFoundError,
    OwnerSelfRequestError,
    PermissionAlreadyHeldError,
    RequestAccountMismatchError,
    RequestNotPendingError,
)
from checkbook.models.account import Account
from checkbook.models.enums import RequestStatus
from checkbook.models.permission_request import PermissionRequest
from checkbook.models.user import User
from checkbook.repositories.account_repository import AccountRepository
from checkbook.repositories.permission_request_repository import (
    PermissionRequestRepository,
)
from checkbook.schemas.common import PaginationParams
from checkbook.schemas.permission_request import (
    PermissionRequestCreate,
    PermissionRequestFilterParams,
)
from checkbook.services.account_service import AccountService
from checkbook.services.audit_service import AuditService
from checkbook.services.permission_validation_service import (
    PermissionValidationService,
)

logger = logging.getLogger(__name__)


class PermissionRequestService:
    """
    Service class for permission request operations.

    This service handles:
    - Request creation with eligibility validation
    - Approve / deny by the account owner
    - Cancel by the requester
    - Scoped request queries

    A user only ever sees requests they filed or requests against accounts
    they own.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize PermissionRequestService.

        Args:
            session: Async database session
        """
        self.session = session
        self.request_repo = PermissionRequestRepository(session)
        self.account_repo = AccountRepository(session)
        self.validation_service = PermissionValidationService(session)
        self.audit_service = AuditService(session)
        self.account_service = AccountService(session)

    async def create_permission_request(
        self,
        account_id: uuid.UUID,
        data: PermissionRequestCreate,
        requesting_user: User,
        metadata: RequestMetadata | None = None,
    ) -> PermissionRequest:
        """
        File a request for a higher permission level.

        Validation order:
            1. Account exists
            2. Account is shared
            3. Requester is not the owner
            4. Requester has no pending request on this account
            5. Requester's current permission does not already include the request

        Args:
            account_id: ID of the account
            data: Requested permission and optional message
            requesting_user: User filing the request
            metadata: Client IP and User-Agent for audit logging

        Returns:
            Created PermissionRequest in PENDING status

        Raises:
            NotFoundError: If the account does not exist
            AccountNotSharedError: If the account is not shared
            OwnerSelfRequestError: If the requester owns the account
            DuplicatePendingRequestError: If a pending request already exists
            PermissionAlreadyHeldError: If the requester already holds that level
        """
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not account.is_shared:
            raise AccountNotSharedError()

        if account.is_owned_by(requesting_user.id):
            raise OwnerSelfRequestError()

        if await self.request_repo.exists_pending(account_id, requesting_user.id):
            raise DuplicatePendingRequestError()

        current_permission = await self.validation_service.get_user_permission_level(
            requesting_user, account_id
        )
        if current_permission is not None and current_permission.includes(
            data.requested_permission
        ):
            raise PermissionAlreadyHeldError(
                details={"current_permission": current_permission.value}
            )

        permission_request = PermissionRequest(
            account_id=account_id,
            requester_id=requesting_user.id,
            requested_permission=data.requested_permission,
            current_permission=current_permission,
            request_message=data.request_message,
            status=RequestStatus.PENDING,
        )
        try:
            async with self.session.begin_nested():
                permission_request = await self.request_repo.add(permission_request)
        except IntegrityError:
            # A concurrent request slipped past exists_pending
            raise DuplicatePendingRequestError()

        await self.audit_service.log_permission_requested(
            account_id,
            requesting_user,
            data.requested_permission,
            current_permission,
            metadata=metadata,
            extra_details={
                "request_id": permission_request.id,
                "account_name": account.name,
                "request_message": data.request_message,
            },
        )
        await self.session.commit()

        logger.info(
            f"User '{requesting_user.username}' requested "
            f"{data.requested_permission.value} permission for account '{account.name}'"
        )

        return permission_request

    async def _get_reviewable_request(
        self,
        account_id: uuid.UUID,
        request_id: uuid.UUID,
        reviewing_user: User,
        action: str,
    ) -> tuple[PermissionRequest, Account]:
        """
        Load a request for approval or denial.

        Checks, in order: request exists, belongs to account_id, is pending,
        reviewer owns the account.
        """
        permission_request = await self.request_repo.get_by_id(request_id)
        if permission_request is None:
            raise NotFoundError("Permission request")

        if permission_request.account_id != account_id:
            raise RequestAccountMismatchError()

        if not permission_request.is_pending:
            raise RequestNotPendingError(
                details={"status": permission_request.status.value}
            )

        if not await self.validation_service.is_account_owner(reviewing_user, account_id):
            logger.warning(
                f"User {reviewing_user.id} attempted to {action} request {request_id} "
                f"on account {account_id} without owning it"
            )
            raise InsufficientPermissionsError(
                f"You can only {action} requests for accounts you own"
            )

        return permission_request, permission_request.account

    async def approve_permission_request(
        self,
        account_id: uuid.UUID,
        request_id: uuid.UUID,
        review_message: str | None,
        reviewing_user: User,
        metadata: RequestMetadata | None = None,
    ) -> PermissionRequest:
        """
        Approve a pending request and grant the requested permission.

        Writes two audit entries: PERMISSION_GRANTED or PERMISSION_MODIFIED
        for the grant, and PERMISSION_REQUEST_APPROVED for the decision.

        Raises:
            NotFoundError: If the request does not exist
            RequestAccountMismatchError: If the request belongs to another account
            RequestNotPendingError: If the request is no longer pending
            InsufficientPermissionsError: If the reviewer does not own the account
        """
        permission_request, account = await self._get_reviewable_request(
            account_id, request_id, reviewing_user, "approve"
        )
        requester = permission_request.requester

        permission_request.approve(reviewing_user.id, review_message)
        permission_request = await self.request_repo.update(permission_request)

        await self.account_service.upsert_permission(
            account,
            reviewing_user,
            requester,
            permission_request.requested_permission,
            metadata=metadata,
            extra_details={
                "request_id": permission_request.id,
                "review_message": review_message,
            },
        )

        await self.audit_service.log_permission_request_approved(
            account_id,
            reviewing_user,
            requester,
            permission_request.requested_permission,
            metadata=metadata,
            extra_details={
                "request_id": permission_request.id,
                "review_message": review_message,
            },
        )
        await self.session.commit()

        logger.info(
            f"Permission request {request_id} approved by '{reviewing_user.username}': "
            f"'{requester.username}' now has "
            f"{permission_request.requested_permission.value} on account '{account.name}'"
        )

        return permission_request

    async def deny_permission_request(
        self,
        account_id: uuid.UUID,
        request_id: uuid.UUID,
        review_message: str | None,
        reviewing_user: User,
        metadata: RequestMetadata | None = None,
    ) -> PermissionRequest:
        """
        Deny a pending request. Grants are not touched.

        Raises:
            NotFoundError: If the request does not exist
            RequestAccountMismatchError: If the request belongs to another account
            RequestNotPendingError: If the request is no longer pending
            InsufficientPermissionsError: If the reviewer does not own the account
        """
        permission_request, account = await self._get_reviewable_request(
            account_id, request_id, reviewing_user, "deny"
        )
        requester = permission_request.requester

        permission_request.deny(reviewing_user.id, review_message)
        permission_request = await self.request_repo.update(permission_request)

        await self.audit_service.log_permission_request_denied(
            account_id,
            reviewing_user,
            requester,
            permission_request.requested_permission,
            review_message,
            metadata=metadata,
            extra_details={"request_id": permission_request.id},
        )
        await self.session.commit()

        logger.info(
            f"Permission request {request_id} denied by '{reviewing_user.username}' "
            f"for account '{account.name}'"
        )

        return permission_request

    async def cancel_permission_request(
        self,
        request_id: uuid.UUID,
        requesting_user: User,
    ) -> PermissionRequest:
        """
        Cancel a pending request. Only the requester may cancel.

        No audit entry is written for cancellation.

        Raises:
            NotFoundError: If the request does not exist
            InsufficientPermissionsError: If requesting_user did not file the request
            RequestNotPendingError: If the request is no longer pending
        """
        permission_request = await self.request_repo.get_by_id(request_id)
        if permission_request is None:
            raise NotFoundError("Permission request")

        if permission_request.requester_id != requesting_user.id:
            raise InsufficientPermissionsError(
                "You can only cancel your own permission requests"
            )

        if not permission_request.is_pending:
            raise RequestNotPendingError(
                details={"status": permission_request.status.value}
            )

        permission_request.cancel()
        permission_request = await self.request_repo.update(permission_request)
        await self.session.commit()

        logger.info(
            f"Permission request {request_id} cancelled by '{requesting_user.username}'"
        )

        return permission_request

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_user_permission_requests(self, user: User) -> list[PermissionRequest]:
        """Requests the user has filed, newest first."""
        return await self.request_repo.get_by_requester(user.id)

    async def get_account_permission_requests(
        self,
        account_id: uuid.UUID,
        account_owner: User,
    ) -> list[PermissionRequest]:
        """
        All requests filed against an account, newest first. Owner only.

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If account_owner does not own the account
        """
        await self._require_owner(account_id, account_owner)
        return await self.request_repo.get_by_account(account_id)

    async def get_account_owner_permission_requests(
        self,
        account_owner: User,
    ) -> list[PermissionRequest]:
        """Requests against any account the user owns, newest first."""
        return await self.request_repo.get_by_account_owner(account_owner.id)

    async def get_pending_permission_requests(
        self,
        account_owner: User,
    ) -> list[PermissionRequest]:
        """Pending requests against any account the user owns, newest first."""
        return await self.request_repo.get_by_account_owner(
            account_owner.id, status=RequestStatus.PENDING
        )

    async def get_pending_request_count(self, account_owner: User) -> int:
        return await self.request_repo.count_by_account_owner(
            account_owner.id, status=RequestStatus.PENDING
        )

    async def get_permission_requests_with_filters(
        self,
        account_id: uuid.UUID,
        account_owner: User,
        filters: PermissionRequestFilterParams | None = None,
        pagination: PaginationParams | None = None,
    ) -> tuple[list[PermissionRequest], int]:
        """
        Filtered, paginated requests for an owned account.

        Returns:
            Tuple of (requests newest first, total count)

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If account_owner does not own the account
        """
        filters = filters or PermissionRequestFilterParams()
        pagination = pagination or PaginationParams()

        await self._require_owner(account_id, account_owner)

        requests = await self.request_repo.get_with_filters(
            account_id,
            status=filters.status,
            requester_id=filters.requester_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            offset=pagination.offset,
            limit=pagination.page_size,
        )
        total = await self.request_repo.count_with_filters(
            account_id,
            status=filters.status,
            requester_id=filters.requester_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
        )

        return requests, total

    async def _require_owner(self, account_id: uuid.UUID, user: User) -> None:
        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not account.is_owned_by(user.id):
            raise InsufficientPermissionsError(
                "You can only view permission requests for accounts you own"
            )

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    async def cleanup_old_processed_requests(self, cutoff: datetime) -> int:
        """
        Delete approved, denied and cancelled requests created before the cutoff.

        Pending requests are never deleted. Running it again with the same
        cutoff deletes nothing.

        Args:
            cutoff: Requests created strictly before this time are eligible

        Returns:
            Number of requests deleted
        """
        deleted = await self.request_repo.delete_processed_before(cutoff)
        await self.session.commit()

        logger.info(
            f"Cleaned up {deleted} processed permission requests older than "
            f"{cutoff.isoformat()}"
        )

        return deleted
