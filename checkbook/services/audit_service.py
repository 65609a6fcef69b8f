"""
Audit service for the permission and data-access audit trail.

This module provides:
- Typed audit writers for permission, account and transaction events
- A best-effort write path that never fails the calling operation
- Filtered, paginated audit log retrieval scoped to an account
- Retention cleanup of old audit logs
"""

import enum
import json
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.core.config import settings
from checkbook.core.request_metadata import RequestMetadata
from checkbook.exceptions import (
    InsufficientPermissionsError,
    InvalidInputError,
    NotFoundError,
)
from checkbook.models.audit_log import AuditLog
from checkbook.models.enums import AuditActionType, PermissionType
from checkbook.models.user import User
from checkbook.repositories.account_repository import AccountRepository
from checkbook.repositories.audit_repository import AuditLogRepository
from checkbook.schemas.audit import AuditLogFilterParams
from checkbook.schemas.common import PaginationParams
from checkbook.services.permission_validation_service import (
    PermissionValidationService,
)

logger = logging.getLogger(__name__)

# Column width of audit_logs.ip_address
MAX_IP_ADDRESS_LENGTH = 45


def _json_default(value: Any) -> Any:
    """Encode the non-JSON types that appear in audit details."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_details(details: dict[str, Any] | None) -> str | None:
    """
    Serialize audit details to a JSON string.

    Returns:
        JSON text, or None when details is None or cannot be serialized
    """
    if details is None:
        return None

    try:
        return json.dumps(details, default=_json_default, sort_keys=True)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize audit details, storing without details: {e}")
        return None


def parse_action_type(value: str | AuditActionType | None) -> AuditActionType | None:
    """
    Parse an action type given as a string.

    A blank string, as sent by an empty query parameter, means no filter.

    Raises:
        InvalidInputError: If the value names no known action type
    """
    if value is None or isinstance(value, AuditActionType):
        return value

    if not value.strip():
        return None

    try:
        return AuditActionType(value.strip().upper())
    except ValueError:
        raise InvalidInputError(
            field="action_type",
            message=f"Invalid action type: {value}",
            details={"valid_values": [action.value for action in AuditActionType]},
        )


class AuditService:
    """
    Service class for audit logging operations.

    This service handles:
    - Recording permission, account and transaction events
    - Audit log retrieval with filtering
    - Retention cleanup

    Write path:
        Writers run inside the caller's transaction, in a SAVEPOINT. A storage
        failure rolls back only the savepoint, is logged at ERROR and the
        writer returns None, so the caller's mutation still commits. Details
        that cannot be serialized are dropped (details_json is NULL) and the
        row is still written. Writers never commit; the calling service does.

    Audit logs are never updated. Rows are deleted only by retention cleanup.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize AuditService.

        Args:
            session: Async database session
        """
        self.session = session
        self.audit_repo = AuditLogRepository(session)
        self.account_repo = AccountRepository(session)
        self.validation_service = PermissionValidationService(session)

    async def log_event(
        self,
        account_id: uuid.UUID,
        user_id: uuid.UUID,
        action_type: AuditActionType,
        details: dict[str, Any] | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLog | None:
        """
        Record one audit event.

        This is the core method for creating audit logs. Use the typed
        log_* methods for the individual event kinds.

        Args:
            account_id: Account the event concerns
            user_id: User who performed the action
            action_type: Kind of event
            details: Event details, stored as JSON
            metadata: Client IP and User-Agent (None when there is no request)

        Returns:
            Created AuditLog instance, or None if auditing is disabled or
            the write failed
        """
        if not settings.audit_log_enabled:
            return None

        metadata = metadata or RequestMetadata()
        ip_address = metadata.ip_address
        if ip_address is not None:
            ip_address = ip_address[:MAX_IP_ADDRESS_LENGTH]

        audit_log = AuditLog(
            account_id=account_id,
            user_id=user_id,
            action_type=action_type,
            details_json=serialize_details(details),
            ip_address=ip_address,
            user_agent=metadata.user_agent,
        )

        try:
            async with self.session.begin_nested():
                audit_log = await self.audit_repo.add(audit_log)
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to write audit log: account={account_id}, user={user_id}, "
                f"action={action_type.value}: {e}"
            )
            return None

        logger.debug(
            f"Audit log created: account={account_id}, user={user_id}, "
            f"action={action_type.value}"
        )

        return audit_log

    # -------------------------------------------------------------------------
    # Permission events
    # -------------------------------------------------------------------------

    async def log_permission_granted(
        self,
        account_id: uuid.UUID,
        granting_user: User,
        target_user: User,
        permission_type: PermissionType,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "granting_user_id": granting_user.id,
            "granting_username": granting_user.username,
            "target_user_id": target_user.id,
            "target_username": target_user.username,
            "permission_type": permission_type,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            granting_user.id,
            AuditActionType.PERMISSION_GRANTED,
            details,
            metadata,
        )

    async def log_permission_modified(
        self,
        account_id: uuid.UUID,
        modifying_user: User,
        target_user: User,
        old_permission_type: PermissionType,
        new_permission_type: PermissionType,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "modifying_user_id": modifying_user.id,
            "modifying_username": modifying_user.username,
            "target_user_id": target_user.id,
            "target_username": target_user.username,
            "old_permission_type": old_permission_type,
            "new_permission_type": new_permission_type,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            modifying_user.id,
            AuditActionType.PERMISSION_MODIFIED,
            details,
            metadata,
        )

    async def log_permission_revoked(
        self,
        account_id: uuid.UUID,
        revoking_user: User,
        target_user: User,
        permission_type: PermissionType,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "revoking_user_id": revoking_user.id,
            "revoking_username": revoking_user.username,
            "target_user_id": target_user.id,
            "target_username": target_user.username,
            "permission_type": permission_type,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            revoking_user.id,
            AuditActionType.PERMISSION_REVOKED,
            details,
            metadata,
        )

    async def log_permission_requested(
        self,
        account_id: uuid.UUID,
        requesting_user: User,
        requested_permission: PermissionType,
        current_permission: PermissionType | None,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "requesting_user_id": requesting_user.id,
            "requesting_username": requesting_user.username,
            "requested_permission": requested_permission,
            "current_permission": current_permission,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            requesting_user.id,
            AuditActionType.PERMISSION_REQUESTED,
            details,
            metadata,
        )

    async def log_permission_request_approved(
        self,
        account_id: uuid.UUID,
        approving_user: User,
        requesting_user: User,
        permission_type: PermissionType,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "approving_user_id": approving_user.id,
            "approving_username": approving_user.username,
            "requesting_user_id": requesting_user.id,
            "requesting_username": requesting_user.username,
            "permission_type": permission_type,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            approving_user.id,
            AuditActionType.PERMISSION_REQUEST_APPROVED,
            details,
            metadata,
        )

    async def log_permission_request_denied(
        self,
        account_id: uuid.UUID,
        denying_user: User,
        requesting_user: User,
        permission_type: PermissionType,
        reason: str | None,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "denying_user_id": denying_user.id,
            "denying_username": denying_user.username,
            "requesting_user_id": requesting_user.id,
            "requesting_username": requesting_user.username,
            "permission_type": permission_type,
            "reason": reason,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            denying_user.id,
            AuditActionType.PERMISSION_REQUEST_DENIED,
            details,
            metadata,
        )

    # -------------------------------------------------------------------------
    # Account and transaction events
    # -------------------------------------------------------------------------

    async def log_account_viewed(
        self,
        account_id: uuid.UUID,
        viewing_user: User,
        metadata: RequestMetadata | None = None,
        extra_details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        details = {
            "viewing_user_id": viewing_user.id,
            "viewing_username": viewing_user.username,
            **(extra_details or {}),
        }
        return await self.log_event(
            account_id,
            viewing_user.id,
            AuditActionType.ACCOUNT_VIEWED,
            details,
            metadata,
        )

    async def log_account_modified(
        self,
        account_id: uuid.UUID,
        modifying_user: User,
        modification_details: dict[str, Any] | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLog | None:
        details = {
            "modifying_user_id": modifying_user.id,
            "modifying_username": modifying_user.username,
            **(modification_details or {}),
        }
        return await self.log_event(
            account_id,
            modifying_user.id,
            AuditActionType.ACCOUNT_MODIFIED,
            details,
            metadata,
        )

    async def log_transaction_added(
        self,
        account_id: uuid.UUID,
        adding_user: User,
        transaction_details: dict[str, Any] | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLog | None:
        details = {
            "adding_user_id": adding_user.id,
            "adding_username": adding_user.username,
            **(transaction_details or {}),
        }
        return await self.log_event(
            account_id,
            adding_user.id,
            AuditActionType.TRANSACTION_ADDED,
            details,
            metadata,
        )

    async def log_transaction_modified(
        self,
        account_id: uuid.UUID,
        modifying_user: User,
        transaction_details: dict[str, Any] | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLog | None:
        details = {
            "modifying_user_id": modifying_user.id,
            "modifying_username": modifying_user.username,
            **(transaction_details or {}),
        }
        return await self.log_event(
            account_id,
            modifying_user.id,
            AuditActionType.TRANSACTION_MODIFIED,
            details,
            metadata,
        )

    async def log_transaction_deleted(
        self,
        account_id: uuid.UUID,
        deleting_user: User,
        transaction_details: dict[str, Any] | None = None,
        metadata: RequestMetadata | None = None,
    ) -> AuditLog | None:
        details = {
            "deleting_user_id": deleting_user.id,
            "deleting_username": deleting_user.username,
            **(transaction_details or {}),
        }
        return await self.log_event(
            account_id,
            deleting_user.id,
            AuditActionType.TRANSACTION_DELETED,
            details,
            metadata,
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_audit_logs_with_filters(
        self,
        account_id: uuid.UUID,
        action_type: AuditActionType | None = None,
        user_id: uuid.UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[AuditLog], int]:
        """
        Get an account's audit logs with optional filters.

        No access check; callers acting for a user should use
        get_account_audit_logs.

        Args:
            account_id: Account whose logs to read
            action_type: Filter by action type
            user_id: Filter by acting user
            start_date: Logs at or after this time
            end_date: Logs at or before this time
            offset: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (list of audit logs newest first, total count)
        """
        logs = await self.audit_repo.get_logs(
            account_id=account_id,
            action_type=action_type,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            offset=offset,
            limit=limit,
        )

        total = await self.audit_repo.count_logs(
            account_id=account_id,
            action_type=action_type,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
        )

        return logs, total

    async def get_account_audit_logs(
        self,
        account_id: uuid.UUID,
        current_user: User,
        filters: AuditLogFilterParams | None = None,
        pagination: PaginationParams | None = None,
    ) -> tuple[list[AuditLog], int]:
        """
        Get an account's audit logs on behalf of a user.

        Args:
            account_id: Account whose logs to read
            current_user: User asking (must have access to the account)
            filters: Optional filters; action_type is parsed from its string form
            pagination: Page parameters (default first page of 20)

        Returns:
            Tuple of (list of audit logs newest first, total count)

        Raises:
            NotFoundError: If the account does not exist
            InsufficientPermissionsError: If the user has no access to the account
            InvalidInputError: If the action type filter is not a known action
        """
        filters = filters or AuditLogFilterParams()
        pagination = pagination or PaginationParams()

        account = await self.account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Account")

        if not await self.validation_service.has_account_access(current_user, account_id):
            logger.warning(
                f"User {current_user.id} denied audit log access for account {account_id}"
            )
            raise InsufficientPermissionsError(
                "You don't have permission to view this account's audit logs"
            )

        action_type = parse_action_type(filters.action_type)

        return await self.get_audit_logs_with_filters(
            account_id,
            action_type=action_type,
            user_id=filters.user_id,
            start_date=filters.start_date,
            end_date=filters.end_date,
            offset=pagination.offset,
            limit=pagination.page_size,
        )

    async def get_recent_audit_logs(
        self,
        account_id: uuid.UUID,
        limit: int | None = None,
    ) -> list[AuditLog]:
        """Get the newest audit logs for an account (default 10, from settings)."""
        return await self.audit_repo.get_recent(
            account_id,
            limit=limit or settings.recent_audit_log_limit,
        )

    async def get_user_audit_logs(
        self,
        user_id: uuid.UUID,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[AuditLog], int]:
        """
        Get every audit log a user performed, across all accounts.

        No access check. Entries for accounts the user has since lost access
        to, or that were deleted, are included.

        Returns:
            Tuple of (list of audit logs newest first, total count)
        """
        logs = await self.audit_repo.get_logs(user_id=user_id, offset=offset, limit=limit)
        total = await self.audit_repo.count_logs(user_id=user_id)
        return logs, total

    async def count_audit_logs_in_date_range(
        self,
        account_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime,
    ) -> int:
        """Count an account's audit logs created within [start_date, end_date]."""
        return await self.audit_repo.count_logs(
            account_id=account_id,
            start_date=start_date,
            end_date=end_date,
        )

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    async def cleanup_old_audit_logs(self, cutoff: datetime) -> int:
        """
        Delete audit logs created before the cutoff and commit.

        Running it again with the same cutoff deletes nothing.

        Args:
            cutoff: Logs created strictly before this time are removed

        Returns:
            Number of audit logs deleted
        """
        deleted = await self.audit_repo.delete_before(cutoff)
        await self.session.commit()

        logger.info(f"Cleaned up {deleted} audit logs older than {cutoff.isoformat()}")

        return deleted
