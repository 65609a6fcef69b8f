"""
Retention service for scheduled cleanup of old records.

Runs the two retention cleanups with cutoffs derived from settings:
- audit logs older than audit_log_retention_days
- processed permission requests older than permission_request_retention_days
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.core.config import settings
from checkbook.services.audit_service import AuditService
from checkbook.services.permission_request_service import PermissionRequestService

logger = logging.getLogger(__name__)


@dataclass
class RetentionResult:
    """Outcome of one retention run."""

    audit_logs_deleted: int
    permission_requests_deleted: int
    audit_log_cutoff: datetime
    permission_request_cutoff: datetime


class RetentionService:
    """
    Service that applies the retention policy.

    Both cleanups are idempotent, so overlapping or repeated runs are safe.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit_service = AuditService(session)
        self.permission_request_service = PermissionRequestService(session)

    async def run_cleanup(self, now: datetime | None = None) -> RetentionResult:
        """
        Run both cleanups relative to now (defaults to the current UTC time).

        Returns:
            RetentionResult with the cutoffs used and rows deleted
        """
        now = now or datetime.now(UTC)
        audit_cutoff = now - timedelta(days=settings.audit_log_retention_days)
        request_cutoff = now - timedelta(days=settings.permission_request_retention_days)

        logger.info(
            f"Running retention cleanup: audit_log_cutoff={audit_cutoff.isoformat()}, "
            f"permission_request_cutoff={request_cutoff.isoformat()}"
        )

        requests_deleted = (
            await self.permission_request_service.cleanup_old_processed_requests(
                request_cutoff
            )
        )
        audit_logs_deleted = await self.audit_service.cleanup_old_audit_logs(audit_cutoff)

        return RetentionResult(
            audit_logs_deleted=audit_logs_deleted,
            permission_requests_deleted=requests_deleted,
            audit_log_cutoff=audit_cutoff,
            permission_request_cutoff=request_cutoff,
        )
