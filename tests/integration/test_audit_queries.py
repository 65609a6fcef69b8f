"""
Integration tests for audit log reads and the best-effort write path.
"""

import uuid
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from checkbook.exceptions import (
    InsufficientPermissionsError,
    InvalidInputError,
    NotFoundError,
)
from checkbook.models import Account, AuditActionType, AuditLog, PermissionType
from checkbook.schemas import (
    AuditLogFilterParams,
    AuditLogResponse,
    PaginatedResponse,
    PaginationParams,
)
from checkbook.services.audit_service import AuditService


@pytest.fixture
def audit_service(db_session):
    return AuditService(db_session)


async def write_log(session, account_id, user_id, action_type, created_at):
    audit_log = AuditLog(
        account_id=account_id,
        user_id=user_id,
        action_type=action_type,
        created_at=created_at,
    )
    session.add(audit_log)
    await session.commit()
    return audit_log


@pytest_asyncio.fixture
async def history(db_session, owner, member, shared_account):
    """Five entries on the shared account, one day apart, oldest first."""
    now = datetime.now(UTC)
    entries = [
        (owner.id, AuditActionType.PERMISSION_GRANTED, now - timedelta(days=4)),
        (member.id, AuditActionType.ACCOUNT_VIEWED, now - timedelta(days=3)),
        (member.id, AuditActionType.TRANSACTION_ADDED, now - timedelta(days=2)),
        (member.id, AuditActionType.ACCOUNT_VIEWED, now - timedelta(days=1)),
        (owner.id, AuditActionType.ACCOUNT_MODIFIED, now - timedelta(hours=1)),
    ]
    return [
        await write_log(db_session, shared_account.id, user_id, action, created_at)
        for user_id, action, created_at in entries
    ]


class TestGetAccountAuditLogs:
    """Test AuditService.get_account_audit_logs."""

    @pytest.mark.asyncio
    async def test_newest_first(self, audit_service, owner, shared_account, history):
        logs, total = await audit_service.get_account_audit_logs(shared_account.id, owner)

        assert total == 5
        assert [log.id for log in logs] == [entry.id for entry in reversed(history)]

    @pytest.mark.asyncio
    async def test_filter_by_action_type_string(
        self, audit_service, owner, shared_account, history
    ):
        logs, total = await audit_service.get_account_audit_logs(
            shared_account.id,
            owner,
            AuditLogFilterParams(action_type="account_viewed"),
        )

        assert total == 2
        assert all(log.action_type == AuditActionType.ACCOUNT_VIEWED for log in logs)

    @pytest.mark.asyncio
    async def test_filter_by_user_and_dates(
        self, audit_service, owner, member, shared_account, history
    ):
        now = datetime.now(UTC)

        logs, total = await audit_service.get_account_audit_logs(
            shared_account.id,
            owner,
            AuditLogFilterParams(
                user_id=member.id,
                start_date=now - timedelta(days=2, hours=12),
                end_date=now - timedelta(hours=12),
            ),
        )

        assert total == 2
        assert [log.id for log in logs] == [history[3].id, history[2].id]

    @pytest.mark.asyncio
    async def test_start_date_only(self, audit_service, owner, shared_account, history):
        _, total = await audit_service.get_account_audit_logs(
            shared_account.id,
            owner,
            AuditLogFilterParams(start_date=datetime.now(UTC) - timedelta(hours=2)),
        )

        assert total == 1

    @pytest.mark.asyncio
    async def test_pagination(self, audit_service, owner, shared_account, history):
        pagination = PaginationParams(page=2, page_size=2)

        logs, total = await audit_service.get_account_audit_logs(
            shared_account.id, owner, pagination=pagination
        )

        assert total == 5
        assert [log.id for log in logs] == [history[2].id, history[1].id]

        page = PaginatedResponse[AuditLogResponse].build(
            [AuditLogResponse.model_validate(log) for log in logs], total, pagination
        )
        assert page.meta.total_pages == 3

    @pytest.mark.asyncio
    async def test_empty_action_type_matches_all(
        self, audit_service, owner, shared_account, history
    ):
        _, total = await audit_service.get_account_audit_logs(
            shared_account.id, owner, AuditLogFilterParams(action_type="")
        )

        assert total == 5

    @pytest.mark.asyncio
    async def test_invalid_action_type(self, audit_service, owner, shared_account):
        with pytest.raises(InvalidInputError):
            await audit_service.get_account_audit_logs(
                shared_account.id,
                owner,
                AuditLogFilterParams(action_type="NOT_AN_ACTION"),
            )

    @pytest.mark.asyncio
    async def test_view_only_grantee_can_read(
        self, audit_service, member, shared_account, history, grant
    ):
        await grant(shared_account, member, PermissionType.VIEW_ONLY)

        _, total = await audit_service.get_account_audit_logs(shared_account.id, member)

        assert total == 5

    @pytest.mark.asyncio
    async def test_outsider_rejected(self, audit_service, outsider, shared_account, history):
        with pytest.raises(InsufficientPermissionsError):
            await audit_service.get_account_audit_logs(shared_account.id, outsider)

    @pytest.mark.asyncio
    async def test_missing_account(self, audit_service, owner):
        with pytest.raises(NotFoundError):
            await audit_service.get_account_audit_logs(uuid.uuid4(), owner)

    @pytest.mark.asyncio
    async def test_logs_are_scoped_to_account(
        self, db_session, audit_service, owner, shared_account, private_account, history
    ):
        await write_log(
            db_session,
            private_account.id,
            owner.id,
            AuditActionType.ACCOUNT_VIEWED,
            datetime.now(UTC),
        )

        _, total = await audit_service.get_account_audit_logs(private_account.id, owner)

        assert total == 1


class TestRecentAndCounts:
    @pytest.mark.asyncio
    async def test_recent_default_limit(
        self, db_session, audit_service, owner, shared_account
    ):
        start = datetime.now(UTC) - timedelta(minutes=30)
        for minute in range(12):
            await write_log(
                db_session,
                shared_account.id,
                owner.id,
                AuditActionType.ACCOUNT_VIEWED,
                start + timedelta(minutes=minute),
            )

        recent = await audit_service.get_recent_audit_logs(shared_account.id)

        assert len(recent) == 10

    @pytest.mark.asyncio
    async def test_recent_explicit_limit(self, audit_service, shared_account, history):
        recent = await audit_service.get_recent_audit_logs(shared_account.id, limit=2)

        assert [log.id for log in recent] == [history[4].id, history[3].id]

    @pytest.mark.asyncio
    async def test_user_logs_span_accounts(
        self, db_session, audit_service, member, private_account, history
    ):
        elsewhere = await write_log(
            db_session,
            private_account.id,
            member.id,
            AuditActionType.ACCOUNT_VIEWED,
            datetime.now(UTC),
        )

        logs, total = await audit_service.get_user_audit_logs(member.id, limit=2)

        assert total == 4
        assert [log.id for log in logs] == [elsewhere.id, history[3].id]

    @pytest.mark.asyncio
    async def test_count_in_date_range(self, audit_service, shared_account, history):
        now = datetime.now(UTC)

        count = await audit_service.count_audit_logs_in_date_range(
            shared_account.id, now - timedelta(days=3, hours=12), now - timedelta(hours=12)
        )

        assert count == 3

    @pytest.mark.asyncio
    async def test_unfiltered_query_without_access_check(
        self, audit_service, shared_account, history
    ):
        logs, total = await audit_service.get_audit_logs_with_filters(
            shared_account.id, action_type=AuditActionType.PERMISSION_GRANTED
        )

        assert total == 1
        assert logs[0].id == history[0].id


class TestWritePathAgainstDatabase:
    @pytest.mark.asyncio
    async def test_failed_write_does_not_poison_transaction(
        self, db_session, session_factory, audit_service, owner, shared_account
    ):
        """A failing audit insert rolls back its savepoint only."""
        original_add = audit_service.audit_repo.add

        async def failing_add(audit_log):
            audit_log.action_type = None  # violates NOT NULL
            return await original_add(audit_log)

        audit_service.audit_repo.add = failing_add

        shared_account.description = "Still saved"
        result = await audit_service.log_account_viewed(shared_account.id, owner)
        await db_session.commit()

        assert result is None
        async with session_factory() as fresh:
            description = await fresh.scalar(
                select(Account.description).where(Account.id == shared_account.id)
            )
            count = await fresh.scalar(select(func.count()).select_from(AuditLog))
        assert description == "Still saved"
        assert count == 0
