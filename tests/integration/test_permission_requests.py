"""
Integration tests for the permission request workflow.

PENDING -> APPROVED | DENIED | CANCELLED, with terminal states final.
"""

import json
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

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
from checkbook.models import (
    AuditActionType,
    AuditLog,
    PermissionRequest,
    PermissionType,
    RequestStatus,
)
from checkbook.schemas import (
    PaginationParams,
    PermissionRequestCreate,
    PermissionRequestFilterParams,
    PermissionRequestResponse,
)
from checkbook.services.permission_request_service import PermissionRequestService
from checkbook.services.permission_validation_service import (
    PermissionValidationService,
)


@pytest.fixture
def request_service(db_session):
    return PermissionRequestService(db_session)


def ask(permission: PermissionType, message: str | None = None) -> PermissionRequestCreate:
    return PermissionRequestCreate(requested_permission=permission, request_message=message)


async def actions_for(session, account_id) -> list[AuditActionType]:
    result = await session.execute(
        select(AuditLog.action_type).where(AuditLog.account_id == account_id)
    )
    return sorted(result.scalars().all(), key=lambda action: action.value)


class TestCreateRequest:
    """Test PermissionRequestService.create_permission_request."""

    @pytest.mark.asyncio
    async def test_create_request(self, db_session, request_service, member, shared_account):
        request = await request_service.create_permission_request(
            shared_account.id,
            ask(PermissionType.TRANSACTION_ONLY, "I pay the utilities"),
            member,
        )

        assert request.status == RequestStatus.PENDING
        assert request.requester_id == member.id
        assert request.current_permission is None
        assert request.request_message == "I pay the utilities"
        assert request.reviewed_by is None
        assert request.reviewed_at is None

        log = await db_session.scalar(
            select(AuditLog).where(AuditLog.action_type == AuditActionType.PERMISSION_REQUESTED)
        )
        assert log.user_id == member.id
        details = json.loads(log.details_json)
        assert details["requested_permission"] == "TRANSACTION_ONLY"
        assert details["request_message"] == "I pay the utilities"
        assert details["request_id"] == str(request.id)

    @pytest.mark.asyncio
    async def test_records_current_permission(
        self, request_service, member, shared_account, grant
    ):
        await grant(shared_account, member, PermissionType.VIEW_ONLY)

        request = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.FULL_ACCESS), member
        )

        assert request.current_permission == PermissionType.VIEW_ONLY

    @pytest.mark.asyncio
    async def test_missing_account(self, request_service, member):
        with pytest.raises(NotFoundError):
            await request_service.create_permission_request(
                uuid.uuid4(), ask(PermissionType.VIEW_ONLY), member
            )

    @pytest.mark.asyncio
    async def test_unshared_account(self, request_service, member, private_account):
        with pytest.raises(AccountNotSharedError):
            await request_service.create_permission_request(
                private_account.id, ask(PermissionType.VIEW_ONLY), member
            )

    @pytest.mark.asyncio
    async def test_owner_cannot_request(self, request_service, owner, shared_account):
        with pytest.raises(OwnerSelfRequestError):
            await request_service.create_permission_request(
                shared_account.id, ask(PermissionType.VIEW_ONLY), owner
            )

    @pytest.mark.asyncio
    async def test_duplicate_pending(self, request_service, member, shared_account):
        await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        with pytest.raises(DuplicatePendingRequestError):
            await request_service.create_permission_request(
                shared_account.id, ask(PermissionType.FULL_ACCESS), member
            )

    @pytest.mark.asyncio
    async def test_duplicate_check_runs_before_held_check(
        self, request_service, member, shared_account, grant
    ):
        await grant(shared_account, member, PermissionType.VIEW_ONLY)
        await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.FULL_ACCESS), member
        )

        with pytest.raises(DuplicatePendingRequestError):
            await request_service.create_permission_request(
                shared_account.id, ask(PermissionType.VIEW_ONLY), member
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "held,requested",
        [
            (PermissionType.VIEW_ONLY, PermissionType.VIEW_ONLY),
            (PermissionType.TRANSACTION_ONLY, PermissionType.VIEW_ONLY),
            (PermissionType.FULL_ACCESS, PermissionType.TRANSACTION_ONLY),
        ],
    )
    async def test_already_held(
        self, request_service, member, shared_account, grant, held, requested
    ):
        await grant(shared_account, member, held)

        with pytest.raises(PermissionAlreadyHeldError):
            await request_service.create_permission_request(
                shared_account.id, ask(requested), member
            )

    @pytest.mark.asyncio
    async def test_new_request_allowed_after_close(self, request_service, member, shared_account):
        first = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.cancel_permission_request(first.id, member)

        second = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        assert second.id != first.id
        assert second.status == RequestStatus.PENDING


class TestApproveRequest:
    """Test PermissionRequestService.approve_permission_request."""

    @pytest.mark.asyncio
    async def test_approve_grants_permission(
        self, db_session, request_service, owner, member, shared_account
    ):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.TRANSACTION_ONLY), member
        )

        approved = await request_service.approve_permission_request(
            shared_account.id, pending.id, "Welcome aboard", owner
        )

        assert approved.status == RequestStatus.APPROVED
        assert approved.reviewed_by == owner.id
        assert approved.review_message == "Welcome aboard"
        assert approved.reviewed_at is not None

        validation = PermissionValidationService(db_session)
        level = await validation.get_user_permission_level(member, shared_account.id)
        assert level is PermissionType.TRANSACTION_ONLY

        assert await actions_for(db_session, shared_account.id) == [
            AuditActionType.PERMISSION_GRANTED,
            AuditActionType.PERMISSION_REQUESTED,
            AuditActionType.PERMISSION_REQUEST_APPROVED,
        ]

        granted = await db_session.scalar(
            select(AuditLog).where(AuditLog.action_type == AuditActionType.PERMISSION_GRANTED)
        )
        grant_details = json.loads(granted.details_json)
        assert grant_details["request_id"] == str(pending.id)
        assert grant_details["review_message"] == "Welcome aboard"
        assert grant_details["account_name"] == "Joint Checking"

        response = PermissionRequestResponse.model_validate(approved)
        assert response.requester.username == "bob"
        assert response.reviewer.username == "alice"

    @pytest.mark.asyncio
    async def test_approve_upgrades_existing_grant(
        self, db_session, request_service, owner, member, shared_account, grant
    ):
        await grant(shared_account, member, PermissionType.VIEW_ONLY)
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.FULL_ACCESS), member
        )

        await request_service.approve_permission_request(
            shared_account.id, pending.id, None, owner
        )

        validation = PermissionValidationService(db_session)
        level = await validation.get_user_permission_level(member, shared_account.id)
        assert level is PermissionType.FULL_ACCESS
        assert AuditActionType.PERMISSION_MODIFIED in await actions_for(
            db_session, shared_account.id
        )

    @pytest.mark.asyncio
    async def test_approve_by_non_owner(
        self, request_service, member, outsider, shared_account, grant
    ):
        await grant(shared_account, outsider, PermissionType.FULL_ACCESS)
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        with pytest.raises(InsufficientPermissionsError) as exc_info:
            await request_service.approve_permission_request(
                shared_account.id, pending.id, None, outsider
            )

        assert exc_info.value.message == "You can only approve requests for accounts you own"
        assert pending.status == RequestStatus.PENDING

    @pytest.mark.asyncio
    async def test_approve_through_wrong_account(
        self, request_service, owner, member, shared_account, make_account
    ):
        other = await make_account(owner, "Second Joint", is_shared=True)
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        with pytest.raises(RequestAccountMismatchError):
            await request_service.approve_permission_request(other.id, pending.id, None, owner)

    @pytest.mark.asyncio
    async def test_approve_missing_request(self, request_service, owner, shared_account):
        with pytest.raises(NotFoundError):
            await request_service.approve_permission_request(
                shared_account.id, uuid.uuid4(), None, owner
            )

    @pytest.mark.asyncio
    async def test_approve_twice(self, request_service, owner, member, shared_account):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.approve_permission_request(
            shared_account.id, pending.id, None, owner
        )

        with pytest.raises(RequestNotPendingError):
            await request_service.approve_permission_request(
                shared_account.id, pending.id, None, owner
            )


class TestDenyRequest:
    @pytest.mark.asyncio
    async def test_deny_leaves_grants_untouched(
        self, db_session, request_service, owner, member, shared_account, grant
    ):
        await grant(shared_account, member, PermissionType.VIEW_ONLY)
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.FULL_ACCESS), member
        )

        denied = await request_service.deny_permission_request(
            shared_account.id, pending.id, "Not yet", owner
        )

        assert denied.status == RequestStatus.DENIED
        assert denied.reviewed_by == owner.id
        assert denied.review_message == "Not yet"

        validation = PermissionValidationService(db_session)
        level = await validation.get_user_permission_level(member, shared_account.id)
        assert level is PermissionType.VIEW_ONLY

        log = await db_session.scalar(
            select(AuditLog).where(
                AuditLog.action_type == AuditActionType.PERMISSION_REQUEST_DENIED
            )
        )
        assert log.user_id == owner.id
        assert json.loads(log.details_json)["reason"] == "Not yet"

    @pytest.mark.asyncio
    async def test_deny_by_non_owner(self, request_service, member, outsider, shared_account):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        with pytest.raises(InsufficientPermissionsError) as exc_info:
            await request_service.deny_permission_request(
                shared_account.id, pending.id, None, outsider
            )

        assert exc_info.value.message == "You can only deny requests for accounts you own"

    @pytest.mark.asyncio
    async def test_deny_after_cancel(self, request_service, owner, member, shared_account):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.cancel_permission_request(pending.id, member)

        with pytest.raises(RequestNotPendingError):
            await request_service.deny_permission_request(
                shared_account.id, pending.id, None, owner
            )


class TestCancelRequest:
    @pytest.mark.asyncio
    async def test_cancel_writes_no_audit_entry(
        self, db_session, request_service, member, shared_account
    ):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        cancelled = await request_service.cancel_permission_request(pending.id, member)

        assert cancelled.status == RequestStatus.CANCELLED
        assert cancelled.reviewed_by is None
        assert cancelled.reviewed_at is not None
        assert await actions_for(db_session, shared_account.id) == [
            AuditActionType.PERMISSION_REQUESTED
        ]

    @pytest.mark.asyncio
    async def test_only_requester_can_cancel(
        self, request_service, owner, member, shared_account
    ):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        with pytest.raises(InsufficientPermissionsError):
            await request_service.cancel_permission_request(pending.id, owner)

    @pytest.mark.asyncio
    async def test_cancel_missing(self, request_service, member):
        with pytest.raises(NotFoundError):
            await request_service.cancel_permission_request(uuid.uuid4(), member)

    @pytest.mark.asyncio
    async def test_cancel_after_approval(self, request_service, owner, member, shared_account):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.approve_permission_request(
            shared_account.id, pending.id, None, owner
        )

        with pytest.raises(RequestNotPendingError):
            await request_service.cancel_permission_request(pending.id, member)


class TestRequestQueries:
    @pytest.mark.asyncio
    async def test_requester_and_owner_views(
        self, request_service, owner, member, outsider, shared_account, make_account
    ):
        other_owner_account = await make_account(outsider, "Carol's Joint", is_shared=True)
        mine = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        elsewhere = await request_service.create_permission_request(
            other_owner_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        filed = await request_service.get_user_permission_requests(member)
        assert {r.id for r in filed} == {mine.id, elsewhere.id}

        for_owner = await request_service.get_account_owner_permission_requests(owner)
        assert [r.id for r in for_owner] == [mine.id]

        pending = await request_service.get_pending_permission_requests(owner)
        assert [r.id for r in pending] == [mine.id]
        assert await request_service.get_pending_request_count(owner) == 1

        on_account = await request_service.get_account_permission_requests(
            shared_account.id, owner
        )
        assert [r.id for r in on_account] == [mine.id]

    @pytest.mark.asyncio
    async def test_pending_count_drops_after_review(
        self, request_service, owner, member, shared_account
    ):
        pending = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.deny_permission_request(shared_account.id, pending.id, None, owner)

        assert await request_service.get_pending_request_count(owner) == 0
        assert len(await request_service.get_account_owner_permission_requests(owner)) == 1

    @pytest.mark.asyncio
    async def test_account_requests_owner_only(self, request_service, member, shared_account):
        with pytest.raises(InsufficientPermissionsError):
            await request_service.get_account_permission_requests(shared_account.id, member)

    @pytest.mark.asyncio
    async def test_filters(
        self, request_service, owner, member, outsider, shared_account
    ):
        denied = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )
        await request_service.deny_permission_request(shared_account.id, denied.id, None, owner)
        open_request = await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.FULL_ACCESS), outsider
        )

        requests, total = await request_service.get_permission_requests_with_filters(
            shared_account.id,
            owner,
            PermissionRequestFilterParams(status=RequestStatus.PENDING),
        )
        assert total == 1
        assert [r.id for r in requests] == [open_request.id]

        requests, total = await request_service.get_permission_requests_with_filters(
            shared_account.id,
            owner,
            PermissionRequestFilterParams(requester_id=member.id),
        )
        assert [r.id for r in requests] == [denied.id]

        _, total = await request_service.get_permission_requests_with_filters(
            shared_account.id,
            owner,
            PermissionRequestFilterParams(
                start_date=datetime.now(UTC) + timedelta(days=1),
            ),
        )
        assert total == 0

        requests, total = await request_service.get_permission_requests_with_filters(
            shared_account.id,
            owner,
            pagination=PaginationParams(page=1, page_size=1),
        )
        assert total == 2
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_filters_owner_only(self, request_service, member, shared_account):
        with pytest.raises(InsufficientPermissionsError):
            await request_service.get_permission_requests_with_filters(
                shared_account.id, member
            )


class TestPendingUniqueness:
    @pytest.mark.asyncio
    async def test_database_rejects_second_pending_row(
        self, db_session, session_factory, request_service, member, shared_account
    ):
        """The partial unique index backs the service-level duplicate check."""
        member_id = member.id
        await request_service.create_permission_request(
            shared_account.id, ask(PermissionType.VIEW_ONLY), member
        )

        # Skip the service check to hit the index directly
        request_service.request_repo.exists_pending = _never_pending

        with pytest.raises(DuplicatePendingRequestError):
            await request_service.create_permission_request(
                shared_account.id, ask(PermissionType.FULL_ACCESS), member
            )

        await db_session.rollback()
        async with session_factory() as fresh:
            rows = await fresh.scalar(
                select(func.count())
                .select_from(PermissionRequest)
                .where(PermissionRequest.requester_id == member_id)
            )
        assert rows == 1


async def _never_pending(account_id, requester_id):
    return False
