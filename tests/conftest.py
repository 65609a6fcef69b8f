"""
Pytest configuration and fixtures for Checkbook tests.

This module provides:
- SQLite (aiosqlite) database setup and teardown per test
- Session fixtures
- User and account fixtures for authorization scenarios
"""

# Set environment variables BEFORE importing anything from checkbook
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUDIT_LOG_ENABLED"] = "true"
os.environ["LOG_LEVEL"] = "DEBUG"

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from checkbook.models import (
    Account,
    AccountPermission,
    AccountType,
    Base,
    PermissionType,
    User,
)


# ============================================================================
# Database Fixtures
# ============================================================================
@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a file-backed SQLite engine with all tables.

    The driver's own transaction handling is switched off and BEGIN is
    emitted explicitly so SAVEPOINTs (used by the audit writer and by
    inserts guarded by unique constraints) behave as on PostgreSQL.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'checkbook.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory for tests that need a second, independent session."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Database session for a test."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Data helpers
# ============================================================================
async def create_user(session: AsyncSession, username: str, **kwargs) -> User:
    user = User(
        username=username,
        email=kwargs.pop("email", f"{username}@example.com"),
        first_name=kwargs.pop("first_name", username.capitalize()),
        **kwargs,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def create_account(
    session: AsyncSession,
    owner: User,
    name: str,
    is_shared: bool = False,
    **kwargs,
) -> Account:
    account = Account(
        name=name,
        owner_id=owner.id,
        is_shared=is_shared,
        account_type=kwargs.pop("account_type", AccountType.CHECKING),
        current_balance=kwargs.pop("current_balance", Decimal("100.00")),
        created_by=owner.id,
        updated_by=owner.id,
        **kwargs,
    )
    session.add(account)
    await session.commit()
    await session.refresh(account)
    return account


async def create_grant(
    session: AsyncSession,
    account: Account,
    user: User,
    permission_type: PermissionType,
) -> AccountPermission:
    permission = AccountPermission(
        account_id=account.id,
        user_id=user.id,
        permission_type=permission_type,
    )
    session.add(permission)
    await session.commit()
    await session.refresh(permission)
    return permission


# ============================================================================
# User and account fixtures
# ============================================================================
@pytest_asyncio.fixture
async def owner(db_session) -> User:
    """Alice owns the test accounts."""
    return await create_user(db_session, "alice", last_name="Owner")


@pytest_asyncio.fixture
async def member(db_session) -> User:
    """Bob is the collaborator who receives grants and files requests."""
    return await create_user(db_session, "bob")


@pytest_asyncio.fixture
async def outsider(db_session) -> User:
    """Carol never receives any grant."""
    return await create_user(db_session, "carol")


@pytest_asyncio.fixture
async def shared_account(db_session, owner) -> Account:
    return await create_account(db_session, owner, "Joint Checking", is_shared=True)


@pytest_asyncio.fixture
async def private_account(db_session, owner) -> Account:
    return await create_account(db_session, owner, "Private Savings", is_shared=False)


@pytest.fixture
def make_account(db_session):
    """Factory for extra accounts: await make_account(owner, name, is_shared=...)."""

    async def _make_account(owner: User, name: str, **kwargs) -> Account:
        return await create_account(db_session, owner, name, **kwargs)

    return _make_account


@pytest.fixture
def make_user(db_session):
    """Factory for extra users: await make_user(username, ...)."""

    async def _make_user(username: str, **kwargs) -> User:
        return await create_user(db_session, username, **kwargs)

    return _make_user


@pytest.fixture
def grant(db_session):
    """Store a grant directly, bypassing the service: await grant(account, user, level)."""

    async def _grant(
        account: Account, user: User, permission_type: PermissionType
    ) -> AccountPermission:
        return await create_grant(db_session, account, user, permission_type)

    return _grant
