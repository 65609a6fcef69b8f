"""
Base repository with generic CRUD operations.

This module provides a generic repository pattern for database operations.
All specific repositories should inherit from BaseRepository.

Type Parameters:
    ModelType: The SQLAlchemy model class (e.g., Account, AccountPermission)
"""

import uuid
from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.base import Base

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository for database operations.

    Repositories never commit. Flushing makes generated values (ids,
    timestamps) visible; the service that owns the unit of work commits.

    Usage:
        class AccountRepository(BaseRepository[Account]):
            def __init__(self, session: AsyncSession):
                super().__init__(Account, session)
    """

    def __init__(self, model: type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: The SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def add(self, instance: ModelType) -> ModelType:
        """
        Persist a model instance.

        Args:
            instance: Model instance to persist

        Returns:
            Persisted model instance (with ID and timestamps populated)
        """
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """
        Get a record by ID.

        Args:
            id: UUID of the record

        Returns:
            Model instance or None if not found

        Example:
            account = await account_repo.get_by_id(account_id)
            if account is None:
                raise NotFoundError("Account")
        """
        query = select(self.model).where(self.model.id == id)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def update(self, instance: ModelType) -> ModelType:
        """
        Persist changes to an already-modified model instance.

        The caller is responsible for modifying the instance attributes
        before calling this method. This method only handles persistence
        (flush + refresh).

        Example:
            permission = await permission_repo.get_by_id(permission_id)
            permission.permission_type = PermissionType.FULL_ACCESS
            permission = await permission_repo.update(permission)
        """
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, instance: ModelType) -> None:
        """
        Hard delete a record (permanent removal from database).

        Args:
            instance: Model instance to delete
        """
        await self.session.delete(instance)
        await self.session.flush()
