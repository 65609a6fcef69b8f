"""
User repository for directory lookups.

Grant targets are named by username or email, so the main query here is
the combined lookup that must resolve to exactly one user.
"""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from checkbook.models.user import User
from checkbook.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """
    Repository for User model database operations.

    Usage:
        user_repo = UserRepository(session)
        user = await user_repo.get_by_username_or_email("alice")
    """

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_username_or_email(self, username_or_email: str) -> User | None:
        """
        Resolve a user from a value that may be a username or an email.

        A value can match one user's username and a different user's email.
        Such an ambiguous value resolves to no one.

        Args:
            username_or_email: Username or email address

        Returns:
            The single matching User, or None if there is no unique match
        """
        query = select(User).where(
            or_(
                User.username == username_or_email,
                User.email == username_or_email,
            )
        )

        result = await self.session.execute(query)
        users = list(result.scalars().all())
        if len(users) != 1:
            return None
        return users[0]
