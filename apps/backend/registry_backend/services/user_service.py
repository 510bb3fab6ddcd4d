"""User lookups shared by the routes and the moderation workflow."""
from registry_database.models.identity import User
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.core.errors import UserNotFoundError


async def get_user_by_username(
    db: AsyncSession,
    username: str,
) -> User:
    """Raises UserNotFoundError if no user has this username."""
    statement = select(User).where(User.username == username)
    result = await db.exec(statement)
    user = result.first()

    if user is None:
        raise UserNotFoundError(f"No user named {username}")
    return user
