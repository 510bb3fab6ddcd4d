"""Cookie session lookup. Sessions are issued by the login flow; this side only reads them."""
from datetime import UTC, datetime
from uuid import UUID

from registry_database.models.identity import Session
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession


async def get_session_by_id(
    db: AsyncSession,
    session_id: UUID,
) -> Session | None:
    """An expired session is reported the same as a missing one."""
    statement = (
        select(Session)
        .where(Session.id == session_id)
        .where(Session.expires_at > datetime.now(UTC))
    )
    result = await db.exec(statement)
    return result.first()
