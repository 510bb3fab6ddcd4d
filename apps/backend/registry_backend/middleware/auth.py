from uuid import UUID

from fastapi import Depends, HTTPException, Request
from registry_database.models.identity import Session, User
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db
from registry_backend.services.session_service import get_session_by_id

SESSION_COOKIE_NAME = "session_id"


async def _load_session(request: Request, db: AsyncSession) -> Session | None:
    session_id_str = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id_str:
        return None

    try:
        session_uuid = UUID(session_id_str)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid session format")

    return await get_session_by_id(db, session_uuid)


async def get_current_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Session:
    session = await _load_session(request, db)
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


async def get_current_user(
    session: Session = Depends(get_current_session),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, session.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.enabled:
        raise HTTPException(status_code=403, detail="Account disabled")
    return user


async def require_auth(
    session: Session = Depends(get_current_session),
    user: User = Depends(get_current_user),
) -> tuple[User, Session]:
    return user, session


async def optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Viewer for public pages; anonymous, expired or disabled sessions all yield None."""
    try:
        session = await _load_session(request, db)
    except HTTPException:
        return None
    if session is None:
        return None

    user = await db.get(User, session.user_id)
    if user is None or not user.enabled:
        return None
    return user
