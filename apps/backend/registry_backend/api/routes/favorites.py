"""Favorites API routes. Membership lives in Redis; packages resolve from Postgres."""
from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field
from registry_database.models.identity import Session, User
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db
from registry_backend.api.routes.users import PackagePageOutput, package_page_output
from registry_backend.core.config import get_settings
from registry_backend.middleware.auth import require_auth
from registry_backend.services.favorite_service import add_favorite, list_favorites, remove_favorite
from registry_backend.services.user_service import get_user_by_username

router = APIRouter()

PACKAGE_NAME_PATTERN = r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$"


class FavoriteInput(BaseModel):
    package: str = Field(..., pattern=PACKAGE_NAME_PATTERN)


class FavoriteListOutput(PackagePageOutput):
    warning: str | None = None


class StatusOutput(BaseModel):
    status: str


@router.get("/{name}/favorites", response_model=FavoriteListOutput)
async def list_user_favorites(
    name: str,
    page: str = Query("1"),
    db: AsyncSession = Depends(get_db),
) -> FavoriteListOutput:
    user = await get_user_by_username(db, name)

    favorites = await list_favorites(
        db,
        user,
        page=page,
        page_size=get_settings().favorites_per_page,
    )
    output = await package_page_output(favorites.page)
    return FavoriteListOutput(**output.model_dump(), warning=favorites.warning)


@router.post("/{name}/favorites", response_model=StatusOutput, status_code=201)
async def add_user_favorite(
    name: str,
    body: FavoriteInput,
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> StatusOutput:
    actor, _ = auth
    user = await get_user_by_username(db, name)

    await add_favorite(db, actor, user, body.package)
    return StatusOutput(status="success")


@router.delete("/{name}/favorites/{vendor}/{package}", status_code=204)
async def remove_user_favorite(
    name: str,
    vendor: str,
    package: str,
    auth: tuple[User, Session] = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> Response:
    actor, _ = auth
    user = await get_user_by_username(db, name)

    await remove_favorite(db, actor, user, f"{vendor}/{package}")
    return Response(status_code=204)
