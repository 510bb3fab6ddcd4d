"""Public user pages: profile and maintained packages."""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from registry_database.models.identity import ROLE_ANTISPAM, User
from registry_database.models.packages import Package
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db
from registry_backend.core.config import get_settings
from registry_backend.middleware.auth import optional_user
from registry_backend.services.favorite_service import get_favers_counts
from registry_backend.services.package_service import (
    MaintainedPackagesSource,
    PackageSchema,
    to_package_schema,
)
from registry_backend.services.pagination import Page, paginate
from registry_backend.services.user_service import get_user_by_username

router = APIRouter()


class PackagePageOutput(BaseModel):
    results: list[PackageSchema]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_more: bool


class UserOutput(BaseModel):
    username: str
    created_at: str
    github_linked: bool


class ProfileOutput(BaseModel):
    user: UserOutput
    packages: PackagePageOutput
    can_mark_spammer: bool = False


def user_output(user: User) -> UserOutput:
    return UserOutput(
        username=user.username,
        created_at=user.created_at.isoformat(),
        github_linked=user.is_github_linked,
    )


async def package_page_output(page: Page[Package]) -> PackagePageOutput:
    favers = await get_favers_counts(package.id for package in page.items)
    return PackagePageOutput(
        results=[
            to_package_schema(package, favers.get(package.id, 0))
            for package in page.items
        ],
        total=page.total_count,
        page=page.current_page,
        page_size=page.page_size,
        total_pages=page.total_pages,
        has_more=page.has_more,
    )


async def maintained_packages_page(
    db: AsyncSession,
    user: User,
    page: str,
) -> PackagePageOutput:
    settings = get_settings()
    result = await paginate(
        MaintainedPackagesSource(db, user.id),
        page=page,
        page_size=settings.packages_per_page,
    )
    return await package_page_output(result)


@router.get("/{name}/packages", response_model=PackagePageOutput)
async def list_user_packages(
    name: str,
    page: str = Query("1"),
    db: AsyncSession = Depends(get_db),
) -> PackagePageOutput:
    user = await get_user_by_username(db, name)
    return await maintained_packages_page(db, user, page)


@router.get("/{name}", response_model=ProfileOutput)
async def user_profile(
    name: str,
    page: str = Query("1"),
    viewer: User | None = Depends(optional_user),
    db: AsyncSession = Depends(get_db),
) -> ProfileOutput:
    user = await get_user_by_username(db, name)

    return ProfileOutput(
        user=user_output(user),
        packages=await maintained_packages_page(db, user, page),
        can_mark_spammer=viewer is not None and viewer.has_role(ROLE_ANTISPAM),
    )
