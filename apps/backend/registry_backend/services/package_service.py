"""Package registry queries. Listings are exposed as page sources for the pager."""
import logging
from collections.abc import Iterable
from uuid import UUID

from pydantic import BaseModel
from registry_database.models.packages import MaintainerLink, Package
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.core.errors import PackageNotFoundError

logger = logging.getLogger(__name__)


class PackageSchema(BaseModel):
    id: int
    name: str
    description: str | None
    abandoned: bool
    replacement_package: str | None
    favers: int = 0


def to_package_schema(package: Package, favers: int = 0) -> PackageSchema:
    return PackageSchema(
        id=package.id,
        name=package.name,
        description=package.description,
        abandoned=package.abandoned,
        replacement_package=package.replacement_package,
        favers=favers,
    )


def maintained_package_ids(user_id: UUID):
    """Subquery of package ids the user maintains, co-maintained packages included."""
    return select(MaintainerLink.package_id).where(MaintainerLink.user_id == user_id)


class MaintainedPackagesSource:
    """Packages maintained by a user, ordered by name."""

    def __init__(self, db: AsyncSession, user_id: UUID):
        self._db = db
        self._user_id = user_id

    async def total(self) -> int:
        statement = select(func.count()).select_from(MaintainerLink).where(
            MaintainerLink.user_id == self._user_id
        )
        result = await self._db.exec(statement)
        return result.one()

    async def slice(self, offset: int, limit: int) -> list[Package]:
        statement = (
            select(Package)
            .where(Package.id.in_(maintained_package_ids(self._user_id)))
            .order_by(Package.name)
            .offset(offset)
            .limit(limit)
        )
        result = await self._db.exec(statement)
        return list(result.all())


async def get_package_by_name(
    db: AsyncSession,
    name: str,
) -> Package:
    statement = select(Package).where(Package.name == name)
    result = await db.exec(statement)
    package = result.first()

    if package is None:
        raise PackageNotFoundError(name)
    return package


async def get_packages_by_ids(
    db: AsyncSession,
    package_ids: Iterable[int],
) -> dict[int, Package]:
    """Missing ids are absent from the result rather than raising."""
    unique_ids = list(set(package_ids))
    if not unique_ids:
        return {}

    statement = select(Package).where(Package.id.in_(unique_ids))
    result = await db.exec(statement)
    return {package.id: package for package in result.all()}


async def find_packages_by_maintainer(
    db: AsyncSession,
    user_id: UUID,
) -> list[Package]:
    statement = (
        select(Package)
        .where(Package.id.in_(maintained_package_ids(user_id)))
        .order_by(Package.name)
    )
    result = await db.exec(statement)
    return list(result.all())


__all__ = [
    "PackageSchema",
    "MaintainedPackagesSource",
    "to_package_schema",
    "maintained_package_ids",
    "get_package_by_name",
    "get_packages_by_ids",
    "find_packages_by_maintainer",
]
