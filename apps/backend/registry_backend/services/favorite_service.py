"""
Favorites live in Redis, not Postgres.

usr:{user_id}:fav     sorted set of package ids, scored by time favorited
pkg:{package_id}:fav  sorted set of user ids, scored the same way

Both sets are written in one MULTI/EXEC so the two directions never diverge.
Reads degrade to an empty page when Redis is down; writes fail loudly.
"""
import logging
import time
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import UUID

import redis.asyncio as redis
from redis.exceptions import RedisError
from registry_database.models.identity import User
from registry_database.models.packages import Package
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.core.errors import NotAuthorizedError, StoreUnavailableError
from registry_backend.core.redis import get_redis
from registry_backend.services.package_service import get_package_by_name, get_packages_by_ids
from registry_backend.services.pagination import DEFAULT_PAGE_SIZE, Page, paginate

logger = logging.getLogger(__name__)

USER_FAVORITES_KEY = "usr:{user_id}:fav"
PACKAGE_FAVERS_KEY = "pkg:{package_id}:fav"

STORE_UNAVAILABLE_WARNING = "Could not connect to the Redis database."


def _user_key(user_id: UUID) -> str:
    return USER_FAVORITES_KEY.format(user_id=user_id)


def _package_key(package_id: int) -> str:
    return PACKAGE_FAVERS_KEY.format(package_id=package_id)


@asynccontextmanager
async def _store_errors(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except RedisError as e:
        logger.warning(f"Favorite store {operation} failed: {e}")
        raise StoreUnavailableError(f"{operation}: {e}") from e


class FavoriteStore:
    def __init__(self, client: redis.Redis):
        self._redis = client

    async def ping(self) -> None:
        async with _store_errors("ping"):
            await self._redis.ping()

    async def mark_favorite(self, user_id: UUID, package_id: int) -> None:
        """Upsert; re-favoriting refreshes the timestamp."""
        now = time.time()
        async with _store_errors("mark_favorite"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zadd(_package_key(package_id), {str(user_id): now})
                pipe.zadd(_user_key(user_id), {str(package_id): now})
                await pipe.execute()

    async def remove_favorite(self, user_id: UUID, package_id: int) -> bool:
        """Returns False if the favorite did not exist; that is not an error."""
        async with _store_errors("remove_favorite"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zrem(_package_key(package_id), str(user_id))
                pipe.zrem(_user_key(user_id), str(package_id))
                _, removed = await pipe.execute()
        return bool(removed)

    async def count(self, user_id: UUID) -> int:
        async with _store_errors("count"):
            return int(await self._redis.zcard(_user_key(user_id)))

    async def page(self, user_id: UUID, offset: int, limit: int) -> list[int]:
        """Most recently favorited first."""
        if limit < 1:
            return []
        async with _store_errors("page"):
            members = await self._redis.zrevrange(_user_key(user_id), offset, offset + limit - 1)
        return [int(member) for member in members]

    async def get_favers_counts(self, package_ids: list[int]) -> dict[int, int]:
        if not package_ids:
            return {}
        async with _store_errors("get_favers_counts"):
            async with self._redis.pipeline(transaction=False) as pipe:
                for package_id in package_ids:
                    pipe.zcard(_package_key(package_id))
                counts = await pipe.execute()
        return {package_id: int(count) for package_id, count in zip(package_ids, counts)}


async def get_favorite_store() -> FavoriteStore:
    """Raises StoreUnavailableError if Redis is not configured or unreachable."""
    client = await get_redis()
    if client is None:
        raise StoreUnavailableError("Redis not configured or unreachable")
    return FavoriteStore(client)


class FavoritesSource:
    """Page source over a user's favorites; ids whose package was deleted are dropped."""

    def __init__(self, db: AsyncSession, store: FavoriteStore, user_id: UUID):
        self._db = db
        self._store = store
        self._user_id = user_id

    async def total(self) -> int:
        return await self._store.count(self._user_id)

    async def slice(self, offset: int, limit: int) -> list[Package]:
        package_ids = await self._store.page(self._user_id, offset, limit)
        packages = await get_packages_by_ids(self._db, package_ids)
        return [packages[package_id] for package_id in package_ids if package_id in packages]


@dataclass(frozen=True)
class FavoritesPage:
    page: Page[Package]
    warning: str | None = None


async def list_favorites(
    db: AsyncSession,
    user: User,
    page: object = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> FavoritesPage:
    """Never raises for store outages; returns an empty page with a warning instead."""
    try:
        store = await get_favorite_store()
        await store.ping()
        result = await paginate(FavoritesSource(db, store, user.id), page=page, page_size=page_size)
    except StoreUnavailableError as e:
        logger.warning(f"Favorites for user {user.id} unavailable: {e.detail}")
        return FavoritesPage(page=Page.empty(page_size=page_size), warning=STORE_UNAVAILABLE_WARNING)

    return FavoritesPage(page=result)


def _ensure_own_favorites(actor: User, user: User) -> None:
    if actor.id != user.id:
        raise NotAuthorizedError("You can only change your own favorites")


async def add_favorite(
    db: AsyncSession,
    actor: User,
    user: User,
    package_name: str,
) -> Package:
    _ensure_own_favorites(actor, user)
    package = await get_package_by_name(db, package_name)

    store = await get_favorite_store()
    await store.mark_favorite(user.id, package.id)

    logger.info(f"User {user.id} favorited package {package.name}")
    return package


async def remove_favorite(
    db: AsyncSession,
    actor: User,
    user: User,
    package_name: str,
) -> bool:
    """Idempotent; returns whether a favorite was actually removed."""
    _ensure_own_favorites(actor, user)
    package = await get_package_by_name(db, package_name)

    store = await get_favorite_store()
    removed = await store.remove_favorite(user.id, package.id)

    if removed:
        logger.info(f"User {user.id} unfavorited package {package.name}")
    return removed


async def get_favers_counts(package_ids: Iterable[int]) -> dict[int, int]:
    """Listing metadata; missing counts are treated as zero by callers."""
    ids = list(package_ids)
    try:
        store = await get_favorite_store()
        return await store.get_favers_counts(ids)
    except StoreUnavailableError as e:
        logger.warning(f"Favers counts unavailable: {e.detail}")
        return {}


__all__ = [
    "USER_FAVORITES_KEY",
    "PACKAGE_FAVERS_KEY",
    "STORE_UNAVAILABLE_WARNING",
    "FavoriteStore",
    "FavoritesSource",
    "FavoritesPage",
    "get_favorite_store",
    "list_favorites",
    "add_favorite",
    "remove_favorite",
    "get_favers_counts",
]
