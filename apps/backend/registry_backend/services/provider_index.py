"""
Provider index: the Redis set of package names served to package-manager clients.

Kept eventually consistent with the registry. Removals are idempotent and
independent per package. Removals that fail are parked in a retry set that the
index_cleanup worker job drains; a full index rebuild also heals them.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import redis.asyncio as redis
from redis.exceptions import RedisError

from registry_backend.core.errors import IndexRemovalFailedError, StoreUnavailableError
from registry_backend.core.redis import get_redis

logger = logging.getLogger(__name__)

PACKAGES_SET_KEY = "set:packages"
PENDING_REMOVALS_KEY = "set:packages:pending-removal"


class ProviderIndex:
    def __init__(self, client: redis.Redis):
        self._redis = client

    async def add(self, package_name: str) -> None:
        try:
            await self._redis.sadd(PACKAGES_SET_KEY, package_name)
        except RedisError as e:
            raise StoreUnavailableError(f"provider index add: {e}") from e

    async def contains(self, package_name: str) -> bool:
        try:
            return bool(await self._redis.sismember(PACKAGES_SET_KEY, package_name))
        except RedisError as e:
            raise StoreUnavailableError(f"provider index lookup: {e}") from e

    async def remove(self, package_name: str, package_id: int | None = None) -> bool:
        """
        Removing an absent package is not an error.
        Returns whether the package was present; raises IndexRemovalFailedError on store failure.
        """
        try:
            removed = await self._redis.srem(PACKAGES_SET_KEY, package_name)
        except RedisError as e:
            raise IndexRemovalFailedError(package_name, package_id, str(e)) from e

        logger.debug(f"Removed {package_name} from provider index (present={bool(removed)})")
        return bool(removed)

    async def record_pending_removals(self, package_names: Iterable[str]) -> None:
        names = list(package_names)
        if not names:
            return
        try:
            await self._redis.sadd(PENDING_REMOVALS_KEY, *names)
        except RedisError as e:
            raise StoreUnavailableError(f"provider index pending removals: {e}") from e

    async def pending_removals(self, limit: int) -> list[str]:
        try:
            return list(await self._redis.srandmember(PENDING_REMOVALS_KEY, limit) or [])
        except RedisError as e:
            raise StoreUnavailableError(f"provider index pending removals: {e}") from e

    async def clear_pending_removals(self, package_names: Iterable[str]) -> None:
        names = list(package_names)
        if not names:
            return
        try:
            await self._redis.srem(PENDING_REMOVALS_KEY, *names)
        except RedisError as e:
            raise StoreUnavailableError(f"provider index pending removals: {e}") from e


async def get_provider_index() -> ProviderIndex:
    """Raises StoreUnavailableError if Redis is not configured or unreachable."""
    client = await get_redis()
    if client is None:
        raise StoreUnavailableError("Redis not configured or unreachable")
    return ProviderIndex(client)


@dataclass
class IndexRemovalReport:
    removed: list[str] = field(default_factory=list)
    failures: list[IndexRemovalFailedError] = field(default_factory=list)

    @property
    def failed_names(self) -> list[str]:
        return [failure.package_name for failure in self.failures]


async def remove_packages_from_index(
    packages: Iterable[tuple[int | None, str]],
    index: ProviderIndex | None = None,
) -> IndexRemovalReport:
    """
    Removes each (package_id, package_name) independently; one failure does not stop the rest.
    Failed names are parked for the cleanup job when the store still accepts writes.
    """
    targets = list(packages)
    report = IndexRemovalReport()
    if not targets:
        return report

    if index is None:
        try:
            index = await get_provider_index()
        except StoreUnavailableError as e:
            logger.warning(f"Provider index unavailable; {len(targets)} removals deferred: {e.detail}")
            report.failures = [
                IndexRemovalFailedError(name, package_id, e.detail) for package_id, name in targets
            ]
            return report

    for package_id, name in targets:
        try:
            await index.remove(name, package_id)
            report.removed.append(name)
        except IndexRemovalFailedError as e:
            logger.warning(f"Provider index removal failed for {name}: {e.detail}")
            report.failures.append(e)

    if report.removed:
        try:
            await index.clear_pending_removals(report.removed)
        except StoreUnavailableError as e:
            logger.warning(f"Could not clear pending removals: {e.detail}")

    if report.failures:
        try:
            await index.record_pending_removals(report.failed_names)
        except StoreUnavailableError as e:
            logger.warning(f"Could not park failed removals for retry: {e.detail}")

    return report


async def retry_index_removal(
    package_names: Iterable[str],
    index: ProviderIndex | None = None,
) -> IndexRemovalReport:
    """Re-runs index removal only. Safe to call repeatedly for the same packages."""
    return await remove_packages_from_index(
        [(None, name) for name in package_names],
        index=index,
    )


__all__ = [
    "PACKAGES_SET_KEY",
    "PENDING_REMOVALS_KEY",
    "ProviderIndex",
    "IndexRemovalReport",
    "get_provider_index",
    "remove_packages_from_index",
    "retry_index_removal",
]
