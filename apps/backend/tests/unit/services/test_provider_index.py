"""Provider index tests using FakeRedis for real set semantics."""
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from registry_backend.core.errors import IndexRemovalFailedError, StoreUnavailableError
from registry_backend.core.redis import set_redis_for_testing
from registry_backend.services.provider_index import (
    PACKAGES_SET_KEY,
    PENDING_REMOVALS_KEY,
    ProviderIndex,
    get_provider_index,
    remove_packages_from_index,
    retry_index_removal,
)


class FlakyProviderIndex(ProviderIndex):
    """Fails removal for the named packages; everything else hits Redis."""

    def __init__(self, client, failing: set[str]):
        super().__init__(client)
        self.failing = failing

    async def remove(self, package_name, package_id=None):
        if package_name in self.failing:
            raise IndexRemovalFailedError(package_name, package_id, "simulated outage")
        return await super().remove(package_name, package_id)


@pytest.fixture
def index(fake_redis):
    return ProviderIndex(fake_redis)


class TestProviderIndex:

    async def test_add_and_contains(self, index):
        await index.add("acme/lib")

        assert await index.contains("acme/lib") is True
        assert await index.contains("acme/other") is False

    async def test_remove_is_idempotent(self, index):
        await index.add("acme/lib")

        assert await index.remove("acme/lib") is True
        assert await index.remove("acme/lib") is False
        assert await index.contains("acme/lib") is False

    async def test_remove_wraps_store_errors(self, index, fake_redis):
        with patch.object(fake_redis, "srem", AsyncMock(side_effect=RedisConnectionError("down"))):
            with pytest.raises(IndexRemovalFailedError) as exc_info:
                await index.remove("acme/lib", 12)

        assert exc_info.value.package_name == "acme/lib"
        assert exc_info.value.package_id == 12

    async def test_pending_removals_roundtrip(self, index):
        await index.record_pending_removals(["acme/a", "acme/b"])

        assert sorted(await index.pending_removals(10)) == ["acme/a", "acme/b"]

        await index.clear_pending_removals(["acme/a"])
        assert await index.pending_removals(10) == ["acme/b"]

    async def test_get_provider_index_requires_redis(self):
        set_redis_for_testing(None)

        with pytest.raises(StoreUnavailableError):
            await get_provider_index()


class TestRemovePackagesFromIndex:

    async def test_removes_each_package(self, index, fake_redis):
        await fake_redis.sadd(PACKAGES_SET_KEY, "acme/a", "acme/b", "other/c")

        report = await remove_packages_from_index([(1, "acme/a"), (2, "acme/b")], index=index)

        assert report.removed == ["acme/a", "acme/b"]
        assert report.failures == []
        assert await fake_redis.smembers(PACKAGES_SET_KEY) == {"other/c"}

    async def test_one_failure_does_not_stop_the_rest(self, fake_redis):
        await fake_redis.sadd(PACKAGES_SET_KEY, "acme/a", "acme/b", "acme/c")
        flaky = FlakyProviderIndex(fake_redis, failing={"acme/b"})

        report = await remove_packages_from_index(
            [(1, "acme/a"), (2, "acme/b"), (3, "acme/c")],
            index=flaky,
        )

        assert report.removed == ["acme/a", "acme/c"]
        assert report.failed_names == ["acme/b"]
        assert report.failures[0].package_id == 2
        assert await fake_redis.smembers(PACKAGES_SET_KEY) == {"acme/b"}
        assert await fake_redis.smembers(PENDING_REMOVALS_KEY) == {"acme/b"}

    async def test_retry_clears_pending_and_is_idempotent(self, index, fake_redis):
        await fake_redis.sadd(PACKAGES_SET_KEY, "acme/b")
        await fake_redis.sadd(PENDING_REMOVALS_KEY, "acme/b")

        first = await retry_index_removal(["acme/b"], index=index)
        second = await retry_index_removal(["acme/b"], index=index)

        assert first.removed == ["acme/b"]
        assert second.removed == ["acme/b"]
        assert second.failures == []
        assert await fake_redis.scard(PACKAGES_SET_KEY) == 0
        assert await fake_redis.scard(PENDING_REMOVALS_KEY) == 0

    async def test_unavailable_store_reports_every_package(self):
        set_redis_for_testing(None)

        report = await remove_packages_from_index([(1, "acme/a"), (2, "acme/b")])

        assert report.removed == []
        assert report.failed_names == ["acme/a", "acme/b"]

    async def test_empty_input(self, index):
        report = await remove_packages_from_index([], index=index)

        assert report.removed == []
        assert report.failures == []
