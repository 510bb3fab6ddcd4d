"""Unit tests for GitHub linkage: connect, disconnect, sync trigger and login lookup."""
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from registry_database.models.identity import User
from registry_database.models.jobs import (
    JOB_STATUS_FAILED,
    JOB_STATUS_QUEUED,
    JOB_TYPE_GITHUB_USER_MIGRATE,
    Job,
)

from registry_backend.core.errors import (
    GitHubNotConnectedError,
    GitHubScopeMissingError,
    SyncSchedulingError,
)
from registry_backend.core.security import decrypt_token, encrypt_token
from registry_backend.services.github_account_service import (
    connect_github,
    disconnect_github,
    get_github_username,
    get_last_github_sync_job,
    request_github_sync,
)
from registry_backend.services.sync_scheduler import get_sync_scheduler


@pytest.fixture
async def user(db_session):
    user = User(username="octo", email="octo@example.com")
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
async def linked_user(db_session, user):
    return await connect_github(db_session, user, "583231", "gho_secret", "read:user,repo")


class TestConnectDisconnect:

    async def test_connect_sets_all_fields_and_encrypts_token(self, linked_user):
        assert linked_user.github_id == "583231"
        assert linked_user.github_scope == "read:user,repo"
        assert linked_user.github_token != "gho_secret"
        assert decrypt_token(linked_user.github_token) == "gho_secret"
        assert linked_user.is_github_linked is True

    async def test_disconnect_clears_all_fields_together(self, db_session, linked_user):
        assert await disconnect_github(db_session, linked_user) is True

        await db_session.refresh(linked_user)
        assert linked_user.github_id is None
        assert linked_user.github_token is None
        assert linked_user.github_scope is None

    async def test_disconnect_when_not_linked(self, db_session, user):
        assert await disconnect_github(db_session, user) is False


class TestRequestGitHubSync:

    async def test_requires_token(self, db_session, user):
        with pytest.raises(GitHubNotConnectedError) as exc_info:
            await request_github_sync(db_session, user)

        assert exc_info.value.status_code == 400
        assert "connect your user account to github" in exc_info.value.user_message

    async def test_requires_scope(self, db_session, user):
        user.github_id = "1"
        user.github_token = encrypt_token("gho_secret")
        user.github_scope = None

        with pytest.raises(GitHubScopeMissingError) as exc_info:
            await request_github_sync(db_session, user)

        assert exc_info.value.status_code == 400
        assert "log in with GitHub again" in exc_info.value.user_message

    async def test_records_job_and_enqueues_task(self, db_session, linked_user):
        job = await request_github_sync(db_session, linked_user)

        assert job.type == JOB_TYPE_GITHUB_USER_MIGRATE
        assert job.status == JOB_STATUS_QUEUED
        assert job.user_id == linked_user.id

        tasks = get_sync_scheduler().get_mock_tasks()
        assert len(tasks) == 1
        payload = next(iter(tasks.values()))["payload"]
        assert payload["job_id"] == str(job.id)
        assert payload["user_id"] == str(linked_user.id)
        assert payload["old_scope"] == ""
        assert payload["new_scope"] == "read:user,repo"

    async def test_last_sync_job_is_most_recent(self, db_session, linked_user):
        assert await get_last_github_sync_job(db_session, linked_user) is None

        older = Job(type=JOB_TYPE_GITHUB_USER_MIGRATE, user_id=linked_user.id)
        db_session.add(older)
        await db_session.commit()
        newest = await request_github_sync(db_session, linked_user)

        last = await get_last_github_sync_job(db_session, linked_user)
        assert last.id == newest.id

    async def test_queue_failure_marks_job_failed(self, db_session, linked_user):
        with patch(
            "registry_backend.services.github_account_service.schedule_user_scope_migration",
            new_callable=AsyncMock,
            side_effect=RuntimeError("ServiceUnavailable: queue down"),
        ):
            with pytest.raises(SyncSchedulingError) as exc_info:
                await request_github_sync(db_session, linked_user)

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, RuntimeError)

        last = await get_last_github_sync_job(db_session, linked_user)
        assert last is not None
        assert last.status == JOB_STATUS_FAILED


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestGetGitHubUsername:

    async def test_returns_login(self, linked_user):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            return httpx.Response(200, json={"login": "octocat"})

        async with _client(handler) as http:
            assert await get_github_username(http, linked_user) == "octocat"

        assert seen["auth"] == "Bearer gho_secret"
        assert seen["path"] == "/user"

    async def test_none_when_not_linked(self, user):
        def handler(request):
            raise AssertionError("GitHub must not be called for unlinked users")

        async with _client(handler) as http:
            assert await get_github_username(http, user) is None

    async def test_none_on_api_error(self, linked_user):
        async with _client(lambda request: httpx.Response(401, json={"message": "Bad credentials"})) as http:
            assert await get_github_username(http, linked_user) is None

    async def test_none_on_transport_error(self, linked_user):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with _client(handler) as http:
            assert await get_github_username(http, linked_user) is None

    async def test_none_when_token_cannot_be_decrypted(self, user):
        user.github_id = "1"
        user.github_token = "not-a-fernet-token"

        async with _client(lambda request: httpx.Response(200, json={"login": "x"})) as http:
            assert await get_github_username(http, user) is None
