from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from registry_database.models.identity import ROLE_ANTISPAM
from sqlmodel.ext.asyncio.session import AsyncSession

from registry_backend.api.dependencies import get_db
from registry_backend.main import app
from registry_backend.middleware.auth import optional_user, require_auth


def make_user(username: str = "alice", roles: list[str] | None = None):
    roles = roles or []
    user = MagicMock()
    user.id = uuid4()
    user.username = username
    user.enabled = True
    user.roles = roles
    user.created_at = datetime(2024, 1, 2, tzinfo=UTC)
    user.is_github_linked = False
    user.has_role = lambda role: role in roles
    return user


@pytest.fixture(name="make_user")
def make_user_fixture():
    return make_user


@pytest.fixture
def mock_db():
    db = MagicMock(spec=AsyncSession)
    db.exec = AsyncMock()
    db.get = AsyncMock(return_value=None)
    db.commit = AsyncMock()
    return db


@pytest.fixture
def client(mock_db):
    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_user():
    return make_user("alice")


@pytest.fixture
def moderator():
    return make_user("moderator", roles=[ROLE_ANTISPAM])


@pytest.fixture
def mock_session(mock_user):
    session = MagicMock()
    session.id = uuid4()
    session.user_id = mock_user.id
    return session


@pytest.fixture
def authenticated_client(client, mock_user, mock_session):
    app.dependency_overrides[require_auth] = lambda: (mock_user, mock_session)
    app.dependency_overrides[optional_user] = lambda: mock_user
    return client


@pytest.fixture
def moderator_client(client, moderator, mock_session):
    app.dependency_overrides[require_auth] = lambda: (moderator, mock_session)
    app.dependency_overrides[optional_user] = lambda: moderator
    return client
