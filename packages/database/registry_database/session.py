"""
Async engine and session factory for the registry database.

Nothing connects at import time. The engine is built on first use from
DATABASE_URL (read from .env.local / .env at the repository root when present),
so test suites and tools can import the models without a database.
"""
import os
import threading
from typing import AsyncGenerator

from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel.ext.asyncio.session import AsyncSession

REPOSITORY_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.."))

# PgBouncer in transaction mode cannot share prepared statements between clients
ASYNCPG_POOLER_ARGS = {
    "prepared_statement_cache_size": 0,
    "statement_cache_size": 0,
}

_lock = threading.RLock()
_engine: AsyncEngine | None = None
_factory: async_sessionmaker[AsyncSession] | None = None


def normalize_database_url(url: str) -> str:
    """Plain postgresql:// URLs are switched to the asyncpg driver."""
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


def engine_connect_args(url: str) -> dict:
    return dict(ASYNCPG_POOLER_ARGS) if url.startswith("postgresql+asyncpg://") else {}


def _configured_url() -> str:
    for env_file in (".env.local", ".env"):
        try:
            load_dotenv(os.path.join(REPOSITORY_ROOT, env_file))
        except PermissionError:
            continue
    return normalize_database_url(os.getenv("DATABASE_URL", ""))


def get_engine() -> AsyncEngine:
    global _engine
    with _lock:
        if _engine is None:
            url = _configured_url()
            _engine = create_async_engine(
                url,
                pool_pre_ping=True,
                connect_args=engine_connect_args(url),
            )
        return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _factory
    with _lock:
        if _factory is None:
            # Services keep using loaded rows after commit (ids, names for audit logs)
            _factory = async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)
        return _factory


class _LazySessionFactory:
    """Callable stand-in for the session factory until first use."""

    def __call__(self, *args, **kwargs) -> AsyncSession:
        return get_session_factory()(*args, **kwargs)


async_session_factory = _LazySessionFactory()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        yield session
