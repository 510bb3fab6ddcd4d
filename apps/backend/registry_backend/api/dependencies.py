"""Shared FastAPI dependencies: a database session per request and one pooled GitHub HTTP client."""
from collections.abc import AsyncGenerator

import httpx
from registry_database.session import get_async_session
from sqlmodel.ext.asyncio.session import AsyncSession

# Profile pages wait on the GitHub login lookup; keep it short
GITHUB_TIMEOUT = httpx.Timeout(10.0, connect=5.0)
GITHUB_LIMITS = httpx.Limits(max_keepalive_connections=5, max_connections=10)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_async_session():
        yield session


_http_client: httpx.AsyncClient | None = None


def _open_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=GITHUB_TIMEOUT, limits=GITHUB_LIMITS)


async def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None or _http_client.is_closed:
        _http_client = _open_client()
    return _http_client


async def close_http_client() -> None:
    """Lifespan shutdown hook."""
    global _http_client
    client, _http_client = _http_client, None
    if client is not None and not client.is_closed:
        await client.aclose()
