"""registry_database - SQLModel tables and async session management for the package registry."""

from registry_database.base import Base
from registry_database.session import async_session_factory, get_async_session, get_engine

__all__ = [
    "Base",
    "async_session_factory",
    "get_async_session",
    "get_engine",
]
