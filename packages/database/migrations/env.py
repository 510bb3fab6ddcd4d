"""Alembic environment for the registry schema. Online migrations run on the async engine."""
import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel
from sqlmodel.sql.sqltypes import AutoString
import sqlalchemy.types as satypes

import registry_database.models  # noqa: F401
from registry_database.session import REPOSITORY_ROOT, engine_connect_args, normalize_database_url
from dotenv import load_dotenv

load_dotenv(os.path.join(REPOSITORY_ROOT, ".env.local"))
load_dotenv(os.path.join(REPOSITORY_ROOT, ".env"))

config = context.config

# Schema changes go straight to Postgres, not through the pooler, when a direct URL exists
migration_url = normalize_database_url(
    os.getenv("DIRECT_DATABASE_URL") or os.getenv("DATABASE_URL", "")
)
config.set_main_option("sqlalchemy.url", migration_url.replace("%", "%%"))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def compare_string_types(context, inspected_column, metadata_column, inspected_type, metadata_type):
    """AutoString columns reflect back as VARCHAR/TEXT; those pairs are not a change."""
    pair = (inspected_type, metadata_type)
    if any(isinstance(t, AutoString) for t in pair) and all(
        isinstance(t, (AutoString, satypes.String)) for t in pair
    ):
        return False
    return None


def run_migrations_offline() -> None:
    context.configure(
        url=migration_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=compare_string_types,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=engine_connect_args(migration_url),
    )
    async with engine.connect() as connection:
        await connection.run_sync(_migrate)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
