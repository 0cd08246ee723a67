"""Alembic environment configuration for Cyphire.

Runs against the connection handed over by ``cyphire.database`` at startup,
or builds a sync SQLite engine from settings for ``alembic upgrade head``.
Batch mode is on because SQLite cannot ALTER most things in place.
"""

from __future__ import annotations

import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

from cyphire.db_models import *  # noqa: F401, F403: register all tables

logger = logging.getLogger("alembic.env")

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata


def _cli_url() -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    from cyphire.config import settings

    db_path = settings.database_url
    if not db_path.startswith("sqlite"):
        return f"sqlite:///{db_path}"
    return db_path.replace("sqlite+aiosqlite", "sqlite")


def _migrate(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL instead of executing it."""
    context.configure(
        url=_cli_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    injected = config.attributes.get("connection")
    if injected is not None:
        _migrate(injected)
        return

    config.set_main_option("sqlalchemy.url", _cli_url())
    engine = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _migrate(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
