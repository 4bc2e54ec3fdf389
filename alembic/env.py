"""Alembic environment — sync migration runner for the dispatch schema.

Imports all models so Base.metadata is populated before autogenerate.

Design Decisions:
    - Database URL comes from Settings (DISPATCH_DATABASE_URL), falling back
      to alembic.ini for local runs
    - Sync engine: the dispatch store itself is synchronous
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from courier_dispatch.config import get_settings
from courier_dispatch.db.base import Base
import courier_dispatch.models  # noqa: F401  (register tables on Base.metadata)

config = context.config
# an injected connection means an embedding caller already configured logging
if config.config_file_name is not None and "connection" not in config.attributes:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _get_database_url() -> str:
    url = get_settings().database_url
    return url or config.get_main_option("sqlalchemy.url")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=_get_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_with(connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode (on a caller's connection when given)."""
    connection = config.attributes.get("connection")
    if connection is not None:
        _run_with(connection)
        return
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _get_database_url()
    connectable = engine_from_config(
        configuration, prefix="sqlalchemy.", poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run_with(connection)
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
