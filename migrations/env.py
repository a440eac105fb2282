"""Alembic environment wired to the storysite models and DATABASE_URL."""

from __future__ import annotations

from sqlalchemy import engine_from_config, pool

from alembic import context

from storysite.core.config import get_settings
from storysite.core.logger import configure_logging
from storysite.storage.db import Base, load_models


config = context.config
config.set_main_option("sqlalchemy.url", get_settings().database_url)
configure_logging()

load_models()
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
