"""Alembic environment.

URL resolution: DATABASE_URL_MIGRATIONS > DATABASE_URL > alembic.ini.
"""

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from scoreboard.core.database import Base
from scoreboard.models import audit_log, kiosk, payment_history, profile, scoreboard, subscription, tier_pricing  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

database_url = (
    os.getenv("DATABASE_URL_MIGRATIONS")
    or os.getenv("DATABASE_URL")
    or config.get_main_option("sqlalchemy.url")
)

if not database_url:
    raise ValueError(
        "Database URL not configured. "
        "Set DATABASE_URL_MIGRATIONS or DATABASE_URL, or configure sqlalchemy.url in alembic.ini."
    )

config.set_main_option("sqlalchemy.url", database_url)


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
    connectable = create_engine(database_url, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
