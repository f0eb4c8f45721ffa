# backend/traineedb/alembic/env.py

from __future__ import annotations

import os
import sys
from logging.config import fileConfig

from alembic import context

# backend/ must be importable when alembic is run from there.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The package __init__ imports every app's models onto Base.metadata.
from traineedb import database  # noqa: E402

target_metadata = database.Base.metadata


def run_migrations_offline() -> None:
    """Render SQL for the configured DATABASE_URL without connecting."""
    context.configure(
        url=database.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with database.engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
