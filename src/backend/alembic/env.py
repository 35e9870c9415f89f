"""
Alembic environment.

Migrations run on a plain synchronous engine. The async driver in
``DATABASE_URL`` is swapped for its sync counterpart first.
"""

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from grantflow.core.config import get_settings  # noqa: E402
from grantflow.db.base import Base  # noqa: E402
from grantflow.models import FundingOpportunity, Match, Profile  # noqa: E402, F401

SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql+psycopg2://",
    "postgresql://": "postgresql+psycopg2://",
    "sqlite+aiosqlite://": "sqlite://",
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_database_url() -> str:
    url = str(get_settings().database_url)
    for prefix, replacement in SYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix):]
    return url


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    context.configure(
        url=sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(sync_database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
