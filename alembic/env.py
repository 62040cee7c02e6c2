"""Alembic environment for the grading database (attempts and competency progress)."""

from __future__ import annotations

import logging
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context

# alembic may be run from anywhere; db.py and models.py live one level up
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

import models  # noqa: E402,F401
from db import DATABASE_URL, Base, normalize_database_url  # noqa: E402

target_metadata = Base.metadata

REQUIRED_TABLES = ("attempts", "competency_progress")
missing = [t for t in REQUIRED_TABLES if t not in target_metadata.tables]
if missing:
    # an empty metadata would make autogenerate drop every table
    raise RuntimeError(f"Tables missing from Base.metadata: {', '.join(missing)}")


def _database_url() -> str:
    # `alembic -x dburl=...` targets another database than DATABASE_URL
    override = context.get_x_argument(as_dictionary=True).get("dburl")
    return normalize_database_url(override) if override else DATABASE_URL


def _configure(url: str, **kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    url = _database_url()
    _configure(url, url=url, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = _database_url()
    logger.info("Migrating %s", url.split("@")[-1])
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
