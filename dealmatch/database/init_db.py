"""Bring the configured database up to the latest schema revision."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

import dealmatch.database.db as db_module
from dealmatch.core.startup import bootstrap

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def upgrade_to_head(database_url: str | None = None) -> None:
    active_url = database_url or db_module.get_active_database_url()
    command.upgrade(_build_alembic_config(active_url), "head")
    logger.info(
        "database.upgraded",
        extra={"event": "database.upgraded", "status": active_url.split("://", 1)[0]},
    )


def init_db() -> None:
    bootstrap()
    upgrade_to_head()


if __name__ == "__main__":
    init_db()
