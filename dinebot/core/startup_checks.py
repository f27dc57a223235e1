from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from dinebot.core.config import DATABASE_URL, ENV_NORMALIZED, IS_DEV, IS_PROD, IS_TEST

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"


def validate_database_environment(database_url: str = DATABASE_URL, *, is_prod: bool = IS_PROD) -> None:
    """SQLite is for local runs and tests only."""
    if is_prod and database_url.startswith("sqlite"):
        logger.critical("%s refusing SQLite database in production", STARTUP_PREFIX)
        raise RuntimeError("SQLite is not allowed when ENV=prod")


def _expected_heads(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.exists():
        logger.critical("%s alembic config missing path=%s", STARTUP_PREFIX, alembic_config_path)
        raise RuntimeError(f"alembic config not found at {alembic_config_path}")
    script = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    return set(script.get_heads())


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if IS_DEV or IS_TEST:
        logger.info("%s migration check skipped env=%s", STARTUP_PREFIX, ENV_NORMALIZED)
        return

    expected = _expected_heads(alembic_config_path)
    with engine.connect() as connection:
        current = set(MigrationContext.configure(connection).get_current_heads())

    if not current:
        logger.critical("%s database was never migrated", STARTUP_PREFIX)
        raise RuntimeError("Database has no migration state; run `alembic upgrade head`")
    if current != expected:
        logger.critical(
            "%s schema out of date current=%s expected=%s",
            STARTUP_PREFIX,
            sorted(current),
            sorted(expected),
        )
        raise RuntimeError("Pending migrations detected; run `alembic upgrade head`")

    logger.info("%s schema at head %s", STARTUP_PREFIX, ",".join(sorted(current)))
