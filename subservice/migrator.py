"""
Schema migrations, applied once before the store serves requests.

The scripts live in an Alembic script directory. A run that finds the
database already at the latest revision is a success; a failing script is
fatal and is never retried.
"""
from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import Union

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, pool

from subservice.core.exceptions import ConfigurationError, MigrationError
from subservice.database import parse_descriptor, safe_descriptor

logger = logging.getLogger(__name__)


class MigrationOutcome(str, enum.Enum):
    APPLIED = "applied"
    NO_CHANGE = "no_change"


def build_config(descriptor: str, scripts_location: Union[str, Path]) -> Config:
    """Alembic configuration pointing at ``scripts_location`` without an ini file."""
    location = Path(scripts_location)
    if not (location / "env.py").is_file():
        raise MigrationError(f"No migration scripts found at {location}")

    config = Config()
    config.set_main_option("script_location", str(location))
    # ConfigParser interpolation treats '%' specially; URL-encoded passwords contain it.
    config.set_main_option("sqlalchemy.url", descriptor.replace("%", "%%"))
    return config


def apply_migrations(descriptor: str, scripts_location: Union[str, Path]) -> MigrationOutcome:
    """Upgrade the database behind ``descriptor`` to the newest script revision."""
    try:
        url = parse_descriptor(descriptor)
    except ConfigurationError as exc:
        raise MigrationError(str(exc)) from exc

    config = build_config(descriptor, scripts_location)
    safe_url = safe_descriptor(url)
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        heads = set(ScriptDirectory.from_config(config).get_heads())
        with engine.begin() as connection:
            current = set(MigrationContext.configure(connection).get_current_heads())
            if current == heads:
                logger.info("Migrations: %s already at %s, no change", safe_url, ", ".join(sorted(heads)) or "base")
                return MigrationOutcome.NO_CHANGE

            logger.info(
                "Migrations: upgrading %s from %s to %s",
                safe_url,
                ", ".join(sorted(current)) or "base",
                ", ".join(sorted(heads)),
            )
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
    except Exception as exc:
        logger.error("Migrations: run against %s failed: %s", safe_url, exc)
        raise MigrationError(f"Failed to apply migrations from {scripts_location}: {exc}") from exc
    finally:
        engine.dispose()

    logger.info("Migrations: %s upgraded to %s", safe_url, ", ".join(sorted(heads)))
    return MigrationOutcome.APPLIED


def current_revision(descriptor: str) -> set[str]:
    """Revisions recorded in the database, empty when no migration has run."""
    engine = create_engine(parse_descriptor(descriptor), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            return set(MigrationContext.configure(connection).get_current_heads())
    finally:
        engine.dispose()
