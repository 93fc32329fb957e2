from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from serverdb.core.config import DatabaseConfig
from serverdb.core.exceptions import SchemaReconciliationError
from serverdb.core.logging_config import get_logger

logger = get_logger(__name__)

ROOT_PATH = Path(__file__).resolve().parents[2]


def get_alembic_config(config: DatabaseConfig) -> Config:
    alembic_cfg = Config(str(ROOT_PATH / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_PATH / "alembic"))
    # configparser interpolation would choke on % in passwords
    url = config.sqlalchemy_url().render_as_string(hide_password=False).replace("%", "%%")
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    alembic_cfg.attributes["configure_logger"] = False
    logger.debug(
        "Alembic configuration prepared",
        extra={"details": {"event": "alembic_config", "extra": {"database_url": config.redacted_url()}}},
    )
    return alembic_cfg


def apply_migrations(engine: Engine, config: DatabaseConfig, revision: str = "head") -> None:
    """Run ``alembic upgrade`` on a connection from ``engine``.

    Sharing the engine keeps the driver arguments (timezone, sslmode) that a
    URL-only Alembic engine would lose.
    """
    alembic_cfg = get_alembic_config(config)
    try:
        with engine.begin() as connection:
            alembic_cfg.attributes["connection"] = connection
            command.upgrade(alembic_cfg, revision)
    except (SQLAlchemyError, CommandError) as exc:
        logger.error(
            "Migrations failed",
            extra={"details": {"event": "database_migrate", "extra": {"error": str(exc), "revision": revision}}},
        )
        raise SchemaReconciliationError.from_driver(exc) from exc
    logger.info("Migrations applied", extra={"details": {"event": "database_migrate", "extra": {"revision": revision}}})
