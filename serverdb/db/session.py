from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import URL, Engine, create_engine
from sqlalchemy.orm import sessionmaker

from serverdb.core.config import DatabaseConfig
from serverdb.core.logging_config import get_logger

logger = get_logger(__name__)


def build_connect_args(config: DatabaseConfig, url: URL) -> dict[str, Any]:
    """Driver-level arguments for the given URL.

    psycopg2 binds parameters client side and only ever sends simple query
    protocol messages, so ``prefer_simple_protocol`` needs no extra argument
    for it.
    """
    if not url.get_backend_name().startswith("postgresql"):
        return {}

    connect_args: dict[str, Any] = {"options": f"-c timezone={config.timezone}"}
    if config.sslmode and "sslmode" not in url.query:
        connect_args["sslmode"] = config.sslmode
    if config.connect_timeout is not None:
        connect_args["connect_timeout"] = config.connect_timeout
    if not config.prefer_simple_protocol:
        logger.info(
            "Extended query protocol requested but driver uses simple protocol",
            extra={"details": {"event": "database_engine", "extra": {"driver": url.get_driver_name()}}},
        )
    return connect_args


def create_db_engine(config: DatabaseConfig) -> Engine:
    url = config.sqlalchemy_url()
    engine = create_engine(
        url,
        echo=config.echo,
        pool_pre_ping=True,
        connect_args=build_connect_args(config, url),
    )
    logger.debug(
        "Database engine created",
        extra={"details": {"event": "database_engine", "extra": {"database_url": config.redacted_url()}}},
    )
    return engine


def verify_connection(engine: Engine) -> None:
    # Engines connect lazily; force a round trip so bad hosts or credentials surface here.
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
