"""Database bootstrap run once at process start."""

import time

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from serverdb.core.config import DatabaseConfig, SchemaStrategy, get_settings
from serverdb.core.exceptions import DatabaseConnectionError
from serverdb.core.logging_config import get_logger
from serverdb.db.migrations import apply_migrations
from serverdb.db.reconcile import reconcile_schema
from serverdb.db.session import create_db_engine, verify_connection

logger = get_logger(__name__)


def connect(config: DatabaseConfig) -> Engine:
    engine = create_db_engine(config)
    try:
        verify_connection(engine)
    except SQLAlchemyError as exc:
        engine.dispose()
        logger.error(
            "Database connection failed",
            extra={
                "details": {
                    "event": "database_connect_failed",
                    "extra": {
                        "database_url": config.redacted_url(),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                }
            },
        )
        raise DatabaseConnectionError.from_driver(exc) from exc
    logger.info(
        "Database connection established",
        extra={"details": {"event": "database_connect", "extra": {"database_url": config.redacted_url()}}},
    )
    return engine


def init_database(config: DatabaseConfig | None = None, *, strategy: SchemaStrategy | None = None) -> Engine:
    """Connect to the database and bring the ``users`` schema up to date.

    Returns a ready engine. Raises ``DatabaseConnectionError`` if the server
    can't be reached or rejects the credentials, and
    ``SchemaReconciliationError`` if the schema step fails. Nothing is
    retried, and no engine is left open on failure.
    """
    settings = get_settings()
    config = config if config is not None else settings.database_config()
    strategy = strategy or settings.schema_strategy
    start_time = time.perf_counter()

    engine = connect(config)
    try:
        if strategy == "alembic":
            apply_migrations(engine, config)
        else:
            reconcile_schema(engine)
    except Exception:
        engine.dispose()
        raise

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info(
        "Database initialized",
        extra={"details": {"event": "database_init", "duration_ms": duration_ms, "extra": {"strategy": strategy}}},
    )
    return engine
