import sys

from serverdb.core.config import get_settings
from serverdb.core.exceptions import DatabaseInitError
from serverdb.core.logging_config import configure_logging, get_logger
from serverdb.db.init_db import init_database

logger = get_logger(__name__)


def main() -> int:
    settings = get_settings()
    configure_logging()
    logger.info(
        "Startup sequence initiated",
        extra={"details": {"event": "startup", "extra": {"environment": settings.environment, "stage": "init"}}},
    )
    try:
        engine = init_database()
    except DatabaseInitError as exc:
        logger.error(
            "Startup failed",
            extra={"details": {"event": "startup", "extra": {"error": str(exc), "error_type": type(exc).__name__}}},
        )
        return 1
    engine.dispose()
    logger.info(
        "Startup completed",
        extra={"details": {"event": "startup", "extra": {"environment": settings.environment}}},
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
