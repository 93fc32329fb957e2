import logging
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from .config import get_settings


class UTCFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record.setdefault("app", settings.app_name)
        log_record.setdefault("service", settings.service_name)
        log_record.setdefault("module", record.name)
        log_record["level"] = record.levelname.lower()
        if "details" not in log_record:
            log_record["details"] = {}


settings = get_settings()
_configured = False


def _level() -> int:
    return getattr(logging, settings.log_level.upper(), logging.INFO)


def configure_logging() -> logging.Logger:
    global _configured
    root_logger = logging.getLogger()
    if _configured:
        root_logger.setLevel(_level())
        _tune_library_loggers()
        return root_logger

    root_logger.setLevel(_level())
    root_logger.handlers.clear()

    formatter = UTCFormatter("%(timestamp)s %(level)s %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(_level())
    root_logger.addHandler(stream_handler)

    _tune_library_loggers()

    _configured = True
    return root_logger


def get_logger(module_name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(module_name)


def _tune_library_loggers() -> None:
    """Route SQLAlchemy and Alembic output through the root JSON handler.

    ``alembic.ini`` ships its own logging section; running a migration with
    ``fileConfig`` would otherwise replace our handlers, so we strip handlers
    from the library loggers and let them propagate. Safe to call repeatedly.
    """
    for name in ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool", "alembic"):
        lib_logger = logging.getLogger(name)
        lib_logger.disabled = False
        lib_logger.handlers.clear()
        lib_logger.propagate = True

    # echo=True is handled by SQLAlchemy itself; keep statement logging quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)
