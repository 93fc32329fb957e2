"""Additive schema reconciliation.

Brings the live database in line with the declared models by creating
missing tables and adding missing columns. Existing columns are never
dropped, renamed or retyped, and rows are never touched. A live column whose
type disagrees with the model is reported as a conflict instead of being
changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Column, DateTime, MetaData, Table, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine

from serverdb.core.exceptions import SchemaReconciliationError
from serverdb.core.logging_config import get_logger
from serverdb.db import models  # noqa: F401
from serverdb.db.base import Base

logger = get_logger(__name__)


@dataclass
class ReconcileReport:
    created_tables: list[str] = field(default_factory=list)
    added_columns: dict[str, list[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.created_tables or self.added_columns)


def _python_type(type_: TypeEngine) -> type | None:
    try:
        return type_.python_type
    except NotImplementedError:
        return None


def find_conflict(column: Column, live: dict[str, Any], dialect_name: str) -> str | None:
    """Describe why ``live`` (an inspector column record) can't hold ``column``, if it can't."""
    live_type = live["type"]
    expected, actual = _python_type(column.type), _python_type(live_type)
    if expected is not None and actual is not None and expected is not actual:
        return f"expected {column.type.compile()}, found {live_type!s}"
    # SQLite reflection does not keep the timezone flag
    if (
        dialect_name == "postgresql"
        and isinstance(column.type, DateTime)
        and isinstance(live_type, DateTime)
        and bool(column.type.timezone) != bool(live_type.timezone)
    ):
        return f"expected timezone={column.type.timezone}, found timezone={live_type.timezone}"
    return None


def _plan_table(
    table: Table, live_columns: list[dict[str, Any]], dialect_name: str
) -> tuple[list[Column], list[str]]:
    live_by_name = {live["name"]: live for live in live_columns}
    missing: list[Column] = []
    conflicts: list[str] = []
    for column in table.columns:
        live = live_by_name.get(column.name)
        if live is None:
            if column.primary_key:
                conflicts.append(f"{table.name}.{column.name}: primary key column is missing")
            else:
                missing.append(column)
            continue
        reason = find_conflict(column, live, dialect_name)
        if reason:
            conflicts.append(f"{table.name}.{column.name}: {reason}")
        elif not column.primary_key and bool(live.get("nullable", True)) != bool(column.nullable):
            logger.warning(
                "Column nullability differs from model",
                extra={
                    "details": {
                        "event": "schema_drift",
                        "extra": {
                            "table": table.name,
                            "column": column.name,
                            "live_nullable": live.get("nullable"),
                            "model_nullable": column.nullable,
                        },
                    }
                },
            )
    return missing, conflicts


def _reconcile(connection: Connection, metadata: MetaData) -> ReconcileReport:
    report = ReconcileReport()
    dialect_name = connection.dialect.name
    inspector = inspect(connection)

    missing_tables: list[Table] = []
    pending_columns: dict[str, tuple[Table, list[Column]]] = {}
    conflicts: list[str] = []

    for table in metadata.sorted_tables:
        if not inspector.has_table(table.name, schema=table.schema):
            missing_tables.append(table)
            continue
        missing, table_conflicts = _plan_table(
            table, inspector.get_columns(table.name, schema=table.schema), dialect_name
        )
        conflicts.extend(table_conflicts)
        if missing:
            pending_columns[table.name] = (table, missing)

    if conflicts:
        logger.error(
            "Live schema conflicts with models",
            extra={"details": {"event": "schema_conflict", "extra": {"conflicts": conflicts}}},
        )
        raise SchemaReconciliationError("schema conflict: " + "; ".join(conflicts))

    if missing_tables:
        metadata.create_all(connection, tables=missing_tables, checkfirst=True)
        report.created_tables = [table.name for table in missing_tables]
        logger.info(
            "Tables created",
            extra={"details": {"event": "schema_reconcile", "extra": {"tables": report.created_tables}}},
        )

    if pending_columns:
        operations = Operations(MigrationContext.configure(connection))
        for table_name, (table, columns) in pending_columns.items():
            for column in columns:
                operations.add_column(table_name, column, schema=table.schema)
                logger.info(
                    "Column added",
                    extra={
                        "details": {
                            "event": "schema_add_column",
                            "extra": {"table": table_name, "column": column.name},
                        }
                    },
                )
            report.added_columns[table_name] = [column.name for column in columns]

    return report


def reconcile_schema(engine: Engine, metadata: MetaData | None = None) -> ReconcileReport:
    """Create missing tables and add missing columns for ``metadata``.

    Each DDL statement runs in autocommit mode; there is no enclosing
    transaction, so a failure part way through leaves the earlier statements
    applied. Raises :class:`SchemaReconciliationError` on any failure.
    """
    metadata = metadata if metadata is not None else Base.metadata
    try:
        with engine.connect() as connection:
            connection = connection.execution_options(isolation_level="AUTOCOMMIT")
            report = _reconcile(connection, metadata)
    except SchemaReconciliationError:
        raise
    except SQLAlchemyError as exc:
        logger.error(
            "Schema reconciliation failed",
            extra={"details": {"event": "schema_reconcile", "extra": {"error": str(exc), "error_type": type(exc).__name__}}},
        )
        raise SchemaReconciliationError.from_driver(exc) from exc

    if not report.changed:
        logger.debug("Schema already up to date", extra={"details": {"event": "schema_reconcile"}})
    return report
