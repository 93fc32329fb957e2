import pytest
from alembic.util import CommandError
from sqlalchemy import inspect, text

from serverdb.core.config import DatabaseConfig
from serverdb.core.exceptions import SchemaReconciliationError
from serverdb.db.migrations import apply_migrations, get_alembic_config
from serverdb.db.reconcile import reconcile_schema


def test_alembic_config_escapes_percent_in_password():
    config = DatabaseConfig(user="app", password="p%40ss", host="db", name="bti")

    alembic_cfg = get_alembic_config(config)

    assert alembic_cfg.get_main_option("sqlalchemy.url") == config.sqlalchemy_url().render_as_string(hide_password=False)
    assert alembic_cfg.get_main_option("script_location").endswith("alembic")


def test_upgrade_twice_keeps_single_revision(sqlite_engine, sqlite_config):
    apply_migrations(sqlite_engine, sqlite_config)
    apply_migrations(sqlite_engine, sqlite_config)

    with sqlite_engine.connect() as connection:
        versions = connection.execute(text("SELECT version_num FROM alembic_version")).scalars().all()
    assert versions == ["0001_create_users"]


def test_migrated_schema_matches_models(sqlite_engine, sqlite_config):
    apply_migrations(sqlite_engine, sqlite_config)

    report = reconcile_schema(sqlite_engine)

    assert not report.changed
    assert inspect(sqlite_engine).has_table("users")


def test_unknown_stamped_revision_raises_schema_error(sqlite_engine, sqlite_config):
    with sqlite_engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL PRIMARY KEY)"))
        connection.execute(text("INSERT INTO alembic_version (version_num) VALUES ('9999_unknown')"))

    with pytest.raises(SchemaReconciliationError) as exc_info:
        apply_migrations(sqlite_engine, sqlite_config)

    assert type(exc_info.value) is SchemaReconciliationError
    assert isinstance(exc_info.value.orig, CommandError)
    assert "9999_unknown" in str(exc_info.value)
    assert not inspect(sqlite_engine).has_table("users")
