import os
import sys
from pathlib import Path

import pytest
from dotenv import load_dotenv
from sqlalchemy.engine import make_url

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

# Load env vars so tests can read DATABASE_URL_TEST or other overrides
load_dotenv()

from serverdb.core.config import DatabaseConfig
from serverdb.db.session import create_db_engine


@pytest.fixture()
def sqlite_config(tmp_path: Path) -> DatabaseConfig:
    return DatabaseConfig(url=f"sqlite:///{tmp_path / 'serverdb.sqlite'}")


@pytest.fixture()
def sqlite_engine(sqlite_config: DatabaseConfig):
    engine = create_db_engine(sqlite_config)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def pg_test_url() -> str:
    env_url = os.getenv("DATABASE_URL_TEST")
    if not env_url:
        pytest.skip("DATABASE_URL_TEST not set")
    url = make_url(env_url)
    if url.drivername != "postgresql+psycopg2":
        url = url.set(drivername="postgresql+psycopg2")
    return url.render_as_string(hide_password=False)


@pytest.fixture(scope="session")
def pg_database(pg_test_url: str):
    # Create/drop the test database using psycopg2 in AUTOCOMMIT mode to avoid transaction issues
    import psycopg2
    from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

    url = make_url(pg_test_url)
    admin = url.set(database="postgres")
    dsn = (
        f"dbname={admin.database} user={admin.username} password={admin.password or ''} "
        f"host={admin.host or 'localhost'} port={admin.port or 5432}"
    )
    db_name = url.database

    conn = psycopg2.connect(dsn)
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1 FROM pg_database WHERE datname=%s", (db_name,))
            if cur.fetchone() is None:
                cur.execute(f'CREATE DATABASE "{db_name}"')
    finally:
        conn.close()

    yield url

    conn = psycopg2.connect(dsn)
    conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
    try:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT pg_terminate_backend(pid) FROM pg_stat_activity WHERE datname = %s AND pid <> pg_backend_pid()",
                (db_name,),
            )
            cur.execute(f'DROP DATABASE IF EXISTS "{db_name}"')
    finally:
        conn.close()


@pytest.fixture()
def pg_config(pg_database) -> DatabaseConfig:
    config = DatabaseConfig(url=pg_database.render_as_string(hide_password=False))
    engine = create_db_engine(config)
    try:
        with engine.begin() as connection:
            connection.exec_driver_sql("DROP TABLE IF EXISTS users")
            connection.exec_driver_sql("DROP TABLE IF EXISTS alembic_version")
    finally:
        engine.dispose()
    return config
