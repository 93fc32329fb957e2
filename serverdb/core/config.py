from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url

SchemaStrategy = Literal["reconcile", "alembic"]


class DatabaseConfig(BaseModel):
    """Connection parameters for the PostgreSQL instance.

    ``url`` overrides the discrete fields when set (useful for tests and for
    deployments that hand out a single DSN).
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = ""
    name: str = "postgres"
    timezone: str = "Europe/London"
    sslmode: str = "disable"
    prefer_simple_protocol: bool = True
    connect_timeout: int | None = 10
    echo: bool = False
    url: str | None = None

    def sqlalchemy_url(self) -> URL:
        if self.url:
            return make_url(self.url)
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )

    def redacted_url(self) -> str:
        return self.sqlalchemy_url().render_as_string(hide_password=True)


class Settings(BaseSettings):
    app_name: str = Field(alias="APP_NAME", default="server-bti")
    service_name: str = Field(alias="SERVICE_NAME", default="serverdb")
    environment: str = Field(alias="ENVIRONMENT", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    database_host: str = Field(alias="DATABASE_HOST", default="localhost")
    database_port: int = Field(alias="DATABASE_PORT", default=5432)
    database_user: str = Field(alias="DATABASE_USER", default="postgres")
    database_password: str = Field(alias="DATABASE_PASSWORD", default="")
    database_name: str = Field(alias="DATABASE_NAME", default="postgres")
    database_timezone: str = Field(alias="DATABASE_TIMEZONE", default="Europe/London")
    database_sslmode: str = Field(alias="DATABASE_SSLMODE", default="disable")
    database_prefer_simple_protocol: bool = Field(alias="DATABASE_PREFER_SIMPLE_PROTOCOL", default=True)
    database_connect_timeout: int | None = Field(alias="DATABASE_CONNECT_TIMEOUT", default=10)
    database_echo: bool = Field(alias="DATABASE_ECHO", default=False)
    database_url: str | None = Field(alias="DATABASE_URL", default=None)

    schema_strategy: SchemaStrategy = Field(alias="SCHEMA_STRATEGY", default="reconcile")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def database_config(self) -> DatabaseConfig:
        return DatabaseConfig(
            host=self.database_host,
            port=self.database_port,
            user=self.database_user,
            password=self.database_password,
            name=self.database_name,
            timezone=self.database_timezone,
            sslmode=self.database_sslmode,
            prefer_simple_protocol=self.database_prefer_simple_protocol,
            connect_timeout=self.database_connect_timeout,
            echo=self.database_echo,
            url=self.database_url or None,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
