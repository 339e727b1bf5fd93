"""
Database configuration settings.

The durable store is PostgreSQL through asyncpg in deployments and SQLite
through aiosqlite in tests and single-node runs. POSTGRES_URL takes a full
URL (sync-style postgres URLs are upgraded to asyncpg); otherwise the URL
is assembled from the POSTGRES_HOST/PORT/USER/PASSWORD/DB parts.

Dependencies: pydantic, pydantic_settings
System role: Database connection configuration for ORM
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from docingest.configs.base import BaseSettings

_ASYNC_DRIVER_PREFIXES = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


class DatabaseSettings(BaseSettings):
    """Connection, pool and schema bootstrap settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POSTGRES_",
        case_sensitive=False,
        extra="ignore",
    )

    url: str = Field(default="", description="Full database URL; wins over the parts below")
    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    user: str = Field(default="postgres")
    password: str = Field(default="postgres")
    db: str = Field(default="docingest")
    sslmode: str = Field(default="disable", description="'require' adds ssl=require for asyncpg")

    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=20, ge=0)
    pool_timeout: int = Field(default=30, ge=1, description="Seconds to wait for a pooled connection")
    echo_sql: bool = Field(default=False)
    auto_create_tables: bool = Field(default=True, description="Run create_all when services start")

    @property
    def async_database_url(self) -> str:
        """
        URL with an async driver.

        Returns:
            str: asyncpg or aiosqlite URL for create_async_engine
        """
        if self.url:
            for prefix, async_prefix in _ASYNC_DRIVER_PREFIXES.items():
                if self.url.startswith(prefix):
                    return async_prefix + self.url[len(prefix):]
            return self.url

        ssl_param = "?ssl=require" if self.sslmode == "require" else ""
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db}{ssl_param}"
