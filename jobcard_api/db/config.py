from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_SQLITE = re.compile(r"^sqlite(\+\w+)?://")
_POSTGRES = re.compile(r"^postgres(ql)?(\+\w+)?://")


class Settings(BaseSettings):
    """
    Where the workflow store lives and how long to wait for it.

    DATABASE_URL (postgresql:// or sqlite://) takes precedence. Deployments
    that hand out Postgres credentials piecewise can set POSTGRES_URL or the
    POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB / POSTGRES_HOST /
    POSTGRES_PORT group instead.
    """

    DATABASE_URL: Optional[str] = None
    POSTGRES_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432

    SQL_ECHO: bool = Field(default=False, description="Log every SQL statement")
    DB_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        gt=0,
        description="Driver connect/statement timeout; expiry surfaces as TransientError",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def database_url(self) -> str:
        url = self.DATABASE_URL or self.POSTGRES_URL
        if url:
            return url
        if not (self.POSTGRES_USER and self.POSTGRES_PASSWORD and self.POSTGRES_DB):
            raise ValueError(
                "Database configuration missing: set DATABASE_URL, POSTGRES_URL, or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        return bool(_SQLITE.match(self.database_url))

    @property
    def async_database_url(self) -> str:
        """database_url rewritten for asyncpg (Postgres) or aiosqlite (SQLite)."""
        if self.is_sqlite:
            return _SQLITE.sub("sqlite+aiosqlite://", self.database_url)
        return _POSTGRES.sub("postgresql+asyncpg://", self.database_url)

    @property
    def sync_database_url(self) -> str:
        """Driver-less URL, used for Alembic offline SQL generation."""
        if self.is_sqlite:
            return _SQLITE.sub("sqlite://", self.database_url)
        return _POSTGRES.sub("postgresql://", self.database_url)

    @property
    def connect_args(self) -> dict:
        if self.is_sqlite:
            return {"timeout": self.DB_TIMEOUT_SECONDS}
        # asyncpg: connect timeout and per-statement timeout
        return {"timeout": self.DB_TIMEOUT_SECONDS, "command_timeout": self.DB_TIMEOUT_SECONDS}


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Database settings read fresh from the environment."""
    return Settings()
