from __future__ import annotations

import json
import logging
from typing import Annotated, Any, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Service-level settings read from the environment (or .env).

    Database connection settings live in jobcard_api.db.config.Settings.
    """

    APP_NAME: str = "Job Card Workflow API"
    APP_DESCRIPTION: str = (
        "Production job-card workflow engine: step pipeline, QA gate, "
        "rejection/rework handling and the material request ledger."
    )
    APP_VERSION: str = "0.1.0"

    # CORS_ORIGINS accepts "https://a,https://b" as well as a JSON array
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    RUN_MIGRATIONS_ON_STARTUP: bool = Field(default=True, description="alembic upgrade head at startup")
    AUTO_SEED: bool = Field(default=False, description="Create the demo plan at startup")

    ENFORCE_MATERIAL_GATE: bool = Field(
        default=True,
        description="Keep job cards on step 1 until their plan's material requests are fulfilled",
    )
    AUTO_MATERIAL_REQUEST: bool = Field(
        default=True,
        description="Open the initial material request when a plan is created",
    )

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> List[str]:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                try:
                    value = json.loads(text)
                except ValueError:
                    value = text.strip("[]").split(",")
            else:
                value = text.split(",")
        if not isinstance(value, list):
            return ["*"]
        origins = [str(item).strip() for item in value if str(item).strip()]
        return origins or ["*"]

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _known_level(cls, value: Any) -> str:
        name = str(value or "INFO").strip().upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"Unknown log level: {value}")
        return name

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.LOG_LEVEL)


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Fresh settings from the current environment."""
    return AppSettings()
