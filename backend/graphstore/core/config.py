"""Application configuration powered by Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Strongly typed application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: Literal["dev", "staging", "prod"] = Field(default="dev")
    project_name: str = Field(default="Graph Relational Store")
    version: str = Field(default="0.1.0")

    database_url: str = Field(default="postgresql+asyncpg://localhost/postgres")
    pool_size: int = Field(default=5, ge=1, le=50)
    schema_path: str = Field(default="./schema.json")

    development: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    cors_allowed_origins: list[str] = Field(default_factory=list)


@lru_cache
def get_settings() -> AppSettings:
    """Provide a cached singleton settings instance."""

    return AppSettings()
