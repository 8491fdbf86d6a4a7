"""Application configuration for the collection runner."""

from __future__ import annotations

from functools import cached_property, lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="COLLECTION_RUNNER_", extra="allow")

    # General
    environment: str = "development"
    log_level: str = "INFO"
    json_logs: bool = True

    # Collection store
    storage_dir: Path = Field(
        default_factory=lambda: Path.home() / ".collection-runner",
        description="Directory holding the collections file and backups",
    )
    collections_filename: str = "collections.json"
    history_limit: int = Field(default=20, ge=1, description="Executions kept per request")

    # Outbound HTTP
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every executed request",
    )
    follow_redirects: bool = True
    verify_tls: bool = True
    user_agent: str = Field(
        default="collection-runner/0.1",
        description="User-Agent sent when a request does not define its own",
    )

    @cached_property
    def collections_path(self) -> Path:
        return Path(self.storage_dir).expanduser() / self.collections_filename


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
