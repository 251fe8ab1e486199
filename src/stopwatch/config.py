"""Configuration settings for Stopwatch."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from stopwatch.analysis.statistics import TYPE_BREAKDOWN_THRESHOLD
from stopwatch.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Settings loaded from ``STOPWATCH_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="STOPWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # CircleCI
    circle_ci_token: str | None = None
    circle_ci_org_slug: str | None = None  # e.g. "gh/my-org"
    circle_ci_project_name: str | None = None
    api_base_url: str = "https://circleci.com/api/v2"
    api_v1_base_url: str = "https://circleci.com/api/v1.1"
    request_timeout: float = 30.0

    # Fetching
    batch_size: int = 5
    fetch_days: int = 7
    fetch_max_items: int | None = 100

    # Retry
    retry_max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 60.0

    # Output
    outputs_dir: Path = Path("outputs")

    # Analysis
    type_breakdown_threshold: int = TYPE_BREAKDOWN_THRESHOLD

    # Logging
    log_level: str = "INFO"
    log_json_format: bool = False

    def require_credentials(self) -> tuple[str, str, str]:
        """Return (token, org_slug, project_name) or raise ConfigurationError."""
        missing = [
            name
            for name, value in (
                ("STOPWATCH_CIRCLE_CI_TOKEN", self.circle_ci_token),
                ("STOPWATCH_CIRCLE_CI_ORG_SLUG", self.circle_ci_org_slug),
                ("STOPWATCH_CIRCLE_CI_PROJECT_NAME", self.circle_ci_project_name),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Required environment variables are not set: {', '.join(missing)}"
            )
        return self.circle_ci_token, self.circle_ci_org_slug, self.circle_ci_project_name  # type: ignore[return-value]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
