"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Tab Timer process configuration. All values come from environment variables.

    User-facing preferences (typing cadence, notification toggles, auto-delete
    window) live in :mod:`tabtimer.settings_store` instead, because they are
    edited at runtime through the control surface.
    """

    app_name: str = Field(default="Tab Timer")

    # Storage
    database_path: Path = Field(default=Path("data/tabtimer.db"))
    session_storage_enabled: bool = Field(default=True)

    # Scheduler
    poll_interval_seconds: float = Field(default=1.0)
    sweep_interval_seconds: float = Field(default=60.0)

    # Execution
    load_wait_timeout_seconds: float = Field(default=30.0)
    load_settle_seconds: float = Field(default=1.0)

    # Browser automation (Playwright)
    browser_profile_dir: Path = Field(default=Path("data/browser_profile"))
    browser_headless: bool = Field(default=False)
    browser_timeout_ms: int = Field(default=30000)
    start_urls: str = Field(default="")

    # Control surface
    control_host: str = Field(default="127.0.0.1")
    control_port: int = Field(default=8765)

    # Notifications
    notification_channel: str = Field(default="desktop")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_start_urls(self) -> list[str]:
        """Parse START_URLS into a list of URLs to open at launch."""
        if not self.start_urls.strip():
            return []
        return [url.strip() for url in self.start_urls.split(",") if url.strip()]


settings = Settings()
