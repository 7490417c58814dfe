"""Environment-driven settings for the AngelCard browser suite and webhook receiver."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SuiteSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    base_url: str = Field(default="https://www.angelcard.us", alias="BASE_URL")
    platform_url: str = Field(default="https://platform.angelcard.us", alias="PLATFORM_URL")

    browser: Literal["chromium", "firefox", "webkit"] = Field(default="chromium", alias="BROWSER")
    device: str | None = Field(default=None, alias="DEVICE")
    headless: bool = Field(default=True, alias="HEADLESS")
    viewport_width: int = Field(default=1280, alias="VIEWPORT_WIDTH")
    viewport_height: int = Field(default=720, alias="VIEWPORT_HEIGHT")

    # milliseconds
    test_timeout: int = Field(default=60000, alias="DEFAULT_TIMEOUT")
    action_timeout: int = Field(default=15000, alias="ACTION_TIMEOUT")
    navigation_timeout: int = Field(default=30000, alias="NAVIGATION_TIMEOUT")
    probe_timeout: int = Field(default=2000, ge=1000, le=3000, alias="PROBE_TIMEOUT")
    retries: int = Field(default=1, ge=0, alias="RETRIES")
    screenshot_delay_ms: int = Field(default=0, ge=0, alias="SCREENSHOT_DELAY_MS")

    report_dir: Path = Field(default=Path("data/runs"), alias="REPORT_DIR")
    log_dir: Path = Field(default=Path("data/logs"), alias="LOG_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    selector_overrides: Path = Field(default=Path("data/selectors_overrides.json"), alias="SELECTOR_OVERRIDES")

    webhook_port: int = Field(default=3000, alias="WEBHOOK_PORT")
    webhook_secret: str = Field(default="default_secret", alias="WEBHOOK_SECRET")
    webhook_url: str | None = Field(default=None, alias="WEBHOOK_URL")
    build_id: str = Field(default="local", alias="BUILD_ID")

    @property
    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}


@lru_cache
def get_settings() -> SuiteSettings:
    """Return a cached settings instance."""
    return SuiteSettings()
