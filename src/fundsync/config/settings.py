"""Application settings, read from FUNDSYNC_* environment variables or .env."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DATABASE_FILE_NAME = "funds.db"


def get_default_data_dir() -> Path:
    return Path.home() / "Documents" / "Fund Sync Data"


class Settings(BaseSettings):
    """
    Runtime configuration.

    Every field can be set as FUNDSYNC_<FIELD_NAME>, e.g.
    FUNDSYNC_USE_STUB_PROVIDER=true for offline use.
    """

    model_config = SettingsConfigDict(
        env_prefix="FUNDSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Fund Valuation Sync"

    # Storage; database_url wins over the file derived from data_dir
    data_dir: Optional[Path] = None
    database_url: Optional[str] = None

    log_level: str = "INFO"
    log_to_file: bool = False

    # Minimum seconds between provider fetches; the settings store may override
    refresh_interval_seconds: int = Field(default=300, gt=0)

    # Provider endpoints ({code} is the 6-digit fund code)
    live_estimate_url: str = "https://fundgz.1234567.com.cn/js/{code}.js"
    settled_value_url: str = "https://fund.eastmoney.com/pingzhongdata/{code}.js"
    history_url: str = "https://api.fund.eastmoney.com/f10/lsjz"
    fund_search_url: str = "https://fund.eastmoney.com/js/fundcode_search.js"

    # Client-side waits per endpoint
    live_estimate_timeout_seconds: float = Field(default=3.0, gt=0)
    settled_value_timeout_seconds: float = Field(default=10.0, gt=0)
    # Socket ceiling for a dispatched request
    transport_timeout_seconds: float = Field(default=30.0, gt=0)
    fetch_max_workers: int = Field(default=8, ge=1)
    use_stub_provider: bool = False

    valuation_cache_ttl_minutes: int = Field(default=5, ge=0)
    fund_codes_ttl_days: int = Field(default=7, ge=0)

    # Background refresh: once at startup, then a due-check every interval
    auto_refresh: bool = True
    auto_refresh_check_seconds: float = Field(default=60.0, gt=0)

    def get_data_dir(self) -> Path:
        """Data directory, created on first use."""
        path = self.data_dir or get_default_data_dir()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_database_url(self) -> str:
        return self.database_url or f"sqlite:///{self.get_data_dir() / DATABASE_FILE_NAME}"

    def get_log_dir(self) -> Path:
        path = self.get_data_dir() / "logs"
        path.mkdir(parents=True, exist_ok=True)
        return path


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first call."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Install a settings instance (tests, embedding apps)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Forget the current settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
