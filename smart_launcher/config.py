"""Runtime configuration for Smart Launcher."""

import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from smart_launcher.models.schemas import SearchEngine

# Load environment variables from .env (if present)
load_dotenv()

DEFAULT_CURRENCY_API_URL = (
    "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest"
    "/v1/currencies/{ticker}.json"
)
DEFAULT_SUGGESTIONS_URL = "https://www.startpage.com/osuggestions?q={query}"


def _env(name: str, default: str) -> str:
    return os.getenv(f"SMART_LAUNCHER_{name}", default)


def _env_flag(name: str, default: str = "false") -> bool:
    return _env(name, default).lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str = "") -> List[str]:
    return [item.strip() for item in _env(name, default).split(",") if item.strip()]


class Settings(BaseModel):
    """User settings snapshot handed to parsers, plugins and the aggregator."""

    # Currency the single-currency conversions resolve to
    base_currency: str = Field(default_factory=lambda: _env("BASE_CURRENCY", "usd"))

    default_search_engine: SearchEngine = Field(
        default_factory=lambda: SearchEngine(
            _env("SEARCH_ENGINE", SearchEngine.STARTPAGE.value).upper()
        )
    )

    # Incognito disables history recording
    incognito_enabled: bool = Field(default_factory=lambda: _env_flag("INCOGNITO"))
    clipboard_recording_enabled: bool = Field(
        default_factory=lambda: _env_flag("CLIPBOARD_RECORDING")
    )

    # Filesystem search
    fs_search_min_length: int = Field(
        default_factory=lambda: int(_env("FS_SEARCH_MIN_LENGTH", "3"))
    )
    fs_search_debounce_ms: int = Field(
        default_factory=lambda: int(_env("FS_SEARCH_DEBOUNCE_MS", "400"))
    )
    fs_search_home_only: bool = Field(
        default_factory=lambda: _env_flag("FS_SEARCH_HOME_ONLY", "true")
    )
    fs_search_extensions: List[str] = Field(
        default_factory=lambda: _env_list("FS_SEARCH_EXTENSIONS")
    )

    # Network
    fetch_timeout: float = Field(
        default_factory=lambda: float(_env("FETCH_TIMEOUT", "5"))
    )
    currency_api_url: str = Field(
        default_factory=lambda: _env("CURRENCY_API_URL", DEFAULT_CURRENCY_API_URL)
    )
    currency_cache_ttl: int = Field(
        default_factory=lambda: int(_env("CURRENCY_CACHE_TTL", "3600"))
    )
    suggestions_url: str = Field(
        default_factory=lambda: _env("SUGGESTIONS_URL", DEFAULT_SUGGESTIONS_URL)
    )

    # Local data
    data_dir: str = Field(
        default_factory=lambda: os.path.expanduser(_env("DATA_DIR", "~/.smart-launcher"))
    )
    app_directories: List[str] = Field(
        default_factory=lambda: _env_list(
            "APP_DIRECTORIES", "/Applications,/System/Applications"
        )
    )
    notes_dir: str = Field(
        default_factory=lambda: os.path.expanduser(
            _env("NOTES_DIR", "~/.smart-launcher/notes")
        )
    )

    @field_validator("base_currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()

    @property
    def history_path(self) -> str:
        return os.path.join(self.data_dir, "history.json")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings loaded from the environment."""
    return Settings()
