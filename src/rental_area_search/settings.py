from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from rental_area_search import __version__


DEFAULT_SOURCE_URL = "https://www.openrent.co.uk/search/search_bycommutetime"
DEFAULT_LISTING_URL_BASE = "https://www.openrent.co.uk/"
PACKAGE_STATIC_DIR = Path(__file__).resolve().parent / "static"


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = str(raw).strip()
    return v or default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = float(str(raw).strip())
    except ValueError:
        return default
    if v <= 0:
        return default
    return v


@dataclass(frozen=True)
class Settings:
    """Process configuration, read from RAS_* environment variables.

    Unset, empty or unparsable values fall back to the defaults.
    """

    source_url: str
    listing_url_base: str
    http_timeout_s: float
    sandbox_time_limit_s: float
    sandbox_memory_limit_mb: float
    static_dir: Path
    user_agent: str

    @classmethod
    def from_env(cls) -> "Settings":
        static_raw = os.getenv("RAS_STATIC_DIR", "").strip()
        return cls(
            source_url=_env_str("RAS_SOURCE_URL", DEFAULT_SOURCE_URL),
            listing_url_base=_env_str("RAS_LISTING_URL_BASE", DEFAULT_LISTING_URL_BASE),
            http_timeout_s=_env_float("RAS_HTTP_TIMEOUT_S", 30.0),
            sandbox_time_limit_s=_env_float("RAS_SANDBOX_TIME_LIMIT_S", 5.0),
            sandbox_memory_limit_mb=_env_float("RAS_SANDBOX_MEMORY_LIMIT_MB", 128.0),
            static_dir=Path(static_raw) if static_raw else PACKAGE_STATIC_DIR,
            user_agent=_env_str("RAS_USER_AGENT", f"rental-area-search/{__version__}"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def reset_settings_cache() -> None:
    """Test helper to force env re-read."""

    get_settings.cache_clear()
