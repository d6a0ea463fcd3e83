"""
Pydantic models for the stored Soundraw credentials and local application settings.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

# Query prefixes used by the browser companion when opening a new tab
SEARCH_ENGINES = {
    "google": "https://www.google.com/search?q=",
    "duckduckgo": "https://duckduckgo.com/?q=",
    "bing": "https://www.bing.com/search?q=",
    "brave": "https://search.brave.com/search?q=",
    "ecosia": "https://www.ecosia.org/search?q=",
    "startpage": "https://www.startpage.com/sp/search?query=",
    "kagi": "https://kagi.com/search?q=",
}


def default_export_dir() -> Path:
    return Path("~/Music/Soundraw").expanduser()


class SoundrawConfig(BaseModel):
    """The persisted API credential record."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    token: str
    api_base_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("token")
    @classmethod
    def validate_token(cls, v: str) -> str:
        """Soundraw API tokens are UUID v4 strings."""
        if not UUID_V4_PATTERN.match(v):
            raise ValueError(
                "Token must be a valid UUID "
                "(e.g., 550e8400-e29b-41d4-a716-446655440000)."
            )
        return v

    @field_validator("api_base_url")
    @classmethod
    def validate_api_base_url(cls, v: str) -> str:
        """Accepts an absolute http(s) URL and drops any trailing slash."""
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                "API base URL must be a valid URL "
                "(e.g., https://api.example.com/api/internal/v4)."
            )
        return v.rstrip("/")


class AppSettings(BaseModel):
    """Local, non-secret settings stored next to the credentials."""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    export_dir: Path = Field(default_factory=default_export_dir)
    cache_dir: Path | None = None
    search_engine: str = "google"
    browser_app: str = "Zen"
    player_app: str = "QuickTime Player"

    @field_validator("search_engine")
    @classmethod
    def validate_search_engine(cls, v: str) -> str:
        v = v.lower()
        if v not in SEARCH_ENGINES:
            raise ValueError(
                f"Unknown search engine '{v}'. "
                f"Choose one of: {', '.join(sorted(SEARCH_ENGINES))}."
            )
        return v

    @field_validator("export_dir", "cache_dir")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("browser_app", "player_app")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        if not v:
            raise ValueError("Application name cannot be empty.")
        if '"' in v:
            raise ValueError("Application name cannot contain double quotes.")
        return v
