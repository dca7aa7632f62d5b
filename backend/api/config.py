"""Application settings via pydantic-settings."""

from __future__ import annotations

import json
from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FEED_URL = "https://aronday.tines.com/api/public/murder-trials"


def _parse_cors_origins(raw: str) -> list[str]:
    """Parse a CORS origins string, tolerating non-JSON formats.

    Some deploy CLIs strip inner quotes, turning valid JSON like
    ``["https://a.com"]`` into ``[https://a.com]``.  This handles:
    - Valid JSON arrays: ``["https://a.com","https://b.com"]``
    - Bracketed non-JSON: ``[https://a.com,https://b.com]``
    - Comma-separated: ``https://a.com,https://b.com``
    """
    try:
        parsed = json.loads(raw)
        if isinstance(parsed, list):
            return [str(x) for x in parsed]
    except (json.JSONDecodeError, ValueError):
        pass

    stripped = raw.strip("[] ")
    return [s.strip().strip('"').strip("'") for s in stripped.split(",") if s.strip()]


class Settings(BaseSettings):
    """Weekboard API configuration.

    Values are loaded from environment variables, falling back to a ``.env``
    file in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Lap feed; proxy_url (a route adding CORS headers) wins when set
    feed_url: str = DEFAULT_FEED_URL
    proxy_url: str = ""
    request_timeout_s: float = 10.0

    # Scheduling
    refresh_interval_minutes: int = 10
    scheduler_enabled: bool = True

    # IANA zone for the Sunday-to-Sunday window; empty means system local time
    board_timezone: str = ""

    cors_origins_raw: str = '["http://localhost:3000"]'

    debug: bool = False

    @property
    def effective_feed_url(self) -> str:
        return self.proxy_url or self.feed_url

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from the raw string."""
        return _parse_cors_origins(self.cors_origins_raw)

    @property
    def timezone(self) -> tzinfo | None:
        """Board timezone, or None for system local time."""
        return ZoneInfo(self.board_timezone) if self.board_timezone else None
