"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_ENDPOINT = "https://git.code.tencent.com/api/v3/"


@dataclass(frozen=True)
class Settings:
    endpoint: str = DEFAULT_ENDPOINT
    token: str | None = None
    cache_ttl: float | None = None  # seconds; None = process lifetime
    log_level: str = "INFO"
    log_format: str = "console"


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def get_settings() -> Settings:
    """Read settings from ``TGIT_BRIDGE_*`` environment variables.

    TGIT_BRIDGE_ENDPOINT   — API endpoint (default: public instance)
    TGIT_BRIDGE_TOKEN      — personal access token
    TGIT_BRIDGE_CACHE_TTL  — data source cache TTL in seconds, 0 disables expiry
    """
    ttl = _env_float("TGIT_BRIDGE_CACHE_TTL", 0)
    return Settings(
        endpoint=os.environ.get("TGIT_BRIDGE_ENDPOINT", DEFAULT_ENDPOINT),
        token=os.environ.get("TGIT_BRIDGE_TOKEN") or None,
        cache_ttl=ttl if ttl > 0 else None,
        log_level=os.environ.get("TGIT_BRIDGE_LOG_LEVEL", "INFO").upper(),
        log_format=os.environ.get("TGIT_BRIDGE_LOG_FORMAT", "console").lower(),
    )
