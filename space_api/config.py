"""Environment-driven settings."""

import os
from dataclasses import dataclass, field
from typing import List

from space_api.cache import DEFAULT_TTL_SECONDS
from space_api.scheduler import CLEANUP_INTERVAL_SECONDS, REFRESH_INTERVAL_SECONDS

# 40°41'34.4"N 73°58'54.2"W (New York)
NYC_LATITUDE = 40.692889
NYC_LONGITUDE = -73.981722


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    nasa_api_key: str = "DEMO_KEY"
    n2yo_api_key: str = ""
    port: int = 8000
    log_level: str = "INFO"
    cache_default_ttl: float = DEFAULT_TTL_SECONDS
    cache_cleanup_interval: float = CLEANUP_INTERVAL_SECONDS
    cache_refresh_interval: float = REFRESH_INTERVAL_SECONDS
    refresh_on_startup: bool = True
    http_timeout: float = 10.0
    default_latitude: float = NYC_LATITUDE
    default_longitude: float = NYC_LONGITUDE
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


def load_settings() -> Settings:
    return Settings(
        nasa_api_key=os.getenv("NASA_API_KEY", "DEMO_KEY"),
        n2yo_api_key=os.getenv("N2YO_API_KEY", ""),
        port=int(os.getenv("PORT", 8000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cache_default_ttl=float(os.getenv("CACHE_DEFAULT_TTL", DEFAULT_TTL_SECONDS)),
        cache_cleanup_interval=float(
            os.getenv("CACHE_CLEANUP_INTERVAL", CLEANUP_INTERVAL_SECONDS)),
        cache_refresh_interval=float(
            os.getenv("CACHE_REFRESH_INTERVAL", REFRESH_INTERVAL_SECONDS)),
        refresh_on_startup=_env_bool("REFRESH_ON_STARTUP", True),
        http_timeout=float(os.getenv("HTTP_TIMEOUT", 10.0)),
        default_latitude=float(os.getenv("DEFAULT_LATITUDE", NYC_LATITUDE)),
        default_longitude=float(os.getenv("DEFAULT_LONGITUDE", NYC_LONGITUDE)),
        cors_origins=[
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ],
    )
