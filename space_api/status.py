"""Operational status: data-source catalogue, request activity and cache health."""

import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Deque, Dict, Optional

from space_api import keys
from space_api.cache import TTLCache
from space_api.scheduler import REFRESH_INTERVAL_SECONDS

MAX_ACTIVITY_LOG_SIZE = 100
RECENT_ACTIVITY_SIZE = 20

DATA_SOURCES: Dict[str, Dict[str, str]] = {
    keys.SOLAR_FLARES: {
        "name": "Solar Flares",
        "description": "NASA DONKI Solar Flare data",
        "cache_duration": "1 hour",
        "api_source": "NASA DONKI API",
        "endpoint": "/solarflares",
    },
    keys.SEP: {
        "name": "Solar Energetic Particles (SEP)",
        "description": "NASA DONKI SEP event data",
        "cache_duration": "1 hour",
        "api_source": "NASA DONKI API",
        "endpoint": "/sep",
    },
    keys.CMES: {
        "name": "Coronal Mass Ejections (CMEs)",
        "description": "NASA DONKI CME data",
        "cache_duration": "1 hour",
        "api_source": "NASA DONKI API",
        "endpoint": "/cmes",
    },
    keys.NEOS: {
        "name": "Near Earth Objects",
        "description": "NASA NEO feed data",
        "cache_duration": "1 hour",
        "api_source": "NASA NEO API",
        "endpoint": "/neos",
    },
    keys.LAUNCHES: {
        "name": "Upcoming Launches",
        "description": "Space flight launch data",
        "cache_duration": "2 hours",
        "api_source": "The Space Devs API",
        "endpoint": "/spaceflight/launches",
    },
    keys.EVENTS: {
        "name": "Space Events",
        "description": "Upcoming space events",
        "cache_duration": "2 hours",
        "api_source": "The Space Devs API",
        "endpoint": "/spaceflight/events",
    },
    keys.LAUNCH_VEHICLES: {
        "name": "Launch Vehicles",
        "description": "Launch vehicle configurations",
        "cache_duration": "1 month",
        "api_source": "The Space Devs API",
        "endpoint": "/spaceflight/launcher-configurations",
    },
    keys.SUN_DATA_SOURCES: {
        "name": "Sun Data Sources",
        "description": "Helioviewer API data sources",
        "cache_duration": "24 hours",
        "api_source": "Helioviewer API",
        "endpoint": "/sun/datasources",
    },
}

# Dynamic keys are described by their namespace prefix
NAMESPACE_SOURCES: Dict[str, Dict[str, str]] = {
    keys.DonkiKey.namespace: {
        "name": "DONKI custom range",
        "description": "NASA DONKI event data for a requested date range",
        "refresh_interval": "On demand",
        "cache_duration": "1 hour",
        "api_source": "NASA DONKI API",
        "endpoint": "/solarflares, /sep, /cmes",
    },
    keys.EarthImageryKey.namespace: {
        "name": "Earth Imagery",
        "description": "NASA EPIC image list",
        "refresh_interval": "On demand",
        "cache_duration": "2 hours",
        "api_source": "NASA EPIC API",
        "endpoint": "/earthnow/list",
    },
    keys.SunMetadataKey.namespace: {
        "name": "Sun Image Metadata",
        "description": "Closest Helioviewer image for a date and wavelength",
        "refresh_interval": "On demand",
        "cache_duration": "1 hour",
        "api_source": "Helioviewer API",
        "endpoint": "/sun/metadata",
    },
    keys.SatellitesAboveKey.namespace: {
        "name": "Satellites Above",
        "description": "Satellites currently above an observer",
        "refresh_interval": "On demand",
        "cache_duration": "2 minutes",
        "api_source": "N2YO API",
        "endpoint": "/satellites-above",
    },
    keys.SatellitePositionsKey.namespace: {
        "name": "Satellite Positions",
        "description": "Predicted ground track for one satellite",
        "refresh_interval": "On demand",
        "cache_duration": "2 minutes",
        "api_source": "N2YO API",
        "endpoint": "/satellite-positions",
    },
    keys.MoonKey.namespace: {
        "name": "Moon Data",
        "description": "Moon imagery, phase, rise/set times, and illumination data",
        "refresh_interval": "On demand",
        "cache_duration": "15 minutes",
        "api_source": "NASA Dial-a-Moon & Skyfield",
        "endpoint": "/moon",
    },
    keys.LauncherConfigurationsKey.namespace: {
        "name": "Launch Vehicle Search",
        "description": "Launch vehicle configurations matching a search",
        "refresh_interval": "On demand",
        "cache_duration": "1 month",
        "api_source": "The Space Devs API",
        "endpoint": "/spaceflight/launcher-configurations",
    },
}

UNKNOWN_SOURCE = {
    "name": None,
    "description": "Unknown data source",
    "refresh_interval": "Unknown",
    "cache_duration": "Unknown",
    "api_source": "Unknown",
    "endpoint": "Unknown",
}


def format_interval(seconds: float) -> str:
    """Human-readable interval, e.g. 900 -> '15 minutes'."""
    seconds = int(seconds)
    for unit, size in (("hour", 3600), ("minute", 60)):
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"


def scheduled_sources(refresh_interval: float) -> Dict[str, Dict[str, str]]:
    """Static data sources with the configured refresh interval filled in."""
    every = format_interval(refresh_interval)
    return {key: {**source, "refresh_interval": every}
            for key, source in DATA_SOURCES.items()}


def describe_key(key: str,
                 refresh_interval: float = REFRESH_INTERVAL_SECONDS) -> Dict[str, Any]:
    if key in DATA_SOURCES:
        return {**DATA_SOURCES[key], "refresh_interval": format_interval(refresh_interval)}
    namespace = key.split(":", 1)[0]
    if namespace in NAMESPACE_SOURCES:
        return NAMESPACE_SOURCES[namespace]
    return {**UNKNOWN_SOURCE, "name": key}


class ActivityLog:
    """Ring buffer of recent requests, newest first."""

    def __init__(self, maxlen: int = MAX_ACTIVITY_LOG_SIZE):
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def __len__(self):
        return len(self._entries)

    def record(self, **activity) -> None:
        activity.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        self._entries.appendleft(activity)

    def recent(self, limit: int = RECENT_ACTIVITY_SIZE):
        return list(self._entries)[:limit]

    def summary(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        hour_ago = now - timedelta(hours=1)

        endpoint_stats: Dict[str, Dict[str, Any]] = {}
        requests_last_hour = 0
        for activity in self._entries:
            timestamp = datetime.fromisoformat(activity["timestamp"])
            if timestamp > hour_ago:
                requests_last_hour += 1

            stats = endpoint_stats.setdefault(
                activity["path"], {"count": 0, "avg_duration_ms": 0.0, "last_request": None})
            stats["count"] += 1
            stats["avg_duration_ms"] += (
                activity["duration_ms"] - stats["avg_duration_ms"]) / stats["count"]
            if stats["last_request"] is None or activity["timestamp"] > stats["last_request"]:
                stats["last_request"] = activity["timestamp"]

        for stats in endpoint_stats.values():
            stats["avg_duration_ms"] = round(stats["avg_duration_ms"], 1)

        return {
            "total_requests": len(self._entries),
            "requests_last_hour": requests_last_hour,
            "recent_activity": self.recent(),
            "endpoint_stats": endpoint_stats,
        }


def format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m {seconds % 60}s"


def build_status(cache: TTLCache, activity: ActivityLog, started_at: float,
                 refresh_interval: float, version: str,
                 environment: str = "development") -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    cache_status = cache.get_status()

    entries = {}
    for key, status in cache_status.items():
        entries[key] = {
            **status,
            **describe_key(key, refresh_interval),
            "last_updated": (now - timedelta(seconds=status["age_seconds"])).isoformat(),
            "expires_at": (now + timedelta(
                seconds=status["time_until_expiry_seconds"])).isoformat(),
            "status": "healthy" if status["is_valid"] else "expired",
        }

    healthy = sum(1 for status in cache_status.values() if status["is_valid"])
    return {
        "server": {
            "status": "online",
            "uptime": format_uptime(time.monotonic() - started_at),
            "timestamp": now.isoformat(),
            "version": version,
            "environment": environment,
        },
        "cache": {
            "total_entries": len(cache_status),
            "healthy_entries": healthy,
            "expired_entries": len(cache_status) - healthy,
            "pending_fetches": cache.pending_keys(),
            "registered_refresh_keys": cache.registered_keys(),
            "entries": entries,
        },
        "activity": activity.summary(now),
        "data_sources": scheduled_sources(refresh_interval),
        "refresh_schedule": {
            "next_refresh": (now + timedelta(seconds=refresh_interval)).isoformat(),
            "interval_seconds": refresh_interval,
        },
    }
