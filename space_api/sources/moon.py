"""
Moon data.

Imagery, distance and orientation come from NASA's Dial-a-Moon service.
Rise/set times, illumination and the phase name are computed locally with
Skyfield for the requested observer.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import numpy as np
from skyfield import almanac
from skyfield.api import load, wgs84

from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.keys import COORDINATE_PRECISION, MoonKey, quarter_hour
from space_api.upstream import Upstream

DIAL_A_MOON_URL = "https://svs.gsfc.nasa.gov/api/dialamoon"

TTL_SECONDS = 15 * 60
SYNODIC_MONTH_DAYS = 29.53

# ============================================================================
# SKYFIELD INITIALIZATION (Lazy loaded)
# ============================================================================

_ts = None
_eph = None


def get_skyfield():
    """Lazy load Skyfield data (downloads ephemeris on first use)."""
    global _ts, _eph
    if _ts is None:
        _ts = load.timescale()
    if _eph is None:
        _eph = load('de421.bsp')  # ~10MB download, cached locally
    return _ts, _eph


def get_moon_phase_name(phase_value: float) -> str:
    """
    Convert phase value (0-1) to phase name.

    0.00 = New Moon
    0.25 = First Quarter
    0.50 = Full Moon
    0.75 = Last Quarter
    """
    if 0.00 <= phase_value < 0.03:
        return "New Moon"
    elif 0.03 <= phase_value < 0.22:
        return "Waxing Crescent"
    elif 0.22 <= phase_value < 0.28:
        return "First Quarter"
    elif 0.28 <= phase_value < 0.47:
        return "Waxing Gibbous"
    elif 0.47 <= phase_value < 0.53:
        return "Full Moon"
    elif 0.53 <= phase_value < 0.72:
        return "Waning Gibbous"
    elif 0.72 <= phase_value < 0.78:
        return "Last Quarter"
    elif 0.78 <= phase_value <= 1.00:
        return "Waning Crescent"
    else:
        return "Unknown"


def local_moon_almanac(latitude: float, longitude: float,
                       when: datetime) -> Dict[str, Any]:
    """Rise/set (UTC HH:MM), illumination and phase for one observer and day."""
    ts, eph = get_skyfield()
    moon = eph['moon']

    t = ts.from_datetime(when)

    # Sun-moon ecliptic longitude difference, 0-360 over one synodic month
    phase_angle = almanac.moon_phase(eph, t).degrees
    phase_value = float(phase_angle / 360.0)
    illumination = float((1 - np.cos(np.radians(phase_angle))) / 2)

    location = wgs84.latlon(latitude, longitude)
    t0 = ts.utc(when.year, when.month, when.day, 0, 0)
    t1 = ts.utc(when.year, when.month, when.day, 23, 59)
    times, events = almanac.find_discrete(
        t0, t1, almanac.risings_and_settings(eph, moon, location))

    moonrise = None
    moonset = None
    for time, event in zip(times, events):
        if event == 1:  # Rising
            moonrise = time.utc_strftime('%H:%M')
        elif event == 0:  # Setting
            moonset = time.utc_strftime('%H:%M')

    return {
        "phase": round(phase_value, 3),
        "phase_name": get_moon_phase_name(phase_value),
        "illumination_percent": round(illumination * 100, 1),
        "age_days": round(phase_value * SYNODIC_MONTH_DAYS, 1),
        "moonrise_utc": moonrise,
        "moonset_utc": moonset,
    }


class MoonData:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    async def fetch_dial_a_moon(self, when: datetime) -> Dict[str, Any]:
        return await self.upstream.get_json(
            f"{DIAL_A_MOON_URL}/{when.strftime('%Y-%m-%dT%H:%M')}")

    async def fetch(self, latitude: float, longitude: float,
                    when: Optional[datetime] = None) -> Dict[str, Any]:
        when = when or datetime.now(timezone.utc)
        nasa, local = await asyncio.gather(
            self.fetch_dial_a_moon(when),
            asyncio.to_thread(local_moon_almanac, latitude, longitude, when),
        )

        return {
            "phase": {
                "name": local["phase_name"],
                "percent": nasa.get("phase"),
                "illumination_percent": local["illumination_percent"],
                "age_days": nasa.get("age", local["age_days"]),
            },
            "times": {
                "moonrise_utc": local["moonrise_utc"],
                "moonset_utc": local["moonset_utc"],
            },
            "position": {
                "distance_km": nasa.get("distance"),
                "diameter_arcseconds": nasa.get("diameter"),
                "j2000_ra": nasa.get("j2000_ra"),
                "j2000_dec": nasa.get("j2000_dec"),
                "subsolar_lon": nasa.get("subsolar_lon"),
                "subsolar_lat": nasa.get("subsolar_lat"),
                "subearth_lon": nasa.get("subearth_lon"),
                "subearth_lat": nasa.get("subearth_lat"),
                "posangle_degrees": nasa.get("posangle"),
            },
            "images": {
                "standard": nasa.get("image"),
                "highres": nasa.get("image_highres"),
                "south_up": nasa.get("su_image"),
                "south_up_highres": nasa.get("su_image_highres"),
            },
            "obscuration_percent": nasa.get("obscuration"),
            "location": {"latitude": latitude, "longitude": longitude},
            "time_utc": when.strftime('%Y-%m-%dT%H:%M'),
        }

    async def get(self, latitude: Optional[float] = None,
                  longitude: Optional[float] = None) -> Dict[str, Any]:
        if latitude is None or longitude is None:
            latitude = self.settings.default_latitude
            longitude = self.settings.default_longitude
        latitude = round(float(latitude), COORDINATE_PRECISION)
        longitude = round(float(longitude), COORDINATE_PRECISION)
        now = datetime.now(timezone.utc)
        key = MoonKey(latitude, longitude, quarter_hour(now))
        return await self.cache.get_or_fetch(
            key, lambda: self.fetch(key.latitude, key.longitude, now), TTL_SECONDS)
