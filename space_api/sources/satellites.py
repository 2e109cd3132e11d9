"""N2YO satellite tracking: satellites overhead and predicted positions."""

from typing import Any, Dict, Optional

from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.keys import COORDINATE_PRECISION, SatellitePositionsKey, SatellitesAboveKey
from space_api.upstream import Upstream, UpstreamError

N2YO_API_URL = "https://api.n2yo.com/rest/v1/satellite"

# N2YO allows ~1000 requests/hour; every response is reused for two minutes
TTL_SECONDS = 2 * 60
POSITION_SECONDS = 36


def _round(value: float) -> float:
    return round(float(value), COORDINATE_PRECISION)


class Satellites:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    async def _get(self, path: str) -> Dict[str, Any]:
        data = await self.upstream.get_json(
            f"{N2YO_API_URL}/{path}", params={"apiKey": self.settings.n2yo_api_key})
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError("N2YO", str(data["error"]))
        return data

    async def fetch_above(self, latitude: float, longitude: float,
                          altitude: float = 0, radius: int = 7,
                          category: int = 0) -> Dict[str, Any]:
        return await self._get(f"above/{latitude}/{longitude}/{altitude}/{radius}/{category}")

    async def fetch_positions(self, satellite_id: int, latitude: float,
                              longitude: float, altitude: float = 0) -> Dict[str, Any]:
        return await self._get(
            f"positions/{satellite_id}/{latitude}/{longitude}/{altitude}/{POSITION_SECONDS}")

    async def get_above(self, latitude: Optional[float] = None,
                        longitude: Optional[float] = None,
                        altitude: float = 0, radius: int = 7,
                        ttl: float = TTL_SECONDS) -> Dict[str, Any]:
        if latitude is None or longitude is None:
            latitude = self.settings.default_latitude
            longitude = self.settings.default_longitude
        latitude, longitude = _round(latitude), _round(longitude)
        key = SatellitesAboveKey(latitude, longitude, altitude, radius)
        return await self.cache.get_or_fetch(
            key,
            lambda: self.fetch_above(key.latitude, key.longitude, key.altitude, key.radius),
            ttl,
        )

    async def get_positions(self, satellite_id: int,
                            latitude: Optional[float] = None,
                            longitude: Optional[float] = None,
                            ttl: float = TTL_SECONDS) -> Dict[str, Any]:
        if latitude is None or longitude is None:
            latitude = self.settings.default_latitude
            longitude = self.settings.default_longitude
        latitude, longitude = _round(latitude), _round(longitude)
        key = SatellitePositionsKey(satellite_id, latitude, longitude)
        return await self.cache.get_or_fetch(
            key,
            lambda: self.fetch_positions(key.satellite_id, key.latitude, key.longitude),
            ttl,
        )
