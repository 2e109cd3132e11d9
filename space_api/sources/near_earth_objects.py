"""NASA NeoWs near-Earth object feed."""

from typing import Any, Optional

from space_api import keys
from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.dates import get_dates
from space_api.upstream import Upstream

NEO_FEED_URL = "https://api.nasa.gov/neo/rest/v1/feed"

TTL_SECONDS = 60 * 60


class NearEarthObjects:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    def register(self) -> None:
        self.cache.register_refresh_function(keys.NEOS, self.fetch_feed, ttl=TTL_SECONDS)

    async def fetch_feed(self, start_date: Optional[str] = None,
                         end_date: Optional[str] = None) -> Any:
        # NeoWs rejects ranges longer than seven days
        dates = get_dates()
        params = {
            "start_date": start_date or dates["one_week_ago"],
            "end_date": end_date or dates["today"],
            "api_key": self.settings.nasa_api_key,
        }
        return await self.upstream.get_json(NEO_FEED_URL, params=params)

    async def get_feed(self) -> Any:
        return await self.cache.get_or_fetch(keys.NEOS, self.fetch_feed, TTL_SECONDS)
