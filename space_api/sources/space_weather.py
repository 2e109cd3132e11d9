"""NASA DONKI space weather feeds: solar flares, CMEs and SEP events."""

from typing import Any, Optional

from space_api import keys
from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.errors import InvalidRequestError
from space_api.dates import get_dates, parse_date
from space_api.upstream import Upstream

DONKI_URLS = {
    "solarflares": "https://api.nasa.gov/DONKI/FLR",
    "cmes": "https://api.nasa.gov/DONKI/CME",
    "sep": "https://api.nasa.gov/DONKI/SEP",
}

STATIC_KEYS = {
    "solarflares": keys.SOLAR_FLARES,
    "cmes": keys.CMES,
    "sep": keys.SEP,
}

TTL_SECONDS = 60 * 60


class SpaceWeather:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    def register(self) -> None:
        for event, key in STATIC_KEYS.items():
            self.cache.register_refresh_function(
                key, lambda event=event: self.fetch(event), ttl=TTL_SECONDS)

    async def fetch(self, event: str, start_date: Optional[str] = None,
                    end_date: Optional[str] = None) -> Any:
        if event not in DONKI_URLS:
            raise InvalidRequestError(
                f"Unknown DONKI event type: {event}. "
                f"Available options: {', '.join(DONKI_URLS)}")
        dates = get_dates()
        params = {
            "startDate": start_date or dates["one_week_ago"],
            "endDate": end_date or dates["today"],
            "api_key": self.settings.nasa_api_key,
        }
        return await self.upstream.get_json(DONKI_URLS[event], params=params)

    async def get(self, event: str, start_date: Optional[str] = None,
                  end_date: Optional[str] = None) -> Any:
        """Cached DONKI feed; the default one-week window uses the static key."""
        if start_date is None and end_date is None and event in STATIC_KEYS:
            key = STATIC_KEYS[event]
        else:
            for value in (start_date, end_date):
                if value is not None:
                    parse_date(value)
            key = keys.DonkiKey(event, start_date, end_date)
        return await self.cache.get_or_fetch(
            key, lambda: self.fetch(event, start_date, end_date), TTL_SECONDS)
