"""The Space Devs Launch Library: launches, events and launch vehicles."""

from typing import Any, Dict, Optional

from space_api import keys
from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.upstream import Upstream

LAUNCH_API_URL = "https://ll.thespacedevs.com/2.2.0/launch/upcoming/"
EVENT_API_URL = "https://ll.thespacedevs.com/2.2.0/event/upcoming/"
LAUNCHER_CONFIGURATIONS_API_URL = "https://ll.thespacedevs.com/2.3.0/launcher_configurations/"

LAUNCHES_TTL_SECONDS = 2 * 60 * 60
LAUNCH_VEHICLES_TTL_SECONDS = 30 * 24 * 60 * 60


class Launches:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    def register(self) -> None:
        self.cache.register_refresh_function(
            keys.LAUNCHES, self.fetch_upcoming_launches, ttl=LAUNCHES_TTL_SECONDS)
        self.cache.register_refresh_function(
            keys.EVENTS, self.fetch_upcoming_events, ttl=LAUNCHES_TTL_SECONDS)
        self.cache.register_refresh_function(
            keys.LAUNCH_VEHICLES, self.fetch_launcher_configurations,
            ttl=LAUNCH_VEHICLES_TTL_SECONDS)

    async def fetch_upcoming_launches(self) -> Dict[str, Any]:
        return await self.upstream.get_json(LAUNCH_API_URL)

    async def fetch_upcoming_events(self) -> Dict[str, Any]:
        return await self.upstream.get_json(EVENT_API_URL)

    async def fetch_launcher_configurations(self, search: Optional[str] = None) -> Dict[str, Any]:
        params = {"search": search} if search else None
        return await self.upstream.get_json(LAUNCHER_CONFIGURATIONS_API_URL, params=params)

    async def get_upcoming_launches(self) -> Dict[str, Any]:
        return await self.cache.get_or_fetch(
            keys.LAUNCHES, self.fetch_upcoming_launches, LAUNCHES_TTL_SECONDS)

    async def get_next_launch(self) -> Optional[Dict[str, Any]]:
        launches = await self.get_upcoming_launches()
        results = launches.get("results") or []
        return results[0] if results else None

    async def get_upcoming_events(self) -> Dict[str, Any]:
        return await self.cache.get_or_fetch(
            keys.EVENTS, self.fetch_upcoming_events, LAUNCHES_TTL_SECONDS)

    async def get_launcher_configurations(self, search: Optional[str] = None) -> Dict[str, Any]:
        search = search.strip() if search else None
        key = (keys.LAUNCH_VEHICLES if not search
               else keys.LauncherConfigurationsKey(search.lower()))
        return await self.cache.get_or_fetch(
            key, lambda: self.fetch_launcher_configurations(search),
            LAUNCH_VEHICLES_TTL_SECONDS)
