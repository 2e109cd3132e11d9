"""Helioviewer solar imagery (SDO AIA / HMI)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from space_api import keys
from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.errors import InvalidRequestError
from space_api.keys import SunMetadataKey
from space_api.upstream import Upstream, UpstreamError

logger = logging.getLogger(__name__)

HELIOVIEWER_API_URL = "https://api.helioviewer.org/v2"

METADATA_TTL_SECONDS = 60 * 60
DATA_SOURCES_TTL_SECONDS = 24 * 60 * 60
MAX_DAYS_BACK = 30
DEFAULT_IMAGE_SCALE = 2.4204409

# Helioviewer sourceId per wavelength
SOURCES = {
    "94": 8,
    "131": 9,
    "171": 10,
    "193": 11,
    "211": 12,
    "304": 13,
    "335": 14,
    "1600": 15,
    "1700": 16,
    "4500": 17,
    "continuum": 18,
    "magnetogram": 19,
}

WAVELENGTH_DESCRIPTIONS = {
    "94": "Flaring regions (94 Å)",
    "131": "Flaring regions (131 Å)",
    "171": "Quiet corona and coronal holes (171 Å)",
    "193": "Corona and hot flare plasma (193 Å)",
    "211": "Active regions (211 Å)",
    "304": "Chromosphere and transition region (304 Å)",
    "335": "Active regions (335 Å)",
    "1600": "Transition region (1600 Å)",
    "1700": "Temperature minimum and photosphere (1700 Å)",
    "4500": "Photosphere (4500 Å)",
    "continuum": "HMI Continuum - Photosphere",
    "magnetogram": "HMI Magnetogram - Magnetic field",
}


def get_available_wavelengths() -> List[str]:
    return list(SOURCES)


def get_wavelength_description(wavelength: str) -> str:
    return WAVELENGTH_DESCRIPTIONS.get(str(wavelength), f"Unknown wavelength: {wavelength}")


def source_id_for(wavelength: str) -> int:
    source_id = SOURCES.get(str(wavelength).lower())
    if source_id is None:
        raise InvalidRequestError(
            f"Unsupported wavelength: {wavelength}. "
            f"Available options: {', '.join(SOURCES)}")
    return source_id


def parse_helioviewer_date(date: str) -> datetime:
    """Accept 'latest', YYYY-MM-DD (noon UTC) or an ISO timestamp."""
    if not date or date == "latest":
        return datetime.now(timezone.utc)
    try:
        if "T" in date:
            parsed = datetime.fromisoformat(date.replace("Z", "+00:00"))
        else:
            parsed = datetime.strptime(date, "%Y-%m-%d").replace(hour=12)
    except ValueError:
        raise InvalidRequestError(
            f"Invalid date: {date}. Please use format YYYY-MM-DD or ISO format.")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def helioviewer_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


class SunImages:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    def register(self) -> None:
        self.cache.register_refresh_function(
            keys.SUN_DATA_SOURCES, self.fetch_data_sources, ttl=DATA_SOURCES_TTL_SECONDS)

    async def _closest_image(self, when: datetime, source_id: int) -> Optional[Dict[str, Any]]:
        data = await self.upstream.get_json(
            f"{HELIOVIEWER_API_URL}/getClosestImage/",
            params={"date": helioviewer_timestamp(when), "sourceId": source_id},
        )
        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError("Helioviewer", str(data["error"]))
        if not data or not data.get("id"):
            return None
        return data

    async def _most_recent_image(self, requested: datetime,
                                 source_id: int) -> Optional[Dict[str, Any]]:
        for days_back in range(1, MAX_DAYS_BACK):
            when = requested - timedelta(days=days_back)
            try:
                data = await self._closest_image(when, source_id)
            except (UpstreamError, httpx.HTTPError) as e:
                logger.info("No sun image found for date: %s (%s)", when.date().isoformat(), e)
                continue
            if data:
                logger.info("Found sun image for date: %s", when.date().isoformat())
                return data

        logger.info("No sun image found in the last %d days, trying current date", MAX_DAYS_BACK)
        return await self._closest_image(datetime.now(timezone.utc), source_id)

    async def fetch_metadata(self, date: str = "latest",
                             wavelength: str = "193") -> Dict[str, Any]:
        source_id = source_id_for(wavelength)
        requested = parse_helioviewer_date(date)

        data = await self._closest_image(requested, source_id)
        if data is None:
            logger.info("No sun image for %s, searching for most recent available",
                        helioviewer_timestamp(requested))
            data = await self._most_recent_image(requested, source_id)
        if data is None:
            raise UpstreamError("Helioviewer", f"No image available for {date}")

        image_date = parse_helioviewer_date(str(data["date"]).replace(" ", "T"))
        return {
            **data,
            "jp2Url": (f"{HELIOVIEWER_API_URL}/getJP2Image/"
                       f"?date={helioviewer_timestamp(image_date)}&sourceId={source_id}"),
            "wavelength": str(wavelength).lower(),
            "sourceId": source_id,
        }

    async def get_metadata(self, date: str = "latest",
                           wavelength: str = "193") -> Dict[str, Any]:
        source_id_for(wavelength)
        key = SunMetadataKey(date or "latest", wavelength)
        return await self.cache.get_or_fetch(
            key, lambda: self.fetch_metadata(date, wavelength), METADATA_TTL_SECONDS)

    async def get_image_url(self, date: str = "latest", wavelength: str = "193") -> str:
        metadata = await self.get_metadata(date, wavelength)
        return metadata["jp2Url"]

    async def fetch_data_sources(self) -> Dict[str, Any]:
        return await self.upstream.get_json(f"{HELIOVIEWER_API_URL}/getDataSources/")

    async def get_data_sources(self) -> Dict[str, Any]:
        return await self.cache.get_or_fetch(
            keys.SUN_DATA_SOURCES, self.fetch_data_sources, DATA_SOURCES_TTL_SECONDS)

    async def take_screenshot(self, date: str = "latest", wavelength: str = "193",
                              width: int = 1024, height: int = 1024,
                              image_scale: float = DEFAULT_IMAGE_SCALE) -> bytes:
        """Rendered PNG of the solar disk. Not cached."""
        source_id = source_id_for(wavelength)
        params = {
            "date": helioviewer_timestamp(parse_helioviewer_date(date)),
            "imageScale": image_scale,
            "layers": f"[{source_id},1,100]",
            "width": width,
            "height": height,
            "x0": 0,
            "y0": 0,
            "display": "true",
        }
        response = await self.upstream.get(
            f"{HELIOVIEWER_API_URL}/takeScreenshot/", params=params)
        content_type = response.headers.get("content-type", "")
        if "image/png" not in content_type:
            raise UpstreamError("Helioviewer", f"Screenshot API error: {response.text}")
        return response.content
