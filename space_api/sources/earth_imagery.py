"""NASA EPIC (Earth Polychromatic Imaging Camera) imagery."""

from typing import Any, Dict, List

from space_api.cache import TTLCache
from space_api.config import Settings
from space_api.dates import parse_date
from space_api.errors import InvalidRequestError, NotFoundError
from space_api.keys import EarthImageryKey
from space_api.upstream import Upstream

EPIC_API_URL = "https://api.nasa.gov/EPIC/api"
EPIC_ARCHIVE_URL = "https://epic.gsfc.nasa.gov/archive"
VARIANTS = ("natural", "enhanced")

TTL_SECONDS = 2 * 60 * 60


def image_urls(image: Dict[str, Any], variant: str) -> Dict[str, str]:
    """Archive URLs for one EPIC image record."""
    img_date = image["date"].split()[0]
    year, month, day = img_date.split("-")
    base_url = f"{EPIC_ARCHIVE_URL}/{variant}/{year}/{month}/{day}"
    return {
        "image_url": f"{base_url}/png/{image['image']}.png",
        "thumbnail_url": f"{base_url}/thumbs/{image['image']}.jpg",
    }


class EarthImagery:

    def __init__(self, cache: TTLCache, upstream: Upstream, settings: Settings):
        self.cache = cache
        self.upstream = upstream
        self.settings = settings

    async def fetch_list(self, date: str = "latest",
                         variant: str = "natural") -> List[Dict[str, Any]]:
        variant = variant.lower()
        if variant not in VARIANTS:
            raise InvalidRequestError(f"Image variant must be one of: {', '.join(VARIANTS)}")

        if date and date != "latest":
            parse_date(date)
            url = f"{EPIC_API_URL}/{variant}/date/{date}"
        else:
            url = f"{EPIC_API_URL}/{variant}"

        return await self.upstream.get_json(
            url, params={"api_key": self.settings.nasa_api_key})

    async def get_list(self, date: str = "latest",
                       variant: str = "natural") -> List[Dict[str, Any]]:
        key = EarthImageryKey(date or "latest", variant)
        return await self.cache.get_or_fetch(
            key, lambda: self.fetch_list(date, variant), TTL_SECONDS)

    async def get_metadata(self, date: str = "latest", variant: str = "natural",
                           index: int = 0) -> Dict[str, Any]:
        images = await self.get_list(date, variant)
        if not images:
            raise NotFoundError(f"No Earth images available for {date}")
        if not 0 <= index < len(images):
            raise InvalidRequestError(
                f"Image index {index} out of range (0-{len(images) - 1})")

        image = images[index]
        return {**image, **image_urls(image, variant.lower()), "variant": variant.lower()}

    async def get_image_url(self, date: str = "latest", variant: str = "natural",
                            index: int = 0) -> str:
        metadata = await self.get_metadata(date, variant, index)
        return metadata["image_url"]
