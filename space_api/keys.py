"""
Cache keys.

Feeds without parameters use the static names below; they are also the keys
the scheduled refresh sweep knows about. Parameterised queries use the typed
keys, which format every field deterministically so two differently
parameterised requests can never share an entry.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from typing import ClassVar, Optional

SOLAR_FLARES = "solarflares"
SEP = "sep"
CMES = "cmes"
NEOS = "neos"
LAUNCHES = "launches"
EVENTS = "events"
LAUNCH_VEHICLES = "launchVehicles"
SUN_DATA_SOURCES = "sun_data_sources"

COORDINATE_PRECISION = 4


def format_part(value) -> str:
    if value is None:
        return "default"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        # + 0.0 folds -0.0 into 0.0
        return f"{round(value, COORDINATE_PRECISION) + 0.0:.{COORDINATE_PRECISION}f}"
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%dT%H:%M")
    return str(value).strip()


def quarter_hour(dt: datetime) -> datetime:
    """Floor dt to the start of its 15-minute slot."""
    return dt.replace(minute=dt.minute - dt.minute % 15, second=0, microsecond=0)


@dataclass(frozen=True)
class CacheKey:
    namespace: ClassVar[str] = ""

    def __str__(self):
        parts = [format_part(getattr(self, f.name)) for f in fields(self)]
        return ":".join([self.namespace, *parts])


@dataclass(frozen=True)
class DonkiKey(CacheKey):
    namespace: ClassVar[str] = "donki"

    event: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass(frozen=True)
class EarthImageryKey(CacheKey):
    namespace: ClassVar[str] = "earth"

    date: str = "latest"
    variant: str = "natural"

    def __post_init__(self):
        object.__setattr__(self, "variant", self.variant.lower())


@dataclass(frozen=True)
class SunMetadataKey(CacheKey):
    namespace: ClassVar[str] = "sun_metadata"

    date: str = "latest"
    wavelength: str = "193"

    def __post_init__(self):
        object.__setattr__(self, "wavelength", str(self.wavelength).lower())


@dataclass(frozen=True)
class SatellitesAboveKey(CacheKey):
    namespace: ClassVar[str] = "satellites_above"

    latitude: float
    longitude: float
    altitude: float = 0.0
    radius: int = 7

    def __post_init__(self):
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))
        object.__setattr__(self, "altitude", float(self.altitude))
        object.__setattr__(self, "radius", int(self.radius))


@dataclass(frozen=True)
class SatellitePositionsKey(CacheKey):
    namespace: ClassVar[str] = "satellite_positions"

    satellite_id: int
    latitude: float
    longitude: float

    def __post_init__(self):
        object.__setattr__(self, "satellite_id", int(self.satellite_id))
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))


@dataclass(frozen=True)
class MoonKey(CacheKey):
    namespace: ClassVar[str] = "moon"

    latitude: float
    longitude: float
    slot: datetime

    def __post_init__(self):
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))


@dataclass(frozen=True)
class LauncherConfigurationsKey(CacheKey):
    namespace: ClassVar[str] = "launch_vehicles"

    search: Optional[str] = None
