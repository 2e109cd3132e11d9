from space_api.sources.earth_imagery import EarthImagery
from space_api.sources.launches import Launches
from space_api.sources.moon import MoonData
from space_api.sources.near_earth_objects import NearEarthObjects
from space_api.sources.satellites import Satellites
from space_api.sources.space_weather import SpaceWeather
from space_api.sources.sun import SunImages

__all__ = [
    "EarthImagery",
    "Launches",
    "MoonData",
    "NearEarthObjects",
    "Satellites",
    "SpaceWeather",
    "SunImages",
]
