"""
Space API
FastAPI proxy for space data (solar weather, Earth and sun imagery, near-Earth
objects, satellites, moon data, launches).

Every upstream call goes through one shared TTL cache; feeds without
parameters are re-fetched on a schedule so they stay warm.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, BackgroundTasks, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel

from space_api import __version__
from space_api.cache import NoRefreshFunctionError, TTLCache
from space_api.config import Settings, load_settings
from space_api.errors import InvalidRequestError, NotFoundError
from space_api.scheduler import CacheScheduler
from space_api.sources import (
    EarthImagery,
    Launches,
    MoonData,
    NearEarthObjects,
    Satellites,
    SpaceWeather,
    SunImages,
)
from space_api.sources.sun import (
    DEFAULT_IMAGE_SCALE,
    get_available_wavelengths,
    get_wavelength_description,
)
from space_api.status import ActivityLog, build_status
from space_api.upstream import Upstream, UpstreamError

logger = logging.getLogger(__name__)

API_VERSION = "1.0"
DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'
DATE_OR_LATEST_PATTERN = r'^(latest|\d{4}-\d{2}-\d{2})$'

# ============================================================================
# SERVICES (composition root)
# ============================================================================


@dataclass
class Services:
    settings: Settings
    cache: TTLCache
    scheduler: CacheScheduler
    activity: ActivityLog
    space_weather: SpaceWeather
    earth_imagery: EarthImagery
    sun_images: SunImages
    near_earth_objects: NearEarthObjects
    launches: Launches
    satellites: Satellites
    moon: MoonData
    started_at: float


def build_services(settings: Settings,
                   transport: Optional[httpx.AsyncBaseTransport] = None,
                   cache: Optional[TTLCache] = None) -> Services:
    """Create the cache and every collaborator, and register refresh producers."""
    cache = cache if cache is not None else TTLCache(default_ttl=settings.cache_default_ttl)
    upstream = Upstream(timeout=settings.http_timeout, transport=transport)
    services = Services(
        settings=settings,
        cache=cache,
        scheduler=CacheScheduler(
            cache,
            cleanup_interval=settings.cache_cleanup_interval,
            refresh_interval=settings.cache_refresh_interval,
        ),
        activity=ActivityLog(),
        space_weather=SpaceWeather(cache, upstream, settings),
        earth_imagery=EarthImagery(cache, upstream, settings),
        sun_images=SunImages(cache, upstream, settings),
        near_earth_objects=NearEarthObjects(cache, upstream, settings),
        launches=Launches(cache, upstream, settings),
        satellites=Satellites(cache, upstream, settings),
        moon=MoonData(cache, upstream, settings),
        started_at=time.monotonic(),
    )

    # Satellites and moon are keyed by observer location, so they are only
    # populated on demand
    services.space_weather.register()
    services.near_earth_objects.register()
    services.launches.register()
    services.sun_images.register()
    return services


def get_services(request: Request) -> Services:
    return request.app.state.services


# ============================================================================
# HELPER: STANDARD RESPONSE FORMAT
# ============================================================================

def success_response(data: Any, **metadata) -> Dict:
    """Create standard success response."""
    return {
        "status": "success",
        "data": data,
        "metadata": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "api_version": API_VERSION,
            **metadata
        }
    }


def error_response(code: str, message: str, status_code: int = 500):
    """Create standard error response and raise HTTPException."""
    raise HTTPException(
        status_code=status_code,
        detail={
            "status": "error",
            "error": {
                "code": code,
                "message": message
            },
            "metadata": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "api_version": API_VERSION
            }
        }
    )


def upstream_error(exc: Exception, service: str):
    """Translate a failed fetch into an HTTP error. Nothing is cached."""
    if isinstance(exc, HTTPException):
        raise exc
    if isinstance(exc, httpx.TimeoutException):
        error_response("SERVICE_UNAVAILABLE",
                       f"{service} temporarily unavailable", 503)
    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code == 429:
            error_response("RATE_LIMITED", f"{service} rate limit exceeded", 429)
        error_response("SERVICE_ERROR",
                       f"{service} error: {exc.response.status_code}", 503)
    if isinstance(exc, httpx.HTTPError):
        error_response("SERVICE_UNAVAILABLE", f"{service} unreachable: {exc}", 503)
    if isinstance(exc, UpstreamError):
        error_response("UPSTREAM_ERROR", str(exc), 502)
    if isinstance(exc, NotFoundError):
        error_response("NOT_FOUND", str(exc), 404)
    if isinstance(exc, InvalidRequestError):
        error_response("INVALID_REQUEST", str(exc), 400)
    logger.exception("Unexpected error from %s", service)
    error_response("INTERNAL_ERROR", f"Unexpected error: {exc}", 500)


router = APIRouter()

# ============================================================================
# HEALTH / ROOT
# ============================================================================


@router.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "service": "space-api"
    }


@router.get("/")
async def root():
    """API information and documentation links."""
    return {
        "service": "Space API",
        "version": __version__,
        "description": "Cached proxy for space data APIs",
        "documentation": "/docs",
        "health": "/health",
        "status": "/status",
        "endpoints": {
            "solar_flares": "/solarflares",
            "sep": "/sep",
            "cmes": "/cmes",
            "earth_imagery": "/earthnow/list",
            "sun_imagery": "/sun/metadata",
            "neos": "/neos",
            "moon": "/moon",
            "satellites_above": "/satellites-above",
            "satellite_positions": "/satellite-positions",
            "launches": "/spaceflight/launches",
            "events": "/spaceflight/events",
            "cache_status": "/cache/status",
        }
    }

# ============================================================================
# SPACE WEATHER (NASA DONKI)
# ============================================================================


async def _space_weather(services: Services, event: str, label: str,
                         start_date: Optional[str], end_date: Optional[str]):
    try:
        data = await services.space_weather.get(event, start_date, end_date)
    except Exception as e:
        upstream_error(e, f"NASA DONKI {label} service")
    return success_response(data, source="NASA DONKI")


@router.get("/solarflares")
async def get_solar_flares(
    start_date: Optional[str] = Query(None, alias="startDate", pattern=DATE_PATTERN),
    end_date: Optional[str] = Query(None, alias="endDate", pattern=DATE_PATTERN),
    services: Services = Depends(get_services),
):
    """Solar flares, defaulting to the last seven days."""
    return await _space_weather(services, "solarflares", "solar flare",
                                start_date, end_date)


@router.get("/sep")
async def get_sep(
    start_date: Optional[str] = Query(None, alias="startDate", pattern=DATE_PATTERN),
    end_date: Optional[str] = Query(None, alias="endDate", pattern=DATE_PATTERN),
    services: Services = Depends(get_services),
):
    return await _space_weather(services, "sep", "SEP", start_date, end_date)


@router.get("/cmes")
async def get_cmes(
    start_date: Optional[str] = Query(None, alias="startDate", pattern=DATE_PATTERN),
    end_date: Optional[str] = Query(None, alias="endDate", pattern=DATE_PATTERN),
    services: Services = Depends(get_services),
):
    return await _space_weather(services, "cmes", "CME", start_date, end_date)

# ============================================================================
# EARTH IMAGERY (NASA EPIC)
# ============================================================================


@router.get("/earthnow/list")
async def get_earth_imagery_list(
    date: str = Query("latest", pattern=DATE_OR_LATEST_PATTERN),
    variant: str = Query("natural", pattern='^(natural|enhanced)$'),
    services: Services = Depends(get_services),
):
    try:
        images = await services.earth_imagery.get_list(date, variant)
    except Exception as e:
        upstream_error(e, "NASA EPIC service")
    return success_response(images, source="NASA EPIC", images_available=len(images))


@router.get("/earthnow/metadata")
async def get_earth_imagery_metadata(
    date: str = Query("latest", pattern=DATE_OR_LATEST_PATTERN),
    variant: str = Query("natural", pattern='^(natural|enhanced)$'),
    index: int = Query(0, ge=0),
    services: Services = Depends(get_services),
):
    try:
        metadata = await services.earth_imagery.get_metadata(date, variant, index)
    except Exception as e:
        upstream_error(e, "NASA EPIC service")
    return success_response(metadata, source="NASA EPIC")


@router.get("/earthnow/imageurl")
async def get_earth_image_url(
    date: str = Query("latest", pattern=DATE_OR_LATEST_PATTERN),
    variant: str = Query("natural", pattern='^(natural|enhanced)$'),
    index: int = Query(0, ge=0),
    services: Services = Depends(get_services),
):
    try:
        url = await services.earth_imagery.get_image_url(date, variant, index)
    except Exception as e:
        upstream_error(e, "NASA EPIC service")
    return success_response({"url": url}, source="NASA EPIC")


@router.get("/earthnow/image")
async def get_earth_image(
    date: str = Query("latest", pattern=DATE_OR_LATEST_PATTERN),
    variant: str = Query("natural", pattern='^(natural|enhanced)$'),
    index: int = Query(0, ge=0),
    services: Services = Depends(get_services),
):
    """Redirect to the EPIC archive PNG."""
    try:
        url = await services.earth_imagery.get_image_url(date, variant, index)
    except Exception as e:
        upstream_error(e, "NASA EPIC service")
    return RedirectResponse(url)

# ============================================================================
# SUN IMAGERY (Helioviewer)
# ============================================================================


@router.get("/sun/metadata")
async def get_sun_metadata(
    date: str = Query("latest"),
    wavelength: str = Query("193"),
    services: Services = Depends(get_services),
):
    try:
        metadata = await services.sun_images.get_metadata(date, wavelength)
    except Exception as e:
        upstream_error(e, "Helioviewer service")
    return success_response(metadata, source="Helioviewer")


@router.get("/sun/imageurl")
async def get_sun_image_url(
    date: str = Query("latest"),
    wavelength: str = Query("193"),
    services: Services = Depends(get_services),
):
    try:
        url = await services.sun_images.get_image_url(date, wavelength)
    except Exception as e:
        upstream_error(e, "Helioviewer service")
    return success_response({"url": url}, source="Helioviewer")


@router.get("/sun/image")
async def get_sun_image(
    date: str = Query("latest"),
    wavelength: str = Query("193"),
    width: int = Query(1024, ge=64, le=4096),
    height: int = Query(1024, ge=64, le=4096),
    image_scale: float = Query(DEFAULT_IMAGE_SCALE, alias="imageScale", gt=0),
    services: Services = Depends(get_services),
):
    """Rendered PNG screenshot of the sun (not cached)."""
    try:
        png = await services.sun_images.take_screenshot(
            date, wavelength, width, height, image_scale)
    except Exception as e:
        upstream_error(e, "Helioviewer screenshot service")
    return Response(content=png, media_type="image/png")


@router.get("/sun/datasources")
async def get_sun_data_sources(services: Services = Depends(get_services)):
    try:
        data = await services.sun_images.get_data_sources()
    except Exception as e:
        upstream_error(e, "Helioviewer service")
    return success_response(data, source="Helioviewer")


@router.get("/sun/wavelengths")
async def get_sun_wavelengths():
    wavelengths = get_available_wavelengths()
    return success_response({
        "available_wavelengths": wavelengths,
        "wavelength_info": [
            {"wavelength": w, "description": get_wavelength_description(w)}
            for w in wavelengths
        ],
    })

# ============================================================================
# NEAR EARTH OBJECTS (NASA NeoWs)
# ============================================================================


@router.get("/neos")
async def get_neos(services: Services = Depends(get_services)):
    try:
        data = await services.near_earth_objects.get_feed()
    except Exception as e:
        upstream_error(e, "NASA NEO service")
    return success_response(data, source="NASA NeoWs")

# ============================================================================
# MOON (NASA Dial-a-Moon + Skyfield)
# ============================================================================


@router.get("/moon")
async def get_moon(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="Observer latitude"),
    lon: Optional[float] = Query(None, ge=-180, le=180, description="Observer longitude"),
    services: Services = Depends(get_services),
):
    """Moon phase, rise/set and imagery; defaults to New York."""
    try:
        data = await services.moon.get(lat, lon)
    except Exception as e:
        upstream_error(e, "Moon data service")
    return success_response(data, source="NASA Dial-a-Moon",
                            location_provided=lat is not None and lon is not None)

# ============================================================================
# SATELLITES (N2YO)
# ============================================================================


@router.get("/satellites-above")
async def get_satellites_above(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    alt: float = Query(0, ge=0, description="Observer altitude (m)"),
    radius: int = Query(7, ge=0, le=90, description="Search radius (degrees)"),
    services: Services = Depends(get_services),
):
    try:
        data = await services.satellites.get_above(lat, lon, alt, radius)
    except Exception as e:
        upstream_error(e, "Satellite tracking service")
    return success_response(data, source="N2YO")


@router.get("/satellite-positions")
async def get_satellite_positions(
    satid: int = Query(..., ge=1, description="NORAD catalogue id"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
    services: Services = Depends(get_services),
):
    try:
        data = await services.satellites.get_positions(satid, lat, lon)
    except Exception as e:
        upstream_error(e, "Satellite tracking service")
    return success_response(data, source="N2YO")

# ============================================================================
# SPACEFLIGHT (The Space Devs)
# ============================================================================


@router.get("/spaceflight/launches")
async def get_launches(services: Services = Depends(get_services)):
    try:
        data = await services.launches.get_upcoming_launches()
    except Exception as e:
        upstream_error(e, "Launch Library service")
    return success_response(data, source="The Space Devs")


@router.get("/spaceflight/next-launch")
async def get_next_launch(services: Services = Depends(get_services)):
    try:
        launch = await services.launches.get_next_launch()
    except Exception as e:
        upstream_error(e, "Launch Library service")
    if launch is None:
        error_response("NO_UPCOMING_LAUNCH", "No upcoming launches scheduled", 404)
    return success_response(launch, source="The Space Devs")


@router.get("/spaceflight/events")
async def get_events(services: Services = Depends(get_services)):
    try:
        data = await services.launches.get_upcoming_events()
    except Exception as e:
        upstream_error(e, "Launch Library service")
    return success_response(data, source="The Space Devs")


@router.get("/spaceflight/launcher-configurations")
async def get_launcher_configurations(
    search: Optional[str] = Query(None, max_length=100),
    services: Services = Depends(get_services),
):
    try:
        data = await services.launches.get_launcher_configurations(search)
    except Exception as e:
        upstream_error(e, "Launch Library service")
    return success_response(data, source="The Space Devs")

# ============================================================================
# CACHE / STATUS
# ============================================================================


class RefreshRequest(BaseModel):
    key: Optional[str] = None


@router.get("/cache/status")
async def get_cache_status(services: Services = Depends(get_services)):
    return services.cache.get_status()


@router.get("/cache/item")
async def get_cache_item(
    key: str = Query(..., min_length=1),
    services: Services = Depends(get_services),
):
    info = services.cache.peek(key)
    if not info["exists"]:
        error_response("CACHE_MISS", f"No cache entry for key: {key}", 404)
    return {"key": key, **info}


@router.get("/status")
async def get_status(services: Services = Depends(get_services)):
    return build_status(
        services.cache,
        services.activity,
        started_at=services.started_at,
        refresh_interval=services.settings.cache_refresh_interval,
        version=__version__,
        environment=os.getenv("ENVIRONMENT", "development"),
    )


@router.post("/cache/refresh")
async def refresh_cache(
    background_tasks: BackgroundTasks,
    body: Optional[RefreshRequest] = None,
    services: Services = Depends(get_services),
):
    """Refresh one key now, or schedule a refresh of every registered key."""
    key = body.key if body else None
    if not key:
        background_tasks.add_task(services.cache.refresh_all)
        return JSONResponse(
            status_code=202,
            content=success_response({
                "message": "All cache entries are being refreshed",
                "keys": services.cache.registered_keys(),
            }),
        )

    try:
        await services.cache.refresh(key)
    except NoRefreshFunctionError as e:
        error_response("NO_REFRESH_FUNCTION", str(e), 404)
    except Exception as e:
        upstream_error(e, f"Refresh of {key}")
    return success_response({
        "message": f"Cache refreshed for {key}",
        "key": key,
        "entry": {k: v for k, v in services.cache.peek(key).items() if k != "value"},
    })

# ============================================================================
# APPLICATION
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services = app.state.services
    services.scheduler.start(refresh_now=services.settings.refresh_on_startup)
    try:
        yield
    finally:
        await services.scheduler.stop()


def create_app(settings: Optional[Settings] = None,
               transport: Optional[httpx.AsyncBaseTransport] = None,
               cache: Optional[TTLCache] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Space API",
        description="Cached proxy for space data APIs",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.services = build_services(settings, transport=transport, cache=cache)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def track_activity(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        app.state.services.activity.record(
            method=request.method,
            path=request.url.path,
            query=dict(request.query_params),
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
            user_agent=request.headers.get("user-agent", "Unknown"),
            ip=request.client.host if request.client else "Unknown",
        )
        return response

    app.include_router(router)
    return app


app = create_app()

# ============================================================================
# APPLICATION STARTUP
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=app.state.services.settings.port,
        log_level="info"
    )
