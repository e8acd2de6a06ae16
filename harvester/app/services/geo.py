from __future__ import annotations
from typing import Any, Optional, Protocol, Union
import logging
import math
import random
import httpx
from .. import config
from ..models import Coordinate
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

EARTH_RADIUS_M = 6371000.0


def distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in metres (haversine)."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def destination(origin: Coordinate, meters: float, bearing: float) -> Coordinate:
    """Point `meters` away from origin along `bearing` (radians, clockwise from north)."""
    lat1, lng1 = math.radians(origin.lat), math.radians(origin.lng)
    d = meters / EARTH_RADIUS_M
    lat2 = math.asin(math.sin(lat1) * math.cos(d) + math.cos(lat1) * math.sin(d) * math.cos(bearing))
    lng2 = lng1 + math.atan2(
        math.sin(bearing) * math.sin(d) * math.cos(lat1),
        math.cos(d) - math.sin(lat1) * math.sin(lat2),
    )
    lng = (math.degrees(lng2) + 540) % 360 - 180
    return Coordinate(lat=max(-90.0, min(90.0, math.degrees(lat2))), lng=lng)


def random_annulus_point(
    center: Coordinate,
    min_distance: float,
    max_distance: float,
    rng: Optional[random.Random] = None,
) -> Coordinate:
    """Uniform over the ring's area, not over the radius."""
    if min_distance < 0 or max_distance < min_distance:
        raise ValueError("expected 0 <= min_distance <= max_distance")
    rng = rng or random
    r = math.sqrt(rng.random() * (max_distance ** 2 - min_distance ** 2) + min_distance ** 2)
    return destination(center, r, rng.random() * 2 * math.pi)


def _as_coordinate(raw: Any) -> Optional[Coordinate]:
    if not isinstance(raw, dict):
        return None
    lat = raw.get("lat", raw.get("latitude"))
    lng = raw.get("lng", raw.get("lon", raw.get("longitude")))
    if lat is None or lng is None:
        return None
    try:
        return Coordinate(lat=float(lat), lng=float(lng))
    except ValueError:
        return None


class GeoLookup(Protocol):
    async def lookup(self, location: str) -> Optional[Coordinate]: ...


class DatasetsGeoLookup:
    """
    Geotarget lookup through the datasets API. The method is called as
    `geotargets/get-geotarget(location, {"random_coordinates": true})` and is
    expected to answer {"data": {"random_coordinates": {"lat": .., "lng": ..}}}.
    """

    METHOD = "geotargets/get-geotarget"

    def __init__(self, url: str, *, client: Optional[httpx.AsyncClient] = None, timeout: float = config.REQUEST_TIMEOUT_SECONDS):
        self.url = url.rstrip("/")
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    async def call(self, method: str, *args: Any) -> Any:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        r = await self._client.post(f"{self.url}/{method}", json=list(args))
        r.raise_for_status()
        return r.json()

    async def lookup(self, location: str) -> Optional[Coordinate]:
        try:
            res = await self.call(self.METHOD, location, {"random_coordinates": True})
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geotarget lookup failed for %r: %s", location, e)
            return None
        data = res.get("data") if isinstance(res, dict) else None
        if not isinstance(data, dict):
            logger.warning("Geotarget lookup for %r returned no data object", location)
            return None
        return _as_coordinate(data.get("random_coordinates"))

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


class NominatimGeoLookup:
    """OpenStreetMap geocoder; picks a random point inside the place's bounding box."""

    def __init__(self, url: str = config.NOMINATIM_URL, *, rng: Optional[random.Random] = None, timeout: float = 10.0):
        self.url = url
        self.rng = rng or random.Random()
        self.timeout = timeout

    async def lookup(self, location: str) -> Optional[Coordinate]:
        params = {"q": location, "format": "json", "limit": 1}
        headers = {"User-Agent": "serp-harvester/1.0"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(self.url, params=params, headers=headers)
                r.raise_for_status()
                results = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Nominatim lookup failed for %r: %s", location, e)
            return None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            logger.info("Nominatim found nothing for %r", location)
            return None
        place = results[0]
        bbox = place.get("boundingbox") or []
        try:
            south, north, west, east = (float(v) for v in bbox)
            return Coordinate(lat=self.rng.uniform(south, north), lng=self.rng.uniform(west, east))
        except (TypeError, ValueError):
            return _as_coordinate(place)


def lookup_from_config(kind: Optional[str] = config.GEO_LOOKUP, datasets_url: Optional[str] = config.DATASETS_URL) -> Optional[GeoLookup]:
    """`GEO_LOOKUP=datasets` (needs `DATASETS_URL`) or `GEO_LOOKUP=nominatim`."""
    kind = (kind or "datasets").strip().lower()
    if kind == "nominatim":
        return NominatimGeoLookup()
    if kind == "datasets":
        return DatasetsGeoLookup(datasets_url) if datasets_url else None
    raise ConfigurationError(f"Unknown GEO_LOOKUP {kind!r}, expected datasets or nominatim")


class CoordinateResolver:
    def __init__(self, lookup: Optional[GeoLookup] = None, rng: Optional[random.Random] = None):
        self.lookup = lookup
        self.rng = rng

    async def resolve(
        self,
        location: Union[str, Coordinate],
        min_distance: Optional[float] = None,
        max_distance: Optional[float] = None,
    ) -> Coordinate:
        if isinstance(location, str):
            if self.lookup is None:
                raise ConfigurationError("No geo lookup configured for named locations")
            coordinate = await self.lookup.lookup(location)
            if coordinate is None:
                raise ConfigurationError("Unable to get random coordinates for location")
            return coordinate
        if max_distance:
            return random_annulus_point(location, min_distance or 0, max_distance, self.rng)
        return location
