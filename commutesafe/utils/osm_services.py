import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from commutesafe.config import settings
from commutesafe.models.route import Place, RouteStep, RouteSummary

logger = logging.getLogger(__name__)

Point = Tuple[float, float]  # (latitude, longitude)

class OSMService:
    """Base class for the free OpenStreetMap HTTP services"""

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self.headers = {
            "User-Agent": settings.HTTP_USER_AGENT,
            "Accept": "application/json"
        }

    @asynccontextmanager
    async def _client(self):
        if self._session is not None:
            yield self._session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Optional[Any]:
        """GET and decode JSON; None on any transport or HTTP error"""
        url = f"{self.base_url}{path}"
        try:
            async with self._client() as session:
                async with session.get(
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS)
                ) as response:
                    if response.status != 200:
                        response_text = await response.text()
                        logger.error(f"{url} returned {response.status} - {response_text[:200]}")
                        return None
                    return await response.json()

        except asyncio.TimeoutError:
            logger.error(f"Request to {url} timed out")
            return None
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(f"Request to {url} failed: {e}")
            return None

class RoutingService(OSMService):
    """Driving routes from the public OSRM server"""

    def __init__(self, base_url: Optional[str] = None, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url or settings.OSRM_BASE_URL, session)

    async def get_driving_route(self, origin: Point, destination: Point) -> Optional[RouteSummary]:
        """
        Route between two points.

        Returns None when OSRM finds no route or cannot be reached; the
        caller falls back to the static route suggestions.
        """
        origin_lat, origin_lng = origin
        dest_lat, dest_lng = destination
        path = f"/route/v1/driving/{origin_lng},{origin_lat};{dest_lng},{dest_lat}"

        data = await self._get_json(path, {
            "overview": "full",
            "geometries": "geojson",
            "steps": "true"
        })
        if data is None:
            return None
        return self.parse_route(data)

    @staticmethod
    def parse_route(data: Dict[str, Any]) -> Optional[RouteSummary]:
        if data.get("code") != "Ok" or not data.get("routes"):
            return None

        route = data["routes"][0]
        steps: List[RouteStep] = []
        for leg in route.get("legs", [])[:1]:
            for step in leg.get("steps", []):
                instruction = (
                    step.get("maneuver", {}).get("instruction")
                    or step.get("name")
                    or "Continue straight"
                )
                steps.append(RouteStep(instruction=instruction, distance=step.get("distance", 0)))

        return RouteSummary(
            distance=route["distance"],
            duration=route["duration"],
            steps=steps,
            geometry=route.get("geometry")
        )

class GeocodingService(OSMService):
    """Place search and reverse geocoding through Nominatim"""

    MIN_QUERY_LENGTH = 3

    def __init__(self, base_url: Optional[str] = None, session: Optional[aiohttp.ClientSession] = None):
        super().__init__(base_url or settings.NOMINATIM_BASE_URL, session)

    @staticmethod
    def in_bounds(latitude: float, longitude: float) -> bool:
        return (
            settings.GEOCODE_BOUNDS_SOUTH <= latitude <= settings.GEOCODE_BOUNDS_NORTH
            and settings.GEOCODE_BOUNDS_WEST <= longitude <= settings.GEOCODE_BOUNDS_EAST
        )

    @staticmethod
    def _split_display_name(display_name: str) -> Tuple[str, str]:
        parts = [part.strip() for part in display_name.split(",")]
        return parts[0], ", ".join(parts[1:3])

    @staticmethod
    def format_coordinates(latitude: float, longitude: float) -> str:
        return f"{latitude:.4f}°N, {longitude:.4f}°E"

    async def search(self, query: str) -> List[Place]:
        """
        Free-text place search inside the country filter and bounding box.
        No match (or a failed request) is an empty list.
        """
        query = query.strip()
        if len(query) < self.MIN_QUERY_LENGTH:
            return []

        viewbox = (
            f"{settings.GEOCODE_BOUNDS_WEST},{settings.GEOCODE_BOUNDS_NORTH},"
            f"{settings.GEOCODE_BOUNDS_EAST},{settings.GEOCODE_BOUNDS_SOUTH}"
        )
        data = await self._get_json("/search", {
            "q": query,
            "format": "json",
            "addressdetails": 1,
            "countrycodes": settings.GEOCODE_COUNTRY_CODE,
            "viewbox": viewbox,
            "bounded": 1,
            "limit": 10
        })
        if not data:
            return []

        places = []
        for item in data:
            name, address = self._split_display_name(item.get("display_name", ""))
            places.append(Place(
                id=item.get("place_id"),
                name=name,
                address=address,
                full_address=item.get("display_name"),
                latitude=float(item["lat"]),
                longitude=float(item["lon"])
            ))
        return places

    async def reverse(self, latitude: float, longitude: float) -> Optional[Place]:
        """
        Address for a tapped point. Points outside the bounding box give None;
        unknown addresses fall back to "Selected Location" and raw coordinates.
        """
        if not self.in_bounds(latitude, longitude):
            return None

        data = await self._get_json("/reverse", {
            "lat": latitude,
            "lon": longitude,
            "format": "json"
        })

        display_name = (data or {}).get("display_name")
        if not display_name:
            return Place(
                name="Selected Location",
                address=self.format_coordinates(latitude, longitude),
                latitude=latitude,
                longitude=longitude
            )

        name, address = self._split_display_name(display_name)
        return Place(
            id=data.get("place_id"),
            name=name or "Selected Location",
            address=address or self.format_coordinates(latitude, longitude),
            full_address=display_name,
            latitude=latitude,
            longitude=longitude
        )

# Global instances
routing_service = RoutingService()
geocoding_service = GeocodingService()
