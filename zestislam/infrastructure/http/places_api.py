"""Nearby venue search (halal food, lodging, mosques) over Nominatim."""

import logging
import math
from typing import Any, List, Optional

from zestislam.domain.models.content import Place
from zestislam.infrastructure.http.json_api import JsonApiClient

logger = logging.getLogger(__name__)

PLACE_QUERIES = ("Halal Restaurants", "Halal Hotels", "Mosques")
DEFAULT_PLACE_QUERY = PLACE_QUERIES[0]
DEFAULT_RADIUS_KM = 5.0
DEFAULT_LIMIT = 10
MAX_LIMIT = 40

_KM_PER_DEGREE = 111.32
_EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle (haversine) distance between two coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * _EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _viewbox(latitude: float, longitude: float, radius_km: float) -> str:
    """Nominatim viewbox 'left,top,right,bottom' around the coordinate."""
    d_lat = radius_km / _KM_PER_DEGREE
    d_lng = radius_km / (_KM_PER_DEGREE * max(math.cos(math.radians(latitude)), 0.01))
    return f"{longitude - d_lng},{latitude + d_lat},{longitude + d_lng},{latitude - d_lat}"


def _to_place(item: Any, latitude: float, longitude: float) -> Optional[Place]:
    if not isinstance(item, dict):
        return None
    display_name = str(item.get("display_name") or "")
    name = str(item.get("name") or display_name.split(",")[0]).strip()
    try:
        lat, lng = float(item["lat"]), float(item["lon"])
    except (KeyError, TypeError, ValueError):
        return None
    if not name:
        return None
    category = str(item.get("type") or item.get("category") or "place").replace("_", " ")
    return Place(
        name=name,
        category=category,
        address=display_name,
        latitude=lat,
        longitude=lng,
        distance_km=round(distance_km(latitude, longitude, lat, lng), 2),
    )


class PlacesClient(JsonApiClient):
    """Finds named venues inside a box around a coordinate. Failures resolve to []."""

    BASE_URL = "https://nominatim.openstreetmap.org"

    async def find_places(
        self,
        query: str,
        latitude: float,
        longitude: float,
        radius_km: float = DEFAULT_RADIUS_KM,
        limit: int = DEFAULT_LIMIT,
    ) -> List[Place]:
        """Returns venues matching query, deduplicated by name and nearest first.

        Raises:
            ValueError: If the query is blank or limit is outside 1..40.
        """
        if not query or not query.strip():
            raise ValueError("A search query is required.")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}.")

        async def operation() -> List[Place]:
            params = {
                "q": query.strip(),
                "format": "jsonv2",
                "viewbox": _viewbox(latitude, longitude, radius_km),
                "bounded": 1,
                "limit": limit,
            }
            payload = await self._get_json("search", params=params, headers={"Accept-Language": "en"})
            if not isinstance(payload, list):
                logger.warning(f"Unexpected place search payload: {type(payload).__name__}")
                return []
            seen = set()
            places = []
            for item in payload:
                place = _to_place(item, latitude, longitude)
                if place is None or place.name.lower() in seen:
                    continue
                seen.add(place.name.lower())
                places.append(place)
            return sorted(places, key=lambda p: p.distance_km)

        return await self.invoker.with_resilience(operation, fallback=[], operation_name="find_places")
