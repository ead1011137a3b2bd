# directions.py
# Directions service contract plus an OSRM HTTP adapter.
# The adapter only talks HTTP and normalises responses into models.Route;
# it holds no navigation state.

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx

from .errors import DirectionsError
from .models import Coord, ManeuverType, Route, RouteLeg, RouteStep, Waypoint
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class DirectionsService(Protocol):
    """Anything that can turn a waypoint chain into candidate routes."""

    async def calculate(self, waypoints: Sequence[Waypoint]) -> List[Route]:
        ...


# ---------------------------------------------------------------------------
# OSRM response parsing
# ---------------------------------------------------------------------------

def _coord(lon_lat: Sequence[float]) -> Coord:
    return Coord(lat=float(lon_lat[1]), lon=float(lon_lat[0]))


def _instruction(maneuver: Dict[str, Any], name: str) -> str:
    kind = maneuver.get("type", "turn")
    modifier = maneuver.get("modifier")
    text = f"{kind} {modifier}" if modifier else kind
    if name:
        text += f" onto {name}"
    return text[:1].upper() + text[1:]


def parse_step(raw: Dict[str, Any]) -> RouteStep:
    maneuver = raw["maneuver"]
    name = raw.get("name") or None
    geometry = raw.get("geometry") or {}
    return RouteStep(
        maneuver_type=ManeuverType.parse(maneuver.get("type")),
        maneuver_location=_coord(maneuver["location"]),
        distance=float(raw.get("distance", 0.0)),
        expected_travel_time=float(raw.get("duration", 0.0)),
        instruction=_instruction(maneuver, name or ""),
        name=name,
        geometry=tuple(_coord(c) for c in geometry.get("coordinates", [])),
    )


def parse_route(raw: Dict[str, Any], waypoints: Sequence[Waypoint]) -> Route:
    """
    Convert one OSRM route object into a Route.

    Leg i ends at waypoint i + 1, which becomes the leg's destination marker.
    """
    legs = []
    for index, raw_leg in enumerate(raw.get("legs", [])):
        destination = waypoints[index + 1] if index + 1 < len(waypoints) else None
        legs.append(RouteLeg(
            steps=tuple(parse_step(s) for s in raw_leg.get("steps", [])),
            distance=float(raw_leg.get("distance", 0.0)),
            expected_travel_time=float(raw_leg.get("duration", 0.0)),
            destination=destination,
        ))
    return Route(legs=tuple(legs), waypoints=tuple(waypoints))


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

class OSRMDirectionsService:
    """
    Async OSRM /route client.

    Args:
        config: NavConfig supplying base URL, profile, timeout and retries.
        client: Optional shared httpx.AsyncClient (tests pass a mocked one).
    """

    def __init__(self, config: Optional[NavConfig] = None,
                 client: Optional[httpx.AsyncClient] = None) -> None:
        self.config = config or NavConfig()
        self.base_url = self.config.directions_base_url.rstrip("/")
        self.profile = self.config.directions_profile
        self.timeout = self.config.directions_timeout_s
        self.max_retries = max(1, self.config.directions_max_retries)
        self.backoff = self.config.directions_backoff_s
        self._client = client

    @staticmethod
    def format_coordinates(waypoints: Sequence[Waypoint]) -> str:
        """Waypoints → OSRM 'lon,lat;lon,lat;...'"""
        return ";".join(f"{w.coord.lon},{w.coord.lat}" for w in waypoints)

    @staticmethod
    def format_bearings(waypoints: Sequence[Waypoint]) -> Optional[str]:
        """Waypoints → OSRM 'bearing,range;;...', or None if no waypoint has a heading."""
        if all(w.heading is None for w in waypoints):
            return None
        parts = []
        for w in waypoints:
            if w.heading is None:
                parts.append("")
            else:
                accuracy = w.heading_accuracy if w.heading_accuracy is not None else 180
                parts.append(f"{int(round(w.heading)) % 360},{int(round(accuracy))}")
        return ";".join(parts)

    async def calculate(self, waypoints: Sequence[Waypoint]) -> List[Route]:
        """
        Request routes through the given waypoints.

        Returns:
            Candidate routes, best first. May be empty.

        Raises:
            DirectionsError: transport failure or a non-'Ok' OSRM response.
        """
        if len(waypoints) < 2:
            raise DirectionsError("At least two waypoints are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(waypoints)}"
        params = {
            "steps": "true",
            "geometries": "geojson",
            "overview": "full",
        }
        bearings = self.format_bearings(waypoints)
        if bearings:
            params["bearings"] = bearings

        data = await self._get_json(url, params)

        if data.get("code") != "Ok":
            if data.get("code") == "NoRoute":
                logger.info("OSRM found no route for the requested waypoints.")
                return []
            raise DirectionsError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")

        routes = [parse_route(r, waypoints) for r in data.get("routes", [])]
        logger.info(f"Fetched {len(routes)} routes from OSRM")
        return routes

    async def _get_json(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        for attempt in range(self.max_retries):
            try:
                response = await self._request(url, params)
            except httpx.TransportError as e:
                logger.warning(f"OSRM transport error (attempt {attempt + 1}): {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.backoff * 2 ** attempt)
                    continue
                raise DirectionsError(f"Routing service unreachable: {e}") from e

            if response.status_code == 200 or response.status_code == 400:
                # OSRM reports NoRoute / InvalidQuery as JSON bodies on 400
                try:
                    return response.json()
                except ValueError as e:
                    raise DirectionsError("Malformed OSRM response", response.status_code) from e

            if response.status_code == 429 or response.status_code >= 500:
                logger.warning(f"OSRM error {response.status_code} (attempt {attempt + 1})")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.backoff * 2 ** attempt)
                    continue

            raise DirectionsError(
                f"Routing service returned {response.status_code}", response.status_code
            )

        raise DirectionsError("Routing service unavailable")

    async def _request(self, url: str, params: Dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url, params=params)
