"""OSRM client used once per ride creation to precompute the route."""

import logging
from typing import Any, Dict, Optional, Sequence, Tuple

import requests
from django.conf import settings

from services.ride_management.exceptions import RouteLookupError

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lon)
LatLon = Tuple[float, float]


class OSRMRouteClient:
    """
    Thin OSRM adapter.

    Converts internal (lat, lon) points to OSRM's lon,lat order, calls the
    /route service and returns the first route's geometry.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        profile: str = "driving",
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url or settings.OSRM_BASE_URL).rstrip("/")
        self.profile = profile
        self.timeout = timeout if timeout is not None else settings.OSRM_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    @staticmethod
    def format_coordinates(coords: Sequence[LatLon]) -> str:
        """Convert list of (lat, lon) to OSRM format 'lon,lat;lon,lat;...'"""
        return ";".join(f"{float(lon)},{float(lat)}" for lat, lon in coords)

    def fetch_route(self, origin: LatLon, destination: LatLon) -> Dict[str, Any]:
        """
        Fetch the driving route between two points.

        Returns:
            GeoJSON LineString geometry, e.g.
            {"type": "LineString", "coordinates": [[lon, lat], ...]}

        Raises:
            RouteLookupError: on transport errors, non-200 responses,
                a non-"Ok" OSRM code, an empty route list, or a body
                that is not shaped like an OSRM route response
        """
        coordinates = self.format_coordinates([origin, destination])
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinates}"

        try:
            response = self.session.get(
                url,
                params={"geometries": "geojson"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.exception("Route request to %s failed", url)
            raise RouteLookupError(f"Route request failed: {exc}") from exc

        if response.status_code != 200:
            logger.error(
                "Route service returned %s: %s",
                response.status_code,
                response.text[:200],
            )
            raise RouteLookupError(f"Bad response from route service: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise RouteLookupError("Route service returned invalid JSON") from exc

        if not isinstance(data, dict):
            raise RouteLookupError("Route service returned an unexpected body")

        if data.get("code") != "Ok":
            raise RouteLookupError(f"Route service error: {data.get('message', data.get('code'))}")

        routes = data.get("routes") or []
        if not isinstance(routes, list) or not routes:
            raise RouteLookupError("No routes found")

        geometry = routes[0].get("geometry") if isinstance(routes[0], dict) else None
        if not isinstance(geometry, dict):
            raise RouteLookupError("Route service returned no geometry")
        return geometry


def fetch_route(origin: LatLon, destination: LatLon) -> Dict[str, Any]:
    """Look up a route with a client built from settings."""
    with requests.Session() as session:
        return OSRMRouteClient(session=session).fetch_route(origin, destination)
