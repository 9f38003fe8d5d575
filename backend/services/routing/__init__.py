"""
Route lookup collaborator.

Talks to an OSRM server and returns the GeoJSON geometry stored on a ride
at creation time.
"""

from .osrm_client import OSRMRouteClient, fetch_route

__all__ = [
    "OSRMRouteClient",
    "fetch_route",
]
