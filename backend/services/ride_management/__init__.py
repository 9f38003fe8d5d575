"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Creating rides
    - Claiming rides (exactly one driver per ride)
    - Completing rides
    - Cancelling rides
    - Querying ride status, details, history and the searching pool
"""

from .ride_lifecycle import (
    RideResult,
    create_ride,
    get_ride,
    get_ride_status,
    get_ride_history,
    claim_ride,
    complete_ride,
    cancel_ride,
    list_searching_rides,
)

from .identity import Caller

from .exceptions import (
    RideError,
    RideNotFoundError,
    RideConflictError,
    RideForbiddenError,
    UpstreamError,
    RouteLookupError,
)

__all__ = [
    # Lifecycle operations
    "RideResult",
    "create_ride",
    "get_ride",
    "get_ride_status",
    "get_ride_history",
    "claim_ride",
    "complete_ride",
    "cancel_ride",
    "list_searching_rides",
    # Identity
    "Caller",
    # Exceptions
    "RideError",
    "RideNotFoundError",
    "RideConflictError",
    "RideForbiddenError",
    "UpstreamError",
    "RouteLookupError",
]
