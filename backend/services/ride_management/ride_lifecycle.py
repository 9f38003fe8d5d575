"""
Core ride lifecycle operations.

Each function takes the authenticated ``Caller`` handed over by the identity
layer, checks that the caller may act on the ride, and delegates the state
change to the ride store. Conflicts from the store are propagated as-is;
retrying is the caller's decision.
"""

import logging
from contextlib import contextmanager
from typing import Optional, List
from dataclasses import dataclass

from rides.models import Ride, RideStatus, RideStatusChange
from services.routing import fetch_route
from realtime.notifications import notify_ride_group, notify_searching_pool
from . import ride_store
from .exceptions import RideConflictError, RideForbiddenError, RouteLookupError
from .identity import Caller

logger = logging.getLogger(__name__)


@dataclass
class RideResult:
    """The ride as written by a lifecycle operation, plus a caller-facing message."""
    ride: Ride
    message: str = ""


# ===================== Authorization =====================

def _require_owner(caller: Caller, ride: Ride):
    if ride.rider_id != caller.caller_id:
        logger.warning("Rider %s denied access to ride %s", caller.caller_id, ride.id)
        raise RideForbiddenError("This ride does not belong to you")


def _require_assignee(caller: Caller, ride: Ride):
    # driver_id is write-once, so a match here cannot be invalidated later
    if ride.driver_id is None or ride.driver_id != caller.caller_id:
        logger.warning("Driver %s denied access to ride %s", caller.caller_id, ride.id)
        raise RideForbiddenError("You are not assigned to this ride")


def _require_participant(caller: Caller, ride: Ride):
    if caller.is_driver:
        _require_assignee(caller, ride)
    else:
        _require_owner(caller, ride)


@contextmanager
def _conflicts_logged(action: str, ride_id: int, caller: Caller):
    try:
        yield
    except RideConflictError as exc:
        logger.warning(
            "%s of ride %s by user %s rejected: %s",
            action, ride_id, caller.caller_id, exc,
        )
        raise


# ===================== Rider Operations =====================

def create_ride(caller: Caller, origin, destination) -> RideResult:
    """
    Create a new ride for the calling rider.

    The route is looked up once here and stored with the ride; if the
    lookup fails nothing is written.

    Raises:
        RouteLookupError: if the route service cannot produce a route
        UpstreamError: on storage failure
    """
    try:
        route = fetch_route(origin, destination)
    except RouteLookupError:
        logger.exception("Route lookup failed for rider %s", caller.caller_id)
        raise

    ride = ride_store.create_ride(caller.caller_id, origin, destination, route)
    logger.info("Ride %s created by rider %s", ride.id, caller.caller_id)

    notify_searching_pool("ride_created", ride, "New ride is waiting for a driver.")

    return RideResult(
        ride=ride,
        message="Searching for a driver..."
    )


def get_ride(caller: Caller, ride_id: int) -> Ride:
    """Return the full ride record to its rider or assigned driver."""
    ride = ride_store.get_ride(ride_id)
    _require_participant(caller, ride)
    return ride


def get_ride_status(caller: Caller, ride_id: int) -> RideStatus:
    ride = ride_store.get_ride(ride_id)
    _require_participant(caller, ride)
    return ride_store.get_ride_status(ride_id)


def get_ride_history(caller: Caller, ride_id: int) -> List[RideStatusChange]:
    ride = ride_store.get_ride(ride_id)
    _require_participant(caller, ride)
    return ride_store.get_ride_history(ride_id)


def cancel_ride(caller: Caller, ride_id: int, timeout: Optional[float] = None) -> RideResult:
    """
    Cancel a ride that is still searching. Only its rider may cancel.

    Raises:
        RideNotFoundError, RideForbiddenError, RideConflictError
    """
    ride = ride_store.get_ride(ride_id)
    _require_owner(caller, ride)

    with _conflicts_logged("Cancel", ride_id, caller):
        ride = ride_store.cancel_ride(ride_id, actor_id=caller.caller_id, timeout=timeout)
    logger.info("Ride %s canceled by rider %s", ride_id, caller.caller_id)

    notify_ride_group("ride_canceled", ride, "Rider canceled this ride.")
    notify_searching_pool("ride_canceled", ride)

    return RideResult(
        ride=ride,
        message="Ride canceled successfully"
    )


# ===================== Driver Operations =====================

def list_searching_rides(caller: Caller) -> List[Ride]:
    """Every ride currently open for claiming. Role gating happens upstream."""
    return ride_store.list_searching_rides()


def claim_ride(caller: Caller, ride_id: int, timeout: Optional[float] = None) -> RideResult:
    """
    Claim a searching ride for the calling driver.

    Raises:
        RideNotFoundError: unknown ride
        RideConflictError: someone else got there first, or the ride left
            the searching pool
    """
    with _conflicts_logged("Claim", ride_id, caller):
        ride = ride_store.claim_ride(ride_id, caller.caller_id, timeout=timeout)
    logger.info("Ride %s claimed by driver %s", ride_id, caller.caller_id)

    notify_ride_group("ride_claimed", ride, "A driver is on the way.")
    notify_searching_pool("ride_claimed", ride)

    return RideResult(
        ride=ride,
        message="Ride claimed successfully"
    )


def complete_ride(caller: Caller, ride_id: int, timeout: Optional[float] = None) -> RideResult:
    """
    Complete a ride - called by the assigned driver at the destination.

    Raises:
        RideNotFoundError, RideForbiddenError, RideConflictError
    """
    ride = ride_store.get_ride(ride_id)
    _require_assignee(caller, ride)

    with _conflicts_logged("Complete", ride_id, caller):
        ride = ride_store.complete_ride(ride_id, actor_id=caller.caller_id, timeout=timeout)
    logger.info("Ride %s completed by driver %s", ride_id, caller.caller_id)

    notify_ride_group("ride_completed", ride, "Ride completed. Thank you for riding with us!")

    return RideResult(
        ride=ride,
        message="Ride completed successfully"
    )
