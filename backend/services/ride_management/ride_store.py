"""
Ride store: the only code that writes ride rows.

Every transition runs inside ``transaction.atomic()``: the ride row is locked
with ``select_for_update()``, the guard is checked against the state
machine, and the write is a conditional ``UPDATE ... WHERE status = <from>``.
The row lock serializes concurrent claims on engines that support it; the
conditional update keeps the check-and-set atomic on engines that do not.
Any failure rolls the whole transaction back, audit row included.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import DatabaseError, connection, transaction
from django.utils import timezone

from rides.models import Ride, RideStatus, RideStatusChange
from .exceptions import RideConflictError, RideNotFoundError, UpstreamError
from .state_machine import RideEvent, next_status, source_status

logger = logging.getLogger(__name__)

# (latitude, longitude)
Point = Tuple[float, float]


@contextmanager
def _storage_errors(operation: str, ride_id: Optional[int] = None):
    """Surface database failures as UpstreamError once the transaction is gone."""
    try:
        yield
    except DatabaseError as exc:
        logger.exception("Storage failure during %s (ride_id=%s)", operation, ride_id)
        raise UpstreamError(f"Failed to {operation}") from exc


def _set_lock_timeout(timeout: Optional[float]):
    """Bound how long the current transaction may wait for a row lock."""
    if timeout is None:
        timeout = getattr(settings, "RIDE_LOCK_TIMEOUT_SECONDS", None)
    if not timeout or connection.vendor != "postgresql":
        # SQLite relies on the connection's busy timeout instead
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('lock_timeout', %s, true)",
            # 0 would mean "wait forever"
            [f"{max(1, int(timeout * 1000))}ms"],
        )


def _lock_ride(ride_id: int) -> Ride:
    try:
        return Ride.objects.select_for_update().get(pk=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError(f"Ride {ride_id} not found") from None


def _default_actor(ride: Ride, event: RideEvent) -> int:
    if event == RideEvent.CANCEL:
        return ride.rider_id
    return ride.driver_id


def _apply_transition(
    ride_id: int,
    event: RideEvent,
    actor_id: Optional[int] = None,
    timeout: Optional[float] = None,
    **changes,
) -> Ride:
    with _storage_errors(f"{event.value} ride", ride_id):
        with transaction.atomic():
            _set_lock_timeout(timeout)
            ride = _lock_ride(ride_id)

            current = ride.status
            new_status = next_status(current, event)
            now = timezone.now()

            updated = Ride.objects.filter(
                pk=ride_id,
                status=source_status(event),
            ).update(status=new_status, updated_at=now, **changes)
            if updated != 1:
                # Another writer won the compare-and-set
                raise RideConflictError(
                    f"Ride {ride_id} changed concurrently",
                    current_status=current,
                )

            for field, value in changes.items():
                setattr(ride, field, value)
            ride.status = new_status
            ride.updated_at = now

            RideStatusChange.objects.create(
                ride_id=ride_id,
                from_status=current,
                to_status=new_status,
                actor_id=actor_id if actor_id is not None else _default_actor(ride, event),
                changed_at=now,
            )

    return ride


# ===================== Queries =====================

def get_ride(ride_id: int) -> Ride:
    with _storage_errors("get ride", ride_id):
        try:
            return Ride.objects.get(pk=ride_id)
        except Ride.DoesNotExist:
            raise RideNotFoundError(f"Ride {ride_id} not found") from None


def get_ride_status(ride_id: int) -> RideStatus:
    with _storage_errors("get ride status", ride_id):
        status = (
            Ride.objects.filter(pk=ride_id)
            .values_list("status", flat=True)
            .first()
        )
    if status is None:
        raise RideNotFoundError(f"Ride {ride_id} not found")
    return RideStatus(status)


def list_searching_rides() -> List[Ride]:
    """
    Snapshot of every ride currently waiting for a driver.

    Unbounded full scan: fine for a small fleet, needs pagination
    before it is pointed at a large one.
    """
    with _storage_errors("list searching rides"):
        return list(Ride.objects.filter(status=RideStatus.SEARCHING))


def get_ride_history(ride_id: int) -> List[RideStatusChange]:
    with _storage_errors("get ride history", ride_id):
        if not Ride.objects.filter(pk=ride_id).exists():
            raise RideNotFoundError(f"Ride {ride_id} not found")
        return list(RideStatusChange.objects.filter(ride_id=ride_id))


# ===================== Mutations =====================

def create_ride(rider_id: int, origin: Point, destination: Point, route) -> Ride:
    """Insert a new ride in SEARCHING together with its creation audit entry."""
    now = timezone.now()
    with _storage_errors("create ride"):
        with transaction.atomic():
            ride = Ride.objects.create(
                rider_id=rider_id,
                status=RideStatus.SEARCHING,
                origin_latitude=origin[0],
                origin_longitude=origin[1],
                destination_latitude=destination[0],
                destination_longitude=destination[1],
                route=route,
                updated_at=now,
            )
            RideStatusChange.objects.create(
                ride=ride,
                from_status=None,
                to_status=RideStatus.SEARCHING,
                actor_id=rider_id,
                changed_at=now,
            )
    return ride


def claim_ride(ride_id: int, driver_id: int, timeout: Optional[float] = None) -> Ride:
    """
    Assign ``driver_id`` to a SEARCHING ride and move it to IN_PROGRESS.

    Under concurrent calls for the same ride exactly one succeeds; the rest
    raise RideConflictError.
    """
    return _apply_transition(
        ride_id,
        RideEvent.CLAIM,
        actor_id=driver_id,
        timeout=timeout,
        driver_id=driver_id,
    )


def complete_ride(ride_id: int, actor_id: Optional[int] = None, timeout: Optional[float] = None) -> Ride:
    return _apply_transition(ride_id, RideEvent.COMPLETE, actor_id=actor_id, timeout=timeout)


def cancel_ride(ride_id: int, actor_id: Optional[int] = None, timeout: Optional[float] = None) -> Ride:
    return _apply_transition(ride_id, RideEvent.CANCEL, actor_id=actor_id, timeout=timeout)
