import threading
from unittest.mock import MagicMock, patch

from django.db import DatabaseError, OperationalError, connection
from django.test import TestCase, TransactionTestCase, override_settings

from accounts.models import User
from rides.models import Ride, RideStatus, RideStatusChange
from services.ride_management import ride_store
from services.ride_management.exceptions import (
    RideConflictError,
    RideNotFoundError,
    UpstreamError,
)

ORIGIN = (28.6139, 77.2090)
DESTINATION = (28.6129, 77.2295)
ROUTE = {"type": "LineString", "coordinates": [[77.2090, 28.6139], [77.2295, 28.6129]]}


def make_user(username, role):
    return User.objects.create_user(username=username, password='pass1234', role=role)


class RideStoreTests(TestCase):
    def setUp(self):
        self.rider = make_user('rider', User.Role.RIDER)
        self.driver_one = make_user('driver_one', User.Role.DRIVER)
        self.driver_two = make_user('driver_two', User.Role.DRIVER)
        self.ride = ride_store.create_ride(self.rider.id, ORIGIN, DESTINATION, ROUTE)

    def _snapshot(self):
        return Ride.objects.filter(pk=self.ride.id).values().get()

    def test_create_starts_searching_without_driver(self):
        self.ride.refresh_from_db()
        self.assertEqual(self.ride.status, RideStatus.SEARCHING)
        self.assertIsNone(self.ride.driver_id)
        self.assertEqual(self.ride.rider_id, self.rider.id)
        self.assertEqual(self.ride.route, ROUTE)

        history = ride_store.get_ride_history(self.ride.id)
        self.assertEqual(len(history), 1)
        self.assertIsNone(history[0].from_status)
        self.assertEqual(history[0].to_status, RideStatus.SEARCHING)
        self.assertEqual(history[0].actor_id, self.rider.id)

    def test_get_unknown_ride_raises_not_found(self):
        with self.assertRaises(RideNotFoundError):
            ride_store.get_ride(999999)
        with self.assertRaises(RideNotFoundError):
            ride_store.get_ride_status(999999)
        with self.assertRaises(RideNotFoundError):
            ride_store.get_ride_history(999999)

    def test_claim_assigns_driver_and_advances_updated_at(self):
        before = self.ride.updated_at

        ride = ride_store.claim_ride(self.ride.id, self.driver_one.id)

        self.assertEqual(ride.status, RideStatus.IN_PROGRESS)
        self.assertEqual(ride.driver_id, self.driver_one.id)
        self.assertGreater(ride.updated_at, before)

        stored = ride_store.get_ride(self.ride.id)
        self.assertEqual(stored.status, RideStatus.IN_PROGRESS)
        self.assertEqual(stored.driver_id, self.driver_one.id)
        self.assertEqual(ride_store.get_ride_status(self.ride.id), RideStatus.IN_PROGRESS)

    def test_second_claim_conflicts_and_keeps_first_driver(self):
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        snapshot = self._snapshot()

        with self.assertRaises(RideConflictError) as ctx:
            ride_store.claim_ride(self.ride.id, self.driver_two.id)

        self.assertEqual(ctx.exception.current_status, RideStatus.IN_PROGRESS)
        self.assertEqual(self._snapshot(), snapshot)

    def test_claim_unknown_ride_raises_not_found(self):
        with self.assertRaises(RideNotFoundError):
            ride_store.claim_ride(999999, self.driver_one.id)

    def test_complete_twice_succeeds_once(self):
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        ride = ride_store.complete_ride(self.ride.id)
        self.assertEqual(ride.status, RideStatus.COMPLETED)
        snapshot = self._snapshot()

        with self.assertRaises(RideConflictError):
            ride_store.complete_ride(self.ride.id)

        self.assertEqual(self._snapshot(), snapshot)
        self.assertEqual(
            RideStatusChange.objects.filter(ride_id=self.ride.id, to_status=RideStatus.COMPLETED).count(),
            1,
        )

    def test_complete_requires_in_progress(self):
        with self.assertRaises(RideConflictError):
            ride_store.complete_ride(self.ride.id)
        self.assertEqual(ride_store.get_ride_status(self.ride.id), RideStatus.SEARCHING)

    def test_cancel_searching_ride(self):
        ride = ride_store.cancel_ride(self.ride.id)
        self.assertEqual(ride.status, RideStatus.CANCELED)
        self.assertIsNone(ride.driver_id)

        # Default actor for a cancel is the rider
        last = ride_store.get_ride_history(self.ride.id)[-1]
        self.assertEqual(last.actor_id, self.rider.id)

    def test_cancel_in_progress_ride_conflicts(self):
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        with self.assertRaises(RideConflictError):
            ride_store.cancel_ride(self.ride.id)
        self.assertEqual(ride_store.get_ride_status(self.ride.id), RideStatus.IN_PROGRESS)

    def test_no_transition_leaves_terminal_states(self):
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        ride_store.complete_ride(self.ride.id)

        for attempt in (
            lambda: ride_store.claim_ride(self.ride.id, self.driver_two.id),
            lambda: ride_store.cancel_ride(self.ride.id),
            lambda: ride_store.complete_ride(self.ride.id),
        ):
            with self.assertRaises(RideConflictError):
                attempt()

        self.assertEqual(ride_store.get_ride_status(self.ride.id), RideStatus.COMPLETED)
        self.assertEqual(ride_store.get_ride(self.ride.id).driver_id, self.driver_one.id)

    def test_history_records_every_transition_in_order(self):
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        ride_store.complete_ride(self.ride.id, actor_id=self.driver_one.id)

        history = ride_store.get_ride_history(self.ride.id)
        self.assertEqual(
            [(h.from_status, h.to_status) for h in history],
            [
                (None, RideStatus.SEARCHING),
                (RideStatus.SEARCHING, RideStatus.IN_PROGRESS),
                (RideStatus.IN_PROGRESS, RideStatus.COMPLETED),
            ],
        )
        self.assertEqual(history[1].actor_id, self.driver_one.id)
        self.assertEqual(history[2].actor_id, self.driver_one.id)

    def test_list_searching_only_returns_open_rides(self):
        other = ride_store.create_ride(self.rider.id, ORIGIN, DESTINATION, ROUTE)
        canceled = ride_store.create_ride(self.rider.id, ORIGIN, DESTINATION, ROUTE)
        ride_store.claim_ride(self.ride.id, self.driver_one.id)
        ride_store.cancel_ride(canceled.id)

        searching = ride_store.list_searching_rides()

        self.assertEqual([r.id for r in searching], [other.id])

    def test_storage_failure_rolls_back_claim(self):
        snapshot = self._snapshot()

        with patch.object(
            RideStatusChange.objects, 'create', side_effect=DatabaseError("disk I/O error")
        ):
            with self.assertRaises(UpstreamError):
                ride_store.claim_ride(self.ride.id, self.driver_one.id)

        self.assertEqual(self._snapshot(), snapshot)
        self.assertEqual(RideStatusChange.objects.filter(ride_id=self.ride.id).count(), 1)

    def test_lost_compare_and_set_is_a_conflict(self):
        # Simulate another writer changing the row between the locked read and the update
        original_filter = Ride.objects.filter

        def filter_after_concurrent_write(*args, **kwargs):
            if 'status' in kwargs:
                Ride.objects.filter(pk=self.ride.id).update(
                    status=RideStatus.CANCELED,
                )
            return original_filter(*args, **kwargs)

        with patch.object(Ride.objects, 'filter', side_effect=filter_after_concurrent_write):
            with self.assertRaises(RideConflictError):
                ride_store.claim_ride(self.ride.id, self.driver_one.id)

        self.ride.refresh_from_db()
        # The whole transaction rolled back, including the simulated write
        self.assertEqual(self.ride.status, RideStatus.SEARCHING)
        self.assertIsNone(self.ride.driver_id)


@override_settings(RIDE_LOCK_TIMEOUT_SECONDS=5)
class LockTimeoutTests(TestCase):
    def setUp(self):
        self.rider = make_user('rider', User.Role.RIDER)
        self.driver = make_user('driver', User.Role.DRIVER)
        self.ride = ride_store.create_ride(self.rider.id, ORIGIN, DESTINATION, ROUTE)

    def _claim_on_postgres(self, **kwargs):
        fake_connection = MagicMock(vendor='postgresql')
        with patch('services.ride_management.ride_store.connection', fake_connection):
            ride_store.claim_ride(self.ride.id, self.driver.id, **kwargs)
        return fake_connection.cursor.return_value.__enter__.return_value.execute

    def test_explicit_timeout_sets_lock_timeout(self):
        execute = self._claim_on_postgres(timeout=2.5)
        execute.assert_called_once_with(
            "SELECT set_config('lock_timeout', %s, true)", ['2500ms']
        )

    def test_settings_default_sets_lock_timeout(self):
        execute = self._claim_on_postgres()
        execute.assert_called_once_with(
            "SELECT set_config('lock_timeout', %s, true)", ['5000ms']
        )

    def test_sub_millisecond_timeout_is_not_unlimited(self):
        execute = self._claim_on_postgres(timeout=0.0004)
        execute.assert_called_once_with(
            "SELECT set_config('lock_timeout', %s, true)", ['1ms']
        )

    def test_sqlite_skips_lock_timeout(self):
        fake_connection = MagicMock(vendor='sqlite')
        with patch('services.ride_management.ride_store.connection', fake_connection):
            ride_store.claim_ride(self.ride.id, self.driver.id, timeout=1)
        fake_connection.cursor.assert_not_called()

    def test_expired_lock_wait_is_upstream_and_leaves_ride_unchanged(self):
        before = Ride.objects.filter(pk=self.ride.id).values().get()

        with patch.object(
            ride_store, '_lock_ride',
            side_effect=OperationalError("canceling statement due to lock timeout"),
        ):
            with self.assertRaises(UpstreamError):
                ride_store.claim_ride(self.ride.id, self.driver.id, timeout=0.5)

        self.assertEqual(Ride.objects.filter(pk=self.ride.id).values().get(), before)
        self.assertEqual(RideStatusChange.objects.filter(ride_id=self.ride.id).count(), 1)


class ConcurrentClaimTests(TransactionTestCase):
    """Drivers racing for one ride from separate threads and connections."""

    DRIVER_COUNT = 8

    def setUp(self):
        self.rider = make_user('rider', User.Role.RIDER)
        self.drivers = [
            make_user(f'driver_{i}', User.Role.DRIVER) for i in range(self.DRIVER_COUNT)
        ]
        self.ride = ride_store.create_ride(self.rider.id, ORIGIN, DESTINATION, ROUTE)

    def _race(self, driver_ids):
        barrier = threading.Barrier(len(driver_ids))
        results = []

        def attempt(driver_id):
            try:
                barrier.wait()
                ride_store.claim_ride(self.ride.id, driver_id)
                results.append(('claimed', driver_id))
            except RideConflictError:
                results.append(('conflict', driver_id))
            except Exception as exc:
                results.append(('error', repr(exc)))
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(driver_id,)) for driver_id in driver_ids]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)
        return results

    def test_exactly_one_driver_wins(self):
        results = self._race([driver.id for driver in self.drivers])

        outcomes = [outcome for outcome, _ in results]
        self.assertEqual(len(results), self.DRIVER_COUNT)
        self.assertNotIn('error', outcomes, results)
        self.assertEqual(outcomes.count('claimed'), 1)
        self.assertEqual(outcomes.count('conflict'), self.DRIVER_COUNT - 1)

        winner = next(driver_id for outcome, driver_id in results if outcome == 'claimed')
        ride = ride_store.get_ride(self.ride.id)
        self.assertEqual(ride.status, RideStatus.IN_PROGRESS)
        self.assertEqual(ride.driver_id, winner)
        self.assertEqual(
            RideStatusChange.objects.filter(ride_id=self.ride.id, to_status=RideStatus.IN_PROGRESS).count(),
            1,
        )
