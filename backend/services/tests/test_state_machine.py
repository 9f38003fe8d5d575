"""Unit tests for the ride state machine."""

from django.test import SimpleTestCase

from rides.models import RideStatus
from services.ride_management.exceptions import RideConflictError
from services.ride_management.state_machine import (
    RideEvent,
    can_apply,
    is_terminal,
    next_status,
    source_status,
)


class RideStateMachineTests(SimpleTestCase):
    def test_claim_moves_searching_to_in_progress(self):
        self.assertEqual(next_status(RideStatus.SEARCHING, RideEvent.CLAIM), RideStatus.IN_PROGRESS)

    def test_complete_moves_in_progress_to_completed(self):
        self.assertEqual(next_status(RideStatus.IN_PROGRESS, RideEvent.COMPLETE), RideStatus.COMPLETED)

    def test_cancel_moves_searching_to_canceled(self):
        self.assertEqual(next_status(RideStatus.SEARCHING, RideEvent.CANCEL), RideStatus.CANCELED)

    def test_in_progress_ride_cannot_be_canceled(self):
        with self.assertRaises(RideConflictError) as ctx:
            next_status(RideStatus.IN_PROGRESS, RideEvent.CANCEL)
        self.assertEqual(ctx.exception.current_status, RideStatus.IN_PROGRESS)

    def test_claimed_ride_cannot_be_claimed_again(self):
        self.assertFalse(can_apply(RideStatus.IN_PROGRESS, RideEvent.CLAIM))
        with self.assertRaises(RideConflictError):
            next_status(RideStatus.IN_PROGRESS, RideEvent.CLAIM)

    def test_terminal_statuses_accept_no_event(self):
        for status in (RideStatus.COMPLETED, RideStatus.CANCELED):
            self.assertTrue(is_terminal(status))
            for event in RideEvent:
                self.assertFalse(can_apply(status, event))
                with self.assertRaises(RideConflictError):
                    next_status(status, event)

    def test_searching_cannot_skip_to_completed(self):
        with self.assertRaises(RideConflictError):
            next_status(RideStatus.SEARCHING, RideEvent.COMPLETE)

    def test_plain_strings_are_accepted(self):
        self.assertEqual(next_status("SEARCHING", "claim"), RideStatus.IN_PROGRESS)
        self.assertFalse(is_terminal("SEARCHING"))

    def test_source_status_per_event(self):
        self.assertEqual(source_status(RideEvent.CLAIM), RideStatus.SEARCHING)
        self.assertEqual(source_status(RideEvent.COMPLETE), RideStatus.IN_PROGRESS)
        self.assertEqual(source_status(RideEvent.CANCEL), RideStatus.SEARCHING)
