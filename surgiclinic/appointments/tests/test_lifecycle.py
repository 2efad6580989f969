"""Pure lifecycle rules: lateness, check-in, no-show marking and detection."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import SimpleTestCase

from surgiclinic.appointments import lifecycle
from surgiclinic.appointments.lifecycle import AppointmentSnapshot, CheckInInfo, NoShowInfo
from surgiclinic.appointments.models import AppointmentStatus, NoShowReason
from surgiclinic.core.exceptions import ErrorKind, InvalidState

SCHEDULED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc)


def make_snapshot(**overrides) -> AppointmentSnapshot:
    values = {
        'id': 1,
        'patient_id': 42,
        'doctor_id': 7,
        'scheduled_at': SCHEDULED_AT,
        'type': 'CONSULTATION',
        'status': AppointmentStatus.CONFIRMED,
    }
    values.update(overrides)
    return AppointmentSnapshot(**values)


class CheckInTest(SimpleTestCase):
    def test_on_time_check_in_is_not_late(self):
        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT, user_id=3)

        self.assertTrue(result.is_checked_in)
        self.assertFalse(result.check_in.is_late)
        self.assertIsNone(result.check_in.late_by_minutes)
        self.assertEqual(result.check_in.checked_in_by, 3)

    def test_late_check_in_records_minutes(self):
        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT + timedelta(minutes=15), user_id=3)

        self.assertTrue(result.check_in.is_late)
        self.assertEqual(result.check_in.late_by_minutes, 15)

    def test_early_check_in_is_not_late(self):
        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT - timedelta(minutes=5), user_id=3)

        self.assertFalse(result.check_in.is_late)
        self.assertIsNone(result.check_in.late_by_minutes)

    def test_partial_minutes_are_floored(self):
        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT + timedelta(seconds=59), user_id=3)
        self.assertIsNone(result.check_in.late_by_minutes)

        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT + timedelta(minutes=2, seconds=40), user_id=3)
        self.assertEqual(result.check_in.late_by_minutes, 2)

    def test_pending_check_in_becomes_scheduled(self):
        result = lifecycle.check_in(make_snapshot(status=AppointmentStatus.PENDING), SCHEDULED_AT, user_id=3)
        self.assertEqual(result.status, AppointmentStatus.SCHEDULED)

    def test_confirmed_status_is_kept(self):
        result = lifecycle.check_in(make_snapshot(), SCHEDULED_AT, user_id=3)
        self.assertEqual(result.status, AppointmentStatus.CONFIRMED)

    def test_input_snapshot_is_not_mutated(self):
        snapshot = make_snapshot()
        lifecycle.check_in(snapshot, SCHEDULED_AT, user_id=3)
        self.assertIsNone(snapshot.check_in)

    def test_double_check_in_fails(self):
        checked_in = lifecycle.check_in(make_snapshot(), SCHEDULED_AT, user_id=3)

        with self.assertRaises(InvalidState) as ctx:
            lifecycle.check_in(checked_in, SCHEDULED_AT, user_id=3)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_STATE)

    def test_cancelled_and_completed_cannot_check_in(self):
        for status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            with self.subTest(status=status):
                with self.assertRaises(InvalidState):
                    lifecycle.check_in(make_snapshot(status=status), SCHEDULED_AT, user_id=3)

    def test_no_show_must_be_reversed_first(self):
        no_show = lifecycle.mark_as_no_show(make_snapshot(), NoShowReason.MANUAL, '', 3, SCHEDULED_AT)

        with self.assertRaises(InvalidState):
            lifecycle.check_in(no_show, SCHEDULED_AT, user_id=3)


class NoShowTest(SimpleTestCase):
    def test_mark_as_no_show(self):
        now = SCHEDULED_AT + timedelta(minutes=40)
        result = lifecycle.mark_as_no_show(make_snapshot(), NoShowReason.PATIENT_CALLED, 'Called in sick', 3, now)

        self.assertEqual(result.status, AppointmentStatus.NO_SHOW)
        self.assertEqual(result.no_show.reason, NoShowReason.PATIENT_CALLED)
        self.assertEqual(result.no_show.notes, 'Called in sick')
        self.assertEqual(result.no_show.no_show_at, now)
        self.assertEqual(result.no_show.recorded_by, 3)

    def test_mark_twice_fails(self):
        once = lifecycle.mark_as_no_show(make_snapshot(), NoShowReason.MANUAL, '', 3, SCHEDULED_AT)

        with self.assertRaises(InvalidState):
            lifecycle.mark_as_no_show(once, NoShowReason.MANUAL, '', 3, SCHEDULED_AT)

    def test_checked_in_cannot_be_no_show(self):
        checked_in = lifecycle.check_in(make_snapshot(), SCHEDULED_AT, user_id=3)

        with self.assertRaises(InvalidState):
            lifecycle.mark_as_no_show(checked_in, NoShowReason.MANUAL, '', 3, SCHEDULED_AT)

    def test_cancelled_cannot_be_no_show(self):
        with self.assertRaises(InvalidState):
            lifecycle.mark_as_no_show(
                make_snapshot(status=AppointmentStatus.CANCELLED), NoShowReason.MANUAL, '', 3, SCHEDULED_AT
            )

    def test_snapshot_rejects_both_check_in_and_no_show(self):
        with self.assertRaises(InvalidState):
            make_snapshot(
                check_in=CheckInInfo(checked_in_at=SCHEDULED_AT, checked_in_by=3),
                no_show=NoShowInfo(no_show_at=SCHEDULED_AT, reason=NoShowReason.MANUAL),
            )


class AutoDetectNoShowTest(SimpleTestCase):
    def test_before_threshold_returns_same_object(self):
        snapshot = make_snapshot()
        result = lifecycle.auto_detect_no_show(snapshot, SCHEDULED_AT + timedelta(minutes=20), 30)
        self.assertIs(result, snapshot)

    def test_after_threshold_marks_no_show(self):
        result = lifecycle.auto_detect_no_show(make_snapshot(), SCHEDULED_AT + timedelta(minutes=35), 30)

        self.assertEqual(result.status, AppointmentStatus.NO_SHOW)
        self.assertEqual(result.no_show.reason, NoShowReason.AUTO)
        self.assertEqual(result.no_show.notes, 'Automatically detected 35 minutes after appointment time')
        self.assertIsNone(result.no_show.recorded_by)

    def test_exactly_at_threshold_marks_no_show(self):
        result = lifecycle.auto_detect_no_show(make_snapshot(), SCHEDULED_AT + timedelta(minutes=30), 30)
        self.assertTrue(result.is_no_show)

    def test_checked_in_is_never_overridden(self):
        checked_in = lifecycle.check_in(make_snapshot(), SCHEDULED_AT + timedelta(minutes=5), user_id=3)
        result = lifecycle.auto_detect_no_show(checked_in, SCHEDULED_AT + timedelta(hours=2), 30)
        self.assertIs(result, checked_in)

    def test_existing_no_show_is_kept(self):
        marked = lifecycle.mark_as_no_show(make_snapshot(), NoShowReason.PATIENT_CALLED, '', 3, SCHEDULED_AT)
        result = lifecycle.auto_detect_no_show(marked, SCHEDULED_AT + timedelta(hours=2), 30)
        self.assertIs(result, marked)

    def test_closed_appointments_are_ignored(self):
        for status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            with self.subTest(status=status):
                snapshot = make_snapshot(status=status)
                result = lifecycle.auto_detect_no_show(snapshot, SCHEDULED_AT + timedelta(hours=2), 30)
                self.assertIs(result, snapshot)


class ReverseNoShowTest(SimpleTestCase):
    def test_reverse_clears_no_show_and_checks_in(self):
        marked = lifecycle.mark_as_no_show(make_snapshot(), NoShowReason.MANUAL, '', 3, SCHEDULED_AT)
        result = lifecycle.reverse_no_show_with_check_in(marked, SCHEDULED_AT + timedelta(minutes=45), 4)

        self.assertFalse(result.is_no_show)
        self.assertTrue(result.is_checked_in)
        self.assertEqual(result.status, AppointmentStatus.SCHEDULED)
        self.assertEqual(result.check_in.late_by_minutes, 45)
        self.assertEqual(result.check_in.checked_in_by, 4)

    def test_reverse_without_no_show_fails(self):
        with self.assertRaises(InvalidState):
            lifecycle.reverse_no_show_with_check_in(make_snapshot(), SCHEDULED_AT, 4)


class StatusTransitionTest(SimpleTestCase):
    def test_terminal_statuses_have_no_exits(self):
        for status in (AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW, AppointmentStatus.CANCELLED):
            for target in AppointmentStatus.values:
                self.assertFalse(lifecycle.can_transition(status, target))

    def test_confirm_by_doctor_from_pending(self):
        result = lifecycle.confirm_by_doctor(make_snapshot(status=AppointmentStatus.PENDING))
        self.assertEqual(result.status, AppointmentStatus.SCHEDULED)

    def test_cancel_open_appointment(self):
        for status in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.SCHEDULED):
            result = lifecycle.cancel(make_snapshot(status=status))
            self.assertEqual(result.status, AppointmentStatus.CANCELLED)

    def test_cancel_twice_fails(self):
        cancelled = lifecycle.cancel(make_snapshot())

        with self.assertRaises(InvalidState) as ctx:
            lifecycle.cancel(cancelled)
        self.assertEqual(ctx.exception.kind, ErrorKind.INVALID_STATE)

    def test_cancel_completed_fails(self):
        with self.assertRaises(InvalidState):
            lifecycle.cancel(make_snapshot(status=AppointmentStatus.COMPLETED))

    def test_complete_requires_check_in(self):
        with self.assertRaises(InvalidState):
            lifecycle.complete(make_snapshot())

        checked_in = lifecycle.check_in(make_snapshot(), SCHEDULED_AT, user_id=3)
        self.assertEqual(lifecycle.complete(checked_in).status, AppointmentStatus.COMPLETED)
