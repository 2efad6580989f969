"""Tests for the attendance use cases (check-in, no-show, sweep).

Uses only the default test DB. Time is pinned with FixedClock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO

from django.core.management import call_command
from django.db import IntegrityError, transaction
from django.test import TestCase
from django.utils import timezone

from surgiclinic.appointments.models import Appointment, AppointmentStatus, NoShowReason
from surgiclinic.appointments.services import (
    check_in_patient,
    mark_no_show,
    reverse_no_show,
    sweep_no_shows,
)
from surgiclinic.appointments.signals import appointment_checked_in, appointment_marked_no_show
from surgiclinic.core.clock import FixedClock
from surgiclinic.core.exceptions import InvalidState, NotFound, ValidationFailed
from surgiclinic.core.identity import Actor
from surgiclinic.core.models import AuditLog, Role, User

SCHEDULED_AT = datetime(2026, 3, 2, 9, 0, tzinfo=dt_timezone.utc)


class AttendanceTestBase(TestCase):
    databases = {"default"}

    def setUp(self):
        self.role_doctor, _ = Role.objects.using("default").get_or_create(
            name=Role.DOCTOR,
            defaults={"label": "Arzt"},
        )
        self.role_frontdesk, _ = Role.objects.using("default").get_or_create(
            name=Role.FRONTDESK,
            defaults={"label": "Empfang"},
        )
        self.doctor = User.objects.db_manager("default").create_user(
            username="doctor_attendance",
            email="doctor_attendance@example.com",
            password="DummyPass123!",
            role=self.role_doctor,
        )
        self.desk = User.objects.db_manager("default").create_user(
            username="desk_attendance",
            email="desk_attendance@example.com",
            password="DummyPass123!",
            role=self.role_frontdesk,
        )
        self.actor = Actor.from_user(self.desk)

    def make_appointment(self, **overrides) -> Appointment:
        values = {
            "patient_id": 501,
            "doctor": self.doctor,
            "scheduled_at": SCHEDULED_AT,
            "status": AppointmentStatus.CONFIRMED,
        }
        values.update(overrides)
        return Appointment.objects.using("default").create(**values)


class CheckInPatientTest(AttendanceTestBase):
    def test_late_check_in_is_persisted(self):
        appt = self.make_appointment()
        clock = FixedClock(SCHEDULED_AT + timedelta(minutes=15))

        check_in_patient(appt.id, self.actor, clock=clock)

        appt.refresh_from_db()
        self.assertEqual(appt.checked_in_at, SCHEDULED_AT + timedelta(minutes=15))
        self.assertEqual(appt.checked_in_by_id, self.desk.id)
        self.assertEqual(appt.late_by_minutes, 15)
        self.assertTrue(appt.is_late)

    def test_explicit_checked_in_at_wins_over_clock(self):
        appt = self.make_appointment()
        clock = FixedClock(SCHEDULED_AT + timedelta(hours=1))

        check_in_patient(
            appt.id,
            self.actor,
            {"checked_in_at": (SCHEDULED_AT - timedelta(minutes=5)).isoformat()},
            clock=clock,
        )

        appt.refresh_from_db()
        self.assertIsNone(appt.late_by_minutes)
        self.assertFalse(appt.is_late)

    def test_pending_becomes_scheduled(self):
        appt = self.make_appointment(status=AppointmentStatus.PENDING)

        check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT))

        appt.refresh_from_db()
        self.assertEqual(appt.status, AppointmentStatus.SCHEDULED)

    def test_second_check_in_fails_and_keeps_first(self):
        appt = self.make_appointment()
        check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT))

        with self.assertRaises(InvalidState):
            check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=10)))

        appt.refresh_from_db()
        self.assertEqual(appt.checked_in_at, SCHEDULED_AT)

    def test_unknown_appointment(self):
        with self.assertRaises(NotFound):
            check_in_patient(999999, self.actor, clock=FixedClock(SCHEDULED_AT))

    def test_malformed_appointment_id(self):
        with self.assertRaises(ValidationFailed) as ctx:
            check_in_patient("abc", self.actor, clock=FixedClock(SCHEDULED_AT))
        self.assertEqual(ctx.exception.errors[0]["field"], "appointment_id")

    def test_malformed_payload(self):
        appt = self.make_appointment()

        with self.assertRaises(ValidationFailed) as ctx:
            check_in_patient(appt.id, self.actor, {"checked_in_at": "not-a-date"})
        self.assertEqual(ctx.exception.errors[0]["field"], "checked_in_at")

    def test_audit_and_signal_after_commit(self):
        appt = self.make_appointment()
        received = []

        def receiver(sender, appointment, actor, **kwargs):
            received.append((appointment.id, actor.user_id))

        appointment_checked_in.connect(receiver)
        self.addCleanup(appointment_checked_in.disconnect, receiver)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=3)))

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(received, [(appt.id, self.desk.id)])
        log = AuditLog.objects.using("default").get(action="appointment_check_in")
        self.assertEqual(log.patient_id, 501)
        self.assertEqual(log.role_name, Role.FRONTDESK)
        self.assertEqual(log.meta["late_by_minutes"], 3)
        self.assertTrue(log.meta["is_late"])

    def test_failed_check_in_writes_no_audit(self):
        appt = self.make_appointment(status=AppointmentStatus.CANCELLED)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(InvalidState):
                check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT))

        self.assertEqual(callbacks, [])
        self.assertFalse(AuditLog.objects.using("default").exists())


class NoShowUseCaseTest(AttendanceTestBase):
    def test_mark_no_show_manual(self):
        appt = self.make_appointment()
        now = SCHEDULED_AT + timedelta(minutes=45)

        with self.captureOnCommitCallbacks(execute=True):
            mark_no_show(
                appt.id,
                self.actor,
                {"reason": NoShowReason.PATIENT_CALLED, "notes": "Rescheduling"},
                clock=FixedClock(now),
            )

        appt.refresh_from_db()
        self.assertEqual(appt.status, AppointmentStatus.NO_SHOW)
        self.assertEqual(appt.no_show_at, now)
        self.assertEqual(appt.no_show_reason, NoShowReason.PATIENT_CALLED)
        self.assertEqual(appt.no_show_notes, "Rescheduling")
        self.assertEqual(appt.no_show_by_id, self.desk.id)
        self.assertTrue(AuditLog.objects.using("default").filter(action="appointment_no_show").exists())

    def test_auto_reason_is_reserved(self):
        appt = self.make_appointment()

        with self.assertRaises(ValidationFailed):
            mark_no_show(appt.id, self.actor, {"reason": NoShowReason.AUTO})

    def test_mark_twice_fails(self):
        appt = self.make_appointment()
        clock = FixedClock(SCHEDULED_AT + timedelta(minutes=45))
        mark_no_show(appt.id, self.actor, clock=clock)

        with self.assertRaises(InvalidState):
            mark_no_show(appt.id, self.actor, clock=clock)

    def test_checked_in_cannot_be_marked(self):
        appt = self.make_appointment()
        check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT))

        with self.assertRaises(InvalidState):
            mark_no_show(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(hours=1)))

        appt.refresh_from_db()
        self.assertIsNone(appt.no_show_at)

    def test_reverse_no_show(self):
        appt = self.make_appointment()
        mark_no_show(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=35)))

        reverse_no_show(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=50)))

        appt.refresh_from_db()
        self.assertEqual(appt.status, AppointmentStatus.SCHEDULED)
        self.assertIsNone(appt.no_show_at)
        self.assertEqual(appt.no_show_reason, "")
        self.assertEqual(appt.late_by_minutes, 50)

    def test_reverse_requires_no_show(self):
        appt = self.make_appointment()

        with self.assertRaises(InvalidState):
            reverse_no_show(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT))

    def test_database_rejects_check_in_with_no_show(self):
        appt = self.make_appointment()

        with self.assertRaises(IntegrityError):
            with transaction.atomic(using="default"):
                Appointment.objects.using("default").filter(id=appt.id).update(
                    checked_in_at=SCHEDULED_AT,
                    no_show_at=SCHEDULED_AT,
                )


class NoShowSweepTest(AttendanceTestBase):
    def test_sweep_marks_only_overdue(self):
        overdue = self.make_appointment()
        recent = self.make_appointment(scheduled_at=SCHEDULED_AT + timedelta(minutes=20))
        checked_in = self.make_appointment()
        check_in_patient(checked_in.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=5)))
        cancelled = self.make_appointment(status=AppointmentStatus.CANCELLED)

        clock = FixedClock(SCHEDULED_AT + timedelta(minutes=35))
        marked = sweep_no_shows(threshold_minutes=30, clock=clock)

        self.assertEqual(marked, [overdue.id])
        overdue.refresh_from_db()
        self.assertEqual(overdue.no_show_reason, NoShowReason.AUTO)
        self.assertEqual(overdue.no_show_notes, "Automatically detected 35 minutes after appointment time")
        self.assertIsNone(overdue.no_show_by_id)
        for appt in (recent, checked_in, cancelled):
            appt.refresh_from_db()
            self.assertIsNone(appt.no_show_at)

    def test_sweep_is_idempotent(self):
        self.make_appointment()
        clock = FixedClock(SCHEDULED_AT + timedelta(hours=1))

        self.assertEqual(len(sweep_no_shows(threshold_minutes=30, clock=clock)), 1)
        self.assertEqual(sweep_no_shows(threshold_minutes=30, clock=clock), [])

    def test_sweep_uses_configured_threshold(self):
        self.make_appointment()
        clock = FixedClock(SCHEDULED_AT + timedelta(minutes=12))

        with self.settings(CLINIC_WORKFLOW={"NO_SHOW_THRESHOLD_MINUTES": 10}):
            marked = sweep_no_shows(clock=clock)

        self.assertEqual(len(marked), 1)

    def test_sweep_sends_signal_without_actor(self):
        appt = self.make_appointment()
        received = []

        def receiver(sender, appointment, actor, **kwargs):
            received.append((appointment.id, actor))

        appointment_marked_no_show.connect(receiver)
        self.addCleanup(appointment_marked_no_show.disconnect, receiver)

        with self.captureOnCommitCallbacks(execute=True):
            sweep_no_shows(threshold_minutes=30, clock=FixedClock(SCHEDULED_AT + timedelta(hours=1)))

        self.assertEqual(received, [(appt.id, None)])
        log = AuditLog.objects.using("default").get(action="appointment_no_show")
        self.assertIsNone(log.user_id)
        self.assertEqual(log.meta["reason"], NoShowReason.AUTO)

    def test_management_command(self):
        appt = self.make_appointment(scheduled_at=timezone.now() - timedelta(hours=2))
        out = StringIO()

        call_command("detect_no_shows", "--threshold", "30", stdout=out)

        appt.refresh_from_db()
        self.assertEqual(appt.status, AppointmentStatus.NO_SHOW)
        self.assertIn("1 appointment(s) marked as no-show", out.getvalue())
        self.assertIn(f"Appointment #{appt.id}", out.getvalue())
