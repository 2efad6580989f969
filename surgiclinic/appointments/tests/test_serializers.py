"""Tests for the appointment read representation."""

from __future__ import annotations

import json
from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from surgiclinic.appointments.models import NoShowReason
from surgiclinic.appointments.serializers import AppointmentSerializer
from surgiclinic.appointments.services import check_in_patient, mark_no_show
from surgiclinic.core.clock import FixedClock

from .test_attendance import SCHEDULED_AT, AttendanceTestBase


class AppointmentSerializerTest(AttendanceTestBase):
    def test_untouched_appointment_has_no_attendance(self):
        data = AppointmentSerializer(self.make_appointment()).data

        self.assertIsNone(data["check_in"])
        self.assertIsNone(data["no_show"])
        self.assertEqual(data["doctor"], self.doctor.id)
        self.assertEqual(data["patient_id"], 501)

    def test_check_in_shape(self):
        appt = self.make_appointment()
        check_in_patient(appt.id, self.actor, clock=FixedClock(SCHEDULED_AT + timedelta(minutes=12)))
        appt.refresh_from_db()

        data = AppointmentSerializer(appt).data

        self.assertEqual(
            set(data["check_in"]),
            {"checked_in_at", "checked_in_by", "is_late", "late_by_minutes"},
        )
        self.assertEqual(parse_datetime(data["check_in"]["checked_in_at"]), SCHEDULED_AT + timedelta(minutes=12))
        self.assertEqual(data["check_in"]["checked_in_by"], self.desk.id)
        self.assertTrue(data["check_in"]["is_late"])
        self.assertEqual(data["check_in"]["late_by_minutes"], 12)
        self.assertIsNone(data["no_show"])

    def test_no_show_shape(self):
        appt = self.make_appointment()
        now = SCHEDULED_AT + timedelta(minutes=40)
        mark_no_show(appt.id, self.actor, {"reason": NoShowReason.PATIENT_CALLED, "notes": "Sick"}, clock=FixedClock(now))
        appt.refresh_from_db()

        data = AppointmentSerializer(appt).data

        self.assertIsNone(data["check_in"])
        self.assertEqual(parse_datetime(data["no_show"]["no_show_at"]), now)
        self.assertEqual(data["no_show"]["reason"], NoShowReason.PATIENT_CALLED)
        self.assertEqual(data["no_show"]["notes"], "Sick")

    def test_detect_no_shows_json_output(self):
        appt = self.make_appointment(scheduled_at=timezone.now() - timedelta(hours=2))
        out = StringIO()

        call_command("detect_no_shows", "--json", stdout=out)

        payload = json.loads(out.getvalue())
        self.assertEqual([item["id"] for item in payload], [appt.id])
        self.assertEqual(payload[0]["no_show"]["reason"], NoShowReason.AUTO)
