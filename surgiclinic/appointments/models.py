"""Appointment model.

Patient demographics live outside this project; appointments store an integer
``patient_id`` reference instead of a ForeignKey.

Status, check-in and no-show columns are written only through
``surgiclinic.appointments.lifecycle`` (via the use cases in ``services``).
A database CheckConstraint keeps check-in and no-show mutually exclusive.
"""

from django.conf import settings
from django.db import models
from django.db.models import Q


class AppointmentStatus(models.TextChoices):
	PENDING = 'PENDING', 'Pending'
	PENDING_DOCTOR_CONFIRMATION = 'PENDING_DOCTOR_CONFIRMATION', 'Pending doctor confirmation'
	CONFIRMED = 'CONFIRMED', 'Confirmed'
	SCHEDULED = 'SCHEDULED', 'Scheduled'
	COMPLETED = 'COMPLETED', 'Completed'
	NO_SHOW = 'NO_SHOW', 'No-show'
	CANCELLED = 'CANCELLED', 'Cancelled'


class AppointmentType(models.TextChoices):
	CONSULTATION = 'CONSULTATION', 'Consultation'
	FOLLOW_UP = 'FOLLOW_UP', 'Follow-up'
	PRE_OP = 'PRE_OP', 'Pre-op'
	POST_OP = 'POST_OP', 'Post-op'
	PROCEDURE = 'PROCEDURE', 'Procedure'


class NoShowReason(models.TextChoices):
	MANUAL = 'MANUAL', 'Marked manually'
	PATIENT_CALLED = 'PATIENT_CALLED', 'Patient called'
	AUTO = 'AUTO', 'Automatically detected'


class Appointment(models.Model):
	"""A booked appointment between a patient and a doctor.

	``scheduled_at`` is a single timezone-aware instant; lateness and no-show
	thresholds are measured against it.
	"""

	patient_id = models.IntegerField(db_index=True)
	doctor = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.PROTECT,
		related_name='appointments',
	)
	scheduled_at = models.DateTimeField(db_index=True)
	duration_minutes = models.PositiveIntegerField(default=30)
	type = models.CharField(
		max_length=20,
		choices=AppointmentType.choices,
		default=AppointmentType.CONSULTATION,
	)
	status = models.CharField(
		max_length=32,
		choices=AppointmentStatus.choices,
		default=AppointmentStatus.PENDING,
	)
	notes = models.TextField(blank=True, default='')

	# Check-in (CheckInInfo)
	checked_in_at = models.DateTimeField(null=True, blank=True)
	checked_in_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='+',
	)
	late_by_minutes = models.PositiveIntegerField(null=True, blank=True)

	# No-show (NoShowInfo)
	no_show_at = models.DateTimeField(null=True, blank=True)
	no_show_reason = models.CharField(max_length=20, choices=NoShowReason.choices, blank=True, default='')
	no_show_notes = models.TextField(blank=True, default='')
	no_show_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='+',
	)

	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-scheduled_at', '-id']
		constraints = [
			models.CheckConstraint(
				condition=Q(checked_in_at__isnull=True) | Q(no_show_at__isnull=True),
				name='appointment_checkin_noshow_exclusive',
			),
		]

	def __str__(self) -> str:
		return f"Appointment #{self.id} (patient_id={self.patient_id})"

	@property
	def is_checked_in(self) -> bool:
		return self.checked_in_at is not None

	@property
	def is_no_show(self) -> bool:
		return self.no_show_at is not None

	@property
	def is_late(self) -> bool:
		return bool(self.late_by_minutes)
