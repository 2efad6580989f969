"""Surgery models: cases, case plans, theaters, bookings and procedure records.

Status columns are written only through the use cases in ``services``:
- ``SurgicalCase.status`` via ``state_machine.transition``
- ``TheaterBooking.status`` via ``locking.TheaterSlotLock``
- ``CasePlan.readiness_status`` via ``readiness.evaluate``
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q

from surgiclinic.core.versioning import mint_version_token


class SurgicalCaseStatus(models.TextChoices):
	DRAFT = 'DRAFT', 'Draft'
	PLANNING = 'PLANNING', 'Planning'
	READY_FOR_SCHEDULING = 'READY_FOR_SCHEDULING', 'Ready for scheduling'
	SCHEDULED = 'SCHEDULED', 'Scheduled'
	IN_PREP = 'IN_PREP', 'In prep'
	IN_THEATER = 'IN_THEATER', 'In theater'
	RECOVERY = 'RECOVERY', 'Recovery'
	COMPLETED = 'COMPLETED', 'Completed'
	CANCELLED = 'CANCELLED', 'Cancelled'


class SurgicalUrgency(models.TextChoices):
	ELECTIVE = 'ELECTIVE', 'Elective'
	URGENT = 'URGENT', 'Urgent'
	EMERGENCY = 'EMERGENCY', 'Emergency'


class ReadinessStatus(models.TextChoices):
	NOT_STARTED = 'NOT_STARTED', 'Not started'
	IN_PROGRESS = 'IN_PROGRESS', 'In progress'
	READY = 'READY', 'Ready'


class AnesthesiaType(models.TextChoices):
	GENERAL = 'GENERAL', 'General'
	REGIONAL = 'REGIONAL', 'Regional'
	LOCAL = 'LOCAL', 'Local'
	SEDATION = 'SEDATION', 'Sedation'
	TIVA = 'TIVA', 'TIVA'


class ConsentStatus(models.TextChoices):
	DRAFT = 'DRAFT', 'Draft'
	PENDING_SIGNATURE = 'PENDING_SIGNATURE', 'Pending signature'
	SIGNED = 'SIGNED', 'Signed'
	REVOKED = 'REVOKED', 'Revoked'


class ImageTimepoint(models.TextChoices):
	PRE_OP = 'PRE_OP', 'Pre-op'
	INTRA_OP = 'INTRA_OP', 'Intra-op'
	POST_OP = 'POST_OP', 'Post-op'


class BookingStatus(models.TextChoices):
	PROVISIONAL = 'PROVISIONAL', 'Provisional'
	CONFIRMED = 'CONFIRMED', 'Confirmed'
	CANCELLED = 'CANCELLED', 'Cancelled'


class Theater(models.Model):
	"""An operating theater; the physical resource booked by ``TheaterBooking``."""

	name = models.CharField(max_length=255, unique=True)
	is_active = models.BooleanField(default=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['name', 'id']

	def __str__(self) -> str:
		return self.name


class SurgicalCase(models.Model):
	"""A planned surgery for one patient, created from a completed consultation."""

	id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
	# Patient demographics live outside this project.
	patient_id = models.IntegerField(db_index=True)
	primary_surgeon = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.PROTECT,
		related_name='surgical_cases',
	)
	consultation = models.ForeignKey(
		'consultations.Consultation',
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='surgical_cases',
	)
	status = models.CharField(
		max_length=32,
		choices=SurgicalCaseStatus.choices,
		default=SurgicalCaseStatus.DRAFT,
	)
	urgency = models.CharField(
		max_length=20,
		choices=SurgicalUrgency.choices,
		default=SurgicalUrgency.ELECTIVE,
	)
	diagnosis = models.TextField(blank=True, default='')
	procedure_name = models.CharField(max_length=255, blank=True, default='')
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='+',
	)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-created_at']

	def __str__(self) -> str:
		return f"SurgicalCase {self.id} ({self.status})"


class CasePlan(models.Model):
	"""Pre-operative plan of a case. Draft edits are guarded by ``version_token``."""

	case = models.OneToOneField(
		SurgicalCase,
		on_delete=models.CASCADE,
		related_name='case_plan',
	)
	procedure_plan = models.TextField(blank=True, default='')
	risk_factors = models.TextField(blank=True, default='')
	planned_anesthesia = models.CharField(
		max_length=20,
		choices=AnesthesiaType.choices,
		blank=True,
		default='',
	)
	implant_details = models.TextField(blank=True, default='')
	pre_op_notes = models.TextField(blank=True, default='')
	readiness_status = models.CharField(
		max_length=20,
		choices=ReadinessStatus.choices,
		default=ReadinessStatus.NOT_STARTED,
	)
	ready_for_surgery = models.BooleanField(default=False)
	version_token = models.CharField(max_length=32, default=mint_version_token)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def __str__(self) -> str:
		return f"CasePlan #{self.id} (case={self.case_id})"


class ConsentForm(models.Model):
	case_plan = models.ForeignKey(CasePlan, on_delete=models.CASCADE, related_name='consents')
	title = models.CharField(max_length=255)
	status = models.CharField(
		max_length=20,
		choices=ConsentStatus.choices,
		default=ConsentStatus.DRAFT,
	)
	signed_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['created_at', 'id']


class CaseImage(models.Model):
	case_plan = models.ForeignKey(CasePlan, on_delete=models.CASCADE, related_name='images')
	timepoint = models.CharField(max_length=20, choices=ImageTimepoint.choices)
	file_url = models.CharField(max_length=500)
	description = models.CharField(max_length=255, blank=True, default='')
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ['created_at', 'id']


def live_lock_q(now) -> Q:
	"""Provisional bookings whose lock has not expired at ``now``.

	Shared by the per-user lock count and the overlap check.
	"""
	return Q(status=BookingStatus.PROVISIONAL, lock_expires_at__gt=now)


class TheaterBookingQuerySet(models.QuerySet):
	def live_locks(self, now):
		return self.filter(live_lock_q(now))

	def blocking(self, now):
		"""Bookings that occupy their interval: confirmed, or a live provisional lock."""
		return self.filter(Q(status=BookingStatus.CONFIRMED) | live_lock_q(now))

	def overlapping(self, start, end):
		"""Half-open interval intersection with ``[start, end)``."""
		return self.filter(start_time__lt=end, end_time__gt=start)


class TheaterBooking(models.Model):
	"""A reservation of a theater interval for one surgical case.

	Created PROVISIONAL by a slot lock; expired provisional rows are never
	deleted, only excluded from conflict checks via ``live_lock_q``.
	"""

	theater = models.ForeignKey(Theater, on_delete=models.PROTECT, related_name='bookings')
	case = models.ForeignKey(SurgicalCase, on_delete=models.CASCADE, related_name='theater_bookings')
	start_time = models.DateTimeField()
	end_time = models.DateTimeField()
	status = models.CharField(
		max_length=20,
		choices=BookingStatus.choices,
		default=BookingStatus.PROVISIONAL,
	)
	locked_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.PROTECT,
		related_name='theater_locks',
	)
	locked_at = models.DateTimeField()
	lock_expires_at = models.DateTimeField()
	confirmed_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
		related_name='+',
	)
	confirmed_at = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)

	objects = TheaterBookingQuerySet.as_manager()

	class Meta:
		ordering = ['start_time', 'id']
		indexes = [
			models.Index(fields=['theater', 'start_time', 'end_time'], name='surgery_the_theater_5c1e2a_idx'),
			models.Index(fields=['locked_by', 'status', 'lock_expires_at'], name='surgery_the_locked__9f4b7d_idx'),
		]
		constraints = [
			models.CheckConstraint(
				condition=Q(end_time__gt=models.F('start_time')),
				name='theater_booking_end_after_start',
			),
		]

	def __str__(self) -> str:
		return f"TheaterBooking #{self.id} ({self.status})"


class ProcedureRecord(models.Model):
	"""Intra-operative record of a case; holds the six timeline timestamps."""

	case = models.OneToOneField(
		SurgicalCase,
		on_delete=models.CASCADE,
		related_name='procedure_record',
	)
	wheels_in = models.DateTimeField(null=True, blank=True)
	anesthesia_start = models.DateTimeField(null=True, blank=True)
	incision_time = models.DateTimeField(null=True, blank=True)
	closure_time = models.DateTimeField(null=True, blank=True)
	anesthesia_end = models.DateTimeField(null=True, blank=True)
	wheels_out = models.DateTimeField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def __str__(self) -> str:
		return f"ProcedureRecord #{self.id} (case={self.case_id})"
