"""Consultation model.

One consultation per appointment. Note fields are edited as drafts guarded by
``version_token`` (see ``surgiclinic.core.versioning``).
"""

from django.conf import settings
from django.db import models

from surgiclinic.core.versioning import mint_version_token


class ConsultationState(models.TextChoices):
	NOT_STARTED = 'NOT_STARTED', 'Not started'
	IN_PROGRESS = 'IN_PROGRESS', 'In progress'
	COMPLETED = 'COMPLETED', 'Completed'


class ConsultationOutcome(models.TextChoices):
	PROCEDURE_RECOMMENDED = 'PROCEDURE_RECOMMENDED', 'Procedure recommended'
	CONSULTATION_ONLY = 'CONSULTATION_ONLY', 'Consultation only'
	FOLLOW_UP_CONSULTATION_NEEDED = 'FOLLOW_UP_CONSULTATION_NEEDED', 'Follow-up consultation needed'
	PATIENT_DECIDING = 'PATIENT_DECIDING', 'Patient deciding'
	REFERRAL_NEEDED = 'REFERRAL_NEEDED', 'Referral needed'


class PatientDecision(models.TextChoices):
	YES = 'YES', 'Yes'
	NO = 'NO', 'No'
	UNDECIDED = 'UNDECIDED', 'Undecided'


class Consultation(models.Model):
	appointment = models.OneToOneField(
		'appointments.Appointment',
		on_delete=models.PROTECT,
		related_name='consultation',
	)
	doctor = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.PROTECT,
		related_name='consultations',
	)
	state = models.CharField(
		max_length=20,
		choices=ConsultationState.choices,
		default=ConsultationState.NOT_STARTED,
	)

	# Notes: structured fields or free raw text (e.g. dictation)
	chief_complaint = models.TextField(blank=True, default='')
	examination = models.TextField(blank=True, default='')
	assessment = models.TextField(blank=True, default='')
	plan = models.TextField(blank=True, default='')
	raw_text = models.TextField(blank=True, default='')

	outcome = models.CharField(max_length=40, choices=ConsultationOutcome.choices, blank=True, default='')
	patient_decision = models.CharField(max_length=20, choices=PatientDecision.choices, blank=True, default='')

	version_token = models.CharField(max_length=32, default=mint_version_token)
	started_at = models.DateTimeField(null=True, blank=True)
	completed_at = models.DateTimeField(null=True, blank=True)
	duration_minutes = models.PositiveIntegerField(null=True, blank=True)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		ordering = ['-created_at', '-id']

	def __str__(self) -> str:
		return f"Consultation #{self.id} (appointment={self.appointment_id}, {self.state})"
