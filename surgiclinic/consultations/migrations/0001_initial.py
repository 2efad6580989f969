import django.db.models.deletion
import surgiclinic.core.versioning
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		("appointments", "0001_initial"),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="Consultation",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				(
					"state",
					models.CharField(
						choices=[
							("NOT_STARTED", "Not started"),
							("IN_PROGRESS", "In progress"),
							("COMPLETED", "Completed"),
						],
						default="NOT_STARTED",
						max_length=20,
					),
				),
				("chief_complaint", models.TextField(blank=True, default="")),
				("examination", models.TextField(blank=True, default="")),
				("assessment", models.TextField(blank=True, default="")),
				("plan", models.TextField(blank=True, default="")),
				("raw_text", models.TextField(blank=True, default="")),
				(
					"outcome",
					models.CharField(
						blank=True,
						choices=[
							("PROCEDURE_RECOMMENDED", "Procedure recommended"),
							("CONSULTATION_ONLY", "Consultation only"),
							("FOLLOW_UP_CONSULTATION_NEEDED", "Follow-up consultation needed"),
							("PATIENT_DECIDING", "Patient deciding"),
							("REFERRAL_NEEDED", "Referral needed"),
						],
						default="",
						max_length=40,
					),
				),
				(
					"patient_decision",
					models.CharField(
						blank=True,
						choices=[("YES", "Yes"), ("NO", "No"), ("UNDECIDED", "Undecided")],
						default="",
						max_length=20,
					),
				),
				("version_token", models.CharField(default=surgiclinic.core.versioning.mint_version_token, max_length=32)),
				("started_at", models.DateTimeField(blank=True, null=True)),
				("completed_at", models.DateTimeField(blank=True, null=True)),
				("duration_minutes", models.PositiveIntegerField(blank=True, null=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"appointment",
					models.OneToOneField(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="consultation",
						to="appointments.appointment",
					),
				),
				(
					"doctor",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="consultations",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"ordering": ["-created_at", "-id"],
			},
		),
	]
