import uuid

import django.db.models.deletion
import surgiclinic.core.versioning
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		("consultations", "0001_initial"),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="Theater",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("name", models.CharField(max_length=255, unique=True)),
				("is_active", models.BooleanField(default=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
			],
			options={
				"ordering": ["name", "id"],
			},
		),
		migrations.CreateModel(
			name="SurgicalCase",
			fields=[
				("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
				("patient_id", models.IntegerField(db_index=True)),
				(
					"status",
					models.CharField(
						choices=[
							("DRAFT", "Draft"),
							("PLANNING", "Planning"),
							("READY_FOR_SCHEDULING", "Ready for scheduling"),
							("SCHEDULED", "Scheduled"),
							("IN_PREP", "In prep"),
							("IN_THEATER", "In theater"),
							("RECOVERY", "Recovery"),
							("COMPLETED", "Completed"),
							("CANCELLED", "Cancelled"),
						],
						default="DRAFT",
						max_length=32,
					),
				),
				(
					"urgency",
					models.CharField(
						choices=[("ELECTIVE", "Elective"), ("URGENT", "Urgent"), ("EMERGENCY", "Emergency")],
						default="ELECTIVE",
						max_length=20,
					),
				),
				("diagnosis", models.TextField(blank=True, default="")),
				("procedure_name", models.CharField(blank=True, default="", max_length=255)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"consultation",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="surgical_cases",
						to="consultations.consultation",
					),
				),
				(
					"created_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"primary_surgeon",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="surgical_cases",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"ordering": ["-created_at"],
			},
		),
		migrations.CreateModel(
			name="CasePlan",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("procedure_plan", models.TextField(blank=True, default="")),
				("risk_factors", models.TextField(blank=True, default="")),
				(
					"planned_anesthesia",
					models.CharField(
						blank=True,
						choices=[
							("GENERAL", "General"),
							("REGIONAL", "Regional"),
							("LOCAL", "Local"),
							("SEDATION", "Sedation"),
							("TIVA", "TIVA"),
						],
						default="",
						max_length=20,
					),
				),
				("implant_details", models.TextField(blank=True, default="")),
				("pre_op_notes", models.TextField(blank=True, default="")),
				(
					"readiness_status",
					models.CharField(
						choices=[
							("NOT_STARTED", "Not started"),
							("IN_PROGRESS", "In progress"),
							("READY", "Ready"),
						],
						default="NOT_STARTED",
						max_length=20,
					),
				),
				("ready_for_surgery", models.BooleanField(default=False)),
				("version_token", models.CharField(default=surgiclinic.core.versioning.mint_version_token, max_length=32)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"case",
					models.OneToOneField(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="case_plan",
						to="surgery.surgicalcase",
					),
				),
			],
		),
		migrations.CreateModel(
			name="ConsentForm",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("title", models.CharField(max_length=255)),
				(
					"status",
					models.CharField(
						choices=[
							("DRAFT", "Draft"),
							("PENDING_SIGNATURE", "Pending signature"),
							("SIGNED", "Signed"),
							("REVOKED", "Revoked"),
						],
						default="DRAFT",
						max_length=20,
					),
				),
				("signed_at", models.DateTimeField(blank=True, null=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				(
					"case_plan",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="consents",
						to="surgery.caseplan",
					),
				),
			],
			options={
				"ordering": ["created_at", "id"],
			},
		),
		migrations.CreateModel(
			name="CaseImage",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				(
					"timepoint",
					models.CharField(
						choices=[("PRE_OP", "Pre-op"), ("INTRA_OP", "Intra-op"), ("POST_OP", "Post-op")],
						max_length=20,
					),
				),
				("file_url", models.CharField(max_length=500)),
				("description", models.CharField(blank=True, default="", max_length=255)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				(
					"case_plan",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="images",
						to="surgery.caseplan",
					),
				),
			],
			options={
				"ordering": ["created_at", "id"],
			},
		),
		migrations.CreateModel(
			name="TheaterBooking",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("start_time", models.DateTimeField()),
				("end_time", models.DateTimeField()),
				(
					"status",
					models.CharField(
						choices=[
							("PROVISIONAL", "Provisional"),
							("CONFIRMED", "Confirmed"),
							("CANCELLED", "Cancelled"),
						],
						default="PROVISIONAL",
						max_length=20,
					),
				),
				("locked_at", models.DateTimeField()),
				("lock_expires_at", models.DateTimeField()),
				("confirmed_at", models.DateTimeField(blank=True, null=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				(
					"case",
					models.ForeignKey(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="theater_bookings",
						to="surgery.surgicalcase",
					),
				),
				(
					"confirmed_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"locked_by",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="theater_locks",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"theater",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="bookings",
						to="surgery.theater",
					),
				),
			],
			options={
				"ordering": ["start_time", "id"],
				"indexes": [
					models.Index(fields=["theater", "start_time", "end_time"], name="surgery_the_theater_5c1e2a_idx"),
					models.Index(fields=["locked_by", "status", "lock_expires_at"], name="surgery_the_locked__9f4b7d_idx"),
				],
				"constraints": [
					models.CheckConstraint(
						condition=models.Q(("end_time__gt", models.F("start_time"))),
						name="theater_booking_end_after_start",
					),
				],
			},
		),
		migrations.CreateModel(
			name="ProcedureRecord",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("wheels_in", models.DateTimeField(blank=True, null=True)),
				("anesthesia_start", models.DateTimeField(blank=True, null=True)),
				("incision_time", models.DateTimeField(blank=True, null=True)),
				("closure_time", models.DateTimeField(blank=True, null=True)),
				("anesthesia_end", models.DateTimeField(blank=True, null=True)),
				("wheels_out", models.DateTimeField(blank=True, null=True)),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"case",
					models.OneToOneField(
						on_delete=django.db.models.deletion.CASCADE,
						related_name="procedure_record",
						to="surgery.surgicalcase",
					),
				),
			],
		),
	]
