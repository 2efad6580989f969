import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name="Appointment",
			fields=[
				("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
				("patient_id", models.IntegerField(db_index=True)),
				("scheduled_at", models.DateTimeField(db_index=True)),
				("duration_minutes", models.PositiveIntegerField(default=30)),
				(
					"type",
					models.CharField(
						choices=[
							("CONSULTATION", "Consultation"),
							("FOLLOW_UP", "Follow-up"),
							("PRE_OP", "Pre-op"),
							("POST_OP", "Post-op"),
							("PROCEDURE", "Procedure"),
						],
						default="CONSULTATION",
						max_length=20,
					),
				),
				(
					"status",
					models.CharField(
						choices=[
							("PENDING", "Pending"),
							("PENDING_DOCTOR_CONFIRMATION", "Pending doctor confirmation"),
							("CONFIRMED", "Confirmed"),
							("SCHEDULED", "Scheduled"),
							("COMPLETED", "Completed"),
							("NO_SHOW", "No-show"),
							("CANCELLED", "Cancelled"),
						],
						default="PENDING",
						max_length=32,
					),
				),
				("notes", models.TextField(blank=True, default="")),
				("checked_in_at", models.DateTimeField(blank=True, null=True)),
				("late_by_minutes", models.PositiveIntegerField(blank=True, null=True)),
				("no_show_at", models.DateTimeField(blank=True, null=True)),
				(
					"no_show_reason",
					models.CharField(
						blank=True,
						choices=[
							("MANUAL", "Marked manually"),
							("PATIENT_CALLED", "Patient called"),
							("AUTO", "Automatically detected"),
						],
						default="",
						max_length=20,
					),
				),
				("no_show_notes", models.TextField(blank=True, default="")),
				("created_at", models.DateTimeField(auto_now_add=True)),
				("updated_at", models.DateTimeField(auto_now=True)),
				(
					"checked_in_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"doctor",
					models.ForeignKey(
						on_delete=django.db.models.deletion.PROTECT,
						related_name="appointments",
						to=settings.AUTH_USER_MODEL,
					),
				),
				(
					"no_show_by",
					models.ForeignKey(
						blank=True,
						null=True,
						on_delete=django.db.models.deletion.SET_NULL,
						related_name="+",
						to=settings.AUTH_USER_MODEL,
					),
				),
			],
			options={
				"ordering": ["-scheduled_at", "-id"],
				"constraints": [
					models.CheckConstraint(
						condition=models.Q(("checked_in_at__isnull", True), ("no_show_at__isnull", True), _connector="OR"),
						name="appointment_checkin_noshow_exclusive",
					),
				],
			},
		),
	]
