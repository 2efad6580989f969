"""Management command: mark overdue appointments as no-show.

Intended to be run periodically (cron); each run is idempotent.
"""
import json

from django.core.management.base import BaseCommand

from surgiclinic.appointments.models import Appointment
from surgiclinic.appointments.serializers import AppointmentSerializer
from surgiclinic.appointments.services import sweep_no_shows
from surgiclinic.core.conf import workflow_setting


class Command(BaseCommand):
    help = 'Mark appointments as no-show once the threshold has passed without check-in'

    def add_arguments(self, parser):
        parser.add_argument(
            '--threshold',
            type=int,
            default=None,
            help='Minutes after the scheduled time (default: CLINIC_WORKFLOW NO_SHOW_THRESHOLD_MINUTES)',
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the marked appointments as JSON instead of a summary',
        )

    def handle(self, *args, **options):
        threshold = options['threshold']
        if threshold is None:
            threshold = workflow_setting('NO_SHOW_THRESHOLD_MINUTES')

        marked = sweep_no_shows(threshold_minutes=threshold)

        if options['json']:
            appointments = Appointment.objects.using('default').filter(id__in=marked).order_by('id')
            self.stdout.write(json.dumps(AppointmentSerializer(appointments, many=True).data))
            return

        self.stdout.write(f'No-show threshold: {threshold} min')
        self.stdout.write(self.style.SUCCESS(f'{len(marked)} appointment(s) marked as no-show'))
        for appointment_id in marked:
            self.stdout.write(f'  - Appointment #{appointment_id}')
