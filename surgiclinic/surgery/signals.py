"""Post-commit notification hooks for surgery events."""

from django.dispatch import Signal

# kwargs: surgical_case, actor
surgical_case_created = Signal()

# kwargs: booking, actor
theater_booking_confirmed = Signal()

# kwargs: surgical_case, previous_status, status, actor
surgical_case_status_changed = Signal()
