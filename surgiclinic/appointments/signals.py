"""Post-commit notification hooks for appointment events.

Receivers (notifications, reminders) are fire-and-forget collaborators; signals
are only sent after the surrounding transaction has committed.
"""

from django.dispatch import Signal

# kwargs: appointment, actor
appointment_checked_in = Signal()

# kwargs: appointment, actor (None for automatic detection)
appointment_marked_no_show = Signal()
