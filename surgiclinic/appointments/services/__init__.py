"""
Appointments Services Module.

- attendance: check-in, manual no-show, no-show reversal and the automatic no-show sweep
"""

from surgiclinic.appointments.services.attendance import (
    apply_transition,
    check_in_patient,
    get_appointment_for_update,
    mark_no_show,
    no_show_candidates,
    reverse_no_show,
    sweep_no_shows,
)

__all__ = [
    'apply_transition',
    'check_in_patient',
    'get_appointment_for_update',
    'mark_no_show',
    'no_show_candidates',
    'reverse_no_show',
    'sweep_no_shows',
]
