"""
Surgery Services Module.

- cases: case creation, status transitions, case plan, consents and images
- booking: theater slot lock and booking confirmation
- procedure: operative timeline recording and summary
"""

from surgiclinic.surgery.services.booking import confirm_theater_booking, lock_theater_slot
from surgiclinic.surgery.services.cases import (
    add_case_image,
    add_consent_form,
    case_readiness,
    create_case_with_plan,
    get_case_for_update,
    refresh_readiness,
    transition_case,
    update_case_plan,
    update_consent_status,
)
from surgiclinic.surgery.services.procedure import record_timeline, timeline_summary

__all__ = [
    'add_case_image',
    'add_consent_form',
    'case_readiness',
    'confirm_theater_booking',
    'create_case_with_plan',
    'get_case_for_update',
    'lock_theater_slot',
    'record_timeline',
    'refresh_readiness',
    'timeline_summary',
    'transition_case',
    'update_case_plan',
    'update_consent_status',
]
