from django.conf import settings

DEFAULTS = {
    'LOCK_TTL_MINUTES': 5,
    'MAX_ACTIVE_LOCKS_PER_USER': 3,
    'NO_SHOW_THRESHOLD_MINUTES': 30,
    'TIMELINE_PAST_WINDOW_HOURS': 48,
    'TIMELINE_FUTURE_TOLERANCE_MINUTES': 5,
}


def workflow_setting(name: str):
    """Read a key from ``settings.CLINIC_WORKFLOW``, falling back to DEFAULTS."""
    overrides = getattr(settings, 'CLINIC_WORKFLOW', None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
