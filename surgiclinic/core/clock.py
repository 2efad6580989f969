"""Clock port.

Services never call ``timezone.now()`` directly; they receive a clock so tests
can pin and advance time.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from django.utils import timezone


class SystemClock:
    def now(self) -> datetime:
        return timezone.now()


class FixedClock:
    """Clock frozen at a given instant until moved explicitly."""

    def __init__(self, current: datetime):
        if timezone.is_naive(current):
            current = timezone.make_aware(current, timezone.get_current_timezone())
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


def resolve_clock(clock=None):
    return clock if clock is not None else SystemClock()
