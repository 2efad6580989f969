"""Operative timeline: ordering/range validation and derived durations.

Six optional timestamps in fixed causal order::

    wheels_in -> anesthesia_start -> incision_time -> closure_time -> anesthesia_end -> wheels_out

Partial timelines are valid. Ordering is checked for each adjacent pair of
the fixed sequence when both values are present; a gap means the fields on
either side of it are not compared. Everything here is pure.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta

from .models import SurgicalCaseStatus

FIELD_ORDER: tuple[str, ...] = (
    'wheels_in',
    'anesthesia_start',
    'incision_time',
    'closure_time',
    'anesthesia_end',
    'wheels_out',
)

LABELS: dict[str, str] = {
    'wheels_in': 'Wheels In',
    'anesthesia_start': 'Anesthesia Start',
    'incision_time': 'Incision',
    'closure_time': 'Closure',
    'anesthesia_end': 'Anesthesia End',
    'wheels_out': 'Wheels Out',
}

DEFAULT_PAST_WINDOW = timedelta(hours=48)
DEFAULT_FUTURE_TOLERANCE = timedelta(minutes=5)

_ALL_FIELDS = FIELD_ORDER
_EXPECTED_BY_STATUS: dict[str, tuple[str, ...]] = {
    SurgicalCaseStatus.IN_THEATER: ('wheels_in', 'anesthesia_start', 'incision_time'),
    SurgicalCaseStatus.RECOVERY: _ALL_FIELDS,
    SurgicalCaseStatus.COMPLETED: _ALL_FIELDS,
}


@dataclass(frozen=True)
class OperativeTimeline:
    wheels_in: datetime | None = None
    anesthesia_start: datetime | None = None
    incision_time: datetime | None = None
    closure_time: datetime | None = None
    anesthesia_end: datetime | None = None
    wheels_out: datetime | None = None

    @classmethod
    def from_record(cls, record) -> OperativeTimeline:
        if record is None:
            return cls()
        return cls(**{name: getattr(record, name) for name in FIELD_ORDER})

    def merge(self, patch: dict) -> OperativeTimeline:
        """Copy with the patched fields replaced; ``None`` in the patch clears a field."""
        return replace(self, **{name: patch[name] for name in FIELD_ORDER if name in patch})

    def to_dict(self) -> dict[str, datetime | None]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TimelineValidation:
    errors: tuple[dict, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_timeline(
    timeline: OperativeTimeline,
    now: datetime,
    *,
    past_window: timedelta = DEFAULT_PAST_WINDOW,
    future_tolerance: timedelta = DEFAULT_FUTURE_TOLERANCE,
) -> TimelineValidation:
    """Collect every range and ordering error; never stops at the first one."""
    errors: list[dict] = []
    future_limit = now + future_tolerance
    past_limit = now - past_window
    past_hours = int(past_window.total_seconds() // 3600)

    for name in FIELD_ORDER:
        value = getattr(timeline, name)
        if value is None:
            continue
        if value > future_limit:
            errors.append({'field': name, 'message': f'{LABELS[name]} cannot be in the future'})
        if value < past_limit:
            errors.append({
                'field': name,
                'message': f'{LABELS[name]} is more than {past_hours} hours in the past, possible date error',
            })

    for earlier, later in zip(FIELD_ORDER, FIELD_ORDER[1:]):
        a = getattr(timeline, earlier)
        b = getattr(timeline, later)
        if a is not None and b is not None and a >= b:
            errors.append({'field': later, 'message': f'{LABELS[later]} must be after {LABELS[earlier]}'})

    return TimelineValidation(errors=tuple(errors))


def _round_minutes(start: datetime | None, end: datetime | None) -> int | None:
    if start is None or end is None:
        return None
    # Half-up, so a 90 second span is 2 minutes.
    return math.floor((end - start).total_seconds() / 60 + 0.5)


def compute_derived_durations(timeline: OperativeTimeline) -> dict[str, int | None]:
    t = timeline
    return {
        'or_time_minutes': _round_minutes(t.wheels_in, t.wheels_out),
        'surgery_time_minutes': _round_minutes(t.incision_time, t.closure_time),
        'prep_time_minutes': _round_minutes(t.wheels_in, t.incision_time),
        'close_out_time_minutes': _round_minutes(t.closure_time, t.wheels_out),
        'anesthesia_time_minutes': _round_minutes(t.anesthesia_start, t.anesthesia_end),
    }


def missing_items_for_status(status: str, timeline: OperativeTimeline) -> list[dict[str, str]]:
    """Fields expected by ``status`` that are still empty, in fixed order.

    Nothing is expected before IN_THEATER.
    """
    expected = _EXPECTED_BY_STATUS.get(status, ())
    return [
        {'field': name, 'label': LABELS[name]}
        for name in expected
        if getattr(timeline, name) is None
    ]
