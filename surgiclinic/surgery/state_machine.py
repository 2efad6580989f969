"""Surgical case status transitions.

The table below is the only place legal moves are defined. It enforces
topology only; business gates (plan readiness, booking confirmation) are
checked by the use cases before they ask for a transition.
"""

from __future__ import annotations

from surgiclinic.core.exceptions import InvalidTransition

from .models import SurgicalCaseStatus as S

CASE_TRANSITIONS: dict[str, frozenset[str]] = {
    S.DRAFT: frozenset({S.PLANNING, S.CANCELLED}),
    S.PLANNING: frozenset({S.READY_FOR_SCHEDULING, S.CANCELLED}),
    S.READY_FOR_SCHEDULING: frozenset({S.SCHEDULED, S.PLANNING, S.CANCELLED}),
    S.SCHEDULED: frozenset({S.IN_PREP, S.CANCELLED}),
    S.IN_PREP: frozenset({S.IN_THEATER, S.CANCELLED}),
    S.IN_THEATER: frozenset({S.RECOVERY}),
    S.RECOVERY: frozenset({S.COMPLETED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in CASE_TRANSITIONS.items() if not targets)

# Plan edits are frozen once a case has been scheduled.
PLAN_EDITABLE_STATUSES = frozenset({S.DRAFT, S.PLANNING, S.READY_FOR_SCHEDULING})

TIMELINE_RECORDING_STATUSES = frozenset({S.IN_PREP, S.IN_THEATER, S.RECOVERY})


def allowed_targets(current: str) -> frozenset[str]:
    return CASE_TRANSITIONS.get(current, frozenset())


def can_transition(current: str, target: str) -> bool:
    return target in allowed_targets(current)


def transition(current: str, target: str) -> str:
    """Return ``target`` if ``current -> target`` is in the table, else raise InvalidTransition."""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)
    return target
