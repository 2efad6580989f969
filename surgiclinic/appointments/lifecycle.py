"""Appointment lifecycle: check-in, lateness and no-show transitions.

All functions here are pure. They take an immutable ``AppointmentSnapshot`` and
return a new snapshot (or the very same object when nothing applies); the use
cases in ``services`` load/save the model around them.

Invariant: a snapshot never carries both ``check_in`` and ``no_show``. It is
checked on construction, so every transition result satisfies it too.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime

from surgiclinic.core.exceptions import InvalidState

from .models import AppointmentStatus, NoShowReason

# Single source of truth for plain status moves (confirm/cancel/complete).
# Check-in and no-show moves are owned by the functions below.
APPOINTMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.PENDING_DOCTOR_CONFIRMATION,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.PENDING_DOCTOR_CONFIRMATION: frozenset({
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

CLOSED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})

NO_SHOW_ELIGIBLE_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.PENDING_DOCTOR_CONFIRMATION,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.SCHEDULED,
})


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``, floored (negative if end < start)."""
    return math.floor((end - start).total_seconds() / 60)


@dataclass(frozen=True)
class CheckInInfo:
    checked_in_at: datetime
    checked_in_by: int | None
    late_by_minutes: int | None = None

    @classmethod
    def for_arrival(cls, scheduled_at: datetime, checked_in_at: datetime, checked_in_by: int | None) -> CheckInInfo:
        late = max(0, minutes_between(scheduled_at, checked_in_at))
        return cls(
            checked_in_at=checked_in_at,
            checked_in_by=checked_in_by,
            late_by_minutes=late if late > 0 else None,
        )

    @property
    def is_late(self) -> bool:
        return self.late_by_minutes is not None and self.late_by_minutes > 0


@dataclass(frozen=True)
class NoShowInfo:
    no_show_at: datetime
    reason: str
    notes: str = ''
    recorded_by: int | None = None


@dataclass(frozen=True)
class AppointmentSnapshot:
    id: int | None
    patient_id: int
    doctor_id: int
    scheduled_at: datetime
    type: str
    status: str
    check_in: CheckInInfo | None = None
    no_show: NoShowInfo | None = None

    def __post_init__(self):
        if self.check_in is not None and self.no_show is not None:
            raise InvalidState(
                'Appointment cannot be both checked in and marked as no-show',
                appointment_id=self.id,
            )

    @property
    def is_checked_in(self) -> bool:
        return self.check_in is not None

    @property
    def is_no_show(self) -> bool:
        return self.no_show is not None

    @classmethod
    def from_model(cls, appointment) -> AppointmentSnapshot:
        check_in = None
        if appointment.checked_in_at is not None:
            check_in = CheckInInfo(
                checked_in_at=appointment.checked_in_at,
                checked_in_by=appointment.checked_in_by_id,
                late_by_minutes=appointment.late_by_minutes,
            )
        no_show = None
        if appointment.no_show_at is not None:
            no_show = NoShowInfo(
                no_show_at=appointment.no_show_at,
                reason=appointment.no_show_reason,
                notes=appointment.no_show_notes,
                recorded_by=appointment.no_show_by_id,
            )
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            scheduled_at=appointment.scheduled_at,
            type=appointment.type,
            status=appointment.status,
            check_in=check_in,
            no_show=no_show,
        )

    def apply_to(self, appointment) -> list[str]:
        """Copy lifecycle state onto a model instance; returns the changed field names."""
        check_in = self.check_in
        no_show = self.no_show
        appointment.status = self.status
        appointment.checked_in_at = check_in.checked_in_at if check_in else None
        appointment.checked_in_by_id = check_in.checked_in_by if check_in else None
        appointment.late_by_minutes = check_in.late_by_minutes if check_in else None
        appointment.no_show_at = no_show.no_show_at if no_show else None
        appointment.no_show_reason = no_show.reason if no_show else ''
        appointment.no_show_notes = no_show.notes if no_show else ''
        appointment.no_show_by_id = no_show.recorded_by if no_show else None
        return [
            'status',
            'checked_in_at',
            'checked_in_by',
            'late_by_minutes',
            'no_show_at',
            'no_show_reason',
            'no_show_notes',
            'no_show_by',
            'updated_at',
        ]


# ---------------------------------------------------------------------------
# Check-in / no-show
# ---------------------------------------------------------------------------

def check_in(appointment: AppointmentSnapshot, checked_in_at: datetime, user_id: int | None) -> AppointmentSnapshot:
    """Check the patient in; lateness is measured against ``scheduled_at``.

    Check-in from PENDING is an implicit confirmation (status becomes SCHEDULED).
    """
    if appointment.is_checked_in:
        raise InvalidState('Patient is already checked in', appointment_id=appointment.id)
    if appointment.status in CLOSED_STATUSES:
        raise InvalidState(
            f'Cannot check in to a {appointment.status.lower()} appointment',
            appointment_id=appointment.id,
            status=appointment.status,
        )
    if appointment.is_no_show:
        raise InvalidState(
            'Appointment is marked as no-show; reverse the no-show to check in',
            appointment_id=appointment.id,
        )

    status = appointment.status
    if status == AppointmentStatus.PENDING:
        status = AppointmentStatus.SCHEDULED

    return replace(
        appointment,
        status=status,
        check_in=CheckInInfo.for_arrival(appointment.scheduled_at, checked_in_at, user_id),
    )


def mark_as_no_show(
    appointment: AppointmentSnapshot,
    reason: str,
    notes: str,
    user_id: int | None,
    now: datetime,
) -> AppointmentSnapshot:
    if appointment.is_checked_in:
        raise InvalidState('Cannot mark a checked-in appointment as no-show', appointment_id=appointment.id)
    if appointment.is_no_show:
        raise InvalidState('Appointment is already marked as no-show', appointment_id=appointment.id)
    if appointment.status not in NO_SHOW_ELIGIBLE_STATUSES:
        raise InvalidState(
            f'Cannot mark a {appointment.status.lower()} appointment as no-show',
            appointment_id=appointment.id,
            status=appointment.status,
        )

    return replace(
        appointment,
        status=AppointmentStatus.NO_SHOW,
        no_show=NoShowInfo(no_show_at=now, reason=reason, notes=notes or '', recorded_by=user_id),
    )


def auto_detect_no_show(appointment: AppointmentSnapshot, now: datetime, threshold_minutes: int) -> AppointmentSnapshot:
    """Mark a no-show once ``threshold_minutes`` have passed without check-in.

    Returns ``appointment`` itself (same object) whenever nothing applies, so
    callers can test ``result is appointment``. Never overrides a check-in.
    """
    if appointment.is_checked_in or appointment.is_no_show:
        return appointment
    if appointment.status not in NO_SHOW_ELIGIBLE_STATUSES:
        return appointment

    elapsed = minutes_between(appointment.scheduled_at, now)
    if elapsed < threshold_minutes:
        return appointment

    return replace(
        appointment,
        status=AppointmentStatus.NO_SHOW,
        no_show=NoShowInfo(
            no_show_at=now,
            reason=NoShowReason.AUTO,
            notes=f'Automatically detected {elapsed} minutes after appointment time',
        ),
    )


def reverse_no_show_with_check_in(
    appointment: AppointmentSnapshot,
    checked_in_at: datetime,
    user_id: int | None,
) -> AppointmentSnapshot:
    """Patient arrived after all: drop the no-show and check in normally."""
    if not appointment.is_no_show:
        raise InvalidState(
            'Cannot reverse no-show: appointment is not marked as no-show',
            appointment_id=appointment.id,
        )

    status = appointment.status
    if status == AppointmentStatus.NO_SHOW:
        status = AppointmentStatus.SCHEDULED
    cleared = replace(appointment, status=status, no_show=None)
    return check_in(cleared, checked_in_at, user_id)


# ---------------------------------------------------------------------------
# Plain status moves
# ---------------------------------------------------------------------------

def can_transition(current: str, target: str) -> bool:
    if current == target:
        return False
    return target in APPOINTMENT_TRANSITIONS.get(current, frozenset())


def transition_status(appointment: AppointmentSnapshot, target: str) -> AppointmentSnapshot:
    if not can_transition(appointment.status, target):
        raise InvalidState(
            f'Cannot move appointment from {appointment.status} to {target}',
            appointment_id=appointment.id,
            status=appointment.status,
            target=target,
        )
    return replace(appointment, status=target)


def confirm_by_doctor(appointment: AppointmentSnapshot) -> AppointmentSnapshot:
    if appointment.status == AppointmentStatus.PENDING:
        appointment = transition_status(appointment, AppointmentStatus.PENDING_DOCTOR_CONFIRMATION)
    return transition_status(appointment, AppointmentStatus.SCHEDULED)


def cancel(appointment: AppointmentSnapshot) -> AppointmentSnapshot:
    return transition_status(appointment, AppointmentStatus.CANCELLED)


def complete(appointment: AppointmentSnapshot) -> AppointmentSnapshot:
    """Close an attended appointment. Requires a check-in."""
    if not appointment.is_checked_in:
        raise InvalidState('Cannot complete an appointment without check-in', appointment_id=appointment.id)
    if appointment.status != AppointmentStatus.SCHEDULED and can_transition(
        appointment.status, AppointmentStatus.SCHEDULED
    ):
        appointment = transition_status(appointment, AppointmentStatus.SCHEDULED)
    return transition_status(appointment, AppointmentStatus.COMPLETED)
