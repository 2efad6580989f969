"""
Attendance use cases: check-in, no-show marking/reversal and the no-show sweep.

Each use case:
- validates the command payload (DRF serializer),
- row-locks the appointment inside ``transaction.atomic``,
- runs the pure transition from ``appointments.lifecycle``,
- saves, and schedules audit + signals with ``transaction.on_commit``.

Workflow errors from ``surgiclinic.core.exceptions`` propagate unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.db import transaction

from surgiclinic.appointments import lifecycle
from surgiclinic.appointments.lifecycle import AppointmentSnapshot
from surgiclinic.appointments.models import Appointment
from surgiclinic.appointments.serializers import CheckInCommandSerializer, NoShowCommandSerializer
from surgiclinic.appointments.signals import appointment_checked_in, appointment_marked_no_show
from surgiclinic.core.clock import resolve_clock
from surgiclinic.core.conf import workflow_setting
from surgiclinic.core.exceptions import NotFound
from surgiclinic.core.utils import record_audit_event, validate_command, validate_id

logger = logging.getLogger(__name__)


def get_appointment_for_update(appointment_id: int, *, using: str = 'default') -> Appointment:
    """Load and row-lock an appointment. Must run inside a transaction."""
    appointment_id = validate_id(appointment_id, 'appointment_id')
    appointment = (
        Appointment.objects.using(using)
        .select_for_update()
        .filter(id=appointment_id)
        .first()
    )
    if appointment is None:
        raise NotFound(f'Appointment with ID {appointment_id} not found', appointment_id=appointment_id)
    return appointment


def _save_snapshot(appointment: Appointment, snapshot: AppointmentSnapshot, using: str) -> Appointment:
    update_fields = snapshot.apply_to(appointment)
    appointment.save(using=using, update_fields=update_fields)
    return appointment


def apply_transition(appointment_id: int, transition, *, using: str = 'default') -> Appointment:
    """Run ``transition(snapshot) -> snapshot`` against a locked appointment and save it.

    For callers that already hold a transaction (e.g. completing a consultation).
    """
    appointment = get_appointment_for_update(appointment_id, using=using)
    snapshot = AppointmentSnapshot.from_model(appointment)
    return _save_snapshot(appointment, transition(snapshot), using)


def check_in_patient(appointment_id: int, actor, data=None, *, clock=None, using: str = 'default') -> Appointment:
    """Check a patient in. ``data`` may carry an explicit ``checked_in_at``."""
    command = validate_command(CheckInCommandSerializer, data or {})
    clock = resolve_clock(clock)
    checked_in_at = command.get('checked_in_at') or clock.now()

    with transaction.atomic(using=using):
        appointment = get_appointment_for_update(appointment_id, using=using)
        snapshot = lifecycle.check_in(
            AppointmentSnapshot.from_model(appointment),
            checked_in_at,
            actor.user_id,
        )
        _save_snapshot(appointment, snapshot, using)
        transaction.on_commit(
            lambda: _after_check_in(appointment, actor, snapshot, using),
            using=using,
        )

    logger.info(
        'Appointment %s checked in by user %s (late_by_minutes=%s)',
        appointment.id,
        actor.user_id,
        appointment.late_by_minutes,
    )
    return appointment


def _after_check_in(appointment, actor, snapshot: AppointmentSnapshot, using: str) -> None:
    check_in = snapshot.check_in
    record_audit_event(
        actor,
        'appointment_check_in',
        patient_id=appointment.patient_id,
        meta={
            'appointment_id': appointment.id,
            'is_late': check_in.is_late,
            'late_by_minutes': check_in.late_by_minutes,
        },
        using=using,
    )
    appointment_checked_in.send(sender=Appointment, appointment=appointment, actor=actor)


def mark_no_show(appointment_id: int, actor, data=None, *, clock=None, using: str = 'default') -> Appointment:
    command = validate_command(NoShowCommandSerializer, data or {})
    clock = resolve_clock(clock)

    with transaction.atomic(using=using):
        appointment = get_appointment_for_update(appointment_id, using=using)
        snapshot = lifecycle.mark_as_no_show(
            AppointmentSnapshot.from_model(appointment),
            command['reason'],
            command['notes'],
            actor.user_id,
            clock.now(),
        )
        _save_snapshot(appointment, snapshot, using)
        transaction.on_commit(
            lambda: _after_no_show(appointment, actor, using),
            using=using,
        )

    logger.info('Appointment %s marked as no-show (%s)', appointment.id, appointment.no_show_reason)
    return appointment


def _after_no_show(appointment, actor, using: str) -> None:
    record_audit_event(
        actor,
        'appointment_no_show',
        patient_id=appointment.patient_id,
        meta={
            'appointment_id': appointment.id,
            'reason': appointment.no_show_reason,
        },
        using=using,
    )
    appointment_marked_no_show.send(sender=Appointment, appointment=appointment, actor=actor)


def reverse_no_show(appointment_id: int, actor, data=None, *, clock=None, using: str = 'default') -> Appointment:
    """Patient turned up after being marked no-show: clear it and check in."""
    command = validate_command(CheckInCommandSerializer, data or {})
    clock = resolve_clock(clock)
    checked_in_at = command.get('checked_in_at') or clock.now()

    with transaction.atomic(using=using):
        appointment = get_appointment_for_update(appointment_id, using=using)
        snapshot = lifecycle.reverse_no_show_with_check_in(
            AppointmentSnapshot.from_model(appointment),
            checked_in_at,
            actor.user_id,
        )
        _save_snapshot(appointment, snapshot, using)
        transaction.on_commit(
            lambda: _after_check_in(appointment, actor, snapshot, using),
            using=using,
        )

    logger.info('No-show reversed for appointment %s', appointment.id)
    return appointment


def no_show_candidates(now: datetime, threshold_minutes: int, *, using: str = 'default'):
    """Appointments whose threshold has passed without check-in or no-show."""
    return (
        Appointment.objects.using(using)
        .filter(
            status__in=lifecycle.NO_SHOW_ELIGIBLE_STATUSES,
            checked_in_at__isnull=True,
            no_show_at__isnull=True,
            scheduled_at__lte=now - timedelta(minutes=threshold_minutes),
        )
        .order_by('scheduled_at', 'id')
    )


def sweep_no_shows(*, threshold_minutes: int | None = None, clock=None, using: str = 'default') -> list[int]:
    """Apply automatic no-show detection to every overdue appointment.

    Each appointment is re-checked under its own row lock, so a check-in that
    lands while the sweep runs always wins. Returns the ids marked as no-show.
    """
    clock = resolve_clock(clock)
    now = clock.now()
    if threshold_minutes is None:
        threshold_minutes = workflow_setting('NO_SHOW_THRESHOLD_MINUTES')

    candidate_ids = list(no_show_candidates(now, threshold_minutes, using=using).values_list('id', flat=True))
    marked: list[int] = []
    for appointment_id in candidate_ids:
        with transaction.atomic(using=using):
            appointment = get_appointment_for_update(appointment_id, using=using)
            snapshot = AppointmentSnapshot.from_model(appointment)
            detected = lifecycle.auto_detect_no_show(snapshot, now, threshold_minutes)
            if detected is snapshot:
                continue
            _save_snapshot(appointment, detected, using)
            transaction.on_commit(
                lambda appointment=appointment: _after_no_show(appointment, None, using),
                using=using,
            )
        marked.append(appointment_id)

    if marked:
        logger.info('No-show sweep marked %d appointment(s)', len(marked))
    return marked
