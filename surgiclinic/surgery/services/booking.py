"""Theater booking use cases wrapping ``surgery.locking.TheaterSlotLock``."""

from __future__ import annotations

import logging

from django.db import transaction

from surgiclinic.core.utils import record_audit_event, validate_command, validate_id
from surgiclinic.surgery.locking import TheaterSlotLock
from surgiclinic.surgery.models import SurgicalCase, SurgicalCaseStatus, TheaterBooking
from surgiclinic.surgery.serializers import LockSlotCommandSerializer
from surgiclinic.surgery.signals import surgical_case_status_changed, theater_booking_confirmed

logger = logging.getLogger(__name__)


def lock_theater_slot(actor, data, *, clock=None, using: str = 'default') -> TheaterBooking:
    """Provisionally lock a theater interval for a case.

    ``data``: ``case_id``, ``theater_id``, ``start_time``, ``end_time``.
    """
    command = validate_command(LockSlotCommandSerializer, data)
    slot_lock = TheaterSlotLock(clock=clock, using=using)

    with transaction.atomic(using=using):
        booking = slot_lock.lock_slot(
            command['case_id'],
            command['theater_id'],
            command['start_time'],
            command['end_time'],
            actor.user_id,
        )
        transaction.on_commit(
            lambda: record_audit_event(
                actor,
                'theater_slot_lock',
                patient_id=booking.case.patient_id,
                meta={
                    'booking_id': booking.id,
                    'case_id': str(booking.case_id),
                    'theater_id': booking.theater_id,
                    'lock_expires_at': booking.lock_expires_at.isoformat(),
                },
                using=using,
            ),
            using=using,
        )

    logger.info(
        'Theater %s locked for case %s by user %s until %s',
        booking.theater_id,
        booking.case_id,
        actor.user_id,
        booking.lock_expires_at.isoformat(),
    )
    return booking


def confirm_theater_booking(booking_id: int, actor, *, clock=None, using: str = 'default') -> TheaterBooking:
    """Confirm a provisional booking; the case becomes SCHEDULED in the same transaction."""
    booking_id = validate_id(booking_id, 'booking_id')
    slot_lock = TheaterSlotLock(clock=clock, using=using)

    with transaction.atomic(using=using):
        booking = slot_lock.confirm_booking(booking_id, actor.user_id, actor.role)
        override = booking.locked_by_id != actor.user_id
        transaction.on_commit(
            lambda: _after_confirm(booking, actor, override, using),
            using=using,
        )

    if override:
        logger.warning(
            'Admin %s overrode theater lock held by user %s (booking %s)',
            actor.user_id,
            booking.locked_by_id,
            booking.id,
        )
    logger.info('Booking %s confirmed; case %s scheduled', booking.id, booking.case_id)
    return booking


def _after_confirm(booking: TheaterBooking, actor, override: bool, using: str) -> None:
    surgical_case = booking.case
    record_audit_event(
        actor,
        'theater_booking_confirm',
        patient_id=surgical_case.patient_id,
        meta={
            'booking_id': booking.id,
            'case_id': str(surgical_case.pk),
            'theater_id': booking.theater_id,
            'admin_override': override,
        },
        using=using,
    )
    theater_booking_confirmed.send(sender=TheaterBooking, booking=booking, actor=actor)
    surgical_case_status_changed.send(
        sender=SurgicalCase,
        surgical_case=surgical_case,
        previous_status=SurgicalCaseStatus.READY_FOR_SCHEDULING,
        status=surgical_case.status,
        actor=actor,
    )
