"""
Theater slot locking.

Two-phase booking of theater time:

1. ``lock_slot`` creates a PROVISIONAL booking that holds the interval for a
   short TTL (``LOCK_TTL_MINUTES``).
2. ``confirm_booking`` turns a live provisional booking into CONFIRMED and
   moves the surgical case to SCHEDULED.

Expired provisional bookings are never swept. They simply stop matching
``live_lock_q`` and therefore no longer count against the holder's lock limit
or block the interval.

Race handling:
- Every lock attempt for a theater first takes a row lock on the Theater
  (``select_for_update``), so two attempts for the same theater run one after
  the other and the second sees the first one's booking.
- The locking user's row is locked too, so the per-user count cannot be
  exceeded by parallel attempts on different theaters.

Both methods open ``transaction.atomic`` themselves (a savepoint when the
caller already holds a transaction). Nothing in here logs; the use cases in
``services.booking`` do.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from django.contrib.auth import get_user_model
from django.db import transaction

from surgiclinic.core.clock import resolve_clock
from surgiclinic.core.conf import workflow_setting
from surgiclinic.core.exceptions import (
    Conflict,
    InvalidState,
    LockConflict,
    LockExpired,
    LockLimitExceeded,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from surgiclinic.core.identity import is_admin_role

from . import state_machine
from .models import BookingStatus, SurgicalCase, SurgicalCaseStatus, Theater, TheaterBooking


class TheaterSlotLock:
    """Pessimistic, time-boxed locks on theater intervals.

    Args:
        clock: Clock port (defaults to ``SystemClock``).
        using: Database alias.
        ttl_minutes: Lock lifetime; defaults to ``CLINIC_WORKFLOW['LOCK_TTL_MINUTES']``.
        max_active_locks: Per-user cap on live provisional bookings; defaults to
            ``CLINIC_WORKFLOW['MAX_ACTIVE_LOCKS_PER_USER']``.
    """

    def __init__(
        self,
        *,
        clock=None,
        using: str = 'default',
        ttl_minutes: int | None = None,
        max_active_locks: int | None = None,
    ):
        self.clock = resolve_clock(clock)
        self.using = using
        if ttl_minutes is None:
            ttl_minutes = workflow_setting('LOCK_TTL_MINUTES')
        if max_active_locks is None:
            max_active_locks = workflow_setting('MAX_ACTIVE_LOCKS_PER_USER')
        self.ttl = timedelta(minutes=ttl_minutes)
        self.max_active_locks = max_active_locks

    def _bookings(self):
        return TheaterBooking.objects.using(self.using)

    def lock_slot(
        self,
        case_id,
        theater_id: int,
        start: datetime,
        end: datetime,
        user_id: int,
    ) -> TheaterBooking:
        """
        Provisionally lock ``[start, end)`` in a theater for a surgical case.

        Steps, in one transaction:
        1. Count the user's live provisional bookings across all theaters.
        2. Look for confirmed or live provisional bookings overlapping the interval.
        3. Insert the new PROVISIONAL booking with ``lock_expires_at = now + TTL``.

        Returns:
            The created TheaterBooking.

        Raises:
            ValidationFailed: If ``end`` is not after ``start``.
            NotFound: If the case, the theater (or an inactive one) or the user does not exist.
            LockLimitExceeded: If the user already holds ``max_active_locks`` live locks.
            LockConflict: If the interval is already booked or locked.
        """
        if end <= start:
            raise ValidationFailed(
                [{'field': 'end_time', 'message': 'end_time must be after start_time'}],
            )

        with transaction.atomic(using=self.using):
            now = self.clock.now()

            theater = (
                Theater.objects.using(self.using)
                .select_for_update()
                .filter(id=theater_id, is_active=True)
                .first()
            )
            if theater is None:
                raise NotFound(f'Theater with ID {theater_id} not found or inactive', theater_id=theater_id)

            surgical_case = SurgicalCase.objects.using(self.using).filter(pk=case_id).first()
            if surgical_case is None:
                raise NotFound(f'Surgical case {case_id} not found', case_id=str(case_id))

            user = get_user_model().objects.using(self.using).select_for_update().filter(id=user_id).first()
            if user is None:
                raise NotFound(f'User with ID {user_id} not found', user_id=user_id)

            active_locks = self._bookings().filter(locked_by_id=user_id).live_locks(now).count()
            if active_locks >= self.max_active_locks:
                raise LockLimitExceeded(
                    f'You have reached the maximum number of active locks ({self.max_active_locks}). '
                    'Please confirm or let existing locks expire.',
                    active_locks=active_locks,
                    limit=self.max_active_locks,
                )

            blocking = list(
                self._bookings()
                .filter(theater_id=theater.id)
                .overlapping(start, end)
                .blocking(now)
                .order_by('start_time', 'id')
            )
            if blocking:
                raise LockConflict([
                    Conflict(
                        model='TheaterBooking',
                        id=booking.id,
                        status=booking.status,
                        resource_id=booking.theater_id,
                        message=f'Theater is already {"booked" if booking.status == BookingStatus.CONFIRMED else "locked"} '
                                f'by booking #{booking.id}',
                    )
                    for booking in blocking
                ])

            return self._bookings().create(
                theater=theater,
                case=surgical_case,
                start_time=start,
                end_time=end,
                status=BookingStatus.PROVISIONAL,
                locked_by=user,
                locked_at=now,
                lock_expires_at=now + self.ttl,
            )

    def confirm_booking(self, booking_id: int, user_id: int, role: str | None = None) -> TheaterBooking:
        """
        Confirm a provisional booking and schedule its surgical case.

        Only the lock holder may confirm, unless ``role`` is admin. An expired
        lock can never be confirmed; it has to be locked again.

        Returns:
            The confirmed TheaterBooking; ``booking.case`` carries the updated case.

        Raises:
            NotFound: Unknown booking.
            InvalidState: Booking is not PROVISIONAL.
            LockExpired: ``lock_expires_at`` has passed.
            Unauthorized: Caller is neither the lock holder nor an admin.
            InvalidTransition: The case cannot move to SCHEDULED.
        """
        with transaction.atomic(using=self.using):
            booking = self._bookings().select_for_update().filter(id=booking_id).first()
            if booking is None:
                raise NotFound(f'Booking with ID {booking_id} not found', booking_id=booking_id)

            if booking.status != BookingStatus.PROVISIONAL:
                raise InvalidState(
                    'Booking is not in provisional state',
                    booking_id=booking.id,
                    status=booking.status,
                )

            now = self.clock.now()
            if booking.lock_expires_at <= now:
                raise LockExpired(booking_id=booking.id)

            if booking.locked_by_id != user_id and not is_admin_role(role):
                raise Unauthorized(
                    'Booking is locked by another user',
                    booking_id=booking.id,
                )

            surgical_case = (
                SurgicalCase.objects.using(self.using)
                .select_for_update()
                .get(pk=booking.case_id)
            )
            surgical_case.status = state_machine.transition(surgical_case.status, SurgicalCaseStatus.SCHEDULED)
            surgical_case.save(using=self.using, update_fields=['status', 'updated_at'])

            booking.status = BookingStatus.CONFIRMED
            booking.confirmed_by_id = user_id
            booking.confirmed_at = now
            booking.save(using=self.using, update_fields=['status', 'confirmed_by', 'confirmed_at'])
            booking.case = surgical_case
            return booking
