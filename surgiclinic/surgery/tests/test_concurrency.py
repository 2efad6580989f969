"""Concurrent slot locking against a real database.

SQLite serializes writers on its own, so the race only shows on PostgreSQL.
"""

import threading
from unittest import skipUnless

from django.db import connection, connections
from django.test import TransactionTestCase

from surgiclinic.core.clock import FixedClock
from surgiclinic.core.exceptions import LockConflict
from surgiclinic.surgery.locking import TheaterSlotLock
from surgiclinic.surgery.models import TheaterBooking

from .base import NOW, SurgeryFixtures, at


@skipUnless(connection.vendor == "postgresql", "needs row-level locking from PostgreSQL")
class ConcurrentLockSlotTest(SurgeryFixtures, TransactionTestCase):
    databases = {"default"}

    def test_overlapping_locks_from_two_threads(self):
        case_a = self.make_case(patient_id=711)
        case_b = self.make_case(patient_id=712, surgeon=self.surgeon2)
        attempts = [
            (case_a, at(10), at(12), self.surgeon),
            (case_b, at(11), at(13), self.surgeon2),
        ]
        barrier = threading.Barrier(len(attempts))
        results = []
        errors = []

        def attempt(surgical_case, start, end, user):
            try:
                barrier.wait()
                TheaterSlotLock(clock=FixedClock(NOW)).lock_slot(
                    surgical_case.pk, self.theater.id, start, end, user.id,
                )
                results.append("ok")
            except LockConflict:
                results.append("conflict")
            except Exception as exc:
                errors.append(exc)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=attempt, args=args) for args in attempts]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        self.assertEqual(errors, [])
        self.assertEqual(sorted(results), ["conflict", "ok"])
        self.assertEqual(TheaterBooking.objects.using("default").filter(theater=self.theater).count(), 1)
