"""
Concurrent donations against a single treatment.

These run in real transactions (``TransactionTestCase``) on a file-backed
test database so each thread has its own connection and the row lock /
immediate-mode write lock is actually contended.
"""
import threading
from decimal import Decimal

from django.db import connection
from django.db.models import Sum
from django.test import TransactionTestCase

from core.models import Donation, Treatment, User
from core.services import treatments as svc


class ConcurrentDonationTests(TransactionTestCase):
    def setUp(self) -> None:
        self.patient = User.objects.create_user(username='p@example.org', email='p@example.org',
                                                password='Cedar-Lantern-42', role='patient')
        self.donors = [
            User.objects.create_user(username=f'd{i}@example.org', email=f'd{i}@example.org',
                                     password='Cedar-Lantern-42', role='donor')
            for i in range(10)
        ]
        self.treatment = svc.create_treatment(self.patient, title='Surgery', description='Urgent',
                                              goal_amount='100.00')

    def _run_concurrently(self, amounts):
        barrier = threading.Barrier(len(amounts))
        errors = []

        def worker(donor, amount):
            try:
                barrier.wait()
                svc.donate(donor, self.treatment.id, amount)
            except Exception as exc:  # collected and asserted in the main thread
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(self.donors[i], a)) for i, a in enumerate(amounts)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)
        return errors

    def test_three_concurrent_donations_all_count(self):
        errors = self._run_concurrently(['40.00', '40.00', '30.00'])
        self.assertEqual(errors, [])

        self.treatment.refresh_from_db()
        self.assertEqual(self.treatment.funded_amount, Decimal('110.00'))
        self.assertEqual(self.treatment.status, Treatment.STATUS_FUNDED)
        rows = Donation.objects.filter(treatment=self.treatment)
        self.assertEqual(rows.count(), 3)
        self.assertEqual(rows.aggregate(s=Sum('amount'))['s'], Decimal('110.00'))

    def test_ledger_invariant_holds_after_many_concurrent_donations(self):
        amounts = ['7.25', '3.10', '12.00', '0.65', '9.99', '1.01', '20.00', '4.50', '8.75', '2.75']
        errors = self._run_concurrently(amounts)
        self.assertEqual(errors, [])

        self.treatment.refresh_from_db()
        total = Donation.objects.filter(treatment=self.treatment).aggregate(s=Sum('amount'))['s']
        self.assertEqual(total, sum(Decimal(a) for a in amounts))
        self.assertEqual(self.treatment.funded_amount, total)
        self.assertEqual(self.treatment.status, Treatment.STATUS_ACTIVE)
        self.assertEqual(svc.ledger_mismatches(), [])
