"""
Tests for monthly invoicing.

Tests cover:
- Aggregation of completed sessions into invoice summaries
- Invoice creation, frozen rates and recompute
- Invoice numbering under both policies
- Payment status transitions and the overdue sweep
- API endpoints and the mark_overdue_invoices command
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from io import StringIO
import threading
from unittest import mock

from django.core.management import call_command
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from scheduling.errors import InvalidRateError, StudioNotFoundError
from scheduling.models import Session, Studio, duration_in_hours

from . import services
from .errors import (
    InvalidPeriodError,
    InvalidStatusTransitionError,
    InvoiceAlreadyExistsError,
    InvoiceNotFoundError,
    InvoiceNumberConflictError,
    NothingToInvoiceError,
)
from .models import Invoice, InvoiceNumberSequence

CREATED_ON = date(2025, 4, 2)


def make_studio(name="Studio A", hourly_rate="40.00"):
    return Studio.objects.create(name=name, hourly_rate=Decimal(hourly_rate))


def add_session(studio, day, start=time(9, 0), end=time(10, 15), status='completed'):
    start_datetime = datetime.combine(day, start)
    end_datetime = datetime.combine(day, end)
    return Session.objects.create(
        studio=studio,
        title="Class",
        start_datetime=start_datetime,
        end_datetime=end_datetime,
        duration_hours=duration_in_hours(start_datetime, end_datetime),
        status=status,
    )


def add_march_sessions(studio, count=3):
    """Completed 1.25 h sessions on consecutive Mondays of March 2025."""
    for week in range(count):
        add_session(studio, date(2025, 3, 3) + timedelta(weeks=week))


class AmountCalculationTests(TestCase):
    """Test hour and amount rounding."""

    def test_amount_rounds_half_up_to_cents(self):
        self.assertEqual(services.calculate_amount(Decimal('0.5'), Decimal('0.01')), Decimal('0.01'))
        self.assertEqual(services.calculate_amount(Decimal('1.33'), Decimal('33.33')), Decimal('44.33'))

    def test_sum_hours_of_no_sessions(self):
        self.assertEqual(services.sum_hours([]), Decimal('0.00'))

    def test_validate_period(self):
        services.validate_period(12, 2025)
        for month, year in [(0, 2025), (13, 2025), (1, 1999), (1, 10000)]:
            with self.assertRaises(InvalidPeriodError):
                services.validate_period(month, year)


class InvoiceSummaryTests(TestCase):
    """Test the aggregator."""

    def setUp(self):
        self.studio = make_studio()
        add_march_sessions(self.studio)

    def test_summary_totals(self):
        """Three completed 1.25 h sessions at 40 make 3.75 h and 150.00."""
        summary = services.get_invoice_summary(self.studio.pk, 3, 2025)

        self.assertEqual(summary.total_hours, Decimal('3.75'))
        self.assertEqual(summary.completed_sessions, 3)
        self.assertEqual(summary.hourly_rate, Decimal('40.00'))
        self.assertEqual(summary.total_amount, Decimal('150.00'))
        self.assertFalse(summary.has_existing_invoice)
        self.assertIsNone(summary.invoice_number)

    def test_scheduled_and_cancelled_sessions_are_not_billed(self):
        add_session(self.studio, date(2025, 3, 24), status='scheduled')
        add_session(self.studio, date(2025, 3, 31), status='cancelled')

        summary = services.get_invoice_summary(self.studio.pk, 3, 2025)

        self.assertEqual(summary.completed_sessions, 3)
        self.assertEqual(summary.total_hours, Decimal('3.75'))

    def test_sessions_outside_month_are_not_billed(self):
        add_session(self.studio, date(2025, 2, 28))
        add_session(self.studio, date(2025, 4, 1))

        summary = services.get_invoice_summary(self.studio.pk, 3, 2025)

        self.assertEqual(summary.completed_sessions, 3)

    def test_summaries_omit_studios_without_activity(self):
        idle = make_studio("Idle")
        add_session(idle, date(2025, 3, 5), status='scheduled')
        busy = make_studio("Busy", hourly_rate="55.00")
        add_session(busy, date(2025, 3, 6))

        summaries = services.get_invoice_summaries(3, 2025)

        self.assertEqual([s.studio_name for s in summaries], ["Busy", "Studio A"])
        self.assertEqual(summaries[0].total_amount, Decimal('68.75'))

    def test_summaries_skip_inactive_studios(self):
        self.studio.is_active = False
        self.studio.save()

        self.assertEqual(services.get_invoice_summaries(3, 2025), [])

    def test_summary_reports_existing_invoice(self):
        invoice = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        summary = services.get_invoice_summary(self.studio.pk, 3, 2025)

        self.assertTrue(summary.has_existing_invoice)
        self.assertEqual(summary.invoice_id, invoice.pk)
        self.assertEqual(summary.invoice_number, '2025-001')
        self.assertEqual(summary.payment_status, 'pending')

    def test_summary_kept_for_invoiced_studio_without_sessions(self):
        """An existing invoice keeps the studio listed after its sessions change."""
        services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)
        Session.objects.update(status='cancelled')

        summaries = services.get_invoice_summaries(3, 2025)

        self.assertEqual(len(summaries), 1)
        self.assertEqual(summaries[0].completed_sessions, 0)
        self.assertTrue(summaries[0].has_existing_invoice)

    def test_summaries_reject_invalid_month(self):
        with self.assertRaises(InvalidPeriodError):
            services.get_invoice_summaries(13, 2025)

    def test_summary_for_missing_studio(self):
        with self.assertRaises(StudioNotFoundError):
            services.get_invoice_summary(9999, 3, 2025)


class InvoiceCreationTests(TestCase):
    """Test invoice creation and the frozen rate."""

    def setUp(self):
        self.studio = make_studio()
        add_march_sessions(self.studio)

    def test_create_invoice(self):
        invoice = services.create_invoice(self.studio.pk, 3, 2025, notes="March", today=CREATED_ON)

        self.assertEqual(invoice.invoice_number, '2025-001')
        self.assertEqual(invoice.sequence, 1)
        self.assertEqual(invoice.total_hours, Decimal('3.75'))
        self.assertEqual(invoice.hourly_rate, Decimal('40.00'))
        self.assertEqual(invoice.total_amount, Decimal('150.00'))
        self.assertEqual(invoice.payment_status, 'pending')
        self.assertEqual(invoice.due_date, date(2025, 5, 2))
        self.assertIsNone(invoice.paid_at)
        self.assertEqual(invoice.notes, "March")

    @override_settings(INVOICE_PAYMENT_TERM_DAYS=14)
    def test_payment_term_from_settings(self):
        invoice = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        self.assertEqual(invoice.due_date, date(2025, 4, 16))

    def test_rate_change_leaves_invoice_amount_frozen(self):
        invoice = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        self.studio.hourly_rate = Decimal('50.00')
        self.studio.save()

        invoice.refresh_from_db()
        self.assertEqual(invoice.total_amount, Decimal('150.00'))
        self.assertEqual(invoice.hourly_rate, Decimal('40.00'))
        self.assertEqual(
            services.get_invoice_summary(self.studio.pk, 3, 2025).total_amount,
            Decimal('187.50')
        )

    def test_second_invoice_for_period_is_rejected(self):
        services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        with self.assertRaises(InvoiceAlreadyExistsError):
            services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        self.assertEqual(Invoice.objects.count(), 1)

    def test_concurrent_double_create_persists_one_invoice(self):
        """A create that passed the existence check still loses at the constraint."""
        services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        with mock.patch('invoicing.services.find_by_studio_and_period', return_value=None):
            with self.assertRaises(InvoiceAlreadyExistsError):
                services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        self.assertEqual(Invoice.objects.count(), 1)
        self.assertEqual(InvoiceNumberSequence.objects.get(year=2025).last_value, 1)

    def test_nothing_to_invoice(self):
        with self.assertRaises(NothingToInvoiceError):
            services.create_invoice(self.studio.pk, 4, 2025, today=CREATED_ON)

        self.assertFalse(Invoice.objects.exists())

    def test_non_positive_rate_is_rejected(self):
        Studio.objects.filter(pk=self.studio.pk).update(hourly_rate=Decimal('0'))

        with self.assertRaises(InvalidRateError):
            services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

    def test_invalid_period_is_rejected(self):
        with self.assertRaises(InvalidPeriodError):
            services.create_invoice(self.studio.pk, 0, 2025)

    def test_other_period_gets_its_own_invoice(self):
        add_session(self.studio, date(2025, 4, 7))

        march = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)
        april = services.create_invoice(self.studio.pk, 4, 2025, today=CREATED_ON)

        self.assertEqual(march.invoice_number, '2025-001')
        self.assertEqual(april.invoice_number, '2025-002')
        self.assertEqual(april.total_hours, Decimal('1.25'))

    def test_delete_invoice_keeps_sessions_completed(self):
        invoice = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        services.delete_invoice(invoice.pk)

        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(Session.objects.completed().count(), 3)

    def test_studio_with_invoice_cannot_be_deleted(self):
        from django.db.models import ProtectedError

        services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

        with self.assertRaises(ProtectedError):
            self.studio.delete()


class RecomputeInvoiceTests(TestCase):
    """Test the explicit recompute of an invoice."""

    def setUp(self):
        self.studio = make_studio()
        add_march_sessions(self.studio)
        self.invoice = services.create_invoice(self.studio.pk, 3, 2025, today=CREATED_ON)

    def test_recompute_uses_live_hours_and_frozen_rate(self):
        add_session(self.studio, date(2025, 3, 24))
        self.studio.hourly_rate = Decimal('50.00')
        self.studio.save()
        services.update_payment_status(self.invoice.pk, 'paid')

        invoice = services.recompute_invoice(self.invoice.pk)

        self.assertEqual(invoice.total_hours, Decimal('5.00'))
        self.assertEqual(invoice.hourly_rate, Decimal('40.00'))
        self.assertEqual(invoice.total_amount, Decimal('200.00'))
        self.assertEqual(invoice.invoice_number, '2025-001')
        self.assertEqual(invoice.payment_status, 'paid')

    def test_invoice_is_not_recomputed_implicitly(self):
        add_session(self.studio, date(2025, 3, 24))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.total_hours, Decimal('3.75'))

    def test_recompute_missing_invoice(self):
        with self.assertRaises(InvoiceNotFoundError):
            services.recompute_invoice(9999)


class InvoiceNumberingTests(TestCase):
    """Test the numbering authority under both policies."""

    def setUp(self):
        self.studios = [make_studio(name) for name in ("Alpha", "Beta", "Gamma")]
        for studio in self.studios:
            add_march_sessions(studio, count=1)

    def _create(self, studio, year=2025):
        return services.create_invoice(studio.pk, 3, year, today=CREATED_ON)

    def test_format(self):
        self.assertEqual(services.next_invoice_number(2025), (1, '2025-001'))
        self.assertEqual(services.next_invoice_number(2025), (2, '2025-002'))

    def test_sequences_are_per_year(self):
        add_session(self.studios[0], date(2026, 3, 2))

        self.assertEqual(self._create(self.studios[0]).invoice_number, '2025-001')
        self.assertEqual(self._create(self.studios[0], year=2026).invoice_number, '2026-001')

    def test_counter_never_reuses_a_deleted_number(self):
        first = self._create(self.studios[0])
        second = self._create(self.studios[1])
        self.assertEqual((first.invoice_number, second.invoice_number), ('2025-001', '2025-002'))

        services.delete_invoice(first.pk)

        self.assertEqual(self._create(self.studios[2]).invoice_number, '2025-003')

    @override_settings(INVOICE_NUMBERING='count')
    def test_count_policy_numbers_by_count(self):
        self.assertEqual(self._create(self.studios[0]).invoice_number, '2025-001')
        self.assertEqual(self._create(self.studios[1]).invoice_number, '2025-002')
        self.assertFalse(InvoiceNumberSequence.objects.exists())

    @override_settings(INVOICE_NUMBERING='count')
    def test_count_policy_collision_after_delete_is_rejected(self):
        first = self._create(self.studios[0])
        self._create(self.studios[1])
        services.delete_invoice(first.pk)

        with self.assertRaises(InvoiceNumberConflictError):
            self._create(self.studios[2])

        self.assertEqual(
            list(Invoice.objects.values_list('invoice_number', flat=True)), ['2025-002']
        )

    @override_settings(INVOICE_NUMBERING='count')
    def test_count_policy_stays_blocked_and_points_to_counter(self):
        """After a deletion every later create in the year collides on the same number."""
        first = self._create(self.studios[0])
        self._create(self.studios[1])
        services.delete_invoice(first.pk)
        delta = make_studio("Delta")
        add_march_sessions(delta, count=1)

        for studio in (self.studios[2], delta):
            with self.assertLogs('invoicing.services', level='WARNING') as logs:
                with self.assertRaises(InvoiceNumberConflictError):
                    self._create(studio)
            self.assertTrue(any("switch to 'counter'" in line for line in logs.output))

        self.assertEqual(Invoice.objects.count(), 1)

    def test_counter_is_seeded_from_issued_numbers(self):
        with override_settings(INVOICE_NUMBERING='count'):
            self._create(self.studios[0])
            self._create(self.studios[1])

        self.assertEqual(self._create(self.studios[2]).invoice_number, '2025-003')
        self.assertEqual(InvoiceNumberSequence.objects.get(year=2025).last_value, 3)

    @override_settings(INVOICE_NUMBERING='random')
    def test_unknown_policy(self):
        from django.core.exceptions import ImproperlyConfigured

        with self.assertRaises(ImproperlyConfigured):
            services.next_invoice_number(2025)


class ConcurrentInvoiceCreationTests(TransactionTestCase):
    """Double creation from two database connections."""

    def _create_in_parallel(self, studio):
        barrier = threading.Barrier(2, timeout=10)
        outcomes = []

        def create():
            try:
                barrier.wait()
                services.create_invoice(studio.pk, 3, 2025, today=CREATED_ON)
                outcomes.append('created')
            except Exception as exc:
                outcomes.append(type(exc).__name__)
            finally:
                connection.close()

        threads = [threading.Thread(target=create) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return sorted(outcomes)

    def test_second_writer_gets_already_exists(self):
        studio = make_studio()
        add_march_sessions(studio)

        for attempt in range(3):
            with self.subTest(attempt=attempt):
                outcomes = self._create_in_parallel(studio)

                self.assertEqual(outcomes, ['InvoiceAlreadyExistsError', 'created'])
                self.assertEqual(Invoice.objects.count(), 1)
                Invoice.objects.all().delete()

    def test_parallel_creates_for_different_studios_get_distinct_numbers(self):
        studios = [make_studio("Alpha"), make_studio("Beta")]
        for studio in studios:
            add_march_sessions(studio, count=1)
        barrier = threading.Barrier(2, timeout=10)
        errors = []

        def create(studio):
            try:
                barrier.wait()
                services.create_invoice(studio.pk, 3, 2025, today=CREATED_ON)
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=create, args=(studio,)) for studio in studios]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(
            sorted(Invoice.objects.values_list('invoice_number', flat=True)),
            ['2025-001', '2025-002']
        )


class PaymentStatusTests(TestCase):
    """Test the payment status state machine."""

    def setUp(self):
        studio = make_studio()
        add_march_sessions(studio)
        self.invoice = services.create_invoice(studio.pk, 3, 2025, today=CREATED_ON)
        self.now = datetime(2025, 4, 20, 12, 0)

    def _move(self, new_status):
        return services.update_payment_status(self.invoice.pk, new_status, now=self.now)

    def test_mark_paid_sets_paid_at(self):
        invoice = self._move('paid')

        self.assertEqual(invoice.payment_status, 'paid')
        self.assertEqual(invoice.paid_at, self.now)
        self.assertTrue(invoice.is_paid)

    def test_back_to_pending_clears_paid_at(self):
        self._move('paid')
        invoice = self._move('pending')

        self.assertEqual(invoice.payment_status, 'pending')
        self.assertIsNone(invoice.paid_at)

    def test_paid_to_cancelled_clears_paid_at(self):
        self._move('paid')
        invoice = self._move('cancelled')

        self.assertIsNone(invoice.paid_at)

    def test_overdue_can_be_paid(self):
        self._move('overdue')
        invoice = self._move('paid')

        self.assertEqual(invoice.paid_at, self.now)

    def test_cancelled_is_terminal(self):
        self._move('cancelled')

        for target in ('pending', 'paid', 'overdue'):
            with self.assertRaises(InvalidStatusTransitionError):
                self._move(target)

    def test_paid_cannot_become_overdue(self):
        self._move('paid')

        with self.assertRaises(InvalidStatusTransitionError):
            self._move('overdue')

    def test_same_status_is_rejected(self):
        with self.assertRaises(InvalidStatusTransitionError):
            self._move('pending')

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(InvalidStatusTransitionError):
            self._move('refunded')

    def test_missing_invoice(self):
        with self.assertRaises(InvoiceNotFoundError):
            services.update_payment_status(9999, 'paid')


class OverdueSweepTests(TestCase):
    """Test marking past-due invoices as overdue."""

    def setUp(self):
        self.first = make_studio("Alpha")
        self.second = make_studio("Beta")
        add_march_sessions(self.first)
        add_march_sessions(self.second)
        self.pending = services.create_invoice(self.first.pk, 3, 2025, today=CREATED_ON)
        self.paid = services.create_invoice(self.second.pk, 3, 2025, today=CREATED_ON)
        services.update_payment_status(self.paid.pk, 'paid')

    def test_nothing_is_overdue_on_due_date(self):
        self.assertEqual(services.mark_overdue_invoices(today=date(2025, 5, 2)), 0)

    def test_pending_invoices_past_due_become_overdue(self):
        updated = services.mark_overdue_invoices(today=date(2025, 5, 3))

        self.assertEqual(updated, 1)
        self.assertEqual(Invoice.objects.get(pk=self.pending.pk).payment_status, 'overdue')
        self.assertEqual(Invoice.objects.get(pk=self.paid.pk).payment_status, 'paid')

    def test_mark_overdue_command(self):
        out = StringIO()
        call_command('mark_overdue_invoices', '--date=2025-05-03', stdout=out)

        self.assertIn('Marked 1 invoice(s) as overdue', out.getvalue())


class InvoiceAPITests(APITestCase):
    """Test invoice API endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.studio = make_studio()
        add_march_sessions(self.studio)

    def _create(self):
        return self.client.post(
            '/api/invoices/',
            {"studio_id": self.studio.pk, "month": 3, "year": 2025},
            format='json'
        )

    def test_list_summaries(self):
        make_studio("Idle")

        response = self.client.get('/api/invoices/summaries/', {'month': 3, 'year': 2025})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['total_hours'], '3.75')
        self.assertEqual(response.data[0]['total_amount'], '150.00')
        self.assertFalse(response.data[0]['has_existing_invoice'])

    def test_summaries_require_valid_period(self):
        response = self.client.get('/api/invoices/summaries/', {'month': 13, 'year': 2025})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_invoice(self):
        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice_number'], '2025-001')
        self.assertEqual(response.data['total_amount'], '150.00')
        self.assertEqual(response.data['studio_name'], "Studio A")

    def test_create_invoice_twice_returns_conflict(self):
        self._create()

        response = self._create()

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'INVOICE_EXISTS')

    def test_create_invoice_with_invalid_period(self):
        response = self.client.post(
            '/api/invoices/', {"studio_id": self.studio.pk, "month": 13, "year": 2025}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_PERIOD')

    def test_create_invoice_without_sessions(self):
        response = self.client.post(
            '/api/invoices/', {"studio_id": self.studio.pk, "month": 4, "year": 2025}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'NOTHING_TO_INVOICE')

    def test_list_and_filter_invoices(self):
        self._create()

        response = self.client.get('/api/invoices/', {'year': 2025, 'status': 'pending'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/invoices/', {'status': 'paid'})
        self.assertEqual(response.data, [])

    def test_change_status(self):
        invoice_id = self._create().data['id']

        response = self.client.post(
            f'/api/invoices/{invoice_id}/status/', {"status": "paid"}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertIsNotNone(response.data['paid_at'])

        self.client.post(f'/api/invoices/{invoice_id}/status/', {"status": "cancelled"}, format='json')
        response = self.client.post(
            f'/api/invoices/{invoice_id}/status/', {"status": "pending"}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_STATUS_TRANSITION')

    def test_recompute(self):
        invoice_id = self._create().data['id']
        add_session(self.studio, date(2025, 3, 24))

        response = self.client.post(f'/api/invoices/{invoice_id}/recompute/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_hours'], '5.00')
        self.assertEqual(response.data['total_amount'], '200.00')

    def test_get_and_delete(self):
        invoice_id = self._create().data['id']

        response = self.client.get(f'/api/invoices/{invoice_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.delete(f'/api/invoices/{invoice_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        response = self.client.get(f'/api/invoices/{invoice_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'INVOICE_NOT_FOUND')
