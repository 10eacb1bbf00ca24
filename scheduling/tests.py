"""
Tests for studio session scheduling.

Tests cover:
- Studio, RecurrenceTemplate and Session models and managers
- Session store (insert, conflicts, completed-in-month lookups)
- Recurring scheduler (weekly pass, catch-up pass, idempotency, failures)
- Template and session lifecycle services
- API endpoints
- Management command

2025-03-03 is a Monday; most tests use the week around it.
"""

from datetime import date, datetime, time
from decimal import Decimal
from io import StringIO
import threading
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.db import DatabaseError, connection
from django.test import TestCase, TransactionTestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from . import services
from .errors import (
    InvalidSessionError,
    InvalidSessionTransitionError,
    InvalidTemplateError,
    SessionConflictError,
    StudioNotFoundError,
    TemplateNotFoundError,
)
from .managers import month_bounds
from .models import RecurrenceTemplate, Session, Studio, duration_in_hours
from .types import TemplateUpdateData

MONDAY = date(2025, 3, 3)
TUESDAY = date(2025, 3, 4)
WEDNESDAY = date(2025, 3, 5)
NEXT_MONDAY = date(2025, 3, 10)


def make_studio(name="Studio A", hourly_rate="40.00"):
    return Studio.objects.create(name=name, hourly_rate=Decimal(hourly_rate))


def make_template(studio, weekday=0, auto_schedule=True, is_active=True,
                  start=time(9, 0), end=time(10, 15), title="Morning class"):
    return RecurrenceTemplate.objects.create(
        name=f"{title} template",
        studio=studio,
        title=title,
        weekday=weekday,
        start_time=start,
        end_time=end,
        auto_schedule=auto_schedule,
        is_active=is_active,
    )


def make_session(studio, start, end, status='scheduled', title="Session"):
    return Session.objects.create(
        studio=studio,
        title=title,
        start_datetime=start,
        end_datetime=end,
        duration_hours=duration_in_hours(start, end),
        status=status,
    )


class StudioModelTests(TestCase):
    """Test Studio model and validation."""

    def test_create_studio(self):
        studio = make_studio()

        self.assertEqual(str(studio), "Studio A")
        self.assertTrue(studio.is_active)
        self.assertEqual(studio.hourly_rate, Decimal('40.00'))

    def test_rate_must_be_positive(self):
        """Test that a zero rate is rejected on save."""
        with self.assertRaises(ValidationError):
            Studio.objects.create(name="Free", hourly_rate=Decimal('0'))

    def test_active_filter(self):
        make_studio("Open")
        closed = make_studio("Closed")
        closed.is_active = False
        closed.save()

        names = list(Studio.objects.active().values_list('name', flat=True))
        self.assertEqual(names, ["Open"])


class RecurrenceTemplateModelTests(TestCase):
    """Test RecurrenceTemplate model and validation."""

    def setUp(self):
        self.studio = make_studio()

    def test_duration_is_derived(self):
        """Test that 09:00-10:15 is stored as 1.25 hours."""
        template = make_template(self.studio)

        self.assertEqual(template.duration_hours, Decimal('1.25'))
        self.assertEqual(template.weekday_name, "Monday")
        self.assertIsNone(template.last_generated_date)

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(ValidationError):
            make_template(self.studio, start=time(10, 0), end=time(9, 0))

    def test_start_and_end_on_date(self):
        template = make_template(self.studio)

        self.assertEqual(template.start_on(MONDAY), datetime(2025, 3, 3, 9, 0))
        self.assertEqual(template.end_on(MONDAY), datetime(2025, 3, 3, 10, 15))


class RecurrenceTemplateManagerTests(TestCase):
    """Test custom manager methods."""

    def setUp(self):
        studio = make_studio()
        make_template(studio, weekday=0, title="Auto Monday")
        make_template(studio, weekday=1, auto_schedule=False, title="Manual Tuesday")
        make_template(studio, weekday=2, is_active=False, title="Inactive Wednesday")

    def test_active_filter(self):
        self.assertEqual(RecurrenceTemplate.objects.active().count(), 2)

    def test_auto_scheduled_filter(self):
        titles = list(RecurrenceTemplate.objects.auto_scheduled().values_list('title', flat=True))
        self.assertEqual(titles, ["Auto Monday"])


class SessionModelTests(TestCase):
    """Test Session model."""

    def setUp(self):
        self.studio = make_studio()

    def test_create_manual_session(self):
        session = make_session(
            self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 30)
        )

        self.assertEqual(session.source, 'manual')
        self.assertFalse(session.is_auto_generated)
        self.assertFalse(session.is_terminal)
        self.assertEqual(session.duration_hours, Decimal('1.50'))

    def test_session_cannot_cross_midnight(self):
        with self.assertRaises(ValidationError):
            make_session(
                self.studio, datetime(2025, 3, 5, 23, 0), datetime(2025, 3, 6, 1, 0)
            )

    def test_manual_session_cannot_reference_template(self):
        template = make_template(self.studio)
        with self.assertRaises(ValidationError):
            Session.objects.create(
                studio=self.studio,
                title="Mislabelled",
                start_datetime=datetime(2025, 3, 3, 9, 0),
                end_datetime=datetime(2025, 3, 3, 10, 15),
                duration_hours=Decimal('1.25'),
                source='manual',
                source_template=template,
            )


class SessionManagerTests(TestCase):
    """Test custom session queries."""

    def setUp(self):
        self.studio = make_studio()
        make_session(self.studio, datetime(2025, 2, 28, 9, 0), datetime(2025, 2, 28, 10, 0),
                     status='completed')
        make_session(self.studio, datetime(2025, 3, 1, 9, 0), datetime(2025, 3, 1, 10, 0),
                     status='completed')
        make_session(self.studio, datetime(2025, 3, 31, 22, 0), datetime(2025, 3, 31, 23, 0),
                     status='completed')
        make_session(self.studio, datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 0),
                     status='cancelled')
        make_session(self.studio, datetime(2025, 3, 13, 9, 0), datetime(2025, 3, 13, 10, 0))

    def test_month_bounds(self):
        self.assertEqual(
            month_bounds(2025, 12),
            (datetime(2025, 12, 1), datetime(2026, 1, 1))
        )

    def test_completed_in_month(self):
        """Only completed sessions starting inside the month count."""
        sessions = Session.objects.completed_in_month(self.studio.pk, 2025, 3)
        starts = [session.start_datetime for session in sessions]

        self.assertEqual(starts, [datetime(2025, 3, 1, 9, 0), datetime(2025, 3, 31, 22, 0)])

    def test_completed_in_month_is_per_studio(self):
        other = make_studio("Studio B")
        make_session(other, datetime(2025, 3, 2, 9, 0), datetime(2025, 3, 2, 10, 0),
                     status='completed')

        self.assertEqual(Session.objects.completed_in_month(self.studio.pk, 2025, 3).count(), 2)
        self.assertEqual(Session.objects.completed_in_month(other.pk, 2025, 3).count(), 1)

    def test_in_range_is_inclusive(self):
        sessions = Session.objects.in_range(
            datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 13, 9, 0)
        )
        self.assertEqual(sessions.count(), 2)

    def test_scheduled_filter(self):
        self.assertEqual(Session.objects.scheduled().count(), 1)


class SessionStoreTests(TestCase):
    """Test the session store service functions."""

    def setUp(self):
        self.studio = make_studio()

    def test_insert_duplicate_start_raises_conflict(self):
        start, end = datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0)
        make_session(self.studio, start, end)

        duplicate = Session(
            studio=self.studio,
            title="Again",
            start_datetime=start,
            end_datetime=end,
            duration_hours=Decimal('1.00'),
        )
        with self.assertRaises(SessionConflictError):
            services.insert_session(duplicate)

        self.assertEqual(Session.objects.count(), 1)

    def test_same_start_in_other_studio_is_allowed(self):
        start, end = datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0)
        make_session(self.studio, start, end)

        services.create_manual_session(make_studio("Studio B"), "Parallel", start, end)

        self.assertEqual(Session.objects.count(), 2)

    def test_session_exists(self):
        start = datetime(2025, 3, 5, 10, 0)
        make_session(self.studio, start, datetime(2025, 3, 5, 11, 0))

        self.assertTrue(services.session_exists(self.studio.pk, start))
        self.assertFalse(services.session_exists(self.studio.pk, datetime(2025, 3, 5, 12, 0)))

    def test_list_completed(self):
        make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0),
                     status='completed')
        make_session(self.studio, datetime(2025, 3, 6, 10, 0), datetime(2025, 3, 6, 11, 0))

        self.assertEqual(len(services.list_completed(self.studio.pk, 2025, 3)), 1)
        self.assertEqual(services.list_completed(self.studio.pk, 2025, 4), [])

    def test_studio_directory(self):
        closed = make_studio("Closed", hourly_rate="55.00")
        closed.is_active = False
        closed.save()

        self.assertEqual(services.get_active_studios(), [self.studio])
        self.assertEqual(services.get_hourly_rate(closed.pk), Decimal("55.00"))

    def test_get_missing_studio_raises(self):
        with self.assertRaises(StudioNotFoundError):
            services.get_studio(9999)

    def test_get_sessions_in_range_rejects_inverted_range(self):
        with self.assertRaises(InvalidSessionError):
            services.get_sessions_in_range(datetime(2025, 3, 6), datetime(2025, 3, 5))


class SchedulerHelperTests(TestCase):
    """Test date helpers used by the scheduler."""

    def test_week_start(self):
        self.assertEqual(services.get_week_start(WEDNESDAY), MONDAY)
        self.assertEqual(services.get_week_start(MONDAY), MONDAY)

    def test_find_date_in_week(self):
        self.assertEqual(services.find_date_in_week(MONDAY, 2), WEDNESDAY)

    def test_find_date_in_week_rejects_bad_weekday(self):
        with self.assertRaises(InvalidTemplateError):
            services.find_date_in_week(MONDAY, 7)

    @override_settings(SCHEDULE_ADVANCE_DAYS=14)
    def test_days_ahead_from_settings(self):
        self.assertEqual(services.get_days_ahead(), 14)


class WeeklyPassTests(TestCase):
    """Test the weekly scheduler pass."""

    def setUp(self):
        self.studio = make_studio()
        self.template = make_template(self.studio)

    def test_weekly_pass_skips_past_monday_and_schedules_next(self):
        """Run on Wednesday: nothing for the Monday just passed, one for the next."""
        result = services.run_weekly_pass(today=WEDNESDAY)

        self.assertEqual(result.created_count, 1)
        session = result.created[0]
        self.assertEqual(session.start_datetime, datetime(2025, 3, 10, 9, 0))
        self.assertEqual(session.end_datetime, datetime(2025, 3, 10, 10, 15))
        self.assertEqual(session.source, 'auto')
        self.assertEqual(session.source_template_id, self.template.pk)
        self.assertFalse(Session.objects.filter(start_datetime__date=MONDAY).exists())

    def test_weekly_pass_updates_last_generated_date(self):
        services.run_weekly_pass(today=WEDNESDAY)

        self.template.refresh_from_db()
        self.assertEqual(self.template.last_generated_date, NEXT_MONDAY)

    def test_weekly_pass_on_monday_schedules_today(self):
        result = services.run_weekly_pass(today=MONDAY, days_ahead=6)

        self.assertEqual(result.created_count, 1)
        self.assertEqual(result.created[0].start_datetime.date(), MONDAY)

    def test_weekly_pass_ignores_disabled_templates(self):
        self.template.auto_schedule = False
        self.template.save()

        result = services.run_weekly_pass(today=WEDNESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertEqual(Session.objects.count(), 0)


class CatchUpPassTests(TestCase):
    """Test the catch-up scheduler pass and its idempotency."""

    def setUp(self):
        self.studio = make_studio()
        self.template = make_template(self.studio)

    def test_catch_up_on_tuesday_creates_exactly_one_session(self):
        result = services.catch_up_all(today=TUESDAY, days_ahead=7)

        self.assertEqual(result.created_count, 1)
        self.assertEqual(Session.objects.count(), 1)
        self.assertEqual(Session.objects.get().start_datetime.date(), NEXT_MONDAY)

    def test_catch_up_is_idempotent(self):
        services.catch_up_all(today=TUESDAY)
        second = services.catch_up_all(today=TUESDAY)

        self.assertEqual(second.created_count, 0)
        self.assertEqual(Session.objects.count(), 1)

    def test_weekly_then_catch_up_creates_no_duplicate(self):
        services.run_weekly_pass(today=TUESDAY)
        result = services.catch_up_all(today=TUESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertEqual(Session.objects.count(), 1)

    def test_stale_last_generated_date_does_not_duplicate(self):
        """The existence check still prevents duplicates when bookkeeping lags."""
        services.catch_up_all(today=TUESDAY)
        RecurrenceTemplate.objects.filter(pk=self.template.pk).update(last_generated_date=None)

        result = services.catch_up_all(today=TUESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertEqual(Session.objects.count(), 1)

    def test_concurrent_insert_is_settled_by_constraint(self):
        """A session inserted after the existence check is skipped, not duplicated."""
        make_session(self.studio, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 15))

        with mock.patch('scheduling.services.session_exists', return_value=False):
            result = services.catch_up_all(today=TUESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertFalse(result.has_errors)
        self.assertEqual(Session.objects.count(), 1)

    def test_manual_session_at_same_start_blocks_auto_session(self):
        make_session(self.studio, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 15))

        result = services.catch_up_all(today=TUESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertEqual(result.skipped, 1)

    def test_no_backfill_before_today(self):
        result = services.catch_up_all(today=WEDNESDAY, days_ahead=7)

        self.assertEqual(
            [session.start_datetime.date() for session in result.created],
            [NEXT_MONDAY]
        )

    def test_window_upper_bound(self):
        self.assertEqual(services.catch_up_all(today=TUESDAY, days_ahead=5).created_count, 0)
        self.assertEqual(services.catch_up_all(today=TUESDAY, days_ahead=6).created_count, 1)

    def test_window_of_seven_days_from_monday_covers_two_mondays(self):
        result = services.catch_up_all(today=MONDAY, days_ahead=7)

        self.assertEqual(result.created_count, 2)

    def test_failing_template_does_not_stop_the_pass(self):
        broken = make_template(make_studio("Studio B"), title="Broken")
        real_insert = services.insert_session

        def flaky_insert(session):
            if session.title == "Broken":
                raise DatabaseError("disk full")
            return real_insert(session)

        with mock.patch('scheduling.services.insert_session', side_effect=flaky_insert):
            result = services.catch_up_all(today=TUESDAY)

        self.assertEqual(result.created_count, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].template_id, broken.pk)
        self.assertEqual(Session.objects.count(), 1)

    def test_catch_up_template_ignores_disabled_template(self):
        self.template.is_active = False
        self.template.save()

        result = services.catch_up_template(self.template, today=TUESDAY)

        self.assertEqual(result.created_count, 0)


class ConcurrentSchedulingTests(TransactionTestCase):
    """Two sweeps running on separate database connections."""

    def test_overlapping_sweeps_create_each_session_once(self):
        studio = make_studio()
        for weekday in range(7):
            make_template(studio, weekday=weekday, title=f"Class {weekday}")
        barrier = threading.Barrier(2, timeout=10)
        results = []

        def sweep():
            try:
                barrier.wait()
                results.append(services.catch_up_all(today=WEDNESDAY, days_ahead=7))
            finally:
                connection.close()

        threads = [threading.Thread(target=sweep) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 2)
        self.assertEqual([result.errors for result in results], [[], []])
        # Wednesday falls twice in the inclusive window (3/5 and 3/12).
        self.assertEqual(sum(result.created_count for result in results), 8)
        self.assertEqual(Session.objects.count(), 8)
        self.assertEqual(Session.objects.filter(start_datetime__date=WEDNESDAY).count(), 1)


class TemplateLifecycleTests(TestCase):
    """Test template services, including catch-up on enable."""

    def setUp(self):
        self.studio = make_studio()

    def test_create_auto_template_catches_up(self):
        template, result = services.create_template(
            studio=self.studio,
            name="Monday morning",
            title="Morning class",
            weekday=0,
            start_time=time(9, 0),
            end_time=time(10, 15),
            auto_schedule=True,
            today=TUESDAY,
        )

        self.assertEqual(result.created_count, 1)
        self.assertEqual(result.created[0].source_template_id, template.pk)

    def test_create_template_without_auto_schedule(self):
        _, result = services.create_template(
            studio=self.studio,
            name="Monday morning",
            title="Morning class",
            weekday=0,
            start_time=time(9, 0),
            end_time=time(10, 15),
            today=TUESDAY,
        )

        self.assertEqual(result.created_count, 0)
        self.assertEqual(Session.objects.count(), 0)

    def test_create_template_rejects_inverted_times(self):
        with self.assertRaises(InvalidTemplateError):
            services.create_template(
                studio=self.studio,
                name="Broken",
                title="Broken",
                weekday=0,
                start_time=time(11, 0),
                end_time=time(10, 0),
            )

    def test_enabling_auto_schedule_catches_up(self):
        template = make_template(self.studio, auto_schedule=False)

        result = services.set_auto_schedule(template, True, today=TUESDAY)

        self.assertEqual(result.created_count, 1)
        template.refresh_from_db()
        self.assertTrue(template.auto_schedule)
        self.assertEqual(template.last_generated_date, NEXT_MONDAY)

    def test_disabling_auto_schedule_creates_nothing(self):
        template = make_template(self.studio)

        result = services.set_auto_schedule(template, False, today=TUESDAY)

        self.assertEqual(result.created_count, 0)
        self.assertFalse(RecurrenceTemplate.objects.get(pk=template.pk).auto_schedule)

    def test_update_template_rejects_end_before_existing_start(self):
        template = make_template(self.studio)

        with self.assertRaises(InvalidTemplateError):
            services.update_template(template, TemplateUpdateData(end_time=time(8, 0)))

    def test_update_template_recomputes_duration(self):
        template = make_template(self.studio)

        template, _ = services.update_template(
            template, TemplateUpdateData(end_time=time(11, 0), title="Long class")
        )

        self.assertEqual(template.duration_hours, Decimal('2.00'))
        self.assertEqual(template.title, "Long class")

    def test_deleted_template_leaves_dangling_reference(self):
        template = make_template(self.studio)
        services.catch_up_template(template, today=TUESDAY)
        template_id = template.pk

        services.delete_template(template)

        session = Session.objects.get()
        self.assertEqual(session.source_template_id, template_id)
        self.assertFalse(RecurrenceTemplate.objects.filter(pk=template_id).exists())
        self.assertEqual(Session.objects.for_template(template_id).count(), 1)

        services.complete_session(session)
        self.assertEqual(Session.objects.get().status, 'completed')

    def test_get_missing_template_raises(self):
        with self.assertRaises(TemplateNotFoundError):
            services.get_template(9999)


class SessionLifecycleTests(TestCase):
    """Test session creation and status transitions."""

    def setUp(self):
        self.studio = make_studio()

    def test_create_manual_session(self):
        session = services.create_manual_session(
            self.studio, "Workshop", datetime(2025, 3, 5, 14, 0), datetime(2025, 3, 5, 16, 30)
        )

        self.assertEqual(session.source, 'manual')
        self.assertEqual(session.duration_hours, Decimal('2.50'))

    def test_create_manual_session_rejects_overnight(self):
        with self.assertRaises(InvalidSessionError):
            services.create_manual_session(
                self.studio, "Late", datetime(2025, 3, 5, 23, 0), datetime(2025, 3, 6, 0, 30)
            )

    def test_create_session_from_template(self):
        template = make_template(self.studio, auto_schedule=False)

        session = services.create_session_from_template(template, NEXT_MONDAY)

        self.assertEqual(session.source, 'template')
        self.assertEqual(session.source_template_id, template.pk)
        self.assertEqual(session.duration_hours, Decimal('1.25'))

    def test_create_session_from_template_on_wrong_weekday(self):
        template = make_template(self.studio, auto_schedule=False)

        with self.assertRaises(InvalidSessionError):
            services.create_session_from_template(template, TUESDAY)

    def test_complete_session(self):
        session = make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0))

        services.complete_session(session)

        self.assertEqual(Session.objects.get(pk=session.pk).status, 'completed')

    def test_completed_session_cannot_be_cancelled(self):
        session = make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0),
                               status='completed')

        with self.assertRaises(InvalidSessionTransitionError):
            services.cancel_session(session)

    def test_update_session_notes(self):
        session = make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0))

        services.update_session_notes(session, "Bring mats")

        self.assertEqual(Session.objects.get(pk=session.pk).notes, "Bring mats")


class RecurrenceTemplateAPITests(APITestCase):
    """Test template API endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.studio = make_studio()

    def test_create_template(self):
        data = {
            "studio_id": self.studio.pk,
            "name": "Monday morning",
            "title": "Morning class",
            "weekday": 0,
            "start_time": "09:00:00",
            "end_time": "10:15:00",
            "auto_schedule": True,
        }

        with mock.patch('scheduling.services._today', return_value=TUESDAY):
            response = self.client.post('/api/templates/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['template']['duration_hours'], '1.25')
        self.assertEqual(response.data['scheduling']['created_count'], 1)

    def test_create_template_for_missing_studio(self):
        data = {
            "studio_id": 9999,
            "name": "Ghost",
            "title": "Ghost",
            "weekday": 0,
            "start_time": "09:00:00",
            "end_time": "10:00:00",
        }

        response = self.client.post('/api/templates/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'STUDIO_NOT_FOUND')

    def test_create_template_with_inverted_times(self):
        data = {
            "studio_id": self.studio.pk,
            "name": "Broken",
            "title": "Broken",
            "weekday": 0,
            "start_time": "10:00:00",
            "end_time": "09:00:00",
        }

        response = self.client.post('/api/templates/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_templates(self):
        make_template(self.studio, weekday=0)
        make_template(self.studio, weekday=3)

        response = self.client.get('/api/templates/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_update_template(self):
        template = make_template(self.studio, auto_schedule=False)

        response = self.client.patch(
            f'/api/templates/{template.pk}/', {"title": "Renamed"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['template']['title'], "Renamed")

    def test_toggle_auto_schedule(self):
        template = make_template(self.studio, auto_schedule=False)

        with mock.patch('scheduling.services._today', return_value=TUESDAY):
            response = self.client.post(
                f'/api/templates/{template.pk}/auto-schedule/', {"enabled": True}, format='json'
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['template']['auto_schedule'])
        self.assertEqual(response.data['scheduling']['created_count'], 1)

    def test_delete_template(self):
        template = make_template(self.studio)

        response = self.client.delete(f'/api/templates/{template.pk}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(RecurrenceTemplate.objects.filter(pk=template.pk).exists())

    def test_get_missing_template(self):
        response = self.client.get('/api/templates/9999/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'TEMPLATE_NOT_FOUND')

    def test_create_session_from_template(self):
        template = make_template(self.studio, auto_schedule=False)

        response = self.client.post(
            f'/api/templates/{template.pk}/sessions/', {"date": "2025-03-10"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['source'], 'template')
        self.assertEqual(response.data['source_template_id'], template.pk)


class SessionAPITests(APITestCase):
    """Test session API endpoints."""

    def setUp(self):
        self.client = APIClient()
        self.studio = make_studio()

    def test_create_manual_session(self):
        data = {
            "studio_id": self.studio.pk,
            "title": "Workshop",
            "start_datetime": "2025-03-05T14:00:00",
            "end_datetime": "2025-03-05T15:30:00",
        }

        response = self.client.post('/api/sessions/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['duration_hours'], '1.50')
        self.assertEqual(response.data['source'], 'manual')

    def test_duplicate_session_returns_conflict(self):
        make_session(self.studio, datetime(2025, 3, 5, 14, 0), datetime(2025, 3, 5, 15, 0))
        data = {
            "studio_id": self.studio.pk,
            "title": "Workshop",
            "start_datetime": "2025-03-05T14:00:00",
            "end_datetime": "2025-03-05T15:30:00",
        }

        response = self.client.post('/api/sessions/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'SESSION_CONFLICT')

    def test_list_sessions_in_range(self):
        make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0))
        make_session(self.studio, datetime(2025, 3, 6, 10, 0), datetime(2025, 3, 6, 11, 0),
                     status='completed')
        make_session(self.studio, datetime(2025, 4, 1, 10, 0), datetime(2025, 4, 1, 11, 0))

        response = self.client.get('/api/sessions/', {
            'start': '2025-03-01T00:00:00',
            'end': '2025-03-31T23:59:59',
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/sessions/', {
            'start': '2025-03-01T00:00:00',
            'end': '2025-03-31T23:59:59',
            'status': 'completed',
        })
        self.assertEqual(len(response.data), 1)

    def test_complete_and_cancel(self):
        session = make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0))

        response = self.client.post(f'/api/sessions/{session.pk}/complete/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')

        response = self.client.post(f'/api/sessions/{session.pk}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_SESSION_TRANSITION')

    def test_update_notes(self):
        session = make_session(self.studio, datetime(2025, 3, 5, 10, 0), datetime(2025, 3, 5, 11, 0))

        response = self.client.patch(
            f'/api/sessions/{session.pk}/', {"notes": "Room 2"}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], "Room 2")

    def test_schedule_run(self):
        make_template(self.studio)

        response = self.client.post('/api/schedule/run/', {"date": "2025-03-04"}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created_count'], 1)
        self.assertEqual(response.data['errors'], [])

    def test_list_studios(self):
        make_studio("Studio B")

        response = self.client.get('/api/studios/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ["Studio A", "Studio B"])


class ManagementCommandTests(TestCase):
    """Test the run_auto_schedule management command."""

    def setUp(self):
        make_template(make_studio())

    def test_run_auto_schedule_command(self):
        out = StringIO()
        call_command('run_auto_schedule', '--date=2025-03-04', stdout=out)

        self.assertIn('Successfully scheduled 1 new session(s)', out.getvalue())
        self.assertEqual(Session.objects.count(), 1)

    def test_weekly_only(self):
        out = StringIO()
        call_command('run_auto_schedule', '--date=2025-03-05', '--weekly-only', stdout=out)

        self.assertIn('weekly', out.getvalue())
        self.assertEqual(Session.objects.get().start_datetime.date(), NEXT_MONDAY)

    def test_invalid_date(self):
        from django.core.management.base import CommandError

        with self.assertRaises(CommandError):
            call_command('run_auto_schedule', '--date=yesterday', stdout=StringIO())
