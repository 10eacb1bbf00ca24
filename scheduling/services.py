"""
Service layer for studio session scheduling.

Services are framework-agnostic and handle all business operations:
- studio directory lookups
- the template and session stores
- the recurring scheduler (weekly pass and catch-up pass)

The scheduler is idempotent: running any pass repeatedly for the same day
converges to the same set of sessions. Two independent checks guard every
occurrence (the template's ``last_generated_date`` and an existence check on
(studio, start)), and the database uniqueness constraint on (studio, start)
settles concurrent passes.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from .errors import (
    DomainError,
    InvalidSessionError,
    InvalidSessionTransitionError,
    InvalidTemplateError,
    SessionConflictError,
    SessionNotFoundError,
    StudioNotFoundError,
    TemplateNotFoundError,
)
from .models import RecurrenceTemplate, Session, Studio, duration_in_hours
from .types import (
    DEFAULT_DAYS_AHEAD,
    ScheduleWindow,
    SchedulingResult,
    TemplateError,
    TemplateUpdateData,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Studio directory
# ---------------------------------------------------------------------------

def get_active_studios() -> List[Studio]:
    """Return active studios ordered by name."""
    return list(Studio.objects.active())


def get_studio(studio_id) -> Studio:
    """
    Return a studio by ID.

    Raises:
        StudioNotFoundError: If the studio does not exist
    """
    try:
        return Studio.objects.get(pk=studio_id)
    except Studio.DoesNotExist:
        raise StudioNotFoundError(studio_id) from None


def get_hourly_rate(studio_id) -> Decimal:
    """Return the studio's current hourly rate."""
    return get_studio(studio_id).hourly_rate


# ---------------------------------------------------------------------------
# Template store
# ---------------------------------------------------------------------------

def list_active_auto_templates() -> List[RecurrenceTemplate]:
    """Return active templates with auto-scheduling enabled."""
    return list(RecurrenceTemplate.objects.auto_scheduled())


def update_last_generated_date(template_id, generated_date: date) -> None:
    """Record the last date a template generated a session for."""
    RecurrenceTemplate.objects.filter(pk=template_id).update(
        last_generated_date=generated_date
    )


def get_template(template_id) -> RecurrenceTemplate:
    """
    Return a template by ID.

    Raises:
        TemplateNotFoundError: If the template does not exist
    """
    try:
        return RecurrenceTemplate.objects.select_related('studio').get(pk=template_id)
    except RecurrenceTemplate.DoesNotExist:
        raise TemplateNotFoundError(template_id) from None


# ---------------------------------------------------------------------------
# Session store
# ---------------------------------------------------------------------------

def session_exists(studio_id, start_datetime: datetime) -> bool:
    """Check whether the studio already has a session starting at that time."""
    return Session.objects.at(studio_id, start_datetime).exists()


def insert_session(session: Session) -> int:
    """
    Persist a new session inside a savepoint.

    Returns:
        Primary key of the inserted session

    Raises:
        InvalidSessionError: If the session data is invalid
        SessionConflictError: If (studio, start_datetime) is already taken
    """
    try:
        with transaction.atomic():
            session.save()
    except DjangoValidationError as exc:
        raise InvalidSessionError(_validation_message(exc)) from None
    except IntegrityError:
        raise SessionConflictError(session.studio_id, session.start_datetime) from None
    return session.pk


def list_completed(studio_id, year: int, month: int) -> List[Session]:
    """Return the studio's completed sessions starting within a calendar month."""
    return list(Session.objects.completed_in_month(studio_id, year, month))


def get_session(session_id) -> Session:
    """
    Return a session by ID.

    Raises:
        SessionNotFoundError: If the session does not exist
    """
    try:
        return Session.objects.get(pk=session_id)
    except Session.DoesNotExist:
        raise SessionNotFoundError(session_id) from None


def get_sessions_in_range(
    start_datetime: datetime,
    end_datetime: datetime,
    status: Optional[str] = None,
    studio_id=None
) -> List[Session]:
    """
    Get sessions within a datetime range.

    Args:
        start_datetime: Range start
        end_datetime: Range end
        status: Optional status filter ('scheduled', 'cancelled', 'completed')
        studio_id: Optional studio filter

    Raises:
        InvalidSessionError: If start_datetime >= end_datetime
    """
    if start_datetime >= end_datetime:
        raise InvalidSessionError("Start datetime must be before end datetime")

    queryset = Session.objects.in_range(start_datetime, end_datetime)
    if status:
        queryset = queryset.filter(status=status)
    if studio_id is not None:
        queryset = queryset.filter(studio_id=studio_id)

    return list(queryset)


# ---------------------------------------------------------------------------
# Recurring scheduler
# ---------------------------------------------------------------------------

def get_days_ahead() -> int:
    """Look-ahead window in days, from settings."""
    return getattr(settings, 'SCHEDULE_ADVANCE_DAYS', DEFAULT_DAYS_AHEAD)


def get_week_start(day: date) -> date:
    """Return the Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def find_date_in_week(week_start: date, weekday: int) -> date:
    """Return the date in the week starting ``week_start`` that falls on ``weekday``."""
    if not 0 <= weekday <= 6:
        raise InvalidTemplateError(f"Invalid weekday {weekday}")
    return week_start + timedelta(days=weekday)


def _today() -> date:
    return timezone.now().date()


def _make_window(today: Optional[date], days_ahead: Optional[int]) -> ScheduleWindow:
    today = today or _today()
    if days_ahead is None:
        days_ahead = get_days_ahead()
    return ScheduleWindow(today=today, last_day=today + timedelta(days=days_ahead))


def _should_schedule(template: RecurrenceTemplate, target_date: date, window: ScheduleWindow) -> bool:
    """Decide whether ``template`` still needs a session on ``target_date``."""
    if target_date not in window:
        return False

    if template.last_generated_date == target_date:
        return False

    return not session_exists(template.studio_id, template.start_on(target_date))


def _build_auto_session(template: RecurrenceTemplate, target_date: date) -> Session:
    return Session(
        studio_id=template.studio_id,
        title=template.title,
        start_datetime=template.start_on(target_date),
        end_datetime=template.end_on(target_date),
        duration_hours=template.duration_hours,
        status='scheduled',
        source='auto',
        source_template=template,
    )


def _schedule_occurrence(
    template: RecurrenceTemplate,
    target_date: date,
    window: ScheduleWindow
) -> Optional[Session]:
    """Create the auto-generated session for one occurrence, if it is due."""
    if not _should_schedule(template, target_date, window):
        return None

    session = _build_auto_session(template, target_date)
    try:
        insert_session(session)
    except SessionConflictError:
        # Another pass inserted it between our check and our insert.
        logger.debug(
            "Template %s: session on %s already scheduled concurrently",
            template.pk, target_date
        )
        return None

    update_last_generated_date(template.pk, target_date)
    template.last_generated_date = target_date

    logger.info(
        "Auto-scheduled '%s' for studio %s on %s",
        template.title, template.studio_id, session.start_datetime
    )
    return session


def _process_template(
    template: RecurrenceTemplate,
    dates_for: Callable[[RecurrenceTemplate], List[date]],
    window: ScheduleWindow,
    result: SchedulingResult
) -> None:
    """
    Schedule every candidate date of one template inside its own savepoint.

    A failure is logged and recorded on ``result``; it never propagates, so
    the remaining templates of a pass are still processed.
    """
    created = []
    skipped = 0
    try:
        with transaction.atomic():
            for target_date in dates_for(template):
                session = _schedule_occurrence(template, target_date, window)
                if session is None:
                    skipped += 1
                else:
                    created.append(session)
    except (DomainError, DjangoValidationError, DatabaseError, TypeError, ValueError) as exc:
        logger.exception("Auto-scheduling failed for template %s", template.pk)
        result.errors.append(TemplateError(template_id=template.pk, message=str(exc)))
        return

    result.created.extend(created)
    result.skipped += skipped


def _dates_in_window(window: ScheduleWindow) -> Callable[[RecurrenceTemplate], List[date]]:
    def dates_for(template):
        dates = []
        current_date = window.today
        while current_date <= window.last_day:
            if current_date.weekday() == template.weekday:
                dates.append(current_date)
            current_date += timedelta(days=1)
        return dates
    return dates_for


def auto_schedule_for_week(
    week_start: date,
    today: Optional[date] = None,
    days_ahead: Optional[int] = None
) -> SchedulingResult:
    """
    Create the sessions due in the week starting ``week_start`` (a Monday).

    Args:
        week_start: First day of the week
        today: Reference day (defaults to the current date)
        days_ahead: Look-ahead window (defaults to SCHEDULE_ADVANCE_DAYS)

    Returns:
        SchedulingResult with created sessions and per-template errors
    """
    window = _make_window(today, days_ahead)
    result = SchedulingResult()

    for template in list_active_auto_templates():
        _process_template(
            template,
            lambda t: [find_date_in_week(week_start, t.weekday)],
            window,
            result
        )

    return result


def run_weekly_pass(
    today: Optional[date] = None,
    days_ahead: Optional[int] = None
) -> SchedulingResult:
    """
    Run the weekly pass for the current week, and for the following week
    when its Monday falls inside the look-ahead window.
    """
    window = _make_window(today, days_ahead)
    week_start = get_week_start(window.today)

    result = auto_schedule_for_week(week_start, window.today, days_ahead)

    next_week_start = week_start + timedelta(days=7)
    if next_week_start <= window.last_day:
        result.merge(auto_schedule_for_week(next_week_start, window.today, days_ahead))

    logger.info(
        "Weekly pass for %s: %d created, %d skipped, %d failed",
        window.today, result.created_count, result.skipped, len(result.errors)
    )
    return result


def catch_up_template(
    template: RecurrenceTemplate,
    today: Optional[date] = None,
    days_ahead: Optional[int] = None
) -> SchedulingResult:
    """
    Schedule every missing occurrence of one template inside the window.

    Runs when a template's auto-scheduling gets enabled, so enabling it
    mid-window still produces all due sessions.
    """
    result = SchedulingResult()
    if not (template.is_active and template.auto_schedule):
        return result

    window = _make_window(today, days_ahead)
    _process_template(template, _dates_in_window(window), window, result)
    return result


def catch_up_all(
    today: Optional[date] = None,
    days_ahead: Optional[int] = None
) -> SchedulingResult:
    """
    Recovery sweep over every active auto-scheduled template.

    Run on application start and on the periodic trigger; a missed trigger
    heals on the next run without gaps or duplicates.
    """
    window = _make_window(today, days_ahead)
    result = SchedulingResult()
    dates_for = _dates_in_window(window)

    for template in list_active_auto_templates():
        _process_template(template, dates_for, window, result)

    logger.info(
        "Catch-up sweep %s..%s: %d created, %d skipped, %d failed",
        window.today, window.last_day,
        result.created_count, result.skipped, len(result.errors)
    )
    return result


# ---------------------------------------------------------------------------
# Template lifecycle
# ---------------------------------------------------------------------------

def _validate_template_data(weekday: int, start_time, end_time) -> None:
    """Validate template creation/update data."""
    if not 0 <= weekday <= 6:
        raise InvalidTemplateError("Weekday must be between 0 (Monday) and 6 (Sunday)")

    if end_time <= start_time:
        raise InvalidTemplateError("End time must be after start time")


def _is_auto_enabled(template: RecurrenceTemplate) -> bool:
    return template.is_active and template.auto_schedule


@transaction.atomic
def create_template(
    studio: Studio,
    name: str,
    title: str,
    weekday: int,
    start_time,
    end_time,
    auto_schedule: bool = False,
    is_active: bool = True,
    today: Optional[date] = None
) -> Tuple[RecurrenceTemplate, SchedulingResult]:
    """
    Create a recurrence template; runs a catch-up pass when it starts auto-enabled.

    Returns:
        Tuple of (created RecurrenceTemplate, SchedulingResult)

    Raises:
        InvalidTemplateError: If validation fails
    """
    _validate_template_data(weekday, start_time, end_time)

    template = RecurrenceTemplate.objects.create(
        studio=studio,
        name=name,
        title=title,
        weekday=weekday,
        start_time=start_time,
        end_time=end_time,
        is_active=is_active,
        auto_schedule=auto_schedule,
    )
    logger.info("Created template %s (%s)", template.pk, template)

    result = SchedulingResult()
    if _is_auto_enabled(template):
        result = catch_up_template(template, today)

    return template, result


@transaction.atomic
def update_template(
    template: RecurrenceTemplate,
    update_data: TemplateUpdateData,
    today: Optional[date] = None
) -> Tuple[RecurrenceTemplate, SchedulingResult]:
    """
    Update a recurrence template.

    Turning auto-scheduling on (or reactivating an auto-scheduled template)
    triggers a catch-up pass for it.

    Raises:
        InvalidTemplateError: If validation fails
    """
    was_enabled = _is_auto_enabled(template)

    _validate_template_data(
        _coalesce(update_data.weekday, template.weekday),
        _coalesce(update_data.start_time, template.start_time),
        _coalesce(update_data.end_time, template.end_time),
    )

    template_fields = {
        'name': update_data.name,
        'title': update_data.title,
        'weekday': update_data.weekday,
        'start_time': update_data.start_time,
        'end_time': update_data.end_time,
        'is_active': update_data.is_active,
        'auto_schedule': update_data.auto_schedule,
    }
    _apply_field_updates(template, template_fields)
    template.save()

    result = SchedulingResult()
    if not was_enabled and _is_auto_enabled(template):
        logger.info("Auto-scheduling enabled for template %s, catching up", template.pk)
        result = catch_up_template(template, today)

    return template, result


def set_auto_schedule(
    template: RecurrenceTemplate,
    enabled: bool,
    today: Optional[date] = None
) -> SchedulingResult:
    """Toggle auto-scheduling; enabling it runs a catch-up pass."""
    _, result = update_template(template, TemplateUpdateData(auto_schedule=enabled), today)
    return result


@transaction.atomic
def delete_template(template: RecurrenceTemplate) -> None:
    """
    Delete a template.

    Sessions created from it are kept and retain the template id as a
    dangling reference.
    """
    template_id = template.pk
    template.delete()
    logger.info("Deleted template %s", template_id)


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

def _validate_session_times(start_datetime: datetime, end_datetime: datetime) -> None:
    if end_datetime <= start_datetime:
        raise InvalidSessionError("End must be after start")
    if end_datetime.date() != start_datetime.date():
        raise InvalidSessionError("Sessions cannot cross midnight")


def create_manual_session(
    studio: Studio,
    title: str,
    start_datetime: datetime,
    end_datetime: datetime,
    notes: str = ''
) -> Session:
    """
    Create a manually entered session.

    Raises:
        InvalidSessionError: If the time range is invalid
        SessionConflictError: If the studio already has a session at that start
    """
    _validate_session_times(start_datetime, end_datetime)

    session = Session(
        studio=studio,
        title=title,
        start_datetime=start_datetime,
        end_datetime=end_datetime,
        duration_hours=duration_in_hours(start_datetime, end_datetime),
        status='scheduled',
        source='manual',
        notes=notes,
    )
    insert_session(session)
    logger.info("Created manual session %s for studio %s", session.pk, studio.pk)
    return session


def create_session_from_template(template: RecurrenceTemplate, on_date: date) -> Session:
    """
    Create a session from a template on an explicit date.

    Raises:
        InvalidSessionError: If ``on_date`` does not fall on the template's weekday
        SessionConflictError: If the studio already has a session at that start
    """
    if on_date.weekday() != template.weekday:
        raise InvalidSessionError(
            f"{on_date.isoformat()} is not a {template.weekday_name}"
        )

    session = Session(
        studio_id=template.studio_id,
        title=template.title,
        start_datetime=template.start_on(on_date),
        end_datetime=template.end_on(on_date),
        duration_hours=template.duration_hours,
        status='scheduled',
        source='template',
        source_template=template,
    )
    insert_session(session)
    logger.info("Created session %s from template %s", session.pk, template.pk)
    return session


def _transition_session(session: Session, target_status: str) -> Session:
    if session.status != 'scheduled':
        raise InvalidSessionTransitionError(session.status, target_status)

    session.status = target_status
    session.save(update_fields=['status', 'updated_at'])
    return session


@transaction.atomic
def complete_session(session: Session) -> Session:
    """
    Mark a scheduled session as completed.

    Raises:
        InvalidSessionTransitionError: If the session is already completed or cancelled
    """
    return _transition_session(session, 'completed')


@transaction.atomic
def cancel_session(session: Session) -> Session:
    """
    Cancel a scheduled session.

    Raises:
        InvalidSessionTransitionError: If the session is already completed or cancelled
    """
    return _transition_session(session, 'cancelled')


def update_session_notes(session: Session, notes: str) -> Session:
    """Replace a session's notes; the only change allowed besides status."""
    session.notes = notes
    session.save(update_fields=['notes', 'updated_at'])
    return session


def _validation_message(exc: DjangoValidationError) -> str:
    return '; '.join(exc.messages)


def _coalesce(value, fallback):
    return fallback if value is None else value


def _apply_field_updates(obj, fields: dict) -> None:
    """Apply field updates to object if values are not None (DRY helper)."""
    for field_name, value in fields.items():
        if value is not None:
            setattr(obj, field_name, value)
