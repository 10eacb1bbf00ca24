"""
Custom managers and querysets for scheduling models.

QuerySets define chainable query methods.
Managers use QuerySets to enable method chaining.
No business logic should be here - only query operations.
"""

from datetime import datetime

from django.db import models


def month_bounds(year, month):
    """
    Return the [start, end) datetimes covering a calendar month.

    Args:
        year: int
        month: int (1-12)
    """
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


class StudioQuerySet(models.QuerySet):
    """Custom queryset for Studio model with chainable methods."""

    def active(self):
        """Get all active studios."""
        return self.filter(is_active=True)


class RecurrenceTemplateQuerySet(models.QuerySet):
    """Custom queryset for RecurrenceTemplate model with chainable methods."""

    def active(self):
        """Get all active templates."""
        return self.filter(is_active=True)

    def auto_scheduled(self):
        """Get active templates with auto-scheduling enabled."""
        return self.filter(is_active=True, auto_schedule=True)


class RecurrenceTemplateManager(models.Manager):
    """Custom manager for RecurrenceTemplate model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return RecurrenceTemplateQuerySet(self.model, using=self._db)

    def active(self):
        """Get all active templates."""
        return self.get_queryset().active()

    def auto_scheduled(self):
        """Get active templates with auto-scheduling enabled."""
        return self.get_queryset().auto_scheduled()


class SessionQuerySet(models.QuerySet):
    """Custom queryset for Session model with chainable methods."""

    def scheduled(self):
        """Get all scheduled (not cancelled/completed) sessions."""
        return self.filter(status='scheduled')

    def completed(self):
        """Get all completed sessions."""
        return self.filter(status='completed')

    def in_range(self, start_datetime, end_datetime):
        """
        Get sessions starting within a datetime range (inclusive).

        Args:
            start_datetime: datetime object
            end_datetime: datetime object
        """
        return self.filter(
            start_datetime__gte=start_datetime,
            start_datetime__lte=end_datetime
        )

    def in_month(self, year, month):
        """Get sessions starting within a calendar month."""
        start, end = month_bounds(year, month)
        return self.filter(start_datetime__gte=start, start_datetime__lt=end)

    def for_studio(self, studio_id):
        """Get sessions for a studio."""
        return self.filter(studio_id=studio_id)

    def for_template(self, template_id):
        """Get sessions that were created from a template."""
        return self.filter(source_template_id=template_id)

    def at(self, studio_id, start_datetime):
        """Get the session occupying a studio at an exact start time."""
        return self.filter(studio_id=studio_id, start_datetime=start_datetime)


class SessionManager(models.Manager):
    """Custom manager for Session model."""

    def get_queryset(self):
        """Return custom queryset for method chaining."""
        return SessionQuerySet(self.model, using=self._db)

    def scheduled(self):
        """Get all scheduled (not cancelled/completed) sessions."""
        return self.get_queryset().scheduled()

    def completed(self):
        """Get all completed sessions."""
        return self.get_queryset().completed()

    def in_range(self, start_datetime, end_datetime):
        """
        Get sessions starting within a datetime range (inclusive).

        Args:
            start_datetime: datetime object
            end_datetime: datetime object
        """
        return self.get_queryset().in_range(start_datetime, end_datetime)

    def completed_in_month(self, studio_id, year, month):
        """
        Get completed sessions of a studio starting within a calendar month.

        Args:
            studio_id: Studio primary key
            year: int
            month: int (1-12)
        """
        return self.get_queryset().completed().for_studio(studio_id).in_month(year, month)

    def for_template(self, template_id):
        """Get sessions that were created from a template."""
        return self.get_queryset().for_template(template_id)

    def at(self, studio_id, start_datetime):
        """Get the session occupying a studio at an exact start time."""
        return self.get_queryset().at(studio_id, start_datetime)
