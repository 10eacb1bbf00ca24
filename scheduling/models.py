"""
Models for studio session scheduling.

This implementation uses the Occurrence Materialization Pattern where:
- RecurrenceTemplate stores the weekly recipe for a studio session
- Session stores ALL concrete occurrences (manual, from-template and auto-generated)
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .managers import RecurrenceTemplateManager, SessionManager, StudioQuerySet

HOURS_QUANTUM = Decimal('0.01')


def duration_in_hours(start, end):
    """Hours between two datetimes, rounded to two decimals."""
    seconds = Decimal((end - start).total_seconds())
    return (seconds / Decimal(3600)).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


class Studio(models.Model):
    """
    Billing counterparty where sessions take place.

    The hourly rate is read when an invoice is created and frozen onto it.
    """

    name = models.CharField(max_length=200)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StudioQuerySet.as_manager()

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def clean(self):
        super().clean()
        if self.hourly_rate is not None and self.hourly_rate <= 0:
            raise ValidationError({'hourly_rate': 'Hourly rate must be positive.'})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class RecurrenceTemplate(models.Model):
    """
    Weekly recipe for a session at a studio (e.g. "Monday 09:00-10:15").

    Concrete sessions are stored in the Session model; ``last_generated_date``
    records the most recent date this template auto-generated a session for.
    """

    WEEKDAY_CHOICES = [
        (0, 'Monday'),
        (1, 'Tuesday'),
        (2, 'Wednesday'),
        (3, 'Thursday'),
        (4, 'Friday'),
        (5, 'Saturday'),
        (6, 'Sunday'),
    ]

    name = models.CharField(max_length=200)
    studio = models.ForeignKey(
        Studio,
        on_delete=models.CASCADE,
        related_name='templates'
    )
    title = models.CharField(max_length=200, help_text="Title given to generated sessions")

    weekday = models.IntegerField(
        choices=WEEKDAY_CHOICES,
        help_text="Day of week for recurring sessions (0=Monday, 6=Sunday)"
    )
    start_time = models.TimeField()
    end_time = models.TimeField()
    duration_hours = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        editable=False,
        blank=True,
        help_text="Derived from the time range, stored for display"
    )

    is_active = models.BooleanField(default=True)
    auto_schedule = models.BooleanField(
        default=False,
        help_text="Automatically create upcoming sessions from this template"
    )
    last_generated_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RecurrenceTemplateManager()

    class Meta:
        ordering = ['weekday', 'start_time']
        indexes = [
            models.Index(fields=['is_active', 'auto_schedule'], name='template_auto_idx'),
        ]

    def __str__(self):
        return f"{self.name} - Every {self.weekday_name} at {self.start_time.strftime('%H:%M')}"

    @property
    def weekday_name(self):
        """Get human-readable weekday name."""
        return dict(self.WEEKDAY_CHOICES).get(self.weekday, 'Unknown')

    def start_on(self, day: date) -> datetime:
        return datetime.combine(day, self.start_time)

    def end_on(self, day: date) -> datetime:
        return datetime.combine(day, self.end_time)

    def clean(self):
        """Validate the time range and derive the duration."""
        super().clean()

        if self.start_time is None or self.end_time is None:
            return
        if self.end_time <= self.start_time:
            raise ValidationError({
                'end_time': 'End time must be after start time on the same day.'
            })
        reference_day = date(2000, 1, 3)
        self.duration_hours = duration_in_hours(
            self.start_on(reference_day), self.end_on(reference_day)
        )

    def save(self, *args, **kwargs):
        """Save with validation."""
        self.full_clean()
        super().save(*args, **kwargs)


class Session(models.Model):
    """
    A concrete session at a studio.

    Exactly one session may exist per (studio, start_datetime); the database
    constraint is the source of truth for that rule.
    """

    STATUS_CHOICES = [
        ('scheduled', 'Scheduled'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    SOURCE_CHOICES = [
        ('manual', 'Manual'),
        ('template', 'From template'),
        ('auto', 'Auto-generated'),
    ]

    studio = models.ForeignKey(
        Studio,
        on_delete=models.CASCADE,
        related_name='sessions'
    )
    title = models.CharField(max_length=200)

    start_datetime = models.DateTimeField()
    end_datetime = models.DateTimeField()
    duration_hours = models.DecimalField(max_digits=5, decimal_places=2)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='scheduled'
    )
    source = models.CharField(
        max_length=20,
        choices=SOURCE_CHOICES,
        default='manual'
    )
    # Soft reference: survives template deletion as a dangling id.
    source_template = models.ForeignKey(
        RecurrenceTemplate,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='generated_sessions',
        null=True,
        blank=True
    )
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SessionManager()

    class Meta:
        ordering = ['start_datetime']
        constraints = [
            models.UniqueConstraint(
                fields=['studio', 'start_datetime'],
                name='unique_session_per_studio_start',
            ),
        ]
        indexes = [
            models.Index(fields=['studio', 'status', 'start_datetime'], name='session_studio_status_idx'),
            models.Index(fields=['source_template', 'start_datetime'], name='session_template_start_idx'),
        ]

    def __str__(self):
        status_str = f" [{self.status}]" if self.status != 'scheduled' else ""
        return f"{self.title} - {self.start_datetime.strftime('%Y-%m-%d %H:%M')}{status_str}"

    @property
    def is_auto_generated(self):
        return self.source == 'auto'

    @property
    def is_terminal(self):
        """Completed and cancelled sessions never go back to scheduled."""
        return self.status in ('completed', 'cancelled')

    def clean(self):
        """Validate session data."""
        super().clean()

        if self.start_datetime and self.end_datetime:
            if self.end_datetime <= self.start_datetime:
                raise ValidationError({
                    'end_datetime': 'End must be after start.'
                })
            if self.end_datetime.date() != self.start_datetime.date():
                raise ValidationError({
                    'end_datetime': 'Sessions cannot cross midnight.'
                })

        if self.source == 'manual' and self.source_template_id is not None:
            raise ValidationError({
                'source_template': 'Manual sessions cannot reference a template.'
            })

    def save(self, *args, **kwargs):
        """Save with validation; uniqueness is left to the database."""
        self.full_clean(
            exclude=['source_template'],
            validate_unique=False,
            validate_constraints=False,
        )
        super().save(*args, **kwargs)
