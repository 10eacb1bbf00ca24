"""
Models for monthly studio invoices.

An Invoice freezes the studio's hourly rate and the billed totals at creation
time; later rate changes never touch it.
"""

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from scheduling.models import Studio

from .managers import InvoiceQuerySet
from .types import MAX_YEAR, MIN_YEAR


class Invoice(models.Model):
    """A numbered monthly invoice for one studio."""

    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
        ('cancelled', 'Cancelled'),
    ]

    studio = models.ForeignKey(
        Studio,
        on_delete=models.PROTECT,
        related_name='invoices'
    )
    invoice_number = models.CharField(max_length=20, unique=True)
    sequence = models.PositiveIntegerField()

    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    year = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )

    total_hours = models.DecimalField(max_digits=8, decimal_places=2)
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Studio rate at the time the invoice was created"
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    payment_status = models.CharField(
        max_length=20,
        choices=PAYMENT_STATUS_CHOICES,
        default='pending'
    )
    due_date = models.DateField()
    paid_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True, default='')
    document_path = models.CharField(max_length=500, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InvoiceQuerySet.as_manager()

    class Meta:
        ordering = ['-year', '-month', 'studio__name']
        constraints = [
            models.UniqueConstraint(
                fields=['studio', 'month', 'year'],
                name='unique_invoice_per_studio_period',
            ),
            models.UniqueConstraint(
                fields=['year', 'sequence'],
                name='unique_invoice_sequence_per_year',
            ),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.month:02d}/{self.year}"

    @property
    def is_paid(self):
        return self.payment_status == 'paid'

    def clean(self):
        super().clean()
        if self.hourly_rate is not None and self.hourly_rate <= 0:
            raise ValidationError({'hourly_rate': 'Hourly rate must be positive.'})

    def save(self, *args, **kwargs):
        """Save with validation; uniqueness is left to the database."""
        self.full_clean(validate_unique=False, validate_constraints=False)
        super().save(*args, **kwargs)


class InvoiceNumberSequence(models.Model):
    """Last invoice sequence handed out for a year."""

    year = models.PositiveSmallIntegerField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['year']

    def __str__(self):
        return f"{self.year}: {self.last_value}"
