"""
Service layer for monthly invoicing.

- the invoice store
- the aggregator that turns completed sessions into billable totals
- the numbering authority handing out ``{year}-{sequence:03d}`` numbers
- the payment status state machine

Totals are always computed from the live set of completed sessions; an
invoice freezes the studio's rate and totals at creation time and is only
refreshed by an explicit ``recompute_invoice`` call.
"""

import logging
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import IntegrityError, transaction
from django.db.models import Max
from django.utils import timezone

from scheduling.errors import InvalidRateError
from scheduling.models import Session, Studio
from scheduling.services import get_active_studios, get_studio, list_completed

from .errors import (
    InvalidPeriodError,
    InvalidStatusTransitionError,
    InvoiceAlreadyExistsError,
    InvoiceNotFoundError,
    InvoiceNumberConflictError,
    NothingToInvoiceError,
)
from .models import Invoice, InvoiceNumberSequence
from .types import (
    DEFAULT_PAYMENT_TERM_DAYS,
    MAX_YEAR,
    MIN_YEAR,
    NUMBERING_COUNT,
    NUMBERING_COUNTER,
    PAYMENT_TRANSITIONS,
    InvoiceSummary,
    format_invoice_number,
)

logger = logging.getLogger(__name__)

MONEY_QUANTUM = Decimal('0.01')


# ---------------------------------------------------------------------------
# Invoice store
# ---------------------------------------------------------------------------

def find_by_studio_and_period(studio_id, month: int, year: int) -> Optional[Invoice]:
    """Return the studio's invoice for the period, or None."""
    return Invoice.objects.for_studio(studio_id).for_period(month, year).first()


def count_by_year(year: int) -> int:
    """Number of invoices currently stored for a year."""
    return Invoice.objects.for_year(year).count()


def get_invoice(invoice_id) -> Invoice:
    """
    Return an invoice by ID.

    Raises:
        InvoiceNotFoundError: If the invoice does not exist
    """
    try:
        return Invoice.objects.select_related('studio').get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise InvoiceNotFoundError(invoice_id) from None


def list_invoices(
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[str] = None,
    studio_id=None
) -> List[Invoice]:
    """List invoices, newest period first, with optional filters."""
    queryset = Invoice.objects.select_related('studio')
    if year is not None:
        queryset = queryset.for_year(year)
    if month is not None:
        queryset = queryset.filter(month=month)
    if status:
        queryset = queryset.filter(payment_status=status)
    if studio_id is not None:
        queryset = queryset.for_studio(studio_id)
    return list(queryset)


@transaction.atomic
def delete_invoice(invoice_id) -> None:
    """
    Delete an invoice.

    The billed sessions stay completed and can be invoiced again.
    """
    invoice = get_invoice(invoice_id)
    number = invoice.invoice_number
    invoice.delete()
    logger.info("Deleted invoice %s", number)


def _insert_invoice(invoice: Invoice) -> Invoice:
    """
    Persist a new invoice inside a savepoint.

    Raises:
        InvoiceAlreadyExistsError: If the studio got an invoice for the period meanwhile
        InvoiceNumberConflictError: If the invoice number is already taken
    """
    try:
        with transaction.atomic():
            invoice.save()
    except IntegrityError:
        period_taken = Invoice.objects.for_studio(invoice.studio_id).for_period(
            invoice.month, invoice.year
        ).exists()
        if period_taken:
            logger.warning(
                "Rejected concurrent invoice for studio %s (%02d/%d)",
                invoice.studio_id, invoice.month, invoice.year
            )
            raise InvoiceAlreadyExistsError(invoice.studio_id, invoice.month, invoice.year) from None
        logger.warning("Invoice number %s is already taken", invoice.invoice_number)
        if get_numbering_policy() == NUMBERING_COUNT:
            # count+1 stays on a deleted slot, so every later create in the year collides.
            logger.warning(
                "INVOICE_NUMBERING='%s' cannot issue numbers for %d after a deletion; "
                "switch to '%s', which is seeded from the highest issued sequence",
                NUMBERING_COUNT, invoice.year, NUMBERING_COUNTER
            )
        raise InvoiceNumberConflictError(invoice.invoice_number) from None
    return invoice


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def validate_period(month: int, year: int) -> None:
    """
    Raises:
        InvalidPeriodError: If month is not 1..12 or year not 2000..9999
    """
    if not 1 <= month <= 12 or not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodError(month, year)


def sum_hours(sessions: Iterable[Session]) -> Decimal:
    """Total duration of the given sessions in hours."""
    total = sum((session.duration_hours for session in sessions), Decimal('0'))
    return total.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_amount(hours: Decimal, hourly_rate: Decimal) -> Decimal:
    """Hours times rate, rounded half-up to cents."""
    return (hours * hourly_rate).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def _summarize(studio: Studio, month: int, year: int) -> InvoiceSummary:
    sessions = list_completed(studio.pk, year, month)
    hours = sum_hours(sessions)
    existing = find_by_studio_and_period(studio.pk, month, year)

    return InvoiceSummary(
        studio_id=studio.pk,
        studio_name=studio.name,
        month=month,
        year=year,
        total_hours=hours,
        completed_sessions=len(sessions),
        hourly_rate=studio.hourly_rate,
        total_amount=calculate_amount(hours, studio.hourly_rate),
        has_existing_invoice=existing is not None,
        invoice_id=existing.pk if existing else None,
        invoice_number=existing.invoice_number if existing else None,
        payment_status=existing.payment_status if existing else None,
    )


def get_invoice_summaries(month: int, year: int) -> List[InvoiceSummary]:
    """
    Billable totals for every active studio in a month.

    Studios with neither completed sessions nor an invoice for the period
    are left out. Rows are ordered by studio name.

    Raises:
        InvalidPeriodError: If the period is out of range
    """
    validate_period(month, year)

    summaries = []
    for studio in get_active_studios():
        summary = _summarize(studio, month, year)
        if summary.completed_sessions or summary.has_existing_invoice:
            summaries.append(summary)
    return summaries


def get_invoice_summary(studio_id, month: int, year: int) -> InvoiceSummary:
    """
    Billable totals for one studio in a month.

    Raises:
        InvalidPeriodError: If the period is out of range
        StudioNotFoundError: If the studio does not exist
    """
    validate_period(month, year)
    return _summarize(get_studio(studio_id), month, year)


# ---------------------------------------------------------------------------
# Numbering authority
# ---------------------------------------------------------------------------

def get_numbering_policy() -> str:
    policy = getattr(settings, 'INVOICE_NUMBERING', NUMBERING_COUNTER)
    if policy not in (NUMBERING_COUNTER, NUMBERING_COUNT):
        raise ImproperlyConfigured(
            f"INVOICE_NUMBERING must be '{NUMBERING_COUNTER}' or '{NUMBERING_COUNT}', got {policy!r}"
        )
    return policy


def _next_counter_value(year: int) -> int:
    counter = InvoiceNumberSequence.objects.select_for_update().filter(year=year).first()
    if counter is None:
        issued = Invoice.objects.for_year(year).aggregate(Max('sequence'))['sequence__max']
        try:
            with transaction.atomic():
                counter = InvoiceNumberSequence.objects.create(year=year, last_value=issued or 0)
        except IntegrityError:
            counter = InvoiceNumberSequence.objects.select_for_update().get(year=year)

    counter.last_value += 1
    counter.save(update_fields=['last_value'])
    return counter.last_value


@transaction.atomic
def next_invoice_number(year: int) -> Tuple[int, str]:
    """
    Allocate the next invoice number for a year.

    With the ``counter`` policy the per-year counter row stays locked until
    the surrounding transaction ends, and numbers are never reused. With the
    ``count`` policy the number is the count of the year's invoices plus one.

    Returns:
        Tuple of (sequence, invoice number)
    """
    if get_numbering_policy() == NUMBERING_COUNT:
        sequence = count_by_year(year) + 1
    else:
        sequence = _next_counter_value(year)
    return sequence, format_invoice_number(year, sequence)


# ---------------------------------------------------------------------------
# Invoice lifecycle
# ---------------------------------------------------------------------------

def get_payment_term_days() -> int:
    return getattr(settings, 'INVOICE_PAYMENT_TERM_DAYS', DEFAULT_PAYMENT_TERM_DAYS)


def _today() -> date:
    return timezone.now().date()


def create_invoice(
    studio_id,
    month: int,
    year: int,
    notes: str = '',
    today: Optional[date] = None
) -> Invoice:
    """
    Create the invoice of a studio for a month from its completed sessions.

    The existing-invoice check, the aggregation, the number allocation and
    the insert all happen in one transaction.

    Raises:
        InvalidPeriodError: If the period is out of range
        StudioNotFoundError: If the studio does not exist
        InvoiceAlreadyExistsError: If the studio already has an invoice for the period
        NothingToInvoiceError: If there are no completed sessions in the period
        InvalidRateError: If the studio's hourly rate is not positive
        InvoiceNumberConflictError: If the allocated number is already taken
    """
    validate_period(month, year)
    studio = get_studio(studio_id)
    today = today or _today()

    with transaction.atomic():
        if find_by_studio_and_period(studio.pk, month, year) is not None:
            raise InvoiceAlreadyExistsError(studio.pk, month, year)

        sessions = list_completed(studio.pk, year, month)
        if not sessions:
            raise NothingToInvoiceError(studio.pk, month, year)

        hourly_rate = studio.hourly_rate
        if hourly_rate is None or hourly_rate <= 0:
            raise InvalidRateError(hourly_rate)

        total_hours = sum_hours(sessions)
        sequence, invoice_number = next_invoice_number(year)

        invoice = _insert_invoice(Invoice(
            studio=studio,
            invoice_number=invoice_number,
            sequence=sequence,
            month=month,
            year=year,
            total_hours=total_hours,
            hourly_rate=hourly_rate,
            total_amount=calculate_amount(total_hours, hourly_rate),
            payment_status='pending',
            due_date=today + timedelta(days=get_payment_term_days()),
            notes=notes,
        ))

    logger.info(
        "Created invoice %s for studio %s (%02d/%d): %s h x %s = %s",
        invoice.invoice_number, studio.pk, month, year,
        invoice.total_hours, invoice.hourly_rate, invoice.total_amount
    )
    return invoice


@transaction.atomic
def recompute_invoice(invoice_id) -> Invoice:
    """
    Refresh an invoice's totals from the live completed sessions.

    Number, studio, payment status and the frozen hourly rate are kept;
    the amount is the live hours times the frozen rate.
    """
    try:
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise InvoiceNotFoundError(invoice_id) from None

    sessions = list_completed(invoice.studio_id, invoice.year, invoice.month)
    invoice.total_hours = sum_hours(sessions)
    invoice.total_amount = calculate_amount(invoice.total_hours, invoice.hourly_rate)
    invoice.save(update_fields=['total_hours', 'total_amount', 'updated_at'])

    logger.info(
        "Recomputed invoice %s: %s h, %s",
        invoice.invoice_number, invoice.total_hours, invoice.total_amount
    )
    return invoice


# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------

def can_transition(current_status: str, new_status: str) -> bool:
    return new_status in PAYMENT_TRANSITIONS.get(current_status, ())


@transaction.atomic
def update_payment_status(
    invoice_id,
    new_status: str,
    now: Optional[datetime] = None
) -> Invoice:
    """
    Move an invoice to a new payment status.

    Entering ``paid`` stamps ``paid_at``; leaving it clears the stamp.

    Raises:
        InvoiceNotFoundError: If the invoice does not exist
        InvalidStatusTransitionError: If the change is not allowed
    """
    try:
        invoice = Invoice.objects.select_for_update().get(pk=invoice_id)
    except Invoice.DoesNotExist:
        raise InvoiceNotFoundError(invoice_id) from None

    previous_status = invoice.payment_status
    if not can_transition(previous_status, new_status):
        raise InvalidStatusTransitionError(previous_status, new_status)

    invoice.payment_status = new_status
    if new_status == 'paid':
        invoice.paid_at = now or timezone.now()
    elif previous_status == 'paid':
        invoice.paid_at = None
    invoice.save(update_fields=['payment_status', 'paid_at', 'updated_at'])

    logger.info(
        "Invoice %s: %s -> %s", invoice.invoice_number, previous_status, new_status
    )
    return invoice


def mark_overdue_invoices(today: Optional[date] = None) -> int:
    """
    Flag pending invoices whose due date has passed as overdue.

    Returns:
        Number of invoices updated
    """
    today = today or _today()
    updated = Invoice.objects.past_due(today).update(
        payment_status='overdue',
        updated_at=timezone.now(),
    )
    logger.info("Marked %d invoice(s) overdue as of %s", updated, today)
    return updated
