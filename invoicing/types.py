"""
Data types and constants for invoicing.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


DEFAULT_PAYMENT_TERM_DAYS = 30

NUMBERING_COUNTER = 'counter'
NUMBERING_COUNT = 'count'

MIN_YEAR = 2000
MAX_YEAR = 9999

# Allowed payment status changes; cancelled is terminal.
PAYMENT_TRANSITIONS = {
    'pending': {'paid', 'overdue', 'cancelled'},
    'paid': {'pending', 'cancelled'},
    'overdue': {'pending', 'paid', 'cancelled'},
    'cancelled': set(),
}


def format_invoice_number(year: int, sequence: int) -> str:
    """Render an invoice number such as ``2025-001``."""
    return f"{year}-{sequence:03d}"


@dataclass
class InvoiceSummary:
    """Billable totals of one studio for one month; never persisted."""
    studio_id: int
    studio_name: str
    month: int
    year: int
    total_hours: Decimal
    completed_sessions: int
    hourly_rate: Decimal
    total_amount: Decimal
    has_existing_invoice: bool = False
    invoice_id: Optional[int] = None
    invoice_number: Optional[str] = None
    payment_status: Optional[str] = None
