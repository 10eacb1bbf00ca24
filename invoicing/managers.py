"""
Custom querysets for invoicing models.

Only query operations live here.
"""

from django.db import models


class InvoiceQuerySet(models.QuerySet):
    """Custom queryset for Invoice model with chainable methods."""

    def for_year(self, year):
        """Get invoices numbered in a year."""
        return self.filter(year=year)

    def for_period(self, month, year):
        """Get invoices billing a calendar month."""
        return self.filter(month=month, year=year)

    def for_studio(self, studio_id):
        """Get invoices of a studio."""
        return self.filter(studio_id=studio_id)

    def pending(self):
        """Get invoices still awaiting payment."""
        return self.filter(payment_status='pending')

    def past_due(self, today):
        """Get pending invoices whose due date lies before ``today``."""
        return self.pending().filter(due_date__lt=today)
