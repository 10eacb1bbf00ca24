"""
Admin configuration for the invoicing app.
"""

from django.contrib import admin
from .models import Invoice, InvoiceNumberSequence


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Admin interface for Invoice model."""

    list_display = ['invoice_number', 'studio', 'month', 'year', 'total_amount', 'payment_status', 'due_date']
    list_filter = ['payment_status', 'year', 'studio']
    search_fields = ['invoice_number', 'studio__name', 'notes']

    fieldsets = (
        ('Basic Information', {
            'fields': ('invoice_number', 'studio', 'month', 'year', 'notes')
        }),
        ('Totals', {
            'fields': ('total_hours', 'hourly_rate', 'total_amount')
        }),
        ('Payment', {
            'fields': ('payment_status', 'due_date', 'paid_at', 'document_path')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    # Numbers and frozen totals are only changed through the service layer.
    readonly_fields = [
        'invoice_number', 'total_hours', 'hourly_rate', 'total_amount',
        'created_at', 'updated_at',
    ]


@admin.register(InvoiceNumberSequence)
class InvoiceNumberSequenceAdmin(admin.ModelAdmin):
    list_display = ['year', 'last_value']
