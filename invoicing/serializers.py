"""
Serializers for invoicing.
"""

from rest_framework import serializers

from .models import Invoice
from .types import MAX_YEAR, MIN_YEAR


class InvoiceReadSerializer(serializers.ModelSerializer):
    """Serializer for reading/displaying Invoice (output)."""

    studio_name = serializers.CharField(source='studio.name', read_only=True)

    class Meta:
        model = Invoice
        fields = [
            'id',
            'invoice_number',
            'studio',
            'studio_name',
            'month',
            'year',
            'total_hours',
            'hourly_rate',
            'total_amount',
            'payment_status',
            'due_date',
            'paid_at',
            'notes',
            'document_path',
            'created_at',
            'updated_at',
        ]


class InvoiceSummarySerializer(serializers.Serializer):
    """Output for an InvoiceSummary dataclass."""

    studio_id = serializers.IntegerField()
    studio_name = serializers.CharField()
    month = serializers.IntegerField()
    year = serializers.IntegerField()
    total_hours = serializers.DecimalField(max_digits=8, decimal_places=2)
    completed_sessions = serializers.IntegerField()
    hourly_rate = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    has_existing_invoice = serializers.BooleanField()
    invoice_id = serializers.IntegerField(allow_null=True)
    invoice_number = serializers.CharField(allow_null=True)
    payment_status = serializers.CharField(allow_null=True)


class PeriodQuerySerializer(serializers.Serializer):
    """Serializer for month/year query parameters."""

    month = serializers.IntegerField(min_value=1, max_value=12)
    year = serializers.IntegerField(min_value=MIN_YEAR, max_value=MAX_YEAR)


class InvoiceListQuerySerializer(serializers.Serializer):
    month = serializers.IntegerField(min_value=1, max_value=12, required=False)
    year = serializers.IntegerField(min_value=MIN_YEAR, max_value=MAX_YEAR, required=False)
    status = serializers.ChoiceField(choices=Invoice.PAYMENT_STATUS_CHOICES, required=False)
    studio = serializers.IntegerField(required=False)


class InvoiceCreateSerializer(serializers.Serializer):
    """
    Serializer for creating an invoice.

    Only the period is accepted; totals are always computed server-side.
    """

    studio_id = serializers.IntegerField()
    month = serializers.IntegerField()
    year = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Invoice.PAYMENT_STATUS_CHOICES)
