"""Views for monthly invoicing."""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import services
from .serializers import (
    InvoiceCreateSerializer,
    InvoiceListQuerySerializer,
    InvoiceReadSerializer,
    InvoiceSummarySerializer,
    PaymentStatusSerializer,
    PeriodQuerySerializer,
)


class InvoiceSummaryListView(APIView):
    """
    GET /api/invoices/summaries/?month=M&year=Y - Billable totals per studio
    """

    def get(self, request):
        query_serializer = PeriodQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        data = query_serializer.validated_data
        summaries = services.get_invoice_summaries(data['month'], data['year'])
        return Response(InvoiceSummarySerializer(summaries, many=True).data)


class InvoiceListCreateView(APIView):
    """
    List invoices or create one.

    GET /api/invoices/?year=Y&month=M&status=S&studio=ID - List invoices
    POST /api/invoices/ - Create the invoice of a studio for a month
    """

    def get(self, request):
        query_serializer = InvoiceListQuerySerializer(data=request.query_params)
        query_serializer.is_valid(raise_exception=True)

        data = query_serializer.validated_data
        invoices = services.list_invoices(
            year=data.get('year'),
            month=data.get('month'),
            status=data.get('status'),
            studio_id=data.get('studio'),
        )
        return Response(InvoiceReadSerializer(invoices, many=True).data)

    def post(self, request):
        serializer = InvoiceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        invoice = services.create_invoice(
            studio_id=data['studio_id'],
            month=data['month'],
            year=data['year'],
            notes=data['notes'],
        )
        return Response(InvoiceReadSerializer(invoice).data, status=status.HTTP_201_CREATED)


class InvoiceDetailView(APIView):
    """
    GET /api/invoices/{id}/ - Retrieve invoice
    DELETE /api/invoices/{id}/ - Delete invoice
    """

    def get(self, request, pk):
        return Response(InvoiceReadSerializer(services.get_invoice(pk)).data)

    def delete(self, request, pk):
        services.delete_invoice(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class InvoiceRecomputeView(APIView):
    """
    POST /api/invoices/{id}/recompute/ - Refresh totals from completed sessions
    """

    def post(self, request, pk):
        invoice = services.recompute_invoice(pk)
        return Response(InvoiceReadSerializer(invoice).data)


class InvoiceStatusView(APIView):
    """
    POST /api/invoices/{id}/status/ - Change the payment status
    """

    def post(self, request, pk):
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice = services.update_payment_status(pk, serializer.validated_data['status'])
        return Response(InvoiceReadSerializer(invoice).data)
