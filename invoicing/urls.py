"""
URL routing for the invoicing API.
"""

from django.urls import path
from .views import (
    InvoiceDetailView,
    InvoiceListCreateView,
    InvoiceRecomputeView,
    InvoiceStatusView,
    InvoiceSummaryListView,
)

urlpatterns = [
    path('invoices/', InvoiceListCreateView.as_view(), name='invoice-list-create'),
    path('invoices/summaries/', InvoiceSummaryListView.as_view(), name='invoice-summaries'),
    path('invoices/<int:pk>/', InvoiceDetailView.as_view(), name='invoice-detail'),
    path('invoices/<int:pk>/recompute/', InvoiceRecomputeView.as_view(), name='invoice-recompute'),
    path('invoices/<int:pk>/status/', InvoiceStatusView.as_view(), name='invoice-status'),
]
