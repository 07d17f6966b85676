from django.urls import path
from .views import (
    purchase_invoice_create_with_products, purchase_invoice_list, purchase_invoice_detail,
    purchase_invoice_restore, purchase_invoice_settlement_preview,
)

urlpatterns = [
    path('purchase-invoices/', purchase_invoice_list, name='purchase-invoice-list'),
    path('purchase-invoices/with-products/', purchase_invoice_create_with_products, name='purchase-invoice-create'),
    path('purchase-invoices/settlement-preview/', purchase_invoice_settlement_preview, name='purchase-invoice-settlement-preview'),
    path('purchase-invoices/<int:pk>/', purchase_invoice_detail, name='purchase-invoice-detail'),
    path('purchase-invoices/<int:pk>/restore/', purchase_invoice_restore, name='purchase-invoice-restore'),
]
