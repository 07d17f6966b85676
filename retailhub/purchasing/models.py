from django.db import models
from django.db.models import Q
from decimal import Decimal
from .settlement import PAYMENT_STATUS_CHOICES, RETURN_HANDLING_CHOICES, STATUS_UNPAID


class PurchaseInvoice(models.Model):
    """
    Purchase invoice from a supplier.

    total_amount is the net total (purchases minus returns) and is negative
    for return-only invoices. Deleting an invoice only flags it.
    """
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='purchase_invoices')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_invoices')
    invoice_number = models.CharField(max_length=100)
    supplier_name = models.CharField(max_length=200)
    invoice_date = models.DateField()
    purchase_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    return_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    advance_amount_used = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default=STATUS_UNPAID)
    return_handling_method = models.CharField(max_length=20, choices=RETURN_HANDLING_CHOICES, blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    is_deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, related_name='purchase_invoices')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.invoice_number

    @property
    def amount_due(self):
        return max(self.total_amount - self.payment_amount - self.advance_amount_used, Decimal('0.00'))

    class Meta:
        db_table = 'purchase_invoices'
        ordering = ['-invoice_date', '-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'invoice_number'],
                condition=Q(is_deleted=False),
                name='unique_live_invoice_number_per_tenant',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant', 'is_deleted', '-invoice_date'], name='idx_pinv_tenant_date'),
            models.Index(fields=['supplier', 'is_deleted'], name='idx_pinv_supplier'),
        ]


class PurchaseItem(models.Model):
    """Purchased line. Name and details are copied so the invoice survives product edits."""
    invoice = models.ForeignKey(PurchaseInvoice, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_items')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_items')
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, blank=True, null=True)
    category = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    color = models.CharField(max_length=50, blank=True, null=True)
    size = models.CharField(max_length=20, blank=True, null=True)
    quantity = models.PositiveIntegerField()
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2)

    def get_line_total(self):
        return self.quantity * self.purchase_price

    class Meta:
        db_table = 'purchase_items'
        ordering = ['id']


class PurchaseReturn(models.Model):
    """Goods sent back to the supplier on an invoice"""
    invoice = models.ForeignKey(PurchaseInvoice, on_delete=models.CASCADE, related_name='returns')
    return_number = models.CharField(max_length=100)
    handling_method = models.CharField(max_length=20, choices=RETURN_HANDLING_CHOICES)
    refund_account = models.ForeignKey('accounting.Account', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_returns')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.return_number

    class Meta:
        db_table = 'purchase_returns'
        ordering = ['id']


class PurchaseReturnItem(models.Model):
    purchase_return = models.ForeignKey(PurchaseReturn, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_return_items')
    variant = models.ForeignKey('catalog.ProductVariant', on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_return_items')
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=100, blank=True, null=True)
    category = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    color = models.CharField(max_length=50, blank=True, null=True)
    size = models.CharField(max_length=20, blank=True, null=True)
    reason = models.CharField(max_length=255, blank=True, null=True)
    quantity = models.PositiveIntegerField()
    purchase_price = models.DecimalField(max_digits=12, decimal_places=2)

    def get_line_total(self):
        return self.quantity * self.purchase_price

    class Meta:
        db_table = 'purchase_return_items'
        ordering = ['id']
