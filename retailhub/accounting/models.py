from django.db import models
from decimal import Decimal


class Account(models.Model):
    """Chart of accounts entry. ASSET accounts with a CASH or BANK sub type take payments."""
    TYPE_CHOICES = [
        ('ASSET', 'Asset'),
        ('LIABILITY', 'Liability'),
        ('EQUITY', 'Equity'),
        ('INCOME', 'Income'),
        ('EXPENSE', 'Expense'),
    ]
    SUB_TYPE_CHOICES = [
        ('CASH', 'Cash'),
        ('BANK', 'Bank'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='accounts')
    code = models.CharField(max_length=20)
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    sub_type = models.CharField(max_length=10, choices=SUB_TYPE_CHOICES, blank=True, default='')
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.name}"

    class Meta:
        db_table = 'accounts'
        ordering = ['code']
        unique_together = [['tenant', 'code']]


class Payment(models.Model):
    """Money moving between the business and a supplier or customer"""
    TYPE_CHOICES = [
        ('SUPPLIER_PAYMENT', 'Supplier Payment'),
        ('SUPPLIER_REFUND', 'Supplier Refund'),
        ('CUSTOMER_PAYMENT', 'Customer Payment'),
    ]
    METHOD_CHOICES = [
        ('Cash', 'Cash'),
        ('Bank Transfer', 'Bank Transfer'),
        ('Cheque', 'Cheque'),
        ('Other', 'Other'),
    ]

    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='payments')
    payment_number = models.CharField(max_length=50, db_index=True)
    date = models.DateField()
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='Cash')
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='payments')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    customer = models.ForeignKey('parties.Customer', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    purchase_invoice = models.ForeignKey('purchasing.PurchaseInvoice', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    notes = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.payment_number} ({self.type}: {self.amount})"

    class Meta:
        db_table = 'payments'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['tenant', 'type'], name='idx_payment_tenant_type'),
            models.Index(fields=['supplier'], name='idx_payment_supplier'),
        ]
