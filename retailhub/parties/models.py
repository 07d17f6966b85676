from django.db import models
from decimal import Decimal


class Supplier(models.Model):
    """Suppliers. A positive opening balance is money we owe the supplier."""
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='suppliers')
    name = models.CharField(max_length=200, db_index=True)
    contact = models.CharField(max_length=200, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    opening_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'suppliers'
        ordering = ['name']


class Customer(models.Model):
    """Customers placing orders"""
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='customers')
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, db_index=True)
    email = models.EmailField(blank=True, null=True)
    address = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.phone})"

    class Meta:
        db_table = 'customers'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'phone'], name='unique_customer_phone_per_tenant'),
        ]
