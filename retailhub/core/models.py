from django.contrib.auth.models import AbstractUser
from django.db import models


class Tenant(models.Model):
    """A business using the system. All trading data is scoped to a tenant."""
    name = models.CharField(max_length=200)
    business_code = models.CharField(max_length=4, unique=True, help_text='4 character code used as invoice/order number prefix')
    owner = models.OneToOneField('core.User', on_delete=models.SET_NULL, null=True, blank=True, related_name='owned_tenant')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.business_code})"

    class Meta:
        db_table = 'tenants'


class User(AbstractUser):
    """Extended user model with role and tenant"""
    ROLE_CHOICES = [
        ('BUSINESS_OWNER', 'Business Owner'),
        ('STOCK_KEEPER', 'Stock Keeper'),
        ('ADMIN', 'Admin'),
    ]

    phone = models.CharField(max_length=20, blank=True, null=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='BUSINESS_OWNER')
    tenant = models.ForeignKey(Tenant, on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('restore', 'Restore'),
        ('stock_purchase', 'Stock Added (Purchase)'),
        ('stock_return', 'Stock Removed (Supplier Return)'),
        ('stock_sale', 'Stock Removed (Sale)'),
        ('payment_add', 'Payment Added'),
        ('refund', 'Refund'),
        ('order_confirm', 'Order Confirmed'),
        ('order_dispatch', 'Order Dispatched'),
        ('order_status', 'Order Status Changed'),
        ('payment_verify', 'Payment Verified'),
    ]

    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., supplier name, invoice number)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., invoice number, order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_idx'),
            models.Index(fields=['action'], name='audit_logs_action_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_ref_idx'),
        ]
