from django.contrib import admin
from .models import Supplier, Customer


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant', 'contact', 'phone', 'opening_balance', 'is_active']
    list_filter = ['tenant', 'is_active']
    search_fields = ['name', 'contact', 'phone', 'email']


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant', 'phone', 'email', 'is_active']
    list_filter = ['tenant', 'is_active']
    search_fields = ['name', 'phone']
