from django.contrib import admin
from .models import PurchaseInvoice, PurchaseItem, PurchaseReturn, PurchaseReturnItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0


@admin.register(PurchaseInvoice)
class PurchaseInvoiceAdmin(admin.ModelAdmin):
    list_display = ['invoice_number', 'tenant', 'supplier_name', 'invoice_date', 'total_amount', 'payment_status', 'is_deleted']
    list_filter = ['tenant', 'payment_status', 'is_deleted', 'invoice_date']
    search_fields = ['invoice_number', 'supplier_name']
    inlines = [PurchaseItemInline]


class PurchaseReturnItemInline(admin.TabularInline):
    model = PurchaseReturnItem
    extra = 0


@admin.register(PurchaseReturn)
class PurchaseReturnAdmin(admin.ModelAdmin):
    list_display = ['return_number', 'invoice', 'handling_method', 'total_amount']
    inlines = [PurchaseReturnItemInline]
