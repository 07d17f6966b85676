from django.contrib import admin
from .models import Account, Payment


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'tenant', 'type', 'sub_type', 'balance']
    list_filter = ['tenant', 'type', 'sub_type']


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['payment_number', 'tenant', 'date', 'type', 'amount', 'account', 'supplier', 'customer']
    list_filter = ['tenant', 'type', 'date']
    search_fields = ['payment_number']
