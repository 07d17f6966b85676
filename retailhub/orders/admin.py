from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'tenant', 'customer_name', 'status', 'total_amount', 'payment_verified', 'created_at']
    list_filter = ['tenant', 'status', 'payment_verified']
    search_fields = ['order_number', 'customer_name', 'customer_phone']
    inlines = [OrderItemInline]
