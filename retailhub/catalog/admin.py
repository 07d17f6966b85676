from django.contrib import admin
from .models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'tenant', 'category', 'current_quantity', 'last_purchase_price', 'is_active']
    list_filter = ['tenant', 'has_variants', 'is_active']
    search_fields = ['name', 'sku']
    inlines = [ProductVariantInline]
