from django.db import models
from decimal import Decimal


class Product(models.Model):
    """Product master. Stock is tracked on the product, or per variant when has_variants is set."""
    tenant = models.ForeignKey('core.Tenant', on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    sku = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    category = models.CharField(max_length=100, blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    has_variants = models.BooleanField(default=False)
    is_stitched = models.BooleanField(default=False, help_text='Stitched products need a size on every variant')
    current_quantity = models.IntegerField(default=0)
    last_purchase_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    current_retail_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    last_updated = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku or 'NO-SKU'})"

    def adjust_stock(self, quantity, variant=None, purchase_price=None):
        """Add (or with a negative quantity, remove) stock on the product or one of its variants"""
        from django.db.models import F
        from django.utils import timezone

        if variant is not None:
            ProductVariant.objects.filter(pk=variant.pk).update(current_quantity=F('current_quantity') + quantity)
        updates = {'current_quantity': F('current_quantity') + quantity, 'last_updated': timezone.now()}
        if purchase_price is not None and quantity > 0:
            updates['last_purchase_price'] = Decimal(str(purchase_price))
        Product.objects.filter(pk=self.pk).update(**updates)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(fields=['tenant', 'sku'], name='unique_product_sku_per_tenant'),
        ]


class ProductVariant(models.Model):
    """Color/size variant of a product"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    color = models.CharField(max_length=50)
    size = models.CharField(max_length=20, blank=True, null=True)
    sku = models.CharField(max_length=120, unique=True)
    current_quantity = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        if self.size:
            return f"{self.product.name} - {self.color} / {self.size}"
        return f"{self.product.name} - {self.color}"

    class Meta:
        db_table = 'product_variants'
        ordering = ['color', 'size']
        unique_together = [['product', 'color', 'size']]
