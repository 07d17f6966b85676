"""
Utility functions for catalog operations
"""
import re
import uuid
from django.utils import timezone
from .models import Product, ProductVariant


def _sku_part(value, length=None):
    part = re.sub(r'[^A-Z0-9]', '', (value or '').upper())
    return part[:length] if length else part


def generate_product_sku(tenant, name=None):
    """Generate a SKU unique within the tenant"""
    prefix = _sku_part(name, 4) or 'PRD'
    timestamp = timezone.now().strftime('%Y%m%d')
    sku = f"{prefix}-{timestamp}-{str(uuid.uuid4())[:8].upper()}"

    while Product.objects.filter(tenant=tenant, sku=sku).exists():
        sku = f"{prefix}-{timestamp}-{str(uuid.uuid4())[:8].upper()}"

    return sku


def generate_variant_sku(product, color, size=None):
    """
    Build a variant SKU from the product SKU, color and size.

    Format: {product_sku}-{COLOR}[-{SIZE}], suffixed with a counter when taken.
    """
    base = product.sku or f"P{product.pk}"
    parts = [base, _sku_part(color) or 'NA']
    if size:
        parts.append(_sku_part(size) or 'NA')
    sku = '-'.join(parts)

    candidate = sku
    counter = 1
    while ProductVariant.objects.filter(sku=candidate).exists():
        counter += 1
        candidate = f"{sku}-{counter}"
    return candidate


def find_variant(product, color, size=None):
    """Existing variant with the same color and size (blank size matches blank)"""
    color = (color or '').strip()
    size = (size or '').strip()
    for variant in product.variants.all():
        if (variant.color or '').strip() == color and (variant.size or '').strip() == size:
            return variant
    return None
