from rest_framework import serializers
from .models import Product, ProductVariant
from .utils import generate_product_sku, generate_variant_sku, find_variant


class ProductVariantSerializer(serializers.ModelSerializer):
    sku = serializers.CharField(required=False, allow_blank=True, max_length=120)

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'color', 'size', 'sku', 'current_quantity', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']

    def validate_color(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Color is required')
        return value

    def validate_size(self, value):
        value = (value or '').strip()
        return value or None

    def validate(self, attrs):
        product = self.context['product']
        color = attrs.get('color', getattr(self.instance, 'color', None))
        size = attrs.get('size', getattr(self.instance, 'size', None))
        if product.is_stitched and not size:
            raise serializers.ValidationError({'size': f'Size is required for stitched product "{product.name}"'})
        existing = find_variant(product, color, size)
        if existing and (self.instance is None or existing.pk != self.instance.pk):
            raise serializers.ValidationError({'non_field_errors': ['Variant with this color and size already exists']})
        sku = (attrs.get('sku') or '').strip()
        if sku and ProductVariant.objects.filter(sku=sku).exclude(pk=getattr(self.instance, 'pk', None)).exists():
            raise serializers.ValidationError({'sku': 'Variant SKU already exists'})
        return attrs

    def create(self, validated_data):
        product = self.context['product']
        if not (validated_data.get('sku') or '').strip():
            validated_data['sku'] = generate_variant_sku(product, validated_data['color'], validated_data.get('size'))
        variant = ProductVariant.objects.create(product=product, **validated_data)
        if not product.has_variants:
            product.has_variants = True
            product.save(update_fields=['has_variants', 'updated_at'])
        return variant


class ProductSerializer(serializers.ModelSerializer):
    variants = ProductVariantSerializer(many=True, read_only=True)
    sku = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=100)

    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'category', 'description', 'has_variants', 'is_stitched',
                  'current_quantity', 'last_purchase_price', 'current_retail_price', 'is_active',
                  'variants', 'created_at', 'updated_at']
        read_only_fields = ['current_quantity', 'last_purchase_price', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Product name is required')
        return value

    def validate_sku(self, value):
        value = (value or '').strip() or None
        tenant = self.context['tenant']
        if value:
            queryset = Product.objects.filter(tenant=tenant, sku=value)
            if self.instance is not None:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError('Product with this SKU already exists')
        return value

    def create(self, validated_data):
        tenant = self.context['tenant']
        if not validated_data.get('sku'):
            validated_data['sku'] = generate_product_sku(tenant, validated_data.get('name'))
        return Product.objects.create(tenant=tenant, **validated_data)


class ProductSearchSerializer(serializers.ModelSerializer):
    """Compact product shape used by the purchase form lookup"""
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'category', 'description', 'current_quantity',
                  'last_purchase_price', 'current_retail_price', 'is_stitched', 'has_variants', 'variants']
