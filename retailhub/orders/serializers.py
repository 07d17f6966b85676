from rest_framework import serializers
from decimal import Decimal
from django.db import transaction
from retailhub.catalog.models import Product, ProductVariant
from retailhub.parties.models import Customer
from retailhub.accounting.services import get_payment_account
from .models import Order, OrderItem
from .services import generate_order_number


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    variant_label = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'product', 'product_name', 'variant', 'variant_label', 'quantity', 'price']

    def get_variant_label(self, obj):
        if not obj.variant:
            return None
        return f"{obj.variant.color} / {obj.variant.size}" if obj.variant.size else obj.variant.color


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    payment_account_name = serializers.CharField(source='payment_account.name', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'order_number', 'customer', 'customer_name', 'customer_phone', 'status', 'total_amount',
                  'payment_account', 'payment_account_name', 'payment_amount', 'payment_verified',
                  'payment_verified_at', 'confirmed_by', 'notes', 'items', 'created_at', 'updated_at']


class OrderLineSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    variant = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))


class OrderCreateSerializer(serializers.Serializer):
    customer = serializers.IntegerField(required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    items = OrderLineSerializer(many=True)
    payment_account = serializers.IntegerField(required=False, allow_null=True)
    payment_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True,
                                              min_value=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Order needs at least one item')
        return value

    def validate(self, attrs):
        tenant = self.context['tenant']
        if attrs.get('customer'):
            customer = Customer.objects.filter(pk=attrs['customer'], tenant=tenant).first()
            if customer is None:
                raise serializers.ValidationError({'customer': 'Customer not found'})
            attrs['customer'] = customer
        elif attrs.get('customer_phone'):
            attrs['customer'] = None
        else:
            raise serializers.ValidationError({'customer': 'Select a customer or enter a phone number'})

        for line in attrs['items']:
            product = Product.objects.filter(pk=line['product'], tenant=tenant, is_active=True).first()
            if product is None:
                raise serializers.ValidationError({'items': f'Product {line["product"]} does not exist'})
            line['product'] = product
            variant = None
            if line.get('variant'):
                variant = ProductVariant.objects.filter(pk=line['variant'], product=product).first()
                if variant is None:
                    raise serializers.ValidationError({'items': f'Variant {line["variant"]} does not belong to {product.name}'})
            elif product.has_variants:
                raise serializers.ValidationError({'items': f'Select a variant for {product.name}'})
            line['variant'] = variant

        if attrs.get('payment_account'):
            account = get_payment_account(tenant, attrs['payment_account'])
            if account is None:
                raise serializers.ValidationError({'payment_account': 'Invalid payment account'})
            attrs['payment_account'] = account
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        tenant = self.context['tenant']
        customer = validated_data.get('customer')
        if customer is None:
            phone = validated_data['customer_phone'].strip()
            customer, _ = Customer.objects.get_or_create(
                tenant=tenant, phone=phone,
                defaults={'name': (validated_data.get('customer_name') or '').strip() or phone},
            )

        lines = validated_data['items']
        order = Order.objects.create(
            tenant=tenant,
            order_number=generate_order_number(tenant),
            customer=customer,
            customer_name=(validated_data.get('customer_name') or '').strip() or customer.name,
            customer_phone=customer.phone,
            total_amount=sum((line['quantity'] * line['price'] for line in lines), Decimal('0.00')),
            payment_account=validated_data.get('payment_account'),
            payment_amount=validated_data.get('payment_amount'),
            notes=validated_data.get('notes'),
        )
        OrderItem.objects.bulk_create([
            OrderItem(order=order, product=line['product'], variant=line['variant'],
                      quantity=line['quantity'], price=line['price'])
            for line in lines
        ])
        return order


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)


class VerifyPaymentSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True,
                                      min_value=Decimal('0.01'))
    payment_account = serializers.IntegerField(required=False, allow_null=True)
