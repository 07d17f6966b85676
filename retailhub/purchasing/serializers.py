from rest_framework import serializers
from decimal import Decimal
from django.utils import timezone
from retailhub.accounting.serializers import PaymentSerializer
from retailhub.accounting.services import get_payment_account
from retailhub.accounting.balances import supplier_available_advance
from retailhub.catalog.models import Product, ProductVariant
from .models import PurchaseInvoice, PurchaseItem, PurchaseReturn, PurchaseReturnItem
from .services import find_supplier, get_cash_clear_epsilon, state_from_payload
from .settlement import (
    PAYMENT_STATUS_CHOICES, RETURN_HANDLING_CHOICES, SettlementError, build_settlement, money,
    submission_errors,
)


class PurchaseItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseItem
        fields = ['id', 'product', 'variant', 'name', 'sku', 'category', 'description', 'color', 'size',
                  'quantity', 'purchase_price', 'line_total']

    def get_line_total(self, obj):
        return str(money(obj.get_line_total()))


class PurchaseReturnItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseReturnItem
        fields = ['id', 'product', 'variant', 'name', 'sku', 'category', 'description', 'color', 'size',
                  'reason', 'quantity', 'purchase_price']


class PurchaseReturnSerializer(serializers.ModelSerializer):
    items = PurchaseReturnItemSerializer(many=True, read_only=True)
    refund_account_name = serializers.CharField(source='refund_account.name', read_only=True, default=None)

    class Meta:
        model = PurchaseReturn
        fields = ['id', 'return_number', 'handling_method', 'refund_account', 'refund_account_name',
                  'total_amount', 'items', 'created_at']


class PurchaseInvoiceSerializer(serializers.ModelSerializer):
    amount_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseInvoice
        fields = ['id', 'invoice_number', 'supplier', 'supplier_name', 'invoice_date', 'purchase_total',
                  'return_total', 'total_amount', 'payment_amount', 'advance_amount_used', 'amount_due',
                  'payment_status', 'return_handling_method', 'notes', 'is_deleted', 'deleted_at',
                  'item_count', 'created_at', 'updated_at']

    def get_item_count(self, obj):
        return len(obj.items.all())


class PurchaseInvoiceDetailSerializer(PurchaseInvoiceSerializer):
    items = PurchaseItemSerializer(many=True, read_only=True)
    returns = PurchaseReturnSerializer(many=True, read_only=True)
    payments = PaymentSerializer(many=True, read_only=True)

    class Meta(PurchaseInvoiceSerializer.Meta):
        fields = PurchaseInvoiceSerializer.Meta.fields + ['items', 'returns', 'payments']


class PurchaseLineSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1)
    purchase_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.00'))
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    product = serializers.IntegerField(required=False, allow_null=True)
    variant = serializers.IntegerField(required=False, allow_null=True)
    color = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)
    size = serializers.CharField(max_length=20, required=False, allow_blank=True, allow_null=True)


class ReturnLineSerializer(PurchaseLineSerializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class PurchaseInvoiceCreateSerializer(serializers.Serializer):
    """
    Create body for /purchase-invoices/with-products/

    The settlement (totals, advance, status, return handling) is recomputed
    from the lines and the supplier's current advance; the request must agree
    with it or the invoice is rejected.
    """
    invoice_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    supplier_name = serializers.CharField(max_length=200)
    invoice_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    products = PurchaseLineSerializer(many=True, required=False, default=list)
    return_items = ReturnLineSerializer(many=True, required=False, default=list)
    payment_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    payment_account = serializers.IntegerField(required=False, allow_null=True)
    payment_status = serializers.ChoiceField(choices=PAYMENT_STATUS_CHOICES, required=False, allow_null=True, allow_blank=True)
    use_advance_balance = serializers.BooleanField(required=False, default=False)
    advance_amount_used = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    return_handling_method = serializers.ChoiceField(choices=RETURN_HANDLING_CHOICES, required=False, allow_null=True, allow_blank=True)
    return_refund_account = serializers.IntegerField(required=False, allow_null=True)

    def validate_supplier_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Supplier name is required')
        return value

    def validate_invoice_number(self, value):
        value = (value or '').strip()
        if value and PurchaseInvoice.objects.filter(
            tenant=self.context['tenant'], invoice_number=value, is_deleted=False
        ).exists():
            raise serializers.ValidationError('Invoice number already exists')
        return value

    def _catalog_rows(self, lines):
        tenant = self.context['tenant']
        product_ids = {line['product'] for line in lines if line.get('product')}
        variant_ids = {line['variant'] for line in lines if line.get('variant')}
        products = {p.id: p for p in Product.objects.filter(tenant=tenant, id__in=product_ids)}
        variants = {v.id: v for v in ProductVariant.objects.filter(product__tenant=tenant, id__in=variant_ids)}
        missing = product_ids - set(products)
        if missing:
            raise serializers.ValidationError({'products': f'Product {sorted(missing)[0]} does not exist'})
        missing = variant_ids - set(variants)
        if missing:
            raise serializers.ValidationError({'products': f'Variant {sorted(missing)[0]} does not exist'})
        for line in lines:
            variant = variants.get(line.get('variant'))
            if variant and line.get('product') and variant.product_id != line['product']:
                raise serializers.ValidationError({'products': f'Variant {variant.id} does not belong to product {line["product"]}'})
        return products, variants

    def validate(self, attrs):
        tenant = self.context['tenant']
        supplier = find_supplier(tenant, attrs['supplier_name'])
        available_advance = supplier_available_advance(supplier)
        state = state_from_payload(attrs, available_advance)

        try:
            settlement = build_settlement(state, get_cash_clear_epsilon())
        except SettlementError as e:
            raise serializers.ValidationError(e.message)

        net_total = settlement.totals.net_total
        advance_used = getattr(settlement, 'advance_used', Decimal('0.00'))
        entered_cash = money(attrs.get('payment_amount'))
        if settlement.kind != 'return':
            # a cash amount cleared because advance covers the invoice would be an overpayment here
            errors = submission_errors(net_total, advance_used, entered_cash,
                                       attrs.get('payment_status'), attrs.get('payment_account'))
            if errors:
                raise serializers.ValidationError(errors[0])

        if attrs.get('total_amount') is not None and money(attrs['total_amount']) != net_total:
            raise serializers.ValidationError(
                f'Total amount (Rs. {money(attrs["total_amount"])}) does not match line items (Rs. {net_total})'
            )
        claimed_advance = attrs.get('advance_amount_used')
        if claimed_advance is not None and money(claimed_advance) > advance_used:
            raise serializers.ValidationError(
                f'Advance amount used (Rs. {money(claimed_advance)}) exceeds available advance (Rs. {advance_used})'
            )

        payment_account = None
        if getattr(settlement, 'cash_payment', Decimal('0.00')) > 0:
            payment_account = get_payment_account(tenant, attrs.get('payment_account'))
            if payment_account is None:
                raise serializers.ValidationError({'payment_account': 'Invalid payment account'})
        refund_account = None
        if getattr(settlement, 'refund_account_id', None):
            refund_account = get_payment_account(tenant, attrs.get('return_refund_account'))
            if refund_account is None:
                raise serializers.ValidationError({'return_refund_account': 'Invalid refund account'})

        products, variants = self._catalog_rows(list(attrs['products']) + list(attrs['return_items']))

        attrs['settlement'] = settlement
        attrs['catalog'] = (products, variants)
        attrs['payment_account_obj'] = payment_account
        attrs['refund_account_obj'] = refund_account
        attrs.setdefault('invoice_date', timezone.now().date())
        return attrs


class PurchaseInvoiceUpdateSerializer(serializers.ModelSerializer):
    """Header fields editable after creation"""

    class Meta:
        model = PurchaseInvoice
        fields = ['invoice_number', 'invoice_date', 'notes']

    def validate_invoice_number(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Invoice number cannot be blank')
        if PurchaseInvoice.objects.filter(
            tenant=self.instance.tenant, invoice_number=value, is_deleted=False
        ).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError('Invoice number already exists')
        return value
