from rest_framework import serializers
from decimal import Decimal
from retailhub.parties.models import Supplier, Customer
from .models import Account, Payment


class AccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = Account
        fields = ['id', 'code', 'name', 'type', 'sub_type', 'balance', 'is_active', 'created_at']
        read_only_fields = ['balance', 'created_at']

    def validate_code(self, value):
        tenant = self.context['tenant']
        queryset = Account.objects.filter(tenant=tenant, code=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Account with this code already exists')
        return value

    def validate(self, attrs):
        if attrs.get('sub_type') and attrs.get('type', 'ASSET') != 'ASSET':
            raise serializers.ValidationError({'sub_type': 'Only asset accounts can be cash or bank accounts'})
        return attrs


class PaymentSerializer(serializers.ModelSerializer):
    account_name = serializers.CharField(source='account.name', read_only=True)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    customer_name = serializers.CharField(source='customer.name', read_only=True, default=None)
    invoice_number = serializers.CharField(source='purchase_invoice.invoice_number', read_only=True, default=None)
    order_number = serializers.CharField(source='order.order_number', read_only=True, default=None)

    class Meta:
        model = Payment
        fields = ['id', 'payment_number', 'date', 'type', 'amount', 'payment_method', 'account', 'account_name',
                  'supplier', 'supplier_name', 'customer', 'customer_name', 'purchase_invoice', 'invoice_number',
                  'order', 'order_number', 'notes', 'created_at']


class PaymentCreateSerializer(serializers.Serializer):
    """Standalone supplier or customer payment"""
    type = serializers.ChoiceField(choices=['SUPPLIER_PAYMENT', 'CUSTOMER_PAYMENT'])
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0.01'))
    account = serializers.IntegerField()
    supplier = serializers.IntegerField(required=False, allow_null=True)
    customer = serializers.IntegerField(required=False, allow_null=True)
    date = serializers.DateField(required=False)
    payment_method = serializers.ChoiceField(choices=Payment.METHOD_CHOICES, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        tenant = self.context['tenant']
        account = Account.objects.filter(
            pk=attrs['account'], tenant=tenant, type='ASSET', sub_type__in=['CASH', 'BANK']
        ).first()
        if account is None:
            raise serializers.ValidationError({'account': 'Select a cash or bank account'})
        attrs['account'] = account

        if attrs['type'] == 'SUPPLIER_PAYMENT':
            supplier = Supplier.objects.filter(pk=attrs.get('supplier'), tenant=tenant).first()
            if supplier is None:
                raise serializers.ValidationError({'supplier': 'Supplier is required for a supplier payment'})
            attrs['supplier'] = supplier
            attrs['customer'] = None
        else:
            customer = Customer.objects.filter(pk=attrs.get('customer'), tenant=tenant).first()
            if customer is None:
                raise serializers.ValidationError({'customer': 'Customer is required for a customer payment'})
            attrs['customer'] = customer
            attrs['supplier'] = None
        return attrs
