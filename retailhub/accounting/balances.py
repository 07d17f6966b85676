"""
Supplier and customer balances

Supplier: owed = opening balance + net totals of live purchase invoices;
paid = supplier payments - supplier refunds, ignoring payments linked to
deleted invoices. A positive balance is owed to the supplier; when paid
exceeds owed the difference is advance available for new invoices.
"""
import logging
from decimal import Decimal
from django.db.models import Q, Sum
from retailhub.core.cache_utils import tenant_cached, BALANCES_CACHE_TTL
from .models import Account, Payment

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# Orders that count towards what a customer owes
BILLABLE_ORDER_STATUSES = ['CONFIRMED', 'DISPATCHED', 'COMPLETED']


def _sum(queryset, field):
    return queryset.aggregate(total=Sum(field))['total'] or ZERO


def calculate_supplier_balance(supplier):
    from retailhub.purchasing.models import PurchaseInvoice

    invoices = PurchaseInvoice.objects.filter(supplier=supplier, is_deleted=False)
    opening_balance = supplier.opening_balance or ZERO
    total_invoices = _sum(invoices, 'total_amount')

    payments = Payment.objects.filter(supplier=supplier).filter(
        Q(purchase_invoice__isnull=True) | Q(purchase_invoice__is_deleted=False)
    )
    total_paid = (
        _sum(payments.filter(type='SUPPLIER_PAYMENT'), 'amount')
        - _sum(payments.filter(type='SUPPLIER_REFUND'), 'amount')
    )

    total_owed = opening_balance + total_invoices
    balance = total_owed - total_paid
    return {
        'supplier_id': supplier.id,
        'supplier_name': supplier.name,
        'opening_balance': opening_balance,
        'total_invoices': total_invoices,
        'total_paid': total_paid,
        'balance': balance,
        'available_advance': max(total_paid - total_owed, ZERO),
        'invoice_count': invoices.count(),
    }


def supplier_available_advance(supplier):
    if supplier is None:
        return ZERO
    return calculate_supplier_balance(supplier)['available_advance']


def calculate_customer_balance(customer):
    from retailhub.orders.models import Order

    orders = Order.objects.filter(customer=customer, status__in=BILLABLE_ORDER_STATUSES)
    total_orders = _sum(orders, 'total_amount')
    total_paid = _sum(Payment.objects.filter(customer=customer, type='CUSTOMER_PAYMENT'), 'amount')
    pending = total_orders - total_paid
    return {
        'customer_id': customer.id,
        'customer_name': customer.name,
        'phone': customer.phone,
        'total_orders': total_orders,
        'total_paid': total_paid,
        'pending': max(pending, ZERO),
        'advance_balance': max(-pending, ZERO),
        'order_count': orders.count(),
    }


@tenant_cached(cache_ttl=BALANCES_CACHE_TTL, key_prefix='supplier_balances')
def get_supplier_balances(tenant):
    return [calculate_supplier_balance(supplier) for supplier in tenant.suppliers.all()]


@tenant_cached(cache_ttl=BALANCES_CACHE_TTL, key_prefix='customer_balances')
def get_customer_balances(tenant):
    balances = []
    for customer in tenant.customers.all():
        balance = calculate_customer_balance(customer)
        if balance['pending'] > 0 or balance['advance_balance'] > 0:
            balances.append(balance)
    return balances


@tenant_cached(cache_ttl=BALANCES_CACHE_TTL, key_prefix='balance_summary')
def get_balance_summary(tenant):
    supplier_balances = get_supplier_balances(tenant)
    customer_balances = get_customer_balances(tenant)

    total_receivables = sum((b['pending'] for b in customer_balances), ZERO)
    # Supplier advances are not payables
    total_payables = sum((b['balance'] for b in supplier_balances if b['balance'] > 0), ZERO)
    total_supplier_advance = sum((b['available_advance'] for b in supplier_balances), ZERO)
    cash_position = _sum(
        Account.objects.filter(tenant=tenant, type='ASSET', sub_type__in=['CASH', 'BANK']),
        'balance',
    )
    return {
        'total_receivables': total_receivables,
        'total_payables': total_payables,
        'total_supplier_advance': total_supplier_advance,
        'cash_position': cash_position,
        'net_balance': total_receivables - total_payables,
        'customer_count': len(customer_balances),
        'supplier_count': len(supplier_balances),
    }
