"""
Account seeding and payment recording.

Payments only move the balance of the CASH/BANK account they touch: supplier
payments draw it down, supplier refunds and customer payments add to it.
"""
import logging
from decimal import Decimal
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from retailhub.core.cache_utils import invalidate_tenant_cache
from retailhub.core.utils import month_sequence_number
from .models import Account, Payment

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = [
    {'code': '1000', 'name': 'Cash', 'type': 'ASSET', 'sub_type': 'CASH'},
    {'code': '1100', 'name': 'Bank Account', 'type': 'ASSET', 'sub_type': 'BANK'},
    {'code': '1200', 'name': 'Accounts Receivable', 'type': 'ASSET', 'sub_type': ''},
    {'code': '1300', 'name': 'Inventory', 'type': 'ASSET', 'sub_type': ''},
    {'code': '2000', 'name': 'Accounts Payable', 'type': 'LIABILITY', 'sub_type': ''},
    {'code': '4000', 'name': 'Sales Revenue', 'type': 'INCOME', 'sub_type': ''},
]

# Sign applied to the payment account balance per payment type
BALANCE_DIRECTION = {
    'SUPPLIER_PAYMENT': -1,
    'SUPPLIER_REFUND': 1,
    'CUSTOMER_PAYMENT': 1,
}


def ensure_default_accounts(tenant):
    """Create the standard accounts a tenant needs. Existing codes are left untouched."""
    created = []
    for entry in DEFAULT_ACCOUNTS:
        account, was_created = Account.objects.get_or_create(
            tenant=tenant,
            code=entry['code'],
            defaults={'name': entry['name'], 'type': entry['type'], 'sub_type': entry['sub_type']},
        )
        if was_created:
            created.append(account)
    if created:
        logger.info(f"Seeded {len(created)} default accounts for tenant {tenant.id}")
    return created


def get_payment_accounts(tenant, sub_type=None):
    queryset = Account.objects.filter(tenant=tenant, type='ASSET', is_active=True)
    if sub_type:
        queryset = queryset.filter(sub_type=sub_type)
    else:
        queryset = queryset.filter(sub_type__in=['CASH', 'BANK'])
    return queryset.order_by('sub_type', 'name')


def get_payment_account(tenant, account_id):
    """Resolve a CASH/BANK account of the tenant, or None"""
    if not account_id:
        return None
    return get_payment_accounts(tenant).filter(pk=account_id).first()


def payment_method_for(account):
    return 'Bank Transfer' if account.sub_type == 'BANK' else 'Cash'


@transaction.atomic
def record_payment(tenant, payment_type, amount, account, *, supplier=None, customer=None,
                   purchase_invoice=None, order=None, date=None, payment_method=None,
                   notes=None, user=None):
    """Create a payment and move the payment account balance"""
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValueError('Payment amount must be greater than zero')
    if payment_type not in BALANCE_DIRECTION:
        raise ValueError(f'Unknown payment type "{payment_type}"')

    payment = Payment.objects.create(
        tenant=tenant,
        payment_number=month_sequence_number(tenant, Payment, prefix='PAY'),
        date=date or timezone.now().date(),
        type=payment_type,
        amount=amount,
        payment_method=payment_method or payment_method_for(account),
        account=account,
        supplier=supplier,
        customer=customer,
        purchase_invoice=purchase_invoice,
        order=order,
        notes=notes,
        created_by=user,
    )
    Account.objects.filter(pk=account.pk).update(balance=F('balance') + amount * BALANCE_DIRECTION[payment_type])
    invalidate_tenant_cache(tenant.id)
    return payment


def shift_account_balances(payments, direction):
    """
    Re-apply (direction=1) or back out (direction=-1) the account movements of payments.

    Used when a purchase invoice is soft deleted or restored; the payment rows
    stay linked to the invoice either way.
    """
    tenant_ids = set()
    for payment in payments:
        Account.objects.filter(pk=payment.account_id).update(
            balance=F('balance') + payment.amount * BALANCE_DIRECTION[payment.type] * direction
        )
        tenant_ids.add(payment.tenant_id)
    for tenant_id in tenant_ids:
        invalidate_tenant_cache(tenant_id)
