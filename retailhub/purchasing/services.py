"""
Purchase invoice persistence: numbering, stock movements and payments.

The settlement rules themselves live in settlement.py; this module writes
an already validated settlement to the database.
"""
import logging
from decimal import Decimal
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from retailhub.accounting.services import record_payment, shift_account_balances
from retailhub.core.utils import create_audit_log, month_sequence_number
from retailhub.parties.models import Supplier
from .models import PurchaseInvoice, PurchaseItem, PurchaseReturn, PurchaseReturnItem
from .settlement import (
    DEFAULT_CASH_CLEAR_EPSILON, RETURN_REFUND, LineItem, ReturnItem, SettlementState, money, to_decimal,
)

logger = logging.getLogger(__name__)


def get_cash_clear_epsilon():
    config = getattr(settings, 'PURCHASE_SETTLEMENT', {})
    return to_decimal(config.get('CASH_CLEAR_EPSILON', DEFAULT_CASH_CLEAR_EPSILON))


def line_from_payload(data, cls=LineItem):
    """Build a settlement line from a request body line (snake_case keys)"""
    kwargs = dict(
        name=data.get('name') or '',
        quantity=data.get('quantity'),
        unit_price=data.get('purchase_price'),
        sku=data.get('sku'),
        category=data.get('category'),
        description=data.get('description'),
        product_id=data.get('product'),
        variant_id=data.get('variant'),
        color=data.get('color'),
        size=data.get('size'),
    )
    if cls is ReturnItem:
        kwargs['reason'] = data.get('reason') or ''
    return cls(**kwargs)


def state_from_payload(data, available_advance=Decimal('0.00')):
    """SettlementState for a create/preview request body"""
    return SettlementState(
        line_items=[line_from_payload(line) for line in data.get('products') or []],
        return_items=[line_from_payload(line, ReturnItem) for line in data.get('return_items') or []],
        available_advance=available_advance if data.get('use_advance_balance') else Decimal('0.00'),
        cash_payment=data.get('payment_amount'),
        requested_status=data.get('payment_status') or None,
        payment_account_id=data.get('payment_account'),
        return_method=data.get('return_handling_method') or None,
        refund_account_id=data.get('return_refund_account'),
    )


def find_supplier(tenant, name):
    name = (name or '').strip()
    if not name:
        return None
    return Supplier.objects.filter(tenant=tenant, name__iexact=name).first()


def generate_invoice_number(tenant):
    """
    Next free invoice number for the tenant.

    Format: {business_code}-{MON}-{YY}-{sequence:03d}
    """
    number = month_sequence_number(tenant, PurchaseInvoice)
    prefix, sequence = number.rsplit('-', 1)
    sequence = int(sequence)
    while PurchaseInvoice.objects.filter(tenant=tenant, invoice_number=number, is_deleted=False).exists():
        sequence += 1
        number = f"{prefix}-{sequence:03d}"
    return number


def _line_fields(line):
    return {
        'name': line.name.strip(),
        'sku': line.sku,
        'category': line.category,
        'description': line.description,
        'color': line.color,
        'size': line.size,
        'quantity': int(line.qty),
        'purchase_price': money(line.price),
    }


def _apply_stock(invoice, direction):
    """Move stock for every purchased (+) and returned (-) line; direction=-1 reverses"""
    for item in invoice.items.select_related('product', 'variant'):
        if item.product:
            item.product.adjust_stock(
                item.quantity * direction, item.variant,
                purchase_price=item.purchase_price if direction > 0 else None,
            )
    for purchase_return in invoice.returns.all():
        for item in purchase_return.items.select_related('product', 'variant'):
            if item.product:
                item.product.adjust_stock(-item.quantity * direction, item.variant)


@transaction.atomic
def create_purchase_invoice(tenant, user, header, settlement, products, variants,
                            payment_account=None, refund_account=None, request=None):
    """
    Persist a validated settlement.

    Args:
        header: dict with invoice_number, supplier_name, invoice_date, notes
        settlement: PurchaseOnly, ReturnOnly or Mixed
        products / variants: id -> instance maps for the lines that link catalog rows
    """
    supplier_name = header['supplier_name'].strip()
    supplier = find_supplier(tenant, supplier_name)
    if supplier is None:
        supplier = Supplier.objects.create(tenant=tenant, name=supplier_name)
        logger.info(f"Created supplier '{supplier_name}' for tenant {tenant.id}")

    totals = settlement.totals
    advance_used = getattr(settlement, 'advance_used', Decimal('0.00'))
    cash_payment = getattr(settlement, 'cash_payment', Decimal('0.00'))
    return_method = getattr(settlement, 'return_method', None)

    invoice = PurchaseInvoice.objects.create(
        tenant=tenant,
        supplier=supplier,
        invoice_number=header.get('invoice_number') or generate_invoice_number(tenant),
        supplier_name=supplier.name,
        invoice_date=header.get('invoice_date') or timezone.now().date(),
        purchase_total=totals.purchase_total,
        return_total=totals.return_total,
        total_amount=totals.net_total,
        payment_amount=cash_payment,
        advance_amount_used=advance_used,
        payment_status=getattr(settlement, 'status', 'unpaid'),
        return_handling_method=return_method,
        notes=header.get('notes') or None,
        created_by=user,
    )

    items = [
        PurchaseItem(
            invoice=invoice,
            product=products.get(line.product_id),
            variant=variants.get(line.variant_id),
            **_line_fields(line),
        )
        for line in getattr(settlement, 'items', ())
    ]
    PurchaseItem.objects.bulk_create(items)

    return_lines = getattr(settlement, 'return_items', ())
    if return_lines:
        purchase_return = PurchaseReturn.objects.create(
            invoice=invoice,
            return_number=f"{invoice.invoice_number}-RET",
            handling_method=return_method,
            refund_account=refund_account if return_method == RETURN_REFUND else None,
            total_amount=totals.return_total,
        )
        PurchaseReturnItem.objects.bulk_create([
            PurchaseReturnItem(
                purchase_return=purchase_return,
                product=products.get(line.product_id),
                variant=variants.get(line.variant_id),
                reason=line.reason or None,
                **_line_fields(line),
            )
            for line in return_lines
        ])

    _apply_stock(invoice, 1)

    if cash_payment > 0:
        record_payment(
            tenant, 'SUPPLIER_PAYMENT', cash_payment, payment_account,
            supplier=supplier, purchase_invoice=invoice, date=invoice.invoice_date,
            notes=f"Payment for purchase invoice {invoice.invoice_number}", user=user,
        )
    if return_lines and return_method == RETURN_REFUND:
        record_payment(
            tenant, 'SUPPLIER_REFUND', totals.return_total, refund_account,
            supplier=supplier, purchase_invoice=invoice, date=invoice.invoice_date,
            notes=f"Refund for returns on purchase invoice {invoice.invoice_number}", user=user,
        )

    create_audit_log(
        request=request,
        user=user,
        action='create',
        model_name='PurchaseInvoice',
        object_id=str(invoice.id),
        object_name=invoice.invoice_number,
        object_reference=invoice.invoice_number,
        changes={
            'kind': settlement.kind,
            'supplier': supplier.name,
            'purchase_total': str(totals.purchase_total),
            'return_total': str(totals.return_total),
            'net_total': str(totals.net_total),
            'advance_amount_used': str(advance_used),
            'payment_amount': str(cash_payment),
            'payment_status': invoice.payment_status,
        },
        tenant=tenant,
    )
    logger.info(
        f"Created purchase invoice {invoice.invoice_number} ({settlement.kind}) "
        f"net={totals.net_total} advance={advance_used} cash={cash_payment}"
    )
    return invoice


@transaction.atomic
def soft_delete_invoice(invoice, user=None, request=None):
    """Flag the invoice deleted and reverse its stock and account movements"""
    invoice.is_deleted = True
    invoice.deleted_at = timezone.now()
    invoice.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])
    _apply_stock(invoice, -1)
    shift_account_balances(invoice.payments.all(), -1)
    create_audit_log(
        request=request,
        user=user,
        action='delete',
        model_name='PurchaseInvoice',
        object_id=str(invoice.id),
        object_name=invoice.invoice_number,
        object_reference=invoice.invoice_number,
        changes={'total_amount': str(invoice.total_amount), 'supplier': invoice.supplier_name},
        tenant=invoice.tenant,
    )
    return invoice


@transaction.atomic
def restore_invoice(invoice, user=None, request=None):
    """Undo a soft delete. The caller checks the invoice number is still free."""
    invoice.is_deleted = False
    invoice.deleted_at = None
    invoice.save(update_fields=['is_deleted', 'deleted_at', 'updated_at'])
    _apply_stock(invoice, 1)
    shift_account_balances(invoice.payments.all(), 1)
    create_audit_log(
        request=request,
        user=user,
        action='restore',
        model_name='PurchaseInvoice',
        object_id=str(invoice.id),
        object_name=invoice.invoice_number,
        object_reference=invoice.invoice_number,
        tenant=invoice.tenant,
    )
    return invoice
