"""
Order lifecycle: PENDING -> CONFIRMED -> DISPATCHED -> COMPLETED, or CANCELLED.
Administrators may force any status; stock follows the dispatched state.
"""
import logging
from django.db import transaction
from django.utils import timezone
from retailhub.accounting.services import record_payment
from retailhub.core.utils import create_audit_log, month_sequence_number
from .models import Order

logger = logging.getLogger(__name__)


class OrderTransitionError(Exception):
    """Requested status change is not allowed from the current status"""


class InsufficientStock(Exception):
    pass


def generate_order_number(tenant):
    number = month_sequence_number(tenant, Order)
    prefix, sequence = number.rsplit('-', 1)
    sequence = int(sequence)
    while Order.objects.filter(tenant=tenant, order_number=number).exists():
        sequence += 1
        number = f"{prefix}-{sequence:03d}"
    return number


def _check_stock(order):
    for item in order.items.select_related('product', 'variant'):
        available = item.variant.current_quantity if item.variant else item.product.current_quantity
        if available < item.quantity:
            label = str(item.variant) if item.variant else item.product.name
            raise InsufficientStock(f'Insufficient stock for {label}: {available} available, {item.quantity} ordered')


def _move_stock(order, direction):
    for item in order.items.select_related('product', 'variant'):
        item.product.adjust_stock(-item.quantity * direction, item.variant)


def _log(order, action, user, request, changes=None):
    create_audit_log(
        request=request,
        user=user,
        action=action,
        model_name='Order',
        object_id=str(order.id),
        object_name=order.customer_name,
        object_reference=order.order_number,
        changes=changes or {},
        tenant=order.tenant,
    )


@transaction.atomic
def confirm_order(order, user, request=None):
    if order.status != 'PENDING':
        raise OrderTransitionError('Order can only be confirmed from pending status')
    order.status = 'CONFIRMED'
    order.confirmed_by = user
    order.save(update_fields=['status', 'confirmed_by', 'updated_at'])
    _log(order, 'order_confirm', user, request, {'status': {'old': 'PENDING', 'new': 'CONFIRMED'}})
    logger.info(f"Order {order.order_number} confirmed")
    return order


@transaction.atomic
def dispatch_order(order, user, request=None):
    if order.status != 'CONFIRMED':
        raise OrderTransitionError('Order can only be dispatched from confirmed status')
    _check_stock(order)
    _move_stock(order, 1)
    order.status = 'DISPATCHED'
    order.save(update_fields=['status', 'updated_at'])
    _log(order, 'order_dispatch', user, request, {'status': {'old': 'CONFIRMED', 'new': 'DISPATCHED'}})
    logger.info(f"Order {order.order_number} dispatched")
    return order


@transaction.atomic
def set_order_status(order, new_status, user, request=None):
    """Administrative override; keeps stock consistent with the dispatched state"""
    old_status = order.status
    if old_status == new_status:
        return order
    was_applied = order.stock_applied
    order.status = new_status
    if order.stock_applied and not was_applied:
        _check_stock(order)
        _move_stock(order, 1)
    elif was_applied and not order.stock_applied:
        _move_stock(order, -1)
    order.save(update_fields=['status', 'updated_at'])
    _log(order, 'order_status', user, request, {'status': {'old': old_status, 'new': new_status}})
    return order


@transaction.atomic
def verify_order_payment(order, user, account, amount, request=None):
    """Record the customer's payment for the order into the given account"""
    if order.payment_verified:
        raise OrderTransitionError('Payment for this order is already verified')
    if order.status in ('PENDING', 'CANCELLED'):
        raise OrderTransitionError('Payment can only be verified for confirmed orders')
    if order.customer is None:
        raise OrderTransitionError('Order has no customer to record the payment against')

    payment = record_payment(
        order.tenant, 'CUSTOMER_PAYMENT', amount, account,
        customer=order.customer, order=order,
        notes=f"Payment for order {order.order_number}", user=user,
    )
    order.payment_verified = True
    order.payment_verified_at = timezone.now()
    order.payment_verified_by = user
    order.payment_amount = payment.amount
    order.payment_account = account
    order.save(update_fields=['payment_verified', 'payment_verified_at', 'payment_verified_by',
                              'payment_amount', 'payment_account', 'updated_at'])
    _log(order, 'payment_verify', user, request, {'amount': str(payment.amount), 'account': account.name})
    return payment
