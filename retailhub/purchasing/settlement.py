"""
Purchase settlement computation

Totals, supplier advance allocation, payment status and return handling rules
for a purchase invoice. This module has no Django dependency: the purchase
invoice serializer and the intake client both run the same rules through it.
"""
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional, Sequence, Union

ZERO = Decimal('0.00')
CENT = Decimal('0.01')
DEFAULT_CASH_CLEAR_EPSILON = Decimal('0.01')

STATUS_UNPAID = 'unpaid'
STATUS_PARTIAL = 'partial'
STATUS_PAID = 'paid'
PAYMENT_STATUS_CHOICES = [
    (STATUS_UNPAID, 'Unpaid'),
    (STATUS_PARTIAL, 'Partially Paid'),
    (STATUS_PAID, 'Fully Paid'),
]

RETURN_REDUCE_PAYABLE = 'REDUCE_AP'
RETURN_REFUND = 'REFUND'
RETURN_HANDLING_CHOICES = [
    (RETURN_REDUCE_PAYABLE, 'Reduce amount payable'),
    (RETURN_REFUND, 'Refund to account'),
]


class SettlementError(ValueError):
    """Raised when an invoice's totals, payment and returns contradict each other"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors) if errors else [message]


def to_decimal(value) -> Decimal:
    """Coerce form input to Decimal. Blank or non-numeric input counts as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass
class LineItem:
    """A purchased line on the invoice"""
    name: str = ''
    quantity: object = 1
    unit_price: object = 0
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    color: Optional[str] = None
    size: Optional[str] = None

    @property
    def qty(self) -> Decimal:
        return to_decimal(self.quantity)

    @property
    def price(self) -> Decimal:
        return to_decimal(self.unit_price)

    @property
    def line_total(self) -> Decimal:
        return self.qty * self.price

    @property
    def has_whole_quantity(self) -> bool:
        return self.qty >= 1 and self.qty == self.qty.to_integral_value()

    def is_valid(self) -> bool:
        return bool((self.name or '').strip()) and self.has_whole_quantity and self.price >= 0

    def to_payload(self):
        return {
            'name': (self.name or '').strip(),
            'quantity': int(self.qty),
            'purchase_price': str(money(self.price)),
            'sku': _text(self.sku),
            'category': _text(self.category),
            'description': _text(self.description),
            'product': self.product_id,
            'variant': self.variant_id,
            'color': _text(self.color),
            'size': _text(self.size),
        }


@dataclass
class ReturnItem(LineItem):
    """Stock sent back to the supplier against this invoice"""
    reason: str = ''

    def to_payload(self):
        payload = super().to_payload()
        payload['reason'] = (self.reason or '').strip()
        return payload


@dataclass(frozen=True)
class Totals:
    purchase_total: Decimal
    return_total: Decimal
    net_total: Decimal

    @property
    def amount_due(self) -> Decimal:
        return max(self.net_total, ZERO)

    @property
    def is_return_only(self) -> bool:
        return self.net_total < 0


def compute_totals(line_items: Sequence[LineItem], return_items: Sequence[LineItem] = ()) -> Totals:
    """Sum purchase and return lines. The net total is negative for return-only invoices."""
    purchase_total = money(sum((item.line_total for item in line_items), ZERO))
    return_total = money(sum((item.line_total for item in return_items), ZERO))
    return Totals(
        purchase_total=purchase_total,
        return_total=return_total,
        net_total=purchase_total - return_total,
    )


def allocate_advance(net_total, available_advance) -> Decimal:
    """Advance consumed by an invoice: min(available, max(net, 0))"""
    net = money(net_total)
    available = max(money(available_advance), ZERO)
    if net <= 0:
        return ZERO
    return min(available, net)


def should_clear_cash(net_total, advance_used, cash_payment, epsilon=DEFAULT_CASH_CLEAR_EPSILON) -> bool:
    """True when advance alone covers the invoice and a cash amount above epsilon was entered"""
    net = money(net_total)
    return net > 0 and money(advance_used) >= net and to_decimal(cash_payment) > to_decimal(epsilon)


def resolve_status(net_total, advance_used, cash_payment) -> str:
    net = money(net_total)
    total_payment = money(advance_used) + money(cash_payment)
    if net > 0 and total_payment >= net:
        return STATUS_PAID
    if 0 < total_payment < net:
        return STATUS_PARTIAL
    return STATUS_UNPAID


def submission_errors(net_total, advance_used, cash_payment, status=None, payment_account_id=None) -> List[str]:
    """
    Payment consistency checks run before an invoice is submitted.

    Args:
        net_total: purchase total minus return total
        advance_used: supplier advance applied to this invoice
        cash_payment: cash/bank amount entered by the user
        status: payment status chosen by the user, None to accept the resolved one
        payment_account_id: account the cash payment is drawn from

    Returns:
        list of user-facing messages, empty when the payment is consistent
    """
    net = money(net_total)
    advance = money(advance_used)
    cash = money(cash_payment)
    total_payment = advance + cash
    errors = []

    if status not in (None, '', STATUS_UNPAID, STATUS_PARTIAL, STATUS_PAID):
        errors.append(f'Invalid payment status "{status}"')
        return errors

    if net < 0:
        if cash != 0:
            errors.append('A payment cannot be recorded against a return-only invoice')
        if status in (STATUS_PAID, STATUS_PARTIAL):
            errors.append('Return-only invoices must be marked unpaid')
        return errors

    if cash < 0:
        errors.append('Payment amount cannot be negative')
        return errors

    if total_payment > net:
        errors.append(f'Total payment (Rs. {total_payment}) exceeds invoice total (Rs. {net})')
    if status == STATUS_UNPAID and total_payment > 0:
        expected = 'Fully Paid' if total_payment >= net else 'Partially Paid'
        errors.append(
            f'Payment status is "Unpaid" but total payment is Rs. {total_payment}. '
            f'Payment status should be "{expected}"'
        )
    elif status == STATUS_PAID and net <= 0:
        errors.append('Nothing is payable on this invoice. Payment status should be "Unpaid"')
    elif status == STATUS_PAID and total_payment < net:
        errors.append(
            f'Payment status is "Fully Paid" but total payment is Rs. {total_payment}. '
            f'Need Rs. {net - total_payment} more.'
        )
    elif status == STATUS_PARTIAL and total_payment <= 0:
        errors.append('Payment status is "Partially Paid" but no payment entered')
    elif status == STATUS_PARTIAL and total_payment >= net:
        errors.append('Total payment covers full invoice. Payment status should be "Fully Paid"')

    if cash > 0 and not payment_account_id:
        errors.append('Please select a payment account for the cash payment')
    return errors


def validate_submission(net_total, advance_used, cash_payment, status=None, payment_account_id=None):
    errors = submission_errors(net_total, advance_used, cash_payment, status, payment_account_id)
    if errors:
        raise SettlementError(errors[0], errors)


def return_handling_errors(line_items, return_items, method, refund_account_id) -> List[str]:
    valid_returns = [item for item in return_items if item.is_valid()]
    if not valid_returns:
        return []

    errors = []
    valid_lines = [item for item in line_items if item.is_valid()]
    if valid_lines:
        totals = compute_totals(valid_lines, valid_returns)
        if totals.return_total > totals.purchase_total:
            errors.append(
                f'Return total cannot exceed purchase total '
                f'(Rs. {totals.return_total} > Rs. {totals.purchase_total})'
            )
    if method not in (RETURN_REDUCE_PAYABLE, RETURN_REFUND):
        errors.append('Please select a return handling method')
    elif method == RETURN_REFUND and not _text(refund_account_id):
        errors.append('Please select a refund account for returns')
    return errors


def quantity_errors(line_items, return_items=()) -> List[str]:
    """Named lines whose quantity is a fraction or below one"""
    errors = []
    for item in list(line_items) + list(return_items):
        name = (item.name or '').strip()
        if name and item.qty > 0 and not item.has_whole_quantity:
            errors.append(f'Quantity for "{name}" must be a whole number of at least 1')
    return errors


def validate_return_handling(line_items, return_items, method, refund_account_id):
    errors = return_handling_errors(line_items, return_items, method, refund_account_id)
    if errors:
        raise SettlementError(errors[0], errors)


@dataclass
class SettlementState:
    """Everything the user has entered that affects settlement"""
    line_items: List[LineItem] = field(default_factory=list)
    return_items: List[ReturnItem] = field(default_factory=list)
    available_advance: object = ZERO
    cash_payment: object = ZERO
    requested_status: Optional[str] = None
    payment_account_id: Optional[object] = None
    return_method: Optional[str] = None
    refund_account_id: Optional[object] = None

    def valid_line_items(self):
        return [item for item in self.line_items if item.is_valid()]

    def valid_return_items(self):
        return [item for item in self.return_items if item.is_valid()]


@dataclass(frozen=True)
class SettlementResult:
    totals: Totals
    advance_used: Decimal
    cash_payment: Decimal
    cash_cleared: bool
    status: str
    errors: tuple = ()

    @property
    def total_payment(self) -> Decimal:
        return self.advance_used + self.cash_payment

    @property
    def is_valid(self) -> bool:
        return not self.errors


def compute_settlement(state: SettlementState, epsilon=DEFAULT_CASH_CLEAR_EPSILON) -> SettlementResult:
    """
    Recompute totals, advance usage, status and every blocking error for the current state.

    Only valid lines count towards the totals, so the figures shown while
    editing are the ones build_settlement submits.
    """
    valid_items = state.valid_line_items()
    valid_returns = state.valid_return_items()
    totals = compute_totals(valid_items, valid_returns)
    advance_used = allocate_advance(totals.net_total, state.available_advance)

    entered_cash = money(state.cash_payment)
    cash = entered_cash
    cash_cleared = False
    if should_clear_cash(totals.net_total, advance_used, entered_cash, epsilon):
        cash = ZERO
        cash_cleared = True
    if totals.is_return_only:
        # shown as zero; the entered amount is still rejected below
        cash = ZERO

    status = resolve_status(totals.net_total, advance_used, cash)

    errors = quantity_errors(state.line_items, state.return_items)
    if not valid_items and not valid_returns:
        errors.append('Please add at least one valid product or return item')
    errors.extend(return_handling_errors(
        state.line_items, state.return_items, state.return_method, state.refund_account_id
    ))
    errors.extend(submission_errors(
        totals.net_total,
        advance_used,
        entered_cash if totals.is_return_only else cash,
        state.requested_status or None,
        state.payment_account_id,
    ))

    return SettlementResult(
        totals=totals,
        advance_used=advance_used,
        cash_payment=cash,
        cash_cleared=cash_cleared,
        status=status,
        errors=tuple(errors),
    )


def _payment_fields(advance_used, cash_payment, payment_account_id, status):
    fields = {
        'payment_status': status,
        'use_advance_balance': advance_used > 0,
    }
    if advance_used > 0:
        fields['advance_amount_used'] = str(advance_used)
    if cash_payment > 0:
        fields['payment_amount'] = str(cash_payment)
        fields['payment_account'] = payment_account_id
    return fields


def _return_fields(return_items, method, refund_account_id):
    fields = {
        'return_items': [item.to_payload() for item in return_items],
        'return_handling_method': method,
    }
    if method == RETURN_REFUND:
        fields['return_refund_account'] = refund_account_id
    return fields


@dataclass(frozen=True)
class PurchaseOnly:
    """Invoice with purchase lines and no returns"""
    items: tuple
    totals: Totals
    advance_used: Decimal
    cash_payment: Decimal
    status: str
    payment_account_id: Optional[object] = None

    kind = 'purchase'

    def to_payload(self, header=None):
        payload = dict(header or {})
        payload['total_amount'] = str(self.totals.net_total)
        payload['products'] = [item.to_payload() for item in self.items]
        payload.update(_payment_fields(self.advance_used, self.cash_payment, self.payment_account_id, self.status))
        return payload


@dataclass(frozen=True)
class ReturnOnly:
    """Invoice carrying only returns; never takes a payment or advance"""
    return_items: tuple
    totals: Totals
    return_method: str
    refund_account_id: Optional[object] = None

    kind = 'return'

    def to_payload(self, header=None):
        payload = dict(header or {})
        payload['total_amount'] = str(self.totals.net_total)
        payload['products'] = []
        payload['payment_status'] = STATUS_UNPAID
        payload['use_advance_balance'] = False
        payload.update(_return_fields(self.return_items, self.return_method, self.refund_account_id))
        return payload


@dataclass(frozen=True)
class Mixed:
    """Invoice with both purchase lines and returns"""
    items: tuple
    return_items: tuple
    totals: Totals
    advance_used: Decimal
    cash_payment: Decimal
    status: str
    return_method: str
    payment_account_id: Optional[object] = None
    refund_account_id: Optional[object] = None

    kind = 'mixed'

    def to_payload(self, header=None):
        payload = dict(header or {})
        payload['total_amount'] = str(self.totals.net_total)
        payload['products'] = [item.to_payload() for item in self.items]
        payload.update(_payment_fields(self.advance_used, self.cash_payment, self.payment_account_id, self.status))
        payload.update(_return_fields(self.return_items, self.return_method, self.refund_account_id))
        return payload


Settlement = Union[PurchaseOnly, ReturnOnly, Mixed]


def build_settlement(state: SettlementState, epsilon=DEFAULT_CASH_CLEAR_EPSILON) -> Settlement:
    """
    Finalize a settlement for submission.

    Only valid lines are carried over. Raises SettlementError when any rule
    is violated, nothing is corrected silently.
    """
    items = tuple(state.valid_line_items())
    return_items = tuple(state.valid_return_items())
    clean = replace(state, line_items=list(items), return_items=list(return_items))
    result = compute_settlement(clean, epsilon)
    errors = quantity_errors(state.line_items, state.return_items) + list(result.errors)
    if errors:
        raise SettlementError(errors[0], errors)

    if items and not return_items:
        return PurchaseOnly(
            items=items,
            totals=result.totals,
            advance_used=result.advance_used,
            cash_payment=result.cash_payment,
            status=result.status,
            payment_account_id=state.payment_account_id if result.cash_payment > 0 else None,
        )
    if return_items and not items:
        return ReturnOnly(
            return_items=return_items,
            totals=result.totals,
            return_method=state.return_method,
            refund_account_id=state.refund_account_id if state.return_method == RETURN_REFUND else None,
        )
    return Mixed(
        items=items,
        return_items=return_items,
        totals=result.totals,
        advance_used=result.advance_used,
        cash_payment=result.cash_payment,
        status=result.status,
        return_method=state.return_method,
        payment_account_id=state.payment_account_id if result.cash_payment > 0 else None,
        refund_account_id=state.refund_account_id if state.return_method == RETURN_REFUND else None,
    )
