"""
Purchase invoice intake form.

Holds the in-memory form state, recomputes the settlement after every edit
and, on submit, resolves catalog products and variants before handing the
finalized payload to the invoice endpoint.

Submission gate: EDITING -> VALIDATING -> BLOCKED | SUBMITTED. A blocked
form goes back to EDITING on the next edit; a submitted form is closed.
"""
import dataclasses
import logging
import threading

from retailhub.purchasing.settlement import (
    DEFAULT_CASH_CLEAR_EPSILON, ZERO, LineItem, ReturnItem, SettlementError, SettlementState,
    build_settlement, compute_settlement, to_decimal,
)
from .exceptions import (
    CollaboratorError, IntakeClosed, ProductResolutionRequired, SubmissionBlocked, SubmissionFailed,
)
from .lookup import DEFAULT_DELAY, DebouncedLookup, RequestTracker

logger = logging.getLogger(__name__)

EDITING = 'editing'
VALIDATING = 'validating'
BLOCKED = 'blocked'
SUBMITTED = 'submitted'

POLICY_CREATE = 'create'
POLICY_PROMPT = 'prompt'
MISSING_PRODUCT_POLICIES = (POLICY_CREATE, POLICY_PROMPT)

HEADER_FIELDS = ('invoice_number', 'invoice_date', 'notes')
LINE_FIELDS = {f.name for f in dataclasses.fields(ReturnItem)}


def normalize_name(name):
    return ' '.join((name or '').split()).lower()


def _same(a, b):
    return normalize_name(a) == normalize_name(b)


class PurchaseIntake:
    def __init__(self, client, cash_epsilon=DEFAULT_CASH_CLEAR_EPSILON, missing_product_policy=POLICY_CREATE,
                 debounce_delay=DEFAULT_DELAY, timer_factory=threading.Timer):
        if missing_product_policy not in MISSING_PRODUCT_POLICIES:
            raise ValueError(f'Unknown missing product policy "{missing_product_policy}"')
        self.client = client
        self.cash_epsilon = to_decimal(cash_epsilon)
        self.missing_product_policy = missing_product_policy
        self.debounce_delay = debounce_delay
        self.timer_factory = timer_factory

        self.header = {'invoice_number': '', 'supplier_name': '', 'invoice_date': None, 'notes': ''}
        self.state = SettlementState()
        self.supplier_advance = ZERO
        self.use_advance = True
        self.notices = []
        self.status = EDITING
        self.block_reason = None
        self.invoice = None
        self.items = []

        self.tracker = RequestTracker()
        self.supplier_lookup = DebouncedLookup(
            client.search_suppliers, delay=debounce_delay, on_error=self._notice,
            timer_factory=timer_factory, tracker=self.tracker, field='supplier',
        )
        self._product_lookups = {}
        self._products = {}
        self.result = compute_settlement(self.state, self.cash_epsilon)

    # State

    @property
    def totals(self):
        return self.result.totals

    @property
    def errors(self):
        return list(self.result.errors)

    def _notice(self, message):
        self.notices.append(message)

    def _ensure_open(self):
        if self.status == SUBMITTED:
            raise IntakeClosed('Invoice already submitted')

    def _edited(self):
        self._ensure_open()
        if self.status == BLOCKED:
            self.status = EDITING
            self.block_reason = None
        self._recompute()

    def _recompute(self):
        self.state.available_advance = self.supplier_advance if self.use_advance else ZERO
        result = compute_settlement(self.state, self.cash_epsilon)
        if result.cash_cleared:
            self.state.cash_payment = ZERO
            self._notice('Advance balance covers the invoice, cash payment cleared')
            result = compute_settlement(self.state, self.cash_epsilon)
        self.result = result
        return result

    # Header and supplier

    def set_header(self, **fields):
        self._ensure_open()
        for key, value in fields.items():
            if key not in HEADER_FIELDS:
                raise ValueError(f'Unknown header field "{key}"')
            self.header[key] = value
        self._edited()

    def select_supplier(self, name):
        """Set the supplier and load its advance balance. A failed lookup counts as no advance."""
        self._ensure_open()
        name = (name or '').strip()
        self.header['supplier_name'] = name
        self.supplier_lookup.cancel()
        self.supplier_advance = ZERO
        if name:
            try:
                balance = self.client.supplier_balance_by_name(name)
                self.supplier_advance = to_decimal(balance.get('available_advance'))
            except CollaboratorError as e:
                if e.is_not_found:
                    logger.info(f"Supplier '{name}' not found, it will be created with the invoice")
                else:
                    logger.warning(f"Could not load balance for supplier '{name}': {e}")
                    self._notice(f'Could not load supplier balance: {e.message}')
        self._edited()

    def set_use_advance(self, use_advance):
        self._ensure_open()
        self.use_advance = bool(use_advance)
        self._edited()

    # Lines

    def _lines(self, returns):
        return self.state.return_items if returns else self.state.line_items

    def _set_fields(self, line, fields):
        self._ensure_open()
        unknown = set(fields) - LINE_FIELDS
        if unknown or ('reason' in fields and not isinstance(line, ReturnItem)):
            raise ValueError(f"Unknown line fields: {', '.join(sorted(unknown or {'reason'}))}")
        if 'name' in fields and not _same(fields['name'], line.name):
            # a retyped name no longer points at the selected product
            fields.setdefault('product_id', None)
            fields.setdefault('variant_id', None)
        for key, value in fields.items():
            setattr(line, key, value)

    def _add(self, returns, fields):
        line = ReturnItem() if returns else LineItem()
        self._set_fields(line, fields)
        lines = self._lines(returns)
        lines.append(line)
        self._edited()
        return len(lines) - 1

    def _update(self, returns, index, fields):
        self._set_fields(self._lines(returns)[index], fields)
        self._edited()

    def _remove(self, returns, index):
        self._ensure_open()
        line = self._lines(returns).pop(index)
        lookup = self._product_lookups.pop(id(line), None)
        if lookup:
            lookup.cancel()
        self._edited()

    def add_item(self, **fields):
        return self._add(False, fields)

    def update_item(self, index, **fields):
        self._update(False, index, fields)

    def remove_item(self, index):
        self._remove(False, index)

    def add_return_item(self, **fields):
        return self._add(True, fields)

    def update_return_item(self, index, **fields):
        self._update(True, index, fields)

    def remove_return_item(self, index):
        self._remove(True, index)

    def select_product(self, index, product, returns=False):
        """Link a line to a catalog product picked from the lookup results"""
        line = self._lines(returns)[index]
        self._products[product['id']] = product
        fields = {
            'name': product['name'],
            'product_id': product['id'],
            'variant_id': None,
            'sku': product.get('sku'),
            'category': product.get('category'),
        }
        if product.get('last_purchase_price') is not None and not to_decimal(line.unit_price):
            fields['unit_price'] = product['last_purchase_price']
        self._update(returns, index, fields)

    def product_lookup(self, index, returns=False):
        """Debounced catalog search bound to one line"""
        line = self._lines(returns)[index]
        lookup = self._product_lookups.get(id(line))
        if lookup is None:
            lookup = DebouncedLookup(
                self.client.search_products, delay=self.debounce_delay, on_error=self._notice,
                timer_factory=self.timer_factory, tracker=self.tracker, field=f'product:{id(line)}',
            )
            self._product_lookups[id(line)] = lookup
        return lookup

    # Payment and returns

    def set_cash_payment(self, amount):
        self._ensure_open()
        self.state.cash_payment = amount
        self._edited()

    def set_payment_status(self, status):
        self._ensure_open()
        self.state.requested_status = status or None
        self._edited()

    def set_payment_account(self, account_id):
        self._ensure_open()
        self.state.payment_account_id = account_id or None
        self._edited()

    def set_return_handling(self, method, refund_account_id=None):
        self._ensure_open()
        self.state.return_method = method or None
        self.state.refund_account_id = refund_account_id or None
        self._edited()

    # Submission

    def _header_payload(self):
        payload = {'supplier_name': self.header['supplier_name'].strip()}
        if (self.header.get('invoice_number') or '').strip():
            payload['invoice_number'] = self.header['invoice_number'].strip()
        invoice_date = self.header.get('invoice_date')
        if invoice_date:
            payload['invoice_date'] = invoice_date if isinstance(invoice_date, str) else invoice_date.isoformat()
        if (self.header.get('notes') or '').strip():
            payload['notes'] = self.header['notes'].strip()
        return payload

    def _validate(self):
        if not self.header['supplier_name'].strip():
            raise SettlementError('Please enter supplier name')
        return build_settlement(self.state, self.cash_epsilon)

    def _find_product(self, name):
        for product in self.client.search_products(name):
            if _same(product.get('name'), name):
                self._products[product['id']] = product
                return product
        return None

    def _resolve_products(self):
        """Link every valid line to a catalog product, creating purchased products that are missing"""
        groups = {}
        for line in self.state.valid_line_items() + self.state.valid_return_items():
            groups.setdefault(normalize_name(line.name), []).append(line)

        missing = []
        for key, lines in groups.items():
            product_id = next((line.product_id for line in lines if line.product_id), None)
            if product_id is None:
                product = self._find_product(lines[0].name)
                product_id = product['id'] if product else None
            if product_id is None:
                purchased = [line for line in lines if not isinstance(line, ReturnItem)]
                if purchased:
                    missing.append(purchased)
                continue
            for line in lines:
                line.product_id = product_id

        if missing and self.missing_product_policy == POLICY_PROMPT:
            raise ProductResolutionRequired([lines[0].name.strip() for lines in missing])

        for lines in missing:
            first = lines[0]
            product = self.client.create_product(
                name=first.name.strip(),
                sku=first.sku or None,
                category=first.category or None,
                description=first.description or None,
                is_stitched=any((line.size or '').strip() for line in lines),
            )
            logger.info(f"Created product '{product['name']}' ({product['id']}) from purchase intake")
            self._products[product['id']] = product
            for line in lines:
                line.product_id = product['id']
                if not line.sku:
                    line.sku = product.get('sku')

    def _resolve_variants(self):
        """Match color/size lines to existing variants, creating the ones that do not exist"""
        variants = {}
        for line in self.state.valid_line_items() + self.state.valid_return_items():
            color = (line.color or '').strip()
            size = (line.size or '').strip()
            if line.variant_id or not line.product_id or not (color or size):
                continue
            if not color:
                raise SubmissionFailed(f'Color is required for a variant of "{line.name.strip()}"')
            product = self._products.get(line.product_id) or {}
            if product.get('is_stitched') and not size:
                raise SubmissionFailed(f'Size is required for stitched product "{line.name.strip()}"')

            if line.product_id not in variants:
                variants[line.product_id] = self.client.list_variants(line.product_id)
            match = next(
                (v for v in variants[line.product_id]
                 if _same(v.get('color'), color) and _same(v.get('size'), size)),
                None,
            )
            if match is None:
                match = self.client.create_variant(line.product_id, color, size or None)
                variants[line.product_id].append(match)
                logger.info(f"Created variant {match.get('sku')} for product {line.product_id}")
            line.variant_id = match['id']

    def submit(self):
        """
        Validate, resolve catalog rows and create the invoice.

        Raises:
            SubmissionBlocked: the form is inconsistent; nothing was sent
            ProductResolutionRequired: typed products are missing under the prompt policy
            SubmissionFailed: a product, variant or the invoice could not be created
            IntakeClosed: the form was already submitted
        """
        self._ensure_open()
        self.status = VALIDATING
        try:
            self._validate()
        except SettlementError as e:
            self.status = BLOCKED
            self.block_reason = e.message
            logger.info(f"Purchase invoice submission blocked: {e.message}")
            raise SubmissionBlocked(e.message, e.errors) from e

        try:
            self._resolve_products()
            self._resolve_variants()
            payload = build_settlement(self.state, self.cash_epsilon).to_payload(self._header_payload())
            response = self.client.create_purchase_invoice(payload)
        except CollaboratorError as e:
            self.status = EDITING
            logger.error(f"Purchase invoice submission failed: {e}")
            raise SubmissionFailed(e.message) from e
        except (ProductResolutionRequired, SubmissionFailed):
            self.status = EDITING
            raise

        self.status = SUBMITTED
        self.invoice = response.get('invoice')
        self.items = response.get('items', [])
        self.close()
        logger.info(f"Submitted purchase invoice {(self.invoice or {}).get('invoice_number')}")
        return response

    def close(self):
        """Abandon every pending lookup"""
        self.supplier_lookup.cancel()
        for lookup in self._product_lookups.values():
            lookup.cancel()
        self.tracker.invalidate()
