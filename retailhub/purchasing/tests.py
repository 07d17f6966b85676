"""
Test suite for the purchasing module
Tests: settlement computation, invoice creation with advance/payment/returns,
soft delete and restore, list filters and the settlement preview
"""
from django.test import SimpleTestCase, TestCase
from rest_framework import status
from decimal import Decimal
from django.utils import timezone
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.accounting.balances import calculate_supplier_balance
from retailhub.accounting.models import Account, Payment
from retailhub.catalog.models import Product, ProductVariant
from retailhub.parties.models import Supplier
from retailhub.purchasing.models import PurchaseInvoice
from retailhub.purchasing.settlement import (
    LineItem, Mixed, PurchaseOnly, ReturnItem, ReturnOnly, SettlementError, SettlementState,
    allocate_advance, build_settlement, compute_settlement, compute_totals, resolve_status,
    should_clear_cash, submission_errors, to_decimal, validate_return_handling, validate_submission,
)


def line(name='Lawn Suit', quantity=1, price=0, **kwargs):
    return LineItem(name=name, quantity=quantity, unit_price=price, **kwargs)


def ret(name='Lawn Suit', quantity=1, price=0, **kwargs):
    return ReturnItem(name=name, quantity=quantity, unit_price=price, **kwargs)


class SettlementTotalsTests(SimpleTestCase):
    """Line aggregation and advance allocation"""

    def test_purchase_total_sums_purchase_lines_only(self):
        """Test purchase total is the sum of qty x price over purchase lines"""
        totals = compute_totals(
            [line(quantity=2, price='250'), line('Chiffon', quantity=3, price='99.50')],
            [ret(quantity=1, price='1000')],
        )
        self.assertEqual(totals.purchase_total, Decimal('798.50'))
        self.assertEqual(totals.return_total, Decimal('1000.00'))

    def test_net_total_can_be_negative(self):
        """Test net total is purchase minus return even below zero"""
        totals = compute_totals([], [ret(quantity=4, price='100')])
        self.assertEqual(totals.net_total, Decimal('-400.00'))
        self.assertEqual(totals.amount_due, Decimal('0.00'))
        self.assertTrue(totals.is_return_only)

    def test_non_numeric_input_counts_as_zero(self):
        """Test blank or garbage quantity/price does not break aggregation"""
        totals = compute_totals([line(quantity='', price='abc'), line(quantity='2', price=None)])
        self.assertEqual(totals.purchase_total, Decimal('0.00'))
        self.assertEqual(to_decimal('  12.5 '), Decimal('12.5'))
        self.assertEqual(to_decimal('NaN'), Decimal('0.00'))

    def test_totals_are_idempotent(self):
        """Test recomputing on unchanged input gives identical output"""
        items = [line(quantity=3, price='33.33')]
        returns = [ret(quantity=1, price='10')]
        self.assertEqual(compute_totals(items, returns), compute_totals(items, returns))

    def test_allocate_advance(self):
        """Test advance used is min(available, max(net, 0)) for every pair"""
        cases = [
            ('500', '0', '0.00'),
            ('500', '200', '200.00'),
            ('700', '800', '700.00'),
            ('0', '800', '0.00'),
            ('-400', '800', '0.00'),
            ('-400', '0', '0.00'),
        ]
        for net, available, expected in cases:
            with self.subTest(net=net, available=available):
                self.assertEqual(allocate_advance(Decimal(net), Decimal(available)), Decimal(expected))

    def test_should_clear_cash(self):
        """Test cash is cleared only when advance covers a positive net and cash is above epsilon"""
        self.assertTrue(should_clear_cash(Decimal('700'), Decimal('700'), Decimal('100')))
        self.assertFalse(should_clear_cash(Decimal('700'), Decimal('700'), Decimal('0.01')))
        self.assertFalse(should_clear_cash(Decimal('700'), Decimal('500'), Decimal('100')))
        self.assertFalse(should_clear_cash(Decimal('-400'), Decimal('0'), Decimal('100')))
        self.assertFalse(should_clear_cash(Decimal('700'), Decimal('700'), Decimal('5'), epsilon=Decimal('10')))


class PaymentStatusTests(SimpleTestCase):
    """Status resolution and submission checks"""

    def test_status_invariant(self):
        """Test paid and partial always agree with total payment vs net total"""
        for net in ('1', '100', '999.99'):
            for advance in ('0', '0.5', '50', '100'):
                for cash in ('0', '0.5', '49.5', '1000'):
                    net_total = Decimal(net)
                    advance_used = allocate_advance(net_total, Decimal(advance))
                    status_value = resolve_status(net_total, advance_used, Decimal(cash))
                    total = advance_used + Decimal(cash)
                    if status_value == 'paid':
                        self.assertGreaterEqual(total, net_total)
                    elif status_value == 'partial':
                        self.assertTrue(0 < total < net_total)
                    else:
                        self.assertEqual(total, 0)

    def test_scenario_purchase_only(self):
        """Test 2 x 250 without advance resolves paid, partial and unpaid by cash"""
        state = SettlementState(line_items=[line(quantity=2, price='250')], payment_account_id=1)
        result = compute_settlement(state)
        self.assertEqual(result.totals.net_total, Decimal('500.00'))
        self.assertEqual(result.advance_used, Decimal('0.00'))

        for cash, expected in (('500', 'paid'), ('200', 'partial'), ('0', 'unpaid')):
            with self.subTest(cash=cash):
                state.cash_payment = cash
                self.assertEqual(compute_settlement(state).status, expected)

    def test_scenario_advance_covers_net(self):
        """Test advance capped at net total clears the entered cash and marks paid"""
        state = SettlementState(
            line_items=[line(quantity=1, price='1000')],
            return_items=[ret(quantity=1, price='300')],
            available_advance=Decimal('800'),
            cash_payment=Decimal('150'),
            payment_account_id=1,
            return_method='REDUCE_AP',
        )
        result = compute_settlement(state)
        self.assertEqual(result.totals.net_total, Decimal('700.00'))
        self.assertEqual(result.advance_used, Decimal('700.00'))
        self.assertTrue(result.cash_cleared)
        self.assertEqual(result.cash_payment, Decimal('0.00'))
        self.assertEqual(result.status, 'paid')
        self.assertTrue(result.is_valid)

    def test_scenario_return_only(self):
        """Test return-only invoice forces unpaid, no advance and rejects cash"""
        state = SettlementState(
            return_items=[ret(quantity=1, price='400')],
            available_advance=Decimal('1000'),
            return_method='REDUCE_AP',
        )
        result = compute_settlement(state)
        self.assertEqual(result.totals.net_total, Decimal('-400.00'))
        self.assertEqual(result.advance_used, Decimal('0.00'))
        self.assertEqual(result.status, 'unpaid')
        self.assertTrue(result.is_valid)

        state.cash_payment = '50'
        state.payment_account_id = 1
        result = compute_settlement(state)
        self.assertEqual(result.cash_payment, Decimal('0.00'))
        self.assertFalse(result.is_valid)
        with self.assertRaises(SettlementError):
            validate_submission(result.totals.net_total, result.advance_used, Decimal('50'), None, 1)

    def test_submission_errors(self):
        """Test every payment contradiction produces a message"""
        self.assertIn('exceeds invoice total', submission_errors(Decimal('500'), 0, Decimal('600'), None, 1)[0])
        self.assertIn('Need Rs. 300.00 more', submission_errors(Decimal('500'), 0, Decimal('200'), 'paid', 1)[0])
        self.assertIn('no payment entered', submission_errors(Decimal('500'), 0, 0, 'partial')[0])
        self.assertIn('should be "Fully Paid"', submission_errors(Decimal('500'), 0, Decimal('500'), 'partial', 1)[0])
        self.assertIn('payment account', submission_errors(Decimal('500'), 0, Decimal('100'))[0])
        self.assertEqual(submission_errors(Decimal('500'), Decimal('200'), Decimal('300'), 'paid', 1), [])
        self.assertEqual(submission_errors(Decimal('500'), 0, 0), [])

    def test_unpaid_with_payment_rejected(self):
        """Test unpaid is rejected once cash or advance pays something"""
        errors = submission_errors(Decimal('500'), 0, Decimal('200'), 'unpaid', 1)
        self.assertEqual(errors, [
            'Payment status is "Unpaid" but total payment is Rs. 200.00. Payment status should be "Partially Paid"'
        ])
        errors = submission_errors(Decimal('500'), Decimal('500'), 0, 'unpaid')
        self.assertIn('should be "Fully Paid"', errors[0])
        self.assertEqual(submission_errors(Decimal('500'), 0, 0, 'unpaid'), [])

    def test_paid_with_nothing_payable_rejected(self):
        self.assertIn('should be "Unpaid"', submission_errors(Decimal('0'), 0, 0, 'paid')[0])

    def test_accepted_status_matches_resolved(self):
        """Test any status that passes the checks equals the resolved one"""
        for net in ('0', '100', '500'):
            for total in ('0', '50', '100', '500'):
                for requested in ('unpaid', 'partial', 'paid'):
                    if not submission_errors(Decimal(net), Decimal(total), 0, requested):
                        self.assertEqual(resolve_status(Decimal(net), Decimal(total), 0), requested)


class ReturnHandlingTests(SimpleTestCase):
    """Return handling method and totals"""

    def test_return_total_above_purchase_total(self):
        """Test returns above purchases are rejected when purchase lines exist"""
        with self.assertRaisesMessage(SettlementError, 'Return total cannot exceed purchase total'):
            validate_return_handling([line(price='500')], [ret(price='600')], 'REDUCE_AP', None)

    def test_pure_return_is_exempt(self):
        """Test the same return with no purchase lines is accepted"""
        validate_return_handling([], [ret(price='600')], 'REDUCE_AP', None)
        validate_return_handling([line(name='', price='500')], [ret(price='600')], 'REDUCE_AP', None)

    def test_method_required(self):
        """Test a valid return needs a handling method"""
        with self.assertRaisesMessage(SettlementError, 'return handling method'):
            validate_return_handling([], [ret(price='100')], None, None)
        with self.assertRaises(SettlementError):
            validate_return_handling([], [ret(price='100')], 'CREDIT_NOTE', None)

    def test_refund_needs_account(self):
        """Test REFUND requires a refund account while REDUCE_AP does not"""
        with self.assertRaisesMessage(SettlementError, 'refund account'):
            validate_return_handling([], [ret(price='100')], 'REFUND', '')
        validate_return_handling([], [ret(price='100')], 'REFUND', 5)
        validate_return_handling([], [ret(price='100')], 'REDUCE_AP', '')

    def test_invalid_returns_ignore_method(self):
        """Test blank return lines do not require a method"""
        validate_return_handling([line(price='100')], [ret(name='', price='50')], None, None)


class BuildSettlementTests(SimpleTestCase):
    """Tagged settlement variants and their payloads"""

    def test_purchase_only_payload(self):
        """Test purchase-only payload carries payment fields and no return fields"""
        state = SettlementState(
            line_items=[line(quantity=2, price='250'), line(name='', quantity=1, price='10')],
            cash_payment='200',
            payment_account_id=3,
        )
        settlement = build_settlement(state)
        self.assertIsInstance(settlement, PurchaseOnly)
        payload = settlement.to_payload({'supplier_name': 'Gul Ahmed'})
        self.assertEqual(payload['supplier_name'], 'Gul Ahmed')
        self.assertEqual(payload['total_amount'], '500.00')
        self.assertEqual(len(payload['products']), 1)
        self.assertEqual(payload['payment_amount'], '200.00')
        self.assertEqual(payload['payment_account'], 3)
        self.assertEqual(payload['payment_status'], 'partial')
        self.assertFalse(payload['use_advance_balance'])
        self.assertNotIn('return_items', payload)
        self.assertNotIn('advance_amount_used', payload)

    def test_return_only_payload(self):
        """Test return-only payload never carries payment or advance"""
        state = SettlementState(
            return_items=[ret(quantity=2, price='200', reason='Damaged')],
            available_advance=Decimal('500'),
            return_method='REFUND',
            refund_account_id=7,
        )
        settlement = build_settlement(state)
        self.assertIsInstance(settlement, ReturnOnly)
        payload = settlement.to_payload()
        self.assertEqual(payload['total_amount'], '-400.00')
        self.assertEqual(payload['products'], [])
        self.assertEqual(payload['payment_status'], 'unpaid')
        self.assertNotIn('payment_amount', payload)
        self.assertEqual(payload['return_refund_account'], 7)
        self.assertEqual(payload['return_items'][0]['reason'], 'Damaged')

    def test_mixed_payload_with_advance(self):
        """Test mixed settlement uses advance and omits the refund account for REDUCE_AP"""
        state = SettlementState(
            line_items=[line(quantity=1, price='1000')],
            return_items=[ret(quantity=1, price='300')],
            available_advance=Decimal('200'),
            cash_payment='500',
            payment_account_id=1,
            return_method='REDUCE_AP',
            refund_account_id=9,
        )
        settlement = build_settlement(state)
        self.assertIsInstance(settlement, Mixed)
        payload = settlement.to_payload()
        self.assertEqual(payload['advance_amount_used'], '200.00')
        self.assertTrue(payload['use_advance_balance'])
        self.assertEqual(payload['payment_status'], 'paid')
        self.assertEqual(payload['return_handling_method'], 'REDUCE_AP')
        self.assertNotIn('return_refund_account', payload)

    def test_requires_a_valid_line(self):
        """Test a form with only blank lines is rejected"""
        with self.assertRaisesMessage(SettlementError, 'at least one valid product or return item'):
            build_settlement(SettlementState(line_items=[line(name='', price='100')]))

    def test_blocks_instead_of_correcting(self):
        """Test overpayment raises rather than being trimmed"""
        state = SettlementState(line_items=[line(price='100')], cash_payment='150', payment_account_id=1)
        with self.assertRaises(SettlementError) as ctx:
            build_settlement(state)
        self.assertIn('exceeds invoice total', ctx.exception.message)

    def test_fractional_quantity_is_invalid(self):
        """Test a fractional or below-one quantity makes a line invalid and blocks submission"""
        self.assertFalse(LineItem(name='Lawn', quantity='2.5', unit_price='100').is_valid())
        self.assertFalse(LineItem(name='Lawn', quantity='0.5', unit_price='100').is_valid())
        self.assertTrue(LineItem(name='Lawn', quantity='2.0', unit_price='100').is_valid())

        state = SettlementState(line_items=[line('Lawn', quantity='2.5', price='100'), line('Silk', price='100')])
        with self.assertRaises(SettlementError) as ctx:
            build_settlement(state)
        self.assertEqual(ctx.exception.message, 'Quantity for "Lawn" must be a whole number of at least 1')
        self.assertIn('Quantity for "Lawn" must be a whole number of at least 1', compute_settlement(state).errors)

    def test_blank_quantity_does_not_block(self):
        state = SettlementState(line_items=[line('Lawn', quantity='', price='100'), line('Silk', price='100')])
        self.assertEqual(build_settlement(state).totals.net_total, Decimal('100.00'))

    def test_shown_totals_match_submitted_totals(self):
        """Test lines left out of the payload are left out of the shown totals too"""
        state = SettlementState(
            line_items=[line(quantity=2, price='250'), line(name='', quantity=1, price='10'),
                        line('Chiffon', quantity=1, price='-40')],
            return_items=[ret(name='', quantity=1, price='100')],
        )
        result = compute_settlement(state)
        self.assertEqual(result.totals.net_total, Decimal('500.00'))
        self.assertEqual(build_settlement(state).totals, result.totals)

    def test_status_follows_payment(self):
        """Test the submitted status is the resolved one"""
        state = SettlementState(line_items=[line(price='500')], cash_payment='200', payment_account_id=1,
                                requested_status='unpaid')
        with self.assertRaisesMessage(SettlementError, 'Payment status should be "Partially Paid"'):
            build_settlement(state)
        state.requested_status = 'partial'
        self.assertEqual(build_settlement(state).status, 'partial')


class PurchaseInvoiceAPITests(TestCase):
    """Test purchase invoice endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant(business_code='GULA')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cash = TestDataFactory.get_account(self.tenant, 'CASH')
        self.bank = TestDataFactory.get_account(self.tenant, 'BANK')
        self.product = TestDataFactory.create_product(self.tenant, name='Lawn Suit', quantity=10)

    def _create(self, data):
        return self.client.post('/api/v1/purchase-invoices/with-products/', data, format='json')

    def _purchase_body(self, **overrides):
        data = {
            'supplier_name': 'Gul Ahmed',
            'invoice_date': timezone.now().date().isoformat(),
            'total_amount': '500.00',
            'products': [
                {'name': 'Lawn Suit', 'quantity': 2, 'purchase_price': '250.00', 'product': self.product.id},
            ],
        }
        data.update(overrides)
        return data

    def test_create_purchase_with_cash_payment(self):
        """Test a paid purchase creates items, stock, a payment and debits cash"""
        self.cash.balance = Decimal('1000.00')
        self.cash.save()
        response = self._create(self._purchase_body(
            payment_amount='500.00', payment_account=self.cash.id, payment_status='paid',
        ))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invoice = response.data['invoice']
        self.assertTrue(invoice['invoice_number'].startswith('GULA-'))
        self.assertEqual(invoice['payment_status'], 'paid')
        self.assertEqual(len(response.data['items']), 1)

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 12)
        self.assertEqual(self.product.last_purchase_price, Decimal('250.00'))
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal('500.00'))
        payment = Payment.objects.get(purchase_invoice_id=invoice['id'])
        self.assertEqual(payment.type, 'SUPPLIER_PAYMENT')
        self.assertEqual(payment.amount, Decimal('500.00'))
        self.assertTrue(Supplier.objects.filter(tenant=self.tenant, name='Gul Ahmed').exists())

    def test_create_links_existing_supplier_case_insensitively(self):
        """Test supplier name match ignores case"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        response = self._create(self._purchase_body(supplier_name='gul ahmed'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice']['supplier'], supplier.id)
        self.assertEqual(Supplier.objects.filter(tenant=self.tenant).count(), 1)

    def test_duplicate_invoice_number(self):
        """Test a used invoice number is rejected"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, invoice_number='INV-1')
        response = self._create(self._purchase_body(invoice_number='INV-1'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Invoice number already exists', str(response.data['invoice_number']))

    def test_total_amount_must_match_lines(self):
        """Test a client total that disagrees with the lines is rejected"""
        response = self._create(self._purchase_body(total_amount='450.00'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('does not match line items', str(response.data['non_field_errors'][0]))

    def test_overpayment_rejected(self):
        """Test cash above the net total is rejected"""
        response = self._create(self._purchase_body(payment_amount='600.00', payment_account=self.cash.id))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('exceeds invoice total', str(response.data['non_field_errors'][0]))
        self.assertFalse(PurchaseInvoice.objects.exists())

    def test_cash_without_account_rejected(self):
        """Test a cash payment needs a payment account"""
        response = self._create(self._purchase_body(payment_amount='100.00'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_advance_balance_applied(self):
        """Test supplier advance is consumed before cash"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('800.00'))

        response = self._create(self._purchase_body(use_advance_balance=True, advance_amount_used='500.00'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invoice = response.data['invoice']
        self.assertEqual(Decimal(invoice['advance_amount_used']), Decimal('500.00'))
        self.assertEqual(invoice['payment_status'], 'paid')
        self.assertEqual(calculate_supplier_balance(supplier)['available_advance'], Decimal('300.00'))

    def test_claimed_advance_above_available_rejected(self):
        """Test the client cannot claim more advance than the supplier has"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('100.00'))
        response = self._create(self._purchase_body(use_advance_balance=True, advance_amount_used='300.00'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unpaid_status_with_cash_rejected(self):
        """Test an invoice cannot be saved unpaid while cash was paid against it"""
        response = self._create(self._purchase_body(
            payment_amount='200.00', payment_account=self.cash.id, payment_status='unpaid',
        ))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Payment status should be "Partially Paid"', str(response.data['non_field_errors'][0]))
        self.assertFalse(PurchaseInvoice.objects.exists())
        self.assertFalse(Payment.objects.exists())

    def test_unpaid_status_with_advance_rejected(self):
        """Test an invoice cannot be saved unpaid while the advance covers it"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('800.00'))
        response = self._create(self._purchase_body(
            use_advance_balance=True, advance_amount_used='500.00', payment_status='unpaid',
        ))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Payment status should be "Fully Paid"', str(response.data['non_field_errors'][0]))
        self.assertFalse(PurchaseInvoice.objects.exists())
        self.assertEqual(calculate_supplier_balance(supplier)['available_advance'], Decimal('800.00'))

    def test_partial_cash_saved_as_partial(self):
        self.cash.balance = Decimal('1000.00')
        self.cash.save()
        response = self._create(self._purchase_body(payment_amount='200.00', payment_account=self.cash.id))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['invoice']['payment_status'], 'partial')

    def test_return_only_refund(self):
        """Test a return-only REFUND invoice stores a negative total, removes stock and credits the refund account"""
        response = self._create({
            'supplier_name': 'Gul Ahmed',
            'total_amount': '-400.00',
            'return_items': [
                {'name': 'Lawn Suit', 'quantity': 4, 'purchase_price': '100.00', 'product': self.product.id,
                 'reason': 'Damaged'},
            ],
            'return_handling_method': 'REFUND',
            'return_refund_account': self.bank.id,
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        invoice = PurchaseInvoice.objects.get(pk=response.data['invoice']['id'])
        self.assertEqual(invoice.total_amount, Decimal('-400.00'))
        self.assertEqual(invoice.payment_status, 'unpaid')
        self.assertEqual(invoice.returns.get().items.count(), 1)

        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 6)
        self.bank.refresh_from_db()
        self.assertEqual(self.bank.balance, Decimal('400.00'))
        self.assertTrue(Payment.objects.filter(purchase_invoice=invoice, type='SUPPLIER_REFUND').exists())

    def test_return_only_with_cash_rejected(self):
        """Test cash on a return-only invoice is a validation error"""
        response = self._create({
            'supplier_name': 'Gul Ahmed',
            'return_items': [{'name': 'Lawn Suit', 'quantity': 1, 'purchase_price': '400.00'}],
            'return_handling_method': 'REDUCE_AP',
            'payment_amount': '50.00',
            'payment_account': self.cash.id,
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mixed_return_above_purchase_rejected(self):
        """Test returns above purchases on a mixed invoice are rejected"""
        response = self._create({
            'supplier_name': 'Gul Ahmed',
            'products': [{'name': 'Lawn Suit', 'quantity': 1, 'purchase_price': '500.00'}],
            'return_items': [{'name': 'Chiffon', 'quantity': 1, 'purchase_price': '600.00'}],
            'return_handling_method': 'REDUCE_AP',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Return total cannot exceed purchase total', str(response.data['non_field_errors'][0]))

    def test_returns_need_handling_method(self):
        """Test a return without handling method is rejected"""
        response = self._create({
            'supplier_name': 'Gul Ahmed',
            'return_items': [{'name': 'Lawn Suit', 'quantity': 1, 'purchase_price': '100.00'}],
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variant_stock(self):
        """Test purchase of a variant line increases variant stock"""
        variant = TestDataFactory.create_variant(self.product, color='Red', size='M')
        response = self._create(self._purchase_body(products=[
            {'name': 'Lawn Suit', 'quantity': 2, 'purchase_price': '250.00', 'product': self.product.id,
             'variant': variant.id, 'color': 'Red', 'size': 'M'},
        ]))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        variant.refresh_from_db()
        self.assertEqual(variant.current_quantity, 2)

    def test_foreign_product_rejected(self):
        """Test lines cannot point at another tenant's product"""
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        other_product = TestDataFactory.create_product(other_tenant)
        response = self._create(self._purchase_body(products=[
            {'name': 'Lawn Suit', 'quantity': 2, 'purchase_price': '250.00', 'product': other_product.id},
        ]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stock_keeper_forbidden(self):
        """Test stock keepers cannot create purchase invoices"""
        keeper = TestDataFactory.create_user(role='STOCK_KEEPER', tenant=self.tenant)
        client = AuthenticatedAPIClient().authenticate_user(keeper)
        response = client.post('/api/v1/purchase-invoices/with-products/', self._purchase_body(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_soft_delete_and_restore(self):
        """Test delete reverses stock and cash; restore re-applies them"""
        self.cash.balance = Decimal('1000.00')
        self.cash.save()
        response = self._create(self._purchase_body(payment_amount='200.00', payment_account=self.cash.id))
        invoice_id = response.data['invoice']['id']
        supplier = Supplier.objects.get(tenant=self.tenant, name='Gul Ahmed')

        response = self.client.delete(f'/api/v1/purchase-invoices/{invoice_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.cash.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 10)
        self.assertEqual(self.cash.balance, Decimal('1000.00'))
        self.assertEqual(calculate_supplier_balance(supplier)['balance'], Decimal('0.00'))

        list_response = self.client.get('/api/v1/purchase-invoices/')
        self.assertEqual(list_response.data['count'], 0)
        list_response = self.client.get('/api/v1/purchase-invoices/', {'include_deleted': 'true'})
        self.assertEqual(list_response.data['count'], 1)

        response = self.client.post(f'/api/v1/purchase-invoices/{invoice_id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.cash.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 12)
        self.assertEqual(self.cash.balance, Decimal('800.00'))
        self.assertEqual(calculate_supplier_balance(supplier)['balance'], Decimal('300.00'))

    def test_restore_number_conflict(self):
        """Test restore fails when the invoice number was reused"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        deleted = TestDataFactory.create_purchase_invoice(self.tenant, supplier, invoice_number='INV-9')
        deleted.is_deleted = True
        deleted.save()
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, invoice_number='INV-9')
        response = self.client.post(f'/api/v1/purchase-invoices/{deleted.id}/restore/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_header(self):
        """Test header update checks invoice number uniqueness"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        first = TestDataFactory.create_purchase_invoice(self.tenant, supplier, invoice_number='INV-1')
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, invoice_number='INV-2')

        response = self.client.put(f'/api/v1/purchase-invoices/{first.id}/', {'invoice_number': 'INV-2'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.put(f'/api/v1/purchase-invoices/{first.id}/', {'notes': 'Checked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['invoice']['notes'], 'Checked')

    def test_list_filters_and_pagination(self):
        """Test supplier and status filters with page/limit"""
        gul = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        khaadi = TestDataFactory.create_supplier(self.tenant, name='Khaadi')
        for _ in range(3):
            TestDataFactory.create_purchase_invoice(self.tenant, gul)
        TestDataFactory.create_purchase_invoice(self.tenant, khaadi, payment_status='paid')

        response = self.client.get('/api/v1/purchase-invoices/', {'supplier': 'gul', 'limit': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['total_pages'], 2)
        response = self.client.get('/api/v1/purchase-invoices/', {'supplier': khaadi.id})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/purchase-invoices/', {'payment_status': 'paid'})
        self.assertEqual(response.data['count'], 1)

    def test_detail_other_tenant_not_found(self):
        """Test invoices of another tenant are hidden"""
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        supplier = TestDataFactory.create_supplier(other_tenant)
        invoice = TestDataFactory.create_purchase_invoice(other_tenant, supplier)
        response = self.client.get(f'/api/v1/purchase-invoices/{invoice.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_settlement_preview(self):
        """Test preview reports advance, cleared cash and errors without saving"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('800.00'))
        response = self.client.post('/api/v1/purchase-invoices/settlement-preview/', {
            'supplier_name': 'Gul Ahmed',
            'use_advance_balance': True,
            'products': [{'name': 'Lawn Suit', 'quantity': 1, 'purchase_price': '1000'}],
            'return_items': [{'name': 'Chiffon', 'quantity': 1, 'purchase_price': '300'}],
            'return_handling_method': 'REDUCE_AP',
            'payment_amount': '100',
            'payment_account': self.cash.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['net_total'], '700.00')
        self.assertEqual(response.data['advance_used'], '700.00')
        self.assertTrue(response.data['cash_cleared'])
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertTrue(response.data['is_valid'])
        self.assertFalse(PurchaseInvoice.objects.exists())


class PurchaseCatalogTests(TestCase):
    """Catalog rows are only linked, never created, by the invoice endpoint"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_unlinked_line_keeps_details(self):
        """Test a line without product keeps its typed details"""
        response = self.client.post('/api/v1/purchase-invoices/with-products/', {
            'supplier_name': 'Sapphire',
            'products': [{'name': 'Khaddar Shawl', 'quantity': 3, 'purchase_price': '120', 'sku': 'KS-1',
                          'category': 'Shawls'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        item = response.data['items'][0]
        self.assertIsNone(item['product'])
        self.assertEqual(item['category'], 'Shawls')
        self.assertEqual(item['line_total'], '360.00')
        self.assertFalse(Product.objects.filter(tenant=self.tenant).exists())
        self.assertFalse(ProductVariant.objects.exists())
        self.assertEqual(Account.objects.filter(tenant=self.tenant).count(), 6)
