"""
Test suite for the purchase intake client
Tests: debounced lookups, form recompute, submission gate and catalog resolution
"""
from decimal import Decimal
from django.test import SimpleTestCase
import requests
from retailhub.intake.client import RetailHubClient
from retailhub.intake.exceptions import (
    CollaboratorError, IntakeClosed, ProductResolutionRequired, SubmissionBlocked, SubmissionFailed,
)
from retailhub.intake.form import BLOCKED, EDITING, SUBMITTED, POLICY_PROMPT, PurchaseIntake, normalize_name
from retailhub.intake.lookup import DebouncedLookup, RequestTracker


class FakeTimer:
    """Timer that only runs when the test fires it"""

    def __init__(self, delay, function, args=()):
        self.delay = delay
        self.function = function
        self.args = args
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class TimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, delay, function, args=()):
        timer = FakeTimer(delay, function, args)
        self.timers.append(timer)
        return timer


class FakeClient:
    """In-memory stand-in for RetailHubClient"""

    def __init__(self, products=None, variants=None, advance='0.00'):
        self.products = list(products or [])
        self.variants = dict(variants or {})
        self.advance = advance
        self.balance_error = None
        self.create_product_error = None
        self.created_products = []
        self.created_variants = []
        self.submitted = []
        self._next_id = 100

    def _id(self):
        self._next_id += 1
        return self._next_id

    def search_suppliers(self, query):
        return [{'id': 1, 'name': 'Gul Ahmed'}]

    def supplier_balance_by_name(self, name):
        if self.balance_error:
            raise self.balance_error
        return {'supplier': {'id': 1, 'name': name}, 'available_advance': self.advance}

    def search_products(self, query):
        return [p for p in self.products if query.lower() in p['name'].lower()]

    def create_product(self, name, sku=None, category=None, description=None, is_stitched=False):
        if self.create_product_error:
            raise self.create_product_error
        product = {'id': self._id(), 'name': name, 'sku': sku or f'GEN-{name[:3].upper()}',
                   'category': category, 'is_stitched': is_stitched}
        self.created_products.append(product)
        self.products.append(product)
        return product

    def list_variants(self, product_id):
        return list(self.variants.get(product_id, []))

    def create_variant(self, product_id, color, size=None):
        variant = {'id': self._id(), 'color': color, 'size': size, 'sku': f'V-{product_id}-{color}'}
        self.created_variants.append((product_id, color, size))
        return variant

    def create_purchase_invoice(self, payload):
        self.submitted.append(payload)
        return {
            'invoice': {'id': 1, 'invoice_number': payload.get('invoice_number', 'AUTO-1')},
            'items': payload['products'],
        }


class DebouncedLookupTests(SimpleTestCase):
    """Test debounced lookups"""

    def setUp(self):
        self.timers = TimerFactory()
        self.queries = []
        self.delivered = []
        self.errors = []

    def _lookup(self, fetch=None, tracker=None):
        def default_fetch(query):
            self.queries.append(query)
            return [{'name': f'{query} result'}]

        return DebouncedLookup(
            fetch or default_fetch, delay=0.3, on_result=self.delivered.append, on_error=self.errors.append,
            timer_factory=self.timers, tracker=tracker, field='supplier',
        )

    def test_only_last_input_is_fetched(self):
        """Test typing restarts the timer and only the final query runs"""
        lookup = self._lookup()
        lookup.update('gu')
        lookup.update('gul')
        self.assertTrue(self.timers.timers[0].cancelled)
        self.assertEqual(self.timers.timers[1].delay, 0.3)
        self.assertTrue(lookup.pending)

        self.timers.timers[1].fire()
        self.assertEqual(self.queries, ['gul'])
        self.assertEqual(lookup.results, [{'name': 'gul result'}])
        self.assertFalse(lookup.pending)

    def test_short_query_clears_results(self):
        lookup = self._lookup()
        lookup.update(' g ')
        self.assertEqual(self.timers.timers, [])
        self.assertEqual(self.delivered, [[]])

    def test_repeated_query_reuses_results(self):
        """Test the same query is not fetched twice in a row"""
        lookup = self._lookup()
        lookup.update('gul')
        self.timers.timers[0].fire()
        lookup.update('gul ')
        self.assertEqual(len(self.timers.timers), 1)
        self.assertEqual(self.queries, ['gul'])
        self.assertEqual(self.delivered[-1], [{'name': 'gul result'}])

    def test_stale_response_discarded(self):
        """Test a response for superseded input is dropped"""
        lookup = self._lookup()
        lookup.update('gu')
        lookup.update('gul')
        # first request was already in flight when the input changed
        self.timers.timers[0].fire()
        self.assertEqual(self.delivered, [])
        self.assertEqual(lookup.results, [])

        self.timers.timers[1].fire()
        self.assertEqual(self.delivered, [[{'name': 'gul result'}]])

    def test_failure_falls_back_to_manual_entry(self):
        """Test a failed fetch shows a notice and an empty list"""
        def failing_fetch(query):
            raise CollaboratorError('Could not reach server: timed out')

        lookup = self._lookup(fetch=failing_fetch)
        lookup.update('gul')
        self.timers.timers[0].fire()
        self.assertEqual(self.delivered, [[]])
        self.assertEqual(len(self.errors), 1)
        self.assertTrue(self.errors[0].startswith('Search unavailable, enter details manually'))

    def test_stale_failure_ignored(self):
        def failing_fetch(query):
            raise CollaboratorError('boom')

        lookup = self._lookup(fetch=failing_fetch)
        lookup.update('gul')
        lookup.update('gula')
        self.timers.timers[0].fire()
        self.assertEqual(self.errors, [])

    def test_cancel(self):
        """Test cancelling drops the pending timer and in-flight result"""
        lookup = self._lookup()
        lookup.update('gul')
        lookup.cancel()
        self.assertTrue(self.timers.timers[0].cancelled)
        self.assertFalse(lookup.pending)
        self.timers.timers[0].fire()
        self.assertEqual(self.delivered, [])

    def test_fields_tracked_independently(self):
        """Test lookups sharing a tracker do not invalidate each other"""
        tracker = RequestTracker()
        supplier_lookup = self._lookup(tracker=tracker)
        product_lookup = DebouncedLookup(
            lambda query: [query], timer_factory=self.timers, tracker=tracker, field='product:1',
        )
        supplier_lookup.update('gul')
        product_lookup.update('lawn')
        self.timers.timers[0].fire()
        self.timers.timers[1].fire()
        self.assertEqual(supplier_lookup.results, [{'name': 'gul result'}])
        self.assertEqual(product_lookup.results, ['lawn'])


class PurchaseIntakeFormTests(SimpleTestCase):
    """Test form state and recompute"""

    def setUp(self):
        self.client = FakeClient(advance='1500.00')
        self.timers = TimerFactory()
        self.form = PurchaseIntake(self.client, timer_factory=self.timers)

    def test_totals_follow_edits(self):
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.form.add_return_item(name='Lawn Suit', quantity=1, unit_price='300', reason='Torn')
        self.assertEqual(self.form.totals.net_total, Decimal('700.00'))
        self.assertIn('Please select a return handling method', self.form.errors)
        self.form.set_return_handling('REDUCE_AP')
        self.assertEqual(self.form.errors, [])

    def test_advance_clears_cash(self):
        """Test cash is cleared with a notice once the advance covers the invoice"""
        self.form.select_supplier('Gul Ahmed')
        self.form.set_payment_account(1)
        self.form.set_cash_payment('300')
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.assertEqual(self.form.state.cash_payment, Decimal('0.00'))
        self.assertEqual(self.form.result.advance_used, Decimal('1000.00'))
        self.assertEqual(self.form.result.status, 'paid')
        self.assertIn('Advance balance covers the invoice, cash payment cleared', self.form.notices)

    def test_advance_can_be_switched_off(self):
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.form.set_use_advance(False)
        self.assertEqual(self.form.result.advance_used, Decimal('0.00'))
        self.assertEqual(self.form.result.status, 'unpaid')

    def test_balance_failure_counts_as_no_advance(self):
        """Test a failed balance lookup shows a notice and uses zero advance"""
        self.client.balance_error = CollaboratorError('Server error', status_code=500)
        self.form.select_supplier('Gul Ahmed')
        self.assertEqual(self.form.supplier_advance, Decimal('0.00'))
        self.assertEqual(self.form.notices, ['Could not load supplier balance: Server error'])

    def test_new_supplier_has_no_notice(self):
        self.client.balance_error = CollaboratorError('Supplier not found', status_code=404)
        self.form.select_supplier('New Supplier')
        self.assertEqual(self.form.notices, [])
        self.assertEqual(self.form.header['supplier_name'], 'New Supplier')

    def test_select_product_fills_price(self):
        """Test picking a product links the line and fills a blank price"""
        index = self.form.add_item(name='law', quantity=1)
        self.form.select_product(index, {'id': 7, 'name': 'Lawn Suit', 'sku': 'LS-1', 'last_purchase_price': '450.00'})
        line = self.form.state.line_items[index]
        self.assertEqual(line.product_id, 7)
        self.assertEqual(line.unit_price, '450.00')
        self.assertEqual(self.form.totals.net_total, Decimal('450.00'))

        self.form.update_item(index, name='Silk Shirt')
        self.assertIsNone(line.product_id)

    def test_nameless_line_not_in_totals(self):
        """Test a priced line without a name does not change the shown total"""
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.form.add_item(name='', quantity=1, unit_price='50')
        self.assertEqual(self.form.totals.net_total, Decimal('1000.00'))

    def test_fractional_quantity_blocks(self):
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Lawn Suit', quantity='2.5', unit_price='100')
        self.assertIn('Quantity for "Lawn Suit" must be a whole number of at least 1', self.form.errors)

    def test_unpaid_status_with_advance_blocks(self):
        """Test unpaid cannot be chosen while the advance pays the invoice"""
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.form.set_payment_status('unpaid')
        self.assertIn(
            'Payment status is "Unpaid" but total payment is Rs. 1000.00. Payment status should be "Fully Paid"',
            self.form.errors,
        )

    def test_normalize_name(self):
        self.assertEqual(normalize_name('  Lawn   Suit '), 'lawn suit')
        self.assertEqual(normalize_name(None), '')

    def test_unknown_line_field(self):
        with self.assertRaises(ValueError):
            self.form.add_item(colour='Red')
        with self.assertRaises(ValueError):
            self.form.add_item(name='Lawn', reason='Torn')

    def test_product_lookup_per_line(self):
        """Test each line keeps its own lookup and removing a line cancels it"""
        index = self.form.add_item(name='Lawn')
        lookup = self.form.product_lookup(index)
        self.assertIs(self.form.product_lookup(index), lookup)
        lookup.update('lawn')
        self.form.remove_item(index)
        self.assertTrue(self.timers.timers[0].cancelled)


class PurchaseIntakeSubmitTests(SimpleTestCase):
    """Test the submission gate and catalog resolution"""

    def setUp(self):
        self.client = FakeClient(
            products=[{'id': 7, 'name': 'Lawn Suit', 'sku': 'LS-1', 'is_stitched': False}],
            variants={7: [{'id': 70, 'color': 'red', 'size': 'm'}]},
        )
        self.form = PurchaseIntake(self.client, timer_factory=TimerFactory())

    def test_missing_supplier_blocks(self):
        """Test a blocked form returns to editing on the next edit"""
        self.form.add_item(name='Lawn Suit', quantity=1, unit_price='100')
        with self.assertRaises(SubmissionBlocked) as ctx:
            self.form.submit()
        self.assertEqual(ctx.exception.message, 'Please enter supplier name')
        self.assertEqual(self.form.status, BLOCKED)
        self.assertEqual(self.client.submitted, [])

        self.form.set_header(invoice_number='INV-1')
        self.assertEqual(self.form.status, EDITING)
        self.assertIsNone(self.form.block_reason)

    def test_overpayment_blocks(self):
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Lawn Suit', quantity=2, unit_price='500')
        self.form.set_payment_account(1)
        self.form.set_cash_payment('1500')
        with self.assertRaises(SubmissionBlocked) as ctx:
            self.form.submit()
        self.assertEqual(ctx.exception.message, 'Total payment (Rs. 1500.00) exceeds invoice total (Rs. 1000.00)')

    def test_submit_resolves_catalog(self):
        """Test existing products are linked and missing products and variants are created"""
        self.form.select_supplier('Gul Ahmed')
        self.form.set_header(invoice_number='INV-7', notes='Eid stock')
        self.form.add_item(name='lawn suit', quantity=2, unit_price='500', color='Red', size='M')
        self.form.add_item(name='Silk Shirt', quantity=1, unit_price='800', color='Blue', size='L')
        self.form.add_item(name='', quantity=1, unit_price='50')

        response = self.form.submit()

        self.assertEqual(self.form.status, SUBMITTED)
        self.assertEqual(self.form.invoice['invoice_number'], 'INV-7')
        self.assertEqual(response['invoice']['id'], 1)
        self.assertEqual([p['name'] for p in self.client.created_products], ['Silk Shirt'])
        self.assertTrue(self.client.created_products[0]['is_stitched'])
        silk_id = self.client.created_products[0]['id']
        self.assertEqual(self.client.created_variants, [(silk_id, 'Blue', 'L')])

        payload = self.client.submitted[0]
        self.assertEqual(payload['supplier_name'], 'Gul Ahmed')
        self.assertEqual(payload['notes'], 'Eid stock')
        self.assertEqual(payload['total_amount'], '1800.00')
        self.assertEqual(payload['payment_status'], 'unpaid')
        self.assertEqual(len(payload['products']), 2)
        self.assertEqual(payload['products'][0]['product'], 7)
        self.assertEqual(payload['products'][0]['variant'], 70)
        self.assertEqual(payload['products'][0]['purchase_price'], '500.00')
        self.assertEqual(payload['products'][1]['product'], silk_id)

    def test_same_name_lines_share_one_product(self):
        """Test two lines with one new name create the product once"""
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Silk Shirt', quantity=1, unit_price='800')
        self.form.add_item(name='silk  shirt', quantity=2, unit_price='800')
        self.form.submit()
        self.assertEqual(len(self.client.created_products), 1)
        products = self.client.submitted[0]['products']
        self.assertEqual(products[0]['product'], products[1]['product'])

    def test_prompt_policy(self):
        """Test missing products are reported instead of created"""
        form = PurchaseIntake(self.client, missing_product_policy=POLICY_PROMPT, timer_factory=TimerFactory())
        form.select_supplier('Gul Ahmed')
        form.add_item(name='Silk Shirt', quantity=1, unit_price='800')
        with self.assertRaises(ProductResolutionRequired) as ctx:
            form.submit()
        self.assertEqual(ctx.exception.names, ['Silk Shirt'])
        self.assertEqual(form.status, EDITING)
        self.assertEqual(self.client.created_products, [])

    def test_unknown_policy(self):
        with self.assertRaises(ValueError):
            PurchaseIntake(self.client, missing_product_policy='ignore')

    def test_creation_failure(self):
        """Test a failed product creation leaves the form editable"""
        self.client.create_product_error = CollaboratorError('sku: already exists', status_code=400)
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Silk Shirt', quantity=1, unit_price='800')
        with self.assertRaises(SubmissionFailed) as ctx:
            self.form.submit()
        self.assertEqual(ctx.exception.message, 'sku: already exists')
        self.assertEqual(self.form.status, EDITING)
        self.assertEqual(self.client.submitted, [])

    def test_stitched_product_needs_size(self):
        self.client.products.append({'id': 8, 'name': 'Kurta', 'sku': 'KU-1', 'is_stitched': True})
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Kurta', quantity=1, unit_price='900', color='White')
        with self.assertRaises(SubmissionFailed):
            self.form.submit()
        self.assertEqual(self.form.status, EDITING)

    def test_return_lines_never_create_products(self):
        """Test unknown return lines are sent unlinked"""
        self.form.select_supplier('Gul Ahmed')
        self.form.add_return_item(name='Old Stock', quantity=2, unit_price='200', reason='Damaged')
        self.form.set_return_handling('REDUCE_AP')
        self.form.submit()
        self.assertEqual(self.client.created_products, [])
        payload = self.client.submitted[0]
        self.assertEqual(payload['total_amount'], '-400.00')
        self.assertEqual(payload['products'], [])
        self.assertIsNone(payload['return_items'][0]['product'])
        self.assertEqual(payload['return_handling_method'], 'REDUCE_AP')

    def test_closed_after_submit(self):
        """Test a submitted form cannot be edited or submitted again"""
        self.form.select_supplier('Gul Ahmed')
        self.form.add_item(name='Lawn Suit', quantity=1, unit_price='100')
        self.form.supplier_lookup.update('gul')
        self.form.submit()
        self.assertFalse(self.form.supplier_lookup.pending)
        with self.assertRaises(IntakeClosed):
            self.form.add_item(name='Lawn Suit')
        with self.assertRaises(IntakeClosed):
            self.form.submit()


class FakeResponse:
    def __init__(self, status_code, data=None, text=''):
        self.status_code = status_code
        self._data = data
        self.text = text
        self.reason = ''
        self.content = b'' if data is None else b'{}'

    def json(self):
        if self._data is None:
            raise ValueError('No JSON')
        return self._data


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.headers = {}
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response


class RetailHubClientTests(SimpleTestCase):
    """Test API client error handling"""

    def test_field_error_message(self):
        session = FakeSession(FakeResponse(400, {'supplier_name': ['This field is required.']}))
        client = RetailHubClient(base_url='http://shop.test/api/v1/', session=session)
        with self.assertRaises(CollaboratorError) as ctx:
            client.create_purchase_invoice({})
        self.assertEqual(ctx.exception.message, 'supplier_name: This field is required.')
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(session.calls[0][1], 'http://shop.test/api/v1/purchase-invoices/with-products/')

    def test_not_found(self):
        session = FakeSession(FakeResponse(404, {'error': 'Supplier not found'}))
        client = RetailHubClient(session=session)
        with self.assertRaises(CollaboratorError) as ctx:
            client.supplier_balance_by_name('gul ahmed')
        self.assertTrue(ctx.exception.is_not_found)
        self.assertEqual(ctx.exception.message, 'Supplier not found')
        self.assertTrue(session.calls[0][1].endswith('/suppliers/by-name/gul%20ahmed/balance/'))

    def test_transport_error(self):
        session = FakeSession(error=requests.ConnectionError('refused'))
        client = RetailHubClient(session=session, timeout=2)
        with self.assertRaises(CollaboratorError) as ctx:
            client.search_products('lawn')
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(session.calls[0][2]['timeout'], 2)

    def test_authenticate_sets_bearer_header(self):
        session = FakeSession(FakeResponse(200, {'access': 'abc', 'refresh': 'def', 'user': {}}))
        client = RetailHubClient(session=session)
        client.authenticate('sana', 'secret')
        self.assertEqual(session.headers['Authorization'], 'Bearer abc')

    def test_empty_response(self):
        session = FakeSession(FakeResponse(204))
        client = RetailHubClient(session=session)
        self.assertIsNone(client.supplier_balance(1))
