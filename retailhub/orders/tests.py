"""
Test suite for customer orders
Tests: order placement, confirmation, dispatch, payment verification and stats
"""
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.core.models import AuditLog
from retailhub.accounting.models import Payment
from retailhub.accounting.balances import calculate_customer_balance
from retailhub.parties.models import Customer
from retailhub.orders.models import Order
from retailhub.orders.services import (
    InsufficientStock, OrderTransitionError, confirm_order, dispatch_order, generate_order_number,
)


class OrderAPITests(TestCase):
    """Test order endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant(business_code='SANA')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(self.tenant, name='Ayesha', phone='03211234567')
        self.product = TestDataFactory.create_product(self.tenant, name='Lawn Suit', quantity=5)

    def _place_order(self, quantity=2, price='1500.00', **extra):
        data = {
            'customer': self.customer.id,
            'items': [{'product': self.product.id, 'quantity': quantity, 'price': price}],
        }
        data.update(extra)
        return self.client.post('/api/v1/orders/', data, format='json')

    def test_create_order(self):
        """Test order total and number are computed"""
        response = self._place_order()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = response.data['order']
        self.assertEqual(order['status'], 'PENDING')
        self.assertEqual(Decimal(order['total_amount']), Decimal('3000.00'))
        self.assertTrue(order['order_number'].startswith('SANA-'))
        self.assertEqual(len(order['items']), 1)
        self.assertTrue(AuditLog.objects.filter(model_name='Order', action='create').exists())

    def test_create_order_by_phone(self):
        """Test an unknown phone number creates the customer"""
        response = self.client.post('/api/v1/orders/', {
            'customer_name': 'Hina',
            'customer_phone': '03330000000',
            'items': [{'product': self.product.id, 'quantity': 1, 'price': '100.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Customer.objects.filter(tenant=self.tenant, phone='03330000000', name='Hina').exists())

    def test_create_order_requires_customer(self):
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product': self.product.id, 'quantity': 1, 'price': '100.00'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer', response.data)

    def test_create_order_requires_items(self):
        response = self.client.post('/api/v1/orders/', {'customer': self.customer.id, 'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variant_required_for_variant_product(self):
        """Test products with variants need a variant on the line"""
        TestDataFactory.create_variant(self.product, color='Red', size='M', quantity=3)
        response = self._place_order()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_confirm_then_dispatch_moves_stock(self):
        """Test stock leaves the shelf on dispatch only"""
        order_id = self._place_order(quantity=2).data['order']['id']

        response = self.client.post(f'/api/v1/orders/{order_id}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order']['status'], 'CONFIRMED')
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 5)

        response = self.client.post(f'/api/v1/orders/{order_id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 3)

    def test_dispatch_requires_confirmation(self):
        order_id = self._place_order().data['order']['id']
        response = self.client.post(f'/api/v1/orders/{order_id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dispatch_insufficient_stock(self):
        """Test dispatch is refused when the shelf is short"""
        order_id = self._place_order(quantity=9).data['order']['id']
        self.client.post(f'/api/v1/orders/{order_id}/confirm/')
        response = self.client.post(f'/api/v1/orders/{order_id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 5)
        self.assertEqual(Order.objects.get(pk=order_id).status, 'CONFIRMED')

    def test_stock_keeper_can_dispatch_but_not_confirm(self):
        """Test role checks on the order workflow"""
        keeper = TestDataFactory.create_user(role='STOCK_KEEPER', tenant=self.tenant)
        client = AuthenticatedAPIClient().authenticate_user(keeper)
        order_id = self._place_order().data['order']['id']

        response = client.post(f'/api/v1/orders/{order_id}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.post(f'/api/v1/orders/{order_id}/confirm/')
        response = client.post(f'/api/v1/orders/{order_id}/dispatch/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_verify_payment(self):
        """Test verifying payment records a customer payment into the account"""
        bank = TestDataFactory.get_account(self.tenant, 'BANK')
        order_id = self._place_order().data['order']['id']
        self.client.post(f'/api/v1/orders/{order_id}/confirm/')

        response = self.client.post(f'/api/v1/orders/{order_id}/verify-payment/', {
            'payment_account': bank.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['order']['payment_verified'])
        payment = Payment.objects.get(payment_number=response.data['payment_number'])
        self.assertEqual(payment.type, 'CUSTOMER_PAYMENT')
        self.assertEqual(payment.amount, Decimal('3000.00'))
        bank.refresh_from_db()
        self.assertEqual(bank.balance, Decimal('3000.00'))
        self.assertEqual(calculate_customer_balance(self.customer)['pending'], Decimal('0.00'))

        response = self.client.post(f'/api/v1/orders/{order_id}/verify-payment/', {
            'payment_account': bank.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_verify_payment_pending_order(self):
        """Test pending orders cannot be paid"""
        cash = TestDataFactory.get_account(self.tenant)
        order_id = self._place_order().data['order']['id']
        response = self.client.post(f'/api/v1/orders/{order_id}/verify-payment/', {
            'payment_account': cash.id, 'amount': '500.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Payment.objects.filter(tenant=self.tenant).exists())

    def test_admin_status_override(self):
        """Test an administrator can move an order back and stock is restored"""
        admin = TestDataFactory.create_user(role='ADMIN')
        admin_client = AuthenticatedAPIClient().authenticate_user(admin)
        order_id = self._place_order(quantity=2).data['order']['id']

        response = self.client.put(f'/api/v1/orders/{order_id}/status/', {'status': 'DISPATCHED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = admin_client.put(f'/api/v1/orders/{order_id}/status/', {'status': 'DISPATCHED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 3)

        response = admin_client.put(f'/api/v1/orders/{order_id}/status/', {'status': 'CANCELLED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.current_quantity, 5)

    def test_stats(self):
        """Test stats count orders by status"""
        first = self._place_order().data['order']['id']
        self._place_order(quantity=1)
        self.client.post(f'/api/v1/orders/{first}/confirm/')
        response = self.client.get('/api/v1/orders/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_orders'], 2)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['confirmed_orders'], 1)
        self.assertEqual(response.data['total_revenue'], Decimal('3000.00'))

    def test_list_filter_by_status(self):
        self._place_order()
        response = self.client.get('/api/v1/orders/', {'status': 'CONFIRMED'})
        self.assertEqual(response.data['count'], 0)
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.data['count'], 1)

    def test_other_tenant_order_not_found(self):
        other_user, other_tenant = TestDataFactory.create_owner_with_tenant()
        order_id = self._place_order().data['order']['id']
        client = AuthenticatedAPIClient().authenticate_user(other_user)
        response = client.get(f'/api/v1/orders/{order_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class OrderServiceTests(TestCase):
    """Test order service functions"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant(business_code='SANA')

    def _order(self, number, order_status='PENDING'):
        return Order.objects.create(
            tenant=self.tenant, order_number=number, customer_name='Walk-in',
            status=order_status, total_amount=Decimal('100.00'),
        )

    def test_order_number_skips_taken_numbers(self):
        """Test the generated number never collides with an existing one"""
        first = generate_order_number(self.tenant)
        self._order(first)
        prefix = first.rsplit('-', 1)[0]
        self._order(f'{prefix}-002')
        self.assertEqual(generate_order_number(self.tenant), f'{prefix}-003')

    def test_invalid_transitions(self):
        order = self._order('X-1', 'DISPATCHED')
        with self.assertRaises(OrderTransitionError):
            confirm_order(order, self.user)
        with self.assertRaises(OrderTransitionError):
            dispatch_order(order, self.user)

    def test_dispatch_checks_variant_stock(self):
        """Test variant lines are checked against the variant's own stock"""
        from retailhub.orders.models import OrderItem

        product = TestDataFactory.create_product(self.tenant, quantity=10)
        variant = TestDataFactory.create_variant(product, color='Red', size='M', quantity=1)
        order = self._order('X-2', 'CONFIRMED')
        OrderItem.objects.create(order=order, product=product, variant=variant, quantity=2, price=Decimal('50.00'))
        with self.assertRaises(InsufficientStock):
            dispatch_order(order, self.user)
