"""
Test suite for accounts, payments and balances
"""
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.accounting.balances import calculate_supplier_balance, calculate_customer_balance, get_balance_summary
from retailhub.accounting.models import Account, Payment
from retailhub.accounting.services import ensure_default_accounts, record_payment, shift_account_balances
from retailhub.orders.models import Order


class AccountSeedingTests(TestCase):
    """Test default chart of accounts"""

    def test_new_tenant_gets_default_accounts(self):
        """Test a new tenant is seeded with the six default accounts"""
        _, tenant = TestDataFactory.create_owner_with_tenant()
        codes = set(Account.objects.filter(tenant=tenant).values_list('code', flat=True))
        self.assertEqual(codes, {'1000', '1100', '1200', '1300', '2000', '4000'})
        self.assertEqual(Account.objects.get(tenant=tenant, code='1000').sub_type, 'CASH')
        self.assertEqual(Account.objects.get(tenant=tenant, code='1100').sub_type, 'BANK')

    def test_seeding_is_idempotent(self):
        """Test seeding twice does not duplicate accounts"""
        _, tenant = TestDataFactory.create_owner_with_tenant()
        self.assertEqual(ensure_default_accounts(tenant), [])
        self.assertEqual(Account.objects.filter(tenant=tenant).count(), 6)


class PaymentServiceTests(TestCase):
    """Test payment recording and account movements"""

    def setUp(self):
        _, self.tenant = TestDataFactory.create_owner_with_tenant(business_code='KHAA')
        self.cash = TestDataFactory.get_account(self.tenant, 'CASH')
        self.bank = TestDataFactory.get_account(self.tenant, 'BANK')
        self.supplier = TestDataFactory.create_supplier(self.tenant)

    def test_supplier_payment_debits_account(self):
        """Test a supplier payment draws down the payment account"""
        payment = record_payment(self.tenant, 'SUPPLIER_PAYMENT', '250.00', self.bank, supplier=self.supplier)
        self.bank.refresh_from_db()
        self.assertEqual(self.bank.balance, Decimal('-250.00'))
        self.assertEqual(payment.payment_method, 'Bank Transfer')
        self.assertTrue(payment.payment_number.startswith('KHAA-PAY-'))

    def test_refund_credits_account(self):
        """Test a supplier refund adds to the account"""
        record_payment(self.tenant, 'SUPPLIER_REFUND', '100.00', self.cash, supplier=self.supplier)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal('100.00'))

    def test_non_positive_amount_rejected(self):
        """Test zero or negative payments are refused"""
        with self.assertRaises(ValueError):
            record_payment(self.tenant, 'SUPPLIER_PAYMENT', '0', self.cash, supplier=self.supplier)
        self.assertFalse(Payment.objects.exists())

    def test_shift_account_balances(self):
        """Test backing out and re-applying a payment's movement"""
        payment = record_payment(self.tenant, 'SUPPLIER_PAYMENT', '300.00', self.cash, supplier=self.supplier)
        shift_account_balances([payment], -1)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal('0.00'))
        shift_account_balances([payment], 1)
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal('-300.00'))

    def test_payment_numbers_increase(self):
        """Test payment numbers follow the monthly sequence"""
        first = record_payment(self.tenant, 'SUPPLIER_PAYMENT', '1', self.cash, supplier=self.supplier)
        second = record_payment(self.tenant, 'SUPPLIER_PAYMENT', '1', self.cash, supplier=self.supplier)
        self.assertTrue(first.payment_number.endswith('-001'))
        self.assertTrue(second.payment_number.endswith('-002'))


class SupplierBalanceTests(TestCase):
    """Test supplier balance and advance computation"""

    def setUp(self):
        _, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.supplier = TestDataFactory.create_supplier(self.tenant, opening_balance=Decimal('100.00'))

    def test_owed_minus_paid(self):
        """Test balance is opening + invoices - payments"""
        TestDataFactory.create_purchase_invoice(self.tenant, self.supplier, total_amount=Decimal('900.00'))
        TestDataFactory.create_supplier_payment(self.tenant, self.supplier, Decimal('400.00'))
        balance = calculate_supplier_balance(self.supplier)
        self.assertEqual(balance['total_invoices'], Decimal('900.00'))
        self.assertEqual(balance['total_paid'], Decimal('400.00'))
        self.assertEqual(balance['balance'], Decimal('600.00'))
        self.assertEqual(balance['available_advance'], Decimal('0.00'))
        self.assertEqual(balance['invoice_count'], 1)

    def test_return_only_invoice_reduces_owed(self):
        """Test a negative invoice total lowers what is owed"""
        TestDataFactory.create_purchase_invoice(self.tenant, self.supplier, total_amount=Decimal('-300.00'))
        TestDataFactory.create_supplier_payment(self.tenant, self.supplier, Decimal('50.00'))
        balance = calculate_supplier_balance(self.supplier)
        self.assertEqual(balance['balance'], Decimal('-250.00'))
        self.assertEqual(balance['available_advance'], Decimal('250.00'))

    def test_deleted_invoice_and_its_payments_ignored(self):
        """Test soft deleted invoices and their payments drop out of the balance"""
        invoice = TestDataFactory.create_purchase_invoice(self.tenant, self.supplier, total_amount=Decimal('500.00'))
        TestDataFactory.create_supplier_payment(self.tenant, self.supplier, Decimal('500.00'), purchase_invoice=invoice)
        invoice.is_deleted = True
        invoice.save()
        balance = calculate_supplier_balance(self.supplier)
        self.assertEqual(balance['total_invoices'], Decimal('0.00'))
        self.assertEqual(balance['total_paid'], Decimal('0.00'))
        self.assertEqual(balance['balance'], Decimal('100.00'))

    def test_refunds_reduce_paid(self):
        """Test supplier refunds are netted against payments"""
        cash = TestDataFactory.get_account(self.tenant)
        TestDataFactory.create_supplier_payment(self.tenant, self.supplier, Decimal('400.00'))
        record_payment(self.tenant, 'SUPPLIER_REFUND', '150.00', cash, supplier=self.supplier)
        self.assertEqual(calculate_supplier_balance(self.supplier)['total_paid'], Decimal('250.00'))


class CustomerBalanceTests(TestCase):
    """Test customer balance computation"""

    def test_only_billable_orders_count(self):
        """Test pending and cancelled orders are not billed"""
        _, tenant = TestDataFactory.create_owner_with_tenant()
        customer = TestDataFactory.create_customer(tenant)
        for number, order_status in enumerate(['PENDING', 'CONFIRMED', 'DISPATCHED', 'CANCELLED']):
            Order.objects.create(
                tenant=tenant, order_number=f'ORD-{number}', customer=customer, customer_name=customer.name,
                status=order_status, total_amount=Decimal('100.00'),
            )
        record_payment(tenant, 'CUSTOMER_PAYMENT', '50.00', TestDataFactory.get_account(tenant), customer=customer)
        balance = calculate_customer_balance(customer)
        self.assertEqual(balance['total_orders'], Decimal('200.00'))
        self.assertEqual(balance['pending'], Decimal('150.00'))
        self.assertEqual(balance['order_count'], 2)


class AccountingAPITests(TestCase):
    """Test accounting endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cash = TestDataFactory.get_account(self.tenant, 'CASH')

    def test_list_accounts(self):
        response = self.client.get('/api/v1/accounting/accounts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['accounts']), 6)

    def test_create_account(self):
        """Test a second bank account can be added; duplicate codes are refused"""
        response = self.client.post('/api/v1/accounting/accounts/', {
            'code': '1110', 'name': 'Meezan Bank', 'type': 'ASSET', 'sub_type': 'BANK',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post('/api/v1/accounting/accounts/', {
            'code': '1110', 'name': 'Duplicate', 'type': 'ASSET',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sub_type_only_on_assets(self):
        response = self.client.post('/api/v1/accounting/accounts/', {
            'code': '2100', 'name': 'Loan', 'type': 'LIABILITY', 'sub_type': 'BANK',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_payment_accounts(self):
        """Test the payment account list filters by sub type"""
        response = self.client.get('/api/v1/accounting/accounts/payment-accounts/')
        self.assertEqual({a['sub_type'] for a in response.data['accounts']}, {'CASH', 'BANK'})
        response = self.client.get('/api/v1/accounting/accounts/payment-accounts/', {'sub_type': 'CASH'})
        self.assertEqual([a['code'] for a in response.data['accounts']], ['1000'])
        response = self.client.get('/api/v1/accounting/accounts/payment-accounts/', {'sub_type': 'LOAN'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_overpayment_creates_advance(self):
        """Test a standalone supplier payment above the balance becomes advance"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, total_amount=Decimal('300.00'))
        response = self.client.post('/api/v1/accounting/payments/', {
            'type': 'SUPPLIER_PAYMENT', 'amount': '500.00', 'account': self.cash.id, 'supplier': supplier.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(calculate_supplier_balance(supplier)['available_advance'], Decimal('200.00'))

        response = self.client.get('/api/v1/accounting/payments/', {'type': 'SUPPLIER_PAYMENT'})
        self.assertEqual(response.data['count'], 1)

    def test_payment_requires_party(self):
        """Test supplier payments need a supplier of the tenant"""
        response = self.client.post('/api/v1/accounting/payments/', {
            'type': 'SUPPLIER_PAYMENT', 'amount': '500.00', 'account': self.cash.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('supplier', response.data)

    def test_payment_into_non_cash_account_rejected(self):
        customer = TestDataFactory.create_customer(self.tenant)
        payable = Account.objects.get(tenant=self.tenant, code='2000')
        response = self.client.post('/api/v1/accounting/payments/', {
            'type': 'CUSTOMER_PAYMENT', 'amount': '10.00', 'account': payable.id, 'customer': customer.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_balance_summary(self):
        """Test summary totals and cache invalidation after a new payment"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, total_amount=Decimal('1000.00'))
        response = self.client.get('/api/v1/accounting/balances/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_payables'], Decimal('1000.00'))

        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('1200.00'))
        summary = get_balance_summary(self.tenant)
        self.assertEqual(summary['total_payables'], Decimal('0.00'))
        self.assertEqual(summary['total_supplier_advance'], Decimal('200.00'))
        self.assertEqual(summary['cash_position'], Decimal('-1200.00'))

    def test_supplier_balances(self):
        supplier = TestDataFactory.create_supplier(self.tenant)
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, total_amount=Decimal('250.00'))
        response = self.client.get('/api/v1/accounting/balances/suppliers/')
        self.assertEqual(response.data['balances'][0]['balance'], Decimal('250.00'))
