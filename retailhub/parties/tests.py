"""
Test suite for suppliers and customers
"""
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.parties.models import Supplier, Customer


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_supplier(self):
        """Test creating a supplier with an opening balance"""
        response = self.client.post('/api/v1/suppliers/', {
            'name': 'Gul Ahmed', 'phone': '03001234567', 'opening_balance': '1500.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        supplier = Supplier.objects.get(pk=response.data['id'])
        self.assertEqual(supplier.tenant, self.tenant)
        self.assertEqual(supplier.opening_balance, Decimal('1500.00'))

    def test_duplicate_name_case_insensitive(self):
        """Test supplier names are unique per tenant ignoring case"""
        TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        response = self.client.post('/api/v1/suppliers/', {'name': 'GUL AHMED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

    def test_same_name_other_tenant(self):
        """Test another tenant may use the same supplier name"""
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        TestDataFactory.create_supplier(other_tenant, name='Gul Ahmed')
        response = self.client.post('/api/v1/suppliers/', {'name': 'Gul Ahmed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_is_tenant_scoped(self):
        """Test suppliers of other tenants are not listed"""
        TestDataFactory.create_supplier(self.tenant, name='Khaadi')
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        TestDataFactory.create_supplier(other_tenant, name='Sapphire')
        response = self.client.get('/api/v1/suppliers/')
        self.assertEqual([s['name'] for s in response.data], ['Khaadi'])

    def test_search(self):
        """Test search matches name and phone, ordered by name"""
        TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_supplier(self.tenant, name='Al Karam')
        Supplier.objects.create(tenant=self.tenant, name='Zeb Traders', phone='0300-GUL')
        response = self.client.get('/api/v1/suppliers/search/gul/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([s['name'] for s in response.data['suppliers']], ['Gul Ahmed', 'Zeb Traders'])

    def test_balance_with_advance(self):
        """Test overpaying a supplier shows up as available advance"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed', opening_balance=Decimal('200.00'))
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, total_amount=Decimal('500.00'))
        TestDataFactory.create_supplier_payment(self.tenant, supplier, Decimal('1000.00'))

        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['supplier'], {'id': supplier.id, 'name': 'Gul Ahmed'})
        self.assertEqual(response.data['available_advance'], Decimal('300.00'))
        self.assertEqual(response.data['balance']['balance'], Decimal('-300.00'))

    def test_balance_by_name(self):
        """Test balance lookup by name ignores case; unknown names give 404"""
        supplier = TestDataFactory.create_supplier(self.tenant, name='Gul Ahmed')
        TestDataFactory.create_purchase_invoice(self.tenant, supplier, total_amount=Decimal('500.00'))
        response = self.client.get('/api/v1/suppliers/by-name/gul%20ahmed/balance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['available_advance'], Decimal('0.00'))
        self.assertEqual(response.data['balance']['balance'], Decimal('500.00'))

        response = self.client.get('/api/v1/suppliers/by-name/Nobody/balance/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Supplier not found')

    def test_delete_blocked_by_invoices(self):
        """Test a supplier with live invoices cannot be deleted"""
        supplier = TestDataFactory.create_supplier(self.tenant)
        TestDataFactory.create_purchase_invoice(self.tenant, supplier)
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        other = TestDataFactory.create_supplier(self.tenant)
        response = self.client.delete(f'/api/v1/suppliers/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Supplier.objects.filter(pk=other.id).exists())

    def test_stock_keeper_forbidden(self):
        """Test stock keepers cannot see suppliers"""
        keeper = TestDataFactory.create_user(role='STOCK_KEEPER', tenant=self.tenant)
        client = AuthenticatedAPIClient().authenticate_user(keeper)
        response = client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_user_without_tenant(self):
        """Test a user without a business gets 404"""
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient().authenticate_user(user)
        response = client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Tenant not found')


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        """Test creating a customer"""
        response = self.client.post('/api/v1/customers/', {'name': 'Ayesha', 'phone': '03211234567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Customer.objects.filter(tenant=self.tenant, phone='03211234567').exists())

    def test_duplicate_phone(self):
        """Test phone numbers are unique per tenant"""
        TestDataFactory.create_customer(self.tenant, phone='03211234567')
        response = self.client.post('/api/v1/customers/', {'name': 'Other', 'phone': '03211234567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_includes_balance(self):
        """Test customer detail carries the balance"""
        customer = TestDataFactory.create_customer(self.tenant)
        response = self.client.get(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['balance']['pending'], Decimal('0.00'))
