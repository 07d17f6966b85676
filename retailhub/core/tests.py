"""
Test suite for core module
Tests: registration, login, current user, audit logs, tenant utilities and caching
"""
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.core.models import AuditLog, Tenant
from retailhub.core.utils import create_audit_log, get_user_tenant, has_role, month_sequence_number
from retailhub.core.cache_utils import get_tenant_version, invalidate_tenant_cache, tenant_cached
from retailhub.accounting.models import Account
from retailhub.parties.models import Supplier


class AuthenticationTests(TestCase):
    """Test registration and token endpoints"""

    def setUp(self):
        self.client = APIClient()

    def _register(self, **extra):
        data = {
            'username': 'sana',
            'email': 'sana@example.com',
            'password': 'lawn-Season-24',
            'password_confirm': 'lawn-Season-24',
        }
        data.update(extra)
        return self.client.post('/api/v1/auth/register/', data, format='json')

    def test_register_with_business(self):
        """Test registration creates the tenant and its default accounts"""
        response = self._register(business_name='Sana Fabrics', business_code='sana')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        tenant = Tenant.objects.get(business_code='SANA')
        self.assertEqual(tenant.owner.username, 'sana')
        self.assertEqual(response.data['user']['tenant']['business_code'], 'SANA')
        self.assertEqual(Account.objects.filter(tenant=tenant).count(), 6)

    def test_register_business_code_length(self):
        response = self._register(business_name='Sana Fabrics', business_code='SAN')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('business_code', response.data)

    def test_register_business_code_taken(self):
        """Test business codes are unique across tenants"""
        TestDataFactory.create_tenant(business_code='SANA')
        response = self._register(business_name='Sana Fabrics', business_code='SANA')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_name_without_code(self):
        response = self._register(business_name='Sana Fabrics')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_password_mismatch(self):
        response = self._register(password_confirm='something-else-24')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_login_returns_user(self):
        """Test login returns tokens with the user payload"""
        user, tenant = TestDataFactory.create_owner_with_tenant()
        response = self.client.post('/api/v1/auth/login/', {
            'username': user.username, 'password': 'testpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['username'], user.username)
        self.assertEqual(response.data['user']['tenant']['id'], tenant.id)

    def test_login_wrong_password(self):
        user = TestDataFactory.create_user()
        response = self.client.post('/api/v1/auth/login/', {
            'username': user.username, 'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        user = TestDataFactory.create_user()
        login = self.client.post('/api/v1/auth/login/', {
            'username': user.username, 'password': 'testpass123',
        }, format='json')
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me(self):
        """Test current user carries role flags"""
        keeper = TestDataFactory.create_user(role='STOCK_KEEPER')
        client = AuthenticatedAPIClient().authenticate_user(keeper)
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_admin'])
        self.assertFalse(response.data['can_confirm_orders'])
        self.assertTrue(response.data['can_dispatch_orders'])
        self.assertIsNone(response.data['tenant'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogTests(TestCase):
    """Test audit log recording and listing"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_is_tenant_scoped(self):
        """Test users only see their tenant's audit logs"""
        create_audit_log(user=self.user, action='create', model_name='Supplier', object_id='1')
        other_user, _ = TestDataFactory.create_owner_with_tenant()
        create_audit_log(user=other_user, action='create', model_name='Supplier', object_id='2')
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([log['object_id'] for log in response.data], ['1'])

    def test_filters(self):
        create_audit_log(user=self.user, action='create', model_name='Supplier', object_id='1')
        create_audit_log(user=self.user, action='delete', model_name='PurchaseInvoice', object_id='2',
                         object_reference='INV-9')
        response = self.client.get('/api/v1/audit-logs/', {'action': 'delete'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/audit-logs/', {'model': 'Supplier'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/audit-logs/', {'reference': 'INV-9'})
        self.assertEqual(response.data[0]['object_id'], '2')

    def test_detail_hidden_across_tenants(self):
        other_user, _ = TestDataFactory.create_owner_with_tenant()
        log = create_audit_log(user=other_user, action='create', model_name='Supplier', object_id='2')
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_missing_fields_skipped(self):
        """Test incomplete entries are skipped instead of failing"""
        self.assertIsNone(create_audit_log(user=self.user, action='create'))
        self.assertFalse(AuditLog.objects.exists())


class UtilsTests(TestCase):
    """Test tenant and role helpers"""

    def test_get_user_tenant_through_owner(self):
        """Test owners not linked through user.tenant still resolve their tenant"""
        user = TestDataFactory.create_user()
        tenant = TestDataFactory.create_tenant(owner=user)
        self.assertEqual(get_user_tenant(user), tenant)
        self.assertIsNone(get_user_tenant(TestDataFactory.create_user()))

    def test_has_role(self):
        keeper = TestDataFactory.create_user(role='STOCK_KEEPER')
        superuser = TestDataFactory.create_user(role='STOCK_KEEPER', is_superuser=True)
        self.assertTrue(has_role(keeper, ('STOCK_KEEPER',)))
        self.assertFalse(has_role(keeper, ('BUSINESS_OWNER',)))
        self.assertTrue(has_role(superuser, ('ADMIN',)))
        self.assertFalse(has_role(None, ('ADMIN',)))

    def test_month_sequence_number(self):
        """Test numbers are prefixed with the business code and count up"""
        _, tenant = TestDataFactory.create_owner_with_tenant(business_code='KHAA')
        first = month_sequence_number(tenant, Supplier)
        self.assertTrue(first.startswith('KHAA-'))
        self.assertTrue(first.endswith('-001'))
        TestDataFactory.create_supplier(tenant)
        self.assertTrue(month_sequence_number(tenant, Supplier).endswith('-002'))
        self.assertIn('-PAY-', month_sequence_number(tenant, Supplier, prefix='PAY'))


class CacheUtilsTests(TestCase):
    """Test tenant scoped caching"""

    def setUp(self):
        _, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.calls = []

        @tenant_cached(cache_ttl=60, key_prefix='test_count')
        def count_suppliers(tenant):
            self.calls.append(tenant.id)
            return Supplier.objects.filter(tenant=tenant).count()

        self.count_suppliers = count_suppliers

    def test_results_cached_until_invalidated(self):
        self.assertEqual(self.count_suppliers(self.tenant), 0)
        self.assertEqual(self.count_suppliers(self.tenant), 0)
        self.assertEqual(len(self.calls), 1)

        invalidate_tenant_cache(self.tenant.id)
        self.count_suppliers(self.tenant)
        self.assertEqual(len(self.calls), 2)

    def test_writes_invalidate(self):
        """Test saving tenant data bumps the cache version"""
        version = get_tenant_version(self.tenant.id)
        self.count_suppliers(self.tenant)
        TestDataFactory.create_supplier(self.tenant)
        self.assertGreater(get_tenant_version(self.tenant.id), version)
        self.assertEqual(self.count_suppliers(self.tenant), 1)

    def test_tenants_cached_separately(self):
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        TestDataFactory.create_supplier(other_tenant)
        self.assertEqual(self.count_suppliers(self.tenant), 0)
        self.assertEqual(self.count_suppliers(other_tenant), 1)
