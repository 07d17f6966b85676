"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from retailhub.core.models import Tenant
from retailhub.catalog.models import Product, ProductVariant
from retailhub.parties.models import Customer, Supplier
from retailhub.accounting.models import Account
from retailhub.accounting.services import record_payment
from retailhub.purchasing.models import PurchaseInvoice
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_tenant(name=None, business_code=None, owner=None):
        """Create a tenant. Default accounts are seeded by the post_save signal."""
        if not name:
            name = f'Business_{TestDataFactory.random_string(6)}'
        if not business_code:
            business_code = ''.join(random.choices(string.ascii_uppercase, k=4))
            while Tenant.objects.filter(business_code=business_code).exists():
                business_code = ''.join(random.choices(string.ascii_uppercase, k=4))
        return Tenant.objects.create(name=name, business_code=business_code, owner=owner)

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='BUSINESS_OWNER',
                    tenant=None, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            tenant=tenant,
            is_superuser=is_superuser,
            is_staff=is_superuser,
        )

    @staticmethod
    def create_owner_with_tenant(business_code=None):
        """Business owner user plus the tenant they own"""
        user = TestDataFactory.create_user()
        tenant = TestDataFactory.create_tenant(business_code=business_code, owner=user)
        user.tenant = tenant
        user.save(update_fields=['tenant'])
        return user, tenant

    @staticmethod
    def create_supplier(tenant, name=None, opening_balance=Decimal('0.00')):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            tenant=tenant,
            name=name,
            phone=f'03{random.randint(100000000, 999999999)}',
            opening_balance=opening_balance,
        )

    @staticmethod
    def create_customer(tenant, name=None, phone=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'03{random.randint(100000000, 999999999)}'
        return Customer.objects.create(tenant=tenant, name=name, phone=phone)

    @staticmethod
    def create_product(tenant, name=None, sku=None, quantity=0, category='General', is_stitched=False):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            tenant=tenant,
            name=name,
            sku=sku,
            category=category,
            current_quantity=quantity,
            is_stitched=is_stitched,
        )

    @staticmethod
    def create_variant(product, color='Red', size=None, quantity=0):
        """Create a test variant and flag the product as having variants"""
        variant = ProductVariant.objects.create(
            product=product,
            color=color,
            size=size,
            sku=f'{product.sku}-{color.upper()}-{TestDataFactory.random_string(4)}',
            current_quantity=quantity,
        )
        if not product.has_variants:
            product.has_variants = True
            product.save(update_fields=['has_variants'])
        return variant

    @staticmethod
    def get_account(tenant, sub_type='CASH'):
        """Seeded CASH or BANK account of a tenant"""
        return Account.objects.get(tenant=tenant, sub_type=sub_type)

    @staticmethod
    def create_purchase_invoice(tenant, supplier, total_amount=Decimal('1000.00'), invoice_number=None,
                                payment_amount=Decimal('0.00'), advance_amount_used=Decimal('0.00'),
                                payment_status='unpaid', user=None):
        """Header-only invoice used for balance tests"""
        if not invoice_number:
            invoice_number = f'INV-{TestDataFactory.random_string(8).upper()}'
        total_amount = Decimal(str(total_amount))
        return PurchaseInvoice.objects.create(
            tenant=tenant,
            supplier=supplier,
            supplier_name=supplier.name,
            invoice_number=invoice_number,
            invoice_date=timezone.now().date(),
            purchase_total=max(total_amount, Decimal('0.00')),
            return_total=max(-total_amount, Decimal('0.00')),
            total_amount=total_amount,
            payment_amount=payment_amount,
            advance_amount_used=advance_amount_used,
            payment_status=payment_status,
            created_by=user,
        )

    @staticmethod
    def create_supplier_payment(tenant, supplier, amount, account=None, purchase_invoice=None):
        """Record a supplier payment through the accounting service"""
        account = account or TestDataFactory.get_account(tenant)
        return record_payment(
            tenant, 'SUPPLIER_PAYMENT', amount, account,
            supplier=supplier, purchase_invoice=purchase_invoice,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
