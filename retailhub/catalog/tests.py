"""
Test suite for the catalog module
Tests: product CRUD, search, variants and SKU generation
"""
from django.test import TestCase
from rest_framework import status
from retailhub.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from retailhub.catalog.models import Product, ProductVariant
from retailhub.catalog.utils import generate_product_sku, generate_variant_sku, find_variant


class CatalogUtilsTests(TestCase):
    """Test SKU helpers"""

    def setUp(self):
        _, self.tenant = TestDataFactory.create_owner_with_tenant()

    def test_product_sku_format(self):
        """Test product SKU uses the name prefix"""
        sku = generate_product_sku(self.tenant, 'lawn suit')
        self.assertTrue(sku.startswith('LAWN-'))
        self.assertEqual(len(sku.split('-')), 3)

    def test_variant_sku_suffix_when_taken(self):
        """Test variant SKU gets a counter suffix when already used"""
        product = TestDataFactory.create_product(self.tenant, sku='LAWN-1')
        self.assertEqual(generate_variant_sku(product, 'Sky Blue', 'xl'), 'LAWN-1-SKYBLUE-XL')
        ProductVariant.objects.create(product=product, color='Sky Blue', size='XL', sku='LAWN-1-SKYBLUE-XL')
        self.assertEqual(generate_variant_sku(product, 'sky blue', 'XL'), 'LAWN-1-SKYBLUE-XL-2')
        self.assertEqual(generate_variant_sku(product, 'Red'), 'LAWN-1-RED')

    def test_find_variant(self):
        """Test a blank size only matches a blank size"""
        product = TestDataFactory.create_product(self.tenant)
        red = TestDataFactory.create_variant(product, color='Red')
        self.assertEqual(find_variant(product, 'Red', ''), red)
        self.assertIsNone(find_variant(product, 'Red', 'M'))


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product_generates_sku(self):
        """Test a product without SKU gets one"""
        response = self.client.post('/api/v1/products/', {'name': 'Lawn Suit', 'category': 'Unstitched'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['product']['sku'].startswith('LAWN-'))
        self.assertEqual(Product.objects.get(pk=response.data['product']['id']).tenant, self.tenant)

    def test_duplicate_sku(self):
        """Test SKU is unique within a tenant"""
        TestDataFactory.create_product(self.tenant, sku='LS-1')
        response = self.client.post('/api/v1/products/', {'name': 'Other', 'sku': 'LS-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data)

    def test_list_filters(self):
        """Test search and category filters on the product list"""
        TestDataFactory.create_product(self.tenant, name='Lawn Suit Blue', category='Unstitched')
        TestDataFactory.create_product(self.tenant, name='Lawn Dupatta', category='Accessories')
        TestDataFactory.create_product(self.tenant, name='Silk Shirt', category='Stitched')

        response = self.client.get('/api/v1/products/', {'search': 'lawn blue'})
        self.assertEqual([p['name'] for p in response.data['results']], ['Lawn Suit Blue'])
        response = self.client.get('/api/v1/products/', {'category': 'accessories'})
        self.assertEqual(response.data['count'], 1)

    def test_search_prefix_first(self):
        """Test names starting with the query rank first"""
        TestDataFactory.create_product(self.tenant, name='Printed Lawn')
        TestDataFactory.create_product(self.tenant, name='Lawn Suit')
        response = self.client.get('/api/v1/products/search/lawn/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [p['name'] for p in response.data['products']]
        self.assertEqual(names, ['Lawn Suit', 'Printed Lawn'])
        self.assertIn('last_purchase_price', response.data['products'][0])
        self.assertIn('has_variants', response.data['products'][0])

    def test_search_hides_inactive(self):
        """Test deactivated products are not found by the lookup"""
        product = TestDataFactory.create_product(self.tenant, name='Lawn Suit')
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertFalse(product.is_active)
        response = self.client.get('/api/v1/products/search/lawn/')
        self.assertEqual(response.data['products'], [])

    def test_other_tenant_product_not_found(self):
        """Test products of other tenants are hidden"""
        _, other_tenant = TestDataFactory.create_owner_with_tenant()
        product = TestDataFactory.create_product(other_tenant)
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class ProductVariantAPITests(TestCase):
    """Test variant endpoints"""

    def setUp(self):
        self.user, self.tenant = TestDataFactory.create_owner_with_tenant()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(self.tenant, name='Lawn Suit', sku='LS-1')

    def test_create_variant(self):
        """Test variant SKU is generated and the product is flagged"""
        response = self.client.post(f'/api/v1/products/{self.product.id}/variants/', {'color': 'Red', 'size': 'M'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['variant']['sku'], 'LS-1-RED-M')
        self.product.refresh_from_db()
        self.assertTrue(self.product.has_variants)

        response = self.client.get(f'/api/v1/products/{self.product.id}/variants/')
        self.assertEqual(len(response.data['variants']), 1)

    def test_duplicate_variant(self):
        """Test the same color and size cannot be added twice"""
        TestDataFactory.create_variant(self.product, color='Red', size='M')
        response = self.client.post(f'/api/v1/products/{self.product.id}/variants/', {'color': 'Red', 'size': 'M'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stitched_requires_size(self):
        """Test stitched products need a size on each variant"""
        product = TestDataFactory.create_product(self.tenant, is_stitched=True)
        response = self.client.post(f'/api/v1/products/{product.id}/variants/', {'color': 'Red'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('size', response.data)

    def test_color_required(self):
        response = self.client.post(f'/api/v1/products/{self.product.id}/variants/', {'color': ' '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
