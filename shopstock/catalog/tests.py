"""
Tests for the catalogue: variant string helpers, products and attributes
"""
from decimal import Decimal
from django.test import TestCase
from django.core.cache import cache
from rest_framework import status
from shopstock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopstock.core.models import ActivityLog
from shopstock.catalog.models import Product, ProductAttribute, ProductAttributeValue
from shopstock.catalog import variants


class VariantHelperTests(TestCase):

    def test_parse_variant(self):
        self.assertEqual(variants.parse_variant('Size M - N152'), ('Size M', 'N152'))
        self.assertEqual(variants.parse_variant('2-in-1 - N152'), ('2-in-1', 'N152'))
        self.assertEqual(variants.parse_variant('- N152'), ('', 'N152'))
        self.assertEqual(variants.parse_variant('Size M'), ('Size M', ''))
        self.assertEqual(variants.parse_variant('   '), ('', ''))

    def test_format_variant(self):
        self.assertEqual(variants.format_variant('Size M', 'N152'), 'Size M - N152')
        self.assertEqual(variants.format_variant('', 'N152'), '- N152')
        self.assertEqual(variants.format_variant('', ''), '')

    def test_format_from_attribute_values(self):
        values = [
            {'AttributeName': 'Size Số', 'Name': '1'},
            {'AttributeName': 'Size Số', 'Name': '2'},
            {'AttributeName': 'Màu', 'Name': 'Nude'},
        ]
        self.assertEqual(variants.format_variant_from_attribute_values(values, is_parent=True), '(1 | 2) (Nude)')
        self.assertEqual(variants.format_variant_from_attribute_values(values), '1, 2 Nude')
        self.assertEqual(variants.format_variant_from_attribute_values([]), '')

    def test_format_from_attribute_lines_skips_unnamed_and_duplicates(self):
        lines = [
            {'Values': [
                {'AttributeName': 'Màu', 'Name': 'Cam'},
                {'AttributeName': 'Màu', 'Name': 'Cam'},
                {'AttributeName': '', 'Name': 'X'},
            ]},
            {'Values': [{'AttributeName': 'Size', 'Name': 'Size M'}]},
        ]
        self.assertEqual(variants.format_variant_from_attribute_lines(lines), '(Cam) (Size M)')

    def test_format_for_display(self):
        self.assertEqual(variants.format_variant_for_display('(1 | 2) (Nude | Nâu)'), '1 | 2 | Nude | Nâu')
        self.assertEqual(variants.format_variant_for_display('Size M - N152'), 'Size M - N152')

    def test_parse_parent_variant_groups_by_position(self):
        product_variants = [
            {'Name': 'NTEST (29, S, Trắng)'},
            {'Name': 'NTEST (30, M, Đen)'},
            {'Name': 'NTEST (29, M, Trắng)'},
        ]
        self.assertEqual(variants.parse_parent_variant(product_variants), '(29 | 30) (S | M) (Trắng | Đen)')
        self.assertEqual(variants.parse_parent_variant([]), '')

    def test_parse_child_variant_takes_last_group(self):
        self.assertEqual(variants.parse_child_variant('NTEST (FULLBOX) (35)'), '35')
        self.assertEqual(variants.parse_child_variant('NTEST (29, S, Trắng)'), '29, S, Trắng')
        self.assertEqual(variants.parse_child_variant('NTEST'), '')

    def test_variants_match_ignores_case_accents_and_order(self):
        self.assertTrue(variants.variants_match('CÀ PHÊ, 2, M', '2, Cà Phê, M'))
        self.assertTrue(variants.variants_match('(Đỏ) | S', 's, do'))
        self.assertFalse(variants.variants_match('Đỏ, S', 'Đỏ, M'))
        self.assertFalse(variants.variants_match('', 'S'))


class ProductAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product_defaults_base_code(self):
        response = self.client.post('/api/v1/products/', {
            'product_code': 'N152',
            'product_name': 'SET ÁO',
            'selling_price': '250000',
            'purchase_price': '120000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['base_product_code'], 'N152')
        self.assertTrue(response.data['is_base_product'])
        self.assertTrue(ActivityLog.objects.filter(table_name='products', action='insert').exists())

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/products/', {
            'product_code': 'N153', 'product_name': 'X', 'selling_price': '-1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_code_rejected(self):
        TestDataFactory.create_product(product_code='N152')
        response = self.client.post('/api/v1/products/', {'product_code': 'N152', 'product_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_paginated(self):
        for index in range(3):
            TestDataFactory.create_product(product_code=f'C{index}')
        response = self.client.get('/api/v1/products/', {'limit': 2})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)
        self.assertIsNone(response.data['previous'])

    def test_multi_word_search(self):
        TestDataFactory.create_product(product_code='N1', product_name='SET ÁO TD', variant='Cam')
        TestDataFactory.create_product(product_code='N2', product_name='SET QUẦN', variant='Đỏ')
        response = self.client.get('/api/v1/products/', {'search': 'set cam'})
        self.assertEqual([row['product_code'] for row in response.data['results']], ['N1'])

    def test_base_only_and_supplier_filters(self):
        TestDataFactory.create_product(product_code='NP', supplier_name='A43')
        TestDataFactory.create_product(product_code='NP1', base_product_code='NP', supplier_name='A43')
        TestDataFactory.create_product(product_code='OTHER', supplier_name='B12')

        response = self.client.get('/api/v1/products/', {'base_only': 'true', 'supplier': 'a43'})
        self.assertEqual([row['product_code'] for row in response.data['results']], ['NP'])

    def test_list_served_from_cache(self):
        TestDataFactory.create_product(product_code='FIRST')
        first = self.client.get('/api/v1/products/')
        self.assertEqual(first.data['count'], 1)

        # Created outside a committed transaction, so nothing invalidates the cache
        TestDataFactory.create_product(product_code='SECOND')
        second = self.client.get('/api/v1/products/')
        self.assertEqual(second.data['count'], 1)

    def test_update_logs_changes(self):
        product = TestDataFactory.create_product(product_code='N9')
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'stock_quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = ActivityLog.objects.get(table_name='products', action='update')
        self.assertEqual(log.changes['stock_quantity'], {'old': 0, 'new': 4})

    def test_variants_endpoint(self):
        parent = TestDataFactory.create_product(product_code='NP', variant='(S | M)')
        TestDataFactory.create_product(product_code='NPS', base_product_code='NP', variant='S')
        TestDataFactory.create_product(product_code='NPM', base_product_code='NP', variant='M')

        response = self.client.get(f'/api/v1/products/{parent.id}/variants/')
        self.assertEqual(response.data['count'], 2)
        self.assertEqual([row['product_code'] for row in response.data['variants']], ['NPM', 'NPS'])

    def test_supplier_stats(self):
        TestDataFactory.create_product(product_code='A', supplier_name='A43', stock_quantity=3)
        TestDataFactory.create_product(product_code='B', supplier_name='A43', stock_quantity=2)
        TestDataFactory.create_product(product_code='C')
        response = self.client.get('/api/v1/products/supplier-stats/')
        self.assertEqual(response.data, [{'supplier_name': 'A43', 'product_count': 2, 'total_stock': 5}])

    def test_delete_product(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.pk).exists())


class AttributeAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_attribute_assigns_next_display_order(self):
        TestDataFactory.create_attribute(name='Màu', display_order=4)
        response = self.client.post('/api/v1/product-attributes/', {'name': ' Size Chữ '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Size Chữ')
        self.assertEqual(response.data['display_order'], 5)

    def test_add_values_and_reject_duplicate(self):
        attribute = TestDataFactory.create_attribute(name='Màu')
        url = f'/api/v1/product-attributes/{attribute.id}/values/'

        first = self.client.post(url, {'value': 'Đỏ'}, format='json')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(first.data['display_order'], 1)

        second = self.client.post(url, {'value': 'Xanh'}, format='json')
        self.assertEqual(second.data['display_order'], 2)

        duplicate = self.client.post(url, {'value': 'Đỏ'}, format='json')
        self.assertEqual(duplicate.status_code, status.HTTP_400_BAD_REQUEST)

    def test_active_only_values(self):
        attribute = TestDataFactory.create_attribute(name='Màu')
        TestDataFactory.create_attribute_value(attribute, value='Đỏ')
        hidden = TestDataFactory.create_attribute_value(attribute, value='Tím')
        hidden.is_active = False
        hidden.save()

        response = self.client.get(f'/api/v1/product-attributes/{attribute.id}/values/', {'active_only': 'true'})
        self.assertEqual([row['value'] for row in response.data], ['Đỏ'])

    def test_delete_attribute_removes_values(self):
        attribute = TestDataFactory.create_attribute(name='Màu')
        TestDataFactory.create_attribute_value(attribute, value='Đỏ')
        response = self.client.delete(f'/api/v1/product-attributes/{attribute.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(ProductAttributeValue.objects.count(), 0)

    def test_import_creates_missing_and_skips_existing(self):
        color = TestDataFactory.create_attribute(name='Màu')
        TestDataFactory.create_attribute_value(color, value='Đỏ', display_order=1)

        response = self.client.post('/api/v1/product-attributes/import/', {
            'attributes': {
                'Màu': ['Đỏ', 'Xanh', ' '],
                'Size Chữ': ['S', 'M', 'S'],
            }
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data, {'created_attributes': 1, 'created_values': 3, 'skipped_values': 3})
        self.assertEqual(
            list(ProductAttribute.objects.get(name='Size Chữ').values.order_by('display_order').values_list('value', flat=True)),
            ['S', 'M'],
        )

    def test_import_rejects_non_list_values(self):
        response = self.client.post('/api/v1/product-attributes/import/', {'attributes': {'Màu': 'Đỏ'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
