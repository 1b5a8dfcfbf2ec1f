"""
Tests for goods receiving: discrepancy classification, stock updates and reversal
"""
from django.test import TestCase
from rest_framework import status
from shopstock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopstock.catalog.models import Product
from shopstock.receiving.models import GoodsReceiving, GoodsReceivingItem
from shopstock.receiving.services import receive_purchase_order, ReceivingError


class ClassifyTests(TestCase):

    def test_classify(self):
        self.assertEqual(GoodsReceivingItem.classify(5, 3), ('shortage', -2))
        self.assertEqual(GoodsReceivingItem.classify(5, 7), ('overage', 2))
        self.assertEqual(GoodsReceivingItem.classify(5, 5), ('match', 0))


class ReceivingServiceTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(product_code='N152', stock_quantity=1)
        self.order = TestDataFactory.create_purchase_order(user=self.user, status='pending')
        self.item = TestDataFactory.create_purchase_order_item(self.order, product_code='N152', quantity=5)
        self.other = TestDataFactory.create_purchase_order_item(self.order, product_code='N999', quantity=2)

    def test_full_delivery(self):
        receiving = receive_purchase_order(self.order.id, [
            {'purchase_order_item': self.item.id, 'received_quantity': 5},
            {'purchase_order_item': self.other.id, 'received_quantity': 2},
        ], user=self.user)

        self.assertEqual(receiving.status, 'completed')
        self.assertFalse(receiving.has_discrepancy)
        self.assertEqual(receiving.total_items_received, 7)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 6)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'completed')

    def test_unlisted_line_counts_as_shortage(self):
        receiving = receive_purchase_order(self.order.id, [
            {'purchase_order_item': self.item.id, 'received_quantity': 6},
        ])
        self.assertEqual(receiving.status, 'partial')
        self.assertTrue(receiving.has_discrepancy)

        types = dict(receiving.items.values_list('product_code', 'discrepancy_type'))
        self.assertEqual(types, {'N152': 'overage', 'N999': 'shortage'})
        self.order.refresh_from_db()
        self.assertTrue(self.order.has_shortage)

    def test_only_pending_orders(self):
        draft = TestDataFactory.create_purchase_order(status='draft')
        with self.assertRaises(ReceivingError):
            receive_purchase_order(draft.id, [])

    def test_foreign_item_rejected(self):
        other_order = TestDataFactory.create_purchase_order(status='pending')
        foreign = TestDataFactory.create_purchase_order_item(other_order)
        with self.assertRaises(ReceivingError):
            receive_purchase_order(self.order.id, [{'purchase_order_item': foreign.id, 'received_quantity': 1}])
        self.assertFalse(GoodsReceiving.objects.exists())


class ReceivingAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(product_code='N152', stock_quantity=0)
        self.order = TestDataFactory.create_purchase_order(status='pending', supplier_name='A43')
        self.item = TestDataFactory.create_purchase_order_item(self.order, product_code='N152', quantity=4)

    def _receive(self, quantity):
        return self.client.post('/api/v1/goods-receiving/', {
            'purchase_order': self.order.id,
            'notes': 'box dented',
            'items': [{'purchase_order_item': self.item.id, 'received_quantity': quantity,
                       'product_condition': 'damaged'}],
        }, format='json')

    def test_create_and_list(self):
        response = self._receive(3)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'partial')
        self.assertEqual(response.data['supplier_name'], 'A43')
        self.assertEqual(response.data['items'][0]['product_condition'], 'damaged')
        self.assertEqual(response.data['received_by'], self.user.id)

        listing = self.client.get('/api/v1/goods-receiving/', {'purchase_order': self.order.id})
        self.assertEqual(len(listing.data), 1)

    def test_second_receiving_rejected(self):
        self._receive(4)
        response = self._receive(4)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_negative_quantity_rejected(self):
        response = self._receive(-1)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_item_rejected(self):
        response = self.client.post('/api/v1/goods-receiving/', {
            'purchase_order': self.order.id,
            'items': [
                {'purchase_order_item': self.item.id, 'received_quantity': 1},
                {'purchase_order_item': self.item.id, 'received_quantity': 1},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_reverses_stock_and_reopens_order(self):
        receiving_id = self._receive(4).data['id']
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 4)

        response = self.client.delete(f'/api/v1/goods-receiving/{receiving_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 0)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, 'pending')
        self.assertFalse(Product.objects.filter(stock_quantity__lt=0).exists())
