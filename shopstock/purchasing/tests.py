"""
Test suite for the purchasing module
Tests: purchase order creation, totals, status transitions, stats and sync status
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from shopstock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopstock.purchasing.models import PurchaseOrder, PurchaseOrderItem


class PurchaseOrderModelTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_recalculate_totals(self):
        order = TestDataFactory.create_purchase_order(
            user=self.user, discount_amount=Decimal('50000'), shipping_fee=Decimal('30000')
        )
        TestDataFactory.create_purchase_order_item(order, quantity=2, purchase_price=Decimal('100000'))
        TestDataFactory.create_purchase_order_item(order, quantity=3, purchase_price=Decimal('50000'))

        self.assertEqual(order.recalculate_totals(), Decimal('330000'))
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('350000'))
        self.assertEqual(order.final_amount, Decimal('330000'))

    def test_transitions(self):
        order = TestDataFactory.create_purchase_order()
        self.assertTrue(order.can_transition_to('awaiting_export'))
        self.assertTrue(order.can_transition_to('cancelled'))
        self.assertFalse(order.can_transition_to('completed'))

        order.status = 'completed'
        self.assertFalse(order.can_transition_to('cancelled'))

    def test_no_shortage_without_receiving(self):
        order = TestDataFactory.create_purchase_order()
        self.assertFalse(order.has_shortage)


class PurchaseOrderAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _create(self, **overrides):
        data = {
            'supplier_name': 'A43',
            'discount_amount': '10000',
            'shipping_fee': '20000',
            'items': [
                {'product_code': 'N152', 'product_name': 'SET ÁO', 'quantity': 2,
                 'purchase_price': '100000', 'selling_price': '200000',
                 'selected_attribute_value_ids': [3, 1]},
                {'product_code': 'N153', 'product_name': 'QUẦN', 'quantity': 1,
                 'purchase_price': '50000', 'selling_price': '90000', 'tpos_product_id': 777},
            ],
        }
        data.update(overrides)
        return self.client.post('/api/v1/purchase-orders/', data, format='json')

    def test_create_with_items(self):
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['item_count'], 2)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('250000'))
        self.assertEqual(Decimal(response.data['final_amount']), Decimal('260000'))
        self.assertEqual(response.data['created_by'], self.user.id)

        items = response.data['items']
        self.assertEqual([item['position'] for item in items], [1, 2])
        # Lines already linked to TPOS need no product creation
        self.assertEqual([item['tpos_sync_status'] for item in items], ['pending', 'success'])

    def test_create_rejects_zero_quantity(self):
        response = self._create(items=[{'product_code': 'X', 'product_name': 'X', 'quantity': 0}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_create_rejects_negative_discount(self):
        response = self._create(discount_amount='-1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_items(self):
        order_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/purchase-orders/{order_id}/', {
            'items': [{'product_code': 'N200', 'product_name': 'NEW', 'quantity': 4, 'purchase_price': '10000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['product_code'] for item in response.data['items']], ['N200'])
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('40000'))

    def test_patch_without_items_keeps_them(self):
        order_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/purchase-orders/{order_id}/', {'notes': 'call first'}, format='json')
        self.assertEqual(response.data['item_count'], 2)

    def test_completed_order_cannot_be_edited(self):
        order = TestDataFactory.create_purchase_order(status='completed')
        response = self.client.patch(f'/api/v1/purchase-orders/{order.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_flow(self):
        order_id = self._create().data['id']

        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/submit/')
        self.assertEqual(response.data['status'], 'awaiting_export')

        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/mark-exported/')
        self.assertEqual(response.data['status'], 'pending')

        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(f'/api/v1/purchase-orders/{order_id}/cancel/')
        self.assertEqual(response.data['status'], 'cancelled')

    def test_list_filters_and_pagination(self):
        TestDataFactory.create_purchase_order(supplier_name='A43', status='pending')
        TestDataFactory.create_purchase_order(supplier_name='B12', status='pending')
        TestDataFactory.create_purchase_order(supplier_name='A43', status='draft')

        response = self.client.get('/api/v1/purchase-orders/', {'status': 'pending', 'supplier': 'a4'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/purchase-orders/', {'limit': 2})
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['page_size'], 2)

    def test_search_by_item_code(self):
        self._create()
        TestDataFactory.create_purchase_order(supplier_name='ZZ')
        response = self.client.get('/api/v1/purchase-orders/', {'search': 'N153'})
        self.assertEqual(response.data['count'], 1)

    def test_stats_exclude_drafts(self):
        TestDataFactory.create_purchase_order(status='draft')
        pending = TestDataFactory.create_purchase_order(status='pending')
        TestDataFactory.create_purchase_order_item(pending, quantity=1, purchase_price=Decimal('100000'))
        pending.recalculate_totals()

        response = self.client.get('/api/v1/purchase-orders/stats/')
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['total_amount'], 100000.0)
        self.assertEqual(response.data['today_orders'], 1)
        self.assertEqual(response.data['by_status'], {'pending': 1})

    def test_sync_status(self):
        order = TestDataFactory.create_purchase_order()
        TestDataFactory.create_purchase_order_item(order, tpos_sync_status='success')
        failed = TestDataFactory.create_purchase_order_item(order, tpos_sync_status='failed')
        PurchaseOrderItem.objects.filter(pk=failed.pk).update(tpos_sync_error='TPOS API error 500')

        response = self.client.get(f'/api/v1/purchase-orders/{order.id}/sync-status/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['counts'], {'pending': 0, 'processing': 0, 'success': 1, 'failed': 1})
        self.assertTrue(response.data['is_complete'])
        self.assertEqual(response.data['errors'][0]['item_id'], failed.id)

    def test_delete_cascades_items(self):
        order_id = self._create().data['id']
        response = self.client.delete(f'/api/v1/purchase-orders/{order_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrder.objects.exists())
        self.assertFalse(PurchaseOrderItem.objects.exists())
