"""
Tests for the TPOS integration. Every HTTP call is mocked.
"""
import json
from io import StringIO
from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

import requests
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework import status

from shopstock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopstock.core.models import ActivityLog
from shopstock.catalog.models import Product
from shopstock.purchasing.models import PurchaseOrder, PurchaseOrderItem
from shopstock.tpos import (
    attribute_sync, order_details, order_sync, product_sync, quantity_transfer, variant_converter, variant_creation,
)
from shopstock.tpos.client import TPOSClient, get_active_credential, clean_base64
from shopstock.tpos.exceptions import (
    TPOSAPIError, TPOSCredentialsNotFound, TPOSPayloadError, TPOSValidationError,
)
from shopstock.tpos.models import TPOSCredential


def fake_response(status_code=200, data=None, text=None):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if data is not None:
        body = json.dumps(data)
        response.json.return_value = data
    else:
        body = text or ''
        response.json.side_effect = ValueError('No JSON object could be decoded')
    response.text = body
    response.content = body.encode()
    return response


def make_client(*responses, credential=None):
    """TPOSClient whose session returns ``responses`` in order"""
    session = mock.Mock()
    session.request.side_effect = list(responses)
    credential = credential or TestDataFactory.create_tpos_credential()
    return TPOSClient(credential=credential, session=session), session


def sent_payload(session, call_index=0):
    return json.loads(session.request.call_args_list[call_index].kwargs['data'])


class ClientTests(TestCase):

    def test_active_credential_is_newest_with_token(self):
        TestDataFactory.create_tpos_credential(name='old', bearer_token='old-token')
        newest = TestDataFactory.create_tpos_credential(name='new', bearer_token='new-token')
        TestDataFactory.create_tpos_credential(name='empty', bearer_token=None)
        TestDataFactory.create_tpos_credential(name='fb', token_type='facebook')
        self.assertEqual(get_active_credential(), newest)

    def test_missing_credential(self):
        with self.assertRaises(TPOSCredentialsNotFound):
            get_active_credential()

    def test_headers(self):
        client, _ = make_client()
        headers = client.headers()
        self.assertEqual(headers['authorization'], 'Bearer token-123')
        self.assertEqual(headers['x-tpos-lang'], 'vi')
        self.assertNotEqual(client.headers()['x-request-id'], headers['x-request-id'])

    def test_401_refreshes_token_and_retries(self):
        client, session = make_client(fake_response(401, text='expired'), fake_response(200, {'ok': True}))
        session.post.return_value = fake_response(200, {'access_token': 'fresh-token'})

        self.assertEqual(client.get('/odata/Anything'), {'ok': True})

        token_request = session.post.call_args
        self.assertEqual(token_request.kwargs['data']['grant_type'], 'password')
        self.assertEqual(token_request.kwargs['data']['username'], 'shop')
        retried_headers = session.request.call_args_list[1].kwargs['headers']
        self.assertEqual(retried_headers['authorization'], 'Bearer fresh-token')
        self.assertEqual(TPOSCredential.objects.get().bearer_token, 'fresh-token')

    def test_second_401_raises(self):
        client, session = make_client(fake_response(401, text='expired'), fake_response(401, text='still'))
        session.post.return_value = fake_response(200, {'access_token': 'fresh-token'})
        with self.assertRaises(TPOSAPIError) as ctx:
            client.get('/odata/Anything')
        self.assertEqual(ctx.exception.status_code, 401)

    def test_error_status_raises(self):
        client, _ = make_client(fake_response(500, text='boom'))
        with self.assertRaises(TPOSAPIError) as ctx:
            client.post('/odata/Anything', {'a': 1})
        self.assertEqual(ctx.exception.body, 'boom')

    def test_clean_base64(self):
        self.assertEqual(clean_base64('data:image/png;base64,AB C\nD'), 'ABCD')
        self.assertIsNone(clean_base64(''))


TEMPLATE_ROWS = [
    {'Id': 0, 'Product': {'Id': 101}, 'NewQuantity': 5, 'LocationId': 1},
    {'Id': 0, 'Product': {'Id': 102}, 'NewQuantity': 3, 'LocationId': 1},
    {'Id': 0, 'Product': {'Id': 103}, 'NewQuantity': 0, 'LocationId': 1},
]


class QuantityTransferTests(TestCase):

    def test_apply_changes(self):
        rows = quantity_transfer.apply_changes(TEMPLATE_ROWS, {101: 4, '102': 4})
        self.assertEqual([row['LocationId'] for row in rows], [12, 12, 12])
        self.assertEqual([row['NewQuantity'] for row in rows], [4, 4, 0])
        self.assertEqual(TEMPLATE_ROWS[0]['NewQuantity'], 5)

    def test_plan_transfer(self):
        source = {'id': 101, 'quantity': 5}
        target = {'id': 102, 'quantity': 3}
        self.assertEqual(quantity_transfer.plan_quantity_transfer(source, target, 2), {101: 3, 102: 5})
        self.assertEqual(quantity_transfer.plan_quantity_transfer(source, target, -3), {101: 8, 102: 0})
        self.assertEqual(quantity_transfer.plan_quantity_transfer(source, target, 0), {})

    def test_plan_transfer_rejects_negative_result(self):
        with self.assertRaises(ValueError):
            quantity_transfer.plan_quantity_transfer({'id': 1, 'quantity': 1}, {'id': 2, 'quantity': 0}, 2)
        with self.assertRaises(ValueError):
            quantity_transfer.plan_quantity_transfer({'id': 1, 'quantity': 1}, {'id': 1, 'quantity': 1}, 1)

    def test_three_steps(self):
        client, session = make_client(
            fake_response(200, {'value': TEMPLATE_ROWS}),
            fake_response(200, {'value': [{'Id': 9001}, {'Id': 9002}]}),
            fake_response(204),
        )
        result = quantity_transfer.transfer_quantities(555, {101: 3, 102: 5}, client)

        self.assertEqual(result['success'], True)
        self.assertEqual(result['ids'], [9001, 9002])
        self.assertEqual(result['status'], 204)
        self.assertEqual(sent_payload(session, 0), {'model': {'ProductTmplId': 555}})
        posted_rows = sent_payload(session, 1)['model']
        self.assertEqual([row['NewQuantity'] for row in posted_rows], [3, 5, 0])
        self.assertIn('PostChangeQtyProduct', session.request.call_args_list[1].args[1])
        self.assertEqual(sent_payload(session, 2), {'ids': [9001, 9002]})

    def test_no_changes_makes_no_calls(self):
        client, session = make_client()
        result = quantity_transfer.transfer_quantities(555, {}, client)
        self.assertEqual(result['ids'], [])
        session.request.assert_not_called()

    def test_empty_template(self):
        client, _ = make_client(fake_response(200, {'value': []}))
        with self.assertRaises(TPOSPayloadError):
            quantity_transfer.get_template(555, client)

    def test_empty_post_result(self):
        client, _ = make_client(fake_response(200, {'value': []}))
        with self.assertRaises(TPOSPayloadError):
            quantity_transfer.post_changed_quantities(TEMPLATE_ROWS, client)

    def test_execute_non_json_body_is_success(self):
        client, _ = make_client(fake_response(200, text='OK'))
        result = quantity_transfer.execute_change([1], client)
        self.assertEqual(result, {'success': True, 'ids': [1], 'status': 200})


class ParsePriceTests(TestCase):

    def test_parse_price(self):
        self.assertEqual(variant_creation.parse_price('1.5'), 1500)
        self.assertEqual(variant_creation.parse_price('1,5'), 1500)
        self.assertEqual(variant_creation.parse_price('210'), 210000)
        self.assertEqual(variant_creation.parse_price(1.5), 1500)
        self.assertEqual(variant_creation.parse_price(Decimal('0.25')), 250)
        self.assertEqual(variant_creation.parse_price('abc'), 0)
        self.assertEqual(variant_creation.parse_price(None), 0)

    def test_only_leading_number_counts(self):
        self.assertEqual(variant_creation.parse_price('12abc'), 12000)
        self.assertEqual(variant_creation.parse_price('1.234,5'), 1234)
        self.assertEqual(variant_creation.parse_price(' 7 '), 7000)


class ImageFetchTests(TestCase):

    @mock.patch('shopstock.tpos.variant_creation.time.sleep')
    @mock.patch('shopstock.tpos.variant_creation.requests.get')
    def test_retries_then_encodes(self, mock_get, mock_sleep):
        ok = mock.Mock(ok=True, content=b'abc', status_code=200)
        mock_get.side_effect = [requests.ConnectionError('reset'), ok]
        self.assertEqual(variant_creation.image_url_to_base64('http://img/1.jpg'), 'YWJj')
        mock_sleep.assert_called_once_with(1)

    @mock.patch('shopstock.tpos.variant_creation.time.sleep')
    @mock.patch('shopstock.tpos.variant_creation.requests.get')
    def test_gives_up(self, mock_get, mock_sleep):
        mock_get.return_value = mock.Mock(ok=False, content=b'', status_code=404)
        self.assertIsNone(variant_creation.image_url_to_base64('http://img/1.jpg'))
        self.assertEqual(mock_get.call_count, 2)


class VariantCreationTests(TestCase):

    def setUp(self):
        color = TestDataFactory.create_attribute(name='Màu', display_order=1)
        size = TestDataFactory.create_attribute(name='Size Chữ', display_order=2)
        self.red = TestDataFactory.create_attribute_value(color, value='Đỏ', tpos_id=31, tpos_attribute_id=3)
        self.blue = TestDataFactory.create_attribute_value(color, value='Xanh', tpos_id=32, tpos_attribute_id=3)
        self.small = TestDataFactory.create_attribute_value(size, value='S', tpos_id=11, tpos_attribute_id=1)

    def test_simple_product(self):
        client = mock.Mock()
        client.post.return_value = {
            'Id': 900, 'DefaultCode': 'N152', 'Name': 'SET ÁO', 'ListPrice': 200000,
            'PurchasePrice': 100000, 'ProductVariants': [],
        }
        result = variant_creation.create_variants_from_order('N152', 'SET ÁO', '100', '200', client=client)

        payload = client.post.call_args.args[1]
        self.assertEqual(payload['ListPrice'], 200000)
        self.assertEqual(payload['PurchasePrice'], 100000)
        self.assertEqual(payload['ProductVariants'], [])
        self.assertEqual(result['data']['database'], {'parent_saved': 1, 'children_saved': 0})

        product = Product.objects.get(product_code='N152')
        self.assertEqual(product.tpos_product_id, 900)
        self.assertEqual(product.selling_price, Decimal('200000'))

    def test_product_with_variants(self):
        client = mock.Mock()
        client.post.return_value = {
            'Id': 901, 'DefaultCode': 'N160', 'Name': 'ĐẦM', 'ListPrice': 250000, 'PurchasePrice': 120000,
            'ProductVariants': [
                {'Id': 5001, 'DefaultCode': 'N160D', 'ProductTmplId': 901, 'Name': 'N160 (S, Đỏ)', 'PriceVariant': 250000},
                {'Id': 5002, 'DefaultCode': 'N160X', 'ProductTmplId': 901, 'Name': 'N160 (S, Xanh)', 'PriceVariant': 260000},
            ],
        }
        result = variant_creation.create_variants_from_order(
            'N160', 'ĐẦM', '120', '250',
            selected_attribute_value_ids=[self.small.id, self.blue.id, self.red.id],
            supplier_name='A43', client=client,
        )

        payload = client.post.call_args.args[1]
        self.assertEqual([line['Attribute']['Name'] for line in payload['AttributeLines']], ['Màu', 'Size Chữ'])
        self.assertEqual(payload['AttributeLines'][0]['AttributeId'], 3)
        # Colours keep selection order; names list the last attribute first
        self.assertEqual([v['Name'] for v in payload['ProductVariants']], ['N160 (S, Xanh)', 'N160 (S, Đỏ)'])
        self.assertEqual([v['Name'] for v in payload['ProductVariants'][0]['AttributeValues']], ['Xanh', 'S'])
        self.assertEqual(payload['ProductVariantCount'], 2)

        self.assertEqual(result['variant_count'], 2)
        parent = Product.objects.get(product_code='N160')
        self.assertEqual(parent.variant, '(S) (Đỏ | Xanh)')
        child = Product.objects.get(product_code='N160X')
        self.assertEqual(child.variant, 'S, Xanh')
        self.assertEqual(child.base_product_code, 'N160')
        self.assertEqual(child.productid_bienthe, 5002)
        self.assertEqual(child.selling_price, Decimal('260000'))
        self.assertEqual(child.purchase_price, Decimal('120000'))
        self.assertEqual(child.supplier_name, 'A43')

    def test_existing_product_is_success(self):
        client = mock.Mock()
        client.post.side_effect = TPOSAPIError(400, '{"message": "Mã sản phẩm đã tồn tại"}')
        result = variant_creation.create_variants_from_order(
            'N152', 'SET ÁO', '100', '200', selected_attribute_value_ids=[self.red.id], client=client
        )
        self.assertTrue(result['already_exists'])
        self.assertEqual(result['variant_count'], 1)
        self.assertFalse(Product.objects.exists())

    def test_other_errors_propagate(self):
        client = mock.Mock()
        client.post.side_effect = TPOSAPIError(500, 'boom')
        with self.assertRaises(TPOSAPIError):
            variant_creation.create_variants_from_order('N152', 'SET ÁO', '100', '200', client=client)

    def test_empty_insert_response_saves_nothing(self):
        client = mock.Mock()
        for response in (None, {}, {'Id': 900}):
            client.post.return_value = response
            with self.assertRaises(TPOSPayloadError):
                variant_creation.create_variants_from_order('N152', 'SET ÁO', '100', '200', client=client)
        self.assertFalse(Product.objects.exists())

    def test_prices_must_be_positive(self):
        with self.assertRaises(TPOSValidationError):
            variant_creation.create_variants_from_order('N152', 'SET ÁO', '0', '200', client=mock.Mock())

    def test_unsynced_attribute_value_rejected(self):
        color = self.red.attribute
        local_only = TestDataFactory.create_attribute_value(color, value='Tím')
        with self.assertRaises(TPOSValidationError):
            variant_creation.create_variants_from_order(
                'N152', 'SET ÁO', '100', '200', selected_attribute_value_ids=[local_only.id], client=mock.Mock()
            )


def created(product_id=900):
    return {'success': True, 'data': {'tpos': {'product_id': product_id}}}


@override_settings(TPOS_SYNC_MAX_CONCURRENT=1, TPOS_SYNC_MAX_RETRIES=2, TPOS_RATE_LIMIT_BACKOFF_SECONDS=2)
class OrderSyncTests(TestCase):

    def setUp(self):
        self.order = TestDataFactory.create_purchase_order(supplier_name=' a43 ', status='pending')

    def _item(self, code, ids=None, **kwargs):
        return TestDataFactory.create_purchase_order_item(
            self.order, product_code=code, selected_attribute_value_ids=ids or [], **kwargs
        )

    def test_group_key_sorts_ids(self):
        first = self._item('N1', [2, 1])
        second = self._item('N1', [1, 2])
        self.assertEqual(order_sync.group_key(first), order_sync.group_key(second))
        self.assertEqual(order_sync.group_key(first), 'N1|1,2')

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_groups_created_once(self, mock_create):
        mock_create.return_value = created()
        first = self._item(' n1 ', [2, 1], product_name='set áo', purchase_price=Decimal('150000'))
        second = self._item(' n1 ', [1, 2])
        third = self._item('N2')
        self._item('N3', tpos_product_id=42, tpos_sync_status='success')

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary, {'success': True, 'total': 3, 'succeeded': 3, 'failed': 0, 'errors': []})
        self.assertEqual(mock_create.call_count, 2)
        kwargs = mock_create.call_args_list[0].kwargs
        self.assertEqual(kwargs['base_product_code'], 'N1')
        self.assertEqual(kwargs['product_name'], 'SET ÁO')
        self.assertEqual(kwargs['purchase_price'], 150.0)
        self.assertEqual(kwargs['supplier_name'], 'A43')
        self.assertEqual(kwargs['selected_attribute_value_ids'], [2, 1])

        for item in (first, second, third):
            item.refresh_from_db()
            self.assertEqual(item.tpos_sync_status, 'success')
            self.assertEqual(item.tpos_product_id, 900)
            self.assertIsNotNone(item.tpos_sync_completed_at)

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_failed_group_marks_every_item(self, mock_create):
        mock_create.side_effect = TPOSAPIError(500, 'server down')
        first = self._item('N1')
        second = self._item('N1')

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary['failed'], 2)
        self.assertEqual(mock_create.call_count, 2)
        self.assertEqual({error['id'] for error in summary['errors']}, {first.id, second.id})
        for item in (first, second):
            item.refresh_from_db()
            self.assertEqual(item.tpos_sync_status, 'failed')
            self.assertIn('500', item.tpos_sync_error)

    @mock.patch('shopstock.tpos.order_sync.time.sleep')
    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_rate_limit_backs_off(self, mock_create, mock_sleep):
        mock_create.side_effect = [TPOSAPIError(429, 'Too Many Requests'), created()]
        item = self._item('N1')

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary['succeeded'], 1)
        mock_sleep.assert_called_once_with(2)
        item.refresh_from_db()
        self.assertEqual(item.tpos_sync_status, 'success')
        self.assertIsNone(item.tpos_sync_error)

    @mock.patch('shopstock.tpos.order_sync.time.sleep')
    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_other_errors_retry_without_backoff(self, mock_create, mock_sleep):
        mock_create.side_effect = [TPOSAPIError(500, 'server down'), created()]
        item = self._item('N1')

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary['succeeded'], 1)
        self.assertEqual(mock_create.call_count, 2)
        mock_sleep.assert_not_called()
        item.refresh_from_db()
        self.assertEqual(item.tpos_sync_status, 'success')

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_already_existing_product_is_success_without_id(self, mock_create):
        mock_create.return_value = {
            'success': True, 'already_exists': True, 'product_code': 'N1', 'variant_count': 0,
            'message': 'Product N1 already exists on TPOS',
        }
        item = self._item('N1')

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary['succeeded'], 1)
        item.refresh_from_db()
        self.assertEqual(item.tpos_sync_status, 'success')
        self.assertIsNone(item.tpos_product_id)

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_failed_items_are_retried(self, mock_create):
        mock_create.return_value = created()
        item = self._item('N1', tpos_sync_status='failed')
        summary = order_sync.process_purchase_order(self.order.id)
        self.assertEqual(summary['succeeded'], 1)
        item.refresh_from_db()
        self.assertEqual(item.tpos_sync_status, 'success')

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_processing_group_is_skipped(self, mock_create):
        item = self._item('N1', tpos_sync_status='processing')
        result = order_sync.process_group(self.order, [item])
        self.assertEqual(result['locked'], [])
        mock_create.assert_not_called()

    def test_release_stuck_items(self):
        stuck = self._item('N1', tpos_sync_status='processing')
        fresh = self._item('N2', tpos_sync_status='processing')
        PurchaseOrderItem.objects.filter(pk=stuck.pk).update(tpos_sync_started_at=timezone.now() - timedelta(minutes=10))
        PurchaseOrderItem.objects.filter(pk=fresh.pk).update(tpos_sync_started_at=timezone.now())

        self.assertEqual(order_sync.release_stuck_items(self.order.id), 1)
        stuck.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stuck.tpos_sync_status, 'failed')
        self.assertIn('Timeout', stuck.tpos_sync_error)
        self.assertEqual(fresh.tpos_sync_status, 'processing')

    def test_nothing_to_do(self):
        self._item('N1', tpos_product_id=1, tpos_sync_status='success')
        summary = order_sync.process_purchase_order(self.order.id)
        self.assertEqual(summary['total'], 0)

    def test_missing_order(self):
        with self.assertRaises(PurchaseOrder.DoesNotExist):
            order_sync.process_purchase_order(999999)


@override_settings(TPOS_SYNC_MAX_CONCURRENT=3, TPOS_SYNC_MAX_RETRIES=2)
class ConcurrentOrderSyncTests(TestCase):
    """Groups run in thread pools of at most TPOS_SYNC_MAX_CONCURRENT workers"""

    def setUp(self):
        self.order = TestDataFactory.create_purchase_order(status='pending')

    @mock.patch('shopstock.tpos.order_sync.close_old_connections')
    @mock.patch('shopstock.tpos.order_sync.ThreadPoolExecutor')
    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_groups_run_in_bounded_pools(self, mock_create, mock_executor, mock_close):
        # Run the pool inline so every group shares the test transaction
        pool = mock_executor.return_value.__enter__.return_value
        pool.map.side_effect = lambda fn, groups: [fn(group) for group in groups]
        mock_create.side_effect = lambda **kwargs: created(len(kwargs['base_product_code']))

        items = [
            TestDataFactory.create_purchase_order_item(self.order, product_code=code)
            for code in ('N1', 'N1', 'N22', 'N333', 'N4444')
        ]

        summary = order_sync.process_purchase_order(self.order.id)

        self.assertEqual(summary['succeeded'], 5)
        self.assertEqual(mock_create.call_count, 4)
        self.assertEqual([c.kwargs['max_workers'] for c in mock_executor.call_args_list], [3, 1])
        self.assertEqual(mock_close.call_count, 4)
        for item in items:
            item.refresh_from_db()
            self.assertEqual(item.tpos_sync_status, 'success')
            self.assertEqual(item.tpos_product_id, len(item.product_code))


@override_settings(TPOS_SYNC_MAX_CONCURRENT=3, TPOS_SYNC_MAX_RETRIES=2)
class ThreadedOrderSyncTests(TransactionTestCase):

    @mock.patch('shopstock.tpos.order_sync.create_variants_from_order')
    def test_groups_in_worker_threads(self, mock_create):
        mock_create.return_value = created()
        order = TestDataFactory.create_purchase_order(status='pending')
        items = [
            TestDataFactory.create_purchase_order_item(order, product_code=code)
            for code in ('N1', 'N1', 'N2', 'N3')
        ]

        summary = order_sync.process_purchase_order(order.id)

        self.assertEqual(summary['succeeded'], 4)
        self.assertEqual(mock_create.call_count, 3)
        for item in items:
            item.refresh_from_db()
            self.assertEqual(item.tpos_sync_status, 'success')


class AttributeSyncTests(TestCase):

    def test_payload(self):
        payload = attribute_sync.build_attribute_value_payload('Size Số', '36')
        self.assertEqual(payload['Attribute']['Id'], 4)
        self.assertEqual(payload['Attribute']['Code'], 'SZNu')
        self.assertEqual(payload['Code'], '36')
        self.assertEqual(payload['AttributeId'], 4)

    def test_unknown_attribute(self):
        with self.assertRaises(TPOSValidationError):
            attribute_sync.build_attribute_value_payload('Chất liệu', 'Cotton')

    def test_sync_stores_identifiers(self):
        color = TestDataFactory.create_attribute(name='Màu')
        value = TestDataFactory.create_attribute_value(color, value='Đỏ', code='DO')
        client = mock.Mock()
        client.post.return_value = {'Id': 77, 'AttributeId': 3, 'Sequence': 5, 'NameGet': 'Màu: Đỏ'}

        result = attribute_sync.sync_attribute_value(value, client)

        self.assertEqual(client.post.call_args.args[1]['Code'], 'DO')
        self.assertEqual(result['tpos_id'], 77)
        value.refresh_from_db()
        self.assertEqual((value.tpos_id, value.tpos_attribute_id, value.sequence, value.name_get), (77, 3, 5, 'Màu: Đỏ'))


TEMPLATE_DETAIL = {
    'Id': 900,
    'DefaultCode': 'N152',
    'Name': '0510 A43 SET ÁO TD',
    'ListPrice': 200000,
    'PurchasePrice': 100000,
    'ImageUrl': 'https://img/n152.jpg',
    'Barcode': 'N152',
    'UOM': {'Name': 'Bộ'},
    'ProductVariants': [
        {'Id': 5001, 'DefaultCode': 'N152C', 'Name': '0510 A43 SET ÁO TD (Cam)', 'ListPrice': 0,
         'StandardPrice': 90000, 'QtyAvailable': 4, 'VirtualAvailable': 6, 'Barcode': 'N152C',
         'AttributeValues': [{'AttributeName': 'Màu', 'Name': 'Cam'}]},
        {'Id': 5002, 'DefaultCode': 'N152D', 'Name': '0510 A43 SET ÁO TD (Đỏ)', 'ListPrice': 210000,
         'StandardPrice': 0, 'QtyAvailable': 1, 'VirtualAvailable': 1, 'Barcode': None,
         'AttributeValues': [{'AttributeName': 'Màu', 'Name': 'Đỏ'}]},
    ],
}


class ProductSyncTests(TestCase):

    def test_extract_supplier(self):
        self.assertEqual(product_sync.extract_supplier_from_name('0510 A43 SET ÁO TD'), 'A43')
        self.assertIsNone(product_sync.extract_supplier_from_name('SET ÁO'))

    def test_search_requires_exact_code(self):
        client = mock.Mock()
        client.get.return_value = {'value': [{'Id': 1, 'DefaultCode': 'N1520'}, {'Id': 2, 'DefaultCode': 'N152'}]}
        self.assertEqual(product_sync.search_product('N152', client)['Id'], 2)
        client.get.return_value = {'value': [{'Id': 1, 'DefaultCode': 'N1520'}]}
        self.assertIsNone(product_sync.search_product('N152', client))

    def test_upsert_replaces_family(self):
        TestDataFactory.create_product(product_code='N152')
        TestDataFactory.create_product(product_code='N152OLD', base_product_code='N152')
        client = mock.Mock()
        client.get.side_effect = [{'value': [{'Id': 900, 'DefaultCode': 'N152'}]}, TEMPLATE_DETAIL]

        result = product_sync.upsert_product_from_tpos('N152', client)

        self.assertTrue(result['success'])
        self.assertEqual(result['variant_count'], 2)
        self.assertFalse(Product.objects.filter(product_code='N152OLD').exists())

        parent = Product.objects.get(product_code='N152')
        self.assertEqual(parent.variant, '(Cam | Đỏ)')
        self.assertEqual(parent.supplier_name, 'A43')
        self.assertEqual(parent.unit, 'Bộ')
        self.assertEqual(parent.tpos_image_url, 'https://img/n152.jpg')

        orange = Product.objects.get(product_code='N152C')
        self.assertEqual(orange.variant, 'Cam')
        self.assertEqual(orange.selling_price, Decimal('200000'))
        self.assertEqual(orange.purchase_price, Decimal('90000'))
        self.assertEqual(orange.stock_quantity, 4)
        red = Product.objects.get(product_code='N152D')
        self.assertEqual(red.selling_price, Decimal('210000'))
        self.assertEqual(red.purchase_price, Decimal('100000'))
        self.assertIsNone(red.barcode)

    def test_upsert_single_variant_sharing_template_code(self):
        client = mock.Mock()
        client.get.side_effect = [
            {'value': [{'Id': 910, 'DefaultCode': 'N200'}]},
            {'Id': 910, 'DefaultCode': 'N200', 'Name': 'ÁO THUN', 'ListPrice': 150000,
             'ProductVariants': [{'Id': 6001, 'DefaultCode': 'N200', 'Name': 'ÁO THUN', 'AttributeValues': []}]},
        ]

        result = product_sync.upsert_product_from_tpos('N200', client)

        self.assertTrue(result['success'])
        self.assertEqual(result['variant_count'], 0)
        self.assertEqual(Product.objects.filter(product_code='N200').count(), 1)
        self.assertIsNone(Product.objects.get(product_code='N200').productid_bienthe)

    def test_upsert_skips_duplicate_variant_codes(self):
        client = mock.Mock()
        client.get.side_effect = [
            {'value': [{'Id': 911, 'DefaultCode': 'N201'}]},
            {'Id': 911, 'DefaultCode': 'N201', 'Name': 'ĐẦM', 'ProductVariants': [
                {'Id': 6101, 'DefaultCode': 'N201X', 'Name': 'ĐẦM (Xanh)'},
                {'Id': 6102, 'DefaultCode': 'N201X', 'Name': 'ĐẦM (Xám)'},
            ]},
        ]

        result = product_sync.upsert_product_from_tpos('N201', client)

        self.assertTrue(result['success'])
        self.assertEqual(result['variant_count'], 1)
        self.assertEqual(Product.objects.get(product_code='N201X').productid_bienthe, 6101)

    def test_upsert_not_found(self):
        client = mock.Mock()
        client.get.return_value = {'value': []}
        result = product_sync.upsert_product_from_tpos('NOPE', client)
        self.assertFalse(result['success'])

    def test_sync_single_product(self):
        parent = TestDataFactory.create_product(product_code='N152', tpos_product_id=900,
                                                selling_price=Decimal('1'), purchase_price=Decimal('1'))
        zero = TestDataFactory.create_product(product_code='N152C', base_product_code='N152',
                                              selling_price=Decimal('0'), purchase_price=Decimal('5'))
        orphan = TestDataFactory.create_product(product_code='N152D', base_product_code='WRONG',
                                                productid_bienthe=5002)
        client = mock.Mock()
        client.get.return_value = TEMPLATE_DETAIL

        result = product_sync.sync_single_product(parent, client)

        self.assertTrue(result['success'])
        self.assertEqual(result['variants_updated'], 1)
        parent.refresh_from_db()
        zero.refresh_from_db()
        orphan.refresh_from_db()
        self.assertEqual(parent.selling_price, Decimal('200000'))
        self.assertEqual(parent.tpos_image_url, 'https://img/n152.jpg')
        self.assertEqual(zero.selling_price, Decimal('200000'))
        self.assertEqual(zero.purchase_price, Decimal('5'))
        self.assertEqual(orphan.base_product_code, 'N152')

    def test_sync_single_product_reports_api_error(self):
        product = TestDataFactory.create_product(tpos_product_id=900)
        client = mock.Mock()
        client.get.side_effect = TPOSAPIError(404, 'not found')
        result = product_sync.sync_single_product(product, client)
        self.assertFalse(result['success'])

    @override_settings(TPOS_PRODUCT_SYNC_BATCH_SIZE=1, TPOS_PRODUCT_SYNC_BATCH_DELAY=0.5)
    @mock.patch('shopstock.tpos.product_sync.time.sleep')
    def test_sync_all_products(self, mock_sleep):
        TestDataFactory.create_product(product_code='N152', tpos_product_id=900)
        TestDataFactory.create_product(product_code='N999', tpos_product_id=901)
        TestDataFactory.create_product(product_code='LOCAL')
        client = mock.Mock()
        client.get.side_effect = [TEMPLATE_DETAIL, TPOSAPIError(500, 'boom')]

        progress = product_sync.sync_all_products(client)

        self.assertEqual(progress['total'], 2)
        self.assertEqual(progress['success'], 1)
        self.assertEqual(progress['failed'], 1)
        self.assertEqual(len(progress['logs']), 2)
        mock_sleep.assert_called_once_with(0.5)

    def test_sync_variant(self):
        product = TestDataFactory.create_product(product_code='N152C', productid_bienthe=5001)
        client = mock.Mock()
        client.get.return_value = {
            'PriceVariant': 220000, 'StandardPrice': 95000, 'QtyAvailable': 7, 'VirtualAvailable': 9,
            'Barcode': 'B-1', 'AttributeValues': [{'Name': 'Cam'}, {'Name': 'M'}],
        }
        product_sync.sync_variant(product, client)

        self.assertIn('Product(5001)', client.get.call_args.args[0])
        product.refresh_from_db()
        self.assertEqual(product.selling_price, Decimal('220000'))
        self.assertEqual(product.stock_quantity, 7)
        self.assertEqual(product.variant, 'Cam, M')
        self.assertEqual(product.barcode, 'B-1')

    def test_sync_all_products_survives_network_errors(self):
        TestDataFactory.create_product(product_code='N152', tpos_product_id=900)
        TestDataFactory.create_product(product_code='N999', tpos_product_id=901)
        client = mock.Mock()
        client.get.side_effect = [requests.Timeout('read timed out'), TEMPLATE_DETAIL]

        progress = product_sync.sync_all_products(client)

        self.assertEqual((progress['total'], progress['success'], progress['failed']), (2, 1, 1))
        self.assertTrue(any('read timed out' in line for line in progress['logs']))

    def test_sync_all_products_without_links(self):
        progress = product_sync.sync_all_products(mock.Mock())
        self.assertEqual(progress['total'], 0)
        self.assertEqual(progress['logs'], ['No linked products to sync'])

    def test_sync_variant_requires_link(self):
        product = TestDataFactory.create_product()
        with self.assertRaises(TPOSValidationError):
            product_sync.sync_variant(product, mock.Mock())

    def test_sync_variant_without_data(self):
        product = TestDataFactory.create_product(productid_bienthe=5001, selling_price=Decimal('123'))
        client = mock.Mock()
        client.get.return_value = None
        with self.assertRaises(TPOSPayloadError):
            product_sync.sync_variant(product, client)
        product.refresh_from_db()
        self.assertEqual(product.selling_price, Decimal('123'))

    def test_sync_single_variant_reports(self):
        product = TestDataFactory.create_product(product_code='N152C', productid_bienthe=5001)
        client = mock.Mock()
        client.get.return_value = {'PriceVariant': 220000, 'QtyAvailable': 7, 'VirtualAvailable': 9}

        result = product_sync.sync_single_variant(product, client)

        self.assertTrue(result['success'])
        self.assertEqual(result['message'], 'Price 220,000 | Stock 7 | Forecast 9')

        client.get.side_effect = requests.ConnectionError('reset')
        result = product_sync.sync_single_variant(product, client)
        self.assertFalse(result['success'])
        self.assertEqual(result['message'], 'reset')

    @mock.patch('shopstock.tpos.product_sync.invalidate_products_cache_manual')
    def test_sync_all_variants(self, mock_invalidate):
        TestDataFactory.create_product(product_code='N152')
        first = TestDataFactory.create_product(product_code='N152C', base_product_code='N152', productid_bienthe=5001)
        second = TestDataFactory.create_product(product_code='N152D', base_product_code='N152', productid_bienthe=5002)
        client = mock.Mock()
        client.get.side_effect = lambda path: (
            {'PriceVariant': 210000, 'QtyAvailable': 2} if 'Product(5002)' in path else None
        )

        progress = product_sync.sync_all_variants(client)

        self.assertEqual((progress['total'], progress['success'], progress['failed']), (2, 1, 1))
        self.assertEqual(client.get.call_count, 2)
        second.refresh_from_db()
        first.refresh_from_db()
        self.assertEqual(second.stock_quantity, 2)
        self.assertEqual(first.stock_quantity, 0)
        mock_invalidate.assert_called_once_with()

    def test_update_cleans_image(self):
        client = mock.Mock()
        product_sync.update_product_details({'Id': 900, 'Image': 'data:image/png;base64,AA BB'}, client)
        self.assertEqual(client.post.call_args.args[1]['Image'], 'AABB')


class VariantConverterTests(TestCase):

    def setUp(self):
        color = TestDataFactory.create_attribute(name='Màu', display_order=1)
        size = TestDataFactory.create_attribute(name='Size Chữ', display_order=2)
        TestDataFactory.create_attribute_value(color, value='Đỏ', display_order=2, tpos_id=31, tpos_attribute_id=3)
        TestDataFactory.create_attribute_value(color, value='Xanh', display_order=1, tpos_id=32, tpos_attribute_id=3)
        TestDataFactory.create_attribute_value(size, value='S', tpos_id=11, tpos_attribute_id=1)
        TestDataFactory.create_attribute_value(size, value='M', display_order=1, tpos_id=12, tpos_attribute_id=1)
        TestDataFactory.create_attribute_value(size, value='XL')

    def test_parse_selected_variants(self):
        self.assertEqual(variant_converter.parse_selected_variants('(Đỏ | Xanh) (S|M)'), ['Đỏ', 'Xanh', 'S', 'M'])
        self.assertEqual(variant_converter.parse_selected_variants('Đỏ, Xanh'), [])
        self.assertEqual(variant_converter.parse_selected_variants(None), [])

    def test_attribute_lines(self):
        lines = variant_converter.convert_variants_to_attribute_lines('(Đỏ | Xanh) (S | XL)')

        self.assertEqual([line['AttributeId'] for line in lines], [3, 1])
        self.assertEqual([value['Name'] for value in lines[0]['Values']], ['Xanh', 'Đỏ'])
        self.assertEqual([value['Name'] for value in lines[1]['Values']], ['S'])
        self.assertEqual(lines[0]['Values'][0]['NameGet'], 'Màu: Xanh')
        self.assertEqual(lines[0]['Attribute'], {'Id': 3})

    def test_generate_variants(self):
        lines = variant_converter.convert_variants_to_attribute_lines('(Đỏ | Xanh) (S | M)')
        variants = variant_converter.generate_product_variants(
            'ĐẦM', 250000, lines, template_id=901, base_product={'UOMId': 1, 'StandardPrice': 120000},
        )

        self.assertEqual([v['Name'] for v in variants],
                         ['ĐẦM (Xanh, S)', 'ĐẦM (Xanh, M)', 'ĐẦM (Đỏ, S)', 'ĐẦM (Đỏ, M)'])
        self.assertEqual(variants[0]['PriceVariant'], 250000)
        self.assertEqual(variants[0]['ProductTmplId'], 901)
        self.assertEqual(variants[0]['StandardPrice'], 120000)
        self.assertEqual([value['Id'] for value in variants[0]['AttributeValues']], [32, 11])
        self.assertEqual(variant_converter.generate_product_variants('ĐẦM', 1, []), [])

    def test_rebuild_without_stock(self):
        template = {
            'Id': 901, 'Name': 'ĐẦM', 'ListPrice': 250000,
            'ProductVariants': [{'Id': 7001, 'Name': 'ĐẦM (Đỏ)', 'QtyAvailable': 0, 'VirtualAvailable': 0}],
        }
        payload = variant_converter.rebuild_template_variants(template, '(Đỏ) (S | M)')

        self.assertEqual(len(payload['AttributeLines']), 2)
        self.assertEqual([v['Name'] for v in payload['ProductVariants']], ['ĐẦM (Đỏ, S)', 'ĐẦM (Đỏ, M)'])
        self.assertNotIn('QtyAvailable', payload['ProductVariants'][0])
        self.assertEqual(len(template['ProductVariants']), 1)

    def test_rebuild_keeps_structure_with_stock(self):
        template = {
            'Id': 901, 'Name': 'ĐẦM', 'ListPrice': 250000,
            'ProductVariants': [{'Id': 7001, 'Name': 'ĐẦM (Đỏ)', 'QtyAvailable': 0, 'VirtualAvailable': 3}],
        }
        payload = variant_converter.rebuild_template_variants(template, '(Đỏ | Xanh)')

        self.assertNotIn('AttributeLines', payload)
        self.assertEqual(payload['ProductVariants'], [{'Id': 7001, 'Name': 'ĐẦM (Đỏ)'}])


@override_settings(TIME_ZONE='Asia/Ho_Chi_Minh', USE_TZ=True)
class OrderDetailsTests(TestCase):

    def test_day_range_is_local_days_in_utc(self):
        start, end = order_details.day_range(date(2025, 1, 10), date(2025, 1, 11))
        self.assertEqual(start, '2025-01-09T17:00:00.000Z')
        self.assertEqual(end, '2025-01-11T16:59:59.999Z')

    def test_newest_order_details(self):
        client = mock.Mock()
        client.get.side_effect = [
            {'value': [{'Id': 'abc-1', 'Code': 'DH001', 'SessionIndex': 12}, {'Id': 'abc-0'}]},
            {'Id': 'abc-1', 'Code': 'DH001', 'Details': [{'ProductCode': 'N152C', 'Quantity': 2}],
             'TotalAmount': 400000, 'Partner': {'Name': 'Lan'}},
        ]

        order = order_details.get_session_order_details(12, date(2025, 1, 10), date(2025, 1, 10), client)

        self.assertEqual(order, {
            'Id': 'abc-1', 'Code': 'DH001', 'Details': [{'ProductCode': 'N152C', 'Quantity': 2}],
            'TotalAmount': 400000, 'TotalQuantity': 0,
        })
        list_path = client.get.call_args_list[0].args[0]
        self.assertIn('SessionIndex+eq+12', list_path)
        self.assertIn('DateCreated+ge+2025-01-09T17:00:00.000Z', list_path)
        self.assertIn('SaleOnline_Order(abc-1)', client.get.call_args_list[1].args[0])

    def test_no_orders(self):
        client = mock.Mock()
        client.get.return_value = {'value': []}
        self.assertIsNone(order_details.get_session_order_details(12, date(2025, 1, 10), date(2025, 1, 10), client))
        self.assertEqual(client.get.call_count, 1)


class TPOSAPITests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_get_template_requires_id(self):
        response = self.client.post('/api/v1/tpos/stock-change/get-template/', {'model': {}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_execute_requires_ids(self):
        response = self.client.post('/api/v1/tpos/stock-change/execute/', {'ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('shopstock.tpos.views.quantity_transfer.transfer_quantities')
    def test_quantity_transfer_plans_changes(self, mock_transfer):
        mock_transfer.return_value = {'success': True, 'ids': [1, 2], 'changed': {}}
        response = self.client.post('/api/v1/tpos/quantity-transfer/', {
            'product_tmpl_id': 555,
            'source': {'id': 101, 'quantity': 5},
            'target': {'id': 102, 'quantity': 3},
            'amount': 2,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_transfer.assert_called_once_with(555, {101: 3, 102: 5})

    def test_quantity_transfer_below_zero(self):
        response = self.client.post('/api/v1/tpos/quantity-transfer/', {
            'product_tmpl_id': 555,
            'source': {'id': 101, 'quantity': 1},
            'target': {'id': 102, 'quantity': 3},
            'amount': 2,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('shopstock.tpos.views.quantity_transfer.transfer_quantities')
    def test_quantity_transfer_api_error_is_502(self, mock_transfer):
        mock_transfer.side_effect = TPOSAPIError(500, 'boom')
        response = self.client.post('/api/v1/tpos/quantity-transfer/', {
            'product_tmpl_id': 555, 'changed_qty': {'101': 3},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.data['tpos_status'], 500)

    def test_create_variants_rejects_zero_price(self):
        response = self.client.post('/api/v1/tpos/create-variants/', {
            'baseProductCode': 'N152', 'productName': 'SET ÁO', 'purchasePrice': '0', 'sellingPrice': '200',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])

    def test_create_variants_without_credentials(self):
        response = self.client.post('/api/v1/tpos/create-variants/', {
            'baseProductCode': 'N152', 'productName': 'SET ÁO', 'purchasePrice': '100', 'sellingPrice': '200',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_process_missing_order(self):
        response = self.client.post('/api/v1/tpos/purchase-orders/999999/process/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @mock.patch('shopstock.tpos.views.order_sync.process_purchase_order_in_background')
    def test_process_in_background(self, mock_background):
        order = TestDataFactory.create_purchase_order(status='pending')
        response = self.client.post(f'/api/v1/tpos/purchase-orders/{order.id}/process/?background=true')
        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        mock_background.assert_called_once_with(order.id)

    @mock.patch('shopstock.tpos.views.order_sync.process_purchase_order')
    def test_process_synchronously(self, mock_process):
        mock_process.return_value = {'success': True, 'total': 0, 'succeeded': 0, 'failed': 0, 'errors': []}
        order = TestDataFactory.create_purchase_order(status='pending')
        response = self.client.post(f'/api/v1/tpos/purchase-orders/{order.id}/process/')
        self.assertEqual(response.data['tpos_sync']['total'], 0)

    @mock.patch('shopstock.tpos.attribute_sync.TPOSClient')
    def test_attribute_value_sync_view(self, mock_client_class):
        mock_client_class.return_value.post.return_value = {'Id': 77, 'AttributeId': 3, 'Sequence': None, 'NameGet': 'Đỏ'}
        color = TestDataFactory.create_attribute(name='Màu')
        value = TestDataFactory.create_attribute_value(color, value='Đỏ')

        response = self.client.post(f'/api/v1/tpos/attribute-values/{value.id}/sync/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['attribute_value']['tpos_id'], 77)
        self.assertTrue(ActivityLog.objects.filter(table_name='product_attribute_values', action='update').exists())

    def test_product_search_requires_code(self):
        response = self.client.get('/api/v1/tpos/products/search/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sync_all_is_admin_only(self):
        response = self.client.post('/api/v1/tpos/products/sync-all/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/v1/tpos/variants/sync-all/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch('shopstock.tpos.views.product_sync.sync_all_variants')
    def test_variant_sync_all(self, mock_sync):
        mock_sync.return_value = {'total': 0, 'current': 0, 'success': 0, 'failed': 0,
                                  'logs': ['No linked variants to sync']}
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/tpos/variants/sync-all/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['logs'], ['No linked variants to sync'])

    @mock.patch('shopstock.tpos.views.product_sync.update_product_details')
    def test_product_update_regenerates_variants(self, mock_update):
        mock_update.return_value = None
        color = TestDataFactory.create_attribute(name='Màu')
        TestDataFactory.create_attribute_value(color, value='Đỏ', tpos_id=31, tpos_attribute_id=3)

        response = self.client.post('/api/v1/tpos/products/update/', {
            'Id': 901, 'Name': 'ĐẦM', 'ListPrice': 250000, 'selectedVariants': '(Đỏ)',
            'ProductVariants': [{'Id': 7001, 'QtyAvailable': 0, 'VirtualAvailable': 0}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        payload = mock_update.call_args.args[0]
        self.assertNotIn('selectedVariants', payload)
        self.assertEqual([v['Name'] for v in payload['ProductVariants']], ['ĐẦM (Đỏ)'])
        self.assertNotIn('QtyAvailable', payload['ProductVariants'][0])

    def test_session_order_requires_dates(self):
        response = self.client.get('/api/v1/tpos/orders/session/12/?start_date=2025-01-10')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/tpos/orders/session/12/?start_date=2025-01-10&end_date=2025-13-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/tpos/orders/session/12/?start_date=2025-01-10&end_date=2025-01-09')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('shopstock.tpos.views.order_details.get_session_order_details')
    def test_session_order_details(self, mock_details):
        mock_details.return_value = None
        url = '/api/v1/tpos/orders/session/12/?start_date=2025-01-10&end_date=2025-01-10'
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        mock_details.assert_called_once_with(12, date(2025, 1, 10), date(2025, 1, 10))

        mock_details.return_value = {'Id': 'abc-1', 'Code': 'DH001', 'Details': [], 'TotalAmount': 0, 'TotalQuantity': 0}
        response = self.client.get(url)
        self.assertEqual(response.data['Code'], 'DH001')

    def test_credentials_hide_secrets(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/tpos/credentials/', {
            'name': 'Main', 'token_type': 'tpos', 'bearer_token': 'abc', 'username': 'shop', 'password': 'pw',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('bearer_token', response.data)
        self.assertNotIn('password', response.data)
        self.assertTrue(response.data['has_token'])

        log = ActivityLog.objects.get(table_name='tpos_credentials')
        self.assertEqual(log.new_data['password'], '***')

    def test_credentials_forbidden_for_regular_user(self):
        response = self.client.get('/api/v1/tpos/credentials/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch('shopstock.tpos.views.TPOSClient.refresh_token')
    def test_credential_refresh(self, mock_refresh):
        credential = TestDataFactory.create_tpos_credential()
        self.client.authenticate_user(self.admin)
        response = self.client.post(f'/api/v1/tpos/credentials/{credential.id}/refresh/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        mock_refresh.assert_called_once_with()


class SyncCommandTests(TestCase):

    @mock.patch('shopstock.tpos.management.commands.sync_tpos_products.sync_all_products')
    def test_sync_all(self, mock_sync):
        mock_sync.return_value = {'total': 1, 'current': 1, 'success': 1, 'failed': 0, 'logs': ['OK N152: done']}
        out = StringIO()
        call_command('sync_tpos_products', stdout=out)
        self.assertIn('1 synced', out.getvalue())
        self.assertIn('OK N152', out.getvalue())

    @mock.patch('shopstock.tpos.management.commands.sync_tpos_products.upsert_product_from_tpos')
    def test_single_code_not_found(self, mock_upsert):
        mock_upsert.return_value = {'success': False, 'message': 'Product NOPE not found on TPOS'}
        with self.assertRaises(CommandError):
            call_command('sync_tpos_products', code='NOPE', stdout=StringIO())

    @mock.patch('shopstock.tpos.management.commands.sync_tpos_products.sync_all_products')
    @mock.patch('shopstock.tpos.management.commands.sync_tpos_products.sync_all_variants')
    def test_sync_variants(self, mock_variants, mock_products):
        mock_variants.return_value = {'total': 1, 'current': 1, 'success': 0, 'failed': 1,
                                      'logs': ['FAILED N152C: reset']}
        out = StringIO()
        call_command('sync_tpos_products', variants=True, stdout=out)
        self.assertIn('1 failed', out.getvalue())
        mock_products.assert_not_called()

    @mock.patch('shopstock.tpos.management.commands.sync_tpos_products.upsert_product_from_tpos')
    def test_network_error_is_command_error(self, mock_upsert):
        mock_upsert.side_effect = requests.ConnectionError('connection refused')
        with self.assertRaises(CommandError):
            call_command('sync_tpos_products', code='N152', stdout=StringIO())

    def test_missing_credentials(self):
        with self.assertRaises(CommandError):
            call_command('sync_tpos_products', stdout=StringIO())
