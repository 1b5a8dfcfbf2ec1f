"""
Tests for core: authentication, users, settings and the activity log
"""
from django.test import TestCase
from django.core.cache import cache
from rest_framework import status
from shopstock.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from shopstock.core.models import ActivityLog, User
from shopstock.core.utils import snapshot, diff_snapshots, log_insert, log_update, create_activity_log
from shopstock.core.cache_utils import make_cache_key, get_cached_products_list, cache_products_list


class AuthAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_and_me(self):
        TestDataFactory.create_user(username='clerk', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = self.client.get('/api/v1/auth/me/')
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['username'], 'clerk')
        self.assertFalse(me.data['is_admin'])

    def test_unauthenticated_request_rejected(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_no_self_registration(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newclerk',
            'password': 'Str0ngPass!2024',
            'password_confirm': 'Str0ngPass!2024',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(User.objects.filter(username='newclerk').exists())


class SettingAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()

    def test_admin_can_create_setting(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/settings/', {'key': 'shop_name', 'value': 'Tomato'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_regular_user_forbidden(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/settings/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ActivityLogUtilsTests(TestCase):

    def test_snapshot_is_json_safe(self):
        product = TestDataFactory.create_product(product_code='N152')
        data = snapshot(product)
        self.assertEqual(data['product_code'], 'N152')
        self.assertEqual(data['selling_price'], '200000.00')
        self.assertIsInstance(data['created_at'], str)

    def test_snapshot_masks_secret_fields(self):
        credential = TestDataFactory.create_tpos_credential()
        data = snapshot(credential)
        self.assertEqual(data['bearer_token'], '***')
        self.assertEqual(data['password'], '***')
        self.assertEqual(data['username'], 'shop')

    def test_diff_ignores_updated_at(self):
        old = {'a': 1, 'updated_at': 'x'}
        new = {'a': 2, 'updated_at': 'y'}
        self.assertEqual(diff_snapshots(old, new), {'a': {'old': 1, 'new': 2}})

    def test_log_update_records_changes(self):
        user = TestDataFactory.create_user()
        product = TestDataFactory.create_product()
        old_data = snapshot(product)
        product.stock_quantity = 7
        product.save()

        log = log_update(None, product, old_data, user=user)
        self.assertEqual(log.action, 'update')
        self.assertEqual(log.table_name, 'products')
        self.assertEqual(log.changes['stock_quantity'], {'old': 0, 'new': 7})
        self.assertEqual(log.username, user.username)

    def test_missing_action_skipped(self):
        self.assertIsNone(create_activity_log(table_name='products'))
        self.assertEqual(ActivityLog.objects.count(), 0)


class ActivityLogAPITests(TestCase):

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()

        product = TestDataFactory.create_product()
        self.own_log = log_insert(None, product, user=self.user)
        self.other_log = log_insert(None, TestDataFactory.create_product(), user=self.other)
        attribute = TestDataFactory.create_attribute()
        log_insert(None, attribute, user=self.user)

    def test_regular_user_sees_only_own(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/activity-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertTrue(all(row['user'] == self.user.id for row in response.data))

    def test_admin_filters_by_table(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/activity-logs/', {'table_name': 'products'})
        self.assertEqual(len(response.data), 2)

    def test_filter_by_username(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/activity-logs/', {'user': self.other.username})
        self.assertEqual([row['id'] for row in response.data], [self.other_log.id])

    def test_regular_user_cannot_read_other_users_logs(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/activity-logs/', {'user': self.other.username})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, [])
        response = self.client.get('/api/v1/activity-logs/stats/')
        self.assertEqual(response.data['total'], 2)

    def test_invalid_date_rejected(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/activity-logs/', {'date_from': '2024-13-45'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_detail_of_other_users_log_forbidden(self):
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/v1/activity-logs/{self.other_log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stats(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/activity-logs/stats/')
        self.assertEqual(response.data['total'], 3)
        self.assertEqual(response.data['by_table'], {'product_attributes': 1, 'products': 2})
        self.assertEqual(response.data['by_action'], {'insert': 3})


class CacheUtilsTests(TestCase):

    def setUp(self):
        cache.clear()

    def test_cache_key_independent_of_filter_order(self):
        self.assertEqual(
            make_cache_key('products_list', a='1', b='2'),
            make_cache_key('products_list', b='2', a='1'),
        )

    def test_products_list_round_trip(self):
        data, key = get_cached_products_list({'search': 'ao'})
        self.assertIsNone(data)
        cache_products_list(key, {'count': 1})
        cached, same_key = get_cached_products_list({'search': 'ao'})
        self.assertEqual(cached, {'count': 1})
        self.assertEqual(key, same_key)
