"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from shopstock.core.models import Setting
from shopstock.catalog.models import Product, ProductAttribute, ProductAttributeValue
from shopstock.purchasing.models import PurchaseOrder, PurchaseOrderItem
from shopstock.tpos.models import TPOSCredential
from decimal import Decimal
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
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_setting(key=None, value='value'):
        if not key:
            key = f'setting_{TestDataFactory.random_string(6)}'
        return Setting.objects.create(key=key, value=value)

    @staticmethod
    def create_product(product_code=None, product_name=None, base_product_code=None, variant=None,
                       selling_price=None, purchase_price=None, stock_quantity=0, supplier_name=None,
                       tpos_product_id=None, productid_bienthe=None):
        """Create a test product; without a base code it is its own base product"""
        if not product_code:
            product_code = f'P{TestDataFactory.random_string(6).upper()}'
        if not product_name:
            product_name = f'Product {product_code}'
        return Product.objects.create(
            product_code=product_code,
            product_name=product_name,
            base_product_code=base_product_code or product_code,
            variant=variant,
            selling_price=selling_price if selling_price is not None else Decimal('200000'),
            purchase_price=purchase_price if purchase_price is not None else Decimal('100000'),
            stock_quantity=stock_quantity,
            supplier_name=supplier_name,
            tpos_product_id=tpos_product_id,
            productid_bienthe=productid_bienthe,
        )

    @staticmethod
    def create_attribute(name=None, display_order=0):
        if not name:
            name = f'Attr_{TestDataFactory.random_string(6)}'
        return ProductAttribute.objects.create(name=name, display_order=display_order)

    @staticmethod
    def create_attribute_value(attribute, value=None, code=None, display_order=0,
                               tpos_id=None, tpos_attribute_id=None):
        """Create an attribute value, optionally already linked to TPOS"""
        if not value:
            value = f'Value_{TestDataFactory.random_string(4)}'
        return ProductAttributeValue.objects.create(
            attribute=attribute,
            value=value,
            code=code,
            display_order=display_order,
            tpos_id=tpos_id,
            tpos_attribute_id=tpos_attribute_id,
        )

    @staticmethod
    def create_purchase_order(user=None, supplier_name='A43', status='draft',
                              discount_amount=Decimal('0'), shipping_fee=Decimal('0')):
        """Create a test purchase order"""
        return PurchaseOrder.objects.create(
            created_by=user,
            supplier_name=supplier_name,
            status=status,
            discount_amount=discount_amount,
            shipping_fee=shipping_fee,
        )

    @staticmethod
    def create_purchase_order_item(purchase_order, product_code=None, product_name=None, quantity=5,
                                   purchase_price=None, selling_price=None, position=None,
                                   selected_attribute_value_ids=None, tpos_product_id=None,
                                   tpos_sync_status='pending', product_images=None):
        """Create a test purchase order line"""
        if not product_code:
            product_code = f'N{TestDataFactory.random_string(4).upper()}'
        if position is None:
            position = purchase_order.items.count() + 1
        return PurchaseOrderItem.objects.create(
            purchase_order=purchase_order,
            position=position,
            product_code=product_code,
            product_name=product_name or f'Item {product_code}',
            quantity=quantity,
            purchase_price=purchase_price if purchase_price is not None else Decimal('100000'),
            selling_price=selling_price if selling_price is not None else Decimal('200000'),
            selected_attribute_value_ids=selected_attribute_value_ids or [],
            tpos_product_id=tpos_product_id,
            tpos_sync_status=tpos_sync_status,
            product_images=product_images or [],
        )

    @staticmethod
    def create_tpos_credential(name='Main TPOS', bearer_token='token-123', username='shop', password='secret',
                               token_type='tpos'):
        return TPOSCredential.objects.create(
            name=name,
            token_type=token_type,
            bearer_token=bearer_token,
            username=username,
            password=password,
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
