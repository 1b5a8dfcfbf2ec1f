"""
Create a product (and its variants) on TPOS from a purchase order line,
then mirror the created template and variants into the catalogue.
"""
import base64
import logging
import re
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings
from django.db import transaction

from shopstock.catalog.models import Product, ProductAttributeValue
from shopstock.catalog.variants import parse_child_variant, parse_parent_variant
from shopstock.core.cache_signals import invalidate_products_cache_manual, suspend_cache_signals
from .client import TPOSClient
from .exceptions import TPOSAPIError, TPOSPayloadError, TPOSValidationError
from .payloads import build_attribute_lines, build_product_variants, build_template_payload

logger = logging.getLogger(__name__)

INSERT_PATH = '/odata/ProductTemplate/ODataService.InsertV2?$expand=ProductVariants,UOM,UOMPO'

DUPLICATE_MARKERS = ('đã tồn tại', 'already exists', 'Đã có sản phẩm với mã vạch')

_LEADING_NUMBER = re.compile(r'\s*([-+]?(?:\d+\.?\d*|\.\d+))')


def parse_price(price) -> int:
    """
    Thousands input to a full amount.

    "1.5" / "1,5" -> 1500, "210" -> 210000, 1.5 -> 1500, "abc" -> 0
    Only the leading number counts: "12abc" -> 12000, "1.234,5" -> 1234
    """
    if price is None or isinstance(price, bool):
        return 0
    if isinstance(price, (int, float, Decimal)):
        return int(round(float(price) * 1000))
    match = _LEADING_NUMBER.match(str(price).replace(',', '.', 1))
    if match is None:
        logger.warning(f"Invalid price value: {price!r}, defaulting to 0")
        return 0
    return int(round(float(match.group(1)) * 1000))


def image_url_to_base64(url: Optional[str], attempts: Optional[int] = None) -> Optional[str]:
    """Download an image as base64; ``None`` when every attempt fails"""
    if not url:
        return None
    attempts = attempts or settings.TPOS_IMAGE_FETCH_RETRIES

    for attempt in range(1, attempts + 1):
        try:
            response = requests.get(url, timeout=settings.TPOS_REQUEST_TIMEOUT)
            if response.ok and response.content:
                return base64.b64encode(response.content).decode('ascii')
            logger.warning(f"Image fetch {url} returned {response.status_code} (attempt {attempt})")
        except requests.RequestException as e:
            logger.warning(f"Image fetch {url} failed (attempt {attempt}): {str(e)}")
        if attempt < attempts:
            time.sleep(1)
    return None


def group_attribute_values(value_ids: List[int]):
    """
    Selected values grouped by attribute, attributes in display order and
    values in selection order: ``[(attribute, [values]), ...]``
    """
    values = list(ProductAttributeValue.objects.filter(id__in=value_ids).select_related('attribute'))
    if not values:
        raise TPOSValidationError('Selected attribute values were not found')

    missing_tpos = [value.value for value in values if value.tpos_id is None or value.tpos_attribute_id is None]
    if missing_tpos:
        raise TPOSValidationError(f"Attribute values not synced to TPOS: {', '.join(missing_tpos)}")

    selection_order = {value_id: index for index, value_id in enumerate(value_ids)}
    values.sort(key=lambda value: selection_order.get(value.id, len(selection_order)))

    grouped = {}
    for value in values:
        grouped.setdefault(value.attribute_id, (value.attribute, []))[1].append(value)

    return sorted(grouped.values(), key=lambda group: (group[0].display_order, group[0].name))


def _decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def _is_duplicate_error(error: TPOSAPIError) -> bool:
    return error.status_code == 400 and any(marker in error.body for marker in DUPLICATE_MARKERS)


@transaction.atomic
def save_created_product(tpos_data: Dict[str, Any], product_images: List[str], supplier_name: Optional[str]):
    """Upsert the created template and its variants by product code"""
    transaction.on_commit(invalidate_products_cache_manual)

    code = tpos_data.get('DefaultCode')
    variants = tpos_data.get('ProductVariants') or []
    parent_purchase = _decimal(tpos_data.get('PurchasePrice'))

    parent_defaults = {
        'base_product_code': code,
        'tpos_product_id': tpos_data.get('Id'),
        'product_name': tpos_data.get('Name') or code,
        'selling_price': _decimal(tpos_data.get('ListPrice')),
        'purchase_price': parent_purchase,
        'stock_quantity': int(tpos_data.get('QtyAvailable') or 0),
        'virtual_available': int(tpos_data.get('VirtualAvailable') or 0),
        'product_images': product_images,
        'supplier_name': supplier_name,
    }
    if variants:
        parent_defaults['variant'] = parse_parent_variant(variants)

    with suspend_cache_signals():
        Product.objects.update_or_create(product_code=code, defaults=parent_defaults)
        for variant in variants:
            Product.objects.update_or_create(
                product_code=variant.get('DefaultCode'),
                defaults={
                    'base_product_code': code,
                    'productid_bienthe': variant.get('Id'),
                    'tpos_product_id': variant.get('ProductTmplId'),
                    'product_name': variant.get('Name') or code,
                    'variant': parse_child_variant(variant.get('Name')),
                    'selling_price': _decimal(variant.get('PriceVariant')),
                    'purchase_price': parent_purchase,
                    'stock_quantity': int(variant.get('QtyAvailable') or 0),
                    'virtual_available': int(variant.get('VirtualAvailable') or 0),
                    'product_images': product_images,
                    'supplier_name': supplier_name,
                },
            )
    return len(variants)


def create_variants_from_order(base_product_code: str, product_name: str, purchase_price, selling_price,
                               selected_attribute_value_ids: Optional[List[int]] = None,
                               product_images: Optional[List[str]] = None,
                               supplier_name: Optional[str] = None,
                               client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """
    Create the product template on TPOS and mirror it locally.

    Prices are in thousands (see ``parse_price``). A product that already
    exists on TPOS counts as success with ``already_exists``.
    """
    if not base_product_code or not product_name:
        raise TPOSValidationError('baseProductCode and productName are required')

    purchase = parse_price(purchase_price)
    selling = parse_price(selling_price)
    if purchase <= 0 or selling <= 0:
        raise TPOSValidationError('Purchase and selling price must be greater than 0')

    product_images = product_images or []
    image_base64 = image_url_to_base64(product_images[0]) if product_images else None

    value_ids = selected_attribute_value_ids or []
    if value_ids:
        groups = group_attribute_values(value_ids)
        payload = build_template_payload(
            base_product_code, product_name, purchase, selling, image_base64,
            attribute_lines=build_attribute_lines(groups),
            product_variants=build_product_variants(base_product_code, selling, groups),
        )
    else:
        payload = build_template_payload(base_product_code, product_name, purchase, selling, image_base64)

    client = client or TPOSClient()
    try:
        tpos_data = client.post(INSERT_PATH, payload)
    except TPOSAPIError as e:
        if _is_duplicate_error(e):
            logger.info(f"Product {base_product_code} already exists on TPOS")
            return {
                'success': True,
                'already_exists': True,
                'message': f'Product {base_product_code} already exists on TPOS',
                'product_code': base_product_code,
                'variant_count': len(payload['ProductVariants']),
            }
        raise

    if not isinstance(tpos_data, dict) or not tpos_data.get('Id') or not tpos_data.get('DefaultCode'):
        raise TPOSPayloadError(f"TPOS did not return the created product {base_product_code}")

    children_saved = save_created_product(tpos_data, product_images, supplier_name)
    logger.info(f"Created TPOS product {tpos_data.get('DefaultCode')} (id {tpos_data.get('Id')}) with {children_saved} variants")

    return {
        'success': True,
        'message': f'Created {children_saved} variants on TPOS and saved them',
        'variant_count': children_saved,
        'data': {
            'tpos': {
                'product_id': tpos_data.get('Id'),
                'product_code': tpos_data.get('DefaultCode'),
                'variant_count': children_saved,
            },
            'database': {
                'parent_saved': 1,
                'children_saved': children_saved,
            },
        },
    }
