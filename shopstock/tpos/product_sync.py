"""
Pull product data from TPOS into the catalogue.

``upsert_product_from_tpos`` replaces a product family wholesale;
``sync_all_products`` only refreshes prices, images and parent links of
products that are already linked; ``sync_all_variants`` does the same
for prices and stock of linked variant rows.
"""
import logging
import re
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q

from shopstock.catalog.models import Product
from shopstock.catalog.variants import format_variant_from_attribute_values
from shopstock.core.cache_signals import invalidate_products_cache_manual, suspend_cache_signals
from .client import TPOSClient, clean_base64
from .exceptions import TPOSError, TPOSPayloadError, TPOSValidationError

logger = logging.getLogger(__name__)

SEARCH_PATH = (
    '/odata/ProductTemplate/OdataService.GetViewV2?Active=true&DefaultCode={code}'
    '&$top=50&$orderby=DateCreated desc&$filter=Active+eq+true&$count=true'
)
DETAIL_PATH = (
    '/odata/ProductTemplate({id})?$expand=UOM,UOMCateg,Categ,UOMPO,POSCateg,Taxes,SupplierTaxes,'
    'Product_Teams,Images,UOMView,Distributor,Importer,Producer,OriginCountry,'
    'AttributeLines($expand=Attribute,Values),'
    'ProductVariants($expand=UOM,Categ,UOMPO,POSCateg,AttributeValues)'
)
UPDATE_PATH = '/odata/ProductTemplate/ODataService.UpdateV2'
VARIANT_PATH = '/odata/Product({id})?$expand=UOM,Categ,UOMPO,POSCateg,AttributeValues'

MAX_SYNC_LOGS = 100

_SUPPLIER_RE = re.compile(r'^\d{4}\s+([A-Z]\d{1,4})\s+')


def extract_supplier_from_name(product_name: Optional[str]) -> Optional[str]:
    """"0510 A43 SET ÁO TD" -> "A43" """
    if not product_name:
        return None
    match = _SUPPLIER_RE.match(product_name)
    return match.group(1) if match else None


def _decimal(value) -> Decimal:
    return Decimal(str(value or 0))


def search_product(code: str, client: Optional[TPOSClient] = None) -> Optional[Dict[str, Any]]:
    """Active template whose DefaultCode equals ``code`` exactly"""
    client = client or TPOSClient()
    data = client.get(SEARCH_PATH.format(code=quote(code, safe='')))
    for product in (data or {}).get('value') or []:
        if product.get('DefaultCode') == code:
            return product
    return None


def get_product_details(template_id: int, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    client = client or TPOSClient()
    return client.get(DETAIL_PATH.format(id=template_id))


def update_product_details(payload: Dict[str, Any], client: Optional[TPOSClient] = None) -> Any:
    """Push an edited template back to TPOS"""
    cleaned = dict(payload)
    if isinstance(cleaned.get('Image'), str):
        cleaned['Image'] = clean_base64(cleaned['Image'])
    client = client or TPOSClient()
    return client.post(UPDATE_PATH, cleaned)


def _unique_attribute_values(variants: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    unique = {}
    for variant in variants:
        for value in variant.get('AttributeValues') or []:
            unique.setdefault((value.get('AttributeName'), value.get('Name')), value)
    return list(unique.values())


def upsert_product_from_tpos(code: str, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """
    Replace the local product family of ``code`` with TPOS's copy.

    The parent and every row pointing at it are deleted, then the template
    and its variants are inserted again.
    """
    code = (code or '').strip()
    if not code:
        raise TPOSValidationError('Product code is required')

    client = client or TPOSClient()
    found = search_product(code, client)
    if found is None:
        return {'success': False, 'message': f'Product {code} not found on TPOS'}

    detail = get_product_details(found['Id'], client)
    default_code = detail.get('DefaultCode') or code
    variants = detail.get('ProductVariants') or []
    unit = (detail.get('UOM') or {}).get('Name') or 'Cái'
    supplier = extract_supplier_from_name(detail.get('Name'))
    list_price = _decimal(detail.get('ListPrice'))
    purchase_price = _decimal(detail.get('PurchasePrice'))

    with suspend_cache_signals(), transaction.atomic():
        transaction.on_commit(invalidate_products_cache_manual)
        deleted, _ = Product.objects.filter(
            Q(product_code=default_code) | Q(base_product_code=default_code)
        ).delete()

        parent = Product.objects.create(
            product_code=default_code,
            product_name=detail.get('Name') or default_code,
            base_product_code=default_code,
            variant=format_variant_from_attribute_values(_unique_attribute_values(variants), is_parent=True) or None,
            tpos_product_id=detail.get('Id'),
            tpos_image_url=detail.get('ImageUrl') or None,
            selling_price=list_price,
            purchase_price=purchase_price,
            barcode=detail.get('Barcode') or None,
            unit=unit,
            supplier_name=supplier,
        )

        inserted = 0
        for variant in variants:
            variant_code = variant.get('DefaultCode')
            # A single-variant template usually reuses the template's code
            if not variant_code or variant_code == default_code:
                logger.info(f"Skipping variant {variant.get('Id')} of {default_code}: code {variant_code!r} is not its own")
                continue
            try:
                with transaction.atomic():
                    Product.objects.create(
                        product_code=variant_code,
                        product_name=variant.get('Name') or default_code,
                        base_product_code=default_code,
                        variant=format_variant_from_attribute_values(variant.get('AttributeValues') or []) or None,
                        tpos_product_id=detail.get('Id'),
                        productid_bienthe=variant.get('Id'),
                        tpos_image_url=detail.get('ImageUrl') or None,
                        selling_price=_decimal(variant.get('ListPrice')) or list_price,
                        purchase_price=_decimal(variant.get('StandardPrice')) or purchase_price,
                        stock_quantity=int(variant.get('QtyAvailable') or 0),
                        virtual_available=int(variant.get('VirtualAvailable') or 0),
                        barcode=variant.get('Barcode') or None,
                        unit=unit,
                        supplier_name=supplier,
                    )
            except IntegrityError as e:
                logger.error(f"Could not insert variant {variant_code} of {default_code}: {str(e)}")
                continue
            inserted += 1

    logger.info(f"Upserted {default_code} from TPOS: replaced {deleted} rows with 1 parent and {inserted} variants")
    message = f'Synced product and {inserted} variants' if inserted else 'Synced product'
    return {'success': True, 'message': message, 'product_id': parent.id, 'variant_count': inserted}


def sync_single_product(product: Product, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Refresh image and prices of a linked parent and re-link its variants"""
    client = client or TPOSClient()
    try:
        detail = get_product_details(product.tpos_product_id, client)
    except (TPOSError, requests.RequestException) as e:
        logger.warning(f"Sync of {product.product_code} failed: {str(e)}")
        return {'success': False, 'product_code': product.product_code, 'message': str(e), 'variants_updated': 0}

    if not detail or not detail.get('Id'):
        return {
            'success': False,
            'product_code': product.product_code,
            'message': 'No data returned from TPOS',
            'variants_updated': 0,
        }

    default_code = detail.get('DefaultCode') or product.product_code
    updates = {}
    if detail.get('ImageUrl'):
        updates['tpos_image_url'] = detail['ImageUrl']
    if detail.get('PurchasePrice') is not None:
        updates['purchase_price'] = _decimal(detail['PurchasePrice'])
    if detail.get('ListPrice') is not None:
        updates['selling_price'] = _decimal(detail['ListPrice'])

    variants_updated = 0
    with transaction.atomic():
        transaction.on_commit(invalidate_products_cache_manual)
        if updates:
            Product.objects.filter(pk=product.pk).update(**updates)

        # Variants still carrying zero prices take the template's
        if detail.get('ListPrice'):
            Product.objects.filter(base_product_code=default_code, selling_price=0).update(
                selling_price=_decimal(detail['ListPrice'])
            )
        if detail.get('PurchasePrice'):
            Product.objects.filter(base_product_code=default_code, purchase_price=0).update(
                purchase_price=_decimal(detail['PurchasePrice'])
            )

        for variant in detail.get('ProductVariants') or []:
            variants_updated += Product.objects.filter(productid_bienthe=variant.get('Id')).update(
                base_product_code=default_code
            )

    return {
        'success': True,
        'product_code': default_code,
        'message': f'Updated image, prices and {variants_updated} variants',
        'variants_updated': variants_updated,
    }


def _sync_in_batches(products: List[Product], sync_one, client: TPOSClient, label: str) -> Dict[str, Any]:
    """
    Call ``sync_one(product, client)`` for each product, pausing between
    batches. Returns counts and the newest log lines first.
    """
    batch_size = max(1, settings.TPOS_PRODUCT_SYNC_BATCH_SIZE)
    progress = {'total': len(products), 'current': 0, 'success': 0, 'failed': 0, 'logs': []}
    if not products:
        progress['logs'].append(f'No linked {label} to sync')
        return progress

    for start in range(0, len(products), batch_size):
        for product in products[start:start + batch_size]:
            result = sync_one(product, client)
            progress['current'] += 1
            if result['success']:
                progress['success'] += 1
                progress['logs'].insert(0, f"OK {result['product_code']}: {result['message']}")
            else:
                progress['failed'] += 1
                progress['logs'].insert(0, f"FAILED {result['product_code']}: {result['message']}")
        del progress['logs'][MAX_SYNC_LOGS:]

        if start + batch_size < len(products):
            time.sleep(settings.TPOS_PRODUCT_SYNC_BATCH_DELAY)

    logger.info(f"Sync of {label} finished: {progress['success']} ok, {progress['failed']} failed of {progress['total']}")
    return progress


def sync_all_products(client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Run ``sync_single_product`` over every linked product in batches"""
    client = client or TPOSClient()
    products = list(Product.objects.filter(tpos_product_id__isnull=False).order_by('-created_at', '-id'))
    return _sync_in_batches(products, sync_single_product, client, 'products')


def sync_variant(product: Product, client: Optional[TPOSClient] = None) -> Product:
    """Refresh one variant row from ``/odata/Product(<productid_bienthe>)``"""
    if not product.productid_bienthe:
        raise TPOSValidationError(f'Product {product.product_code} is not linked to a TPOS variant')

    client = client or TPOSClient()
    data = client.get(VARIANT_PATH.format(id=product.productid_bienthe))
    if not data:
        raise TPOSPayloadError(f"No data returned from TPOS for variant {product.productid_bienthe}")

    product.selling_price = _decimal(data.get('PriceVariant'))
    product.purchase_price = _decimal(data.get('StandardPrice'))
    product.stock_quantity = int(data.get('QtyAvailable') or 0)
    product.virtual_available = int(data.get('VirtualAvailable') or 0)
    if data.get('ImageUrl'):
        product.tpos_image_url = data['ImageUrl']
    if data.get('Barcode'):
        product.barcode = data['Barcode']
    names = [value.get('Name') for value in data.get('AttributeValues') or [] if value.get('Name')]
    if names:
        product.variant = ', '.join(names)
    product.save()

    logger.info(f"Synced variant {product.product_code} from TPOS product {product.productid_bienthe}")
    return product


def sync_single_variant(product: Product, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """``sync_variant`` that reports failures instead of raising"""
    try:
        product = sync_variant(product, client)
    except (TPOSError, requests.RequestException) as e:
        logger.warning(f"Sync of variant {product.product_code} failed: {str(e)}")
        return {'success': False, 'product_code': product.product_code, 'message': str(e), 'variants_updated': 0}

    return {
        'success': True,
        'product_code': product.product_code,
        'message': (
            f'Price {product.selling_price:,.0f} | Stock {product.stock_quantity} '
            f'| Forecast {product.virtual_available}'
        ),
        'variants_updated': 1,
    }


def sync_all_variants(client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Refresh every row linked to a TPOS variant, in batches"""
    client = client or TPOSClient()
    variants = list(Product.objects.filter(productid_bienthe__isnull=False).order_by('-created_at', '-id'))
    with suspend_cache_signals():
        progress = _sync_in_batches(variants, sync_single_variant, client, 'variants')
    if progress['success']:
        invalidate_products_cache_manual()
    return progress
