"""
Rebuild the variant structure of an existing TPOS template from a
selection string such as ``"(Đỏ | Xanh) (S | M)"``.
"""
import logging
import re
from itertools import product as cartesian_product
from typing import Any, Dict, List, Optional

from shopstock.catalog.models import ProductAttributeValue

logger = logging.getLogger(__name__)

_GROUP_RE = re.compile(r'\(([^)]+)\)')

QUANTITY_FIELDS = ('QtyAvailable', 'VirtualAvailable')


def parse_selected_variants(selected_variants: Optional[str]) -> List[str]:
    """"(1 | 2) (Trắng | Đen)" -> ['1', '2', 'Trắng', 'Đen']"""
    names = []
    for group in _GROUP_RE.findall(selected_variants or ''):
        names.extend(name.strip() for name in group.split('|') if name.strip())
    return names


def convert_variants_to_attribute_lines(selected_variants: Optional[str]) -> List[Dict[str, Any]]:
    """
    AttributeLines for every active local value named in the selection.

    Values without a TPOS attribute id are skipped. Lines and their values
    follow display order.
    """
    names = parse_selected_variants(selected_variants)
    if not names:
        return []

    values = (
        ProductAttributeValue.objects.filter(value__in=names, is_active=True)
        .select_related('attribute')
        .order_by('attribute__display_order', 'attribute__name', 'display_order', 'value')
    )
    lines = {}
    for value in values:
        attribute_id = value.tpos_attribute_id
        if not attribute_id:
            logger.warning(f"Attribute value {value} has no TPOS attribute id, skipping")
            continue
        line = lines.setdefault(attribute_id, {
            'Attribute': {'Id': attribute_id},
            'Values': [],
            'AttributeId': attribute_id,
        })
        line['Values'].append({
            'Id': value.tpos_id,
            'Name': value.value,
            'Code': None,
            'Sequence': value.display_order,
            'AttributeId': attribute_id,
            'AttributeName': value.attribute.name,
            'PriceExtra': None,
            'NameGet': f'{value.attribute.name}: {value.value}',
            'DateCreated': None,
        })
    return list(lines.values())


def generate_product_variants(product_name: str, list_price, attribute_lines: List[Dict[str, Any]],
                              image_base64: Optional[str] = None, template_id: Optional[int] = None,
                              base_product: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """One new variant per combination of the lines' values, in line order"""
    if not attribute_lines:
        return []
    base_product = base_product or {}

    variants = []
    for combo in cartesian_product(*[line['Values'] for line in attribute_lines]):
        name = f"{product_name} ({', '.join(value['Name'] for value in combo)})"
        variants.append({
            'Id': 0,
            'DefaultCode': None,
            'NameTemplate': product_name,
            'ProductTmplId': template_id or 0,
            'UOMId': base_product.get('UOMId') or 0,
            'UOMPOId': base_product.get('UOMPOId') or 0,
            'QtyAvailable': 0,
            'VirtualAvailable': 0,
            'NameGet': name,
            'POSCategId': base_product.get('POSCategId'),
            'Barcode': None,
            'Image': image_base64,
            'ImageUrl': None,
            'PriceVariant': list_price,
            'SaleOK': base_product.get('SaleOK', True),
            'PurchaseOK': base_product.get('PurchaseOK', True),
            'Active': base_product.get('Active', True),
            'LstPrice': 0,
            'ListPrice': 0,
            'StandardPrice': base_product.get('StandardPrice') or 0,
            'Weight': base_product.get('Weight') or 0,
            'Type': base_product.get('Type') or 'product',
            'CategId': base_product.get('CategId') or 0,
            'InvoicePolicy': base_product.get('InvoicePolicy') or 'order',
            'PurchaseMethod': base_product.get('PurchaseMethod') or 'receive',
            'AvailableInPOS': base_product.get('AvailableInPOS', True),
            'CompanyId': base_product.get('CompanyId'),
            'Name': name,
            'NameTemplateNoSign': product_name,
            'TaxesIds': base_product.get('TaxesIds') or [],
            'AttributeValues': list(combo),
        })
    return variants


def has_stock(template: Dict[str, Any]) -> bool:
    return any(
        (variant.get('QtyAvailable') or 0) > 0 or (variant.get('VirtualAvailable') or 0) > 0
        for variant in template.get('ProductVariants') or []
    )


def rebuild_template_variants(template: Dict[str, Any], selected_variants: Optional[str]) -> Dict[str, Any]:
    """
    Prepare an edited template for ``UpdateV2``.

    Variants are regenerated from ``selected_variants`` only while no
    variant holds stock. Quantity fields are always dropped from variants
    so the update cannot overwrite stock.
    """
    payload = dict(template)
    if selected_variants and not has_stock(payload):
        lines = convert_variants_to_attribute_lines(selected_variants)
        if lines:
            payload['AttributeLines'] = lines
            payload['ProductVariants'] = generate_product_variants(
                payload.get('Name'), payload.get('ListPrice'), lines,
                image_base64=payload.get('Image'), template_id=payload.get('Id'), base_product=payload,
            )
            logger.info(f"Regenerated {len(payload['ProductVariants'])} variants for template {payload.get('Id')}")
    elif selected_variants:
        logger.info(f"Template {payload.get('Id')} has stock, keeping its variant structure")

    if payload.get('ProductVariants'):
        payload['ProductVariants'] = [
            {key: value for key, value in variant.items() if key not in QUANTITY_FIELDS}
            for variant in payload['ProductVariants']
        ]
    return payload
