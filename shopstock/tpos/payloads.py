"""ProductTemplate payloads for ``ODataService.InsertV2``"""
from itertools import product as cartesian_product

_UOM = {
    'Id': 1,
    'Name': 'Cái',
    'NameNoSign': None,
    'Rounding': 0.001,
    'Active': True,
    'Factor': 1,
    'FactorInv': 1,
    'UOMType': 'reference',
    'CategoryId': 1,
    'CategoryName': 'Đơn vị',
    'Description': None,
    'ShowUOMType': 'Đơn vị gốc của nhóm này',
    'NameGet': 'Cái',
    'ShowFactor': 1,
    'DateCreated': '2018-05-25T15:44:44.14+07:00',
}

_CATEG = {
    'Id': 2,
    'Name': 'Có thể bán',
    'CompleteName': 'Có thể bán',
    'ParentId': None,
    'ParentCompleteName': None,
    'ParentLeft': 0,
    'ParentRight': 1,
    'Sequence': None,
    'Type': 'normal',
    'PropertyValuation': None,
    'PropertyCostMethod': 'average',
    'NameNoSign': 'Co the ban',
    'IsPos': True,
    'Version': None,
    'IsDelete': False,
}


def build_template_payload(code, name, purchase_price, selling_price, image_base64=None,
                           attribute_lines=None, product_variants=None):
    """Base product template; without variants this is a simple product"""
    product_variants = product_variants or []
    return {
        'Id': 0,
        'Name': name,
        'NameNoSign': None,
        'Description': None,
        'Type': 'product',
        'ShowType': 'Có thể lưu trữ',
        'ListPrice': selling_price,
        'DiscountSale': 0,
        'DiscountPurchase': 0,
        'PurchasePrice': purchase_price,
        'StandardPrice': 0,
        'SaleOK': True,
        'PurchaseOK': True,
        'Active': True,
        'UOMId': 1,
        'UOMPOId': 1,
        'UOSId': None,
        'IsProductVariant': False,
        'EAN13': None,
        'DefaultCode': code,
        'QtyAvailable': 0,
        'VirtualAvailable': 0,
        'OutgoingQty': 0,
        'IncomingQty': 0,
        'CategId': 2,
        'Weight': 0,
        'Tracking': 'none',
        'CompanyId': 1,
        'SaleDelay': 0,
        'InvoicePolicy': 'order',
        'PurchaseMethod': 'receive',
        'AvailableInPOS': True,
        'POSCategId': None,
        'Barcode': code,
        'Image': image_base64,
        'ImageUrl': None,
        'Thumbnails': [],
        'ProductVariantCount': len(product_variants),
        'BOMCount': 0,
        'IsCombo': False,
        'EnableAll': False,
        'Version': 0,
        'InitInventory': 0,
        'UOM': dict(_UOM),
        'Categ': dict(_CATEG),
        'UOMPO': dict(_UOM),
        'AttributeLines': attribute_lines or [],
        'Items': [],
        'UOMLines': [],
        'ComboProducts': [],
        'ProductSupplierInfos': [],
        'ProductVariants': product_variants,
    }


def _line_value(value, attribute_name):
    return {
        'Id': value.tpos_id,
        'Name': value.value,
        'Code': value.code,
        'Sequence': value.sequence,
        'AttributeId': value.tpos_attribute_id,
        'AttributeName': attribute_name,
        'NameGet': value.name_get,
        'DateCreated': None,
    }


def build_attribute_lines(groups):
    """
    ``groups`` is a list of ``(attribute, [values])`` in display order.
    The attribute's POS id is taken from its first value.
    """
    lines = []
    for attribute, values in groups:
        tpos_attribute_id = values[0].tpos_attribute_id
        lines.append({
            'Attribute': {
                'Id': tpos_attribute_id,
                'Name': attribute.name,
                'Code': attribute.name,
                'CreateVariant': True,
            },
            'Values': [_line_value(value, attribute.name) for value in values],
            'AttributeId': tpos_attribute_id,
        })
    return lines


def build_product_variants(code, selling_price, groups):
    """One variant per combination of the grouped values"""
    variants = []
    for combo in cartesian_product(*(values for _, values in groups)):
        # Name lists the values last attribute first
        name = f"{code} ({', '.join(value.value for value in reversed(combo))})"
        variants.append({
            'Id': 0,
            'EAN13': None,
            'NameTemplate': code,
            'ProductTmplId': 0,
            'UOMId': 0,
            'UOMPOId': 0,
            'QtyAvailable': 0,
            'VirtualAvailable': 0,
            'NameGet': name,
            'Thumbnails': [],
            'PriceVariant': selling_price,
            'SaleOK': True,
            'PurchaseOK': True,
            'LstPrice': 0,
            'Active': True,
            'ListPrice': 0,
            'StandardPrice': 0,
            'Weight': 0,
            'IsDiscount': False,
            'ProductTmplEnableAll': False,
            'Version': 0,
            'Type': 'product',
            'CategId': 0,
            'InvoicePolicy': 'order',
            'Variant_TeamId': 0,
            'Name': name,
            'PurchaseMethod': 'receive',
            'SaleDelay': 0,
            'AvailableInPOS': True,
            'NameTemplateNoSign': code,
            'TaxesIds': [],
            'NameCombos': [],
            'Product_UOMId': None,
            'InitInventory': 0,
            'AttributeValues': [
                {
                    'Id': value.tpos_id,
                    'Name': value.value,
                    'AttributeId': value.tpos_attribute_id,
                    'AttributeName': value.attribute.name,
                    'NameGet': value.name_get,
                    'DateCreated': None,
                }
                for value in combo
            ],
        })
    return variants
