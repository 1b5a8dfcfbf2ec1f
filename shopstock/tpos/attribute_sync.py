import logging
from typing import Any, Dict, Optional

from shopstock.catalog.models import ProductAttributeValue
from .client import TPOSClient
from .exceptions import TPOSPayloadError, TPOSValidationError

logger = logging.getLogger(__name__)

ATTRIBUTE_VALUE_PATH = '/odata/ProductAttributeValue'

# Local attribute name -> (TPOS attribute id, TPOS attribute code)
ATTRIBUTE_MAPPING = {
    'Màu': (3, 'Mau'),
    'Size Số': (4, 'SZNu'),
    'Size Chữ': (1, 'SZCh'),
}


def build_attribute_value_payload(attribute_name: str, value: str, code: Optional[str] = None) -> Dict[str, Any]:
    if attribute_name not in ATTRIBUTE_MAPPING:
        raise TPOSValidationError(
            f"Invalid attribute name: {attribute_name}. Must be one of: {', '.join(ATTRIBUTE_MAPPING)}"
        )
    attribute_id, attribute_code = ATTRIBUTE_MAPPING[attribute_name]
    return {
        'Attribute': {
            'Id': attribute_id,
            'Name': attribute_name,
            'Code': attribute_code,
            'Sequence': None,
            'CreateVariant': True,
        },
        'Code': code or value,
        'Name': value,
        'AttributeId': attribute_id,
    }


def sync_attribute_value(attribute_value: ProductAttributeValue, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Create the value on TPOS and store the returned identifiers locally"""
    payload = build_attribute_value_payload(
        attribute_value.attribute.name, attribute_value.value, attribute_value.code
    )

    client = client or TPOSClient()
    result = client.post(ATTRIBUTE_VALUE_PATH, payload)
    if not result or result.get('Id') is None:
        raise TPOSPayloadError('TPOS did not return the created attribute value')

    attribute_value.tpos_id = result.get('Id')
    attribute_value.tpos_attribute_id = result.get('AttributeId')
    attribute_value.sequence = result.get('Sequence')
    attribute_value.name_get = result.get('NameGet')
    attribute_value.save(update_fields=['tpos_id', 'tpos_attribute_id', 'sequence', 'name_get', 'updated_at'])

    logger.info(f"Synced attribute value {attribute_value.id} ({attribute_value}) as TPOS {attribute_value.tpos_id}")
    return {
        'success': True,
        'data': result,
        'tpos_id': attribute_value.tpos_id,
        'tpos_attribute_id': attribute_value.tpos_attribute_id,
        'sequence': attribute_value.sequence,
    }
