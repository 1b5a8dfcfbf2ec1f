"""
Three-step stock quantity change on TPOS:

1. fetch the stock-change template for a product template,
2. set the new quantities and post the rows,
3. execute the posted change ids.
"""
import logging
from typing import Any, Dict, List, Optional

from django.conf import settings

from .client import TPOSClient
from .exceptions import TPOSPayloadError

logger = logging.getLogger(__name__)

TEMPLATE_PATH = '/odata/StockChangeProductQty/ODataService.DefaultGetAll?$expand=ProductTmpl,Product,Location'
POST_QTY_PATH = '/odata/StockChangeProductQty/ODataService.PostChangeQtyProduct?$expand=ProductTmpl,Product,Location'
EXECUTE_PATH = '/odata/StockChangeProductQty/ODataService.ChangeProductQtyIds'


def get_template(product_tmpl_id: int, client: Optional[TPOSClient] = None) -> List[Dict[str, Any]]:
    """Step 1: stock-change rows for every variant of the template"""
    client = client or TPOSClient()
    data = client.post(TEMPLATE_PATH, {'model': {'ProductTmplId': product_tmpl_id}})
    rows = (data or {}).get('value')
    if not isinstance(rows, list) or not rows:
        raise TPOSPayloadError(f"Empty stock-change template for product template {product_tmpl_id}")
    return rows


def apply_changes(rows: List[Dict[str, Any]], changed_qty: Dict[int, int]) -> List[Dict[str, Any]]:
    """Copy of ``rows`` with the stock location set and new quantities applied"""
    changed = {int(variant_id): quantity for variant_id, quantity in changed_qty.items()}
    modified = []
    for row in rows:
        new_row = dict(row)
        new_row['LocationId'] = settings.TPOS_STOCK_LOCATION_ID
        variant_id = (row.get('Product') or {}).get('Id')
        if variant_id in changed:
            new_row['NewQuantity'] = changed[variant_id]
        modified.append(new_row)
    return modified


def post_changed_quantities(rows: List[Dict[str, Any]], client: Optional[TPOSClient] = None) -> List[int]:
    """Step 2: post the modified rows, returning the ids to execute"""
    client = client or TPOSClient()
    data = client.post(POST_QTY_PATH, {'model': rows})
    posted = (data or {}).get('value')
    if not isinstance(posted, list) or not posted:
        raise TPOSPayloadError("TPOS returned no stock-change rows")
    return [row.get('Id') for row in posted]


def execute_change(ids: List[int], client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Step 3: apply the posted changes. An empty or non-JSON reply is success."""
    client = client or TPOSClient()
    response = client.request_raw('POST', EXECUTE_PATH, {'ids': ids})

    result = {'success': True, 'ids': ids, 'status': response.status_code}
    if response.status_code == 204 or not response.content:
        return result
    try:
        result['data'] = response.json()
    except ValueError:
        logger.info(f"Stock change execute returned non-JSON body with {response.status_code}")
    return result


def plan_quantity_transfer(source: Dict[str, int], target: Dict[str, int], amount: int) -> Dict[int, int]:
    """
    Changed quantity map for moving ``amount`` units from ``source`` to
    ``target``; both are ``{'id': variant_id, 'quantity': current}``.
    A negative amount moves units the other way.
    """
    if source['id'] == target['id']:
        raise ValueError('Source and target variants must differ')

    new_source = source['quantity'] - amount
    new_target = target['quantity'] + amount
    if new_source < 0 or new_target < 0:
        raise ValueError('Quantity cannot go below zero')

    changed = {}
    if new_source != source['quantity']:
        changed[source['id']] = new_source
    if new_target != target['quantity']:
        changed[target['id']] = new_target
    return changed


def transfer_quantities(product_tmpl_id: int, changed_qty: Dict[int, int],
                        client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    """Run all three steps for ``changed_qty`` (``{variant_id: new_quantity}``)"""
    if not changed_qty:
        return {'success': True, 'ids': [], 'changed': {}}

    client = client or TPOSClient()
    rows = get_template(product_tmpl_id, client)
    ids = post_changed_quantities(apply_changes(rows, changed_qty), client)
    result = execute_change(ids, client)
    result['changed'] = {str(key): value for key, value in changed_qty.items()}
    logger.info(f"Quantity transfer on template {product_tmpl_id}: {len(changed_qty)} variants, {len(ids)} change rows")
    return result
