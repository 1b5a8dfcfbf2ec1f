"""
Create TPOS products for every unsynced line of a purchase order.

Lines sharing a product code and attribute selection are created once.
Each group is locked by flipping its rows to ``processing``; rows already
``processing`` belong to another run and are left alone.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, List

from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from shopstock.purchasing.models import PurchaseOrder, PurchaseOrderItem
from .variant_creation import create_variants_from_order

logger = logging.getLogger(__name__)


def release_stuck_items(order_id) -> int:
    """Fail items left in ``processing`` longer than the stuck timeout"""
    cutoff = timezone.now() - timedelta(minutes=settings.TPOS_STUCK_TIMEOUT_MINUTES)
    released = PurchaseOrderItem.objects.filter(
        purchase_order_id=order_id,
        tpos_sync_status='processing',
        tpos_sync_started_at__lt=cutoff,
    ).update(
        tpos_sync_status='failed',
        tpos_sync_error=f'Timeout: processing took longer than {settings.TPOS_STUCK_TIMEOUT_MINUTES} minutes',
        tpos_sync_completed_at=timezone.now(),
    )
    if released:
        logger.warning(f"Purchase order {order_id}: released {released} stuck items")
    return released


def group_key(item) -> str:
    ids = ','.join(str(value_id) for value_id in sorted(item.selected_attribute_value_ids or []))
    return f"{item.product_code}|{ids}"


def group_items(items) -> Dict[str, List[PurchaseOrderItem]]:
    groups = {}
    for item in items:
        groups.setdefault(group_key(item), []).append(item)
    return groups


def _images(item) -> List[str]:
    images = item.product_images
    if not images:
        return []
    return images if isinstance(images, list) else [images]


def _create_for_group(order, primary) -> Dict[str, Any]:
    return create_variants_from_order(
        base_product_code=primary.product_code.strip().upper(),
        product_name=primary.product_name.strip().upper(),
        purchase_price=float(primary.purchase_price or 0) / 1000,
        selling_price=float(primary.selling_price or 0) / 1000,
        selected_attribute_value_ids=primary.selected_attribute_value_ids or [],
        product_images=_images(primary),
        supplier_name=(order.supplier_name or '').strip().upper() or 'UNKNOWN',
    )


def process_group(order, items) -> Dict[str, Any]:
    """
    Lock, create and report on one group. Returns
    ``{'locked': [...ids], 'error': str | None, 'product_id': int | None}``.
    """
    item_ids = [item.id for item in items]
    locked = PurchaseOrderItem.objects.filter(id__in=item_ids).exclude(
        tpos_sync_status='processing'
    ).update(tpos_sync_status='processing', tpos_sync_started_at=timezone.now())

    if not locked:
        logger.info(f"Group {group_key(items[0])} already processing, skipped")
        return {'locked': [], 'error': None, 'product_id': None}

    max_retries = settings.TPOS_SYNC_MAX_RETRIES
    error = None
    product_id = None
    for attempt in range(1, max_retries + 1):
        try:
            result = _create_for_group(order, items[0])
            product_id = ((result.get('data') or {}).get('tpos') or {}).get('product_id')
            error = None
            break
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.warning(f"Group {group_key(items[0])} attempt {attempt}/{max_retries} failed: {error}")
            if '429' in error and attempt < max_retries:
                time.sleep(settings.TPOS_RATE_LIMIT_BACKOFF_SECONDS * attempt)

    return {'locked': item_ids, 'error': error, 'product_id': product_id}


def _process_group_in_thread(order, items):
    try:
        return process_group(order, items)
    finally:
        close_old_connections()


def process_purchase_order(order_id) -> Dict[str, Any]:
    """
    Sync every pending or failed line of the order without a TPOS product.

    Raises ``PurchaseOrder.DoesNotExist`` when the order is gone.
    """
    release_stuck_items(order_id)

    order = PurchaseOrder.objects.get(pk=order_id)

    items = list(
        order.items.filter(tpos_sync_status__in=['pending', 'failed'], tpos_product_id__isnull=True)
        .order_by('position', 'id')
    )
    if not items:
        return {'success': True, 'total': 0, 'succeeded': 0, 'failed': 0, 'errors': []}

    groups = list(group_items(items).values())
    max_concurrent = max(1, settings.TPOS_SYNC_MAX_CONCURRENT)
    logger.info(f"Purchase order {order_id}: {len(items)} items in {len(groups)} groups")

    results = []
    for start in range(0, len(groups), max_concurrent):
        batch = groups[start:start + max_concurrent]
        if max_concurrent == 1:
            results.extend(process_group(order, group) for group in batch)
        else:
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                results.extend(executor.map(lambda group: _process_group_in_thread(order, group), batch))

    succeeded = 0
    failed = 0
    errors = []
    now = timezone.now()
    for result in results:
        if not result['locked']:
            continue
        processing = PurchaseOrderItem.objects.filter(id__in=result['locked'], tpos_sync_status='processing')
        if result['error']:
            failed += len(result['locked'])
            errors.extend({'id': item_id, 'error': result['error']} for item_id in result['locked'])
            processing.update(tpos_sync_status='failed', tpos_sync_error=result['error'], tpos_sync_completed_at=now)
        else:
            succeeded += len(result['locked'])
            updates = {'tpos_sync_status': 'success', 'tpos_sync_error': None, 'tpos_sync_completed_at': now}
            if result['product_id']:
                updates['tpos_product_id'] = result['product_id']
            processing.update(**updates)

    logger.info(f"Purchase order {order_id} sync finished: {succeeded} succeeded, {failed} failed")
    return {
        'success': True,
        'total': len(items),
        'succeeded': succeeded,
        'failed': failed,
        'errors': errors,
    }


def process_purchase_order_in_background(order_id) -> threading.Thread:
    """Run ``process_purchase_order`` on a daemon thread"""
    def run():
        try:
            process_purchase_order(order_id)
        except PurchaseOrder.DoesNotExist:
            logger.error(f"Background sync: purchase order {order_id} no longer exists")
        except Exception as e:
            logger.error(f"Background sync of purchase order {order_id} failed: {str(e)}")
        finally:
            close_old_connections()

    thread = threading.Thread(target=run, name=f'tpos-sync-{order_id}', daemon=True)
    thread.start()
    return thread
