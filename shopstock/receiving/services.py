"""
Goods receiving: records a delivery against a pending purchase order and
moves the received quantities into catalogue stock.
"""
from django.db import transaction
from django.db.models import F
import logging

from shopstock.catalog.models import Product
from shopstock.core.cache_signals import invalidate_products_cache_manual
from shopstock.purchasing.models import PurchaseOrder
from .models import GoodsReceiving, GoodsReceivingItem

logger = logging.getLogger(__name__)


class ReceivingError(Exception):
    """Raised when a delivery cannot be recorded"""


def _adjust_stock(product_code, delta):
    if not delta:
        return 0
    return Product.objects.filter(product_code=product_code).update(
        stock_quantity=F('stock_quantity') + delta
    )


@transaction.atomic
def receive_purchase_order(order_id, items, user=None, notes=None, receiving_date=None):
    """
    Record received quantities for a pending purchase order.

    ``items`` is a list of dicts with ``purchase_order_item`` and
    ``received_quantity``; order lines not listed count as not received.
    The order moves to ``completed``.
    """
    order = PurchaseOrder.objects.select_for_update().filter(pk=order_id).first()
    if order is None:
        raise ReceivingError(f'Purchase order {order_id} not found')
    if order.status != 'pending':
        raise ReceivingError(f'Only pending purchase orders can be received (status: {order.status})')

    order_items = {item.id: item for item in order.items.all()}
    received_by_item = {}
    for entry in items:
        item_id = entry['purchase_order_item']
        if item_id not in order_items:
            raise ReceivingError(f'Item {item_id} does not belong to purchase order {order.id}')
        received_by_item[item_id] = entry

    receiving = GoodsReceiving.objects.create(
        purchase_order=order,
        received_by=user,
        notes=notes,
        **({'receiving_date': receiving_date} if receiving_date else {}),
    )

    total_expected = 0
    total_received = 0
    has_discrepancy = False
    has_shortage = False

    for item_id, order_item in order_items.items():
        entry = received_by_item.get(item_id, {})
        received = entry.get('received_quantity', 0)
        discrepancy_type, discrepancy_quantity = GoodsReceivingItem.classify(order_item.quantity, received)

        GoodsReceivingItem.objects.create(
            goods_receiving=receiving,
            purchase_order_item=order_item,
            product_code=order_item.product_code,
            product_name=order_item.product_name,
            variant=order_item.variant,
            expected_quantity=order_item.quantity,
            received_quantity=received,
            discrepancy_type=discrepancy_type,
            discrepancy_quantity=discrepancy_quantity,
            product_condition=entry.get('product_condition', 'good'),
            notes=entry.get('notes'),
        )

        updated = _adjust_stock(order_item.product_code, received)
        if received and not updated:
            logger.warning(f"Receiving {receiving.id}: product {order_item.product_code} not in catalogue, stock not updated")

        total_expected += order_item.quantity
        total_received += received
        has_discrepancy = has_discrepancy or discrepancy_type != 'match'
        has_shortage = has_shortage or discrepancy_type == 'shortage'

    receiving.total_items_expected = total_expected
    receiving.total_items_received = total_received
    receiving.has_discrepancy = has_discrepancy
    receiving.status = 'partial' if has_shortage else 'completed'
    receiving.save()

    order.status = 'completed'
    order.save(update_fields=['status', 'updated_at'])

    transaction.on_commit(invalidate_products_cache_manual)
    logger.info(f"Purchase order {order.id} received: {total_received}/{total_expected} items, status {receiving.status}")
    return receiving


@transaction.atomic
def delete_receiving(receiving):
    """Delete a receiving, taking its quantities back out of stock"""
    order = receiving.purchase_order
    for item in receiving.items.all():
        _adjust_stock(item.product_code, -item.received_quantity)
    receiving.delete()

    # The order awaits delivery again once its last receiving is gone
    if order.status == 'completed' and not order.receivings.exists():
        order.status = 'pending'
        order.save(update_fields=['status', 'updated_at'])

    transaction.on_commit(invalidate_products_cache_manual)
