"""Look up live-sale orders on TPOS by session index"""
import logging
from datetime import date, datetime, time, timezone as dt_timezone
from typing import Any, Dict, List, Optional

from django.utils import timezone

from .client import TPOSClient

logger = logging.getLogger(__name__)

ORDER_LIST_PATH = (
    '/odata/SaleOnline_Order/ODataService.GetView?$top=20&$orderby=DateCreated+desc'
    '&$filter=(DateCreated+ge+{start}+and+DateCreated+le+{end}+and+SessionIndex+eq+{session_index})'
    '&$count=true'
)
ORDER_DETAIL_PATH = '/odata/SaleOnline_Order({id})?$expand=Details,Partner,User,CRMTeam'


def _utc_iso(value: datetime) -> str:
    return value.astimezone(dt_timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


def day_range(start_date: date, end_date: date):
    """Start of ``start_date`` to the last millisecond of ``end_date``, local time, as UTC strings"""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(start_date, time.min), tz)
    end = timezone.make_aware(datetime.combine(end_date, time(23, 59, 59, 999000)), tz)
    return _utc_iso(start), _utc_iso(end)


def fetch_orders_by_session_index(session_index: int, start_date: date, end_date: date,
                                  client: Optional[TPOSClient] = None) -> List[Dict[str, Any]]:
    """Newest 20 orders with ``session_index`` created within the day range"""
    client = client or TPOSClient()
    start, end = day_range(start_date, end_date)
    data = client.get(ORDER_LIST_PATH.format(start=start, end=end, session_index=session_index))
    orders = (data or {}).get('value') or []
    logger.info(f"Found {len(orders)} TPOS orders for session index {session_index}")
    return orders


def fetch_order_details(order_id: str, client: Optional[TPOSClient] = None) -> Dict[str, Any]:
    client = client or TPOSClient()
    data = client.get(ORDER_DETAIL_PATH.format(id=order_id)) or {}
    return {
        'Id': data.get('Id'),
        'Code': data.get('Code'),
        'Details': data.get('Details') or [],
        'TotalAmount': data.get('TotalAmount') or 0,
        'TotalQuantity': data.get('TotalQuantity') or 0,
    }


def get_session_order_details(session_index: int, start_date: date, end_date: date,
                              client: Optional[TPOSClient] = None) -> Optional[Dict[str, Any]]:
    """Details of the newest matching order, ``None`` when there is none"""
    client = client or TPOSClient()
    orders = fetch_orders_by_session_index(session_index, start_date, end_date, client)
    if not orders:
        return None
    return fetch_order_details(orders[0]['Id'], client)
