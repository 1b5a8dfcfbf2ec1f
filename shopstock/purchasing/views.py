from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from shopstock.core.utils import snapshot, log_insert, log_update, log_delete
from .filters import PurchaseOrderFilter
from .models import PurchaseOrder
from .serializers import PurchaseOrderSerializer
import logging

logger = logging.getLogger(__name__)


def _order_queryset():
    return PurchaseOrder.objects.all().prefetch_related('items')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders or create a new one with its items"""
    if request.method == 'GET':
        order_filter = PurchaseOrderFilter(request.query_params, queryset=_order_queryset())
        if not order_filter.is_valid():
            return Response(order_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = order_filter.qs.order_by('-created_at', '-id')

        try:
            page = max(1, int(request.query_params.get('page', 1)))
            limit = max(1, min(int(request.query_params.get('limit', 15)), 200))
        except ValueError:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)

        serializer = PurchaseOrderSerializer(page_obj, many=True)
        response = Response({
            'results': serializer.data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        })
        response['Cache-Control'] = 'private, max-age=10, must-revalidate'
        return response
    else:  # POST
        data = request.data.copy()
        items_data = data.pop('items', [])

        serializer = PurchaseOrderSerializer(data=data, context={'items_data': items_data, 'request': request})
        if serializer.is_valid():
            order = serializer.save(created_by=request.user)
            log_insert(request, order)
            logger.info(f"Purchase order {order.id} created with {order.items.count()} items")
            return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, update (items replaced wholesale) or delete a purchase order"""
    order = get_object_or_404(_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        data = request.data.copy()
        items_data = data.pop('items', None)
        old_data = snapshot(order)

        serializer = PurchaseOrderSerializer(
            order,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            order = serializer.save()
            log_update(request, order, old_data)
            return Response(PurchaseOrderSerializer(order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        # Items and goods receivings are removed by cascade
        log_delete(request, order)
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _transition(request, pk, new_status):
    order = get_object_or_404(PurchaseOrder, pk=pk)

    if not order.can_transition_to(new_status):
        return Response(
            {'error': f'Cannot change purchase order status from {order.status} to {new_status}'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_data = snapshot(order)
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])
    log_update(request, order, old_data)
    logger.info(f"Purchase order {order.id}: {old_data['status']} -> {new_status}")
    return Response(PurchaseOrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_submit(request, pk):
    """Draft -> awaiting export"""
    return _transition(request, pk, 'awaiting_export')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_mark_exported(request, pk):
    """Awaiting export -> pending delivery"""
    return _transition(request, pk, 'pending')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_cancel(request, pk):
    return _transition(request, pk, 'cancelled')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_stats(request):
    """Totals over non-draft orders"""
    queryset = PurchaseOrder.objects.exclude(status='draft')
    totals = queryset.aggregate(total_orders=Count('id'), total_amount=Sum('final_amount'))
    today = timezone.localdate()
    return Response({
        'total_orders': totals['total_orders'],
        'total_amount': float(totals['total_amount'] or 0),
        'today_orders': queryset.filter(created_at__date=today).count(),
        'by_status': {
            row['status']: row['count']
            for row in queryset.values('status').annotate(count=Count('id')).order_by('status')
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_sync_status(request, pk):
    """TPOS sync progress of an order's items"""
    order = get_object_or_404(PurchaseOrder, pk=pk)
    items = order.items.all()

    counts = {key: 0 for key, _ in items.model.SYNC_STATUS_CHOICES}
    for row in items.values('tpos_sync_status').annotate(count=Count('id')):
        counts[row['tpos_sync_status']] = row['count']

    errors = [
        {
            'item_id': item.id,
            'product_code': item.product_code,
            'error': item.tpos_sync_error,
        }
        for item in items.filter(tpos_sync_status='failed').order_by('position', 'id')
    ]

    return Response({
        'purchase_order': order.id,
        'total': sum(counts.values()),
        'counts': counts,
        'is_complete': counts['pending'] == 0 and counts['processing'] == 0,
        'errors': errors,
    })
