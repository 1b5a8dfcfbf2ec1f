from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from shopstock.core.utils import log_insert, log_delete
from .models import GoodsReceiving
from .serializers import GoodsReceivingSerializer, GoodsReceivingCreateSerializer
from .services import receive_purchase_order, delete_receiving, ReceivingError


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def goods_receiving_list_create(request):
    """List goods receivings or record a delivery for a pending purchase order"""
    if request.method == 'GET':
        queryset = GoodsReceiving.objects.all().select_related('purchase_order').prefetch_related('items')

        purchase_order = request.query_params.get('purchase_order')
        if purchase_order:
            queryset = queryset.filter(purchase_order_id=purchase_order)
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)

        queryset = queryset.order_by('-created_at', '-id')
        return Response(GoodsReceivingSerializer(queryset, many=True).data)
    else:  # POST
        serializer = GoodsReceivingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        try:
            receiving = receive_purchase_order(
                data['purchase_order'],
                data['items'],
                user=request.user,
                notes=data.get('notes'),
                receiving_date=data.get('receiving_date'),
            )
        except ReceivingError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        log_insert(request, receiving)
        return Response(GoodsReceivingSerializer(receiving).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def goods_receiving_detail(request, pk):
    """Retrieve or delete a goods receiving (deleting reverses its stock)"""
    receiving = get_object_or_404(GoodsReceiving.objects.prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(GoodsReceivingSerializer(receiving).data)
    else:  # DELETE
        log_delete(request, receiving)
        delete_receiving(receiving)
        return Response(status=status.HTTP_204_NO_CONTENT)
