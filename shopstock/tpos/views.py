from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
import requests
from shopstock.catalog.models import Product, ProductAttributeValue
from shopstock.catalog.serializers import ProductSerializer, ProductAttributeValueSerializer
from shopstock.core.utils import snapshot, log_insert, log_update, log_delete
from shopstock.purchasing.models import PurchaseOrder
from .client import TPOSClient
from .exceptions import (
    TPOSError, TPOSAPIError, TPOSCredentialsNotFound, TPOSPayloadError, TPOSValidationError,
)
from .models import TPOSCredential
from .serializers import TPOSCredentialSerializer
from . import (
    attribute_sync, order_details, order_sync, product_sync, quantity_transfer, variant_converter, variant_creation,
)
import logging

logger = logging.getLogger(__name__)


def _error_response(error):
    """Map integration errors onto JSON error responses"""
    if isinstance(error, TPOSValidationError):
        return Response({'success': False, 'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(error, TPOSAPIError):
        logger.error(f"TPOS API error: {error}")
        return Response(
            {'success': False, 'error': str(error), 'tpos_status': error.status_code},
            status=status.HTTP_502_BAD_GATEWAY
        )
    if isinstance(error, (TPOSPayloadError, requests.RequestException)):
        logger.error(f"TPOS request failed: {str(error)}")
        return Response({'success': False, 'error': str(error)}, status=status.HTTP_502_BAD_GATEWAY)
    logger.error(f"TPOS integration error: {str(error)}")
    return Response({'success': False, 'error': str(error)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _bad_request(message):
    return Response({'success': False, 'error': message}, status=status.HTTP_400_BAD_REQUEST)


# Stock quantity change
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_change_get_template(request):
    """Step 1: body ``{"model": {"ProductTmplId": id}}``"""
    model = request.data.get('model') or {}
    product_tmpl_id = model.get('ProductTmplId') if isinstance(model, dict) else None
    if not product_tmpl_id:
        return _bad_request('model.ProductTmplId is required')

    try:
        rows = quantity_transfer.get_template(product_tmpl_id)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response({'value': rows})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_change_post_qty(request):
    """Step 2: body ``{"model": [rows]}`` with new quantities already set"""
    rows = request.data.get('model')
    if not isinstance(rows, list) or not rows:
        return _bad_request('model must be a non-empty list of stock change rows')

    try:
        ids = quantity_transfer.post_changed_quantities(rows)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response({'success': True, 'ids': ids})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def stock_change_execute(request):
    """Step 3: body ``{"ids": [...]}``"""
    ids = request.data.get('ids')
    if not isinstance(ids, list) or not ids:
        return _bad_request('ids must be a non-empty list')

    try:
        result = quantity_transfer.execute_change(ids)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def quantity_transfer_view(request):
    """
    Move stock between two variants of a template.

    Body is either ``{"product_tmpl_id", "changed_qty": {variant_id: qty}}``
    or ``{"product_tmpl_id", "source": {"id", "quantity"},
    "target": {"id", "quantity"}, "amount"}``.
    """
    product_tmpl_id = request.data.get('product_tmpl_id')
    if not product_tmpl_id:
        return _bad_request('product_tmpl_id is required')

    changed_qty = request.data.get('changed_qty')
    try:
        if changed_qty is None:
            source = request.data.get('source') or {}
            target = request.data.get('target') or {}
            changed_qty = quantity_transfer.plan_quantity_transfer(
                {'id': int(source['id']), 'quantity': int(source['quantity'])},
                {'id': int(target['id']), 'quantity': int(target['quantity'])},
                int(request.data.get('amount', 0)),
            )
        else:
            changed_qty = {int(key): int(value) for key, value in dict(changed_qty).items()}
    except (KeyError, TypeError, ValueError) as e:
        return _bad_request(f'Invalid transfer: {str(e)}')

    try:
        result = quantity_transfer.transfer_quantities(int(product_tmpl_id), changed_qty)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)

    logger.info(f"User {request.user.username} changed quantities on TPOS template {product_tmpl_id}")
    return Response(result)


# Product creation
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_variants(request):
    """Create a TPOS product (with variants) from purchase order line data"""
    data = request.data
    try:
        result = variant_creation.create_variants_from_order(
            base_product_code=(data.get('baseProductCode') or '').strip(),
            product_name=(data.get('productName') or '').strip(),
            purchase_price=data.get('purchasePrice'),
            selling_price=data.get('sellingPrice'),
            selected_attribute_value_ids=data.get('selectedAttributeValueIds') or [],
            product_images=data.get('productImages') or [],
            supplier_name=data.get('supplierName'),
        )
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_process(request, pk):
    """
    Create TPOS products for an order's unsynced lines.

    ``?background=true`` returns 202 immediately; progress is visible via
    the order's sync-status endpoint.
    """
    if request.query_params.get('background', '').lower() == 'true':
        if not PurchaseOrder.objects.filter(pk=pk).exists():
            return Response({'success': False, 'error': 'Purchase order not found'}, status=status.HTTP_404_NOT_FOUND)
        order_sync.process_purchase_order_in_background(pk)
        return Response({'success': True, 'message': 'Processing started', 'purchase_order': pk},
                        status=status.HTTP_202_ACCEPTED)

    try:
        summary = order_sync.process_purchase_order(pk)
    except PurchaseOrder.DoesNotExist:
        return Response({'success': False, 'error': 'Purchase order not found'}, status=status.HTTP_404_NOT_FOUND)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response({'success': True, 'tpos_sync': summary})


# Attribute values
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def attribute_value_sync(request, pk):
    """Create the local attribute value on TPOS and store its ids"""
    value = get_object_or_404(ProductAttributeValue.objects.select_related('attribute'), pk=pk)
    old_data = snapshot(value)
    try:
        result = attribute_sync.sync_attribute_value(value)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    log_update(request, value, old_data)
    result['attribute_value'] = ProductAttributeValueSerializer(value).data
    return Response(result)


# Product pull sync
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_search(request):
    code = (request.query_params.get('code') or '').strip()
    if not code:
        return _bad_request('code is required')
    try:
        product = product_sync.search_product(code)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    if product is None:
        return Response({'success': False, 'error': f'Product {code} not found on TPOS'},
                        status=status.HTTP_404_NOT_FOUND)
    return Response(product)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_details(request, template_id):
    try:
        return Response(product_sync.get_product_details(template_id))
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_update(request):
    """
    Forward an edited ProductTemplate payload to TPOS.

    An optional ``selectedVariants`` string such as ``"(Đỏ | Xanh) (S | M)"``
    regenerates the variants of a template that holds no stock.
    """
    if not isinstance(request.data, dict) or not request.data.get('Id'):
        return _bad_request('Template payload with Id is required')
    template = dict(request.data)
    selected_variants = template.pop('selectedVariants', None)
    try:
        payload = variant_converter.rebuild_template_variants(template, selected_variants)
        return Response(product_sync.update_product_details(payload))
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_upsert(request):
    """Replace the local product family of ``product_code`` with TPOS's copy"""
    try:
        result = product_sync.upsert_product_from_tpos(request.data.get('product_code'))
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    if not result['success']:
        return Response(result, status=status.HTTP_404_NOT_FOUND)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAdminUser])
def product_sync_all(request):
    try:
        result = product_sync.sync_all_products()
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAdminUser])
def variant_sync_all(request):
    try:
        result = product_sync.sync_all_variants()
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_sync_variant(request, pk):
    """Refresh one variant row from TPOS"""
    product = get_object_or_404(Product, pk=pk)
    old_data = snapshot(product)
    try:
        product = product_sync.sync_variant(product)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    log_update(request, product, old_data)
    return Response(ProductSerializer(product).data)


# Live-sale orders
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_order_details(request, session_index):
    """Newest TPOS order of a session index between ``start_date`` and ``end_date`` (YYYY-MM-DD)"""
    try:
        start_date = parse_date(request.query_params.get('start_date') or '')
        end_date = parse_date(request.query_params.get('end_date') or '')
    except ValueError:
        start_date = end_date = None
    if start_date is None or end_date is None:
        return _bad_request('start_date and end_date are required as YYYY-MM-DD')
    if end_date < start_date:
        return _bad_request('end_date must not be before start_date')

    try:
        order = order_details.get_session_order_details(session_index, start_date, end_date)
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    if order is None:
        return Response({'success': False, 'error': f'No TPOS order for session index {session_index}'},
                        status=status.HTTP_404_NOT_FOUND)
    return Response(order)


# Credentials
@api_view(['GET', 'POST'])
@permission_classes([IsAdminUser])
def credential_list_create(request):
    if request.method == 'GET':
        credentials = TPOSCredential.objects.all()
        token_type = request.query_params.get('token_type')
        if token_type:
            credentials = credentials.filter(token_type=token_type)
        return Response(TPOSCredentialSerializer(credentials, many=True).data)
    else:
        serializer = TPOSCredentialSerializer(data=request.data)
        if serializer.is_valid():
            credential = serializer.save()
            log_insert(request, credential)
            return Response(TPOSCredentialSerializer(credential).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminUser])
def credential_detail(request, pk):
    credential = get_object_or_404(TPOSCredential, pk=pk)

    if request.method == 'GET':
        return Response(TPOSCredentialSerializer(credential).data)
    elif request.method in ('PUT', 'PATCH'):
        old_data = snapshot(credential)
        serializer = TPOSCredentialSerializer(credential, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            credential = serializer.save()
            log_update(request, credential, old_data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        log_delete(request, credential)
        credential.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAdminUser])
def credential_refresh(request, pk):
    """Fetch a new bearer token with the stored login"""
    credential = get_object_or_404(TPOSCredential, pk=pk)
    try:
        TPOSClient(credential=credential).refresh_token()
    except TPOSCredentialsNotFound as e:
        return _bad_request(str(e))
    except (TPOSError, requests.RequestException) as e:
        return _error_response(e)
    return Response(TPOSCredentialSerializer(credential).data)
