from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count, Sum
from django.shortcuts import get_object_or_404
from shopstock.core.cache_utils import get_cached_products_list, cache_products_list
from shopstock.core.utils import snapshot, log_insert, log_update, log_delete
from .filters import ProductFilter
from .models import Product, ProductAttribute, ProductAttributeValue
from .serializers import (
    ProductSerializer, ProductAttributeSerializer, ProductAttributeValueSerializer,
    next_attribute_display_order,
)
import logging

logger = logging.getLogger(__name__)


def _page_params(request, default_limit=50):
    try:
        page = max(1, int(request.query_params.get('page', 1)))
        limit = max(1, min(int(request.query_params.get('limit', default_limit)), 500))
    except ValueError:
        return None, None
    return page, limit


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filtered, paginated, cached) or create a product"""
    if request.method == 'GET':
        page, limit = _page_params(request)
        if page is None:
            return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

        filters_dict = {key: request.query_params.get(key) for key in sorted(request.query_params.keys())}
        cached_data, cache_key = get_cached_products_list(filters_dict)
        if cached_data is not None:
            return Response(cached_data)

        product_filter = ProductFilter(request.query_params, queryset=Product.objects.all())
        if not product_filter.is_valid():
            return Response(product_filter.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = product_filter.qs.order_by('-created_at', '-id')

        paginator = Paginator(queryset, limit)
        page_obj = paginator.get_page(page)

        data = {
            'results': ProductSerializer(page_obj, many=True).data,
            'count': paginator.count,
            'next': page_obj.next_page_number() if page_obj.has_next() else None,
            'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
            'page': page_obj.number,
            'page_size': limit,
            'total_pages': paginator.num_pages,
        }
        cache_products_list(cache_key, data)
        return Response(data)
    else:  # POST
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            log_insert(request, product)
            return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        old_data = snapshot(product)
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = serializer.save()
            log_update(request, product, old_data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        log_delete(request, product)
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_variants(request, pk):
    """Child variants sharing this product's base code"""
    product = get_object_or_404(Product, pk=pk)
    base_code = product.base_product_code or product.product_code
    variants = Product.objects.filter(base_product_code=base_code).exclude(
        product_code=base_code
    ).order_by('product_code')
    return Response({
        'base_product': ProductSerializer(product).data,
        'variants': ProductSerializer(variants, many=True).data,
        'count': variants.count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_supplier_stats(request):
    """Product count and total stock per supplier"""
    rows = (
        Product.objects.exclude(supplier_name__isnull=True).exclude(supplier_name='')
        .values('supplier_name')
        .annotate(product_count=Count('id'), total_stock=Sum('stock_quantity'))
        .order_by('supplier_name')
    )
    return Response([
        {
            'supplier_name': row['supplier_name'],
            'product_count': row['product_count'],
            'total_stock': row['total_stock'] or 0,
        }
        for row in rows
    ])


# Attribute views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def attribute_list_create(request):
    """List attributes ordered for display or create a new attribute"""
    if request.method == 'GET':
        attributes = ProductAttribute.objects.all().order_by('display_order', 'name')
        return Response(ProductAttributeSerializer(attributes, many=True).data)
    else:
        serializer = ProductAttributeSerializer(data=request.data)
        if serializer.is_valid():
            attribute = serializer.save()
            log_insert(request, attribute)
            return Response(ProductAttributeSerializer(attribute).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def attribute_detail(request, pk):
    """Retrieve, update or delete an attribute (deleting removes its values)"""
    attribute = get_object_or_404(ProductAttribute, pk=pk)

    if request.method == 'GET':
        return Response(ProductAttributeSerializer(attribute).data)
    elif request.method in ('PUT', 'PATCH'):
        old_data = snapshot(attribute)
        serializer = ProductAttributeSerializer(attribute, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            attribute = serializer.save()
            log_update(request, attribute, old_data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        log_delete(request, attribute)
        attribute.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def attribute_values(request, pk):
    """List or add values of one attribute"""
    attribute = get_object_or_404(ProductAttribute, pk=pk)

    if request.method == 'GET':
        values = attribute.values.all().order_by('display_order', 'value')
        if request.query_params.get('active_only', '').lower() == 'true':
            values = values.filter(is_active=True)
        return Response(ProductAttributeValueSerializer(values, many=True).data)
    else:
        data = request.data.copy()
        data['attribute'] = attribute.id
        serializer = ProductAttributeValueSerializer(data=data)
        if serializer.is_valid():
            value = serializer.save()
            log_insert(request, value)
            return Response(ProductAttributeValueSerializer(value).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def attribute_value_detail(request, pk):
    """Retrieve, update or delete an attribute value"""
    value = get_object_or_404(ProductAttributeValue.objects.select_related('attribute'), pk=pk)

    if request.method == 'GET':
        return Response(ProductAttributeValueSerializer(value).data)
    elif request.method in ('PUT', 'PATCH'):
        old_data = snapshot(value)
        serializer = ProductAttributeValueSerializer(value, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            value = serializer.save()
            log_update(request, value, old_data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        log_delete(request, value)
        value.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def attribute_import(request):
    """
    Bulk import attributes and their values.

    Body: ``{"attributes": {"Màu": ["Đỏ", "Xanh"], "Size Chữ": ["S", "M"]}}``
    Missing attributes are created; values that already exist are skipped.
    """
    payload = request.data.get('attributes', request.data)
    if not isinstance(payload, dict) or not payload:
        return Response({'error': 'Expected a mapping of attribute name to list of values'},
                        status=status.HTTP_400_BAD_REQUEST)

    for name, values in payload.items():
        if not isinstance(values, list):
            return Response({'error': f'Values for "{name}" must be a list'},
                            status=status.HTTP_400_BAD_REQUEST)

    created_attributes = 0
    created_values = 0
    skipped_values = 0

    with transaction.atomic():
        for name, values in payload.items():
            name = str(name).strip()
            if not name:
                continue

            attribute = ProductAttribute.objects.filter(name=name).first()
            if attribute is None:
                attribute = ProductAttribute.objects.create(
                    name=name, display_order=next_attribute_display_order()
                )
                log_insert(request, attribute)
                created_attributes += 1

            existing = set(attribute.values.values_list('value', flat=True))
            next_order = len(existing)
            for raw_value in values:
                value = str(raw_value).strip()
                if not value or value in existing:
                    skipped_values += 1
                    continue
                next_order += 1
                attribute_value = ProductAttributeValue.objects.create(
                    attribute=attribute, value=value, display_order=next_order
                )
                log_insert(request, attribute_value)
                existing.add(value)
                created_values += 1

    logger.info(f"Attribute import: {created_attributes} attributes, {created_values} values created, {skipped_values} skipped")
    return Response({
        'created_attributes': created_attributes,
        'created_values': created_values,
        'skipped_values': skipped_values,
    }, status=status.HTTP_201_CREATED)
