from rest_framework import serializers
from django.db import transaction
from .models import PurchaseOrder, PurchaseOrderItem


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'position', 'quantity', 'notes', 'product_code', 'product_name', 'variant',
            'purchase_price', 'selling_price', 'product_images', 'price_images',
            'tpos_product_id', 'selected_attribute_value_ids', 'tpos_sync_status',
            'tpos_sync_error', 'tpos_sync_started_at', 'tpos_sync_completed_at', 'line_total',
        ]
        read_only_fields = [
            'tpos_sync_status', 'tpos_sync_error', 'tpos_sync_started_at', 'tpos_sync_completed_at',
        ]

    def get_line_total(self, obj):
        return float(obj.get_line_total())

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0')
        return value

    def validate_selected_attribute_value_ids(self, value):
        if value is None:
            return []
        if not isinstance(value, list):
            raise serializers.ValidationError('Expected a list of attribute value ids')
        return value


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """
    Purchase order with nested items.

    Items are passed through ``context['items_data']``; on update a non-None
    list replaces every existing item.
    """
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    has_shortage = serializers.BooleanField(read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'order_date', 'status', 'supplier_name', 'invoice_amount', 'total_amount',
            'discount_amount', 'shipping_fee', 'final_amount', 'notes', 'invoice_images',
            'created_by', 'created_at', 'updated_at', 'items', 'item_count', 'has_shortage',
        ]
        read_only_fields = ['status', 'total_amount', 'final_amount', 'created_by', 'created_at', 'updated_at']

    def get_item_count(self, obj):
        return obj.items.count()

    def validate(self, attrs):
        for field in ('discount_amount', 'shipping_fee', 'invoice_amount'):
            if attrs.get(field) is not None and attrs[field] < 0:
                raise serializers.ValidationError({field: 'Amount cannot be negative'})

        if self.instance is not None and self.instance.status in ('completed', 'cancelled'):
            raise serializers.ValidationError(f'Cannot edit a {self.instance.status} purchase order')

        items_data = self.context.get('items_data')
        if items_data is not None:
            item_serializer = PurchaseOrderItemSerializer(data=items_data, many=True)
            if not item_serializer.is_valid():
                raise serializers.ValidationError({'items': item_serializer.errors})
            self._validated_items = item_serializer.validated_data
        else:
            self._validated_items = None
        return attrs

    def _create_items(self, order, items):
        for index, item_data in enumerate(items):
            item_data = dict(item_data)
            item_data.setdefault('position', index + 1)
            # Lines already linked to TPOS need no product creation
            item_data['tpos_sync_status'] = 'success' if item_data.get('tpos_product_id') else 'pending'
            PurchaseOrderItem.objects.create(purchase_order=order, **item_data)

    @transaction.atomic
    def create(self, validated_data):
        order = super().create(validated_data)
        self._create_items(order, self._validated_items or [])
        order.recalculate_totals()
        return order

    @transaction.atomic
    def update(self, instance, validated_data):
        order = super().update(instance, validated_data)
        if self._validated_items is not None:
            order.items.all().delete()
            self._create_items(order, self._validated_items)
        order.recalculate_totals()
        return order
