from rest_framework import serializers
from .models import GoodsReceiving, GoodsReceivingItem


class GoodsReceivingItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = GoodsReceivingItem
        fields = [
            'id', 'purchase_order_item', 'product_code', 'product_name', 'variant',
            'expected_quantity', 'received_quantity', 'discrepancy_type',
            'discrepancy_quantity', 'product_condition', 'notes', 'created_at',
        ]
        read_only_fields = fields


class GoodsReceivingSerializer(serializers.ModelSerializer):
    items = GoodsReceivingItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='purchase_order.supplier_name', read_only=True)

    class Meta:
        model = GoodsReceiving
        fields = [
            'id', 'purchase_order', 'supplier_name', 'receiving_date', 'received_by', 'status',
            'total_items_expected', 'total_items_received', 'has_discrepancy', 'notes',
            'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ReceivedItemInputSerializer(serializers.Serializer):
    purchase_order_item = serializers.IntegerField()
    received_quantity = serializers.IntegerField(min_value=0)
    product_condition = serializers.ChoiceField(choices=GoodsReceivingItem.CONDITION_CHOICES, default='good')
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class GoodsReceivingCreateSerializer(serializers.Serializer):
    purchase_order = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    receiving_date = serializers.DateTimeField(required=False)
    items = ReceivedItemInputSerializer(many=True)

    def validate_items(self, value):
        seen = set()
        for entry in value:
            if entry['purchase_order_item'] in seen:
                raise serializers.ValidationError(
                    f"Purchase order item {entry['purchase_order_item']} listed twice"
                )
            seen.add(entry['purchase_order_item'])
        return value
