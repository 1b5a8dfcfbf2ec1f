from django.db.models import Max
from rest_framework import serializers
from .models import Product, ProductAttribute, ProductAttributeValue
from .variants import format_variant_for_display


class ProductSerializer(serializers.ModelSerializer):
    variant_display = serializers.SerializerMethodField()
    is_base_product = serializers.BooleanField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'product_code', 'product_name', 'variant', 'variant_display',
            'base_product_code', 'is_base_product', 'selling_price', 'purchase_price',
            'stock_quantity', 'virtual_available', 'unit', 'category', 'barcode',
            'supplier_name', 'product_images', 'price_images', 'tpos_product_id',
            'productid_bienthe', 'tpos_image_url', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_variant_display(self, obj):
        return format_variant_for_display(obj.variant)

    def validate_product_code(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Product code is required')
        return value

    def validate(self, attrs):
        for field in ('selling_price', 'purchase_price'):
            if attrs.get(field) is not None and attrs[field] < 0:
                raise serializers.ValidationError({field: 'Price cannot be negative'})
        return attrs

    def create(self, validated_data):
        # New rows without an explicit parent are their own base product
        if not validated_data.get('base_product_code'):
            validated_data['base_product_code'] = validated_data['product_code']
        return super().create(validated_data)


class ProductAttributeValueSerializer(serializers.ModelSerializer):
    attribute_name = serializers.CharField(source='attribute.name', read_only=True)

    class Meta:
        model = ProductAttributeValue
        fields = [
            'id', 'attribute', 'attribute_name', 'value', 'code', 'display_order', 'is_active',
            'tpos_id', 'tpos_attribute_id', 'sequence', 'name_get', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        attribute = attrs.get('attribute') or getattr(self.instance, 'attribute', None)
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if attribute is not None and value is not None:
            duplicates = ProductAttributeValue.objects.filter(attribute=attribute, value=value)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError({'value': f'"{value}" already exists for {attribute.name}'})
        return attrs

    def create(self, validated_data):
        if 'display_order' not in validated_data:
            current_max = ProductAttributeValue.objects.filter(
                attribute=validated_data['attribute']
            ).aggregate(m=Max('display_order'))['m']
            validated_data['display_order'] = (current_max or 0) + 1
        return super().create(validated_data)


class ProductAttributeSerializer(serializers.ModelSerializer):
    values_count = serializers.SerializerMethodField()

    class Meta:
        model = ProductAttribute
        fields = ['id', 'name', 'display_order', 'values_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_values_count(self, obj):
        return obj.values.count()

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Attribute name is required')
        return value

    def create(self, validated_data):
        if 'display_order' not in validated_data:
            validated_data['display_order'] = next_attribute_display_order()
        return super().create(validated_data)


def next_attribute_display_order():
    current_max = ProductAttribute.objects.aggregate(m=Max('display_order'))['m']
    return (current_max or 0) + 1
