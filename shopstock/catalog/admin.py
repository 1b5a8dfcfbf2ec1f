from django.contrib import admin
from .models import Product, ProductAttribute, ProductAttributeValue


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_code', 'product_name', 'variant', 'base_product_code', 'selling_price',
                    'stock_quantity', 'supplier_name', 'tpos_product_id', 'updated_at']
    list_filter = ['supplier_name', 'category']
    search_fields = ['product_code', 'product_name', 'variant', 'barcode']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']


class ProductAttributeValueInline(admin.TabularInline):
    model = ProductAttributeValue
    extra = 0
    fields = ['value', 'code', 'display_order', 'is_active', 'tpos_id', 'tpos_attribute_id']


@admin.register(ProductAttribute)
class ProductAttributeAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_order', 'created_at']
    ordering = ['display_order']
    inlines = [ProductAttributeValueInline]


@admin.register(ProductAttributeValue)
class ProductAttributeValueAdmin(admin.ModelAdmin):
    list_display = ['attribute', 'value', 'code', 'display_order', 'is_active', 'tpos_id']
    list_filter = ['attribute', 'is_active']
    search_fields = ['value', 'code']
