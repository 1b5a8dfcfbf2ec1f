from django.contrib import admin
from .models import GoodsReceiving, GoodsReceivingItem


class GoodsReceivingItemInline(admin.TabularInline):
    model = GoodsReceivingItem
    extra = 0
    readonly_fields = ['product_code', 'expected_quantity', 'received_quantity', 'discrepancy_type', 'discrepancy_quantity']


@admin.register(GoodsReceiving)
class GoodsReceivingAdmin(admin.ModelAdmin):
    list_display = ['id', 'purchase_order', 'status', 'total_items_expected', 'total_items_received', 'has_discrepancy', 'receiving_date']
    list_filter = ['status', 'has_discrepancy']
    inlines = [GoodsReceivingItemInline]
