from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['position', 'product_code', 'product_name', 'variant', 'quantity',
              'purchase_price', 'selling_price', 'tpos_sync_status', 'tpos_sync_error']
    readonly_fields = ['tpos_sync_status', 'tpos_sync_error']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'supplier_name', 'order_date', 'status', 'final_amount', 'created_by', 'created_at']
    list_filter = ['status', 'order_date']
    search_fields = ['supplier_name', 'notes']
    readonly_fields = ['total_amount', 'final_amount', 'created_at', 'updated_at']
    inlines = [PurchaseOrderItemInline]


@admin.register(PurchaseOrderItem)
class PurchaseOrderItemAdmin(admin.ModelAdmin):
    list_display = ['purchase_order', 'position', 'product_code', 'quantity', 'tpos_sync_status', 'tpos_sync_completed_at']
    list_filter = ['tpos_sync_status']
    search_fields = ['product_code', 'product_name']
