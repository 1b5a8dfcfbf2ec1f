from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_stats,
    purchase_order_submit, purchase_order_mark_exported, purchase_order_cancel,
    purchase_order_sync_status,
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/stats/', purchase_order_stats, name='purchase-order-stats'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/submit/', purchase_order_submit, name='purchase-order-submit'),
    path('purchase-orders/<int:pk>/mark-exported/', purchase_order_mark_exported, name='purchase-order-mark-exported'),
    path('purchase-orders/<int:pk>/cancel/', purchase_order_cancel, name='purchase-order-cancel'),
    path('purchase-orders/<int:pk>/sync-status/', purchase_order_sync_status, name='purchase-order-sync-status'),
]
