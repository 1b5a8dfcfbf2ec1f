from django.urls import path
from .views import (
    stock_change_get_template, stock_change_post_qty, stock_change_execute, quantity_transfer_view,
    create_variants, purchase_order_process, attribute_value_sync,
    product_search, product_details, product_update, product_upsert, product_sync_all, product_sync_variant,
    variant_sync_all, session_order_details,
    credential_list_create, credential_detail, credential_refresh,
)

urlpatterns = [
    # Stock quantity change (three steps, or the whole chain)
    path('tpos/stock-change/get-template/', stock_change_get_template, name='tpos-stock-change-get-template'),
    path('tpos/stock-change/post-qty/', stock_change_post_qty, name='tpos-stock-change-post-qty'),
    path('tpos/stock-change/execute/', stock_change_execute, name='tpos-stock-change-execute'),
    path('tpos/quantity-transfer/', quantity_transfer_view, name='tpos-quantity-transfer'),

    # Product creation
    path('tpos/create-variants/', create_variants, name='tpos-create-variants'),
    path('tpos/purchase-orders/<int:pk>/process/', purchase_order_process, name='tpos-purchase-order-process'),

    # Attribute values
    path('tpos/attribute-values/<int:pk>/sync/', attribute_value_sync, name='tpos-attribute-value-sync'),

    # Product pull sync
    path('tpos/products/search/', product_search, name='tpos-product-search'),
    path('tpos/products/update/', product_update, name='tpos-product-update'),
    path('tpos/products/upsert/', product_upsert, name='tpos-product-upsert'),
    path('tpos/products/sync-all/', product_sync_all, name='tpos-product-sync-all'),
    path('tpos/products/<int:template_id>/', product_details, name='tpos-product-details'),
    path('tpos/variants/sync-all/', variant_sync_all, name='tpos-variant-sync-all'),
    path('tpos/variants/<int:pk>/sync/', product_sync_variant, name='tpos-variant-sync'),

    # Live-sale orders
    path('tpos/orders/session/<int:session_index>/', session_order_details, name='tpos-session-order-details'),

    # Credentials
    path('tpos/credentials/', credential_list_create, name='tpos-credential-list-create'),
    path('tpos/credentials/<int:pk>/', credential_detail, name='tpos-credential-detail'),
    path('tpos/credentials/<int:pk>/refresh/', credential_refresh, name='tpos-credential-refresh'),
]
