from django.urls import path
from .views import (
    product_list_create, product_detail, product_variants, product_supplier_stats,
    attribute_list_create, attribute_detail, attribute_values, attribute_value_detail,
    attribute_import,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/supplier-stats/', product_supplier_stats, name='product-supplier-stats'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/variants/', product_variants, name='product-variants'),

    # Attribute endpoints
    path('product-attributes/', attribute_list_create, name='attribute-list-create'),
    path('product-attributes/import/', attribute_import, name='attribute-import'),
    path('product-attributes/<int:pk>/', attribute_detail, name='attribute-detail'),
    path('product-attributes/<int:pk>/values/', attribute_values, name='attribute-values'),
    path('product-attribute-values/<int:pk>/', attribute_value_detail, name='attribute-value-detail'),
]
