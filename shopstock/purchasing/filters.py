import django_filters
from django.db.models import Q
from .models import PurchaseOrder


class PurchaseOrderFilter(django_filters.FilterSet):
    """Filter for PurchaseOrder list using django-filter"""
    status = django_filters.CharFilter(field_name='status', lookup_expr='exact')
    supplier = django_filters.CharFilter(field_name='supplier_name', lookup_expr='icontains')
    # Both bounds are inclusive whole days on the creation date
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = PurchaseOrder
        fields = ['status', 'supplier', 'date_from', 'date_to', 'search']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(supplier_name__icontains=value) |
            Q(notes__icontains=value) |
            Q(items__product_code__icontains=value) |
            Q(items__product_name__icontains=value)
        ).distinct()
