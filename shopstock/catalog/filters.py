import django_filters
from django.db.models import F, Q
from .models import Product


def _is_truthy(value):
    return str(value).lower() in ('true', '1', 'yes')


class ProductFilter(django_filters.FilterSet):
    """Filter for Product list using django-filter"""

    # Searches product code, name, variant and barcode
    search = django_filters.CharFilter(method='filter_search', label='Search')
    supplier = django_filters.CharFilter(field_name='supplier_name', lookup_expr='iexact')
    base_product_code = django_filters.CharFilter(field_name='base_product_code', lookup_expr='exact')
    has_tpos = django_filters.CharFilter(method='filter_has_tpos', label='Linked to TPOS')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    base_only = django_filters.CharFilter(method='filter_base_only', label='Base products only')

    class Meta:
        model = Product
        fields = ['search', 'supplier', 'base_product_code', 'has_tpos', 'in_stock', 'base_only']

    def filter_search(self, queryset, name, value):
        """
        Multi-word search: every word must appear in one of code, name,
        variant or barcode, in any order.
        """
        words = [w for w in (value or '').split() if w]
        if not words:
            return queryset

        for word in words:
            queryset = queryset.filter(
                Q(product_code__icontains=word) |
                Q(product_name__icontains=word) |
                Q(variant__icontains=word) |
                Q(barcode__icontains=word)
            )
        return queryset.distinct()

    def filter_has_tpos(self, queryset, name, value):
        if _is_truthy(value):
            return queryset.filter(tpos_product_id__isnull=False)
        return queryset.filter(tpos_product_id__isnull=True)

    def filter_in_stock(self, queryset, name, value):
        if _is_truthy(value):
            return queryset.filter(stock_quantity__gt=0)
        return queryset.filter(stock_quantity__lte=0)

    def filter_base_only(self, queryset, name, value):
        if not _is_truthy(value):
            return queryset
        return queryset.filter(
            Q(base_product_code__isnull=True) | Q(base_product_code='') |
            Q(base_product_code=F('product_code'))
        )
