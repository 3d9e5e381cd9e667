import django_filters
from django.db.models import Q
from .models import Product, ProductVariant


class ProductFilter(django_filters.FilterSet):
    """Filter products by free text, category and active flag"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    active = django_filters.CharFilter(method='filter_active', label='Active')

    class Meta:
        model = Product
        fields = ['search', 'category', 'active']

    def filter_search(self, queryset, name, value):
        """Match product name, brand or any variant sku/barcode"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(brand__icontains=value) |
            Q(variants__sku__icontains=value) |
            Q(variants__barcode__icontains=value)
        ).distinct()

    def filter_active(self, queryset, name, value):
        if value in ('true', '1'):
            return queryset.filter(is_active=True)
        if value in ('false', '0'):
            return queryset.filter(is_active=False)
        return queryset


class ProductVariantFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    product = django_filters.NumberFilter(field_name='product_id')
    track_inventory = django_filters.BooleanFilter(field_name='track_inventory')

    class Meta:
        model = ProductVariant
        fields = ['search', 'product', 'track_inventory']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(sku__icontains=value) |
            Q(barcode__icontains=value) |
            Q(product__name__icontains=value)
        )
