import django_filters
from django.db.models import Q
from .models import Transaction


class TransactionFilter(django_filters.FilterSet):
    """Filter the ledger by type, status, location, party and date range"""
    type = django_filters.CharFilter(method='filter_type', label='Type (comma separated)')
    status = django_filters.CharFilter(method='filter_status', label='Status (comma separated)')
    branch = django_filters.NumberFilter(field_name='branch_id')
    storage = django_filters.NumberFilter(method='filter_storage', label='Storage')
    customer = django_filters.NumberFilter(field_name='customer_id')
    supplier = django_filters.NumberFilter(field_name='supplier_id')
    related = django_filters.NumberFilter(field_name='related_transaction_id')
    cash_session = django_filters.NumberFilter(field_name='cash_session_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(method='filter_search', label='Search')

    class Meta:
        model = Transaction
        fields = ['type', 'status', 'branch', 'storage', 'customer', 'supplier', 'related', 'cash_session', 'date_from', 'date_to', 'search']

    def filter_type(self, queryset, name, value):
        types = [item.strip() for item in value.split(',') if item.strip()]
        return queryset.filter(transaction_type__in=types) if types else queryset

    def filter_status(self, queryset, name, value):
        statuses = [item.strip() for item in value.split(',') if item.strip()]
        return queryset.filter(status__in=statuses) if statuses else queryset

    def filter_storage(self, queryset, name, value):
        # Transfers show up in both storages
        return queryset.filter(Q(storage_id=value) | Q(target_storage_id=value))

    def filter_search(self, queryset, name, value):
        """Match document number, external reference, notes, party or line sku"""
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(document_number__icontains=value) |
            Q(external_reference__icontains=value) |
            Q(notes__icontains=value) |
            Q(customer__first_name__icontains=value) |
            Q(customer__business_name__icontains=value) |
            Q(supplier__first_name__icontains=value) |
            Q(supplier__business_name__icontains=value) |
            Q(lines__product_sku__icontains=value) |
            Q(lines__product_name__icontains=value)
        ).distinct()
