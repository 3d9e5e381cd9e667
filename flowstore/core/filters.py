import django_filters
from django.db.models import Q
from django.contrib.auth import get_user_model
from .models import AuditLog

User = get_user_model()


class AuditLogFilter(django_filters.FilterSet):
    """Filter the audit trail by action, model, document reference, sku and date range"""
    action = django_filters.CharFilter(field_name='action')
    model = django_filters.CharFilter(field_name='model_name')
    reference = django_filters.CharFilter(field_name='object_reference')
    sku = django_filters.CharFilter(field_name='sku', lookup_expr='icontains')
    user = django_filters.NumberFilter(field_name='user_id')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = AuditLog
        fields = ['action', 'model', 'reference', 'sku', 'user', 'date_from', 'date_to']


class UserFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    is_active = django_filters.BooleanFilter(field_name='is_active')
    group = django_filters.CharFilter(field_name='groups__name')

    class Meta:
        model = User
        fields = ['search', 'is_active', 'group']

    def filter_search(self, queryset, name, value):
        value = (value or '').strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(username__icontains=value) |
            Q(email__icontains=value) |
            Q(first_name__icontains=value) |
            Q(last_name__icontains=value)
        )
