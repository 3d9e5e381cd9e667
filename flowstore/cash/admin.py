from django.contrib import admin
from .models import CashSession


@admin.register(CashSession)
class CashSessionAdmin(admin.ModelAdmin):
    """Read-only: sessions change through open, close and reconcile"""
    list_display = ['id', 'point_of_sale', 'status', 'opening_amount', 'expected_amount', 'closing_amount',
                    'difference', 'opened_at', 'closed_at']
    list_filter = ['status', 'point_of_sale__branch']
    search_fields = ['point_of_sale__name', 'point_of_sale__code', 'notes']
    date_hierarchy = 'opened_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
