from django.contrib import admin
from .models import StockLevel


@admin.register(StockLevel)
class StockLevelAdmin(admin.ModelAdmin):
    list_display = ['variant', 'storage', 'quantity', 'updated_at']
    list_filter = ['storage']
    search_fields = ['variant__sku', 'variant__product__name']
    # Quantities only move through transactions
    readonly_fields = ['variant', 'storage', 'quantity']

    def has_add_permission(self, request):
        return False
