from django.contrib import admin
from .models import PriceList, PriceListItem


class PriceListItemInline(admin.TabularInline):
    model = PriceListItem
    extra = 0
    fields = ['product', 'variant', 'net_price', 'gross_price', 'min_price', 'discount_percentage']


@admin.register(PriceList)
class PriceListAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'price_list_type', 'currency', 'priority', 'is_default', 'is_active', 'valid_from', 'valid_until']
    list_filter = ['price_list_type', 'is_default', 'is_active']
    search_fields = ['name', 'code']
    inlines = [PriceListItemInline]


@admin.register(PriceListItem)
class PriceListItemAdmin(admin.ModelAdmin):
    list_display = ['price_list', 'product', 'variant', 'net_price', 'gross_price']
    list_filter = ['price_list']
    search_fields = ['product__name', 'variant__sku']
