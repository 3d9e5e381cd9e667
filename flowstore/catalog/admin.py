from django.contrib import admin
from .models import Category, Unit, Tax, Product, ProductVariant


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'parent', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ['name', 'symbol', 'conversion_factor', 'is_base', 'is_active']


@admin.register(Tax)
class TaxAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'rate', 'is_default', 'is_active']
    list_filter = ['is_active']


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ['sku', 'barcode', 'base_cost', 'base_price', 'pmp', 'track_inventory', 'is_active']
    readonly_fields = ['pmp']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'brand', 'category', 'product_type', 'is_active', 'deleted_at']
    list_filter = ['product_type', 'is_active', 'category']
    search_fields = ['name', 'brand', 'variants__sku']
    inlines = [ProductVariantInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ['sku', 'product', 'base_cost', 'base_price', 'pmp', 'track_inventory', 'is_active']
    list_filter = ['track_inventory', 'is_active']
    search_fields = ['sku', 'barcode', 'product__name']
    readonly_fields = ['pmp']
