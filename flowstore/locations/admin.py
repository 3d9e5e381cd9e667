from django.contrib import admin
from .models import Branch, Storage, PointOfSale


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'is_headquarters', 'is_active', 'deleted_at', 'created_at']
    list_filter = ['is_headquarters', 'is_active']
    search_fields = ['name', 'code', 'email']
    ordering = ['-is_headquarters', 'name']


@admin.register(Storage)
class StorageAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'branch', 'storage_type', 'category', 'is_default', 'is_active']
    list_filter = ['storage_type', 'category', 'is_default', 'is_active']
    search_fields = ['name', 'code', 'branch__name']
    ordering = ['name']


@admin.register(PointOfSale)
class PointOfSaleAdmin(admin.ModelAdmin):
    list_display = ['name', 'code', 'branch', 'device_id', 'default_price_list', 'is_active']
    list_filter = ['is_active', 'branch']
    search_fields = ['name', 'code', 'device_id']
    ordering = ['name']
