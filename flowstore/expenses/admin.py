from django.contrib import admin
from .models import ExpenseCategory, CostCenter


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'is_active', 'deleted_at']
    list_filter = ['is_active']
    search_fields = ['code', 'name']


@admin.register(CostCenter)
class CostCenterAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'branch', 'parent', 'is_active', 'deleted_at']
    list_filter = ['is_active', 'branch']
    search_fields = ['code', 'name']
