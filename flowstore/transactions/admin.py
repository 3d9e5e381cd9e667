from django.contrib import admin
from .models import DocumentSequence, Transaction, TransactionLine


class TransactionLineInline(admin.TabularInline):
    model = TransactionLine
    extra = 0
    can_delete = False
    fields = ['line_number', 'product_sku', 'product_name', 'quantity', 'unit_price', 'tax_amount', 'total']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Read-only: documents only change through cancellations"""
    list_display = ['document_number', 'transaction_type', 'status', 'branch', 'storage', 'total', 'created_at']
    list_filter = ['transaction_type', 'status', 'branch']
    search_fields = ['document_number', 'external_reference']
    date_hierarchy = 'created_at'
    inlines = [TransactionLineInline]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ['transaction_type', 'last_number']
    readonly_fields = ['transaction_type', 'last_number']
