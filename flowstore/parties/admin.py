from django.contrib import admin
from .models import Customer, Supplier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['first_name', 'last_name', 'business_name', 'document_number', 'phone', 'current_balance', 'is_active']
    list_filter = ['person_type', 'is_active']
    search_fields = ['first_name', 'last_name', 'business_name', 'document_number', 'phone', 'email']


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'first_name', 'supplier_type', 'document_number', 'phone', 'default_payment_term_days', 'is_active']
    list_filter = ['supplier_type', 'person_type', 'is_active']
    search_fields = ['first_name', 'last_name', 'business_name', 'document_number', 'email']
