from django.contrib import admin
from .models import AccountingAccount, AccountingRule, AccountingPeriod


@admin.register(AccountingAccount)
class AccountingAccountAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'account_type', 'parent', 'is_active']
    list_filter = ['account_type', 'is_active']
    search_fields = ['code', 'name']


@admin.register(AccountingRule)
class AccountingRuleAdmin(admin.ModelAdmin):
    list_display = ['name', 'applies_to', 'transaction_type', 'payment_method', 'debit_account', 'credit_account',
                    'priority', 'is_active']
    list_filter = ['applies_to', 'transaction_type', 'is_active']


@admin.register(AccountingPeriod)
class AccountingPeriodAdmin(admin.ModelAdmin):
    list_display = ['start_date', 'end_date', 'status', 'closed_at']
    list_filter = ['status']
