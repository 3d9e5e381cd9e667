from django.urls import path
from .views import (
    account_list_create, account_detail,
    rule_list_create, rule_detail,
    accounting_hierarchy, ledger_preview, financial_summary,
    period_list_create, period_action
)

urlpatterns = [
    path('accounting/accounts/', account_list_create, name='accounting-account-list-create'),
    path('accounting/accounts/<int:pk>/', account_detail, name='accounting-account-detail'),
    path('accounting/rules/', rule_list_create, name='accounting-rule-list-create'),
    path('accounting/rules/<int:pk>/', rule_detail, name='accounting-rule-detail'),
    path('accounting/hierarchy/', accounting_hierarchy, name='accounting-hierarchy'),
    path('accounting/ledger/', ledger_preview, name='accounting-ledger'),
    path('accounting/summary/', financial_summary, name='accounting-summary'),
    path('accounting/periods/', period_list_create, name='accounting-period-list-create'),
    path('accounting/periods/<int:pk>/<str:action>/', period_action, name='accounting-period-action'),
]
