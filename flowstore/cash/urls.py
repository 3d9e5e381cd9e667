from django.urls import path
from .views import (
    cash_session_list_open, cash_session_active, cash_session_detail,
    cash_session_close, cash_session_reconcile
)

urlpatterns = [
    path('cash-sessions/', cash_session_list_open, name='cash-session-list-open'),
    path('cash-sessions/active/', cash_session_active, name='cash-session-active'),
    path('cash-sessions/<int:pk>/', cash_session_detail, name='cash-session-detail'),
    path('cash-sessions/<int:pk>/close/', cash_session_close, name='cash-session-close'),
    path('cash-sessions/<int:pk>/reconcile/', cash_session_reconcile, name='cash-session-reconcile'),
]
