from django.urls import path
from .views import transaction_list_create, transaction_detail, transaction_cancel

urlpatterns = [
    path('transactions/', transaction_list_create, name='transaction-list-create'),
    path('transactions/<int:pk>/', transaction_detail, name='transaction-detail'),
    path('transactions/<int:pk>/cancel/', transaction_cancel, name='transaction-cancel'),
]
