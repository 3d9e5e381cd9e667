from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_cancel, purchase_order_receive,
    reception_list_create, reception_cancel,
    supplier_payment_list, supplier_payment_pay
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/cancel/', purchase_order_cancel, name='purchase-order-cancel'),
    path('purchase-orders/<int:pk>/receive/', purchase_order_receive, name='purchase-order-receive'),
    path('receptions/', reception_list_create, name='reception-list-create'),
    path('receptions/<int:pk>/cancel/', reception_cancel, name='reception-cancel'),
    path('supplier-payments/', supplier_payment_list, name='supplier-payment-list'),
    path('supplier-payments/<int:pk>/pay/', supplier_payment_pay, name='supplier-payment-pay'),
]
