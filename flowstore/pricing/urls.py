from django.urls import path
from .views import (
    price_list_list_create, price_list_detail, active_price_lists,
    price_list_items, price_list_item_detail,
    product_price, price_calculator
)

urlpatterns = [
    path('price-lists/', price_list_list_create, name='price-list-list-create'),
    path('price-lists/active/', active_price_lists, name='price-list-active'),
    path('price-lists/<int:pk>/', price_list_detail, name='price-list-detail'),
    path('price-lists/<int:pk>/items/', price_list_items, name='price-list-items'),
    path('price-list-items/<int:pk>/', price_list_item_detail, name='price-list-item-detail'),
    path('pricing/product-price/', product_price, name='product-price'),
    path('pricing/calculate/', price_calculator, name='price-calculator'),
]
