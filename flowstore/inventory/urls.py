from django.urls import path
from .views import inventory_stock, inventory_filters, inventory_transfer, inventory_adjust, stock_level_list

urlpatterns = [
    path('inventory/stock/', inventory_stock, name='inventory-stock'),
    path('inventory/filters/', inventory_filters, name='inventory-filters'),
    path('inventory/transfer/', inventory_transfer, name='inventory-transfer'),
    path('inventory/adjust/', inventory_adjust, name='inventory-adjust'),
    path('stock-levels/', stock_level_list, name='stock-level-list'),
]
