from django.urls import path
from .views import sales_summary, inventory_valuation

urlpatterns = [
    path('reports/sales-summary/', sales_summary, name='report-sales-summary'),
    path('reports/inventory-valuation/', inventory_valuation, name='report-inventory-valuation'),
]
