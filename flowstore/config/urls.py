"""
URL configuration for the flowstore project.

Every app mounts its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Flowstore Admin Panel"
admin.site.site_title = "Flowstore Admin Portal"
admin.site.index_title = "Flowstore ERP"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('flowstore.core.urls')),
    path('api/v1/', include('flowstore.locations.urls')),
    path('api/v1/', include('flowstore.catalog.urls')),
    path('api/v1/', include('flowstore.parties.urls')),
    path('api/v1/', include('flowstore.pricing.urls')),
    path('api/v1/', include('flowstore.transactions.urls')),
    path('api/v1/', include('flowstore.cash.urls')),
    path('api/v1/', include('flowstore.inventory.urls')),
    path('api/v1/', include('flowstore.purchasing.urls')),
    path('api/v1/', include('flowstore.expenses.urls')),
    path('api/v1/', include('flowstore.accounting.urls')),
    path('api/v1/', include('flowstore.reports.urls')),
]
