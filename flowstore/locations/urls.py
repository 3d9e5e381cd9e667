from django.urls import path
from .views import (
    branch_list_create, branch_detail, branch_storages,
    storage_list_create, storage_detail,
    point_of_sale_list_create, point_of_sale_detail
)

urlpatterns = [
    path('branches/', branch_list_create, name='branch-list-create'),
    path('branches/<int:pk>/', branch_detail, name='branch-detail'),
    path('branches/<int:pk>/storages/', branch_storages, name='branch-storages'),
    path('storages/', storage_list_create, name='storage-list-create'),
    path('storages/<int:pk>/', storage_detail, name='storage-detail'),
    path('points-of-sale/', point_of_sale_list_create, name='point-of-sale-list-create'),
    path('points-of-sale/<int:pk>/', point_of_sale_detail, name='point-of-sale-detail'),
]
