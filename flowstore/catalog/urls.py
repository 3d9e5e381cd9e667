from django.urls import path
from .views import (
    category_list_create, category_detail,
    unit_list_create, unit_detail,
    tax_list_create, tax_detail,
    product_list_create, product_detail,
    product_variant_list_create, product_variant_detail
)

urlpatterns = [
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('units/', unit_list_create, name='unit-list-create'),
    path('units/<int:pk>/', unit_detail, name='unit-detail'),
    path('taxes/', tax_list_create, name='tax-list-create'),
    path('taxes/<int:pk>/', tax_detail, name='tax-detail'),
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('variants/', product_variant_list_create, name='product-variant-list-create'),
    path('variants/<int:pk>/', product_variant_detail, name='product-variant-detail'),
]
