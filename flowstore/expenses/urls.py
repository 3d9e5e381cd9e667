from django.urls import path
from .views import (
    expense_category_list_create, expense_category_detail,
    cost_center_list_create, cost_center_detail,
    operating_expense_list_create
)

urlpatterns = [
    path('expense-categories/', expense_category_list_create, name='expense-category-list-create'),
    path('expense-categories/<int:pk>/', expense_category_detail, name='expense-category-detail'),
    path('cost-centers/', cost_center_list_create, name='cost-center-list-create'),
    path('cost-centers/<int:pk>/', cost_center_detail, name='cost-center-detail'),
    path('operating-expenses/', operating_expense_list_create, name='operating-expense-list-create'),
]
