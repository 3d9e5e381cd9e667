import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils import timezone

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import action_success, action_error, create_audit_log, paginated_response
from . import services
from .models import ExpenseCategory, CostCenter
from .serializers import (
    ExpenseCategorySerializer, CostCenterSerializer,
    OperatingExpenseCreateSerializer, OperatingExpenseSerializer
)

logger = logging.getLogger('flowstore.expenses')


def _soft_delete(request, instance, model_name):
    instance.deleted_at = timezone.now()
    instance.is_active = False
    instance.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name=model_name, object_id=instance.id,
                     object_name=instance.name, object_reference=instance.code)


# ExpenseCategory views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def expense_category_list_create(request):
    if request.method == 'GET':
        categories = ExpenseCategory.objects.alive()
        return Response(ExpenseCategorySerializer(categories, many=True).data)

    serializer = ExpenseCategorySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    category = serializer.save()
    create_audit_log(request=request, action='create', model_name='ExpenseCategory', object_id=category.id,
                     object_name=category.name, object_reference=category.code)
    return Response(ExpenseCategorySerializer(category).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def expense_category_detail(request, pk):
    category = get_object_or_404(ExpenseCategory.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(ExpenseCategorySerializer(category).data)
    if request.method == 'DELETE':
        _soft_delete(request, category, 'ExpenseCategory')
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = ExpenseCategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    category = serializer.save()
    create_audit_log(request=request, action='update', model_name='ExpenseCategory', object_id=category.id,
                     object_name=category.name, changes={key: str(value) for key, value in serializer.validated_data.items()})
    return Response(ExpenseCategorySerializer(category).data)


# CostCenter views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def cost_center_list_create(request):
    if request.method == 'GET':
        centers = CostCenter.objects.alive().select_related('branch')
        branch_id = request.query_params.get('branch')
        if branch_id:
            centers = centers.filter(branch_id=branch_id)
        return Response(CostCenterSerializer(centers, many=True).data)

    serializer = CostCenterSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    center = serializer.save()
    create_audit_log(request=request, action='create', model_name='CostCenter', object_id=center.id,
                     object_name=center.name, object_reference=center.code)
    return Response(CostCenterSerializer(center).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def cost_center_detail(request, pk):
    center = get_object_or_404(CostCenter.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(CostCenterSerializer(center).data)
    if request.method == 'DELETE':
        if center.children.alive().exists():
            return Response({'error': 'Cannot delete a cost center that has child cost centers'},
                            status=status.HTTP_400_BAD_REQUEST)
        _soft_delete(request, center, 'CostCenter')
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = CostCenterSerializer(center, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    center = serializer.save()
    create_audit_log(request=request, action='update', model_name='CostCenter', object_id=center.id,
                     object_name=center.name, changes={key: str(value) for key, value in serializer.validated_data.items()})
    return Response(CostCenterSerializer(center).data)


# Operating expenses
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def operating_expense_list_create(request):
    """
    GET: expenses filtered by ?date_from=&date_to=&category=&cost_center=
    POST: record an expense
    """
    if request.method == 'GET':
        params = request.query_params
        expenses = services.list_operating_expenses(
            date_from=params.get('date_from'),
            date_to=params.get('date_to'),
            category_id=params.get('category'),
            cost_center_id=params.get('cost_center'),
        )
        return paginated_response(request, expenses, OperatingExpenseSerializer)

    serializer = OperatingExpenseCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        expense = services.create_operating_expense(
            data['expense_category'], data['cost_center'], data['amount'],
            tax_amount=data['tax_amount'],
            payment_method=data.get('payment_method'),
            supplier_id=data.get('supplier'),
            payment_due_date=data.get('payment_due_date'),
            external_reference=data['external_reference'],
            notes=data['notes'],
            request=request,
        )
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        logger.error(f"Unexpected error recording operating expense: {str(e)}", exc_info=True)
        return Response({'success': False, 'error': 'Unexpected error recording the expense'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return action_success({
        'transaction': OperatingExpenseSerializer(expense).data,
        'documentNumbers': [expense.document_number],
    }, status_code=status.HTTP_201_CREATED)
