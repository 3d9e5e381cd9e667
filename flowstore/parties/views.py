import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone

from flowstore.core.utils import create_audit_log
from .models import Customer, Supplier
from .serializers import CustomerSerializer, SupplierSerializer

logger = logging.getLogger('flowstore.parties')


def _search(queryset, search):
    if not search:
        return queryset
    return queryset.filter(
        Q(first_name__icontains=search) |
        Q(last_name__icontains=search) |
        Q(business_name__icontains=search) |
        Q(document_number__icontains=search) |
        Q(phone__icontains=search) |
        Q(email__icontains=search)
    )


def _soft_delete(request, party):
    party.deleted_at = timezone.now()
    party.is_active = False
    party.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name=type(party).__name__,
                     object_id=party.id, object_name=party.display_name)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    if request.method == 'GET':
        queryset = _search(Customer.objects.alive(), request.query_params.get('search', None))
        if request.query_params.get('include_inactive') != 'true':
            queryset = queryset.filter(is_active=True)
        serializer = CustomerSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = CustomerSerializer(data=request.data)
    if serializer.is_valid():
        customer = serializer.save()
        create_audit_log(request=request, action='create', model_name='Customer',
                         object_id=customer.id, object_name=customer.display_name)
        logger.info(f"Customer '{customer.display_name}' created by {request.user.username}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    logger.warning(f"Customer creation validation failed: {serializer.errors}")
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(customer, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Customer',
                             object_id=customer.id, object_name=customer.display_name, changes=request.data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        _soft_delete(request, customer)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_balance(request, pk):
    """Get customer balance and remaining credit"""
    customer = get_object_or_404(Customer.objects.alive(), pk=pk)
    return Response({
        'current_balance': customer.current_balance,
        'credit_limit': customer.credit_limit,
        'available_credit': max(customer.credit_limit - customer.current_balance, 0),
    })


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = _search(Supplier.objects.alive(), request.query_params.get('search', None))
        supplier_type = request.query_params.get('supplier_type')
        if supplier_type:
            queryset = queryset.filter(supplier_type=supplier_type)
        if request.query_params.get('include_inactive') != 'true':
            queryset = queryset.filter(is_active=True)
        serializer = SupplierSerializer(queryset, many=True)
        return Response(serializer.data)

    serializer = SupplierSerializer(data=request.data)
    if serializer.is_valid():
        supplier = serializer.save()
        create_audit_log(request=request, action='create', model_name='Supplier',
                         object_id=supplier.id, object_name=supplier.display_name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(SupplierSerializer(supplier).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request=request, action='update', model_name='Supplier',
                             object_id=supplier.id, object_name=supplier.display_name, changes=request.data)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        _soft_delete(request, supplier)
        return Response(status=status.HTTP_204_NO_CONTENT)
