import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import action_success, action_error, paginated_response
from flowstore.transactions.filters import TransactionFilter
from flowstore.transactions.serializers import (
    TransactionSerializer, TransactionListSerializer, TransactionCancelSerializer
)
from . import services
from .serializers import (
    PurchaseOrderCreateSerializer, ReceptionFromOrderSerializer, DirectReceptionSerializer,
    SupplierPaymentSerializer, SupplierPaymentPaySerializer
)

logger = logging.getLogger('flowstore.purchasing')


def _unexpected(what, error):
    logger.error(f"Unexpected error {what}: {str(error)}", exc_info=True)
    return Response({'success': False, 'error': f'Unexpected error {what}'},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR)


def _filtered_list(request, queryset):
    filterset = TransactionFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    return paginated_response(request, filterset.qs, TransactionListSerializer, default_limit=15)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders (?status=&supplier=&search=...) or create one"""
    if request.method == 'GET':
        return _filtered_list(request, services.list_purchase_orders())

    serializer = PurchaseOrderCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        order = services.create_purchase_order(
            data['supplier'], data['lines'], storage_id=data.get('storage'),
            notes=data['notes'], expected_date=data.get('expected_date'), request=request,
        )
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        return _unexpected('creating the purchase order', e)
    return action_success({
        'transaction': TransactionSerializer(order).data,
        'documentNumbers': [order.document_number],
    }, status_code=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_cancel(request, pk):
    serializer = TransactionCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        order = services.cancel_purchase_order(pk, reason=serializer.validated_data['reason'], request=request)
    except ServiceError as e:
        return action_error(e)
    return action_success({'transaction': TransactionSerializer(order).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_receive(request, pk):
    """Receive goods against a purchase order; reports discrepancies with the ordered quantities"""
    serializer = ReceptionFromOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        reception, payment, discrepancies = services.create_reception_from_purchase_order(
            pk, data['lines'], storage_id=data.get('storage'), notes=data['notes'], request=request,
        )
    except ServiceError as e:
        logger.warning(f"Reception of purchase order {pk} rejected: {e.message}")
        return action_error(e)
    except Exception as e:
        return _unexpected('receiving the purchase order', e)
    return action_success({
        'reception': TransactionSerializer(reception).data,
        'discrepancies': discrepancies,
        'documentNumbers': [reception.document_number, payment.document_number],
    }, status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def reception_list_create(request):
    """List receptions or receive goods without a purchase order"""
    if request.method == 'GET':
        return _filtered_list(request, services.list_receptions())

    serializer = DirectReceptionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        reception, payment = services.create_direct_reception(
            data['supplier'], data['storage'], data['lines'], notes=data['notes'], request=request,
        )
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        return _unexpected('creating the reception', e)
    return action_success({
        'reception': TransactionSerializer(reception).data,
        'discrepancies': [],
        'documentNumbers': [reception.document_number, payment.document_number],
    }, status_code=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def reception_cancel(request, pk):
    serializer = TransactionCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        reversal = services.cancel_reception(pk, reason=serializer.validated_data['reason'], request=request)
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        return _unexpected('cancelling the reception', e)
    return action_success({
        'transaction': TransactionSerializer(reversal).data,
        'documentNumbers': [reversal.document_number],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_payment_list(request):
    """
    Supplier payments, soonest due first, filtered by
    ?supplier=&status=&overdue=true&due_from=&due_to=&include_cancelled=true
    """
    params = request.query_params
    payments = services.list_supplier_payments(
        supplier_id=params.get('supplier'),
        status=params.get('status'),
        overdue=params.get('overdue') == 'true',
        due_from=params.get('due_from'),
        due_to=params.get('due_to'),
        include_cancelled=params.get('include_cancelled') == 'true',
    )
    return paginated_response(request, payments, SupplierPaymentSerializer)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def supplier_payment_pay(request, pk):
    """Settle a pending supplier payment"""
    serializer = SupplierPaymentPaySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        payment = services.pay_supplier_payment(pk, data['payment_method'], paid_on=data.get('paid_on'),
                                                reference=data['reference'], request=request)
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        return _unexpected('paying the supplier', e)
    return action_success({
        'payment': SupplierPaymentSerializer(payment).data,
        'documentNumbers': [payment.document_number],
    })
