import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import action_success, action_error, paginated_response
from flowstore.pricing import services as pricing_services
from . import services
from .filters import TransactionFilter
from .models import TransactionType
from .serializers import (
    TransactionSerializer, TransactionListSerializer,
    TransactionCreateSerializer, TransactionCancelSerializer
)

logger = logging.getLogger('flowstore.transactions')


def _resolve_sale_prices(data):
    """Sale lines without a price take the net price of the point of sale's list, else the default list"""
    if data['transaction_type'] != TransactionType.SALE:
        return
    point_of_sale = data.get('point_of_sale')
    price_list_id = point_of_sale.default_price_list_id if point_of_sale else None
    for line in data.get('lines') or []:
        if line.get('unit_price') is not None:
            continue
        variant = line.get('variant')
        product = line.get('product') or variant.product
        price = pricing_services.get_product_price(
            product.id, variant_id=variant.id if variant else None, price_list_id=price_list_id
        )
        line['unit_price'] = price['netPrice']


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """
    GET: paginated ledger, filtered with ?type=&status=&branch=&storage=&date_from=&date_to=&search=
    POST: write a sale or a payment
    """
    if request.method == 'GET':
        filterset = TransactionFilter(request.query_params, queryset=services.list_transactions())
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, filterset.qs, TransactionListSerializer)

    serializer = TransactionCreateSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Transaction creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        _resolve_sale_prices(serializer.validated_data)
        transaction = services.create_transaction(serializer.validated_data, request=request)
    except ServiceError as e:
        logger.warning(f"Transaction rejected for {request.user.username}: {e.message}")
        return action_error(e)
    except Exception as e:
        logger.error(f"Unexpected error creating transaction: {str(e)}", exc_info=True)
        return Response({'success': False, 'error': 'Unexpected error creating the transaction'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return action_success({
        'transaction': TransactionSerializer(transaction).data,
        'documentNumbers': [transaction.document_number],
    }, status_code=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve a transaction with its lines"""
    try:
        transaction = services.get_transaction(pk)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(TransactionSerializer(transaction).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_cancel(request, pk):
    """Cancel a confirmed sale or purchase; the stock comes back through a return document"""
    serializer = TransactionCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        reversal = services.cancel_transaction(pk, reason=serializer.validated_data['reason'], request=request)
    except ServiceError as e:
        return action_error(e)
    except Exception as e:
        logger.error(f"Unexpected error cancelling transaction {pk}: {str(e)}", exc_info=True)
        return Response({'success': False, 'error': 'Unexpected error cancelling the transaction'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return action_success({
        'transaction': TransactionSerializer(reversal).data,
        'documentNumbers': [reversal.document_number],
    })
