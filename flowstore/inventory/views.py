import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import action_success, action_error, paginated_response
from . import services
from .serializers import StockLevelSerializer, StockTransferSerializer, StockAdjustmentSerializer

logger = logging.getLogger('flowstore.inventory')


def _flag(value):
    if value is None:
        return None
    return value.lower() in ('true', '1', 'yes')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_stock(request):
    """
    Inventory rows per variant
    Query params: search, storage, branch, include_zero, limit
    """
    params = request.query_params
    rows = services.get_inventory_stock(
        search=params.get('search') or None,
        storage_id=params.get('storage') or None,
        branch_id=params.get('branch') or None,
        include_zero=_flag(params.get('include_zero')),
        limit=params.get('limit') or services.DEFAULT_LIMIT,
    )
    return Response({'count': len(rows), 'results': rows})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_filters(request):
    return Response(services.get_inventory_filters())


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inventory_transfer(request):
    """Move stock of a variant between two storages"""
    serializer = StockTransferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        result = services.transfer_variant_stock(
            data['variant'], data['source_storage'], data.get('target_storage'), data['quantity'],
            note=data['note'], request=request,
        )
    except ServiceError as e:
        logger.warning(f"Stock transfer rejected for {request.user.username}: {e.message}")
        return action_error(e)
    except Exception as e:
        logger.error(f"Unexpected error transferring stock: {str(e)}", exc_info=True)
        return Response({'success': False, 'error': 'Unexpected error transferring stock'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return action_success(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def inventory_adjust(request):
    """Set the on-hand quantity of a variant in a storage"""
    serializer = StockAdjustmentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        result = services.adjust_variant_stock_level(
            data['variant'], data['storage'], data['target_quantity'],
            current_quantity=data.get('current_quantity'), note=data['note'], request=request,
        )
    except ServiceError as e:
        logger.warning(f"Stock adjustment rejected for {request.user.username}: {e.message}")
        return action_error(e)
    except Exception as e:
        logger.error(f"Unexpected error adjusting stock: {str(e)}", exc_info=True)
        return Response({'success': False, 'error': 'Unexpected error adjusting stock'},
                        status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return action_success(result)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_level_list(request):
    levels = services.list_stock_levels(
        variant_id=request.query_params.get('variant'),
        storage_id=request.query_params.get('storage'),
        branch_id=request.query_params.get('branch'),
    )
    return paginated_response(request, levels, StockLevelSerializer, default_limit=100)
