import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import create_audit_log
from . import services
from .models import PriceList, PriceListItem
from .serializers import PriceListSerializer, PriceListItemSerializer, PriceListItemWriteSerializer

logger = logging.getLogger('flowstore.pricing')


# PriceList views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def price_list_list_create(request):
    """List all price lists or create a new price list"""
    if request.method == 'GET':
        queryset = PriceList.objects.alive().order_by('-priority', 'name')
        list_type = request.query_params.get('type')
        if list_type:
            queryset = queryset.filter(price_list_type=list_type)
        return Response(PriceListSerializer(queryset, many=True).data)

    serializer = PriceListSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        price_list = services.create_price_list(serializer.validated_data, request=request)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    logger.info(f"Price list '{price_list.name}' created by {request.user.username} (default={price_list.is_default})")
    return Response(PriceListSerializer(price_list).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def price_list_detail(request, pk):
    """Retrieve, update or delete a price list"""
    price_list = get_object_or_404(PriceList.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(PriceListSerializer(price_list).data)

    try:
        if request.method == 'DELETE':
            services.delete_price_list(price_list, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = PriceListSerializer(price_list, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        price_list = services.update_price_list(price_list, serializer.validated_data, request=request)
        return Response(PriceListSerializer(price_list).data)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def active_price_lists(request):
    """Price lists valid on ?date= (default today), highest priority first"""
    day = parse_date(request.query_params.get('date', '') or '') or timezone.localdate()
    lists = services.get_active_price_lists(at=day)
    return Response(PriceListSerializer(lists, many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def price_list_items(request, pk):
    """List the prices of a list or set the price of a product/variant in it"""
    price_list = get_object_or_404(PriceList.objects.alive(), pk=pk)

    if request.method == 'GET':
        items = price_list.items.alive().select_related('product', 'variant').prefetch_related('taxes')
        return Response(PriceListItemSerializer(items, many=True).data)

    serializer = PriceListItemWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        item = services.upsert_price_list_item(
            price_list,
            data['product'],
            variant=data.get('variant'),
            net_price=data.get('net_price'),
            gross_price=data.get('gross_price'),
            taxes=data.get('taxes'),
            min_price=data.get('min_price'),
            discount_percentage=data.get('discount_percentage'),
            request=request,
        )
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(PriceListItemSerializer(item).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def price_list_item_detail(request, pk):
    item = get_object_or_404(PriceListItem.objects.alive(), pk=pk)
    if request.method == 'GET':
        return Response(PriceListItemSerializer(item).data)
    item.deleted_at = timezone.now()
    item.save(update_fields=['deleted_at', 'updated_at'])
    create_audit_log(request=request, action='delete', model_name='PriceListItem', object_id=item.id,
                     object_name=item.product.name, object_reference=item.price_list.name)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def product_price(request):
    """Resolve ?product=&variant=&price_list= to a price"""
    product_id = request.query_params.get('product')
    if not product_id:
        return Response({'success': False, 'error': 'product is required'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        price = services.get_product_price(
            product_id,
            variant_id=request.query_params.get('variant'),
            price_list_id=request.query_params.get('price_list'),
        )
    except ServiceError as e:
        return Response({'success': False, 'error': e.message}, status=e.status_code)
    return Response({'success': True, **price})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def price_calculator(request):
    """Net/gross calculator used by the price forms"""
    try:
        net, gross = services.compute_price_with_taxes(
            request.data.get('net_price'),
            request.data.get('gross_price'),
            request.data.get('tax_rates') or [],
        )
    except ServiceError as e:
        return Response({'success': False, 'error': e.message}, status=e.status_code)
    return Response({'success': True, 'netPrice': net, 'grossPrice': gross})
