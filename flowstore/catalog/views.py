import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone

from flowstore.core.utils import create_audit_log
from .filters import ProductFilter, ProductVariantFilter
from .models import Category, Unit, Tax, Product, ProductVariant
from .serializers import (
    CategorySerializer, UnitSerializer, TaxSerializer,
    ProductSerializer, ProductVariantSerializer
)

logger = logging.getLogger('flowstore.catalog')


def _detail(request, instance, serializer_class):
    """GET/PUT/PATCH handling shared by the simple catalog tables"""
    if request.method == 'GET':
        return Response(serializer_class(instance).data)
    serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        categories = Category.objects.all().order_by('name')
        return Response(CategorySerializer(categories, many=True).data)
    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)
    if request.method == 'DELETE':
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    return _detail(request, category, CategorySerializer)


# Unit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def unit_list_create(request):
    if request.method == 'GET':
        units = Unit.objects.filter(is_active=True).order_by('name')
        return Response(UnitSerializer(units, many=True).data)
    serializer = UnitSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def unit_detail(request, pk):
    unit = get_object_or_404(Unit, pk=pk)
    if request.method == 'DELETE':
        # Lines keep the unit symbol, so deactivating is enough
        unit.is_active = False
        unit.save(update_fields=['is_active', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)
    return _detail(request, unit, UnitSerializer)


# Tax views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tax_list_create(request):
    """List all taxes or create a new tax"""
    if request.method == 'GET':
        taxes = Tax.objects.all().order_by('name')
        return Response(TaxSerializer(taxes, many=True).data)
    serializer = TaxSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            if serializer.validated_data.get('is_default'):
                Tax.objects.filter(is_default=True).update(is_default=False)
            serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def tax_detail(request, pk):
    """Retrieve, update or deactivate a tax"""
    tax = get_object_or_404(Tax, pk=pk)
    if request.method == 'DELETE':
        tax.is_active = False
        tax.is_default = False
        tax.save(update_fields=['is_active', 'is_default', 'updated_at'])
        return Response(status=status.HTTP_204_NO_CONTENT)
    if request.method in ('PUT', 'PATCH') and request.data.get('is_default') in (True, 'true'):
        Tax.objects.filter(is_default=True).exclude(pk=tax.pk).update(is_default=False)
    return _detail(request, tax, TaxSerializer)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filterable) or create a product"""
    if request.method == 'GET':
        queryset = Product.objects.alive().select_related('category').prefetch_related('variants')
        product_filter = ProductFilter(request.query_params, queryset=queryset)
        products = product_filter.qs.order_by('name')[:500]
        return Response(ProductSerializer(products, many=True).data)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                         object_name=product.name)
        logger.info(f"Product '{product.name}' created by {request.user.username}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or soft delete a product"""
    product = get_object_or_404(Product.objects.alive(), pk=pk)

    if request.method == 'DELETE':
        with transaction.atomic():
            now = timezone.now()
            product.variants.alive().update(deleted_at=now, is_active=False)
            product.deleted_at = now
            product.is_active = False
            product.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
        create_audit_log(request=request, action='delete', model_name='Product', object_id=product.id,
                         object_name=product.name)
        return Response(status=status.HTTP_204_NO_CONTENT)
    return _detail(request, product, ProductSerializer)


# ProductVariant views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_variant_list_create(request):
    """List product variants (filterable) or create a new variant"""
    if request.method == 'GET':
        queryset = ProductVariant.objects.alive().select_related('product', 'unit')
        variant_filter = ProductVariantFilter(request.query_params, queryset=queryset)
        variants = variant_filter.qs.order_by('product__name', 'sku')[:500]
        return Response(ProductVariantSerializer(variants, many=True).data)

    serializer = ProductVariantSerializer(data=request.data)
    if serializer.is_valid():
        try:
            variant = serializer.save()
        except IntegrityError as e:
            logger.error(f"IntegrityError creating variant: {str(e)}", exc_info=True)
            return Response({'error': 'A variant with this SKU already exists'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='create', model_name='ProductVariant', object_id=variant.id,
                         object_name=variant.product.name, sku=variant.sku)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_variant_detail(request, pk):
    """Retrieve, update or soft delete a product variant"""
    variant = get_object_or_404(ProductVariant.objects.alive(), pk=pk)

    if request.method == 'DELETE':
        variant.deleted_at = timezone.now()
        variant.is_active = False
        variant.save(update_fields=['deleted_at', 'is_active', 'updated_at'])
        create_audit_log(request=request, action='delete', model_name='ProductVariant', object_id=variant.id,
                         object_name=variant.product.name, sku=variant.sku)
        return Response(status=status.HTTP_204_NO_CONTENT)

    old_price = variant.base_price
    response = _detail(request, variant, ProductVariantSerializer)
    variant.refresh_from_db()
    if response.status_code == status.HTTP_200_OK and variant.base_price != old_price:
        create_audit_log(request=request, action='price_change', model_name='ProductVariant',
                         object_id=variant.id, object_name=variant.product.name, sku=variant.sku,
                         changes={'base_price': {'old': str(old_price), 'new': str(variant.base_price)}})
    return response
