import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db import IntegrityError

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import is_admin
from . import services
from .models import Branch, Storage, PointOfSale
from .serializers import BranchSerializer, StorageSerializer, PointOfSaleSerializer

logger = logging.getLogger('flowstore.locations')


def _admin_required(request, what):
    if not is_admin(request.user):
        logger.warning(f"User {request.user.username} attempted to modify {what} without admin privileges")
        return Response({'error': f'Only administrators can modify {what}'}, status=status.HTTP_403_FORBIDDEN)
    return None


# Branch views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def branch_list_create(request):
    """List branches (headquarters first) or create a branch (admin)"""
    if request.method == 'GET':
        include_inactive = request.query_params.get('include_inactive') == 'true'
        branches = services.list_branches(include_inactive=include_inactive)
        return Response(BranchSerializer(branches, many=True).data)

    denied = _admin_required(request, 'branches')
    if denied:
        return denied

    logger.info(f"User {request.user.username} creating branch with data: {request.data}")
    serializer = BranchSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Branch creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        branch = services.create_branch(serializer.validated_data, request=request)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    except IntegrityError as e:
        logger.error(f"IntegrityError creating branch: {str(e)}", exc_info=True)
        return Response({'error': 'Database error occurred while creating branch'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(BranchSerializer(branch).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def branch_detail(request, pk):
    """Retrieve, update or delete a branch (update/delete requires admin)"""
    branch = get_object_or_404(Branch.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(BranchSerializer(branch).data)

    denied = _admin_required(request, 'branches')
    if denied:
        return denied

    try:
        if request.method == 'DELETE':
            logger.info(f"User {request.user.username} deleting branch {pk} ({branch.name})")
            services.delete_branch(branch, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = BranchSerializer(branch, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            logger.warning(f"Branch update validation failed: {serializer.errors}")
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        branch = services.update_branch(branch, serializer.validated_data, request=request)
        return Response(BranchSerializer(branch).data)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def branch_storages(request, pk):
    """Storages of a branch, default first"""
    branch = get_object_or_404(Branch.objects.alive(), pk=pk)
    storages = services.get_branch_storages(branch)
    return Response(StorageSerializer(storages, many=True).data)


# Storage views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def storage_list_create(request):
    """List storages or create a storage (admin)"""
    if request.method == 'GET':
        storages = services.list_storages(
            branch_id=request.query_params.get('branch'),
            category=request.query_params.get('category'),
            include_inactive=request.query_params.get('include_inactive') == 'true',
        )
        return Response(StorageSerializer(storages, many=True).data)

    denied = _admin_required(request, 'storages')
    if denied:
        return denied

    serializer = StorageSerializer(data=request.data)
    if not serializer.is_valid():
        logger.warning(f"Storage creation validation failed: {serializer.errors}")
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        storage = services.create_storage(serializer.validated_data, request=request)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(StorageSerializer(storage).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def storage_detail(request, pk):
    """Retrieve, update or delete a storage (update/delete requires admin)"""
    storage = get_object_or_404(Storage.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(StorageSerializer(storage).data)

    denied = _admin_required(request, 'storages')
    if denied:
        return denied

    try:
        if request.method == 'DELETE':
            logger.info(f"User {request.user.username} deleting storage {pk} ({storage.name})")
            services.delete_storage(storage, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = StorageSerializer(storage, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        storage = services.update_storage(storage, serializer.validated_data, request=request)
        return Response(StorageSerializer(storage).data)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)


# Point of sale views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def point_of_sale_list_create(request):
    """List points of sale or create one (admin)"""
    if request.method == 'GET':
        points = services.list_points_of_sale(
            branch_id=request.query_params.get('branch'),
            include_inactive=request.query_params.get('include_inactive') == 'true',
        )
        return Response(PointOfSaleSerializer(points, many=True).data)

    denied = _admin_required(request, 'points of sale')
    if denied:
        return denied

    serializer = PointOfSaleSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        point_of_sale = services.create_point_of_sale(serializer.validated_data, request=request)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    return Response(PointOfSaleSerializer(point_of_sale).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def point_of_sale_detail(request, pk):
    point_of_sale = get_object_or_404(PointOfSale.objects.alive(), pk=pk)

    if request.method == 'GET':
        return Response(PointOfSaleSerializer(point_of_sale).data)

    denied = _admin_required(request, 'points of sale')
    if denied:
        return denied

    try:
        if request.method == 'DELETE':
            services.delete_point_of_sale(point_of_sale, request=request)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = PointOfSaleSerializer(point_of_sale, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        point_of_sale = services.update_point_of_sale(point_of_sale, serializer.validated_data, request=request)
        return Response(PointOfSaleSerializer(point_of_sale).data)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
