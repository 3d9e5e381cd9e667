import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from flowstore.core.exceptions import ServiceError
from flowstore.core.utils import action_success, action_error, is_admin, paginated_response
from . import services
from .serializers import (
    CashSessionSerializer, CashSessionOpenSerializer, CashSessionCloseSerializer, CashSessionReconcileSerializer
)

logger = logging.getLogger('flowstore.cash')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def cash_session_list_open(request):
    """
    GET: sessions, newest first, filtered by ?point_of_sale=&branch=&status=&date_from=&date_to=
    POST: open a session at a point of sale
    """
    if request.method == 'GET':
        params = request.query_params
        sessions = services.list_cash_sessions(
            point_of_sale_id=params.get('point_of_sale'),
            branch_id=params.get('branch'),
            status=params.get('status'),
            date_from=params.get('date_from'),
            date_to=params.get('date_to'),
        )
        return paginated_response(request, sessions, CashSessionSerializer, default_limit=20)

    serializer = CashSessionOpenSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        session = services.open_cash_session(data['point_of_sale'], data['opening_amount'],
                                             notes=data['notes'], request=request)
    except ServiceError as e:
        logger.warning(f"Cash session opening rejected for {request.user.username}: {e.message}")
        return action_error(e)
    return action_success({'session': CashSessionSerializer(session).data}, status_code=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cash_session_active(request):
    """Open session of ?point_of_sale=, or null"""
    point_of_sale_id = request.query_params.get('point_of_sale')
    if not point_of_sale_id:
        return Response({'success': False, 'error': 'point_of_sale is required'}, status=status.HTTP_400_BAD_REQUEST)
    session = services.get_active_session(point_of_sale_id)
    if session is None:
        return action_success({'session': None})
    return action_success({
        'session': CashSessionSerializer(session).data,
        'summary': services.get_cash_session_summary(session),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cash_session_detail(request, pk):
    """Session with its running totals"""
    try:
        session = services.get_cash_session(pk)
    except ServiceError as e:
        return Response({'error': e.message}, status=e.status_code)
    data = CashSessionSerializer(session).data
    data['summary'] = services.get_cash_session_summary(session)
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cash_session_close(request, pk):
    """Close with the counted amount; the response carries expected and difference"""
    serializer = CashSessionCloseSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        session, summary = services.close_cash_session(pk, data['closing_amount'], notes=data['notes'],
                                                       request=request)
    except ServiceError as e:
        return action_error(e)
    return action_success({'session': CashSessionSerializer(session).data, 'summary': summary})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cash_session_reconcile(request, pk):
    if not is_admin(request.user):
        logger.warning(f"User {request.user.username} attempted to reconcile cash session {pk} without admin privileges")
        return Response({'success': False, 'error': 'Only administrators can reconcile cash sessions'},
                        status=status.HTTP_403_FORBIDDEN)
    serializer = CashSessionReconcileSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        session = services.reconcile_cash_session(pk, adjusted_balance=data.get('adjusted_balance'),
                                                  notes=data['notes'], request=request)
    except ServiceError as e:
        return action_error(e)
    return action_success({'session': CashSessionSerializer(session).data})
