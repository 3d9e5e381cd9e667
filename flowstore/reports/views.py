from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils.dateparse import parse_date

from . import services


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_summary(request):
    """Confirmed sales totals; ?branch=&date_from=&date_to="""
    params = request.query_params
    return Response(services.get_sales_summary(
        branch_id=params.get('branch') or None,
        date_from=parse_date(params.get('date_from') or ''),
        date_to=parse_date(params.get('date_to') or ''),
    ))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_valuation(request):
    return Response(services.get_inventory_valuation(branch_id=request.query_params.get('branch') or None))
