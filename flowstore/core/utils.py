"""Utility functions for audit logging, decimal handling and action results"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.core.paginator import Paginator

from rest_framework import status
from rest_framework.response import Response

from .models import AuditLog

logger = logging.getLogger(__name__)

MONEY_PLACES = Decimal('0.01')
QUANTITY_PLACES = Decimal('0.001')
# Quantities closer than this are treated as equal
QUANTITY_TOLERANCE = Decimal('0.000001')


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     sku=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, stock_adjust, stock_transfer, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., branch name, document number)
        object_reference: Reference identifier (e.g., related document number)
        sku: SKU(s) involved, if applicable
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            sku=sku,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def to_decimal(value, default=None):
    """Coerce request input (str/int/float/Decimal/None) to Decimal"""
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def round_money(value):
    return Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def round_quantity(value):
    return Decimal(value).quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def action_success(payload=None, status_code=status.HTTP_200_OK):
    """Result object for successful actions: {'success': True, ...payload}"""
    data = {'success': True}
    if payload:
        data.update(payload)
    return Response(data, status=status_code)


def action_error(error):
    """Result object for a failed action, from a ServiceError"""
    return Response({'success': False, 'error': error.message}, status=error.status_code)


def is_admin(user):
    """Superusers, staff and members of the Admin group administer master data"""
    return bool(user and (user.is_superuser or user.is_staff or
                          user.groups.filter(name='Admin').exists()))


def paginated_response(request, queryset, serializer_class, default_limit=50, max_limit=200, context=None):
    """Paginate with ?page=&limit= and wrap the page in the list envelope used by every list endpoint"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        page, limit = 1, default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    })
