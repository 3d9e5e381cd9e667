import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError, AuthenticationFailed
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from .filters import AuditLogFilter, UserFilter
from .models import Setting, AuditLog, get_company
from .serializers import (
    UserSerializer, CurrentUserSerializer, UserCreateSerializer, CompanySerializer,
    SettingSerializer, AuditLogSerializer
)
from .utils import create_audit_log, paginated_response

User = get_user_model()
logger = logging.getLogger('flowstore.core')


class FlowstoreTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Login; the token carries the username and staff flag for the client"""

    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        logger.info(f"User {self.user.username} logged in")
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['is_staff'] = user.is_staff
        return token


class FlowstoreTokenObtainPairView(TokenObtainPairView):
    serializer_class = FlowstoreTokenObtainPairSerializer


class FlowstoreTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that rejects tokens of deleted users cleanly"""

    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class FlowstoreTokenRefreshView(TokenRefreshView):
    serializer_class = FlowstoreTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Create an account and return a token pair for it"""
    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = serializer.save()
    token = FlowstoreTokenObtainPairSerializer.get_token(user)
    logger.info(f"User {user.username} registered")
    return Response({
        'user': CurrentUserSerializer(user).data,
        'access': str(token.access_token),
        'refresh': str(token),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    return Response(CurrentUserSerializer(request.user).data)


# User views (admin)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_list_create(request):
    """List users (?search=&is_active=&group=) or create one"""
    if request.method == 'GET':
        queryset = User.objects.prefetch_related('groups').order_by('username')
        users = UserFilter(request.query_params, queryset=queryset).qs.distinct()
        return Response(UserSerializer(users, many=True).data)

    serializer = UserCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    user = serializer.save()
    create_audit_log(request=request, action='create', model_name='User',
                     object_id=user.id, object_name=user.username)
    logger.info(f"User {user.username} created by {request.user.username}")
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_detail(request, pk):
    """Retrieve, update or deactivate a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)

    if request.method == 'DELETE':
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        # Transactions keep a reference to their user, so accounts are only deactivated
        user.is_active = False
        user.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(request=request, action='delete', model_name='User',
                         object_id=user.id, object_name=user.username)
        logger.info(f"User {user.username} deactivated by {request.user.username}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    changes = {key: str(value) for key, value in serializer.validated_data.items()}
    serializer.save()
    create_audit_log(request=request, action='update', model_name='User',
                     object_id=user.id, object_name=user.username, changes=changes)
    return Response(serializer.data)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def company_detail(request):
    """Company profile; anyone signed in can read it, staff can change it"""
    company = get_company()
    if request.method == 'GET':
        return Response(CompanySerializer(company).data)

    if not request.user.is_staff:
        logger.warning(f"User {request.user.username} attempted to modify the company profile")
        return Response({'error': 'Only administrators can modify the company'}, status=status.HTTP_403_FORBIDDEN)

    serializer = CompanySerializer(company, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    changes = {key: str(value) for key, value in serializer.validated_data.items()}
    serializer.save()
    create_audit_log(request=request, action='update', model_name='Company',
                     object_id=company.id, object_name=company.name, changes=changes)
    return Response(serializer.data)


# Runtime settings (admin)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_list_create(request):
    if request.method == 'GET':
        return Response(SettingSerializer(Setting.objects.order_by('key'), many=True).data)

    serializer = SettingSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    setting = serializer.save()
    create_audit_log(request=request, action='create', model_name='Setting',
                     object_id=setting.id, object_name=setting.key)
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_detail(request, pk):
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)

    if request.method == 'DELETE':
        create_audit_log(request=request, action='delete', model_name='Setting',
                         object_id=setting.id, object_name=setting.key)
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    create_audit_log(request=request, action='update', model_name='Setting', object_id=setting.id,
                     object_name=setting.key, changes={'value': setting.value})
    return Response(serializer.data)


# Audit trail (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """Paginated audit trail; non-staff users only see their own entries"""
    queryset = AuditLog.objects.select_related('user').order_by('-created_at', '-id')
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)
    audit_filter = AuditLogFilter(request.query_params, queryset=queryset)
    return paginated_response(request, audit_filter.qs, AuditLogSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    audit_log = get_object_or_404(AuditLog.objects.select_related('user'), pk=pk)
    if not request.user.is_staff and audit_log.user_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)
    return Response(AuditLogSerializer(audit_log).data)
