from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from .models import AuditLog
from .serializers import UserSerializer, UserCreateSerializer, AuditLogSerializer
from .utils import get_user_tenant

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        tenant = get_user_tenant(user)
        token['tenant'] = tenant.id if tenant else None
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that rejects tokens of deleted users"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint. A business owner may create their tenant in the same call."""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with role flags"""
    user = request.user
    user_data = UserSerializer(user).data
    tenant = get_user_tenant(user)
    user_data['tenant'] = {'id': tenant.id, 'name': tenant.name, 'business_code': tenant.business_code} if tenant else None
    user_data['is_admin'] = user.is_superuser or user.role == 'ADMIN'
    user_data['can_confirm_orders'] = user_data['is_admin'] or user.role == 'BUSINESS_OWNER'
    user_data['can_dispatch_orders'] = user.role in ('BUSINESS_OWNER', 'STOCK_KEEPER') or user_data['is_admin']
    return Response(user_data)


def _audit_queryset(request):
    queryset = AuditLog.objects.select_related('user')
    if request.user.is_superuser or request.user.role == 'ADMIN':
        return queryset
    tenant = get_user_tenant(request.user)
    if tenant is None:
        return queryset.filter(user=request.user)
    return queryset.filter(tenant=tenant)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs of the user's tenant with filtering"""
    queryset = _audit_queryset(request)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')[:500]
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(_audit_queryset(request), pk=pk)
    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
