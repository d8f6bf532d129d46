from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.shortcuts import get_object_or_404
from .filters import AuditLogFilter
from .models import Organization, Membership, AuditLog
from .serializers import (
    UserSerializer, UserCreateSerializer, OrganizationSerializer,
    MembershipSerializer, MembershipCreateSerializer, AuditLogSerializer
)
from .tenancy import get_current_membership, require_manager
from .utils import create_audit_log

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['organizations'] = list(user.memberships.values_list('organization_id', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
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
    """Current user with organizations, roles and enabled modes"""
    user = request.user
    user_data = UserSerializer(user).data
    memberships = user.memberships.select_related('organization').filter(organization__is_active=True)
    user_data['memberships'] = [
        {
            'organization': {
                'id': m.organization.id,
                'name': m.organization.name,
                'slug': m.organization.slug,
                'tax_regime': m.organization.tax_regime,
            },
            'role': m.role,
            'modes': m.modes,
            'is_default': m.is_default,
            'can_write': m.can_write,
        }
        for m in memberships
    ]
    return Response(user_data)


# Organization views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_list_create(request):
    """List the caller's organizations or create a new one (caller becomes owner)"""
    if request.method == 'GET':
        organizations = Organization.objects.filter(memberships__user=request.user, is_active=True).distinct()
        serializer = OrganizationSerializer(organizations, many=True)
        return Response(serializer.data)

    serializer = OrganizationSerializer(data=request.data)
    if serializer.is_valid():
        with transaction.atomic():
            organization = serializer.save(created_by=request.user)
            is_first = not request.user.memberships.exists()
            Membership.objects.create(
                user=request.user,
                organization=organization,
                role='owner',
                modes=list(Membership.ALL_MODES),
                is_default=is_first,
            )
        create_audit_log(
            request=request,
            action='create',
            model_name='Organization',
            object_id=organization.id,
            object_name=organization.name,
            organization=organization,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def organization_detail(request, pk):
    """Retrieve or update an organization"""
    membership = get_object_or_404(Membership, user=request.user, organization_id=pk, organization__is_active=True)
    organization = membership.organization

    if request.method == 'GET':
        return Response(OrganizationSerializer(organization).data)

    require_manager(membership)
    serializer = OrganizationSerializer(organization, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='Organization',
            object_id=organization.id,
            object_name=organization.name,
            organization=organization,
            changes=dict(serializer.validated_data),
        )
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organization_members(request, pk):
    """List members or add a user to the organization"""
    membership = get_object_or_404(Membership, user=request.user, organization_id=pk, organization__is_active=True)
    organization = membership.organization

    if request.method == 'GET':
        members = organization.memberships.select_related('user', 'organization')
        return Response(MembershipSerializer(members, many=True).data)

    require_manager(membership)
    serializer = MembershipCreateSerializer(data=request.data)
    if serializer.is_valid():
        data = dict(serializer.validated_data)
        user = data.pop('username')
        if Membership.objects.filter(user=user, organization=organization).exists():
            return Response({'error': 'User is already a member of this organization'}, status=status.HTTP_400_BAD_REQUEST)
        member = Membership.objects.create(
            user=user,
            organization=organization,
            is_default=not user.memberships.exists(),
            **data
        )
        create_audit_log(
            request=request,
            action='create',
            model_name='Membership',
            object_id=member.id,
            object_name=user.username,
            organization=organization,
            changes={'role': member.role, 'modes': member.modes},
        )
        return Response(MembershipSerializer(member).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs of the current organization with filtering"""
    membership = get_current_membership(request)
    queryset = AuditLog.objects.filter(organization=membership.organization).select_related('user')

    # Members see their own entries, managers see everything
    if not membership.is_manager:
        queryset = queryset.filter(user=request.user)

    queryset = AuditLogFilter(request.query_params, queryset=queryset).qs.order_by('-created_at')
    serializer = AuditLogSerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    membership = get_current_membership(request)
    audit_log = get_object_or_404(AuditLog, pk=pk, organization=membership.organization)

    if not membership.is_manager and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)
