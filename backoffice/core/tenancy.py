"""
Organization scoping for API views.

The current organization is taken from the ``X-Organization-ID`` header
(or the ``organization`` query parameter) and falls back to the user's
default membership.
"""
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import SAFE_METHODS

from .models import Membership

ORGANIZATION_HEADER = 'HTTP_X_ORGANIZATION_ID'


def _requested_organization_id(request):
    org_id = request.META.get(ORGANIZATION_HEADER)
    if not org_id:
        params = getattr(request, 'query_params', request.GET)
        org_id = params.get('organization')
    if not org_id:
        return None
    try:
        return int(org_id)
    except (TypeError, ValueError):
        raise PermissionDenied('Invalid organization identifier.')


def get_current_membership(request, mode=None, write=None):
    """
    Resolve the caller's membership in the current organization.

    Raises PermissionDenied (403) when the user has no access to the
    organization, when ``mode`` is not enabled for the membership, or when a
    viewer attempts a write. ``write`` defaults to "request method is unsafe".
    """
    memberships = Membership.objects.select_related('organization').filter(
        user=request.user,
        organization__is_active=True,
    )
    org_id = _requested_organization_id(request)
    if org_id is not None:
        membership = memberships.filter(organization_id=org_id).first()
        if membership is None:
            raise PermissionDenied('You are not a member of this organization.')
    else:
        membership = memberships.order_by('-is_default', 'created_at').first()
        if membership is None:
            raise PermissionDenied('No organization selected.')

    if mode and not membership.has_mode(mode):
        raise PermissionDenied(f'The "{mode}" mode is not enabled for you in this organization.')

    if write is None:
        write = request.method not in SAFE_METHODS
    if write and not membership.can_write:
        raise PermissionDenied('You have read-only access to this organization.')

    return membership


def get_current_organization(request, mode=None, write=None):
    return get_current_membership(request, mode=mode, write=write).organization


def require_manager(membership):
    if not membership.is_manager:
        raise PermissionDenied('Only organization owners and admins can do this.')


def get_scoped_object_or_404(model, organization, **lookup):
    """Objects of other organizations are reported as missing"""
    return get_object_or_404(model, organization=organization, **lookup)
