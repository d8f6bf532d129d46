import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.utils import timezone

from backoffice.core.pagination import paginated_response
from backoffice.core.tenancy import get_current_membership
from backoffice.core.utils import create_audit_log, to_jsonable
from .filters import TenderFilter
from .models import TenderStage
from .serializers import TenderStageSerializer, TenderSerializer, TenderStatusSerializer
from . import services

logger = logging.getLogger(__name__)

MODE = 'tenders'

PROFIT_FIELDS = ('our_price', 'purchase_cost', 'logistics_cost', 'other_costs')


# Stage views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def stage_list_create(request):
    """List system and own stages, or create an own stage"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = services.stages_for(organization)
        category = request.query_params.get('category', None)
        if category:
            queryset = queryset.filter(category=category)
        return Response(TenderStageSerializer(queryset, many=True, context=context).data)

    serializer = TenderStageSerializer(data=request.data, context=context)
    if serializer.is_valid():
        serializer.save(organization=organization)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def stage_detail(request, pk):
    """Retrieve, update or delete a stage; system stages are read-only"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    stage = get_object_or_404(services.stages_for(organization), pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(TenderStageSerializer(stage, context=context).data)
    if stage.is_system:
        return Response({'error': 'System stages cannot be changed'}, status=status.HTTP_403_FORBIDDEN)
    if request.method in ('PUT', 'PATCH'):
        serializer = TenderStageSerializer(stage, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    # DELETE
    stage.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# Tender views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tender_list_create(request):
    """List tenders with filtering and pagination, or create a tender"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = services.live_tenders(organization).select_related('stage', 'responsible')
        queryset = TenderFilter(request.query_params, queryset=queryset).qs

        return paginated_response(request, queryset, TenderSerializer, context)

    serializer = TenderSerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    tender = serializer.save(organization=organization, created_by=request.user)
    if serializer.validated_data.get('planned_profit') is None:
        tender.planned_profit = services.calculate_planned_profit(tender)
        tender.save(update_fields=['planned_profit'])
    create_audit_log(
        request=request,
        action='create',
        model_name='Tender',
        object_id=tender.id,
        object_name=tender.purchase_number,
        organization=organization,
        changes={'nmck': tender.nmck, 'our_price': tender.our_price},
    )
    return Response(TenderSerializer(tender, context=context).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def tender_detail(request, pk):
    """Retrieve, update or soft-delete a tender"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    tender = get_object_or_404(services.live_tenders(organization), pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(TenderSerializer(tender, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = TenderSerializer(tender, data=request.data, partial=request.method == 'PATCH', context=context)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        tender = serializer.save()
        if 'planned_profit' not in data and any(field in data for field in PROFIT_FIELDS):
            tender.planned_profit = services.calculate_planned_profit(tender)
            tender.save(update_fields=['planned_profit'])
        create_audit_log(
            request=request,
            action='update',
            model_name='Tender',
            object_id=tender.id,
            object_name=tender.purchase_number,
            organization=organization,
            changes=dict(data),
        )
        return Response(TenderSerializer(tender, context=context).data)
    else:  # DELETE
        services.soft_delete(tender)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Tender',
            object_id=tender.id,
            object_name=tender.purchase_number,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def tender_change_status(request, pk):
    """Move a tender through the pipeline"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    tender = get_object_or_404(services.live_tenders(organization), pk=pk)

    serializer = TenderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    old_status = tender.status
    try:
        services.change_status(
            tender,
            serializer.validated_data['status'],
            contract_price=serializer.validated_data.get('contract_price'),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='status_change',
        model_name='Tender',
        object_id=tender.id,
        object_name=tender.purchase_number,
        organization=organization,
        changes={'old_status': old_status, 'new_status': tender.status, 'contract_price': tender.contract_price},
    )
    return Response(TenderSerializer(tender, context={'organization': organization}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tender_dashboard(request):
    """Pipeline counts, win rate and upcoming deadlines"""
    membership = get_current_membership(request, mode=MODE)
    try:
        days = int(request.query_params.get('days', 14))
    except ValueError:
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        data = services.tender_dashboard(membership.organization, timezone.localdate(), days=days)
        return Response(to_jsonable(data))
    except Exception as e:
        logger.error(f"Error in tender_dashboard: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while building the tender dashboard'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
