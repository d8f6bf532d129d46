import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.utils import timezone

from backoffice.core.tenancy import get_current_membership, get_scoped_object_or_404
from backoffice.core.utils import create_audit_log, to_jsonable
from backoffice.finance.models import Account
from backoffice.tenders.models import Tender
from .calculations import build_return_schedule, calculate_interest, calculate_penalty, DEFAULT_PENALTY_RATE
from .models import InvestmentSource, Investment
from .serializers import (
    InvestmentSourceSerializer, InvestmentSerializer, InvestmentReturnSerializer,
    InvestmentReturnRequestSerializer, InvestmentCalculatorSerializer,
)
from . import services

logger = logging.getLogger(__name__)

MODE = 'investors'

TERM_FIELDS = ('investment_date', 'due_date', 'principal', 'interest_rate', 'interest_type', 'schedule_type')


# Source views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def source_list_create(request):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = InvestmentSource.objects.filter(organization=organization)
        if request.query_params.get('active') == 'true':
            queryset = queryset.filter(is_active=True)
        return Response(InvestmentSourceSerializer(queryset, many=True, context=context).data)

    serializer = InvestmentSourceSerializer(data=request.data, context=context)
    if serializer.is_valid():
        source = serializer.save(organization=organization)
        create_audit_log(
            request=request,
            action='create',
            model_name='InvestmentSource',
            object_id=source.id,
            object_name=source.name,
            organization=organization,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def source_detail(request, pk):
    """Retrieve, update or delete a source; sources with investments are kept"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    source = get_scoped_object_or_404(InvestmentSource, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(InvestmentSourceSerializer(source, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = InvestmentSourceSerializer(source, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if source.investments.exists():
            return Response(
                {'error': 'Cannot delete a source with investments. Deactivate it instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        source.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='InvestmentSource',
            object_id=pk,
            object_name=source.name,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Investment views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def investment_list_create(request):
    """List investments or create one with its return schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Investment.objects.filter(organization=organization).select_related('source')
        for param in ('status', 'source', 'tender'):
            value = request.query_params.get(param, None)
            if value:
                queryset = queryset.filter(**{param: value})
        return Response(InvestmentSerializer(queryset, many=True, context=context).data)

    serializer = InvestmentSerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            investment = serializer.save(organization=organization, created_by=request.user)
            services.initialize_investment(investment)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='create',
        model_name='Investment',
        object_id=investment.id,
        object_name=investment.number,
        organization=organization,
        changes={'principal': investment.principal, 'interest_amount': investment.interest_amount},
    )
    return Response(InvestmentSerializer(investment, context=context).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def investment_detail(request, pk):
    """Retrieve, update or delete an investment; changed terms rebuild the schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    investment = get_scoped_object_or_404(Investment, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        data = InvestmentSerializer(investment, context=context).data
        data['schedule'] = InvestmentReturnSerializer(investment.returns.all(), many=True).data
        data['balance'] = to_jsonable(services.investment_balance(investment, timezone.localdate()))
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = InvestmentSerializer(investment, data=request.data, partial=request.method == 'PATCH', context=context)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        terms_changed = any(field in serializer.validated_data for field in TERM_FIELDS)
        try:
            with transaction.atomic():
                investment = serializer.save()
                if terms_changed:
                    services.recalculate_terms(investment)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='update',
            model_name='Investment',
            object_id=investment.id,
            object_name=investment.number,
            organization=organization,
            changes=dict(serializer.validated_data),
        )
        return Response(InvestmentSerializer(investment, context=context).data)
    else:  # DELETE
        if investment.returned_principal or investment.returned_interest:
            return Response(
                {'error': 'Cannot delete an investment with recorded returns'},
                status=status.HTTP_400_BAD_REQUEST
            )
        number = investment.number
        investment.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Investment',
            object_id=pk,
            object_name=number,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def investment_schedule(request, pk):
    membership = get_current_membership(request, mode=MODE)
    investment = get_scoped_object_or_404(Investment, membership.organization, pk=pk)
    return Response(InvestmentReturnSerializer(investment.returns.all(), many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def investment_return(request, pk):
    """Record money returned to the source"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    investment = get_scoped_object_or_404(Investment, organization, pk=pk)

    serializer = InvestmentReturnRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    account = None
    if data.get('account'):
        account = get_scoped_object_or_404(Account, organization, pk=data['account'])

    try:
        result = services.record_return(
            investment, data['amount'], paid_on=data.get('paid_on'), account=account, user=request.user
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    investment.refresh_from_db()
    create_audit_log(
        request=request,
        action='investment_return',
        model_name='Investment',
        object_id=investment.id,
        object_name=investment.number,
        organization=organization,
        changes=result,
    )
    return Response({
        'return': to_jsonable(result),
        'investment': InvestmentSerializer(investment, context={'organization': organization}).data,
        'schedule': InvestmentReturnSerializer(investment.returns.all(), many=True).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def investment_summary(request):
    """Totals of active investments with overdue ones"""
    membership = get_current_membership(request, mode=MODE)
    try:
        summary = services.investors_summary(membership.organization, timezone.localdate())
        return Response(to_jsonable(summary))
    except Exception as e:
        logger.error(f"Error in investment_summary: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while summarizing investments'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tender_funding(request, tender_pk):
    """Funding structure of a tender"""
    membership = get_current_membership(request, mode=MODE)
    tender = get_scoped_object_or_404(Tender, membership.organization, pk=tender_pk, deleted_at__isnull=True)
    return Response(to_jsonable(services.tender_funding(tender)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def investment_calculate(request):
    """Preview interest and the return schedule without saving anything"""
    get_current_membership(request, mode=MODE, write=False)
    serializer = InvestmentCalculatorSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    period_days = (data['due_date'] - data['investment_date']).days
    interest, total_return = calculate_interest(
        data['principal'], data['interest_rate'], data['interest_type'], period_days
    )
    schedule = build_return_schedule(
        data['principal'], interest, data['investment_date'], data['due_date'], schedule_type=data['schedule_type']
    )
    return Response(to_jsonable({
        'period_days': period_days,
        'interest_amount': interest,
        'total_return': total_return,
        'penalty': calculate_penalty(total_return, data['penalty_days'], DEFAULT_PENALTY_RATE),
        'schedule': schedule,
    }))
