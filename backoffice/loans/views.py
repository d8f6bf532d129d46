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
from .amortization import build_schedule, schedule_totals
from .models import Loan
from .serializers import LoanSerializer, LoanPaymentSerializer, LoanRepaymentSerializer, LoanCalculatorSerializer
from . import services

logger = logging.getLogger(__name__)

MODE = 'loans'

SCHEDULE_FIELDS = ('principal_amount', 'interest_rate', 'payment_type', 'term_months', 'issue_date', 'end_date')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def loan_list_create(request):
    """List loans or create a loan with its payment schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Loan.objects.filter(organization=organization)
        status_filter = request.query_params.get('status', None)
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        serializer = LoanSerializer(queryset, many=True, context=context)
        return Response(serializer.data)

    serializer = LoanSerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            loan = serializer.save(organization=organization, created_by=request.user)
            services.initialize_loan(loan)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='create',
        model_name='Loan',
        object_id=loan.id,
        object_name=loan.name,
        organization=organization,
        changes={'principal_amount': loan.principal_amount, 'term_months': loan.term_months},
    )
    return Response(LoanSerializer(loan, context=context).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def loan_detail(request, pk):
    """Retrieve, update or delete a loan; changed terms rebuild the schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    loan = get_scoped_object_or_404(Loan, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        data = LoanSerializer(loan, context=context).data
        data['payments'] = LoanPaymentSerializer(loan.payments.all(), many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = LoanSerializer(loan, data=request.data, partial=request.method == 'PATCH', context=context)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        terms_changed = any(field in serializer.validated_data for field in SCHEDULE_FIELDS)
        try:
            with transaction.atomic():
                loan = serializer.save()
                if terms_changed:
                    loan, _, _ = services.recalculate_loan(loan)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='update',
            model_name='Loan',
            object_id=loan.id,
            object_name=loan.name,
            organization=organization,
            changes=dict(serializer.validated_data),
        )
        return Response(LoanSerializer(loan, context=context).data)
    else:  # DELETE
        name = loan.name
        loan.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Loan',
            object_id=pk,
            object_name=name,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def loan_schedule(request, pk):
    """Payment schedule of a loan"""
    membership = get_current_membership(request, mode=MODE)
    loan = get_scoped_object_or_404(Loan, membership.organization, pk=pk)
    payments = loan.payments.all()
    status_filter = request.query_params.get('status', None)
    if status_filter:
        payments = payments.filter(status=status_filter)
    return Response(LoanPaymentSerializer(payments, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def loan_repay(request, pk):
    """Record a repayment and recalculate the remaining schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    loan = get_scoped_object_or_404(Loan, organization, pk=pk)

    serializer = LoanRepaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    account = None
    if data.get('account'):
        account = get_scoped_object_or_404(Account, organization, pk=data['account'])

    try:
        payment = services.record_repayment(
            loan, data['amount'], paid_on=data.get('paid_on'), account=account, user=request.user
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    loan.refresh_from_db()
    create_audit_log(
        request=request,
        action='loan_repayment',
        model_name='Loan',
        object_id=loan.id,
        object_name=loan.name,
        organization=organization,
        changes={
            'amount': payment.total,
            'principal': payment.principal_part,
            'interest': payment.interest_part,
            'remaining_principal': loan.remaining_principal,
        },
    )
    return Response({
        'payment': LoanPaymentSerializer(payment).data,
        'loan': LoanSerializer(loan, context={'organization': organization}).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def loan_recalculate(request, pk):
    """Recompute paid totals and rebuild the planned schedule"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    loan = get_scoped_object_or_404(Loan, organization, pk=pk)

    try:
        loan, before, after = services.recalculate_loan(loan)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Error recalculating loan {pk}: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while recalculating the loan'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='loan_recalculate',
        model_name='Loan',
        object_id=loan.id,
        object_name=loan.name,
        organization=organization,
        changes={'before': before, 'after': after},
    )
    return Response({
        'loan': LoanSerializer(loan, context={'organization': organization}).data,
        'before': to_jsonable(before),
        'after': to_jsonable(after),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def loan_summary(request):
    """Total debt, monthly payment and per-loan status"""
    membership = get_current_membership(request, mode=MODE)
    try:
        summary = services.loans_summary(membership.organization, timezone.localdate())
        return Response(to_jsonable(summary))
    except Exception as e:
        logger.error(f"Error in loan_summary: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while summarizing loans'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def loan_calculate(request):
    """Preview a schedule without saving anything"""
    get_current_membership(request, mode=MODE, write=False)
    serializer = LoanCalculatorSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        rows = build_schedule(
            data['principal_amount'],
            data['interest_rate'],
            data['term_months'],
            data['issue_date'],
            payment_type=data['payment_type'],
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(to_jsonable({**schedule_totals(rows), 'schedule': rows}))
