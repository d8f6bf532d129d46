import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import ProtectedError
from django.http import HttpResponse
from django.utils import timezone

from backoffice.core.periods import parse_date
from backoffice.core.pagination import paginated_response
from backoffice.core.tenancy import get_current_membership, get_scoped_object_or_404
from backoffice.core.utils import create_audit_log, to_jsonable
from .models import Category, Account, Stash, Transaction, Budget, ScheduledPayment
from .serializers import (
    CategorySerializer, AccountSerializer, StashSerializer, TransactionSerializer,
    StashTransferSerializer, AddFundsSerializer, StashUpsertSerializer, StashTransferRequestSerializer,
    BudgetSerializer, ScheduledPaymentSerializer, PayScheduledPaymentSerializer, TransactionImportSerializer,
)
from .filters import TransactionFilter
from . import services, budgets, credit_cards, csv_io

logger = logging.getLogger(__name__)

MODE = 'finance'


def _today(request):
    """Reference date for period calculations; ?date=YYYY-MM-DD overrides today"""
    try:
        return parse_date(request.query_params.get('date'), default=timezone.localdate())
    except ValueError:
        raise ValidationError({'date': 'Use the YYYY-MM-DD format'})


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List or create categories"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Category.objects.filter(organization=organization)
        kind = request.query_params.get('kind', None)
        if kind:
            queryset = queryset.filter(kind__in=[kind, 'both'])
        serializer = CategorySerializer(queryset, many=True, context=context)
        return Response(serializer.data)

    serializer = CategorySerializer(data=request.data, context=context)
    if serializer.is_valid():
        serializer.save(organization=organization)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    category = get_scoped_object_or_404(Category, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(CategorySerializer(category, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Account views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def account_list_create(request):
    """List or create accounts"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Account.objects.filter(organization=organization).select_related('stash')
        if request.query_params.get('include_archived', '').lower() not in ('1', 'true'):
            queryset = queryset.filter(is_archived=False)
        account_type = request.query_params.get('account_type', None)
        if account_type:
            queryset = queryset.filter(account_type=account_type)
        serializer = AccountSerializer(queryset, many=True, context=context)
        return Response(serializer.data)

    serializer = AccountSerializer(data=request.data, context=context)
    if serializer.is_valid():
        account = serializer.save(organization=organization)
        create_audit_log(
            request=request,
            action='create',
            model_name='Account',
            object_id=account.id,
            object_name=account.name,
            organization=organization,
            changes={'balance': account.balance, 'account_type': account.account_type},
        )
        return Response(AccountSerializer(account, context=context).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def account_detail(request, pk):
    """Retrieve, update or delete an account"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    account = get_scoped_object_or_404(Account, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(AccountSerializer(account, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AccountSerializer(account, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Account',
                object_id=account.id,
                object_name=account.name,
                organization=organization,
                changes=dict(serializer.validated_data),
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            account.delete()
        except ProtectedError:
            return Response(
                {'error': 'Account has transactions. Archive it instead of deleting.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Account',
            object_id=pk,
            object_name=account.name,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def account_summary(request):
    """Balances per currency and credit card debt"""
    membership = get_current_membership(request, mode=MODE)
    return Response(to_jsonable(services.account_totals(membership.organization)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def account_add_funds(request, pk):
    """Top up an account, repaying its stash first"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    account = get_scoped_object_or_404(Account, organization, pk=pk)

    serializer = AddFundsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = services.add_funds(account, serializer.validated_data['amount'],
                                    user=request.user, note=serializer.validated_data['note'])
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='add_funds',
        model_name='Account',
        object_id=account.id,
        object_name=account.name,
        organization=organization,
        changes={'stash_repaid': result['stash_repaid'], 'card_amount': result['card_amount']},
    )
    txn = result.pop('transaction')
    data = to_jsonable(result)
    data['transaction'] = TransactionSerializer(txn).data if txn else None
    account.refresh_from_db()
    data['balance'] = str(account.balance)
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def account_stash(request, pk):
    """Retrieve or create/update the account's stash"""
    membership = get_current_membership(request, mode=MODE)
    account = get_scoped_object_or_404(Account, membership.organization, pk=pk)

    if request.method == 'GET':
        stash = Stash.objects.filter(account=account).first()
        if stash is None:
            return Response({'error': 'Account has no stash'}, status=status.HTTP_404_NOT_FOUND)
        data = StashSerializer(stash).data
        data['transfers'] = StashTransferSerializer(stash.transfers.all()[:50], many=True).data
        return Response(data)

    serializer = StashUpsertSerializer(data=request.data)
    if serializer.is_valid():
        stash = services.upsert_stash(account, **serializer.validated_data)
        return Response(StashSerializer(stash).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def account_stash_transfer(request, pk):
    """Move money between an account and its stash"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    account = get_scoped_object_or_404(Account, organization, pk=pk)

    serializer = StashTransferRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        transfer = services.transfer_stash(account, data['direction'], data['amount'], user=request.user)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='stash_transfer',
        model_name='Stash',
        object_id=transfer.stash_id,
        object_name=account.name,
        organization=organization,
        changes={'direction': transfer.direction, 'amount': transfer.amount},
    )
    return Response(StashTransferSerializer(transfer).data, status=status.HTTP_201_CREATED)


# Transaction views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """List transactions with filtering and pagination, or record a new one"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Transaction.objects.filter(organization=organization).select_related('account', 'category')
        queryset = TransactionFilter(request.query_params, queryset=queryset).qs

        return paginated_response(request, queryset, TransactionSerializer, context)

    serializer = TransactionSerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        txn = services.create_transaction(
            data['account'], data['direction'], data['amount'],
            occurred_at=data['occurred_at'],
            category=data.get('category'),
            note=data.get('note', ''),
            counterparty=data.get('counterparty', ''),
            tags=data.get('tags'),
            user=request.user,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(TransactionSerializer(txn, context=context).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve, update or delete a transaction; balances follow"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    txn = get_scoped_object_or_404(Transaction, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(TransactionSerializer(txn, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = TransactionSerializer(txn, data=request.data, partial=request.method == 'PATCH', context=context)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            txn = services.update_transaction(txn, **serializer.validated_data)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(TransactionSerializer(txn, context=context).data)
    else:  # DELETE
        services.delete_transaction(txn)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Transaction',
            object_id=pk,
            organization=organization,
            changes={'direction': txn.direction, 'amount': txn.amount, 'account': txn.account_id},
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_export(request):
    """Export filtered transactions as CSV"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    queryset = Transaction.objects.filter(organization=organization)
    queryset = TransactionFilter(request.query_params, queryset=queryset).qs.order_by('occurred_at', 'id')

    content = csv_io.export_transactions_csv(queryset)
    create_audit_log(
        request=request,
        action='export',
        model_name='Transaction',
        object_id='csv',
        organization=organization,
        changes={'filters': dict(request.query_params.items())},
    )
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="transactions-{timezone.localdate().isoformat()}.csv"'
    return response


def _read_statement(data):
    upload = data.get('file')
    if upload is not None:
        return csv_io.decode_upload(upload.read())
    return data.get('content', '')


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_import_preview(request):
    """Parse a bank statement and show what would be imported"""
    get_current_membership(request, mode=MODE)
    upload = request.FILES.get('file')
    content = csv_io.decode_upload(upload.read()) if upload else request.data.get('content', '')
    if not content:
        return Response({'error': 'Provide a CSV file or its content'}, status=status.HTTP_400_BAD_REQUEST)

    parsed = csv_io.parse_bank_statement(content)
    summary = csv_io.summarize_operations(parsed['operations'])
    return Response(to_jsonable({
        'operations': parsed['operations'],
        'errors': parsed['errors'],
        'skipped': parsed['skipped'],
        'summary': summary,
    }))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def transaction_import(request):
    """Import a bank statement into an account"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization

    serializer = TransactionImportSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    account = get_scoped_object_or_404(Account, organization, pk=data['account'])
    parsed = csv_io.parse_bank_statement(_read_statement(data))
    if not parsed['operations']:
        return Response(
            {'error': 'No operations found in the file', 'errors': parsed['errors']},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        result = csv_io.import_operations(
            account,
            parsed['operations'],
            category_assignments=data['category_assignments'],
            merges=data['merges'],
            excluded_rows=data['excluded_rows'],
            user=request.user,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='import',
        model_name='Transaction',
        object_id=result['batch'],
        object_name=account.name,
        organization=organization,
        changes={'created': result['created'], 'errors': len(parsed['errors'])},
    )
    return Response({
        'batch': result['batch'],
        'created': result['created'],
        'errors': parsed['errors'],
        'skipped': parsed['skipped'],
    }, status=status.HTTP_201_CREATED)


# Budget views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def budget_list_create(request):
    """List budgets with usage or create a budget"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Budget.objects.filter(organization=organization).select_related('category')
        if request.query_params.get('active', '').lower() in ('1', 'true'):
            today = _today(request)
            queryset = queryset.filter(period_start__lte=today, period_end__gte=today)
        category = request.query_params.get('category', None)
        if category:
            queryset = queryset.filter(category_id=category)
        serializer = BudgetSerializer(queryset, many=True, context=context)
        return Response(serializer.data)

    serializer = BudgetSerializer(data=request.data, context=context)
    if serializer.is_valid():
        budget = serializer.save(organization=organization)
        create_audit_log(
            request=request,
            action='create',
            model_name='Budget',
            object_id=budget.id,
            object_name=str(budget),
            organization=organization,
            changes={'limit_amount': budget.limit_amount},
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def budget_detail(request, pk):
    """Retrieve, update or delete a budget"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    budget = get_scoped_object_or_404(Budget, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(BudgetSerializer(budget, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BudgetSerializer(budget, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        budget.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def budget_alerts(request):
    """Threshold alerts for budgets active today"""
    membership = get_current_membership(request, mode=MODE)
    today = _today(request)
    try:
        alerts = budgets.detect_budget_alerts(membership.organization, today)
        return Response(to_jsonable(alerts))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Error in budget_alerts: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while checking budgets'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def budget_summary(request):
    """On track / at risk / exceeded counts for active budgets"""
    membership = get_current_membership(request, mode=MODE)
    today = _today(request)
    try:
        summary = budgets.budgets_summary(membership.organization, today)
        return Response(to_jsonable(summary))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Error in budget_summary: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while summarizing budgets'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def budget_forecast(request, pk):
    """Depletion forecast of a budget"""
    membership = get_current_membership(request, mode=MODE)
    budget = get_scoped_object_or_404(Budget, membership.organization, pk=pk)
    try:
        return Response(to_jsonable(budgets.forecast_depletion(budget, _today(request))))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def budget_rollover(request):
    """Create next-period budgets for every finished period"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    try:
        created = budgets.rollover_budgets(_today(request), organization=organization)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    for budget in created:
        create_audit_log(
            request=request,
            action='budget_rollover',
            model_name='Budget',
            object_id=budget.id,
            object_name=str(budget),
            organization=organization,
            changes={'previous': budget.previous_id, 'carried_over': budget.carried_over},
        )
    serializer = BudgetSerializer(created, many=True, context={'organization': organization})
    return Response({'created': len(created), 'budgets': serializer.data})


# Credit card payment views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def card_payment_list(request):
    """Planned and past credit card payments"""
    membership = get_current_membership(request, mode=MODE)
    queryset = ScheduledPayment.objects.filter(organization=membership.organization).select_related('account')
    status_filter = request.query_params.get('status', None)
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    account = request.query_params.get('account', None)
    if account:
        queryset = queryset.filter(account_id=account)
    return Response(ScheduledPaymentSerializer(queryset, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def card_payment_generate(request):
    """Plan the next payment of every credit card with debt"""
    membership = get_current_membership(request, mode=MODE)
    try:
        created = credit_cards.generate_card_payments(_today(request), organization=membership.organization)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'created': len(created),
        'payments': ScheduledPaymentSerializer(created, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def card_payment_pay(request, pk):
    """Pay a planned card payment, optionally from another account"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    payment = get_scoped_object_or_404(ScheduledPayment, organization, pk=pk)

    serializer = PayScheduledPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    source_account = None
    if data.get('source_account'):
        source_account = get_scoped_object_or_404(Account, organization, pk=data['source_account'])

    try:
        payment = credit_cards.pay_scheduled_payment(
            payment,
            amount=data.get('amount'),
            source_account=source_account,
            user=request.user,
            paid_at=data.get('paid_at'),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='card_payment',
        model_name='ScheduledPayment',
        object_id=payment.id,
        object_name=payment.account.name,
        organization=organization,
        changes={'amount': payment.transaction.amount if payment.transaction else None},
    )
    return Response(ScheduledPaymentSerializer(payment).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def card_payment_skip(request, pk):
    """Mark a planned card payment as skipped"""
    membership = get_current_membership(request, mode=MODE)
    payment = get_scoped_object_or_404(ScheduledPayment, membership.organization, pk=pk)
    if payment.status != 'planned':
        return Response({'error': f'Payment is already {payment.status}'}, status=status.HTTP_400_BAD_REQUEST)
    payment.status = 'skipped'
    payment.save(update_fields=['status'])
    return Response(ScheduledPaymentSerializer(payment).data)
