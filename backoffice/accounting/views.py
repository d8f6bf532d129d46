import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.http import HttpResponse
from django.utils import timezone

from backoffice.core.periods import parse_date, period_range
from backoffice.core.pagination import paginated_response
from backoffice.core.tenancy import get_current_membership, get_scoped_object_or_404
from backoffice.core.utils import create_audit_log, to_jsonable
from .filters import CounterpartyFilter, DocumentFilter
from .models import Counterparty, AccountingDocument, KudirEntry, TaxPayment
from .serializers import (
    CounterpartySerializer, AccountingDocumentSerializer, DocumentPaymentSerializer, KudirEntrySerializer,
    TaxPaymentSerializer, TaxPaymentUpdateSerializer, TaxPayRequestSerializer, TaxGenerateSerializer,
    EmployeeInsuranceSerializer, KudirSyncSerializer, MIN_YEAR, MAX_YEAR,
)
from . import kudir, reports, services, tax_calculator, tax_calendar

logger = logging.getLogger(__name__)

MODE = 'accounting'

REPORTS = {
    'income-expense': reports.income_expense_report,
    'profit-loss': reports.profit_loss_report,
    'vat': reports.vat_report,
    'counterparties': reports.counterparty_report,
    'cash-flow': reports.cash_flow_report,
    'tenders': reports.tender_report,
}


def _today(request):
    """Reference date; ?date=YYYY-MM-DD overrides today"""
    try:
        return parse_date(request.query_params.get('date'), default=timezone.localdate())
    except ValueError:
        raise ValidationError({'date': 'Use the YYYY-MM-DD format'})


def _int_param(request, name, default=None, required=False):
    value = request.query_params.get(name, None)
    if value in (None, ''):
        if required:
            raise ValidationError({name: 'This parameter is required'})
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError({name: 'Must be an integer'})


def _year(request, today=None, default_current=True):
    default = (today or timezone.localdate()).year if default_current else None
    year = _int_param(request, 'year', default=default)
    if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError({'year': f'Must be between {MIN_YEAR} and {MAX_YEAR}'})
    return year


# Counterparty views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def counterparty_list_create(request):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = Counterparty.objects.filter(organization=organization)
        queryset = CounterpartyFilter(request.query_params, queryset=queryset).qs
        return Response(CounterpartySerializer(queryset, many=True, context=context).data)

    serializer = CounterpartySerializer(data=request.data, context=context)
    if serializer.is_valid():
        counterparty = serializer.save(organization=organization)
        create_audit_log(
            request=request,
            action='create',
            model_name='Counterparty',
            object_id=counterparty.id,
            object_name=counterparty.name,
            organization=organization,
        )
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def counterparty_detail(request, pk):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    counterparty = get_scoped_object_or_404(Counterparty, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(CounterpartySerializer(counterparty, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CounterpartySerializer(counterparty, data=request.data, partial=request.method == 'PATCH', context=context)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        counterparty.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Counterparty',
            object_id=pk,
            object_name=counterparty.name,
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Document views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def document_list_create(request):
    """List documents with filtering and pagination, or register a document"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        queryset = AccountingDocument.objects.filter(organization=organization).select_related('counterparty')
        queryset = DocumentFilter(request.query_params, queryset=queryset).qs
        return paginated_response(request, queryset, AccountingDocumentSerializer, context)

    serializer = AccountingDocumentSerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    document = serializer.save(organization=organization, created_by=request.user)
    create_audit_log(
        request=request,
        action='create',
        model_name='AccountingDocument',
        object_id=document.id,
        object_name=str(document),
        organization=organization,
        changes={'total_amount': document.total_amount, 'vat_amount': document.vat_amount},
    )
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def document_detail(request, pk):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    document = get_scoped_object_or_404(AccountingDocument, organization, pk=pk)
    context = {'organization': organization}

    if request.method == 'GET':
        return Response(AccountingDocumentSerializer(document, context=context).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = AccountingDocumentSerializer(document, data=request.data, partial=request.method == 'PATCH', context=context)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='AccountingDocument',
            object_id=document.id,
            object_name=str(document),
            organization=organization,
            changes=dict(serializer.validated_data),
        )
        return Response(serializer.data)
    else:  # DELETE
        document.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='AccountingDocument',
            object_id=pk,
            object_name=str(document),
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def document_pay(request, pk):
    """Register a full or partial payment of a document"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    document = get_scoped_object_or_404(AccountingDocument, organization, pk=pk)

    serializer = DocumentPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        services.register_document_payment(
            document,
            amount=serializer.validated_data.get('amount'),
            payment_date=serializer.validated_data.get('payment_date'),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='document_payment',
        model_name='AccountingDocument',
        object_id=document.id,
        object_name=str(document),
        organization=organization,
        changes={'paid_amount': document.paid_amount, 'payment_status': document.payment_status},
    )
    return Response(AccountingDocumentSerializer(document, context={'organization': organization}).data)


# KUDIR views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def kudir_list_create(request):
    """List book entries or add a manual entry"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    context = {'organization': organization}

    if request.method == 'GET':
        params = request.query_params
        try:
            queryset = kudir.filter_entries(
                organization,
                year=_year(request, default_current=False),
                quarter=_int_param(request, 'quarter'),
                month=_int_param(request, 'month'),
                entry_type=params.get('entry_type', None),
                search=params.get('search', None),
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        return paginated_response(request, queryset, KudirEntrySerializer, context)

    serializer = KudirEntrySerializer(data=request.data, context=context)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        entry = kudir.create_entry(
            organization,
            entry_date=data['entry_date'],
            description=data['description'],
            income=data.get('income'),
            expense=data.get('expense'),
            document=data.get('document'),
            counterparty=data.get('counterparty'),
            tender=data.get('tender'),
            user=request.user,
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='create',
        model_name='KudirEntry',
        object_id=entry.id,
        object_name=f"#{entry.entry_number}",
        organization=organization,
        changes={'income': entry.income, 'expense': entry.expense},
    )
    return Response(KudirEntrySerializer(entry, context=context).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def kudir_detail(request, pk):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    entry = get_scoped_object_or_404(KudirEntry, organization, pk=pk)

    if request.method == 'GET':
        return Response(KudirEntrySerializer(entry, context={'organization': organization}).data)

    entry.delete()
    create_audit_log(
        request=request,
        action='delete',
        model_name='KudirEntry',
        object_id=pk,
        object_name=f"#{entry.entry_number}",
        organization=organization,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kudir_summary(request):
    """Quarter and year totals of the book"""
    membership = get_current_membership(request, mode=MODE)
    year = _year(request)
    try:
        return Response(to_jsonable(kudir.year_summary(membership.organization, year)))
    except Exception as e:
        logger.error(f"Error in kudir_summary: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while summarizing the book'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def kudir_sync(request):
    """Create entries for paid documents that are not in the book yet"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    serializer = KudirSyncSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    year = serializer.validated_data.get('year') or timezone.localdate().year
    created = kudir.sync_from_documents(organization, year, user=request.user)

    create_audit_log(
        request=request,
        action='kudir_sync',
        model_name='KudirEntry',
        object_id=year,
        object_name=f"KUDIR {year}",
        organization=organization,
        changes={'created': created},
    )
    return Response({'created': created})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def kudir_export(request):
    """Download a year of the book as CSV"""
    membership = get_current_membership(request, mode=MODE)
    year = _year(request)
    content = kudir.export_kudir_csv(membership.organization, year)
    response = HttpResponse(content, content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="kudir-{year}.csv"'
    return response


# Tax calendar views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def tax_list_create(request):
    """Tax calendar of a year, or add a payment"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    today = _today(request)

    if request.method == 'GET':
        return Response(to_jsonable(tax_calendar.tax_calendar(organization, _year(request, today), today)))

    serializer = TaxPaymentSerializer(data=request.data, context={'organization': organization})
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    payment = tax_calendar.create_tax_payment(
        organization,
        data['tax_type'],
        data['period'],
        data['due_date'],
        amount=data.get('amount'),
        tax_name=data.get('tax_name'),
        notes=data.get('notes', ''),
    )
    create_audit_log(
        request=request,
        action='create',
        model_name='TaxPayment',
        object_id=payment.id,
        object_name=str(payment),
        organization=organization,
        changes={'due_date': payment.due_date, 'amount': payment.amount},
    )
    return Response(to_jsonable(tax_calendar.calendar_entry(payment, today)), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def tax_detail(request, pk):
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    payment = get_scoped_object_or_404(TaxPayment, organization, pk=pk)
    today = _today(request)

    if request.method == 'GET':
        return Response(to_jsonable(tax_calendar.calendar_entry(payment, today)))
    elif request.method in ('PUT', 'PATCH'):
        serializer = TaxPaymentUpdateSerializer(payment, data=request.data, partial=request.method == 'PATCH',
                                                context={'organization': organization})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        payment = serializer.save()
        create_audit_log(
            request=request,
            action='update',
            model_name='TaxPayment',
            object_id=payment.id,
            object_name=str(payment),
            organization=organization,
            changes=dict(serializer.validated_data),
        )
        return Response(to_jsonable(tax_calendar.calendar_entry(payment, today)))
    else:  # DELETE
        payment.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='TaxPayment',
            object_id=pk,
            object_name=str(payment),
            organization=organization,
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def tax_pay(request, pk):
    """Mark a tax payment as paid"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    payment = get_scoped_object_or_404(TaxPayment, organization, pk=pk)

    serializer = TaxPayRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    document = None
    if data.get('document'):
        document = get_scoped_object_or_404(AccountingDocument, organization, pk=data['document'])
    try:
        tax_calendar.mark_paid(payment, data['paid_amount'], paid_date=data.get('paid_date'), document=document)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='tax_payment',
        model_name='TaxPayment',
        object_id=payment.id,
        object_name=str(payment),
        organization=organization,
        changes={'paid_amount': payment.paid_amount, 'paid_date': payment.paid_date},
    )
    return Response(to_jsonable(tax_calendar.calendar_entry(payment, _today(request))))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tax_upcoming(request):
    """Open payments due within ?days (default 30)"""
    membership = get_current_membership(request, mode=MODE)
    today = _today(request)
    days = _int_param(request, 'days', default=30)
    return Response(to_jsonable(tax_calendar.upcoming_payments(membership.organization, today, days=days)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tax_overdue(request):
    membership = get_current_membership(request, mode=MODE)
    return Response(to_jsonable(tax_calendar.overdue_payments(membership.organization, _today(request))))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def tax_generate(request):
    """Fill the calendar of a year with the standard deadlines"""
    membership = get_current_membership(request, mode=MODE)
    organization = membership.organization
    serializer = TaxGenerateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    year = serializer.validated_data['year']
    try:
        created = tax_calendar.generate_for_year(organization, year, serializer.validated_data.get('tax_types'))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='tax_calendar_generate',
        model_name='TaxPayment',
        object_id=year,
        object_name=f"Tax calendar {year}",
        organization=organization,
        changes={'created': created},
    )
    return Response({'created': created}, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tax_statistics(request):
    membership = get_current_membership(request, mode=MODE)
    today = _today(request)
    year = _year(request, today)
    return Response(to_jsonable(tax_calendar.tax_statistics(membership.organization, year, today)))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tax_deadlines(request):
    """Standard deadlines table"""
    get_current_membership(request, mode=MODE)
    return Response(tax_calendar.TAX_DEADLINES)


# Tax calculator views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def calculate_usn6(request):
    membership = get_current_membership(request, mode=MODE)
    year = _year(request)
    has_employees = request.query_params.get('has_employees', None)
    if has_employees is not None:
        has_employees = has_employees.lower() in ('1', 'true', 'yes')
    try:
        data = tax_calculator.calculate_usn6(membership.organization, year, has_employees=has_employees)
        return Response(to_jsonable(data))
    except Exception as e:
        logger.error(f"Error in calculate_usn6: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while calculating the tax'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def calculate_usn15(request):
    membership = get_current_membership(request, mode=MODE)
    year = _year(request)
    try:
        return Response(to_jsonable(tax_calculator.calculate_usn15(membership.organization, year)))
    except Exception as e:
        logger.error(f"Error in calculate_usn15: {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while calculating the tax'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def calculate_vat(request):
    membership = get_current_membership(request, mode=MODE)
    today = timezone.localdate()
    year = _year(request, today)
    quarter = _int_param(request, 'quarter', default=(today.month - 1) // 3 + 1)
    try:
        return Response(to_jsonable(tax_calculator.calculate_vat(membership.organization, year, quarter)))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def calculate_ip_insurance(request):
    membership = get_current_membership(request, mode=MODE)
    year = _year(request)
    return Response(to_jsonable(tax_calculator.calculate_ip_insurance(membership.organization, year)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def calculate_employee_insurance(request):
    """Contributions for the posted list of salaries; nothing is stored"""
    get_current_membership(request, mode=MODE, write=False)
    serializer = EmployeeInsuranceSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = tax_calculator.calculate_employee_insurance(serializer.validated_data['employees'])
    return Response(to_jsonable(data))


# Report views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def accounting_report(request, report):
    """
    Accounting reports over ?period=month|quarter|year|custom

    ``custom`` takes date_from and date_to.
    """
    membership = get_current_membership(request, mode=MODE)
    build = REPORTS.get(report)
    if build is None:
        return Response({'error': f'Unknown report: {report}'}, status=status.HTTP_404_NOT_FOUND)
    params = request.query_params
    try:
        date_from, date_to = period_range(
            params.get('period', 'month'), _today(request), params.get('date_from'), params.get('date_to'),
        )
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    try:
        return Response(to_jsonable(build(membership.organization, date_from, date_to)))
    except Exception as e:
        logger.error(f"Error in accounting_report ({report}): {str(e)}", exc_info=True)
        return Response({'error': 'An error occurred while building the report'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
