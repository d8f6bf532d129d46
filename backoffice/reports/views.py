import logging
from datetime import timedelta
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.utils import timezone

from backoffice.core.periods import parse_date
from backoffice.core.tenancy import get_current_membership
from backoffice.core.utils import to_jsonable
from . import services

logger = logging.getLogger(__name__)

MODE = 'finance'

DEFAULT_SUMMARY_DAYS = 30


def _date_param(request, name, default):
    try:
        return parse_date(request.query_params.get(name), default=default)
    except ValueError:
        raise ValidationError({name: 'Use the YYYY-MM-DD format'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def finance_summary(request):
    """Finance summary of a period, the last 30 days by default"""
    membership = get_current_membership(request, mode=MODE)
    today = timezone.localdate()
    date_to = _date_param(request, 'date_to', today)
    date_from = _date_param(request, 'date_from', date_to - timedelta(days=DEFAULT_SUMMARY_DAYS))
    if date_from > date_to:
        return Response({'error': 'date_from must not be after date_to'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        data = services.finance_summary(membership.organization, date_from, date_to)
        return Response(to_jsonable(data))
    except Exception as e:
        logger.error(f"Error in finance_summary: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while generating the finance summary'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def monthly_report(request):
    """Income, expense and net per month of ?year"""
    membership = get_current_membership(request, mode=MODE)
    year = request.query_params.get('year', None)
    try:
        year = int(year) if year else timezone.localdate().year
    except ValueError:
        return Response({'error': 'year must be an integer'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        data = services.monthly_report(membership.organization, year)
        return Response(to_jsonable(data))
    except Exception as e:
        logger.error(f"Error in monthly_report: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while generating the monthly report'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_kpis(request):
    """Balances, debts, budgets at risk and upcoming taxes"""
    membership = get_current_membership(request, mode=MODE)
    today = _date_param(request, 'date', timezone.localdate())
    try:
        data = services.dashboard_kpis(membership.organization, today)
        return Response(to_jsonable(data))
    except Exception as e:
        logger.error(f"Error in dashboard_kpis: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while loading dashboard KPIs'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
