"""
Finance dashboard aggregations.

Every function is cached per organization; cache_signals drops the cached
results when the underlying rows change.
"""
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import ExtractMonth

from backoffice.accounting.tax_calendar import overdue_payments, upcoming_payments
from backoffice.core.cache_utils import DASHBOARD_KPI_CACHE_TTL, REPORTS_CACHE_TTL, cached_query
from backoffice.core.money import ZERO, percentage
from backoffice.core.periods import month_range
from backoffice.finance.budgets import budgets_summary, detect_budget_alerts
from backoffice.finance.models import Transaction
from backoffice.finance.services import account_totals
from backoffice.investors.models import Investment
from backoffice.loans.models import Loan

UNCATEGORIZED = 'Uncategorized'


def _totals(transactions):
    rows = transactions.values('direction').annotate(total=Sum('amount'), count=Count('id'))
    totals = {'income': ZERO, 'expense': ZERO, 'count': 0}
    for row in rows:
        totals[row['direction']] = row['total'] or ZERO
        totals['count'] += row['count']
    totals['net'] = totals['income'] - totals['expense']
    return totals


def _by_category(transactions, direction, total):
    rows = (
        transactions.filter(direction=direction)
        .values('category__name')
        .annotate(total=Sum('amount'), count=Count('id'))
        .order_by('-total')
    )
    return [
        {
            'category': row['category__name'] or UNCATEGORIZED,
            'total': row['total'],
            'count': row['count'],
            'percentage': percentage(row['total'], total),
        }
        for row in rows
    ]


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def finance_summary(organization, date_from, date_to):
    """Income, expense and net of a period with daily and category breakdowns"""
    transactions = Transaction.objects.filter(
        organization=organization,
        occurred_at__gte=date_from,
        occurred_at__lte=date_to,
    )
    totals = _totals(transactions)

    daily = {}
    rows = transactions.values('occurred_at', 'direction').annotate(total=Sum('amount'), count=Count('id'))
    for row in rows:
        day = daily.setdefault(row['occurred_at'], {
            'date': row['occurred_at'],
            'income': ZERO,
            'expense': ZERO,
            'count': 0,
        })
        day[row['direction']] += row['total']
        day['count'] += row['count']
    for day in daily.values():
        day['net'] = day['income'] - day['expense']

    return {
        'period': {'from': date_from, 'to': date_to},
        'summary': {
            'income': totals['income'],
            'expense': totals['expense'],
            'net': totals['net'],
            'transactions': totals['count'],
        },
        'daily': [daily[key] for key in sorted(daily)],
        'expense_by_category': _by_category(transactions, 'expense', totals['expense']),
        'income_by_category': _by_category(transactions, 'income', totals['income']),
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def monthly_report(organization, year):
    """Income, expense and net for each month of a year"""
    rows = (
        Transaction.objects.filter(organization=organization, occurred_at__year=year)
        .annotate(month=ExtractMonth('occurred_at'))
        .values('month', 'direction')
        .annotate(total=Sum('amount'))
    )
    months = {month: {'month': month, 'income': ZERO, 'expense': ZERO} for month in range(1, 13)}
    for row in rows:
        months[row['month']][row['direction']] += row['total']
    for month in months.values():
        month['net'] = month['income'] - month['expense']

    income = sum((month['income'] for month in months.values()), ZERO)
    expense = sum((month['expense'] for month in months.values()), ZERO)
    return {
        'year': year,
        'months': list(months.values()),
        'totals': {'income': income, 'expense': expense, 'net': income - expense},
    }


@cached_query(cache_ttl=DASHBOARD_KPI_CACHE_TTL)
def dashboard_kpis(organization, today):
    """Headline numbers for the finance dashboard"""
    accounts = account_totals(organization)
    loans = Loan.objects.filter(organization=organization, status='active').aggregate(
        debt=Sum('remaining_principal'),
        monthly_payment=Sum('monthly_payment'),
        count=Count('id'),
    )
    investments = [
        investment.remaining_principal + investment.remaining_interest
        for investment in Investment.objects.filter(organization=organization, status='active')
    ]
    budgets = budgets_summary(organization, today)
    alerts = detect_budget_alerts(organization, today)
    month_start, month_end = month_range(today.year, today.month)
    month = _totals(Transaction.objects.filter(
        organization=organization,
        occurred_at__gte=month_start,
        occurred_at__lte=month_end,
    ))
    upcoming = upcoming_payments(organization, today)

    return {
        'date': today,
        'balances': accounts['balances'],
        'credit_card_debt': accounts['credit_card_debt'],
        'loans': {
            'count': loans['count'],
            'debt': loans['debt'] or ZERO,
            'monthly_payment': loans['monthly_payment'] or ZERO,
        },
        'investments': {
            'count': len(investments),
            'debt': sum(investments, ZERO),
        },
        'month': {
            'income': month['income'],
            'expense': month['expense'],
            'net': month['net'],
        },
        'budgets': {
            'total': budgets['total_budgets'],
            'at_risk': budgets['budgets_at_risk'],
            'exceeded': budgets['budgets_exceeded'],
            'alerts': alerts[:5],
        },
        'taxes': {
            'upcoming': upcoming,
            'upcoming_amount': sum((Decimal(p['amount'] or 0) for p in upcoming), ZERO),
            'overdue_count': len(overdue_payments(organization, today)),
        },
    }
