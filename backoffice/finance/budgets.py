"""
Budget usage, alerts, forecasts and period rollover.

Spending of a budget is the sum of expense transactions in its category
whose date falls inside the budget period.
"""
import logging
from datetime import timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from backoffice.core.money import ZERO, percentage, quantize_money
from backoffice.core.periods import is_full_month, month_range
from .models import Budget, Transaction

logger = logging.getLogger(__name__)

WARNING_PERCENT = Decimal('80')
EXCEEDED_PERCENT = Decimal('100')

# (threshold %, alert type, severity, message template)
ALERT_THRESHOLDS = [
    (Decimal('120'), 'budget_exceeded', 'high', 'Budget "{category}" overspent: {percent}% ({spent} of {limit})'),
    (Decimal('100'), 'budget_exceeded', 'high', 'Budget "{category}" exhausted: {spent} of {limit}'),
    (Decimal('80'), 'budget_critical', 'medium', 'Budget "{category}" almost exhausted: {percent}% ({remaining} left)'),
    (Decimal('50'), 'budget_warning', 'low', 'Half of budget "{category}" spent: {percent}%'),
]
SEVERITY_ORDER = {'high': 0, 'medium': 1, 'low': 2}


def budget_spent(budget):
    total = Transaction.objects.filter(
        organization_id=budget.organization_id,
        category_id=budget.category_id,
        direction='expense',
        occurred_at__gte=budget.period_start,
        occurred_at__lte=budget.period_end,
    ).aggregate(total=Sum('amount'))['total']
    return total or ZERO


def usage_status(percent):
    if percent >= EXCEEDED_PERCENT:
        return 'over'
    if percent >= WARNING_PERCENT:
        return 'warning'
    return 'ok'


def budget_usage(budget, spent=None):
    if spent is None:
        spent = budget_spent(budget)
    available = budget.available
    percent = percentage(spent, available)
    return {
        'limit': budget.limit_amount,
        'carried_over': budget.carried_over,
        'available': available,
        'spent': spent,
        'remaining': available - spent,
        'percentage': percent,
        'status': usage_status(percent),
    }


def active_budgets(organization, today):
    return Budget.objects.filter(
        organization=organization,
        period_start__lte=today,
        period_end__gte=today,
    ).select_related('category')


def _recommendation(percent, category, remaining):
    if percent >= Decimal('120'):
        return f'Critical overspending in "{category}". Cut spending now or raise the budget.'
    if percent >= EXCEEDED_PERCENT:
        return f'Budget "{category}" is used up. Postpone non-essential purchases until the next period.'
    if percent >= WARNING_PERCENT:
        return f'Only {remaining} left in "{category}". Plan the remaining spending carefully.'
    return f'Half of "{category}" is spent. Check that the pace fits the rest of the period.'


def detect_budget_alerts(organization, today):
    """Alerts for budgets active today, most severe and most used first"""
    alerts = []
    for budget in active_budgets(organization, today):
        usage = budget_usage(budget)
        percent = usage['percentage']
        for threshold, alert_type, severity, template in ALERT_THRESHOLDS:
            if percent < threshold:
                continue
            category = budget.category.name
            alerts.append({
                'type': alert_type,
                'severity': severity,
                'budget_id': budget.id,
                'category': category,
                'limit_amount': usage['available'],
                'spent_amount': usage['spent'],
                'percentage': percent,
                'remaining': usage['remaining'],
                'message': template.format(
                    category=category,
                    percent=percent.quantize(Decimal('1')),
                    spent=usage['spent'],
                    limit=usage['available'],
                    remaining=usage['remaining'],
                ),
                'recommendation': _recommendation(percent, category, usage['remaining']),
            })
            break
    alerts.sort(key=lambda a: (SEVERITY_ORDER[a['severity']], -a['percentage']))
    return alerts


def forecast_depletion(budget, today):
    """
    Project spending to the end of the period from the average daily rate.

    ``days_until_depleted`` is None when nothing has been spent yet or the
    budget is already used up.
    """
    spent = budget_spent(budget)
    days_total = (budget.period_end - budget.period_start).days + 1
    days_elapsed = min(max((today - budget.period_start).days + 1, 1), days_total)
    days_left = days_total - days_elapsed

    daily_rate = spent / Decimal(days_elapsed)
    remaining = budget.available - spent
    days_until_depleted = None
    depletion_date = None
    if daily_rate > 0 and remaining > 0:
        days_until_depleted = int(remaining / daily_rate)
        depletion_date = today + timedelta(days=days_until_depleted)

    projected_spent = spent + daily_rate * days_left
    return {
        'budget_id': budget.id,
        'spent': spent,
        'available': budget.available,
        'daily_rate': quantize_money(daily_rate),
        'days_elapsed': days_elapsed,
        'days_left': days_left,
        'days_until_depleted': days_until_depleted,
        'depletion_date': depletion_date,
        'projected_spent': quantize_money(projected_spent),
        'projected_overspend': quantize_money(max(projected_spent - budget.available, ZERO)),
    }


def budgets_summary(organization, today):
    summary = {
        'total_budgets': 0,
        'budgets_on_track': 0,
        'budgets_at_risk': 0,
        'budgets_exceeded': 0,
        'total_limit': ZERO,
        'total_spent': ZERO,
    }
    for budget in active_budgets(organization, today):
        usage = budget_usage(budget)
        summary['total_budgets'] += 1
        summary['total_limit'] += usage['available']
        summary['total_spent'] += usage['spent']
        if usage['status'] == 'over':
            summary['budgets_exceeded'] += 1
        elif usage['status'] == 'warning':
            summary['budgets_at_risk'] += 1
        else:
            summary['budgets_on_track'] += 1
    summary['total_remaining'] = summary['total_limit'] - summary['total_spent']
    return summary


def next_period(period_start, period_end):
    """Calendar-month budgets roll to the next month, others keep their length"""
    if is_full_month(period_start, period_end):
        start = period_end + timedelta(days=1)
        return month_range(start.year, start.month)
    length = (period_end - period_start).days + 1
    start = period_end + timedelta(days=1)
    return start, start + timedelta(days=length - 1)


def rollover_budgets(today, organization=None):
    """
    Create successor budgets for every finished period up to ``today``.

    Unspent money is carried into the successor when the budget has
    ``rollover`` set. A budget the user already created for the next period
    is linked instead of duplicated, so running this twice changes nothing.
    Returns the list of created budgets.
    """
    created = []
    finished = Budget.objects.filter(period_end__lt=today, successor__isnull=True).select_related('category')
    if organization is not None:
        finished = finished.filter(organization=organization)

    with transaction.atomic():
        for budget in list(finished):
            if Budget.objects.filter(previous=budget).exists():
                continue
            current = budget
            while current.period_end < today:
                start, end = next_period(current.period_start, current.period_end)
                carried = ZERO
                if current.rollover:
                    carried = max(current.available - budget_spent(current), ZERO)

                existing = Budget.objects.filter(
                    organization_id=current.organization_id,
                    category_id=current.category_id,
                    period_start=start,
                    period_end=end,
                ).first()
                if existing is not None:
                    if existing.previous_id is not None:
                        break
                    existing.previous = current
                    existing.carried_over = carried
                    existing.save(update_fields=['previous', 'carried_over', 'updated_at'])
                    current = existing
                    continue

                current = Budget.objects.create(
                    organization_id=current.organization_id,
                    category_id=current.category_id,
                    name=current.name,
                    period_start=start,
                    period_end=end,
                    limit_amount=current.limit_amount,
                    carried_over=carried,
                    rollover=current.rollover,
                    previous=current,
                )
                created.append(current)
                logger.info(f"Budget {current.id} rolled over for {start} - {end} (carried {carried})")
    return created
