"""
Investment arithmetic.

Interest for ``annual`` rates is ``P*r*days/365``, for ``monthly`` rates
``P*r*days/30`` and for ``fixed`` rates ``P*r`` regardless of the term.
Return schedules split principal and interest evenly, rounded down to
kopecks; the last row takes the remainder and falls on the due date.
"""
import math
from decimal import Decimal, ROUND_DOWN

from backoffice.core.money import ZERO, TWO_PLACES, quantize_money, percentage
from backoffice.core.periods import add_months, months_between

DEFAULT_PENALTY_RATE = Decimal('0.1')
SCHEDULE_STEPS = {'monthly': 1, 'quarterly': 3}


def calculate_interest(principal, interest_rate, interest_type, period_days):
    """Interest amount and total return of an investment"""
    principal = Decimal(principal)
    rate = Decimal(interest_rate) / Decimal('100')
    if interest_type == 'annual':
        interest = principal * rate * Decimal(period_days) / Decimal('365')
    elif interest_type == 'monthly':
        interest = principal * rate * Decimal(period_days) / Decimal('30')
    elif interest_type == 'fixed':
        interest = principal * rate
    else:
        raise ValueError(f'Unknown interest type: {interest_type}')
    interest = quantize_money(interest)
    return interest, quantize_money(principal) + interest


def _split(amount, parts):
    return (Decimal(amount) / parts).quantize(TWO_PLACES, rounding=ROUND_DOWN)


def build_return_schedule(principal, interest, start_date, due_date, schedule_type='single'):
    """Rows of a return schedule as dicts"""
    principal = quantize_money(principal)
    interest = quantize_money(interest)
    if schedule_type == 'single':
        count = 1
        step = 0
    elif schedule_type in SCHEDULE_STEPS:
        step = SCHEDULE_STEPS[schedule_type]
        count = max(1, math.ceil(months_between(start_date, due_date) / step))
    else:
        raise ValueError(f'Unknown schedule type: {schedule_type}')

    principal_step = _split(principal, count)
    interest_step = _split(interest, count)
    remaining_principal = principal
    remaining_interest = interest
    rows = []
    for number in range(1, count + 1):
        is_last = number == count
        principal_part = remaining_principal if is_last else principal_step
        interest_part = remaining_interest if is_last else interest_step
        remaining_principal -= principal_part
        remaining_interest -= interest_part
        rows.append({
            'number': number,
            'scheduled_date': due_date if is_last else add_months(start_date, number * step),
            'principal_amount': principal_part,
            'interest_amount': interest_part,
            'total_amount': principal_part + interest_part,
        })
    return rows


def funding_structure(total_cost, investments, own_funds=ZERO):
    """
    Who finances a tender and what it costs.

    ``investments`` are dicts with ``source_id``, ``source_name``, ``amount``,
    ``interest_rate``, ``interest_type`` and ``period_days``.
    """
    total_cost = quantize_money(total_cost or ZERO)
    details = []
    for item in investments:
        interest, _ = calculate_interest(item['amount'], item['interest_rate'], item['interest_type'], item['period_days'])
        details.append({
            'source_id': item['source_id'],
            'source_name': item['source_name'],
            'amount': quantize_money(item['amount']),
            'share': percentage(item['amount'], total_cost),
            'interest_rate': item['interest_rate'],
            'interest_amount': interest,
        })
    invested = sum((item['amount'] for item in details), ZERO)
    return {
        'total_cost': total_cost,
        'investments': details,
        'invested': invested,
        'own_funds': quantize_money(own_funds),
        'own_funds_share': percentage(own_funds, total_cost),
        'total_interest_cost': sum((item['interest_amount'] for item in details), ZERO),
    }


def debt_balance(principal, interest, returned_principal, returned_interest, due_date, today):
    principal_remaining = principal - returned_principal
    interest_remaining = interest - returned_interest
    total_remaining = principal_remaining + interest_remaining
    is_overdue = today > due_date and total_remaining > 0
    return {
        'principal_remaining': principal_remaining,
        'interest_remaining': interest_remaining,
        'total_remaining': total_remaining,
        'is_overdue': is_overdue,
        'overdue_amount': total_remaining if is_overdue else ZERO,
        'overdue_days': (today - due_date).days if is_overdue else 0,
    }


def calculate_penalty(overdue_amount, overdue_days, penalty_rate=DEFAULT_PENALTY_RATE):
    """Penalty of ``penalty_rate`` percent of the overdue amount per day"""
    return quantize_money(Decimal(overdue_amount) * Decimal(penalty_rate) / Decimal('100') * overdue_days)
