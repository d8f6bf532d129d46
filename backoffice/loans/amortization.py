"""
Loan payment schedules.

Annuity loans pay a constant amount ``P*r/(1-(1+r)^-n)`` with the monthly
rate ``r = annual_rate/1200``; differentiated loans repay ``P/n`` of
principal each month plus interest on the remaining balance. The last row
absorbs rounding, so principal parts always sum to the principal.
"""
from decimal import Decimal

from backoffice.core.money import ZERO, quantize_money
from backoffice.core.periods import add_months


def monthly_rate(annual_rate):
    return Decimal(annual_rate) / Decimal('1200')


def annuity_payment(principal, annual_rate, months):
    if months <= 0:
        raise ValueError('Term must be at least one month')
    principal = Decimal(principal)
    r = monthly_rate(annual_rate)
    if r == 0:
        return quantize_money(principal / months)
    return quantize_money(principal * r / (1 - (1 + r) ** -months))


def build_schedule(principal, annual_rate, months, issue_date, payment_type='annuity', start_number=1):
    """
    Rows of a payment schedule as dicts.

    Row number N is due N months after ``issue_date`` (clamped to the month
    end), so a rebuilt schedule keeps the original payment days.
    """
    principal = quantize_money(principal)
    if principal <= 0:
        return []
    months = max(int(months), 1)
    r = monthly_rate(annual_rate)
    payment = annuity_payment(principal, annual_rate, months) if payment_type == 'annuity' else None
    principal_step = quantize_money(principal / months)

    rows = []
    remaining = principal
    for index in range(months):
        interest = quantize_money(remaining * r)
        if index == months - 1:
            principal_part = remaining
        elif payment is not None:
            principal_part = payment - interest
        else:
            principal_part = principal_step
        principal_part = min(max(principal_part, ZERO), remaining)
        remaining -= principal_part
        rows.append({
            'number': start_number + index,
            'due_date': add_months(issue_date, start_number + index),
            'principal_part': principal_part,
            'interest_part': interest,
            'total': principal_part + interest,
            'remaining_after': remaining,
        })
        if remaining == 0:
            break
    return rows


def schedule_totals(rows):
    total_interest = sum((row['interest_part'] for row in rows), ZERO)
    total_paid = sum((row['total'] for row in rows), ZERO)
    return {
        'payments': len(rows),
        'monthly_payment': rows[0]['total'] if rows else ZERO,
        'total_interest': total_interest,
        'total_paid': total_paid,
    }
