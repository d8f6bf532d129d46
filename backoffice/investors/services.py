"""
Investment bookkeeping: numbering, schedules, returns and balances.

Returns pay outstanding interest first, then principal, and are spread
over the schedule rows in order. An investment is completed once nothing
is left to return.
"""
import logging

from django.db import transaction
from django.utils import timezone

from backoffice.core.money import ZERO, to_money
from backoffice.finance.services import create_transaction
from .calculations import build_return_schedule, calculate_interest, calculate_penalty, debt_balance, funding_structure
from .models import Investment, InvestmentReturn

logger = logging.getLogger(__name__)


def next_number(organization, year):
    """INV-<year>-NNNN, continuing after the highest number of the year"""
    prefix = f'INV-{year}-'
    numbers = Investment.objects.filter(organization=organization, number__startswith=prefix).values_list('number', flat=True)
    last = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            last = max(last, int(suffix))
    return f'{prefix}{last + 1:04d}'


def apply_terms(investment):
    """Derive period, interest and total return from the investment terms"""
    if investment.due_date <= investment.investment_date:
        raise ValueError('Due date must be after the investment date')
    investment.period_days = (investment.due_date - investment.investment_date).days
    investment.interest_amount, investment.total_return = calculate_interest(
        investment.principal, investment.interest_rate, investment.interest_type, investment.period_days
    )
    return investment


def rebuild_schedule(investment):
    investment.returns.all().delete()
    rows = build_return_schedule(
        investment.principal,
        investment.interest_amount,
        investment.investment_date,
        investment.due_date,
        schedule_type=investment.schedule_type,
    )
    InvestmentReturn.objects.bulk_create([InvestmentReturn(investment=investment, **row) for row in rows])
    return rows


def initialize_investment(investment):
    """Fill derived fields of a new investment and build its return schedule"""
    if not investment.number:
        investment.number = next_number(investment.organization, investment.investment_date.year)
    apply_terms(investment)
    with transaction.atomic():
        investment.save()
        rebuild_schedule(investment)
    logger.info(f"Investment {investment.number} created: {investment.principal} + {investment.interest_amount} interest")
    return investment


def recalculate_terms(investment):
    """Recompute interest and the schedule after the terms changed"""
    if investment.returned_principal or investment.returned_interest:
        raise ValueError('Terms cannot change after returns were recorded')
    apply_terms(investment)
    with transaction.atomic():
        investment.save()
        rebuild_schedule(investment)
    return investment


def _allocate(investment, amount, paid_on):
    """Spread a paid amount over open schedule rows in order"""
    left = amount
    for row in investment.returns.exclude(status='paid').order_by('number'):
        if left <= 0:
            break
        part = min(row.total_amount - row.paid_amount, left)
        row.paid_amount += part
        row.paid_date = paid_on
        row.status = 'paid' if row.paid_amount >= row.total_amount else 'partial'
        row.save(update_fields=['paid_amount', 'paid_date', 'status'])
        left -= part


def record_return(investment, amount, paid_on=None, account=None, user=None):
    """
    Book money returned to the source.

    Interest is paid first, the rest reduces the principal; anything above
    the outstanding balance is not applied. With ``account`` the applied
    amount is recorded there as an expense. Returns the split.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')
    if account is not None and account.organization_id != investment.organization_id:
        raise ValueError('Account belongs to another organization')
    paid_on = paid_on or timezone.localdate()

    with transaction.atomic():
        investment = Investment.objects.select_for_update().select_related('source').get(pk=investment.pk)
        if investment.status == 'completed':
            raise ValueError('Investment is already completed')

        interest = min(amount, max(investment.remaining_interest, ZERO))
        principal = min(amount - interest, max(investment.remaining_principal, ZERO))
        applied = interest + principal

        investment.returned_interest += interest
        investment.returned_principal += principal
        if investment.remaining_interest <= 0 and investment.remaining_principal <= 0:
            investment.status = 'completed'
        investment.save(update_fields=['returned_interest', 'returned_principal', 'status', 'updated_at'])

        _allocate(investment, applied, paid_on)
        if investment.status == 'completed':
            investment.returns.exclude(status='paid').update(status='paid', paid_date=paid_on)

        if account is not None and applied > 0:
            create_transaction(
                account, 'expense', applied, occurred_at=paid_on,
                note=f'Investment return: {investment.number}', counterparty=investment.source.name, user=user,
            )

    if applied < amount:
        logger.warning(f"Investment {investment.number} return of {amount} capped at {applied}")
    logger.info(f"Investment {investment.number} returned {applied} (interest {interest}, principal {principal})")
    return {
        'amount': applied,
        'interest': interest,
        'principal': principal,
        'remaining': investment.remaining_principal + investment.remaining_interest,
        'status': investment.status,
    }


def investment_balance(investment, today):
    """Outstanding debt with overdue days and the accrued penalty"""
    balance = debt_balance(
        investment.principal,
        investment.interest_amount,
        investment.returned_principal,
        investment.returned_interest,
        investment.due_date,
        today,
    )
    balance['penalty'] = calculate_penalty(balance['overdue_amount'], balance['overdue_days'], investment.penalty_rate)
    return balance


def tender_funding(tender):
    """
    Funding structure of a tender.

    The total cost is the tender's own cost estimate; without one it is the
    invested amount plus own funds recorded on the investments.
    """
    investments = list(tender.investments.select_related('source').order_by('investment_date', 'id'))
    items = [
        {
            'source_id': investment.source_id,
            'source_name': investment.source.name,
            'amount': investment.principal,
            'interest_rate': investment.interest_rate,
            'interest_type': investment.interest_type,
            'period_days': investment.period_days,
        }
        for investment in investments
    ]
    invested = sum((investment.principal for investment in investments), ZERO)
    total_cost = tender.purchase_cost + tender.logistics_cost + tender.other_costs
    if not total_cost:
        declared = [investment.tender_total_cost for investment in investments if investment.tender_total_cost]
        own = sum((investment.own_funds_amount for investment in investments), ZERO)
        total_cost = declared[0] if declared else invested + own
    own_funds = max(total_cost - invested, ZERO)
    return funding_structure(total_cost, items, own_funds)


def investors_summary(organization, today):
    """Totals over active investments with overdue ones listed"""
    investments = list(Investment.objects.filter(organization=organization).select_related('source'))
    active = [investment for investment in investments if investment.status == 'active']
    overdue = []
    by_source = {}
    for investment in active:
        balance = investment_balance(investment, today)
        source = by_source.setdefault(investment.source_id, {
            'source_id': investment.source_id,
            'source_name': investment.source.name,
            'count': 0,
            'remaining': ZERO,
        })
        source['count'] += 1
        source['remaining'] += balance['total_remaining']
        if balance['is_overdue']:
            overdue.append({
                'id': investment.id,
                'number': investment.number,
                'source_name': investment.source.name,
                'due_date': investment.due_date,
                'overdue_days': balance['overdue_days'],
                'overdue_amount': balance['overdue_amount'],
                'penalty': balance['penalty'],
            })
    return {
        'total_invested': sum((investment.principal for investment in active), ZERO),
        'principal_remaining': sum((investment.remaining_principal for investment in active), ZERO),
        'interest_remaining': sum((investment.remaining_interest for investment in active), ZERO),
        'total_returned': sum((investment.returned_principal + investment.returned_interest for investment in investments), ZERO),
        'counts': {
            'total': len(investments),
            'active': len(active),
            'completed': len(investments) - len(active),
            'overdue': len(overdue),
        },
        'by_source': sorted(by_source.values(), key=lambda item: item['remaining'], reverse=True),
        'overdue': sorted(overdue, key=lambda item: item['overdue_days'], reverse=True),
    }
