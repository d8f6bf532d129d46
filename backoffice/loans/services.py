"""
Loan bookkeeping: schedule generation, repayments and recalculation.

Invariant kept by every function here:
``remaining_principal == principal_amount - principal_paid``.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from backoffice.core.money import ZERO, quantize_money, to_money
from backoffice.core.periods import add_months, month_range, months_between
from backoffice.finance.services import create_transaction
from .amortization import build_schedule, monthly_rate
from .models import Loan, LoanPayment

logger = logging.getLogger(__name__)


def normalize_terms(loan):
    """Derive term_months from end_date or end_date from term_months"""
    if not loan.term_months and loan.end_date:
        loan.term_months = max(months_between(loan.issue_date, loan.end_date), 1)
    if not loan.term_months:
        raise ValueError('Either term_months or end_date is required')
    if not loan.end_date:
        loan.end_date = add_months(loan.issue_date, loan.term_months)
    return loan


def rebuild_schedule(loan):
    """
    Replace planned rows with a schedule of the remaining principal over the
    remaining term and refresh monthly payment, next date and status.
    """
    loan.payments.filter(status='planned').delete()
    paid = loan.payments.filter(status='paid')
    paid_count = paid.count()
    last_number = paid.order_by('-number').values_list('number', flat=True).first() or 0

    rows = []
    if loan.remaining_principal > 0:
        months_left = max(loan.term_months - paid_count, 1)
        rows = build_schedule(
            loan.remaining_principal,
            loan.interest_rate,
            months_left,
            loan.issue_date,
            payment_type=loan.payment_type,
            start_number=last_number + 1,
        )
    LoanPayment.objects.bulk_create([LoanPayment(loan=loan, **row) for row in rows])

    loan.monthly_payment = rows[0]['total'] if rows else ZERO
    loan.next_payment_date = rows[0]['due_date'] if rows else None
    loan.status = 'paid' if loan.remaining_principal <= 0 else 'active'
    loan.save(update_fields=['monthly_payment', 'next_payment_date', 'status', 'updated_at'])
    return rows


def initialize_loan(loan):
    """Fill derived fields of a new (or re-termed) loan and build its schedule"""
    normalize_terms(loan)
    loan.principal_paid = loan.principal_paid or ZERO
    loan.interest_paid = loan.interest_paid or ZERO
    if loan.principal_paid > loan.principal_amount:
        raise ValueError('Principal paid exceeds the loan amount')
    loan.remaining_principal = loan.principal_amount - loan.principal_paid
    with transaction.atomic():
        loan.save()
        rebuild_schedule(loan)
    logger.info(f"Loan {loan.id} scheduled: {loan.term_months} months, payment {loan.monthly_payment}")
    return loan


def record_repayment(loan, amount, paid_on=None, account=None, user=None):
    """
    Book a repayment.

    Interest for one month on the remaining principal is paid first, the rest
    reduces the principal (never below zero). The earliest planned row is
    marked paid with the actual split and the rest of the schedule is rebuilt.
    With ``account`` the applied amount is recorded there as an expense.
    Returns the paid schedule row.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')
    if account is not None and account.organization_id != loan.organization_id:
        raise ValueError('Account belongs to another organization')
    paid_on = paid_on or timezone.localdate()

    with transaction.atomic():
        loan = Loan.objects.select_for_update().get(pk=loan.pk)
        if loan.status == 'paid' or loan.remaining_principal <= 0:
            raise ValueError('Loan is already paid off')

        interest = min(quantize_money(loan.remaining_principal * monthly_rate(loan.interest_rate)), amount)
        principal = min(amount - interest, loan.remaining_principal)
        applied = principal + interest

        loan.principal_paid += principal
        loan.interest_paid += interest
        loan.remaining_principal = loan.principal_amount - loan.principal_paid
        loan.save(update_fields=['principal_paid', 'interest_paid', 'remaining_principal', 'updated_at'])

        txn = None
        if account is not None:
            txn = create_transaction(
                account, 'expense', applied, occurred_at=paid_on,
                note=f'Loan payment: {loan.name}', counterparty=loan.bank, user=user,
            )

        row = loan.payments.filter(status='planned').order_by('number').first()
        if row is None:
            last_number = loan.payments.order_by('-number').values_list('number', flat=True).first() or 0
            row = LoanPayment(loan=loan, number=last_number + 1, due_date=paid_on)
        row.principal_part = principal
        row.interest_part = interest
        row.total = applied
        row.remaining_after = loan.remaining_principal
        row.status = 'paid'
        row.paid_on = paid_on
        row.transaction = txn
        row.save()

        rebuild_schedule(loan)

    if applied < amount:
        logger.warning(f"Loan {loan.id} repayment of {amount} capped at {applied}")
    logger.info(f"Loan {loan.id} repaid {applied} (principal {principal}, interest {interest}), remaining {loan.remaining_principal}")
    return row


def recalculate_loan(loan):
    """
    Recompute paid totals from paid rows, restore the principal invariant and
    rebuild the planned schedule. Returns the values before and after.
    """
    with transaction.atomic():
        loan = Loan.objects.select_for_update().get(pk=loan.pk)
        before = {
            'principal_paid': loan.principal_paid,
            'interest_paid': loan.interest_paid,
            'remaining_principal': loan.remaining_principal,
            'monthly_payment': loan.monthly_payment,
            'status': loan.status,
        }
        totals = loan.payments.filter(status='paid').aggregate(
            principal=Sum('principal_part'),
            interest=Sum('interest_part'),
        )
        normalize_terms(loan)
        loan.principal_paid = min(totals['principal'] or ZERO, loan.principal_amount)
        loan.interest_paid = totals['interest'] or ZERO
        loan.remaining_principal = loan.principal_amount - loan.principal_paid
        loan.save()
        rebuild_schedule(loan)

    after = {
        'principal_paid': loan.principal_paid,
        'interest_paid': loan.interest_paid,
        'remaining_principal': loan.remaining_principal,
        'monthly_payment': loan.monthly_payment,
        'status': loan.status,
    }
    logger.info(f"Loan {loan.id} recalculated: remaining {before['remaining_principal']} -> {after['remaining_principal']}")
    return loan, before, after


def is_paid_this_month(loan, today):
    start, end = month_range(today.year, today.month)
    return loan.payments.filter(status='paid', paid_on__gte=start, paid_on__lte=end).exists()


def loans_summary(organization, today):
    """Total debt and monthly payment of active loans with per-loan status"""
    loans = list(Loan.objects.filter(organization=organization))
    active = [loan for loan in loans if loan.status == 'active']
    return {
        'total_debt': sum((loan.remaining_principal for loan in active), ZERO),
        'monthly_payment': sum((loan.monthly_payment for loan in active), ZERO),
        'total_interest_paid': sum((loan.interest_paid for loan in loans), ZERO),
        'counts': {
            'total': len(loans),
            'active': len(active),
            'paid': len(loans) - len(active),
        },
        'loans': [
            {
                'id': loan.id,
                'name': loan.name,
                'status': loan.status,
                'remaining_principal': loan.remaining_principal,
                'monthly_payment': loan.monthly_payment,
                'next_payment_date': loan.next_payment_date,
                'is_paid_this_month': is_paid_this_month(loan, today),
                'progress': _progress(loan),
            }
            for loan in loans
        ],
    }


def _progress(loan):
    if not loan.principal_amount:
        return Decimal('0.00')
    return quantize_money(loan.principal_paid * 100 / loan.principal_amount)
