"""Credit card minimum payments, interest and planned auto-payments"""
import logging
from calendar import monthrange
from datetime import date
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from backoffice.core.money import ZERO, percent_of, quantize_money, to_money
from backoffice.core.periods import add_months
from .models import Account, ScheduledPayment
from .services import create_transaction

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = Decimal('365')


def minimum_payment(account):
    """max(fixed minimum, percent of debt), never more than the debt"""
    debt = account.debt
    if debt <= 0:
        return ZERO
    amount = max(account.min_payment_amount, percent_of(debt, account.min_payment_percent))
    if amount <= 0:
        amount = debt
    return min(amount, debt)


def next_due_date(account, today):
    """Nearest payment due date on or after ``today``"""
    if not account.payment_due_day:
        return None
    day = min(account.payment_due_day, monthrange(today.year, today.month)[1])
    candidate = date(today.year, today.month, day)
    if candidate < today:
        following = add_months(date(today.year, today.month, 1), 1)
        day = min(account.payment_due_day, monthrange(following.year, following.month)[1])
        candidate = date(following.year, following.month, day)
    return candidate


def accrued_interest(account, due_date):
    """
    Interest for the billing cycle ending at ``due_date``.

    The cycle is the month before the due date; the first
    ``grace_period_days`` of it are interest free.
    """
    debt = account.debt
    if debt <= 0 or account.interest_rate <= 0:
        return ZERO
    cycle_days = (due_date - add_months(due_date, -1)).days
    interest_days = max(cycle_days - account.grace_period_days, 0)
    if interest_days == 0:
        return ZERO
    return quantize_money(debt * account.interest_rate / Decimal('100') / DAYS_IN_YEAR * interest_days)


def generate_card_payments(today, organization=None):
    """
    Plan the next payment of every credit card with debt.

    One payment per card and due date; existing rows are left alone.
    Returns the created payments.
    """
    cards = Account.objects.filter(account_type='credit_card', is_archived=False, payment_due_day__isnull=False)
    if organization is not None:
        cards = cards.filter(organization=organization)

    created = []
    for card in cards:
        if card.debt <= 0:
            continue
        due_date = next_due_date(card, today)
        principal = minimum_payment(card)
        interest = accrued_interest(card, due_date)
        payment, was_created = ScheduledPayment.objects.get_or_create(
            account=card,
            due_date=due_date,
            defaults={
                'organization_id': card.organization_id,
                'principal_amount': principal,
                'interest_amount': interest,
                'total_amount': principal + interest,
            },
        )
        if was_created:
            created.append(payment)
            logger.info(f"Planned card payment {payment.id} for account {card.id} due {due_date}: {payment.total_amount}")
    return created


def pay_scheduled_payment(payment, amount=None, source_account=None, user=None, paid_at=None):
    """
    Pay a planned card payment.

    The card receives an income transaction; with ``source_account`` the
    same amount leaves that account as an expense.
    """
    if payment.status != 'planned':
        raise ValueError(f'Payment is already {payment.status}')
    amount = payment.total_amount if amount in (None, '') else to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')
    if source_account is not None:
        if source_account.organization_id != payment.organization_id:
            raise ValueError('Source account belongs to another organization')
        if source_account.pk == payment.account_id:
            raise ValueError('Source account must differ from the card')
    paid_at = paid_at or timezone.localdate()

    with transaction.atomic():
        payment = ScheduledPayment.objects.select_for_update().select_related('account').get(pk=payment.pk)
        if payment.status != 'planned':
            raise ValueError(f'Payment is already {payment.status}')
        card = payment.account
        if source_account is not None:
            create_transaction(
                source_account, 'expense', amount, occurred_at=paid_at,
                note=f'Credit card payment: {card.name}', user=user,
            )
        card_txn = create_transaction(
            card, 'income', amount, occurred_at=paid_at,
            note=f'Credit card payment due {payment.due_date}', user=user,
        )
        payment.status = 'paid'
        payment.paid_at = paid_at
        payment.transaction = card_txn
        payment.save(update_fields=['status', 'paid_at', 'transaction'])
    logger.info(f"Card payment {payment.id} paid: {amount}")
    return payment
