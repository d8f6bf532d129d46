"""
Balance-changing operations on accounts.

Every function runs in a database transaction with the affected account
rows locked, so a balance is never updated twice for the same movement.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from backoffice.core.money import to_money, ZERO
from .models import Account, Stash, StashTransfer, Transaction

logger = logging.getLogger(__name__)


def _lock_account(account_id):
    return Account.objects.select_for_update().get(pk=account_id)


def _apply(account_id, signed_amount):
    account = _lock_account(account_id)
    account.balance += signed_amount
    account.save(update_fields=['balance', 'updated_at'])
    return account


def create_transaction(account, direction, amount, occurred_at=None, category=None, note='',
                       counterparty='', tags=None, user=None, import_batch=''):
    """Record a movement and apply it to the account balance"""
    if direction not in ('income', 'expense'):
        raise ValueError(f'Unknown direction: {direction}')
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')
    if category is not None and category.organization_id != account.organization_id:
        raise ValueError('Category belongs to another organization')

    with transaction.atomic():
        txn = Transaction.objects.create(
            organization_id=account.organization_id,
            account=account,
            category=category,
            direction=direction,
            amount=amount,
            currency=account.currency,
            occurred_at=occurred_at or timezone.localdate(),
            note=note or '',
            counterparty=counterparty or '',
            tags=tags or [],
            import_batch=import_batch or '',
            created_by=user,
        )
        updated = _apply(account.pk, txn.signed_amount)
        account.balance = updated.balance
    logger.info(f"Transaction {txn.id}: {direction} {amount} on account {account.id}")
    return txn


def update_transaction(txn, **changes):
    """Reverse the old balance effect and apply the new one"""
    with transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        _apply(txn.account_id, -txn.signed_amount)
        for field, value in changes.items():
            setattr(txn, field, value)
        if txn.amount is None or txn.amount <= 0:
            raise ValueError('Amount must be greater than zero')
        if txn.category_id and txn.category.organization_id != txn.organization_id:
            raise ValueError('Category belongs to another organization')
        if txn.account.organization_id != txn.organization_id:
            raise ValueError('Account belongs to another organization')
        txn.currency = txn.account.currency
        txn.save()
        _apply(txn.account_id, txn.signed_amount)
    logger.info(f"Transaction {txn.id} updated")
    return txn


def delete_transaction(txn):
    with transaction.atomic():
        txn = Transaction.objects.select_for_update().get(pk=txn.pk)
        _apply(txn.account_id, -txn.signed_amount)
        txn_id = txn.id
        txn.delete()
    logger.info(f"Transaction {txn_id} deleted, balance restored")


def upsert_stash(account, name=None, target_amount=None):
    stash, created = Stash.objects.get_or_create(account=account)
    if name:
        stash.name = name
    if target_amount is not None:
        stash.target_amount = to_money(target_amount)
    stash.save()
    return stash


def add_funds(account, amount, user=None, note=''):
    """
    Top up an account.

    When the account's stash is below its target the difference is owed to
    the stash, so that debt is repaid first and only the rest reaches the
    account balance.

    Returns a dict with ``stash_repaid``, ``card_amount`` and the created
    ``transaction`` (None when everything went to the stash).
    """
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')

    with transaction.atomic():
        account = _lock_account(account.pk)
        stash = Stash.objects.select_for_update().filter(account=account).first()

        to_stash = ZERO
        if stash is not None and stash.debt > 0:
            to_stash = min(amount, stash.debt)
            stash.balance += to_stash
            stash.save(update_fields=['balance', 'updated_at'])
            StashTransfer.objects.create(stash=stash, direction='repay', amount=to_stash, created_by=user)

        to_card = amount - to_stash
        txn = None
        if to_card > 0:
            default_note = 'Top-up (after stash repayment)' if to_stash > 0 else 'Top-up'
            txn = create_transaction(account, 'income', to_card, note=note or default_note, user=user)

    logger.info(f"Funds added to account {account.id}: {to_card} to card, {to_stash} to stash")
    return {
        'stash_repaid': to_stash,
        'card_amount': to_card,
        'transaction': txn,
        'stash_balance': stash.balance if stash is not None else None,
    }


def transfer_stash(account, direction, amount, user=None):
    """Move money between the account and its stash"""
    if direction not in ('to_stash', 'from_stash'):
        raise ValueError(f'Unknown transfer direction: {direction}')
    amount = to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')

    with transaction.atomic():
        stash = Stash.objects.select_for_update().filter(account=account).first()
        if stash is None:
            raise ValueError('Account has no stash')

        is_to_stash = direction == 'to_stash'
        new_balance = stash.balance + (amount if is_to_stash else -amount)
        if new_balance < 0:
            raise ValueError('Insufficient funds in stash')

        txn = create_transaction(
            account,
            'expense' if is_to_stash else 'income',
            amount,
            note='Transfer to stash' if is_to_stash else 'Transfer from stash',
            user=user,
        )
        stash.balance = new_balance
        stash.save(update_fields=['balance', 'updated_at'])
        transfer = StashTransfer.objects.create(
            stash=stash, direction=direction, amount=amount, transaction=txn, created_by=user
        )
    logger.info(f"Stash {stash.id}: {direction} {amount}")
    return transfer


def account_totals(organization):
    """Sum of balances per currency and total credit card debt"""
    totals = {}
    card_debt = Decimal('0.00')
    for account in Account.objects.filter(organization=organization, is_archived=False):
        if account.is_credit_card:
            card_debt += account.debt
            continue
        totals[account.currency] = totals.get(account.currency, Decimal('0.00')) + account.balance
    return {'balances': totals, 'credit_card_debt': card_debt}
