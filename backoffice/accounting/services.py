"""Document payments"""
import logging

from django.utils import timezone

from backoffice.core.money import to_money

logger = logging.getLogger(__name__)


def register_document_payment(document, amount=None, payment_date=None):
    """
    Record a payment against a document.

    Without ``amount`` the remaining balance is paid. The document becomes
    ``partial`` until the paid amount reaches its total.
    """
    if document.payment_status == 'paid':
        raise ValueError('Document is already paid')
    remaining = document.total_amount - document.paid_amount
    amount = remaining if amount is None else to_money(amount)
    if amount <= 0:
        raise ValueError('Amount must be greater than zero')
    if amount > remaining:
        raise ValueError(f'Amount exceeds the unpaid balance of {remaining}')

    document.paid_amount += amount
    document.payment_status = 'paid' if document.paid_amount >= document.total_amount else 'partial'
    document.payment_date = payment_date or timezone.localdate()
    document.save(update_fields=['paid_amount', 'payment_status', 'payment_date', 'updated_at'])
    logger.info(f"Document {document.id} payment {amount}: {document.payment_status}")
    return document
