"""
Cache invalidation signals
Drop an organization's cached reports when rows they aggregate change
"""
from functools import partial
import logging

from django.db import transaction
from django.db.models.signals import post_save, post_delete

from backoffice.accounting.models import AccountingDocument, KudirEntry, TaxPayment
from backoffice.core.cache_utils import invalidate_reports_cache
from backoffice.finance.models import Account, Budget, Transaction
from backoffice.investors.models import Investment
from backoffice.loans.models import Loan
from backoffice.tenders.models import Tender

logger = logging.getLogger(__name__)

TRACKED_MODELS = (
    Transaction, Account, Budget, Loan, KudirEntry, AccountingDocument, TaxPayment, Tender, Investment,
)


def invalidate_organization_reports(sender, instance, **kwargs):
    """Invalidate now and once more after the surrounding transaction commits"""
    organization_id = getattr(instance, 'organization_id', None)
    if organization_id is None:
        return
    try:
        invalidate_reports_cache(organization_id)
        if transaction.get_connection().in_atomic_block:
            transaction.on_commit(partial(invalidate_reports_cache, organization_id))
    except Exception as e:
        logger.warning(f"Error invalidating reports cache of organization {organization_id}: {e}")


for model in TRACKED_MODELS:
    post_save.connect(invalidate_organization_reports, sender=model, dispatch_uid=f'reports_cache_save_{model.__name__}')
    post_delete.connect(invalidate_organization_reports, sender=model, dispatch_uid=f'reports_cache_delete_{model.__name__}')
