"""
Tender pipeline rules: allowed status transitions, planned profit and the
dashboard aggregation.
"""
import logging
from datetime import timedelta

from django.db.models import Q
from django.utils import timezone

from backoffice.core.money import ZERO, percentage
from .models import Tender, TenderStage

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    'active': {'won', 'lost', 'archived'},
    'won': {'archived'},
    'lost': {'archived'},
    'archived': {'active'},
}


def live_tenders(organization):
    """Tenders of an organization that are not soft-deleted"""
    return Tender.objects.filter(organization=organization, deleted_at__isnull=True)


def stages_for(organization):
    """System stages plus the organization's own ones"""
    return TenderStage.objects.filter(Q(organization__isnull=True) | Q(organization=organization))


def calculate_planned_profit(tender):
    """Our price minus purchase, logistics and other costs; None without a price"""
    price = tender.our_price
    if price is None:
        return None
    return price - (tender.purchase_cost or ZERO) - (tender.logistics_cost or ZERO) - (tender.other_costs or ZERO)


def change_status(tender, new_status, contract_price=None, today=None):
    """
    Move a tender to ``new_status``.

    Only transitions listed in ALLOWED_TRANSITIONS are accepted. A won
    tender needs a contract price, which defaults to our price.
    """
    if new_status not in dict(Tender.STATUS_CHOICES):
        raise ValueError(f'Unknown status: {new_status}')
    if new_status == tender.status:
        raise ValueError(f'Tender is already {new_status}')
    if new_status not in ALLOWED_TRANSITIONS[tender.status]:
        raise ValueError(f'Cannot change status from {tender.status} to {new_status}')

    update_fields = ['status', 'updated_at']
    if new_status == 'won':
        price = contract_price if contract_price is not None else (tender.contract_price or tender.our_price)
        if price is None:
            raise ValueError('Contract price is required for a won tender')
        tender.contract_price = price
        update_fields.append('contract_price')
    if new_status in ('won', 'lost') and tender.results_date is None:
        tender.results_date = today or timezone.localdate()
        update_fields.append('results_date')

    old_status = tender.status
    tender.status = new_status
    tender.save(update_fields=update_fields)
    logger.info(f"Tender {tender.id} status changed: {old_status} -> {new_status}")
    return tender


def soft_delete(tender):
    tender.deleted_at = timezone.now()
    tender.save(update_fields=['deleted_at', 'updated_at'])
    return tender


def tender_dashboard(organization, today, days=14):
    """Counts by status, win rate, won contract value and upcoming deadlines"""
    tenders = list(live_tenders(organization).select_related('stage'))
    counts = {code: 0 for code, _ in Tender.STATUS_CHOICES}
    for tender in tenders:
        counts[tender.status] += 1

    decided = counts['won'] + counts['lost']
    won = [t for t in tenders if t.status == 'won']
    active = [t for t in tenders if t.status == 'active']

    horizon = today + timedelta(days=days)
    upcoming = sorted(
        (t for t in active if t.submission_deadline and today <= t.submission_deadline <= horizon),
        key=lambda t: t.submission_deadline,
    )

    return {
        'total': len(tenders),
        'by_status': counts,
        'win_rate': percentage(counts['won'], decided),
        'active_nmck': sum((t.nmck for t in active), ZERO),
        'won_contract_value': sum((t.contract_price or ZERO for t in won), ZERO),
        'planned_profit': sum((t.planned_profit or ZERO for t in active + won), ZERO),
        'upcoming_deadlines': [
            {
                'id': t.id,
                'purchase_number': t.purchase_number,
                'customer': t.customer,
                'deadline': t.submission_deadline,
                'days_left': (t.submission_deadline - today).days,
                'stage': t.stage.name if t.stage else None,
            }
            for t in upcoming
        ],
    }
