"""
Tax calendar: standard deadlines, generation of a year's payments and the
derived overdue state.

``days_until_due`` and ``is_overdue`` are computed against a reference date
and never stored; a pending payment past its due date is reported as
``overdue``.
"""
import logging
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from backoffice.core.cache_utils import invalidate_reports_cache
from backoffice.core.money import ZERO, to_money
from backoffice.core.periods import year_range
from .models import TaxPayment

logger = logging.getLogger(__name__)

MONTHLY = ['01-28', '02-28', '03-28', '04-28', '05-28', '06-28',
           '07-28', '08-28', '09-28', '10-28', '11-28', '12-28']

# Deadlines as MM-DD within the calendar year
TAX_DEADLINES = {
    'usn': {'name': 'USN (annual)', 'deadlines': ['04-28']},
    'usn_advance': {'name': 'USN (advance payment)', 'deadlines': ['04-28', '07-28', '10-28']},
    'ndfl': {'name': 'Personal income tax', 'deadlines': MONTHLY},
    'nds': {'name': 'VAT', 'deadlines': MONTHLY},
    'insurance': {'name': 'Insurance contributions', 'deadlines': MONTHLY},
    'property': {'name': 'Property tax', 'deadlines': ['02-28']},
    'transport': {'name': 'Transport tax', 'deadlines': ['02-28']},
    'land': {'name': 'Land tax', 'deadlines': ['02-28']},
    'patent': {'name': 'Patent', 'deadlines': []},
    'other': {'name': 'Other taxes', 'deadlines': []},
}

CLOSED_STATUSES = ('paid', 'cancelled')
UPCOMING_LIMIT = 10


def default_tax_name(tax_type):
    info = TAX_DEADLINES.get(tax_type)
    return info['name'] if info else tax_type


def default_tax_types(organization):
    """Taxes an organization usually pays under its regime"""
    if organization.tax_regime == 'osno':
        tax_types = ['nds', 'property']
    else:
        tax_types = ['usn', 'usn_advance']
    if organization.has_employees:
        tax_types += ['ndfl', 'insurance']
    return tax_types


def period_for_deadline(tax_type, year, month):
    """Reporting period paid at a deadline falling in ``month`` of ``year``"""
    if tax_type == 'usn':
        return str(year - 1)
    if tax_type == 'usn_advance':
        quarter = (month - 1) // 3 + 1
        if quarter == 1:
            return f'{year - 1}-Q4'
        return f'{year}-Q{quarter - 1}'
    return f'{year}-{month:02d}'


def days_until_due(payment, today):
    return (payment.due_date - today).days


def is_overdue(payment, today):
    return payment.due_date < today and payment.status not in CLOSED_STATUSES


def calendar_entry(payment, today):
    overdue = is_overdue(payment, today)
    return {
        'id': payment.id,
        'tax_type': payment.tax_type,
        'tax_name': payment.tax_name,
        'period': payment.period,
        'due_date': payment.due_date,
        'amount': payment.amount,
        'paid_amount': payment.paid_amount,
        'paid_date': payment.paid_date,
        'status': 'overdue' if overdue else payment.status,
        'notes': payment.notes,
        'days_until_due': days_until_due(payment, today),
        'is_overdue': overdue,
    }


def tax_calendar(organization, year, today):
    start, end = year_range(year)
    payments = TaxPayment.objects.filter(organization=organization, due_date__gte=start, due_date__lte=end)
    return [calendar_entry(p, today) for p in payments.order_by('due_date', 'id')]


def upcoming_payments(organization, today, days=30):
    """Open payments due within ``days`` days, nearest first"""
    payments = TaxPayment.objects.filter(
        organization=organization,
        due_date__gte=today,
        due_date__lte=today + timedelta(days=days),
        status__in=['pending', 'overdue'],
    ).order_by('due_date', 'id')[:UPCOMING_LIMIT]
    return [calendar_entry(p, today) for p in payments]


def overdue_payments(organization, today):
    payments = TaxPayment.objects.filter(
        organization=organization,
        due_date__lt=today,
        status__in=['pending', 'overdue'],
    ).order_by('due_date', 'id')
    return [calendar_entry(p, today) for p in payments]


def create_tax_payment(organization, tax_type, period, due_date, amount=None, tax_name=None, notes=''):
    if tax_type not in TAX_DEADLINES:
        raise ValueError(f'Unknown tax type: {tax_type}')
    payment = TaxPayment.objects.create(
        organization=organization,
        tax_type=tax_type,
        tax_name=tax_name or default_tax_name(tax_type),
        period=period,
        due_date=due_date,
        amount=to_money(amount, allow_none=True),
        notes=notes or '',
    )
    logger.info(f"Tax payment {payment.id} ({payment.tax_type} {payment.period}) created")
    return payment


def mark_paid(payment, paid_amount, paid_date=None, document=None):
    if payment.status == 'cancelled':
        raise ValueError('A cancelled payment cannot be paid')
    payment.paid_amount = to_money(paid_amount)
    payment.paid_date = paid_date or timezone.localdate()
    payment.status = 'paid'
    if document is not None:
        payment.document = document
    payment.save(update_fields=['paid_amount', 'paid_date', 'status', 'document', 'updated_at'])
    logger.info(f"Tax payment {payment.id} marked paid: {payment.paid_amount}")
    return payment


def update_amount(payment, amount):
    payment.amount = to_money(amount, allow_none=True)
    payment.save(update_fields=['amount', 'updated_at'])
    return payment


def generate_for_year(organization, year, tax_types=None):
    """
    Create pending payments for every standard deadline of ``year``.

    Rows whose tax type and period already exist are skipped, so running it
    twice creates nothing new. Returns the number of created payments.
    """
    year = int(year)
    tax_types = tax_types or default_tax_types(organization)
    unknown = [t for t in tax_types if t not in TAX_DEADLINES]
    if unknown:
        raise ValueError(f"Unknown tax types: {', '.join(unknown)}")

    existing = set(
        TaxPayment.objects.filter(organization=organization, tax_type__in=tax_types)
        .values_list('tax_type', 'period')
    )
    payments = []
    for tax_type in tax_types:
        info = TAX_DEADLINES[tax_type]
        for deadline in info['deadlines']:
            month, day = (int(part) for part in deadline.split('-'))
            period = period_for_deadline(tax_type, year, month)
            if (tax_type, period) in existing:
                continue
            existing.add((tax_type, period))
            payments.append(TaxPayment(
                organization=organization,
                tax_type=tax_type,
                tax_name=info['name'],
                period=period,
                due_date=date(year, month, day),
                status='pending',
            ))

    with transaction.atomic():
        TaxPayment.objects.bulk_create(payments)
    if payments:
        # bulk_create sends no post_save
        invalidate_reports_cache(organization.id)
    logger.info(f"Tax calendar {year} for organization {organization.id}: {len(payments)} payments created")
    return len(payments)


def tax_statistics(organization, year, today):
    start, end = year_range(year)
    stats = {
        'total_due': ZERO,
        'total_paid': ZERO,
        'pending_count': 0,
        'overdue_count': 0,
        'paid_count': 0,
    }
    for payment in TaxPayment.objects.filter(organization=organization, due_date__gte=start, due_date__lte=end):
        if payment.status == 'cancelled':
            continue
        stats['total_due'] += payment.amount or ZERO
        stats['total_paid'] += payment.paid_amount
        if payment.status == 'paid':
            stats['paid_count'] += 1
        elif is_overdue(payment, today):
            stats['overdue_count'] += 1
        else:
            stats['pending_count'] += 1
    return stats
