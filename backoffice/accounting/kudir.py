"""
Income and expense book (KUDIR).

Entries are numbered sequentially per organization. New numbers are taken
while the organization row is locked, so concurrent writers never reuse a
number.
"""
import csv
import io
import logging

from django.db import transaction
from django.db.models import Max

from backoffice.core.cache_utils import invalidate_reports_cache
from backoffice.core.models import Organization
from backoffice.core.money import ZERO, to_money
from backoffice.core.periods import month_range, quarter_of, quarter_range, year_range
from .models import AccountingDocument, KudirEntry

logger = logging.getLogger(__name__)

EXPORT_HEADER = ['number', 'date', 'document', 'description', 'counterparty', 'income', 'expense']

DOCUMENT_LABELS = {
    'invoice': 'Invoice',
    'act': 'Act',
}


def filter_entries(organization, year=None, quarter=None, month=None, entry_type=None, search=None):
    """KUDIR entries ordered by date, then number"""
    queryset = KudirEntry.objects.filter(organization=organization).select_related('document', 'counterparty')
    if (quarter or month) and not year:
        raise ValueError('year is required when filtering by quarter or month')
    if year:
        start, end = year_range(year)
        if quarter:
            start, end = quarter_range(year, quarter)
        if month:
            start, end = month_range(year, month)
        queryset = queryset.filter(entry_date__gte=start, entry_date__lte=end)
    if entry_type == 'income':
        queryset = queryset.filter(income__gt=0)
    elif entry_type == 'expense':
        queryset = queryset.filter(expense__gt=0)
    elif entry_type not in (None, '', 'all'):
        raise ValueError(f'Unknown entry type: {entry_type}')
    if search:
        queryset = queryset.filter(description__icontains=search.strip())
    return queryset.order_by('entry_date', 'entry_number')


def quarter_summaries(organization, year):
    """Income, expense and profit of each quarter (not cumulative)"""
    start, end = year_range(year)
    rows = KudirEntry.objects.filter(
        organization=organization, entry_date__gte=start, entry_date__lte=end,
    ).values_list('entry_date', 'income', 'expense')

    totals = {q: {'income': ZERO, 'expense': ZERO, 'count': 0} for q in range(1, 5)}
    for entry_date, income, expense in rows:
        bucket = totals[quarter_of(entry_date)]
        bucket['income'] += income
        bucket['expense'] += expense
        bucket['count'] += 1

    summaries = []
    for quarter in range(1, 5):
        q_start, q_end = quarter_range(year, quarter)
        bucket = totals[quarter]
        summaries.append({
            'quarter': quarter,
            'start_date': q_start,
            'end_date': q_end,
            'total_income': bucket['income'],
            'total_expense': bucket['expense'],
            'profit': bucket['income'] - bucket['expense'],
            'entries_count': bucket['count'],
        })
    return summaries


def year_summary(organization, year):
    quarters = quarter_summaries(organization, year)
    total_income = sum((q['total_income'] for q in quarters), ZERO)
    total_expense = sum((q['total_expense'] for q in quarters), ZERO)
    return {
        'year': int(year),
        'total_income': total_income,
        'total_expense': total_expense,
        'profit': total_income - total_expense,
        'entries_count': sum(q['entries_count'] for q in quarters),
        'quarters': quarters,
    }


def _lock_next_number(organization):
    """Next entry number; call inside an atomic block"""
    Organization.objects.select_for_update().filter(pk=organization.pk).first()
    last = KudirEntry.objects.filter(organization=organization).aggregate(last=Max('entry_number'))['last']
    return (last or 0) + 1


def create_entry(organization, entry_date, description, income=None, expense=None,
                 document=None, counterparty=None, tender=None, user=None):
    """Add a manual entry with the next sequential number"""
    income = to_money(income) if income not in (None, '') else ZERO
    expense = to_money(expense) if expense not in (None, '') else ZERO
    if income == 0 and expense == 0:
        raise ValueError('Either income or expense must be greater than zero')
    if income > 0 and expense > 0:
        raise ValueError('An entry records either income or expense, not both')
    if not (description or '').strip():
        raise ValueError('Description is required')

    with transaction.atomic():
        number = _lock_next_number(organization)
        entry = KudirEntry.objects.create(
            organization=organization,
            entry_number=number,
            entry_date=entry_date,
            description=description.strip(),
            income=income,
            expense=expense,
            document=document,
            counterparty=counterparty or (document.counterparty if document else None),
            tender=tender or (document.tender if document else None),
            created_by=user,
        )
    logger.info(f"KUDIR entry #{number} created for organization {organization.id}")
    return entry


def describe_document(document):
    label = DOCUMENT_LABELS.get(document.document_type, 'Document')
    text = f"{label} No. {document.number}"
    if document.counterparty:
        text += f" from {document.counterparty.name}"
    return text


def sync_from_documents(organization, year, user=None):
    """
    Create entries for documents paid during ``year`` that have none yet.

    Documents we issue become income, all others expense. Returns the number
    of entries created.
    """
    start, end = year_range(year)
    with transaction.atomic():
        number = _lock_next_number(organization)
        documents = (
            AccountingDocument.objects
            .filter(organization=organization, payment_status='paid',
                    payment_date__gte=start, payment_date__lte=end, kudir_entries__isnull=True)
            .select_related('counterparty')
            .order_by('payment_date', 'id')
        )
        entries = []
        for document in documents:
            entries.append(KudirEntry(
                organization=organization,
                entry_number=number,
                entry_date=document.payment_date,
                description=describe_document(document),
                income=document.total_amount if document.is_income else ZERO,
                expense=ZERO if document.is_income else document.total_amount,
                document=document,
                counterparty=document.counterparty,
                tender_id=document.tender_id,
                created_by=user,
            ))
            number += 1
        KudirEntry.objects.bulk_create(entries)

    if entries:
        # bulk_create skips post_save, so cached reports are dropped here
        invalidate_reports_cache(organization.id)

    logger.info(f"KUDIR sync for organization {organization.id}, year {year}: {len(entries)} entries created")
    return len(entries)


def export_kudir_csv(organization, year):
    """Render a year of the book as a ``;`` separated CSV string with a totals row"""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=';', quotechar='"', quoting=csv.QUOTE_MINIMAL)
    writer.writerow(EXPORT_HEADER)
    total_income = ZERO
    total_expense = ZERO
    for entry in filter_entries(organization, year=year):
        document = entry.document
        writer.writerow([
            entry.entry_number,
            entry.entry_date.isoformat(),
            f"{document.number} {document.date.isoformat()}" if document else '',
            entry.description,
            entry.counterparty.name if entry.counterparty else '',
            f'{entry.income:.2f}',
            f'{entry.expense:.2f}',
        ])
        total_income += entry.income
        total_expense += entry.expense
    writer.writerow(['', '', '', 'Total', '', f'{total_income:.2f}', f'{total_expense:.2f}'])
    return output.getvalue()
