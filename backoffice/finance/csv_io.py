"""
Bank statement CSV import and transaction CSV export.

Statement layout: ``;`` separated, quoted values, first line is a header.
Column 1 holds the payment date (DD.MM.YYYY), column 4 the signed amount
("-1 234,56"), column 9 the bank's category and column 11 the description.
"""
import csv
import io
import logging
import uuid
from datetime import datetime
from decimal import Decimal

from django.db import transaction

from backoffice.core.money import ZERO, to_money
from .models import Category
from .services import create_transaction

logger = logging.getLogger(__name__)

DATE_COLUMN = 1
AMOUNT_COLUMN = 4
CATEGORY_COLUMN = 9
DESCRIPTION_COLUMN = 11

EXPORT_HEADER = ['date', 'direction', 'amount', 'currency', 'category', 'account', 'note']


def decode_upload(raw):
    """Statements come as UTF-8 (with or without BOM) or Windows-1251"""
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        return raw.decode('cp1251')


def _cell(row, index):
    return row[index].strip() if len(row) > index else ''


def parse_bank_statement(content):
    """
    Parse a statement into operations.

    Rows without a date or description are skipped silently; rows with an
    unreadable date or amount are reported in ``errors`` with their line
    number. Amounts keep their sign.
    """
    reader = csv.reader(io.StringIO(content.strip()), delimiter=';', quotechar='"')
    operations = []
    errors = []
    skipped = 0

    for line_number, row in enumerate(reader, start=1):
        if line_number == 1:
            continue
        if not any(cell.strip() for cell in row):
            continue
        date_str = _cell(row, DATE_COLUMN)
        description = _cell(row, DESCRIPTION_COLUMN)
        if not date_str or not description:
            skipped += 1
            continue

        try:
            occurred_at = datetime.strptime(date_str, '%d.%m.%Y').date()
        except ValueError:
            errors.append({'row': line_number, 'error': f'Invalid date: {date_str}'})
            continue
        try:
            amount = to_money(_cell(row, AMOUNT_COLUMN) or '0', allow_negative=True)
        except ValueError as e:
            errors.append({'row': line_number, 'error': str(e)})
            continue
        if amount == 0:
            errors.append({'row': line_number, 'error': 'Amount is zero'})
            continue

        operations.append({
            'row': line_number,
            'date': occurred_at,
            'amount': amount,
            'direction': 'income' if amount > 0 else 'expense',
            'description': description,
            'bank_category': _cell(row, CATEGORY_COLUMN),
        })

    return {'operations': operations, 'errors': errors, 'skipped': skipped}


def summarize_operations(operations):
    """Totals and description groups for the import preview"""
    groups = {}
    income = ZERO
    expense = ZERO
    for op in operations:
        if op['amount'] > 0:
            income += op['amount']
        else:
            expense += -op['amount']
        group = groups.setdefault(op['description'], {
            'description': op['description'],
            'count': 0,
            'total': ZERO,
            'bank_category': op['bank_category'],
        })
        group['count'] += 1
        group['total'] += op['amount']

    return {
        'total_income': income,
        'total_expense': expense,
        'count': len(operations),
        'groups': sorted(groups.values(), key=lambda g: (-g['count'], g['description'])),
    }


def _resolve_category(organization, op, assignments, categories_by_name):
    category_id = assignments.get(op['description'])
    if category_id:
        category = Category.objects.filter(organization=organization, pk=category_id).first()
        if category is None:
            raise ValueError(f"Unknown category {category_id} for '{op['description']}'")
        return category
    return categories_by_name.get(op['bank_category'].lower())


def import_operations(account, operations, category_assignments=None, merges=None,
                      excluded_rows=None, user=None):
    """
    Create transactions on ``account`` from parsed operations.

    ``category_assignments`` maps a description to a category id; without an
    assignment the bank category is matched by name. Each merge
    (``{'rows': [...], 'category': id, 'note': str}``) becomes a single
    transaction dated at the latest of its operations. All or nothing.
    """
    organization = account.organization
    assignments = category_assignments or {}
    excluded = set(excluded_rows or [])
    by_row = {op['row']: op for op in operations}
    categories_by_name = {
        c.name.lower(): c for c in Category.objects.filter(organization=organization, is_active=True)
    }
    batch = uuid.uuid4().hex
    created = []

    with transaction.atomic():
        for merge in merges or []:
            rows = merge.get('rows') or []
            ops = [by_row[r] for r in rows if r in by_row]
            if len(ops) != len(rows) or not ops:
                raise ValueError(f'Merge refers to unknown rows: {rows}')
            total = sum((op['amount'] for op in ops), Decimal('0.00'))
            if total == 0:
                raise ValueError(f'Merged rows {rows} sum to zero')
            category = None
            if merge.get('category'):
                category = Category.objects.filter(organization=organization, pk=merge['category']).first()
                if category is None:
                    raise ValueError(f"Unknown category {merge['category']}")
            note = merge.get('note') or '; '.join(op['description'] for op in ops)
            created.append(create_transaction(
                account,
                'income' if total > 0 else 'expense',
                abs(total),
                occurred_at=max(op['date'] for op in ops),
                category=category,
                note=note,
                user=user,
                import_batch=batch,
            ))
            excluded.update(rows)

        for op in operations:
            if op['row'] in excluded:
                continue
            created.append(create_transaction(
                account,
                op['direction'],
                abs(op['amount']),
                occurred_at=op['date'],
                category=_resolve_category(organization, op, assignments, categories_by_name),
                note=op['description'],
                user=user,
                import_batch=batch,
            ))

    logger.info(f"Imported {len(created)} transactions into account {account.id} (batch {batch})")
    return {'batch': batch, 'created': len(created), 'transactions': created}


def export_transactions_csv(queryset):
    """Render transactions as a ``;`` separated CSV string"""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=';', quotechar='"', quoting=csv.QUOTE_MINIMAL)
    writer.writerow(EXPORT_HEADER)
    for txn in queryset.select_related('category', 'account'):
        writer.writerow([
            txn.occurred_at.isoformat(),
            txn.direction,
            f'{txn.amount:.2f}',
            txn.currency,
            txn.category.name if txn.category else '',
            txn.account.name,
            txn.note,
        ])
    return output.getvalue()
