"""
Supplier CSV import.

The header row is matched against known column names (English and
Russian) to suggest a mapping; callers may override it. Rows are validated
one by one and reported with their line number. Existing suppliers are
recognised by INN or by case-insensitive name.
"""
import csv
import io
import logging
import re

from django.db import transaction
from django.utils import timezone

from .models import Supplier, SupplierImport

logger = logging.getLogger(__name__)

FIELDS = ['name', 'short_name', 'inn', 'kpp', 'phone', 'email', 'website', 'address',
          'category', 'status', 'rating', 'tags', 'description']

COLUMN_ALIASES = {
    'name': ['name', 'company', 'supplier', 'название', 'наименование', 'компания', 'организация', 'поставщик'],
    'short_name': ['short_name', 'short name', 'краткое название', 'краткое'],
    'inn': ['inn', 'tin', 'инн'],
    'kpp': ['kpp', 'кпп'],
    'phone': ['phone', 'tel', 'mobile', 'телефон', 'тел'],
    'email': ['email', 'e-mail', 'mail', 'почта', 'эл.почта'],
    'website': ['website', 'site', 'url', 'web', 'сайт'],
    'address': ['address', 'адрес', 'юридический адрес', 'фактический адрес'],
    'category': ['category', 'group', 'категория', 'группа'],
    'status': ['status', 'статус', 'состояние'],
    'rating': ['rating', 'score', 'рейтинг', 'оценка'],
    'tags': ['tags', 'теги', 'метки'],
    'description': ['description', 'notes', 'comment', 'описание', 'комментарий', 'примечание'],
}

STATUS_ALIASES = {
    'active': 'active',
    'активный': 'active',
    'inactive': 'inactive',
    'неактивный': 'inactive',
    'blacklisted': 'blacklisted',
    'blacklist': 'blacklisted',
    'чёрный список': 'blacklisted',
    'черный список': 'blacklisted',
}

INN_RE = re.compile(r'^(\d{10}|\d{12})$')
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
SAMPLE_ROWS = 5

TEMPLATE_ROWS = [
    ['Name', 'Short name', 'INN', 'KPP', 'Phone', 'Email', 'Website', 'Address',
     'Category', 'Status', 'Rating', 'Tags', 'Description'],
    ['Supplier One LLC', 'Supplier One', '7707123456', '770701001', '+7 495 123-45-67', 'info@supplier1.ru',
     'https://supplier1.ru', 'Moscow, Primernaya st. 1', 'Materials', 'active', '5', 'reliable, fast',
     'Verified materials supplier'],
]


def suggest_column_mapping(headers):
    """
    Map supplier fields to CSV headers.

    Exact alias matches win; remaining headers are matched when they
    contain an alias. Each field and each header is used at most once.
    """
    mapping = {}
    used = set()
    normalized = [(header, header.strip().lower()) for header in headers]

    for header, value in normalized:
        for field, aliases in COLUMN_ALIASES.items():
            if field not in mapping and value in aliases:
                mapping[field] = header
                used.add(header)
                break

    for header, value in normalized:
        if header in used or not value:
            continue
        for field, aliases in COLUMN_ALIASES.items():
            if field not in mapping and any(alias in value for alias in aliases):
                mapping[field] = header
                used.add(header)
                break
    return mapping


def read_csv(content):
    """Headers and rows of a ``;`` or ``,`` separated file; rows carry their line number"""
    content = content.lstrip('\ufeff').strip()
    if not content:
        return [], []
    first_line = content.splitlines()[0]
    delimiter = ';' if ';' in first_line else ','
    reader = csv.reader(io.StringIO(content), delimiter=delimiter, quotechar='"')

    headers = []
    rows = []
    for line_number, row in enumerate(reader, start=1):
        if line_number == 1:
            headers = [cell.strip() for cell in row]
            continue
        if not any(cell.strip() for cell in row):
            continue
        data = {header: (row[index].strip() if index < len(row) else '') for index, header in enumerate(headers)}
        rows.append((line_number, data))
    return headers, rows


def map_row(data, mapping):
    return {field: data.get(column, '').strip() for field, column in mapping.items() if column}


def parse_status(value, default='active'):
    return STATUS_ALIASES.get((value or '').strip().lower(), default)


def parse_tags(value):
    return [tag.strip() for tag in re.split(r'[,;]', value or '') if tag.strip()]


def validate_row(values):
    """Error messages of a mapped row; empty when the row can be imported"""
    errors = []
    if not values.get('name'):
        errors.append('Name is required')
    inn = values.get('inn')
    if inn and not INN_RE.match(inn):
        errors.append(f'Invalid INN: {inn}')
    email = values.get('email')
    if email and not EMAIL_RE.match(email):
        errors.append(f'Invalid email: {email}')
    rating = values.get('rating')
    if rating:
        try:
            if not 0 <= int(rating) <= 5:
                raise ValueError
        except ValueError:
            errors.append(f'Rating must be a whole number from 0 to 5: {rating}')
    return errors


class DuplicateIndex:
    """Live suppliers of an organization by INN and by lowercase name"""

    def __init__(self, organization):
        self.by_inn = {}
        self.by_name = {}
        for supplier in Supplier.objects.filter(organization=organization, deleted_at__isnull=True):
            self.add(supplier)

    def add(self, supplier):
        if supplier.inn:
            self.by_inn.setdefault(supplier.inn, supplier)
        self.by_name.setdefault(supplier.name.strip().lower(), supplier)

    def find(self, values):
        inn = values.get('inn')
        if inn and inn in self.by_inn:
            return self.by_inn[inn]
        return self.by_name.get((values.get('name') or '').lower())


def preview_import(organization, content, mapping=None):
    """Validate a file without saving anything"""
    headers, rows = read_csv(content)
    suggested = suggest_column_mapping(headers)
    mapping = mapping or suggested
    duplicates = DuplicateIndex(organization)

    valid = invalid = duplicate = 0
    sample = []
    for line_number, data in rows:
        values = map_row(data, mapping)
        errors = validate_row(values)
        existing = duplicates.find(values) if not errors else None
        if errors:
            invalid += 1
        else:
            valid += 1
        if existing is not None:
            duplicate += 1
        if len(sample) < SAMPLE_ROWS:
            sample.append({
                'row': line_number,
                'data': values,
                'errors': errors,
                'is_valid': not errors,
                'is_duplicate': existing is not None,
                'existing_id': existing.id if existing is not None else None,
            })

    return {
        'total_rows': len(rows),
        'valid_rows': valid,
        'error_rows': invalid,
        'duplicate_rows': duplicate,
        'columns': headers,
        'suggested_mapping': suggested,
        'sample_rows': sample,
    }


def _apply(supplier, values, default_status):
    for field in ('name', 'short_name', 'inn', 'kpp', 'phone', 'email', 'website', 'address',
                  'category', 'description'):
        if values.get(field):
            setattr(supplier, field, values[field])
    if values.get('status') or not supplier.pk:
        supplier.status = parse_status(values.get('status'), default_status)
    if values.get('rating'):
        supplier.rating = int(values['rating'])
    if values.get('tags'):
        supplier.tags = parse_tags(values['tags'])
    return supplier


def import_suppliers(organization, content, file_name='import.csv', mapping=None, update_existing=False,
                     skip_duplicates=True, default_status='active', user=None):
    """
    Import suppliers and return the SupplierImport record.

    Duplicates are updated with ``update_existing``, otherwise skipped with
    ``skip_duplicates``, otherwise created as new suppliers.
    """
    headers, rows = read_csv(content)
    mapping = mapping or suggest_column_mapping(headers)
    record = SupplierImport.objects.create(
        organization=organization,
        user=user,
        file_name=file_name,
        status='processing',
        total_rows=len(rows),
        column_mapping=mapping,
        options={
            'update_existing': update_existing,
            'skip_duplicates': skip_duplicates,
            'default_status': default_status,
        },
        started_at=timezone.now(),
    )

    if 'name' not in mapping:
        record.status = 'failed'
        record.errors = [{'row': 1, 'message': 'No column is mapped to the supplier name'}]
        record.completed_at = timezone.now()
        record.save()
        return record

    errors = []
    try:
        with transaction.atomic():
            duplicates = DuplicateIndex(organization)
            for line_number, data in rows:
                values = map_row(data, mapping)
                row_errors = validate_row(values)
                if row_errors:
                    errors.extend({'row': line_number, 'message': message} for message in row_errors)
                    record.error_count += 1
                    continue

                existing = duplicates.find(values)
                if existing is not None:
                    record.duplicate_count += 1
                    if update_existing:
                        _apply(existing, values, default_status).save()
                        record.updated_count += 1
                        continue
                    if skip_duplicates:
                        continue

                supplier = _apply(Supplier(organization=organization, created_by=user), values, default_status)
                supplier.save()
                duplicates.add(supplier)
                record.created_count += 1
    except Exception as e:
        logger.error(f"Supplier import {record.id} failed: {str(e)}", exc_info=True)
        SupplierImport.objects.filter(pk=record.pk).update(
            status='failed',
            errors=errors + [{'row': 0, 'message': str(e)}],
            completed_at=timezone.now(),
        )
        raise

    record.status = 'completed'
    record.errors = errors
    record.completed_at = timezone.now()
    record.save()
    logger.info(
        f"Supplier import {record.id}: {record.created_count} created, {record.updated_count} updated, "
        f"{record.duplicate_count} duplicates, {record.error_count} errors"
    )
    return record


def import_template():
    """Sample CSV showing the expected columns"""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=';', quotechar='"', quoting=csv.QUOTE_MINIMAL)
    writer.writerows(TEMPLATE_ROWS)
    return '\ufeff' + output.getvalue()
