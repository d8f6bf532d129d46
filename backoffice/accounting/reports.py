"""
Accounting reports built from the KUDIR and accounting documents.

Every report takes an inclusive date range and is cached per organization;
the cache is dropped whenever KUDIR entries or tax payments change.
"""
from collections import defaultdict

from backoffice.core.cache_utils import cached_query, REPORTS_CACHE_TTL
from backoffice.core.money import ZERO, percentage
from backoffice.core.periods import add_months
from backoffice.tenders.models import Tender
from .models import AccountingDocument, Counterparty, KudirEntry
from .tax_calculator import INPUT_VAT_TYPES, OUTPUT_VAT_TYPES


TOP_LIMIT = 5
OTHER_INCOME = 'Other'
OTHER_EXPENSES = 'Other expenses'

# Checked in order, first match wins
EXPENSE_CATEGORIES = [
    ('Salary', ('зарплат', 'оплата труда', 'salary', 'payroll')),
    ('Taxes', ('налог', 'ндфл', 'усн', 'tax')),
    ('Rent', ('аренд', 'rent')),
    ('Bank services', ('комисси', 'банк', 'bank', 'commission')),
    ('Purchases', ('закупк', 'товар', 'материал', 'purchase', 'goods', 'material')),
    ('Marketing', ('реклам', 'маркетинг', 'advertis', 'marketing')),
    ('Telecom', ('связь', 'интернет', 'телефон', 'internet', 'phone', 'telecom')),
    ('Transport', ('транспорт', 'доставк', 'transport', 'delivery', 'shipping')),
]

INVESTING_KEYWORDS = ('оборудован', 'основн', 'equipment', 'fixed asset')
FINANCING_KEYWORDS = ('кредит', 'займ', 'заём', 'инвест', 'дивиденд',
                      'loan', 'credit', 'investment', 'dividend')


def categorize_expense(description):
    text = (description or '').lower()
    for category, keywords in EXPENSE_CATEGORIES:
        if any(keyword in text for keyword in keywords):
            return category
    return OTHER_EXPENSES


def classify_cash_flow(description):
    """Cash flow section of a KUDIR entry: operating, investing or financing"""
    text = (description or '').lower()
    if any(keyword in text for keyword in FINANCING_KEYWORDS):
        return 'financing'
    if any(keyword in text for keyword in INVESTING_KEYWORDS):
        return 'investing'
    return 'operating'


def _entries(organization, date_from, date_to):
    return KudirEntry.objects.filter(
        organization=organization, entry_date__gte=date_from, entry_date__lte=date_to,
    ).select_related('counterparty')


def _period(date_from, date_to):
    return {'from': date_from, 'to': date_to}


def _top(amounts, key_name):
    ranked = sorted(amounts.items(), key=lambda item: item[1], reverse=True)[:TOP_LIMIT]
    return [{key_name: name, 'amount': amount} for name, amount in ranked]


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def income_expense_report(organization, date_from, date_to):
    total_income = ZERO
    total_expense = ZERO
    monthly = defaultdict(lambda: {'income': ZERO, 'expense': ZERO})
    income_by_counterparty = defaultdict(lambda: ZERO)
    expense_by_category = defaultdict(lambda: ZERO)

    for entry in _entries(organization, date_from, date_to):
        month = entry.entry_date.strftime('%Y-%m')
        if entry.income > 0:
            total_income += entry.income
            monthly[month]['income'] += entry.income
            name = entry.counterparty.name if entry.counterparty else OTHER_INCOME
            income_by_counterparty[name] += entry.income
        if entry.expense > 0:
            total_expense += entry.expense
            monthly[month]['expense'] += entry.expense
            expense_by_category[categorize_expense(entry.description)] += entry.expense

    by_month = [
        {'month': month, 'income': data['income'], 'expense': data['expense'],
         'balance': data['income'] - data['expense']}
        for month, data in sorted(monthly.items())
    ]
    by_category = [
        {'category_name': name, 'category_type': 'income', 'amount': amount,
         'percentage': percentage(amount, total_income)}
        for name, amount in income_by_counterparty.items()
    ] + [
        {'category_name': name, 'category_type': 'expense', 'amount': amount,
         'percentage': percentage(amount, total_expense)}
        for name, amount in expense_by_category.items()
    ]

    return {
        'period': _period(date_from, date_to),
        'summary': {
            'total_income': total_income,
            'total_expense': total_expense,
            'balance': total_income - total_expense,
        },
        'by_month': by_month,
        'by_category': by_category,
        'top_income_sources': _top(income_by_counterparty, 'counterparty_name'),
        'top_expense_categories': _top(expense_by_category, 'category_name'),
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def profit_loss_report(organization, date_from, date_to):
    """
    Profit and loss statement.

    Purchases are the cost of sales, taxes are shown separately and every
    other expense category is an operating expense.
    """
    revenue = ZERO
    cost_of_sales = ZERO
    taxes = ZERO
    operating = defaultdict(lambda: ZERO)

    for entry in _entries(organization, date_from, date_to):
        revenue += entry.income
        if entry.expense <= 0:
            continue
        category = categorize_expense(entry.description)
        if category == 'Purchases':
            cost_of_sales += entry.expense
        elif category == 'Taxes':
            taxes += entry.expense
        else:
            operating[category] += entry.expense

    operating_expenses = [
        {'category': category, 'amount': amount}
        for category, amount in sorted(operating.items(), key=lambda item: item[1], reverse=True)
    ]
    total_operating = sum(operating.values(), ZERO)
    gross_profit = revenue - cost_of_sales
    operating_profit = gross_profit - total_operating
    net_profit = operating_profit - taxes

    return {
        'period': _period(date_from, date_to),
        'revenue': revenue,
        'cost_of_sales': cost_of_sales,
        'gross_profit': gross_profit,
        'operating_expenses': operating_expenses,
        'total_operating_expenses': total_operating,
        'operating_profit': operating_profit,
        'taxes': taxes,
        'net_profit': net_profit,
        'profit_margin': percentage(net_profit, revenue),
    }


def _vat_row(document):
    return {
        'document_number': document.number,
        'document_date': document.date,
        'counterparty_name': document.counterparty.name if document.counterparty else '',
        'total_amount': document.total_amount,
        'vat_amount': document.vat_amount,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def vat_report(organization, date_from, date_to):
    documents = AccountingDocument.objects.filter(
        organization=organization, date__gte=date_from, date__lte=date_to, vat_amount__isnull=False,
    ).select_related('counterparty').order_by('date', 'id')

    output_vat = [_vat_row(d) for d in documents if d.document_type in OUTPUT_VAT_TYPES]
    input_vat = [_vat_row(d) for d in documents if d.document_type in INPUT_VAT_TYPES]
    vat_received = sum((row['vat_amount'] for row in output_vat), ZERO)
    vat_paid = sum((row['vat_amount'] for row in input_vat), ZERO)

    return {
        'period': _period(date_from, date_to),
        'summary': {
            'vat_received': vat_received,
            'vat_paid': vat_paid,
            'vat_to_pay': vat_received - vat_paid,
        },
        'output_vat': output_vat,
        'input_vat': input_vat,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def counterparty_report(organization, date_from, date_to):
    """Invoiced, paid and outstanding amounts per customer"""
    documents = AccountingDocument.objects.filter(
        organization=organization,
        date__gte=date_from,
        date__lte=date_to,
        document_type__in=OUTPUT_VAT_TYPES,
        counterparty__isnull=False,
    ).values_list('counterparty_id', 'total_amount', 'payment_status')

    stats = defaultdict(lambda: {'count': 0, 'invoiced': ZERO, 'paid': ZERO})
    for counterparty_id, total_amount, payment_status in documents:
        bucket = stats[counterparty_id]
        bucket['count'] += 1
        bucket['invoiced'] += total_amount
        if payment_status == 'paid':
            bucket['paid'] += total_amount

    counterparties = Counterparty.objects.filter(organization=organization, is_active=True, id__in=stats.keys())
    rows = []
    for counterparty in counterparties:
        bucket = stats[counterparty.id]
        rows.append({
            'id': counterparty.id,
            'name': counterparty.name,
            'inn': counterparty.inn,
            'documents_count': bucket['count'],
            'total_invoiced': bucket['invoiced'],
            'total_paid': bucket['paid'],
            'debt': bucket['invoiced'] - bucket['paid'],
        })
    rows.sort(key=lambda row: row['total_invoiced'], reverse=True)

    total_invoiced = sum((row['total_invoiced'] for row in rows), ZERO)
    total_paid = sum((row['total_paid'] for row in rows), ZERO)
    return {
        'period': _period(date_from, date_to),
        'counterparties': rows,
        'total_invoiced': total_invoiced,
        'total_paid': total_paid,
        'total_debt': total_invoiced - total_paid,
    }


def _empty_section():
    return {'inflow': ZERO, 'outflow': ZERO, 'net': ZERO}


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def cash_flow_report(organization, date_from, date_to):
    """
    Cash flow statement by operating, investing and financing activity.

    The opening balance is the net KUDIR flow recorded before ``date_from``.
    """
    before = KudirEntry.objects.filter(organization=organization, entry_date__lt=date_from)
    opening_balance = sum((e.income - e.expense for e in before.only('income', 'expense')), ZERO)

    sections = {name: _empty_section() for name in ('operating', 'investing', 'financing')}
    monthly = {}
    month = date_from.replace(day=1)
    while month <= date_to:
        monthly[month.strftime('%Y-%m')] = {'inflow': ZERO, 'outflow': ZERO}
        month = add_months(month, 1)

    for entry in _entries(organization, date_from, date_to):
        section = sections[classify_cash_flow(entry.description)]
        bucket = monthly[entry.entry_date.strftime('%Y-%m')]
        section['inflow'] += entry.income
        section['outflow'] += entry.expense
        bucket['inflow'] += entry.income
        bucket['outflow'] += entry.expense

    for section in sections.values():
        section['net'] = section['inflow'] - section['outflow']
    net_flow = sum((section['net'] for section in sections.values()), ZERO)

    by_month = []
    balance = opening_balance
    for month, bucket in monthly.items():
        net = bucket['inflow'] - bucket['outflow']
        balance += net
        by_month.append({
            'month': month,
            'inflow': bucket['inflow'],
            'outflow': bucket['outflow'],
            'net': net,
            'closing_balance': balance,
        })

    return {
        'period': _period(date_from, date_to),
        'opening_balance': opening_balance,
        **sections,
        'net_cash_flow': net_flow,
        'closing_balance': opening_balance + net_flow,
        'by_month': by_month,
    }


@cached_query(cache_ttl=REPORTS_CACHE_TTL)
def tender_report(organization, date_from, date_to):
    """Payments, expenses and profit of tenders registered in the period"""
    tenders = list(
        Tender.objects.filter(
            organization=organization, deleted_at__isnull=True,
            created_at__date__gte=date_from, created_at__date__lte=date_to,
        ).order_by('created_at', 'id')
    )
    tender_ids = [t.id for t in tenders]

    documents = defaultdict(lambda: {'count': 0, 'paid': ZERO})
    for tender_id, total_amount, payment_status in AccountingDocument.objects.filter(
        organization=organization, tender_id__in=tender_ids,
    ).values_list('tender_id', 'total_amount', 'payment_status'):
        documents[tender_id]['count'] += 1
        if payment_status == 'paid':
            documents[tender_id]['paid'] += total_amount

    kudir = defaultdict(lambda: {'income': ZERO, 'expense': ZERO})
    for tender_id, income, expense in KudirEntry.objects.filter(
        organization=organization, tender_id__in=tender_ids,
    ).values_list('tender_id', 'income', 'expense'):
        kudir[tender_id]['income'] += income
        kudir[tender_id]['expense'] += expense

    rows = []
    for tender in tenders:
        docs = documents[tender.id]
        book = kudir[tender.id]
        rows.append({
            'id': tender.id,
            'purchase_number': tender.purchase_number,
            'customer': tender.customer,
            'contract_price': tender.contract_price,
            'status': tender.status,
            'documents_count': docs['count'],
            'paid': docs['paid'],
            'expenses': book['expense'],
            'profit': book['income'] - book['expense'],
        })

    won = [t for t in tenders if t.status == 'won']
    return {
        'period': _period(date_from, date_to),
        'summary': {
            'total_tenders': len(tenders),
            'won_tenders': len(won),
            'total_contract_value': sum((t.contract_price or ZERO for t in won), ZERO),
            'total_paid': sum((row['paid'] for row in rows), ZERO),
            'total_expenses': sum((row['expenses'] for row in rows), ZERO),
            'profit': sum((row['profit'] for row in rows), ZERO),
            'win_rate': percentage(len(won), len(tenders)),
        },
        'tenders': rows,
    }
