"""
Tax calculators for the simplified (USN) and general regimes.

Amounts come from the KUDIR and the tax calendar. USN figures are
cumulative from the start of the year, as the tax is declared.
"""
import re
from decimal import Decimal

from backoffice.core.money import ZERO, percent_of, percentage, quantize_money
from backoffice.core.periods import quarter_of, quarter_range, year_range
from .models import AccountingDocument, KudirEntry, TaxPayment

TAX_CONSTANTS = {
    'usn6_rate': Decimal('6'),
    'usn15_rate': Decimal('15'),
    'usn15_min_rate': Decimal('1'),
    # Sole proprietor contributions
    'ip_fixed_total': Decimal('49437.00'),
    'ip_excess_rate': Decimal('1'),
    'ip_excess_threshold': Decimal('300000.00'),
    'ip_max_pension': Decimal('277478.00'),
    # Employee contributions
    'employee_pension_rate': Decimal('22'),
    'employee_medical_rate': Decimal('5.1'),
    'employee_social_rate': Decimal('2.9'),
    'employee_reduced_pension_rate': Decimal('10'),
    'employee_reduced_medical_rate': Decimal('5'),
    'mrot': Decimal('19166.00'),
}

OUTPUT_VAT_TYPES = AccountingDocument.INCOME_TYPES
INPUT_VAT_TYPES = ('purchase_invoice', 'expense', 'waybill', 'upd')

QUARTER_RE = re.compile(r'-Q([1-4])$')


def _quarterly_kudir(organization, year):
    start, end = year_range(year)
    income = [ZERO] * 4
    expense = [ZERO] * 4
    rows = KudirEntry.objects.filter(
        organization=organization, entry_date__gte=start, entry_date__lte=end,
    ).values_list('entry_date', 'income', 'expense')
    for entry_date, entry_income, entry_expense in rows:
        index = quarter_of(entry_date) - 1
        income[index] += entry_income
        expense[index] += entry_expense
    return income, expense


def _paid_advances(organization, year):
    """USN payments already made, by the quarter they were paid for"""
    paid = [ZERO] * 4
    payments = TaxPayment.objects.filter(
        organization=organization,
        tax_type__in=['usn', 'usn_advance'],
        status='paid',
        period__startswith=f'{year}-Q',
    ).values_list('period', 'paid_amount')
    for period, amount in payments:
        match = QUARTER_RE.search(period)
        if match:
            paid[int(match.group(1)) - 1] += amount
    return paid


def _paid_insurance(organization, year):
    start, end = year_range(year)
    paid = [ZERO] * 4
    payments = TaxPayment.objects.filter(
        organization=organization, tax_type='insurance', status='paid',
        due_date__gte=start, due_date__lte=end,
    ).values_list('due_date', 'paid_amount')
    for due_date, amount in payments:
        paid[quarter_of(due_date) - 1] += amount
    return paid


def calculate_usn6(organization, year, has_employees=None):
    """
    USN "income" at 6%.

    Paid insurance contributions reduce the tax: fully without employees,
    by at most half of it with employees.
    """
    if has_employees is None:
        has_employees = organization.has_employees
    income, _ = _quarterly_kudir(organization, year)
    insurance = _paid_insurance(organization, year)
    advances = _paid_advances(organization, year)

    quarters = []
    cumulative_income = cumulative_insurance = cumulative_paid = ZERO
    for index in range(4):
        cumulative_income += income[index]
        cumulative_insurance += insurance[index]
        cumulative_paid += advances[index]

        tax = percent_of(cumulative_income, TAX_CONSTANTS['usn6_rate'])
        max_deduction = quantize_money(tax / 2) if has_employees else tax
        deduction = min(cumulative_insurance, max_deduction)
        advance = max(ZERO, tax - deduction - cumulative_paid)
        quarters.append({
            'quarter': index + 1,
            'income': cumulative_income,
            'tax_calculated': tax,
            'insurance_deduction': deduction,
            'advance_payment': advance,
            'paid_advances': cumulative_paid,
        })

    last = quarters[-1]
    return {
        'year': int(year),
        'income': last['income'],
        'tax_base': last['income'],
        'tax_calculated': last['tax_calculated'],
        'insurance_deduction': last['insurance_deduction'],
        'tax_to_pay': last['advance_payment'],
        'effective_rate': percentage(last['advance_payment'], last['income']),
        'quarters': quarters,
    }


def calculate_usn15(organization, year):
    """USN "income minus expenses" at 15% with the 1% minimum tax"""
    income, expense = _quarterly_kudir(organization, year)
    advances = _paid_advances(organization, year)

    quarters = []
    cumulative_income = cumulative_expense = cumulative_paid = ZERO
    for index in range(4):
        cumulative_income += income[index]
        cumulative_expense += expense[index]
        cumulative_paid += advances[index]

        tax_base = max(ZERO, cumulative_income - cumulative_expense)
        tax = percent_of(tax_base, TAX_CONSTANTS['usn15_rate'])
        quarters.append({
            'quarter': index + 1,
            'income': cumulative_income,
            'expenses': cumulative_expense,
            'tax_base': tax_base,
            'tax_calculated': tax,
            'advance_payment': max(ZERO, tax - cumulative_paid),
            'paid_advances': cumulative_paid,
        })

    last = quarters[-1]
    min_tax = percent_of(last['income'], TAX_CONSTANTS['usn15_min_rate'])
    is_min_tax = min_tax > last['tax_calculated']
    tax_to_pay = min_tax if is_min_tax else last['advance_payment']
    return {
        'year': int(year),
        'income': last['income'],
        'expenses': last['expenses'],
        'tax_base': last['tax_base'],
        'tax_calculated': last['tax_calculated'],
        'min_tax': min_tax,
        'is_min_tax': is_min_tax,
        'tax_to_pay': tax_to_pay,
        'effective_rate': percentage(tax_to_pay, last['income']),
        'quarters': quarters,
    }


def calculate_vat(organization, year, quarter):
    """Output VAT of issued documents against input VAT of received ones"""
    start, end = quarter_range(year, quarter)
    documents = AccountingDocument.objects.filter(
        organization=organization, date__gte=start, date__lte=end, vat_amount__isnull=False,
    ).select_related('counterparty').order_by('date', 'id')

    output_vat = input_vat = ZERO
    rows = []
    for document in documents:
        if document.document_type in OUTPUT_VAT_TYPES:
            kind = 'output'
            output_vat += document.vat_amount
        elif document.document_type in INPUT_VAT_TYPES:
            kind = 'input'
            input_vat += document.vat_amount
        else:
            continue
        rows.append({
            'type': kind,
            'document_number': document.number,
            'document_date': document.date,
            'counterparty_name': document.counterparty.name if document.counterparty else None,
            'amount': document.total_amount,
            'vat_amount': document.vat_amount,
        })

    difference = output_vat - input_vat
    return {
        'year': int(year),
        'quarter': int(quarter),
        'output_vat': output_vat,
        'input_vat': input_vat,
        'vat_to_pay': max(difference, ZERO),
        'vat_to_refund': max(-difference, ZERO),
        'documents': rows,
    }


def calculate_ip_insurance(organization, year):
    """Sole proprietor contributions: fixed part plus 1% of income over the threshold"""
    start, end = year_range(year)
    income = sum(
        KudirEntry.objects.filter(organization=organization, entry_date__gte=start, entry_date__lte=end)
        .values_list('income', flat=True),
        ZERO,
    )
    fixed = TAX_CONSTANTS['ip_fixed_total']
    excess_income = max(ZERO, income - TAX_CONSTANTS['ip_excess_threshold'])
    excess = min(
        percent_of(excess_income, TAX_CONSTANTS['ip_excess_rate']),
        TAX_CONSTANTS['ip_max_pension'] - fixed,
    )
    year = int(year)
    return {
        'year': year,
        'income': income,
        'excess_income': excess_income,
        'fixed_contributions': fixed,
        'excess_contributions': excess,
        'total_contributions': fixed + excess,
        'deadlines': [
            {'type': 'fixed', 'amount': fixed, 'due_date': f'{year}-12-31'},
            {'type': 'excess', 'amount': excess, 'due_date': f'{year + 1}-07-01'},
        ],
    }


def employee_contributions(salary):
    """Monthly contributions for one salary: full rates up to MROT, reduced above"""
    salary = quantize_money(salary)
    mrot = TAX_CONSTANTS['mrot']
    base = min(salary, mrot)
    excess = max(salary - mrot, ZERO)
    pension = percent_of(base, TAX_CONSTANTS['employee_pension_rate']) + \
        percent_of(excess, TAX_CONSTANTS['employee_reduced_pension_rate'])
    medical = percent_of(base, TAX_CONSTANTS['employee_medical_rate']) + \
        percent_of(excess, TAX_CONSTANTS['employee_reduced_medical_rate'])
    social = percent_of(base, TAX_CONSTANTS['employee_social_rate'])
    return {
        'salary': salary,
        'pension_contribution': pension,
        'medical_contribution': medical,
        'social_contribution': social,
        'total_contribution': pension + medical + social,
    }


def calculate_employee_insurance(salaries):
    """``salaries`` is a list of {'name': ..., 'salary': ...} dicts"""
    employees = []
    totals = {
        'total_salary': ZERO,
        'total_pension': ZERO,
        'total_medical': ZERO,
        'total_social': ZERO,
        'total_contributions': ZERO,
    }
    for item in salaries:
        row = {'name': item['name'], **employee_contributions(item['salary'])}
        employees.append(row)
        totals['total_salary'] += row['salary']
        totals['total_pension'] += row['pension_contribution']
        totals['total_medical'] += row['medical_contribution']
        totals['total_social'] += row['social_contribution']
        totals['total_contributions'] += row['total_contribution']
    return {
        'employees': employees,
        'totals': totals,
        'monthly_total': totals['total_contributions'],
    }
