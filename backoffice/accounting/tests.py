"""
Test suite for the Accounting module
Tests: KUDIR numbering and sync, tax calendar, tax calculators, reports and endpoints
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.accounting.models import KudirEntry, TaxPayment
from backoffice.accounting import kudir, reports, tax_calculator, tax_calendar


class KudirTests(TestCase):
    """Income and expense book"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)

    def test_sequential_numbers(self):
        first = kudir.create_entry(self.organization, date(2024, 1, 10), 'Payment from customer', income='1000')
        second = kudir.create_entry(self.organization, date(2024, 1, 5), 'Office rent', expense=Decimal('300.00'))
        self.assertEqual(first.entry_number, 1)
        self.assertEqual(second.entry_number, 2)

        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        entry = kudir.create_entry(other, date(2024, 1, 5), 'Payment', income='10')
        self.assertEqual(entry.entry_number, 1)

    def test_entry_validation(self):
        with self.assertRaisesMessage(ValueError, 'greater than zero'):
            kudir.create_entry(self.organization, date(2024, 1, 1), 'Nothing')
        with self.assertRaisesMessage(ValueError, 'not both'):
            kudir.create_entry(self.organization, date(2024, 1, 1), 'Both', income='10', expense='10')
        with self.assertRaisesMessage(ValueError, 'Description is required'):
            kudir.create_entry(self.organization, date(2024, 1, 1), '  ', income='10')
        self.assertEqual(KudirEntry.objects.count(), 0)

    def test_filters(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 2, 10), income=Decimal('100.00'))
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 5), expense=Decimal('30.00'),
                                           description='Office rent')
        self.assertEqual(kudir.filter_entries(self.organization, year=2024, quarter=2).count(), 1)
        self.assertEqual(kudir.filter_entries(self.organization, year=2024, month=2).count(), 1)
        self.assertEqual(kudir.filter_entries(self.organization, entry_type='expense').count(), 1)
        self.assertEqual(kudir.filter_entries(self.organization, search='RENT').count(), 1)
        with self.assertRaises(ValueError):
            kudir.filter_entries(self.organization, quarter=1)
        with self.assertRaises(ValueError):
            kudir.filter_entries(self.organization, entry_type='refund')

    def test_year_summary(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 2, 10), income=Decimal('100000.00'))
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 5), expense=Decimal('30000.00'))
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 20), income=Decimal('50000.00'))

        summary = kudir.year_summary(self.organization, 2024)
        q1, q2, q3, _ = summary['quarters']
        self.assertEqual(q1['total_income'], Decimal('100000.00'))
        self.assertEqual(q2['total_income'], Decimal('50000.00'))
        self.assertEqual(q2['profit'], Decimal('20000.00'))
        self.assertEqual(q3['entries_count'], 0)
        self.assertEqual(summary['profit'], Decimal('120000.00'))
        self.assertEqual(summary['entries_count'], 3)

    def test_sync_from_documents(self):
        alpha = TestDataFactory.create_counterparty(self.organization, name='Alpha')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 1, 3), income=Decimal('1.00'))
        TestDataFactory.create_document(self.organization, number='A-1', total_amount=Decimal('60000.00'),
                                        counterparty=alpha, payment_status='paid', payment_date=date(2024, 3, 15))
        TestDataFactory.create_document(self.organization, document_type='purchase_invoice',
                                        total_amount=Decimal('20000.00'), payment_status='paid',
                                        payment_date=date(2024, 4, 1))
        TestDataFactory.create_document(self.organization)
        TestDataFactory.create_document(self.organization, payment_status='paid', payment_date=date(2023, 12, 31))

        self.assertEqual(kudir.sync_from_documents(self.organization, 2024), 2)
        self.assertEqual(kudir.sync_from_documents(self.organization, 2024), 0)

        income = KudirEntry.objects.get(document__number='A-1')
        self.assertEqual(income.entry_number, 2)
        self.assertEqual(income.income, Decimal('60000.00'))
        self.assertEqual(income.description, 'Invoice No. A-1 from Alpha')
        self.assertEqual(income.counterparty, alpha)
        expense = KudirEntry.objects.get(entry_number=3)
        self.assertEqual(expense.expense, Decimal('20000.00'))
        self.assertEqual(expense.income, Decimal('0.00'))

    def test_export_csv(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 3, 1), income=Decimal('60000.00'),
                                           description='Payment; invoice 7')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 3, 2), expense=Decimal('20000.00'))
        lines = kudir.export_kudir_csv(self.organization, 2024).splitlines()
        self.assertEqual(lines[0], 'number;date;document;description;counterparty;income;expense')
        self.assertEqual(lines[1], '1;2024-03-01;;"Payment; invoice 7";;60000.00;0.00')
        self.assertEqual(lines[-1], ';;;Total;;60000.00;20000.00')


class TaxCalendarTests(TestCase):
    """Tax calendar generation and derived state"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())

    def test_generate_usn(self):
        self.assertEqual(tax_calendar.generate_for_year(self.organization, 2024), 4)
        periods = set(TaxPayment.objects.values_list('tax_type', 'period', 'due_date'))
        self.assertEqual(periods, {
            ('usn', '2023', date(2024, 4, 28)),
            ('usn_advance', '2024-Q1', date(2024, 4, 28)),
            ('usn_advance', '2024-Q2', date(2024, 7, 28)),
            ('usn_advance', '2024-Q3', date(2024, 10, 28)),
        })
        self.assertEqual(tax_calendar.generate_for_year(self.organization, 2024), 0)

    def test_generate_with_employees_and_osno(self):
        self.organization.has_employees = True
        self.organization.save()
        self.assertEqual(tax_calendar.generate_for_year(self.organization, 2024), 28)
        self.assertTrue(TaxPayment.objects.filter(tax_type='ndfl', period='2024-03', due_date=date(2024, 3, 28)).exists())

        osno = TestDataFactory.create_organization(owner=TestDataFactory.create_user(), tax_regime='osno')
        self.assertEqual(tax_calendar.generate_for_year(osno, 2024), 13)
        with self.assertRaises(ValueError):
            tax_calendar.generate_for_year(osno, 2024, ['lottery'])

    def test_overdue_is_derived(self):
        today = date(2024, 3, 10)
        late = TestDataFactory.create_tax_payment(self.organization, due_date=date(2024, 3, 1))
        TestDataFactory.create_tax_payment(self.organization, due_date=date(2024, 3, 20))
        TestDataFactory.create_tax_payment(self.organization, due_date=date(2024, 3, 25), status='paid',
                                           paid_amount=Decimal('100.00'))

        entry = tax_calendar.calendar_entry(late, today)
        self.assertEqual(entry['status'], 'overdue')
        self.assertEqual(entry['days_until_due'], -9)
        self.assertTrue(entry['is_overdue'])
        late.refresh_from_db()
        self.assertEqual(late.status, 'pending')

        self.assertEqual(len(tax_calendar.upcoming_payments(self.organization, today)), 1)
        self.assertEqual(len(tax_calendar.overdue_payments(self.organization, today)), 1)

        stats = tax_calendar.tax_statistics(self.organization, 2024, today)
        self.assertEqual(stats['overdue_count'], 1)
        self.assertEqual(stats['pending_count'], 1)
        self.assertEqual(stats['paid_count'], 1)
        self.assertEqual(stats['total_paid'], Decimal('100.00'))

    def test_mark_paid(self):
        payment = tax_calendar.create_tax_payment(self.organization, 'usn_advance', '2024-Q1', date(2024, 4, 28))
        self.assertEqual(payment.tax_name, 'USN (advance payment)')
        tax_calendar.mark_paid(payment, '1 500,00', paid_date=date(2024, 4, 20))
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'paid')
        self.assertEqual(payment.paid_amount, Decimal('1500.00'))

        cancelled = TestDataFactory.create_tax_payment(self.organization, status='cancelled')
        with self.assertRaises(ValueError):
            tax_calendar.mark_paid(cancelled, '10')


class TaxCalculatorTests(TestCase):
    """USN, VAT and insurance contributions"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 2, 1), income=Decimal('100000.00'))
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 1), income=Decimal('200000.00'))
        TestDataFactory.create_tax_payment(self.organization, tax_type='insurance', due_date=date(2024, 3, 28),
                                           status='paid', paid_amount=Decimal('10000.00'))

    def test_usn6_without_employees(self):
        result = tax_calculator.calculate_usn6(self.organization, 2024)
        q1, q2, _, q4 = result['quarters']
        self.assertEqual(q1['tax_calculated'], Decimal('6000.00'))
        self.assertEqual(q1['insurance_deduction'], Decimal('6000.00'))
        self.assertEqual(q1['advance_payment'], Decimal('0.00'))
        self.assertEqual(q2['advance_payment'], Decimal('8000.00'))
        self.assertEqual(q4['income'], Decimal('300000.00'))
        self.assertEqual(result['tax_to_pay'], Decimal('8000.00'))
        self.assertEqual(result['effective_rate'], Decimal('2.67'))

    def test_usn6_with_employees_and_paid_advance(self):
        TestDataFactory.create_tax_payment(self.organization, tax_type='usn_advance', period='2024-Q2',
                                           status='paid', paid_amount=Decimal('5000.00'))
        result = tax_calculator.calculate_usn6(self.organization, 2024, has_employees=True)
        self.assertEqual(result['quarters'][0]['insurance_deduction'], Decimal('3000.00'))
        self.assertEqual(result['quarters'][0]['advance_payment'], Decimal('3000.00'))
        self.assertEqual(result['insurance_deduction'], Decimal('9000.00'))
        self.assertEqual(result['tax_to_pay'], Decimal('4000.00'))

    def test_usn15_minimum_tax(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 6, 1), expense=Decimal('285000.00'))
        result = tax_calculator.calculate_usn15(self.organization, 2024)
        self.assertEqual(result['tax_base'], Decimal('15000.00'))
        self.assertEqual(result['tax_calculated'], Decimal('2250.00'))
        self.assertEqual(result['min_tax'], Decimal('3000.00'))
        self.assertTrue(result['is_min_tax'])
        self.assertEqual(result['tax_to_pay'], Decimal('3000.00'))

    def test_usn15_regular_tax(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 6, 1), expense=Decimal('100000.00'))
        result = tax_calculator.calculate_usn15(self.organization, 2024)
        self.assertEqual(result['tax_calculated'], Decimal('30000.00'))
        self.assertFalse(result['is_min_tax'])
        self.assertEqual(result['tax_to_pay'], Decimal('30000.00'))

    def test_vat(self):
        TestDataFactory.create_document(self.organization, date=date(2024, 1, 15), vat_amount=Decimal('20000.00'),
                                        total_amount=Decimal('120000.00'))
        TestDataFactory.create_document(self.organization, document_type='purchase_invoice', date=date(2024, 2, 1),
                                        vat_amount=Decimal('5000.00'))
        TestDataFactory.create_document(self.organization, document_type='waybill', date=date(2024, 3, 1),
                                        vat_amount=Decimal('1000.00'))
        TestDataFactory.create_document(self.organization, date=date(2024, 4, 1), vat_amount=Decimal('999.00'))
        TestDataFactory.create_document(self.organization, date=date(2024, 2, 1))

        result = tax_calculator.calculate_vat(self.organization, 2024, 1)
        self.assertEqual(result['output_vat'], Decimal('20000.00'))
        self.assertEqual(result['input_vat'], Decimal('6000.00'))
        self.assertEqual(result['vat_to_pay'], Decimal('14000.00'))
        self.assertEqual(result['vat_to_refund'], Decimal('0.00'))
        self.assertEqual(len(result['documents']), 3)

    def test_ip_insurance(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 7, 1), income=Decimal('1000000.00'))
        result = tax_calculator.calculate_ip_insurance(self.organization, 2024)
        self.assertEqual(result['excess_income'], Decimal('1000000.00'))
        self.assertEqual(result['excess_contributions'], Decimal('10000.00'))
        self.assertEqual(result['total_contributions'], Decimal('59437.00'))

        TestDataFactory.create_kudir_entry(self.organization, date(2024, 8, 1), income=Decimal('30000000.00'))
        result = tax_calculator.calculate_ip_insurance(self.organization, 2024)
        self.assertEqual(result['excess_contributions'], Decimal('228041.00'))
        self.assertEqual(result['total_contributions'], Decimal('277478.00'))

    def test_employee_insurance(self):
        result = tax_calculator.calculate_employee_insurance([
            {'name': 'Manager', 'salary': Decimal('50000.00')},
            {'name': 'Courier', 'salary': Decimal('10000.00')},
        ])
        manager, courier = result['employees']
        self.assertEqual(manager['pension_contribution'], Decimal('7299.92'))
        self.assertEqual(manager['medical_contribution'], Decimal('2519.17'))
        self.assertEqual(manager['social_contribution'], Decimal('555.81'))
        self.assertEqual(manager['total_contribution'], Decimal('10374.90'))
        self.assertEqual(courier['total_contribution'], Decimal('3000.00'))
        self.assertEqual(result['monthly_total'], Decimal('13374.90'))


class AccountingReportTests(TestCase):
    """Reports over KUDIR entries and documents"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.alpha = TestDataFactory.create_counterparty(self.organization, name='Alpha')
        self.beta = TestDataFactory.create_counterparty(self.organization, name='Beta')

    def _add_entries(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 3), income=Decimal('100000.00'),
                                           counterparty=self.alpha)
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 10), income=Decimal('50000.00'),
                                           counterparty=self.beta)
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 15), expense=Decimal('20000.00'),
                                           description='Office rent for May')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 20), expense=Decimal('30000.00'),
                                           description='Purchase of goods')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 6, 2), income=Decimal('10000.00'))

    def test_categorize_expense(self):
        self.assertEqual(reports.categorize_expense('Office rent for May'), 'Rent')
        self.assertEqual(reports.categorize_expense('Зарплата за май'), 'Salary')
        self.assertEqual(reports.categorize_expense('Bank commission'), 'Bank services')
        self.assertEqual(reports.categorize_expense(''), 'Other expenses')

    def test_income_expense(self):
        self._add_entries()
        result = reports.income_expense_report(self.organization, date(2024, 5, 1), date(2024, 6, 30))
        self.assertEqual(result['summary']['total_income'], Decimal('160000.00'))
        self.assertEqual(result['summary']['balance'], Decimal('110000.00'))
        self.assertEqual([m['month'] for m in result['by_month']], ['2024-05', '2024-06'])
        self.assertEqual(result['top_income_sources'][0], {'counterparty_name': 'Alpha', 'amount': Decimal('100000.00')})
        self.assertEqual(result['top_expense_categories'][0]['category_name'], 'Purchases')

    def test_profit_loss(self):
        self._add_entries()
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 25), expense=Decimal('5000.00'),
                                           description='USN advance tax')
        result = reports.profit_loss_report(self.organization, date(2024, 5, 1), date(2024, 6, 30))
        self.assertEqual(result['revenue'], Decimal('160000.00'))
        self.assertEqual(result['cost_of_sales'], Decimal('30000.00'))
        self.assertEqual(result['gross_profit'], Decimal('130000.00'))
        self.assertEqual(result['operating_expenses'], [{'category': 'Rent', 'amount': Decimal('20000.00')}])
        self.assertEqual(result['taxes'], Decimal('5000.00'))
        self.assertEqual(result['net_profit'], Decimal('105000.00'))
        self.assertEqual(result['profit_margin'], Decimal('65.63'))

    def test_cash_flow(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 4, 10), income=Decimal('10000.00'))
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 3), income=Decimal('100000.00'),
                                           description='Payment for goods')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 9), expense=Decimal('40000.00'),
                                           description='Equipment purchase')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 6, 1), income=Decimal('50000.00'),
                                           description='Loan received')
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 6, 5), expense=Decimal('20000.00'),
                                           description='Salary')

        result = reports.cash_flow_report(self.organization, date(2024, 5, 1), date(2024, 7, 31))
        self.assertEqual(result['opening_balance'], Decimal('10000.00'))
        self.assertEqual(result['operating']['net'], Decimal('80000.00'))
        self.assertEqual(result['investing']['outflow'], Decimal('40000.00'))
        self.assertEqual(result['financing']['inflow'], Decimal('50000.00'))
        self.assertEqual(result['net_cash_flow'], Decimal('90000.00'))
        self.assertEqual(result['closing_balance'], Decimal('100000.00'))
        self.assertEqual([m['closing_balance'] for m in result['by_month']],
                         [Decimal('70000.00'), Decimal('100000.00'), Decimal('100000.00')])

    def test_counterparty_and_vat(self):
        TestDataFactory.create_document(self.organization, date=date(2024, 5, 2), counterparty=self.alpha,
                                        total_amount=Decimal('10000.00'), payment_status='paid',
                                        payment_date=date(2024, 5, 5), vat_amount=Decimal('1666.67'))
        TestDataFactory.create_document(self.organization, date=date(2024, 5, 6), counterparty=self.alpha,
                                        total_amount=Decimal('5000.00'))
        TestDataFactory.create_document(self.organization, document_type='expense', date=date(2024, 5, 6),
                                        counterparty=self.beta, vat_amount=Decimal('500.00'))

        debts = reports.counterparty_report(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(len(debts['counterparties']), 1)
        self.assertEqual(debts['counterparties'][0]['debt'], Decimal('5000.00'))
        self.assertEqual(debts['total_debt'], Decimal('5000.00'))

        vat = reports.vat_report(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(vat['summary']['vat_to_pay'], Decimal('1166.67'))
        self.assertEqual(len(vat['input_vat']), 1)

    def test_tender_report(self):
        won = TestDataFactory.create_tender(self.organization, status='won', contract_price=Decimal('90000.00'))
        TestDataFactory.create_tender(self.organization, status='lost')
        TestDataFactory.create_document(self.organization, total_amount=Decimal('90000.00'), tender=won,
                                        payment_status='paid', payment_date=date(2024, 5, 5))
        TestDataFactory.create_kudir_entry(self.organization, income=Decimal('90000.00'), tender=won)
        TestDataFactory.create_kudir_entry(self.organization, expense=Decimal('60000.00'), tender=won)

        today = timezone.localdate(won.created_at)
        result = reports.tender_report(self.organization, today, today)
        summary = result['summary']
        self.assertEqual(summary['total_tenders'], 2)
        self.assertEqual(summary['win_rate'], Decimal('50.00'))
        self.assertEqual(summary['total_contract_value'], Decimal('90000.00'))
        self.assertEqual(summary['total_paid'], Decimal('90000.00'))
        self.assertEqual(summary['profit'], Decimal('30000.00'))


class AccountingAPITests(TestCase):
    """Accounting endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_out_of_range_year_is_rejected(self):
        response = self.client.post('/api/v1/accounting/kudir/sync/', {'year': 100000}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('year', response.data)

        response = self.client.get('/api/v1/accounting/kudir/summary/?year=100000')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/accounting/kudir/?year=100000&quarter=1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/accounting/kudir/?limit=0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_counterparty_inn_validation(self):
        response = self.client.post('/api/v1/accounting/counterparties/', {'name': 'Alpha', 'inn': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/accounting/counterparties/', {'name': 'Alpha', 'inn': '7701234567'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_document_payment(self):
        response = self.client.post('/api/v1/accounting/documents/', {
            'document_type': 'invoice', 'number': '15', 'date': '2024-05-02', 'total_amount': '10 000,00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        url = f"/api/v1/accounting/documents/{response.data['id']}/pay/"

        response = self.client.post(url, {'amount': '4000', 'payment_date': '2024-05-10'}, format='json')
        self.assertEqual(response.data['payment_status'], 'partial')
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(response.data['paid_amount'], '10000.00')
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_document_is_not_found(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        document = TestDataFactory.create_document(other)
        response = self.client.get(f'/api/v1/accounting/documents/{document.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_kudir_endpoints(self):
        response = self.client.post('/api/v1/accounting/kudir/', {
            'entry_date': '2024-03-01', 'description': 'Payment for goods', 'income': '5 000,00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['entry_number'], 1)

        response = self.client.post('/api/v1/accounting/kudir/', {
            'entry_date': '2024-03-01', 'description': 'Both', 'income': '1', 'expense': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

        response = self.client.get('/api/v1/accounting/kudir/?year=2024&quarter=1')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/accounting/kudir/?quarter=1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/v1/accounting/kudir/summary/?year=2024')
        self.assertEqual(response.data['total_income'], '5000.00')

        response = self.client.get('/api/v1/accounting/kudir/export/?year=2024')
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('kudir-2024.csv', response['Content-Disposition'])

    def test_kudir_sync(self):
        TestDataFactory.create_document(self.organization, payment_status='paid', payment_date=date(2024, 5, 5))
        response = self.client.post('/api/v1/accounting/kudir/sync/', {'year': 2024}, format='json')
        self.assertEqual(response.data, {'created': 1})
        response = self.client.post('/api/v1/accounting/kudir/sync/', {'year': 'last'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_tax_calendar_endpoints(self):
        response = self.client.post('/api/v1/accounting/taxes/generate/', {'year': 2024}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 4)
        response = self.client.post('/api/v1/accounting/taxes/generate/', {'year': 2024}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 0)

        response = self.client.get('/api/v1/accounting/taxes/?year=2024&date=2024-05-01')
        self.assertEqual(len(response.data), 4)
        first = response.data[0]
        self.assertEqual(first['due_date'], '2024-04-28')
        self.assertTrue(first['is_overdue'])
        self.assertEqual(first['status'], 'overdue')

        response = self.client.post(f"/api/v1/accounting/taxes/{first['id']}/pay/",
                                    {'paid_amount': '1200', 'paid_date': '2024-05-02'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'paid')

        response = self.client.patch(f"/api/v1/accounting/taxes/{first['id']}/", {'status': 'paid'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/v1/accounting/taxes/overdue/?date=2024-05-01')
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/accounting/taxes/statistics/?year=2024&date=2024-05-01')
        self.assertEqual(response.data['paid_count'], 1)

    def test_tax_create_defaults_name(self):
        response = self.client.post('/api/v1/accounting/taxes/', {
            'tax_type': 'transport', 'period': '2023', 'due_date': '2024-02-28', 'amount': '3500',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tax_name'], 'Transport tax')

    def test_calculators(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 2, 1), income=Decimal('100000.00'))
        response = self.client.get('/api/v1/accounting/calculators/usn6/?year=2024')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tax_to_pay'], '6000.00')

        response = self.client.post('/api/v1/accounting/calculators/employee-insurance/', {
            'employees': [{'name': 'Manager', 'salary': '50000'}, {'name': 'Courier', 'salary': '10000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['monthly_total'], '13374.90')

    def test_reports(self):
        TestDataFactory.create_kudir_entry(self.organization, date(2024, 5, 3), income=Decimal('1000.00'))
        response = self.client.get(
            '/api/v1/accounting/reports/profit-loss/?period=custom&date_from=2024-05-01&date_to=2024-05-31'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['revenue'], '1000.00')

        response = self.client.get('/api/v1/accounting/reports/profit-loss/?period=custom')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/accounting/reports/balance-sheet/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_generate_tax_calendar_command(self):
        out = StringIO()
        call_command('generate_tax_calendar', year=2024, dry_run=True, stdout=out)
        self.assertIn('DRY RUN', out.getvalue())
        self.assertEqual(TaxPayment.objects.count(), 0)

        call_command('generate_tax_calendar', year=2024, organization=self.organization.id, stdout=out)
        self.assertEqual(TaxPayment.objects.filter(organization=self.organization).count(), 4)
