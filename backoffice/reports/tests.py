"""
Test suite for the finance dashboard reports
Tests: period summary, monthly totals, dashboard KPIs and cache invalidation
"""
from datetime import date
from decimal import Decimal

from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backoffice.accounting import tax_calendar
from backoffice.core.cache_utils import reports_prefix
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import Transaction
from backoffice.reports import services


class FinanceReportTests(TestCase):
    """Aggregations over transactions"""

    def setUp(self):
        cache.clear()
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('500000.00'))
        self.food = TestDataFactory.create_category(self.organization, name='Food')

    def _add_transactions(self):
        TestDataFactory.create_transaction(self.account, 'income', Decimal('100000.00'), occurred_at=date(2024, 5, 1))
        TestDataFactory.create_transaction(self.account, 'expense', Decimal('3000.00'), occurred_at=date(2024, 5, 2),
                                           category=self.food)
        TestDataFactory.create_transaction(self.account, 'expense', Decimal('2000.00'), occurred_at=date(2024, 5, 2))
        TestDataFactory.create_transaction(self.account, 'expense', Decimal('500.00'), occurred_at=date(2024, 4, 1))

    def test_finance_summary(self):
        self._add_transactions()
        data = services.finance_summary(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(data['summary'], {
            'income': Decimal('100000.00'),
            'expense': Decimal('5000.00'),
            'net': Decimal('95000.00'),
            'transactions': 3,
        })
        self.assertEqual([day['date'] for day in data['daily']], [date(2024, 5, 1), date(2024, 5, 2)])
        self.assertEqual(data['daily'][1]['expense'], Decimal('5000.00'))
        self.assertEqual(data['daily'][1]['count'], 2)
        self.assertEqual(data['expense_by_category'][0]['category'], 'Food')
        self.assertEqual(data['expense_by_category'][0]['percentage'], Decimal('60.00'))
        self.assertEqual(data['expense_by_category'][1]['category'], 'Uncategorized')

    def test_monthly_report(self):
        self._add_transactions()
        data = services.monthly_report(self.organization, 2024)
        self.assertEqual(len(data['months']), 12)
        self.assertEqual(data['months'][3]['expense'], Decimal('500.00'))
        self.assertEqual(data['months'][4]['income'], Decimal('100000.00'))
        self.assertEqual(data['months'][4]['net'], Decimal('95000.00'))
        self.assertEqual(data['months'][0]['net'], Decimal('0.00'))
        self.assertEqual(data['totals']['net'], Decimal('94500.00'))

    def test_other_organization_excluded(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        other_account = TestDataFactory.create_account(other)
        TestDataFactory.create_transaction(other_account, 'income', Decimal('1.00'), occurred_at=date(2024, 5, 1))
        data = services.finance_summary(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(data['summary']['transactions'], 0)

    def test_results_are_cached_until_rows_change(self):
        self._add_transactions()
        first = services.finance_summary(self.organization, date(2024, 5, 1), date(2024, 5, 31))

        # Queryset updates bypass signals, so the cached value is served
        Transaction.objects.filter(organization=self.organization, direction='income').update(amount=Decimal('1.00'))
        cached = services.finance_summary(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(cached['summary']['income'], first['summary']['income'])

        TestDataFactory.create_transaction(self.account, 'income', Decimal('10.00'), occurred_at=date(2024, 5, 3))
        fresh = services.finance_summary(self.organization, date(2024, 5, 1), date(2024, 5, 31))
        self.assertEqual(fresh['summary']['income'], Decimal('11.00'))

    def test_kudir_entry_invalidates_reports(self):
        key = f"{reports_prefix(self.organization.id)}marker"
        cache.set(key, 1)
        TestDataFactory.create_kudir_entry(self.organization, income=Decimal('100.00'))
        self.assertIsNone(cache.get(key))

    def test_generated_tax_calendar_reaches_dashboard(self):
        today = date(2024, 4, 10)
        before = services.dashboard_kpis(self.organization, today)
        self.assertEqual(before['taxes']['upcoming'], [])

        created = tax_calendar.generate_for_year(self.organization, 2024)
        self.assertGreater(created, 0)

        after = services.dashboard_kpis(self.organization, today)
        self.assertGreater(len(after['taxes']['upcoming']), 0)

    def test_dashboard_kpis(self):
        today = date(2024, 5, 15)
        TestDataFactory.create_credit_card(self.organization, credit_limit=Decimal('100000.00'), balance=Decimal('70000.00'))
        TestDataFactory.create_loan(self.organization, principal_amount=Decimal('100000.00'), issue_date=today)
        TestDataFactory.create_investment(self.organization, investment_date=date(2024, 1, 1), due_date=date(2024, 12, 31))
        TestDataFactory.create_budget(self.organization, category=self.food, limit_amount=Decimal('1000.00'),
                                      period_start=date(2024, 5, 1), period_end=date(2024, 5, 31))
        TestDataFactory.create_transaction(self.account, 'expense', Decimal('900.00'), occurred_at=date(2024, 5, 10),
                                           category=self.food)
        TestDataFactory.create_tax_payment(self.organization, due_date=date(2024, 5, 20), amount=Decimal('1000.00'))
        TestDataFactory.create_tax_payment(self.organization, due_date=date(2024, 5, 10))

        data = services.dashboard_kpis(self.organization, today)
        self.assertEqual(data['balances'], {'RUB': Decimal('499100.00')})
        self.assertEqual(data['credit_card_debt'], Decimal('30000.00'))
        self.assertEqual(data['loans']['count'], 1)
        self.assertEqual(data['loans']['debt'], Decimal('100000.00'))
        self.assertEqual(data['investments']['debt'], Decimal('112000.00'))
        self.assertEqual(data['month']['expense'], Decimal('900.00'))
        self.assertEqual(data['budgets']['at_risk'], 1)
        self.assertEqual(len(data['budgets']['alerts']), 1)
        self.assertEqual(len(data['taxes']['upcoming']), 1)
        self.assertEqual(data['taxes']['upcoming_amount'], Decimal('1000.00'))
        self.assertEqual(data['taxes']['overdue_count'], 1)


class ReportsAPITests(TestCase):
    """Report endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('1000.00'))
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_finance_summary_defaults_to_last_30_days(self):
        response = self.client.get('/api/v1/reports/finance-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        period = response.data['period']
        self.assertEqual(
            (date.fromisoformat(period['to']) - date.fromisoformat(period['from'])).days, 30
        )

    def test_finance_summary_range(self):
        TestDataFactory.create_transaction(self.account, 'income', Decimal('250.00'), occurred_at=date(2024, 5, 1))
        response = self.client.get('/api/v1/reports/finance-summary/?date_from=2024-05-01&date_to=2024-05-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['summary']['income']), Decimal('250.00'))

    def test_bad_dates(self):
        response = self.client.get('/api/v1/reports/finance-summary/?date_from=05/01/2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/finance-summary/?date_from=2024-06-01&date_to=2024-05-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/monthly/?year=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_monthly(self):
        response = self.client.get('/api/v1/reports/monthly/?year=2024')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['year'], 2024)
        self.assertEqual(len(response.data['months']), 12)

    def test_dashboard_kpis(self):
        response = self.client.get('/api/v1/reports/dashboard-kpis/?date=2024-05-15')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['date'], '2024-05-15')
        self.assertEqual(Decimal(response.data['balances']['RUB']), Decimal('1000.00'))

    def test_finance_mode_required(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_organization(owner=user, modes=['tenders'])
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/v1/reports/dashboard-kpis/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
