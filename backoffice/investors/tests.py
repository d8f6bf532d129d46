"""
Test suite for the Investors module
Tests: interest, return schedules, funding structure, debt balance, returns and the API
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import Transaction
from backoffice.investors.calculations import (
    build_return_schedule, calculate_interest, calculate_penalty, debt_balance, funding_structure,
)
from backoffice.investors.models import Investment, InvestmentReturn
from backoffice.investors import services


class CalculationTests(TestCase):
    """Pure arithmetic"""

    def test_interest_types(self):
        self.assertEqual(
            calculate_interest(Decimal('100000'), Decimal('12'), 'annual', 182),
            (Decimal('5983.56'), Decimal('105983.56')),
        )
        self.assertEqual(calculate_interest(Decimal('100000'), Decimal('2'), 'monthly', 90)[0], Decimal('6000.00'))
        self.assertEqual(calculate_interest(Decimal('50000'), Decimal('10'), 'fixed', 500)[0], Decimal('5000.00'))
        with self.assertRaises(ValueError):
            calculate_interest(Decimal('1'), Decimal('1'), 'weekly', 7)

    def test_single_schedule(self):
        rows = build_return_schedule(Decimal('100000'), Decimal('5983.56'), date(2024, 1, 1), date(2024, 7, 1))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['scheduled_date'], date(2024, 7, 1))
        self.assertEqual(rows[0]['total_amount'], Decimal('105983.56'))

    def test_monthly_schedule_last_row_takes_remainder(self):
        rows = build_return_schedule(
            Decimal('100000'), Decimal('5983.56'), date(2024, 1, 1), date(2024, 7, 1), schedule_type='monthly'
        )
        self.assertEqual(len(rows), 6)
        self.assertEqual(rows[0]['scheduled_date'], date(2024, 2, 1))
        self.assertEqual(rows[0]['principal_amount'], Decimal('16666.66'))
        self.assertEqual(rows[-1]['principal_amount'], Decimal('16666.70'))
        self.assertEqual(rows[-1]['scheduled_date'], date(2024, 7, 1))
        self.assertEqual(sum(row['principal_amount'] for row in rows), Decimal('100000.00'))
        self.assertEqual(sum(row['interest_amount'] for row in rows), Decimal('5983.56'))

    def test_quarterly_schedule(self):
        rows = build_return_schedule(
            Decimal('90000'), Decimal('0'), date(2024, 1, 15), date(2024, 8, 20), schedule_type='quarterly'
        )
        self.assertEqual([row['scheduled_date'] for row in rows], [date(2024, 4, 15), date(2024, 7, 15), date(2024, 8, 20)])
        self.assertEqual([row['principal_amount'] for row in rows], [Decimal('30000.00')] * 3)

    def test_short_term_gets_one_row(self):
        rows = build_return_schedule(
            Decimal('1000'), Decimal('10'), date(2024, 1, 10), date(2024, 1, 25), schedule_type='monthly'
        )
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['scheduled_date'], date(2024, 1, 25))

    def test_funding_structure(self):
        structure = funding_structure(Decimal('200000'), [{
            'source_id': 1,
            'source_name': 'Bank',
            'amount': Decimal('100000'),
            'interest_rate': Decimal('12'),
            'interest_type': 'fixed',
            'period_days': 90,
        }], own_funds=Decimal('100000'))
        self.assertEqual(structure['investments'][0]['share'], Decimal('50.00'))
        self.assertEqual(structure['investments'][0]['interest_amount'], Decimal('12000.00'))
        self.assertEqual(structure['own_funds_share'], Decimal('50.00'))
        self.assertEqual(structure['total_interest_cost'], Decimal('12000.00'))
        self.assertEqual(funding_structure(Decimal('0'), [])['own_funds_share'], Decimal('0.00'))

    def test_debt_balance_and_penalty(self):
        balance = debt_balance(Decimal('100000'), Decimal('12000'), Decimal('40000'), Decimal('12000'),
                               date(2024, 6, 1), date(2024, 6, 11))
        self.assertEqual(balance['total_remaining'], Decimal('60000'))
        self.assertTrue(balance['is_overdue'])
        self.assertEqual(balance['overdue_days'], 10)
        self.assertEqual(balance['overdue_amount'], Decimal('60000'))
        self.assertEqual(calculate_penalty(balance['overdue_amount'], balance['overdue_days']), Decimal('600.00'))

        balance = debt_balance(Decimal('100000'), Decimal('12000'), Decimal('0'), Decimal('0'),
                               date(2024, 6, 1), date(2024, 6, 1))
        self.assertFalse(balance['is_overdue'])
        self.assertEqual(balance['overdue_days'], 0)


class InvestmentServiceTests(TestCase):
    """Bookkeeping against the database"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())

    def create(self, **kwargs):
        kwargs.setdefault('investment_date', date(2024, 1, 1))
        kwargs.setdefault('due_date', date(2024, 12, 31))
        return TestDataFactory.create_investment(self.organization, **kwargs)

    def test_initialize_derives_terms(self):
        investment = self.create()
        self.assertEqual(investment.number, 'INV-2024-0001')
        self.assertEqual(investment.period_days, 365)
        self.assertEqual(investment.interest_amount, Decimal('12000.00'))
        self.assertEqual(investment.total_return, Decimal('112000.00'))
        self.assertEqual(investment.returns.count(), 1)

    def test_numbering_continues(self):
        self.create(number='INV-2024-0007')
        self.assertEqual(services.next_number(self.organization, 2024), 'INV-2024-0008')
        self.assertEqual(services.next_number(self.organization, 2025), 'INV-2025-0001')

    def test_return_pays_interest_first(self):
        investment = self.create()
        result = services.record_return(investment, Decimal('20000'), paid_on=date(2024, 6, 1))
        self.assertEqual(result['interest'], Decimal('12000.00'))
        self.assertEqual(result['principal'], Decimal('8000.00'))
        self.assertEqual(result['remaining'], Decimal('92000.00'))

        investment.refresh_from_db()
        self.assertEqual(investment.status, 'active')
        row = investment.returns.get()
        self.assertEqual(row.status, 'partial')
        self.assertEqual(row.paid_amount, Decimal('20000.00'))

        result = services.record_return(investment, Decimal('92000'))
        self.assertEqual(result['status'], 'completed')
        investment.refresh_from_db()
        self.assertEqual(investment.status, 'completed')
        self.assertEqual(investment.returns.get().status, 'paid')

        with self.assertRaisesMessage(ValueError, 'already completed'):
            services.record_return(investment, Decimal('1'))

    def test_overpayment_is_capped(self):
        investment = self.create()
        result = services.record_return(investment, Decimal('200000'))
        self.assertEqual(result['amount'], Decimal('112000.00'))
        self.assertEqual(result['status'], 'completed')

    def test_return_spreads_over_schedule_rows(self):
        investment = self.create(principal=Decimal('60000'), interest_rate=Decimal('10'), interest_type='fixed',
                                 due_date=date(2024, 7, 1), schedule_type='monthly')
        services.record_return(investment, Decimal('16500'), paid_on=date(2024, 2, 1))
        rows = list(investment.returns.order_by('number'))
        self.assertEqual(len(rows), 6)
        self.assertEqual(rows[0].status, 'paid')
        self.assertEqual(rows[1].status, 'partial')
        self.assertEqual(rows[1].paid_amount, Decimal('5500.00'))
        self.assertEqual(rows[2].status, 'pending')

    def test_return_with_account_records_expense(self):
        account = TestDataFactory.create_account(self.organization, balance=Decimal('50000.00'))
        investment = self.create()
        services.record_return(investment, Decimal('10000'), account=account)
        txn = Transaction.objects.get(account=account)
        self.assertEqual(txn.direction, 'expense')
        self.assertEqual(txn.amount, Decimal('10000.00'))
        account.refresh_from_db()
        self.assertEqual(account.balance, Decimal('40000.00'))

        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        with self.assertRaises(ValueError):
            services.record_return(investment, Decimal('1'), account=TestDataFactory.create_account(other))

    def test_terms_locked_after_returns(self):
        investment = self.create()
        services.record_return(investment, Decimal('100'))
        investment.refresh_from_db()
        investment.interest_rate = Decimal('5')
        with self.assertRaises(ValueError):
            services.recalculate_terms(investment)

    def test_balance_with_penalty(self):
        investment = self.create(interest_rate=Decimal('10'), interest_type='fixed', due_date=date(2024, 3, 1))
        balance = services.investment_balance(investment, date(2024, 3, 11))
        self.assertEqual(balance['overdue_days'], 10)
        self.assertEqual(balance['overdue_amount'], Decimal('110000.00'))
        self.assertEqual(balance['penalty'], Decimal('1100.00'))

    def test_tender_funding(self):
        tender = TestDataFactory.create_tender(self.organization, purchase_cost=Decimal('150000.00'),
                                               logistics_cost=Decimal('30000.00'), other_costs=Decimal('20000.00'))
        self.create(tender=tender, interest_rate=Decimal('10'), interest_type='fixed')
        structure = services.tender_funding(tender)
        self.assertEqual(structure['total_cost'], Decimal('200000.00'))
        self.assertEqual(structure['investments'][0]['share'], Decimal('50.00'))
        self.assertEqual(structure['own_funds'], Decimal('100000.00'))
        self.assertEqual(structure['total_interest_cost'], Decimal('10000.00'))

    def test_tender_funding_uses_declared_cost(self):
        tender = TestDataFactory.create_tender(self.organization)
        self.create(tender=tender, tender_total_cost=Decimal('400000.00'))
        structure = services.tender_funding(tender)
        self.assertEqual(structure['total_cost'], Decimal('400000.00'))
        self.assertEqual(structure['investments'][0]['share'], Decimal('25.00'))

    def test_summary(self):
        overdue = self.create(due_date=date(2024, 3, 1))
        done = self.create()
        services.record_return(done, Decimal('112000'))
        summary = services.investors_summary(self.organization, date(2024, 3, 11))
        self.assertEqual(summary['counts'], {'total': 2, 'active': 1, 'completed': 1, 'overdue': 1})
        self.assertEqual(summary['overdue'][0]['number'], overdue.number)
        self.assertEqual(summary['total_returned'], Decimal('112000.00'))


class InvestmentAPITests(TestCase):
    """Investor endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.source = TestDataFactory.create_investment_source(self.organization, name='Private lender')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def payload(self, **extra):
        data = {
            'source': self.source.id,
            'investment_date': '2024-01-01',
            'due_date': '2024-12-31',
            'principal': '100 000,00',
            'interest_rate': '12',
            'schedule_type': 'quarterly',
        }
        data.update(extra)
        return data

    def test_create_investment(self):
        response = self.client.post('/api/v1/investors/investments/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['number'], 'INV-2024-0001')
        self.assertEqual(Decimal(response.data['interest_amount']), Decimal('12000.00'))
        self.assertEqual(response.data['source_name'], 'Private lender')
        self.assertEqual(InvestmentReturn.objects.filter(investment_id=response.data['id']).count(), 4)
        self.assertTrue(AuditLog.objects.filter(model_name='Investment', action='create').exists())

    def test_create_validation(self):
        response = self.client.post('/api/v1/investors/investments/', self.payload(due_date='2023-12-31'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('due_date', response.data)

        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        foreign = TestDataFactory.create_investment_source(other)
        response = self.client.post('/api/v1/investors/investments/', self.payload(source=foreign.id), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('source', response.data)

    def test_return_endpoint(self):
        investment = TestDataFactory.create_investment(
            self.organization, source=self.source, investment_date=date(2024, 1, 1), due_date=date(2024, 12, 31)
        )
        response = self.client.post(f'/api/v1/investors/investments/{investment.id}/return/',
                                    {'amount': '20000', 'paid_on': '2024-06-01'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['return']['interest']), Decimal('12000.00'))
        self.assertEqual(Decimal(response.data['investment']['returned_principal']), Decimal('8000.00'))
        self.assertEqual(response.data['schedule'][0]['status'], 'partial')
        self.assertTrue(AuditLog.objects.filter(action='investment_return').exists())

        response = self.client.delete(f'/api/v1/investors/investments/{investment.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/v1/investors/investments/{investment.id}/',
                                     {'interest_rate': '6'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        investment.refresh_from_db()
        self.assertEqual(investment.interest_rate, Decimal('12.00'))

    def test_update_terms_recalculates(self):
        investment = TestDataFactory.create_investment(
            self.organization, source=self.source, investment_date=date(2024, 1, 1), due_date=date(2024, 12, 31)
        )
        response = self.client.patch(f'/api/v1/investors/investments/{investment.id}/',
                                     {'interest_rate': '6', 'schedule_type': 'monthly'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        investment.refresh_from_db()
        self.assertEqual(investment.interest_amount, Decimal('6000.00'))
        self.assertEqual(investment.returns.count(), 11)

    def test_detail_includes_schedule_and_balance(self):
        investment = TestDataFactory.create_investment(self.organization, source=self.source)
        response = self.client.get(f'/api/v1/investors/investments/{investment.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['schedule']), 1)
        self.assertFalse(response.data['balance']['is_overdue'])

    def test_other_organization_investment_not_found(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        investment = TestDataFactory.create_investment(other)
        response = self.client.get(f'/api/v1/investors/investments/{investment.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_source_with_investments_cannot_be_deleted(self):
        TestDataFactory.create_investment(self.organization, source=self.source)
        response = self.client.delete(f'/api/v1/investors/sources/{self.source.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        unused = TestDataFactory.create_investment_source(self.organization)
        response = self.client.delete(f'/api/v1/investors/sources/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_list_filters(self):
        TestDataFactory.create_investment(self.organization, source=self.source)
        other_source = TestDataFactory.create_investment_source(self.organization)
        TestDataFactory.create_investment(self.organization, source=other_source)
        response = self.client.get(f'/api/v1/investors/investments/?source={self.source.id}')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(Investment.objects.filter(organization=self.organization).count(), 2)

    def test_tender_funding_endpoint(self):
        tender = TestDataFactory.create_tender(self.organization, purchase_cost=Decimal('200000.00'))
        TestDataFactory.create_investment(self.organization, source=self.source, tender=tender)
        response = self.client.get(f'/api/v1/investors/tenders/{tender.id}/funding/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['investments'][0]['share']), Decimal('50.00'))

    def test_calculate(self):
        data = {
            'principal': '60000',
            'interest_rate': '10',
            'interest_type': 'fixed',
            'schedule_type': 'monthly',
            'investment_date': '2024-01-01',
            'due_date': '2024-07-01',
            'penalty_days': 10,
        }
        response = self.client.post('/api/v1/investors/investments/calculate/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['interest_amount']), Decimal('6000.00'))
        self.assertEqual(Decimal(response.data['penalty']), Decimal('660.00'))
        self.assertEqual(len(response.data['schedule']), 6)
        self.assertFalse(Investment.objects.exists())

    def test_summary(self):
        TestDataFactory.create_investment(self.organization, source=self.source)
        response = self.client.get('/api/v1/investors/investments/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts']['active'], 1)
