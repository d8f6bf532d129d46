"""
Test suite for the Loans module
Tests: amortization schedules, repayments, recalculation, summary and API endpoints
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, SimpleTestCase
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.loans.amortization import annuity_payment, build_schedule, schedule_totals
from backoffice.loans.models import Loan
from backoffice.loans import services


class AmortizationTests(SimpleTestCase):
    """Schedule math"""

    def test_annuity_payment(self):
        self.assertEqual(annuity_payment(Decimal('100000'), Decimal('12'), 12), Decimal('8884.88'))

    def test_annuity_payment_zero_rate(self):
        self.assertEqual(annuity_payment(Decimal('120000'), Decimal('0'), 12), Decimal('10000.00'))

    def test_annuity_payment_requires_term(self):
        with self.assertRaises(ValueError):
            annuity_payment(Decimal('1000'), Decimal('10'), 0)

    def test_annuity_schedule_sums_to_principal(self):
        rows = build_schedule(Decimal('100000'), Decimal('12'), 12, date(2024, 1, 15))
        self.assertEqual(len(rows), 12)
        self.assertEqual(rows[0]['interest_part'], Decimal('1000.00'))
        self.assertEqual(rows[0]['principal_part'], Decimal('7884.88'))
        self.assertEqual(rows[0]['remaining_after'], Decimal('92115.12'))
        self.assertEqual(sum(row['principal_part'] for row in rows), Decimal('100000.00'))
        self.assertEqual(rows[-1]['remaining_after'], Decimal('0.00'))

    def test_due_dates_keep_payment_day(self):
        rows = build_schedule(Decimal('3000'), Decimal('0'), 3, date(2024, 1, 31))
        self.assertEqual([row['due_date'] for row in rows], [date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 30)])

    def test_differentiated_schedule(self):
        rows = build_schedule(Decimal('120000'), Decimal('12'), 12, date(2024, 1, 1), payment_type='differentiated')
        self.assertEqual(rows[0]['total'], Decimal('11200.00'))
        self.assertEqual(rows[1]['total'], Decimal('11100.00'))
        self.assertEqual(rows[-1]['principal_part'], Decimal('10000.00'))
        self.assertEqual(rows[-1]['interest_part'], Decimal('100.00'))

    def test_last_row_absorbs_rounding(self):
        rows = build_schedule(Decimal('100000'), Decimal('0'), 3, date(2024, 1, 1))
        self.assertEqual(
            [row['principal_part'] for row in rows],
            [Decimal('33333.33'), Decimal('33333.33'), Decimal('33333.34')]
        )

    def test_schedule_totals(self):
        rows = build_schedule(Decimal('120000'), Decimal('12'), 12, date(2024, 1, 1), payment_type='differentiated')
        totals = schedule_totals(rows)
        self.assertEqual(totals['payments'], 12)
        self.assertEqual(totals['total_interest'], Decimal('7800.00'))
        self.assertEqual(totals['total_paid'], Decimal('127800.00'))

    def test_empty_principal(self):
        self.assertEqual(build_schedule(Decimal('0'), Decimal('10'), 12, date(2024, 1, 1)), [])


class LoanServiceTests(TestCase):
    """Repayment bookkeeping"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.loan = TestDataFactory.create_loan(self.organization, issue_date=date(2024, 1, 15))

    def _planned(self, loan=None):
        return (loan or self.loan).payments.filter(status='planned').order_by('number')

    def test_initialize(self):
        self.assertEqual(self.loan.term_months, 12)
        self.assertEqual(self.loan.end_date, date(2025, 1, 15))
        self.assertEqual(self.loan.monthly_payment, Decimal('8884.88'))
        self.assertEqual(self.loan.next_payment_date, date(2024, 2, 15))
        self.assertEqual(self.loan.remaining_principal, Decimal('100000.00'))
        self.assertEqual(self._planned().count(), 12)

    def test_term_derived_from_end_date(self):
        loan = Loan(
            organization=self.organization, name='Car', principal_amount=Decimal('60000.00'),
            interest_rate=Decimal('0.00'), issue_date=date(2024, 3, 1), end_date=date(2024, 9, 1),
        )
        services.initialize_loan(loan)
        self.assertEqual(loan.term_months, 6)
        self.assertEqual(loan.monthly_payment, Decimal('10000.00'))

    def test_regular_repayment(self):
        row = services.record_repayment(self.loan, Decimal('8884.88'), paid_on=date(2024, 2, 15))
        self.assertEqual(row.number, 1)
        self.assertEqual(row.interest_part, Decimal('1000.00'))
        self.assertEqual(row.principal_part, Decimal('7884.88'))

        self.loan.refresh_from_db()
        self.assertEqual(self.loan.principal_paid, Decimal('7884.88'))
        self.assertEqual(self.loan.interest_paid, Decimal('1000.00'))
        self.assertEqual(self.loan.remaining_principal, Decimal('92115.12'))
        self.assertEqual(self.loan.remaining_principal, self.loan.principal_amount - self.loan.principal_paid)
        self.assertEqual(self.loan.next_payment_date, date(2024, 3, 15))

        planned = list(self._planned())
        self.assertEqual(len(planned), 11)
        self.assertEqual(planned[0].number, 2)
        self.assertEqual(sum(p.principal_part for p in planned), Decimal('92115.12'))

    def test_early_repayment_lowers_payment(self):
        services.record_repayment(self.loan, Decimal('50000.00'), paid_on=date(2024, 2, 15))
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.remaining_principal, Decimal('51000.00'))
        self.assertLess(self.loan.monthly_payment, Decimal('8884.88'))
        self.assertEqual(self._planned().count(), 11)

    def test_small_payment_covers_interest_only(self):
        row = services.record_repayment(self.loan, Decimal('400.00'), paid_on=date(2024, 2, 15))
        self.assertEqual(row.interest_part, Decimal('400.00'))
        self.assertEqual(row.principal_part, Decimal('0.00'))
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.remaining_principal, Decimal('100000.00'))

    def test_overpayment_is_capped_and_closes_loan(self):
        row = services.record_repayment(self.loan, Decimal('200000.00'), paid_on=date(2024, 2, 15))
        self.assertEqual(row.total, Decimal('101000.00'))
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.status, 'paid')
        self.assertEqual(self.loan.remaining_principal, Decimal('0.00'))
        self.assertIsNone(self.loan.next_payment_date)
        self.assertEqual(self._planned().count(), 0)

        with self.assertRaisesMessage(ValueError, 'Loan is already paid off'):
            services.record_repayment(self.loan, Decimal('10.00'))

    def test_repayment_from_account(self):
        account = TestDataFactory.create_account(self.organization, balance=Decimal('10000.00'))
        row = services.record_repayment(self.loan, Decimal('8884.88'), paid_on=date(2024, 2, 15), account=account)
        account.refresh_from_db()
        self.assertEqual(account.balance, Decimal('1115.12'))
        self.assertEqual(row.transaction.direction, 'expense')
        self.assertEqual(row.transaction.occurred_at, date(2024, 2, 15))

    def test_repayment_from_foreign_account(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        account = TestDataFactory.create_account(other)
        with self.assertRaises(ValueError):
            services.record_repayment(self.loan, Decimal('100.00'), account=account)

    def test_recalculate_restores_invariant(self):
        services.record_repayment(self.loan, Decimal('8884.88'), paid_on=date(2024, 2, 15))
        Loan.objects.filter(pk=self.loan.pk).update(
            principal_paid=Decimal('1.00'), remaining_principal=Decimal('5.00'), monthly_payment=Decimal('0.00')
        )
        loan, before, after = services.recalculate_loan(self.loan)
        self.assertEqual(before['remaining_principal'], Decimal('5.00'))
        self.assertEqual(after['remaining_principal'], Decimal('92115.12'))
        self.assertEqual(loan.principal_paid, Decimal('7884.88'))
        self.assertGreater(loan.monthly_payment, Decimal('0.00'))
        self.assertEqual(self._planned(loan).count(), 11)

    def test_summary(self):
        TestDataFactory.create_loan(self.organization, principal_amount=Decimal('12000.00'),
                                    interest_rate=Decimal('0.00'), issue_date=date(2024, 1, 1))
        services.record_repayment(self.loan, Decimal('8884.88'), paid_on=date(2024, 2, 15))
        self.loan.refresh_from_db()

        summary = services.loans_summary(self.organization, date(2024, 2, 20))
        self.assertEqual(summary['counts'], {'total': 2, 'active': 2, 'paid': 0})
        self.assertEqual(summary['total_debt'], Decimal('92115.12') + Decimal('12000.00'))
        self.assertEqual(summary['monthly_payment'], self.loan.monthly_payment + Decimal('1000.00'))
        paid_flags = {item['id']: item['is_paid_this_month'] for item in summary['loans']}
        self.assertTrue(paid_flags[self.loan.id])
        self.assertEqual(list(paid_flags.values()).count(True), 1)

    def test_recalculate_command_dry_run(self):
        Loan.objects.filter(pk=self.loan.pk).update(remaining_principal=Decimal('1.00'))
        out = StringIO()
        call_command('recalculate_loans', '--dry-run', stdout=out)
        self.assertIn('1 loans would change', out.getvalue())
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.remaining_principal, Decimal('1.00'))

        call_command('recalculate_loans', stdout=StringIO())
        self.loan.refresh_from_db()
        self.assertEqual(self.loan.remaining_principal, Decimal('100000.00'))


class LoanAPITests(TestCase):
    """Loan endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_loan_with_end_date(self):
        data = {
            'name': 'Equipment',
            'bank': 'Bank',
            'principal_amount': '120 000',
            'interest_rate': '0',
            'issue_date': '2024-01-10',
            'end_date': '2025-01-10',
        }
        response = self.client.post('/api/v1/loans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['term_months'], 12)
        self.assertEqual(response.data['monthly_payment'], '10000.00')
        self.assertEqual(response.data['next_payment_date'], '2024-02-10')
        self.assertTrue(AuditLog.objects.filter(model_name='Loan', action='create').exists())

    def test_create_loan_requires_term(self):
        data = {'name': 'X', 'principal_amount': '1000', 'issue_date': '2024-01-10'}
        response = self.client.post('/api/v1/loans/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('term_months', response.data)

    def test_detail_includes_schedule(self):
        loan = TestDataFactory.create_loan(self.organization, term_months=6)
        response = self.client.get(f'/api/v1/loans/{loan.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['payments']), 6)

    def test_update_term_rebuilds_schedule(self):
        loan = TestDataFactory.create_loan(self.organization, term_months=12, issue_date=date(2024, 1, 15))
        response = self.client.patch(f'/api/v1/loans/{loan.id}/', {'term_months': 24}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['end_date'], '2026-01-15')
        self.assertEqual(loan.payments.filter(status='planned').count(), 24)

    def test_repay_endpoint(self):
        loan = TestDataFactory.create_loan(self.organization, issue_date=date(2024, 1, 15))
        account = TestDataFactory.create_account(self.organization, balance=Decimal('20000.00'))
        response = self.client.post(
            f'/api/v1/loans/{loan.id}/repay/',
            {'amount': '8884.88', 'paid_on': '2024-02-15', 'account': account.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment']['interest_part'], '1000.00')
        self.assertEqual(response.data['loan']['remaining_principal'], '92115.12')
        self.assertTrue(AuditLog.objects.filter(action='loan_repayment').exists())

    def test_repay_rejects_zero(self):
        loan = TestDataFactory.create_loan(self.organization)
        response = self.client.post(f'/api/v1/loans/{loan.id}/repay/', {'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recalculate_endpoint(self):
        loan = TestDataFactory.create_loan(self.organization)
        Loan.objects.filter(pk=loan.pk).update(remaining_principal=Decimal('3.00'))
        response = self.client.post(f'/api/v1/loans/{loan.id}/recalculate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['before']['remaining_principal'], '3.00')
        self.assertEqual(response.data['after']['remaining_principal'], '100000.00')

    def test_calculate_preview(self):
        data = {'principal_amount': '100000', 'interest_rate': '12', 'term_months': 12, 'issue_date': '2024-01-15'}
        response = self.client.post('/api/v1/loans/calculate/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['monthly_payment'], '8884.88')
        self.assertEqual(len(response.data['schedule']), 12)
        self.assertEqual(Loan.objects.count(), 0)

    def test_summary_endpoint(self):
        TestDataFactory.create_loan(self.organization)
        response = self.client.get('/api/v1/loans/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts']['active'], 1)
        self.assertEqual(response.data['total_debt'], '100000.00')

    def test_other_organization_loan_not_found(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        loan = TestDataFactory.create_loan(other)
        response = self.client.post(f'/api/v1/loans/{loan.id}/repay/', {'amount': '100'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
