"""
Test suite for the Finance module
Tests: balances, stash, budgets and rollover, credit card payments, CSV import/export, tenancy
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import Account, Budget, ScheduledPayment, StashTransfer, Transaction
from backoffice.finance import budgets, credit_cards, csv_io, services


def statement_row(occurred, amount, description, bank_category=''):
    cells = [''] * 12
    cells[csv_io.DATE_COLUMN] = occurred
    cells[csv_io.AMOUNT_COLUMN] = amount
    cells[csv_io.CATEGORY_COLUMN] = bank_category
    cells[csv_io.DESCRIPTION_COLUMN] = description
    return ';'.join(f'"{cell}"' for cell in cells)


STATEMENT = '\n'.join([
    '"Operation date";"Payment date";"Card";"Status";"Amount";"Currency";"a";"b";"c";"Category";"MCC";"Description"',
    statement_row('05.03.2024', '-350,00', 'Coffee shop', 'Restaurants'),
    statement_row('06.03.2024', '-1 200,50', 'Supermarket', 'Groceries'),
    statement_row('07.03.2024', '25 000,00', 'Salary', 'Transfers'),
    statement_row('08.03.2024', '-150,00', 'Coffee shop', 'Restaurants'),
])


class TransactionServiceTests(TestCase):
    """Balance bookkeeping of transactions"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('1000.00'))

    def test_create_transaction_updates_balance(self):
        services.create_transaction(self.account, 'expense', '250.50')
        services.create_transaction(self.account, 'income', Decimal('100.00'))
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('849.50'))

    def test_create_transaction_rejects_non_positive_amount(self):
        with self.assertRaises(ValueError):
            services.create_transaction(self.account, 'expense', '0')
        with self.assertRaises(ValueError):
            services.create_transaction(self.account, 'expense', '-5')

    def test_create_transaction_rejects_foreign_category(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        category = TestDataFactory.create_category(other)
        with self.assertRaises(ValueError):
            services.create_transaction(self.account, 'expense', '10', category=category)

    def test_update_transaction_reapplies_amount(self):
        txn = services.create_transaction(self.account, 'expense', '200')
        services.update_transaction(txn, amount=Decimal('50.00'), direction='income')
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('1050.00'))

    def test_update_transaction_moves_between_accounts(self):
        second = TestDataFactory.create_account(self.organization, balance=Decimal('0.00'))
        txn = services.create_transaction(self.account, 'expense', '300')
        services.update_transaction(txn, account=second)
        self.account.refresh_from_db()
        second.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('1000.00'))
        self.assertEqual(second.balance, Decimal('-300.00'))

    def test_delete_transaction_restores_balance(self):
        txn = services.create_transaction(self.account, 'income', '500')
        services.delete_transaction(txn)
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('1000.00'))
        self.assertFalse(Transaction.objects.filter(pk=txn.pk).exists())

    def test_account_totals(self):
        TestDataFactory.create_account(self.organization, balance=Decimal('20.00'), currency='USD')
        TestDataFactory.create_credit_card(
            self.organization, credit_limit=Decimal('5000.00'), balance=Decimal('3000.00')
        )
        totals = services.account_totals(self.organization)
        self.assertEqual(totals['balances']['RUB'], Decimal('1000.00'))
        self.assertEqual(totals['balances']['USD'], Decimal('20.00'))
        self.assertEqual(totals['credit_card_debt'], Decimal('2000.00'))


class StashTests(TestCase):
    """Stash repayment on top-up and transfers"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('0.00'))

    def test_add_funds_without_stash(self):
        result = services.add_funds(self.account, '1000')
        self.assertEqual(result['stash_repaid'], Decimal('0.00'))
        self.assertEqual(result['card_amount'], Decimal('1000.00'))
        self.assertIsNone(result['stash_balance'])
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('1000.00'))

    def test_add_funds_repays_stash_first(self):
        TestDataFactory.create_stash(self.account, target_amount=Decimal('50000.00'), balance=Decimal('45000.00'))
        result = services.add_funds(self.account, '8000')
        self.assertEqual(result['stash_repaid'], Decimal('5000.00'))
        self.assertEqual(result['card_amount'], Decimal('3000.00'))
        self.assertEqual(result['stash_balance'], Decimal('50000.00'))
        self.assertEqual(result['transaction'].amount, Decimal('3000.00'))
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('3000.00'))
        self.assertTrue(StashTransfer.objects.filter(direction='repay', amount=Decimal('5000.00')).exists())

    def test_add_funds_entirely_to_stash(self):
        TestDataFactory.create_stash(self.account, target_amount=Decimal('10000.00'), balance=Decimal('0.00'))
        result = services.add_funds(self.account, '2000')
        self.assertEqual(result['stash_repaid'], Decimal('2000.00'))
        self.assertEqual(result['card_amount'], Decimal('0.00'))
        self.assertIsNone(result['transaction'])
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('0.00'))

    def test_transfer_from_stash(self):
        stash = TestDataFactory.create_stash(self.account, balance=Decimal('1000.00'))
        transfer = services.transfer_stash(self.account, 'from_stash', '400')
        stash.refresh_from_db()
        self.account.refresh_from_db()
        self.assertEqual(stash.balance, Decimal('600.00'))
        self.assertEqual(self.account.balance, Decimal('400.00'))
        self.assertEqual(transfer.transaction.direction, 'income')

    def test_transfer_more_than_stash_balance_fails(self):
        TestDataFactory.create_stash(self.account, balance=Decimal('100.00'))
        with self.assertRaisesMessage(ValueError, 'Insufficient funds in stash'):
            services.transfer_stash(self.account, 'from_stash', '100.01')

    def test_transfer_without_stash_fails(self):
        with self.assertRaisesMessage(ValueError, 'Account has no stash'):
            services.transfer_stash(self.account, 'to_stash', '10')


class BudgetTests(TestCase):
    """Budget usage, alerts, forecast and rollover"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('100000.00'))
        self.category = TestDataFactory.create_category(self.organization, name='Groceries')

    def _budget(self, limit, start=date(2024, 1, 1), end=date(2024, 1, 31), category=None, rollover=False):
        return TestDataFactory.create_budget(
            self.organization, category=category or self.category, limit_amount=Decimal(limit),
            period_start=start, period_end=end, rollover=rollover,
        )

    def _spend(self, amount, occurred, category=None):
        TestDataFactory.create_transaction(
            self.account, 'expense', Decimal(amount), occurred_at=occurred, category=category or self.category
        )

    def test_usage_counts_only_period_expenses(self):
        budget = self._budget('1000')
        self._spend('300', date(2024, 1, 10))
        self._spend('999', date(2024, 2, 1))
        TestDataFactory.create_transaction(
            self.account, 'income', Decimal('500'), occurred_at=date(2024, 1, 12), category=self.category
        )
        usage = budgets.budget_usage(budget)
        self.assertEqual(usage['spent'], Decimal('300.00'))
        self.assertEqual(usage['remaining'], Decimal('700.00'))
        self.assertEqual(usage['percentage'], Decimal('30.00'))
        self.assertEqual(usage['status'], 'ok')

    def test_usage_status_thresholds(self):
        self.assertEqual(budgets.usage_status(Decimal('79.99')), 'ok')
        self.assertEqual(budgets.usage_status(Decimal('80')), 'warning')
        self.assertEqual(budgets.usage_status(Decimal('100')), 'over')

    def test_alerts_sorted_by_severity(self):
        transport = TestDataFactory.create_category(self.organization, name='Transport')
        self._budget('1000')
        self._budget('1000', category=transport)
        self._spend('850', date(2024, 1, 5))
        self._spend('1300', date(2024, 1, 6), category=transport)

        alerts = budgets.detect_budget_alerts(self.organization, date(2024, 1, 20))
        self.assertEqual(len(alerts), 2)
        self.assertEqual(alerts[0]['type'], 'budget_exceeded')
        self.assertEqual(alerts[0]['category'], 'Transport')
        self.assertEqual(alerts[1]['type'], 'budget_critical')
        self.assertEqual(alerts[1]['severity'], 'medium')

    def test_no_alert_below_half(self):
        self._budget('1000')
        self._spend('100', date(2024, 1, 5))
        self.assertEqual(budgets.detect_budget_alerts(self.organization, date(2024, 1, 20)), [])

    def test_forecast_depletion(self):
        budget = self._budget('3100')
        self._spend('1000', date(2024, 1, 5))
        forecast = budgets.forecast_depletion(budget, date(2024, 1, 10))
        self.assertEqual(forecast['daily_rate'], Decimal('100.00'))
        self.assertEqual(forecast['days_left'], 21)
        self.assertEqual(forecast['days_until_depleted'], 21)
        self.assertEqual(forecast['depletion_date'], date(2024, 1, 31))
        self.assertEqual(forecast['projected_spent'], Decimal('3100.00'))
        self.assertEqual(forecast['projected_overspend'], Decimal('0.00'))

    def test_forecast_without_spending(self):
        budget = self._budget('1000')
        forecast = budgets.forecast_depletion(budget, date(2024, 1, 10))
        self.assertIsNone(forecast['days_until_depleted'])

    def test_summary_counts(self):
        transport = TestDataFactory.create_category(self.organization, name='Transport')
        self._budget('1000')
        self._budget('1000', category=transport)
        self._spend('900', date(2024, 1, 5))
        summary = budgets.budgets_summary(self.organization, date(2024, 1, 15))
        self.assertEqual(summary['total_budgets'], 2)
        self.assertEqual(summary['budgets_at_risk'], 1)
        self.assertEqual(summary['budgets_on_track'], 1)
        self.assertEqual(summary['total_remaining'], Decimal('1100.00'))

    def test_next_period(self):
        self.assertEqual(
            budgets.next_period(date(2024, 1, 1), date(2024, 1, 31)),
            (date(2024, 2, 1), date(2024, 2, 29))
        )
        self.assertEqual(
            budgets.next_period(date(2024, 1, 10), date(2024, 1, 19)),
            (date(2024, 1, 20), date(2024, 1, 29))
        )

    def test_rollover_carries_unspent_money(self):
        january = self._budget('1000', rollover=True)
        self._spend('300', date(2024, 1, 15))

        created = budgets.rollover_budgets(date(2024, 3, 5), organization=self.organization)
        self.assertEqual(len(created), 2)
        february, march = created
        self.assertEqual(february.previous, january)
        self.assertEqual(february.period_end, date(2024, 2, 29))
        self.assertEqual(february.carried_over, Decimal('700.00'))
        self.assertEqual(march.carried_over, Decimal('1700.00'))
        self.assertEqual(march.available, Decimal('2700.00'))

    def test_rollover_without_carry(self):
        self._budget('1000', rollover=False)
        created = budgets.rollover_budgets(date(2024, 2, 10))
        self.assertEqual(len(created), 1)
        self.assertEqual(created[0].carried_over, Decimal('0.00'))

    def test_rollover_is_idempotent(self):
        self._budget('1000', rollover=True)
        budgets.rollover_budgets(date(2024, 2, 10))
        self.assertEqual(budgets.rollover_budgets(date(2024, 2, 10)), [])
        self.assertEqual(Budget.objects.filter(organization=self.organization).count(), 2)

    def test_rollover_links_existing_budget(self):
        january = self._budget('1000', rollover=True)
        february = self._budget('2000', start=date(2024, 2, 1), end=date(2024, 2, 29))
        created = budgets.rollover_budgets(date(2024, 2, 10))
        self.assertEqual(created, [])
        february.refresh_from_db()
        self.assertEqual(february.previous, january)
        self.assertEqual(february.carried_over, Decimal('1000.00'))
        self.assertEqual(february.limit_amount, Decimal('2000.00'))

    def test_rollover_command_dry_run(self):
        self._budget('1000')
        out = StringIO()
        call_command('rollover_budgets', '--date', '2024-02-10', '--dry-run', stdout=out)
        self.assertIn('would be created', out.getvalue())
        self.assertEqual(Budget.objects.count(), 1)

        call_command('rollover_budgets', '--date', '2024-02-10', stdout=StringIO())
        self.assertEqual(Budget.objects.count(), 2)


class CreditCardTests(TestCase):
    """Minimum payment, interest and planned card payments"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.card = TestDataFactory.create_credit_card(
            self.organization,
            credit_limit=Decimal('50000.00'),
            balance=Decimal('40000.00'),
            interest_rate=Decimal('36.50'),
            min_payment_percent=Decimal('5.00'),
            min_payment_amount=Decimal('1000.00'),
            payment_due_day=15,
        )

    def test_debt(self):
        self.assertEqual(self.card.debt, Decimal('10000.00'))

    def test_minimum_payment_uses_larger_rule(self):
        self.assertEqual(credit_cards.minimum_payment(self.card), Decimal('1000.00'))
        self.card.balance = Decimal('0.00')
        self.assertEqual(credit_cards.minimum_payment(self.card), Decimal('2500.00'))

    def test_minimum_payment_capped_by_debt(self):
        self.card.balance = Decimal('49500.00')
        self.assertEqual(credit_cards.minimum_payment(self.card), Decimal('500.00'))

    def test_minimum_payment_without_rules_is_whole_debt(self):
        self.card.min_payment_percent = Decimal('0.00')
        self.card.min_payment_amount = Decimal('0.00')
        self.assertEqual(credit_cards.minimum_payment(self.card), Decimal('10000.00'))

    def test_next_due_date(self):
        self.assertEqual(credit_cards.next_due_date(self.card, date(2024, 3, 10)), date(2024, 3, 15))
        self.assertEqual(credit_cards.next_due_date(self.card, date(2024, 3, 15)), date(2024, 3, 15))
        self.assertEqual(credit_cards.next_due_date(self.card, date(2024, 3, 16)), date(2024, 4, 15))

    def test_next_due_date_clamps_to_month_end(self):
        self.card.payment_due_day = 31
        self.assertEqual(credit_cards.next_due_date(self.card, date(2024, 2, 10)), date(2024, 2, 29))

    def test_accrued_interest_respects_grace_period(self):
        # 2024-02-15 .. 2024-03-15 is 29 days
        self.assertEqual(credit_cards.accrued_interest(self.card, date(2024, 3, 15)), Decimal('290.00'))
        self.card.grace_period_days = 9
        self.assertEqual(credit_cards.accrued_interest(self.card, date(2024, 3, 15)), Decimal('200.00'))
        self.card.grace_period_days = 60
        self.assertEqual(credit_cards.accrued_interest(self.card, date(2024, 3, 15)), Decimal('0.00'))

    def test_generate_is_idempotent(self):
        created = credit_cards.generate_card_payments(date(2024, 3, 10))
        self.assertEqual(len(created), 1)
        payment = created[0]
        self.assertEqual(payment.due_date, date(2024, 3, 15))
        self.assertEqual(payment.principal_amount, Decimal('1000.00'))
        self.assertEqual(payment.interest_amount, Decimal('290.00'))
        self.assertEqual(payment.total_amount, Decimal('1290.00'))
        self.assertEqual(credit_cards.generate_card_payments(date(2024, 3, 10)), [])

    def test_generate_skips_cards_without_debt(self):
        self.card.balance = self.card.credit_limit
        self.card.save()
        self.assertEqual(credit_cards.generate_card_payments(date(2024, 3, 10)), [])

    def test_pay_from_source_account(self):
        source = TestDataFactory.create_account(self.organization, balance=Decimal('5000.00'))
        payment = credit_cards.generate_card_payments(date(2024, 3, 10))[0]
        paid = credit_cards.pay_scheduled_payment(payment, source_account=source, paid_at=date(2024, 3, 14))

        self.assertEqual(paid.status, 'paid')
        self.assertEqual(paid.paid_at, date(2024, 3, 14))
        source.refresh_from_db()
        self.card.refresh_from_db()
        self.assertEqual(source.balance, Decimal('3710.00'))
        self.assertEqual(self.card.balance, Decimal('41290.00'))

        with self.assertRaises(ValueError):
            credit_cards.pay_scheduled_payment(paid)

    def test_generate_command(self):
        out = StringIO()
        call_command('generate_card_payments', '--date', '2024-03-10', stdout=out)
        self.assertIn('1 card payments planned', out.getvalue())
        self.assertEqual(ScheduledPayment.objects.count(), 1)


class CsvTests(TestCase):
    """Bank statement parsing, import and export"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.account = TestDataFactory.create_account(self.organization, balance=Decimal('0.00'))

    def test_parse_statement(self):
        parsed = csv_io.parse_bank_statement(STATEMENT)
        self.assertEqual(parsed['errors'], [])
        operations = parsed['operations']
        self.assertEqual(len(operations), 4)
        self.assertEqual(operations[0]['row'], 2)
        self.assertEqual(operations[0]['date'], date(2024, 3, 5))
        self.assertEqual(operations[1]['amount'], Decimal('-1200.50'))
        self.assertEqual(operations[2]['direction'], 'income')
        self.assertEqual(operations[2]['bank_category'], 'Transfers')

    def test_parse_reports_bad_rows(self):
        content = '\n'.join([
            'header',
            statement_row('31.02.2024', '-10,00', 'Broken date'),
            statement_row('01.03.2024', 'abc', 'Broken amount'),
            statement_row('01.03.2024', '0', 'Zero amount'),
            statement_row('', '-10,00', 'No date'),
            statement_row('01.03.2024', '-10,00', ''),
        ])
        parsed = csv_io.parse_bank_statement(content)
        self.assertEqual(parsed['operations'], [])
        self.assertEqual([e['row'] for e in parsed['errors']], [2, 3, 4])
        self.assertEqual(parsed['skipped'], 2)

    def test_decode_cp1251(self):
        self.assertEqual(csv_io.decode_upload('Кофе'.encode('cp1251')), 'Кофе')
        self.assertEqual(csv_io.decode_upload(b'\xef\xbb\xbfCoffee'), 'Coffee')

    def test_summarize_groups_descriptions(self):
        summary = csv_io.summarize_operations(csv_io.parse_bank_statement(STATEMENT)['operations'])
        self.assertEqual(summary['total_income'], Decimal('25000.00'))
        self.assertEqual(summary['total_expense'], Decimal('1700.50'))
        self.assertEqual(summary['groups'][0]['description'], 'Coffee shop')
        self.assertEqual(summary['groups'][0]['count'], 2)

    def test_import_with_assignments_and_merge(self):
        coffee = TestDataFactory.create_category(self.organization, name='Coffee')
        groceries = TestDataFactory.create_category(self.organization, name='Groceries')
        operations = csv_io.parse_bank_statement(STATEMENT)['operations']

        result = csv_io.import_operations(
            self.account,
            operations,
            category_assignments={'Coffee shop': coffee.id},
            merges=[{'rows': [2, 5], 'category': coffee.id, 'note': 'Coffee for the week'}],
            excluded_rows=[4],
        )
        self.assertEqual(result['created'], 2)
        merged = Transaction.objects.get(note='Coffee for the week')
        self.assertEqual(merged.amount, Decimal('500.00'))
        self.assertEqual(merged.occurred_at, date(2024, 3, 8))
        grocery = Transaction.objects.get(note='Supermarket')
        self.assertEqual(grocery.category, groceries)
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('-1700.50'))

    def test_import_is_atomic(self):
        operations = csv_io.parse_bank_statement(STATEMENT)['operations']
        with self.assertRaises(ValueError):
            csv_io.import_operations(self.account, operations, category_assignments={'Salary': 999999})
        self.assertEqual(Transaction.objects.count(), 0)
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('0.00'))

    def test_export(self):
        category = TestDataFactory.create_category(self.organization, name='Food')
        TestDataFactory.create_transaction(
            self.account, 'expense', Decimal('12.50'), occurred_at=date(2024, 1, 2), category=category, note='Lunch'
        )
        content = csv_io.export_transactions_csv(Transaction.objects.all())
        lines = content.strip().splitlines()
        self.assertEqual(lines[0], 'date;direction;amount;currency;category;account;note')
        self.assertEqual(lines[1], f'2024-01-02;expense;12.50;RUB;Food;{self.account.name};Lunch')


class FinanceAPITests(TestCase):
    """Finance endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user, organization=self.organization)
        self.account = TestDataFactory.create_account(self.organization, name='Main', balance=Decimal('1000.00'))

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/finance/accounts/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_credit_card_defaults_balance_to_limit(self):
        data = {'name': 'Visa', 'account_type': 'credit_card', 'credit_limit': '50 000,00', 'payment_due_day': 10}
        response = self.client.post('/api/v1/finance/accounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['balance'], '50000.00')
        self.assertEqual(response.data['debt'], '0.00')
        self.assertTrue(AuditLog.objects.filter(model_name='Account', action='create').exists())

    def test_credit_card_requires_limit(self):
        data = {'name': 'Visa', 'account_type': 'credit_card'}
        response = self.client.post('/api/v1/finance/accounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('credit_limit', response.data)

    def test_balance_cannot_be_edited(self):
        response = self.client.patch(f'/api/v1/finance/accounts/{self.account.id}/', {'balance': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_account_with_transactions(self):
        TestDataFactory.create_transaction(self.account)
        response = self.client.delete(f'/api/v1/finance/accounts/{self.account.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Account.objects.filter(pk=self.account.pk).exists())

    def test_create_and_list_transactions(self):
        category = TestDataFactory.create_category(self.organization)
        data = {
            'account': self.account.id,
            'category': category.id,
            'direction': 'expense',
            'amount': '199,90',
            'occurred_at': '2024-05-01',
            'note': 'Taxi',
        }
        response = self.client.post('/api/v1/finance/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount'], '199.90')
        self.account.refresh_from_db()
        self.assertEqual(self.account.balance, Decimal('800.10'))

        response = self.client.get('/api/v1/finance/transactions/?search=taxi')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['category_name'], category.name)

    def test_transaction_with_foreign_account_rejected(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        foreign = TestDataFactory.create_account(other)
        data = {'account': foreign.id, 'direction': 'expense', 'amount': '10', 'occurred_at': '2024-05-01'}
        response = self.client.post('/api/v1/finance/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('account', response.data)

    def test_other_organization_objects_are_not_found(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        foreign = TestDataFactory.create_account(other)
        response = self.client.get(f'/api/v1/finance/accounts/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_foreign_organization_header_forbidden(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        self.client.authenticate_user(self.user, organization=other)
        response = self.client.get('/api/v1/finance/accounts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_mode_must_be_enabled(self):
        user = TestDataFactory.create_user()
        TestDataFactory.add_member(user, self.organization, modes=['loans'], is_default=True)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/finance/accounts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_viewer_is_read_only(self):
        viewer = TestDataFactory.create_user()
        TestDataFactory.add_member(viewer, self.organization, role='viewer', is_default=True)
        self.client.authenticate_user(viewer)
        self.assertEqual(self.client.get('/api/v1/finance/accounts/').status_code, status.HTTP_200_OK)
        response = self.client.post('/api/v1/finance/accounts/', {'name': 'Cash', 'account_type': 'cash'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_add_funds_endpoint(self):
        TestDataFactory.create_stash(self.account, target_amount=Decimal('1000.00'), balance=Decimal('800.00'))
        response = self.client.post(f'/api/v1/finance/accounts/{self.account.id}/add-funds/', {'amount': '500'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stash_repaid'], '200.00')
        self.assertEqual(response.data['card_amount'], '300.00')
        self.assertEqual(response.data['balance'], '1300.00')

    def test_stash_transfer_insufficient(self):
        TestDataFactory.create_stash(self.account, balance=Decimal('10.00'))
        response = self.client.post(
            f'/api/v1/finance/accounts/{self.account.id}/stash/transfer/',
            {'direction': 'from_stash', 'amount': '20'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient funds in stash')

    def test_budget_create_rejects_reversed_period(self):
        category = TestDataFactory.create_category(self.organization)
        data = {'category': category.id, 'period_start': '2024-02-01', 'period_end': '2024-01-01', 'limit_amount': '100'}
        response = self.client.post('/api/v1/finance/budgets/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_budget_alerts_with_bad_date(self):
        response = self.client.get('/api/v1/finance/budgets/alerts/?date=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_budget_rollover_endpoint(self):
        TestDataFactory.create_budget(
            self.organization, limit_amount=Decimal('100.00'),
            period_start=date(2024, 1, 1), period_end=date(2024, 1, 31), rollover=True,
        )
        response = self.client.post('/api/v1/finance/budgets/rollover/?date=2024-02-05')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['budgets'][0]['carried_over'], '100.00')

    def test_import_preview_and_import(self):
        response = self.client.post('/api/v1/finance/transactions/import/preview/', {'content': STATEMENT}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['operations']), 4)
        self.assertEqual(response.data['summary']['total_income'], '25000.00')

        response = self.client.post(
            '/api/v1/finance/transactions/import/',
            {'account': self.account.id, 'content': STATEMENT, 'excluded_rows': [4]},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 3)
        self.assertEqual(Transaction.objects.filter(import_batch=response.data['batch']).count(), 3)

    def test_export_endpoint(self):
        TestDataFactory.create_transaction(self.account, 'income', Decimal('10.00'), occurred_at=date(2024, 1, 1))
        response = self.client.get('/api/v1/finance/transactions/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('text/csv', response['Content-Type'])
        self.assertIn('2024-01-01;income;10.00', response.content.decode())

    def test_transaction_list_rejects_bad_pagination(self):
        response = self.client.get('/api/v1/finance/transactions/?limit=0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

        response = self.client.get('/api/v1/finance/transactions/?page=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/v1/finance/transactions/?page=1&limit=10')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['page_size'], 10)

    def test_card_payment_flow(self):
        card = TestDataFactory.create_credit_card(
            self.organization, credit_limit=Decimal('10000.00'), balance=Decimal('8000.00'), payment_due_day=20,
            min_payment_amount=Decimal('500.00'),
        )
        response = self.client.post('/api/v1/finance/card-payments/generate/?date=2024-04-01')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], 1)
        payment_id = response.data['payments'][0]['id']

        response = self.client.post(
            f'/api/v1/finance/card-payments/{payment_id}/pay/',
            {'source_account': self.account.id},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'paid')
        card.refresh_from_db()
        self.assertEqual(card.balance, Decimal('8500.00'))

        response = self.client.post(f'/api/v1/finance/card-payments/{payment_id}/skip/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
