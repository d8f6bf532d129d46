"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.core.models import Organization, Membership
from backoffice.finance.models import Account, Category, Budget, Stash
from backoffice.finance.services import create_transaction
from backoffice.loans.models import Loan
from backoffice.loans.services import initialize_loan
from backoffice.tenders.models import Tender
from backoffice.accounting.models import Counterparty, AccountingDocument, KudirEntry, TaxPayment
from backoffice.suppliers.models import Supplier
from backoffice.investors.models import InvestmentSource, Investment
from backoffice.investors.services import initialize_investment
from backoffice.core.periods import month_range
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )
        return user

    @staticmethod
    def create_organization(owner=None, name=None, role='owner', modes=None, tax_regime='usn6', is_default=True):
        """Create a test organization; ``owner`` becomes a member with ``role``"""
        if not name:
            name = f'Org_{TestDataFactory.random_string(6)}'
        organization = Organization.objects.create(
            name=name,
            slug=f'org-{TestDataFactory.random_string(8).lower()}',
            tax_regime=tax_regime,
            created_by=owner,
        )
        if owner is not None:
            TestDataFactory.add_member(owner, organization, role=role, modes=modes, is_default=is_default)
        return organization

    @staticmethod
    def add_member(user, organization, role='member', modes=None, is_default=False):
        """Give a user access to an organization"""
        return Membership.objects.create(
            user=user,
            organization=organization,
            role=role,
            modes=list(Membership.ALL_MODES) if modes is None else modes,
            is_default=is_default,
        )

    @staticmethod
    def create_category(organization, name=None, kind='expense'):
        """Create a test finance category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(organization=organization, name=name, kind=kind)

    @staticmethod
    def create_account(organization, name=None, account_type='card', balance=None, **extra):
        """Create a test account"""
        if not name:
            name = f'Account_{TestDataFactory.random_string(6)}'
        if balance is None:
            balance = Decimal('0.00')
        return Account.objects.create(
            organization=organization,
            name=name,
            account_type=account_type,
            balance=balance,
            **extra
        )

    @staticmethod
    def create_credit_card(organization, credit_limit=None, balance=None, **extra):
        """Create a test credit card; balance defaults to the full limit"""
        if credit_limit is None:
            credit_limit = Decimal('100000.00')
        if balance is None:
            balance = credit_limit
        return TestDataFactory.create_account(
            organization,
            account_type='credit_card',
            credit_limit=credit_limit,
            balance=balance,
            **extra
        )

    @staticmethod
    def create_stash(account, target_amount=None, balance=None):
        """Create a test stash on an account"""
        return Stash.objects.create(
            account=account,
            target_amount=target_amount if target_amount is not None else Decimal('50000.00'),
            balance=balance if balance is not None else Decimal('0.00'),
        )

    @staticmethod
    def create_transaction(account, direction='expense', amount=None, occurred_at=None, category=None, user=None, note=''):
        """Create a test transaction through the balance-updating service"""
        if amount is None:
            amount = Decimal('100.00')
        return create_transaction(
            account, direction, amount,
            occurred_at=occurred_at or timezone.localdate(),
            category=category,
            user=user,
            note=note,
        )

    @staticmethod
    def create_budget(organization, category=None, limit_amount=None, period_start=None, period_end=None, rollover=False):
        """Create a test budget; defaults to the current calendar month"""
        if category is None:
            category = TestDataFactory.create_category(organization)
        if limit_amount is None:
            limit_amount = Decimal('10000.00')
        if period_start is None or period_end is None:
            today = timezone.localdate()
            period_start, period_end = month_range(today.year, today.month)
        return Budget.objects.create(
            organization=organization,
            category=category,
            limit_amount=limit_amount,
            period_start=period_start,
            period_end=period_end,
            rollover=rollover,
        )

    @staticmethod
    def create_loan(organization, principal_amount=None, interest_rate=None, term_months=12,
                    issue_date=None, payment_type='annuity', name=None):
        """Create a test loan with its schedule"""
        loan = Loan(
            organization=organization,
            name=name or f'Loan_{TestDataFactory.random_string(6)}',
            bank='Test Bank',
            principal_amount=principal_amount if principal_amount is not None else Decimal('100000.00'),
            interest_rate=interest_rate if interest_rate is not None else Decimal('12.00'),
            term_months=term_months,
            issue_date=issue_date or timezone.localdate(),
            payment_type=payment_type,
        )
        return initialize_loan(loan)

    @staticmethod
    def create_tender(organization, purchase_number=None, status='active', nmck=None, our_price=None, **extra):
        """Create a test tender"""
        return Tender.objects.create(
            organization=organization,
            purchase_number=purchase_number or f'{random.randint(10**9, 10**10 - 1)}',
            subject=extra.pop('subject', 'Office supplies'),
            customer=extra.pop('customer', 'City Hospital'),
            status=status,
            nmck=nmck if nmck is not None else Decimal('100000.00'),
            our_price=our_price,
            **extra
        )

    @staticmethod
    def create_counterparty(organization, name=None, inn=''):
        """Create a test counterparty"""
        return Counterparty.objects.create(
            organization=organization,
            name=name or f'Counterparty_{TestDataFactory.random_string(6)}',
            inn=inn,
        )

    @staticmethod
    def create_document(organization, document_type='invoice', total_amount=None, date=None,
                        counterparty=None, payment_status='unpaid', payment_date=None, **extra):
        """Create a test accounting document; paid documents get their total as paid amount"""
        total_amount = total_amount if total_amount is not None else Decimal('10000.00')
        return AccountingDocument.objects.create(
            organization=organization,
            document_type=document_type,
            number=extra.pop('number', TestDataFactory.random_string(6)),
            date=date or timezone.localdate(),
            total_amount=total_amount,
            payment_status=payment_status,
            paid_amount=total_amount if payment_status == 'paid' else Decimal('0.00'),
            payment_date=payment_date,
            counterparty=counterparty,
            **extra
        )

    @staticmethod
    def create_kudir_entry(organization, entry_date=None, income=None, expense=None, description='Payment', **extra):
        """Create a test KUDIR entry with the next number"""
        number = KudirEntry.objects.filter(organization=organization).count() + 1
        return KudirEntry.objects.create(
            organization=organization,
            entry_number=number,
            entry_date=entry_date or timezone.localdate(),
            description=description,
            income=income or Decimal('0.00'),
            expense=expense or Decimal('0.00'),
            **extra
        )

    @staticmethod
    def create_tax_payment(organization, tax_type='usn_advance', period=None, due_date=None,
                           amount=None, status='pending', paid_amount=None):
        """Create a test tax payment"""
        return TaxPayment.objects.create(
            organization=organization,
            tax_type=tax_type,
            tax_name=dict(TaxPayment.TAX_TYPE_CHOICES)[tax_type],
            period=period or str(timezone.localdate().year),
            due_date=due_date or timezone.localdate(),
            amount=amount,
            status=status,
            paid_amount=paid_amount or Decimal('0.00'),
        )

    @staticmethod
    def create_supplier(organization, name=None, inn='', status='active', **extra):
        """Create a test supplier"""
        return Supplier.objects.create(
            organization=organization,
            name=name or f'Supplier_{TestDataFactory.random_string(6)}',
            inn=inn,
            status=status,
            **extra
        )

    @staticmethod
    def create_investment_source(organization, name=None, source_type='private'):
        """Create a test investment source"""
        return InvestmentSource.objects.create(
            organization=organization,
            name=name or f'Investor_{TestDataFactory.random_string(6)}',
            source_type=source_type,
        )

    @staticmethod
    def create_investment(organization, source=None, principal=None, interest_rate=None, interest_type='annual',
                          investment_date=None, due_date=None, schedule_type='single', **extra):
        """Create a test investment with its return schedule"""
        investment_date = investment_date or timezone.localdate()
        investment = Investment(
            organization=organization,
            source=source or TestDataFactory.create_investment_source(organization),
            principal=principal if principal is not None else Decimal('100000.00'),
            interest_rate=interest_rate if interest_rate is not None else Decimal('12.00'),
            interest_type=interest_type,
            investment_date=investment_date,
            due_date=due_date or investment_date + timedelta(days=365),
            schedule_type=schedule_type,
            **extra
        )
        return initialize_investment(investment)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user, organization=None):
        """Authenticate the client with a user, optionally pinning the organization"""
        refresh = RefreshToken.for_user(user)
        credentials = {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}
        if organization is not None:
            credentials['HTTP_X_ORGANIZATION_ID'] = str(organization.id)
        self.credentials(**credentials)
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
