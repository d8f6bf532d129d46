"""
Test suite for the Core module
Tests: authentication, organizations and memberships, tenancy, audit logs, money and period helpers
"""
import importlib
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, TestCase, RequestFactory
from rest_framework import status
from rest_framework.exceptions import PermissionDenied

from backoffice.core.models import AuditLog, Membership, Organization
from backoffice.core.money import percentage, to_money
from backoffice.core.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, parse_page_params
from backoffice.core.periods import add_months, months_between, period_range, quarter_range
from backoffice.core.tenancy import get_current_membership
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import create_audit_log, to_jsonable


class MoneyTests(TestCase):
    """Money parsing and rounding"""

    def test_to_money_parses_localized_strings(self):
        self.assertEqual(to_money('1 234,56'), Decimal('1234.56'))
        self.assertEqual(to_money('1\xa0000'), Decimal('1000.00'))
        self.assertEqual(to_money(10.005), Decimal('10.01'))
        self.assertEqual(to_money('-15.5', allow_negative=True), Decimal('-15.50'))

    def test_to_money_rejects_invalid_input(self):
        for value in ('', None, 'abc', True, 'NaN', 'Infinity', '-1'):
            with self.assertRaises(ValueError):
                to_money(value)
        self.assertIsNone(to_money('', allow_none=True))

    def test_percentage_of_zero_whole(self):
        self.assertEqual(percentage(Decimal('10'), Decimal('0')), Decimal('0.00'))
        self.assertEqual(percentage(Decimal('1'), Decimal('3')), Decimal('33.33'))


class PeriodTests(TestCase):
    """Calendar period helpers"""

    def test_add_months_clamps_day(self):
        self.assertEqual(add_months(date(2024, 1, 31), 1), date(2024, 2, 29))
        self.assertEqual(add_months(date(2024, 11, 15), 3), date(2025, 2, 15))
        self.assertEqual(add_months(date(2024, 3, 31), -1), date(2024, 2, 29))

    def test_months_between(self):
        self.assertEqual(months_between(date(2024, 1, 15), date(2025, 1, 15)), 12)
        self.assertEqual(months_between(date(2024, 1, 15), date(2024, 2, 14)), 0)
        self.assertEqual(months_between(date(2024, 1, 31), date(2024, 2, 29)), 1)
        self.assertEqual(months_between(date(2024, 5, 1), date(2024, 1, 1)), 0)

    def test_quarter_range(self):
        self.assertEqual(quarter_range(2024, 3), (date(2024, 7, 1), date(2024, 9, 30)))
        with self.assertRaises(ValueError):
            quarter_range(2024, 5)

    def test_period_range(self):
        today = date(2024, 5, 20)
        self.assertEqual(period_range('month', today), (date(2024, 5, 1), date(2024, 5, 31)))
        self.assertEqual(period_range('quarter', today), (date(2024, 4, 1), date(2024, 6, 30)))
        self.assertEqual(period_range('year', today), (date(2024, 1, 1), date(2024, 12, 31)))
        self.assertEqual(
            period_range('custom', today, '2024-01-10', '2024-02-10'),
            (date(2024, 1, 10), date(2024, 2, 10))
        )
        with self.assertRaises(ValueError):
            period_range('custom', today, '2024-03-01', '2024-02-01')
        with self.assertRaises(ValueError):
            period_range('custom', today, '2024-03-01')


class TenancyTests(TestCase):
    """Resolution of the current organization"""

    def setUp(self):
        self.factory = RequestFactory()
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)

    def _request(self, method='get', **extra):
        request = getattr(self.factory, method)('/', **extra)
        request.user = self.user
        return request

    def test_default_membership(self):
        membership = get_current_membership(self._request())
        self.assertEqual(membership.organization, self.organization)

    def test_header_selects_organization(self):
        second = TestDataFactory.create_organization(owner=self.user, is_default=False)
        membership = get_current_membership(self._request(HTTP_X_ORGANIZATION_ID=str(second.id)))
        self.assertEqual(membership.organization, second)

    def test_invalid_header(self):
        with self.assertRaises(PermissionDenied):
            get_current_membership(self._request(HTTP_X_ORGANIZATION_ID='abc'))

    def test_inactive_organization_hidden(self):
        self.organization.is_active = False
        self.organization.save()
        with self.assertRaises(PermissionDenied):
            get_current_membership(self._request())

    def test_viewer_cannot_write(self):
        Membership.objects.filter(user=self.user).update(role='viewer')
        self.assertIsNotNone(get_current_membership(self._request()))
        with self.assertRaises(PermissionDenied):
            get_current_membership(self._request('post'))

    def test_mode_check(self):
        Membership.objects.filter(user=self.user).update(modes=['finance'])
        self.assertIsNotNone(get_current_membership(self._request(), mode='finance'))
        with self.assertRaises(PermissionDenied):
            get_current_membership(self._request(), mode='tenders')


class AuditLogUtilsTests(TestCase):
    """Audit helper behaviour"""

    def test_missing_fields_skip_entry(self):
        self.assertIsNone(create_audit_log(action='create', model_name='Account'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_decimal_changes_are_stored(self):
        user = TestDataFactory.create_user()
        organization = TestDataFactory.create_organization(owner=user)
        log = create_audit_log(
            user=user, organization=organization, action='update', model_name='Account',
            object_id=1, changes={'amount': Decimal('10.50')},
        )
        log.refresh_from_db()
        self.assertEqual(log.changes['amount'], '10.50')

    def test_to_jsonable(self):
        data = to_jsonable({'when': date(2024, 1, 2), 'items': [Decimal('1.10'), None, True]})
        self.assertEqual(data, {'when': '2024-01-02', 'items': ['1.10', None, True]})


class PaginationParamsTests(SimpleTestCase):
    """Page/limit parsing"""

    def test_defaults(self):
        self.assertEqual(parse_page_params({}), (1, DEFAULT_PAGE_SIZE))

    def test_limit_is_capped(self):
        self.assertEqual(parse_page_params({'page': '2', 'limit': '10000'}), (2, MAX_PAGE_SIZE))

    def test_invalid_values(self):
        for params in ({'limit': '0'}, {'limit': '-1'}, {'page': 'abc'}, {'limit': '1.5'}):
            with self.assertRaises(ValueError):
                parse_page_params(params)


class ViewLoggerTests(SimpleTestCase):
    """View loggers hang under the configured backoffice logger"""

    def test_module_logger_names(self):
        for app in ('finance', 'loans', 'accounting', 'tenders', 'suppliers', 'investors', 'reports'):
            module = importlib.import_module(f'backoffice.{app}.views')
            self.assertEqual(module.logger.name, f'backoffice.{app}.views')


class AuthAPITests(TestCase):
    """Registration, login and profile endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_and_login(self):
        data = {
            'username': 'alice',
            'email': 'alice@test.com',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Str0ng-pass-123',
        }
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)

        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'alice', 'password': 'Str0ng-pass-123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('refresh', response.data)

    def test_register_password_mismatch(self):
        data = {'username': 'bob', 'password': 'Str0ng-pass-123', 'password_confirm': 'other-pass-123'}
        response = self.client.post('/api/v1/auth/register/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_lists_memberships(self):
        user = TestDataFactory.create_user()
        organization = TestDataFactory.create_organization(owner=user)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['memberships'][0]['organization']['id'], organization.id)
        self.assertTrue(response.data['memberships'][0]['can_write'])


class OrganizationAPITests(TestCase):
    """Organization and membership endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_organization_makes_owner(self):
        response = self.client.post('/api/v1/organizations/', {'name': 'Acme', 'inn': '7707083893'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        organization = Organization.objects.get(pk=response.data['id'])
        membership = Membership.objects.get(user=self.user, organization=organization)
        self.assertEqual(membership.role, 'owner')
        self.assertTrue(membership.is_default)
        self.assertEqual(set(membership.modes), set(Membership.ALL_MODES))
        self.assertTrue(organization.slug.startswith('acme'))

    def test_invalid_inn(self):
        response = self.client.post('/api/v1/organizations/', {'name': 'Acme', 'inn': '123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_member(self):
        organization = TestDataFactory.create_organization(owner=self.user)
        colleague = TestDataFactory.create_user()
        data = {'username': colleague.username, 'role': 'member', 'modes': ['finance', 'loans']}
        response = self.client.post(f'/api/v1/organizations/{organization.id}/members/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.post(f'/api/v1/organizations/{organization.id}/members/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_member_cannot_add_members(self):
        owner = TestDataFactory.create_user()
        organization = TestDataFactory.create_organization(owner=owner)
        TestDataFactory.add_member(self.user, organization, role='member')
        data = {'username': TestDataFactory.create_user().username, 'role': 'member', 'modes': []}
        response = self.client.post(f'/api/v1/organizations/{organization.id}/members/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_foreign_organization_not_found(self):
        organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/organizations/{organization.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AuditLogAPITests(TestCase):
    """Audit log visibility"""

    def setUp(self):
        self.owner = TestDataFactory.create_user()
        self.member = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.owner)
        TestDataFactory.add_member(self.member, self.organization, role='member', is_default=True)
        create_audit_log(user=self.owner, organization=self.organization, action='create',
                         model_name='Account', object_id=1)
        create_audit_log(user=self.member, organization=self.organization, action='update',
                         model_name='Budget', object_id=2)
        self.client = AuthenticatedAPIClient()

    def test_manager_sees_all_entries(self):
        self.client.authenticate_user(self.owner)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        response = self.client.get('/api/v1/audit-logs/?model=Budget')
        self.assertEqual(len(response.data), 1)

    def test_member_sees_own_entries(self):
        self.client.authenticate_user(self.member)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['model_name'], 'Budget')

        foreign = AuditLog.objects.get(model_name='Account')
        response = self.client.get(f'/api/v1/audit-logs/{foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
