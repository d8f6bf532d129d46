"""
Test suite for the Tenders module
Tests: status transitions, planned profit, soft delete, stages and dashboard
"""
from datetime import date, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.tenders.models import Tender, TenderStage
from backoffice.tenders import services


class TenderServiceTests(TestCase):
    """Pipeline rules"""

    def setUp(self):
        self.organization = TestDataFactory.create_organization(owner=TestDataFactory.create_user())

    def test_planned_profit(self):
        tender = Tender(our_price=Decimal('90000.00'), purchase_cost=Decimal('60000.00'),
                        logistics_cost=Decimal('5000.00'), other_costs=Decimal('1000.00'))
        self.assertEqual(services.calculate_planned_profit(tender), Decimal('24000.00'))
        self.assertIsNone(services.calculate_planned_profit(Tender()))

    def test_won_defaults_contract_price_to_our_price(self):
        tender = TestDataFactory.create_tender(self.organization, our_price=Decimal('95000.00'))
        services.change_status(tender, 'won', today=date(2024, 5, 1))
        tender.refresh_from_db()
        self.assertEqual(tender.status, 'won')
        self.assertEqual(tender.contract_price, Decimal('95000.00'))
        self.assertEqual(tender.results_date, date(2024, 5, 1))

    def test_won_requires_price(self):
        tender = TestDataFactory.create_tender(self.organization)
        with self.assertRaisesMessage(ValueError, 'Contract price is required'):
            services.change_status(tender, 'won')
        services.change_status(tender, 'won', contract_price=Decimal('80000.00'))
        self.assertEqual(tender.contract_price, Decimal('80000.00'))

    def test_transitions(self):
        tender = TestDataFactory.create_tender(self.organization)
        services.change_status(tender, 'lost')
        with self.assertRaises(ValueError):
            services.change_status(tender, 'active')
        with self.assertRaises(ValueError):
            services.change_status(tender, 'lost')
        services.change_status(tender, 'archived')
        services.change_status(tender, 'active')
        self.assertEqual(tender.status, 'active')

    def test_dashboard(self):
        today = date(2024, 6, 1)
        TestDataFactory.create_tender(self.organization, submission_deadline=date(2024, 6, 5))
        TestDataFactory.create_tender(self.organization, submission_deadline=date(2024, 7, 30))
        TestDataFactory.create_tender(self.organization, status='won', contract_price=Decimal('50000.00'))
        TestDataFactory.create_tender(self.organization, status='lost')
        TestDataFactory.create_tender(self.organization, status='lost')
        deleted = TestDataFactory.create_tender(self.organization, status='won', contract_price=Decimal('1.00'))
        services.soft_delete(deleted)

        data = services.tender_dashboard(self.organization, today)
        self.assertEqual(data['total'], 5)
        self.assertEqual(data['by_status'], {'active': 2, 'won': 1, 'lost': 2, 'archived': 0})
        self.assertEqual(data['win_rate'], Decimal('33.33'))
        self.assertEqual(data['won_contract_value'], Decimal('50000.00'))
        self.assertEqual(len(data['upcoming_deadlines']), 1)
        self.assertEqual(data['upcoming_deadlines'][0]['days_left'], 4)

    def test_system_stages_seeded(self):
        stages = services.stages_for(self.organization)
        self.assertTrue(stages.filter(organization__isnull=True, is_final=True).exists())
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        TenderStage.objects.create(organization=other, name='Foreign')
        self.assertFalse(stages.filter(name='Foreign').exists())


class TenderAPITests(TestCase):
    """Tender endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_rejects_bad_pagination(self):
        response = self.client.get('/api/v1/tenders/?limit=0')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/tenders/?page=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_derives_planned_profit(self):
        data = {
            'purchase_number': '0373200000124000001',
            'subject': 'Paper',
            'customer': 'School 5',
            'nmck': '100 000,00',
            'our_price': '90000',
            'purchase_cost': '70000',
            'logistics_cost': '2000',
        }
        response = self.client.post('/api/v1/tenders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['planned_profit'], '18000.00')
        self.assertEqual(response.data['status'], 'active')

        response = self.client.post('/api/v1/tenders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('purchase_number', response.data)

    def test_price_above_nmck_rejected(self):
        data = {'purchase_number': '1', 'subject': 'X', 'customer': 'Y', 'nmck': '100', 'our_price': '150'}
        response = self.client.post('/api/v1/tenders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_and_soft_delete(self):
        TestDataFactory.create_tender(self.organization, customer='Regional Clinic')
        hidden = TestDataFactory.create_tender(self.organization, customer='Airport')
        response = self.client.get('/api/v1/tenders/?search=clinic')
        self.assertEqual(response.data['count'], 1)

        response = self.client.delete(f'/api/v1/tenders/{hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        hidden.refresh_from_db()
        self.assertIsNotNone(hidden.deleted_at)

        response = self.client.get('/api/v1/tenders/')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'/api/v1/tenders/{hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_costs_recomputes_profit(self):
        tender = TestDataFactory.create_tender(self.organization, our_price=Decimal('50000.00'),
                                               planned_profit=Decimal('50000.00'))
        response = self.client.patch(f'/api/v1/tenders/{tender.id}/', {'purchase_cost': '30000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['planned_profit'], '20000.00')

    def test_status_endpoint(self):
        tender = TestDataFactory.create_tender(self.organization, our_price=Decimal('70000.00'))
        response = self.client.post(f'/api/v1/tenders/{tender.id}/status/', {'status': 'won'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['contract_price'], '70000.00')
        self.assertTrue(AuditLog.objects.filter(action='status_change', model_name='Tender').exists())

        response = self.client.post(f'/api/v1/tenders/{tender.id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_system_stage_is_read_only(self):
        stage = TenderStage.objects.filter(organization__isnull=True).first()
        response = self.client.get(f'/api/v1/tenders/stages/{stage.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_system'])
        response = self.client.patch(f'/api/v1/tenders/stages/{stage.id}/', {'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post('/api/v1/tenders/stages/', {'name': 'Negotiation', 'order': 35}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_system'])

    def test_dashboard_endpoint(self):
        TestDataFactory.create_tender(self.organization, submission_deadline=timezone.localdate() + timedelta(days=3))
        response = self.client.get('/api/v1/tenders/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['by_status']['active'], 1)
        self.assertEqual(len(response.data['upcoming_deadlines']), 1)

    def test_mode_required(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_organization(owner=user, modes=['finance'])
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/tenders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
