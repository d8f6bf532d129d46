"""
Test suite for the Suppliers module
Tests: CSV parsing, column mapping, row validation, duplicate handling and the API
"""
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework import status

from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.suppliers.models import Supplier, SupplierImport
from backoffice.suppliers import import_service

CSV_RU = (
    "Название;ИНН;Email;Рейтинг;Статус;Теги\n"
    "Альфа;7707123456;info@alfa.ru;5;активный;metal, fast\n"
    ";7707000000;;;;\n"
    "Beta;123;bad;9;;\n"
)


class ImportParsingTests(TestCase):
    """Header matching and row validation"""

    def test_suggest_mapping_exact_and_partial(self):
        mapping = import_service.suggest_column_mapping(
            ['Название', 'ИНН', 'Company email', 'Short name', 'Unrelated']
        )
        self.assertEqual(mapping['name'], 'Название')
        self.assertEqual(mapping['inn'], 'ИНН')
        self.assertEqual(mapping['email'], 'Company email')
        self.assertEqual(mapping['short_name'], 'Short name')
        self.assertNotIn('Unrelated', mapping.values())

    def test_read_csv_detects_delimiter_and_bom(self):
        headers, rows = import_service.read_csv('\ufeffname,inn\nAcme,7707123456\n\nBeta,\n')
        self.assertEqual(headers, ['name', 'inn'])
        self.assertEqual(rows, [(2, {'name': 'Acme', 'inn': '7707123456'}), (4, {'name': 'Beta', 'inn': ''})])

        headers, rows = import_service.read_csv('name;inn\n"Acme, LLC";7707123456\n')
        self.assertEqual(rows[0][1]['name'], 'Acme, LLC')

    def test_read_csv_empty(self):
        self.assertEqual(import_service.read_csv('  '), ([], []))

    def test_validate_row(self):
        self.assertEqual(import_service.validate_row({'name': 'Acme', 'inn': '770712345612', 'rating': '0'}), [])
        errors = import_service.validate_row({'name': '', 'inn': '12345', 'email': 'x@y', 'rating': 'five'})
        self.assertEqual(errors, [
            'Name is required',
            'Invalid INN: 12345',
            'Invalid email: x@y',
            'Rating must be a whole number from 0 to 5: five',
        ])

    def test_status_and_tags(self):
        self.assertEqual(import_service.parse_status('Чёрный список'), 'blacklisted')
        self.assertEqual(import_service.parse_status('unknown', default='inactive'), 'inactive')
        self.assertEqual(import_service.parse_tags('a, b;c,,'), ['a', 'b', 'c'])

    def test_template(self):
        template = import_service.import_template()
        self.assertTrue(template.startswith('\ufeffName;Short name;INN'))


class SupplierImportTests(TestCase):
    """Import runs against the database"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)

    def test_import_counts_created_and_errors(self):
        record = import_service.import_suppliers(self.organization, CSV_RU, user=self.user)
        self.assertEqual(record.status, 'completed')
        self.assertEqual(record.total_rows, 3)
        self.assertEqual(record.created_count, 1)
        self.assertEqual(record.error_count, 2)
        self.assertEqual([error['row'] for error in record.errors], [3, 4, 4, 4])
        self.assertIsNotNone(record.completed_at)

        supplier = Supplier.objects.get(organization=self.organization)
        self.assertEqual(supplier.name, 'Альфа')
        self.assertEqual(supplier.rating, 5)
        self.assertEqual(supplier.tags, ['metal', 'fast'])
        self.assertEqual(supplier.status, 'active')
        self.assertEqual(supplier.created_by, self.user)

    def test_duplicates_skipped_by_default(self):
        TestDataFactory.create_supplier(self.organization, name='Old name', inn='7707123456')
        record = import_service.import_suppliers(self.organization, CSV_RU)
        self.assertEqual(record.duplicate_count, 1)
        self.assertEqual(record.created_count, 0)
        self.assertEqual(Supplier.objects.filter(organization=self.organization).count(), 1)

    def test_update_existing(self):
        existing = TestDataFactory.create_supplier(self.organization, name='Old name', inn='7707123456',
                                                   status='inactive')
        record = import_service.import_suppliers(self.organization, CSV_RU, update_existing=True)
        self.assertEqual(record.updated_count, 1)
        existing.refresh_from_db()
        self.assertEqual(existing.name, 'Альфа')
        self.assertEqual(existing.email, 'info@alfa.ru')
        self.assertEqual(existing.status, 'active')

    def test_duplicates_created_when_not_skipped(self):
        TestDataFactory.create_supplier(self.organization, name='Gamma')
        record = import_service.import_suppliers(self.organization, 'name\ngamma\n', skip_duplicates=False)
        self.assertEqual(record.duplicate_count, 1)
        self.assertEqual(record.created_count, 1)
        self.assertEqual(Supplier.objects.filter(organization=self.organization, name__iexact='gamma').count(), 2)

    def test_duplicates_inside_file(self):
        record = import_service.import_suppliers(self.organization, 'name;inn\nDelta;\nDELTA;\n')
        self.assertEqual(record.created_count, 1)
        self.assertEqual(record.duplicate_count, 1)

    def test_deleted_and_foreign_suppliers_are_not_duplicates(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        TestDataFactory.create_supplier(other, name='Delta')
        record = import_service.import_suppliers(self.organization, 'name\nDelta\n')
        self.assertEqual(record.created_count, 1)
        self.assertEqual(record.duplicate_count, 0)

    def test_explicit_mapping_and_default_status(self):
        content = 'Vendor;Tax id\nOmega;500100732259\n'
        record = import_service.import_suppliers(
            self.organization, content, mapping={'name': 'Vendor', 'inn': 'Tax id'}, default_status='inactive'
        )
        self.assertEqual(record.created_count, 1)
        supplier = Supplier.objects.get(organization=self.organization)
        self.assertEqual(supplier.inn, '500100732259')
        self.assertEqual(supplier.status, 'inactive')

    def test_missing_name_column_fails(self):
        record = import_service.import_suppliers(self.organization, 'foo;bar\n1;2\n')
        self.assertEqual(record.status, 'failed')
        self.assertEqual(record.created_count, 0)
        self.assertFalse(Supplier.objects.exists())

    def test_preview_does_not_save(self):
        TestDataFactory.create_supplier(self.organization, inn='7707123456')
        preview = import_service.preview_import(self.organization, CSV_RU)
        self.assertEqual(preview['total_rows'], 3)
        self.assertEqual(preview['valid_rows'], 1)
        self.assertEqual(preview['error_rows'], 2)
        self.assertEqual(preview['duplicate_rows'], 1)
        self.assertTrue(preview['sample_rows'][0]['is_duplicate'])
        self.assertEqual(preview['suggested_mapping']['inn'], 'ИНН')
        self.assertEqual(Supplier.objects.count(), 1)
        self.assertFalse(SupplierImport.objects.exists())


class SupplierAPITests(TestCase):
    """Supplier endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.organization = TestDataFactory.create_organization(owner=self.user)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_rejects_bad_pagination(self):
        response = self.client.get('/api/v1/suppliers/?limit=-5')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/suppliers/imports/?page=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_supplier(self):
        data = {'name': 'Acme', 'inn': '7707123456', 'email': 'sales@acme.ru', 'rating': 4, 'tags': ['steel', ' ']}
        response = self.client.post('/api/v1/suppliers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['tags'], ['steel'])
        self.assertTrue(AuditLog.objects.filter(model_name='Supplier', action='create').exists())

    def test_create_validation(self):
        TestDataFactory.create_supplier(self.organization, inn='7707123456')
        response = self.client.post('/api/v1/suppliers/', {'name': 'X', 'inn': '7707123456'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('inn', response.data)

        response = self.client.post('/api/v1/suppliers/', {'name': 'X', 'inn': '12ab', 'rating': 7}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('inn', response.data)
        self.assertIn('rating', response.data)

    def test_list_search_and_filters(self):
        TestDataFactory.create_supplier(self.organization, name='Alpha Metals', category='Metal')
        TestDataFactory.create_supplier(self.organization, name='Beta Paper', status='blacklisted')
        deleted = TestDataFactory.create_supplier(self.organization, name='Alpha Old')
        self.client.delete(f'/api/v1/suppliers/{deleted.id}/')

        response = self.client.get('/api/v1/suppliers/?search=alpha')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['name'], 'Alpha Metals')

        response = self.client.get('/api/v1/suppliers/?status=blacklisted')
        self.assertEqual([row['name'] for row in response.data['results']], ['Beta Paper'])

        response = self.client.get('/api/v1/suppliers/categories/')
        self.assertEqual(response.data, ['Metal'])

    def test_soft_delete(self):
        supplier = TestDataFactory.create_supplier(self.organization)
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        supplier.refresh_from_db()
        self.assertIsNotNone(supplier.deleted_at)
        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_supplier(self):
        supplier = TestDataFactory.create_supplier(self.organization, name='Acme')
        response = self.client.patch(f'/api/v1/suppliers/{supplier.id}/', {'status': 'inactive'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        supplier.refresh_from_db()
        self.assertEqual(supplier.status, 'inactive')

    def test_other_organization_supplier_not_found(self):
        other = TestDataFactory.create_organization(owner=TestDataFactory.create_user())
        supplier = TestDataFactory.create_supplier(other)
        response = self.client.get(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_mode_required(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_organization(owner=user, modes=['finance'])
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/v1/suppliers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_import_from_content(self):
        response = self.client.post('/api/v1/suppliers/import/', {'content': CSV_RU}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created_count'], 1)
        self.assertEqual(response.data['error_count'], 2)

        response = self.client.get('/api/v1/suppliers/imports/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['file_name'], 'import.csv')

    def test_import_from_file(self):
        upload = SimpleUploadedFile('vendors.csv', 'name,inn\nAcme,7707123456\n'.encode('utf-8'), content_type='text/csv')
        response = self.client.post(
            '/api/v1/suppliers/import/',
            {'file': upload, 'skip_duplicates': 'true'},
            format='multipart',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['file_name'], 'vendors.csv')
        self.assertTrue(Supplier.objects.filter(organization=self.organization, inn='7707123456').exists())

    def test_import_requires_input(self):
        response = self.client.post('/api/v1/suppliers/import/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(
            '/api/v1/suppliers/import/',
            {'content': 'name\nA\n', 'column_mapping': {'colour': 'name'}},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_import_preview(self):
        response = self.client.post('/api/v1/suppliers/import/preview/', {'content': CSV_RU}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['valid_rows'], 1)
        self.assertFalse(Supplier.objects.exists())

    def test_template_download(self):
        response = self.client.get('/api/v1/suppliers/import/template/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('suppliers_template.csv', response['Content-Disposition'])
