from django.urls import path
from .views import (
    counterparty_list_create, counterparty_detail,
    document_list_create, document_detail, document_pay,
    kudir_list_create, kudir_detail, kudir_summary, kudir_sync, kudir_export,
    tax_list_create, tax_detail, tax_pay, tax_upcoming, tax_overdue, tax_generate, tax_statistics, tax_deadlines,
    calculate_usn6, calculate_usn15, calculate_vat, calculate_ip_insurance, calculate_employee_insurance,
    accounting_report,
)

urlpatterns = [
    # Counterparty endpoints
    path('accounting/counterparties/', counterparty_list_create, name='counterparty-list-create'),
    path('accounting/counterparties/<int:pk>/', counterparty_detail, name='counterparty-detail'),

    # Document endpoints
    path('accounting/documents/', document_list_create, name='document-list-create'),
    path('accounting/documents/<int:pk>/', document_detail, name='document-detail'),
    path('accounting/documents/<int:pk>/pay/', document_pay, name='document-pay'),

    # KUDIR endpoints
    path('accounting/kudir/', kudir_list_create, name='kudir-list-create'),
    path('accounting/kudir/summary/', kudir_summary, name='kudir-summary'),
    path('accounting/kudir/sync/', kudir_sync, name='kudir-sync'),
    path('accounting/kudir/export/', kudir_export, name='kudir-export'),
    path('accounting/kudir/<int:pk>/', kudir_detail, name='kudir-detail'),

    # Tax calendar endpoints
    path('accounting/taxes/', tax_list_create, name='tax-list-create'),
    path('accounting/taxes/upcoming/', tax_upcoming, name='tax-upcoming'),
    path('accounting/taxes/overdue/', tax_overdue, name='tax-overdue'),
    path('accounting/taxes/generate/', tax_generate, name='tax-generate'),
    path('accounting/taxes/statistics/', tax_statistics, name='tax-statistics'),
    path('accounting/taxes/deadlines/', tax_deadlines, name='tax-deadlines'),
    path('accounting/taxes/<int:pk>/', tax_detail, name='tax-detail'),
    path('accounting/taxes/<int:pk>/pay/', tax_pay, name='tax-pay'),

    # Tax calculator endpoints
    path('accounting/calculators/usn6/', calculate_usn6, name='calculate-usn6'),
    path('accounting/calculators/usn15/', calculate_usn15, name='calculate-usn15'),
    path('accounting/calculators/vat/', calculate_vat, name='calculate-vat'),
    path('accounting/calculators/ip-insurance/', calculate_ip_insurance, name='calculate-ip-insurance'),
    path('accounting/calculators/employee-insurance/', calculate_employee_insurance, name='calculate-employee-insurance'),

    # Report endpoints
    path('accounting/reports/<slug:report>/', accounting_report, name='accounting-report'),
]
