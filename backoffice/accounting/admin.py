from django.contrib import admin
from .models import Counterparty, AccountingDocument, KudirEntry, TaxPayment


@admin.register(Counterparty)
class CounterpartyAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'inn', 'kpp', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'short_name', 'inn']


@admin.register(AccountingDocument)
class AccountingDocumentAdmin(admin.ModelAdmin):
    list_display = ['number', 'organization', 'document_type', 'date', 'total_amount', 'vat_amount',
                    'payment_status', 'counterparty']
    list_filter = ['document_type', 'payment_status']
    search_fields = ['number', 'description']
    date_hierarchy = 'date'


@admin.register(KudirEntry)
class KudirEntryAdmin(admin.ModelAdmin):
    list_display = ['entry_number', 'organization', 'entry_date', 'description', 'income', 'expense']
    search_fields = ['description']
    date_hierarchy = 'entry_date'


@admin.register(TaxPayment)
class TaxPaymentAdmin(admin.ModelAdmin):
    list_display = ['tax_name', 'organization', 'tax_type', 'period', 'due_date', 'amount', 'paid_amount', 'status']
    list_filter = ['tax_type', 'status']
    date_hierarchy = 'due_date'
