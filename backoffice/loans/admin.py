from django.contrib import admin
from .models import Loan, LoanPayment


class LoanPaymentInline(admin.TabularInline):
    model = LoanPayment
    extra = 0
    fields = ['number', 'due_date', 'principal_part', 'interest_part', 'total', 'remaining_after', 'status', 'paid_on']
    readonly_fields = fields


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'bank', 'principal_amount', 'interest_rate', 'remaining_principal',
                    'monthly_payment', 'next_payment_date', 'status']
    list_filter = ['status', 'payment_type']
    search_fields = ['name', 'bank', 'contract_number']
    inlines = [LoanPaymentInline]


@admin.register(LoanPayment)
class LoanPaymentAdmin(admin.ModelAdmin):
    list_display = ['loan', 'number', 'due_date', 'total', 'status', 'paid_on']
    list_filter = ['status']
    search_fields = ['loan__name']
