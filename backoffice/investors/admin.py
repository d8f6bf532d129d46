from django.contrib import admin
from .models import InvestmentSource, Investment, InvestmentReturn


@admin.register(InvestmentSource)
class InvestmentSourceAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'source_type', 'default_interest_rate', 'is_active']
    list_filter = ['source_type', 'is_active']
    search_fields = ['name', 'contact_person', 'inn']


class InvestmentReturnInline(admin.TabularInline):
    model = InvestmentReturn
    extra = 0


@admin.register(Investment)
class InvestmentAdmin(admin.ModelAdmin):
    list_display = ['number', 'organization', 'source', 'tender', 'principal', 'interest_amount',
                    'returned_principal', 'returned_interest', 'due_date', 'status']
    list_filter = ['status', 'interest_type', 'schedule_type']
    search_fields = ['number', 'purpose']
    date_hierarchy = 'investment_date'
    inlines = [InvestmentReturnInline]
