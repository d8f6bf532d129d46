from django.contrib import admin
from .models import TenderStage, Tender


@admin.register(TenderStage)
class TenderStageAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'category', 'order', 'is_final']
    list_filter = ['category', 'is_final']
    search_fields = ['name']


@admin.register(Tender)
class TenderAdmin(admin.ModelAdmin):
    list_display = ['purchase_number', 'organization', 'customer', 'nmck', 'our_price', 'contract_price',
                    'status', 'stage', 'submission_deadline', 'deleted_at']
    list_filter = ['status', 'stage', 'method']
    search_fields = ['purchase_number', 'customer', 'subject']
    date_hierarchy = 'submission_deadline'
