from django.contrib import admin
from .models import Supplier, SupplierImport


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'inn', 'category', 'status', 'rating', 'deleted_at']
    list_filter = ['status', 'category']
    search_fields = ['name', 'short_name', 'inn', 'email']


@admin.register(SupplierImport)
class SupplierImportAdmin(admin.ModelAdmin):
    list_display = ['file_name', 'organization', 'user', 'status', 'total_rows', 'created_count',
                    'updated_count', 'duplicate_count', 'error_count', 'created_at']
    list_filter = ['status']
    readonly_fields = ['errors', 'column_mapping', 'options', 'started_at', 'completed_at', 'created_at']
