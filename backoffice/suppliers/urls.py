from django.urls import path
from .views import (
    supplier_list_create, supplier_detail, supplier_categories,
    supplier_import_preview, supplier_import, supplier_import_list, supplier_import_detail,
    supplier_import_template,
)

urlpatterns = [
    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/categories/', supplier_categories, name='supplier-categories'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),

    # Import endpoints
    path('suppliers/import/', supplier_import, name='supplier-import'),
    path('suppliers/import/preview/', supplier_import_preview, name='supplier-import-preview'),
    path('suppliers/import/template/', supplier_import_template, name='supplier-import-template'),
    path('suppliers/imports/', supplier_import_list, name='supplier-import-list'),
    path('suppliers/imports/<int:pk>/', supplier_import_detail, name='supplier-import-detail'),
]
