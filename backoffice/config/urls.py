"""
URL configuration for the backoffice project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.finance.urls')),
    path('api/v1/', include('backoffice.loans.urls')),
    path('api/v1/', include('backoffice.accounting.urls')),
    path('api/v1/', include('backoffice.tenders.urls')),
    path('api/v1/', include('backoffice.suppliers.urls')),
    path('api/v1/', include('backoffice.investors.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
]
