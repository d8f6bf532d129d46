from django.urls import path
from .views import finance_summary, monthly_report, dashboard_kpis

urlpatterns = [
    path('reports/finance-summary/', finance_summary, name='finance-summary'),
    path('reports/monthly/', monthly_report, name='monthly-report'),
    path('reports/dashboard-kpis/', dashboard_kpis, name='dashboard-kpis'),
]
