from django.urls import path
from .views import (
    stage_list_create, stage_detail,
    tender_list_create, tender_detail, tender_change_status, tender_dashboard,
)

urlpatterns = [
    # Stage endpoints
    path('tenders/stages/', stage_list_create, name='tender-stage-list-create'),
    path('tenders/stages/<int:pk>/', stage_detail, name='tender-stage-detail'),

    # Tender endpoints
    path('tenders/', tender_list_create, name='tender-list-create'),
    path('tenders/dashboard/', tender_dashboard, name='tender-dashboard'),
    path('tenders/<int:pk>/', tender_detail, name='tender-detail'),
    path('tenders/<int:pk>/status/', tender_change_status, name='tender-change-status'),
]
