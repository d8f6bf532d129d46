from django.urls import path
from .views import (
    source_list_create, source_detail,
    investment_list_create, investment_detail, investment_schedule, investment_return,
    investment_summary, investment_calculate, tender_funding,
)

urlpatterns = [
    # Source endpoints
    path('investors/sources/', source_list_create, name='investment-source-list-create'),
    path('investors/sources/<int:pk>/', source_detail, name='investment-source-detail'),

    # Investment endpoints
    path('investors/investments/', investment_list_create, name='investment-list-create'),
    path('investors/investments/summary/', investment_summary, name='investment-summary'),
    path('investors/investments/calculate/', investment_calculate, name='investment-calculate'),
    path('investors/investments/<int:pk>/', investment_detail, name='investment-detail'),
    path('investors/investments/<int:pk>/schedule/', investment_schedule, name='investment-schedule'),
    path('investors/investments/<int:pk>/return/', investment_return, name='investment-return'),
    path('investors/tenders/<int:tender_pk>/funding/', tender_funding, name='tender-funding'),
]
