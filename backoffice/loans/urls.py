from django.urls import path
from .views import (
    loan_list_create, loan_detail, loan_summary, loan_calculate,
    loan_schedule, loan_repay, loan_recalculate,
)

urlpatterns = [
    path('loans/', loan_list_create, name='loan-list-create'),
    path('loans/summary/', loan_summary, name='loan-summary'),
    path('loans/calculate/', loan_calculate, name='loan-calculate'),
    path('loans/<int:pk>/', loan_detail, name='loan-detail'),
    path('loans/<int:pk>/schedule/', loan_schedule, name='loan-schedule'),
    path('loans/<int:pk>/repay/', loan_repay, name='loan-repay'),
    path('loans/<int:pk>/recalculate/', loan_recalculate, name='loan-recalculate'),
]
