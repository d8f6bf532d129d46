from django.urls import path
from .views import (
    category_list_create, category_detail,
    account_list_create, account_detail, account_summary, account_add_funds,
    account_stash, account_stash_transfer,
    transaction_list_create, transaction_detail, transaction_export,
    transaction_import_preview, transaction_import,
    budget_list_create, budget_detail, budget_alerts, budget_summary, budget_forecast, budget_rollover,
    card_payment_list, card_payment_generate, card_payment_pay, card_payment_skip,
)

urlpatterns = [
    # Category endpoints
    path('finance/categories/', category_list_create, name='finance-category-list-create'),
    path('finance/categories/<int:pk>/', category_detail, name='finance-category-detail'),

    # Account endpoints
    path('finance/accounts/', account_list_create, name='account-list-create'),
    path('finance/accounts/summary/', account_summary, name='account-summary'),
    path('finance/accounts/<int:pk>/', account_detail, name='account-detail'),
    path('finance/accounts/<int:pk>/add-funds/', account_add_funds, name='account-add-funds'),
    path('finance/accounts/<int:pk>/stash/', account_stash, name='account-stash'),
    path('finance/accounts/<int:pk>/stash/transfer/', account_stash_transfer, name='account-stash-transfer'),

    # Transaction endpoints
    path('finance/transactions/', transaction_list_create, name='transaction-list-create'),
    path('finance/transactions/export/', transaction_export, name='transaction-export'),
    path('finance/transactions/import/preview/', transaction_import_preview, name='transaction-import-preview'),
    path('finance/transactions/import/', transaction_import, name='transaction-import'),
    path('finance/transactions/<int:pk>/', transaction_detail, name='transaction-detail'),

    # Budget endpoints
    path('finance/budgets/', budget_list_create, name='budget-list-create'),
    path('finance/budgets/alerts/', budget_alerts, name='budget-alerts'),
    path('finance/budgets/summary/', budget_summary, name='budget-summary'),
    path('finance/budgets/rollover/', budget_rollover, name='budget-rollover'),
    path('finance/budgets/<int:pk>/', budget_detail, name='budget-detail'),
    path('finance/budgets/<int:pk>/forecast/', budget_forecast, name='budget-forecast'),

    # Credit card payment endpoints
    path('finance/card-payments/', card_payment_list, name='card-payment-list'),
    path('finance/card-payments/generate/', card_payment_generate, name='card-payment-generate'),
    path('finance/card-payments/<int:pk>/pay/', card_payment_pay, name='card-payment-pay'),
    path('finance/card-payments/<int:pk>/skip/', card_payment_skip, name='card-payment-skip'),
]
