from django.contrib import admin
from .models import Category, Account, Stash, StashTransfer, Transaction, Budget, ScheduledPayment


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'kind', 'is_active']
    list_filter = ['kind', 'is_active']
    search_fields = ['name']


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'account_type', 'currency', 'balance', 'credit_limit', 'is_archived']
    list_filter = ['account_type', 'currency', 'is_archived']
    search_fields = ['name']


@admin.register(Stash)
class StashAdmin(admin.ModelAdmin):
    list_display = ['name', 'account', 'target_amount', 'balance', 'updated_at']
    search_fields = ['name', 'account__name']


@admin.register(StashTransfer)
class StashTransferAdmin(admin.ModelAdmin):
    list_display = ['stash', 'direction', 'amount', 'created_at']
    list_filter = ['direction']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['occurred_at', 'organization', 'account', 'direction', 'amount', 'currency', 'category', 'note']
    list_filter = ['direction', 'occurred_at', 'account__account_type']
    search_fields = ['note', 'counterparty', 'import_batch']
    date_hierarchy = 'occurred_at'


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ['category', 'organization', 'period_start', 'period_end', 'limit_amount', 'carried_over', 'rollover']
    list_filter = ['rollover', 'period_start']
    search_fields = ['name', 'category__name']


@admin.register(ScheduledPayment)
class ScheduledPaymentAdmin(admin.ModelAdmin):
    list_display = ['account', 'due_date', 'principal_amount', 'interest_amount', 'total_amount', 'status']
    list_filter = ['status', 'due_date']
