from django.db import models
from decimal import Decimal
from backoffice.core.models import User, Organization


class Category(models.Model):
    """Income / expense categories"""
    KIND_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
        ('both', 'Both'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='finance_categories')
    name = models.CharField(max_length=100)
    kind = models.CharField(max_length=10, choices=KIND_CHOICES, default='expense')
    color = models.CharField(max_length=7, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'finance_categories'
        ordering = ['name']
        unique_together = [['organization', 'name']]


class Account(models.Model):
    """Cards, cash, bank accounts and credit cards"""
    TYPE_CHOICES = [
        ('card', 'Debit Card'),
        ('cash', 'Cash'),
        ('bank', 'Bank Account'),
        ('credit_card', 'Credit Card'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='accounts')
    name = models.CharField(max_length=200)
    account_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='card')
    currency = models.CharField(max_length=3, default='RUB')
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    # Credit card terms
    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    interest_rate = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0.00'), help_text="Annual rate, %")
    grace_period_days = models.PositiveIntegerField(default=0)
    min_payment_percent = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'))
    min_payment_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    statement_day = models.PositiveSmallIntegerField(null=True, blank=True)
    payment_due_day = models.PositiveSmallIntegerField(null=True, blank=True)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    @property
    def is_credit_card(self):
        return self.account_type == 'credit_card'

    @property
    def debt(self):
        """Used credit: limit minus available balance, never negative"""
        if not self.is_credit_card:
            return Decimal('0.00')
        return max(self.credit_limit - self.balance, Decimal('0.00'))

    class Meta:
        db_table = 'finance_accounts'
        ordering = ['name']


class Stash(models.Model):
    """Reserve attached to an account; balance below target means money is owed back"""
    account = models.OneToOneField(Account, on_delete=models.CASCADE, related_name='stash')
    name = models.CharField(max_length=100, default='Stash')
    target_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('50000.00'))
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.account})"

    @property
    def debt(self):
        if self.target_amount <= 0:
            return Decimal('0.00')
        return max(self.target_amount - self.balance, Decimal('0.00'))

    class Meta:
        db_table = 'finance_stashes'


class Transaction(models.Model):
    """Money movement on an account; amount is always positive"""
    DIRECTION_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='transactions')
    account = models.ForeignKey(Account, on_delete=models.PROTECT, related_name='transactions')
    category = models.ForeignKey(Category, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    direction = models.CharField(max_length=10, choices=DIRECTION_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default='RUB')
    occurred_at = models.DateField()
    note = models.TextField(blank=True)
    counterparty = models.CharField(max_length=255, blank=True)
    tags = models.JSONField(default=list, blank=True)
    import_batch = models.CharField(max_length=64, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='transactions')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.direction} {self.amount} {self.currency} on {self.occurred_at}"

    @property
    def signed_amount(self):
        return self.amount if self.direction == 'income' else -self.amount

    class Meta:
        db_table = 'finance_transactions'
        ordering = ['-occurred_at', '-id']
        indexes = [
            models.Index(fields=['organization', 'occurred_at'], name='fin_txn_org_date_idx'),
            models.Index(fields=['account', 'occurred_at'], name='fin_txn_account_date_idx'),
        ]


class StashTransfer(models.Model):
    """History of money moved between an account and its stash"""
    DIRECTION_CHOICES = [
        ('to_stash', 'To Stash'),
        ('from_stash', 'From Stash'),
        ('repay', 'Stash Repaid From Top-up'),
    ]

    stash = models.ForeignKey(Stash, on_delete=models.CASCADE, related_name='transfers')
    direction = models.CharField(max_length=20, choices=DIRECTION_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    transaction = models.ForeignKey(Transaction, on_delete=models.SET_NULL, null=True, blank=True, related_name='stash_transfers')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'finance_stash_transfers'
        ordering = ['-created_at']


class Budget(models.Model):
    """Spending limit for a category over a period"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='budgets')
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='budgets')
    name = models.CharField(max_length=200, blank=True)
    period_start = models.DateField()
    period_end = models.DateField()
    limit_amount = models.DecimalField(max_digits=14, decimal_places=2)
    carried_over = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    rollover = models.BooleanField(default=False, help_text="Carry unspent money into the next period")
    previous = models.OneToOneField('self', on_delete=models.SET_NULL, null=True, blank=True, related_name='successor')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name or f"{self.category} {self.period_start} - {self.period_end}"

    @property
    def available(self):
        return self.limit_amount + self.carried_over

    class Meta:
        db_table = 'finance_budgets'
        ordering = ['-period_start', 'category__name']
        indexes = [
            models.Index(fields=['organization', 'period_start', 'period_end'], name='fin_budget_period_idx'),
        ]


class ScheduledPayment(models.Model):
    """Planned credit card payment"""
    STATUS_CHOICES = [
        ('planned', 'Planned'),
        ('paid', 'Paid'),
        ('skipped', 'Skipped'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='scheduled_payments')
    account = models.ForeignKey(Account, on_delete=models.CASCADE, related_name='scheduled_payments')
    due_date = models.DateField()
    principal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    interest_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='planned')
    paid_at = models.DateField(null=True, blank=True)
    transaction = models.ForeignKey(Transaction, on_delete=models.SET_NULL, null=True, blank=True, related_name='scheduled_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.account} {self.due_date}: {self.total_amount}"

    class Meta:
        db_table = 'finance_scheduled_payments'
        ordering = ['due_date']
        unique_together = [['account', 'due_date']]
