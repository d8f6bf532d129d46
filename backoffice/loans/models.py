from django.db import models
from decimal import Decimal
from backoffice.core.models import User, Organization
from backoffice.finance.models import Transaction


class Loan(models.Model):
    """Bank loan repaid in monthly installments"""
    PAYMENT_TYPE_CHOICES = [
        ('annuity', 'Annuity'),
        ('differentiated', 'Differentiated'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('paid', 'Paid Off'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='loans')
    name = models.CharField(max_length=200)
    bank = models.CharField(max_length=200, blank=True)
    contract_number = models.CharField(max_length=100, blank=True)
    currency = models.CharField(max_length=3, default='RUB')
    principal_amount = models.DecimalField(max_digits=14, decimal_places=2)
    interest_rate = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal('0.00'), help_text="Annual rate, %")
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES, default='annuity')
    term_months = models.PositiveIntegerField(null=True, blank=True)
    issue_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)
    monthly_payment = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    next_payment_date = models.DateField(null=True, blank=True)
    principal_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    interest_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    remaining_principal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='loans')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'loans'
        ordering = ['status', 'next_payment_date', 'name']


class LoanPayment(models.Model):
    """Schedule row; paid rows hold the actual split of a repayment"""
    STATUS_CHOICES = [
        ('planned', 'Planned'),
        ('paid', 'Paid'),
    ]

    loan = models.ForeignKey(Loan, on_delete=models.CASCADE, related_name='payments')
    number = models.PositiveIntegerField()
    due_date = models.DateField()
    principal_part = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    interest_part = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    remaining_after = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='planned')
    paid_on = models.DateField(null=True, blank=True)
    transaction = models.ForeignKey(Transaction, on_delete=models.SET_NULL, null=True, blank=True, related_name='loan_payments')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.loan} #{self.number} ({self.due_date})"

    class Meta:
        db_table = 'loan_payments'
        ordering = ['loan', 'number']
        unique_together = [['loan', 'number']]
