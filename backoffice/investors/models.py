from django.db import models
from decimal import Decimal
from backoffice.core.models import User, Organization
from backoffice.tenders.models import Tender


class InvestmentSource(models.Model):
    """Lender or investor that finances tenders"""
    SOURCE_TYPE_CHOICES = [
        ('bank', 'Bank'),
        ('private', 'Private Investor'),
        ('fund', 'Fund'),
        ('factoring', 'Factoring'),
        ('leasing', 'Leasing'),
        ('other', 'Other'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='investment_sources')
    source_type = models.CharField(max_length=20, choices=SOURCE_TYPE_CHOICES, default='private')
    name = models.CharField(max_length=255)
    contact_person = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    email = models.EmailField(blank=True)
    inn = models.CharField(max_length=12, blank=True)
    default_interest_rate = models.DecimalField(max_digits=6, decimal_places=2, null=True, blank=True)
    default_period_days = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'investment_sources'
        ordering = ['name']


class Investment(models.Model):
    """Money borrowed from a source, returned with interest by the due date"""
    INTEREST_TYPE_CHOICES = [
        ('annual', 'Annual'),
        ('monthly', 'Monthly'),
        ('fixed', 'Fixed'),
    ]
    SCHEDULE_TYPE_CHOICES = [
        ('single', 'Single Payment'),
        ('monthly', 'Monthly'),
        ('quarterly', 'Quarterly'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='investments')
    source = models.ForeignKey(InvestmentSource, on_delete=models.PROTECT, related_name='investments')
    tender = models.ForeignKey(Tender, on_delete=models.SET_NULL, null=True, blank=True, related_name='investments')
    number = models.CharField(max_length=30)
    investment_date = models.DateField()
    due_date = models.DateField()
    period_days = models.PositiveIntegerField(default=0)
    principal = models.DecimalField(max_digits=14, decimal_places=2)
    interest_rate = models.DecimalField(max_digits=6, decimal_places=2, help_text="Rate in %, per interest type")
    interest_type = models.CharField(max_length=10, choices=INTEREST_TYPE_CHOICES, default='annual')
    schedule_type = models.CharField(max_length=10, choices=SCHEDULE_TYPE_CHOICES, default='single')
    interest_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_return = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    returned_principal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    returned_interest = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    tender_total_cost = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    own_funds_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    penalty_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.10'), help_text="% of the overdue amount per day")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    purpose = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_investments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def remaining_principal(self):
        return self.principal - self.returned_principal

    @property
    def remaining_interest(self):
        return self.interest_amount - self.returned_interest

    def __str__(self):
        return f"{self.number} ({self.source})"

    class Meta:
        db_table = 'investments'
        ordering = ['-investment_date', '-id']
        unique_together = [['organization', 'number']]
        indexes = [
            models.Index(fields=['organization', 'status'], name='investment_org_status_idx'),
            models.Index(fields=['organization', 'due_date'], name='investment_org_due_idx'),
        ]


class InvestmentReturn(models.Model):
    """Row of the return schedule"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
    ]

    investment = models.ForeignKey(Investment, on_delete=models.CASCADE, related_name='returns')
    number = models.PositiveIntegerField()
    scheduled_date = models.DateField()
    principal_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    interest_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    paid_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')

    def __str__(self):
        return f"{self.investment.number} #{self.number} ({self.scheduled_date})"

    class Meta:
        db_table = 'investment_returns'
        ordering = ['investment', 'number']
        unique_together = [['investment', 'number']]
