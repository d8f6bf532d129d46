from django.db import models
from decimal import Decimal
from backoffice.core.models import User, Organization


class TenderStage(models.Model):
    """Pipeline stage; rows without an organization are shared system stages"""
    CATEGORY_CHOICES = [
        ('tender_dept', 'Tender Department'),
        ('realization', 'Realization'),
        ('archive', 'Archive'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, null=True, blank=True, related_name='tender_stages')
    name = models.CharField(max_length=100)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='tender_dept')
    order = models.PositiveIntegerField(default=0)
    color = models.CharField(max_length=7, blank=True)
    is_final = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    @property
    def is_system(self):
        return self.organization_id is None

    class Meta:
        db_table = 'tender_stages'
        ordering = ['category', 'order', 'name']


class Tender(models.Model):
    """A procurement opportunity tracked from bid to contract"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('won', 'Won'),
        ('lost', 'Lost'),
        ('archived', 'Archived'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='tenders')
    purchase_number = models.CharField(max_length=100)
    subject = models.TextField()
    customer = models.CharField(max_length=255)
    method = models.CharField(max_length=100, blank=True, help_text="Auction, tender, quotation request...")
    platform = models.CharField(max_length=100, blank=True)
    currency = models.CharField(max_length=3, default='RUB')
    # Prices
    nmck = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'), help_text="Initial maximum contract price")
    our_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    contract_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    application_security = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    contract_security = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    # Cost breakdown
    purchase_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    logistics_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    other_costs = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    planned_profit = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    # Dates
    submission_deadline = models.DateField(null=True, blank=True)
    auction_date = models.DateField(null=True, blank=True)
    results_date = models.DateField(null=True, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    stage = models.ForeignKey(TenderStage, on_delete=models.SET_NULL, null=True, blank=True, related_name='tenders')
    responsible = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='responsible_tenders')
    comment = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_tenders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.purchase_number} - {self.customer}"

    class Meta:
        db_table = 'tenders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'status'], name='tender_org_status_idx'),
            models.Index(fields=['organization', 'submission_deadline'], name='tender_org_deadline_idx'),
        ]
