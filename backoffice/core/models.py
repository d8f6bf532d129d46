from django.contrib.auth.models import AbstractUser
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'


class Organization(models.Model):
    """A tenant: every business object belongs to exactly one organization"""
    TAX_REGIME_CHOICES = [
        ('usn6', 'USN 6% (income)'),
        ('usn15', 'USN 15% (income minus expenses)'),
        ('osno', 'General regime'),
    ]

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    inn = models.CharField(max_length=12, blank=True)
    tax_regime = models.CharField(max_length=10, choices=TAX_REGIME_CHOICES, default='usn6')
    has_employees = models.BooleanField(default=False)
    currency = models.CharField(max_length=3, default='RUB')
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='created_organizations')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'organizations'
        ordering = ['name']


class Membership(models.Model):
    """User access to an organization: a role and the enabled modes"""
    ROLE_CHOICES = [
        ('owner', 'Owner'),
        ('admin', 'Admin'),
        ('member', 'Member'),
        ('viewer', 'Viewer'),
    ]
    MODE_CHOICES = [
        ('finance', 'Finance'),
        ('loans', 'Loans'),
        ('accounting', 'Accounting'),
        ('tenders', 'Tenders'),
        ('suppliers', 'Suppliers'),
        ('investors', 'Investors'),
    ]
    ALL_MODES = [code for code, _ in MODE_CHOICES]
    MANAGER_ROLES = ('owner', 'admin')

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='memberships')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='member')
    modes = models.JSONField(default=list, blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user} @ {self.organization} ({self.role})"

    def has_mode(self, mode):
        return mode in (self.modes or [])

    @property
    def can_write(self):
        return self.role != 'viewer'

    @property
    def is_manager(self):
        return self.role in self.MANAGER_ROLES

    class Meta:
        db_table = 'memberships'
        unique_together = [['user', 'organization']]
        ordering = ['-is_default', 'created_at']


class AuditLog(models.Model):
    """Audit log for money-bearing operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('status_change', 'Status Changed'),
        ('add_funds', 'Funds Added'),
        ('stash_transfer', 'Stash Transfer'),
        ('budget_rollover', 'Budget Rollover'),
        ('card_payment', 'Card Payment'),
        ('loan_repayment', 'Loan Repayment'),
        ('loan_recalculate', 'Loan Recalculated'),
        ('tax_paid', 'Tax Paid'),
        ('kudir_sync', 'KUDIR Synced'),
        ('investment_return', 'Investment Return'),
        ('import', 'Import'),
        ('export', 'Export'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., account name, loan contract)")
    changes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_created_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
            models.Index(fields=['model_name'], name='audit_model_idx'),
        ]
