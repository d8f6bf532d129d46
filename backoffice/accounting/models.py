from django.db import models
from decimal import Decimal
from backoffice.core.models import User, Organization
from backoffice.tenders.models import Tender


class Counterparty(models.Model):
    """Customers and vendors appearing on accounting documents"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='counterparties')
    name = models.CharField(max_length=255)
    short_name = models.CharField(max_length=100, blank=True)
    inn = models.CharField(max_length=12, blank=True)
    kpp = models.CharField(max_length=9, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.short_name or self.name

    class Meta:
        db_table = 'accounting_counterparties'
        ordering = ['name']


class AccountingDocument(models.Model):
    """Invoices, acts and other primary documents"""
    TYPE_CHOICES = [
        ('invoice', 'Invoice'),
        ('act', 'Act'),
        ('invoice_upd', 'Invoice (UPD)'),
        ('purchase_invoice', 'Purchase Invoice'),
        ('expense', 'Expense Document'),
        ('waybill', 'Waybill'),
        ('upd', 'Incoming UPD'),
    ]
    # Documents we issue; everything else is an incoming (expense) document
    INCOME_TYPES = ('invoice', 'act', 'invoice_upd')

    PAYMENT_STATUS_CHOICES = [
        ('unpaid', 'Unpaid'),
        ('partial', 'Partially Paid'),
        ('paid', 'Paid'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='accounting_documents')
    document_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    number = models.CharField(max_length=50)
    date = models.DateField()
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    vat_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    payment_date = models.DateField(null=True, blank=True)
    counterparty = models.ForeignKey(Counterparty, on_delete=models.SET_NULL, null=True, blank=True, related_name='documents')
    tender = models.ForeignKey(Tender, on_delete=models.SET_NULL, null=True, blank=True, related_name='accounting_documents')
    description = models.TextField(blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='accounting_documents')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_document_type_display()} No. {self.number}"

    @property
    def is_income(self):
        return self.document_type in self.INCOME_TYPES

    class Meta:
        db_table = 'accounting_documents'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['organization', 'date'], name='acc_doc_org_date_idx'),
            models.Index(fields=['organization', 'payment_status'], name='acc_doc_org_status_idx'),
        ]


class KudirEntry(models.Model):
    """Row of the income and expense book (KUDIR)"""
    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='kudir_entries')
    entry_number = models.PositiveIntegerField()
    entry_date = models.DateField()
    description = models.TextField()
    income = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    expense = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    document = models.ForeignKey(AccountingDocument, on_delete=models.SET_NULL, null=True, blank=True, related_name='kudir_entries')
    counterparty = models.ForeignKey(Counterparty, on_delete=models.SET_NULL, null=True, blank=True, related_name='kudir_entries')
    tender = models.ForeignKey(Tender, on_delete=models.SET_NULL, null=True, blank=True, related_name='kudir_entries')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='kudir_entries')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"#{self.entry_number} {self.entry_date} {self.description[:40]}"

    class Meta:
        db_table = 'kudir_entries'
        ordering = ['entry_date', 'entry_number']
        unique_together = [['organization', 'entry_number']]
        indexes = [
            models.Index(fields=['organization', 'entry_date'], name='kudir_org_date_idx'),
        ]


class TaxPayment(models.Model):
    """Tax calendar item: what is due, when, and whether it was paid"""
    TAX_TYPE_CHOICES = [
        ('usn', 'USN (annual)'),
        ('usn_advance', 'USN (advance payment)'),
        ('ndfl', 'Personal Income Tax'),
        ('nds', 'VAT'),
        ('insurance', 'Insurance Contributions'),
        ('property', 'Property Tax'),
        ('transport', 'Transport Tax'),
        ('land', 'Land Tax'),
        ('patent', 'Patent'),
        ('other', 'Other'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('overdue', 'Overdue'),
        ('cancelled', 'Cancelled'),
    ]

    organization = models.ForeignKey(Organization, on_delete=models.CASCADE, related_name='tax_payments')
    tax_type = models.CharField(max_length=20, choices=TAX_TYPE_CHOICES)
    tax_name = models.CharField(max_length=100)
    period = models.CharField(max_length=10, help_text="2024, 2024-Q1 or 2024-01")
    due_date = models.DateField()
    amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    paid_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    paid_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    notes = models.TextField(blank=True)
    document = models.ForeignKey(AccountingDocument, on_delete=models.SET_NULL, null=True, blank=True, related_name='tax_payments')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.tax_name} {self.period}"

    class Meta:
        db_table = 'tax_payments'
        ordering = ['due_date', 'id']
        indexes = [
            models.Index(fields=['organization', 'due_date'], name='tax_org_due_idx'),
        ]
