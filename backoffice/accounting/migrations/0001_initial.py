# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('tenders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Counterparty',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('short_name', models.CharField(blank=True, max_length=100)),
                ('inn', models.CharField(blank=True, max_length=12)),
                ('kpp', models.CharField(blank=True, max_length=9)),
                ('address', models.TextField(blank=True)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='counterparties', to='core.organization')),
            ],
            options={
                'db_table': 'accounting_counterparties',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='AccountingDocument',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(choices=[('invoice', 'Invoice'), ('act', 'Act'), ('invoice_upd', 'Invoice (UPD)'), ('purchase_invoice', 'Purchase Invoice'), ('expense', 'Expense Document'), ('waybill', 'Waybill'), ('upd', 'Incoming UPD')], max_length=20)),
                ('number', models.CharField(max_length=50)),
                ('date', models.DateField()),
                ('total_amount', models.DecimalField(decimal_places=2, max_digits=14)),
                ('vat_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('partial', 'Partially Paid'), ('paid', 'Paid')], default='unpaid', max_length=10)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('payment_date', models.DateField(blank=True, null=True)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='accounting_documents', to='core.organization')),
                ('counterparty', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='documents', to='accounting.counterparty')),
                ('tender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='accounting_documents', to='tenders.tender')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='accounting_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'accounting_documents',
                'ordering': ['-date', '-id'],
                'indexes': [
                    models.Index(fields=['organization', 'date'], name='acc_doc_org_date_idx'),
                    models.Index(fields=['organization', 'payment_status'], name='acc_doc_org_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='KudirEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('entry_number', models.PositiveIntegerField()),
                ('entry_date', models.DateField()),
                ('description', models.TextField()),
                ('income', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('expense', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='kudir_entries', to='core.organization')),
                ('document', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='kudir_entries', to='accounting.accountingdocument')),
                ('counterparty', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='kudir_entries', to='accounting.counterparty')),
                ('tender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='kudir_entries', to='tenders.tender')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='kudir_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'kudir_entries',
                'ordering': ['entry_date', 'entry_number'],
                'unique_together': {('organization', 'entry_number')},
                'indexes': [
                    models.Index(fields=['organization', 'entry_date'], name='kudir_org_date_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TaxPayment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tax_type', models.CharField(choices=[('usn', 'USN (annual)'), ('usn_advance', 'USN (advance payment)'), ('ndfl', 'Personal Income Tax'), ('nds', 'VAT'), ('insurance', 'Insurance Contributions'), ('property', 'Property Tax'), ('transport', 'Transport Tax'), ('land', 'Land Tax'), ('patent', 'Patent'), ('other', 'Other')], max_length=20)),
                ('tax_name', models.CharField(max_length=100)),
                ('period', models.CharField(help_text='2024, 2024-Q1 or 2024-01', max_length=10)),
                ('due_date', models.DateField()),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('paid', 'Paid'), ('overdue', 'Overdue'), ('cancelled', 'Cancelled')], default='pending', max_length=10)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tax_payments', to='core.organization')),
                ('document', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tax_payments', to='accounting.accountingdocument')),
            ],
            options={
                'db_table': 'tax_payments',
                'ordering': ['due_date', 'id'],
                'indexes': [
                    models.Index(fields=['organization', 'due_date'], name='tax_org_due_idx'),
                ],
            },
        ),
    ]
