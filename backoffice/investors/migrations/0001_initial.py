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
            name='InvestmentSource',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('source_type', models.CharField(choices=[('bank', 'Bank'), ('private', 'Private Investor'), ('fund', 'Fund'), ('factoring', 'Factoring'), ('leasing', 'Leasing'), ('other', 'Other')], default='private', max_length=20)),
                ('name', models.CharField(max_length=255)),
                ('contact_person', models.CharField(blank=True, max_length=255)),
                ('phone', models.CharField(blank=True, max_length=50)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('inn', models.CharField(blank=True, max_length=12)),
                ('default_interest_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True)),
                ('default_period_days', models.PositiveIntegerField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='investment_sources', to='core.organization')),
            ],
            options={
                'db_table': 'investment_sources',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Investment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.CharField(max_length=30)),
                ('investment_date', models.DateField()),
                ('due_date', models.DateField()),
                ('period_days', models.PositiveIntegerField(default=0)),
                ('principal', models.DecimalField(decimal_places=2, max_digits=14)),
                ('interest_rate', models.DecimalField(decimal_places=2, help_text='Rate in %, per interest type', max_digits=6)),
                ('interest_type', models.CharField(choices=[('annual', 'Annual'), ('monthly', 'Monthly'), ('fixed', 'Fixed')], default='annual', max_length=10)),
                ('schedule_type', models.CharField(choices=[('single', 'Single Payment'), ('monthly', 'Monthly'), ('quarterly', 'Quarterly')], default='single', max_length=10)),
                ('interest_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_return', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('returned_principal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('returned_interest', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('tender_total_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('own_funds_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('penalty_rate', models.DecimalField(decimal_places=2, default=Decimal('0.10'), help_text='% of the overdue amount per day', max_digits=5)),
                ('status', models.CharField(choices=[('active', 'Active'), ('completed', 'Completed')], default='active', max_length=10)),
                ('purpose', models.TextField(blank=True)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='investments', to='core.organization')),
                ('source', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='investments', to='investors.investmentsource')),
                ('tender', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='investments', to='tenders.tender')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_investments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'investments',
                'ordering': ['-investment_date', '-id'],
                'unique_together': {('organization', 'number')},
                'indexes': [
                    models.Index(fields=['organization', 'status'], name='investment_org_status_idx'),
                    models.Index(fields=['organization', 'due_date'], name='investment_org_due_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='InvestmentReturn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField()),
                ('scheduled_date', models.DateField()),
                ('principal_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('interest_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('paid_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('partial', 'Partially Paid'), ('paid', 'Paid')], default='pending', max_length=10)),
                ('investment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='returns', to='investors.investment')),
            ],
            options={
                'db_table': 'investment_returns',
                'ordering': ['investment', 'number'],
                'unique_together': {('investment', 'number')},
            },
        ),
    ]
