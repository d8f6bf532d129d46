# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='TenderStage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('category', models.CharField(choices=[('tender_dept', 'Tender Department'), ('realization', 'Realization'), ('archive', 'Archive')], default='tender_dept', max_length=20)),
                ('order', models.PositiveIntegerField(default=0)),
                ('color', models.CharField(blank=True, max_length=7)),
                ('is_final', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('organization', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='tender_stages', to='core.organization')),
            ],
            options={
                'db_table': 'tender_stages',
                'ordering': ['category', 'order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Tender',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('purchase_number', models.CharField(max_length=100)),
                ('subject', models.TextField()),
                ('customer', models.CharField(max_length=255)),
                ('method', models.CharField(blank=True, help_text='Auction, tender, quotation request...', max_length=100)),
                ('platform', models.CharField(blank=True, max_length=100)),
                ('currency', models.CharField(default='RUB', max_length=3)),
                ('nmck', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Initial maximum contract price', max_digits=14)),
                ('our_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('contract_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('application_security', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('contract_security', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('purchase_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('logistics_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('other_costs', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('planned_profit', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ('submission_deadline', models.DateField(blank=True, null=True)),
                ('auction_date', models.DateField(blank=True, null=True)),
                ('results_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('won', 'Won'), ('lost', 'Lost'), ('archived', 'Archived')], default='active', max_length=20)),
                ('comment', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tenders', to='core.organization')),
                ('stage', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tenders', to='tenders.tenderstage')),
                ('responsible', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='responsible_tenders', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tenders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tenders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', 'status'], name='tender_org_status_idx'),
                    models.Index(fields=['organization', 'submission_deadline'], name='tender_org_deadline_idx'),
                ],
            },
        ),
    ]
