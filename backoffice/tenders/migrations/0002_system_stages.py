# Generated manually
from django.db import migrations

SYSTEM_STAGES = [
    ('New', 'tender_dept', 10, '#94a3b8', False),
    ('Calculation', 'tender_dept', 20, '#60a5fa', False),
    ('Application submitted', 'tender_dept', 30, '#a78bfa', False),
    ('Auction', 'tender_dept', 40, '#f59e0b', False),
    ('Contract signing', 'realization', 10, '#34d399', False),
    ('Delivery', 'realization', 20, '#10b981', False),
    ('Awaiting payment', 'realization', 30, '#14b8a6', False),
    ('Completed', 'archive', 10, '#22c55e', True),
    ('Lost', 'archive', 20, '#ef4444', True),
]


def create_system_stages(apps, schema_editor):
    TenderStage = apps.get_model('tenders', 'TenderStage')
    for name, category, order, color, is_final in SYSTEM_STAGES:
        TenderStage.objects.get_or_create(
            organization=None,
            name=name,
            defaults={'category': category, 'order': order, 'color': color, 'is_final': is_final},
        )


def remove_system_stages(apps, schema_editor):
    TenderStage = apps.get_model('tenders', 'TenderStage')
    TenderStage.objects.filter(organization__isnull=True, name__in=[s[0] for s in SYSTEM_STAGES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('tenders', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_system_stages, remove_system_stages),
    ]
