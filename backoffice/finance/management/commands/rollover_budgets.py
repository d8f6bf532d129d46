from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from backoffice.core.models import Organization
from backoffice.core.periods import parse_date
from backoffice.finance.budgets import rollover_budgets


class Command(BaseCommand):
    help = 'Creates next-period budgets for every finished budget period'

    def add_arguments(self, parser):
        parser.add_argument('--organization', type=int, help='Only roll over this organization')
        parser.add_argument('--date', help='Reference date (YYYY-MM-DD), defaults to today')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )

    def handle(self, *args, **options):
        try:
            today = parse_date(options.get('date'), default=timezone.localdate())
        except ValueError:
            raise CommandError('Date must be in YYYY-MM-DD format')

        organization = None
        if options.get('organization'):
            try:
                organization = Organization.objects.get(pk=options['organization'])
            except Organization.DoesNotExist:
                raise CommandError(f"Organization {options['organization']} not found")

        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        with transaction.atomic():
            created = rollover_budgets(today, organization=organization)
            for budget in created:
                self.stdout.write(
                    f"  - {budget.category.name}: {budget.period_start} - {budget.period_end}, "
                    f"limit {budget.limit_amount}, carried {budget.carried_over}"
                )
            if dry_run:
                transaction.set_rollback(True)
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {len(created)} budgets would be created."))
            else:
                self.stdout.write(self.style.SUCCESS(f"\nRollover complete: {len(created)} budgets created."))
