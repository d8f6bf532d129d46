from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from backoffice.core.models import Organization
from backoffice.accounting.tax_calendar import generate_for_year


class Command(BaseCommand):
    help = 'Creates the standard tax payments of a year for organizations using accounting'

    def add_arguments(self, parser):
        parser.add_argument('--year', type=int, help='Calendar year, defaults to the current one')
        parser.add_argument('--organization', type=int, help='Only generate for this organization')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )

    def handle(self, *args, **options):
        year = options.get('year') or timezone.localdate().year
        organizations = Organization.objects.filter(is_active=True).order_by('id')
        if options.get('organization'):
            if not organizations.filter(pk=options['organization']).exists():
                raise CommandError(f"Organization {options['organization']} not found")
            organizations = organizations.filter(pk=options['organization'])

        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        total = 0
        with transaction.atomic():
            for organization in organizations:
                created = generate_for_year(organization, year)
                total += created
                self.stdout.write(f"  - {organization.name}: {created} payments")
            if dry_run:
                transaction.set_rollback(True)
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {total} payments would be created."))
            else:
                self.stdout.write(self.style.SUCCESS(f"\nTax calendar {year}: {total} payments created."))
