from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from backoffice.core.models import Organization
from backoffice.loans.models import Loan
from backoffice.loans.services import recalculate_loan


class Command(BaseCommand):
    help = 'Recomputes paid totals and rebuilds payment schedules of loans'

    def add_arguments(self, parser):
        parser.add_argument('--organization', type=int, help='Only recalculate loans of this organization')
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Perform a dry run without saving changes',
        )

    def handle(self, *args, **options):
        loans = Loan.objects.all().order_by('id')
        if options.get('organization'):
            if not Organization.objects.filter(pk=options['organization']).exists():
                raise CommandError(f"Organization {options['organization']} not found")
            loans = loans.filter(organization_id=options['organization'])

        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        changed = 0
        with transaction.atomic():
            for loan in loans:
                try:
                    loan, before, after = recalculate_loan(loan)
                except ValueError as e:
                    self.stdout.write(self.style.ERROR(f"  ✗ {loan.name}: {e}"))
                    continue
                if before != after:
                    changed += 1
                    self.stdout.write(
                        f"  - {loan.name}: remaining {before['remaining_principal']} -> {after['remaining_principal']}, "
                        f"payment {before['monthly_payment']} -> {after['monthly_payment']}"
                    )
            if dry_run:
                transaction.set_rollback(True)
                self.stdout.write(self.style.WARNING(f"\nDry run complete. {changed} loans would change."))
            else:
                self.stdout.write(self.style.SUCCESS(f"\nRecalculation complete: {changed} loans changed."))
