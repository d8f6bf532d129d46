from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from backoffice.core.models import Organization
from backoffice.core.periods import parse_date
from backoffice.finance.credit_cards import generate_card_payments


class Command(BaseCommand):
    help = 'Plans the next payment of every credit card with debt'

    def add_arguments(self, parser):
        parser.add_argument('--organization', type=int, help='Only plan payments of this organization')
        parser.add_argument('--date', help='Reference date (YYYY-MM-DD), defaults to today')

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

        created = generate_card_payments(today, organization=organization)
        for payment in created:
            self.stdout.write(f"  - {payment.account.name}: {payment.total_amount} due {payment.due_date}")
        self.stdout.write(self.style.SUCCESS(f"{len(created)} card payments planned."))
