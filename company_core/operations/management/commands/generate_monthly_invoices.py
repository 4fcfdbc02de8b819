# operations/management/commands/generate_monthly_invoices.py

from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from operations.billing import generate_monthly_invoices
from operations.models import Client
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Generate invoices for the billing cycle that precedes the run date.'

    def add_arguments(self, parser):
        parser.add_argument('--date', type=str, help='Run date (YYYY-MM-DD). Defaults to today.')
        parser.add_argument('--client', type=str, help='Only bill the client with this client ID.')
        parser.add_argument('--dry-run', action='store_true', help='Compute amounts without saving or sending anything.')

    def handle(self, *args, **options):
        run_date = timezone.localdate()
        if options.get('date'):
            try:
                run_date = date.fromisoformat(options['date'])
            except ValueError:
                raise CommandError(f"Invalid --date '{options['date']}'. Use YYYY-MM-DD.")

        clients = None
        if options.get('client'):
            clients = Client.objects.filter(client_id=options['client'])
            if not clients.exists():
                raise CommandError(f"No client with ID {options['client']}.")

        result = generate_monthly_invoices(run_date, clients=clients, dry_run=options['dry_run'])

        for label in result.plans_activated:
            self.stdout.write(f'Activated pending plan: {label}')
        if result.was_skipped:
            self.stdout.write(self.style.WARNING(f'Invoice generation is skipped for {run_date}.'))
            return

        prefix = '[dry-run] ' if options['dry_run'] else ''
        for label in result.invoiced:
            self.stdout.write(f'{prefix}Invoiced: {label}')
        for label in result.failed:
            self.stdout.write(self.style.ERROR(f'Failed: {label}'))

        self.stdout.write(self.style.SUCCESS(
            f'{prefix}{result.cycle.label}: {len(result.invoiced)} invoiced, '
            f'{len(result.no_charge)} without charge, {len(result.skipped)} skipped, '
            f'{len(result.failed)} failed.'
        ))
