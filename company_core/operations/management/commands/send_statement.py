from datetime import date

from django.core.management.base import BaseCommand, CommandError
from operations.billing import billing_cycle_for_month, generate_cycle_statement
from operations.emails import send_email
from operations.models import Client
from operations.statements import statement_filename
from operations.utils import get_billing_bcc_list
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Regenerate a month's Statement of Account and e-mail it to the client."

    def add_arguments(self, parser):
        parser.add_argument('client_id', type=str, help='Client ID, e.g. SC2500000001')
        parser.add_argument('--period', type=str, required=True, help='Billing month (YYYY-MM)')
        parser.add_argument('--to', type=str, help='Send to this address instead of the client e-mail.')

    def handle(self, *args, **options):
        client = Client.objects.filter(client_id=options['client_id']).select_related('plan').first()
        if client is None:
            raise CommandError(f"No client with ID {options['client_id']}.")

        try:
            month = date.fromisoformat(f"{options['period']}-01")
        except ValueError:
            raise CommandError(f"Invalid --period '{options['period']}'. Use YYYY-MM.")

        cycle = billing_cycle_for_month(month)
        recipient = options.get('to') or client.email
        if not recipient:
            raise CommandError(f'{client} has no e-mail address.')

        pdf_content = generate_cycle_statement(client, cycle)
        send_email(
            recipient,
            f'Statement of Account for {cycle.label}',
            f'Please find attached your Statement of Account for {cycle.label}.',
            cc=client.get_cc_emails() if not options.get('to') else None,
            bcc=get_billing_bcc_list(),
            attachments=[(statement_filename(client, cycle.label), pdf_content, 'application/pdf')],
        )
        logger.info("Statement for %s (%s) sent to %s", client.pk, cycle.label, recipient)
        self.stdout.write(self.style.SUCCESS(f'Sent {cycle.label} statement for {client} to {recipient}.'))
