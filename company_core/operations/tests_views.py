from datetime import date, datetime
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core import mail
from django.core.management import call_command
from django.test import TestCase
from django.test.utils import override_settings
from django.urls import reverse
from django.utils import timezone

from .exceptions import StatementGenerationError
from .models import Client, DispenserReport, Invoice, Plan, SanitationVisit, TopUpRequest
from .tests import blank_pdf


class SanitationReportViewTests(TestCase):
    def setUp(self):
        self.client_account = Client.objects.create(name='Ana', business_name='Blue Cafe')
        self.visit = SanitationVisit.objects.create(
            client=self.client_account,
            scheduled_date=timezone.make_aware(datetime(2025, 6, 3, 10, 0)),
            assigned_to='Jay Santos',
        )
        DispenserReport.objects.create(
            visit=self.visit,
            dispenser_id='D1',
            dispenser_name='Lobby Dispenser',
            checklist=[
                {'item': 'Faucets sanitized', 'checked': True},
                {'item': 'No leaks found', 'checked': False, 'remarks': 'Loose valve'},
            ],
        )
        self.url = reverse('operations:sanitation_report', args=[self.visit.share_token])

    def test_public_report_shows_checklist(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Lobby Dispenser')
        self.assertContains(response, 'Loose valve')
        self.assertContains(response, '1/2 (50%)')
        self.assertContains(response, 'Sign report')

    def test_unknown_token_is_404(self):
        response = self.client.get(reverse('operations:sanitation_report', args=['not-a-token']))
        self.assertEqual(response.status_code, 404)

    def test_client_signs_once(self):
        response = self.client.post(self.url, {'client_rep_name': 'Ana Cruz', 'client_signature': 'Ana Cruz'})
        self.assertRedirects(response, self.url)

        self.visit.refresh_from_db()
        self.assertEqual(self.visit.client_rep_name, 'Ana Cruz')
        self.assertIsNotNone(self.visit.client_signature_date)

        self.client.post(self.url, {'client_rep_name': 'Someone Else', 'client_signature': 'X'})
        self.visit.refresh_from_db()
        self.assertEqual(self.visit.client_rep_name, 'Ana Cruz')

        response = self.client.get(self.url)
        self.assertContains(response, 'Signed by <strong>Ana Cruz</strong>', html=False)

    def test_signature_requires_name(self):
        self.client.post(self.url, {'client_rep_name': '', 'client_signature': 'Ana'})
        self.visit.refresh_from_db()
        self.assertEqual(self.visit.client_signature, '')


class StaffStatementDownloadTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.client_account = Client.objects.create(
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            plan=self.plan,
        )
        self.staff = User.objects.create_user(username='staff', password='p', is_staff=True)

    def test_requires_staff(self):
        url = reverse('operations:download_statement', args=[self.client_account.pk, '2025-06'])
        response = self.client.get(url)
        self.assertEqual(response.status_code, 302)

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_staff_download(self, render):
        self.client.force_login(self.staff)
        url = reverse('operations:download_statement', args=[self.client_account.pk, '2025-06'])

        response = self.client.get(url)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('SOA_Blue_Cafe_June-2025.pdf', response['Content-Disposition'])

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_combined_cycle_statement(self, render):
        self.client.force_login(self.staff)
        url = reverse('operations:download_statement', args=[self.client_account.pk, '2026-01'])

        response = self.client.get(url)

        self.assertEqual(response.status_code, 200)
        self.assertIn('SOA_Blue_Cafe_December-2025---January-2026.pdf', response['Content-Disposition'])

    @patch(
        'operations.statements.render_template_to_pdf',
        side_effect=StatementGenerationError('WeasyPrint is not available.'),
    )
    def test_pdf_failure_is_503(self, render):
        self.client.force_login(self.staff)
        url = reverse('operations:download_statement', args=[self.client_account.pk, '2025-06'])

        with self.assertLogs('operations.views', level='ERROR'):
            response = self.client.get(url)

        self.assertEqual(response.status_code, 503)

    def test_bad_period_is_404(self):
        self.client.force_login(self.staff)
        url = reverse('operations:download_statement', args=[self.client_account.pk, '2025-13'])
        self.assertEqual(self.client.get(url).status_code, 404)


@override_settings(BILLING_BCC_EMAILS=['support@riverph.com'])
@patch('operations.statements.render_template_to_pdf', side_effect=lambda *args, **kwargs: blank_pdf())
class ManagementCommandTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.client_account = Client.objects.create(
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            email='ana@example.com',
            plan=self.plan,
        )

    def test_generate_monthly_invoices(self, render):
        out = StringIO()
        call_command('generate_monthly_invoices', '--date', '2025-07-01', stdout=out)

        invoice = Invoice.objects.get(client=self.client_account)
        self.assertEqual(invoice.billing_period, 'June 2025')
        self.assertIn('June 2025', out.getvalue())
        self.assertEqual(len(mail.outbox), 1)

    def test_generate_monthly_invoices_skipped_run(self, render):
        out = StringIO()
        call_command('generate_monthly_invoices', '--date', '2026-01-01', stdout=out)
        self.assertFalse(Invoice.objects.exists())

    def test_send_statement(self, render):
        out = StringIO()
        call_command('send_statement', 'SC2500000001', '--period', '2025-06', stdout=out)

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ['ana@example.com'])
        self.assertEqual(message.bcc, ['support@riverph.com'])
        self.assertEqual(message.attachments[0][0], 'SOA_Blue_Cafe_June-2025.pdf')

    def test_mark_overdue_invoices(self, render):
        Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-x-May-2025',
            billing_period='May 2025',
            description='Monthly Subscription for May 2025',
            amount=Decimal('1500.00'),
            date=timezone.make_aware(datetime(2025, 6, 1, 9)),
        )
        out = StringIO()
        call_command('mark_overdue_invoices', stdout=out)
        self.assertEqual(Invoice.objects.get().status, Invoice.STATUS_OVERDUE)

    def test_seed_demo_data(self, render):
        out = StringIO()
        call_command('seed_demo_data', '--clients', '2', '--deliveries', '2', stdout=out)
        self.assertEqual(Client.objects.exclude(pk=self.client_account.pk).count(), 2)
        self.assertTrue(SanitationVisit.objects.exists())


class AdminActionTests(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(username='root', email='root@example.com', password='p')
        self.client.force_login(self.admin)
        self.client_account = Client.objects.create(name='Ana', business_name='Blue Cafe')

    def test_approve_payments_action(self):
        pending = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-x-June-2025',
            billing_period='June 2025',
            description='Monthly Subscription for June 2025',
            amount=Decimal('1500.00'),
            status=Invoice.STATUS_PENDING_REVIEW,
        )
        upcoming = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-x-July-2025',
            billing_period='July 2025',
            description='Monthly Subscription for July 2025',
            amount=Decimal('1500.00'),
        )

        response = self.client.post(
            reverse('admin:operations_invoice_changelist'),
            {'action': 'approve_payments', '_selected_action': [pending.pk, upcoming.pk]},
        )

        self.assertEqual(response.status_code, 302)
        pending.refresh_from_db()
        upcoming.refresh_from_db()
        self.assertEqual(pending.status, Invoice.STATUS_PAID)
        self.assertEqual(upcoming.status, Invoice.STATUS_UPCOMING)

    def test_client_changelist_renders(self):
        response = self.client.get(reverse('admin:operations_client_changelist'))
        self.assertContains(response, 'Blue Cafe')

    @patch('operations.admin.timezone.localdate', return_value=date(2025, 7, 1))
    def test_run_billing_action(self, localdate):
        plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.client_account.plan = plan
        self.client_account.save()

        response = self.client.post(
            reverse('admin:operations_client_changelist'),
            {'action': 'run_billing', '_selected_action': [self.client_account.pk]},
            follow=True,
        )

        invoice = Invoice.objects.get(client=self.client_account)
        self.assertEqual(invoice.billing_period, 'June 2025')
        self.assertEqual(invoice.amount, Decimal('1500.00'))
        self.assertContains(response, 'June 2025: 1 invoiced')

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    @patch('operations.admin.timezone.localdate', return_value=date(2025, 7, 1))
    def test_download_statement_action(self, localdate, render):
        response = self.client.post(
            reverse('admin:operations_client_changelist'),
            {'action': 'download_statement', '_selected_action': [self.client_account.pk]},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('SOA_Blue_Cafe_June-2025.pdf', response['Content-Disposition'])

    def test_download_statement_action_needs_one_client(self):
        other = Client.objects.create(name='Ben', business_name='Red Deli')

        response = self.client.post(
            reverse('admin:operations_client_changelist'),
            {'action': 'download_statement', '_selected_action': [self.client_account.pk, other.pk]},
            follow=True,
        )

        self.assertContains(response, 'Select exactly one client to download a statement.')

    def test_approve_top_ups_action(self):
        pending = TopUpRequest.objects.create(client=self.client_account, amount=Decimal('500.00'))
        rejected = TopUpRequest.objects.create(
            client=self.client_account,
            amount=Decimal('300.00'),
            status=TopUpRequest.STATUS_REJECTED,
        )

        response = self.client.post(
            reverse('admin:operations_topuprequest_changelist'),
            {'action': 'approve_top_ups', '_selected_action': [pending.pk, rejected.pk]},
            follow=True,
        )

        self.assertContains(response, '1 top-up(s) approved.')
        pending.refresh_from_db()
        rejected.refresh_from_db()
        self.assertEqual(pending.status, TopUpRequest.STATUS_APPROVED)
        self.assertEqual(rejected.status, TopUpRequest.STATUS_REJECTED)
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.top_up_balance_credits, Decimal('500.00'))
