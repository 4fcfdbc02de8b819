from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.test.utils import override_settings
from django.utils import timezone
from pypdf import PdfReader, PdfWriter

from .exceptions import StatementGenerationError
from .models import (
    Client,
    CustomPlanDetails,
    Delivery,
    DispenserReport,
    Invoice,
    Notification,
    Plan,
    RefillRequest,
    SanitationVisit,
    container_to_liters,
)
from .notifications import create_notification, get_admin_user, notify_admin, notify_client
from .pdf_utils import protect_pdf
from .utils import build_cc_list, format_currency, format_liters, format_long_date, get_billing_bcc_list


def blank_pdf():
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class ClientModelTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='Fixed Test Plan', price=Decimal('1500.00'))
        self.client_account = Client.objects.create(
            client_id='SC2500000001',
            name='Ana Cruz',
            business_name='Blue Cafe',
            email='ana@example.com',
            plan=self.plan,
        )

    def test_parse_cc_emails_dedupes_and_drops_invalid(self):
        self.client_account.cc_emails = 'a@example.com; A@example.com,\nnot-an-email, b@example.com'
        self.assertEqual(self.client_account.get_cc_emails(), ['a@example.com', 'b@example.com'])

    def test_branch_requires_parent(self):
        branch = Client(name='B', business_name='Branch', account_type=Client.ACCOUNT_BRANCH)
        with self.assertRaises(ValidationError):
            branch.full_clean()

    def test_account_cannot_be_its_own_parent(self):
        self.client_account.parent = self.client_account
        with self.assertRaises(ValidationError):
            self.client_account.clean()

    def test_effective_date_needs_pending_plan(self):
        self.client_account.plan_change_effective_date = date(2026, 3, 1)
        with self.assertRaises(ValidationError):
            self.client_account.clean()

    def test_statement_password_prefers_client_id(self):
        self.assertEqual(self.client_account.statement_password(), 'SC2500000001')
        self.client_account.client_id = ''
        self.assertEqual(self.client_account.statement_password(), self.client_account.uid.hex[:8].upper())

    def test_admin_prepaid_and_inactive_accounts_are_not_billable(self):
        self.assertTrue(self.client_account.is_billable)

        self.client_account.is_prepaid = True
        self.assertFalse(self.client_account.is_billable)

        self.client_account.is_prepaid = False
        self.client_account.account_status = Client.STATUS_INACTIVE
        self.assertFalse(self.client_account.is_billable)

        self.client_account.account_status = Client.STATUS_ACTIVE
        self.client_account.user = User.objects.create_user(username='staff', password='p', is_staff=True)
        self.assertFalse(self.client_account.is_billable)

    def test_plan_details_allocation_and_fees(self):
        details = CustomPlanDetails.objects.create(
            client=self.client_account,
            liters_per_month=Decimal('1000'),
            bonus_liters=Decimal('50'),
            gallon_price=Decimal('100.00'),
            gallon_payment_type='Monthly',
            dispenser_price=Decimal('250.00'),
            dispenser_payment_type='One-Time',
        )
        self.assertEqual(details.monthly_allocation(), Decimal('1050'))
        self.assertEqual(details.monthly_equipment_cost(), Decimal('100.00'))
        self.assertEqual(details.one_time_fees(), Decimal('250.00'))

    def test_negative_rollover_is_rejected(self):
        details = CustomPlanDetails(client=self.client_account, last_month_rollover=Decimal('-1'))
        with self.assertRaises(ValidationError):
            details.clean()


class DeliveryAndInvoiceModelTests(TestCase):
    def setUp(self):
        self.client_account = Client.objects.create(name='N', business_name='Blue Cafe')

    def test_delivery_reference_and_liters(self):
        delivery = Delivery.objects.create(client=self.client_account, volume_containers=10)
        self.assertTrue(delivery.reference.startswith('DEL-'))
        self.assertEqual(delivery.liters_delivered, Decimal('195.0'))

        delivery.liters = Decimal('150')
        self.assertEqual(delivery.liters_delivered, Decimal('150'))

    @override_settings(LITERS_PER_CONTAINER='20')
    def test_container_size_comes_from_settings(self):
        self.assertEqual(container_to_liters(3), Decimal('60'))

    def test_invoice_number_uses_short_key_and_period(self):
        number = Invoice.build_invoice_number(self.client_account, 'December 2025 - January 2026')
        self.assertEqual(number, f'INV-{self.client_account.uid.hex[:5]}-December-2025---January-2026')

    def test_negative_invoice_amount_is_rejected(self):
        with self.assertRaises(ValidationError):
            Invoice.objects.create(
                client=self.client_account,
                invoice_number='INV-x-June-2025',
                description='Bill',
                amount=Decimal('-1.00'),
            )

    def test_refill_request_keeps_status_history(self):
        refill = RefillRequest.objects.create(client=self.client_account)
        refill.status = RefillRequest.STATUS_IN_PRODUCTION
        refill.save()
        refill.save()
        self.assertEqual(
            [entry['status'] for entry in refill.status_history],
            [RefillRequest.STATUS_REQUESTED, RefillRequest.STATUS_IN_PRODUCTION],
        )

    def test_sanitation_pass_rate(self):
        visit = SanitationVisit.objects.create(
            client=self.client_account,
            scheduled_date=timezone.make_aware(datetime(2025, 6, 3, 10, 0)),
        )
        self.assertIsNone(visit.pass_rate)
        DispenserReport.objects.create(
            visit=visit,
            dispenser_id='D1',
            dispenser_name='Lobby',
            checklist=[
                {'item': 'Faucets sanitized', 'checked': True},
                {'item': 'No leaks found', 'checked': True},
                {'item': 'Drip tray sanitized', 'checked': False},
                {'item': 'Reservoir flushed', 'checked': True},
            ],
        )
        self.assertEqual(visit.pass_rate, 75)
        self.assertTrue(visit.share_token)


class UtilsTests(TestCase):
    def test_format_currency(self):
        self.assertEqual(format_currency(Decimal('1234.5')), '₱1,234.50')
        self.assertEqual(format_currency(None), '₱0.00')

    def test_format_liters(self):
        self.assertEqual(format_liters(Decimal('1950')), '1,950 L')
        self.assertEqual(format_liters(Decimal('19.5')), '19.50 L')

    def test_format_long_date(self):
        self.assertEqual(format_long_date(date(2026, 1, 5)), 'January 5, 2026')
        self.assertEqual(format_long_date(None), '')

    def test_build_cc_list_excludes_primary(self):
        self.assertEqual(
            build_cc_list('a@example.com', 'A@example.com', '', 'b@example.com', exclude=['b@example.com']),
            ['a@example.com'],
        )

    @override_settings(BILLING_BCC_EMAILS=['support@riverph.com', 'jayvee@riverph.com'])
    def test_billing_bcc_list(self):
        self.assertEqual(get_billing_bcc_list(), ['support@riverph.com', 'jayvee@riverph.com'])


@override_settings(ADMIN_NOTIFICATION_EMAIL='admin@riverph.com')
class NotificationTests(TestCase):
    def test_admin_user_is_found_by_email_then_superuser(self):
        superuser = User.objects.create_superuser(username='root', email='root@example.com', password='p')
        self.assertEqual(get_admin_user(), superuser)

        admin = User.objects.create_user(username='admin', email='ADMIN@riverph.com', password='p')
        self.assertEqual(get_admin_user(), admin)

    def test_missing_admin_logs_warning(self):
        with self.assertLogs('operations.notifications', level='WARNING'):
            self.assertIsNone(notify_admin(title='Top-Up Request'))
        self.assertFalse(Notification.objects.exists())

    def test_notify_client_without_user_is_skipped(self):
        client = Client.objects.create(name='N', business_name='No Portal')
        with self.assertLogs('operations.notifications', level='WARNING'):
            self.assertIsNone(notify_client(client, title='New Invoice'))

    def test_create_notification(self):
        user = User.objects.create_user(username='client', password='p')
        notification = create_notification(
            user,
            type=Notification.TYPE_PAYMENT,
            title='New Invoice',
            description='Ready',
            data={'invoice_number': 'INV-1'},
        )
        self.assertEqual(notification.recipient, user)
        self.assertFalse(notification.is_read)
        self.assertEqual(notification.data['invoice_number'], 'INV-1')


class ProtectPdfTests(TestCase):
    def test_protected_pdf_needs_password(self):
        protected = protect_pdf(blank_pdf(), 'SC2500000001')
        self.assertTrue(PdfReader(BytesIO(protected)).is_encrypted)
        self.assertFalse(PdfReader(BytesIO(protected)).decrypt('wrong-password'))
        reader = PdfReader(BytesIO(protected))
        self.assertTrue(reader.decrypt('SC2500000001'))
        self.assertEqual(len(reader.pages), 1)

    def test_empty_password_is_rejected(self):
        with self.assertRaises(StatementGenerationError):
            protect_pdf(blank_pdf(), '')

    def test_invalid_pdf_raises_statement_error(self):
        with self.assertLogs('operations.pdf_utils', level='ERROR'):
            with self.assertRaises(StatementGenerationError):
                protect_pdf(b'not a pdf', 'secret')
