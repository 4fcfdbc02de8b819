from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.test.utils import override_settings
from django.utils import timezone

from .billing import review_invoice_payment, review_top_up
from .models import (
    Client,
    CustomPlanDetails,
    Delivery,
    Invoice,
    Notification,
    Plan,
    RefillRequest,
    SanitationVisit,
    TopUpRequest,
)


@override_settings(ADMIN_NOTIFICATION_EMAIL='admin@riverph.com')
class SignalTestCase(TestCase):
    def setUp(self):
        self.admin = User.objects.create_superuser(username='admin', email='admin@riverph.com', password='p')
        self.user = User.objects.create_user(username='bluecafe', email='ana@example.com', password='p')
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.client_account = Client.objects.create(
            user=self.user,
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            email='ana@example.com',
            plan=self.plan,
        )

    def titles_for(self, user):
        return list(Notification.objects.filter(recipient=user).values_list('title', flat=True))


class PaymentSignalTests(SignalTestCase):
    def setUp(self):
        super().setUp()
        self.invoice = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-abcde-June-2025',
            billing_period='June 2025',
            description='Monthly Subscription for June 2025',
            amount=Decimal('1500.00'),
            status=Invoice.STATUS_PENDING_REVIEW,
        )

    def test_new_pending_invoice_alerts_admin(self):
        self.assertIn('Payment for Review', self.titles_for(self.admin))

    def test_approval_notifies_both_sides_and_emails_client(self):
        review_invoice_payment(self.invoice, approve=True)

        self.assertIn('Payment Confirmed', self.titles_for(self.user))
        self.assertIn('Payment Approved', self.titles_for(self.admin))
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Payment Confirmed: INV-abcde-June-2025')
        self.assertEqual(mail.outbox[0].to, ['ana@example.com'])

    def test_rejection_sends_reason_to_client(self):
        review_invoice_payment(self.invoice, approve=False, reason='Amount does not match')

        notification = Notification.objects.get(recipient=self.user, title='Payment Action Required')
        self.assertIn('Amount does not match', notification.description)
        self.assertIn('Payment Rejected', self.titles_for(self.admin))
        self.assertEqual(len(mail.outbox), 0)

    def test_resubmitted_proof_alerts_admin_again(self):
        review_invoice_payment(self.invoice, approve=False, reason='Blurry')
        Notification.objects.all().delete()

        self.invoice.status = Invoice.STATUS_PENDING_REVIEW
        self.invoice.save()

        self.assertEqual(self.titles_for(self.admin), ['Payment for Review'])


class TopUpSignalTests(SignalTestCase):
    def test_request_alerts_admin(self):
        TopUpRequest.objects.create(client=self.client_account, amount=Decimal('500.00'))
        self.assertIn('Top-Up Request', self.titles_for(self.admin))

    def test_approval_credits_balance_once(self):
        top_up = TopUpRequest.objects.create(client=self.client_account, amount=Decimal('500.00'))

        review_top_up(top_up, approve=True)

        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.top_up_balance_credits, Decimal('500.00'))
        self.assertIn('Top-Up Successful', self.titles_for(self.user))
        self.assertEqual(mail.outbox[0].subject, 'Credits Added Successfully to your Wallet')

        with self.assertRaises(ValidationError):
            review_top_up(top_up, approve=True)

        # Moving an approved request elsewhere never touches the balance again.
        top_up.status = TopUpRequest.STATUS_REJECTED
        top_up.save()
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.top_up_balance_credits, Decimal('500.00'))

    def test_rejection_leaves_balance_alone(self):
        top_up = TopUpRequest.objects.create(client=self.client_account, amount=Decimal('500.00'))

        review_top_up(top_up, approve=False, reason='No deposit found')

        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.top_up_balance_credits, Decimal('0.00'))
        notification = Notification.objects.get(recipient=self.user, title='Top-Up Rejected')
        self.assertIn('No deposit found', notification.description)


class RequestAndVisitSignalTests(SignalTestCase):
    def test_refill_request_lifecycle(self):
        refill = RefillRequest.objects.create(client=self.client_account, volume_containers=10)

        self.assertIn('Refill Request Received', self.titles_for(self.user))
        self.assertIn('New Refill Request', self.titles_for(self.admin))
        self.assertEqual(mail.outbox[0].subject, 'Refill Request Received')

        refill.status = RefillRequest.STATUS_OUT_FOR_DELIVERY
        refill.save()

        self.assertIn('Refill Status: Out for Delivery', self.titles_for(self.user))
        self.assertIn('Refill Status Updated', self.titles_for(self.admin))
        self.assertEqual(mail.outbox[1].subject, 'Refill Status: Out for Delivery')

    def test_delivered_status_sends_email(self):
        delivery = Delivery.objects.create(client=self.client_account, volume_containers=5)
        self.assertIn('Delivery Scheduled', self.titles_for(self.user))
        self.assertEqual(len(mail.outbox), 0)

        delivery.status = Delivery.STATUS_DELIVERED
        delivery.save()

        self.assertIn('Delivery Delivered', self.titles_for(self.user))
        self.assertEqual(mail.outbox[0].subject, 'Success: Water Delivered to Blue Cafe')

    def test_accounting_failure_does_not_block_delivery(self):
        with patch('operations.signals.record_delivery_consumption', side_effect=RuntimeError('boom')):
            with self.assertLogs('operations.signals', level='ERROR'):
                delivery = Delivery.objects.create(client=self.client_account, volume_containers=5)
        self.assertTrue(Delivery.objects.filter(pk=delivery.pk).exists())

    def test_sanitation_visit_updates(self):
        visit = SanitationVisit.objects.create(
            client=self.client_account,
            scheduled_date=timezone.make_aware(datetime(2025, 6, 3, 10, 0)),
        )
        self.assertIn('Sanitation Visit Scheduled', self.titles_for(self.user))

        visit.status = SanitationVisit.STATUS_COMPLETED
        visit.save()

        self.assertIn('Sanitation Visit Completed', self.titles_for(self.user))
        self.assertIn('Visit for Blue Cafe: Completed', self.titles_for(self.admin))


class ClientAccountSignalTests(SignalTestCase):
    def test_plan_change_request_alerts_admin(self):
        flow = Plan.objects.create(name='Flow Plan', price=Decimal('2.50'), is_consumption_based=True)
        self.client_account.pending_plan = flow
        self.client_account.save()

        notification = Notification.objects.get(recipient=self.admin, title='Plan Change Request')
        self.assertIn('Flow Plan', notification.description)

    def test_auto_refill_toggle_alerts_admin(self):
        details = CustomPlanDetails.objects.create(client=self.client_account)
        self.assertNotIn('Auto-Refill Changed', self.titles_for(self.admin))

        details.auto_refill_enabled = False
        details.save()

        notification = Notification.objects.get(recipient=self.admin, title='Auto-Refill Changed')
        self.assertIn('disabled auto-refill', notification.description)

    def test_admin_account_changes_are_ignored(self):
        own_account = Client.objects.create(user=self.admin, name='Admin', business_name='River HQ')
        own_account.pending_plan = self.plan
        own_account.save()
        self.assertNotIn('Plan Change Request', self.titles_for(self.admin))
