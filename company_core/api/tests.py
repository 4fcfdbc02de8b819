import shutil
import tempfile
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.test.utils import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from operations.exceptions import StatementGenerationError
from operations.models import (
    Client,
    ComplianceReport,
    Delivery,
    Invoice,
    ManualCharge,
    Notification,
    Plan,
    RefillRequest,
    TopUpRequest,
    WaterStation,
)
from operations.tests import blank_pdf


class ApiTestCase(TestCase):
    def setUp(self):
        self.api = APIClient()
        self.staff = User.objects.create_user(username='staff', password='p', is_staff=True)
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.flow_plan = Plan.objects.create(name='Flow Plan', price=Decimal('2.50'), is_consumption_based=True)
        self.station = WaterStation.objects.create(name='Laguna Station')

        self.user = User.objects.create_user(username='bluecafe', password='p')
        self.client_account = Client.objects.create(
            user=self.user,
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            account_type=Client.ACCOUNT_PARENT,
            plan=self.flow_plan,
            assigned_station=self.station,
        )
        self.branch = Client.objects.create(
            name='Branch',
            business_name='Blue Cafe Makati',
            account_type=Client.ACCOUNT_BRANCH,
            parent=self.client_account,
            plan=self.flow_plan,
        )
        self.other_user = User.objects.create_user(username='other', password='p')
        self.other_account = Client.objects.create(user=self.other_user, name='O', business_name='Other Co')

    def login(self, user):
        self.api.force_authenticate(user=user)


class AuthAndAccountTests(ApiTestCase):
    def test_token_login_and_me(self):
        response = self.api.post(reverse('api_token_auth'), {'username': 'bluecafe', 'password': 'p'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        token = response.data['token']
        self.assertEqual(Token.objects.get(user=self.user).key, token)

        self.api.credentials(HTTP_AUTHORIZATION=f'Token {token}')
        response = self.api.get(reverse('api_me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['client_id'], 'SC2500000001')
        self.assertEqual(response.data['plan_name'], 'Flow Plan')

    def test_anonymous_requests_are_rejected(self):
        response = self.api.get(reverse('client-list'))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_clients_see_own_account_and_branches(self):
        self.login(self.user)
        response = self.api.get(reverse('client-list'))
        ids = {row['id'] for row in response.data}
        self.assertEqual(ids, {self.client_account.pk, self.branch.pk})

        response = self.api.get(reverse('client-detail', args=[self.other_account.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_clients_cannot_edit_accounts(self):
        self.login(self.user)
        response = self.api.patch(
            reverse('client-detail', args=[self.client_account.pk]),
            {'business_name': 'Renamed'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_create_branch_requires_parent(self):
        self.login(self.staff)
        response = self.api.post(
            reverse('client-list'),
            {'name': 'B', 'business_name': 'Orphan', 'account_type': Client.ACCOUNT_BRANCH},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent', response.data)

    def test_branch_deliveries_are_visible_to_parent(self):
        delivery = Delivery.objects.create(client=self.branch, volume_containers=2)
        Delivery.objects.create(client=self.other_account, volume_containers=2)

        self.login(self.user)
        response = self.api.get(reverse('delivery-list'))

        self.assertEqual([row['id'] for row in response.data], [delivery.pk])
        self.assertEqual(Decimal(response.data[0]['liters_delivered']), Decimal('39.0'))


class PlanAndChargeTests(ApiTestCase):
    def test_staff_queue_manual_charge(self):
        self.login(self.staff)
        url = reverse('client-manual-charges', args=[self.client_account.pk])

        response = self.api.post(url, {'description': 'Extra trip', 'amount': '250.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(ManualCharge.objects.filter(client=self.client_account, invoice__isnull=True).exists())

        response = self.api.post(url, {'description': 'Nothing', 'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.api.get(url, {'pending': '1'})
        self.assertEqual(len(response.data), 1)

    def test_clients_cannot_add_manual_charges(self):
        self.login(self.user)
        response = self.api.post(
            reverse('client-manual-charges', args=[self.client_account.pk]),
            {'description': 'Discount', 'amount': '-250.00'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_change_plan_immediately(self):
        self.client_account.pending_plan = self.plan
        self.client_account.save()
        self.login(self.staff)

        response = self.api.post(
            reverse('client-change-plan', args=[self.client_account.pk]),
            {'plan': self.plan.pk, 'liters_per_month': '1000'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.plan, self.plan)
        self.assertIsNone(self.client_account.pending_plan)
        self.assertEqual(self.client_account.custom_plan_details.liters_per_month, Decimal('1000'))

    def test_client_schedules_and_cancels_own_plan_change(self):
        self.login(self.user)
        url = reverse('client-schedule-plan-change', args=[self.client_account.pk])

        response = self.api.post(url, {'plan': self.plan.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['pending_plan_name'], 'SME Plan')
        self.assertIsNotNone(response.data['plan_change_effective_date'])

        response = self.api.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client_account.refresh_from_db()
        self.assertIsNone(self.client_account.pending_plan)

    def test_branch_cannot_schedule_plan_change(self):
        self.login(self.user)
        response = self.api.post(
            reverse('client-schedule-plan-change', args=[self.branch.pk]),
            {'plan': self.plan.pk},
            format='json',
        )
        # Parents see their branches but cannot move them off the parent plan.
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.login(self.staff)
        response = self.api.post(
            reverse('client-schedule-plan-change', args=[self.branch.pk]),
            {'plan': self.plan.pk},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class DocumentTests(ApiTestCase):
    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_statement_download(self, render):
        self.login(self.user)
        response = self.api.get(
            reverse('client-statement', args=[self.client_account.pk]),
            {'period': '2025-06'},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn('SOA_Blue_Cafe_June-2025.pdf', response['Content-Disposition'])

    def test_statement_period_must_be_year_month(self):
        self.login(self.user)
        response = self.api.get(
            reverse('client-statement', args=[self.client_account.pk]),
            {'period': 'June'},
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @patch(
        'operations.statements.render_template_to_pdf',
        side_effect=StatementGenerationError('WeasyPrint is not available.'),
    )
    def test_statement_unavailable_without_renderer(self, render):
        self.login(self.user)
        with self.assertLogs('api.views', level='ERROR'):
            response = self.api.get(reverse('client-statement', args=[self.client_account.pk]))
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_delivery_history_and_invoice_pdf(self, render):
        invoice = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-abcde-June-2025',
            billing_period='June 2025',
            description='Bill for June 2025',
            amount=Decimal('500.00'),
        )
        self.login(self.user)

        response = self.api.get(
            reverse('client-delivery-history', args=[self.client_account.pk]),
            {'start': '2025-06-01', 'end': '2025-06-30'},
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Delivery_History_SC2500000001.pdf', response['Content-Disposition'])

        response = self.api.get(reverse('invoice-pdf', args=[invoice.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('Invoice_INV-abcde-June-2025.pdf', response['Content-Disposition'])


class ReviewTests(ApiTestCase):
    def test_staff_review_payment(self):
        invoice = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-abcde-June-2025',
            billing_period='June 2025',
            description='Bill for June 2025',
            amount=Decimal('500.00'),
            status=Invoice.STATUS_PENDING_REVIEW,
        )
        url = reverse('invoice-review', args=[invoice.pk])

        self.login(self.user)
        self.assertEqual(self.api.post(url, {'approve': True}, format='json').status_code, status.HTTP_403_FORBIDDEN)

        self.login(self.staff)
        response = self.api.post(url, {'approve': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.api.post(url, {'approve': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Invoice.STATUS_PAID)

    def test_client_top_up_is_tied_to_own_account(self):
        self.login(self.user)
        response = self.api.post(
            reverse('topuprequest-list'),
            {'amount': '1000.00', 'client': self.other_account.pk},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        top_up = TopUpRequest.objects.get()
        self.assertEqual(top_up.client, self.client_account)
        self.assertEqual(top_up.status, TopUpRequest.STATUS_PENDING_REVIEW)

        self.login(self.staff)
        response = self.api.post(reverse('topuprequest-review', args=[top_up.pk]), {'approve': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.top_up_balance_credits, Decimal('1000.00'))

    def test_client_refill_request(self):
        self.login(self.user)
        response = self.api.post(
            reverse('refillrequest-list'),
            {'volume_containers': 12, 'status': RefillRequest.STATUS_COMPLETED},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        refill = RefillRequest.objects.get()
        self.assertEqual(refill.client, self.client_account)
        self.assertEqual(refill.status, RefillRequest.STATUS_REQUESTED)

        response = self.api.patch(
            reverse('refillrequest-detail', args=[refill.pk]),
            {'status': RefillRequest.STATUS_CANCELLED},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_compliance_reports_follow_assigned_station(self):
        report = ComplianceReport.objects.create(station=self.station, report_key='doh', name='DOH Monthly')
        other_station = WaterStation.objects.create(name='Cavite Station')
        ComplianceReport.objects.create(station=other_station, report_key='doh', name='DOH Monthly')

        self.login(self.user)
        response = self.api.get(reverse('compliancereport-list'))
        self.assertEqual([row['id'] for row in response.data], [report.pk])
        self.assertEqual(response.data[0]['station_name'], 'Laguna Station')


class NotificationApiTests(ApiTestCase):
    def test_list_and_mark_read(self):
        Notification.objects.create(recipient=self.user, title='New Invoice')
        Notification.objects.create(recipient=self.other_user, title='New Invoice')
        self.login(self.user)

        response = self.api.get(reverse('notification-list'), {'unread': '1'})
        self.assertEqual([row['title'] for row in response.data], ['New Invoice'])

        response = self.api.post(reverse('notification-mark-all-read'))
        self.assertEqual(response.data['updated'], 1)
        self.assertFalse(Notification.objects.filter(recipient=self.user, is_read=False).exists())


UPLOAD_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=UPLOAD_ROOT)
class UploadApiTests(ApiTestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(UPLOAD_ROOT, ignore_errors=True)
        super().tearDownClass()

    def upload(self, path, **extra):
        data = {'path': path, 'file': SimpleUploadedFile('receipt.jpg', b'jpeg-bytes', content_type='image/jpeg')}
        data.update(extra)
        return self.api.post(reverse('api_upload'), data, format='multipart')

    def test_payment_proof_upload(self):
        invoice = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-abcde-June-2025',
            billing_period='June 2025',
            description='Bill for June 2025',
            amount=Decimal('500.00'),
        )
        self.login(self.user)

        response = self.upload(
            f'users/{self.client_account.uid}/payments/receipt.jpg',
            payment_id='INV-abcde-June-2025',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['model'], 'invoice')
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_PENDING_REVIEW)

    def test_clients_cannot_upload_to_other_accounts(self):
        self.login(self.user)
        response = self.upload(f'users/{self.other_account.uid}/profile/receipt.jpg')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.upload(f'stations/{self.station.pk}/compliance/doh-june.pdf')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unmatched_upload(self):
        self.login(self.staff)
        response = self.upload('misc/receipt.jpg')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'upload_not_matched')
