import shutil
import tempfile
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.test.utils import override_settings

from .models import Client, ComplianceReport, Delivery, Invoice, Notification, WaterStation
from .uploads import handle_uploaded_file


MEDIA_ROOT = tempfile.mkdtemp()


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class HandleUploadedFileTests(TestCase):
    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = User.objects.create_user(username='bluecafe', password='p')
        self.station = WaterStation.objects.create(name='Laguna Station')
        self.client_account = Client.objects.create(
            user=self.user,
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            assigned_station=self.station,
        )

    def test_profile_photo(self):
        path = f'users/{self.client_account.uid}/profile/avatar.png'
        result = handle_uploaded_file(path, b'png-bytes')
        self.assertEqual(result, self.client_account)
        self.client_account.refresh_from_db()
        self.assertTrue(self.client_account.photo.name.endswith('.png'))

    def test_payment_proof_moves_invoice_to_review(self):
        invoice = Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-abcde-June-2025',
            billing_period='June 2025',
            description='Monthly Subscription for June 2025',
            amount=Decimal('1500.00'),
        )
        upload = SimpleUploadedFile('receipt.jpg', b'jpeg-bytes', content_type='image/jpeg')

        result = handle_uploaded_file(
            f'users/{self.client_account.uid}/payments/receipt.jpg',
            upload,
            {'payment_id': 'INV-abcde-June-2025'},
        )

        self.assertEqual(result, invoice)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_PENDING_REVIEW)
        self.assertTrue(invoice.proof_of_payment)

    def test_payment_proof_without_payment_id_is_ignored(self):
        with self.assertLogs('operations.uploads', level='ERROR'):
            result = handle_uploaded_file(f'users/{self.client_account.uid}/payments/receipt.jpg', b'x')
        self.assertIsNone(result)

    def test_delivery_proof_matches_reference(self):
        delivery = Delivery.objects.create(client=self.client_account, volume_containers=5)
        path = f'users/{self.client_account.client_id}/deliveries/{delivery.reference}.jpg'

        result = handle_uploaded_file(path, b'jpeg-bytes')

        self.assertEqual(result, delivery)
        delivery.refresh_from_db()
        self.assertTrue(delivery.proof_of_delivery)

    def test_contract_activates_account_contract(self):
        result = handle_uploaded_file(f'userContracts/{self.client_account.uid}/contract.pdf', b'%PDF-1.4')

        self.assertEqual(result, self.client_account)
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.contract_status, 'Active')
        self.assertIsNotNone(self.client_account.contract_uploaded_date)
        self.assertTrue(
            Notification.objects.filter(recipient=self.user, title='New Contract Uploaded').exists()
        )

    def test_compliance_report_notifies_station_clients(self):
        path = f'stations/{self.station.pk}/compliance/bacteriological-june.pdf'

        report = handle_uploaded_file(path, b'%PDF-1.4', {'report_type': ComplianceReport.TYPE_DOH_MONTHLY})

        self.assertEqual(report.station, self.station)
        self.assertEqual(report.report_key, 'bacteriological')
        self.assertEqual(report.name, 'Bacteriological')
        self.assertEqual(report.status, ComplianceReport.STATUS_PENDING_REVIEW)
        self.assertTrue(
            Notification.objects.filter(recipient=self.user, title='New Compliance Report').exists()
        )

        again = handle_uploaded_file(path, b'%PDF-1.5')
        self.assertEqual(again.pk, report.pk)
        self.assertEqual(ComplianceReport.objects.count(), 1)

    def test_unknown_paths_and_folders_are_ignored(self):
        self.assertIsNone(handle_uploaded_file('misc/readme.txt', b'x'))
        self.assertIsNone(handle_uploaded_file(f'users/{self.client_account.uid}/payments/', b''))
        with self.assertLogs('operations.uploads', level='ERROR'):
            self.assertIsNone(handle_uploaded_file('users/unknown-client/profile/a.png', b'x'))
