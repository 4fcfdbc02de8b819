from datetime import date, datetime
from decimal import Decimal
from io import BytesIO
from unittest.mock import patch

from django.test import TestCase
from django.test.utils import override_settings
from django.utils import timezone
from pypdf import PdfReader

from .billing import billing_cycle_for_month, generate_cycle_statement
from .models import Client, CustomPlanDetails, Delivery, Invoice, Plan
from .statements import (
    build_statement_context,
    delivery_history_period,
    generate_delivery_history_pdf,
    generate_password_protected_soa,
    invoice_liters_text,
    statement_filename,
)
from .tests import blank_pdf


class StatementContextTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.client_account = Client.objects.create(
            client_id='SC2500000007',
            name='Ana',
            business_name='Blue Cafe Makati',
            email='ana@example.com',
            plan=self.plan,
        )
        CustomPlanDetails.objects.create(
            client=self.client_account,
            liters_per_month=Decimal('1000'),
            gallon_quantity=10,
            gallon_payment_type='Monthly',
        )
        self.deliveries = [
            Delivery(client=self.client_account, reference='DEL-1', volume_containers=10),
            Delivery(client=self.client_account, reference='DEL-2', liters=Decimal('100')),
        ]

    def test_statement_filename(self):
        self.assertEqual(
            statement_filename(self.client_account, 'December 2025 - January 2026'),
            'SOA_Blue_Cafe_Makati_December-2025---January-2026.pdf',
        )

    def test_context_totals_vat_and_saved_liters(self):
        context = build_statement_context(
            self.client_account,
            'June 2025',
            self.deliveries,
            total_amount=Decimal('1120.00'),
        )

        self.assertEqual(context['plan_label'], 'Plan: SME Plan')
        self.assertEqual(context['total_containers'], 10)
        self.assertEqual(context['total_liters'], Decimal('295.0'))
        self.assertEqual(context['summary']['vat_rate_percent'], 12)
        self.assertEqual(context['summary']['vat'], Decimal('134.40'))
        self.assertEqual(context['summary']['total_due'], Decimal('1120.00'))
        self.assertEqual(context['saved_liters'], Decimal('705.0'))
        self.assertEqual(context['subscription_rows'][0], ('Purchased Liters', '1,000 L/month'))
        self.assertFalse(context['show_quality_section'])

    def test_no_summary_without_amount(self):
        context = build_statement_context(self.client_account, 'June 2025', [])
        self.assertIsNone(context['summary'])

    def test_statement_template_renders(self):
        with patch('operations.pdf_utils.render_html_to_pdf', return_value=blank_pdf()) as render_html:
            generate_password_protected_soa(
                self.client_account,
                'June 2025',
                self.deliveries,
                total_amount=Decimal('1500.00'),
            )

        html = render_html.call_args.args[0]
        self.assertIn('Statement of Account', html)
        self.assertIn('Blue Cafe Makati', html)
        self.assertIn('DEL-1', html)
        self.assertIn('₱1,500.00', html)

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_soa_is_locked_with_client_id(self, render):
        pdf = generate_password_protected_soa(self.client_account, 'June 2025', self.deliveries)
        reader = PdfReader(BytesIO(pdf))
        self.assertTrue(reader.is_encrypted)
        self.assertTrue(reader.decrypt('SC2500000007'))

    @override_settings(STATEMENT_PDF_ENCRYPTION_ENABLED=False)
    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_encryption_can_be_disabled(self, render):
        pdf = generate_password_protected_soa(self.client_account, 'June 2025', self.deliveries)
        self.assertFalse(PdfReader(BytesIO(pdf)).is_encrypted)

    @patch('operations.statements.render_template_to_pdf', return_value=blank_pdf())
    def test_cycle_statement_uses_invoice_total(self, render):
        cycle = billing_cycle_for_month(date(2025, 6, 1))
        Invoice.objects.create(
            client=self.client_account,
            invoice_number='INV-x-June-2025',
            billing_period=cycle.label,
            description='Monthly Subscription for June 2025',
            amount=Decimal('1500.00'),
        )
        Delivery.objects.create(
            client=self.client_account,
            date=timezone.make_aware(datetime(2025, 6, 12, 9)),
            volume_containers=4,
        )

        generate_cycle_statement(self.client_account, cycle)

        template, context = render.call_args.args
        self.assertEqual(template, 'operations/statement_of_account.html')
        self.assertEqual(context['billing_period'], 'June 2025')
        self.assertEqual(context['summary']['total_due'], Decimal('1500.00'))
        self.assertEqual(len(context['delivery_rows']), 1)


class DeliveryHistoryAndInvoicePdfTests(TestCase):
    def test_delivery_history_period(self):
        self.assertEqual(delivery_history_period(), 'All Time')
        self.assertEqual(delivery_history_period(date(2025, 6, 1)), 'June 1, 2025')
        self.assertEqual(
            delivery_history_period(date(2025, 6, 1), date(2025, 6, 30)),
            'June 1, 2025 to June 30, 2025',
        )

    def test_delivery_history_template_renders(self):
        client = Client.objects.create(name='N', business_name='Blue Cafe')
        delivery = Delivery.objects.create(client=client, volume_containers=3)

        with patch('operations.pdf_utils.render_html_to_pdf', return_value=blank_pdf()) as render_html:
            generate_delivery_history_pdf(client, [delivery])

        html = render_html.call_args.args[0]
        self.assertIn(delivery.reference, html)
        self.assertIn('All Time', html)

    def test_invoice_liters_text(self):
        flow = Plan.objects.create(name='Flow Plan', price=Decimal('2.50'), is_consumption_based=True)
        client = Client.objects.create(name='N', business_name='Blue Cafe', plan=flow)
        CustomPlanDetails.objects.create(
            client=client,
            liters_per_month=Decimal('500'),
            dispenser_price=Decimal('100.00'),
            dispenser_payment_type='Monthly',
        )
        invoice = Invoice(client=client, invoice_number='INV-1', description='Bill', amount=Decimal('600.00'))
        self.assertEqual(invoice_liters_text(invoice), '(200.0 L consumed)')

        client.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.assertEqual(invoice_liters_text(invoice), '(500 L/mo)')

        client.plan = None
        self.assertEqual(invoice_liters_text(invoice), '')
