from datetime import date, datetime, timedelta
from decimal import Decimal
from io import BytesIO
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core import mail
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.test.utils import override_settings
from django.utils import timezone
from pypdf import PdfReader

from .billing import (
    add_manual_charge,
    billing_cycle_for_month,
    compute_invoice,
    generate_invoice_for_client,
    generate_monthly_invoices,
    mark_overdue_invoices,
    resolve_billing_cycle,
    review_invoice_payment,
    schedule_plan_change,
)
from .exceptions import BillingError, StatementGenerationError
from .models import (
    Client,
    CustomPlanDetails,
    Delivery,
    Invoice,
    ManualCharge,
    Notification,
    Plan,
    Transaction,
)
from .tests import blank_pdf


def aware(*args):
    return timezone.make_aware(datetime(*args))


JUNE_2025 = billing_cycle_for_month(date(2025, 6, 1))


class BillingCycleTests(TestCase):
    def test_regular_run_bills_previous_month(self):
        cycle = resolve_billing_cycle(date(2025, 7, 1))
        self.assertEqual(cycle.label, 'June 2025')
        self.assertEqual(cycle.months_to_bill, 1)
        self.assertEqual(timezone.localtime(cycle.period_start), aware(2025, 6, 1))
        self.assertEqual(timezone.localtime(cycle.period_end), aware(2025, 6, 30, 23, 59, 59, 999999))

    def test_january_2026_run_is_skipped(self):
        self.assertIsNone(resolve_billing_cycle(date(2026, 1, 1)))

    def test_february_2026_run_bills_two_months(self):
        cycle = resolve_billing_cycle(date(2026, 2, 1))
        self.assertEqual(cycle.label, 'December 2025 - January 2026')
        self.assertEqual(cycle.months_to_bill, 2)
        self.assertEqual(timezone.localtime(cycle.period_start), aware(2025, 12, 1))
        self.assertEqual(timezone.localtime(cycle.period_end).date(), date(2026, 1, 31))

    def test_march_2026_run_is_back_to_one_month(self):
        cycle = resolve_billing_cycle(date(2026, 3, 1))
        self.assertEqual(cycle.label, 'February 2026')
        self.assertEqual(cycle.months_to_bill, 1)

    def test_statement_months_inside_the_combined_cycle(self):
        for month in (date(2025, 12, 1), date(2026, 1, 15)):
            cycle = billing_cycle_for_month(month)
            self.assertEqual(cycle.label, 'December 2025 - January 2026')
            self.assertEqual(cycle.months_to_bill, 2)
        self.assertEqual(billing_cycle_for_month(date(2025, 11, 20)).label, 'November 2025')
        self.assertEqual(billing_cycle_for_month(date(2026, 2, 1)).label, 'February 2026')


class ComputeInvoiceTests(TestCase):
    def setUp(self):
        self.fixed_plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.flow_plan = Plan.objects.create(
            name='Flow Plan (P2.5/L)',
            price=Decimal('2.50'),
            is_consumption_based=True,
        )
        self.client_account = Client.objects.create(
            name='Ana',
            business_name='Blue Cafe',
            plan=self.fixed_plan,
            last_billed_date=aware(2025, 6, 1),
        )
        self.details = CustomPlanDetails.objects.create(
            client=self.client_account,
            liters_per_month=Decimal('1000'),
            bonus_liters=Decimal('50'),
            last_month_rollover=Decimal('100'),
        )

    def deliveries(self, *containers):
        return [Delivery(client=self.client_account, volume_containers=count) for count in containers]

    def test_consumption_plan_bills_liters_and_monthly_equipment(self):
        self.client_account.plan = self.flow_plan
        self.details.gallon_price = Decimal('100.00')
        self.details.gallon_payment_type = 'Monthly'
        self.details.save()
        deliveries = self.deliveries(10) + [Delivery(client=self.client_account, liters=Decimal('100'))]

        result = compute_invoice(self.client_account, deliveries, JUNE_2025)

        # (195 + 100) L * 2.50 + 100.00
        self.assertEqual(result.amount, Decimal('837.50'))
        self.assertEqual(result.description, 'Bill for June 2025')
        self.assertEqual(result.consumed_liters, Decimal('295.0'))
        self.assertIsNone(result.rollover)

    def test_fixed_plan_carries_unused_liters(self):
        result = compute_invoice(self.client_account, self.deliveries(20, 5), JUNE_2025)

        consumed = Decimal('487.5')
        self.assertEqual(result.amount, Decimal('1500.00'))
        self.assertEqual(result.description, 'Monthly Subscription for June 2025')
        self.assertEqual(result.rollover, Decimal('1150') - consumed)
        self.assertEqual(result.total_consumption_liters, Decimal('1050') + Decimal('1150') - consumed)

    def test_rollover_never_goes_negative(self):
        result = compute_invoice(self.client_account, self.deliveries(100), JUNE_2025)
        self.assertEqual(result.rollover, Decimal('0'))
        self.assertEqual(result.total_consumption_liters, Decimal('1050'))

    def test_two_month_cycle_doubles_price_and_allocation(self):
        self.details.dispenser_price = Decimal('250.00')
        self.details.dispenser_payment_type = 'Monthly'
        self.details.save()
        cycle = resolve_billing_cycle(date(2026, 2, 1))

        result = compute_invoice(self.client_account, self.deliveries(40), cycle)

        self.assertEqual(result.amount, Decimal('3500.00'))
        self.assertEqual(result.description, 'Monthly Subscription for December 2025 - January 2026')
        self.assertEqual(result.rollover, Decimal('2100') + Decimal('100') - Decimal('780.0'))

    def test_branch_on_fixed_plan_has_no_rollover(self):
        parent = Client.objects.create(name='P', business_name='HQ', account_type=Client.ACCOUNT_PARENT)
        self.client_account.account_type = Client.ACCOUNT_BRANCH
        self.client_account.parent = parent

        result = compute_invoice(self.client_account, self.deliveries(5), JUNE_2025)

        self.assertEqual(result.amount, Decimal('1500.00'))
        self.assertIsNone(result.rollover)
        self.assertIsNone(result.total_consumption_liters)

    def test_first_invoice_adds_one_time_fees(self):
        self.details.gallon_price = Decimal('100.00')
        self.details.gallon_payment_type = 'One-Time'
        self.details.dispenser_price = Decimal('250.00')
        self.details.dispenser_payment_type = 'One-Time'
        self.details.save()

        result = compute_invoice(self.client_account, [], JUNE_2025, is_first_invoice=True)
        self.assertEqual(result.amount, Decimal('1850.00'))
        self.assertEqual(result.description, 'Monthly Subscription for June 2025 + One-Time Fees')

        later = compute_invoice(self.client_account, [], JUNE_2025, is_first_invoice=False)
        self.assertEqual(later.amount, Decimal('1500.00'))

    def test_pending_adjustments_and_deductions(self):
        adjustment = ManualCharge(client=self.client_account, description='Extra trip', amount=Decimal('200.00'))
        result = compute_invoice(self.client_account, [], JUNE_2025, pending_charges=[adjustment])
        self.assertEqual(result.amount, Decimal('1700.00'))
        self.assertTrue(result.description.endswith(' + Adjustments'))

        deduction = ManualCharge(client=self.client_account, description='Credit', amount=Decimal('-2000.00'))
        result = compute_invoice(self.client_account, [], JUNE_2025, pending_charges=[deduction])
        self.assertEqual(result.amount, Decimal('0.00'))
        self.assertEqual(result.charges_total, Decimal('-2000.00'))
        self.assertTrue(result.description.endswith(' + Deductions'))

    def test_client_without_plan_cannot_be_billed(self):
        self.client_account.plan = None
        with self.assertRaises(BillingError):
            compute_invoice(self.client_account, [], JUNE_2025)


@override_settings(
    BILLING_BCC_EMAILS=['support@riverph.com', 'jayvee@riverph.com'],
    STATEMENT_PDF_ENCRYPTION_ENABLED=True,
)
@patch('operations.statements.render_template_to_pdf', side_effect=lambda *args, **kwargs: blank_pdf())
class GenerateInvoiceTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.user = User.objects.create_user(username='bluecafe', email='ana@example.com', password='p')
        self.client_account = Client.objects.create(
            user=self.user,
            client_id='SC2500000001',
            name='Ana',
            business_name='Blue Cafe',
            email='ana@example.com',
            cc_emails='owner@example.com',
            plan=self.plan,
            last_billed_date=aware(2025, 6, 1),
        )
        CustomPlanDetails.objects.create(
            client=self.client_account,
            liters_per_month=Decimal('1000'),
            bonus_liters=Decimal('0'),
        )
        Delivery.objects.create(client=self.client_account, date=aware(2025, 6, 10, 9), volume_containers=20)
        # Outside the cycle
        Delivery.objects.create(client=self.client_account, date=aware(2025, 7, 2, 9), volume_containers=30)

    def test_invoice_is_saved_notified_and_emailed(self, render):
        charge = ManualCharge.objects.create(
            client=self.client_account,
            description='Extra trip',
            amount=Decimal('150.00'),
        )

        result = generate_invoice_for_client(self.client_account, JUNE_2025)

        invoice = result.invoice
        self.assertEqual(invoice.invoice_number, f'INV-{self.client_account.short_key}-June-2025')
        self.assertEqual(invoice.amount, Decimal('1650.00'))
        self.assertEqual(invoice.status, Invoice.STATUS_UPCOMING)
        self.assertEqual(invoice.description, 'Monthly Subscription for June 2025 + Adjustments')
        self.assertEqual(invoice.billing_period, 'June 2025')
        charge.refresh_from_db()
        self.assertEqual(charge.invoice, invoice)

        self.client_account.refresh_from_db()
        self.assertIsNotNone(self.client_account.last_billed_date)
        self.assertEqual(self.client_account.total_consumption_liters, Decimal('1000') + Decimal('610.00'))
        self.assertEqual(self.client_account.custom_plan_details.last_month_rollover, Decimal('610.00'))

        self.assertTrue(Notification.objects.filter(recipient=self.user, title='New Invoice').exists())

        self.assertTrue(result.emailed)
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'New Invoice Available for June 2025')
        self.assertEqual(message.to, ['ana@example.com'])
        self.assertEqual(message.cc, ['owner@example.com'])
        self.assertEqual(message.bcc, ['support@riverph.com', 'jayvee@riverph.com'])
        filename, content, mimetype = message.attachments[0]
        self.assertEqual(filename, 'SOA_Blue_Cafe_June-2025.pdf')
        self.assertEqual(mimetype, 'application/pdf')
        reader = PdfReader(BytesIO(content))
        self.assertTrue(reader.is_encrypted)
        self.assertTrue(reader.decrypt('SC2500000001'))

    def test_zero_amount_creates_no_invoice_and_keeps_charges_pending(self, render):
        ManualCharge.objects.create(client=self.client_account, description='Credit', amount=Decimal('-1500.00'))

        result = generate_invoice_for_client(self.client_account, JUNE_2025)

        self.assertIsNone(result.invoice)
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(ManualCharge.objects.filter(invoice__isnull=True).count(), 1)
        self.assertEqual(len(mail.outbox), 0)
        # Rollover still saved
        self.assertEqual(
            CustomPlanDetails.objects.get(client=self.client_account).last_month_rollover,
            Decimal('610.00'),
        )

    def test_rerun_refreshes_amount_but_keeps_status(self, render):
        first = generate_invoice_for_client(self.client_account, JUNE_2025, send_email=False).invoice
        Invoice.objects.filter(pk=first.pk).update(status=Invoice.STATUS_PAID)
        self.plan.price = Decimal('1800.00')
        self.plan.save()
        self.client_account.refresh_from_db()

        second = generate_invoice_for_client(self.client_account, JUNE_2025, send_email=False).invoice

        self.assertEqual(second.pk, first.pk)
        self.assertEqual(Invoice.objects.count(), 1)
        second.refresh_from_db()
        self.assertEqual(second.amount, Decimal('1800.00'))
        self.assertEqual(second.status, Invoice.STATUS_PAID)

    def test_rerun_recomputes_from_the_first_run_state(self, render):
        self.client_account.last_billed_date = None
        self.client_account.save()
        details = self.client_account.custom_plan_details
        details.gallon_price = Decimal('200.00')
        details.gallon_payment_type = 'One-Time'
        details.last_month_rollover = Decimal('100.00')
        details.save()
        charge = ManualCharge.objects.create(client=self.client_account, description='Extra trip', amount=Decimal('150.00'))

        first = generate_invoice_for_client(self.client_account, JUNE_2025, send_email=False).invoice

        self.assertEqual(first.amount, Decimal('1850.00'))
        self.assertEqual(first.description, 'Monthly Subscription for June 2025 + One-Time Fees + Adjustments')
        self.assertTrue(first.is_first_invoice)

        late_charge = ManualCharge.objects.create(client=self.client_account, description='Spare cap', amount=Decimal('50.00'))
        self.client_account.refresh_from_db()
        second = generate_invoice_for_client(self.client_account, JUNE_2025, send_email=False).invoice

        self.assertEqual(second.pk, first.pk)
        second.refresh_from_db()
        self.assertEqual(second.amount, Decimal('1900.00'))
        self.assertEqual(second.description, 'Monthly Subscription for June 2025 + One-Time Fees + Adjustments')
        self.assertEqual(
            set(second.manual_charges.values_list('pk', flat=True)),
            {charge.pk, late_charge.pk},
        )
        details.refresh_from_db()
        self.assertEqual(details.last_month_rollover, Decimal('710.00'))
        self.assertEqual(details.opening_rollover, Decimal('100.00'))
        self.assertEqual(details.rollover_period, 'June 2025')
        self.client_account.refresh_from_db()
        self.assertEqual(self.client_account.total_consumption_liters, Decimal('1710.00'))

    def test_next_period_carries_the_new_rollover(self, render):
        generate_invoice_for_client(self.client_account, JUNE_2025, send_email=False)
        self.client_account.refresh_from_db()

        july = billing_cycle_for_month(date(2025, 7, 1))
        result = generate_invoice_for_client(self.client_account, july, send_email=False)

        # 1000 allocated + 610 carried from June - 585 delivered in July
        self.assertEqual(result.computation.rollover, Decimal('1025.00'))
        details = CustomPlanDetails.objects.get(client=self.client_account)
        self.assertEqual(details.opening_rollover, Decimal('610.00'))
        self.assertEqual(details.rollover_period, 'July 2025')

    def test_branch_invoice_is_covered_by_parent_and_not_emailed(self, render):
        parent = Client.objects.create(name='HQ', business_name='HQ Corp', account_type=Client.ACCOUNT_PARENT)
        self.client_account.account_type = Client.ACCOUNT_BRANCH
        self.client_account.parent = parent
        self.client_account.save()

        result = generate_invoice_for_client(self.client_account, JUNE_2025)

        self.assertEqual(result.invoice.status, Invoice.STATUS_COVERED_BY_PARENT)
        self.assertFalse(result.emailed)
        self.assertEqual(len(mail.outbox), 0)

    def test_email_failure_is_logged_not_raised(self, render):
        render.side_effect = StatementGenerationError('WeasyPrint is not available.')

        with self.assertLogs('operations.billing', level='ERROR'):
            result = generate_invoice_for_client(self.client_account, JUNE_2025)

        self.assertIsNotNone(result.invoice)
        self.assertFalse(result.emailed)
        self.assertEqual(len(mail.outbox), 0)

    def test_client_without_plan_is_ignored(self, render):
        self.client_account.plan = None
        self.assertIsNone(generate_invoice_for_client(self.client_account, JUNE_2025))
        self.assertFalse(Invoice.objects.exists())


@patch('operations.statements.render_template_to_pdf', side_effect=lambda *args, **kwargs: blank_pdf())
class MonthlyRunTests(TestCase):
    def setUp(self):
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1000.00'))
        self.flow_plan = Plan.objects.create(name='Flow Plan', price=Decimal('3.00'), is_consumption_based=True)

        self.billable = Client.objects.create(name='A', business_name='Alpha', plan=self.plan)
        self.prepaid = Client.objects.create(name='B', business_name='Bravo', plan=self.plan, is_prepaid=True)
        self.inactive = Client.objects.create(
            name='C',
            business_name='Charlie',
            plan=self.plan,
            account_status=Client.STATUS_INACTIVE,
        )
        staff = User.objects.create_user(username='staff', password='p', is_staff=True)
        self.admin_account = Client.objects.create(user=staff, name='D', business_name='Delta', plan=self.plan)

    def test_run_skips_non_billable_accounts(self, render):
        result = generate_monthly_invoices(date(2025, 7, 1))

        self.assertEqual(result.cycle.label, 'June 2025')
        self.assertEqual(result.invoiced, [str(self.billable)])
        self.assertCountEqual(result.skipped, [str(self.prepaid), str(self.inactive), str(self.admin_account)])
        self.assertEqual(list(Invoice.objects.values_list('client_id', flat=True)), [self.billable.pk])

    def test_january_2026_run_does_nothing(self, render):
        result = generate_monthly_invoices(date(2026, 1, 1))
        self.assertTrue(result.was_skipped)
        self.assertFalse(Invoice.objects.exists())

    def test_failure_for_one_client_does_not_stop_the_run(self, render):
        other = Client.objects.create(name='E', business_name='Echo', plan=self.plan)
        real_generate = generate_invoice_for_client

        def flaky(client, cycle, **kwargs):
            if client.pk == self.billable.pk:
                raise RuntimeError('boom')
            return real_generate(client, cycle, **kwargs)

        with patch('operations.billing.generate_invoice_for_client', side_effect=flaky):
            with self.assertLogs('operations.billing', level='ERROR'):
                result = generate_monthly_invoices(date(2025, 7, 1))

        self.assertEqual(result.failed, [str(self.billable)])
        self.assertEqual(result.invoiced, [str(other)])
        self.assertTrue(Invoice.objects.filter(client=other).exists())

    def test_pending_plan_activates_after_billing_with_old_plan(self, render):
        self.billable.pending_plan = self.flow_plan
        self.billable.plan_change_effective_date = date(2025, 7, 1)
        self.billable.save()

        result = generate_monthly_invoices(date(2025, 7, 1))

        invoice = Invoice.objects.get(client=self.billable)
        self.assertEqual(invoice.amount, Decimal('1000.00'))
        self.billable.refresh_from_db()
        self.assertEqual(self.billable.plan, self.flow_plan)
        self.assertIsNone(self.billable.pending_plan)
        self.assertIsNone(self.billable.plan_change_effective_date)
        self.assertIn(str(self.billable), result.plans_activated)

    def test_plan_change_due_in_skipped_month_still_activates(self, render):
        self.billable.pending_plan = self.flow_plan
        self.billable.plan_change_effective_date = date(2026, 1, 1)
        self.billable.save()

        result = generate_monthly_invoices(date(2026, 1, 1))

        self.assertTrue(result.was_skipped)
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(result.plans_activated, [str(self.billable)])
        self.billable.refresh_from_db()
        self.assertEqual(self.billable.plan, self.flow_plan)
        self.assertIsNone(self.billable.pending_plan)

    def test_plan_change_between_run_days_activates_on_next_run(self, render):
        self.billable.pending_plan = self.flow_plan
        self.billable.plan_change_effective_date = date(2025, 6, 15)
        self.billable.save()

        generate_monthly_invoices(date(2025, 7, 1))

        self.assertEqual(Invoice.objects.get(client=self.billable).amount, Decimal('1000.00'))
        self.billable.refresh_from_db()
        self.assertEqual(self.billable.plan, self.flow_plan)
        self.assertIsNone(self.billable.plan_change_effective_date)

    def test_future_plan_change_waits(self, render):
        self.billable.pending_plan = self.flow_plan
        self.billable.plan_change_effective_date = date(2025, 8, 1)
        self.billable.save()

        result = generate_monthly_invoices(date(2025, 7, 1))

        self.assertEqual(result.plans_activated, [])
        self.billable.refresh_from_db()
        self.assertEqual(self.billable.plan, self.plan)
        self.assertEqual(self.billable.pending_plan, self.flow_plan)

    def test_dry_run_saves_nothing(self, render):
        result = generate_monthly_invoices(date(2025, 7, 1), dry_run=True)
        self.assertEqual(result.invoiced, [str(self.billable)])
        self.assertFalse(Invoice.objects.exists())
        self.billable.refresh_from_db()
        self.assertIsNone(self.billable.last_billed_date)


class DeliveryAccountingTests(TestCase):
    def setUp(self):
        self.flow_plan = Plan.objects.create(name='Flow Plan', price=Decimal('2.50'), is_consumption_based=True)
        self.fixed_plan = Plan.objects.create(name='SME Plan', price=Decimal('1500.00'))
        self.parent_user = User.objects.create_user(username='hq', password='p')
        self.parent = Client.objects.create(
            user=self.parent_user,
            name='HQ',
            business_name='HQ Corp',
            account_type=Client.ACCOUNT_PARENT,
            plan=self.flow_plan,
            top_up_balance_credits=Decimal('5000.00'),
        )
        self.branch = Client.objects.create(
            name='Branch',
            business_name='HQ Makati',
            account_type=Client.ACCOUNT_BRANCH,
            parent=self.parent,
            plan=self.flow_plan,
        )

    def test_branch_delivery_debits_parent_credits(self):
        Delivery.objects.create(client=self.branch, volume_containers=10)

        self.parent.refresh_from_db()
        self.assertEqual(self.parent.top_up_balance_credits, Decimal('4512.50'))
        debit = Transaction.objects.get(client=self.parent)
        self.assertEqual(debit.type, Transaction.TYPE_DEBIT)
        self.assertEqual(debit.amount_credits, Decimal('487.50'))
        self.assertEqual(debit.description, 'Delivery to HQ Makati')
        self.assertEqual(debit.branch, self.branch)
        self.assertTrue(
            Notification.objects.filter(recipient=self.parent_user, title='Branch Consumption').exists()
        )

    def test_fixed_plan_delivery_reduces_liter_balance(self):
        single = Client.objects.create(
            name='S',
            business_name='Solo',
            plan=self.fixed_plan,
            total_consumption_liters=Decimal('1000'),
        )
        Delivery.objects.create(client=single, volume_containers=4)
        single.refresh_from_db()
        self.assertEqual(single.total_consumption_liters, Decimal('922.00'))

    def test_consumption_plan_delivery_leaves_balance_alone(self):
        single = Client.objects.create(name='S', business_name='Solo', plan=self.flow_plan)
        Delivery.objects.create(client=single, volume_containers=4)
        single.refresh_from_db()
        self.assertEqual(single.total_consumption_liters, Decimal('0'))


@override_settings(INVOICE_DUE_DAYS=15)
class StaffActionTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username='c', password='p')
        self.plan = Plan.objects.create(name='SME Plan', price=Decimal('1000.00'))
        self.client_account = Client.objects.create(user=self.user, name='A', business_name='Alpha', plan=self.plan)

    def make_invoice(self, status=Invoice.STATUS_UPCOMING, **kwargs):
        return Invoice.objects.create(
            client=self.client_account,
            invoice_number=kwargs.pop('invoice_number', 'INV-a-June-2025'),
            billing_period='June 2025',
            description='Monthly Subscription for June 2025',
            amount=Decimal('1000.00'),
            status=status,
            **kwargs,
        )

    def test_mark_overdue_invoices(self):
        stale = self.make_invoice(date=timezone.now() - timedelta(days=20))
        fresh = self.make_invoice(invoice_number='INV-a-July-2025', date=timezone.now() - timedelta(days=2))

        self.assertEqual(mark_overdue_invoices(), 1)

        stale.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stale.status, Invoice.STATUS_OVERDUE)
        self.assertEqual(fresh.status, Invoice.STATUS_UPCOMING)
        self.assertTrue(Notification.objects.filter(recipient=self.user, title='Invoice Overdue').exists())

    def test_review_payment(self):
        invoice = self.make_invoice(status=Invoice.STATUS_PENDING_REVIEW)
        with self.assertRaises(ValidationError):
            review_invoice_payment(invoice, approve=False, reason='  ')

        review_invoice_payment(invoice, approve=False, reason='Blurry receipt')
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, Invoice.STATUS_UPCOMING)
        self.assertEqual(invoice.rejection_reason, 'Blurry receipt')

        with self.assertRaises(ValidationError):
            review_invoice_payment(invoice, approve=True)

    def test_manual_charge_validation(self):
        with self.assertRaises(ValidationError):
            add_manual_charge(self.client_account, 'Nothing', Decimal('0'))
        charge = add_manual_charge(self.client_account, 'Refund', '-120.5')
        self.assertEqual(charge.amount, Decimal('-120.50'))
        self.assertIsNone(charge.invoice)

    def test_schedule_plan_change_defaults_to_next_month(self):
        flow = Plan.objects.create(name='Flow Plan', price=Decimal('2.50'), is_consumption_based=True)
        schedule_plan_change(self.client_account, flow)
        self.client_account.refresh_from_db()
        today = timezone.localdate()
        expected = (today.replace(day=1) + timedelta(days=32)).replace(day=1)
        self.assertEqual(self.client_account.pending_plan, flow)
        self.assertEqual(self.client_account.plan_change_effective_date, expected)

        with self.assertRaises(ValidationError):
            schedule_plan_change(self.client_account, flow, today)
