"""Monthly invoice generation for client accounts.

The monthly run bills every active, postpaid client for the previous calendar
month. Fixed plans bill a flat subscription and carry unused liters forward as
rollover; consumption plans bill delivered liters at the plan's per-liter
price. Monthly equipment rentals, first-invoice one-time fees and pending
manual charges are added on top.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import BillingError
from .models import (
    Client,
    ComplianceReport,
    CustomPlanDetails,
    Delivery,
    Invoice,
    ManualCharge,
    Notification,
    Plan,
    TopUpRequest,
    Transaction,
    ensure_decimal,
)
from .notifications import notify_client
from .utils import quantize_money


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
STATEMENT_COMPLIANCE_LIMIT = 5


@dataclass(frozen=True)
class BillingCycle:
    """The period a monthly run bills for."""

    label: str
    period_start: datetime
    period_end: datetime
    months_to_bill: int = 1


@dataclass
class InvoiceComputation:
    amount: Decimal
    description: str
    consumed_liters: Decimal
    # Only fixed plans on non-branch accounts carry liters forward.
    rollover: Optional[Decimal] = None
    total_consumption_liters: Optional[Decimal] = None
    charges_total: Decimal = ZERO


@dataclass
class InvoiceGenerationResult:
    client: Client
    computation: InvoiceComputation
    invoice: Optional[Invoice] = None
    emailed: bool = False


@dataclass
class BillingRunResult:
    run_date: date
    cycle: Optional[BillingCycle]
    invoiced: List[str] = field(default_factory=list)
    no_charge: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    plans_activated: List[str] = field(default_factory=list)

    @property
    def was_skipped(self) -> bool:
        return self.cycle is None


def _local_date(value=None) -> date:
    if value is None:
        return timezone.localdate()
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    return value


def _start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def _end_of_month(day: date) -> datetime:
    last_day = day.replace(day=1) + relativedelta(months=1) - timedelta(days=1)
    return timezone.make_aware(datetime.combine(last_day, time.max))


def resolve_billing_cycle(run_date=None) -> Optional[BillingCycle]:
    """Return the cycle billed by a run on ``run_date``, or None to skip the run.

    The January 2026 run is skipped entirely and the February 2026 run bills
    December 2025 and January 2026 together.
    """
    run_day = _local_date(run_date)

    if (run_day.year, run_day.month) == (2026, 1):
        return None

    if (run_day.year, run_day.month) == (2026, 2):
        return BillingCycle(
            label='December 2025 - January 2026',
            period_start=_start_of_day(date(2025, 12, 1)),
            period_end=_end_of_month(date(2026, 1, 1)),
            months_to_bill=2,
        )

    return _single_month_cycle(run_day.replace(day=1) - relativedelta(months=1))


def billing_cycle_for_month(month: date) -> BillingCycle:
    """The billed cycle covering ``month``.

    December 2025 and January 2026 were billed together, so either month
    resolves to the combined cycle.
    """
    first_day = month.replace(day=1)
    if date(2025, 12, 1) <= first_day <= date(2026, 1, 1):
        return resolve_billing_cycle(date(2026, 2, 1))
    return _single_month_cycle(first_day)


def _single_month_cycle(first_day: date) -> BillingCycle:
    return BillingCycle(
        label=f"{first_day:%B %Y}",
        period_start=_start_of_day(first_day),
        period_end=_end_of_month(first_day),
    )


def compute_invoice(
    client: Client,
    deliveries: Iterable[Delivery],
    cycle: BillingCycle,
    *,
    is_first_invoice: bool = False,
    pending_charges: Sequence[ManualCharge] = (),
) -> InvoiceComputation:
    """Work out the amount and description billed to ``client`` for ``cycle``."""
    plan = client.plan
    if plan is None:
        raise BillingError(f"Client {client.pk} has no plan to bill.")

    details = client.get_custom_plan_details()
    months = cycle.months_to_bill

    consumed = sum((delivery.liters_delivered for delivery in deliveries), ZERO)
    monthly_equipment = details.monthly_equipment_cost() if details else ZERO
    equipment_cost = monthly_equipment * months
    price = ensure_decimal(plan.price)

    rollover = None
    total_consumption_liters = None

    if plan.is_consumption_based:
        amount = consumed * price + equipment_cost
        description = f"Bill for {cycle.label}"
    else:
        amount = price * months + equipment_cost
        description = f"Monthly Subscription for {cycle.label}"

        if not client.is_branch:
            allocation = details.monthly_allocation() if details else ZERO
            carried = details.carried_rollover(cycle.label) if details else ZERO
            total_allocation = allocation * months + carried
            rollover = max(ZERO, total_allocation - consumed)
            total_consumption_liters = allocation + rollover

    if is_first_invoice and details:
        one_time_fees = details.one_time_fees()
        if one_time_fees > 0:
            amount += one_time_fees
            description += " + One-Time Fees"

    charges_total = sum((ensure_decimal(charge.amount) for charge in pending_charges), ZERO)
    if charges_total != 0:
        amount += charges_total
        description += " + Adjustments" if charges_total > 0 else " + Deductions"

    return InvoiceComputation(
        amount=max(ZERO, quantize_money(amount)),
        description=description,
        consumed_liters=consumed,
        rollover=rollover,
        total_consumption_liters=total_consumption_liters,
        charges_total=charges_total,
    )


def collect_billing_inputs(client: Client, cycle: BillingCycle):
    """Return the deliveries in ``cycle`` and the charges not yet invoiced."""
    deliveries = list(
        client.deliveries.filter(
            date__gte=cycle.period_start,
            date__lte=cycle.period_end,
        ).order_by('date')
    )
    pending_charges = list(client.manual_charges.filter(invoice__isnull=True))
    return deliveries, pending_charges


def _billing_state(client: Client, cycle: BillingCycle):
    """The existing invoice for ``cycle``, the charges it covers and whether it is the first invoice.

    A period that was already billed is computed again from the state before
    its first run: charges attached to its invoice count again and the
    one-time fee decision is taken from that invoice.
    """
    deliveries, pending_charges = collect_billing_inputs(client, cycle)
    invoice = client.invoices.filter(
        invoice_number=Invoice.build_invoice_number(client, cycle.label),
    ).first()
    if invoice is None:
        return deliveries, pending_charges, None, client.last_billed_date is None
    charges = list(invoice.manual_charges.all()) + pending_charges
    return deliveries, charges, invoice, invoice.is_first_invoice


def preview_invoice(client: Client, cycle: BillingCycle) -> InvoiceComputation:
    deliveries, charges, _, is_first_invoice = _billing_state(client, cycle)
    return compute_invoice(
        client,
        deliveries,
        cycle,
        is_first_invoice=is_first_invoice,
        pending_charges=charges,
    )


def generate_invoice_for_client(
    client: Client,
    cycle: BillingCycle,
    *,
    send_email: bool = True,
) -> Optional[InvoiceGenerationResult]:
    """Compute, persist and deliver the invoice for one client.

    Rollover liters are saved even when nothing is owed. When the amount is
    zero no invoice is created and pending charges stay pending. Billing a
    period again recomputes its existing invoice from the same starting
    balance, charges and one-time fees, and keeps its payment status.
    """
    if not client.plan_id:
        logger.info("Client %s has no plan; nothing to bill.", client.pk)
        return None

    billed_at = timezone.now()
    deliveries, charges, invoice, is_first_invoice = _billing_state(client, cycle)
    computation = compute_invoice(
        client,
        deliveries,
        cycle,
        is_first_invoice=is_first_invoice,
        pending_charges=charges,
    )
    result = InvoiceGenerationResult(client=client, computation=computation)

    with transaction.atomic():
        client_fields = []
        if computation.rollover is not None:
            details = client.get_custom_plan_details()
            if details is not None:
                if details.rollover_period != cycle.label:
                    details.opening_rollover = details.last_month_rollover
                    details.rollover_period = cycle.label
                details.last_month_rollover = computation.rollover
                details.save(update_fields=['last_month_rollover', 'opening_rollover', 'rollover_period'])
            client.total_consumption_liters = computation.total_consumption_liters
            client_fields.append('total_consumption_liters')

        if invoice is not None:
            invoice.description = computation.description
            invoice.amount = computation.amount
            invoice.date = billed_at
            invoice.save(update_fields=['description', 'amount', 'date', 'updated_at'])
        elif computation.amount > 0:
            invoice = Invoice.objects.create(
                client=client,
                invoice_number=Invoice.build_invoice_number(client, cycle.label),
                date=billed_at,
                billing_period=cycle.label,
                period_start=cycle.period_start,
                period_end=cycle.period_end,
                description=computation.description,
                amount=computation.amount,
                status=(
                    Invoice.STATUS_COVERED_BY_PARENT
                    if client.is_branch
                    else Invoice.STATUS_UPCOMING
                ),
                is_first_invoice=is_first_invoice,
            )
        # Charges are never discarded: with no invoice to absorb them, a net
        # credit stays pending for the next period.

        if invoice is not None:
            if charges:
                ManualCharge.objects.filter(pk__in=[charge.pk for charge in charges]).update(invoice=invoice)

            client.last_billed_date = billed_at
            client_fields.append('last_billed_date')
            result.invoice = invoice

        if client_fields:
            client_fields.append('updated_at')
            client.save(update_fields=client_fields)

    if result.invoice is None:
        logger.info(
            "No invoice for client %s for %s (amount %s).",
            client.pk,
            cycle.label,
            computation.amount,
        )
        return result

    logger.info(
        "Invoice %s for client %s: %s (%s).",
        result.invoice.invoice_number,
        client.pk,
        result.invoice.amount,
        result.invoice.description,
    )
    notify_client(
        client,
        type=Notification.TYPE_PAYMENT,
        title='New Invoice',
        description=f"Your invoice for {cycle.label} is ready: {result.invoice.description}.",
        data={'invoice_number': result.invoice.invoice_number},
    )

    if send_email and not client.is_branch and client.email:
        result.emailed = _email_invoice(client, result.invoice, cycle, deliveries)

    return result


def collect_statement_records(client: Client, cycle: BillingCycle):
    """Sanitation visits in ``cycle`` and the latest station compliance reports."""
    sanitation_visits = list(
        client.sanitation_visits.filter(
            scheduled_date__gte=cycle.period_start,
            scheduled_date__lte=cycle.period_end,
        ).prefetch_related('dispenser_reports')
    )
    compliance_reports = []
    if client.assigned_station_id:
        compliance_reports = list(
            ComplianceReport.objects.filter(station_id=client.assigned_station_id)[:STATEMENT_COMPLIANCE_LIMIT]
        )
    return sanitation_visits, compliance_reports


def generate_cycle_statement(client: Client, cycle: BillingCycle) -> bytes:
    """Password-protected SOA for ``cycle``, totalled from its invoice when one exists."""
    from .statements import generate_password_protected_soa

    deliveries, _ = collect_billing_inputs(client, cycle)
    sanitation_visits, compliance_reports = collect_statement_records(client, cycle)
    invoice = client.invoices.filter(billing_period=cycle.label).first()
    return generate_password_protected_soa(
        client,
        cycle.label,
        deliveries,
        sanitation_visits,
        compliance_reports,
        total_amount=invoice.amount if invoice else None,
    )


def _email_invoice(client, invoice, cycle, deliveries) -> bool:
    from .emails import send_new_invoice_email
    from .statements import generate_password_protected_soa

    sanitation_visits, compliance_reports = collect_statement_records(client, cycle)

    try:
        pdf_bytes = generate_password_protected_soa(
            client,
            cycle.label,
            deliveries,
            sanitation_visits,
            compliance_reports,
            total_amount=invoice.amount,
        )
        send_new_invoice_email(client, invoice, pdf_bytes)
    except Exception:
        logger.exception("Email failed for invoice %s", invoice.invoice_number)
        return False
    return True


def activate_pending_plan(client: Client) -> None:
    """Swap the scheduled plan in and clear the pending fields."""
    new_plan = client.pending_plan
    if new_plan is None:
        return
    client.plan = new_plan
    client.is_prepaid = bool(new_plan.is_prepaid)
    client.pending_plan = None
    client.plan_change_effective_date = None
    client.save(update_fields=['plan', 'is_prepaid', 'pending_plan', 'plan_change_effective_date', 'updated_at'])
    logger.info("Activated plan %s for client %s.", new_plan, client.pk)


def _plan_change_due(client: Client, run_day: date) -> bool:
    return bool(
        client.pending_plan_id
        and client.plan_change_effective_date
        and not client.is_branch
        and client.plan_change_effective_date <= run_day
    )


def _bill_client(client: Client, cycle: BillingCycle, result: BillingRunResult, *, dry_run: bool) -> None:
    label = str(client)
    if not client.is_billable:
        result.skipped.append(label)
        return
    if dry_run:
        if client.plan_id:
            computation = preview_invoice(client, cycle)
            logger.info("[dry-run] %s: %s %s", label, computation.amount, computation.description)
            (result.invoiced if computation.amount > 0 else result.no_charge).append(label)
        return
    generated = generate_invoice_for_client(client, cycle)
    if generated is not None:
        (result.invoiced if generated.invoice else result.no_charge).append(label)


def generate_monthly_invoices(run_date=None, *, clients=None, dry_run: bool = False) -> BillingRunResult:
    """Bill every eligible client for the cycle that ends before ``run_date``.

    Scheduled plan changes that are due take effect after the client is
    billed with the old plan, including on runs that bill nothing. A failure
    for one client is logged and counted; the rest of the run carries on.
    """
    run_day = _local_date(run_date)
    cycle = resolve_billing_cycle(run_day)
    result = BillingRunResult(run_date=run_day, cycle=cycle)

    logger.info("Starting monthly invoice generation job for %s.", run_day)
    if cycle is None:
        logger.info("Skipping invoice generation for %s.", run_day)

    if clients is None:
        clients = Client.objects.all()
    clients = clients.select_related('plan', 'pending_plan', 'user', 'custom_plan_details')

    for client in clients:
        label = str(client)
        try:
            if cycle is not None:
                _bill_client(client, cycle, result, dry_run=dry_run)
            if not dry_run and _plan_change_due(client, run_day):
                activate_pending_plan(client)
                result.plans_activated.append(label)
        except Exception:
            logger.exception("Invoice generation failed for client %s.", client.pk)
            result.failed.append(label)

    if cycle is None:
        logger.info("Skipped run for %s: %s plan change(s) activated.", run_day, len(result.plans_activated))
        return result

    logger.info(
        "Monthly invoice job for %s finished: %s invoiced, %s without charge, %s skipped, %s failed.",
        cycle.label,
        len(result.invoiced),
        len(result.no_charge),
        len(result.skipped),
        len(result.failed),
    )
    return result


def record_delivery_consumption(delivery: Delivery) -> None:
    """Apply a new delivery to liter balances and parent credits."""
    client = delivery.client
    liters = delivery.liters_delivered

    if client.is_branch and client.parent_id:
        parent = Client.objects.select_related('plan', 'user').get(pk=client.parent_id)
        price_per_liter = ensure_decimal(parent.plan.price) if parent.plan_id else ZERO
        delivery_cost = quantize_money(liters * price_per_liter)
        if delivery_cost > 0:
            with transaction.atomic():
                Client.objects.filter(pk=parent.pk).update(
                    top_up_balance_credits=F('top_up_balance_credits') - delivery_cost,
                )
                Transaction.objects.create(
                    client=parent,
                    date=delivery.date,
                    type=Transaction.TYPE_DEBIT,
                    amount_credits=delivery_cost,
                    description=f"Delivery to {client.business_name}",
                    branch=client,
                )
            logger.info("Billed parent %s for %s credits.", parent.pk, delivery_cost)
        notify_client(
            parent,
            type=Notification.TYPE_DELIVERY,
            title='Branch Consumption',
            description=f"A delivery was made to {client.business_name}.",
            data={'delivery_id': delivery.pk, 'branch_id': client.pk},
        )
        return

    plan = client.plan
    if (
        client.account_type == Client.ACCOUNT_SINGLE
        and not client.is_prepaid
        and plan is not None
        and not plan.is_consumption_based
    ):
        Client.objects.filter(pk=client.pk).update(
            total_consumption_liters=F('total_consumption_liters') - liters,
        )
        logger.info("Decremented liter balance for fixed-plan client %s by %s.", client.pk, liters)


def mark_overdue_invoices(today=None) -> int:
    """Flag upcoming invoices older than ``INVOICE_DUE_DAYS`` as overdue."""
    now = timezone.now() if today is None else _start_of_day(_local_date(today))
    cutoff = now - timedelta(days=getattr(settings, 'INVOICE_DUE_DAYS', 15))
    overdue = Invoice.objects.filter(status=Invoice.STATUS_UPCOMING, date__lt=cutoff).select_related('client')

    count = 0
    for invoice in overdue:
        invoice.status = Invoice.STATUS_OVERDUE
        invoice.save(update_fields=['status', 'updated_at'])
        notify_client(
            invoice.client,
            type=Notification.TYPE_PAYMENT,
            title='Invoice Overdue',
            description=f"Invoice {invoice.invoice_number} for {invoice.billing_period} is now overdue.",
            data={'invoice_number': invoice.invoice_number},
        )
        count += 1
    logger.info("Marked %s invoice(s) overdue (cutoff %s).", count, cutoff)
    return count


# ---------- Staff actions ---------------------------------------------------

def review_invoice_payment(invoice: Invoice, *, approve: bool, reason: str = '') -> Invoice:
    """Approve (Paid) or reject (back to Upcoming) a submitted proof of payment."""
    if invoice.status != Invoice.STATUS_PENDING_REVIEW:
        raise ValidationError(f"Invoice {invoice.invoice_number} is not awaiting payment review.")
    reason = (reason or '').strip()
    if approve:
        invoice.status = Invoice.STATUS_PAID
        invoice.rejection_reason = ''
    else:
        if not reason:
            raise ValidationError('A reason is required to reject a payment.')
        invoice.status = Invoice.STATUS_UPCOMING
        invoice.rejection_reason = reason
    invoice.save(update_fields=['status', 'rejection_reason', 'updated_at'])
    logger.info("Payment for invoice %s %s.", invoice.invoice_number, 'approved' if approve else 'rejected')
    return invoice


def review_top_up(top_up: TopUpRequest, *, approve: bool, reason: str = '') -> TopUpRequest:
    if top_up.status != TopUpRequest.STATUS_PENDING_REVIEW:
        raise ValidationError('This top-up request has already been reviewed.')
    if approve:
        top_up.status = TopUpRequest.STATUS_APPROVED
        top_up.rejection_reason = ''
    else:
        top_up.status = TopUpRequest.STATUS_REJECTED
        top_up.rejection_reason = (reason or '').strip()
    top_up.save(update_fields=['status', 'rejection_reason'])
    return top_up


def add_manual_charge(client: Client, description: str, amount) -> ManualCharge:
    """Queue an adjustment (positive) or deduction (negative) for the next invoice."""
    amount = quantize_money(amount)
    if amount == 0:
        raise ValidationError('A manual charge cannot be zero.')
    if not (description or '').strip():
        raise ValidationError('A manual charge needs a description.')
    charge = ManualCharge.objects.create(client=client, description=description.strip(), amount=amount)
    logger.info("Manual charge %s (%s) queued for client %s.", charge.pk, amount, client.pk)
    return charge


def change_plan(client: Client, plan: Plan, *, is_prepaid=None, liters_per_month=None, bonus_liters=None) -> Client:
    """Switch a client's plan immediately and drop any scheduled change."""
    with transaction.atomic():
        client.plan = plan
        if plan.client_type:
            client.client_type = plan.client_type
        client.is_prepaid = plan.is_prepaid if is_prepaid is None else bool(is_prepaid)
        client.pending_plan = None
        client.plan_change_effective_date = None
        client.save(update_fields=[
            'plan', 'client_type', 'is_prepaid', 'pending_plan', 'plan_change_effective_date', 'updated_at',
        ])
        if liters_per_month is not None or bonus_liters is not None:
            details = client.get_custom_plan_details()
            if details is None:
                details = CustomPlanDetails(client=client)
            if liters_per_month is not None:
                details.liters_per_month = ensure_decimal(liters_per_month)
            if bonus_liters is not None:
                details.bonus_liters = ensure_decimal(bonus_liters)
            details.full_clean()
            details.save()
    logger.info("Plan for client %s changed to %s.", client.pk, plan)
    return client


def schedule_plan_change(client: Client, plan: Plan, effective_date=None) -> Client:
    """Queue ``plan`` to take over on ``effective_date`` (default: first of next month)."""
    if client.is_branch:
        raise ValidationError('Branch accounts follow their parent account plan.')
    today = timezone.localdate()
    if effective_date is None:
        effective_date = today.replace(day=1) + relativedelta(months=1)
    if effective_date <= today:
        raise ValidationError('The effective date must be in the future.')
    client.pending_plan = plan
    client.plan_change_effective_date = effective_date
    client.save(update_fields=['pending_plan', 'plan_change_effective_date', 'updated_at'])
    return client


def cancel_plan_change(client: Client) -> Client:
    client.pending_plan = None
    client.plan_change_effective_date = None
    client.save(update_fields=['pending_plan', 'plan_change_effective_date', 'updated_at'])
    return client
