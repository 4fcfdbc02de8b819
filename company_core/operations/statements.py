"""Statement of Account, refill history and invoice receipt PDFs."""

from __future__ import annotations

import logging
import re
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from .models import ensure_decimal
from .pdf_utils import protect_pdf, render_template_to_pdf
from .utils import format_long_date, quantize_money


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def statement_filename(client, billing_period: str) -> str:
    business_name = re.sub(r'\s', '_', client.business_name or '')
    period = re.sub(r'\s', '-', billing_period)
    return f"SOA_{business_name}_{period}.pdf"


def _subscription_rows(details):
    rows = []
    if details is None:
        return rows
    if details.liters_per_month and details.liters_per_month > 0:
        rows.append(('Purchased Liters', f"{details.liters_per_month:,.0f} L/month"))
    if details.gallon_quantity:
        rows.append(('Containers', f"{details.gallon_quantity} ({details.gallon_payment_type or 'N/A'})"))
    if details.dispenser_quantity:
        rows.append(('Dispensers', f"{details.dispenser_quantity} ({details.dispenser_payment_type or 'N/A'})"))
    return rows


def _delivery_rows(deliveries):
    rows = []
    total_containers = 0
    total_liters = ZERO
    for delivery in deliveries:
        liters = delivery.liters_delivered
        total_containers += delivery.volume_containers or 0
        total_liters += liters
        rows.append({
            'reference': delivery.reference or str(delivery.pk),
            'date': delivery.date,
            'containers': delivery.volume_containers,
            'liters': liters,
            'status': delivery.status,
            'proof_url': delivery.proof_of_delivery.url if delivery.proof_of_delivery else '',
        })
    return rows, total_containers, total_liters


def build_statement_context(
    client,
    billing_period,
    deliveries,
    sanitation_visits=(),
    compliance_reports=(),
    total_amount=None,
):
    """Assemble the template context for a monthly Statement of Account."""
    details = client.get_custom_plan_details()
    plan = client.plan
    delivery_rows, total_containers, total_liters = _delivery_rows(deliveries)

    sanitation_rows = [
        {
            'date': visit.scheduled_date,
            'status': visit.status,
            'officer': visit.assigned_to or 'N/A',
            'pass_rate': visit.pass_rate,
        }
        for visit in sanitation_visits
    ]
    compliance_rows = [
        {'name': report.name, 'date': report.date, 'status': report.status}
        for report in compliance_reports
    ]

    summary = None
    total = ensure_decimal(total_amount) if total_amount is not None else ZERO
    if total > 0:
        vat_rate = ensure_decimal(getattr(settings, 'VAT_RATE', '0.12'), default='0.12')
        # VAT is shown as a share of the total; the amount due does not change.
        summary = {
            'subtotal': quantize_money(total),
            'vat_rate_percent': int(vat_rate * 100),
            'vat': quantize_money(total * vat_rate),
            'total_due': quantize_money(total),
        }

    saved_liters = None
    if details is not None and plan is not None and not plan.is_consumption_based:
        remaining = details.monthly_allocation() - total_liters
        if remaining > 0:
            saved_liters = remaining

    return {
        'client': client,
        'plan': plan,
        'plan_label': f"Plan: {plan.name}" if plan else 'No Active Plan',
        'billing_period': billing_period,
        'statement_date': timezone.localdate(),
        'subscription_rows': _subscription_rows(details),
        'delivery_rows': delivery_rows,
        'total_containers': total_containers,
        'total_liters': total_liters,
        'show_quality_section': bool(sanitation_rows or compliance_rows),
        'sanitation_rows': sanitation_rows,
        'compliance_rows': compliance_rows,
        'summary': summary,
        'saved_liters': saved_liters,
    }


def render_statement_pdf(client, billing_period, deliveries, sanitation_visits=(), compliance_reports=(), total_amount=None) -> bytes:
    context = build_statement_context(
        client,
        billing_period,
        deliveries,
        sanitation_visits,
        compliance_reports,
        total_amount=total_amount,
    )
    return render_template_to_pdf('operations/statement_of_account.html', context)


def generate_password_protected_soa(
    client,
    billing_period,
    deliveries,
    sanitation_visits=(),
    compliance_reports=(),
    total_amount=None,
) -> bytes:
    """Render the SOA and lock it with the client's statement password."""
    pdf_bytes = render_statement_pdf(
        client,
        billing_period,
        deliveries,
        sanitation_visits,
        compliance_reports,
        total_amount=total_amount,
    )
    if not getattr(settings, 'STATEMENT_PDF_ENCRYPTION_ENABLED', True):
        return pdf_bytes
    logger.info("Protecting SOA for client %s (%s).", client.pk, billing_period)
    return protect_pdf(pdf_bytes, client.statement_password())


def delivery_history_period(start=None, end=None) -> str:
    if not start:
        return 'All Time'
    period = format_long_date(start)
    if end:
        period += f" to {format_long_date(end)}"
    return period


def generate_delivery_history_pdf(client, deliveries, start=None, end=None) -> bytes:
    delivery_rows, total_containers, total_liters = _delivery_rows(deliveries)
    context = {
        'client': client,
        'period': delivery_history_period(start, end),
        'date_issued': timezone.localdate(),
        'delivery_rows': delivery_rows,
        'total_containers': total_containers,
        'total_liters': total_liters,
    }
    return render_template_to_pdf('operations/delivery_history.html', context)


def invoice_liters_text(invoice) -> str:
    """Short liters note shown next to the plan on an invoice receipt."""
    client = invoice.client
    plan = client.plan
    details = client.get_custom_plan_details()
    if plan is None:
        return ''
    if plan.is_consumption_based:
        monthly_equipment = details.monthly_equipment_cost() if details else ZERO
        price = ensure_decimal(plan.price) or Decimal('1')
        consumption_amount = ensure_decimal(invoice.amount) - monthly_equipment
        consumed = consumption_amount / price if consumption_amount > 0 else ZERO
        return f"({consumed:,.1f} L consumed)"
    if details and details.liters_per_month:
        return f"({details.liters_per_month:,.0f} L/mo)"
    return ''


def generate_invoice_pdf(invoice) -> bytes:
    client = invoice.client
    plan_name = client.plan.name if client.plan else 'N/A'
    context = {
        'client': client,
        'invoice': invoice,
        'plan_line': f"Plan: {plan_name} {invoice_liters_text(invoice)}".strip(),
    }
    return render_template_to_pdf('operations/invoice.html', context)
