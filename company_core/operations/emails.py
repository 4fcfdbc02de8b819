import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

from .exceptions import EmailConfigurationError
from .utils import build_cc_list, format_currency, get_billing_bcc_list, get_branding


logger = logging.getLogger(__name__)

SMTP_BACKEND = 'django.core.mail.backends.smtp.EmailBackend'


def _ensure_email_configured():
    """Refuse to hand mail to the SMTP relay without its key."""
    if settings.EMAIL_BACKEND == SMTP_BACKEND and not getattr(settings, 'EMAIL_HOST_PASSWORD', ''):
        logger.critical("CRITICAL: BREVO_API_KEY is not set or not mounted. Email sending aborted.")
        raise EmailConfigurationError("Missing SMTP credentials.")


def send_email(to, subject, text, html=None, *, cc=None, bcc=None, attachments=None):
    """Send one message through the configured backend.

    ``attachments`` is a list of ``(filename, content, mimetype)`` tuples.
    Errors propagate to the caller.
    """
    _ensure_email_configured()
    recipients = [to] if isinstance(to, str) else list(to)
    email_message = EmailMultiAlternatives(
        subject=subject,
        body=text,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=recipients,
        cc=build_cc_list(*(cc or []), exclude=recipients) or None,
        bcc=build_cc_list(*(bcc or []), exclude=recipients) or None,
    )
    if html:
        email_message.attach_alternative(html, "text/html")
    for filename, content, mimetype in attachments or []:
        email_message.attach(filename, content, mimetype)

    logger.info("Attempting to send email to %s via %s...", ", ".join(recipients), settings.EMAIL_HOST)
    sent = email_message.send()
    logger.info("Email '%s' sent to %s", subject, ", ".join(recipients))
    return sent


def render_email(template_name, context):
    email_context = get_branding()
    email_context.update(context)
    email_context.setdefault('current_year', timezone.now().year)
    return render_to_string(f'operations/emails/{template_name}', email_context)


def send_new_invoice_email(client, invoice, pdf_content):
    from .statements import statement_filename

    period = invoice.billing_period
    html = render_email('new_invoice.html', {
        'client': client,
        'invoice': invoice,
        'period': period,
    })
    return send_email(
        client.email,
        f"New Invoice Available for {period}",
        f"Invoice for {period} is available for {format_currency(invoice.amount)}.",
        html,
        cc=client.get_cc_emails(),
        bcc=get_billing_bcc_list(),
        attachments=[(statement_filename(client, period), pdf_content, 'application/pdf')],
    )


def send_delivery_status_email(delivery):
    client = delivery.client
    if not client.contact_email:
        return 0
    html = render_email('delivery_status.html', {'client': client, 'delivery': delivery})
    if delivery.status == delivery.STATUS_DELIVERED:
        subject = f"Success: Water Delivered to {client.business_name}"
    else:
        subject = f"Delivery Update: {delivery.status} - {delivery.reference}"
    return send_email(
        client.contact_email,
        subject,
        f"Your delivery {delivery.reference} of {delivery.volume_containers} containers is now {delivery.status}.",
        html,
    )


def send_payment_status_email(invoice):
    client = invoice.client
    if not client.contact_email:
        return 0
    is_paid = invoice.status == invoice.STATUS_PAID
    title = 'Payment Confirmed' if is_paid else 'Review in Progress'
    html = render_email('payment_confirmation.html', {
        'client': client,
        'invoice': invoice,
        'is_paid': is_paid,
        'title': title,
    })
    return send_email(
        client.contact_email,
        f"{title}: {invoice.invoice_number}",
        f"{title} for invoice {invoice.invoice_number} ({format_currency(invoice.amount)}).",
        html,
    )


def send_top_up_confirmation_email(top_up):
    client = top_up.client
    if not client.contact_email:
        return 0
    html = render_email('top_up_confirmation.html', {'client': client, 'top_up': top_up})
    return send_email(
        client.contact_email,
        "Credits Added Successfully to your Wallet",
        f"Your top-up of {format_currency(top_up.amount)} has been approved.",
        html,
    )


def send_refill_request_email(refill):
    client = refill.client
    if not client.contact_email:
        return 0
    is_received = refill.status == refill.STATUS_REQUESTED
    title = 'Refill Request Received' if is_received else f"Refill Status: {refill.status}"
    html = render_email('refill_request.html', {
        'client': client,
        'refill': refill,
        'is_received': is_received,
        'title': title,
    })
    return send_email(
        client.contact_email,
        title,
        f"{title} (request {refill.pk}).",
        html,
    )
