import logging

from django.db.models import F
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .billing import record_delivery_consumption
from .emails import (
    send_delivery_status_email,
    send_payment_status_email,
    send_refill_request_email,
    send_top_up_confirmation_email,
)
from .models import (
    Client,
    CustomPlanDetails,
    Delivery,
    Invoice,
    Notification,
    RefillRequest,
    SanitationVisit,
    TopUpRequest,
)
from .notifications import get_admin_user, notify_admin, notify_client
from .utils import format_currency, format_long_date


logger = logging.getLogger(__name__)


def _cache_previous(sender, instance, *fields):
    """Stash the stored values of ``fields`` on the instance before it is saved."""
    previous = {}
    if instance.pk:
        stored = sender.objects.filter(pk=instance.pk).values(*fields).first()
        if stored:
            previous = stored
    instance._previous = previous


def _previous(instance, field):
    return getattr(instance, '_previous', {}).get(field)


def _safe_send(send, obj):
    try:
        send(obj)
    except Exception:
        logger.exception("Failed to send %s for %s %s", send.__name__, type(obj).__name__, obj.pk)


# ---------- Deliveries ------------------------------------------------------

@receiver(pre_save, sender=Delivery)
def _cache_delivery_status(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'status')


@receiver(post_save, sender=Delivery)
def delivery_saved(sender, instance: Delivery, created, **kwargs):
    client = instance.client

    if created:
        try:
            record_delivery_consumption(instance)
        except Exception:
            logger.exception("Delivery accounting failed for delivery %s (client %s).", instance.pk, client.pk)

        notify_client(
            client,
            type=Notification.TYPE_DELIVERY,
            title='Delivery Scheduled',
            description=f"A new delivery of {instance.volume_containers} containers has been scheduled.",
            data={'delivery_id': instance.pk},
        )
        return

    old_status = _previous(instance, 'status')
    if old_status is None or old_status == instance.status:
        return

    logger.info("Status changed for delivery %s of client %s: %s.", instance.pk, client.pk, instance.status)
    notify_client(
        client,
        type=Notification.TYPE_DELIVERY,
        title=f"Delivery {instance.status}",
        description=f"Your delivery of {instance.volume_containers} containers is now {instance.status}.",
        data={'delivery_id': instance.pk},
    )
    if instance.status == Delivery.STATUS_DELIVERED:
        _safe_send(send_delivery_status_email, instance)


# ---------- Invoices and payments ------------------------------------------

@receiver(pre_save, sender=Invoice)
def _cache_invoice_status(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'status')


@receiver(post_save, sender=Invoice)
def invoice_saved(sender, instance: Invoice, created, **kwargs):
    client = instance.client
    data = {'client_id': client.pk, 'invoice_number': instance.invoice_number}

    if created:
        if instance.status == Invoice.STATUS_PENDING_REVIEW:
            notify_admin(
                type=Notification.TYPE_PAYMENT,
                title='Payment for Review',
                description=f"{client.business_name} (ID: {client.client_id}) has submitted a proof of payment.",
                data=data,
            )
        return

    before = _previous(instance, 'status')
    after = instance.status
    if before is None or before == after:
        return

    if before == Invoice.STATUS_PENDING_REVIEW and after == Invoice.STATUS_PAID:
        notify_client(
            client,
            type=Notification.TYPE_PAYMENT,
            title='Payment Confirmed',
            description=f"Your payment for invoice {instance.invoice_number} has been confirmed. Thank you!",
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_PAYMENT,
            title='Payment Approved',
            description=f"You approved a payment of {format_currency(instance.amount)} from {client.business_name}.",
            data=data,
        )
        _safe_send(send_payment_status_email, instance)
    elif before == Invoice.STATUS_PENDING_REVIEW and after == Invoice.STATUS_UPCOMING:
        notify_client(
            client,
            type=Notification.TYPE_PAYMENT,
            title='Payment Action Required',
            description=(
                f"Your payment for invoice {instance.invoice_number} requires attention. "
                f"Reason: {instance.rejection_reason or 'Please contact support.'}"
            ),
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_PAYMENT,
            title='Payment Rejected',
            description=(
                f"You rejected a payment from {client.business_name}. "
                f"Reason: {instance.rejection_reason or 'Not specified'}."
            ),
            data=data,
        )
    elif before in (Invoice.STATUS_UPCOMING, Invoice.STATUS_OVERDUE) and after == Invoice.STATUS_PENDING_REVIEW:
        notify_admin(
            type=Notification.TYPE_PAYMENT,
            title='Payment for Review',
            description=f"{client.business_name} has submitted a proof of payment.",
            data=data,
        )


# ---------- Top-ups ---------------------------------------------------------

@receiver(pre_save, sender=TopUpRequest)
def _cache_top_up_status(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'status')


@receiver(post_save, sender=TopUpRequest)
def top_up_saved(sender, instance: TopUpRequest, created, **kwargs):
    client = instance.client
    data = {'client_id': client.pk, 'request_id': instance.pk}

    if created:
        notify_admin(
            type=Notification.TYPE_TOP_UP,
            title='Top-Up Request',
            description=f"{client.business_name} requested a top-up of {format_currency(instance.amount)}.",
            data=data,
        )
        return

    before = _previous(instance, 'status')
    # Only decisions on a pending request count.
    if before != TopUpRequest.STATUS_PENDING_REVIEW or before == instance.status:
        return

    if instance.status == TopUpRequest.STATUS_APPROVED:
        Client.objects.filter(pk=client.pk).update(
            top_up_balance_credits=F('top_up_balance_credits') + instance.amount,
        )
        logger.info("Credited %s to client %s from top-up %s.", instance.amount, client.pk, instance.pk)
        notify_client(
            client,
            type=Notification.TYPE_TOP_UP,
            title='Top-Up Successful',
            description=f"Your top-up of {format_currency(instance.amount)} has been approved.",
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_TOP_UP,
            title='Top-Up Approved',
            description=f"You approved a {format_currency(instance.amount)} top-up for {client.business_name}.",
            data=data,
        )
        _safe_send(send_top_up_confirmation_email, instance)
    elif instance.status == TopUpRequest.STATUS_REJECTED:
        notify_client(
            client,
            type=Notification.TYPE_TOP_UP,
            title='Top-Up Rejected',
            description=f"Your top-up request was rejected. Reason: {instance.rejection_reason or 'Not specified'}.",
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_TOP_UP,
            title='Top-Up Rejected',
            description=f"You rejected a top-up request from {client.business_name}.",
            data=data,
        )


# ---------- Refill requests -------------------------------------------------

@receiver(pre_save, sender=RefillRequest)
def _cache_refill_status(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'status')


@receiver(post_save, sender=RefillRequest)
def refill_request_saved(sender, instance: RefillRequest, created, **kwargs):
    client = instance.client
    data = {'client_id': client.pk, 'request_id': instance.pk}

    if created:
        notify_client(
            client,
            type=Notification.TYPE_DELIVERY,
            title='Refill Request Received',
            description='We have received your refill request and will process it shortly.',
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_DELIVERY,
            title='New Refill Request',
            description=f"{client.business_name} has submitted a new refill request.",
            data=data,
        )
        _safe_send(send_refill_request_email, instance)
        return

    before = _previous(instance, 'status')
    if before is None or before == instance.status:
        return

    notify_client(
        client,
        type=Notification.TYPE_DELIVERY,
        title=f"Refill Status: {instance.status}",
        description=f"Your refill request is now {instance.status}.",
        data=data,
    )
    notify_admin(
        type=Notification.TYPE_DELIVERY,
        title='Refill Status Updated',
        description=f"Request for {client.business_name} is now {instance.status}.",
        data=data,
    )
    _safe_send(send_refill_request_email, instance)


# ---------- Sanitation visits -----------------------------------------------

@receiver(pre_save, sender=SanitationVisit)
def _cache_visit_status(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'status')


@receiver(post_save, sender=SanitationVisit)
def sanitation_visit_saved(sender, instance: SanitationVisit, created, **kwargs):
    client = instance.client
    scheduled = format_long_date(instance.scheduled_date)
    data = {'client_id': client.pk, 'visit_id': instance.pk}

    if created:
        notify_client(
            client,
            type=Notification.TYPE_SANITATION,
            title='Sanitation Visit Scheduled',
            description=f"A sanitation visit is scheduled for your office on {scheduled}.",
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_SANITATION,
            title='Sanitation Visit Scheduled',
            description=f"A visit for {client.business_name} has been scheduled for {scheduled}.",
            data=data,
        )
        return

    before = _previous(instance, 'status')
    if before is None or before == instance.status:
        return

    if instance.status == SanitationVisit.STATUS_COMPLETED:
        title = 'Sanitation Visit Completed'
        description = f"Your sanitation report for {scheduled} is complete. You can view the results now."
    elif instance.status == SanitationVisit.STATUS_CANCELLED:
        title = 'Sanitation Visit Cancelled'
        description = (
            f"Your sanitation visit for {scheduled} has been cancelled. "
            "Please contact us if you have questions."
        )
    else:
        title = f"Sanitation Visit: {instance.status}"
        description = f"Your sanitation visit for {scheduled} has been updated to {instance.status}."

    notify_client(client, type=Notification.TYPE_SANITATION, title=title, description=description, data=data)
    notify_admin(
        type=Notification.TYPE_SANITATION,
        title=f"Visit for {client.business_name}: {instance.status}",
        description=f"The sanitation visit on {scheduled} is now {instance.status}.",
        data=data,
    )


# ---------- Client account changes ------------------------------------------

def _is_admin_account(client):
    admin = get_admin_user()
    return admin is not None and client.user_id is not None and client.user_id == admin.pk


@receiver(pre_save, sender=Client)
def _cache_client_state(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'pending_plan_id', 'current_contract')


@receiver(post_save, sender=Client)
def client_saved(sender, instance: Client, created, **kwargs):
    if created or _is_admin_account(instance):
        return
    data = {'client_id': instance.pk}

    if not _previous(instance, 'pending_plan_id') and instance.pending_plan_id:
        notify_admin(
            type=Notification.TYPE_GENERAL,
            title='Plan Change Request',
            description=f"{instance.business_name} has requested to change their plan to {instance.pending_plan.name}.",
            data=data,
        )

    old_contract = _previous(instance, 'current_contract') or ''
    new_contract = instance.current_contract.name if instance.current_contract else ''
    if new_contract and new_contract != old_contract:
        notify_client(
            instance,
            type=Notification.TYPE_GENERAL,
            title='New Contract Uploaded',
            description='A new contract has been added to your account by an admin.',
            data=data,
        )
        notify_admin(
            type=Notification.TYPE_GENERAL,
            title='Contract Added',
            description=f"You have successfully added a contract for {instance.business_name}.",
            data=data,
        )


@receiver(pre_save, sender=CustomPlanDetails)
def _cache_auto_refill(sender, instance, **kwargs):
    _cache_previous(sender, instance, 'auto_refill_enabled')


@receiver(post_save, sender=CustomPlanDetails)
def plan_details_saved(sender, instance: CustomPlanDetails, created, **kwargs):
    before = _previous(instance, 'auto_refill_enabled')
    if created or before is None or before == instance.auto_refill_enabled:
        return
    client = instance.client
    if _is_admin_account(client):
        return
    notify_admin(
        type=Notification.TYPE_GENERAL,
        title='Auto-Refill Changed',
        description=(
            f"{client.business_name} has "
            f"{'enabled' if instance.auto_refill_enabled else 'disabled'} auto-refill."
        ),
        data={'client_id': client.pk},
    )
