import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.db import DatabaseError

from .models import Notification


logger = logging.getLogger(__name__)


def get_admin_user():
    """Return the user that receives back-office notifications, if any."""
    admin_email = getattr(settings, 'ADMIN_NOTIFICATION_EMAIL', '')
    admin = None
    if admin_email:
        admin = User.objects.filter(email__iexact=admin_email).order_by('pk').first()
    if admin is None:
        admin = User.objects.filter(is_superuser=True, is_active=True).order_by('pk').first()
    if admin is None:
        logger.warning("Admin user '%s' not found.", admin_email)
    return admin


def create_notification(recipient, *, type=Notification.TYPE_GENERAL, title, description='', data=None):
    """Store an in-app notification for ``recipient``.

    Returns the notification, or None when there is no recipient or the write
    fails. Notification failures never interrupt the caller.
    """
    if recipient is None:
        logger.warning("Recipient is missing, cannot create notification '%s'.", title)
        return None
    try:
        notification = Notification.objects.create(
            recipient=recipient,
            type=type,
            title=title,
            description=description,
            data=data or {},
        )
    except DatabaseError:
        logger.exception("Failed to create notification for user %s", recipient.pk)
        return None
    logger.info("Notification created for user %s: %s", recipient.pk, title)
    return notification


def notify_client(client, **kwargs):
    if client is None or not client.user_id:
        logger.warning("Client %s has no portal user; skipping notification.", getattr(client, 'pk', None))
        return None
    return create_notification(client.user, **kwargs)


def notify_admin(**kwargs):
    return create_notification(get_admin_user(), **kwargs)
