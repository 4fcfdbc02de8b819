"""Route stored uploads to the records they belong to.

Upload paths follow the layout the client portal writes to::

    users/<client uid>/profile/<file>
    users/<client uid>/payments/<file>            (metadata: payment_id)
    users/<client uid>/deliveries/<reference>.<ext>
    userContracts/<client uid>/<file>
    stations/<station id>/agreement/<file>
    stations/<station id>/compliance/<report key>-<file>
"""

import logging
import posixpath
import uuid

from django.core.files.base import ContentFile
from django.utils import timezone
from django.utils.text import slugify

from .models import Client, ComplianceReport, Invoice, Notification, WaterStation
from .notifications import notify_client


logger = logging.getLogger(__name__)


def _as_file(content, path):
    if hasattr(content, 'read'):
        return content
    return ContentFile(content, name=posixpath.basename(path))


def _get_client(client_key):
    """Clients are addressed by their uid, falling back to the manual client ID."""
    client = None
    try:
        client = Client.objects.filter(uid=uuid.UUID(str(client_key))).first()
    except ValueError:
        pass
    if client is None:
        client = Client.objects.filter(client_id=client_key).first()
    if client is None:
        logger.error("No client found for upload key %s", client_key)
    return client


def handle_uploaded_file(path, content, metadata=None):
    """Attach an uploaded file to its record and return the updated object.

    Unknown paths are logged and ignored (returns None).
    """
    metadata = metadata or {}
    path = (path or '').strip().lstrip('/')
    if not path or path.endswith('/'):
        logger.info("Ignoring upload for folder: %s", path)
        return None

    parts = path.split('/')
    filename = posixpath.basename(path)

    if parts[0] == 'users' and len(parts) >= 4:
        client = _get_client(parts[1])
        if client is None:
            return None
        section = parts[2]

        if section == 'profile':
            client.photo.save(filename, _as_file(content, path), save=False)
            client.save(update_fields=['photo', 'updated_at'])
            logger.info("Updated profile photo for client: %s", client.pk)
            return client

        if section == 'payments':
            payment_id = metadata.get('payment_id')
            if not payment_id:
                logger.error("Missing payment_id in metadata for file: %s", path)
                return None
            invoice = client.invoices.filter(invoice_number=payment_id).first()
            if invoice is None and str(payment_id).isdigit():
                invoice = client.invoices.filter(pk=int(payment_id)).first()
            if invoice is None:
                logger.error("Invoice %s not found for client %s (file %s).", payment_id, client.pk, path)
                return None
            invoice.proof_of_payment.save(filename, _as_file(content, path), save=False)
            invoice.status = Invoice.STATUS_PENDING_REVIEW
            # Saving fires the payment review notification.
            invoice.save(update_fields=['proof_of_payment', 'status', 'updated_at'])
            return invoice

        if section == 'deliveries':
            reference = posixpath.splitext(filename)[0]
            delivery = client.deliveries.filter(reference=reference).first()
            if delivery is None:
                logger.error("Delivery %s not found for client %s (file %s).", reference, client.pk, path)
                return None
            delivery.proof_of_delivery.save(filename, _as_file(content, path), save=False)
            delivery.save(update_fields=['proof_of_delivery'])
            logger.info("Attached proof of delivery %s for client %s", reference, client.pk)
            return delivery

    if parts[0] == 'userContracts' and len(parts) >= 3:
        client = _get_client(parts[1])
        if client is None:
            return None
        client.current_contract.save(filename, _as_file(content, path), save=False)
        client.contract_status = 'Active'
        client.contract_uploaded_date = timezone.now()
        client.save(update_fields=['current_contract', 'contract_status', 'contract_uploaded_date', 'updated_at'])
        logger.info("Stored contract for client %s", client.pk)
        return client

    if parts[0] == 'stations' and len(parts) >= 4:
        station = None
        if parts[1].isdigit():
            station = WaterStation.objects.filter(pk=int(parts[1])).first()
        if station is None:
            logger.error("No water station found for upload path %s", path)
            return None

        if parts[2] == 'agreement':
            station.partnership_agreement.save(filename, _as_file(content, path), save=True)
            logger.info("Stored partnership agreement for station %s", station.pk)
            return station

        if parts[2] == 'compliance':
            return _store_compliance_report(station, filename, content, path, metadata)

    logger.info("File path %s did not match any handler.", path)
    return None


def _store_compliance_report(station, filename, content, path, metadata):
    report_key = slugify(filename.split('-')[0]) or slugify(posixpath.splitext(filename)[0])
    report, _ = ComplianceReport.objects.get_or_create(
        station=station,
        report_key=report_key,
        defaults={
            'name': metadata.get('name') or report_key.replace('-', ' ').title(),
            'report_type': metadata.get('report_type', ''),
        },
    )
    report.report_file.save(filename, _as_file(content, path), save=False)
    report.status = ComplianceReport.STATUS_PENDING_REVIEW
    report.save()
    logger.info("Updated compliance report '%s' for station: %s", report_key, station.pk)

    clients = list(station.clients.select_related('user'))
    for client in clients:
        notify_client(
            client,
            type=Notification.TYPE_COMPLIANCE,
            title='New Compliance Report',
            description=f"A new water quality report is available for {station.name or 'your assigned station'}.",
            data={'station_id': station.pk, 'report_id': report.pk},
        )
    logger.info("Sent compliance notifications to %s clients for station %s.", len(clients), station.pk)
    return report
