"""Utility helpers for PDF rendering and protection."""
from __future__ import annotations

import logging
import secrets
from io import BytesIO
from typing import Iterable

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone
from pypdf import PdfReader, PdfWriter
try:
    from weasyprint import HTML
    WEASYPRINT_AVAILABLE = True
except (ImportError, OSError):
    WEASYPRINT_AVAILABLE = False
    HTML = None

from .exceptions import StatementGenerationError
from .utils import get_branding


logger = logging.getLogger(__name__)

PDF_ENCRYPTION_ALGORITHM = "AES-256"


def apply_branding_defaults(context: dict) -> dict:
    """
    Ensure branding keys exist even when templates are rendered without a RequestContext.

    Values already present in the context win over the settings defaults.
    """
    if context is None:
        return {}

    for key, value in get_branding().items():
        if not context.get(key):
            context[key] = value
    context.setdefault("generated_on", timezone.localdate())
    return context


def render_html_to_pdf(html: str, *, stylesheets: Iterable = (), base_url: str | None = None) -> bytes:
    """Render an HTML string to PDF bytes."""
    if not WEASYPRINT_AVAILABLE:
        raise StatementGenerationError(
            "WeasyPrint is not available. PDF generation is disabled. "
            "Install the Pango/GTK libraries WeasyPrint needs on this host."
        )
    buffer = BytesIO()
    HTML(string=html, base_url=base_url).write_pdf(target=buffer, stylesheets=list(stylesheets))
    return buffer.getvalue()


def render_template_to_pdf(
    template: str,
    context: dict,
    *,
    stylesheets: Iterable = (),
    base_url: str | None = None,
) -> bytes:
    context = apply_branding_defaults(context)
    html = render_to_string(template, context)
    return render_html_to_pdf(html, stylesheets=stylesheets, base_url=base_url)


def protect_pdf(pdf_bytes: bytes, password: str, *, owner_password: str | None = None) -> bytes:
    """Return a copy of ``pdf_bytes`` that opens only with ``password``."""
    if not password:
        raise StatementGenerationError("A password is required to protect a statement.")
    owner_password = owner_password or getattr(settings, "STATEMENT_PDF_OWNER_PASSWORD", "") or secrets.token_hex(16)

    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        writer = PdfWriter(clone_from=reader)
        writer.encrypt(
            user_password=password,
            owner_password=owner_password,
            algorithm=PDF_ENCRYPTION_ALGORITHM,
        )
    except Exception as exc:
        logger.exception("Failed to encrypt statement PDF.")
        raise StatementGenerationError("Could not password-protect the statement PDF.") from exc

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
