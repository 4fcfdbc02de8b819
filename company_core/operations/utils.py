from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.utils import timezone

from .models import ensure_decimal

TWO_PLACES = Decimal('0.01')


def quantize_money(value) -> Decimal:
    return ensure_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_currency(value) -> str:
    """Format an amount as ``₱1,234.50``."""
    symbol = getattr(settings, 'CURRENCY_SYMBOL', '₱')
    return f"{symbol}{quantize_money(value):,.2f}"


def format_liters(value) -> str:
    amount = quantize_money(value)
    if amount == amount.to_integral_value():
        return f"{amount:,.0f} L"
    return f"{amount:,.2f} L"


def format_long_date(value) -> str:
    """Render a date or datetime as ``January 5, 2026``."""
    if not value:
        return ''
    if hasattr(value, 'tzinfo') and hasattr(value, 'hour') and timezone.is_aware(value):
        value = timezone.localtime(value)
    return f"{value:%B} {value.day}, {value.year}"


def build_cc_list(*emails, exclude=None):
    """Return a deduped CC list, optionally excluding some recipients."""

    exclude_set = {
        str(e).strip().lower()
        for e in (exclude or [])
        if e and str(e).strip()
    }

    result = []
    seen = set()
    for email in emails:
        if not email:
            continue
        email_str = str(email).strip()
        if not email_str:
            continue
        key = email_str.lower()
        if key in exclude_set or key in seen:
            continue
        seen.add(key)
        result.append(email_str)
    return result


def get_billing_bcc_list(exclude=None):
    return build_cc_list(*getattr(settings, 'BILLING_BCC_EMAILS', []), exclude=exclude)


def get_branding():
    """Branding values rendered on statements and e-mails."""
    return {
        'business_name': settings.DEFAULT_BUSINESS_NAME,
        'business_tagline': settings.DEFAULT_BUSINESS_TAGLINE,
        'business_email': settings.DEFAULT_BUSINESS_EMAIL,
        'business_website': settings.DEFAULT_BUSINESS_WEBSITE,
        'business_address': settings.DEFAULT_BUSINESS_ADDRESS,
        'dashboard_url': getattr(settings, 'DASHBOARD_URL', ''),
        'currency_symbol': getattr(settings, 'CURRENCY_SYMBOL', '₱'),
    }
