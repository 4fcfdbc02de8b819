# operations/templatetags/operations_filters.py

from django import template

from operations.utils import format_currency, format_liters, format_long_date

register = template.Library()


@register.filter
def peso(value):
    """Formats a number as peso currency."""
    try:
        return format_currency(value)
    except (ValueError, TypeError):
        return format_currency(0)


@register.filter
def liters(value):
    """Formats a liter amount, dropping trailing zeros for whole liters."""
    try:
        return format_liters(value)
    except (ValueError, TypeError):
        return "0 L"


@register.filter
def long_date(value):
    return format_long_date(value)

