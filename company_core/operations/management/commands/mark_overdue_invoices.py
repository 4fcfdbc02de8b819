from django.core.management.base import BaseCommand
from operations.billing import mark_overdue_invoices


class Command(BaseCommand):
    help = 'Mark upcoming invoices past their due window as overdue.'

    def handle(self, *args, **kwargs):
        count = mark_overdue_invoices()
        self.stdout.write(self.style.SUCCESS(f'Marked {count} invoice(s) overdue.'))
