from django_cron import CronJobBase, Schedule
from django.utils import timezone
from .billing import generate_monthly_invoices, mark_overdue_invoices
import logging

logger = logging.getLogger(__name__)


class GenerateMonthlyInvoicesCronJob(CronJobBase):
    # First day of every month, just after midnight local time.
    schedule = Schedule(run_monthly_on_days=1, run_at_times=['00:00'])
    code = 'operations.generate_monthly_invoices_cron_job'  # Unique code

    def do(self):
        today = timezone.localdate()
        try:
            result = generate_monthly_invoices(today)
        except Exception:
            logger.exception("Monthly invoice generation aborted for %s.", today)
            raise
        if result.was_skipped:
            return f"Skipped invoice generation for {today}."
        return (
            f"{result.cycle.label}: {len(result.invoiced)} invoiced, "
            f"{len(result.no_charge)} without charge, {len(result.failed)} failed."
        )


class MarkOverdueInvoicesCronJob(CronJobBase):
    RUN_EVERY_MINS = 60 * 24  # Every 24 hours

    schedule = Schedule(run_every_mins=RUN_EVERY_MINS)
    code = 'operations.mark_overdue_invoices_cron_job'  # Unique code

    def do(self):
        count = mark_overdue_invoices()
        return f"Marked {count} invoice(s) overdue."
