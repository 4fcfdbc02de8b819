import logging
from datetime import date

from django.contrib import messages
from django.contrib.admin.views.decorators import staff_member_required
from django.http import Http404, HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from .billing import billing_cycle_for_month, generate_cycle_statement
from .exceptions import StatementGenerationError
from .models import Client, SanitationVisit
from .statements import statement_filename
from .utils import get_branding


logger = logging.getLogger(__name__)


@require_http_methods(['GET', 'POST'])
def sanitation_report(request, share_token):
    """Public checklist page for a visit; the client representative signs it here."""
    visit = get_object_or_404(
        SanitationVisit.objects.select_related('client').prefetch_related('dispenser_reports'),
        share_token=share_token,
    )

    if request.method == 'POST':
        rep_name = (request.POST.get('client_rep_name') or '').strip()
        signature = (request.POST.get('client_signature') or '').strip()
        if visit.client_signature:
            messages.info(request, 'This report has already been signed.')
        elif not rep_name or not signature:
            messages.error(request, 'Please enter your name and sign the report.')
        else:
            visit.client_rep_name = rep_name
            visit.client_signature = signature
            visit.client_signature_date = timezone.now()
            visit.save(update_fields=['client_rep_name', 'client_signature', 'client_signature_date'])
            messages.success(request, 'Thank you! The report has been signed.')
        return redirect('operations:sanitation_report', share_token=share_token)

    checked, total = visit.checklist_counts()
    context = {
        'visit': visit,
        'client': visit.client,
        'dispenser_reports': visit.dispenser_reports.all(),
        'checked_items': checked,
        'total_items': total,
        'pass_rate': visit.pass_rate,
    }
    context.update(get_branding())
    return render(request, 'operations/sanitation_report.html', context)


@staff_member_required
def download_statement(request, pk, period):
    client = get_object_or_404(Client.objects.select_related('plan'), pk=pk)
    try:
        month = date.fromisoformat(f'{period}-01')
    except ValueError:
        raise Http404('Unknown billing period.')

    cycle = billing_cycle_for_month(month)
    try:
        pdf = generate_cycle_statement(client, cycle)
    except StatementGenerationError as exc:
        logger.error("Statement for client %s failed: %s", client.pk, exc)
        return HttpResponse(str(exc), status=503, content_type='text/plain')
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{statement_filename(client, cycle.label)}"'
    return response
