from dateutil.relativedelta import relativedelta
from django.contrib import admin
from django.core.exceptions import ValidationError
from django.http import HttpResponse
from django.utils import timezone
from django.utils.html import format_html

from .billing import (
    billing_cycle_for_month,
    generate_cycle_statement,
    generate_monthly_invoices,
    review_invoice_payment,
    review_top_up,
)
from .exceptions import StatementGenerationError
from .models import (
    Client,
    ComplianceReport,
    CustomPlanDetails,
    Delivery,
    DispenserReport,
    Invoice,
    ManualCharge,
    Notification,
    Plan,
    RefillRequest,
    SanitationVisit,
    TopUpRequest,
    Transaction,
    WaterStation,
)
from .statements import statement_filename
from .utils import format_currency, format_liters


@admin.register(Plan)
class PlanAdmin(admin.ModelAdmin):
    list_display = ('name', 'client_type', 'price', 'is_consumption_based', 'is_prepaid', 'is_active')
    list_filter = ('client_type', 'is_consumption_based', 'is_active')
    search_fields = ('name',)


class ComplianceReportInline(admin.TabularInline):
    model = ComplianceReport
    extra = 0
    fields = ('name', 'report_type', 'date', 'status', 'report_file')


@admin.register(WaterStation)
class WaterStationAdmin(admin.ModelAdmin):
    list_display = ('name', 'location', 'status', 'client_count')
    list_filter = ('status',)
    search_fields = ('name', 'location')
    inlines = (ComplianceReportInline,)

    def client_count(self, obj):
        return obj.clients.count()

    client_count.short_description = 'Clients'


@admin.register(ComplianceReport)
class ComplianceReportAdmin(admin.ModelAdmin):
    list_display = ('name', 'station', 'report_type', 'date', 'status')
    list_filter = ('status', 'report_type', 'station')
    search_fields = ('name', 'report_key', 'station__name')


class CustomPlanDetailsInline(admin.StackedInline):
    model = CustomPlanDetails
    can_delete = False
    verbose_name_plural = 'Plan details'
    readonly_fields = ('rollover_period', 'opening_rollover')


class ManualChargeInline(admin.TabularInline):
    model = ManualCharge
    extra = 0
    fields = ('description', 'amount', 'date_added', 'invoice')
    readonly_fields = ('invoice',)


@admin.action(description='Run billing for selected clients (previous month)')
def run_billing(modeladmin, request, queryset):
    result = generate_monthly_invoices(timezone.localdate(), clients=queryset)
    if result.was_skipped:
        modeladmin.message_user(request, 'Invoice generation is skipped for this month.', level='warning')
        return
    modeladmin.message_user(
        request,
        f"{result.cycle.label}: {len(result.invoiced)} invoiced, {len(result.no_charge)} without charge, "
        f"{len(result.skipped)} skipped, {len(result.failed)} failed.",
    )


@admin.action(description='Download Statement of Account (previous month)')
def download_statement(modeladmin, request, queryset):
    if queryset.count() != 1:
        modeladmin.message_user(request, 'Select exactly one client to download a statement.', level='warning')
        return None
    client = queryset.select_related('plan').first()
    cycle = billing_cycle_for_month(timezone.localdate() - relativedelta(months=1))
    try:
        pdf_content = generate_cycle_statement(client, cycle)
    except StatementGenerationError as exc:
        modeladmin.message_user(request, str(exc), level='error')
        return None
    response = HttpResponse(pdf_content, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="{statement_filename(client, cycle.label)}"'
    return response


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = (
        'business_name',
        'client_id',
        'account_type',
        'plan',
        'account_status',
        'liters_balance',
        'credits_display',
        'last_billed_date',
    )
    list_filter = ('account_type', 'account_status', 'client_type', 'is_prepaid', 'plan')
    search_fields = ('business_name', 'name', 'client_id', 'email')
    raw_id_fields = ('user', 'parent')
    readonly_fields = ('uid', 'created_at', 'updated_at', 'photo_preview')
    inlines = (CustomPlanDetailsInline, ManualChargeInline)
    actions = (run_billing, download_statement)

    def liters_balance(self, obj):
        return format_liters(obj.total_consumption_liters)

    liters_balance.short_description = 'Liters balance'

    def credits_display(self, obj):
        return format_currency(obj.top_up_balance_credits)

    credits_display.short_description = 'Credits'

    def photo_preview(self, instance):
        if instance.photo:
            return format_html('<img src="{}" style="max-width: 100px; height: auto;" />', instance.photo.url)
        return 'No photo'

    photo_preview.short_description = 'Photo'


@admin.register(Delivery)
class DeliveryAdmin(admin.ModelAdmin):
    list_display = ('reference', 'client', 'date', 'volume_containers', 'liters_display', 'status')
    list_filter = ('status', 'date')
    search_fields = ('reference', 'client__business_name', 'client__client_id')
    date_hierarchy = 'date'

    def liters_display(self, obj):
        return format_liters(obj.liters_delivered)

    liters_display.short_description = 'Liters'


def _review_selected(modeladmin, request, queryset, *, approve):
    reviewed, skipped = 0, []
    for invoice in queryset.select_related('client'):
        try:
            review_invoice_payment(invoice, approve=approve, reason='' if approve else 'Rejected by staff.')
        except ValidationError:
            skipped.append(invoice.invoice_number)
            continue
        reviewed += 1
    if reviewed:
        verb = 'approved' if approve else 'rejected'
        modeladmin.message_user(request, f"{reviewed} payment(s) {verb}.")
    if skipped:
        modeladmin.message_user(
            request,
            f"Invoices {', '.join(skipped)} were not awaiting review.",
            level='warning',
        )


@admin.action(description='Approve submitted payments')
def approve_payments(modeladmin, request, queryset):
    _review_selected(modeladmin, request, queryset, approve=True)


@admin.action(description='Reject submitted payments')
def reject_payments(modeladmin, request, queryset):
    _review_selected(modeladmin, request, queryset, approve=False)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('invoice_number', 'client', 'billing_period', 'amount_display', 'status', 'date')
    list_filter = ('status', 'billing_period')
    search_fields = ('invoice_number', 'client__business_name', 'client__client_id')
    readonly_fields = ('is_first_invoice', 'created_at', 'updated_at')
    actions = (approve_payments, reject_payments)

    def amount_display(self, obj):
        return format_currency(obj.amount)

    amount_display.admin_order_field = 'amount'
    amount_display.short_description = 'Amount'


@admin.register(ManualCharge)
class ManualChargeAdmin(admin.ModelAdmin):
    list_display = ('client', 'description', 'amount', 'date_added', 'invoice')
    list_filter = ('date_added',)
    search_fields = ('client__business_name', 'description')


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('client', 'date', 'type', 'amount_credits', 'description', 'branch')
    list_filter = ('type',)


@admin.action(description='Approve selected top-ups')
def approve_top_ups(modeladmin, request, queryset):
    approved = 0
    for top_up in queryset.filter(status=TopUpRequest.STATUS_PENDING_REVIEW):
        review_top_up(top_up, approve=True)
        approved += 1
    modeladmin.message_user(request, f"{approved} top-up(s) approved.")


@admin.register(TopUpRequest)
class TopUpRequestAdmin(admin.ModelAdmin):
    list_display = ('client', 'amount', 'status', 'requested_at')
    list_filter = ('status',)
    actions = (approve_top_ups,)


@admin.register(RefillRequest)
class RefillRequestAdmin(admin.ModelAdmin):
    list_display = ('client', 'requested_at', 'status', 'volume_containers', 'requested_date')
    list_filter = ('status',)
    readonly_fields = ('status_history',)


class DispenserReportInline(admin.StackedInline):
    model = DispenserReport
    extra = 0


@admin.register(SanitationVisit)
class SanitationVisitAdmin(admin.ModelAdmin):
    list_display = ('client', 'scheduled_date', 'status', 'assigned_to', 'share_token')
    list_filter = ('status',)
    search_fields = ('client__business_name', 'assigned_to')
    readonly_fields = ('share_token',)
    inlines = (DispenserReportInline,)


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('recipient', 'type', 'title', 'date', 'is_read')
    list_filter = ('type', 'is_read')
    search_fields = ('title', 'recipient__username')
