import logging
import re
import secrets
import uuid
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, validate_email
from django.db import models
from django.utils import timezone


logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

CLIENT_TYPE_CHOICES = [
    ('Family', 'Family'),
    ('SME', 'SME'),
    ('Commercial', 'Commercial'),
    ('Corporate', 'Corporate'),
    ('Enterprise', 'Enterprise'),
]

PAYMENT_TYPE_MONTHLY = 'Monthly'
PAYMENT_TYPE_ONE_TIME = 'One-Time'
PAYMENT_TYPE_CHOICES = [
    (PAYMENT_TYPE_MONTHLY, 'Monthly'),
    (PAYMENT_TYPE_ONE_TIME, 'One-Time'),
]


def ensure_decimal(value, default='0.00'):
    """Return a Decimal instance for the given value."""
    if isinstance(value, Decimal):
        return value
    if value in (None, ''):
        return Decimal(default)
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(default)


def liters_per_container():
    return ensure_decimal(getattr(settings, 'LITERS_PER_CONTAINER', '19.5'), default='19.5')


def container_to_liters(containers):
    """Convert a container count to liters (one container holds 19.5 L)."""
    return ensure_decimal(containers or 0) * liters_per_container()


def _generate_share_token():
    return secrets.token_urlsafe(24)


class Plan(models.Model):
    name = models.CharField(max_length=100)
    client_type = models.CharField(max_length=20, choices=CLIENT_TYPE_CHOICES, blank=True)
    description = models.CharField(max_length=255, blank=True)
    # Flat monthly price, or the price per liter for consumption based plans.
    price = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])
    is_consumption_based = models.BooleanField(default=False)
    is_prepaid = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['client_type', 'name']

    def __str__(self):
        if self.is_consumption_based:
            return f'{self.name} ({self.price}/L)'
        return self.name


class WaterStation(models.Model):
    STATUS_OPERATIONAL = 'Operational'
    STATUS_MAINTENANCE = 'Under Maintenance'
    STATUS_CHOICES = [
        (STATUS_OPERATIONAL, 'Operational'),
        (STATUS_MAINTENANCE, 'Under Maintenance'),
    ]

    name = models.CharField(max_length=150)
    location = models.CharField(max_length=255, blank=True)
    partnership_agreement = models.FileField(upload_to='stations/agreements/', null=True, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_OPERATIONAL)
    status_message = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.name


class ComplianceReport(models.Model):
    TYPE_DOH_MONTHLY = 'DOH Bacteriological Test (Monthly)'
    TYPE_DOH_SEMI_ANNUAL = 'DOH Bacteriological Test (Semi-Annual)'
    TYPE_SANITARY_PERMIT = 'Sanitary Permit'
    TYPE_BUSINESS_PERMIT = 'Business Permit'
    REPORT_TYPE_CHOICES = [
        (TYPE_DOH_MONTHLY, TYPE_DOH_MONTHLY),
        (TYPE_DOH_SEMI_ANNUAL, TYPE_DOH_SEMI_ANNUAL),
        (TYPE_SANITARY_PERMIT, TYPE_SANITARY_PERMIT),
        (TYPE_BUSINESS_PERMIT, TYPE_BUSINESS_PERMIT),
    ]

    STATUS_PASSED = 'Passed'
    STATUS_FAILED = 'Failed'
    STATUS_PENDING_REVIEW = 'Pending Review'
    STATUS_CHOICES = [
        (STATUS_PASSED, 'Passed'),
        (STATUS_FAILED, 'Failed'),
        (STATUS_PENDING_REVIEW, 'Pending Review'),
    ]

    station = models.ForeignKey(WaterStation, on_delete=models.CASCADE, related_name='compliance_reports')
    report_key = models.SlugField(max_length=100)
    name = models.CharField(max_length=150)
    report_type = models.CharField(max_length=60, choices=REPORT_TYPE_CHOICES, blank=True)
    result_id = models.CharField(max_length=100, blank=True)
    date = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_REVIEW)
    report_file = models.FileField(upload_to='stations/compliance/', null=True, blank=True)
    results = models.TextField(blank=True)

    class Meta:
        ordering = ['-date']
        unique_together = (('station', 'report_key'),)

    def __str__(self):
        return f'{self.name} ({self.station})'


class Client(models.Model):
    ACCOUNT_SINGLE = 'Single'
    ACCOUNT_PARENT = 'Parent'
    ACCOUNT_BRANCH = 'Branch'
    ACCOUNT_TYPE_CHOICES = [
        (ACCOUNT_SINGLE, 'Single'),
        (ACCOUNT_PARENT, 'Parent'),
        (ACCOUNT_BRANCH, 'Branch'),
    ]

    STATUS_ACTIVE = 'Active'
    STATUS_INACTIVE = 'Inactive'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_INACTIVE, 'Inactive'),
    ]

    uid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    user = models.OneToOneField(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='client_account',
        help_text='Login account for this client',
    )
    client_id = models.CharField(max_length=30, blank=True, db_index=True, help_text='Manually assigned client ID, e.g. SC2500000001')
    name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    business_email = models.EmailField(blank=True)
    business_name = models.CharField(max_length=200)
    address = models.TextField(blank=True)
    contact_number = models.CharField(max_length=30, blank=True)
    cc_emails = models.TextField(
        blank=True,
        help_text='Additional CC email addresses for statements, separated by commas.',
    )

    account_type = models.CharField(max_length=10, choices=ACCOUNT_TYPE_CHOICES, default=ACCOUNT_SINGLE)
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='branches',
        limit_choices_to={'account_type': 'Parent'},
    )
    account_status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    assigned_station = models.ForeignKey(
        WaterStation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='clients',
    )

    client_type = models.CharField(max_length=20, choices=CLIENT_TYPE_CHOICES, blank=True)
    plan = models.ForeignKey(Plan, on_delete=models.PROTECT, null=True, blank=True, related_name='clients')
    is_prepaid = models.BooleanField(default=False)
    # Running liter balance for fixed plans.
    total_consumption_liters = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    top_up_balance_credits = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    last_billed_date = models.DateTimeField(null=True, blank=True)

    pending_plan = models.ForeignKey(Plan, on_delete=models.SET_NULL, null=True, blank=True, related_name='pending_clients')
    plan_change_effective_date = models.DateField(null=True, blank=True)

    current_contract = models.FileField(upload_to='contracts/', null=True, blank=True)
    contract_status = models.CharField(max_length=30, blank=True)
    contract_uploaded_date = models.DateTimeField(null=True, blank=True)
    photo = models.ImageField(upload_to='profiles/', null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['business_name']

    def __str__(self):
        if self.client_id:
            return f'{self.business_name} ({self.client_id})'
        return self.business_name

    @staticmethod
    def parse_cc_emails(value):
        if not value:
            return []
        raw_emails = re.split(r"[,\n;]+", str(value))
        cleaned = []
        seen = set()
        for entry in raw_emails:
            email = entry.strip()
            if not email:
                continue
            try:
                validate_email(email)
            except ValidationError:
                continue
            key = email.lower()
            if key in seen:
                continue
            seen.add(key)
            cleaned.append(email)
        return cleaned

    def get_cc_emails(self):
        return self.parse_cc_emails(self.cc_emails)

    @property
    def is_branch(self):
        return self.account_type == self.ACCOUNT_BRANCH

    @property
    def is_admin(self):
        return bool(self.user_id and (self.user.is_staff or self.user.is_superuser))

    @property
    def is_billable(self):
        """Admins, prepaid and inactive accounts never receive monthly invoices."""
        if self.is_admin or self.is_prepaid:
            return False
        return self.account_status == self.STATUS_ACTIVE

    @property
    def contact_email(self):
        return self.email or self.business_email

    @property
    def short_key(self):
        return self.uid.hex[:5]

    def get_custom_plan_details(self):
        try:
            return self.custom_plan_details
        except CustomPlanDetails.DoesNotExist:
            return None

    def statement_password(self):
        """Password that opens this client's statement PDFs."""
        if self.client_id:
            return self.client_id.strip()
        return self.uid.hex[:8].upper()

    def clean(self):
        super().clean()
        if self.account_type == self.ACCOUNT_BRANCH and not self.parent_id:
            raise ValidationError({'parent': 'Branch accounts must belong to a parent account.'})
        if self.parent_id and self.parent_id == self.pk:
            raise ValidationError({'parent': 'An account cannot be its own parent.'})
        if self.plan_change_effective_date and not self.pending_plan_id:
            raise ValidationError({'pending_plan': 'Choose the plan that becomes active on the effective date.'})


class CustomPlanDetails(models.Model):
    client = models.OneToOneField(Client, on_delete=models.CASCADE, related_name='custom_plan_details')
    liters_per_month = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])
    bonus_liters = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])

    gallon_quantity = models.PositiveIntegerField(default=0)
    gallon_price = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])
    gallon_payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPE_CHOICES, blank=True)
    dispenser_quantity = models.PositiveIntegerField(default=0)
    dispenser_price = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])
    dispenser_payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPE_CHOICES, blank=True)
    sanitation_price = models.DecimalField(max_digits=10, decimal_places=2, default=ZERO, validators=[MinValueValidator(ZERO)])
    sanitation_payment_type = models.CharField(max_length=10, choices=PAYMENT_TYPE_CHOICES, blank=True)

    delivery_frequency = models.CharField(max_length=50, blank=True)
    delivery_day = models.CharField(max_length=20, blank=True)
    delivery_time = models.CharField(max_length=20, blank=True)
    auto_refill_enabled = models.BooleanField(default=True)
    last_month_rollover = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    # Rollover carried into ``rollover_period``; re-billing that period starts from it again.
    rollover_period = models.CharField(max_length=80, blank=True)
    opening_rollover = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)

    class Meta:
        verbose_name = 'Custom Plan Details'
        verbose_name_plural = 'Custom Plan Details'

    def __str__(self):
        return f'Plan details for {self.client}'

    def monthly_allocation(self):
        return ensure_decimal(self.liters_per_month) + ensure_decimal(self.bonus_liters)

    def carried_rollover(self, billing_period):
        if self.rollover_period == billing_period:
            return ensure_decimal(self.opening_rollover)
        return ensure_decimal(self.last_month_rollover)

    def monthly_equipment_cost(self):
        cost = ZERO
        if self.gallon_payment_type == PAYMENT_TYPE_MONTHLY:
            cost += ensure_decimal(self.gallon_price)
        if self.dispenser_payment_type == PAYMENT_TYPE_MONTHLY:
            cost += ensure_decimal(self.dispenser_price)
        return cost

    def one_time_fees(self):
        fees = ZERO
        if self.gallon_payment_type == PAYMENT_TYPE_ONE_TIME:
            fees += ensure_decimal(self.gallon_price)
        if self.dispenser_payment_type == PAYMENT_TYPE_ONE_TIME:
            fees += ensure_decimal(self.dispenser_price)
        return fees

    def clean(self):
        super().clean()
        if ensure_decimal(self.last_month_rollover) < ZERO:
            raise ValidationError({'last_month_rollover': 'Rollover liters cannot be negative.'})


class Delivery(models.Model):
    STATUS_DELIVERED = 'Delivered'
    STATUS_IN_TRANSIT = 'In Transit'
    STATUS_PENDING = 'Pending'
    STATUS_CHOICES = [
        (STATUS_DELIVERED, 'Delivered'),
        (STATUS_IN_TRANSIT, 'In Transit'),
        (STATUS_PENDING, 'Pending'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='deliveries')
    reference = models.CharField(max_length=50, blank=True)
    date = models.DateTimeField(default=timezone.now, db_index=True)
    volume_containers = models.PositiveIntegerField(default=0)
    # Explicit liters win over the container conversion when recorded.
    liters = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    proof_of_delivery = models.FileField(upload_to='deliveries/proofs/', null=True, blank=True)
    admin_notes = models.TextField(blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-date']
        verbose_name_plural = 'Deliveries'

    def __str__(self):
        return f'{self.reference or self.pk} - {self.client} ({self.volume_containers} containers)'

    @property
    def liters_delivered(self):
        if self.liters:
            return ensure_decimal(self.liters)
        return container_to_liters(self.volume_containers)

    def save(self, *args, **kwargs):
        if not self.reference:
            self.reference = f'DEL-{uuid.uuid4().hex[:8].upper()}'
        super().save(*args, **kwargs)


class Invoice(models.Model):
    STATUS_UPCOMING = 'Upcoming'
    STATUS_PENDING_REVIEW = 'Pending Review'
    STATUS_PAID = 'Paid'
    STATUS_OVERDUE = 'Overdue'
    STATUS_COVERED_BY_PARENT = 'Covered by Parent Account'
    STATUS_CHOICES = [
        (STATUS_UPCOMING, 'Upcoming'),
        (STATUS_PENDING_REVIEW, 'Pending Review'),
        (STATUS_PAID, 'Paid'),
        (STATUS_OVERDUE, 'Overdue'),
        (STATUS_COVERED_BY_PARENT, 'Covered by Parent Account'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='invoices')
    invoice_number = models.CharField(max_length=80)
    date = models.DateTimeField(default=timezone.now)
    billing_period = models.CharField(max_length=80, blank=True)
    period_start = models.DateTimeField(null=True, blank=True)
    period_end = models.DateTimeField(null=True, blank=True)
    description = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(ZERO)])
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_UPCOMING)
    proof_of_payment = models.FileField(upload_to='payments/proofs/', null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    is_first_invoice = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date']
        unique_together = (('client', 'invoice_number'),)

    def __str__(self):
        return f'{self.invoice_number} ({self.client})'

    @staticmethod
    def build_invoice_number(client, billing_period):
        period_slug = re.sub(r'\s', '-', billing_period)
        return f'INV-{client.short_key}-{period_slug}'

    def save(self, *args, **kwargs):
        if ensure_decimal(self.amount) < ZERO:
            raise ValidationError({'amount': 'Invoice amounts cannot be negative.'})
        super().save(*args, **kwargs)


class ManualCharge(models.Model):
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='manual_charges')
    description = models.CharField(max_length=255)
    # Positive amounts are adjustments, negative amounts are deductions.
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    date_added = models.DateTimeField(default=timezone.now)
    invoice = models.ForeignKey(Invoice, on_delete=models.SET_NULL, null=True, blank=True, related_name='manual_charges')

    class Meta:
        ordering = ['date_added']

    def __str__(self):
        return f'{self.description}: {self.amount}'


class Transaction(models.Model):
    TYPE_CREDIT = 'Credit'
    TYPE_DEBIT = 'Debit'
    TYPE_CHOICES = [
        (TYPE_CREDIT, 'Credit'),
        (TYPE_DEBIT, 'Debit'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='transactions')
    date = models.DateTimeField(default=timezone.now)
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    amount_credits = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255)
    branch = models.ForeignKey(Client, on_delete=models.SET_NULL, null=True, blank=True, related_name='branch_transactions')

    class Meta:
        ordering = ['-date']

    def __str__(self):
        return f'{self.type} {self.amount_credits} - {self.client}'


class TopUpRequest(models.Model):
    STATUS_PENDING_REVIEW = 'Pending Review'
    STATUS_APPROVED = 'Approved'
    STATUS_REJECTED = 'Rejected'
    STATUS_APPROVED_INITIAL = 'Approved (Initial Balance)'
    STATUS_CHOICES = [
        (STATUS_PENDING_REVIEW, 'Pending Review'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_APPROVED_INITIAL, 'Approved (Initial Balance)'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='top_up_requests')
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_PENDING_REVIEW)
    requested_at = models.DateTimeField(default=timezone.now)
    proof_of_payment = models.FileField(upload_to='topups/proofs/', null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    class Meta:
        ordering = ['-requested_at']

    def __str__(self):
        return f'Top-up {self.amount} for {self.client} ({self.status})'


class RefillRequest(models.Model):
    STATUS_REQUESTED = 'Requested'
    STATUS_IN_PRODUCTION = 'In Production'
    STATUS_OUT_FOR_DELIVERY = 'Out for Delivery'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_REQUESTED, 'Requested'),
        (STATUS_IN_PRODUCTION, 'In Production'),
        (STATUS_OUT_FOR_DELIVERY, 'Out for Delivery'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='refill_requests')
    requested_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_REQUESTED)
    status_history = models.JSONField(default=list, blank=True)
    volume_containers = models.PositiveIntegerField(null=True, blank=True)
    requested_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['-requested_at']

    def __str__(self):
        return f'Refill for {self.client} ({self.status})'

    def save(self, *args, **kwargs):
        history = list(self.status_history or [])
        if not history or history[-1].get('status') != self.status:
            history.append({'status': self.status, 'timestamp': timezone.now().isoformat()})
            self.status_history = history
        super().save(*args, **kwargs)


class SanitationVisit(models.Model):
    STATUS_SCHEDULED = 'Scheduled'
    STATUS_COMPLETED = 'Completed'
    STATUS_CANCELLED = 'Cancelled'
    STATUS_CHOICES = [
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name='sanitation_visits')
    scheduled_date = models.DateTimeField(db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_SCHEDULED)
    assigned_to = models.CharField(max_length=150, blank=True)
    report_file = models.FileField(upload_to='sanitation/reports/', null=True, blank=True)
    share_token = models.CharField(max_length=64, unique=True, default=_generate_share_token, editable=False)
    officer_signature = models.TextField(blank=True)
    client_signature = models.TextField(blank=True)
    client_rep_name = models.CharField(max_length=150, blank=True)
    officer_signature_date = models.DateTimeField(null=True, blank=True)
    client_signature_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-scheduled_date']

    def __str__(self):
        return f'Sanitation visit for {self.client} on {self.scheduled_date:%Y-%m-%d}'

    def checklist_counts(self):
        checked = total = 0
        for report in self.dispenser_reports.all():
            report_checked, report_total = report.checklist_counts()
            checked += report_checked
            total += report_total
        return checked, total

    @property
    def pass_rate(self):
        """Percentage of checklist items passed across all dispensers, or None."""
        checked, total = self.checklist_counts()
        if not total:
            return None
        return round(checked * 100 / total)


class DispenserReport(models.Model):
    visit = models.ForeignKey(SanitationVisit, on_delete=models.CASCADE, related_name='dispenser_reports')
    dispenser_id = models.CharField(max_length=50)
    dispenser_name = models.CharField(max_length=150)
    dispenser_code = models.CharField(max_length=50, blank=True)
    # [{"item": str, "checked": bool, "remarks": str}, ...]
    checklist = models.JSONField(default=list, blank=True)

    def __str__(self):
        return f'{self.dispenser_name} ({self.visit_id})'

    def checklist_counts(self):
        items = [entry for entry in (self.checklist or []) if isinstance(entry, dict)]
        checked = sum(1 for entry in items if entry.get('checked'))
        return checked, len(items)


class Notification(models.Model):
    TYPE_DELIVERY = 'delivery'
    TYPE_COMPLIANCE = 'compliance'
    TYPE_SANITATION = 'sanitation'
    TYPE_PAYMENT = 'payment'
    TYPE_GENERAL = 'general'
    TYPE_TOP_UP = 'top-up'
    TYPE_CHOICES = [
        (TYPE_DELIVERY, 'Delivery'),
        (TYPE_COMPLIANCE, 'Compliance'),
        (TYPE_SANITATION, 'Sanitation'),
        (TYPE_PAYMENT, 'Payment'),
        (TYPE_GENERAL, 'General'),
        (TYPE_TOP_UP, 'Top-up'),
    ]

    recipient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_GENERAL)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    date = models.DateTimeField(default=timezone.now)
    is_read = models.BooleanField(default=False)
    data = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ['-date']

    def __str__(self):
        return f'{self.title} -> {self.recipient}'
