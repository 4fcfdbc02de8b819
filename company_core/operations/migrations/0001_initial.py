from decimal import Decimal

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone
import operations.models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Plan',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('client_type', models.CharField(blank=True, choices=[('Family', 'Family'), ('SME', 'SME'), ('Commercial', 'Commercial'), ('Corporate', 'Corporate'), ('Enterprise', 'Enterprise')], max_length=20)),
                ('description', models.CharField(blank=True, max_length=255)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('is_consumption_based', models.BooleanField(default=False)),
                ('is_prepaid', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['client_type', 'name'],
            },
        ),
        migrations.CreateModel(
            name='WaterStation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150)),
                ('location', models.CharField(blank=True, max_length=255)),
                ('partnership_agreement', models.FileField(blank=True, null=True, upload_to='stations/agreements/')),
                ('status', models.CharField(choices=[('Operational', 'Operational'), ('Under Maintenance', 'Under Maintenance')], default='Operational', max_length=30)),
                ('status_message', models.CharField(blank=True, max_length=255)),
            ],
        ),
        migrations.CreateModel(
            name='ComplianceReport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('report_key', models.SlugField(max_length=100)),
                ('name', models.CharField(max_length=150)),
                ('report_type', models.CharField(blank=True, choices=[('DOH Bacteriological Test (Monthly)', 'DOH Bacteriological Test (Monthly)'), ('DOH Bacteriological Test (Semi-Annual)', 'DOH Bacteriological Test (Semi-Annual)'), ('Sanitary Permit', 'Sanitary Permit'), ('Business Permit', 'Business Permit')], max_length=60)),
                ('result_id', models.CharField(blank=True, max_length=100)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('Passed', 'Passed'), ('Failed', 'Failed'), ('Pending Review', 'Pending Review')], default='Pending Review', max_length=20)),
                ('report_file', models.FileField(blank=True, null=True, upload_to='stations/compliance/')),
                ('results', models.TextField(blank=True)),
                ('station', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='compliance_reports', to='operations.waterstation')),
            ],
            options={
                'ordering': ['-date'],
                'unique_together': {('station', 'report_key')},
            },
        ),
        migrations.CreateModel(
            name='Client',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uid', models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ('client_id', models.CharField(blank=True, db_index=True, help_text='Manually assigned client ID, e.g. SC2500000001', max_length=30)),
                ('name', models.CharField(max_length=150)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('business_email', models.EmailField(blank=True, max_length=254)),
                ('business_name', models.CharField(max_length=200)),
                ('address', models.TextField(blank=True)),
                ('contact_number', models.CharField(blank=True, max_length=30)),
                ('cc_emails', models.TextField(blank=True, help_text='Additional CC email addresses for statements, separated by commas.')),
                ('account_type', models.CharField(choices=[('Single', 'Single'), ('Parent', 'Parent'), ('Branch', 'Branch')], default='Single', max_length=10)),
                ('account_status', models.CharField(choices=[('Active', 'Active'), ('Inactive', 'Inactive')], default='Active', max_length=10)),
                ('client_type', models.CharField(blank=True, choices=[('Family', 'Family'), ('SME', 'SME'), ('Commercial', 'Commercial'), ('Corporate', 'Corporate'), ('Enterprise', 'Enterprise')], max_length=20)),
                ('is_prepaid', models.BooleanField(default=False)),
                ('total_consumption_liters', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('top_up_balance_credits', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('last_billed_date', models.DateTimeField(blank=True, null=True)),
                ('plan_change_effective_date', models.DateField(blank=True, null=True)),
                ('current_contract', models.FileField(blank=True, null=True, upload_to='contracts/')),
                ('contract_status', models.CharField(blank=True, max_length=30)),
                ('contract_uploaded_date', models.DateTimeField(blank=True, null=True)),
                ('photo', models.ImageField(blank=True, null=True, upload_to='profiles/')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_station', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='clients', to='operations.waterstation')),
                ('parent', models.ForeignKey(blank=True, limit_choices_to={'account_type': 'Parent'}, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='branches', to='operations.client')),
                ('pending_plan', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='pending_clients', to='operations.plan')),
                ('plan', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='clients', to='operations.plan')),
                ('user', models.OneToOneField(blank=True, help_text='Login account for this client', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='client_account', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['business_name'],
            },
        ),
        migrations.CreateModel(
            name='CustomPlanDetails',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('liters_per_month', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('bonus_liters', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('gallon_quantity', models.PositiveIntegerField(default=0)),
                ('gallon_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('gallon_payment_type', models.CharField(blank=True, choices=[('Monthly', 'Monthly'), ('One-Time', 'One-Time')], max_length=10)),
                ('dispenser_quantity', models.PositiveIntegerField(default=0)),
                ('dispenser_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('dispenser_payment_type', models.CharField(blank=True, choices=[('Monthly', 'Monthly'), ('One-Time', 'One-Time')], max_length=10)),
                ('sanitation_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('sanitation_payment_type', models.CharField(blank=True, choices=[('Monthly', 'Monthly'), ('One-Time', 'One-Time')], max_length=10)),
                ('delivery_frequency', models.CharField(blank=True, max_length=50)),
                ('delivery_day', models.CharField(blank=True, max_length=20)),
                ('delivery_time', models.CharField(blank=True, max_length=20)),
                ('auto_refill_enabled', models.BooleanField(default=True)),
                ('last_month_rollover', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('client', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='custom_plan_details', to='operations.client')),
            ],
            options={
                'verbose_name': 'Custom Plan Details',
                'verbose_name_plural': 'Custom Plan Details',
            },
        ),
        migrations.CreateModel(
            name='Delivery',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference', models.CharField(blank=True, max_length=50)),
                ('date', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('volume_containers', models.PositiveIntegerField(default=0)),
                ('liters', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('status', models.CharField(choices=[('Delivered', 'Delivered'), ('In Transit', 'In Transit'), ('Pending', 'Pending')], default='Pending', max_length=20)),
                ('proof_of_delivery', models.FileField(blank=True, null=True, upload_to='deliveries/proofs/')),
                ('admin_notes', models.TextField(blank=True)),
                ('amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deliveries', to='operations.client')),
            ],
            options={
                'verbose_name_plural': 'Deliveries',
                'ordering': ['-date'],
            },
        ),
        migrations.CreateModel(
            name='Invoice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('invoice_number', models.CharField(max_length=80)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('billing_period', models.CharField(blank=True, max_length=80)),
                ('period_start', models.DateTimeField(blank=True, null=True)),
                ('period_end', models.DateTimeField(blank=True, null=True)),
                ('description', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('status', models.CharField(choices=[('Upcoming', 'Upcoming'), ('Pending Review', 'Pending Review'), ('Paid', 'Paid'), ('Overdue', 'Overdue'), ('Covered by Parent Account', 'Covered by Parent Account')], default='Upcoming', max_length=30)),
                ('proof_of_payment', models.FileField(blank=True, null=True, upload_to='payments/proofs/')),
                ('rejection_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoices', to='operations.client')),
            ],
            options={
                'ordering': ['-date'],
                'unique_together': {('client', 'invoice_number')},
            },
        ),
        migrations.CreateModel(
            name='ManualCharge',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('description', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('date_added', models.DateTimeField(default=django.utils.timezone.now)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='manual_charges', to='operations.client')),
                ('invoice', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='manual_charges', to='operations.invoice')),
            ],
            options={
                'ordering': ['date_added'],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('type', models.CharField(choices=[('Credit', 'Credit'), ('Debit', 'Debit')], max_length=10)),
                ('amount_credits', models.DecimalField(decimal_places=2, max_digits=12)),
                ('description', models.CharField(max_length=255)),
                ('branch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='branch_transactions', to='operations.client')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transactions', to='operations.client')),
            ],
            options={
                'ordering': ['-date'],
            },
        ),
        migrations.CreateModel(
            name='TopUpRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('status', models.CharField(choices=[('Pending Review', 'Pending Review'), ('Approved', 'Approved'), ('Rejected', 'Rejected'), ('Approved (Initial Balance)', 'Approved (Initial Balance)')], default='Pending Review', max_length=30)),
                ('requested_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('proof_of_payment', models.FileField(blank=True, null=True, upload_to='topups/proofs/')),
                ('rejection_reason', models.TextField(blank=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='top_up_requests', to='operations.client')),
            ],
            options={
                'ordering': ['-requested_at'],
            },
        ),
        migrations.CreateModel(
            name='RefillRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('status', models.CharField(choices=[('Requested', 'Requested'), ('In Production', 'In Production'), ('Out for Delivery', 'Out for Delivery'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled')], default='Requested', max_length=20)),
                ('status_history', models.JSONField(blank=True, default=list)),
                ('volume_containers', models.PositiveIntegerField(blank=True, null=True)),
                ('requested_date', models.DateField(blank=True, null=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='refill_requests', to='operations.client')),
            ],
            options={
                'ordering': ['-requested_at'],
            },
        ),
        migrations.CreateModel(
            name='SanitationVisit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('scheduled_date', models.DateTimeField(db_index=True)),
                ('status', models.CharField(choices=[('Scheduled', 'Scheduled'), ('Completed', 'Completed'), ('Cancelled', 'Cancelled')], default='Scheduled', max_length=20)),
                ('assigned_to', models.CharField(blank=True, max_length=150)),
                ('report_file', models.FileField(blank=True, null=True, upload_to='sanitation/reports/')),
                ('share_token', models.CharField(default=operations.models._generate_share_token, editable=False, max_length=64, unique=True)),
                ('officer_signature', models.TextField(blank=True)),
                ('client_signature', models.TextField(blank=True)),
                ('client_rep_name', models.CharField(blank=True, max_length=150)),
                ('officer_signature_date', models.DateTimeField(blank=True, null=True)),
                ('client_signature_date', models.DateTimeField(blank=True, null=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sanitation_visits', to='operations.client')),
            ],
            options={
                'ordering': ['-scheduled_date'],
            },
        ),
        migrations.CreateModel(
            name='DispenserReport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dispenser_id', models.CharField(max_length=50)),
                ('dispenser_name', models.CharField(max_length=150)),
                ('dispenser_code', models.CharField(blank=True, max_length=50)),
                ('checklist', models.JSONField(blank=True, default=list)),
                ('visit', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='dispenser_reports', to='operations.sanitationvisit')),
            ],
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('delivery', 'Delivery'), ('compliance', 'Compliance'), ('sanitation', 'Sanitation'), ('payment', 'Payment'), ('general', 'General'), ('top-up', 'Top-up')], default='general', max_length=20)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('date', models.DateTimeField(default=django.utils.timezone.now)),
                ('is_read', models.BooleanField(default=False)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-date'],
            },
        ),
    ]
