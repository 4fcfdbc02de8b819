import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from faker import Faker

from operations.models import (
    Client,
    ComplianceReport,
    CustomPlanDetails,
    Delivery,
    DispenserReport,
    Plan,
    SanitationVisit,
    WaterStation,
)

fake = Faker()

CHECKLIST_ITEMS = [
    'Exterior cleaned',
    'Drip tray sanitized',
    'Faucets sanitized',
    'Reservoir flushed',
    'No leaks found',
]


def random_datetime(start, end):
    seconds = int((end - start).total_seconds())
    return start + timedelta(seconds=random.randint(0, max(seconds, 0)))


class Command(BaseCommand):
    help = 'Generate demo clients, deliveries and sanitation visits for local development'

    def add_arguments(self, parser):
        parser.add_argument('--clients', type=int, default=5, help='Number of client accounts to create')
        parser.add_argument('--deliveries', type=int, default=6, help='Number of deliveries per client')
        parser.add_argument('--days', type=int, default=60, help='Spread deliveries over this many past days')

    def handle(self, *args, **options):
        plans = list(Plan.objects.filter(is_active=True))
        if not plans:
            self.stdout.write(self.style.ERROR('No plans found! Run migrations first.'))
            return

        end = timezone.now()
        start = end - timedelta(days=options['days'])

        with transaction.atomic():
            station = WaterStation.objects.create(
                name=f'{fake.city()} Refilling Station',
                location=fake.address(),
            )
            for report_type, _ in ComplianceReport.REPORT_TYPE_CHOICES[:2]:
                ComplianceReport.objects.create(
                    station=station,
                    report_key=fake.unique.bothify(text='report-####'),
                    name=report_type,
                    report_type=report_type,
                    date=random_datetime(start, end),
                    status=ComplianceReport.STATUS_PASSED,
                )

            for index in range(options['clients']):
                plan = random.choice(plans)
                business_name = fake.company()
                user = User.objects.create_user(
                    username=fake.unique.user_name(),
                    email=fake.unique.company_email(),
                    password='demo-pass-123',
                )
                client = Client.objects.create(
                    user=user,
                    client_id=f'SC25{index + 1:08d}',
                    name=fake.name(),
                    email=user.email,
                    business_name=business_name,
                    address=fake.address(),
                    contact_number=fake.phone_number(),
                    client_type=plan.client_type,
                    plan=plan,
                    assigned_station=station,
                )
                CustomPlanDetails.objects.create(
                    client=client,
                    liters_per_month=Decimal(random.choice([500, 1000, 2000])),
                    bonus_liters=Decimal(random.choice([0, 50, 100])),
                    gallon_quantity=random.randint(5, 20),
                    gallon_price=Decimal('100.00'),
                    gallon_payment_type=random.choice(['Monthly', 'One-Time']),
                    dispenser_quantity=random.randint(1, 3),
                    dispenser_price=Decimal('250.00'),
                    dispenser_payment_type=random.choice(['Monthly', 'One-Time']),
                )

                for _ in range(options['deliveries']):
                    Delivery.objects.create(
                        client=client,
                        date=random_datetime(start, end),
                        volume_containers=random.randint(5, 40),
                        status=Delivery.STATUS_DELIVERED,
                    )

                visit = SanitationVisit.objects.create(
                    client=client,
                    scheduled_date=random_datetime(start, end),
                    status=SanitationVisit.STATUS_COMPLETED,
                    assigned_to=fake.name(),
                )
                DispenserReport.objects.create(
                    visit=visit,
                    dispenser_id=fake.bothify(text='DSP-####'),
                    dispenser_name='Main Dispenser',
                    checklist=[
                        {'item': item, 'checked': random.random() > 0.2, 'remarks': ''}
                        for item in CHECKLIST_ITEMS
                    ],
                )
                self.stdout.write(self.style.SUCCESS(f'Created client: {client}'))

        self.stdout.write(self.style.SUCCESS(
            f"Successfully created {options['clients']} clients with {options['deliveries']} deliveries each."
        ))
