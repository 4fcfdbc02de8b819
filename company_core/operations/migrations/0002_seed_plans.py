from decimal import Decimal

from django.db import migrations


PLAN_CATALOG = (
    # (client_type, name, price, is_consumption_based, description)
    ('Family', 'Family Plan', Decimal('0.00'), False, 'Admin-configured'),
    ('SME', 'SME Plan', Decimal('0.00'), False, 'Admin-configured'),
    ('Commercial', 'Commercial Plan', Decimal('0.00'), False, 'Admin-configured'),
    ('Corporate', 'Corporate Plan', Decimal('0.00'), False, 'Admin-configured'),
    ('Enterprise', 'Customized Plan', Decimal('0.00'), False, 'Tailored for predictable, prepaid enterprise solutions.'),
    ('Enterprise', 'Flow Plan (P2.5/L)', Decimal('2.50'), True, 'Pay based on consumption at P2.5 per liter.'),
    ('Enterprise', 'Flow Plan (P3/L)', Decimal('3.00'), True, 'Pay based on consumption at P3 per liter.'),
)


def seed_plans(apps, schema_editor):
    Plan = apps.get_model('operations', 'Plan')
    for client_type, name, price, consumption_based, description in PLAN_CATALOG:
        Plan.objects.get_or_create(
            client_type=client_type,
            name=name,
            defaults={
                'price': price,
                'is_consumption_based': consumption_based,
                'description': description,
            },
        )


def remove_plans(apps, schema_editor):
    Plan = apps.get_model('operations', 'Plan')
    for client_type, name, *_ in PLAN_CATALOG:
        Plan.objects.filter(client_type=client_type, name=name, clients__isnull=True).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('operations', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(seed_plans, remove_plans),
    ]
