from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('operations', '0002_seed_plans'),
    ]

    operations = [
        migrations.AddField(
            model_name='customplandetails',
            name='rollover_period',
            field=models.CharField(blank=True, max_length=80),
        ),
        migrations.AddField(
            model_name='customplandetails',
            name='opening_rollover',
            field=models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12),
        ),
        migrations.AddField(
            model_name='invoice',
            name='is_first_invoice',
            field=models.BooleanField(default=False),
        ),
    ]
