# Generated manually: at most one open return request per order
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('marketplace', '0001_initial'),
    ]

    operations = [
        migrations.AddConstraint(
            model_name='returnrequest',
            constraint=models.UniqueConstraint(
                fields=['order'],
                condition=~models.Q(status__in=['rejected', 'cancelled']),
                name='return_one_open_per_order',
            ),
        ),
    ]
