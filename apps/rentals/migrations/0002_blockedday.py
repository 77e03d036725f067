import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('items', '0002_item_currency_default'),
        ('rentals', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BlockedDay',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('day', models.DateField()),
                ('reason', models.CharField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('item', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='blocked_days', to='items.item')),
            ],
            options={
                'verbose_name': 'Blocked day',
                'verbose_name_plural': 'Blocked days',
                'ordering': ['day'],
                'constraints': [models.UniqueConstraint(fields=('item', 'day'), name='blocked_day_unique_per_item')],
            },
        ),
    ]
