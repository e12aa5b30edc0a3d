import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

import utils.ids


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Route',
            fields=[
                ('id', models.CharField(default=utils.ids.generate_object_id, editable=False, max_length=24, primary_key=True, serialize=False)),
                ('start_station', models.CharField(max_length=100)),
                ('end_station', models.CharField(max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'routes',
                'indexes': [models.Index(fields=['start_station', 'end_station'], name='routes_stations_idx')],
            },
        ),
        migrations.CreateModel(
            name='Train',
            fields=[
                ('id', models.CharField(default=utils.ids.generate_object_id, editable=False, max_length=24, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=255)),
                ('departure_time', models.DateTimeField()),
                ('arrival_time', models.DateTimeField()),
                ('available_seats', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('route', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='trains', to='trains.route')),
            ],
            options={
                'db_table': 'trains',
            },
        ),
        migrations.CreateModel(
            name='TrainDate',
            fields=[
                ('id', models.CharField(default=utils.ids.generate_object_id, editable=False, max_length=24, primary_key=True, serialize=False)),
                ('date', models.DateField()),
                ('available_seats', models.PositiveIntegerField()),
                ('seats_booked', models.PositiveIntegerField(default=0)),
                ('version', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('train', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='available_dates', to='trains.train')),
            ],
            options={
                'db_table': 'train_dates',
                'ordering': ['date'],
                'constraints': [models.UniqueConstraint(fields=('train', 'date'), name='uniq_train_date')],
            },
        ),
    ]
