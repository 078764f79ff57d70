import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Noc',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('property_type', models.CharField(blank=True, max_length=50)),
                ('building_project_name', models.CharField(blank=True, max_length=255)),
                ('community', models.CharField(blank=True, max_length=500)),
                ('street_name', models.CharField(blank=True, max_length=255)),
                ('build_up_area', models.CharField(blank=True, max_length=50)),
                ('plot_area', models.CharField(blank=True, max_length=50)),
                ('bedrooms', models.CharField(blank=True, max_length=20)),
                ('bathrooms', models.CharField(blank=True, max_length=20)),
                ('rental_amount', models.CharField(blank=True, max_length=50)),
                ('sale_amount', models.CharField(blank=True, max_length=50)),
                ('parking', models.CharField(blank=True, max_length=50)),
                ('agreement_type', models.CharField(blank=True, choices=[('exclusive', 'Exclusive'), ('non-exclusive', 'Non-exclusive')], max_length=20)),
                ('period_months', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('agreement_date', models.DateField(blank=True, null=True)),
                ('client_phone', models.CharField(blank=True, max_length=32, null=True, unique=True)),
                ('location', models.CharField(blank=True, max_length=500)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('pdf_url', models.URLField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'NOC',
                'verbose_name_plural': 'NOCs',
                'db_table': 'noc_noc',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='NocOwner',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveSmallIntegerField(default=0)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('emirates_id', models.CharField(blank=True, max_length=64)),
                ('issue_date', models.DateField(blank=True, null=True)),
                ('expiry_date', models.DateField(blank=True, null=True)),
                ('country_code', models.CharField(blank=True, max_length=8)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('signature_url', models.URLField(blank=True, max_length=500, null=True)),
                ('signature_date', models.DateField(blank=True, null=True)),
                ('noc', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='owners', to='noc.noc')),
            ],
            options={
                'db_table': 'noc_nocowner',
                'ordering': ['position'],
            },
        ),
    ]
