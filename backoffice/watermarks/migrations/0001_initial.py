import uuid

import django.core.validators
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Watermark',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('type', models.CharField(choices=[('image', 'Image'), ('text', 'Text')], default='image', max_length=10)),
                ('image_url', models.URLField(blank=True, max_length=500, null=True)),
                ('text', models.TextField(blank=True, null=True)),
                ('text_color', models.CharField(default='#FFFFFF', max_length=32)),
                ('position', models.CharField(default='bottom-right', max_length=32)),
                ('opacity', models.FloatField(default=0.8, validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)])),
                ('scale', models.FloatField(default=0.15, validators=[django.core.validators.MinValueValidator(0.0), django.core.validators.MaxValueValidator(1.0)])),
                ('rotation', models.FloatField(default=0.0)),
                ('blend_mode', models.CharField(default='Normal', max_length=32)),
                ('is_active', models.BooleanField(db_index=True, default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'watermarks_watermark',
                'ordering': ['-created_at'],
            },
        ),
    ]
