import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PasswordEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('username', models.TextField()),
                ('password', models.TextField()),
                ('note', models.TextField(blank=True, default='')),
                ('created_by', models.CharField(db_index=True, max_length=64)),
                ('access_ids', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'vault_passwordentry',
                'ordering': ['-created_at'],
                'permissions': [('use_password_manager', 'Can use the shared password manager')],
            },
        ),
        migrations.CreateModel(
            name='AgentPassword',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.CharField(max_length=255)),
                ('password', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('agent', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='passwords', to='accounts.agent')),
            ],
            options={
                'db_table': 'vault_agentpassword',
                'ordering': ['-created_at'],
            },
        ),
    ]
