import uuid

from django.db import models


class PasswordEntry(models.Model):
    """Shared credential. ``username`` and ``password`` hold ciphertext only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    username = models.TextField()
    password = models.TextField()
    note = models.TextField(blank=True, default='')

    # Actor ids; the creator always has access
    created_by = models.CharField(max_length=64, db_index=True)
    access_ids = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'vault_passwordentry'
        permissions = [
            ('use_password_manager', 'Can use the shared password manager'),
        ]

    def __str__(self):
        return f"PasswordEntry {self.id} ({self.title})"


class AgentPassword(models.Model):
    """Portal login of a real-estate agent. ``password`` holds ciphertext only."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    agent = models.ForeignKey('accounts.Agent', on_delete=models.CASCADE, related_name='passwords')
    email = models.CharField(max_length=255)
    password = models.TextField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        db_table = 'vault_agentpassword'

    def __str__(self):
        return f"AgentPassword {self.id} for {self.agent_id}"
