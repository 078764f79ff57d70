"""
Credential services for the vault.
Encrypts secrets before they reach the database and decides who may read them back.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction

from accounts.models import Agent
from core.exceptions import BadRequest, Forbidden
from core.logging_utils import get_vault_logger
from core.shortcuts import get_object_or_not_found, parse_uuid
from vault.cipher import FieldCipher, get_field_cipher
from vault.models import AgentPassword, PasswordEntry

logger = get_vault_logger()


class _Unset:
    """Marker for a patch field the caller did not send."""

    def __bool__(self):
        return False

    def __repr__(self):
        return 'UNSET'


UNSET: Any = _Unset()


@dataclass(frozen=True)
class PasswordEntryPatch:
    """Partial update of a PasswordEntry. Fields left as UNSET are not touched."""

    title: Any = UNSET
    username: Any = UNSET
    password: Any = UNSET
    note: Any = UNSET
    access_ids: Any = UNSET

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PasswordEntryPatch':
        return cls(**{field.name: data[field.name] for field in fields(cls) if field.name in data})

    def changes(self) -> Dict[str, Any]:
        return {
            field.name: getattr(self, field.name)
            for field in fields(self)
            if getattr(self, field.name) is not UNSET
        }


def normalize_access_ids(access_ids: Optional[Iterable[Any]]) -> List[str]:
    """De-duplicate actor ids as strings, keeping first-seen order."""
    normalized: List[str] = []
    for actor_id in access_ids or ():
        value = str(actor_id).strip()
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def can_access(actor_id: Any, entry: PasswordEntry) -> bool:
    """True when the actor created the entry or is on its access list."""
    actor = str(actor_id)
    return actor == str(entry.created_by) or actor in {str(item) for item in entry.access_ids or ()}


class CredentialStore:
    """Password entries with per-record access control."""

    NOT_FOUND_MESSAGE = 'Password entry not found'

    def __init__(self, cipher: FieldCipher):
        self.cipher = cipher

    @transaction.atomic
    def create(self, title: str, username: str, password: str, note: str = '',
               access_ids: Optional[Iterable[Any]] = None, creator_id: Any = None) -> Dict[str, Any]:
        """
        Encrypt and persist a new entry.

        Args:
            title: Public label shown to everyone who can list entries
            username: Plaintext username, stored encrypted
            password: Plaintext password, stored encrypted
            note: Free-text note, stored as is
            access_ids: Actor ids granted access besides the creator
            creator_id: Id of the creating actor

        Returns:
            The decrypted view of the new entry
        """
        if creator_id in (None, ''):
            raise BadRequest('Creator id is required')

        entry = PasswordEntry.objects.create(
            title=title,
            username=self.cipher.encrypt(username),
            password=self.cipher.encrypt(password),
            note=note or '',
            created_by=str(creator_id),
            access_ids=normalize_access_ids(access_ids),
        )
        logger.encryption_event(f"password entry {entry.id} created", success=True)
        return self._detail(entry, username=username, password=password)

    def list_for_actor(self, actor_id: Any) -> List[Dict[str, Any]]:
        """Every entry's public fields plus whether ``actor_id`` may open it. Never decrypts."""
        return [
            {
                'id': str(entry.id),
                'title': entry.title,
                'note': entry.note,
                'created_at': entry.created_at,
                'has_access': can_access(actor_id, entry),
            }
            for entry in PasswordEntry.objects.order_by('-created_at').only(
                'id', 'title', 'note', 'created_at', 'created_by', 'access_ids'
            )
        ]

    def get_for_actor(self, entry_id: Any, actor_id: Any) -> Dict[str, Any]:
        entry = self._authorized_entry(entry_id, actor_id, 'You do not have access to this password')
        return self._detail(entry)

    @transaction.atomic
    def update_for_actor(self, entry_id: Any, actor_id: Any, patch: PasswordEntryPatch) -> Dict[str, Any]:
        """
        Apply a partial update. Supplied username/password values are re-encrypted;
        fields missing from the patch keep their stored value, ciphertext included.
        """
        entry = self._authorized_entry(
            entry_id, actor_id, 'You do not have permission to edit this password', for_update=True
        )

        changed: List[str] = []
        for name, value in patch.changes().items():
            if name == 'note':
                value = value or ''
            elif name == 'access_ids':
                value = normalize_access_ids(value)
            elif value is None or value == '':
                raise BadRequest(f'"{name}" cannot be empty')
            elif name in ('username', 'password'):
                value = self.cipher.encrypt(value)
            setattr(entry, name, value)
            changed.append(name)

        if changed:
            entry.save(update_fields=changed + ['updated_at'])
            logger.info(f"Password entry {entry.id} updated", extra_data={
                "actor_id": str(actor_id), "fields": ",".join(changed),
            })
        return self._detail(entry)

    def delete_for_actor(self, entry_id: Any, actor_id: Any) -> None:
        entry = self._authorized_entry(entry_id, actor_id, 'You do not have permission to delete this entry')
        entry.delete()
        logger.info(f"Password entry {entry_id} deleted", extra_data={"actor_id": str(actor_id)})

    def _authorized_entry(self, entry_id: Any, actor_id: Any, denied_message: str,
                          for_update: bool = False) -> PasswordEntry:
        # Existence is checked before authorization: absent -> 404, present but denied -> 403
        queryset = PasswordEntry.objects.select_for_update() if for_update else PasswordEntry.objects.all()
        entry = get_object_or_not_found(queryset, entry_id, self.NOT_FOUND_MESSAGE)
        if not can_access(actor_id, entry):
            logger.security_event("Password entry access denied", extra_data={
                "entry_id": str(entry.id), "actor_id": str(actor_id),
            })
            raise Forbidden(denied_message)
        return entry

    def _detail(self, entry: PasswordEntry, *, username: Optional[str] = None,
                password: Optional[str] = None) -> Dict[str, Any]:
        return {
            'id': str(entry.id),
            'title': entry.title,
            'username': username if username is not None else self.cipher.decrypt(entry.username),
            'password': password if password is not None else self.cipher.decrypt(entry.password),
            'note': entry.note,
            'created_by': entry.created_by,
            'access_ids': list(entry.access_ids or []),
            'created_at': entry.created_at,
            'updated_at': entry.updated_at,
        }


class AgentPasswordService:
    """Agent portal credentials. No per-record access list; the password is always encrypted at rest."""

    NOT_FOUND_MESSAGE = 'Agent password entry not found'

    def __init__(self, cipher: FieldCipher):
        self.cipher = cipher

    def create(self, agent_id: Any, email: str, password: str) -> Dict[str, Any]:
        agent = self._get_agent(agent_id)
        record = AgentPassword.objects.create(
            agent=agent,
            email=email,
            password=self.cipher.encrypt(password),
        )
        logger.encryption_event(f"agent password {record.id} created", success=True)
        return self._serialize(record, password=password)

    def find_all(self) -> List[Dict[str, Any]]:
        records = AgentPassword.objects.select_related('agent').order_by('-created_at')
        return [self._serialize(record) for record in records]

    def find_one(self, record_id: Any) -> Dict[str, Any]:
        record = get_object_or_not_found(
            AgentPassword.objects.select_related('agent'), record_id, self.NOT_FOUND_MESSAGE
        )
        return self._serialize(record)

    @transaction.atomic
    def update(self, record_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        record = get_object_or_not_found(
            AgentPassword.objects.select_related('agent').select_for_update(), record_id, self.NOT_FOUND_MESSAGE
        )

        changed: List[str] = []
        if 'agent_id' in changes:
            record.agent = self._get_agent(changes['agent_id'])
            changed.append('agent')
        if 'email' in changes:
            record.email = changes['email']
            changed.append('email')
        if 'password' in changes:
            record.password = self.cipher.encrypt(changes['password'])
            changed.append('password')

        if changed:
            record.save(update_fields=changed + ['updated_at'])
        return self._serialize(record)

    def remove(self, record_id: Any) -> None:
        record = get_object_or_not_found(AgentPassword, record_id, self.NOT_FOUND_MESSAGE)
        record.delete()

    @staticmethod
    def _get_agent(agent_id: Any) -> Agent:
        parsed = parse_uuid(agent_id)
        agent = Agent.objects.filter(pk=parsed).first() if parsed else None
        if agent is None:
            raise BadRequest('Agent not found', errors={'agent_id': ['Unknown agent']})
        return agent

    def _serialize(self, record: AgentPassword, *, password: Optional[str] = None) -> Dict[str, Any]:
        return {
            'id': str(record.id),
            'agent_id': str(record.agent_id),
            'agent': record.agent.to_dict(),
            'email': record.email,
            'password': password if password is not None else self.cipher.decrypt(record.password),
            'created_at': record.created_at,
            'updated_at': record.updated_at,
        }


def get_credential_store() -> CredentialStore:
    return CredentialStore(get_field_cipher())


def get_agent_password_service() -> AgentPasswordService:
    return AgentPasswordService(get_field_cipher())
