import base64
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from accounts.models import Agent
from activity.models import ActivityLog
from core.exceptions import BadRequest, Forbidden, NotFound
from vault import cipher as cipher_module
from vault.cipher import FieldCipher, generate_field_key, get_field_cipher, is_encrypted, reset_field_cipher
from vault.exceptions import CryptoError, InvalidCiphertext
from vault.models import AgentPassword, PasswordEntry
from vault.services import (
    UNSET,
    AgentPasswordService,
    CredentialStore,
    PasswordEntryPatch,
    can_access,
    normalize_access_ids,
)

User = get_user_model()

TEST_FIELD_KEY = base64.b64encode(bytes(range(32))).decode('ascii')


class FieldCipherTests(SimpleTestCase):
    def setUp(self):
        self.cipher = FieldCipher(generate_field_key())

    def test_encrypt_and_decrypt_round_trip(self):
        ciphertext = self.cipher.encrypt('sensitive-value')
        self.assertTrue(is_encrypted(ciphertext))
        self.assertNotIn('sensitive-value', ciphertext)
        self.assertEqual(self.cipher.decrypt(ciphertext), 'sensitive-value')

    def test_encryption_is_randomized(self):
        self.assertNotEqual(self.cipher.encrypt('same'), self.cipher.encrypt('same'))

    def test_empty_and_unicode_values_survive(self):
        for value in ('', 'pässwörd ✓'):
            self.assertEqual(self.cipher.decrypt(self.cipher.encrypt(value)), value)

    def test_accepts_raw_key_bytes(self):
        raw = FieldCipher(bytes(range(32)))
        encoded = FieldCipher(TEST_FIELD_KEY)
        self.assertEqual(encoded.decrypt(raw.encrypt('shared')), 'shared')

    def test_rejects_short_or_malformed_keys(self):
        with self.assertRaises(ImproperlyConfigured):
            FieldCipher(base64.b64encode(b'short').decode('ascii'))
        with self.assertRaises(ImproperlyConfigured):
            FieldCipher('not base64!!')

    def test_decrypt_rejects_malformed_ciphertext(self):
        for value in ('plaintext', 'v1:!!!', 'v1:' + base64.urlsafe_b64encode(b'abc').decode('ascii'), None):
            with self.assertRaises(InvalidCiphertext):
                self.cipher.decrypt(value)

    def test_decrypt_with_other_key_fails(self):
        ciphertext = FieldCipher(generate_field_key()).encrypt('secret')
        with self.assertLogs('django.security', level='ERROR'):
            with self.assertRaises(CryptoError):
                self.cipher.decrypt(ciphertext)

    def test_encrypt_rejects_non_text(self):
        with self.assertRaises(CryptoError):
            self.cipher.encrypt(1234)


class FieldCipherSettingsTests(SimpleTestCase):
    def tearDown(self):
        reset_field_cipher()

    @override_settings(VAULT_FIELD_KEY=TEST_FIELD_KEY)
    def test_get_field_cipher_uses_configured_key(self):
        reset_field_cipher()
        ciphertext = get_field_cipher().encrypt('value')
        self.assertEqual(FieldCipher(TEST_FIELD_KEY).decrypt(ciphertext), 'value')
        self.assertIs(get_field_cipher(), get_field_cipher())

    @override_settings(VAULT_FIELD_KEY=None, SECRET_KEY='test-secret')
    def test_missing_key_falls_back_with_warning(self):
        reset_field_cipher()
        with patch.object(cipher_module, 'logger') as mock_logger:
            cipher = get_field_cipher()
        mock_logger.warning.assert_called_once()
        self.assertEqual(cipher.decrypt(cipher.encrypt('x')), 'x')


class AccessRuleTests(SimpleTestCase):
    def test_can_access_for_creator_and_listed_actors(self):
        entry = PasswordEntry(created_by='u1', access_ids=['u2'])
        self.assertTrue(can_access('u1', entry))
        self.assertTrue(can_access('u2', entry))
        self.assertFalse(can_access('u3', entry))

    def test_normalize_access_ids_keeps_first_seen_order(self):
        self.assertEqual(normalize_access_ids(['b', 'a', 'b', '', 3]), ['b', 'a', '3'])
        self.assertEqual(normalize_access_ids(None), [])

    def test_patch_distinguishes_omitted_from_null(self):
        patch_ = PasswordEntryPatch.from_dict({'note': None, 'unknown': 'x'})
        self.assertIs(patch_.title, UNSET)
        self.assertEqual(patch_.changes(), {'note': None})


class CredentialStoreTests(TestCase):
    def setUp(self):
        self.cipher = FieldCipher(TEST_FIELD_KEY)
        self.store = CredentialStore(self.cipher)
        self.entry = self.store.create(
            title='Router', username='admin', password='secret1', access_ids=['u2'], creator_id='u1'
        )

    def test_create_stores_only_ciphertext(self):
        stored = PasswordEntry.objects.get(pk=self.entry['id'])

        self.assertNotEqual(stored.username, 'admin')
        self.assertNotEqual(stored.password, 'secret1')
        self.assertEqual(self.cipher.decrypt(stored.username), 'admin')
        self.assertEqual(self.cipher.decrypt(stored.password), 'secret1')
        self.assertEqual(stored.created_by, 'u1')
        self.assertEqual(self.entry['username'], 'admin')

    def test_create_requires_creator(self):
        with self.assertRaises(BadRequest):
            self.store.create(title='x', username='a', password='b', creator_id=None)

    def test_list_hides_secrets_and_flags_access(self):
        listing = self.store.list_for_actor('u3')

        self.assertEqual(len(listing), 1)
        self.assertEqual(listing[0]['title'], 'Router')
        self.assertFalse(listing[0]['has_access'])
        self.assertNotIn('username', listing[0])
        self.assertNotIn('password', listing[0])
        self.assertTrue(self.store.list_for_actor('u2')[0]['has_access'])

    def test_list_is_newest_first(self):
        PasswordEntry.objects.filter(pk=self.entry['id']).update(created_at=timezone.now() - timedelta(minutes=5))
        newer = self.store.create(title='Wifi', username='w', password='p', creator_id='u1')
        self.assertEqual([item['id'] for item in self.store.list_for_actor('u1')], [newer['id'], self.entry['id']])

    def test_get_for_actor_decrypts_for_authorized(self):
        detail = self.store.get_for_actor(self.entry['id'], 'u1')
        self.assertEqual((detail['username'], detail['password']), ('admin', 'secret1'))
        self.assertEqual(self.store.get_for_actor(self.entry['id'], 'u2')['password'], 'secret1')

    def test_get_for_actor_forbidden_for_others(self):
        with patch('vault.services.logger') as mock_logger:
            with self.assertRaises(Forbidden):
                self.store.get_for_actor(self.entry['id'], 'u3')
        mock_logger.security_event.assert_called_once()

    def test_missing_or_malformed_id_is_not_found_before_authorization(self):
        for entry_id in ('12345678-1234-5678-1234-567812345678', 'nope'):
            with self.assertRaises(NotFound):
                self.store.get_for_actor(entry_id, 'u3')
            with self.assertRaises(NotFound):
                self.store.update_for_actor(entry_id, 'u3', PasswordEntryPatch(note='x'))
            with self.assertRaises(NotFound):
                self.store.delete_for_actor(entry_id, 'u3')

    def test_update_note_only_keeps_ciphertext(self):
        before = PasswordEntry.objects.get(pk=self.entry['id'])

        self.store.update_for_actor(self.entry['id'], 'u2', PasswordEntryPatch(note='rotated monthly'))

        after = PasswordEntry.objects.get(pk=self.entry['id'])
        self.assertEqual(after.note, 'rotated monthly')
        self.assertEqual(after.username, before.username)
        self.assertEqual(after.password, before.password)

    def test_update_reencrypts_changed_password(self):
        updated = self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(password='secret2'))

        stored = PasswordEntry.objects.get(pk=self.entry['id'])
        self.assertEqual(updated['password'], 'secret2')
        self.assertEqual(updated['username'], 'admin')
        self.assertEqual(self.cipher.decrypt(stored.password), 'secret2')

    def test_update_reencrypts_changed_username(self):
        before = PasswordEntry.objects.get(pk=self.entry['id'])

        updated = self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(username='root'))

        stored = PasswordEntry.objects.get(pk=self.entry['id'])
        self.assertEqual(updated['username'], 'root')
        self.assertEqual(updated['password'], 'secret1')
        self.assertNotEqual(stored.username, before.username)
        self.assertEqual(self.cipher.decrypt(stored.username), 'root')
        self.assertEqual(stored.password, before.password)

    def test_update_null_note_becomes_empty(self):
        self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(note='x'))
        updated = self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(note=None))
        self.assertEqual(updated['note'], '')

    def test_update_rejects_empty_secret(self):
        with self.assertRaises(BadRequest):
            self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(password=''))

    def test_update_access_list_changes_authorization(self):
        self.store.update_for_actor(self.entry['id'], 'u1', PasswordEntryPatch(access_ids=['u3', 'u3']))

        self.assertEqual(self.store.get_for_actor(self.entry['id'], 'u3')['access_ids'], ['u3'])
        with self.assertRaises(Forbidden):
            self.store.get_for_actor(self.entry['id'], 'u2')

    def test_update_forbidden_for_others(self):
        with self.assertRaises(Forbidden):
            self.store.update_for_actor(self.entry['id'], 'u3', PasswordEntryPatch(title='Hijacked'))
        self.assertEqual(PasswordEntry.objects.get(pk=self.entry['id']).title, 'Router')

    def test_delete_by_authorized_actor(self):
        with self.assertRaises(Forbidden):
            self.store.delete_for_actor(self.entry['id'], 'u3')

        self.store.delete_for_actor(self.entry['id'], 'u2')
        self.assertFalse(PasswordEntry.objects.filter(pk=self.entry['id']).exists())


class AgentPasswordServiceTests(TestCase):
    def setUp(self):
        self.cipher = FieldCipher(TEST_FIELD_KEY)
        self.service = AgentPasswordService(self.cipher)
        self.agent = Agent.objects.create(name='Omar')

    def test_create_encrypts_password(self):
        record = self.service.create(self.agent.pk, 'omar@portal.example', 'portal-pass')

        stored = AgentPassword.objects.get(pk=record['id'])
        self.assertNotEqual(stored.password, 'portal-pass')
        self.assertEqual(self.cipher.decrypt(stored.password), 'portal-pass')
        self.assertEqual(record['agent']['name'], 'Omar')

    def test_create_with_unknown_agent_is_bad_request(self):
        with self.assertRaises(BadRequest):
            self.service.create('12345678-1234-5678-1234-567812345678', 'x@example.com', 'p')

    def test_find_all_and_find_one_decrypt(self):
        record = self.service.create(self.agent.pk, 'omar@portal.example', 'portal-pass')

        self.assertEqual(self.service.find_all()[0]['password'], 'portal-pass')
        self.assertEqual(self.service.find_one(record['id'])['email'], 'omar@portal.example')
        with self.assertRaises(NotFound):
            self.service.find_one('missing')

    def test_update_partial(self):
        record = self.service.create(self.agent.pk, 'omar@portal.example', 'portal-pass')
        other = Agent.objects.create(name='Nadia')

        updated = self.service.update(record['id'], {'password': 'new-pass', 'agent_id': str(other.pk)})

        self.assertEqual(updated['password'], 'new-pass')
        self.assertEqual(updated['email'], 'omar@portal.example')
        self.assertEqual(updated['agent_id'], str(other.pk))

    def test_remove(self):
        record = self.service.create(self.agent.pk, 'omar@portal.example', 'portal-pass')
        self.service.remove(record['id'])
        with self.assertRaises(NotFound):
            self.service.remove(record['id'])


@override_settings(VAULT_FIELD_KEY=TEST_FIELD_KEY)
class PasswordViewTests(TestCase):
    def setUp(self):
        reset_field_cipher()
        permission = Permission.objects.get(codename='use_password_manager', content_type__app_label='vault')
        self.owner = User.objects.create_user(email='owner@example.com', password='x')
        self.colleague = User.objects.create_user(email='colleague@example.com', password='x')
        self.outsider = User.objects.create_user(email='outsider@example.com', password='x')
        for user in (self.owner, self.colleague, self.outsider):
            user.user_permissions.add(permission)
        self.client.force_login(self.owner)

    def tearDown(self):
        reset_field_cipher()

    def _create(self, **overrides):
        payload = {
            'title': 'Router', 'username': 'admin', 'password': 'secret1',
            'note': 'office', 'access_ids': [str(self.colleague.pk)],
        }
        payload.update(overrides)
        return self.client.post('/passwords/', payload, content_type='application/json')

    def test_create_returns_decrypted_entry_and_records_activity(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['password'], 'secret1')
        self.assertEqual(body['created_by'], str(self.owner.pk))
        self.assertEqual(response['Cache-Control'], 'no-store, private')
        activity = ActivityLog.objects.get(action='Created password entry')
        self.assertEqual(activity.user, self.owner)
        self.assertNotIn('secret1', activity.description)

    def test_create_validates_required_fields(self):
        response = self.client.post('/passwords/', {'title': ''}, content_type='application/json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('password', response.json()['errors'])

    def test_list_flags_access_per_actor(self):
        self._create()
        self.client.force_login(self.outsider)

        listing = self.client.get('/passwords/').json()

        self.assertEqual(len(listing), 1)
        self.assertFalse(listing[0]['has_access'])
        self.assertNotIn('password', listing[0])

    def test_detail_forbidden_and_not_found(self):
        entry_id = self._create().json()['id']
        self.client.force_login(self.outsider)

        self.assertEqual(self.client.get(f'/passwords/{entry_id}/').status_code, 403)
        self.assertEqual(self.client.get('/passwords/not-an-id/').status_code, 404)

    def test_patch_updates_only_sent_fields(self):
        entry_id = self._create().json()['id']
        self.client.force_login(self.colleague)

        response = self.client.patch(f'/passwords/{entry_id}/', {'note': 'changed'}, content_type='application/json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['note'], 'changed')
        self.assertEqual(response.json()['password'], 'secret1')

    def test_delete_returns_no_content(self):
        entry_id = self._create().json()['id']

        response = self.client.delete(f'/passwords/{entry_id}/')

        self.assertEqual(response.status_code, 204)
        self.assertFalse(PasswordEntry.objects.exists())

    def test_permission_is_required(self):
        stranger = User.objects.create_user(email='stranger@example.com', password='x')
        self.client.force_login(stranger)

        self.assertEqual(self.client.get('/passwords/').status_code, 403)

    def test_crypto_failure_returns_server_error(self):
        entry_id = self._create().json()['id']
        PasswordEntry.objects.filter(pk=entry_id).update(password='v1:garbage')

        with patch('vault.views.logger') as mock_logger:
            response = self.client.get(f'/passwords/{entry_id}/')

        self.assertEqual(response.status_code, 500)
        mock_logger.critical.assert_called_once()


@override_settings(VAULT_FIELD_KEY=TEST_FIELD_KEY)
class AgentPasswordViewTests(TestCase):
    def setUp(self):
        reset_field_cipher()
        self.user = User.objects.create_user(email='staff@example.com', password='x')
        self.agent = Agent.objects.create(name='Omar')
        self.client.force_login(self.user)

    def tearDown(self):
        reset_field_cipher()

    def test_crud_round_trip(self):
        created = self.client.post('/agent-passwords/', {
            'agent_id': str(self.agent.pk), 'email': 'omar@portal.example', 'password': 'p1',
        }, content_type='application/json')
        self.assertEqual(created.status_code, 201)
        record_id = created.json()['id']

        self.assertEqual(self.client.get('/agent-passwords/').json()[0]['password'], 'p1')

        patched = self.client.patch(f'/agent-passwords/{record_id}/', {'password': 'p2'},
                                    content_type='application/json')
        self.assertEqual(patched.json()['password'], 'p2')

        self.assertEqual(self.client.delete(f'/agent-passwords/{record_id}/').status_code, 204)
        self.assertEqual(self.client.get(f'/agent-passwords/{record_id}/').status_code, 404)

    def test_unknown_agent_is_rejected(self):
        response = self.client.post('/agent-passwords/', {
            'agent_id': 'nope', 'email': 'x@example.com', 'password': 'p',
        }, content_type='application/json')

        self.assertEqual(response.status_code, 400)

    def test_requires_login(self):
        self.client.logout()
        self.assertEqual(self.client.get('/agent-passwords/').status_code, 401)


@override_settings(VAULT_FIELD_KEY=TEST_FIELD_KEY)
class VaultCipherCommandTests(TestCase):
    def setUp(self):
        reset_field_cipher()

    def tearDown(self):
        reset_field_cipher()

    def test_status_reports_health(self):
        out = StringIO()
        call_command('vault_cipher', '--status', stdout=out)
        self.assertIn('Cipher health check succeeded', out.getvalue())

    def test_reencrypt_moves_credentials_to_current_key(self):
        old_key = generate_field_key()
        old_cipher = FieldCipher(old_key)
        entry = CredentialStore(old_cipher).create(title='t', username='u', password='p', creator_id='u1')
        agent = Agent.objects.create(name='Omar')
        record = AgentPasswordService(old_cipher).create(agent.pk, 'e@example.com', 'ap')

        out = StringIO()
        call_command('vault_cipher', '--reencrypt', '--from-key', old_key, stdout=out)

        current = FieldCipher(TEST_FIELD_KEY)
        stored = PasswordEntry.objects.get(pk=entry['id'])
        self.assertEqual(current.decrypt(stored.password), 'p')
        self.assertEqual(current.decrypt(AgentPassword.objects.get(pk=record['id']).password), 'ap')
        self.assertIn('Re-encrypted 1 password entries and 1 agent passwords', out.getvalue())

    def test_reencrypt_with_wrong_key_changes_nothing(self):
        entry = CredentialStore(FieldCipher(TEST_FIELD_KEY)).create(
            title='t', username='u', password='p', creator_id='u1'
        )
        before = PasswordEntry.objects.get(pk=entry['id']).password

        with self.assertRaises(CommandError):
            call_command('vault_cipher', '--reencrypt', '--from-key', generate_field_key(), stdout=StringIO())

        self.assertEqual(PasswordEntry.objects.get(pk=entry['id']).password, before)

    def test_reencrypt_requires_from_key(self):
        with self.assertRaises(CommandError):
            call_command('vault_cipher', '--reencrypt', stdout=StringIO())
