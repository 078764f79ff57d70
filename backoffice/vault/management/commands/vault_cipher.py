"""Management command for inspecting and rotating the vault field encryption key."""

from __future__ import annotations

from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from vault.cipher import FieldCipher, generate_field_key, get_field_cipher
from vault.exceptions import CryptoError
from vault.models import AgentPassword, PasswordEntry


class Command(BaseCommand):
    help = 'Inspect the vault field cipher or re-encrypt stored credentials after a key change.'

    def add_arguments(self, parser):
        parser.add_argument('--status', action='store_true', help='Run a round-trip check with the active key')
        parser.add_argument('--generate-key', action='store_true', help='Print a new random key for VAULT_FIELD_KEY')
        parser.add_argument('--reencrypt', action='store_true',
                            help='Re-encrypt every stored credential with the active key')
        parser.add_argument('--from-key', type=str, help='Base64 key the credentials are currently encrypted with')

    def handle(self, *args, **options):
        if options['generate_key']:
            self.stdout.write(generate_field_key())
        elif options['status']:
            self.show_status()
        elif options['reencrypt']:
            if not options['from_key']:
                raise CommandError('--reencrypt requires --from-key')
            self.reencrypt(options['from_key'])
        else:
            self.stdout.write(self.style.WARNING('No action specified. Use --help to see available options.'))

    def show_status(self):
        cipher = get_field_cipher()
        self.stdout.write(self.style.SUCCESS('=== Vault Cipher Status ==='))
        self.stdout.write(f'Password entries: {PasswordEntry.objects.count()}')
        self.stdout.write(f'Agent passwords: {AgentPassword.objects.count()}')

        plaintext = 'health-check'
        if cipher.decrypt(cipher.encrypt(plaintext)) == plaintext:
            self.stdout.write(self.style.SUCCESS('Cipher health check succeeded'))
        else:
            self.stdout.write(self.style.ERROR('Cipher health check failed - plaintext mismatch'))

    def reencrypt(self, from_key: str):
        try:
            old_cipher = FieldCipher(from_key)
        except ImproperlyConfigured as exc:
            raise CommandError(f'Invalid --from-key: {exc}') from exc
        new_cipher = get_field_cipher()

        try:
            with transaction.atomic():
                entries = 0
                for entry in PasswordEntry.objects.select_for_update():
                    entry.username = new_cipher.encrypt(old_cipher.decrypt(entry.username))
                    entry.password = new_cipher.encrypt(old_cipher.decrypt(entry.password))
                    entry.save(update_fields=['username', 'password'])
                    entries += 1

                agents = 0
                for record in AgentPassword.objects.select_for_update():
                    record.password = new_cipher.encrypt(old_cipher.decrypt(record.password))
                    record.save(update_fields=['password'])
                    agents += 1
        except CryptoError as exc:
            raise CommandError(f'Re-encryption aborted, nothing was changed: {exc}') from exc

        self.stdout.write(self.style.SUCCESS(
            f'Re-encrypted {entries} password entries and {agents} agent passwords'
        ))
