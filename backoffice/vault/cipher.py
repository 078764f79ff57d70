"""Reversible field encryption for stored credentials."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import threading
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from core.logging_utils import get_security_logger
from vault.exceptions import CryptoError, InvalidCiphertext

logger = get_security_logger()

_VERSION_PREFIX = 'v1:'
_NONCE_SIZE = 12
_KEY_SIZE = 32


def _normalize_key(key: Union[str, bytes]) -> bytes:
    """Accept raw 32 bytes or their base64 encoding."""
    if key is None:
        raise ImproperlyConfigured('Field encryption key is required')
    if isinstance(key, str):
        try:
            key_bytes = base64.b64decode(key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ImproperlyConfigured('Field encryption key must be base64 encoded') from exc
    else:
        key_bytes = bytes(key)
    if len(key_bytes) != _KEY_SIZE:
        raise ImproperlyConfigured('Field encryption key must be 256 bits long')
    return key_bytes


class FieldCipher:
    """
    AES-256-GCM cipher for single string values.

    Every call uses a fresh nonce, so encrypting the same value twice yields
    different ciphertexts; ``decrypt(encrypt(x)) == x`` always holds.
    Ciphertexts are ``v1:`` followed by urlsafe base64 of nonce + ciphertext.
    """

    def __init__(self, key: Union[str, bytes]):
        self._aesgcm = AESGCM(_normalize_key(key))

    def encrypt(self, plaintext: str) -> str:
        if not isinstance(plaintext, str):
            raise CryptoError('Only text values can be encrypted')
        nonce = os.urandom(_NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode('utf-8'), None)
        payload = base64.urlsafe_b64encode(nonce + ciphertext).decode('ascii')
        return f"{_VERSION_PREFIX}{payload}"

    def decrypt(self, ciphertext: str) -> str:
        if not isinstance(ciphertext, str) or not ciphertext.startswith(_VERSION_PREFIX):
            raise InvalidCiphertext()
        try:
            decoded = base64.urlsafe_b64decode(ciphertext[len(_VERSION_PREFIX):])
        except (binascii.Error, ValueError) as exc:
            raise InvalidCiphertext() from exc
        if len(decoded) <= _NONCE_SIZE:
            raise InvalidCiphertext()

        nonce, body = decoded[:_NONCE_SIZE], decoded[_NONCE_SIZE:]
        try:
            plaintext = self._aesgcm.decrypt(nonce, body, None)
        except InvalidTag as exc:
            logger.error("Field decryption failed authentication", extra_data={"ciphertext_length": len(body)})
            raise InvalidCiphertext() from exc
        return plaintext.decode('utf-8')


def is_encrypted(value: Optional[str]) -> bool:
    return bool(value) and value.startswith(_VERSION_PREFIX)


def generate_field_key() -> str:
    """Return a new random key, base64 encoded, suitable for VAULT_FIELD_KEY."""
    return base64.b64encode(os.urandom(_KEY_SIZE)).decode('ascii')


_cipher_instance: Optional[FieldCipher] = None
_cipher_lock = threading.Lock()


def _build_cipher() -> FieldCipher:
    configured_key = getattr(settings, 'VAULT_FIELD_KEY', None)
    if configured_key:
        return FieldCipher(configured_key)

    secret = getattr(settings, 'SECRET_KEY', None)
    if not secret:
        raise ImproperlyConfigured('VAULT_FIELD_KEY or SECRET_KEY must be configured')
    logger.warning(
        "No VAULT_FIELD_KEY provided; deriving field encryption key from SECRET_KEY. "
        "Do NOT use this mode in production."
    )
    return FieldCipher(hashlib.sha256(secret.encode('utf-8')).digest())


def get_field_cipher() -> FieldCipher:
    """Return the process-wide cipher built from settings."""

    global _cipher_instance
    if _cipher_instance is not None:
        return _cipher_instance

    with _cipher_lock:
        if _cipher_instance is None:
            _cipher_instance = _build_cipher()
    return _cipher_instance


def reset_field_cipher() -> None:
    """Drop the cached cipher so the next call re-reads settings."""

    global _cipher_instance
    with _cipher_lock:
        _cipher_instance = None
