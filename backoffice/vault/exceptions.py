"""Custom exceptions for the vault domain."""

from typing import Optional


class CryptoError(Exception):
    """Base exception for field encryption failures."""

    def __init__(self, message: str, *, recoverable: Optional[bool] = None):
        super().__init__(message)
        self.recoverable = recoverable


class InvalidCiphertext(CryptoError):
    """Stored value is not a ciphertext this key can open."""

    def __init__(self, message: str = "Ciphertext is malformed or was encrypted with another key"):
        super().__init__(message, recoverable=False)
