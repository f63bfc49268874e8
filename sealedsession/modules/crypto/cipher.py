"""Fernet-based encryption of session identifiers."""

import base64
import hashlib
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken

from ...errors import DecryptionFailure


def derive_key(secret: str) -> bytes:
    """Derive a Fernet key from an arbitrary-length secret."""
    if not secret:
        raise ValueError("Encryption secret must not be empty")
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


def encrypt(plaintext: str, secret: str) -> str:
    """Encrypt plaintext into a URL-safe token."""
    return SecretCipher(secret).encrypt(plaintext)


def decrypt(ciphertext: str, secret: str) -> str:
    """
    Decrypt a token produced by encrypt().

    Raises:
        DecryptionFailure: If the token is malformed, tampered or was
            encrypted with another secret
    """
    return SecretCipher(secret).decrypt(ciphertext)


class Cipher(Protocol):
    """Protocol for identifier ciphers."""

    def encrypt(self, plaintext: str) -> str:
        ...

    def decrypt(self, ciphertext: str) -> str:
        ...


class SecretCipher:
    """Cipher bound to one secret."""

    def __init__(self, secret: str):
        self._fernet = Fernet(derive_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise DecryptionFailure("Invalid session token") from e
