"""
Crypto Module - Black Box Interface

Purpose: Encrypt the session identifier carried in the client cookie
Interface: encrypt(), decrypt(), SecretCipher
Hidden: Cipher choice, key derivation, token format

Can be replaced with any symmetric scheme that signals decryption
failures distinctly (DecryptionFailure).
"""

from .cipher import Cipher, SecretCipher, decrypt, derive_key, encrypt

__all__ = ["Cipher", "SecretCipher", "encrypt", "decrypt", "derive_key"]
