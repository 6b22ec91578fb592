"""Security helpers: key provisioning and the AEAD cipher for CareVault.

This package provides:
- EncryptionKey parsing/validation and startup key loading
- optional OS keyring storage for the process key
- AES-256-GCM encryption with per-call random 16-byte nonces
"""

from .keys import EncryptionKey, generate_key, load_encryption_key, load_key_from_env
from .cipher import CipherBox, EncryptedPayload, encrypt, decrypt, generate_nonce

__all__ = [
    "EncryptionKey",
    "generate_key",
    "load_encryption_key",
    "load_key_from_env",
    "CipherBox",
    "EncryptedPayload",
    "encrypt",
    "decrypt",
    "generate_nonce",
]
