"""Authenticated encryption engine for documents at rest.

Algorithm: AES-256-GCM (via :class:`cryptography.hazmat.primitives.ciphers.aead.AESGCM`)

- 32-byte key supplied by the caller, validated but never generated here
- fresh 16-byte random nonce per encryption, drawn from the OS CSPRNG
- ciphertext has exactly the plaintext's length; the 16-byte tag that
  AESGCM appends is split off and returned as its own field
- optional associated data is authenticated but not encrypted

Decryption verifies the tag before any plaintext is released. A mismatch
raises :class:`AuthenticationFailedError` and nothing else is returned.
"""
from __future__ import annotations

from typing import NamedTuple, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.exceptions import (
    AuthenticationFailedError,
    CorruptCiphertextError,
    InvalidNonceLengthError,
)
from .keys import EncryptionKey, random_bytes, require_key_length

NONCE_SIZE = 16
TAG_SIZE = 16

KeyLike = Union[EncryptionKey, bytes]

_BYTES_TYPES = (bytes, bytearray, memoryview)


class EncryptedPayload(NamedTuple):
    """Output of :func:`encrypt`; unpacks as ``ciphertext, nonce, auth_tag``."""

    ciphertext: bytes
    nonce: bytes
    auth_tag: bytes


def _key_bytes(key: KeyLike) -> bytes:
    if isinstance(key, EncryptionKey):
        return key.material
    return require_key_length(key)


def generate_nonce() -> bytes:
    """Return NONCE_SIZE bytes from the OS CSPRNG."""
    return random_bytes(NONCE_SIZE)


def encrypt(
    plaintext: bytes, key: KeyLike, associated_data: Optional[bytes] = None
) -> EncryptedPayload:
    """Encrypt ``plaintext`` under ``key`` with a fresh nonce."""
    raw_key = _key_bytes(key)
    if not isinstance(plaintext, _BYTES_TYPES):
        raise TypeError(f"plaintext must be bytes, got {type(plaintext).__name__}")

    nonce = generate_nonce()
    sealed = AESGCM(raw_key).encrypt(nonce, bytes(plaintext), associated_data)
    return EncryptedPayload(sealed[:-TAG_SIZE], nonce, sealed[-TAG_SIZE:])


def decrypt(
    ciphertext: bytes,
    nonce: bytes,
    auth_tag: bytes,
    key: KeyLike,
    associated_data: Optional[bytes] = None,
) -> bytes:
    """Verify and decrypt; raises instead of returning unauthenticated bytes."""
    raw_key = _key_bytes(key)
    if not isinstance(nonce, _BYTES_TYPES) or len(nonce) != NONCE_SIZE:
        got = len(nonce) if isinstance(nonce, _BYTES_TYPES) else type(nonce).__name__
        raise InvalidNonceLengthError(f"Nonce must be {NONCE_SIZE} bytes, got {got}")
    if not isinstance(ciphertext, _BYTES_TYPES):
        raise CorruptCiphertextError("Ciphertext must be bytes")
    if not isinstance(auth_tag, _BYTES_TYPES) or len(auth_tag) != TAG_SIZE:
        raise CorruptCiphertextError(f"Authentication tag must be {TAG_SIZE} bytes")

    try:
        return AESGCM(raw_key).decrypt(
            bytes(nonce), bytes(ciphertext) + bytes(auth_tag), associated_data
        )
    except InvalidTag:
        raise AuthenticationFailedError(
            "Authentication tag mismatch (tampered data or wrong key)"
        ) from None


class CipherBox:
    """
    Stateless encryption engine bound to one process key.

    The key is passed in at construction and only read afterwards, so a
    single instance can be shared across concurrent requests.
    """

    __slots__ = ("_key",)

    def __init__(self, key: KeyLike):
        self._key = key if isinstance(key, EncryptionKey) else EncryptionKey(key)

    @property
    def key_fingerprint(self) -> str:
        return self._key.fingerprint()

    def encrypt(self, plaintext: bytes, associated_data: Optional[bytes] = None) -> EncryptedPayload:
        return encrypt(plaintext, self._key, associated_data)

    def decrypt(
        self,
        ciphertext: bytes,
        nonce: bytes,
        auth_tag: bytes,
        associated_data: Optional[bytes] = None,
    ) -> bytes:
        return decrypt(ciphertext, nonce, auth_tag, self._key, associated_data)

    def __repr__(self):
        return f"CipherBox(key={self._key.fingerprint()!r})"
