"""Process encryption key: validation, parsing and startup provisioning.

The key is loaded once when the process starts and handed to the cipher by
reference. It is never generated implicitly, never written next to the
ciphertext it protects, and never rendered by ``repr()``.

Provisioning sources, in order:
- an environment variable holding the key as hex (64 chars) or base64 text
- the OS keyring (opt-in, see :mod:`carevault.security.keystore`)

A missing or malformed key is a startup failure (:class:`ConfigurationError`),
not something individual requests should handle.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
import string
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..core.exceptions import ConfigurationError, EntropyUnavailableError, InvalidKeyLengthError

logger = logging.getLogger(__name__)

KEY_SIZE = 32
DEFAULT_KEY_ENV = "CAREVAULT_ENCRYPTION_KEY"


def require_key_length(material) -> bytes:
    """Return ``material`` as bytes or raise InvalidKeyLengthError."""
    if not isinstance(material, (bytes, bytearray, memoryview)):
        raise InvalidKeyLengthError(
            f"Encryption key must be {KEY_SIZE} bytes, got {type(material).__name__}"
        )
    material = bytes(material)
    if len(material) != KEY_SIZE:
        raise InvalidKeyLengthError(
            f"Encryption key must be {KEY_SIZE} bytes, got {len(material)}"
        )
    return material


@dataclass(frozen=True)
class EncryptionKey:
    """Immutable 256-bit secret shared read-only across requests."""

    material: bytes = field(repr=False)

    def __post_init__(self):
        object.__setattr__(self, "material", require_key_length(self.material))

    @classmethod
    def from_hex(cls, text: str) -> "EncryptionKey":
        try:
            raw = bytes.fromhex(text.strip())
        except ValueError as e:
            raise ConfigurationError(f"Encryption key is not valid hex: {e}") from e
        return cls(raw)

    @classmethod
    def from_base64(cls, text: str) -> "EncryptionKey":
        try:
            raw = base64.b64decode(text.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError(f"Encryption key is not valid base64: {e}") from e
        return cls(raw)

    @classmethod
    def parse(cls, text: str) -> "EncryptionKey":
        """Parse hex (preferred) or base64 key text."""
        text = text.strip()
        if len(text) == KEY_SIZE * 2 and all(c in string.hexdigits for c in text):
            return cls.from_hex(text)
        return cls.from_base64(text)

    def to_hex(self) -> str:
        return self.material.hex()

    def fingerprint(self) -> str:
        """Short non-secret identifier, safe for logs."""
        return hashlib.sha256(b"carevault-key-id" + self.material).hexdigest()[:16]

    def __bytes__(self) -> bytes:
        return self.material


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the OS CSPRNG; never falls back to a weaker source."""
    try:
        data = os.urandom(size)
    except (OSError, NotImplementedError) as e:
        raise EntropyUnavailableError(f"OS random source unavailable: {e}") from e
    if len(data) != size:
        raise EntropyUnavailableError("OS random source returned a short read")
    return data


def generate_key() -> EncryptionKey:
    """Return a fresh random key for operators provisioning a new deployment."""
    return EncryptionKey(random_bytes(KEY_SIZE))


def load_key_from_env(
    var_name: str = DEFAULT_KEY_ENV, environ: Optional[Mapping[str, str]] = None
) -> Optional[EncryptionKey]:
    """Read the key from ``var_name``; None when unset, ConfigurationError when malformed."""
    env = os.environ if environ is None else environ
    raw = env.get(var_name)
    if raw is None or not raw.strip():
        return None
    try:
        return EncryptionKey.parse(raw)
    except InvalidKeyLengthError as e:
        raise ConfigurationError(f"{var_name} does not hold a 256-bit key: {e}") from e


def load_encryption_key(
    env_var: str = DEFAULT_KEY_ENV,
    keyring_service: Optional[str] = None,
    keyring_account: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> EncryptionKey:
    """Load the process key from the environment, falling back to the OS keyring.

    Raises:
        ConfigurationError: no source provided a key, or the key is malformed
    """
    key = load_key_from_env(env_var, environ=environ)
    source = f"environment variable {env_var}"

    if key is None and keyring_service and keyring_account:
        from .keystore import load_key

        key = load_key(keyring_service, keyring_account)
        source = f"keyring {keyring_service}/{keyring_account}"

    if key is None:
        raise ConfigurationError(
            f"Encryption key not configured; set {env_var}"
            + (" or store one in the OS keyring" if keyring_service else "")
        )

    logger.info("Loaded encryption key %s from %s", key.fingerprint(), source)
    return key
