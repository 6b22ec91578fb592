"""OS keystore integration using keyring for opt-in key provisioning.

The process key is stored base64-encoded under a service/account pair so it
can be provisioned on a host without putting it in the environment. Use this
only where the platform keyring is trustworthy; :func:`assess_keyring_backend`
refuses the plaintext/file backends.
"""
import base64
import binascii
import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from ..core.exceptions import ConfigurationError, InvalidKeyLengthError
from .keys import EncryptionKey

logger = logging.getLogger(__name__)


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend."""
    try:
        backend = keyring.get_keyring()
    except KeyringError as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Simple", "File", "Fail", "Null")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    return True, f"backend looks acceptable: {name} (priority={priority})"


def save_key(service: str, account: str, key: EncryptionKey, force: bool = False) -> None:
    """Persist ``key`` in the OS keystore under (service, account).

    Raises ConfigurationError when the backend looks insecure, unless ``force``.
    """
    if not force:
        secure, msg = assess_keyring_backend()
        if not secure:
            raise ConfigurationError(f"refusing to store encryption key in keyring: {msg}")
    secret = base64.b64encode(key.material).decode("ascii")
    keyring.set_password(service, account, secret)
    logger.info("Stored encryption key %s in keyring %s/%s", key.fingerprint(), service, account)


def load_key(service: str, account: str) -> Optional[EncryptionKey]:
    """Load the key from the OS keystore; None when nothing is stored."""
    try:
        secret = keyring.get_password(service, account)
    except KeyringError as e:
        raise ConfigurationError(f"keyring lookup failed: {e}") from e
    if secret is None:
        return None
    try:
        return EncryptionKey(base64.b64decode(secret, validate=True))
    except (binascii.Error, ValueError, InvalidKeyLengthError) as e:
        raise ConfigurationError(f"keyring entry {service}/{account} is not a valid key") from e


def delete_key(service: str, account: str) -> bool:
    """Remove the key from the OS keystore; False when there was nothing to delete."""
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        return False
    return True
