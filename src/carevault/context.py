"""Small helper to build a ready-to-use vault for the host application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .config import VaultSettings
from .core.vault import DocumentVault
from .database.connection import DatabaseConnection
from .database.models import DocumentModel
from .logging_config import configure_logging
from .security.cipher import CipherBox
from .security.keys import load_encryption_key


@dataclass
class VaultContext:
    """Container for runtime objects the host application needs."""

    db: DatabaseConnection
    vault: DocumentVault
    settings: VaultSettings

    def close(self) -> None:
        self.db.close()


def build_context(
    settings: Optional[VaultSettings] = None,
    environ: Optional[Mapping[str, str]] = None,
    setup_logging: bool = True,
) -> VaultContext:
    """
    Load the key, initialize the database and wire the vault.

    Meant to run once at process start. The key is loaded before the
    database is touched, so a missing key aborts startup with
    :class:`~carevault.core.exceptions.ConfigurationError` and nothing else
    is created.
    """
    settings = settings or VaultSettings.from_env(environ)
    if setup_logging:
        configure_logging(settings.log_level)

    key = load_encryption_key(
        env_var=settings.key_env_var,
        keyring_service=settings.keyring_service,
        keyring_account=settings.keyring_account,
        environ=environ,
    )

    db = DatabaseConnection(settings.db_path)
    db.initialize()

    vault = DocumentVault(CipherBox(key), DocumentModel(db))
    return VaultContext(db=db, vault=vault, settings=settings)
