"""Runtime settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .security.keys import DEFAULT_KEY_ENV


@dataclass(frozen=True)
class VaultSettings:
    """
    Settings for one vault process.

    Environment variables:

    - ``CAREVAULT_DB_PATH``: SQLite database file (default ``./carevault.db``)
    - ``CAREVAULT_KEY_ENV``: name of the variable holding the key
      (default ``CAREVAULT_ENCRYPTION_KEY``)
    - ``CAREVAULT_KEYRING_SERVICE`` / ``CAREVAULT_KEYRING_ACCOUNT``: optional
      OS keyring entry used when the key variable is unset
    - ``CAREVAULT_LOG_LEVEL``: logging level name (default ``INFO``)
    """

    db_path: Path = Path("./carevault.db")
    key_env_var: str = DEFAULT_KEY_ENV
    keyring_service: Optional[str] = None
    keyring_account: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultSettings":
        env = os.environ if environ is None else environ
        return cls(
            db_path=Path(env.get("CAREVAULT_DB_PATH") or "./carevault.db").expanduser(),
            key_env_var=env.get("CAREVAULT_KEY_ENV") or DEFAULT_KEY_ENV,
            keyring_service=env.get("CAREVAULT_KEYRING_SERVICE") or None,
            keyring_account=env.get("CAREVAULT_KEYRING_ACCOUNT") or None,
            log_level=(env.get("CAREVAULT_LOG_LEVEL") or "INFO").upper(),
        )
