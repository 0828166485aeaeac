"""Persistent mapping of secret name to encrypted value.

The store is one JSON file, loaded whole and rewritten whole. Writes go to a
temporary file in the same directory which then replaces the store, so an
interrupted save leaves the previous store intact.

Concurrent ``add`` from two processes is not coordinated: each loads, modifies
and saves independently and the last save wins.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from . import cipher
from .errors import SecretNotFound, StoreCorrupted, StoreError
from .key_manager import KeyManager
from .locations import store_path
from .models import DecryptedSecret, EncryptedSecret

logger = logging.getLogger(__name__)


class SecretStore:
    """Encrypted secrets keyed by (already case-normalized) name."""

    def __init__(
        self,
        secrets: Optional[Dict[str, str]] = None,
        path: Optional[Path] = None,
        key_manager: Optional[KeyManager] = None,
    ):
        self._secrets: Dict[str, str] = dict(secrets or {})
        self.path = path if path is not None else store_path()
        self.key_manager = key_manager if key_manager is not None else KeyManager()

    @classmethod
    def read(cls, path: Optional[Path] = None, key_manager: Optional[KeyManager] = None) -> "SecretStore":
        """
        Load the store from disk.

        A missing file is an empty store.

        Raises:
            StoreCorrupted: If the file exists but is not a valid store
        """
        path = path if path is not None else store_path()
        if not path.exists():
            logger.debug(f"No store at {path}, starting empty")
            return cls(path=path, key_manager=key_manager)

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreCorrupted(f"Failed to parse store file {path}: {e}")
        except OSError as e:
            raise StoreError(f"Failed to read store file {path}: {e}")

        secrets = data.get("vars") if isinstance(data, dict) else None
        if not isinstance(secrets, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in secrets.items()
        ):
            raise StoreCorrupted(f"Store file {path} does not contain a 'vars' mapping of strings")

        logger.debug(f"Loaded {len(secrets)} secrets from {path}")
        return cls(secrets, path=path, key_manager=key_manager)

    def __contains__(self, name: str) -> bool:
        return name in self._secrets

    def __len__(self) -> int:
        return len(self._secrets)

    def get(self, name: str) -> Optional[EncryptedSecret]:
        """Exact-match lookup; callers normalize case first."""
        ciphertext = self._secrets.get(name)
        if ciphertext is None:
            return None
        return EncryptedSecret(name=name, ciphertext=ciphertext)

    def add(self, name: str, value: str) -> None:
        """
        Encrypt ``value`` and insert or replace ``name`` in memory.

        Overwrite policy is the caller's decision; nothing is written to disk
        until save_to_disk() is called.
        """
        with self.key_manager.acquire_or_create() as key:
            self._secrets[name] = cipher.encrypt(key, value)

    def decrypt(self, secret: EncryptedSecret) -> DecryptedSecret:
        with self.key_manager.acquire() as key:
            return DecryptedSecret(secret.name, cipher.decrypt(key, secret.ciphertext))

    def decrypt_or_fail(self, name: str) -> DecryptedSecret:
        """
        Look up and decrypt a secret.

        Raises:
            SecretNotFound: If the name is not in the store
            KeyUnavailable: If no key can be found
            DecryptError: If the stored value cannot be decrypted
        """
        secret = self.get(name)
        if secret is None:
            raise SecretNotFound(name)
        return self.decrypt(secret)

    def list(self) -> Iterator[Tuple[str, EncryptedSecret]]:
        """Yield (name, secret) pairs sorted by name."""
        for name in sorted(self._secrets):
            yield name, EncryptedSecret(name=name, ciphertext=self._secrets[name])

    def save_to_disk(self) -> None:
        """Write the whole store, replacing the previous file atomically."""
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=".store-", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"vars": self._secrets}, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        logger.debug(f"Saved {len(self._secrets)} secrets to {path}")
