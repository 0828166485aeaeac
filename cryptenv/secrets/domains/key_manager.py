"""Acquisition and persistence of the store encryption key.

The key lives in the OS keyring when one is usable and in an owner-only file
under the data directory otherwise. Lookups always check the keyring first and
the file second, so repeated calls agree on where the key is.
"""
import base64
import binascii
import logging
import os
import secrets
import stat
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

from .errors import KeyUnavailable
from .locations import key_file_path
from .models import EncryptionKey, wipe

logger = logging.getLogger(__name__)

SERVICE_NAME = "cryptenv"
ACCOUNT_NAME = "key"

CORRUPT_KEY_HINT = (
    "the stored key is damaged; restore it from a backup. Removing it lets cryptenv "
    "create a new key, but existing secrets will no longer decrypt"
)


class KeyringStore:
    """
    Thin wrapper around the ``keyring`` package.

    keyring stores text, so the raw key bytes are kept base64-encoded.
    Keyring backend errors are reported as a missing entry; an entry that is
    present but not base64 is an error.
    """

    def __init__(self, service: str = SERVICE_NAME, account: str = ACCOUNT_NAME):
        self.service = service
        self.account = account

    def read(self) -> Optional[bytearray]:
        """
        Raw key bytes from the keyring, or None when there is no usable entry.

        Raises:
            KeyUnavailable: If an entry exists but is not valid base64
        """
        try:
            encoded = keyring.get_password(self.service, self.account)
        except KeyringError as e:
            logger.debug(f"Keyring read failed: {e}")
            return None
        if encoded is None:
            return None
        try:
            return bytearray(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError):
            raise KeyUnavailable(
                f"keyring entry {self.service}/{self.account} is not valid base64",
                hint=CORRUPT_KEY_HINT,
            )

    def write(self, material: bytearray) -> bool:
        try:
            keyring.set_password(
                self.service, self.account, base64.b64encode(bytes(material)).decode("ascii")
            )
        except KeyringError as e:
            logger.debug(f"Keyring write failed: {e}")
            return False
        return True


class KeyManager:
    """Finds, creates and stores the single installation key."""

    def __init__(self, keystore=None, key_path: Optional[Path] = None):
        self.keystore = keystore if keystore is not None else KeyringStore()
        self._key_path = key_path

    @property
    def key_path(self) -> Path:
        return self._key_path if self._key_path is not None else key_file_path()

    def _read_keyring(self) -> Optional[EncryptionKey]:
        material = self.keystore.read()
        if material is None:
            return None
        try:
            if len(material) != EncryptionKey.SIZE:
                raise KeyUnavailable(
                    f"keyring key is {len(material)} bytes, expected {EncryptionKey.SIZE}",
                    hint=CORRUPT_KEY_HINT,
                )
            return EncryptionKey(material)
        finally:
            wipe(material)

    def _read_file(self) -> Optional[EncryptionKey]:
        path = self.key_path
        if not path.exists():
            return None
        try:
            material = bytearray(path.read_bytes())
        except OSError as e:
            raise KeyUnavailable(f"failed to read key file {path}: {e}")
        try:
            if len(material) != EncryptionKey.SIZE:
                raise KeyUnavailable(
                    f"key file {path} is {len(material)} bytes, expected {EncryptionKey.SIZE}",
                    hint=CORRUPT_KEY_HINT,
                )
            return EncryptionKey(material)
        finally:
            wipe(material)

    def find(self) -> Optional[EncryptionKey]:
        """
        Return the existing key, or None if no channel holds one.

        Raises:
            KeyUnavailable: If a stored key exists but is damaged or unreadable
        """
        key = self._read_keyring()
        if key is not None:
            logger.debug("Using encryption key from OS keyring")
            return key

        key = self._read_file()
        if key is not None:
            logger.debug(f"Using encryption key from {self.key_path}")
        return key

    def acquire(self) -> EncryptionKey:
        """
        Return the existing key without creating one.

        Raises:
            KeyUnavailable: If neither the keyring nor the key file holds a key
        """
        key = self.find()
        if key is None:
            raise KeyUnavailable(
                f"no encryption key found in the OS keyring or at {self.key_path}"
            )
        return key

    def acquire_or_create(self) -> EncryptionKey:
        """
        Return the existing key, generating and storing a new one if none exists.

        A new key is only created when both channels are empty; a damaged key is
        never replaced.

        Raises:
            KeyUnavailable: If the stored key is damaged, or a new key could be
                stored in neither channel
        """
        key = self.find()
        if key is not None:
            return key

        key = EncryptionKey(secrets.token_bytes(EncryptionKey.SIZE))
        try:
            self._store(key)
        except BaseException:
            key.wipe()
            raise
        return key

    def _store(self, key: EncryptionKey) -> None:
        if self.keystore.write(key.material):
            try:
                stored = self.keystore.read()
            except KeyUnavailable:
                stored = None
            try:
                if stored is not None and stored == key.material:
                    logger.info("Stored new encryption key in OS keyring")
                    return
            finally:
                if stored is not None:
                    wipe(stored)
            logger.debug("Keyring write could not be verified, falling back to key file")

        path = self.key_path
        try:
            self._write_key_file(path, key.material)
        except OSError as e:
            raise KeyUnavailable(f"failed to store encryption key at {path}: {e}")
        logger.info(f"Stored new encryption key in {path}")

    @staticmethod
    def _write_key_file(path: Path, material: bytearray) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(material)
        # On Windows chmod only toggles the read-only flag; owner read/write is
        # the closest available restriction.
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
