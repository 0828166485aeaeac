"""Shared fixtures: isolated home/data directories and a fake OS keyring."""
from pathlib import Path

import pytest

from cryptenv.secrets.domains import key_manager as key_manager_module
from cryptenv.secrets.domains.key_manager import KeyManager
from cryptenv.secrets.domains.secret_store import SecretStore


class FakeKeystore:
    """In-memory stand-in for the OS keyring."""

    def __init__(self, writable=True, verifiable=True):
        self.material = None
        self.writable = writable
        self.verifiable = verifiable
        self.reads = 0

    def read(self):
        self.reads += 1
        if self.material is None:
            return None
        return bytearray(self.material)

    def write(self, material):
        if not self.writable:
            return False
        if self.verifiable:
            self.material = bytes(material)
        return True


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)
    monkeypatch.delenv("CRYPTENV_CONFIG", raising=False)
    monkeypatch.delenv("CRYPTENV_DATA_DIR", raising=False)
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    return fake_home


@pytest.fixture
def data_dir(temp_home):
    return temp_home / ".local" / "share" / "cryptenv"


@pytest.fixture
def keystore():
    return FakeKeystore()


@pytest.fixture
def key_manager(keystore, data_dir):
    return KeyManager(keystore=keystore, key_path=data_dir / "key")


@pytest.fixture
def store(key_manager, data_dir):
    return SecretStore(path=data_dir / "store.json", key_manager=key_manager)


@pytest.fixture
def fake_keyring(monkeypatch):
    """Replace the keyring package functions so CLI runs never touch the real keyring."""
    passwords = {}

    def get_password(service, account):
        return passwords.get((service, account))

    def set_password(service, account, password):
        passwords[(service, account)] = password

    monkeypatch.setattr(key_manager_module.keyring, "get_password", get_password)
    monkeypatch.setattr(key_manager_module.keyring, "set_password", set_password)
    return passwords
