"""Filesystem locations used by cryptenv.

Config lives under the XDG config directory, the store and fallback key under
the XDG data directory. Paths are computed on each call so that environment
overrides take effect without reimporting.
"""
import os
from pathlib import Path

APP_NAME = "cryptenv"


def config_dir() -> Path:
    """Directory holding config.yml and preferences.json."""
    return Path.home() / ".config" / APP_NAME


def default_config_path() -> Path:
    return config_dir() / "config.yml"


def legacy_config_path() -> Path:
    """TOML config location of earlier cryptenv releases."""
    return Path.home() / ".config" / f"{APP_NAME}.toml"


def data_dir() -> Path:
    """
    Directory holding the secret store and the fallback key file.

    Priority order:
    1. CRYPTENV_DATA_DIR environment variable
    2. $XDG_DATA_HOME/cryptenv
    3. ~/.local/share/cryptenv
    """
    override = os.getenv("CRYPTENV_DATA_DIR")
    if override:
        return Path(override).expanduser()

    xdg_data_home = os.getenv("XDG_DATA_HOME")
    if xdg_data_home:
        return Path(xdg_data_home).expanduser() / APP_NAME

    return Path.home() / ".local" / "share" / APP_NAME


def store_path() -> Path:
    return data_dir() / "store.json"


def key_file_path() -> Path:
    return data_dir() / "key"
