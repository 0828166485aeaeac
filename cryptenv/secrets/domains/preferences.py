"""Preferences manager for cryptenv.

Manages persistent user preferences stored in XDG Base Directory standard location:
~/.config/cryptenv/preferences.json
"""
import json
from pathlib import Path
from typing import Optional, Dict, Any
import logging

from .locations import config_dir

logger = logging.getLogger(__name__)


def _preferences_file() -> Path:
    return config_dir() / "preferences.json"


def _load_preferences() -> Dict[str, Any]:
    """
    Load preferences from JSON file.

    Returns:
        Dictionary of preferences, or empty dict if file doesn't exist
    """
    preferences_file = _preferences_file()
    if not preferences_file.exists():
        return {}

    try:
        with open(preferences_file, 'r') as f:
            preferences = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse preferences file {preferences_file}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Failed to read preferences file {preferences_file}: {e}")
        return {}

    if not isinstance(preferences, dict):
        logger.error(f"Ignoring preferences file {preferences_file}: expected a JSON object")
        return {}
    return preferences


def _save_preferences(preferences: Dict[str, Any]) -> None:
    """
    Save preferences to JSON file.

    Args:
        preferences: Dictionary of preferences to save
    """
    preferences_file = _preferences_file()
    preferences_file.parent.mkdir(parents=True, exist_ok=True)

    with open(preferences_file, 'w') as f:
        json.dump(preferences, f, indent=2)


def get_preference(key: str) -> Optional[str]:
    """
    Get preference value by key.

    Args:
        key: Preference key

    Returns:
        Preference value if found, None otherwise
    """
    return _load_preferences().get(key)


def set_preference(key: str, value: str) -> None:
    """Set preference value."""
    preferences = _load_preferences()
    preferences[key] = value
    _save_preferences(preferences)
    logger.info(f"Preference '{key}' set to: {value}")


def clear_preference(key: str) -> None:
    """Clear/remove preference by key. Missing keys are ignored."""
    preferences = _load_preferences()
    if key in preferences:
        del preferences[key]
        _save_preferences(preferences)
        logger.info(f"Preference '{key}' cleared")
    else:
        logger.debug(f"Preference '{key}' not found, nothing to clear")


def get_all_preferences() -> Dict[str, Any]:
    return _load_preferences()
