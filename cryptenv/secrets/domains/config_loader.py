"""Configuration loader for cryptenv."""
import os
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ConfigMalformed, ConfigUnreadable
from .locations import default_config_path, legacy_config_path
from .models import VARIABLE_NAME_PATTERN, ConfigModel, ProjectBinding
from .preferences import get_preference

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CRYPTENV_CONFIG"

EXAMPLE_CONFIG = """\
dirs:
  - ~/work
profile:
  aws:
    AWS_ACCESS_KEY_ID: AWS_KEY_PERSONAL
project:
  api:
    vars:
      DATABASE_URL: API_DATABASE_URL
    profiles: [aws]
  scripts: [aws]
"""


def get_config_path(explicit: Optional[Union[str, Path]] = None) -> Path:
    """
    Get config file path.

    Priority order:
    1. Explicit path (``--config`` on the command line)
    2. CRYPTENV_CONFIG environment variable
    3. User preference (stored in ~/.config/cryptenv/preferences.json)
    4. Default location: ~/.config/cryptenv/config.yml
    5. ~/.config/cryptenv.toml, used by earlier cryptenv releases, when the
       default location does not exist

    Returns:
        Path to the config file. A stale preference falls through to the
        default; when neither default file exists the YAML default is returned.
    """
    if explicit:
        return Path(explicit).expanduser()

    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        logger.debug(f"Using config from {CONFIG_ENV_VAR}: {env_path}")
        return Path(env_path).expanduser()

    config_path_pref = get_preference("config_path")
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.debug(f"Using config from preference: {config_path}")
            return config_path
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if not default_config.exists():
        legacy_config = legacy_config_path()
        if legacy_config.exists():
            logger.debug(f"Using legacy TOML config: {legacy_config}")
            return legacy_config
    return default_config


def _parse(config_path: Path, text: str) -> Any:
    if config_path.suffix == ".toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ConfigMalformed(f"Failed to parse TOML config at {config_path}: {e}")
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigMalformed(f"Failed to parse YAML config at {config_path}: {e}")


def _string_mapping(value: Any, where: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigMalformed(f"'{where}' must be a mapping of variable name to secret name")
    result = {}
    for variable, secret_name in value.items():
        if not isinstance(variable, str) or not isinstance(secret_name, str):
            raise ConfigMalformed(
                f"'{where}' entries must be strings, got {variable!r}: {secret_name!r}"
            )
        if not VARIABLE_NAME_PATTERN.fullmatch(variable):
            raise ConfigMalformed(
                f"Invalid variable name {variable!r} in '{where}'\n"
                f"Variable names must match: [A-Za-z_][A-Za-z0-9_]*"
            )
        result[variable] = secret_name.upper()
    return result


def _string_list(value: Any, where: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigMalformed(f"'{where}' must be a list of strings")
    return list(value)


def _parse_project(name: str, value: Any) -> ProjectBinding:
    """Normalize either project shape into a ProjectBinding."""
    where = f"project.{name}"
    if isinstance(value, list):
        return ProjectBinding(profiles=_string_list(value, where))

    if isinstance(value, dict):
        unknown = set(value) - {"vars", "profiles"}
        if unknown:
            raise ConfigMalformed(
                f"Unknown keys in '{where}': {', '.join(sorted(unknown))}\n"
                f"Projects accept 'vars' and 'profiles', or a bare list of profiles."
            )
        return ProjectBinding(
            vars=_string_mapping(value.get("vars") or {}, f"{where}.vars"),
            profiles=_string_list(value.get("profiles") or [], f"{where}.profiles"),
        )

    raise ConfigMalformed(
        f"'{where}' must be a mapping with 'vars'/'profiles' or a list of profile names"
    )


def parse_config(raw: Any, source: Optional[Path] = None) -> ConfigModel:
    """
    Build a ConfigModel from deserialized config data.

    Args:
        raw: Result of parsing the config file
        source: Path the data was read from, for messages

    Raises:
        ConfigMalformed: If the data does not have the expected shape
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigMalformed(
            f"Config at {source} must be a mapping\n"
            f"Required format:\n{EXAMPLE_CONFIG}"
        )

    unknown = set(raw) - {"dirs", "profile", "project"}
    if unknown:
        raise ConfigMalformed(
            f"Unknown top-level keys in config at {source}: {', '.join(sorted(unknown))}\n"
            f"Required format:\n{EXAMPLE_CONFIG}"
        )

    roots = _string_list(raw.get("dirs") or [], "dirs")

    profile_section = raw.get("profile") or {}
    if not isinstance(profile_section, dict):
        raise ConfigMalformed("'profile' must be a mapping of profile name to variables")
    profiles = {
        str(name): _string_mapping(bindings or {}, f"profile.{name}")
        for name, bindings in profile_section.items()
    }

    project_section = raw.get("project") or {}
    if not isinstance(project_section, dict):
        raise ConfigMalformed("'project' must be a mapping of project name to bindings")
    projects = {
        str(name): _parse_project(str(name), value)
        for name, value in project_section.items()
    }

    return ConfigModel(roots=roots, profiles=profiles, projects=projects, source=source)


def load_config(path: Optional[Union[str, Path]] = None) -> ConfigModel:
    """
    Load and validate configuration.

    Args:
        path: Explicit config path; resolved via get_config_path() when None

    Returns:
        Normalized ConfigModel

    Raises:
        ConfigUnreadable: If the config file is missing or cannot be read
        ConfigMalformed: If the config file cannot be parsed or validated
    """
    config_path = get_config_path(path)

    if not config_path.exists():
        raise ConfigUnreadable(
            f"Configuration file not found at: {config_path}",
            hint=(
                "create it with your project directories and bindings, "
                "or point to an existing file with 'cryptenv config set-path <path>'"
            ),
        )

    try:
        text = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigUnreadable(f"Failed to read config file at {config_path}: {e}")

    config = parse_config(_parse(config_path, text), source=config_path)

    logger.debug(
        f"Configuration loaded from {config_path}: {len(config.roots)} dirs, "
        f"{len(config.profiles)} profiles, {len(config.projects)} projects"
    )
    return config
