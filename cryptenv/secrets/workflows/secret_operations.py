"""Workflows behind each cryptenv command."""
import logging
from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..domains.errors import ProfileNotFound, SecretExists
from ..domains.models import ConfigModel, DecryptedSecret, ResolvedProject
from ..domains.secret_store import SecretStore
from . import shell_emitter
from .project_resolver import (
    project_for_cwd,
    resolve_named_project,
    resolve_project_dir,
    resolve_variables,
)

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """Secret names are stored uppercased."""
    return name.upper()


def add_secret(store: SecretStore, name: str, value: str, overwrite: bool = False) -> str:
    """
    Encrypt and persist a secret.

    Args:
        store: Loaded store
        name: Secret name, uppercased before storing
        value: Plaintext value
        overwrite: Replace an existing value instead of failing

    Returns:
        The normalized name

    Raises:
        SecretExists: If the name is taken and overwrite is False
    """
    name = normalize_name(name)
    if name in store:
        if not overwrite:
            raise SecretExists(f"Value for {name} already exists")
        logger.warning(f"Overwriting value for {name}")

    store.add(name, value)
    store.save_to_disk()
    return name


def get_secret(store: SecretStore, name: str) -> DecryptedSecret:
    """Decrypt one secret by (case-insensitive) name."""
    return store.decrypt_or_fail(normalize_name(name))


def list_secrets(store: SecretStore) -> List[str]:
    return [name for name, _ in store.list()]


def _decrypt_values(store: SecretStore, resolved: ResolvedProject, stack: ExitStack) -> Dict[str, str]:
    """
    Decrypt every variable of a project before anything is printed.

    Decrypted buffers are registered on ``stack`` and wiped when it closes.
    """
    values = {}
    for variable in sorted(resolved.variables):
        secret = stack.enter_context(store.decrypt_or_fail(resolved.variables[variable]))
        values[variable] = secret.value
    return values


def current_project(config: ConfigModel, cwd: Union[str, Path]) -> Optional[ResolvedProject]:
    """
    Resolve the project for ``cwd``.

    Returns:
        ResolvedProject, or None when ``cwd`` is outside every root
        or its directory is not declared as a project
    """
    name = resolve_project_dir(config.root_paths(), cwd)
    if name is None:
        return None
    resolved = resolve_variables(name, config)
    if resolved is None:
        logger.debug(f"Directory {name} has no project bindings")
    return resolved


def load_environment(
    config: ConfigModel,
    store: SecretStore,
    shell: str,
    cwd: Union[str, Path],
    project: Optional[str] = None,
) -> str:
    """
    Shell statements for entering a project.

    With ``project`` the named project is loaded; otherwise the project for
    ``cwd`` is, and outside any project only unset statements are produced.

    Raises:
        ProjectNotFound: If ``project`` is given and not declared
        SecretNotFound, DecryptError, KeyUnavailable: Before any output is built
    """
    if project is not None:
        resolved = resolve_named_project(config, project)
    else:
        resolved = current_project(config, cwd)

    with ExitStack() as stack:
        values = _decrypt_values(store, resolved, stack) if resolved else {}
        return shell_emitter.render_load(values, config.all_variable_names(), shell)


def _target_project(config: ConfigModel, project: Optional[str], cwd: Union[str, Path]) -> ResolvedProject:
    name = project if project is not None else project_for_cwd(config, cwd)
    return resolve_named_project(config, name)


def export_project(
    config: ConfigModel,
    store: SecretStore,
    cwd: Union[str, Path],
    project: Optional[str] = None,
) -> str:
    """Decrypted ``KEY=VALUE`` lines for a project (the cwd project by default)."""
    resolved = _target_project(config, project, cwd)
    with ExitStack() as stack:
        return shell_emitter.render_export(_decrypt_values(store, resolved, stack))


def project_variables(
    config: ConfigModel, cwd: Union[str, Path], project: Optional[str] = None
) -> List[Tuple[str, str]]:
    """(variable, secret name) pairs of a project, sorted by variable."""
    resolved = _target_project(config, project, cwd)
    return sorted(resolved.variables.items())


def profile_variables(config: ConfigModel, profile: str) -> List[Tuple[str, str]]:
    """
    (variable, secret name) pairs of a profile, sorted by variable.

    Raises:
        ProfileNotFound: If the profile is not declared
    """
    bindings = config.profiles.get(profile)
    if bindings is None:
        raise ProfileNotFound(profile)
    return sorted(bindings.items())
