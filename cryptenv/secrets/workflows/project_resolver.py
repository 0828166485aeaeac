"""Map a directory to its project and a project to its variables."""
import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from ..domains.errors import NotInAProject, ProjectNotFound
from ..domains.models import ConfigModel, ResolvedProject

logger = logging.getLogger(__name__)


def resolve_project_dir(roots: Iterable[Union[str, Path]], cwd: Union[str, Path]) -> Optional[str]:
    """
    Find the project containing ``cwd``.

    Roots are tried in order. The first root that is a proper ancestor of
    ``cwd`` (compared component by component) decides: the component directly
    below it is the project name. ``cwd`` equal to a root is not in a project.

    Args:
        roots: Configured root directories, already ``~``-expanded
        cwd: Directory to resolve

    Returns:
        Project name, or None when no root contains ``cwd``
    """
    cwd_parts = Path(os.path.normpath(cwd)).parts
    for root in roots:
        root_parts = Path(os.path.normpath(root)).parts
        if cwd_parts[:len(root_parts)] != root_parts:
            continue
        if len(cwd_parts) == len(root_parts):
            logger.debug(f"{cwd} is a project root directory itself, not a project")
            return None
        return cwd_parts[len(root_parts)]
    return None


def resolve_variables(project_name: str, config: ConfigModel) -> Optional[ResolvedProject]:
    """
    Merge a project's direct bindings with its referenced profiles.

    Direct bindings always win. Profiles are applied in the order listed and
    only add variables that are not bound yet, so an earlier profile wins over
    a later one. Unknown profiles are logged and skipped.

    Returns:
        ResolvedProject, or None if the project is not declared
    """
    binding = config.projects.get(project_name)
    if binding is None:
        return None

    resolved = ResolvedProject(name=project_name)
    for variable, secret_name in binding.vars.items():
        resolved.variables[variable] = secret_name
        resolved.sources[variable] = None

    for profile_name in binding.profiles:
        profile = config.profiles.get(profile_name)
        if profile is None:
            logger.warning(
                f"cryptenv: profile {profile_name} referenced by project {project_name} is not defined"
            )
            resolved.missing_profiles.append(profile_name)
            continue
        for variable, secret_name in profile.items():
            if variable not in resolved.variables:
                resolved.variables[variable] = secret_name
                resolved.sources[variable] = profile_name

    return resolved


def project_for_cwd(config: ConfigModel, cwd: Union[str, Path]) -> str:
    """
    Name of the project containing ``cwd``.

    Raises:
        NotInAProject: If no configured root contains ``cwd``
    """
    name = resolve_project_dir(config.root_paths(), cwd)
    if name is None:
        raise NotInAProject(cwd)
    return name


def resolve_named_project(config: ConfigModel, project_name: str) -> ResolvedProject:
    """
    Resolve a project that must exist.

    Raises:
        ProjectNotFound: If the project is not declared
    """
    resolved = resolve_variables(project_name, config)
    if resolved is None:
        raise ProjectNotFound(project_name)
    return resolved
