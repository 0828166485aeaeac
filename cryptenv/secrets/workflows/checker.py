"""Cross-check every declared project against the secret store."""
import logging
from typing import List

from ..domains.models import ConfigModel, Finding
from ..domains.secret_store import SecretStore
from .project_resolver import resolve_variables

logger = logging.getLogger(__name__)


def check(config: ConfigModel, store: SecretStore) -> List[Finding]:
    """
    Report every referenced secret that is missing from the store.

    All projects are checked, not only the one for the working directory.
    Undefined profile references are reported as findings too. Neither the
    config nor the store is modified.

    Returns:
        Findings ordered by project, then variable; empty when all is well
    """
    findings = []
    for project_name in sorted(config.projects):
        resolved = resolve_variables(project_name, config)

        for profile_name in resolved.missing_profiles:
            findings.append(
                Finding(project=project_name, profile=profile_name, kind="missing_profile")
            )

        for variable in sorted(resolved.variables):
            secret_name = resolved.variables[variable]
            if secret_name in store:
                continue
            findings.append(
                Finding(
                    project=project_name,
                    secret_name=secret_name,
                    variable=variable,
                    profile=resolved.sources[variable],
                )
            )

    logger.debug(f"Checked {len(config.projects)} projects, {len(findings)} findings")
    return findings
