"""Render resolved variables as shell statements."""
import re
import shlex
from typing import Dict, Iterable, List

from ..domains.models import VARIABLE_NAME_PATTERN

SHELLS = ("zsh", "bash", "fish")

_SAFE_FISH = re.compile(r"^[\w@%+=:,./-]+$", re.ASCII)

_INIT_SCRIPTS = {
    "zsh": """\
_cryptenv_hook() {
  eval "$(cryptenv project load zsh)"
}
typeset -ag chpwd_functions
if [[ -z "${chpwd_functions[(r)_cryptenv_hook]+1}" ]]; then
  chpwd_functions=(_cryptenv_hook ${chpwd_functions[@]})
fi
_cryptenv_hook
""",
    "bash": """\
_cryptenv_hook() {
  if [[ "$PWD" != "$_CRYPTENV_LAST_PWD" ]]; then
    _CRYPTENV_LAST_PWD="$PWD"
    eval "$(cryptenv project load bash)"
  fi
}
if [[ ";${PROMPT_COMMAND:-};" != *";_cryptenv_hook;"* ]]; then
  PROMPT_COMMAND="_cryptenv_hook${PROMPT_COMMAND:+;$PROMPT_COMMAND}"
fi
""",
    "fish": """\
function _cryptenv_hook --on-variable PWD
    cryptenv project load fish | source
end
_cryptenv_hook
""",
}


def _check_shell(shell: str) -> None:
    if shell not in SHELLS:
        raise ValueError(f"Unsupported shell: {shell} (expected one of {', '.join(SHELLS)})")


def _check_name(name: str) -> None:
    if not VARIABLE_NAME_PATTERN.fullmatch(name):
        raise ValueError(f"Invalid shell variable name: {name!r}")


def quote(value: str, shell: str) -> str:
    """Quote a value so the target shell reads it back unchanged."""
    if shell != "fish":
        return shlex.quote(value)
    if _SAFE_FISH.fullmatch(value):
        return value
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def set_statement(name: str, value: str, shell: str) -> str:
    _check_shell(shell)
    _check_name(name)
    if shell == "fish":
        return f"set -gx {name} {quote(value, shell)};"
    return f"export {name}={quote(value, shell)}"


def unset_statement(name: str, shell: str) -> str:
    _check_shell(shell)
    _check_name(name)
    if shell == "fish":
        return f"set -ge {name};"
    return f"unset {name}"


def render_load(values: Dict[str, str], known_variables: Iterable[str], shell: str) -> str:
    """
    Statements that switch the shell to exactly ``values``.

    Every variable in ``known_variables`` that is not being set is unset, so
    leaving a project removes its variables.

    Args:
        values: Variable name to plaintext value for the current project
        known_variables: Every variable name declared anywhere in the config
        shell: Target shell
    """
    _check_shell(shell)
    lines: List[str] = [
        unset_statement(name, shell) for name in sorted(set(known_variables) - set(values))
    ]
    lines.extend(set_statement(name, values[name], shell) for name in sorted(values))
    return "\n".join(lines) + "\n" if lines else ""


def render_export(values: Dict[str, str]) -> str:
    """``KEY=VALUE`` lines in the format used by .env files."""
    return "".join(f"{name}={values[name]}\n" for name in sorted(values))


def init_script(shell: str) -> str:
    """Hook that reloads the environment whenever the directory changes."""
    _check_shell(shell)
    return _INIT_SCRIPTS[shell]
