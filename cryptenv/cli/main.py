"""CLI entrypoint for cryptenv."""
import sys
import argparse
import logging
from pathlib import Path

from cryptenv.secrets.domains.errors import CryptenvError, NotInAProject
from cryptenv.secrets.workflows.shell_emitter import SHELLS
from .validators import validate_secret_name

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )


def _load_config(args):
    from cryptenv.secrets.domains.config_loader import load_config

    return load_config(args.config)


def _load_store():
    from cryptenv.secrets.domains.secret_store import SecretStore

    return SecretStore.read()


def cmd_version(args):
    """Show version information."""
    print(f"cryptenv {VERSION}")


def cmd_init(args):
    """Print the shell hook."""
    from cryptenv.secrets.workflows.shell_emitter import init_script

    print(init_script(args.shell), end="")


def cmd_check(args):
    """Check that every project's secrets exist in the store."""
    from cryptenv.secrets.workflows.checker import check

    config = _load_config(args)
    findings = check(config, _load_store())

    if findings:
        for finding in findings:
            print(f"cryptenv: {finding.describe()}")
        print(f"\n{len(findings)} problem(s) found", file=sys.stderr)
        sys.exit(1)

    print("the config is correct!")


def cmd_env_add(args):
    """Add a secret to the store."""
    from cryptenv.secrets.workflows.secret_operations import add_secret

    validate_secret_name(args.name)

    name = add_secret(_load_store(), args.name, args.value, overwrite=args.overwrite)
    print(f"Stored {name}", file=sys.stderr)


def cmd_env_get(args):
    """Print a decrypted secret."""
    from cryptenv.secrets.workflows.secret_operations import get_secret

    with get_secret(_load_store(), args.name) as secret:
        print(secret.value)


def cmd_env_list(args):
    """List secret names, optionally with their values."""
    store = _load_store()

    if not args.decrypt:
        from cryptenv.secrets.workflows.secret_operations import list_secrets

        for name in list_secrets(store):
            print(name)
        return

    # Decrypt everything first so a failure prints nothing
    lines = []
    for name, encrypted in store.list():
        with store.decrypt(encrypted) as secret:
            lines.append(f"{name}={secret.value}")
    for line in lines:
        print(line)


def cmd_project_load(args):
    """Print shell statements for the current (or named) project."""
    from cryptenv.secrets.workflows.secret_operations import load_environment

    config = _load_config(args)
    output = load_environment(config, _load_store(), args.shell, Path.cwd(), project=args.project)
    print(output, end="")


def cmd_project_name(args):
    """Print the name of the project in the current directory."""
    from cryptenv.secrets.workflows.project_resolver import project_for_cwd

    try:
        print(project_for_cwd(_load_config(args), Path.cwd()))
    except NotInAProject as e:
        logger.debug(str(e))
        sys.exit(1)


def cmd_project_list(args):
    """List the variable names of a project."""
    from cryptenv.secrets.workflows.secret_operations import project_variables

    for variable, secret_name in project_variables(_load_config(args), Path.cwd(), args.project):
        print(f"{variable}={secret_name}" if args.secrets else variable)


def cmd_project_export(args):
    """Print a project's decrypted variables in KEY=VALUE form."""
    from cryptenv.secrets.workflows.secret_operations import export_project

    config = _load_config(args)
    print(export_project(config, _load_store(), Path.cwd(), args.project), end="")


def cmd_profile_list(args):
    """List the variable names of a profile."""
    from cryptenv.secrets.workflows.secret_operations import profile_variables

    for variable, secret_name in profile_variables(_load_config(args), args.profile):
        print(f"{variable}={secret_name}" if args.secrets else variable)


def cmd_config_set_path(args):
    """Set config file path preference."""
    from cryptenv.secrets.domains.preferences import set_preference

    config_path = Path(args.path).expanduser().resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path and where it came from."""
    import os
    from cryptenv.secrets.domains.config_loader import CONFIG_ENV_VAR, get_config_path
    from cryptenv.secrets.domains.preferences import get_preference

    config_path = get_config_path(args.config)
    if args.config:
        source = "argument"
    elif os.getenv(CONFIG_ENV_VAR):
        source = "environment"
    elif get_preference("config_path") == str(config_path):
        source = "preference"
    else:
        source = "default"

    suffix = "" if config_path.exists() else " (file not found)"
    print(f"Config path: {config_path}")
    print(f"Source: {source}{suffix}")


def cmd_config_clear(args):
    """Clear config path preference."""
    from cryptenv.secrets.domains.locations import default_config_path
    from cryptenv.secrets.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="cryptenv",
        description="cryptenv - encrypted per-directory environment variables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (missing secret or project, decryption failure, failed check, etc.)
  2 - Usage error (invalid arguments, invalid secret name format, etc.)

Environment variables:
  CRYPTENV_CONFIG   - config file path (overrides preference and default)
  CRYPTENV_DATA_DIR - directory holding store.json and the fallback key file

Configuration:
  Default location: ~/.config/cryptenv/config.yml
  Custom path: Set with 'cryptenv config set-path <path>'

Shell setup:
  zsh:  eval "$(cryptenv init zsh)"
  bash: eval "$(cryptenv init bash)"
  fish: cryptenv init fish | source
        """
    )
    parser.add_argument("--config", help="Path to config file (YAML, or TOML with a .toml suffix)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("version", help="Show version information")

    subparsers.add_parser(
        "check",
        help="Check that every project's secrets exist in the store",
        description="Checks every project and makes sure the secrets it references are all in the store."
    )

    init_parser = subparsers.add_parser(
        "init",
        help="Print the shell hook",
        description="Print a hook that reloads the environment whenever the directory changes."
    )
    init_parser.add_argument("shell", choices=SHELLS)

    # env command
    env_parser = subparsers.add_parser(
        "env",
        help="Manage secrets in the store",
        description="Add, read and list encrypted secrets"
    )
    env_subparsers = env_parser.add_subparsers(dest="env_command")

    env_add_parser = env_subparsers.add_parser(
        "add",
        help="Add a secret",
        description="Encrypt a value and store it. Names are uppercased."
    )
    env_add_parser.add_argument("name", help="Secret name (automatically uppercased)")
    env_add_parser.add_argument("value", help="Secret value")
    env_add_parser.add_argument(
        "-o", "--overwrite",
        action="store_true",
        help="Replace the value if it already exists. The old value is lost."
    )

    env_get_parser = env_subparsers.add_parser("get", help="Print a decrypted secret")
    env_get_parser.add_argument("name", help="Secret name (case-insensitive)")

    env_list_parser = env_subparsers.add_parser("list", help="List secret names")
    env_list_parser.add_argument(
        "-d", "--decrypt",
        action="store_true",
        help="Print NAME=VALUE with decrypted values"
    )

    # project command
    project_parser = subparsers.add_parser(
        "project",
        help="Work with projects",
        description="Resolve and load project environments"
    )
    project_subparsers = project_parser.add_subparsers(dest="project_command")

    project_load_parser = project_subparsers.add_parser(
        "load",
        help="Print shell statements for the current project",
        description="""
Print the statements that set the current project's variables and unset every
other variable declared in the config. Normally called by the shell hook.
        """
    )
    project_load_parser.add_argument("shell", choices=SHELLS)
    project_load_parser.add_argument("--project", help="Load this project instead of the one for the current directory")

    project_subparsers.add_parser(
        "name",
        help="Print the project name for the current directory",
        description="Exits with status 1 when the current directory is not in a project."
    )

    project_list_parser = project_subparsers.add_parser("list", help="List a project's variable names")
    project_list_parser.add_argument("project", nargs="?", help="Project name (default: current directory)")
    project_list_parser.add_argument("-s", "--secrets", action="store_true", help="Show the secret each variable maps to")

    project_export_parser = project_subparsers.add_parser(
        "export",
        help="Print a project's variables as KEY=VALUE",
        description="Print decrypted variables in the KEY=VALUE format used by .env files."
    )
    project_export_parser.add_argument("project", nargs="?", help="Project name (default: current directory)")

    # profile command
    profile_parser = subparsers.add_parser("profile", help="Work with profiles")
    profile_subparsers = profile_parser.add_subparsers(dest="profile_command")

    profile_list_parser = profile_subparsers.add_parser("list", help="List a profile's variable names")
    profile_list_parser.add_argument("profile", help="Profile name")
    profile_list_parser.add_argument("-s", "--secrets", action="store_true", help="Show the secret each variable maps to")

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage where cryptenv reads its configuration from"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute config path in ~/.config/cryptenv/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")

    subcommand_parsers = {
        "env": env_parser,
        "project": project_parser,
        "profile": profile_parser,
        "config": config_parser,
    }
    return parser, subcommand_parsers


HANDLERS = {
    ("version", None): cmd_version,
    ("check", None): cmd_check,
    ("init", None): cmd_init,
    ("env", "add"): cmd_env_add,
    ("env", "get"): cmd_env_get,
    ("env", "list"): cmd_env_list,
    ("project", "load"): cmd_project_load,
    ("project", "name"): cmd_project_name,
    ("project", "list"): cmd_project_list,
    ("project", "export"): cmd_project_export,
    ("profile", "list"): cmd_profile_list,
    ("config", "set-path"): cmd_config_set_path,
    ("config", "show"): cmd_config_show,
    ("config", "clear"): cmd_config_clear,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (missing secret or project, decryption failure, failed check)
        2 - Usage errors (invalid arguments, invalid secret name format, etc.)
    """
    parser, subcommand_parsers = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    # If no command provided, show help and exit with usage error code
    if not args.command:
        parser.print_help()
        sys.exit(2)

    subcommand = getattr(args, f"{args.command}_command", None)
    handler = HANDLERS.get((args.command, subcommand))
    if handler is None:
        subcommand_parsers.get(args.command, parser).print_help()
        sys.exit(2)

    try:
        handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except CryptenvError as e:
        print(f"Error: {e}", file=sys.stderr)
        if e.hint:
            print(f"Hint: {e.hint}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.debug("Unexpected error", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
