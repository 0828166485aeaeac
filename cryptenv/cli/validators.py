"""Input validation for CLI arguments."""
import sys

from cryptenv.secrets.domains.models import VARIABLE_NAME_PATTERN


def validate_secret_name(name: str) -> None:
    """
    Validate a secret name can be used as an environment variable name.

    Args:
        name: Secret name to validate

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name:
        print("Error: Secret name cannot be empty", file=sys.stderr)
        print("\nSecret names must match: [A-Za-z_][A-Za-z0-9_]*", file=sys.stderr)
        sys.exit(2)

    if not VARIABLE_NAME_PATTERN.fullmatch(name):
        print(f"Error: Invalid secret name '{name}'", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, underscores (_)", file=sys.stderr)
        print("Names cannot start with a number.", file=sys.stderr)
        print("\nExamples of valid names:", file=sys.stderr)
        print("  ✓ MY_SECRET", file=sys.stderr)
        print("  ✓ database_password_123", file=sys.stderr)
        print("\nExamples of invalid names:", file=sys.stderr)
        print("  ✗ api-key (contains hyphen)", file=sys.stderr)
        print("  ✗ MY SECRET (contains space)", file=sys.stderr)
        print("  ✗ 1PASSWORD (starts with a number)", file=sys.stderr)
        sys.exit(2)
