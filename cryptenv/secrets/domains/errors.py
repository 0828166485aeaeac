"""Error types for cryptenv.

Library code raises these; only the CLI turns them into messages and exit codes.
"""
from typing import Optional


class CryptenvError(Exception):
    """Base class for all cryptenv errors."""

    hint: Optional[str] = None

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        if hint is not None:
            self.hint = hint


class ConfigError(CryptenvError):
    """Configuration error exception."""
    pass


class ConfigUnreadable(ConfigError):
    """Config file is missing or cannot be read."""
    pass


class ConfigMalformed(ConfigError):
    """Config file was read but does not have the expected shape."""
    pass


class KeyUnavailable(CryptenvError):
    """Neither the OS keyring nor the fallback key file could provide a key."""

    hint = "the encryption key is missing or inaccessible; restore it or re-add values"


class StoreError(CryptenvError):
    """Secret store could not be read or updated."""
    pass


class StoreCorrupted(StoreError):
    """Store file exists but could not be parsed."""

    hint = "the store file is not valid JSON; restore it from a backup"


class SecretExists(StoreError):
    """Secret already exists and overwriting was not requested."""

    hint = "use --overwrite to replace it"


class SecretNotFound(CryptenvError):
    """Secret name is not present in the store."""

    def __init__(self, name: str):
        super().__init__(f"secret {name} not found")
        self.name = name


class DecryptError(CryptenvError):
    """Stored ciphertext could not be turned back into a value."""
    pass


class InvalidBase64(DecryptError):
    hint = "stored data appears corrupted; re-add the secret"


class CiphertextTooShort(DecryptError):
    hint = "stored data appears corrupted; re-add the secret"


class AuthenticationFailed(DecryptError):
    hint = "the encryption key may not match the store; re-add values or restore the key"


class InvalidUtf8(DecryptError):
    hint = "stored data is not valid utf8; re-add the secret"


class ProjectError(CryptenvError):
    """Project or profile lookup failed."""
    pass


class ProjectNotFound(ProjectError):
    """A named project was requested and is not declared in the config."""

    def __init__(self, name: str):
        super().__init__(f"project {name} not found")
        self.name = name


class NotInAProject(ProjectError):
    """The working directory is not below any configured root."""

    def __init__(self, cwd):
        super().__init__(f"{cwd} is not inside a configured project directory")
        self.cwd = cwd


class ProfileNotFound(ProjectError):
    """A named profile was requested and is not declared in the config."""

    def __init__(self, name: str):
        super().__init__(f"profile {name} not found")
        self.name = name
