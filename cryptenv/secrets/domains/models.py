"""Domain models for secret management."""
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


# Variable and secret names are emitted unquoted as shell variable names
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def wipe(buffer: bytearray) -> None:
    """Overwrite every byte of a mutable buffer with zeros."""
    for i in range(len(buffer)):
        buffer[i] = 0


class EncryptionKey:
    """
    The 256-bit symmetric key, held in a wipeable buffer.

    Use as a context manager; the buffer is zeroed when the block exits,
    whether it returns normally or raises.
    """

    SIZE = 32

    def __init__(self, material):
        self._material = bytearray(material)
        if len(self._material) != self.SIZE:
            size = len(self._material)
            wipe(self._material)
            raise ValueError(f"Encryption key must be {self.SIZE} bytes, got {size}")

    @property
    def material(self) -> bytearray:
        return self._material

    @property
    def wiped(self) -> bool:
        return not any(self._material)

    def wipe(self) -> None:
        wipe(self._material)

    def __enter__(self) -> "EncryptionKey":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return "EncryptionKey(<redacted>)"


class DecryptedSecret:
    """
    A plaintext secret value, wiped when its ``with`` block exits.

    Only the UTF-8 buffer owned here can be wiped; ``str`` copies handed out
    by :attr:`value` are immutable and live until garbage collected.
    """

    def __init__(self, name: str, plaintext: bytearray):
        self.name = name
        self._plaintext = plaintext

    @property
    def value(self) -> str:
        return self._plaintext.decode("utf-8")

    def wipe(self) -> None:
        wipe(self._plaintext)

    def __enter__(self) -> "DecryptedSecret":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"DecryptedSecret(name={self.name!r}, value=<redacted>)"


@dataclass(frozen=True)
class EncryptedSecret:
    """A stored secret: base64 of nonce || AES-GCM ciphertext and tag."""
    name: str
    ciphertext: str


@dataclass
class ProjectBinding:
    """Variable bindings of one project, normalized from either config shape."""
    vars: Dict[str, str] = field(default_factory=dict)
    profiles: List[str] = field(default_factory=list)


@dataclass
class ConfigModel:
    """Declared project roots, profiles and per-project bindings."""
    roots: List[str] = field(default_factory=list)
    profiles: Dict[str, Dict[str, str]] = field(default_factory=dict)
    projects: Dict[str, ProjectBinding] = field(default_factory=dict)
    source: Optional[Path] = None

    def root_paths(self) -> List[Path]:
        """Configured roots with ``~`` expanded, in declared order."""
        return [Path(os.path.normpath(os.path.expanduser(root))) for root in self.roots]

    def all_variable_names(self) -> set:
        """Every variable name bound anywhere in the config."""
        names = set()
        for bindings in self.profiles.values():
            names.update(bindings)
        for binding in self.projects.values():
            names.update(binding.vars)
        return names


@dataclass
class ResolvedProject:
    """
    Effective variable -> secret mapping for one project.

    ``sources`` maps each variable to the profile it came from, or None for a
    direct project binding. ``missing_profiles`` lists referenced profiles that
    are not declared.
    """
    name: str
    variables: Dict[str, str] = field(default_factory=dict)
    sources: Dict[str, Optional[str]] = field(default_factory=dict)
    missing_profiles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Finding:
    """One problem reported by the consistency check."""
    project: str
    secret_name: Optional[str] = None
    variable: Optional[str] = None
    profile: Optional[str] = None
    kind: str = "missing_secret"  # "missing_secret" or "missing_profile"

    def describe(self) -> str:
        if self.kind == "missing_profile":
            return f"profile {self.profile} referenced by project {self.project} is not defined"
        origin = f" (via profile {self.profile})" if self.profile else ""
        return (
            f"variable {self.secret_name} defined in project {self.project}{origin} "
            f"not found in store"
        )
