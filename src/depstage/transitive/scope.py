"""Maven dependency scopes."""
from __future__ import annotations

from enum import Enum


class MavenScope(Enum):
    """The classpath a declared dependency belongs to."""

    COMPILE = "compile"
    PROVIDED = "provided"
    RUNTIME = "runtime"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, scope: str) -> "MavenScope":
        """Case-insensitive lookup.

        Raises:
            ValueError: if ``scope`` is not a known Maven scope.
        """
        wanted = (scope or "").strip().lower()
        for member in cls:
            if member.value == wanted:
                return member
        raise ValueError(f"Unknown scope: {scope}")
