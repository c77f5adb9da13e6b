"""Maven-style artifact coordinates."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from depstage.constants import Constants


@dataclass(frozen=True)
class Coordinate:
    """Identity of an artifact: ``groupId:artifactId:version[:classifier]``.

    Equality and hashing are structural over all four fields. A blank
    classifier is normalized to None.
    """

    group_id: str
    artifact_id: str
    version: str
    classifier: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("group_id", "artifact_id", "version"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Coordinate {name} must be a non-empty string, got {value!r}")
            object.__setattr__(self, name, value.strip())
        classifier = self.classifier.strip() if isinstance(self.classifier, str) else None
        object.__setattr__(self, "classifier", classifier or None)

    @classmethod
    def parse(cls, text: str) -> "Coordinate":
        """Parse ``group:artifact:version`` or ``group:artifact:version:classifier``."""
        parts = text.strip().split(":")
        if len(parts) not in (3, 4):
            raise ValueError(f"Invalid coordinate {text!r}; expected group:artifact:version[:classifier]")
        return cls(*parts)

    @property
    def is_snapshot(self) -> bool:
        return self.version.endswith(Constants.SNAPSHOT_SUFFIX)

    @property
    def group_path(self) -> str:
        return self.group_id.replace(".", "/")

    @property
    def directory_path(self) -> str:
        """Repository-relative directory holding every file of this version."""
        return f"{self.group_path}/{self.artifact_id}/{self.version}"

    @property
    def repository_path(self) -> str:
        """Canonical repository-relative path without extension."""
        suffix = f"-{self.classifier}" if self.classifier else ""
        return f"{self.directory_path}/{self.artifact_id}-{self.version}{suffix}"

    def cache_file_name(self, relocated: bool = False) -> str:
        """Deterministic local file name for the downloaded archive."""
        suffix = f"-{self.classifier}" if self.classifier else ""
        marker = Constants.RELOCATED_SUFFIX if relocated else ""
        return f"{self.group_id}.{self.artifact_id}-{self.version}{suffix}{marker}.{Constants.JAR_EXTENSION}"

    def __str__(self) -> str:
        base = f"{self.group_id}:{self.artifact_id}:{self.version}"
        return f"{base}:{self.classifier}" if self.classifier else base
