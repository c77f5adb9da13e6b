"""Relocation rules and the transform contract applied to downloaded archives."""
from __future__ import annotations

import logging
import os
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Relocation:
    """Rewrite of a dotted package prefix, e.g. ``com.google.gson`` -> ``shaded.gson``."""

    pattern: str
    relocated_pattern: str

    def __post_init__(self) -> None:
        if not self.pattern.strip() or not self.relocated_pattern.strip():
            raise ValueError("Relocation prefixes must not be empty")

    @classmethod
    def parse(cls, text: str, default_prefix: Optional[str] = None) -> "Relocation":
        """Parse ``from:to``; a bare ``from`` relocates under ``default_prefix``."""
        parts = [p.strip() for p in text.strip().split(":")]
        if len(parts) == 2:
            return cls(parts[0], parts[1])
        if len(parts) == 1 and default_prefix:
            return cls(parts[0], f"{default_prefix}.{parts[0]}")
        raise ValueError(f"Invalid relocation {text!r}; expected from:to")

    def __str__(self) -> str:
        return f"{self.pattern}:{self.relocated_pattern}"


class Relocator(ABC):
    """Transform producing a relocated copy of an archive."""

    @abstractmethod
    def relocate(self, source: Path, destination: Path, rules: Sequence[Relocation]) -> None:
        """Write the relocated form of ``source`` to ``destination``."""


class ArchiveRelocator(Relocator):
    """Renames archive entries whose path falls under a relocated package.

    Entry contents are copied unchanged; rewriting references inside compiled
    code is left to richer relocators. The destination only appears once the
    copy is complete.
    """

    @staticmethod
    def _rewrite(name: str, rules: Sequence[Relocation]) -> str:
        for rule in rules:
            prefix = rule.pattern.replace(".", "/") + "/"
            if name.startswith(prefix):
                return rule.relocated_pattern.replace(".", "/") + "/" + name[len(prefix):]
        return name

    def relocate(self, source: Path, destination: Path, rules: Sequence[Relocation]) -> None:
        source, destination = Path(source), Path(destination)
        partial = destination.with_name(destination.name + ".part")
        try:
            with zipfile.ZipFile(source) as src, zipfile.ZipFile(partial, "w", zipfile.ZIP_DEFLATED) as dst:
                written = set()
                for info in src.infolist():
                    name = self._rewrite(info.filename, rules)
                    if name in written:
                        continue
                    written.add(name)
                    entry = zipfile.ZipInfo(name, date_time=info.date_time)
                    entry.compress_type = info.compress_type
                    entry.external_attr = info.external_attr
                    dst.writestr(entry, src.read(info))
            os.replace(partial, destination)
        except BaseException:
            try:
                partial.unlink()
            except FileNotFoundError:
                pass
            raise
        logger.debug("Relocated %s -> %s using %d rules", source, destination, len(rules))
