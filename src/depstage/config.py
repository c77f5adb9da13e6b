"""Declared runtime-library configuration read from a resource directory.

The directory holds plain-text lists (one entry per line) and a small
properties block:

- ``repositories.txt``: repository base URLs
- ``dependencies.txt``: ``groupId:artifactId:version[:classifier]``
- ``relocations.txt``: ``fromPrefix:toPrefix``
- ``depstage.properties``: ``libs-folder`` and ``relocation-prefix``

A missing list file is an empty list; a missing properties file is fatal.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

from depstage.constants import Constants
from depstage.coordinates import Coordinate
from depstage.exceptions import ConfigurationError
from depstage.relocation import Relocation
from depstage.repository import MavenRepository, maven

logger = logging.getLogger(__name__)

T = TypeVar("T")

LIBS_FOLDER_KEY = "libs-folder"
RELOCATION_PREFIX_KEY = "relocation-prefix"


def parse_properties(text: str) -> Dict[str, str]:
    """Parse a Java-style properties block.

    Supports ``key=value``, ``key: value`` and ``key value`` separators and
    ``#``/``!`` comment lines. Line continuations are not supported.
    """
    props: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line[0] in "#!":
            continue
        cut = len(line)
        for i, ch in enumerate(line):
            if ch in "=:" or ch.isspace():
                cut = i
                break
        key = line[:cut].strip()
        value = line[cut:].lstrip()
        if value[:1] in ("=", ":"):
            value = value[1:]
        props[key] = value.strip()
    return props


def _read_lines(path: Path) -> List[str]:
    if not path.is_file():
        return []
    with open(path, encoding="utf-8") as fh:
        return [line.strip() for line in fh]


def _parse_list(path: Path, parse: Callable[[str], T]) -> List[T]:
    items: List[T] = []
    for number, line in enumerate(_read_lines(path), start=1):
        if not line or line.startswith("#"):
            continue
        try:
            items.append(parse(line))
        except ValueError as exc:
            raise ConfigurationError(f"{path.name}:{number}: {exc}") from exc
    return items


@dataclass
class RuntimeLibConfiguration:
    """Everything the host declared about its runtime libraries."""

    libs_folder: str = Constants.DEFAULT_LIBS_FOLDER
    relocation_prefix: Optional[str] = None
    dependencies: List[Coordinate] = field(default_factory=list)
    repositories: List[MavenRepository] = field(default_factory=list)
    relocations: List[Relocation] = field(default_factory=list)

    @classmethod
    def parse(cls, directory) -> "RuntimeLibConfiguration":
        """Read the configuration files from ``directory``.

        Raises:
            ConfigurationError: the properties file is missing or a line is malformed.
        """
        directory = Path(directory)
        properties_path = directory / Constants.PROPERTIES_FILE
        if not properties_path.is_file():
            raise ConfigurationError(
                f"Generated configuration files are missing: {properties_path} not found"
            )
        props = parse_properties(properties_path.read_text(encoding="utf-8"))
        prefix = props.get(RELOCATION_PREFIX_KEY) or None

        config = cls(
            libs_folder=props.get(LIBS_FOLDER_KEY) or Constants.DEFAULT_LIBS_FOLDER,
            relocation_prefix=prefix,
            dependencies=_parse_list(directory / Constants.DEPENDENCIES_FILE, Coordinate.parse),
            repositories=_parse_list(directory / Constants.REPOSITORIES_FILE, maven),
            relocations=_parse_list(
                directory / Constants.RELOCATIONS_FILE,
                lambda line: Relocation.parse(line, default_prefix=prefix),
            ),
        )
        logger.debug(
            "Parsed configuration from %s: %d dependencies, %d repositories, %d relocations",
            directory, len(config.dependencies), len(config.repositories), len(config.relocations),
        )
        return config
