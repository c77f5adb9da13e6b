"""Extraction of declared dependencies and repositories from a POM descriptor.

Only a practical subset of the POM model is honoured: the direct children of
the top-level ``<dependencies>`` and ``<repositories>`` blocks, with
``${project.groupId}`` and ``${project.version}`` substituted from the owning
coordinate. Dependency management, parents, exclusions and other properties
are not interpreted.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from depstage.coordinates import Coordinate
from depstage.repository.snapshot import local_name, parse_untrusted_xml
from depstage.transitive.scope import MavenScope

logger = logging.getLogger(__name__)

PROJECT_GROUP_ID = "${project.groupId}"
PROJECT_VERSION = "${project.version}"


@dataclass(frozen=True)
class DeclaredDependency:
    """One ``<dependency>`` entry after property substitution."""

    group_id: str
    artifact_id: str
    version: str
    scope: MavenScope = MavenScope.COMPILE
    classifier: Optional[str] = None

    def to_coordinate(self) -> Coordinate:
        return Coordinate(self.group_id, self.artifact_id, self.version, self.classifier)


@dataclass
class Descriptor:
    dependencies: List[DeclaredDependency] = field(default_factory=list)
    repositories: List[str] = field(default_factory=list)


def _child_text(elem, name: str) -> str:
    for child in elem:
        if local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _substitute(value: str, owner: Coordinate) -> str:
    return value.replace(PROJECT_GROUP_ID, owner.group_id).replace(PROJECT_VERSION, owner.version)


def _parse_scope(raw: str) -> MavenScope:
    if not raw:
        return MavenScope.COMPILE
    try:
        return MavenScope.from_string(raw)
    except ValueError:
        logger.debug("Unparsable scope %r, assuming compile", raw)
        return MavenScope.COMPILE


def parse_descriptor(data, owner: Coordinate) -> Descriptor:
    """Parse a POM document owned by ``owner``.

    Entries without a groupId or artifactId are skipped. Entries whose version
    is empty are kept with an empty version; callers filter them out.

    Raises:
        xml.etree.ElementTree.ParseError: malformed document.
        UnsafeXmlError: the document declares a DOCTYPE or entities.
    """
    root = parse_untrusted_xml(data)
    descriptor = Descriptor()

    for block in root:
        name = local_name(block.tag)
        if name == "repositories":
            for repo in block:
                url = _child_text(repo, "url")
                if url:
                    descriptor.repositories.append(url)
        elif name == "dependencies":
            for dep in block:
                if local_name(dep.tag) != "dependency":
                    continue
                group_id = _substitute(_child_text(dep, "groupId"), owner)
                artifact_id = _child_text(dep, "artifactId")
                if not group_id or not artifact_id:
                    logger.debug("Skipping dependency without groupId/artifactId in %s", owner)
                    continue
                descriptor.dependencies.append(DeclaredDependency(
                    group_id=group_id,
                    artifact_id=artifact_id,
                    version=_substitute(_child_text(dep, "version"), owner),
                    scope=_parse_scope(_child_text(dep, "scope")),
                    classifier=_child_text(dep, "classifier") or None,
                ))

    return descriptor
