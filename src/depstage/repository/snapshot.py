"""Snapshot metadata (``maven-metadata.xml``) parsing and version selection."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

from depstage.constants import Constants


class UnsafeXmlError(ValueError):
    """The document declares a DOCTYPE or entities."""


def _refuse_declaration(*_args) -> None:
    raise UnsafeXmlError("DOCTYPE and entity declarations are not allowed")


class _RefusingTreeBuilder(ET.TreeBuilder):
    """Tree builder that aborts the parse at the first document type declaration."""

    def doctype(self, name, pubid, system):  # pylint: disable=unused-argument
        _refuse_declaration()


def parse_untrusted_xml(data) -> ET.Element:
    """Parse an untrusted XML document with DOCTYPE and entity declarations disabled.

    The check runs on parser events, after the document has been decoded, so
    it holds for every encoding the parser accepts.

    Raises:
        UnsafeXmlError: if the document contains a DOCTYPE or ENTITY declaration.
        xml.etree.ElementTree.ParseError: if the document is not well-formed.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    parser = ET.XMLParser(target=_RefusingTreeBuilder())
    # The pure-Python parser exposes its expat instance; refuse there as early as possible.
    expat = getattr(parser, "parser", None)
    if expat is not None:
        expat.StartDoctypeDeclHandler = _refuse_declaration
        expat.EntityDeclHandler = _refuse_declaration
    parser.feed(raw)
    return parser.close()


def local_name(tag) -> str:
    """Strip an ElementTree ``{namespace}`` prefix from a tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    value = elem.text.strip()
    return value or None


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem:
        if local_name(child.tag) == name:
            return child
    return None


def _first(root: ET.Element, name: str) -> Optional[ET.Element]:
    for elem in root.iter():
        if local_name(elem.tag) == name:
            return elem
    return None


def _trailing_build(value: str) -> int:
    """Build number encoded after the last dash of a timestamped version, else 0."""
    index = value.rfind("-")
    if index == -1 or index == len(value) - 1:
        return 0
    try:
        return int(value[index + 1:])
    except ValueError:
        return 0


@dataclass(frozen=True)
class SnapshotVersion:
    """One ``<snapshotVersion>`` entry."""

    classifier: Optional[str]
    extension: str
    value: str
    build: int = 0

    def matches(self, classifier: Optional[str], extension: str) -> bool:
        return (self.classifier or None) == (classifier or None) and self.extension == extension


@dataclass(frozen=True)
class SnapshotMetadata:
    """Parsed per-version snapshot metadata."""

    timestamp: Optional[str] = None
    build_number: Optional[str] = None
    versions: List[SnapshotVersion] = field(default_factory=list)

    def find_snapshot_version(self, classifier: Optional[str], extension: str) -> Optional[str]:
        """Newest entry for the classifier/extension: highest build, then greatest value."""
        candidates = [v for v in self.versions if v.matches(classifier, extension)]
        if not candidates:
            return None
        return max(candidates, key=lambda v: (v.build, v.value)).value

    def timestamped_version(self, version: str) -> Optional[str]:
        if self.timestamp is None or self.build_number is None:
            return None
        return version.replace(Constants.SNAPSHOT_SUFFIX, f"{self.timestamp}-{self.build_number}")

    def select(self, version: str, classifier: Optional[str], extension: str) -> Optional[str]:
        """Concrete version string for a file, or None when nothing matches."""
        return self.find_snapshot_version(classifier, extension) or self.timestamped_version(version)


def parse_snapshot_metadata(data) -> SnapshotMetadata:
    """Parse a ``maven-metadata.xml`` document.

    Entries missing an extension or value are skipped.
    """
    root = parse_untrusted_xml(data)

    timestamp = build_number = None
    snapshot = _first(root, "snapshot")
    if snapshot is not None:
        timestamp = _text(_child(snapshot, "timestamp"))
        build_number = _text(_child(snapshot, "buildNumber"))

    versions: List[SnapshotVersion] = []
    for elem in root.iter():
        if local_name(elem.tag) != "snapshotVersion":
            continue
        extension = _text(_child(elem, "extension"))
        value = _text(_child(elem, "value"))
        if extension is None or value is None:
            continue
        versions.append(SnapshotVersion(
            classifier=_text(_child(elem, "classifier")),
            extension=extension,
            value=value,
            build=_trailing_build(value),
        ))

    return SnapshotMetadata(timestamp=timestamp, build_number=build_number, versions=versions)
