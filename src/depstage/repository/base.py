"""Repository contract: map a coordinate to artifact, descriptor and checksum URLs."""
from __future__ import annotations

from abc import ABC, abstractmethod

from depstage.coordinates import Coordinate


class Repository(ABC):
    """A remote source of artifacts laid out by coordinate.

    Implementations may raise ``ResolutionError`` from any resolve method.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Base URL, always ending with ``/``."""

    @abstractmethod
    def resolve_artifact_url(self, coordinate: Coordinate) -> str:
        """URL of the primary archive."""

    @abstractmethod
    def resolve_descriptor_url(self, coordinate: Coordinate) -> str:
        """URL of the POM descriptor."""

    @abstractmethod
    def resolve_checksum_url(self, coordinate: Coordinate) -> str:
        """URL of the archive's SHA-1 checksum file."""

    def __str__(self) -> str:
        return self.url
