"""Maven-layout repository with snapshot metadata negotiation."""
from __future__ import annotations

import logging
import threading
import xml.etree.ElementTree as ET
from typing import Dict

from depstage.constants import Constants
from depstage.common import http_client
from depstage.common.logging_utils import extra_context, is_debug_enabled, safe_url
from depstage.coordinates import Coordinate
from depstage.exceptions import DownloadFailure, ResolutionError
from depstage.repository.base import Repository
from depstage.repository.snapshot import SnapshotMetadata, UnsafeXmlError, parse_snapshot_metadata

logger = logging.getLogger(__name__)


def normalize_repository_url(url: str) -> str:
    url = url.strip()
    if not url:
        raise ValueError("Repository URL must not be empty")
    return url if url.endswith("/") else url + "/"


class MavenRepository(Repository):
    """Repository following the Maven 2 directory layout.

    Release coordinates map to URLs by string concatenation. Snapshot
    coordinates first fetch ``maven-metadata.xml`` from the version directory
    and substitute the selected timestamped version into the file name, while
    the directory keeps the literal ``-SNAPSHOT`` version.
    """

    def __init__(self, url: str) -> None:
        self._url = normalize_repository_url(url)
        # Parsed metadata per version directory; the artifact and checksum URL
        # of one snapshot share a single fetch.
        self._metadata_cache: Dict[str, SnapshotMetadata] = {}
        self._metadata_cache_lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._url

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MavenRepository):
            return NotImplemented
        return self._url == other._url

    def __hash__(self) -> int:
        return hash(self._url)

    def __repr__(self) -> str:
        return f"MavenRepository({self._url!r})"

    def resolve_artifact_url(self, coordinate: Coordinate) -> str:
        if coordinate.is_snapshot:
            return self._resolve_snapshot(coordinate, Constants.JAR_EXTENSION)
        return f"{self._url}{coordinate.repository_path}.{Constants.JAR_EXTENSION}"

    def resolve_descriptor_url(self, coordinate: Coordinate) -> str:
        if coordinate.is_snapshot:
            return self._resolve_snapshot(coordinate, Constants.POM_EXTENSION)
        return f"{self._url}{coordinate.repository_path}.{Constants.POM_EXTENSION}"

    def resolve_checksum_url(self, coordinate: Coordinate) -> str:
        return f"{self.resolve_artifact_url(coordinate)}.{Constants.CHECKSUM_EXTENSION}"

    def clear_metadata_cache(self) -> None:
        with self._metadata_cache_lock:
            self._metadata_cache.clear()

    def _resolve_snapshot(self, coordinate: Coordinate, extension: str) -> str:
        metadata = self.load_snapshot_metadata(coordinate)
        version = metadata.select(coordinate.version, coordinate.classifier, extension)
        if version is None:
            raise ResolutionError(
                f"Error finding snapshot version for dependency {coordinate} ({extension}) in {self._url}"
            )
        classifier = f"-{coordinate.classifier}" if coordinate.classifier else ""
        file_name = f"{coordinate.artifact_id}-{version}{classifier}.{extension}"
        return f"{self._url}{coordinate.directory_path}/{file_name}"

    def load_snapshot_metadata(self, coordinate: Coordinate) -> SnapshotMetadata:
        """Fetch and parse the version directory's metadata (cached per instance).

        Raises:
            ResolutionError: on HTTP status >= 400, transport failure or malformed XML.
        """
        key = coordinate.directory_path
        with self._metadata_cache_lock:
            cached = self._metadata_cache.get(key)
        if cached is not None:
            return cached

        url = f"{self._url}{key}/{Constants.METADATA_FILE}"
        if is_debug_enabled(logger):
            logger.debug(
                "Fetching snapshot metadata",
                extra=extra_context(
                    event="function_entry", component="repository", action="fetch_metadata",
                    target=safe_url(url),
                ),
            )
        try:
            payload = http_client.fetch_bytes(url, context="snapshot metadata")
        except DownloadFailure as exc:
            status = f" ({exc.status_code})" if exc.status_code else ""
            raise ResolutionError(
                f"Error fetching snapshot metadata{status}: {safe_url(url)}",
                url=url, status_code=exc.status_code,
            ) from exc

        try:
            metadata = parse_snapshot_metadata(payload)
        except (ET.ParseError, UnsafeXmlError) as exc:
            raise ResolutionError(f"Malformed snapshot metadata at {safe_url(url)}: {exc}", url=url) from exc

        with self._metadata_cache_lock:
            self._metadata_cache[key] = metadata
        return metadata
