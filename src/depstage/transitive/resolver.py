"""Transitive dependency discovery via POM descriptors."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, Optional, Sequence

from depstage.constants import Constants
from depstage.common import http_client
from depstage.common.logging_utils import extra_context, is_debug_enabled, safe_url
from depstage.common.ordered_set import OrderedSet
from depstage.coordinates import Coordinate
from depstage.exceptions import (
    ArtifactNotFound,
    DescriptorNotFound,
    ResolutionError,
    TransitiveDepthExceeded,
)
from depstage.repository import Repository, maven, maven_central
from depstage.repository.snapshot import UnsafeXmlError
from depstage.transitive.pom import Descriptor, parse_descriptor
from depstage.transitive.scope import MavenScope

logger = logging.getLogger(__name__)

_MISSING_STATUSES = (404, 410)


class TransitiveResolver:
    """Expands a coordinate into the flat list of its declared dependencies.

    Each descriptor is looked up in the search repositories in order; a
    missing descriptor moves on to the next repository and any other failure
    propagates. When ``recursive`` is set, repositories declared by a
    descriptor join the search set for its children, and every discovered
    coordinate is expanded exactly once. Expansion is bounded by
    ``max_depth`` and ``max_nodes``.
    """

    def __init__(
        self,
        recursive: bool = True,
        scopes: Iterable[MavenScope] = (MavenScope.COMPILE,),
        repositories: Optional[Iterable[Repository]] = None,
        max_depth: Optional[int] = None,
        max_nodes: Optional[int] = None,
    ) -> None:
        self.recursive = recursive
        self.scopes = tuple(OrderedSet(scopes))
        repos = OrderedSet(repositories) if repositories is not None else OrderedSet([maven_central()])
        if not repos:
            repos.add(maven_central())
        self.repositories = tuple(repos)
        self.max_depth = max_depth if max_depth is not None else Constants.TRANSITIVE_MAX_DEPTH
        self.max_nodes = max_nodes if max_nodes is not None else Constants.TRANSITIVE_MAX_NODES

    @classmethod
    def builder(cls) -> "TransitiveResolverBuilder":
        return TransitiveResolverBuilder()

    def resolve(self, coordinate: Coordinate) -> List[Coordinate]:
        """Return the discovered coordinates in discovery order, without duplicates.

        Raises:
            DescriptorNotFound: no search repository has a descriptor for a node.
            TransitiveDepthExceeded: the expansion exceeded its bounds.
            DownloadFailure, ResolutionError: any other lookup failure.
        """
        found: OrderedSet[Coordinate] = OrderedSet()
        self._expand(coordinate, self.repositories, 0, coordinate, found)
        if is_debug_enabled(logger):
            logger.debug(
                "Transitive resolution finished",
                extra=extra_context(
                    event="function_exit", component="transitive", action="resolve",
                    outcome="success", count=len(found), target=str(coordinate),
                ),
            )
        return found.snapshot()

    def _expand(
        self,
        coordinate: Coordinate,
        repositories: Sequence[Repository],
        depth: int,
        root: Coordinate,
        found: OrderedSet,
    ) -> None:
        descriptor = self.fetch_descriptor(coordinate, repositories)
        discovered = []
        for dep in descriptor.dependencies:
            if dep.scope not in self.scopes or not dep.version:
                continue
            child = dep.to_coordinate()
            if child == root:
                continue
            if found.add(child):
                discovered.append(child)
        if len(found) > self.max_nodes:
            raise TransitiveDepthExceeded(
                f"Transitive expansion of {root} exceeded {self.max_nodes} coordinates"
            )

        if not self.recursive or not discovered:
            return
        if depth + 1 > self.max_depth:
            raise TransitiveDepthExceeded(
                f"Transitive expansion of {root} exceeded depth {self.max_depth} at {coordinate}"
            )

        search: OrderedSet[Repository] = OrderedSet([maven_central()])
        search.update(maven(url) for url in descriptor.repositories)
        search.update(self.repositories)
        search_list = search.snapshot()
        for child in discovered:
            self._expand(child, search_list, depth + 1, root, found)

    def fetch_descriptor(self, coordinate: Coordinate, repositories: Sequence[Repository]) -> Descriptor:
        """Fetch and parse the first descriptor found in ``repositories``."""
        for repository in repositories:
            try:
                url = repository.resolve_descriptor_url(coordinate)
                payload = http_client.fetch_bytes(url, context="descriptor")
            except ArtifactNotFound:
                continue
            except ResolutionError as exc:
                # A snapshot version directory that does not exist is a missing descriptor too.
                if exc.status_code in _MISSING_STATUSES:
                    continue
                raise

            if is_debug_enabled(logger):
                logger.debug(
                    "Descriptor found",
                    extra=extra_context(
                        event="decision", component="transitive", action="fetch_descriptor",
                        outcome="found", target=safe_url(url),
                    ),
                )
            try:
                return parse_descriptor(payload, coordinate)
            except (ET.ParseError, UnsafeXmlError) as exc:
                raise ResolutionError(f"Malformed descriptor at {safe_url(url)}: {exc}", url=url) from exc

        raise DescriptorNotFound(coordinate, repositories)


class TransitiveResolverBuilder:
    """Fluent construction with defaults: recursive, compile scope, central only.

    Scopes and repositories accumulate; duplicates are ignored.
    """

    def __init__(self) -> None:
        self._recursive = True
        self._scopes: OrderedSet[MavenScope] = OrderedSet([MavenScope.COMPILE])
        self._repositories: OrderedSet[Repository] = OrderedSet([maven_central()])
        self._max_depth: Optional[int] = None
        self._max_nodes: Optional[int] = None

    def recursively(self, recursive: bool) -> "TransitiveResolverBuilder":
        self._recursive = recursive
        return self

    def scopes(self, *scopes) -> "TransitiveResolverBuilder":
        for scope in scopes:
            self._scopes.add(scope if isinstance(scope, MavenScope) else MavenScope.from_string(scope))
        return self

    def repositories(self, *repositories) -> "TransitiveResolverBuilder":
        for repo in repositories:
            self._repositories.add(repo if isinstance(repo, Repository) else maven(repo))
        return self

    def limits(self, max_depth: Optional[int] = None, max_nodes: Optional[int] = None) -> "TransitiveResolverBuilder":
        self._max_depth = max_depth
        self._max_nodes = max_nodes
        return self

    def build(self) -> TransitiveResolver:
        return TransitiveResolver(
            recursive=self._recursive,
            scopes=self._scopes.snapshot(),
            repositories=self._repositories.snapshot(),
            max_depth=self._max_depth,
            max_nodes=self._max_nodes,
        )
