"""Resolution orchestrator: cache, download with repository fallback, relocate, stage.

Every declared dependency moves through
``PENDING -> CACHE_HIT | DOWNLOADING -> DOWNLOADED -> (RELOCATING -> RELOCATED) -> STAGED``
or ends in ``FAILED``. Downloads of distinct coordinates may run in a thread
pool; relocation and the hand-off to the code-loading target always happen
one at a time in declaration order.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from depstage.acquisition.download import DownloadResult, VerificationState, download_artifact
from depstage.common.logging_utils import extra_context, is_debug_enabled
from depstage.common.ordered_set import OrderedSet
from depstage.coordinates import Coordinate
from depstage.exceptions import (
    DependencyDownloadError,
    DepstageError,
    LoadingError,
    RelocationFailure,
)
from depstage.loading import CodeLoadingTarget
from depstage.relocation import ArchiveRelocator, Relocation, Relocator
from depstage.repository import Repository, maven, maven_central

logger = logging.getLogger(__name__)

Downloader = Callable[[Coordinate, Path, Repository], DownloadResult]


class DependencyState(Enum):
    PENDING = "pending"
    CACHE_HIT = "cache_hit"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    RELOCATING = "relocating"
    RELOCATED = "relocated"
    STAGED = "staged"
    FAILED = "failed"


@dataclass(frozen=True)
class ResolvedArtifact:
    """A local archive plus where it came from."""

    coordinate: Coordinate
    path: Path
    repository: Optional[Repository] = None
    cached: bool = False
    relocated: bool = False
    verification: Optional[VerificationState] = None


class OutcomeStatus(Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class ResolutionOutcome:
    """Result of a full ``load``.

    ``DEGRADED`` means the network was unavailable and nothing was staged;
    the host decides whether to keep starting. ``FATAL`` carries the error.
    """

    status: OutcomeStatus
    artifacts: Tuple[ResolvedArtifact, ...] = ()
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, artifacts: Sequence[ResolvedArtifact]) -> "ResolutionOutcome":
        return cls(OutcomeStatus.OK, tuple(artifacts))

    @classmethod
    def degraded(cls, reason: str, error: Optional[BaseException] = None) -> "ResolutionOutcome":
        return cls(OutcomeStatus.DEGRADED, (), reason, error)

    @classmethod
    def fatal(cls, error: BaseException) -> "ResolutionOutcome":
        return cls(OutcomeStatus.FATAL, (), str(error), error)

    @property
    def is_ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def paths(self) -> List[Path]:
        return [artifact.path for artifact in self.artifacts]

    def raise_for_error(self) -> None:
        """Re-raise the underlying error of a degraded or fatal outcome."""
        if self.error is not None:
            raise self.error


@dataclass
class _Acquired:
    path: Path
    repository: Optional[Repository] = None
    cached: bool = False
    relocated: bool = False
    verification: Optional[VerificationState] = None


class DependencyManager:
    """Resolves declared dependencies into staged local archives.

    Args:
        directory: Local cache folder holding one archive per dependency.
        target: Code-loading target receiving staged paths (defaults to ``sys.path``).
        relocator: Transform applied when relocation rules are configured.
        name: Host application name used as the log prefix.
        max_workers: Parallel downloads; 1 keeps everything sequential.
        downloader: Acquisition function, replaceable for tests.
    """

    def __init__(
        self,
        directory,
        target: Optional[CodeLoadingTarget] = None,
        relocator: Optional[Relocator] = None,
        name: str = "depstage",
        max_workers: int = 1,
        downloader: Downloader = download_artifact,
    ) -> None:
        self.directory = Path(directory)
        self._target = target
        self.relocator = relocator if relocator is not None else ArchiveRelocator()
        self.name = name
        self.max_workers = max(1, int(max_workers))
        self._download = downloader

        self._dependencies: List[Coordinate] = []
        self._repositories: OrderedSet[Repository] = OrderedSet([maven_central()])
        self._relocations: OrderedSet[Relocation] = OrderedSet()
        self._config_lock = threading.Lock()
        self._states: Dict[Coordinate, DependencyState] = {}
        self._states_lock = threading.Lock()

    @property
    def target(self) -> CodeLoadingTarget:
        if self._target is None:
            self._target = CodeLoadingTarget()
        return self._target

    def _log(self, level: int, message: str, *args) -> None:
        logger.log(level, "[%s] " + message, self.name, *args)

    # -- declaration -----------------------------------------------------

    def dependency(self, dependency: Union[Coordinate, str], *parts: Optional[str]) -> "DependencyManager":
        """Declare a dependency.

        Accepts a ``Coordinate``, a ``group:artifact:version[:classifier]``
        string, or ``group, artifact, version[, classifier]`` arguments.
        """
        if isinstance(dependency, Coordinate):
            coordinate = dependency
        elif parts:
            coordinate = Coordinate(dependency, *parts)
        else:
            coordinate = Coordinate.parse(dependency)
        with self._config_lock:
            self._dependencies.append(coordinate)
        return self

    def repository(self, repository: Union[Repository, str]) -> "DependencyManager":
        self._repositories.add(repository if isinstance(repository, Repository) else maven(repository))
        return self

    def relocate(self, relocation: Union[Relocation, str], relocated_pattern: Optional[str] = None) -> "DependencyManager":
        if not isinstance(relocation, Relocation):
            relocation = (
                Relocation(relocation, relocated_pattern) if relocated_pattern else Relocation.parse(relocation)
            )
        self._relocations.add(relocation)
        return self

    def has_relocations(self) -> bool:
        return bool(self._relocations)

    @property
    def dependencies(self) -> List[Coordinate]:
        with self._config_lock:
            return list(self._dependencies)

    @property
    def repositories(self) -> List[Repository]:
        return self._repositories.snapshot()

    @property
    def relocations(self) -> List[Relocation]:
        return self._relocations.snapshot()

    def state_of(self, coordinate: Coordinate) -> DependencyState:
        with self._states_lock:
            return self._states.get(coordinate, DependencyState.PENDING)

    def _set_state(self, coordinate: Coordinate, state: DependencyState) -> None:
        with self._states_lock:
            self._states[coordinate] = state
        if is_debug_enabled(logger):
            logger.debug(
                "Dependency state change",
                extra=extra_context(
                    event="state", component="manager", action="transition",
                    target=str(coordinate), outcome=state.value,
                ),
            )

    # -- resolution ------------------------------------------------------

    def cache_paths(self, coordinate: Coordinate) -> Tuple[Path, Path]:
        """Return the (plain, relocated) cache paths of a coordinate."""
        return (
            self.directory / coordinate.cache_file_name(),
            self.directory / coordinate.cache_file_name(relocated=True),
        )

    def _acquire(self, coordinate: Coordinate, relocations: Sequence[Relocation],
                 repositories: Sequence[Repository]) -> _Acquired:
        file, relocated = self.cache_paths(coordinate)
        self._log(logging.INFO, "Resolving dependency %s.", coordinate)

        if relocations and relocated.exists():
            self._set_state(coordinate, DependencyState.CACHE_HIT)
            self._log(logging.INFO, "Using existing relocated jar for %s: %s (%d bytes).",
                      coordinate, relocated.name, relocated.stat().st_size)
            return _Acquired(relocated, cached=True, relocated=True)

        if file.exists():
            self._set_state(coordinate, DependencyState.CACHE_HIT)
            self._log(logging.INFO, "Using cached jar for %s: %s (%d bytes).",
                      coordinate, file.name, file.stat().st_size)
            self._set_state(coordinate, DependencyState.DOWNLOADED)
            return _Acquired(file, cached=True)

        self._set_state(coordinate, DependencyState.DOWNLOADING)
        failures: List[Tuple[Repository, BaseException]] = []
        for repository in repositories:
            self._log(logging.INFO, "Attempting download of %s from repository %s.", coordinate, repository)
            result = self._download(coordinate, file, repository)
            if result.success:
                self._log(logging.INFO, "Downloaded %s (%d bytes) from %s.", coordinate, result.size, repository)
                self._set_state(coordinate, DependencyState.DOWNLOADED)
                return _Acquired(file, repository=repository, verification=result.verification)
            error = result.error or DepstageError("unknown error")
            failures.append((repository, error))
            self._log(logging.WARNING, "Failed downloading %s from %s: %s", coordinate, repository, result.reason)

        self._set_state(coordinate, DependencyState.FAILED)
        raise DependencyDownloadError(coordinate, failures)

    def _relocate(self, coordinate: Coordinate, acquired: _Acquired, relocations: Sequence[Relocation]) -> _Acquired:
        if not relocations or acquired.relocated:
            return acquired
        file, relocated = self.cache_paths(coordinate)
        self._set_state(coordinate, DependencyState.RELOCATING)
        try:
            self.relocator.relocate(file, relocated, relocations)
        except Exception as exc:
            self._set_state(coordinate, DependencyState.FAILED)
            raise RelocationFailure(coordinate, exc) from exc
        self._log(logging.INFO, "Relocated %s to %s (%d bytes).",
                  coordinate, relocated.name, relocated.stat().st_size)
        try:
            file.unlink()
        except OSError as exc:
            self._log(logging.WARNING, "Could not remove unrelocated jar %s: %s", file, exc)
        self._set_state(coordinate, DependencyState.RELOCATED)
        acquired.path = relocated
        acquired.relocated = True
        return acquired

    def resolve(self) -> List[ResolvedArtifact]:
        """Acquire and relocate every declared dependency, without loading.

        Raises:
            DependencyDownloadError: every repository failed for a dependency.
            RelocationFailure: the relocation transform failed.
        """
        declared = self.dependencies
        repositories = self.repositories
        relocations = self.relocations
        for coordinate in declared:
            self._set_state(coordinate, DependencyState.PENDING)

        unique = list(dict.fromkeys(declared))
        acquired: Dict[Coordinate, _Acquired] = {}
        if self.max_workers > 1 and len(unique) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="depstage-download") as pool:
                futures = [pool.submit(self._acquire, c, relocations, repositories) for c in unique]
                # Surface the first failure in declaration order.
                for coordinate, future in zip(unique, futures):
                    acquired[coordinate] = future.result()
        else:
            for coordinate in unique:
                acquired[coordinate] = self._acquire(coordinate, relocations, repositories)

        for coordinate in unique:
            acquired[coordinate] = self._relocate(coordinate, acquired[coordinate], relocations)

        artifacts = []
        for coordinate in declared:
            item = acquired[coordinate]
            artifacts.append(ResolvedArtifact(
                coordinate=coordinate,
                path=item.path,
                repository=item.repository,
                cached=item.cached,
                relocated=item.relocated,
                verification=item.verification,
            ))
        return artifacts

    def load(self) -> ResolutionOutcome:
        """Resolve, then hand every staged path to the target in declaration order."""
        if not self.directory.exists():
            self._log(logging.INFO, "It appears you're running %s for the first time.", self.name)
            self._log(logging.INFO, "Please give me a few seconds to install dependencies. "
                                    "This is a one-time process.")
        try:
            artifacts = self.resolve()
            for artifact in artifacts:
                self.target.add_code_unit(artifact.path)
                self._set_state(artifact.coordinate, DependencyState.STAGED)
            return ResolutionOutcome.ok(artifacts)
        except DependencyDownloadError as exc:
            if exc.is_offline:
                self._log(logging.INFO, "It appears you do not have an internet connection. "
                                        "Please provide an internet connection for once at least.")
                return ResolutionOutcome.degraded("no network available", exc)
            self._log(logging.ERROR, "%s", exc)
            return ResolutionOutcome.fatal(exc)
        except (RelocationFailure, LoadingError) as exc:
            self._log(logging.ERROR, "%s", exc)
            return ResolutionOutcome.fatal(exc)
        finally:
            self._log(logging.INFO, "Dependency resolution finished. Total dependencies: %d.",
                      len(self._dependencies))
