"""Handing staged archives to the host's code-loading facility.

Two strategies exist. A host may publish a specialized facility under a
well-known dotted name (``package.module:attribute``); it is probed once and
used when present, until a call to it raises. Otherwise a generic loader
object is augmented through an add-method looked up once per loader type. The
default generic loader is ``sys.path``, which makes staged archives importable
through ``zipimport``.
"""
from __future__ import annotations

import importlib
import logging
import sys
import threading
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from depstage.exceptions import LoadingError

logger = logging.getLogger(__name__)

ADD_METHOD_NAMES = ("add_url", "addURL", "add_code_unit", "append")

_ADD_METHOD_CACHE: Dict[type, str] = {}
_ADD_METHOD_CACHE_LOCK = threading.Lock()


class LoadingStrategy(ABC):
    """Adds one archive path to a code-loading facility."""

    name = "abstract"

    @abstractmethod
    def add(self, path: Path) -> None:
        """Make ``path`` available to the host."""


class HostFacilityStrategy(LoadingStrategy):
    """Delegates to a callable published by the host.

    If the facility raises, it is abandoned for good and this path and every
    later one go through a ``GenericLoaderStrategy`` over ``fallback_loader``.
    """

    name = "host-facility"

    def __init__(self, facility: Callable[[str], Any], fallback_loader: Any = None) -> None:
        self._facility = facility
        self._fallback_loader = fallback_loader
        self._fallback: Optional[LoadingStrategy] = None

    def add(self, path: Path) -> None:
        if self._fallback is None:
            try:
                self._facility(str(path))
                return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                logger.warning("Host loading facility failed for %s, using the generic loader: %s", path.name, exc)
                self._fallback = GenericLoaderStrategy(self._fallback_loader)
        self._fallback.add(path)


def _resolve_add_method(loader: Any) -> str:
    loader_type = type(loader)
    with _ADD_METHOD_CACHE_LOCK:
        cached = _ADD_METHOD_CACHE.get(loader_type)
        if cached is not None:
            return cached
        for candidate in ADD_METHOD_NAMES:
            if callable(getattr(loader, candidate, None)):
                _ADD_METHOD_CACHE[loader_type] = candidate
                return candidate
    raise LoadingError(f"Loader of type {loader_type.__name__} exposes none of {', '.join(ADD_METHOD_NAMES)}")


class GenericLoaderStrategy(LoadingStrategy):
    """Augments an arbitrary loader through its add-method."""

    name = "generic-loader"

    def __init__(self, loader: Any = None) -> None:
        self._loader = sys.path if loader is None else loader
        self._method = _resolve_add_method(self._loader)

    def add(self, path: Path) -> None:
        if isinstance(self._loader, list) and str(path) in self._loader:
            return
        getattr(self._loader, self._method)(str(path))


def probe_host_facility(dotted_name: Optional[str]) -> Optional[Callable[[str], Any]]:
    """Locate ``module:attribute`` (or ``module.attribute``); None when unavailable.

    Never raises: a missing module, refused import or non-callable attribute
    all mean the facility is absent.
    """
    if not dotted_name:
        return None
    module_name, sep, attr = dotted_name.partition(":")
    if not sep:
        module_name, _, attr = dotted_name.rpartition(".")
    if not module_name or not attr:
        return None
    try:
        facility = getattr(importlib.import_module(module_name), attr)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.debug("Host loading facility %s unavailable: %s", dotted_name, exc)
        return None
    if not callable(facility):
        logger.debug("Host loading facility %s is not callable", dotted_name)
        return None
    return facility


def resolve_loading_strategy(host_facility: Optional[str] = None, generic_loader: Any = None) -> LoadingStrategy:
    """Pick the specialized facility when the probe succeeds, else the generic loader."""
    facility = probe_host_facility(host_facility)
    if facility is not None:
        return HostFacilityStrategy(facility, fallback_loader=generic_loader)
    return GenericLoaderStrategy(generic_loader)


class CodeLoadingTarget:
    """Receives staged archives in order; adding the same path twice is a no-op."""

    def __init__(self, strategy: Optional[LoadingStrategy] = None) -> None:
        self.strategy = strategy if strategy is not None else resolve_loading_strategy()
        self._added: List[Path] = []
        self._lock = threading.Lock()

    @property
    def added(self) -> List[Path]:
        with self._lock:
            return list(self._added)

    def add_code_unit(self, path: Path) -> None:
        """Add ``path``.

        Raises:
            LoadingError: the path is not a readable archive or the facility rejected it.
        """
        path = Path(path).resolve()
        with self._lock:
            if path in self._added:
                return
            if not zipfile.is_zipfile(path):
                raise LoadingError(f"{path} is not a valid code archive")
            try:
                self.strategy.add(path)
            except LoadingError:
                raise
            except Exception as exc:
                raise LoadingError(f"{self.strategy.name} rejected {path}: {exc}") from exc
            self._added.append(path)
        logger.info("Added to %s: %s", self.strategy.name, path.name)
