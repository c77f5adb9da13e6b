"""Exception hierarchy for dependency resolution and acquisition."""
from __future__ import annotations

import socket
from typing import List, Optional, Tuple


class DepstageError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(DepstageError):
    """Declared configuration is missing or malformed."""


class ResolutionError(DepstageError):
    """A coordinate could not be mapped to a concrete URL.

    Raised for unreachable or malformed snapshot metadata and for snapshot
    versions with no matching entry.
    """

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DownloadFailure(DepstageError):
    """Fetching a remote resource failed; another repository may still succeed."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ArtifactNotFound(DownloadFailure):
    """The remote resource does not exist (HTTP 404/410)."""


class NoNetworkAvailable(DownloadFailure):
    """The host could not be resolved or reached at the socket level."""


class ChecksumMismatch(DownloadFailure):
    """The downloaded content does not match the published SHA-1."""

    def __init__(self, message: str, expected: str, actual: str, url: Optional[str] = None) -> None:
        super().__init__(message, url=url)
        self.expected = expected
        self.actual = actual


class DescriptorNotFound(DepstageError):
    """No search repository serves a descriptor for the coordinate."""

    def __init__(self, coordinate, repositories) -> None:
        repos = ", ".join(str(r) for r in repositories)
        super().__init__(
            f"Failed to find the descriptor of {coordinate.repository_path} "
            f"in the following repositories: [{repos}]"
        )
        self.coordinate = coordinate
        self.repositories = list(repositories)


class TransitiveDepthExceeded(DepstageError):
    """Transitive expansion went past the configured depth or node bound."""


class RelocationFailure(DepstageError):
    """The relocation transform failed for a downloaded artifact."""

    def __init__(self, coordinate, cause: BaseException) -> None:
        super().__init__(f"Failed to relocate {coordinate}: {cause}")
        self.coordinate = coordinate
        self.__cause__ = cause


class DependencyDownloadError(DepstageError):
    """Every configured repository failed to supply a mandatory dependency."""

    def __init__(self, coordinate, failures: List[Tuple[object, BaseException]]) -> None:
        lines = "\n".join(f"  {repo}: {reason}" for repo, reason in failures)
        super().__init__(
            f"Could not find dependency {coordinate} in any of the following repositories:\n{lines}"
        )
        self.coordinate = coordinate
        self.failures = list(failures)

    @property
    def is_offline(self) -> bool:
        """True when every repository failed because the network is unavailable."""
        return bool(self.failures) and all(is_no_network(reason) for _, reason in self.failures)


def is_no_network(exc: Optional[BaseException]) -> bool:
    """Return True if the exception chain bottoms out in a name-resolution failure."""
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        if isinstance(exc, (NoNetworkAvailable, socket.gaierror)):
            return True
        # urllib3 wraps DNS failures without keeping the gaierror as __cause__
        if type(exc).__name__ == "NameResolutionError":
            return True
        nested = list(getattr(exc, "args", ())) + [getattr(exc, "reason", None)]
        for arg in nested:
            if isinstance(arg, BaseException) and arg is not exc and is_no_network(arg):
                return True
        exc = exc.__cause__ or exc.__context__
    return False


class LoadingError(DepstageError):
    """A staged archive could not be handed to the code-loading target."""
