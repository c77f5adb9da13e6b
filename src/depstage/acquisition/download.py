"""Checksum-verified artifact download.

The archive is streamed in fixed-size chunks into a sibling ``.part`` file
while a SHA-1 digest is computed over the same bytes. Only a completed and
(when a checksum is published) verified stream is renamed onto the target
path, so an interrupted run never leaves a file a later cache check would
accept. Any failure removes both the partial file and the target.
"""
from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from depstage.constants import Constants
from depstage.common import http_client
from depstage.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from depstage.coordinates import Coordinate
from depstage.exceptions import ChecksumMismatch, DepstageError, DownloadFailure
from depstage.repository.base import Repository

logger = logging.getLogger(__name__)


class VerificationState(Enum):
    """Outcome of checksum verification for one download."""

    VERIFIED = "verified"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DownloadResult:
    """Result of one download attempt against one repository."""

    success: bool
    verification: VerificationState
    error: Optional[BaseException] = None
    size: int = 0

    @property
    def reason(self) -> str:
        if self.error is None:
            return "unknown error"
        return str(self.error)

    @classmethod
    def ok(cls, verification: VerificationState, size: int) -> "DownloadResult":
        return cls(True, verification, None, size)

    @classmethod
    def failure(cls, error: BaseException, verification: VerificationState = VerificationState.SKIPPED) -> "DownloadResult":
        return cls(False, verification, error, 0)


def checksum_matches(expected: str, actual: str) -> bool:
    """Compare a published checksum text against a lower-case hex digest.

    The text may be a bare digest, a BSD-style line ``SHA1 (file) = <hex>``
    (matched by suffix), or ``<hex>  file`` as some older publishers write it.
    """
    text = expected.strip().lower()
    if not text:
        return False
    if text.endswith(actual):
        return True
    return text.split()[0] == actual


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Could not remove %s: %s", path, exc)


def _fetch_expected_checksum(coordinate: Coordinate, repository: Repository) -> Optional[str]:
    """Published SHA-1 text, or None when it cannot be resolved or fetched."""
    try:
        url = repository.resolve_checksum_url(coordinate)
        text = http_client.fetch_text(url, context="checksum").strip()
    except DepstageError as exc:
        if is_debug_enabled(logger):
            logger.debug(
                "Checksum unavailable, skipping verification",
                extra=extra_context(
                    event="decision", component="acquisition", action="fetch_checksum",
                    outcome="skipped", reason=str(exc),
                ),
            )
        return None
    return text or None


def download_artifact(coordinate: Coordinate, target: Path, repository: Repository) -> DownloadResult:
    """Download ``coordinate`` from ``repository`` to ``target``.

    Never raises for network, resolution or I/O problems: those are reported
    as a failed ``DownloadResult``. The engine does not retry.
    """
    target = Path(target)
    partial = target.with_name(target.name + ".part")
    verification = VerificationState.SKIPPED
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        partial.touch()

        url = repository.resolve_artifact_url(coordinate)
        expected = _fetch_expected_checksum(coordinate, repository)
        digest = hashlib.sha1() if expected is not None else None

        size = 0
        with Timer() as t:
            res = http_client.open_stream(url, context="artifact")
            try:
                with open(partial, "wb") as out:
                    for chunk in http_client.iter_chunks(res, Constants.DOWNLOAD_CHUNK_SIZE):
                        out.write(chunk)
                        if digest is not None:
                            digest.update(chunk)
                        size += len(chunk)
            finally:
                res.close()

        if digest is not None:
            actual = digest.hexdigest()
            if not checksum_matches(expected, actual):
                verification = VerificationState.FAILED
                raise ChecksumMismatch(
                    f"Error downloading dependency; checksum mismatch for {coordinate}: "
                    f"expected {expected} but found {actual}",
                    expected=expected, actual=actual, url=url,
                )
            verification = VerificationState.VERIFIED

        os.replace(partial, target)
        if is_debug_enabled(logger):
            logger.debug(
                "Artifact downloaded",
                extra=extra_context(
                    event="function_exit", component="acquisition", action="download",
                    outcome="success", verification=verification.value, size=size,
                    duration_ms=t.duration_ms(), target=safe_url(url),
                ),
            )
        return DownloadResult.ok(verification, size)
    except (DepstageError, OSError) as exc:
        _remove_quietly(partial)
        _remove_quietly(target)
        error: BaseException = exc
        if isinstance(exc, OSError):
            error = DownloadFailure(f"I/O error writing {target}: {exc}")
            error.__cause__ = exc
        return DownloadResult.failure(error, verification)
