"""Shared HTTP helpers used by the repository, acquisition and transitive layers.

Encapsulates request/timeout error handling so callers never see a
``requests`` exception: every failure is translated into the package's own
error taxonomy. Requests use bounded connect/read timeouts and follow
redirects.
"""
from __future__ import annotations

import logging
from typing import Any, Iterator

import requests

from depstage.constants import Constants
from depstage.common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from depstage.exceptions import ArtifactNotFound, DownloadFailure, NoNetworkAvailable, is_no_network

logger = logging.getLogger(__name__)

_NOT_FOUND_STATUSES = (404, 410)


def _timeout():
    return (Constants.CONNECT_TIMEOUT, Constants.READ_TIMEOUT)


def open_stream(url: str, *, context: str, **kwargs: Any) -> requests.Response:
    """Open a streaming GET request and return the response once its status is known.

    The caller owns the response and must close it.

    Raises:
        ArtifactNotFound: the server answered 404 or 410.
        NoNetworkAvailable: the host could not be resolved.
        DownloadFailure: any other non-2xx status or transport error.
    """
    target = safe_url(url)
    headers = {"User-Agent": Constants.USER_AGENT}
    headers.update(kwargs.pop("headers", None) or {})
    with Timer() as t:
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP request",
                extra=extra_context(
                    event="http_request", component="http_client", action="GET",
                    target=target, context=context,
                ),
            )
        try:
            res = requests.get(
                url,
                timeout=_timeout(),
                allow_redirects=True,
                stream=True,
                headers=headers,
                **kwargs,
            )
        except requests.Timeout as exc:
            raise DownloadFailure(
                f"{context} request timed out after {Constants.READ_TIMEOUT} seconds: {target}", url=url
            ) from exc
        except requests.RequestException as exc:  # includes ConnectionError
            if is_no_network(exc):
                raise NoNetworkAvailable(f"{context} host unreachable: {target}", url=url) from exc
            raise DownloadFailure(f"{context} connection error: {exc}", url=url) from exc

    if is_debug_enabled(logger):
        logger.debug(
            "HTTP response",
            extra=extra_context(
                event="http_response", component="http_client", action="GET",
                status_code=res.status_code, duration_ms=t.duration_ms(),
                target=target, context=context,
            ),
        )

    if res.status_code >= 400:
        res.close()
        if res.status_code in _NOT_FOUND_STATUSES:
            raise ArtifactNotFound(
                f"{context} resource not found (HTTP {res.status_code}): {target}",
                url=url, status_code=res.status_code,
            )
        raise DownloadFailure(
            f"{context} request failed (HTTP {res.status_code}): {target}",
            url=url, status_code=res.status_code,
        )
    return res


def iter_chunks(res: requests.Response, chunk_size: int) -> Iterator[bytes]:
    """Yield body chunks, translating mid-stream transport errors."""
    try:
        for chunk in res.iter_content(chunk_size=chunk_size):
            if chunk:
                yield chunk
    except requests.RequestException as exc:
        raise DownloadFailure(f"stream interrupted: {exc}", url=getattr(res, "url", None)) from exc


def fetch_bytes(url: str, *, context: str, **kwargs: Any) -> bytes:
    """GET a small resource fully into memory."""
    res = open_stream(url, context=context, **kwargs)
    try:
        return b"".join(iter_chunks(res, Constants.DOWNLOAD_CHUNK_SIZE))
    finally:
        res.close()


def fetch_text(url: str, *, context: str, **kwargs: Any) -> str:
    """GET a small text resource, decoded as UTF-8."""
    return fetch_bytes(url, context=context, **kwargs).decode("utf-8", errors="replace")
