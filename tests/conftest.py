"""Shared fixtures: an in-memory remote that stands in for ``requests.get``."""
from __future__ import annotations

import hashlib
import io
import zipfile

import pytest
import requests

from depstage.common import http_client

CENTRAL = "https://repo1.maven.org/maven2/"


class MockResponse:
    def __init__(self, url, status_code=200, body=b"", fail_after=None):
        self.url = url
        self.status_code = status_code
        self._body = body
        self._fail_after = fail_after
        self.closed = False

    @property
    def text(self):
        return self._body.decode("utf-8")

    def iter_content(self, chunk_size=1):
        sent = 0
        for start in range(0, len(self._body), chunk_size):
            if self._fail_after is not None and sent >= self._fail_after:
                raise requests.ConnectionError("Simulated connection reset")
            chunk = self._body[start:start + chunk_size]
            sent += len(chunk)
            yield chunk

    def close(self):
        self.closed = True


class FakeRemote:
    """Routes URLs to canned responses and records every request."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def serve(self, url, body, status_code=200, fail_after=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status_code, body, fail_after)

    def serve_artifact(self, base_url, path, content, checksum=True):
        """Serve ``<path>.jar`` and, optionally, its ``.sha1``."""
        self.serve(f"{base_url}{path}.jar", content)
        if checksum is True:
            self.serve(f"{base_url}{path}.jar.sha1", sha1_hex(content))
        elif checksum:
            self.serve(f"{base_url}{path}.jar.sha1", checksum)

    def fail(self, url, exc):
        self.routes[url] = exc

    def __call__(self, url, **kwargs):
        self.requests.append(url)
        route = self.routes.get(url)
        if isinstance(route, BaseException):
            raise route
        if route is None:
            return MockResponse(url, 404, b"")
        status_code, body, fail_after = route
        return MockResponse(url, status_code, body, fail_after)


@pytest.fixture
def remote(monkeypatch):
    fake = FakeRemote()
    monkeypatch.setattr(http_client.requests, "get", fake)
    return fake


def sha1_hex(data):
    return hashlib.sha1(data).hexdigest()


def make_jar(entries=None):
    """Build an in-memory zip archive."""
    entries = entries or {"META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n"}
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buf.getvalue()


def pom(dependencies="", repositories="", group="com.example", artifact="root", version="1.0"):
    """Render a namespaced POM document."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<project xmlns="http://maven.apache.org/POM/4.0.0">
  <modelVersion>4.0.0</modelVersion>
  <groupId>{group}</groupId>
  <artifactId>{artifact}</artifactId>
  <version>{version}</version>
  <repositories>{repositories}</repositories>
  <dependencies>{dependencies}</dependencies>
</project>
"""


def dep(group, artifact, version=None, scope=None):
    parts = [f"<groupId>{group}</groupId>", f"<artifactId>{artifact}</artifactId>"]
    if version is not None:
        parts.append(f"<version>{version}</version>")
    if scope is not None:
        parts.append(f"<scope>{scope}</scope>")
    return "<dependency>" + "".join(parts) + "</dependency>"
