"""Tests for the resolution orchestrator."""

import socket
import zipfile
from unittest.mock import MagicMock

import pytest
import requests

from depstage.acquisition import VerificationState
from depstage.coordinates import Coordinate
from depstage.exceptions import DependencyDownloadError, LoadingError, RelocationFailure
from depstage.loading import CodeLoadingTarget, GenericLoaderStrategy
from depstage.manager import DependencyManager, DependencyState, OutcomeStatus
from depstage.relocation import Relocation, Relocator

from conftest import CENTRAL, make_jar

MIRROR_A = "https://a.example.org/repo/"
MIRROR_B = "https://b.example.org/repo/"
LIB = Coordinate("com.example", "lib", "1.0")
LIB_PATH = "com/example/lib/1.0/lib-1.0"


def list_target():
    loader = []
    return CodeLoadingTarget(GenericLoaderStrategy(loader)), loader


class TestEndToEnd:
    """Test a full load against a fake remote."""

    def test_single_dependency_staged(self, remote, tmp_path):
        """One declared dependency is downloaded, verified and staged once."""
        content = make_jar()
        remote.serve_artifact(CENTRAL, LIB_PATH, content)
        target, loader = list_target()
        manager = DependencyManager(tmp_path / "libs", target=target).dependency("com.example:lib:1.0")

        outcome = manager.load()

        cached = tmp_path / "libs" / "com.example.lib-1.0.jar"
        assert outcome.status is OutcomeStatus.OK
        assert outcome.paths == [cached]
        assert outcome.artifacts[0].verification is VerificationState.VERIFIED
        assert cached.read_bytes() == content
        assert loader == [str(cached.resolve())]
        assert manager.state_of(LIB) is DependencyState.STAGED

    def test_second_run_uses_cache(self, remote, tmp_path):
        """A fresh manager over a populated cache makes no requests."""
        remote.serve_artifact(CENTRAL, LIB_PATH, make_jar())
        DependencyManager(tmp_path, target=list_target()[0]).dependency(LIB).load()
        remote.requests.clear()

        target, loader = list_target()
        outcome = DependencyManager(tmp_path, target=target).dependency(LIB).load()

        assert outcome.is_ok
        assert outcome.artifacts[0].cached
        assert remote.requests == []
        assert len(loader) == 1

    def test_declaration_order_preserved(self, remote, tmp_path):
        """Staging follows declaration order even with parallel downloads."""
        names = ["zeta", "alpha", "mid"]
        for name in names:
            remote.serve_artifact(CENTRAL, f"com/example/{name}/1.0/{name}-1.0", make_jar({f"{name}.txt": name}))
        target, loader = list_target()
        manager = DependencyManager(tmp_path, target=target, max_workers=4)
        for name in names:
            manager.dependency("com.example", name, "1.0")

        outcome = manager.load()

        assert outcome.is_ok
        assert [a.coordinate.artifact_id for a in outcome.artifacts] == names
        assert [p.rsplit("/", 1)[-1] for p in loader] == [f"com.example.{n}-1.0.jar" for n in names]

    def test_duplicate_declarations_downloaded_once(self, remote, tmp_path):
        """A coordinate declared twice is fetched and staged once."""
        remote.serve_artifact(CENTRAL, LIB_PATH, make_jar())
        target, loader = list_target()
        outcome = DependencyManager(tmp_path, target=target).dependency(LIB).dependency(LIB).load()

        assert outcome.is_ok
        assert remote.requests.count(f"{CENTRAL}{LIB_PATH}.jar") == 1
        assert len(loader) == 1


class TestRepositoryFallback:
    """Test trying repositories in order."""

    def test_second_repository_used(self, remote, tmp_path):
        """A failing repository is skipped in favour of the next."""
        remote.serve(f"{MIRROR_A}{LIB_PATH}.jar", b"", status_code=500)
        remote.serve_artifact(MIRROR_B, LIB_PATH, make_jar())
        manager = DependencyManager(tmp_path, target=list_target()[0])
        manager.repository(MIRROR_A).repository(MIRROR_B).dependency(LIB)

        outcome = manager.load()

        assert outcome.is_ok
        assert outcome.artifacts[0].repository.url == MIRROR_B
        assert remote.requests.index(f"{MIRROR_A}{LIB_PATH}.jar") < remote.requests.index(f"{MIRROR_B}{LIB_PATH}.jar")

    def test_central_is_always_first(self, tmp_path):
        """Maven Central leads the repository list and duplicates are dropped."""
        manager = DependencyManager(tmp_path).repository(MIRROR_A).repository(CENTRAL).repository(MIRROR_A)
        assert [r.url for r in manager.repositories] == [CENTRAL, MIRROR_A]

    def test_all_repositories_fail(self, remote, tmp_path):
        """Exhausting every repository is fatal and names each failure."""
        manager = DependencyManager(tmp_path, target=list_target()[0]).repository(MIRROR_A).dependency(LIB)

        outcome = manager.load()

        assert outcome.status is OutcomeStatus.FATAL
        assert isinstance(outcome.error, DependencyDownloadError)
        assert [str(repo) for repo, _ in outcome.error.failures] == [CENTRAL, MIRROR_A]
        assert manager.state_of(LIB) is DependencyState.FAILED
        with pytest.raises(DependencyDownloadError):
            outcome.raise_for_error()

    def test_resolve_raises(self, remote, tmp_path):
        """resolve() propagates instead of building an outcome."""
        with pytest.raises(DependencyDownloadError):
            DependencyManager(tmp_path).dependency(LIB).resolve()

    def test_offline_is_degraded(self, remote, tmp_path):
        """Only name-resolution failures produce a degraded outcome."""
        offline = requests.ConnectionError(socket.gaierror(-3, "Temporary failure in name resolution"))
        remote.fail(f"{CENTRAL}{LIB_PATH}.jar.sha1", offline)
        remote.fail(f"{CENTRAL}{LIB_PATH}.jar", offline)
        target, loader = list_target()

        outcome = DependencyManager(tmp_path, target=target).dependency(LIB).load()

        assert outcome.status is OutcomeStatus.DEGRADED
        assert outcome.artifacts == ()
        assert loader == []


class TestRelocation:
    """Test relocation of downloaded archives."""

    def test_relocated_copy_replaces_download(self, remote, tmp_path):
        """The relocated archive is staged and the plain download removed."""
        remote.serve_artifact(CENTRAL, LIB_PATH, make_jar({"com/google/gson/Gson.class": b"\xca\xfe"}))
        target, loader = list_target()
        manager = DependencyManager(tmp_path, target=target).dependency(LIB).relocate("com.google.gson", "shaded.gson")

        outcome = manager.load()

        relocated = tmp_path / "com.example.lib-1.0-relocated.jar"
        assert outcome.paths == [relocated]
        assert outcome.artifacts[0].relocated
        assert not (tmp_path / "com.example.lib-1.0.jar").exists()
        with zipfile.ZipFile(relocated) as zf:
            assert zf.namelist() == ["shaded/gson/Gson.class"]
        assert manager.state_of(LIB) is DependencyState.STAGED

    def test_relocated_cache_short_circuits(self, remote, tmp_path):
        """An existing relocated archive skips download and relocation."""
        (tmp_path / "com.example.lib-1.0-relocated.jar").write_bytes(make_jar())
        relocator = MagicMock(spec=Relocator)
        manager = DependencyManager(tmp_path, target=list_target()[0], relocator=relocator)
        manager.dependency(LIB).relocate("a.b:c.d")

        outcome = manager.load()

        assert outcome.is_ok
        assert outcome.artifacts[0].relocated
        relocator.relocate.assert_not_called()
        assert remote.requests == []

    def test_relocation_failure_is_fatal(self, remote, tmp_path):
        """An exception from the relocator fails the load."""
        remote.serve_artifact(CENTRAL, LIB_PATH, make_jar())
        relocator = MagicMock(spec=Relocator)
        relocator.relocate.side_effect = RuntimeError("bad class file")
        manager = DependencyManager(tmp_path, target=list_target()[0], relocator=relocator)
        manager.dependency(LIB).relocate(Relocation("a.b", "c.d"))

        outcome = manager.load()

        assert outcome.status is OutcomeStatus.FATAL
        assert isinstance(outcome.error, RelocationFailure)
        assert "bad class file" in outcome.reason

    def test_has_relocations(self, tmp_path):
        manager = DependencyManager(tmp_path)
        assert not manager.has_relocations()
        manager.relocate("a.b:c.d").relocate("a.b", "c.d")
        assert manager.has_relocations()
        assert manager.relocations == [Relocation("a.b", "c.d")]


class TestStaging:
    """Test the hand-off to the loading target."""

    def test_invalid_archive_is_fatal(self, remote, tmp_path):
        """A downloaded file that is not an archive cannot be staged."""
        remote.serve_artifact(CENTRAL, LIB_PATH, b"not a zip")
        outcome = DependencyManager(tmp_path, target=list_target()[0]).dependency(LIB).load()
        assert outcome.status is OutcomeStatus.FATAL
        assert isinstance(outcome.error, LoadingError)

    def test_custom_downloader(self, tmp_path):
        """The acquisition function is injectable."""
        from depstage.acquisition import DownloadResult

        def fake_download(coordinate, target, repository):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(make_jar())
            return DownloadResult.ok(VerificationState.SKIPPED, target.stat().st_size)

        target, loader = list_target()
        outcome = DependencyManager(tmp_path, target=target, downloader=fake_download).dependency(LIB).load()
        assert outcome.is_ok
        assert len(loader) == 1

    def test_first_run_notice(self, remote, tmp_path, caplog):
        """A missing cache folder is announced once."""
        remote.serve_artifact(CENTRAL, LIB_PATH, make_jar())
        with caplog.at_level("INFO", logger="depstage.manager"):
            DependencyManager(tmp_path / "fresh", target=list_target()[0], name="demo").dependency(LIB).load()
        assert "[demo] It appears you're running demo for the first time." in caplog.text
        assert "Total dependencies: 1." in caplog.text
