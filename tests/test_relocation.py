"""Tests for relocation rules and the archive relocator."""

import zipfile
from unittest.mock import patch

import pytest

from depstage.relocation import ArchiveRelocator, Relocation

from conftest import make_jar


class TestRelocationParse:
    """Test rule parsing."""

    def test_from_to(self):
        assert Relocation.parse(" com.google.gson : shaded.gson ") == Relocation("com.google.gson", "shaded.gson")

    def test_bare_uses_prefix(self):
        rule = Relocation.parse("org.yaml", default_prefix="app.libs")
        assert rule.relocated_pattern == "app.libs.org.yaml"
        assert str(rule) == "org.yaml:app.libs.org.yaml"

    @pytest.mark.parametrize("text", ["org.yaml", "a:b:c", ":b"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            Relocation.parse(text)


class TestArchiveRelocator:
    """Test entry renaming."""

    def test_renames_matching_entries(self, tmp_path):
        source = tmp_path / "in.jar"
        source.write_bytes(make_jar({
            "META-INF/MANIFEST.MF": "Manifest-Version: 1.0\n",
            "com/google/gson/Gson.class": b"\x01",
            "com/google/gson/internal/Util.class": b"\x02",
            "com/google/gsonx/Other.class": b"\x03",
        }))
        destination = tmp_path / "out.jar"

        ArchiveRelocator().relocate(source, destination, [Relocation("com.google.gson", "shaded.gson")])

        with zipfile.ZipFile(destination) as zf:
            assert sorted(zf.namelist()) == [
                "META-INF/MANIFEST.MF",
                "com/google/gsonx/Other.class",
                "shaded/gson/Gson.class",
                "shaded/gson/internal/Util.class",
            ]
            assert zf.read("shaded/gson/internal/Util.class") == b"\x02"
        assert not (tmp_path / "out.jar.part").exists()

    def test_failure_leaves_no_destination(self, tmp_path):
        source = tmp_path / "in.jar"
        source.write_bytes(make_jar())
        destination = tmp_path / "out.jar"

        with patch("depstage.relocation.os.replace", side_effect=OSError("read-only")):
            with pytest.raises(OSError):
                ArchiveRelocator().relocate(source, destination, [Relocation("a", "b")])

        assert sorted(p.name for p in tmp_path.iterdir()) == ["in.jar"]

    def test_not_an_archive(self, tmp_path):
        source = tmp_path / "in.jar"
        source.write_bytes(b"plain")
        with pytest.raises(zipfile.BadZipFile):
            ArchiveRelocator().relocate(source, tmp_path / "out.jar", [Relocation("a", "b")])
        assert not (tmp_path / "out.jar").exists()
