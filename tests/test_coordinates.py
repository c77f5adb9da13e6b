"""Tests for the coordinate model."""

import pytest

from depstage.coordinates import Coordinate


class TestCoordinatePaths:
    """Test repository-relative path derivation."""

    def test_release_path(self):
        """Dotted group becomes nested directories."""
        coord = Coordinate("com.google.code.gson", "gson", "2.10.1")
        assert coord.repository_path == "com/google/code/gson/gson/2.10.1/gson-2.10.1"

    def test_classifier_path(self):
        """Classifier is appended to the file name only."""
        coord = Coordinate("org.lwjgl", "lwjgl", "3.3.1", "natives-linux")
        assert coord.directory_path == "org/lwjgl/lwjgl/3.3.1"
        assert coord.repository_path == "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux"

    def test_snapshot_detection(self):
        """Versions ending in SNAPSHOT are snapshots."""
        assert Coordinate("g", "a", "1.0-SNAPSHOT").is_snapshot
        assert not Coordinate("g", "a", "1.0").is_snapshot


class TestCoordinateIdentity:
    """Test normalization, equality and parsing."""

    def test_blank_classifier_equals_absent(self):
        """An empty classifier is the same as no classifier."""
        assert Coordinate("g", "a", "1", "") == Coordinate("g", "a", "1")
        assert Coordinate("g", "a", "1", "  ").classifier is None

    def test_classifier_participates_in_equality(self):
        """Coordinates differing only by classifier are distinct."""
        assert Coordinate("g", "a", "1", "x") != Coordinate("g", "a", "1")
        assert len({Coordinate("g", "a", "1", "x"), Coordinate("g", "a", "1")}) == 2

    @pytest.mark.parametrize("fields", [("", "a", "1"), ("g", " ", "1"), ("g", "a", "")])
    def test_rejects_empty_fields(self, fields):
        """Group, artifact and version are mandatory."""
        with pytest.raises(ValueError):
            Coordinate(*fields)

    def test_parse_with_and_without_classifier(self):
        """Colon form round-trips through str()."""
        assert Coordinate.parse("com.example:lib:1.0") == Coordinate("com.example", "lib", "1.0")
        coord = Coordinate.parse(" com.example:lib:1.0:sources ")
        assert coord.classifier == "sources"
        assert str(coord) == "com.example:lib:1.0:sources"

    @pytest.mark.parametrize("text", ["com.example:lib", "a:b:c:d:e", ""])
    def test_parse_rejects_malformed(self, text):
        """Wrong number of segments is an error."""
        with pytest.raises(ValueError):
            Coordinate.parse(text)


class TestCacheFileName:
    """Test local cache naming."""

    def test_plain_and_relocated(self):
        """Relocated copies carry a marker before the extension."""
        coord = Coordinate("com.example", "lib", "1.0")
        assert coord.cache_file_name() == "com.example.lib-1.0.jar"
        assert coord.cache_file_name(relocated=True) == "com.example.lib-1.0-relocated.jar"

    def test_classifier_kept_apart(self):
        """Two classifiers of one version never share a cache file."""
        a = Coordinate("g", "a", "1", "natives-linux").cache_file_name()
        b = Coordinate("g", "a", "1", "natives-windows").cache_file_name()
        assert a != b
        assert a == "g.a-1-natives-linux.jar"
