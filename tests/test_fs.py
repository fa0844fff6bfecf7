"""Tests for filesystem helpers."""

import errno
import json
from unittest.mock import patch

import pytest

from localtube.core.exceptions import StorageFailure
from localtube.core.fs import (
    find_stale_staging,
    make_dirs,
    move,
    read_json,
    remove_paths,
    split_name,
    staging_dir,
    write_json,
)


class TestMove:
    """Test moves with the cross-device fallback."""

    def test_rename(self, tmp_path):
        """Same-volume moves are renames."""
        source = tmp_path / "a.txt"
        source.write_text("data")

        move(source, tmp_path / "b.txt")

        assert not source.exists()
        assert (tmp_path / "b.txt").read_text() == "data"

    def test_cross_device_fallback(self, tmp_path):
        """EXDEV falls back to copy and delete."""
        source = tmp_path / "a.txt"
        source.write_text("data")

        with patch("localtube.core.fs.os.rename", side_effect=OSError(errno.EXDEV, "xdev")):
            move(source, tmp_path / "b.txt")

        assert not source.exists()
        assert (tmp_path / "b.txt").read_text() == "data"

    def test_other_errors_raise_storage_failure(self, tmp_path):
        """Other rename errors become StorageFailure and keep the source."""
        source = tmp_path / "a.txt"
        source.write_text("data")

        with patch("localtube.core.fs.os.rename", side_effect=OSError(errno.EACCES, "denied")):
            with pytest.raises(StorageFailure, match="denied"):
                move(source, tmp_path / "b.txt")
        assert source.exists()


class TestStaging:
    """Test staging directories."""

    def test_removed_on_success(self, tmp_path):
        """The staging directory lives under the root and is removed on exit."""
        with staging_dir(tmp_path, ".stage-") as path:
            assert path.parent == tmp_path
            assert path.name.startswith(".stage-")
            (path / "file").write_text("x")

        assert not path.exists()

    def test_removed_on_error(self, tmp_path):
        """The staging directory is removed when the body raises."""
        with pytest.raises(RuntimeError):
            with staging_dir(tmp_path, ".stage-") as path:
                raise RuntimeError("boom")

        assert not path.exists()
        assert find_stale_staging(tmp_path, ".stage-") == []

    def test_find_and_remove_stale(self, tmp_path):
        """Only prefixed entries are reported."""
        (tmp_path / ".stage-1").mkdir()
        (tmp_path / ".stage-2").write_text("x")
        (tmp_path / "UCabc").mkdir()

        stale = find_stale_staging(tmp_path, ".stage-")
        assert [p.name for p in stale] == [".stage-1", ".stage-2"]

        remove_paths(stale)
        assert [p.name for p in tmp_path.iterdir()] == ["UCabc"]

    def test_unwritable_root(self, tmp_path):
        """A staging directory that cannot be created raises StorageFailure."""
        with patch("localtube.core.fs.tempfile.mkdtemp", side_effect=OSError(errno.ENOSPC, "full")):
            with pytest.raises(StorageFailure, match="staging directory"):
                with staging_dir(tmp_path, ".stage-"):
                    pass

    def test_make_dirs_failure(self, tmp_path):
        """Directory creation errors become StorageFailure."""
        blocker = tmp_path / "UCabc"
        blocker.write_text("not a directory")

        with pytest.raises(StorageFailure, match="failed to create"):
            make_dirs(blocker / "v1")


class TestWriteJson:
    """Test JSON writes."""

    @pytest.mark.parametrize("atomic", [True, False])
    def test_writes_indented(self, tmp_path, atomic):
        """Documents are two-space indented with no temp files left behind."""
        path = tmp_path / "state.json"
        write_json(path, {"a": [1]}, atomic=atomic)

        assert path.read_text() == '{\n  "a": [\n    1\n  ]\n}\n'
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_atomic_failure_keeps_original(self, tmp_path):
        """A failed atomic write leaves the previous document intact."""
        path = tmp_path / "state.json"
        write_json(path, {"v": 1})

        with patch("localtube.core.fs.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageFailure, match="disk full"):
                write_json(path, {"v": 2})

        assert json.loads(path.read_text()) == {"v": 1}
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestSplitName:
    """Test file name splitting."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("video.mp4", ("video", "mp4")),
            ("abc.en-US.vtt", ("abc.en-US", "vtt")),
            ("README", ("README", "")),
        ],
    )
    def test_split(self, filename, expected):
        """Names split at the last dot."""
        assert split_name(filename) == expected


class TestReadJson:
    """Test JSON reads."""

    def test_invalid_utf8_is_value_error(self, tmp_path):
        """Undecodable bytes surface as ValueError like malformed JSON does."""
        path = tmp_path / "data.json"
        path.write_bytes(b'{"title": "\xff"}')

        with pytest.raises(ValueError):
            read_json(path)
