"""Filesystem helpers: staging directories, moves and atomic writes."""

import contextlib
import errno
import json
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from localtube.core.exceptions import StorageFailure

DEFAULT_STAGING_PREFIX = ".localtube-"


def move(source: Path, destination: Path) -> None:
    """
    Move a file, renaming when possible.

    Falls back to copy-then-delete only when the filesystem rejects the
    rename as cross-device (EXDEV).

    Args:
        source: File to move
        destination: Target path (overwritten if it exists)

    Raises:
        StorageFailure: The file could not be moved
    """
    try:
        try:
            os.rename(source, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            shutil.copy2(source, destination)
            os.unlink(source)
    except OSError as e:
        raise StorageFailure(f"failed to move {source} to {destination}: {e}") from e


def make_dirs(path: Path) -> None:
    """Create ``path`` and its parents, raising ``StorageFailure`` on error."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageFailure(f"failed to create {path}: {e}") from e


@contextmanager
def staging_dir(root: Path, prefix: str = DEFAULT_STAGING_PREFIX) -> Iterator[Path]:
    """
    Create a temporary directory under ``root`` and remove it on exit.

    Keeping the staging directory inside the media root keeps it on the same
    volume as the destination, so committing is a rename.

    Args:
        root: Directory to create the staging directory in
        prefix: Name prefix recognized by ``find_stale_staging``

    Yields:
        Path of the staging directory
    """
    try:
        path = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
    except OSError as e:
        raise StorageFailure(f"failed to create a staging directory in {root}: {e}") from e
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def find_stale_staging(root: Path, prefix: str = DEFAULT_STAGING_PREFIX) -> list[Path]:
    """List leftover staging entries directly under ``root``."""
    return sorted(p for p in root.iterdir() if p.name.startswith(prefix))


def remove_paths(paths: list[Path]) -> None:
    """Remove files or directory trees."""
    for path in paths:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()


def write_json(path: Path, data: Any, atomic: bool = True) -> None:
    """
    Serialize ``data`` to ``path`` as indented JSON.

    Args:
        path: Destination file
        data: JSON-serializable value
        atomic: Write a sibling temp file and ``os.replace`` it over ``path``
            instead of truncating ``path`` in place

    Raises:
        StorageFailure: The document could not be written
    """
    payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    try:
        if atomic:
            _replace_atomically(path, payload)
        else:
            path.write_text(payload, encoding="utf-8")
    except OSError as e:
        raise StorageFailure(f"failed to write {path}: {e}") from e


def _replace_atomically(path: Path, payload: str) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def read_json(path: Path) -> Any:
    """
    Load a JSON document.

    Raises:
        OSError: The file could not be read
        ValueError: The file is not UTF-8 encoded JSON (``UnicodeDecodeError``
            and ``json.JSONDecodeError`` are both subclasses)
    """
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def split_name(filename: str) -> tuple[str, str]:
    """
    Split a file name at its last dot.

    Returns:
        Tuple of (name, extension without the dot); extension is "" when absent
    """
    name, dot, ext = filename.rpartition(".")
    if not dot:
        return filename, ""
    return name, ext
