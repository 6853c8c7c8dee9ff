"""
File-system helpers: timestamps, output listings, scoped working-directory
changes and atomic archive creation.
"""
import os
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple

import logger as log
from errors import FileSystemError

# The "epoch" timestamp: what a missing file contributes to staleness checks.
EPOCH = 0.0


def modified_time(path: Path) -> float:
    """
    Return the last-modified time of *path*.

    A file that does not exist yields ``EPOCH``; any other failure to stat it
    (permissions, I/O error, …) raises FileSystemError.
    """
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return EPOCH
    except OSError as exc:
        raise FileSystemError(path, exc.strerror or str(exc)) from exc


def regular_files(directory: Path) -> List[Path]:
    """
    Return every regular file directly inside *directory* (not recursive).
    A missing directory yields an empty list.
    """
    try:
        entries = list(directory.iterdir())
    except (FileNotFoundError, NotADirectoryError):
        return []
    except OSError as exc:
        raise FileSystemError(directory, exc.strerror or str(exc)) from exc
    return sorted(p for p in entries if p.is_file())


def source_files(directory: Path, ext: str) -> List[Path]:
    """Every ``*.<ext>`` file anywhere under *directory*, in sorted order."""
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.rglob(f"*.{ext}") if p.is_file())


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """
    Change into *path* for the duration of the ``with`` block.

    The previous working directory is restored on every exit path, including
    exceptions raised inside the block.
    """
    previous = os.getcwd()
    os.chdir(path)
    log.debug(f"cd {path}")
    try:
        yield path
    finally:
        os.chdir(previous)
        log.debug(f"cd {previous}")


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)
    log.debug(f"Directory ready: {path}")


def write_archive(archive: Path, members: List[Tuple[Path, str]]) -> None:
    """
    Write a gzip-compressed tarball at *archive* holding each ``(src, arcname)``
    pair in *members*.

    The tarball is first written to a temporary file in the same directory,
    then renamed into place with ``os.replace`` so a reader never observes a
    partially-written archive.
    """
    archive.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=archive.parent, prefix=f".{archive.name}~")
    os.close(fd)
    try:
        with tarfile.open(tmp, "w:gz") as tar:
            for src, arcname in members:
                tar.add(str(src), arcname=arcname)
        os.replace(tmp, archive)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    log.success(f"Wrote archive  {archive.name}  ({len(members)} file(s))")
