"""
Timestamp-based staleness evaluation.

    needed(task) := timestamp(task) > output_timestamp(task)

``timestamp`` is the newest mtime over the task's declared inputs.
``output_timestamp`` is the artifact's own mtime for a single named output,
or the *oldest* mtime over the regular files directly inside the output
directory for a whole-project build.  Max over inputs, min over outputs: one
newer input or one stale output is enough to force a rebuild.

Anything that cannot be inspected counts as the epoch.  A missing input
therefore never forces a rebuild on its own, while a missing output always
does.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

import fsutil as fs
import logger as log
from errors import FileSystemError


@dataclass(frozen=True)
class ArtifactOutput:
    """A single named file the task produces."""
    path: Path


@dataclass(frozen=True)
class DirectoryOutput:
    """All regular files directly inside an output directory."""
    directory: Path


Output = Union[ArtifactOutput, DirectoryOutput]


def _mtime(path: Path) -> float:
    try:
        return fs.modified_time(path)
    except FileSystemError as exc:
        log.debug(f"Treating unreadable {exc.path} as epoch: {exc}")
        return fs.EPOCH


def _files(directory: Path) -> list:
    try:
        return fs.regular_files(directory)
    except FileSystemError as exc:
        log.debug(f"Treating unreadable {exc.path} as empty: {exc}")
        return []


def input_timestamp(inputs: Iterable[Path]) -> float:
    return max((_mtime(p) for p in inputs), default=fs.EPOCH)


def output_timestamp(output: Output) -> float:
    if isinstance(output, ArtifactOutput):
        return _mtime(output.path)
    if isinstance(output, DirectoryOutput):
        return min((_mtime(p) for p in _files(output.directory)), default=fs.EPOCH)
    raise TypeError(f"Unknown output descriptor {output!r}")


def output_missing(output: Output) -> bool:
    if isinstance(output, ArtifactOutput):
        return not output.path.is_file()
    if isinstance(output, DirectoryOutput):
        return not _files(output.directory)
    raise TypeError(f"Unknown output descriptor {output!r}")


def needed(inputs: Iterable[Path], output: Output) -> bool:
    """True when *output* is absent or older than the newest of *inputs*."""
    if output_missing(output):
        return True
    return input_timestamp(inputs) > output_timestamp(output)
