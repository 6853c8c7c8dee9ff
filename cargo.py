"""
Cargo build helpers.
"""
import subprocess
import time
from contextlib import nullcontext
from pathlib import Path
from typing import Iterable, List, Optional

import config as cfg
import fsutil as fs
import logger as log
from errors import BuildExecutionError
from project import ArtifactKind, Library, NamedBinary, WholeProject

# Conventional "command not found" status, reported when cargo itself is missing.
_NOT_FOUND = 127


def build_args(profile: str, artifact: ArtifactKind, *, verbose: bool = False) -> List[str]:
    """The ``cargo build`` argument list for one profile / artifact kind."""
    args = ["build"]
    if isinstance(artifact, NamedBinary):
        args += ["--bin", artifact.name]
    elif isinstance(artifact, Library):
        args += ["--lib"]
    elif not isinstance(artifact, WholeProject):
        raise TypeError(f"Unknown artifact kind {artifact!r}")
    if cfg.validate_profile(profile) == "release":
        args += ["--release"]
    if verbose:
        args += ["--verbose"]
    return args


class Cargo:
    """
    Runs cargo for one project.

    Each invocation happens inside *project_dir*.  When that is not already
    the working directory (normally the invocation root) the directory is
    changed for the duration of the command and restored afterwards, whether
    the command succeeded or not.
    """

    def __init__(self, project_dir: Path, *, executable: Optional[str] = None):
        self.project_dir = Path(project_dir)
        self.executable = executable or cfg.CARGO

    def _scope(self):
        if Path.cwd().resolve() == self.project_dir.resolve():
            return nullcontext(self.project_dir)
        return fs.working_directory(self.project_dir)

    def run(self, args: List[str]) -> None:
        """
        Run ``cargo <args>`` and stream its output straight to the terminal.
        Raises BuildExecutionError on a non-zero exit status.
        """
        cmd = [self.executable] + list(args)
        with self._scope():
            log.info(f"Running: {' '.join(cmd)}  (in {self.project_dir.name})")
            start = time.time()
            try:
                result = subprocess.run(cmd)
            except FileNotFoundError:
                log.error(f"'{self.executable}' not found – please install Rust/cargo and add it to PATH.")
                raise BuildExecutionError(cmd, _NOT_FOUND) from None

        elapsed = time.time() - start
        if result.returncode != 0:
            log.error(f"cargo failed after {log.duration(elapsed)} (exit {result.returncode})")
            raise BuildExecutionError(cmd, result.returncode)
        log.success(f"cargo {args[0]} succeeded in {log.duration(elapsed)}")

    def build(self, profile: str, artifact: ArtifactKind = WholeProject(), *, verbose: bool = False) -> None:
        self.run(build_args(profile, artifact, verbose=verbose))

    def test(self, *, verbose: bool = False) -> None:
        self.run(["test"] + (["--verbose"] if verbose else []))

    def doc(self, *, verbose: bool = False) -> None:
        self.run(["doc"] + (["--verbose"] if verbose else []))

    def clean(
        self,
        *,
        verbose: bool = False,
        include_dependencies: bool = True,
        packages: Iterable[str] = (),
    ) -> None:
        """
        ``cargo clean`` for the whole dependency closure, or, when
        *include_dependencies* is False, one ``cargo clean -p <pkg>`` per
        package in *packages*.
        """
        extra = ["--verbose"] if verbose else []
        if include_dependencies:
            self.run(["clean"] + extra)
            return
        for package in packages:
            self.run(["clean", "-p", package] + extra)
