"""
Error taxonomy for the crate-build orchestrator.

  ManifestParseError   – missing / malformed Cargo.toml, or a local-path
                         dependency that does not exist
  BuildExecutionError  – cargo exited non-zero (no retry)
  FileSystemError      – an input/output could not be inspected; the
                         staleness evaluator folds it into "epoch"
  UnknownTaskError     – no task registered under the requested name
  ConfigurationError   – bad profile, unknown target triple, …
"""
from pathlib import Path
from typing import Sequence


class CrateBuildError(Exception):
    """Base class for every error the orchestrator raises on purpose."""


class ManifestParseError(CrateBuildError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class BuildExecutionError(CrateBuildError):
    def __init__(self, command: Sequence[str], exit_code: int):
        self.command = list(command)
        self.exit_code = exit_code
        super().__init__(f"Command failed (exit {exit_code}): {' '.join(self.command)}")


class FileSystemError(CrateBuildError):
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"{path}: {reason}")


class UnknownTaskError(CrateBuildError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Don't know how to build task '{name}'")


class ConfigurationError(CrateBuildError):
    pass
