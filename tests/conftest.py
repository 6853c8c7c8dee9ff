"""Shared fixtures: on-disk Cargo project trees and a recording cargo stub."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import pytest

import cargo


def set_mtime(path: Path, when: float) -> None:
    os.utime(path, (when, when))


def write_project(
    project_dir: Path,
    name: str,
    *,
    version: str = "0.1.0",
    deps: Optional[dict] = None,
    sources: tuple = ("main.rs",),
    extra: str = "",
) -> Path:
    """
    Create a Cargo project at *project_dir*.

    *deps* maps dependency name to either a version string or a relative
    path wrapped in a dict (``{"path": "common"}``).  *sources* are created
    under ``src/``.
    """
    project_dir.mkdir(parents=True, exist_ok=True)
    lines = ["[package]", f'name = "{name}"', f'version = "{version}"', ""]
    if extra:
        lines += [extra, ""]
    lines.append("[dependencies]")
    for dep, spec in (deps or {}).items():
        if isinstance(spec, dict):
            body = ", ".join(f'{k} = "{v}"' for k, v in spec.items())
            lines.append(f"{dep} = {{ {body} }}")
        else:
            lines.append(f'{dep} = "{spec}"')
    (project_dir / "Cargo.toml").write_text("\n".join(lines) + "\n", encoding="utf-8")

    for rel in sources:
        src = project_dir / "src" / rel
        src.parent.mkdir(parents=True, exist_ok=True)
        src.write_text("fn main() {}\n", encoding="utf-8")
    return project_dir


@pytest.fixture
def make_project(tmp_path: Path) -> Callable[..., Path]:
    def _make(rel: str, name: str, **kwargs) -> Path:
        return write_project(tmp_path / rel, name, **kwargs)
    return _make


@dataclass
class CargoRecorder:
    """Stands in for subprocess.run inside cargo.py and records each call."""
    returncode: int = 0
    calls: list = field(default_factory=list)     # (cmd, cwd)
    on_call: Optional[Callable[[list], None]] = None

    def __call__(self, cmd, *args, **kwargs):
        self.calls.append((list(cmd), Path.cwd()))
        if self.on_call is not None:
            self.on_call(list(cmd))
        return subprocess.CompletedProcess(cmd, self.returncode)

    @property
    def commands(self) -> list:
        return [cmd for cmd, _ in self.calls]


@pytest.fixture
def cargo_recorder(monkeypatch: pytest.MonkeyPatch) -> CargoRecorder:
    recorder = CargoRecorder()
    monkeypatch.setattr(cargo.subprocess, "run", recorder)
    monkeypatch.setattr(cargo.cfg, "CARGO", "cargo")
    return recorder
