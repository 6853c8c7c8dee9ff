"""Tests for the cargo executor and the scoped working directory."""

from __future__ import annotations

from pathlib import Path

import pytest

import cargo
import fsutil as fs
from cargo import Cargo, build_args
from errors import BuildExecutionError, ConfigurationError
from project import Library, NamedBinary, WholeProject


class TestBuildArgs:

    @pytest.mark.parametrize("profile, artifact, verbose, expected", [
        ("debug", WholeProject(), False, ["build"]),
        ("release", WholeProject(), False, ["build", "--release"]),
        ("debug", NamedBinary("filament-cli", Path("x.rs")), True, ["build", "--bin", "filament-cli", "--verbose"]),
        ("release", Library("common", Path("lib.rs")), False, ["build", "--lib", "--release"]),
    ])
    def test_flags(self, profile, artifact, verbose, expected) -> None:
        assert build_args(profile, artifact, verbose=verbose) == expected

    def test_unknown_profile(self) -> None:
        with pytest.raises(ConfigurationError, match="bench"):
            build_args("bench", WholeProject())


class TestCargo:

    def test_runs_in_place_when_already_in_project(self, tmp_path: Path, cargo_recorder, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        Cargo(tmp_path).test(verbose=True)
        assert cargo_recorder.calls == [(["cargo", "test", "--verbose"], tmp_path.resolve())]

    def test_changes_into_subproject_and_back(self, tmp_path: Path, cargo_recorder, monkeypatch) -> None:
        sub = tmp_path / "common"
        sub.mkdir()
        monkeypatch.chdir(tmp_path)
        Cargo(sub).doc()
        assert cargo_recorder.calls == [(["cargo", "doc"], sub.resolve())]
        assert Path.cwd() == tmp_path.resolve()

    def test_failure_restores_directory(self, tmp_path: Path, cargo_recorder, monkeypatch) -> None:
        sub = tmp_path / "server"
        sub.mkdir()
        monkeypatch.chdir(tmp_path)
        cargo_recorder.returncode = 101
        with pytest.raises(BuildExecutionError) as info:
            Cargo(sub).build("release")
        assert info.value.command == ["cargo", "build", "--release"]
        assert info.value.exit_code == 101
        assert Path.cwd() == tmp_path.resolve()

    def test_missing_executable(self, tmp_path: Path, monkeypatch) -> None:
        def missing(cmd, *args, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(cargo.subprocess, "run", missing)
        monkeypatch.chdir(tmp_path)
        with pytest.raises(BuildExecutionError) as info:
            Cargo(tmp_path, executable="no-such-cargo").build("debug")
        assert info.value.exit_code == 127

    def test_scoped_clean_one_call_per_package(self, tmp_path: Path, cargo_recorder, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        Cargo(tmp_path).clean(include_dependencies=False, packages=("a", "b"))
        assert cargo_recorder.commands == [
            ["cargo", "clean", "-p", "a"],
            ["cargo", "clean", "-p", "b"],
        ]


class TestWorkingDirectory:

    def test_restores_after_exception(self, tmp_path: Path, monkeypatch) -> None:
        target = tmp_path / "inner"
        target.mkdir()
        monkeypatch.chdir(tmp_path)
        with pytest.raises(RuntimeError):
            with fs.working_directory(target):
                assert Path.cwd() == target.resolve()
                raise RuntimeError("boom")
        assert Path.cwd() == tmp_path.resolve()
