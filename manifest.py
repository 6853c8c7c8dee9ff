"""
Cargo manifest reader.

Every project root contains a ``Cargo.toml`` declaring its identity and its
dependencies::

    [package]
    name    = "filament"
    version = "0.5.0-dev"

    [[bin]]
    name = "filament-cli"
    path = "src/bin/filament-cli.rs"

    [dependencies]
    log = "^0.3.1"                         # external – ignored by the graph
    common = { path = "common" }           # local – part of the project graph

    [dependencies.server]
    path = "server"                        # local (dotted-table form)

Only dependencies carrying a ``path`` key are graph-relevant; everything
else (bare version constraints, ``git`` / ``version`` tables) is resolved by
cargo itself and never looked at here.
"""
from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from errors import ManifestParseError


@dataclass(frozen=True)
class Dependency:
    name: str
    path: Optional[str] = None    # relative to the declaring project's root

    @property
    def is_local(self) -> bool:
        return self.path is not None


@dataclass(frozen=True)
class TargetDecl:
    """An explicit ``[[bin]]`` or ``[lib]`` declaration."""
    name: Optional[str]
    path: Optional[str] = None


@dataclass(frozen=True)
class Manifest:
    path:         Path                       # absolute path to Cargo.toml
    name:         str
    version:      str
    dependencies: tuple[Dependency, ...] = ()
    binaries:     tuple[TargetDecl, ...] = ()
    library:      Optional[TargetDecl] = None
    description:  str = ""

    @property
    def local_dependencies(self) -> list[Dependency]:
        return [d for d in self.dependencies if d.is_local]


def _parse_dependency(manifest_path: Path, name: str, spec) -> Dependency:
    if isinstance(spec, str):
        return Dependency(name)
    if isinstance(spec, dict):
        path = spec.get("path")
        if path is not None and not isinstance(path, str):
            raise ManifestParseError(manifest_path, f"dependency '{name}': 'path' must be a string")
        return Dependency(name, path)
    raise ManifestParseError(
        manifest_path, f"dependency '{name}' must be a version string or a table"
    )


def _parse_bins(manifest_path: Path, entries) -> tuple[TargetDecl, ...]:
    if not isinstance(entries, list):
        raise ManifestParseError(manifest_path, "'bin' must be an array of tables")
    bins = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
            raise ManifestParseError(manifest_path, "every [[bin]] entry needs a 'name'")
        bins.append(TargetDecl(entry["name"], entry.get("path")))
    return tuple(bins)


def parse(path: Path) -> Manifest:
    """
    Parse the Cargo.toml at *path*.

    Raises ManifestParseError when the file is missing, unreadable, not
    valid TOML, or lacks ``package.name`` / ``package.version``.
    """
    path = Path(path)
    try:
        with open(path, "rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError:
        raise ManifestParseError(path, "manifest not found") from None
    except tomllib.TOMLDecodeError as exc:
        raise ManifestParseError(path, f"malformed TOML: {exc}") from exc
    except OSError as exc:
        raise ManifestParseError(path, f"cannot read manifest: {exc}") from exc

    package = data.get("package")
    if not isinstance(package, dict):
        raise ManifestParseError(path, "missing [package] table")
    for key in ("name", "version"):
        if not isinstance(package.get(key), str):
            raise ManifestParseError(path, f"missing required field 'package.{key}'")

    deps = data.get("dependencies", {})
    if not isinstance(deps, dict):
        raise ManifestParseError(path, "[dependencies] must be a table")

    lib = data.get("lib")
    if lib is not None and not isinstance(lib, dict):
        raise ManifestParseError(path, "[lib] must be a table")

    return Manifest(
        path         = path,
        name         = package["name"],
        version      = package["version"],
        dependencies = tuple(_parse_dependency(path, n, s) for n, s in deps.items()),
        binaries     = _parse_bins(path, data.get("bin", [])),
        library      = TargetDecl(lib.get("name"), lib.get("path")) if lib else None,
        description  = package.get("description", ""),
    )
