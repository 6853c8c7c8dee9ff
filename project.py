"""
Project graph discovery.

A run starts from one invocation root.  Its Cargo.toml is parsed, and every
dependency that carries a ``path`` is followed recursively, so the result is
a graph of ProjectNodes keyed by canonical (absolute, symlink-resolved)
directory.

Discovery is two-phase:

  1. ``ProjectRegistry.register_or_get`` builds nodes.  A node is registered
     *before* its path dependencies are followed, so a project that depends
     on itself (or a cycle of projects) sees the existing, still-incomplete
     node instead of recursing forever.
  2. ``ProjectGraph.discover`` freezes every reachable node: the recursive
     source set is computed once over the node's closure and the subproject
     list becomes a tuple.  After that the graph is read-only.

Diamond-shared subprojects (A → B → D, A → C → D) exist once in the registry
and contribute their sources once, because everything is a set keyed by path.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional, Union

import config as cfg
import fsutil as fs
import logger as log
import manifest as manifestmod
from errors import ManifestParseError
from manifest import Manifest


# ══════════════════════════════════════════════════════════════════════════════
# Artifact kinds
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WholeProject:
    """Every target of the project (plain ``cargo build``)."""


@dataclass(frozen=True)
class NamedBinary:
    name:       str
    entrypoint: Path


@dataclass(frozen=True)
class Library:
    name:       str
    entrypoint: Path


ArtifactKind = Union[WholeProject, NamedBinary, Library]


# ══════════════════════════════════════════════════════════════════════════════
# ProjectNode
# ══════════════════════════════════════════════════════════════════════════════

def _own_sources(project_dir: Path, manifest: Manifest) -> frozenset[Path]:
    src = project_dir / cfg.SOURCE_DIR
    return frozenset([manifest.path, *fs.source_files(src, cfg.SOURCE_EXT)])


def _binaries(project_dir: Path, manifest: Manifest) -> tuple[NamedBinary, ...]:
    """
    ``src/main.rs`` (named after the package), every ``src/bin/*.rs`` and
    every ``src/bin/<name>/main.rs``.  ``[[bin]]`` entries with a path rename
    the binary found there, or add it when it lives outside the convention.
    """
    src = project_dir / cfg.SOURCE_DIR
    found: dict[Path, str] = {}

    main = src / cfg.MAIN_FILE
    if main.is_file():
        found[main] = manifest.name

    bin_dir = src / cfg.BIN_DIR
    if bin_dir.is_dir():
        for entry in sorted(bin_dir.iterdir()):
            if entry.is_file() and entry.suffix == f".{cfg.SOURCE_EXT}":
                found[entry] = entry.stem
            elif entry.is_dir() and (entry / cfg.MAIN_FILE).is_file():
                found[entry / cfg.MAIN_FILE] = entry.name

    for decl in manifest.binaries:
        if decl.path is None:
            continue
        declared = project_dir / decl.path
        if declared.is_file():
            found[declared] = decl.name

    return tuple(NamedBinary(name, path) for path, name in found.items())


def _library(project_dir: Path, manifest: Manifest) -> Optional[Library]:
    decl = manifest.library
    entry = project_dir / (decl.path if decl and decl.path else Path(cfg.SOURCE_DIR, cfg.LIB_FILE))
    if not entry.is_file():
        return None
    name = decl.name if decl and decl.name else manifest.name.replace("-", "_")
    return Library(name, entry)


@dataclass(eq=False)
class ProjectNode:
    """
    One buildable project.

    ``subprojects`` and ``recursive_sources`` are filled in during discovery
    and fixed by :meth:`freeze`; nodes compare by identity.
    """
    path:        Path                     # canonical project directory
    manifest:    Manifest
    own_sources: frozenset[Path]
    binaries:    tuple[NamedBinary, ...]  = ()
    library:     Optional[Library]        = None
    subprojects: Union[list, tuple]       = field(default_factory=list)
    recursive_sources: frozenset[Path]    = frozenset()
    frozen:      bool                     = False

    @classmethod
    def from_manifest(cls, project_dir: Path, manifest: Manifest) -> "ProjectNode":
        return cls(
            path        = project_dir,
            manifest    = manifest,
            own_sources = _own_sources(project_dir, manifest),
            binaries    = _binaries(project_dir, manifest),
            library     = _library(project_dir, manifest),
        )

    # ── identity ───────────────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def version(self) -> str:
        return self.manifest.version

    def __repr__(self) -> str:
        return f"ProjectNode({self.name!r}, {str(self.path)!r})"

    # ── derived queries ────────────────────────────────────────────────────

    @property
    def artifacts(self) -> tuple[Union[NamedBinary, Library], ...]:
        return self.binaries + ((self.library,) if self.library else ())

    def closure(self) -> list["ProjectNode"]:
        """This node plus every transitively reachable subproject, each once."""
        seen: set[Path] = set()
        order: list[ProjectNode] = []

        def _visit(node: ProjectNode) -> None:
            if node.path in seen:
                return
            seen.add(node.path)
            order.append(node)
            for sub in node.subprojects:
                _visit(sub)

        _visit(self)
        return order

    def compute_recursive_sources(self) -> frozenset[Path]:
        return frozenset().union(*(n.own_sources for n in self.closure()))

    def freeze(self) -> None:
        if self.frozen:
            return
        self.subprojects = tuple(self.subprojects)
        self.recursive_sources = self.compute_recursive_sources()
        self.frozen = True

    def target_dir(self, profile: str) -> Path:
        return self.path / cfg.TARGET_DIR / profile

    def artifact_path(self, artifact: Union[NamedBinary, Library], profile: str) -> Path:
        if isinstance(artifact, NamedBinary):
            return self.target_dir(profile) / artifact.name
        if isinstance(artifact, Library):
            return self.target_dir(profile) / f"lib{artifact.name}.rlib"
        raise TypeError(f"No single artifact path for {artifact!r}")


# ══════════════════════════════════════════════════════════════════════════════
# ProjectRegistry
# ══════════════════════════════════════════════════════════════════════════════

class ProjectRegistry:
    """Canonical project path → the single ProjectNode for that path."""

    def __init__(self) -> None:
        self._nodes: dict[Path, ProjectNode] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ProjectNode]:
        return iter(self._nodes.values())

    def register_or_get(self, path) -> ProjectNode:
        """
        Return the node for *path*, discovering it (and, recursively, its
        path dependencies) on first request.
        """
        canonical = Path(path).resolve()
        node = self._nodes.get(canonical)
        if node is not None:
            return node

        manifest = manifestmod.parse(canonical / cfg.MANIFEST_FILE)
        node = ProjectNode.from_manifest(canonical, manifest)
        self._nodes[canonical] = node
        log.debug(f"Discovered {manifest.name} {manifest.version} at {canonical}")

        for dep in manifest.local_dependencies:
            dep_dir = canonical / dep.path
            if not (dep_dir / cfg.MANIFEST_FILE).is_file():
                raise ManifestParseError(
                    manifest.path,
                    f"local dependency '{dep.name}' has no {cfg.MANIFEST_FILE} at {dep_dir}",
                )
            sub = self.register_or_get(dep_dir)
            if not any(s is sub for s in node.subprojects):
                node.subprojects.append(sub)
        return node


# ══════════════════════════════════════════════════════════════════════════════
# ProjectGraph
# ══════════════════════════════════════════════════════════════════════════════

class ProjectGraph:
    """The frozen result of discovery, rooted at the invocation root."""

    def __init__(self, root: ProjectNode, registry: ProjectRegistry):
        self.root = root
        self.registry = registry

    @classmethod
    def discover(cls, root_dir, registry: Optional[ProjectRegistry] = None) -> "ProjectGraph":
        registry = registry if registry is not None else ProjectRegistry()
        root = registry.register_or_get(root_dir)
        for node in root.closure():
            node.freeze()
        log.debug(f"Project graph: {len(registry)} project(s) under {root.path}")
        return cls(root, registry)

    @property
    def nodes(self) -> list[ProjectNode]:
        """Every project reachable from the root, root first."""
        return self.root.closure()

    def relative_path(self, node: ProjectNode) -> str:
        return os.path.relpath(node.path, self.root.path)

    def find(self, name_or_path: str) -> Optional[ProjectNode]:
        """Look a project up by package name (case-insensitive) or directory."""
        for node in self.nodes:
            if node.name.lower() == name_or_path.lower():
                return node
        candidate = (self.root.path / name_or_path).resolve()
        for node in self.nodes:
            if node.path == candidate:
                return node
        return None
