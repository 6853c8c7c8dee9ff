"""Tests for project discovery, the registry and source-set resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from errors import ManifestParseError
from project import Library, NamedBinary, ProjectGraph, ProjectRegistry


# =============================================================================
# ProjectRegistry
# =============================================================================


class TestRegistry:
    """One node per canonical path for the lifetime of a registry."""

    def test_repeated_lookup_returns_same_instance(self, make_project) -> None:
        root = make_project("app", "app")
        registry = ProjectRegistry()
        first = registry.register_or_get(root)
        assert registry.register_or_get(root) is first
        assert registry.register_or_get(root / "src" / "..") is first
        assert len(registry) == 1

    def test_symlinked_path_resolves_to_same_node(self, make_project, tmp_path: Path) -> None:
        root = make_project("app", "app")
        link = tmp_path / "link"
        link.symlink_to(root, target_is_directory=True)
        registry = ProjectRegistry()
        assert registry.register_or_get(link) is registry.register_or_get(root)

    def test_diamond_dependency_discovered_once(self, make_project) -> None:
        make_project("ws/shared", "shared", sources=("lib.rs",))
        make_project("ws/left", "left", deps={"shared": {"path": "../shared"}}, sources=("lib.rs",))
        make_project("ws/right", "right", deps={"shared": {"path": "../shared"}}, sources=("lib.rs",))
        root = make_project("ws", "top", deps={
            "left": {"path": "left"},
            "right": {"path": "right"},
        })
        registry = ProjectRegistry()
        top = registry.register_or_get(root)
        left, right = top.subprojects
        assert left.subprojects[0] is right.subprojects[0]
        assert len(registry) == 4

    def test_self_reference_terminates(self, make_project) -> None:
        root = make_project("app", "app", deps={"app": {"path": "."}})
        graph = ProjectGraph.discover(root)
        assert graph.root.subprojects == (graph.root,)
        assert graph.nodes == [graph.root]

    def test_cycle_terminates(self, make_project) -> None:
        make_project("ws/b", "b", deps={"a": {"path": ".."}}, sources=("lib.rs",))
        root = make_project("ws", "a", deps={"b": {"path": "b"}})
        graph = ProjectGraph.discover(root)
        b = graph.root.subprojects[0]
        assert b.subprojects[0] is graph.root
        assert b.recursive_sources == graph.root.recursive_sources

    def test_version_only_dependency_adds_no_subproject(self, make_project) -> None:
        root = make_project("app", "app", deps={"log": "^0.3.1"})
        graph = ProjectGraph.discover(root)
        assert graph.root.subprojects == ()

    def test_missing_local_dependency_is_fatal(self, make_project) -> None:
        root = make_project("app", "app", deps={"ghost": {"path": "ghost"}})
        with pytest.raises(ManifestParseError, match="ghost"):
            ProjectGraph.discover(root)

    def test_same_name_at_different_paths_is_allowed(self, make_project) -> None:
        make_project("ws/a/util", "util", sources=("lib.rs",))
        make_project("ws/b/util", "util", sources=("lib.rs",))
        root = make_project("ws", "top", deps={
            "util": {"path": "a/util"},
            "util2": {"path": "b/util"},
        })
        graph = ProjectGraph.discover(root)
        assert [n.name for n in graph.nodes] == ["top", "util", "util"]


# =============================================================================
# Source sets
# =============================================================================


class TestSourceSets:
    """Own and recursive source sets."""

    def test_own_sources_are_manifest_plus_rs_files(self, make_project) -> None:
        root = make_project("app", "app", sources=("main.rs", "net/mod.rs", "bin/cli.rs"))
        (root / "src" / "notes.txt").write_text("x", encoding="utf-8")
        node = ProjectGraph.discover(root).root
        rel = {p.relative_to(node.path).as_posix() for p in node.own_sources}
        assert rel == {"Cargo.toml", "src/main.rs", "src/net/mod.rs", "src/bin/cli.rs"}

    def test_recursive_sources_is_union_over_subprojects(self, make_project) -> None:
        make_project("ws/common", "common", sources=("lib.rs",))
        make_project("ws/server", "server", deps={"common": {"path": "../common"}}, sources=("lib.rs",))
        root = make_project("ws", "app", deps={
            "server": {"path": "server"},
            "common": {"path": "common"},
        })
        graph = ProjectGraph.discover(root)
        app = graph.root
        server, common = app.subprojects
        expected = app.own_sources | server.recursive_sources | common.recursive_sources
        assert app.recursive_sources == expected
        assert common.own_sources <= app.recursive_sources
        assert server.recursive_sources == server.own_sources | common.own_sources

    def test_recursive_sources_independent_of_declaration_order(self, make_project, tmp_path: Path) -> None:
        for ws, order in (("one", ("a", "b")), ("two", ("b", "a"))):
            make_project(f"{ws}/a", "a", sources=("lib.rs",))
            make_project(f"{ws}/b", "b", deps={"a": {"path": "../a"}}, sources=("lib.rs",))
            make_project(ws, "root", deps={name: {"path": name} for name in order})
        one = ProjectGraph.discover(tmp_path / "one").root
        two = ProjectGraph.discover(tmp_path / "two").root
        rel = lambda node: {p.relative_to(node.path) for p in node.recursive_sources}
        assert rel(one) == rel(two)

    def test_frozen_nodes_have_tuple_subprojects(self, make_project) -> None:
        make_project("ws/common", "common", sources=("lib.rs",))
        root = make_project("ws", "app", deps={"common": {"path": "common"}})
        graph = ProjectGraph.discover(root)
        assert all(n.frozen for n in graph.nodes)
        assert isinstance(graph.root.subprojects, tuple)


# =============================================================================
# Entrypoints
# =============================================================================


class TestEntrypoints:
    """Binary and library artifacts found by directory convention."""

    def test_main_and_bin_dir(self, make_project) -> None:
        root = make_project("app", "filament", sources=("main.rs", "bin/filament-cli.rs", "bin/tool/main.rs"))
        node = ProjectGraph.discover(root).root
        assert [b.name for b in node.binaries] == ["filament", "filament-cli", "tool"]
        assert all(isinstance(b, NamedBinary) for b in node.binaries)
        assert node.library is None

    def test_library_named_after_package(self, make_project) -> None:
        root = make_project("lib", "mogilefs-common", sources=("lib.rs",))
        node = ProjectGraph.discover(root).root
        assert node.binaries == ()
        assert node.library == Library("mogilefs_common", node.path / "src" / "lib.rs")

    def test_declared_bin_renames_artifact(self, make_project) -> None:
        root = make_project("app", "app", sources=("main.rs", "tools/admin.rs"), extra=(
            '[[bin]]\nname = "server"\npath = "src/main.rs"\n\n'
            '[[bin]]\nname = "admin"\npath = "src/tools/admin.rs"'
        ))
        node = ProjectGraph.discover(root).root
        assert [b.name for b in node.binaries] == ["server", "admin"]

    def test_artifact_paths(self, make_project) -> None:
        root = make_project("app", "app", sources=("main.rs", "lib.rs"))
        node = ProjectGraph.discover(root).root
        binary, library = node.artifacts
        assert node.artifact_path(binary, "release") == node.path / "target" / "release" / "app"
        assert node.artifact_path(library, "debug") == node.path / "target" / "debug" / "libapp.rlib"


class TestGraphQueries:

    def test_find_by_name_or_path(self, make_project) -> None:
        make_project("ws/common", "common", sources=("lib.rs",))
        root = make_project("ws", "app", deps={"common": {"path": "common"}})
        graph = ProjectGraph.discover(root)
        assert graph.find("COMMON") is graph.root.subprojects[0]
        assert graph.find("common/") is graph.root.subprojects[0]
        assert graph.find("nope") is None
        assert graph.relative_path(graph.root.subprojects[0]) == "common"
