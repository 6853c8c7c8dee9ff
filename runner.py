"""
High-level command surface:
  - build [profile]   : whole-project build of the invocation root
  - build_release     : release build of the invocation root
  - test / clean / doc: cargo test / clean / doc in the invocation root
  - package           : bundle the root's release binaries into
                        dist/<name>-<version>-<triple>.tar.gz
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import config as cfg
import fsutil as fs
import gitinfo
import logger as log
from errors import ConfigurationError, CrateBuildError
from project import ProjectGraph, ProjectNode
from staleness import ArtifactOutput
from tasks import FileTask, Invocation, Task, TaskArgs, TaskGraph, TaskGraphBuilder


def release_archive_name(node: ProjectNode, triple: str) -> str:
    return f"{node.name}-{node.version}-{triple}.tar.gz"


def _fail(exc: CrateBuildError):
    def _action(run: Invocation) -> None:
        raise exc
    return _action


@dataclass
class Workspace:
    """A discovered project graph plus every task defined over it."""
    graph:   ProjectGraph
    builder: TaskGraphBuilder
    tasks:   TaskGraph

    @classmethod
    def load(cls, root: Optional[Path] = None) -> "Workspace":
        root_dir = Path(root).resolve() if root is not None else cfg.default_root()
        graph = ProjectGraph.discover(root_dir)
        builder = TaskGraphBuilder(graph)
        workspace = cls(graph, builder, builder.build())
        workspace._define_commands()
        return workspace

    @property
    def root(self) -> ProjectNode:
        return self.graph.root

    @property
    def namespace(self) -> str:
        return self.builder.namespace_for(self.root)

    @property
    def dist_dir(self) -> Path:
        return self.root.path / cfg.DIST_DIR

    # ── top-level tasks ────────────────────────────────────────────────────

    def _define_commands(self) -> None:
        ns = self.namespace

        def _build(run: Invocation) -> None:
            run.invoke(f"{ns}:build:{cfg.validate_profile(run.args.profile)}")

        self.tasks.define(Task("build", _build, description="Build the root project (profile argument)"))
        self.tasks.define(Task("build_release", prerequisites=(f"{ns}:build:release",),
                               description="Build the root project in release mode"))
        self.tasks.define(Task("test", prerequisites=(f"{ns}:test",),
                               description="Run the root project's tests"))
        self.tasks.define(Task("clean", prerequisites=(f"{ns}:clean",),
                               description="Clean the root project (and its dependencies)"))
        self.tasks.define(Task("doc", prerequisites=(f"{ns}:doc",),
                               description="Generate documentation"))
        self._define_package()
        self.tasks.define(Task("default", prerequisites=("build",)))

    def _define_package(self) -> None:
        binaries = [self.root.artifact_path(b, "release") for b in self.root.binaries]
        if not binaries:
            self.tasks.define(Task("package", _fail(CrateBuildError(
                f"{self.root.name} has no binary targets to package")),
                description="Bundle release binaries into a tarball"))
            return
        try:
            triple = cfg.target_triple()
        except ConfigurationError as exc:
            self.tasks.define(Task("package", _fail(exc),
                                   description="Bundle release binaries into a tarball"))
            return

        archive = self.dist_dir / release_archive_name(self.root, triple)
        archive_task = self.tasks.define(FileTask(
            name          = self.builder.file_task_name(archive),
            action        = self._package_action(archive, binaries),
            prerequisites = tuple(self.builder.file_task_name(b) for b in binaries),
            inputs        = frozenset(binaries),
            output        = ArtifactOutput(archive),
        ))
        self.tasks.define(Task("package", prerequisites=(archive_task.name,),
                               description=f"Bundle release binaries into {archive.name}"))

    def _package_action(self, archive: Path, binaries: list[Path]):
        def _action(run: Invocation) -> None:
            members = [(b, b.name) for b in binaries]
            revision = gitinfo.short_revision(self.root.path)
            if revision:
                fs.ensure_dir(self.dist_dir)
                rev_file = self.dist_dir / cfg.REVISION_FILE
                rev_file.write_text(revision, encoding="utf-8")
                members.append((rev_file, cfg.REVISION_FILE))
            else:
                log.warn("No git revision available – archive will not carry one.")
            fs.write_archive(archive, members)
        return _action

    # ── invocation ─────────────────────────────────────────────────────────

    def run(self, name: str, args: Optional[TaskArgs] = None) -> list[str]:
        """Invoke task *name*, logging a summary; errors propagate."""
        args = args or TaskArgs()
        log.banner(
            f"crate-build  {name}",
            f"Root: {self.root.name} {self.root.version}  |  "
            f"Projects: {len(self.graph.nodes)}  |  Profile: {args.profile}  |  "
            f"Verbose: {args.verbose}",
        )
        start = time.time()
        executed = self.tasks.invoke(name, args)
        log.success(
            f"Done in {log.duration(time.time() - start)} — "
            f"ran {len(executed)} task(s)"
        )
        return executed
