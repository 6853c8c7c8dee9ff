"""
Task graph: namespaced build / test / clean operations per project.

Task kinds
----------
  Task       – a plain operation (test, clean, doc, aliases); always needed.
  BuildTask  – declares input files and an output (one artifact, or "every
               file in an output directory"); needed only when stale.
  FileTask   – a BuildTask named by the artifact path it stands for, with
               the matching BuildTask as its only prerequisite, so packaging
               can depend on concrete paths rather than operation names.

Naming
------
Every project gets a namespace identifier derived from its path relative to
the invocation root (subprojects) or its package name (root).  Per project::

    <ns>:build:debug              <ns>:build:release
    <ns>:build:<artifact>:debug   <ns>:build:<artifact>:release   (libraries: lib<name>)
    <ns>:test   <ns>:clean   <ns>:doc
    <project>/target/<profile>/<artifact>       (file tasks)

Invocation
----------
``TaskGraph.invoke(name, args)`` runs prerequisites first, each task at most
once per invocation, strictly sequentially, and runs a task's action only
when ``needed()``.  The first exception aborts the whole invocation.
"""
from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import config as cfg
import logger as log
import staleness
from cargo import Cargo
from errors import CrateBuildError, UnknownTaskError
from project import ArtifactKind, Library, NamedBinary, ProjectGraph, ProjectNode, WholeProject
from staleness import ArtifactOutput, DirectoryOutput, Output


# ══════════════════════════════════════════════════════════════════════════════
# Task types
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TaskArgs:
    """Options of one invocation, forwarded to every action."""
    verbose:           bool = False
    profile:           str  = cfg.DEFAULT_PROFILE
    with_dependencies: bool = True


Action = Callable[["Invocation"], None]


@dataclass(frozen=True)
class Task:
    name:          str
    action:        Optional[Action] = None
    prerequisites: tuple[str, ...]  = ()
    description:   str              = ""

    def needed(self) -> bool:
        return True

    def execute(self, run: "Invocation") -> None:
        if self.action is not None:
            self.action(run)


@dataclass(frozen=True)
class BuildTask(Task):
    inputs: frozenset[Path]  = frozenset()
    output: Optional[Output] = None

    def needed(self) -> bool:
        if self.output is None:
            return True
        return staleness.needed(self.inputs, self.output)


@dataclass(frozen=True)
class FileTask(BuildTask):

    def execute(self, run: "Invocation") -> None:
        super().execute(run)
        if isinstance(self.output, ArtifactOutput) and not self.output.path.exists():
            log.warn(f"Expected artifact not found: {self.output.path}")


# ══════════════════════════════════════════════════════════════════════════════
# TaskGraph
# ══════════════════════════════════════════════════════════════════════════════

class TaskGraph:
    """Name → Task.  The first definition of a name wins."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks.values())

    def __contains__(self, name: str) -> bool:
        return name in self._tasks

    def __getitem__(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise UnknownTaskError(name) from None

    def define(self, task: Task) -> Task:
        existing = self._tasks.get(task.name)
        if existing is not None:
            log.debug(f"Task {task.name} already defined – keeping the first definition")
            return existing
        self._tasks[task.name] = task
        return task

    def invoke(self, name: str, args: Optional[TaskArgs] = None) -> list[str]:
        """Invoke *name* and its prerequisites; return the names that ran."""
        run = Invocation(self, args or TaskArgs())
        run.invoke(name)
        return run.executed


class Invocation:
    """State of one ``TaskGraph.invoke`` call: what already ran, and the options."""

    def __init__(self, graph: TaskGraph, args: TaskArgs):
        self.graph = graph
        self.args = args
        self.executed: list[str] = []
        self._done: set[str] = set()
        self._stack: list[str] = []

    def invoke(self, name: str) -> None:
        task = self.graph[name]
        if name in self._done:
            return
        if name in self._stack:
            chain = " => ".join(self._stack + [name])
            raise CrateBuildError(f"Circular dependency detected: {chain}")

        self._stack.append(name)
        try:
            for prereq in task.prerequisites:
                self.invoke(prereq)
            if task.needed():
                log.task(name)
                task.execute(self)
                self.executed.append(name)
            else:
                log.info(f"{name}  ✓ up-to-date — skipping")
        finally:
            self._stack.pop()
        self._done.add(name)


# ══════════════════════════════════════════════════════════════════════════════
# TaskGraphBuilder
# ══════════════════════════════════════════════════════════════════════════════

_SEPARATOR = "_"
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def sanitize(text: str) -> str:
    """Collapse every run of non-alphanumeric characters into one ``_``."""
    ident = _NON_ALNUM.sub(_SEPARATOR, text).strip(_SEPARATOR)
    return ident or "project"


def artifact_key(artifact: Union[NamedBinary, Library]) -> str:
    """The task-name segment of an artifact; libraries are prefixed with ``lib``."""
    if isinstance(artifact, Library):
        return f"lib{artifact.name}"
    return artifact.name


def _build_action(cargo: Cargo, profile: str, artifact: ArtifactKind) -> Action:
    def _action(run: Invocation) -> None:
        cargo.build(profile, artifact, verbose=run.args.verbose)
    return _action


def _test_action(cargo: Cargo) -> Action:
    def _action(run: Invocation) -> None:
        cargo.test(verbose=run.args.verbose)
    return _action


def _doc_action(cargo: Cargo) -> Action:
    def _action(run: Invocation) -> None:
        cargo.doc(verbose=run.args.verbose)
    return _action


def _clean_action(cargo: Cargo, packages: tuple[str, ...]) -> Action:
    def _action(run: Invocation) -> None:
        cargo.clean(
            verbose=run.args.verbose,
            include_dependencies=run.args.with_dependencies,
            packages=packages,
        )
    return _action


@dataclass
class TaskGraphBuilder:
    """Walks a frozen ProjectGraph once and defines every project's tasks."""
    graph: ProjectGraph
    tasks: TaskGraph = field(default_factory=TaskGraph)
    _namespaces: dict = field(default_factory=dict, init=False, repr=False)   # path → ns
    _taken:      dict = field(default_factory=dict, init=False, repr=False)   # ns → path
    _visited:    set  = field(default_factory=set,  init=False, repr=False)

    def namespace_for(self, node: ProjectNode) -> str:
        """
        The namespace identifier of *node*.  Assigned once per project; if
        the sanitised name is already taken by another project, a short
        digest of the canonical path is appended, then a counter if that
        is taken too.
        """
        ns = self._namespaces.get(node.path)
        if ns is not None:
            return ns
        raw = node.name if node is self.graph.root else self.graph.relative_path(node)
        ns = sanitize(raw)
        if ns in self._taken:
            digest = hashlib.sha1(str(node.path).encode()).hexdigest()[:8]
            base = ns = f"{ns}{_SEPARATOR}{digest}"
            counter = 1
            # another project's directory may literally be named base
            while ns in self._taken:
                counter += 1
                ns = f"{base}{_SEPARATOR}{counter}"
        self._namespaces[node.path] = ns
        self._taken[ns] = node.path
        return ns

    def file_task_name(self, path: Path) -> str:
        return os.path.relpath(path, self.graph.root.path)

    def build(self) -> TaskGraph:
        for node in self.graph.nodes:
            self.add_project(node)
        return self.tasks

    def add_project(self, node: ProjectNode) -> None:
        if node.path in self._visited:
            return
        self._visited.add(node.path)

        ns = self.namespace_for(node)
        cargo = Cargo(node.path)
        inputs = node.recursive_sources

        for profile in cfg.PROFILES:
            self.tasks.define(BuildTask(
                name        = f"{ns}:build:{profile}",
                action      = _build_action(cargo, profile, WholeProject()),
                description = f"Build {node.name} ({profile})",
                inputs      = inputs,
                output      = DirectoryOutput(node.target_dir(profile)),
            ))
            for artifact in node.artifacts:
                op = f"{ns}:build:{artifact_key(artifact)}:{profile}"
                path = node.artifact_path(artifact, profile)
                self.tasks.define(BuildTask(
                    name        = op,
                    action      = _build_action(cargo, profile, artifact),
                    description = f"Build {type(artifact).__name__.lower()} {artifact.name} ({profile})",
                    inputs      = inputs,
                    output      = ArtifactOutput(path),
                ))
                self.tasks.define(FileTask(
                    name          = self.file_task_name(path),
                    prerequisites = (op,),
                    inputs        = inputs,
                    output        = ArtifactOutput(path),
                ))

        packages = tuple(dict.fromkeys([node.name] + [s.name for s in node.subprojects]))
        self.tasks.define(Task(f"{ns}:test", _test_action(cargo),
                               description=f"Run {node.name}'s tests"))
        self.tasks.define(Task(f"{ns}:clean", _clean_action(cargo, packages),
                               description=f"Clean {node.name}"))
        self.tasks.define(Task(f"{ns}:doc", _doc_action(cargo),
                               description=f"Document {node.name}"))
        log.debug(f"Defined tasks for {node.name} in namespace '{ns}'")
