#!/usr/bin/env python3
"""
crate-build CLI
===============

Usage examples
--------------
  python crate_build.py build                         # debug build of the root project
  python crate_build.py build release                 # release build
  python crate_build.py build_release --verbose       # release build, cargo --verbose
  python crate_build.py test                          # cargo test in the root project
  python crate_build.py clean                         # cargo clean (whole dependency closure)
  python crate_build.py clean --no-deps               # cargo clean -p <pkg> for root + direct deps
  python crate_build.py package                       # dist/<name>-<version>-<triple>.tar.gz
  python crate_build.py doc                           # cargo doc
  python crate_build.py run common:build:release      # invoke any namespaced task
  python crate_build.py run target/release/filament   # invoke a file task
  python crate_build.py tasks                         # list every task and whether it is stale
  python crate_build.py info                          # show discovered projects
  python crate_build.py info common                   # details of one project
  python crate_build.py --root ../other build         # use another invocation root
"""

import argparse
import os
import sys
from pathlib import Path

# ── make sure local modules are importable when run as a script ──────────────
sys.path.insert(0, os.path.dirname(__file__))

import config as cfg
import logger as log
from errors import CrateBuildError
from runner import Workspace
from tasks import BuildTask, FileTask, TaskArgs


# ─────────────────────────────────────────────────────────────────────────────
# Sub-command implementations
# ─────────────────────────────────────────────────────────────────────────────

def _task_args(args: argparse.Namespace, **overrides) -> TaskArgs:
    values = {
        "verbose":           getattr(args, "verbose", False),
        "profile":           getattr(args, "profile", None) or cfg.DEFAULT_PROFILE,
        "with_dependencies": not getattr(args, "no_deps", False),
    }
    values.update(overrides)
    return TaskArgs(**values)


def _invoke(task_name: str, args: argparse.Namespace, **overrides) -> int:
    workspace = Workspace.load(args.root)
    workspace.run(task_name, _task_args(args, **overrides))
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    """Build the root project with the given profile."""
    cfg.validate_profile(args.profile or cfg.DEFAULT_PROFILE)
    return _invoke("build", args)


def cmd_build_release(args: argparse.Namespace) -> int:
    return _invoke("build_release", args, profile="release")


def cmd_test(args: argparse.Namespace) -> int:
    return _invoke("test", args)


def cmd_clean(args: argparse.Namespace) -> int:
    return _invoke("clean", args)


def cmd_package(args: argparse.Namespace) -> int:
    return _invoke("package", args, profile="release")


def cmd_doc(args: argparse.Namespace) -> int:
    return _invoke("doc", args)


def cmd_run(args: argparse.Namespace) -> int:
    """Invoke an arbitrary task by name."""
    return _invoke(args.task, args)


def _kind(task) -> str:
    if isinstance(task, FileTask):
        return "file"
    if isinstance(task, BuildTask):
        return "build"
    return "task"


def cmd_tasks(args: argparse.Namespace) -> int:
    """List every task with its staleness."""
    from rich.table import Table

    workspace = Workspace.load(args.root)
    table = Table(title=f"Tasks  ({workspace.root.name})", show_lines=False)
    table.add_column("Task",        style="bold cyan", no_wrap=True)
    table.add_column("Kind",        style="dim")
    table.add_column("State",       justify="center")
    table.add_column("Description", style="dim")
    for task in workspace.tasks:
        kind = _kind(task)
        if kind == "task":
            state = "[dim]—[/dim]"
        elif task.needed():
            state = "[red]✖ stale[/red]"
        else:
            state = "[green]✔ up-to-date[/green]"
        table.add_row(task.name, kind, state, task.description)
    log.print_table(table)
    return 0


def _print_project(workspace: Workspace, name_or_path: str) -> None:
    node = workspace.graph.find(name_or_path)
    if node is None:
        raise CrateBuildError(f"No project named or located at '{name_or_path}'")
    manifest = node.manifest
    log.banner(f"{node.name} {node.version}", manifest.description)
    log.info(f"   {'Namespace':<18} {workspace.builder.namespace_for(node)}")
    log.info(f"   {'Path':<18} {node.path}")
    for artifact in node.artifacts:
        log.info(f"   {type(artifact).__name__:<18} {artifact.name}  ({artifact.entrypoint})")
    for dep in manifest.dependencies:
        where = dep.path if dep.is_local else "external"
        log.info(f"   {'Dependency':<18} {dep.name}  ({where})")
    log.info(f"   {'Sources':<18} {len(node.own_sources)} own, {len(node.recursive_sources)} with dependencies")


def cmd_info(args: argparse.Namespace) -> int:
    """Print resolved configuration and the discovered project graph."""
    from rich.table import Table

    workspace = Workspace.load(args.root)
    if args.project:
        _print_project(workspace, args.project)
        return 0

    log.banner("crate-build configuration")
    log.info(f"   {'Cargo':<18} {cfg.CARGO}")
    log.info(f"   {'Default profile':<18} {cfg.DEFAULT_PROFILE}")
    log.info(f"   {'Root':<18} {workspace.root.path}")
    log.info(f"   {'Dist dir':<18} {workspace.dist_dir}")

    table = Table(title="Projects", show_lines=True)
    table.add_column("Namespace",    style="bold cyan", no_wrap=True)
    table.add_column("Package")
    table.add_column("Path",         style="dim", overflow="fold")
    table.add_column("Artifacts")
    table.add_column("Dependencies", style="dim")
    table.add_column("Sources",      justify="right")
    for node in workspace.graph.nodes:
        table.add_row(
            workspace.builder.namespace_for(node),
            f"{node.name} {node.version}",
            workspace.graph.relative_path(node),
            ", ".join(a.name for a in node.artifacts) or "—",
            ", ".join(s.name for s in node.subprojects) or "—",
            str(len(node.recursive_sources)),
        )
    log.print_table(table)
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def _add_verbose_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument("--verbose", "-v", action="store_true",
        help="Pass --verbose through to cargo")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crate-build",
        description="crate-build: incremental multi-project cargo builds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version="crate-build 0.1.0")
    parser.add_argument("--root", metavar="DIR", type=Path, default=None,
        help="Invocation root containing Cargo.toml (default: current directory)")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p_build = sub.add_parser("build", help="Build the root project")
    p_build.add_argument("profile", metavar="PROFILE", nargs="?", default=None,
        choices=list(cfg.PROFILES),
        help=f"Build profile (default: {cfg.DEFAULT_PROFILE})")
    _add_verbose_arg(p_build)
    p_build.set_defaults(func=cmd_build)

    p_rel = sub.add_parser("build_release", help="Build the root project with --release")
    _add_verbose_arg(p_rel)
    p_rel.set_defaults(func=cmd_build_release)

    p_test = sub.add_parser("test", help="Run cargo test in the root project")
    _add_verbose_arg(p_test)
    p_test.set_defaults(func=cmd_test)

    p_clean = sub.add_parser("clean", help="Run cargo clean")
    p_clean.add_argument("--no-deps", action="store_true", dest="no_deps",
        help="Clean only the root package and its direct path dependencies "
             "(one 'cargo clean -p' per package) instead of everything")
    _add_verbose_arg(p_clean)
    p_clean.set_defaults(func=cmd_clean)

    p_pkg = sub.add_parser("package", help="Bundle release binaries into dist/*.tar.gz")
    _add_verbose_arg(p_pkg)
    p_pkg.set_defaults(func=cmd_package)

    p_doc = sub.add_parser("doc", help="Run cargo doc")
    _add_verbose_arg(p_doc)
    p_doc.set_defaults(func=cmd_doc)

    p_run = sub.add_parser("run", help="Invoke any task by name (see 'tasks')")
    p_run.add_argument("task", metavar="TASK")
    p_run.add_argument("--profile", choices=list(cfg.PROFILES), default=None)
    p_run.add_argument("--no-deps", action="store_true", dest="no_deps")
    _add_verbose_arg(p_run)
    p_run.set_defaults(func=cmd_run)

    p_tasks = sub.add_parser("tasks", help="List every task and whether it is up-to-date")
    p_tasks.set_defaults(func=cmd_tasks)

    p_info = sub.add_parser("info", help="Show configuration and discovered projects")
    p_info.add_argument("project", metavar="PROJECT", nargs="?", default=None,
        help="Show one project, by package name or directory")
    p_info.set_defaults(func=cmd_info)

    return parser


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except CrateBuildError as exc:
        log.error(str(exc))
        return 1


if __name__ == "__main__":
    sys.exit(main())
