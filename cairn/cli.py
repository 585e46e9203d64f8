"""
cairn CLI
=========

Usage examples
--------------
  cairn sync                      # resolve dependencies, rewrite .cairn/classpath.json
  cairn compile                   # compile stale local deps, then this project
  cairn compile --force           # recompile every source file
  cairn run -- --port 9000        # compile + run the entry class with arguments
  cairn test                      # compile, compile tests, run the JUnit launcher
  cairn test -f Order --details   # only classes matching .*Order.*, verbose report
  cairn build                     # compile + archive build/<artifact>-<version>.jar
  cairn dev                       # compile, run, recompile/restart on change
  cairn order                     # local build order (dependencies first)
  cairn classpath                 # print the compile classpath
  cairn classpath --runtime       # print the runtime classpath
  cairn info                      # manifest, plugins and discovered projects
  cairn clean                     # remove build output and the classpath cache
  cairn cache status              # is the classpath cache still valid?
  cairn cache clear               # delete the classpath cache
  cairn -C path/to/project build  # operate on another project directory
"""
import argparse
import sys
from pathlib import Path

from rich.table import Table

from cairn import __version__
from cairn import classpath as cp
from cairn import config as cfg
from cairn import graph
from cairn import logger as log
from cairn import runner
from cairn.errors import CairnError
from cairn.workspace import discover_projects


# ─────────────────────────────────────────────────────────────────────────────
# Sub-command implementations
# ─────────────────────────────────────────────────────────────────────────────

def cmd_sync(args: argparse.Namespace) -> int:
    session = runner.open_session(args.project)
    entries = cp.sync_dependencies(session.manifest, session.projects)
    log.info(f"Cache: {session.manifest.cache_path}  ({len(entries)} entr{'y' if len(entries) == 1 else 'ies'})")
    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    result = runner.compile_project(args.project, force=args.force)
    log.success(f"{result.compiled} file(s) compiled → {result.output_dir}")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    program_args = [a for a in args.program_args if a != "--"]
    return runner.run_project(args.project, args=program_args)


def cmd_test(args: argparse.Namespace) -> int:
    return runner.test_project(args.project, pattern=args.filter, details=args.details)


def cmd_build(args: argparse.Namespace) -> int:
    runner.build_project(args.project)
    return 0


def cmd_dev(args: argparse.Namespace) -> int:
    program_args = [a for a in args.program_args if a != "--"]
    runner.dev_project(args.project, args=program_args)
    return 0


def cmd_order(args: argparse.Namespace) -> int:
    manifest = runner.load_manifest(args.project)
    projects = discover_projects(manifest.project_dir)
    order = graph.build_order(manifest.name, projects)
    log.section(f"Build order  {manifest.name}")
    for i, name in enumerate(order, 1):
        log.step(i, len(order), f"{name}  {projects[name].project_dir}")
    return 0


def cmd_classpath(args: argparse.Namespace) -> int:
    session = runner.open_session(args.project)
    if args.runtime:
        classpath = cp.project_runtime_classpath(session.manifest, session.projects)
    else:
        classpath = cp.compile_classpath(session.manifest, session.projects)
    # plain stdout so the value can be captured by scripts
    print(classpath)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    session = runner.open_session(args.project)
    m = session.manifest
    log.banner(f"{m.name}  {m.version}", str(m.project_dir))

    static = {
        "Source dir":   m.source_path,
        "Output dir":   m.output_path,
        "Cache file":   m.cache_path,
        "Global store": cfg.global_store(m.project_dir, m.local_rep),
    }
    for label, path in static.items():
        exists = "✔" if path.exists() else "✖"
        log.info(f"{exists}  {label:<14} {path}")
    log.info(f"   {'Entry':<14} {m.entry or '—'}")
    log.info(f"   {'Plugins':<14} {', '.join(session.plugins.names()) or '—'}")
    log.info(f"   {'Repositories':<14} {', '.join(m.effective_repositories())}")

    table = Table(title="Workspace projects", show_lines=True)
    table.add_column("Project", style="bold cyan", no_wrap=True)
    table.add_column("Version")
    table.add_column("Directory", style="dim", overflow="fold")
    table.add_column("Depended on", justify="center")
    for name, project in session.projects.items():
        mark = "[green]✔[/green]" if name in m.dependencies else ""
        table.add_row(name, project.version, str(project.project_dir), mark)
    log.print_table(table)
    return 0


def cmd_clean(args: argparse.Namespace) -> int:
    removed = runner.clean_project(args.project)
    if not removed:
        log.info("Nothing to clean.")
    else:
        log.success(f"Cleaned {len(removed)} path(s)")
    return 0


def cmd_cache(args: argparse.Namespace) -> int:
    manifest = runner.load_manifest(args.project)
    sub = args.cache_command

    if sub == "clear":
        if cp.clear_cache(manifest.cache_path):
            log.success("Classpath cache cleared — dependencies will re-resolve on next run.")
        else:
            log.info("No classpath cache to clear.")
        return 0

    if sub == "status":
        cache = cp.read_cache(manifest.cache_path)
        if cache is None:
            log.warn(f"No classpath cache at {manifest.cache_path}")
            return 0
        valid = cp.is_cache_valid(manifest.cache_path, manifest.path)
        log.banner("Classpath Cache", str(manifest.cache_path))
        table = Table(title=f"Resolved {cache.resolved_at}", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Entry", overflow="fold")
        table.add_column("Exists", justify="center")
        for i, entry in enumerate(cache.entries, 1):
            mark = "[green]✔[/green]" if Path(entry).exists() else "[red]✖[/red]"
            table.add_row(str(i), entry, mark)
        log.print_table(table)
        log.info(f"Cache is {'valid' if valid else 'stale'}")
        return 0

    log.error(f"Unknown cache sub-command: {sub}")
    return 1


# ─────────────────────────────────────────────────────────────────────────────
# Parser
# ─────────────────────────────────────────────────────────────────────────────

def _add_program_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "program_args", nargs=argparse.REMAINDER,
        help="Arguments passed to the program (after '--')",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cairn",
        description="cairn – build orchestration for Java workspaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"cairn {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show debug output (resolver progress, commands)")
    parser.add_argument("-C", "--project", type=Path, default=Path("."),
                        help="Project directory (default: current directory)")

    sub = parser.add_subparsers(dest="command", metavar="<command>")
    sub.required = True

    p_sync = sub.add_parser("sync", help="Resolve dependencies and rewrite the classpath cache")
    p_sync.set_defaults(func=cmd_sync)

    p_compile = sub.add_parser("compile", help="Compile stale sources (local deps first)")
    p_compile.add_argument("--force", action="store_true", help="Recompile every source file")
    p_compile.set_defaults(func=cmd_compile)

    p_run = sub.add_parser("run", help="Compile and run the entry class")
    _add_program_args(p_run)
    p_run.set_defaults(func=cmd_run)

    p_test = sub.add_parser("test", help="Compile and run the JUnit tests")
    p_test.add_argument("-f", "--filter", metavar="PATTERN", help="Only test classes matching .*PATTERN.*")
    p_test.add_argument("--details", action="store_true", help="Verbose launcher report")
    p_test.set_defaults(func=cmd_test)

    p_build = sub.add_parser("build", help="Compile and archive into build/<artifact>-<version>.jar")
    p_build.set_defaults(func=cmd_build)

    p_dev = sub.add_parser("dev", help="Run with hot reload and dev-server plugins")
    _add_program_args(p_dev)
    p_dev.set_defaults(func=cmd_dev)

    p_order = sub.add_parser("order", help="Show the local build order")
    p_order.set_defaults(func=cmd_order)

    p_cp = sub.add_parser("classpath", help="Print the resolved classpath")
    p_cp.add_argument("--runtime", action="store_true", help="Runtime instead of compile classpath")
    p_cp.set_defaults(func=cmd_classpath)

    p_info = sub.add_parser("info", help="Show manifest, plugins and workspace projects")
    p_info.set_defaults(func=cmd_info)

    p_clean = sub.add_parser("clean", help="Remove build output and the classpath cache")
    p_clean.set_defaults(func=cmd_clean)

    p_cache = sub.add_parser("cache", help="Inspect or clear the classpath cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command", metavar="<action>")
    cache_sub.required = True
    cache_sub.add_parser("status", help="Show cache entries and validity").set_defaults(func=cmd_cache)
    cache_sub.add_parser("clear", help="Delete the classpath cache").set_defaults(func=cmd_cache)

    return parser


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        log.set_verbose(True)
    try:
        code = args.func(args)
    except CairnError as exc:
        log.error(str(exc))
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
