"""
High-level pipelines:
  - compile_project : stale local deps in build order, then this project
  - run_project     : compile, then run the entry class
  - test_project    : compile, compile the test root, run the JUnit launcher
  - build_project   : compile, then archive the output into a jar
  - dev_project     : compile, start dev-server hooks, supervise the app
  - clean_project   : remove outputs and the classpath cache
"""
import signal
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from cairn import classpath as cp
from cairn import compiler
from cairn import config as cfg
from cairn import fs
from cairn import graph
from cairn import incremental
from cairn import logger as log
from cairn.errors import CairnError, ManifestError, SuiteError
from cairn.manifest import ProjectManifest
from cairn.plugins import PluginContext, PluginManager, resolve_named_plugins
from cairn.process import SupervisedProcess
from cairn.workspace import LocalProject, discover_projects


# ─────────────────────────────────────────────────────────────────────────────
# Session
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Session:
    """
    Everything one invocation works with: the resolved manifest (after the
    config pipeline), the plugin manager and the local projects visible
    from the project directory.
    """
    manifest: ProjectManifest
    plugins:  PluginManager
    projects: Dict[str, LocalProject] = field(default_factory=dict)
    is_dev:   bool = False

    @property
    def project_dir(self) -> Path:
        return self.manifest.project_dir

    def context(self, **fields) -> PluginContext:
        return self.plugins.create_context(self.manifest, self.is_dev, **fields)


def load_manifest(project_dir: Path) -> ProjectManifest:
    manifest = ProjectManifest.load(Path(project_dir))
    if manifest is None:
        raise ManifestError(f"No {cfg.MANIFEST_FILE} found in {Path(project_dir).resolve()}")
    return manifest


def open_session(
    project_dir: Path,
    *,
    is_dev: bool = False,
    plugins: Optional[PluginManager] = None,
) -> Session:
    """Load the manifest, run the config pipeline and discover local projects."""
    manifest = load_manifest(project_dir)
    manager = plugins if plugins is not None else PluginManager(resolve_named_plugins(manifest))
    manifest = manager.run_config_hooks(manifest)
    manager.run_config_resolved_hooks(manifest)
    projects = discover_projects(manifest.project_dir)
    log.debug(f"Plugins: {', '.join(manager.names()) or '(none)'}")
    return Session(manifest, manager, projects, is_dev)


# ─────────────────────────────────────────────────────────────────────────────
# Compile
# ─────────────────────────────────────────────────────────────────────────────

def _resource_dirs(manifest: ProjectManifest) -> List[Path]:
    dirs: List[Path] = []
    for rel in (*cfg.RESOURCE_DIRS, f"{manifest.source_dir}/resources"):
        path = (manifest.project_dir / rel).resolve()
        if path.is_dir() and path not in dirs:
            dirs.append(path)
    return dirs


def copy_resources(manifest: ProjectManifest) -> int:
    copied = 0
    for res_dir in _resource_dirs(manifest):
        copied += fs.copy_tree(res_dir, manifest.output_path)
    if copied:
        log.info(f"Copied {copied} resource file(s) → {manifest.output_path}")
    return copied


def _invoke_compiler(session: Session, ctx: PluginContext) -> compiler.CompileResult:
    plugin = session.plugins.get_language_plugin(cfg.SOURCE_EXTENSION)
    if plugin is not None and plugin.language.compile is not None:
        return plugin.language.compile(ctx)
    return compiler.run_javac(ctx.sources, ctx.output_dir, ctx.classpath, cwd=ctx.root)


def _compile_module(
    session: Session,
    manifest: ProjectManifest,
    *,
    force: bool = False,
    hooks: bool = True,
) -> compiler.CompileResult:
    source_root = manifest.source_path
    output_root = manifest.output_path

    classpath = cp.compile_classpath(manifest, session.projects)
    ctx = PluginContext(
        root=manifest.project_dir, config=manifest, is_dev=session.is_dev,
        classpath=classpath, output_dir=output_root,
    )
    if force:
        ctx.sources = incremental.source_files(source_root)
    elif incremental.module_needs_recompile(source_root, output_root):
        ctx.sources = incremental.stale_sources(source_root, output_root)

    if hooks:
        session.plugins.run_hook("before_compile", ctx)

    if ctx.sources:
        result = _invoke_compiler(session, ctx)
    else:
        log.info(f"[{manifest.name}] ✓ up-to-date — nothing to compile")
        result = compiler.CompileResult(0, output_root)

    copy_resources(manifest)
    ctx.result = result
    if hooks:
        session.plugins.run_hook("after_compile", ctx)
    return result


def compile_dependencies(session: Session) -> List[str]:
    """Compile every stale local dependency of the session project, in build order."""
    root = session.manifest.name
    dep_graph = graph.build_graph(root, session.projects)
    order = [name for name in graph.topological_sort(dep_graph) if name != root]
    stale = incremental.projects_needing_recompile(dep_graph, session.projects, order)
    total = len(stale)
    for i, name in enumerate(stale, 1):
        log.step(i, total, f"{name}  (local dependency)")
        _compile_module(session, session.projects[name].manifest, hooks=False)
    return stale


def compile_project(
    project_dir: Path = Path("."),
    *,
    session: Optional[Session] = None,
    force: bool = False,
) -> compiler.CompileResult:
    s = session or open_session(project_dir)
    log.section(f"Compiling  {s.manifest.name}")
    compile_dependencies(s)
    return _compile_module(s, s.manifest, force=force)


# ─────────────────────────────────────────────────────────────────────────────
# Run
# ─────────────────────────────────────────────────────────────────────────────

def _runtime_classpath(session: Session) -> str:
    return cp.project_runtime_classpath(session.manifest, session.projects)


def run_project(
    project_dir: Path = Path("."),
    *,
    args: Optional[List[str]] = None,
    session: Optional[Session] = None,
) -> int:
    s = session or open_session(project_dir)
    compile_project(session=s)
    if not s.manifest.entry:
        raise ManifestError(f"{s.manifest.path}: no 'entry' main class to run")

    ctx = s.context(classpath=_runtime_classpath(s), args=list(args or []),
                    output_dir=s.manifest.output_path)
    s.plugins.run_hook("before_run", ctx)

    log.section(f"Running  {s.manifest.entry}")
    plugin = s.plugins.get_language_plugin(cfg.SOURCE_EXTENSION)
    if plugin is not None and plugin.language.run is not None:
        code = plugin.language.run(ctx)
    else:
        code = compiler.run_java(s.manifest.entry, ctx.classpath, cwd=ctx.root, args=ctx.args)

    ctx.exit_code = code
    s.plugins.run_hook("after_run", ctx)
    (log.success if code == 0 else log.warn)(f"{s.manifest.entry} exited with code {code}")
    return code


# ─────────────────────────────────────────────────────────────────────────────
# Test
# ─────────────────────────────────────────────────────────────────────────────

def find_launcher(entries: List[str]) -> Optional[Path]:
    for entry in entries:
        if cfg.TEST_LAUNCHER_ARTIFACT in Path(entry).name:
            return Path(entry)
    return None


def launcher_options(pattern: Optional[str] = None, details: bool = False) -> List[str]:
    options: List[str] = []
    if pattern:
        options += ["--include-classname", f".*{pattern}.*"]
    if details:
        options += ["--details", "verbose"]
    return options


def test_project(
    project_dir: Path = Path("."),
    *,
    session: Optional[Session] = None,
    pattern: Optional[str] = None,
    details: bool = False,
) -> int:
    """
    Compile the project, compile its test root into ``build/test-classes``
    against the main classpath plus ``devDependencies``, then run the JUnit
    console launcher over it.  Returns the launcher's exit code.
    """
    s = session or open_session(project_dir)
    m = s.manifest
    compile_project(session=s)

    test_root = m.test_path
    if test_root is None or not test_root.is_dir():
        raise SuiteError(f"{m.name}: no test directory (set java.testDir or create one of "
                         f"{', '.join(cfg.TEST_DIRS)})")
    if not incremental.suite_sources(test_root):
        raise SuiteError(f"{m.name}: no test classes (*Test.java or *Tests.java) in {test_root}")

    test_deps = cp.resolve_test_dependencies(m, s.projects)
    launcher = find_launcher(test_deps)
    if launcher is None:
        raise SuiteError(
            f"{m.name}: no test launcher on the test classpath – add "
            f'"org.junit.platform@{cfg.TEST_LAUNCHER_ARTIFACT}" to devDependencies'
        )

    log.section(f"Testing  {m.name}")
    test_out = m.test_output_path
    ctx = s.context(
        classpath=cp.merge_classpaths(_runtime_classpath(s), test_deps),
        sources=incremental.source_files(test_root),
        output_dir=test_out,
    )
    _invoke_compiler(s, ctx)

    ctx.classpath = cp.merge_classpaths([str(test_out)], ctx.classpath)
    ctx.args = launcher_options(pattern, details)
    ctx.extra["launcher"] = launcher

    plugin = s.plugins.get_language_plugin(cfg.SOURCE_EXTENSION)
    if plugin is not None and plugin.language.test is not None:
        code = plugin.language.test(ctx)
    else:
        code = compiler.run_suite(launcher, ctx.classpath, test_out, cwd=ctx.root, args=ctx.args)

    (log.success if code == 0 else log.warn)(f"Tests finished with code {code}")
    return code


# ─────────────────────────────────────────────────────────────────────────────
# Build
# ─────────────────────────────────────────────────────────────────────────────

def artifact_path(manifest: ProjectManifest) -> Path:
    return manifest.project_dir / cfg.BUILD_DIR / f"{manifest.artifact_id}-{manifest.version}.jar"


def build_project(
    project_dir: Path = Path("."),
    *,
    session: Optional[Session] = None,
) -> Path:
    s = session or open_session(project_dir)
    start = time.time()
    log.banner(f"Build  {s.manifest.name}", f"version {s.manifest.version}")

    ctx = s.context(output_dir=s.manifest.output_path, artifact=artifact_path(s.manifest))
    s.plugins.run_hook("before_build", ctx)

    ctx.result = compile_project(session=s)

    plugin = s.plugins.get_language_plugin(cfg.SOURCE_EXTENSION)
    if plugin is not None and plugin.language.build is not None:
        ctx.artifact = plugin.language.build(ctx)
    else:
        ctx.artifact = compiler.archive(ctx.output_dir, ctx.artifact, entry=s.manifest.entry)

    s.plugins.run_hook("after_build", ctx)
    log.success(f"Built {ctx.artifact.name} in {log.duration(time.time() - start)}")
    return ctx.artifact


# ─────────────────────────────────────────────────────────────────────────────
# Dev
# ─────────────────────────────────────────────────────────────────────────────

def dev_project(project_dir: Path = Path("."), *, args: Optional[List[str]] = None) -> None:
    """
    Compile, start ``dev_server`` hooks, then supervise the application on
    its own thread until Ctrl+C.  Cleanup hooks always run on the way out.
    """
    s = open_session(project_dir, is_dev=True)
    log.banner(f"Dev  {s.manifest.name}", "Ctrl+C to stop")
    app: Optional[SupervisedProcess] = None
    try:
        compile_project(session=s)

        if s.manifest.entry:
            app = SupervisedProcess(
                s.manifest.entry,
                lambda: compiler.java_command(s.manifest.entry, _runtime_classpath(s), args),
                cwd=s.project_dir,
            )

        def _reload(paths: List[Path]) -> None:
            try:
                compile_project(session=s)
            except CairnError as exc:
                log.error(f"Rebuild failed — keeping previous state.\n{exc}")
                return
            if app is not None:
                app.restart()

        ctx = s.context(output_dir=s.manifest.output_path, args=list(args or []), reload=_reload)
        s.plugins.run_hook("dev_server", ctx)
        if app is not None:
            app.start()

        log.section("Watching for changes  (Ctrl+C to stop)")
        stop_event = threading.Event()

        def _on_signal(signum, frame):  # noqa: ANN001
            stop_event.set()

        signal.signal(signal.SIGINT,  _on_signal)
        signal.signal(signal.SIGTERM, _on_signal)
        while not stop_event.is_set():
            stop_event.wait(0.5)
    finally:
        log.info("Shutting down…")
        if app is not None:
            app.stop()
        s.plugins.run_cleanup()


# ─────────────────────────────────────────────────────────────────────────────
# Clean
# ─────────────────────────────────────────────────────────────────────────────

def clean_project(project_dir: Path = Path(".")) -> List[Path]:
    manifest = load_manifest(project_dir)
    removed: List[Path] = []
    for target in (manifest.output_path, manifest.project_dir / cfg.BUILD_DIR):
        if fs.remove_tree(target):
            removed.append(target)
    if cp.clear_cache(manifest.cache_path):
        removed.append(manifest.cache_path)
    return removed
