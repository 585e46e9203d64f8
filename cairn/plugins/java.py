"""
Java language support: compile, run, test and archive through the JDK wrappers.
Nests the hot-reload plugin unless ``{"hotReload": false}`` is given.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from cairn import compiler
from cairn import config as cfg
from cairn.errors import ManifestError, SuiteError
from cairn.plugins.hot_reload import HotReloadPlugin
from cairn.plugins.manager import LanguageSupport, Plugin, PluginContext


class JavaPlugin(Plugin):
    """
    Options:
      javacArgs  – extra arguments for javac (e.g. ``["-parameters"]``)
      hotReload  – false, or an options dict for the nested hot-reload plugin
    """

    name = "java"

    def __init__(self, options: Optional[dict] = None) -> None:
        super().__init__(options)
        self.language = LanguageSupport(
            name       = "java",
            extensions = (".java",),
            compile    = self.compile,
            run        = self.run,
            test       = self.test,
            build      = self.build,
        )

    def plugins(self) -> List[Plugin]:
        hot_reload = self.options.get("hotReload", {})
        if hot_reload is False:
            return []
        return [HotReloadPlugin(hot_reload if isinstance(hot_reload, dict) else {})]

    def compile(self, ctx: PluginContext) -> compiler.CompileResult:
        output_dir = ctx.output_dir or ctx.config.output_path
        return compiler.run_javac(
            ctx.sources,
            output_dir,
            ctx.classpath,
            cwd=ctx.root,
            extra_args=list(self.options.get("javacArgs", [])),
        )

    def run(self, ctx: PluginContext) -> int:
        if not ctx.config.entry:
            raise ManifestError(f"{ctx.config.path}: no 'entry' main class to run")
        return compiler.run_java(ctx.config.entry, ctx.classpath, cwd=ctx.root, args=ctx.args)

    def test(self, ctx: PluginContext) -> int:
        launcher = ctx.extra.get("launcher")
        if launcher is None:
            raise SuiteError(f"{ctx.config.name}: no test launcher on the test classpath")
        output_dir = ctx.output_dir or ctx.config.test_output_path
        return compiler.run_suite(launcher, ctx.classpath, output_dir, cwd=ctx.root, args=ctx.args)

    def build(self, ctx: PluginContext) -> Path:
        output_dir = ctx.output_dir or ctx.config.output_path
        jar = ctx.artifact or ctx.root / cfg.BUILD_DIR / f"{ctx.config.artifact_id}-{ctx.config.version}.jar"
        return compiler.archive(output_dir, jar, entry=ctx.config.entry)
