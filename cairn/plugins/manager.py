"""
Plugin lifecycle for cairn.

A plugin is a :class:`Plugin` subclass.  Every hook on the base class is a
no-op, so a plugin overrides only the phases it cares about:

  config(config)           → ProjectManifest | dict | None
        Transform step.  Plugins run in registration order, each receiving
        the previous plugin's output.  ``None`` leaves the config unchanged,
        a dict is applied through ``ProjectManifest.with_changes``.
  config_resolved(config)  → None        read-only notification
  before_compile / after_compile (ctx)
  before_run     / after_run     (ctx)
  before_build   / after_build   (ctx)
  dev_server(ctx)
  cleanup()

A plugin may carry sub-plugins (``plugins()``) and a language capability
(``language``).  Sub-plugins are flattened into one list: first a recursive
pre-order expansion, then a fold by name that keeps each name's *last*
occurrence at that later position.

Hooks run synchronously in final registration order.  The first hook that
raises stops the chain; the exception is logged and re-raised as
``PluginError``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from cairn import logger as log
from cairn.errors import PluginError
from cairn.manifest import ProjectManifest


PHASES = (
    "before_compile", "after_compile",
    "before_run",     "after_run",
    "before_build",   "after_build",
    "dev_server",
)


# ══════════════════════════════════════════════════════════════════════════════
# Public data types
# ══════════════════════════════════════════════════════════════════════════════

@dataclass
class PluginContext:
    """
    Runtime context passed to every phase hook.

    root        – project root directory
    config      – resolved (post-transform) manifest
    is_dev      – True while running under ``cairn dev``
    classpath   – compile or runtime classpath for the current phase
    sources     – files the compiler is about to compile (compile phases)
    output_dir  – compiled-output directory
    args        – program arguments (run phases)
    result      – CompileResult after compiling
    artifact    – archive path after building
    exit_code   – program exit code after running
    reload      – dev mode: callback that recompiles and restarts the app
    extra       – free-form dict for plugin-to-plugin data
    """
    root:       Path
    config:     ProjectManifest
    is_dev:     bool                    = False
    classpath:  str                     = ""
    sources:    List[Path]              = field(default_factory=list)
    output_dir: Optional[Path]          = None
    args:       List[str]               = field(default_factory=list)
    result:     Any                     = None
    artifact:   Optional[Path]          = None
    exit_code:  Optional[int]           = None
    reload:     Optional[Callable[[List[Path]], None]] = None
    extra:      dict                    = field(default_factory=dict)


@dataclass
class LanguageSupport:
    """
    Language capability keyed by file extension.  Each callable takes a
    :class:`PluginContext`; ``compile`` returns a ``CompileResult``, ``run``
    and ``test`` an exit code, ``build`` the archive path.
    """
    name:       str
    extensions: Sequence[str]
    compile:    Optional[Callable[[PluginContext], Any]] = None
    run:        Optional[Callable[[PluginContext], int]] = None
    test:       Optional[Callable[[PluginContext], Any]] = None
    build:      Optional[Callable[[PluginContext], Path]] = None


class Plugin:
    """Base class for cairn plugins."""

    name: str = "plugin"
    language: Optional[LanguageSupport] = None

    def __init__(self, options: Optional[dict] = None) -> None:
        self.options = dict(options or {})

    def plugins(self) -> List["Plugin"]:
        return []

    def config(self, config: ProjectManifest) -> Any:
        return None

    def config_resolved(self, config: ProjectManifest) -> None:
        pass

    def before_compile(self, ctx: PluginContext) -> None:
        pass

    def after_compile(self, ctx: PluginContext) -> None:
        pass

    def before_run(self, ctx: PluginContext) -> None:
        pass

    def after_run(self, ctx: PluginContext) -> None:
        pass

    def before_build(self, ctx: PluginContext) -> None:
        pass

    def after_build(self, ctx: PluginContext) -> None:
        pass

    def dev_server(self, ctx: PluginContext) -> None:
        pass

    def cleanup(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


# ══════════════════════════════════════════════════════════════════════════════
# Flattening
# ══════════════════════════════════════════════════════════════════════════════

def _expand(plugins: Sequence[Plugin]) -> Iterator[Plugin]:
    for plugin in plugins:
        yield plugin
        yield from _expand(plugin.plugins())


def flatten_plugins(plugins: Sequence[Plugin]) -> List[Plugin]:
    """Expand sub-plugins, then keep only the last occurrence of each name."""
    expanded = list(_expand(plugins))
    last_index: Dict[str, int] = {p.name: i for i, p in enumerate(expanded)}
    return [p for i, p in enumerate(expanded) if last_index[p.name] == i]


# ══════════════════════════════════════════════════════════════════════════════
# Manager
# ══════════════════════════════════════════════════════════════════════════════

class PluginManager:

    def __init__(self, plugins: Sequence[Plugin] = ()) -> None:
        self.plugins: List[Plugin] = flatten_plugins(plugins)
        self._languages: Dict[str, Plugin] = {}
        self._index_languages()

    def _index_languages(self) -> None:
        self._languages = {}
        for plugin in self.plugins:
            if plugin.language is not None:
                for ext in plugin.language.extensions:
                    self._languages[ext] = plugin

    # ── registration ──────────────────────────────────────────────────────

    def add(self, plugin: Plugin) -> None:
        """Register *plugin* (and its sub-plugins) after everything already present."""
        self.plugins = flatten_plugins([*self.plugins, plugin])
        self._index_languages()

    def names(self) -> List[str]:
        return [p.name for p in self.plugins]

    def get_language_plugin(self, extension: str) -> Optional[Plugin]:
        return self._languages.get(extension)

    # ── config pipeline ───────────────────────────────────────────────────

    def run_config_hooks(self, config: ProjectManifest) -> ProjectManifest:
        result = config
        for plugin in self.plugins:
            changed = self._call(plugin, "config", result)
            if changed is None:
                continue
            if isinstance(changed, dict):
                result = result.with_changes(**changed)
            elif isinstance(changed, ProjectManifest):
                result = changed
            else:
                raise PluginError(plugin.name, "config",
                                  TypeError(f"unexpected return type {type(changed).__name__}"))
        return result

    def run_config_resolved_hooks(self, config: ProjectManifest) -> None:
        for plugin in self.plugins:
            self._call(plugin, "config_resolved", config)

    # ── phases ────────────────────────────────────────────────────────────

    def run_hook(self, phase: str, ctx: PluginContext) -> None:
        if phase not in PHASES:
            raise ValueError(f"Unknown plugin phase '{phase}'")
        for plugin in self.plugins:
            self._call(plugin, phase, ctx)

    def run_cleanup(self) -> None:
        for plugin in self.plugins:
            self._call(plugin, "cleanup")

    def create_context(
        self,
        config: ProjectManifest,
        is_dev: bool = False,
        **fields: Any,
    ) -> PluginContext:
        return PluginContext(root=config.project_dir, config=config, is_dev=is_dev, **fields)

    # ── internal ──────────────────────────────────────────────────────────

    @staticmethod
    def _call(plugin: Plugin, phase: str, *args: Any) -> Any:
        log.debug(f"[{plugin.name}] {phase}")
        try:
            return getattr(plugin, phase)(*args)
        except PluginError:
            raise
        except Exception as exc:
            log.error(f"plugin '{plugin.name}' raised in {phase}: {exc}")
            raise PluginError(plugin.name, phase, exc) from exc
