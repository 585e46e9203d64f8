"""
Hot reload for ``cairn dev``.

A watchdog observer (one background thread per watched source root) feeds
every qualifying create/modify/delete/move event into a :class:`Debouncer`.
Each event restarts the quiet-period timer; only when the period elapses
without further events does the reload callback fire, once, with every path
collected during the burst.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from cairn import config as cfg
from cairn import logger as log
from cairn.plugins.manager import Plugin, PluginContext


class Debouncer:
    """Collects change events and fires *callback* once after *delay* seconds of quiet."""

    def __init__(self, delay: float, callback: Callable[[List[Path]], None]) -> None:
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        # held while the callback runs, so reloads never overlap
        self._run_lock = threading.Lock()
        self._pending: List[Path] = []

    def trigger(self, path: Path) -> None:
        """Register a change event. Resets the debounce timer."""
        with self._lock:
            if path not in self._pending:
                self._pending.append(path)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._run_lock:
            with self._lock:
                if not self._pending:
                    return
                paths = list(self._pending)
                self._pending.clear()
                self._timer = None
            self.callback(paths)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending.clear()

    @property
    def pending(self) -> bool:
        with self._lock:
            return bool(self._pending)


class SourceChangeHandler(FileSystemEventHandler):
    """Forwards events for files with a watched extension to the debouncer."""

    def __init__(self, debouncer: Debouncer, extensions=(cfg.SOURCE_EXTENSION,)) -> None:
        super().__init__()
        self.debouncer = debouncer
        self.extensions = tuple(extensions)

    def _handle(self, path: str) -> None:
        candidate = Path(path)
        if candidate.suffix in self.extensions and not candidate.name.startswith("."):
            log.debug(f"[hot-reload] change: {candidate}")
            self.debouncer.trigger(candidate)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._handle(event.dest_path)


class HotReloadPlugin(Plugin):
    """
    Options:
      debounce  – quiet period in seconds (default CAIRN_HOT_RELOAD_DEBOUNCE)
      paths     – extra directories to watch, relative to the project root
    """

    name = "hot-reload"

    def __init__(self, options: Optional[dict] = None) -> None:
        super().__init__(options)
        self.debouncer: Optional[Debouncer] = None
        self._observer: Optional[Observer] = None

    def watch_roots(self, ctx: PluginContext) -> List[Path]:
        roots = [ctx.config.source_path]
        for extra in self.options.get("paths", []):
            roots.append(ctx.root / extra)
        return [r for r in roots if r.is_dir()]

    def dev_server(self, ctx: PluginContext) -> None:
        if ctx.reload is None:
            log.warn("[hot-reload] no reload callback in context — not watching.")
            return

        reload = ctx.reload

        def _on_quiet(paths: List[Path]) -> None:
            log.info(f"[hot-reload] {len(paths)} file(s) changed — reloading")
            reload(paths)

        delay = float(self.options.get("debounce", cfg.HOT_RELOAD_DEBOUNCE))
        self.debouncer = Debouncer(delay, _on_quiet)
        handler = SourceChangeHandler(self.debouncer)

        self._observer = Observer()
        roots = self.watch_roots(ctx)
        for root in roots:
            self._observer.schedule(handler, str(root), recursive=True)
            log.info(f"[hot-reload] watching {root}")
        self._observer.start()

    def cleanup(self) -> None:
        if self.debouncer is not None:
            self.debouncer.cancel()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
