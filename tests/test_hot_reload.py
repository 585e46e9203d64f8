import threading
import time
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from cairn import config as cfg
from cairn.manifest import ProjectManifest
from cairn.plugins import PluginManager
from cairn.plugins.hot_reload import Debouncer, HotReloadPlugin, SourceChangeHandler


class _Collector:
    def __init__(self):
        self.calls = []
        self.fired = threading.Event()

    def __call__(self, paths):
        self.calls.append(list(paths))
        self.fired.set()


# =============================================================================
# Debouncer
# =============================================================================


def test_burst_of_events_fires_once_with_every_path():
    collector = _Collector()
    debouncer = Debouncer(0.05, collector)

    for name in ("A.java", "B.java", "A.java", "C.java"):
        debouncer.trigger(Path(name))

    assert collector.fired.wait(timeout=5)
    assert collector.calls == [[Path("A.java"), Path("B.java"), Path("C.java")]]
    assert not debouncer.pending


def test_reloads_run_one_at_a_time():
    lock = threading.Lock()
    running = []
    concurrency = []
    calls = []
    done = threading.Event()

    def slow_reload(paths):
        with lock:
            running.append(1)
            concurrency.append(len(running))
        time.sleep(0.3)
        with lock:
            running.pop()
            calls.append(list(paths))
            if len(calls) == 2:
                done.set()

    debouncer = Debouncer(0.05, slow_reload)
    debouncer.trigger(Path("A.java"))
    time.sleep(0.15)  # first reload is now in its callback
    debouncer.trigger(Path("B.java"))

    assert done.wait(timeout=5)
    assert max(concurrency) == 1
    assert calls == [[Path("A.java")], [Path("B.java")]]


def test_cancel_drops_pending_changes():
    collector = _Collector()
    debouncer = Debouncer(0.05, collector)

    debouncer.trigger(Path("A.java"))
    debouncer.cancel()

    assert not collector.fired.wait(timeout=0.3)
    assert collector.calls == []


# =============================================================================
# Event filtering
# =============================================================================


class _RecordingDebouncer:
    def __init__(self):
        self.paths = []

    def trigger(self, path):
        self.paths.append(path)


def test_handler_forwards_only_watched_source_files():
    debouncer = _RecordingDebouncer()
    handler = SourceChangeHandler(debouncer)

    handler.on_created(FileCreatedEvent("/p/src/A.java"))
    handler.on_modified(FileModifiedEvent("/p/src/notes.txt"))
    handler.on_modified(FileModifiedEvent("/p/src/.B.java"))
    handler.on_created(DirCreatedEvent("/p/src/pkg.java"))
    handler.on_deleted(FileDeletedEvent("/p/src/Gone.java"))
    handler.on_moved(FileMovedEvent("/p/src/Old.tmp", "/p/src/New.java"))

    assert debouncer.paths == [Path("/p/src/A.java"), Path("/p/src/Gone.java"), Path("/p/src/New.java")]


def test_handler_extensions_are_configurable():
    debouncer = _RecordingDebouncer()
    handler = SourceChangeHandler(debouncer, extensions=(".kt",))

    handler.on_created(FileCreatedEvent("/p/A.java"))
    handler.on_created(FileCreatedEvent("/p/B.kt"))

    assert debouncer.paths == [Path("/p/B.kt")]


# =============================================================================
# Plugin
# =============================================================================


def _context(project_dir: Path, reload=None):
    manifest = ProjectManifest.from_dict({"name": "com.acme@app"}, project_dir / cfg.MANIFEST_FILE)
    return PluginManager().create_context(manifest, is_dev=True, reload=reload)


def test_without_reload_callback_nothing_is_watched(tmp_path):
    (tmp_path / "src").mkdir()
    plugin = HotReloadPlugin()

    plugin.dev_server(_context(tmp_path))

    assert plugin.debouncer is None
    plugin.cleanup()


def test_watch_roots_skip_missing_directories(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "resources").mkdir()
    plugin = HotReloadPlugin({"paths": ["resources", "missing"]})

    assert plugin.watch_roots(_context(tmp_path)) == [tmp_path / "src", tmp_path / "resources"]


def test_editing_a_source_triggers_reload(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    collector = _Collector()
    plugin = HotReloadPlugin({"debounce": 0.05})

    plugin.dev_server(_context(tmp_path, reload=collector))
    try:
        (src / "Main.java").write_text("class Main {}\n", encoding="utf-8")
        assert collector.fired.wait(timeout=10)
    finally:
        plugin.cleanup()

    assert src / "Main.java" in collector.calls[0]
