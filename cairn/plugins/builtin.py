"""
Built-in plugins, resolved by the names a manifest lists under ``plugins``::

    "plugins": ["java", {"name": "dev-server", "options": {"command": "npm run dev"}}]
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional

from cairn import logger as log
from cairn.manifest import ProjectManifest
from cairn.plugins.dev_server import DevServerPlugin
from cairn.plugins.hot_reload import HotReloadPlugin
from cairn.plugins.java import JavaPlugin
from cairn.plugins.manager import Plugin

PluginFactory = Callable[[Optional[dict]], Plugin]

# ── Registry: plugin name (as declared in cairn.json) → factory ───────────
NAMED_PLUGINS: Dict[str, PluginFactory] = {
    "java":       JavaPlugin,
    "hot-reload": HotReloadPlugin,
    "dev-server": DevServerPlugin,
}


def resolve_named_plugins(manifest: ProjectManifest) -> List[Plugin]:
    """
    Instantiate the plugins declared in *manifest*, in declaration order.
    Unknown names are warned and skipped.
    """
    resolved: List[Plugin] = []
    for entry in manifest.plugins:
        if isinstance(entry, str):
            name, options = entry, {}
        elif isinstance(entry, dict) and entry.get("name"):
            name, options = entry["name"], entry.get("options") or {}
        else:
            log.warn(f"Invalid plugin entry {entry!r} in {manifest.path} — skipped.")
            continue

        factory = NAMED_PLUGINS.get(name)
        if factory is None:
            log.warn(f"Unknown plugin '{name}' declared in {manifest.path} — skipped.")
            continue
        resolved.append(factory(options))
    return resolved
