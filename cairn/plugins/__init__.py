# Re-export the public plugin API so that `from cairn.plugins import X`
# works without knowing which submodule defines X.
from cairn.plugins.manager import (
    PHASES,
    LanguageSupport,
    Plugin,
    PluginContext,
    PluginManager,
    flatten_plugins,
)
from cairn.plugins.builtin import NAMED_PLUGINS, resolve_named_plugins

__all__ = [
    "PHASES",
    "LanguageSupport",
    "Plugin",
    "PluginContext",
    "PluginManager",
    "flatten_plugins",
    "NAMED_PLUGINS",
    "resolve_named_plugins",
]
