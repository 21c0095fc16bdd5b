"""Plugin registration for timer event hooks.

Built-in plugins are registered by name by the caller. Third-party plugins
come from the ``timewsync.plugins`` entry-point group; an entry point may
expose a plugin instance or a class, and classes are instantiated with no
arguments.
"""

from __future__ import annotations

import inspect
import logging

import pluggy

from timewsync.plugins.hookspecs import TimewsyncHookSpec

PROJECT_NAME = "timewsync"
ENTRY_POINT_GROUP = "timewsync.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """pluggy manager preloaded with the timewsync hookspecs."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(TimewsyncHookSpec)

    @property
    def hook(self) -> pluggy.HookRelay:
        """Hook relay used by the event publisher."""
        return self._pm.hook

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def discover_and_load(self) -> list[str]:
        """Load entry-point plugins; return the names of all registered plugins."""
        found = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._instantiate_classes()
        names = self.plugin_names()
        logger.debug("Loaded %d entry-point plugin(s); active: %s", found, ", ".join(names))
        return names

    def plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def _instantiate_classes(self) -> None:
        # Hooks on a bare class would be called with ``self`` unbound.
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin):
                continue

            name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning("Skipping plugin %s: constructor failed", name, exc_info=True)
                continue
            self._pm.register(instance, name=name)
