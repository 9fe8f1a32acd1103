"""Plugin discovery, loading, and hook dispatch.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus local directory discovery from ``~/.calmguard/plugins/``.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import pluggy

from calmguard.plugins.builtins.rules_plugin import BuiltinRulesPlugin
from calmguard.plugins.hookspecs import CalmguardHookSpec

if TYPE_CHECKING:
    from calmguard.rules import Rule, RuleServices

PROJECT_NAME = "calmguard"
ENTRY_POINT_GROUP = "calmguard.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self, *, builtins: bool = True) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(CalmguardHookSpec)
        self._loaded: bool = False
        if builtins:
            self.register_plugin(BuiltinRulesPlugin(), name="builtin-rules")

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Discover plugins from entry points and an optional local directory.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    # ------------------------------------------------------------------
    # Hook dispatch
    # ------------------------------------------------------------------

    def collect_rules(self, services: RuleServices) -> list[Rule]:
        """Ask every plugin for rules, isolating each plugin's failures.

        Implementations are called one at a time in registration order so a
        broken plugin loses only its own rules.
        """
        rules: list[Rule] = []
        for impl in self._pm.hook.calmguard_rules.get_hookimpls():
            try:
                provided = impl.function(services=services)
            except Exception:
                logger.warning(
                    "Failed to collect rules from plugin %s",
                    impl.plugin_name,
                    exc_info=True,
                )
                continue
            if provided is None:
                continue
            if not isinstance(provided, list):
                logger.warning("Plugin %s returned non-list rules", impl.plugin_name)
                continue
            rules.extend(provided)
        return rules

    def notify_state_changed(
        self,
        *,
        calm_active: bool,
        next_transition_at: datetime | None,
    ) -> None:
        try:
            self._pm.hook.calmguard_state_changed(
                calm_active=calm_active,
                next_transition_at=next_transition_at,
            )
        except Exception:
            logger.warning("Plugin failed handling calm state change", exc_info=True)

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Scan *local_dir* for single-file Python plugins.

        Each ``*.py`` file (excluding ``_``-prefixed names) is loaded as a
        module. Classes inside it carrying ``@hookimpl`` methods are
        instantiated and registered. Errors are logged as warnings.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"calmguard_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name or not self._has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=f"{module_name}.{obj.__name__}")
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly, which
        leaves ``self`` unbound at dispatch time.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue
            self._pm.register(instance, name=plugin_name)
            logger.debug("Instantiated entry-point plugin: %s", plugin_name)

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any ``@hookimpl``-decorated methods.

        ``HookimplMarker("calmguard")`` sets a ``calmguard_impl`` attribute.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "calmguard_impl", None):
                return True
        return False
