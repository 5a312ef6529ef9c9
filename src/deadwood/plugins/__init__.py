from __future__ import annotations

import re
from collections.abc import Iterable

from deadwood.errors import PluginError
from deadwood.plugins.actionpack import ActionPack
from deadwood.plugins.active_record import ActiveRecord
from deadwood.plugins.base import Descriptor, Plugin, ignore_method_names
from deadwood.plugins.minitest import Minitest
from deadwood.plugins.ruby import Ruby

PLUGINS: dict[str, type[Plugin]] = {
    plugin.name: plugin for plugin in (Ruby, Minitest, ActionPack, ActiveRecord)
}
DEFAULT_PLUGINS = ("ruby",)
GEM_PLUGINS = {
    "minitest": "minitest",
    "actionpack": "actionpack",
    "activerecord": "active_record",
}


def load_plugins(names: Iterable[str]) -> list[Plugin]:
    plugins: list[Plugin] = []
    seen: set[str] = set()
    for name in names:
        if name in seen:
            continue
        plugin_class = PLUGINS.get(name)
        if plugin_class is None:
            known = ", ".join(sorted(PLUGINS))
            raise PluginError(f"Unknown plugin {name!r} (known plugins: {known})")
        plugins.append(plugin_class())
        seen.add(name)
    return plugins


def plugins_for_gems(gems: Iterable[str]) -> list[str]:
    names = list(DEFAULT_PLUGINS)
    for gem in sorted(set(gems)):
        plugin = GEM_PLUGINS.get(gem)
        if plugin is not None and plugin not in names:
            names.append(plugin)
    return names


def custom_plugin(names: Iterable[str]) -> type[Plugin]:
    """Plugin type ignoring the given method names; ``/.../`` entries are patterns."""
    values: list[str | re.Pattern[str]] = []
    for name in names:
        if len(name) > 1 and name.startswith("/") and name.endswith("/"):
            try:
                values.append(re.compile(name[1:-1]))
            except re.error as exc:
                raise PluginError(f"Invalid pattern {name!r}: {exc}") from exc
        else:
            values.append(name)
    return type(
        "ConfiguredPlugin",
        (Plugin,),
        {"name": "configured", "descriptor": ignore_method_names(*values)},
    )


__all__ = [
    "DEFAULT_PLUGINS",
    "Descriptor",
    "PLUGINS",
    "Plugin",
    "custom_plugin",
    "ignore_method_names",
    "load_plugins",
    "plugins_for_gems",
]
