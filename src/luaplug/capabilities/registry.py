"""Capability Registry — injectable name → module loader lookup.

Manifesto:
Each engine instance gets the same set of host-provided Lua modules
(``json``, ``http``, ``time``, ...), but the handle must not care which.
The registry decouples registration (at import time or in a test) from
installation (once per instance, as ``package.preload`` entries that Lua
resolves lazily through ``require``).

ARCHITECTURE
────────────
::

    CapabilityRegistry
      ├── .register(name, loader)  ─ store loader(instance) -> dict
      ├── .has(name) / .names()    ─ lookup
      ├── .copy()                  ─ independent registry with same loaders
      └── .preload(instance)       ─ package.preload[name] = loader shim

    standard_registry()            ─ every built-in capability module

    Lua side:
        local json = require("json")  -- calls the shim once, result cached
                                      -- in package.loaded by Lua itself

BEST PRACTICES
──────────────
- Loaders receive the ``LuaInstance`` so they can reach the runtime, the
  run's cancel token and settings; they return plain Python data which is
  converted into a Lua table.
- Pass a minimal registry in tests instead of ``standard_registry()``.

Tags:
    luaplug, capabilities, registry, lua-modules

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from luaplug.capabilities import clock, data, fs, net, text
from luaplug.capabilities.convert import to_lua

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance

Loader = Callable[["LuaInstance"], dict[str, Any]]


class CapabilityRegistry:
    """Injectable capability registry.

    Example:
        >>> registry = CapabilityRegistry()
        >>> registry.register("greet", lambda instance: {"hello": lambda name: "hi " + name})
        >>> registry.names()
        ['greet']
    """

    def __init__(self) -> None:
        self._loaders: dict[str, Loader] = {}
        self._descriptions: dict[str, str | None] = {}
        self._lock = threading.RLock()

    def register(self, name: str, loader: Loader, description: str | None = None) -> None:
        """Register (or replace) the loader for module *name*."""
        with self._lock:
            self._loaders[name] = loader
            self._descriptions[name] = description

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._loaders

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._loaders)

    def describe(self) -> dict[str, str | None]:
        """Map of module name to its description."""
        with self._lock:
            return dict(sorted(self._descriptions.items()))

    def copy(self) -> CapabilityRegistry:
        clone = CapabilityRegistry()
        with self._lock:
            for name, loader in self._loaders.items():
                clone.register(name, loader, self._descriptions.get(name))
        return clone

    def preload(self, instance: LuaInstance) -> None:
        """Install every registered module into *instance*'s ``package.preload``."""
        with self._lock:
            loaders = list(self._loaders.items())

        preload = instance.runtime.globals().package.preload
        for name, loader in loaders:
            preload[name] = _preloader(instance, loader)


def _preloader(instance: LuaInstance, loader: Loader) -> Callable[..., Any]:
    def load(*_args: Any) -> Any:
        return to_lua(instance.runtime, loader(instance))

    return load


def standard_registry() -> CapabilityRegistry:
    """Registry with every built-in capability module."""
    registry = CapabilityRegistry()
    registry.register("filepath", fs.load_filepath, "path manipulation and globbing")
    registry.register("ioutil", fs.load_ioutil, "whole-file read/write")
    registry.register("tac", fs.load_tac, "read a file line by line from the end")
    registry.register("json", data.load_json, "JSON encode/decode")
    registry.register("yaml", data.load_yaml, "YAML encode/decode")
    registry.register("xmlpath", data.load_xmlpath, "XML path queries")
    registry.register("regexp", text.load_regexp, "regular expressions")
    registry.register("strings", text.load_strings, "string helpers")
    registry.register("inspect", text.load_inspect, "human-readable value dumps")
    registry.register("time", clock.load_time, "clock, formatting and cancellable sleep")
    registry.register("http", net.load_http, "HTTP client")
    registry.register("tcp", net.load_tcp, "TCP client connections")
    return registry


__all__ = ["CapabilityRegistry", "Loader", "standard_registry"]
