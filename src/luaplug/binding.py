"""Lua binding for plugin handles — the ``plugin`` module.

Exposes ``PluginHandle`` to Lua code so a script can spawn and supervise
nested plugins::

    local plugin = require("plugin")
    local p = plugin.new([[
        local time = require("time")
        while true do time.sleep(0.1) end
    ]])
    p:run()
    print(p:is_running())   -- true
    p:stop()
    p:wait(5)
    print(p:error())        -- context canceled

Method map::

    plugin.new(body)  → PluginHandle(body)
    p:run()           → handle.start()
    p:is_running()    → handle.is_running()
    p:error()         → handle.error()   (nil when none)
    p:stop()          → handle.cancel()
    p:wait([s])       → handle.wait(s)
    p.id              → handle.plugin_id

Children get ``child_registry`` (the standard capability set by default), so
they cannot spawn further plugins unless that registry includes ``plugin``.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from luaplug.capabilities.convert import to_lua
from luaplug.capabilities.registry import CapabilityRegistry, standard_registry
from luaplug.execution.engine import LuaEngine
from luaplug.execution.handle import PluginHandle

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance


def load_plugin(instance: LuaInstance, child_registry: CapabilityRegistry) -> dict[str, Any]:
    runtime = instance.runtime
    engine = LuaEngine(child_registry, instance.settings)

    def new(body: Any):
        if not isinstance(body, str):
            raise TypeError(f"plugin.new expects a string body, got {type(body).__name__}")
        handle = PluginHandle(body, engine)
        return to_lua(runtime, {
            "id": handle.plugin_id,
            "run": lambda _self: handle.start(),
            "is_running": lambda _self: handle.is_running(),
            "error": lambda _self: handle.error(),
            "stop": lambda _self: handle.cancel(),
            "wait": lambda _self, timeout=None: handle.wait(timeout),
        })

    return {"new": new}


def register_plugin_module(
    registry: CapabilityRegistry,
    child_registry: CapabilityRegistry | None = None,
) -> CapabilityRegistry:
    """Add the ``plugin`` module to *registry* and return it."""
    children = child_registry if child_registry is not None else standard_registry()
    registry.register(
        "plugin",
        partial(load_plugin, child_registry=children),
        "spawn and supervise nested plugins",
    )
    return registry


def host_registry() -> CapabilityRegistry:
    """Standard capabilities plus ``plugin``, for top-level host scripts."""
    return register_plugin_module(standard_registry())


__all__ = ["host_registry", "load_plugin", "register_plugin_module"]
