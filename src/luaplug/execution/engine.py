"""Execution engine adapter — the seam between a handle and the Lua evaluator.

Manifesto:
``PluginHandle`` never talks to Lua directly.  It asks a ``ScriptEngine``
for a fresh ``EngineInstance`` per run, binds that run's ``CancelToken``
into it and calls the blocking ``run(body)`` from its worker thread.  The
instance *returns* the terminal error rather than raising it, so the worker
thread only ever has one thing to write back.

ARCHITECTURE
────────────
::

    ScriptEngine.new_instance()         ─ fresh, isolated evaluator
      └── CapabilityRegistry.preload()  ─ package.preload[name] per module
    EngineInstance.bind_cancellation(t) ─ Lua count hook polls the token,
                                          also on script coroutines
    EngineInstance.run(body)            ─ blocking, returns ScriptError | None

    LuaEngine / LuaInstance             ─ lupa.LuaRuntime implementation

Error mapping (``LuaInstance.run``)::

    lupa.LuaSyntaxError          → ScriptSyntaxError
    ScriptInterrupted (Python)   → returned as-is
    lupa.LuaError + token fired  → ScriptInterrupted
    lupa.LuaError                → ScriptRuntimeError
    other Python exception       → ScriptRuntimeError

Related modules:
    handle.py                 — PluginHandle, the only caller
    cancellation.py           — CancelToken
    luaplug.capabilities      — modules preloaded into each instance

Tags:
    luaplug, execution, engine, adapter-protocol, lupa

Doc-Types:
    api-reference
"""

from __future__ import annotations

import time
from functools import lru_cache
from typing import Any, Protocol, runtime_checkable

from lupa import LuaError, LuaRuntime, LuaSyntaxError

from luaplug.capabilities.registry import CapabilityRegistry, standard_registry
from luaplug.core.errors import (
    ScriptError,
    ScriptInterrupted,
    ScriptRuntimeError,
    ScriptSyntaxError,
)
from luaplug.core.settings import PluginSettings, get_settings
from luaplug.execution.cancellation import CancelToken

# Chunk args: token check, instruction interval.
#
# Hooks are per coroutine: ``coroutine.create`` and ``coroutine.wrap`` are
# replaced so new coroutines carry the hook too.  Scripts keep only
# ``debug.traceback`` and ``debug.getinfo``.
_CANCEL_HOOK = """
local check, count = ...
local sethook, traceback, getinfo = debug.sethook, debug.traceback, debug.getinfo
local create, resume = coroutine.create, coroutine.resume
local error = error

local function hook()
    if check() then
        error("context canceled", 0)
    end
end
sethook(hook, "", count)

local function hooked_create(fn)
    local co = create(fn)
    sethook(co, hook, "", count)
    return co
end

local function passthrough(ok, ...)
    if not ok then
        error((...), 0)
    end
    return ...
end

coroutine.create = hooked_create
coroutine.wrap = function(fn)
    local co = hooked_create(fn)
    return function(...)
        return passthrough(resume(co, ...))
    end
end

debug = {traceback = traceback, getinfo = getinfo}
package.loaded.debug = debug
"""

# lupa always installs a ``python`` module table; plugins must not reach the host.
_HIDE_PYTHON = """
python = nil
package.loaded.python = nil
"""


@lru_cache(maxsize=1)
def lua_implementation() -> str:
    """Name of the embedded Lua (e.g. ``Lua 5.4``), read once per process."""
    return LuaRuntime(register_eval=False, register_builtins=False).lua_implementation


@runtime_checkable
class EngineInstance(Protocol):
    """One isolated evaluator, owned by exactly one run."""

    def bind_cancellation(self, token: CancelToken) -> None: ...

    def run(self, body: str) -> ScriptError | None: ...


@runtime_checkable
class ScriptEngine(Protocol):
    """Factory of engine instances."""

    def new_instance(self) -> EngineInstance: ...


class LuaInstance:
    """A ``lupa.LuaRuntime`` wired for one plugin run.

    Capability modules reach the run's token and settings through
    ``instance.token`` / ``instance.settings``; the token is ``None`` until
    ``bind_cancellation`` is called.
    """

    def __init__(self, runtime: LuaRuntime, settings: PluginSettings):
        self.runtime = runtime
        self.settings = settings
        self.token: CancelToken | None = None

    def bind_cancellation(self, token: CancelToken) -> None:
        """Make the evaluator poll *token* every ``hook_instruction_count`` instructions."""
        self.token = token
        self.runtime.execute(
            _CANCEL_HOOK,
            lambda: token.cancelled,
            self.settings.hook_instruction_count,
        )

    def sleep(self, seconds: float) -> None:
        """Sleep that wakes up (and aborts) when the run is cancelled."""
        if self.token is None:
            time.sleep(max(seconds, 0.0))
            return
        if self.token.wait(max(seconds, 0.0)):
            self.token.raise_if_cancelled()

    def run(self, body: str) -> ScriptError | None:
        """Execute *body* to completion and return its terminal error, if any."""
        try:
            self.runtime.execute(body)
        except ScriptInterrupted as exc:
            return exc
        except LuaSyntaxError as exc:
            return ScriptSyntaxError(str(exc), cause=exc)
        except LuaError as exc:
            if self.token is not None and self.token.cancelled:
                return ScriptInterrupted(context={"reason": self.token.reason}, cause=exc)
            return ScriptRuntimeError(str(exc), cause=exc)
        except Exception as exc:
            # Raised by a capability module and not caught by the script.
            return ScriptRuntimeError(f"{type(exc).__name__}: {exc}", cause=exc)
        return None


class LuaEngine:
    """``ScriptEngine`` producing lupa-backed instances.

    Example:
        >>> engine = LuaEngine()
        >>> instance = engine.new_instance()
        >>> instance.bind_cancellation(CancelToken())
        >>> instance.run("return 1+1") is None
        True
    """

    def __init__(
        self,
        registry: CapabilityRegistry | None = None,
        settings: PluginSettings | None = None,
    ):
        self.registry = registry if registry is not None else standard_registry()
        self.settings = settings or get_settings()

    def new_instance(self) -> LuaInstance:
        runtime = LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
        )
        runtime.execute(_HIDE_PYTHON)
        instance = LuaInstance(runtime, self.settings)
        self.registry.preload(instance)
        return instance

    def describe(self) -> dict[str, Any]:
        """Engine metadata for logs and the CLI."""
        return {
            "engine": "lua",
            "lua_version": lua_implementation(),
            "capabilities": self.registry.names(),
        }


__all__ = ["EngineInstance", "ScriptEngine", "LuaEngine", "LuaInstance", "lua_implementation"]
