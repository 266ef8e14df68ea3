"""luaplug execution — plugin handles, cancellation, and the engine seam.

ARCHITECTURE
────────────
::

    PluginHandle (handle.py)
      ├── CancelToken     (cancellation.py)  one per run
      └── ScriptEngine    (engine.py)        one EngineInstance per run
            └── LuaEngine / LuaInstance      lupa.LuaRuntime + capabilities

Tags:
    luaplug, execution
"""

from luaplug.execution.cancellation import CancelToken
from luaplug.execution.engine import EngineInstance, LuaEngine, LuaInstance, ScriptEngine
from luaplug.execution.handle import HandleSnapshot, HandleState, PluginHandle, create

__all__ = [
    "CancelToken",
    "EngineInstance",
    "HandleSnapshot",
    "HandleState",
    "LuaEngine",
    "LuaInstance",
    "PluginHandle",
    "ScriptEngine",
    "create",
]
