"""luaplug — supervised, cancellable Lua sub-interpreters.

A running script (or a Python host) spawns an independent Lua interpreter
instance, polls whether it is still running, reads its terminal error and
cancels it cooperatively.

Example:
    >>> from luaplug import PluginHandle
    >>> handle = PluginHandle("error('boom')")
    >>> handle.start()
    >>> handle.wait(5.0)
    True
    >>> "boom" in handle.error()
    True

Subpackages:
    core          errors, structured logging, settings
    execution     PluginHandle, CancelToken, engine adapter
    capabilities  Lua modules preloaded into each instance
    binding       the ``plugin`` Lua module
    cli           ``luaplug`` command
"""

__version__ = "0.1.0"

from luaplug.core.errors import (  # noqa: E402
    PluginAlreadyRunningError,
    PluginError,
    ScriptError,
    ScriptInterrupted,
)
from luaplug.execution import CancelToken, HandleState, LuaEngine, PluginHandle, create  # noqa: E402

__all__ = [
    "__version__",
    "CancelToken",
    "HandleState",
    "LuaEngine",
    "PluginAlreadyRunningError",
    "PluginError",
    "PluginHandle",
    "ScriptError",
    "ScriptInterrupted",
    "create",
]
