"""Capability modules preloaded into every plugin engine instance.

Modules:
    registry  - CapabilityRegistry + standard_registry()
    convert   - Lua <-> Python value conversion
    fs        - filepath, ioutil, tac
    data      - json, yaml, xmlpath
    text      - strings, regexp, inspect
    clock     - time (cancellable sleep)
    net       - http (httpx), tcp

Tags:
    luaplug, capabilities, lua-modules
"""

from luaplug.capabilities.convert import from_lua, to_lua
from luaplug.capabilities.registry import CapabilityRegistry, Loader, standard_registry

__all__ = [
    "CapabilityRegistry",
    "Loader",
    "from_lua",
    "standard_registry",
    "to_lua",
]
