"""Lua <-> Python value conversion for capability modules.

Lua tables arrive in Python as ``lupa`` table proxies; capability code wants
plain ``dict``/``list`` values, and Lua code wants tables back.

Rules:
    - A table whose keys are exactly ``1..n`` becomes a ``list``.
    - Any other table (including the empty table) becomes a ``dict``.
    - ``dict``/``list``/``tuple`` become fresh Lua tables (lists 1-based).
    - Scalars, ``None`` and callables pass through unchanged.
"""

from __future__ import annotations

from typing import Any

import lupa
from lupa import LuaRuntime


def is_table(value: Any) -> bool:
    return lupa.lua_type(value) == "table"


def from_lua(value: Any) -> Any:
    """Recursively convert a Lua value into plain Python data."""
    if not is_table(value):
        return value

    items = list(value.items())
    keys = [k for k, _ in items]
    if items and all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
        if sorted(keys) == list(range(1, len(keys) + 1)):
            return [from_lua(v) for _, v in sorted(items, key=lambda kv: kv[0])]
    return {k: from_lua(v) for k, v in items}


def to_lua(runtime: LuaRuntime, value: Any) -> Any:
    """Recursively convert Python data into Lua tables owned by *runtime*."""
    if isinstance(value, dict):
        table = runtime.table()
        for key, item in value.items():
            table[key] = to_lua(runtime, item)
        return table
    if isinstance(value, (list, tuple)):
        table = runtime.table()
        for index, item in enumerate(value, start=1):
            table[index] = to_lua(runtime, item)
        return table
    return value


__all__ = ["from_lua", "is_table", "to_lua"]
