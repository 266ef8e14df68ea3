"""Text capability modules: ``strings``, ``regexp`` and ``inspect``.

Lua usage::

    local strings = require("strings")
    local parts = strings.split("a,b,c", ",")      -- {"a", "b", "c"}

    local regexp = require("regexp")
    local ok, err = regexp.match("^v[0-9]+$", "v12")
    local groups, err = regexp.find_all_string_submatch("(\\w)=(\\d)", "a=1 b=2")

    local inspect = require("inspect")
    print(inspect.inspect({1, 2, key = "value"}))
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from luaplug.capabilities.convert import from_lua, to_lua

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def load_strings(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def split(value: str, sep: str):
        parts = list(value) if sep == "" else value.split(sep)
        return runtime.table(*parts)

    return {
        "split": split,
        "fields": lambda value: runtime.table(*value.split()),
        "has_prefix": lambda value, prefix: value.startswith(prefix),
        "has_suffix": lambda value, suffix: value.endswith(suffix),
        "trim": lambda value, cutset: value.strip(cutset),
        "trim_space": lambda value: value.strip(),
        "trim_prefix": lambda value, prefix: value.removeprefix(prefix),
        "trim_suffix": lambda value, suffix: value.removesuffix(suffix),
        "contains": lambda value, sub: sub in value,
    }


def load_regexp(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def match(pattern: str, value: str):
        try:
            return re.search(pattern, value) is not None, None
        except re.error as exc:
            return None, str(exc)

    def find_all_string_submatch(pattern: str, value: str):
        try:
            compiled = re.compile(pattern)
        except re.error as exc:
            return None, str(exc)
        found = [
            [m.group(0), *(g if g is not None else "" for g in m.groups())]
            for m in compiled.finditer(value)
        ]
        return to_lua(runtime, found), None

    return {"match": match, "find_all_string_submatch": find_all_string_submatch}


def render(value: Any, indent: int = 0) -> str:
    """Render plain Python data as a Lua table constructor."""
    pad = "  " * (indent + 1)
    if isinstance(value, list):
        if not value:
            return "{}"
        inner = ", ".join(render(item, indent) for item in value)
        return "{ " + inner + " }"
    if isinstance(value, dict):
        if not value:
            return "{}"
        lines = []
        for key in sorted(value, key=str):
            if isinstance(key, str) and _IDENTIFIER.match(key):
                label = key
            else:
                label = "[" + render(key) + "]"
            lines.append(f"{pad}{label} = {render(value[key], indent + 1)}")
        return "{\n" + ",\n".join(lines) + "\n" + "  " * indent + "}"
    if isinstance(value, str):
        return '"' + value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n") + '"'
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    return f"<{type(value).__name__}>"


def load_inspect(instance: LuaInstance) -> dict[str, Any]:
    return {"inspect": lambda value: render(from_lua(value))}


__all__ = ["load_inspect", "load_regexp", "load_strings", "render"]
