"""Filesystem capability modules: ``filepath``, ``ioutil`` and ``tac``.

Functions that can fail follow the Lua convention ``value, err``: on
success ``err`` is nil, on failure ``value`` is nil and ``err`` is a
message string.

Lua usage::

    local filepath = require("filepath")
    local ioutil = require("ioutil")
    local data, err = ioutil.read_file(filepath.join("/etc", "hostname"))

    local tac = require("tac")
    local reader = tac.open("/var/log/app.log")
    local last = reader:line()
"""

from __future__ import annotations

import glob
import os
from typing import TYPE_CHECKING, Any

from luaplug.capabilities.convert import to_lua

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance


def _base(path: str) -> str:
    if path == "":
        return "."
    stripped = path.rstrip(os.sep)
    if stripped == "":
        return os.sep
    return os.path.basename(stripped)


def _dir(path: str) -> str:
    return os.path.dirname(path) or "."


def load_filepath(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def abs_(path: str):
        try:
            return os.path.abspath(path), None
        except (OSError, ValueError) as exc:
            return None, str(exc)

    def glob_(pattern: str):
        try:
            matches = sorted(glob.glob(pattern))
        except (OSError, ValueError) as exc:
            return None, str(exc)
        return runtime.table(*matches), None

    return {
        "base": _base,
        "dir": _dir,
        "ext": lambda path: os.path.splitext(path)[1],
        "join": lambda *parts: os.path.join(*parts) if parts else "",
        "abs": abs_,
        "glob": glob_,
        "separator": lambda: os.sep,
    }


def load_ioutil(instance: LuaInstance) -> dict[str, Any]:
    def read_file(path: str):
        try:
            with open(path, encoding="utf-8") as fh:
                return fh.read(), None
        except (OSError, UnicodeDecodeError) as exc:
            return None, str(exc)

    def write_file(path: str, data: str):
        try:
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(data)
        except OSError as exc:
            return str(exc)
        return None

    return {"read_file": read_file, "write_file": write_file}


class _TacReader:
    """Yields the lines of a file last-first, reading backwards in blocks.

    Lines are split on ``\\n`` (a trailing ``\\r`` is dropped) and decoded as
    UTF-8 with replacement, one line at a time.
    """

    def __init__(self, path: str, block_size: int = 8192):
        self._fh = open(path, "rb")
        self._block_size = block_size
        self._pos = self._fh.seek(0, os.SEEK_END)
        self._head = b""  # first, possibly partial, line of the bytes read so far
        self._pending: list[bytes] = []
        self._done = self._pos == 0
        if self._done:
            self._fh.close()
            return
        self._fh.seek(self._pos - 1)
        if self._fh.read(1) == b"\n":
            self._pos -= 1

    def _read_block(self) -> None:
        size = min(self._block_size, self._pos)
        self._pos -= size
        self._fh.seek(self._pos)
        parts = (self._fh.read(size) + self._head).split(b"\n")
        self._head = parts[0]
        self._pending = parts[1:]

    def line(self) -> str | None:
        while not self._pending and self._pos > 0:
            self._read_block()
        if self._pending:
            raw = self._pending.pop()
        elif not self._done:
            raw = self._head
            self.close()
        else:
            return None
        return raw.rstrip(b"\r").decode("utf-8", errors="replace")

    def close(self) -> None:
        self._fh.close()
        self._pending = []
        self._head = b""
        self._pos = 0
        self._done = True


def load_tac(instance: LuaInstance) -> dict[str, Any]:
    def open_(path: str):
        try:
            reader = _TacReader(path)
        except OSError as exc:
            return None, str(exc)
        # Methods take the Lua table as ``self`` so ``reader:line()`` works.
        return to_lua(instance.runtime, {
            "line": lambda _self: reader.line(),
            "close": lambda _self: reader.close(),
        }), None

    return {"open": open_}


__all__ = ["load_filepath", "load_ioutil", "load_tac"]
