"""Structured-data capability modules: ``json``, ``yaml`` and ``xmlpath``.

Lua usage::

    local json = require("json")
    local text, err = json.encode({name = "job", tags = {"a", "b"}})
    local value, err = json.decode('{"retries": 3}')

    local yaml = require("yaml")
    local config, err = yaml.decode("workers: 4")

    local xmlpath = require("xmlpath")
    local titles, err = xmlpath.find(doc, "//title")
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING, Any

import yaml

from luaplug.capabilities.convert import from_lua, to_lua

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance


def load_json(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def encode(value: Any):
        try:
            return json.dumps(from_lua(value), separators=(",", ":")), None
        except (TypeError, ValueError) as exc:
            return None, str(exc)

    def decode(text: str):
        try:
            return to_lua(runtime, json.loads(text)), None
        except (TypeError, ValueError) as exc:
            return None, str(exc)

    return {"encode": encode, "decode": decode}


def load_yaml(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def encode(value: Any):
        try:
            return yaml.safe_dump(from_lua(value), default_flow_style=False), None
        except yaml.YAMLError as exc:
            return None, str(exc)

    def decode(text: str):
        try:
            return to_lua(runtime, yaml.safe_load(text)), None
        except yaml.YAMLError as exc:
            return None, str(exc)

    return {"encode": encode, "decode": decode}


def _relative_path(root: ET.Element, path: str) -> str | None:
    """Rewrite absolute paths into ones ElementTree accepts on the root element."""
    if path.startswith("//"):
        return "." + path
    if path.startswith("/"):
        head, _, rest = path[1:].partition("/")
        if head != root.tag:
            return None
        return "./" + rest if rest else "."
    return path


def find_texts(document: str, path: str) -> list[str]:
    """Text content of every element of *document* matching *path*."""
    root = ET.fromstring(document)
    relative = _relative_path(root, path)
    if relative is None:
        return []
    return ["".join(element.itertext()) for element in root.findall(relative)]


def load_xmlpath(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime

    def find(document: str, path: str):
        try:
            return runtime.table(*find_texts(document, path)), None
        except (ET.ParseError, SyntaxError, KeyError) as exc:
            return None, str(exc)

    return {"find": find}


__all__ = ["find_texts", "load_json", "load_xmlpath", "load_yaml"]
