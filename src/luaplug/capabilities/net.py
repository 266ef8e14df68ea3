"""Network capability modules: ``http`` (httpx) and ``tcp`` (sockets).

Both use ``PluginSettings.http_timeout`` as their I/O timeout.  A blocking
request is not interrupted mid-flight by cancellation; the run is aborted
at the next checkpoint after the call returns.

Lua usage::

    local http = require("http")
    local resp, err = http.get("https://example.org", {headers = {Accept = "text/html"}})
    if resp then print(resp.code, #resp.body) end

    local tcp = require("tcp")
    local conn, err = tcp.open("localhost:6379")
    conn:write("PING\\r\\n")
    local reply, err = conn:read()
    conn:close()
"""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING, Any

import httpx

from luaplug.capabilities.convert import from_lua, to_lua

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance


def load_http(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime
    timeout = instance.settings.http_timeout

    def request(method: str, url: str, options: Any = None):
        opts = from_lua(options) if options is not None else {}
        if not isinstance(opts, dict):
            return None, "options must be a table"
        if instance.token is not None:
            instance.token.raise_if_cancelled()
        try:
            response = httpx.request(
                method.upper(),
                url,
                headers=opts.get("headers"),
                params=opts.get("query"),
                content=opts.get("body"),
                timeout=opts.get("timeout", timeout),
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            return None, str(exc)
        return to_lua(runtime, {
            "code": response.status_code,
            "body": response.text,
            "headers": dict(response.headers),
            "url": str(response.url),
        }), None

    return {
        "request": request,
        "get": lambda url, options=None: request("GET", url, options),
        "post": lambda url, options=None: request("POST", url, options),
    }


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"address must be host:port, got {address!r}")
    return host.strip("[]") or "localhost", int(port)


def load_tcp(instance: LuaInstance) -> dict[str, Any]:
    runtime = instance.runtime
    timeout = instance.settings.http_timeout

    def open_(address: str):
        try:
            conn = socket.create_connection(_split_address(address), timeout=timeout)
        except (OSError, ValueError) as exc:
            return None, str(exc)

        def write(_self: Any, data: str):
            try:
                conn.sendall(data.encode("utf-8") if isinstance(data, str) else data)
            except OSError as exc:
                return str(exc)
            return None

        def read(_self: Any, size: int = 4096):
            try:
                return conn.recv(int(size)), None
            except OSError as exc:
                return None, str(exc)

        return to_lua(runtime, {
            "write": write,
            "read": read,
            "close": lambda _self: conn.close(),
        }), None

    return {"open": open_}


__all__ = ["load_http", "load_tcp"]
