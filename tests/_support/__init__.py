"""
Test support utilities for luaplug tests.

This module provides helpers that don't fit as pytest fixtures but are
useful across multiple test files.
"""

from __future__ import annotations

from typing import Any

from luaplug.core.errors import ScriptError
from luaplug.execution.cancellation import CancelToken


def run_lua(engine: Any, body: str, token: CancelToken | None = None) -> ScriptError | None:
    """
    Run *body* synchronously on a fresh engine instance.

    Args:
        engine: Any ``ScriptEngine``
        body: Lua source
        token: Token to bind; a fresh, never-fired one by default

    Returns:
        The instance's terminal error, or None
    """
    instance = engine.new_instance()
    instance.bind_cancellation(token or CancelToken())
    return instance.run(body)


def lua_quote(value: Any) -> str:
    """Quote a Python value as a Lua long-bracket string literal."""
    text = str(value)
    if "]==]" in text:
        raise ValueError(f"cannot long-quote {text!r}")
    return "[==[" + text + "]==]"
