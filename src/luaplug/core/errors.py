"""
Structured error types for luaplug.

Provides a small hierarchy of typed errors describing how a nested plugin
run ended and how the handle API can be misused.

Every failure of a plugin run (malformed body, runtime fault raised by the
script or by a capability module, cooperative cancellation) is captured as a
``ScriptError``.  The handle only hands the *message* back to its caller, so
the category is there for logging and for tests, not for control flow.

Manifesto:
    - **One base class:** every luaplug error is a ``PluginError``
    - **Categorised:** each error carries an ``ErrorCategory``
    - **Never thrown across threads:** script errors are *returned* by the
      engine and stored on the handle; only API misuse raises synchronously
    - **Serialisable:** ``to_dict()`` for structured logs

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                      PluginError                          │
        │               (category, context, cause)                  │
        ├──────────────────────────────────────────────────────────┤
        │  ScriptError                       PluginAlreadyRunning   │
        │   ├── ScriptSyntaxError   SYNTAX   Error          STATE   │
        │   ├── ScriptRuntimeError  RUNTIME                          │
        │   └── ScriptInterrupted   INTERRUPTED                      │
        │                                                            │
        │  ConfigError  CONFIG                                       │
        └──────────────────────────────────────────────────────────┘

Examples:
    >>> err = ScriptRuntimeError("[string \\"<python>\\"]:1: boom")
    >>> err.category
    <ErrorCategory.RUNTIME: 'RUNTIME'>
    >>> err.to_dict()["error_type"]
    'ScriptRuntimeError'

Tags:
    error-handling, exception-hierarchy, luaplug, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and log routing."""

    SYNTAX = "SYNTAX"              # Malformed program body
    RUNTIME = "RUNTIME"            # Raised by the script or a capability module
    INTERRUPTED = "INTERRUPTED"    # Aborted by a cancellation request
    STATE = "STATE"                # Handle used in the wrong lifecycle state
    CONFIG = "CONFIG"              # Invalid settings
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


class PluginError(Exception):
    """Base exception for all luaplug errors.

    Subclasses set ``default_category``; callers may override it per
    instance.  Extra keyword arguments given as ``context`` end up in
    ``to_dict()`` so they show up in structured logs.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PluginError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCRIPT ERRORS (terminal outcome of a plugin run)
# =============================================================================


class ScriptError(PluginError):
    """Terminal error of a plugin run.

    The handle stores one of these per completed run and exposes
    ``str(error)`` through ``PluginHandle.error()``.
    """

    default_category = ErrorCategory.RUNTIME


class ScriptSyntaxError(ScriptError):
    """The program body could not be compiled."""

    default_category = ErrorCategory.SYNTAX


class ScriptRuntimeError(ScriptError):
    """The script, or a capability module it called, raised an error."""

    default_category = ErrorCategory.RUNTIME


class ScriptInterrupted(ScriptError):
    """Evaluation was aborted because the run's cancel token fired."""

    default_category = ErrorCategory.INTERRUPTED

    def __init__(self, message: str = "context canceled", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# API MISUSE
# =============================================================================


class PluginAlreadyRunningError(PluginError):
    """``start()`` was called on a handle whose previous run is still going."""

    default_category = ErrorCategory.STATE


class ConfigError(PluginError):
    """Invalid luaplug configuration."""

    default_category = ErrorCategory.CONFIG


__all__ = [
    "ErrorCategory",
    "PluginError",
    "ScriptError",
    "ScriptSyntaxError",
    "ScriptRuntimeError",
    "ScriptInterrupted",
    "PluginAlreadyRunningError",
    "ConfigError",
]
