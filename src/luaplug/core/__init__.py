"""luaplug core — errors, structured logging, and settings shared by every layer."""

from luaplug.core.errors import (
    ConfigError,
    ErrorCategory,
    PluginAlreadyRunningError,
    PluginError,
    ScriptError,
    ScriptInterrupted,
    ScriptRuntimeError,
    ScriptSyntaxError,
)
from luaplug.core.logging import configure_logging, get_logger
from luaplug.core.settings import PluginSettings, get_settings, reset_settings

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "PluginAlreadyRunningError",
    "PluginError",
    "ScriptError",
    "ScriptInterrupted",
    "ScriptRuntimeError",
    "ScriptSyntaxError",
    "configure_logging",
    "get_logger",
    "PluginSettings",
    "get_settings",
    "reset_settings",
]
