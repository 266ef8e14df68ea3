"""
Shared pytest fixtures and configuration for luaplug tests.

This module provides:
- Settings cache isolation
- structlog reset between tests
- Lua engines with minimal or standard capability registries
"""

import sys
from pathlib import Path

import pytest
import structlog

# Ensure luaplug package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from luaplug.binding import host_registry
from luaplug.capabilities.registry import CapabilityRegistry, standard_registry
from luaplug.core.settings import PluginSettings, reset_settings
from luaplug.execution.engine import LuaEngine


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings():
    """Drop cached settings before and after every test."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def clean_structlog():
    """Undo any structlog configuration a test (e.g. the CLI) installed."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Lua Engines
# =============================================================================


@pytest.fixture
def settings() -> PluginSettings:
    """Settings with a tight hook interval so cancellation lands quickly."""
    return PluginSettings(hook_instruction_count=100, http_timeout=5.0, cancel_grace=2.0)


@pytest.fixture
def minimal_registry() -> CapabilityRegistry:
    registry = CapabilityRegistry()
    registry.register("answer", lambda instance: {"value": lambda: 42}, "test module")
    return registry


@pytest.fixture
def lua_engine(minimal_registry: CapabilityRegistry, settings: PluginSettings) -> LuaEngine:
    return LuaEngine(minimal_registry, settings)


@pytest.fixture
def standard_engine(settings: PluginSettings) -> LuaEngine:
    return LuaEngine(standard_registry(), settings)


@pytest.fixture
def host_engine(settings: PluginSettings) -> LuaEngine:
    """Engine whose scripts may ``require("plugin")``."""
    return LuaEngine(host_registry(), settings)
