"""``time`` capability module.

``time.sleep`` waits on the run's cancel token, so a plugin parked in a
sleep is interrupted as soon as it is cancelled instead of at its next
Lua instruction.

Lua usage::

    local time = require("time")
    local started = time.unix()
    time.sleep(0.5)
    print(time.format(started, "%Y-%m-%dT%H:%M:%SZ"))
    local ts, err = time.parse("2024-01-02", "%Y-%m-%d")
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from luaplug.execution.engine import LuaInstance

DEFAULT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(ts: float, layout: str | None = None) -> str:
    """Format a unix timestamp in UTC using ``strftime`` directives."""
    return datetime.fromtimestamp(ts, tz=UTC).strftime(layout or DEFAULT_FORMAT)


def parse_timestamp(value: str, layout: str | None = None) -> float:
    """Parse *value* (interpreted as UTC) into a unix timestamp."""
    parsed = datetime.strptime(value, layout or DEFAULT_FORMAT)
    return parsed.replace(tzinfo=UTC).timestamp()


def load_time(instance: LuaInstance) -> dict[str, Any]:
    def parse(value: str, layout: str | None = None):
        try:
            return parse_timestamp(value, layout), None
        except ValueError as exc:
            return None, str(exc)

    return {
        "unix": time.time,
        "unix_nano": time.time_ns,
        "sleep": instance.sleep,
        "format": format_timestamp,
        "parse": parse,
    }


__all__ = ["format_timestamp", "load_time", "parse_timestamp"]
