"""Plugin handle — lifecycle of one nested, concurrently running Lua program.

WHY
───
A script spawns a sub-interpreter, keeps working, and later asks "are you
done?", "did you fail?" or says "stop".  Two execution contexts touch the
same handle: the caller and the worker thread running the evaluator.  The
handle is a guarded-state object: every mutable field lives behind one
lock, critical sections only read or write fields, and the evaluation
itself runs outside the lock so a runaway script never blocks a poll.

ARCHITECTURE
────────────
::

    PluginHandle(body, engine)
      ├── .start()       ─ new instance + token under lock, spawn worker
      ├── .is_running()  ─ lock, read flag
      ├── .error()       ─ lock, read terminal error message
      ├── .cancel()      ─ lock, fire token (no-op before first start)
      ├── .state         ─ pending / running / finished
      ├── .snapshot()    ─ consistent (state, running, error, runs)
      └── .wait(t)       ─ block until the current run finishes

    start()                           worker thread
    ───────                           ─────────────
    with lock:                        error = instance.run(body)
      instance = engine.new_instance()    │  (outside the lock)
      token = CancelToken()               ▼
      instance.bind_cancellation(token) with lock:
      error = None; running = True      error = <result>
    Thread(worker).start()  ────────►   running = False
    return                              notify waiters

State machine::

    PENDING ──start()──► RUNNING ──run returns──► FINISHED
                            ▲                         │
                            └──────── start() ────────┘
    start() while RUNNING → PluginAlreadyRunningError (nothing replaced)
    engine setup fails    → FINISHED with that error, no worker spawned

Guarantees:
    - ``error()`` is None while running; once ``is_running()`` reads False
      for a run, ``error()`` returns that run's outcome.
    - ``snapshot()`` never reports an error together with ``running=True``.
    - ``cancel()`` never changes running/error itself; the worker does once
      the interrupted evaluation returns.
    - Each start builds a new engine instance and token; nothing is reused.

Tags:
    luaplug, execution, handle, state-machine, thread-safe, cancellation

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from enum import Enum

from luaplug.core.errors import PluginAlreadyRunningError, ScriptError, ScriptRuntimeError
from luaplug.core.logging import get_logger
from luaplug.execution.cancellation import CancelToken
from luaplug.execution.engine import EngineInstance, LuaEngine, ScriptEngine

logger = get_logger(__name__)


class HandleState(str, Enum):
    """Lifecycle state of a plugin handle."""

    PENDING = "pending"     # Never started
    RUNNING = "running"
    FINISHED = "finished"   # Most recent run returned


@dataclass(frozen=True)
class HandleSnapshot:
    """Consistent view of a handle, read under a single lock acquisition."""

    state: HandleState
    running: bool
    error: str | None
    runs: int


class PluginHandle:
    """Handle for one spawned (or spawnable) nested Lua execution.

    Example:
        >>> handle = PluginHandle("return 1+1")
        >>> handle.start()
        >>> handle.wait(5.0)
        True
        >>> handle.is_running(), handle.error()
        (False, None)
    """

    def __init__(
        self,
        body: str,
        engine: ScriptEngine | None = None,
        *,
        plugin_id: str | None = None,
    ):
        if not isinstance(body, str):
            raise TypeError(f"plugin body must be a string, got {type(body).__name__}")

        if engine is None:
            engine = LuaEngine()

        self._body = body
        self._engine = engine
        self.plugin_id = plugin_id or f"plugin-{uuid.uuid4().hex[:8]}"

        # Guarded by _lock
        self._lock = threading.Lock()
        self._finished = threading.Condition(self._lock)
        self._running = False
        self._error: ScriptError | None = None
        self._token: CancelToken | None = None
        self._instance: EngineInstance | None = None
        self._runs = 0

        self._log = logger.bind(plugin_id=self.plugin_id)

    @property
    def body(self) -> str:
        """Program text; immutable."""
        return self._body

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Spawn the evaluation on a daemon thread and return immediately.

        Evaluation failures are never raised here; read them with
        ``error()`` once ``is_running()`` is False.  An engine that fails to
        build or bind an instance counts as a finished run with that error.

        Raises:
            PluginAlreadyRunningError: If the previous run has not returned
        """
        with self._lock:
            if self._running:
                raise PluginAlreadyRunningError(
                    f"plugin {self.plugin_id} is already running",
                    context={"plugin_id": self.plugin_id, "runs": self._runs},
                )
            token = CancelToken()
            try:
                instance = self._engine.new_instance()
                instance.bind_cancellation(token)
            except Exception as exc:
                self._instance = None
                self._token = token
                self._error = ScriptRuntimeError(
                    f"engine setup failed: {type(exc).__name__}: {exc}", cause=exc
                )
                self._runs += 1
                run = self._runs
                self._finished.notify_all()
                setup_error = self._error
            else:
                setup_error = None
                self._instance = instance
                self._token = token
                self._error = None
                self._running = True
                self._runs += 1
                run = self._runs

        if setup_error is not None:
            self._log.warning("plugin_setup_failed", run=run, error=setup_error.message)
            return

        worker = threading.Thread(
            target=self._execute,
            args=(instance, run),
            name=f"{self.plugin_id}-run{run}",
            daemon=True,
        )
        worker.start()
        self._log.debug("plugin_started", run=run)

    def _execute(self, instance: EngineInstance, run: int) -> None:
        """Worker thread body: run to completion, then write back."""
        error: ScriptError | None = ScriptRuntimeError("engine returned no outcome")
        try:
            error = instance.run(self._body)
        finally:
            with self._lock:
                self._error = error
                self._running = False
                self._finished.notify_all()

        if error is None:
            self._log.debug("plugin_finished", run=run, outcome="ok")
        else:
            self._log.info(
                "plugin_finished",
                run=run,
                outcome="error",
                category=error.category.value,
                error=error.message,
            )

    def cancel(self, reason: str = "stop requested") -> None:
        """Request cooperative interruption of the current run.

        Safe to call at any time: before the first start it is a no-op,
        and firing an already fired token does nothing.
        """
        with self._lock:
            token = self._token
            if token is not None:
                token.cancel(reason)

        if token is None:
            self._log.debug("plugin_cancel_ignored", reason="not started")
        else:
            self._log.info("plugin_cancel_requested", reason=reason)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no run is in progress.

        Returns:
            True if the handle is not running, False if *timeout* elapsed
        """
        with self._finished:
            return self._finished.wait_for(lambda: not self._running, timeout)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def error(self) -> str | None:
        """Message of the most recently completed run's error, or None."""
        with self._lock:
            return self._error.message if self._error is not None else None

    @property
    def state(self) -> HandleState:
        with self._lock:
            return self._state_locked()

    @property
    def runs(self) -> int:
        """Number of times ``start()`` has launched a run."""
        with self._lock:
            return self._runs

    def snapshot(self) -> HandleSnapshot:
        with self._lock:
            return HandleSnapshot(
                state=self._state_locked(),
                running=self._running,
                error=self._error.message if self._error is not None else None,
                runs=self._runs,
            )

    def _state_locked(self) -> HandleState:
        if self._running:
            return HandleState.RUNNING
        if self._runs == 0:
            return HandleState.PENDING
        return HandleState.FINISHED

    def __repr__(self) -> str:
        return f"PluginHandle({self.plugin_id!r}, state={self.state.value})"


def create(body: str, engine: ScriptEngine | None = None) -> PluginHandle:
    """Allocate a handle bound to *body*; nothing runs until ``start()``."""
    return PluginHandle(body, engine)


__all__ = ["HandleSnapshot", "HandleState", "PluginHandle", "create"]
