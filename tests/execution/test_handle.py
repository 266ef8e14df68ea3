"""
Tests for PluginHandle lifecycle and thread safety.

Uses a scripted fake engine so every state transition is driven by the test
rather than by Lua timing.
"""

import threading

import pytest

from luaplug.core.errors import PluginAlreadyRunningError
from luaplug.execution.handle import HandleState, PluginHandle, create
from tests._support.fake_engine import FakeEngine, block_until_cancelled, fail, succeed


def _gate_engine():
    """Engine whose runs block until the returned Event is set."""
    release = threading.Event()

    def run(token, body):
        release.wait(10.0)
        return None

    return FakeEngine(run), release


class TestBeforeStart:
    """A freshly created handle."""

    def test_initial_state(self):
        handle = PluginHandle("return 1+1", FakeEngine(succeed))

        assert handle.is_running() is False
        assert handle.error() is None
        assert handle.state == HandleState.PENDING
        assert handle.runs == 0

    def test_create_does_not_run(self):
        engine = FakeEngine(succeed)
        handle = create("return 1+1", engine)

        assert engine.instances == []
        assert handle.body == "return 1+1"

    def test_cancel_before_start_is_noop(self):
        engine = FakeEngine(succeed)
        handle = PluginHandle("return 1+1", engine)

        handle.cancel()
        handle.cancel()

        assert handle.state == HandleState.PENDING
        assert handle.error() is None
        assert engine.instances == []

    def test_cancel_before_start_does_not_affect_later_run(self):
        handle = PluginHandle("return 1+1", FakeEngine(succeed))
        handle.cancel()

        handle.start()
        assert handle.wait(5.0)
        assert handle.error() is None

    def test_non_string_body_rejected(self):
        with pytest.raises(TypeError, match="string"):
            PluginHandle(42, FakeEngine(succeed))

    def test_plugin_id_default_and_override(self):
        auto = PluginHandle("x", FakeEngine(succeed))
        named = PluginHandle("x", FakeEngine(succeed), plugin_id="worker-a")

        assert auto.plugin_id.startswith("plugin-")
        assert named.plugin_id == "worker-a"
        assert "worker-a" in repr(named)


class TestRun:
    """Successful and failing runs."""

    def test_running_immediately_after_start(self):
        engine, release = _gate_engine()
        handle = PluginHandle("slow", engine)

        handle.start()
        try:
            assert handle.is_running() is True
            assert handle.state == HandleState.RUNNING
            assert handle.error() is None
        finally:
            release.set()
        assert handle.wait(5.0)

    def test_successful_run(self):
        handle = PluginHandle("return 1+1", FakeEngine(succeed))

        handle.start()

        assert handle.wait(5.0) is True
        assert handle.is_running() is False
        assert handle.error() is None
        assert handle.state == HandleState.FINISHED
        assert handle.runs == 1

    def test_failing_run_reports_error(self):
        handle = PluginHandle("error('boom')", FakeEngine(fail))

        handle.start()

        assert handle.wait(5.0)
        assert "boom" in handle.error()
        assert handle.is_running() is False

    def test_each_start_uses_fresh_instance_and_token(self):
        engine = FakeEngine(succeed)
        handle = PluginHandle("x", engine)

        handle.start()
        assert handle.wait(5.0)
        handle.start()
        assert handle.wait(5.0)

        assert len(engine.instances) == 2
        first, second = engine.instances
        assert first is not second
        assert first.token is not second.token
        assert handle.runs == 2

    def test_wait_times_out_while_running(self):
        engine, release = _gate_engine()
        handle = PluginHandle("slow", engine)

        handle.start()
        try:
            assert handle.wait(0.05) is False
        finally:
            release.set()
        assert handle.wait(5.0) is True

    def test_wait_before_start_returns_immediately(self):
        handle = PluginHandle("x", FakeEngine(succeed))
        assert handle.wait(0) is True


class TestStartWhileRunning:
    """Starting a handle whose previous run has not returned."""

    def test_raises_and_replaces_nothing(self):
        engine = FakeEngine(block_until_cancelled)
        handle = PluginHandle("loop", engine)
        handle.start()

        with pytest.raises(PluginAlreadyRunningError) as exc_info:
            handle.start()

        assert exc_info.value.context["plugin_id"] == handle.plugin_id
        assert len(engine.instances) == 1
        assert handle.runs == 1

        # The original run is still the one cancel() reaches
        handle.cancel()
        assert handle.wait(5.0)
        assert engine.instances[0].token.cancelled
        assert handle.error() == "context canceled"


class TestEngineSetupFailure:
    """An engine that cannot build or bind an instance."""

    @staticmethod
    def _broken_engine(fail_on):
        class BrokenEngine(FakeEngine):
            def new_instance(self):
                if fail_on == "new_instance":
                    raise RuntimeError("no evaluator")
                instance = super().new_instance()

                def bind(token):
                    raise RuntimeError("hook refused")

                instance.bind_cancellation = bind
                return instance

        return BrokenEngine(succeed)

    @pytest.mark.parametrize(
        ("fail_on", "message"),
        [("new_instance", "no evaluator"), ("bind_cancellation", "hook refused")],
    )
    def test_start_records_error_instead_of_raising(self, fail_on, message):
        handle = PluginHandle("return 1", self._broken_engine(fail_on))

        handle.start()

        assert handle.wait(0.1)
        assert handle.is_running() is False
        assert message in handle.error()
        assert "RuntimeError" in handle.error()
        assert handle.state == HandleState.FINISHED
        assert handle.runs == 1

    def test_handle_stays_usable(self):
        handle = PluginHandle("return 1", self._broken_engine("new_instance"))
        handle.start()

        handle.cancel()
        handle.start()

        assert handle.runs == 2
        assert handle.is_running() is False


class TestRestart:
    """Starting again after a run finished."""

    def test_restart_clears_previous_error(self):
        outcomes = iter([fail, succeed])
        engine = FakeEngine(lambda token, body: next(outcomes)(token, body))
        handle = PluginHandle("flaky", engine)

        handle.start()
        assert handle.wait(5.0)
        assert handle.error() is not None

        handle.start()
        assert handle.wait(5.0)
        assert handle.error() is None
        assert handle.runs == 2

    def test_error_cleared_as_soon_as_restarted(self):
        release = threading.Event()
        calls = []

        def run(token, body):
            calls.append(body)
            if len(calls) == 1:
                return fail(token, body)
            release.wait(10.0)
            return None

        handle = PluginHandle("x", FakeEngine(run))
        handle.start()
        assert handle.wait(5.0)
        assert handle.error() is not None

        handle.start()
        try:
            assert handle.is_running() is True
            assert handle.error() is None
        finally:
            release.set()
        assert handle.wait(5.0)


class TestCancel:
    """Cooperative cancellation through the handle."""

    def test_cancel_interrupts_run(self):
        engine = FakeEngine(block_until_cancelled)
        handle = PluginHandle("while true do end", engine)
        handle.start()
        assert handle.is_running()

        handle.cancel()

        assert handle.wait(5.0)
        assert handle.is_running() is False
        assert handle.error() == "context canceled"

    def test_cancel_records_reason_on_token(self):
        engine = FakeEngine(block_until_cancelled)
        handle = PluginHandle("loop", engine)
        handle.start()

        handle.cancel("timeout")
        handle.cancel("second reason ignored")

        assert handle.wait(5.0)
        assert engine.instances[0].token.reason == "timeout"

    def test_cancel_after_finish_keeps_outcome(self):
        handle = PluginHandle("x", FakeEngine(succeed))
        handle.start()
        assert handle.wait(5.0)

        handle.cancel()

        assert handle.error() is None
        assert handle.state == HandleState.FINISHED

    def test_cancel_ignored_by_engine_leaves_running(self):
        """cancel() only requests; the flag flips when run() returns."""
        release = threading.Event()
        handle = PluginHandle("x", FakeEngine(lambda token, body: release.wait(10.0) and None))
        handle.start()

        handle.cancel()
        assert handle.is_running() is True

        release.set()
        assert handle.wait(5.0)

    def test_concurrent_cancels(self):
        engine = FakeEngine(block_until_cancelled)
        handle = PluginHandle("loop", engine)
        handle.start()

        threads = [threading.Thread(target=handle.cancel) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert handle.wait(5.0)
        assert handle.error() == "context canceled"


class TestConcurrentObservers:
    """Pollers on other threads never see a torn state."""

    def test_no_error_visible_while_running(self):
        release = threading.Event()

        def run(token, body):
            release.wait(10.0)
            return fail(token, body)

        handle = PluginHandle("x", FakeEngine(run))
        violations = []
        stop = threading.Event()

        def observe():
            while not stop.is_set():
                snap = handle.snapshot()
                if snap.running and snap.error is not None:
                    violations.append(snap)
                if snap.state == HandleState.RUNNING and not snap.running:
                    violations.append(snap)

        observers = [threading.Thread(target=observe) for _ in range(4)]
        for t in observers:
            t.start()

        for _ in range(20):
            handle.start()
            release.set()
            assert handle.wait(5.0)
            release.clear()

        stop.set()
        for t in observers:
            t.join()

        assert violations == []
        assert handle.runs == 20

    def test_error_available_once_not_running(self):
        """After is_running() reads False, error() reflects that run."""
        handle = PluginHandle("x", FakeEngine(fail))
        handle.start()

        while handle.is_running():
            pass

        assert handle.error() is not None

    def test_snapshot_is_consistent(self):
        handle = PluginHandle("x", FakeEngine(fail))
        handle.start()
        assert handle.wait(5.0)

        snap = handle.snapshot()

        assert snap.state == HandleState.FINISHED
        assert snap.running is False
        assert "boom" in snap.error
        assert snap.runs == 1
