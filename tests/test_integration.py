"""End-to-end tests: EngineManager driving the scripted engine subprocess."""

import pytest

from helpers import EventRecorder
from ucibridge.cli import run_until
from ucibridge.uci.events import EventKind
from ucibridge.uci.manager import EngineManager
from ucibridge.uci.protocol import ProtocolState


@pytest.fixture
def managers():
    created: list[EngineManager] = []
    yield created
    for manager in created:
        manager.shutdown()


def build(config, managers: list[EngineManager]) -> tuple[EngineManager, EventRecorder]:
    manager = EngineManager(config)
    managers.append(manager)
    return manager, EventRecorder(manager)


class TestScriptedEngine:
    """Full lifecycle against a real process."""

    def test_handshake_and_move(self, scripted_engine_config, managers) -> None:
        manager, events = build(scripted_engine_config(), managers)
        manager.start()

        assert run_until(manager, lambda: manager.is_ready, timeout=10.0)
        assert manager.process is not None
        assert events.of(EventKind.READY_STATE_CHANGED) == [(True,)]

        manager.request_move("startpos", thinking_time_ms=50)
        assert run_until(
            manager, lambda: bool(events.of(EventKind.BEST_MOVE_RECEIVED)), timeout=10.0
        )

        assert events.of(EventKind.BEST_MOVE_RECEIVED) == [("e2e4",)]
        assert len(events.of(EventKind.INFO_RECEIVED)) == 1
        assert manager.state is ProtocolState.READY
        assert manager.protocol.last_best_move.ponder == "e7e5"
        assert events.of(EventKind.ENGINE_ERROR) == []

    def test_shutdown_and_restart(self, scripted_engine_config, managers) -> None:
        manager, events = build(scripted_engine_config(), managers)
        manager.start()
        assert run_until(manager, lambda: manager.is_ready, timeout=10.0)

        manager.shutdown()
        assert manager.state is ProtocolState.UNINITIALIZED
        assert manager.process is None

        manager.start()
        assert run_until(manager, lambda: manager.is_ready, timeout=10.0)
        manager.update()
        assert events.of(EventKind.READY_STATE_CHANGED) == [(True,), (False,), (True,)]
        assert events.of(EventKind.ENGINE_ERROR) == []

    def test_stderr_is_reported_as_error(self, scripted_engine_config, managers) -> None:
        manager, events = build(scripted_engine_config("stderr"), managers)
        manager.start()

        assert run_until(
            manager,
            lambda: manager.is_ready and bool(events.of(EventKind.ENGINE_ERROR)),
            timeout=10.0,
        )
        errors = [args[0] for args in events.of(EventKind.ENGINE_ERROR)]
        assert errors == ["Engine stderr: warning: evaluation file not found"]
        messages = [args[0] for args in events.of(EventKind.MESSAGE_RECEIVED)]
        assert "warning: evaluation file not found" not in messages

    def test_silent_engine_times_out(self, scripted_engine_config, managers) -> None:
        config = scripted_engine_config("silent")
        config.handshake.uci_timeout = 0.3
        manager, events = build(config, managers)
        manager.start()

        assert run_until(manager, lambda: manager.protocol.handshake_failed, timeout=5.0)
        manager.update()

        errors = [args[0] for args in events.of(EventKind.ENGINE_ERROR)]
        assert errors == ["Timed out waiting for uciok after 0.3s"]
        assert not manager.is_ready

    def test_crash_during_search(self, scripted_engine_config, managers) -> None:
        manager, events = build(scripted_engine_config("crash"), managers)
        manager.start()
        assert run_until(manager, lambda: manager.is_ready, timeout=10.0)

        manager.request_move("startpos", thinking_time_ms=50)
        assert run_until(manager, lambda: not manager.is_initialized, timeout=10.0)
        manager.update()

        errors = [args[0] for args in events.of(EventKind.ENGINE_ERROR)]
        assert errors == ["Engine process exited unexpectedly (code 3)"]
        assert events.of(EventKind.READY_STATE_CHANGED) == [(True,), (False,)]
        assert manager.process is None

    def test_auto_communication_test(self, scripted_engine_config, managers) -> None:
        config = scripted_engine_config(auto_run_handshake_test=True, step_delay=0.0)
        manager, events = build(config, managers)
        manager.start()

        assert run_until(
            manager,
            lambda: bool(events.of(EventKind.COMMUNICATION_TEST_COMPLETE)),
            timeout=10.0,
        )
        (success, message), = events.of(EventKind.COMMUNICATION_TEST_COMPLETE)
        assert success is True
        assert "e2e4" in message
        assert manager.state is ProtocolState.READY
