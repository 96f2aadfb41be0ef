"""Test doubles and helpers shared across the test-suite."""

import time
from collections import deque
from collections.abc import Callable
from pathlib import Path

from ucibridge.uci.errors import WriteError, WriteFailure
from ucibridge.uci.events import EventKind
from ucibridge.uci.manager import EngineManager

SCRIPTED_ENGINE = Path(__file__).parent / "engines" / "scripted_engine.py"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """In-memory stand-in for LineTransport.

    Tests push output with `emit`/`emit_stderr` and simulate a crash with
    `crash`; everything written by the dispatcher lands in `written`.
    """

    def __init__(self) -> None:
        self.on_unexpected_exit: Callable[[int | None], None] | None = None
        self.poll_interval = 0.1
        self.written: list[str] = []
        self.starts: list[tuple] = []
        self.stop_calls = 0
        self.write_failure: WriteFailure | None = None
        self._lines: deque[str] = deque()
        self._stderr: deque[str] = deque()
        self._running = False
        self._exit_code: int | None = None
        self._exited = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def process(self):
        return object() if self._running else None

    def start(self, path, working_dir=None, args=()):
        self.starts.append((Path(path), working_dir, tuple(args)))
        self._running = True
        self._exited = False
        return self.process

    def write(self, line: str) -> None:
        if not self._running:
            raise WriteError(WriteFailure.PROCESS_NOT_RUNNING, "Engine not running")
        if self.write_failure is not None:
            raise WriteError(self.write_failure, f"Failed to write '{line}'")
        self.written.append(line)

    def drain(self):
        while self._lines:
            yield self._lines.popleft()
        if self._exited:
            self._exited = False
            self._lines.clear()
            if self.on_unexpected_exit is not None:
                self.on_unexpected_exit(self._exit_code)

    def drain_stderr(self):
        while self._stderr:
            yield self._stderr.popleft()

    def stop(self, grace_period: float = 2.0) -> None:
        self.stop_calls += 1
        self._running = False
        self._lines.clear()

    # Test helpers

    def emit(self, *lines: str) -> None:
        self._lines.extend(lines)

    def emit_stderr(self, *lines: str) -> None:
        self._stderr.extend(lines)

    def crash(self, code: int | None = 1) -> None:
        self._running = False
        self._exit_code = code
        self._exited = True


class EventRecorder:
    """Subscribes to every event kind and records (kind, args) in order."""

    def __init__(self, manager: EngineManager) -> None:
        self.events: list[tuple] = []
        for kind in EventKind:
            manager.on(kind, self._recorder(kind))

    def _recorder(self, kind):
        def record(*args) -> None:
            self.events.append((kind, args))

        return record

    def of(self, kind) -> list[tuple]:
        return [args for k, args in self.events if k is kind]


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll `predicate` until true or `timeout` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def complete_handshake(manager: EngineManager, transport: FakeTransport, clock: FakeClock) -> None:
    """Drive a started manager through uci/uciok/isready/readyok."""
    manager.update()  # writes "uci"
    transport.emit("uciok")
    manager.update()
    clock.advance(manager.protocol.settle_delay)
    manager.update()  # settle elapsed, writes "isready"
    transport.emit("readyok")
    manager.update()  # consumes readyok, delivers events
