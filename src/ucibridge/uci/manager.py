"""Engine manager: the public facade over transport, dispatcher and protocol.

The manager owns one engine process and everything needed to talk to it. The
host application calls `update()` once per tick on the thread that should
observe notifications (a UI/render loop, or the CLI's polling loop); every
handler registered with `on()` runs there.

Example:
    manager = EngineManager(BridgeConfig(engine=EngineConfig(engine_path="stockfish")))
    manager.on(EventKind.BEST_MOVE_RECEIVED, print)
    manager.start()
    while True:
        manager.update()
        if manager.is_ready:
            manager.request_move("startpos", thinking_time_ms=500)
        ...
"""

import time
from collections.abc import Callable, Sequence
from typing import Any

from loguru import logger

from ucibridge.core.configs.schema import BridgeConfig
from ucibridge.uci.dispatcher import CommandDispatcher
from ucibridge.uci.errors import EngineNotFoundError, SpawnError
from ucibridge.uci.events import EventBus, EventKind, Handler, Notification
from ucibridge.uci.locator import locate_engine
from ucibridge.uci.marshaller import CallbackMarshaller
from ucibridge.uci.messages import (
    STARTPOS,
    STOP,
    UCINEWGAME,
    go_command,
    position_command,
)
from ucibridge.uci.protocol import ProtocolState, ProtocolStateMachine
from ucibridge.uci.selftest import CommunicationTest
from ucibridge.uci.transport import EngineProcess, LineTransport


class EngineManager:
    """Lifecycle and request API for a single UCI engine process."""

    def __init__(
        self,
        config: BridgeConfig | None = None,
        *,
        transport: LineTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the manager. Nothing is spawned until `start()`.

        Args:
            config: Engine, handshake and logging configuration.
            transport: Line transport to use (tests inject a fake one).
            clock: Monotonic time source for handshake and self-test deadlines.
        """
        self.config = config or BridgeConfig()
        self._clock = clock

        self.bus = EventBus()
        self.marshaller = CallbackMarshaller()
        self.transport = transport or LineTransport(
            poll_interval=self.config.engine.poll_interval
        )
        self.transport.on_unexpected_exit = self._on_unexpected_exit

        self._dispatcher = CommandDispatcher(
            self.transport,
            warn=self._warn,
            on_written=self._on_command_written,
            verbose=self.config.engine.enable_verbose_logging,
        )
        self._protocol = self._build_protocol()
        self._self_test = self._build_self_test()
        self._internal: list[Callable[[], None]] = []
        self._auto_test_pending = False

    def _build_protocol(self) -> ProtocolStateMachine:
        handshake = self.config.handshake
        return ProtocolStateMachine(
            send=self._dispatcher.enqueue,
            emit=self._emit,
            uci_timeout=handshake.uci_timeout,
            ready_timeout=handshake.ready_timeout,
            settle_delay=handshake.settle_delay,
            clock=self._clock,
            verbose=self.config.engine.enable_verbose_logging,
        )

    def _build_self_test(self) -> CommunicationTest:
        return CommunicationTest(
            send=self._dispatcher.enqueue,
            emit=self._emit,
            step_delay=self.config.engine.step_delay,
            timeout=self.config.handshake.self_test_timeout,
            depth=self.config.handshake.self_test_depth,
            clock=self._clock,
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProtocolState:
        return self._protocol.state

    @property
    def is_ready(self) -> bool:
        return self._protocol.is_ready

    @property
    def is_initialized(self) -> bool:
        return self._protocol.state is not ProtocolState.UNINITIALIZED

    @property
    def process(self) -> EngineProcess | None:
        return self.transport.process

    @property
    def protocol(self) -> ProtocolStateMachine:
        return self._protocol

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def self_test_running(self) -> bool:
        return self._self_test.running

    def on(self, kind: EventKind, handler: Handler) -> Callable[[], None]:
        """Subscribe to a notification kind. Returns an unsubscribe callable."""
        return self.bus.subscribe(kind, handler)

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------

    def _emit(self, kind: EventKind, *args: Any) -> None:
        self.marshaller.schedule(self.bus.publish, Notification(kind, args))

    def _warn(self, message: str) -> None:
        self._emit(EventKind.ENGINE_WARNING, message)

    def _error(self, message: str) -> None:
        logger.error(message)
        self._emit(EventKind.ENGINE_ERROR, message)

    def _on_command_written(self, command: str) -> None:
        # Runs inside flush(), i.e. on the tick thread
        self._protocol.command_issued(command)

    def _wire(self) -> None:
        self._unwire()
        self._internal = [
            self.bus.subscribe(EventKind.BEST_MOVE_RECEIVED, self._self_test.on_best_move),
            self.bus.subscribe(EventKind.READY_STATE_CHANGED, self._on_ready_changed),
        ]

    def _unwire(self) -> None:
        for unsubscribe in self._internal:
            unsubscribe()
        self._internal = []

    def _on_ready_changed(self, is_ready: bool) -> None:
        if is_ready and self._auto_test_pending:
            self._auto_test_pending = False
            self._self_test.start()

    def _on_unexpected_exit(self, returncode: int | None) -> None:
        self._dispatcher.clear()
        self._self_test.cancel()
        self._protocol.handle_unexpected_exit(returncode)
        self._auto_test_pending = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, config: BridgeConfig | None = None) -> None:
        """Spawn the engine and begin the handshake. No-op if already started.

        Failures to locate or launch the engine are reported as ENGINE_ERROR
        notifications, never raised.
        """
        if self.is_initialized:
            return
        if config is not None and config is not self.config:
            self.config = config
            self._dispatcher.verbose = config.engine.enable_verbose_logging
            self.transport.poll_interval = config.engine.poll_interval
            self._protocol = self._build_protocol()
            self._self_test = self._build_self_test()

        engine = self.config.engine
        try:
            path = locate_engine(
                engine.engine_path, engine.bundled_engines_dir, engine.engine_filename
            )
            self.transport.start(path, engine.working_dir, engine.engine_args)
        except (EngineNotFoundError, SpawnError) as e:
            self._error(f"Failed to start engine: {e}")
            return

        self._wire()
        self._auto_test_pending = engine.auto_run_handshake_test
        self._protocol.begin_handshake()

    def update(self) -> None:
        """Run one tick: flush commands, consume output, advance timers, deliver events.

        The dispatcher is flushed again right before notifications are
        delivered, so anything queued (from any thread) before a line's
        handlers run has already been written.
        """
        self._dispatcher.flush()

        for line in self.transport.drain_stderr():
            self._error(f"Engine stderr: {line}")

        if self.is_initialized:
            self._protocol.consume(self.transport.drain())

        self._protocol.tick()
        self._self_test.tick()
        self._dispatcher.flush()
        self.marshaller.pump()

    def retry_handshake(self) -> bool:
        """Restart a timed-out handshake. Returns False if no handshake is pending."""
        return self._protocol.retry_handshake()

    def restart_engine(self) -> None:
        """Tear the engine down and start it again; subscriptions are kept."""
        logger.info("Restarting engine")
        self.shutdown()
        self.start()

    def shutdown(self) -> None:
        """Stop the engine process and reset to UNINITIALIZED. Idempotent."""
        began = self._protocol.begin_shutdown()
        self._self_test.cancel()
        self._auto_test_pending = False
        self._dispatcher.clear()
        self._unwire()
        try:
            self.transport.stop(self.config.engine.shutdown_grace_period)
        finally:
            if began:
                self._protocol.shutdown_complete()

    def close(self) -> None:
        self.shutdown()

    def __enter__(self) -> "EngineManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def __del__(self) -> None:
        """Destructor - ensure the engine process is cleaned up."""
        if getattr(self, "_internal", None) is not None:
            self.shutdown()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def send_command(self, raw: str) -> None:
        """Queue a raw UCI command."""
        if not self.transport.running:
            self._warn(f"Engine not running, cannot send: {raw}")
            return
        self._dispatcher.enqueue(raw)

    def set_position(self, fen: str = STARTPOS, moves: Sequence[str] | str = ()) -> None:
        """Queue `position startpos|fen <fen> [moves ...]`."""
        self.send_command(position_command(fen, moves))

    def request_move(self, fen: str, thinking_time_ms: int = 3000) -> None:
        """Ask for a best move from `fen` within `thinking_time_ms`.

        Requires READY; otherwise an ENGINE_WARNING is emitted and nothing is sent.
        """
        if not self.is_ready:
            logger.warning(f"Engine not ready ({self.state.value}), move request ignored")
            self._warn(f"Engine not ready ({self.state.value}), move request ignored")
            return
        self.set_position(fen)
        self.send_command(go_command(move_time_ms=thinking_time_ms))

    def start_calculation(self, depth: int = 18, move_time_ms: int = 0) -> None:
        """Queue a search; a positive move time wins over depth."""
        self.send_command(go_command(depth=depth, move_time_ms=move_time_ms))

    def stop_calculation(self) -> None:
        """Ask the engine to stop searching. A bestmove will still follow."""
        self.send_command(STOP)

    def new_game(self) -> None:
        self.send_command(UCINEWGAME)

    def run_communication_test(self) -> bool:
        """Run the scripted self-test now. Returns False if it could not start."""
        if not self.is_ready:
            message = "Engine not ready, cannot run communication test"
            logger.warning(message)
            self._warn(message)
            return False
        return self._self_test.start()
