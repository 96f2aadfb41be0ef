"""UCI handshake and readiness state machine.

The machine is driven entirely from the consumer's tick: `feed` for each
output line, `tick` for deadline checks, and explicit lifecycle calls from
the engine manager. It never blocks and never touches the process; it only
asks for commands to be sent and for notifications to be emitted.

States:
    UNINITIALIZED -> HANDSHAKE_PENDING -> READY <-> SEARCH_IN_PROGRESS
    READY/SEARCH_IN_PROGRESS/HANDSHAKE_PENDING -> SHUTTING_DOWN -> UNINITIALIZED
    any -> UNINITIALIZED on unexpected exit
"""

import time
from collections.abc import Callable, Iterable
from enum import Enum

from loguru import logger

from ucibridge.uci.errors import HandshakeTimeout
from ucibridge.uci.events import EventKind
from ucibridge.uci.messages import (
    BESTMOVE,
    INFO,
    ISREADY,
    READYOK,
    UCI,
    UCIOK,
    BestMoveResult,
    is_go_command,
    parse_bestmove,
)


class ProtocolState(Enum):
    """Lifecycle state of the managed engine."""

    UNINITIALIZED = "uninitialized"
    HANDSHAKE_PENDING = "handshake_pending"
    READY = "ready"
    SEARCH_IN_PROGRESS = "search_in_progress"
    SHUTTING_DOWN = "shutting_down"


class HandshakePhase(Enum):
    """Sub-state of HANDSHAKE_PENDING."""

    IDLE = "idle"
    AWAIT_UCIOK = "await_uciok"
    SETTLING = "settling"  # uciok seen, pausing before isready
    AWAIT_READYOK = "await_readyok"
    FAILED = "failed"


class ProtocolStateMachine:
    """Tracks the UCI handshake and search state of one engine."""

    def __init__(
        self,
        send: Callable[[str], None],
        emit: Callable[..., None],
        *,
        uci_timeout: float = 10.0,
        ready_timeout: float = 5.0,
        settle_delay: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        verbose: bool = False,
    ) -> None:
        """Initialize the state machine.

        Args:
            send: Queues an outbound command (normally the dispatcher).
            emit: Called as emit(kind, *args) for every notification.
            uci_timeout: Seconds to wait for uciok.
            ready_timeout: Seconds to wait for readyok.
            settle_delay: Pause between uciok and isready.
            clock: Monotonic time source.
            verbose: Log every received line at DEBUG instead of TRACE.
        """
        self._send = send
        self._emit = emit
        self.uci_timeout = uci_timeout
        self.ready_timeout = ready_timeout
        self.settle_delay = settle_delay
        self._clock = clock
        self.verbose = verbose

        self._state = ProtocolState.UNINITIALIZED
        self._phase = HandshakePhase.IDLE
        self._deadline: float | None = None
        self._uciok = False
        self._announced_ready = False
        self._last_best_move: BestMoveResult | None = None

    @property
    def state(self) -> ProtocolState:
        return self._state

    @property
    def phase(self) -> HandshakePhase:
        return self._phase

    @property
    def is_ready(self) -> bool:
        return self._state is ProtocolState.READY

    @property
    def handshake_acknowledged(self) -> bool:
        return self._uciok

    @property
    def handshake_failed(self) -> bool:
        return self._phase is HandshakePhase.FAILED

    @property
    def last_best_move(self) -> BestMoveResult | None:
        return self._last_best_move

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def begin_handshake(self) -> None:
        """Send `uci` and start waiting for the acknowledgement."""
        if self._state is not ProtocolState.UNINITIALIZED:
            logger.debug(f"Handshake requested in state {self._state.value}, ignoring")
            return
        self._state = ProtocolState.HANDSHAKE_PENDING
        self._start_identification()

    def retry_handshake(self) -> bool:
        """Restart the handshake after a timeout. Returns False if not pending."""
        if self._state is not ProtocolState.HANDSHAKE_PENDING:
            return False
        logger.info("Retrying UCI handshake")
        self._start_identification()
        return True

    def _start_identification(self) -> None:
        self._uciok = False
        self._phase = HandshakePhase.AWAIT_UCIOK
        self._deadline = self._clock() + self.uci_timeout
        logger.info("Starting UCI handshake")
        self._send(UCI)

    def _send_readiness_probe(self) -> None:
        self._phase = HandshakePhase.AWAIT_READYOK
        self._deadline = self._clock() + self.ready_timeout
        self._send(ISREADY)

    def command_issued(self, command: str) -> None:
        """Observe an outbound command once it has been written to the engine."""
        if self._state is ProtocolState.READY and is_go_command(command):
            self._state = ProtocolState.SEARCH_IN_PROGRESS

    def begin_shutdown(self) -> bool:
        """Enter SHUTTING_DOWN, abandoning any in-flight handshake.

        Returns:
            False if there was nothing to shut down.
        """
        if self._state in (ProtocolState.UNINITIALIZED, ProtocolState.SHUTTING_DOWN):
            return False
        self._state = ProtocolState.SHUTTING_DOWN
        self._phase = HandshakePhase.IDLE
        self._deadline = None
        return True

    def shutdown_complete(self) -> None:
        """The process is gone; return to UNINITIALIZED."""
        self._reset()

    def handle_unexpected_exit(self, returncode: int | None) -> None:
        """The process died on its own; report it and reset."""
        message = f"Engine process exited unexpectedly (code {returncode})"
        logger.error(message)
        self._emit(EventKind.ENGINE_ERROR, message)
        self._reset()

    def _reset(self) -> None:
        self._state = ProtocolState.UNINITIALIZED
        self._phase = HandshakePhase.IDLE
        self._deadline = None
        self._uciok = False
        self._last_best_move = None
        if self._announced_ready:
            self._announced_ready = False
            self._emit(EventKind.READY_STATE_CHANGED, False)

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Advance handshake deadlines. Call once per consumer tick."""
        if self._state is not ProtocolState.HANDSHAKE_PENDING or self._deadline is None:
            return
        if self._clock() < self._deadline:
            return

        if self._phase is HandshakePhase.AWAIT_UCIOK:
            self._fail(HandshakeTimeout(UCIOK, self.uci_timeout))
        elif self._phase is HandshakePhase.SETTLING:
            self._send_readiness_probe()
        elif self._phase is HandshakePhase.AWAIT_READYOK:
            self._fail(HandshakeTimeout(READYOK, self.ready_timeout))

    def _fail(self, error: HandshakeTimeout) -> None:
        self._phase = HandshakePhase.FAILED
        self._deadline = None
        logger.error(str(error))
        self._emit(EventKind.ENGINE_ERROR, str(error))

    # ------------------------------------------------------------------
    # Inbound lines
    # ------------------------------------------------------------------

    def consume(self, lines: Iterable[str]) -> int:
        """Feed every line from an iterable. Returns the number consumed."""
        count = 0
        for line in lines:
            self.feed(line)
            count += 1
        return count

    def feed(self, line: str) -> None:
        """Classify one output line and update state."""
        if self.verbose:
            logger.debug(f"UCI recv: {line}")
        else:
            logger.trace(f"UCI recv: {line}")

        self._emit(EventKind.MESSAGE_RECEIVED, line)

        if line.startswith(BESTMOVE):
            self._on_bestmove(line)
        elif line.startswith(INFO):
            self._emit(EventKind.INFO_RECEIVED, line)
        elif line == READYOK:
            self._on_readyok()
        elif line == UCIOK:
            self._on_uciok()
        elif "error" in line or "Error" in line:
            logger.warning(f"Engine reported: {line}")
            self._emit(EventKind.ENGINE_ERROR, line)

    def _on_uciok(self) -> None:
        self._uciok = True
        if self._phase is not HandshakePhase.AWAIT_UCIOK:
            return
        logger.info("UCI handshake acknowledged")
        if self.settle_delay > 0:
            self._phase = HandshakePhase.SETTLING
            self._deadline = self._clock() + self.settle_delay
        else:
            self._send_readiness_probe()

    def _on_readyok(self) -> None:
        if not self._uciok:
            logger.debug("readyok before uciok, ignoring")
            return
        if self._state is not ProtocolState.HANDSHAKE_PENDING:
            return
        self._state = ProtocolState.READY
        self._phase = HandshakePhase.IDLE
        self._deadline = None
        self._announced_ready = True
        logger.info("Engine ready")
        self._emit(EventKind.READY_STATE_CHANGED, True)

    def _on_bestmove(self, line: str) -> None:
        if self._state is ProtocolState.SEARCH_IN_PROGRESS:
            self._state = ProtocolState.READY
        result = parse_bestmove(line)
        if result is None:
            logger.debug(f"Dropping malformed bestmove line: {line!r}")
            return
        self._last_best_move = result
        self._emit(EventKind.BEST_MOVE_RECEIVED, result.move)
