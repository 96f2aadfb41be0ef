"""Scripted communication self-test.

Once the engine is ready, play a tiny fixed script (new game, start
position, shallow search) and check a best move comes back. Driven from the
consumer tick like the handshake, so nothing here sleeps.
"""

import time
from collections.abc import Callable

from loguru import logger

from ucibridge.uci.events import EventKind
from ucibridge.uci.messages import STARTPOS, UCINEWGAME, go_command, position_command


class CommunicationTest:
    """Tick-driven new game / position / go script with a result event."""

    def __init__(
        self,
        send: Callable[[str], None],
        emit: Callable[..., None],
        *,
        step_delay: float = 1.0,
        timeout: float = 10.0,
        depth: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._send = send
        self._emit = emit
        self.step_delay = step_delay
        self.timeout = timeout
        self.depth = depth
        self._clock = clock

        self._steps: list[str] = []
        self._next_at: float | None = None
        self._deadline: float | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> bool:
        """Begin the script. Returns False if a run is already in progress."""
        if self._running:
            return False
        logger.info("Starting engine communication test")
        self._running = True
        self._steps = [
            UCINEWGAME,
            position_command(STARTPOS),
            go_command(depth=self.depth),
        ]
        self._next_at = self._clock() + self.step_delay
        self._deadline = None
        return True

    def cancel(self) -> None:
        self._running = False
        self._steps = []
        self._next_at = None
        self._deadline = None

    def tick(self) -> None:
        if not self._running:
            return
        now = self._clock()

        if self._steps:
            if self._next_at is not None and now >= self._next_at:
                self._send(self._steps.pop(0))
                if self._steps:
                    self._next_at = now + self.step_delay
                else:
                    self._next_at = None
                    self._deadline = now + self.timeout
            return

        if self._deadline is not None and now >= self._deadline:
            self._complete(
                False,
                f"Communication test failed: no bestmove within {self.timeout:g}s",
            )

    def on_best_move(self, move: str) -> None:
        """Bus handler for BEST_MOVE_RECEIVED."""
        if self._running and not self._steps:
            self._complete(True, f"Communication test passed: engine answered {move}")

    def _complete(self, success: bool, message: str) -> None:
        self.cancel()
        rule = "=" * 40
        if success:
            logger.info(rule)
            logger.info(message)
            logger.info("Engine is ready to play")
            logger.info(rule)
        else:
            logger.error(rule)
            logger.error(message)
            logger.error("Check the engine path and configuration")
            logger.error(rule)
        self._emit(EventKind.COMMUNICATION_TEST_COMPLETE, success, message)
