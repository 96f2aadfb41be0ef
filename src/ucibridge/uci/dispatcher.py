"""Serialized writer for outbound UCI commands."""

import threading
from collections import deque
from collections.abc import Callable
from typing import Protocol

from loguru import logger

from ucibridge.uci.errors import WriteError, WriteFailure


class LineWriter(Protocol):
    def write(self, line: str) -> None: ...


class CommandDispatcher:
    """FIFO of fire-and-forget commands, written by one writer at a time.

    `enqueue` is safe from any thread and never touches the pipe. `flush`
    performs the writes; if another flush is already in progress (another
    thread, or a handler reentering from inside a write) it returns at once
    and the active writer picks the new commands up.

    `on_written` runs on the flushing thread after each successful write, so
    observers of outbound traffic only ever see commands the engine received.
    """

    def __init__(
        self,
        transport: LineWriter,
        warn: Callable[[str], None],
        *,
        on_written: Callable[[str], None] | None = None,
        verbose: bool = False,
    ) -> None:
        self._transport = transport
        self._warn = warn
        self._on_written = on_written
        self.verbose = verbose
        self._pending: deque[str] = deque()
        self._lock = threading.Lock()
        self._writer = threading.Lock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def enqueue(self, command: str) -> None:
        with self._lock:
            self._pending.append(command)

    def clear(self) -> int:
        """Discard queued commands. Returns how many were dropped."""
        with self._lock:
            dropped = len(self._pending)
            self._pending.clear()
        if dropped:
            logger.debug(f"Discarded {dropped} pending command(s)")
        return dropped

    def flush(self) -> int:
        """Write every queued command in submission order.

        Returns:
            Number of commands successfully written by this call.
        """
        if not self._writer.acquire(blocking=False):
            return 0
        written = 0
        try:
            while True:
                with self._lock:
                    if not self._pending:
                        break
                    command = self._pending.popleft()
                try:
                    self._transport.write(command)
                except WriteError as e:
                    if e.reason is WriteFailure.PROCESS_NOT_RUNNING:
                        message = f"Engine not running, dropped command: {command}"
                    else:
                        message = f"Failed to send command '{command}': {e}"
                    logger.warning(message)
                    self._warn(message)
                    continue
                written += 1
                if self.verbose:
                    logger.debug(f"UCI send: {command}")
                else:
                    logger.trace(f"UCI send: {command}")
                if self._on_written is not None:
                    self._on_written(command)
        finally:
            self._writer.release()
        return written
