"""Callback marshalling onto the consumer's designated thread."""

import queue
import threading
from collections.abc import Callable
from typing import Any

from loguru import logger


class CallbackMarshaller:
    """FIFO queue of callbacks drained once per tick on a single thread.

    Any thread may `schedule`. Only one thread may `pump`: the first thread to
    pump becomes the designated thread (unless one is bound explicitly) and
    pumping from anywhere else is a programming error.

    Example:
        marshaller = CallbackMarshaller()
        marshaller.schedule(print, "hello")  # from any thread
        marshaller.pump()  # on the UI/render tick
    """

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple[Any, ...]]] = (
            queue.SimpleQueue()
        )
        self._thread_id: int | None = None

    def bind(self, thread: threading.Thread | None = None) -> None:
        """Designate the thread allowed to pump (defaults to the caller)."""
        self._thread_id = (thread or threading.current_thread()).ident

    def schedule(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a callback to run on the designated thread."""
        self._queue.put((callback, args))

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def pump(self) -> int:
        """Run the callbacks queued before this call, in order.

        Callbacks scheduled while pumping run on the next tick.

        Returns:
            Number of callbacks executed.
        """
        current = threading.get_ident()
        if self._thread_id is None:
            self._thread_id = current
        elif self._thread_id != current:
            raise RuntimeError("CallbackMarshaller.pump called off the designated thread")

        budget = self._queue.qsize()
        executed = 0
        while executed < budget:
            try:
                callback, args = self._queue.get_nowait()
            except queue.Empty:
                break
            executed += 1
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Scheduled callback {callback!r} raised")
        return executed

    def clear(self) -> int:
        """Drop every queued callback without running it."""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return dropped
            dropped += 1
