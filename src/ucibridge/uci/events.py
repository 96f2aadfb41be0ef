"""Notifications published by the engine manager.

A notification is a tagged value (`EventKind` plus positional args). Handlers
are plain callables registered per kind and invoked with the args unpacked,
so a `BEST_MOVE_RECEIVED` handler receives the move string.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger


class EventKind(Enum):
    """Kinds of notification a consumer can subscribe to."""

    MESSAGE_RECEIVED = "message_received"  # (raw_line,)
    BEST_MOVE_RECEIVED = "best_move_received"  # (move,)
    INFO_RECEIVED = "info_received"  # (line,)
    READY_STATE_CHANGED = "ready_state_changed"  # (is_ready,)
    ENGINE_ERROR = "engine_error"  # (message,)
    ENGINE_WARNING = "engine_warning"  # (message,)
    COMMUNICATION_TEST_COMPLETE = "communication_test_complete"  # (success, message)


@dataclass(frozen=True)
class Notification:
    """A single event, ready to be delivered to handlers."""

    kind: EventKind
    args: tuple[Any, ...] = field(default_factory=tuple)


Handler = Callable[..., None]


class EventBus:
    """Per-kind handler lists, invoked in registration order."""

    def __init__(self) -> None:
        self._handlers: dict[EventKind, list[Handler]] = {kind: [] for kind in EventKind}

    def subscribe(self, kind: EventKind, handler: Handler) -> Callable[[], None]:
        """Register a handler and return a callable that removes it."""
        self._handlers[kind].append(handler)

        def unsubscribe() -> None:
            self.unsubscribe(kind, handler)

        return unsubscribe

    def unsubscribe(self, kind: EventKind, handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        try:
            self._handlers[kind].remove(handler)
        except ValueError:
            pass

    def handler_count(self, kind: EventKind) -> int:
        return len(self._handlers[kind])

    def publish(self, notification: Notification) -> None:
        """Deliver a notification to every handler registered for its kind.

        Iterates over a snapshot so handlers may unsubscribe themselves (or
        others) while being called. A raising handler is logged and skipped.
        """
        for handler in list(self._handlers[notification.kind]):
            try:
                handler(*notification.args)
            except Exception:
                logger.exception(f"Handler for {notification.kind.value} raised")
