"""Exceptions raised by the UCI engine components.

These are raised inside the transport and locator. The engine manager turns
them into notifications so nothing crosses the tick boundary as an exception.
"""

from enum import Enum


class UCIBridgeError(Exception):
    """Base class for engine communication failures."""

    pass


class SpawnFailure(Enum):
    """Why an engine process could not be started."""

    FILE_NOT_FOUND = "file_not_found"
    LAUNCH_FAILED = "launch_failed"


class WriteFailure(Enum):
    """Why a command could not be written to the engine."""

    PROCESS_NOT_RUNNING = "process_not_running"
    IO_FAILURE = "io_failure"


class SpawnError(UCIBridgeError):
    """Raised when the engine process cannot be started."""

    def __init__(self, reason: SpawnFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class WriteError(UCIBridgeError):
    """Raised when a line cannot be written to the engine's stdin."""

    def __init__(self, reason: WriteFailure, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class HandshakeTimeout(UCIBridgeError):
    """Raised when the engine does not acknowledge `uci` or `isready` in time."""

    def __init__(self, token: str, timeout: float) -> None:
        super().__init__(f"Timed out waiting for {token} after {timeout:g}s")
        self.token = token
        self.timeout = timeout


class EngineNotFoundError(UCIBridgeError, FileNotFoundError):
    """Raised when no engine executable can be located."""

    def __init__(self, candidates: list[str]) -> None:
        tried = ", ".join(candidates) if candidates else "<no candidates>"
        super().__init__(f"Engine executable not found (tried: {tried})")
        self.candidates = candidates
