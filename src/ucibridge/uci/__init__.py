"""UCI engine process management."""

from ucibridge.uci.dispatcher import CommandDispatcher
from ucibridge.uci.errors import (
    EngineNotFoundError,
    HandshakeTimeout,
    SpawnError,
    SpawnFailure,
    UCIBridgeError,
    WriteError,
    WriteFailure,
)
from ucibridge.uci.events import EventBus, EventKind, Notification
from ucibridge.uci.locator import locate_engine
from ucibridge.uci.manager import EngineManager
from ucibridge.uci.marshaller import CallbackMarshaller
from ucibridge.uci.messages import BestMoveResult, SearchInfo, parse_bestmove, parse_info
from ucibridge.uci.protocol import HandshakePhase, ProtocolState, ProtocolStateMachine
from ucibridge.uci.selftest import CommunicationTest
from ucibridge.uci.transport import EngineProcess, LineTransport

__all__ = [
    "BestMoveResult",
    "CallbackMarshaller",
    "CommandDispatcher",
    "CommunicationTest",
    "EngineManager",
    "EngineNotFoundError",
    "EngineProcess",
    "EventBus",
    "EventKind",
    "HandshakePhase",
    "HandshakeTimeout",
    "LineTransport",
    "Notification",
    "ProtocolState",
    "ProtocolStateMachine",
    "SearchInfo",
    "SpawnError",
    "SpawnFailure",
    "UCIBridgeError",
    "WriteError",
    "WriteFailure",
    "locate_engine",
    "parse_bestmove",
    "parse_info",
]
