"""ucibridge: event-driven management of a UCI chess engine subprocess.

- `from ucibridge import EngineManager, EventKind` for the facade
- `from ucibridge.uci import LineTransport, ProtocolStateMachine, ...` for the parts
- `from ucibridge.core import load_bridge_config, setup_logging` for config and logging
"""

__version__ = "0.1.0"

from ucibridge.core import load_bridge_config, load_config, save_config, setup_logging
from ucibridge.core.configs import BridgeConfig, EngineConfig, HandshakeConfig, LoggingConfig
from ucibridge.uci import EngineManager, EventKind, ProtocolState

__all__ = [
    "BridgeConfig",
    "EngineConfig",
    "EngineManager",
    "EventKind",
    "HandshakeConfig",
    "LoggingConfig",
    "ProtocolState",
    "__version__",
    "load_bridge_config",
    "load_config",
    "save_config",
    "setup_logging",
]
