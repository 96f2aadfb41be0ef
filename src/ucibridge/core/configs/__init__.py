"""Configuration management utilities."""

from ucibridge.core.configs.loader import load_bridge_config, load_config, save_config
from ucibridge.core.configs.schema import (
    BridgeConfig,
    EngineConfig,
    HandshakeConfig,
    LoggingConfig,
    config_from_dict,
    config_to_dict,
)

__all__ = [
    "BridgeConfig",
    "EngineConfig",
    "HandshakeConfig",
    "LoggingConfig",
    "config_from_dict",
    "config_to_dict",
    "load_bridge_config",
    "load_config",
    "save_config",
]
