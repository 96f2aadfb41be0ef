"""Core utilities shared by the engine bridge and the CLI."""

from ucibridge.core.configs import load_bridge_config, load_config, save_config
from ucibridge.core.utils.logging import setup_logging

__all__ = ["load_bridge_config", "load_config", "save_config", "setup_logging"]
