"""Strongly-typed configuration schemas for ucibridge.

These dataclasses provide validation, IDE support, and serve as the
single source of truth for all configuration options.
"""

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class EngineConfig:
    """Configuration for the managed engine process."""

    engine_path: str | None = None  # Falls back to PATH, then the bundled engine
    engine_args: list[str] = field(default_factory=list)
    working_dir: str | None = None  # Defaults to the executable's directory
    bundled_engines_dir: str | None = "engines"
    engine_filename: str = "lynx-cli"  # ".exe" is appended on Windows

    enable_verbose_logging: bool = False  # Trace every line sent/received
    auto_run_handshake_test: bool = False  # Self-test once READY is reached
    step_delay: float = 1.0  # Seconds between self-test steps

    shutdown_grace_period: float = 2.0  # Seconds to wait after "quit"
    poll_interval: float = 0.1  # Reader thread stop-check interval

    def __post_init__(self) -> None:
        """Validate timing values."""
        for name in ("step_delay", "shutdown_grace_period"):
            if getattr(self, name) < 0:
                msg = f"{name} must be non-negative, got {getattr(self, name)}"
                raise ValueError(msg)
        if self.poll_interval <= 0:
            msg = f"poll_interval must be positive, got {self.poll_interval}"
            raise ValueError(msg)


@dataclass
class HandshakeConfig:
    """Configuration for the UCI handshake and communication self-test."""

    uci_timeout: float = 10.0  # Wait for uciok
    ready_timeout: float = 5.0  # Wait for readyok
    settle_delay: float = 1.0  # Pause between uciok and isready
    self_test_timeout: float = 10.0  # Wait for bestmove during self-test
    self_test_depth: int = 3

    def __post_init__(self) -> None:
        """Validate timing values."""
        for name in ("uci_timeout", "ready_timeout", "settle_delay", "self_test_timeout"):
            if getattr(self, name) < 0:
                msg = f"{name} must be non-negative, got {getattr(self, name)}"
                raise ValueError(msg)
        if self.self_test_depth < 1:
            msg = f"self_test_depth must be at least 1, got {self.self_test_depth}"
            raise ValueError(msg)


@dataclass
class LoggingConfig:
    """Configuration for loguru sinks."""

    level: str = "INFO"
    log_file: str | None = None
    rotation: str = "10 MB"  # loguru size or interval, e.g. "1 day"
    retention: str = "1 week"


@dataclass
class BridgeConfig:
    """Top-level configuration combining all sub-configs."""

    engine: EngineConfig = field(default_factory=EngineConfig)
    handshake: HandshakeConfig = field(default_factory=HandshakeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def config_from_dict(data: dict[str, Any]) -> BridgeConfig:
    """Create BridgeConfig from a dictionary (e.g., from OmegaConf).

    Args:
        data: Dictionary with configuration values.

    Returns:
        BridgeConfig instance.
    """
    return BridgeConfig(
        engine=EngineConfig(**(data.get("engine") or {})),
        handshake=HandshakeConfig(**(data.get("handshake") or {})),
        logging=LoggingConfig(**(data.get("logging") or {})),
    )


def config_to_dict(config: BridgeConfig) -> dict[str, Any]:
    """Convert BridgeConfig to a dictionary for serialization."""
    return asdict(config)
