"""Tests for configuration schema and loading."""

from pathlib import Path

import pytest
from omegaconf.errors import ConfigKeyError, ValidationError

from ucibridge.core.configs import (
    BridgeConfig,
    EngineConfig,
    HandshakeConfig,
    config_from_dict,
    config_to_dict,
    load_bridge_config,
    load_config,
    save_config,
)


class TestSchema:
    """Tests for the dataclass schema."""

    def test_defaults(self) -> None:
        config = BridgeConfig()
        assert config.engine.engine_path is None
        assert config.engine.engine_filename == "lynx-cli"
        assert config.engine.auto_run_handshake_test is False
        assert config.engine.step_delay == 1.0
        assert config.handshake.uci_timeout == 10.0
        assert config.handshake.ready_timeout == 5.0
        assert config.handshake.settle_delay == 1.0
        assert config.logging.level == "INFO"

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError, match="step_delay"):
            EngineConfig(step_delay=-1.0)

    def test_zero_poll_interval_rejected(self) -> None:
        with pytest.raises(ValueError, match="poll_interval"):
            EngineConfig(poll_interval=0)

    def test_negative_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="uci_timeout"):
            HandshakeConfig(uci_timeout=-0.5)

    def test_self_test_depth_rejected(self) -> None:
        with pytest.raises(ValueError, match="self_test_depth"):
            HandshakeConfig(self_test_depth=0)

    def test_dict_conversion(self) -> None:
        config = BridgeConfig(engine=EngineConfig(engine_path="/opt/engine", engine_args=["-x"]))
        data = config_to_dict(config)
        assert data["engine"]["engine_args"] == ["-x"]
        assert config_from_dict(data) == config

    def test_partial_dict(self) -> None:
        config = config_from_dict({"handshake": {"uci_timeout": 3.0}})
        assert config.handshake.uci_timeout == 3.0
        assert config.engine == EngineConfig()


class TestLoading:
    """Tests for YAML loading with overrides."""

    def test_load_config_from_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bridge.yaml"
        config_file.write_text("engine:\n  engine_path: /usr/games/stockfish\n")

        config = load_config(config_file)

        assert config.engine.engine_path == "/usr/games/stockfish"

    def test_load_config_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_typed_config_with_overrides(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bridge.yaml"
        config_file.write_text(
            "engine:\n  engine_path: /usr/games/stockfish\n  engine_args: [--threads, '2']\n"
            "handshake:\n  uci_timeout: 4\n"
        )

        config = load_bridge_config(
            config_file, ["handshake.ready_timeout=1.5", "logging.level=DEBUG"]
        )

        assert isinstance(config, BridgeConfig)
        assert config.engine.engine_path == "/usr/games/stockfish"
        assert config.engine.engine_args == ["--threads", "2"]
        assert config.handshake.uci_timeout == 4.0
        assert config.handshake.ready_timeout == 1.5
        assert config.handshake.settle_delay == 1.0
        assert config.logging.level == "DEBUG"

    def test_defaults_without_file(self) -> None:
        assert load_bridge_config() == BridgeConfig()

    def test_overrides_without_file(self) -> None:
        config = load_bridge_config(overrides=["engine.auto_run_handshake_test=true"])
        assert config.engine.auto_run_handshake_test is True

    def test_unknown_key_rejected(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bridge.yaml"
        config_file.write_text("engine:\n  enigne_path: typo\n")

        with pytest.raises(ConfigKeyError):
            load_bridge_config(config_file)

    def test_wrong_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_bridge_config(overrides=["handshake.uci_timeout=soon"])

    def test_invalid_value_rejected(self) -> None:
        with pytest.raises(ValueError, match="poll_interval"):
            load_bridge_config(overrides=["engine.poll_interval=0"])

    def test_save_and_reload(self, tmp_path: Path) -> None:
        config = BridgeConfig(engine=EngineConfig(engine_path="/opt/engine", step_delay=0.25))
        config_file = tmp_path / "out" / "bridge.yaml"

        save_config(config, config_file)

        assert config_file.exists()
        assert load_bridge_config(config_file) == config
