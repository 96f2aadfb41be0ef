"""Tests for loguru setup."""

import threading
from pathlib import Path

import pytest
from loguru import logger

from ucibridge.core.configs import load_bridge_config
from ucibridge.core.utils.logging import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.remove()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_sink_records_thread_name(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "bridge.log"
        setup_logging("DEBUG", log_file)

        worker = threading.Thread(
            target=lambda: logger.info("UCI send: isready"), name="uci-worker"
        )
        worker.start()
        worker.join()
        logger.remove()

        text = log_file.read_text()
        assert "UCI send: isready" in text
        assert "| uci-worker |" in text

    def test_level_filters_file_sink(self, tmp_path: Path) -> None:
        log_file = tmp_path / "bridge.log"
        setup_logging("WARNING", log_file)

        logger.info("engine started")
        logger.warning("engine did not exit, killing it")
        logger.remove()

        text = log_file.read_text()
        assert "engine started" not in text
        assert "killing it" in text

    def test_rotation_settings_from_config(self, tmp_path: Path) -> None:
        log_file = tmp_path / "bridge.log"
        config = load_bridge_config(
            overrides=[
                f"logging.log_file={log_file}",
                "logging.rotation=1 day",
                "logging.retention=3 days",
            ]
        )
        assert config.logging.rotation == "1 day"
        assert config.logging.retention == "3 days"

        setup_logging(
            config.logging.level,
            config.logging.log_file,
            rotation=config.logging.rotation,
            retention=config.logging.retention,
        )
        logger.info("configured")
        logger.remove()

        assert "configured" in log_file.read_text()
