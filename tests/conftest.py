"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

from helpers import SCRIPTED_ENGINE, FakeClock, FakeTransport
from ucibridge.core.configs import BridgeConfig, EngineConfig, HandshakeConfig
from ucibridge.uci.manager import EngineManager


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def engine_file(tmp_path: Path) -> Path:
    """An existing file for the locator to find; never executed."""
    path = tmp_path / "fake-engine"
    path.write_text("")
    return path


@pytest.fixture
def make_manager(engine_file: Path, fake_transport: FakeTransport, clock: FakeClock):
    """Build an EngineManager on the fake transport and fake clock."""
    managers: list[EngineManager] = []

    def factory(**engine_overrides) -> EngineManager:
        config = BridgeConfig(
            engine=EngineConfig(engine_path=str(engine_file), **engine_overrides),
            handshake=HandshakeConfig(),
        )
        manager = EngineManager(config, transport=fake_transport, clock=clock)
        managers.append(manager)
        return manager

    yield factory

    for manager in managers:
        manager.shutdown()


@pytest.fixture
def scripted_engine_config():
    """Config for running the scripted engine as a real subprocess."""

    def factory(mode: str = "normal", **engine_overrides) -> BridgeConfig:
        return BridgeConfig(
            engine=EngineConfig(
                engine_path=sys.executable,
                engine_args=[str(SCRIPTED_ENGINE), mode],
                poll_interval=0.05,
                shutdown_grace_period=2.0,
                **engine_overrides,
            ),
            handshake=HandshakeConfig(settle_delay=0.0, uci_timeout=10.0, ready_timeout=5.0),
        )

    return factory
