"""Configuration loading utilities."""

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf

from ucibridge.core.configs.schema import BridgeConfig, config_from_dict, config_to_dict


def load_config(config_path: str | Path, overrides: list[str] | None = None) -> DictConfig:
    """Load a configuration file with optional overrides.

    Args:
        config_path: Path to the YAML configuration file.
        overrides: Optional list of CLI-style overrides (e.g., ["engine.step_delay=0.5"]).

    Returns:
        Merged configuration as a DictConfig.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        msg = f"Config file not found: {config_path}"
        raise FileNotFoundError(msg)

    config = OmegaConf.load(config_path)

    if overrides:
        override_conf = OmegaConf.from_dotlist(overrides)
        config = OmegaConf.merge(config, override_conf)

    return config


def load_bridge_config(
    config_path: str | Path | None = None, overrides: list[str] | None = None
) -> BridgeConfig:
    """Load a typed BridgeConfig, validated against the dataclass schema.

    Unknown keys and wrongly-typed values raise an OmegaConf validation error.
    With no path, the defaults plus any overrides are used.
    """
    schema = OmegaConf.structured(BridgeConfig)
    if config_path is not None:
        schema = OmegaConf.merge(schema, load_config(config_path))
    if overrides:
        schema = OmegaConf.merge(schema, OmegaConf.from_dotlist(overrides))

    data = OmegaConf.to_container(schema, resolve=True)
    return config_from_dict(data)


def save_config(config: BridgeConfig | DictConfig | dict[str, Any], path: str | Path) -> None:
    """Save a configuration to a YAML file.

    Args:
        config: Configuration to save.
        path: Path to save the configuration to.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if isinstance(config, BridgeConfig):
        config = config_to_dict(config)
    if isinstance(config, dict):
        config = OmegaConf.create(config)

    OmegaConf.save(config, path)
