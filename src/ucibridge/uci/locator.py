"""Engine executable discovery."""

import shutil
import sys
from pathlib import Path

from loguru import logger

from ucibridge.uci.errors import EngineNotFoundError


def bundled_engine_path(bundled_dir: str | Path, filename: str) -> Path:
    """Path of the engine shipped alongside the application."""
    if sys.platform == "win32" and not filename.lower().endswith(".exe"):
        filename += ".exe"
    return Path(bundled_dir) / filename


def locate_engine(
    engine_path: str | Path | None,
    bundled_dir: str | Path | None = "engines",
    filename: str = "lynx-cli",
) -> Path:
    """Resolve the engine executable.

    Tries, in order: the configured path, the configured name on PATH, and the
    bundled engines directory.

    Raises:
        EngineNotFoundError: If none of the candidates exists.
    """
    candidates: list[str] = []

    if engine_path:
        configured = Path(engine_path).expanduser()
        candidates.append(str(configured))
        if configured.is_file():
            return configured

        found = shutil.which(str(engine_path))
        if found:
            logger.debug(f"Resolved engine {engine_path} on PATH: {found}")
            return Path(found)

    if bundled_dir:
        bundled = bundled_engine_path(bundled_dir, filename)
        candidates.append(str(bundled))
        if bundled.is_file():
            if engine_path:
                logger.info(f"Configured engine missing, using bundled engine: {bundled}")
            return bundled

    raise EngineNotFoundError(candidates)
