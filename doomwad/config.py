"""Shared settings, console and logging setup."""

import logging
import os
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler

from doomwad.defs import DEFAULT_SAMPLE_RATE

console = Console()
err_console = Console(stderr=True)


@dataclass(frozen=True)
class Settings:
    wad_dir: str = "wads"
    log_level: str = "WARNING"
    sample_rate: int = DEFAULT_SAMPLE_RATE


def load_settings() -> Settings:
    """Build Settings from DOOMWAD_* environment variables.

    Call load_dotenv() first if a .env file should be honoured.
    """
    try:
        rate = int(os.environ.get("DOOMWAD_SAMPLE_RATE", DEFAULT_SAMPLE_RATE))
    except ValueError:
        rate = DEFAULT_SAMPLE_RATE
    return Settings(
        wad_dir=os.environ.get("DOOMWAD_DIR", "wads"),
        log_level=os.environ.get("DOOMWAD_LOG_LEVEL", "WARNING").upper(),
        sample_rate=rate if rate > 0 else DEFAULT_SAMPLE_RATE,
    )


def configure_logging(level: str | int = logging.WARNING) -> logging.Logger:
    """Route the doomwad logger through a RichHandler on stderr."""
    logger = logging.getLogger("doomwad")
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = RichHandler(console=err_console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))
    logger.addHandler(handler)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    return logger
