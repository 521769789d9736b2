"""Logging setup for the CLI."""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from .config import LoggingConfig


def setup_logging(cfg: LoggingConfig, verbose: bool = False) -> logging.Logger:
    """Route the package logger to the console and, optionally, a file."""
    level = logging.DEBUG if verbose else _level_from_string(cfg.level)

    logger = logging.getLogger("dealdedup")
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    console_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if cfg.file:
        file_path = Path(cfg.file).expanduser()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(_build_file_formatter())
        logger.addHandler(file_handler)

    return logger


def _build_file_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    return logging.Formatter(fmt or "%(asctime)s %(levelname)s %(name)s %(message)s")


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
