"""Logging setup: rich-formatted records on stderr, stdout stays tool output."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

ENV_LOG_LEVEL = "SCANEXEC_LOG_LEVEL"
FALLBACK_LOG_LEVEL = "WARNING"


def resolve_level(level: str | None = None, config_level: str | None = None) -> int:
    """--log-level beats SCANEXEC_LOG_LEVEL, which beats the config file."""
    name = (level or os.getenv(ENV_LOG_LEVEL) or config_level or FALLBACK_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {name}")
    return resolved


def setup_logging(level: str | None = None, config_level: str | None = None) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    )
    logging.getLogger("scanexec").setLevel(resolve_level(level, config_level))


__all__ = ["resolve_level", "setup_logging"]
