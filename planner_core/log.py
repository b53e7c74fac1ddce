"""Console logging setup.

Modules log through ``logging.getLogger(__name__)``; this module only decides
where the records go. Output is rendered by rich so it matches the rest of the
command-line output.
"""
from __future__ import annotations

import logging
import typing as t

from rich.console import Console
from rich.logging import RichHandler

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn", "uvicorn.access", "uvicorn.error", "asyncio")


def setup_logging(level: str = "INFO", console: t.Optional[Console] = None) -> None:
    """Route planner logs to a rich console handler.

    Args:
        level: Log level name for the planner packages.
        console: Optional console to write to (defaults to stderr).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root = logging.getLogger()
    # Replace handlers from a previous call instead of stacking them
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
