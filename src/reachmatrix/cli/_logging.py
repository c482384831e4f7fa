# Copyright (c) Syntropy Systems
"""Logging setup for CLI commands."""
from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route library logs through Rich on stderr.

    DEBUG with ``verbose``, WARNING otherwise.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    root_logger = logging.getLogger("reachmatrix")
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    root_logger.propagate = False
