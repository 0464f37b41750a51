"""
Logging setup for command-line runs.

Usage:
    from countcluster.utils.observability import setup_logging

    setup_logging(verbose=True)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

try:
    from rich.console import Console
    from rich.logging import RichHandler

    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False


def setup_logging(
    verbose: bool = False,
    log_file: Path | None = None,
    use_rich: bool = True,
) -> None:
    """
    Configure logging for a walkthrough run.

    Args:
        verbose: If True, show DEBUG level; otherwise INFO
        log_file: Optional path to write full logs (always DEBUG level)
        use_rich: Use rich library for prettier output if available
    """
    level = logging.DEBUG if verbose else logging.INFO

    handlers: list[logging.Handler] = []

    if use_rich and RICH_AVAILABLE:
        console_handler = RichHandler(
            level=level,
            console=Console(stderr=True),
            show_time=True,
            show_path=verbose,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        ))
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
        ))
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG,
        handlers=handlers,
        force=True,
    )

    # Font lookup and image encoding are chatty at DEBUG
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("fontTools").setLevel(logging.WARNING)
