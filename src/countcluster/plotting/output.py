"""Opening and closing figure files in pairs."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from countcluster.exceptions import PlotOutputError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"pdf", "svg", "png", "eps"}


def output_format(path: Path) -> str:
    """Image format implied by the file suffix."""
    fmt = path.suffix.lstrip(".").lower()
    if fmt not in SUPPORTED_FORMATS:
        raise PlotOutputError(
            f"Cannot infer image format from '{path.name}'. "
            f"Use one of: {', '.join(sorted('.' + f for f in SUPPORTED_FORMATS))}"
        )
    return fmt


def save_figure(fig: Figure, path: str | Path, dpi: int = 150) -> Path:
    """Write ``fig`` to ``path`` (overwriting), close it and check the file.

    Raises:
        PlotOutputError: If the format is unknown or nothing was written.
    """
    path = Path(path)
    fmt = output_format(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        fig.savefig(path, format=fmt, dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)

    if not path.exists() or path.stat().st_size == 0:
        raise PlotOutputError(f"Figure file {path} was not written")

    logger.info(f"Wrote {path}")
    return path


@contextmanager
def figure_output(
    path: str | Path,
    figsize: tuple[float, float] = (8, 6),
    dpi: int = 150,
) -> Iterator[Figure]:
    """Yield a fresh figure and save it to ``path`` when the block exits.

    The figure is closed whether or not the block raises; nothing is written
    if it does.

    Example:
        >>> with figure_output("plots/tree.pdf") as fig:
        ...     ax = fig.add_subplot()
        ...     ax.plot([0, 1], [0, 1])
    """
    path = Path(path)
    output_format(path)

    fig = plt.figure(figsize=figsize)
    try:
        yield fig
    except BaseException:
        plt.close(fig)
        raise
    save_figure(fig, path, dpi=dpi)
