"""Colour scales for heatmaps.

A quantile colour scale places its anchor colours at quantiles of the data
rather than at the minimum and maximum, so a handful of extreme values do
not wash out the rest of the heatmap.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import seaborn as sns
from matplotlib.colors import LinearSegmentedColormap, Normalize, to_hex, to_rgba

from countcluster.exceptions import ConfigurationError, DataFormatError


@dataclass
class ColorScale:
    """Piecewise-linear map from values to colours.

    Values below the first break take the first colour, values above the
    last break take the last colour.

    Attributes:
        breaks: Strictly increasing anchor values.
        colors: One matplotlib colour spec per break.
    """

    breaks: np.ndarray
    colors: list[str]

    def __post_init__(self):
        self.breaks = np.asarray(self.breaks, dtype=np.float64)
        if len(self.breaks) != len(self.colors):
            raise ConfigurationError(
                f"Need one colour per break, got {len(self.breaks)} breaks "
                f"and {len(self.colors)} colours"
            )
        if len(self.breaks) == 0:
            raise ConfigurationError("Colour scale needs at least one break")
        if len(self.breaks) > 1 and np.any(np.diff(self.breaks) <= 0):
            raise ConfigurationError(f"Breaks must be strictly increasing: {self.breaks}")
        self._rgba = np.array([to_rgba(c) for c in self.colors])

    @property
    def vmin(self) -> float:
        return float(self.breaks[0])

    @property
    def vmax(self) -> float:
        return float(self.breaks[-1])

    @property
    def norm(self) -> Normalize:
        """Linear norm over the outer breaks, for matplotlib and seaborn."""
        if len(self.breaks) == 1:
            return Normalize(vmin=self.vmin - 0.5, vmax=self.vmax + 0.5, clip=True)
        return Normalize(vmin=self.vmin, vmax=self.vmax, clip=True)

    @property
    def cmap(self) -> LinearSegmentedColormap:
        """Colormap whose nodes sit at the relative positions of the breaks."""
        if len(self.breaks) == 1:
            return LinearSegmentedColormap.from_list("quantile", [self.colors[0]] * 2)
        positions = (self.breaks - self.vmin) / (self.vmax - self.vmin)
        return LinearSegmentedColormap.from_list(
            "quantile", list(zip(positions, self.colors))
        )

    def __call__(self, values) -> np.ndarray:
        """RGBA array, shape ``values.shape + (4,)``."""
        values = np.asarray(values, dtype=np.float64)
        if len(self.breaks) == 1:
            return np.broadcast_to(self._rgba[0], values.shape + (4,)).copy()

        clipped = np.clip(values, self.vmin, self.vmax)
        channels = [
            np.interp(clipped, self.breaks, self._rgba[:, i]) for i in range(4)
        ]
        return np.stack(channels, axis=-1)

    def to_hex(self, value: float) -> str:
        return to_hex(self(value))


def quantile_color_scale(
    values,
    probs: Sequence[float] = (0.01, 0.5, 0.99),
    colors: Sequence[str] = ("blue", "white", "red"),
) -> ColorScale:
    """Build a colour scale anchored at quantiles of ``values``.

    Args:
        values: Any array-like of numbers (a DataFrame works); non-finite
            entries are ignored.
        probs: Increasing quantile levels in [0, 1], one per colour.
        colors: Anchor colours.

    Returns:
        ColorScale with strictly increasing breaks. Tied quantiles are
        collapsed; constant data give a single-colour scale using the
        middle anchor.

    Example:
        >>> scale = quantile_color_scale(np.arange(101), probs=(0, 0.5, 1))
        >>> scale.breaks.tolist()
        [0.0, 50.0, 100.0]
    """
    if len(probs) != len(colors):
        raise ConfigurationError(
            f"probs ({len(probs)}) and colors ({len(colors)}) must have the same length"
        )
    if len(probs) < 2:
        raise ConfigurationError("A colour scale needs at least two anchors")
    if any(not 0.0 <= p <= 1.0 for p in probs) or list(probs) != sorted(probs):
        raise ConfigurationError(f"probs must be increasing values in [0, 1]: {list(probs)}")

    flat = np.asarray(values, dtype=np.float64).ravel()
    flat = flat[np.isfinite(flat)]
    if flat.size == 0:
        raise DataFormatError("Cannot build a colour scale from no finite values")

    breaks = np.quantile(flat, probs)

    keep_breaks = [breaks[0]]
    keep_colors = [colors[0]]
    for b, c in zip(breaks[1:], colors[1:]):
        if b > keep_breaks[-1]:
            keep_breaks.append(b)
            keep_colors.append(c)

    if len(keep_breaks) == 1:
        return ColorScale(breaks=keep_breaks, colors=[colors[len(colors) // 2]])

    return ColorScale(breaks=keep_breaks, colors=list(keep_colors))


def categorical_palette(levels: Sequence, palette: str = "Set2") -> dict:
    """Map each level to a hex colour from a seaborn palette."""
    levels = list(dict.fromkeys(levels))
    colors = sns.color_palette(palette, n_colors=max(len(levels), 1))
    return {level: to_hex(color) for level, color in zip(levels, colors)}
