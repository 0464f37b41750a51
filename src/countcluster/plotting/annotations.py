"""Sample annotation tracks built from the experimental design.

Each design column (condition, time, ncells, ...) becomes a coloured bar
above the heatmap plus a legend describing the colours.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib.colors import Normalize, to_hex
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from countcluster.exceptions import DataFormatError
from countcluster.plotting.colors import categorical_palette

# Seaborn palettes cycled through for successive categorical tracks
CATEGORICAL_PALETTES = ["Set2", "Pastel1", "Dark2", "Set3", "Accent"]


@dataclass
class AnnotationTrack:
    """Colours for one design column.

    Attributes:
        name: Design column name.
        colors: Sample id -> hex colour.
        legend: Ordered (label, hex colour) pairs for the legend.
        continuous: True for numeric ramps, False for categories.
    """

    name: str
    colors: pd.Series
    legend: list[tuple[str, str]] = field(default_factory=list)
    continuous: bool = False


def build_annotation_tracks(
    design: pd.DataFrame,
    columns: Sequence[str] | None = None,
    max_levels: int = 8,
    continuous_cmap: str = "Greens",
) -> list[AnnotationTrack]:
    """Turn design columns into annotation tracks.

    Numeric columns with more than ``max_levels`` distinct values are
    drawn as a sequential ramp; everything else is treated as categories.

    Args:
        design: Design table indexed by sample id (already aligned).
        columns: Columns to use; defaults to all of them.
        max_levels: Distinct-value limit for numeric columns to stay categorical.
        continuous_cmap: Matplotlib colormap for numeric ramps.
    """
    columns = list(design.columns) if columns is None else list(columns)
    missing = [c for c in columns if c not in design.columns]
    if missing:
        raise DataFormatError(f"Design table has no column(s): {', '.join(missing)}")

    tracks = []
    palettes = iter(CATEGORICAL_PALETTES * (len(columns) // len(CATEGORICAL_PALETTES) + 1))
    for column in columns:
        values = design[column]
        numeric = pd.api.types.is_numeric_dtype(values)
        if numeric and values.nunique() > max_levels:
            tracks.append(_continuous_track(column, values, continuous_cmap))
        else:
            tracks.append(_categorical_track(column, values, next(palettes)))

    return tracks


def tracks_to_frame(tracks: Sequence[AnnotationTrack]) -> pd.DataFrame | None:
    """Colour table for seaborn's ``col_colors``, one column per track."""
    if not tracks:
        return None
    return pd.concat({track.name: track.colors for track in tracks}, axis=1)


def add_annotation_legends(
    fig: Figure,
    tracks: Sequence[AnnotationTrack],
    x: float = 1.01,
    y: float = 0.95,
) -> None:
    """Stack one legend per track down the right-hand side of ``fig``."""
    step = 1.0 / max(len(tracks) + 1, 2)
    for i, track in enumerate(tracks):
        handles = [Patch(facecolor=color, edgecolor="none", label=label) for label, color in track.legend]
        fig.legend(
            handles=handles,
            title=track.name,
            loc="upper left",
            bbox_to_anchor=(x, y - i * step),
            frameon=False,
            fontsize="small",
            title_fontsize="small",
        )


def _categorical_track(name: str, values: pd.Series, palette: str) -> AnnotationTrack:
    levels = [v for v in pd.unique(values) if not pd.isna(v)]
    try:
        levels = sorted(levels)
    except TypeError:
        pass
    mapping = categorical_palette(levels, palette=palette)
    colors = values.map(mapping).fillna("#ffffff")
    legend = [(str(level), mapping[level]) for level in levels]
    if values.isna().any():
        legend.append(("NA", "#ffffff"))
    return AnnotationTrack(name=name, colors=colors.rename(name), legend=legend)


def _continuous_track(name: str, values: pd.Series, cmap_name: str) -> AnnotationTrack:
    cmap = sns.color_palette(cmap_name, as_cmap=True)
    lo, hi = float(values.min()), float(values.max())
    norm = Normalize(vmin=lo, vmax=hi)
    colors = values.map(lambda v: "#ffffff" if pd.isna(v) else to_hex(cmap(norm(v))))

    ticks = np.linspace(lo, hi, 3)
    legend = [(f"{t:.4g}", to_hex(cmap(norm(t)))) for t in ticks]
    return AnnotationTrack(name=name, colors=colors.rename(name), legend=legend, continuous=True)
