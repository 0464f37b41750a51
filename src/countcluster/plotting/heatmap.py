"""
Clustered heatmaps of count matrices.

Creates the heatmaps of the walkthrough: the plain clustered matrix, the
z-scored matrix, the annotated matrix split into k-means row groups, and the
sample-to-sample distance matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd
import seaborn as sns

from countcluster.analysis.distance import METRICS, DistanceResult, pairwise_distance
from countcluster.analysis.hierarchy import HierarchicalResult, hierarchical_cluster
from countcluster.exceptions import DataFormatError
from countcluster.plotting.annotations import (
    AnnotationTrack,
    add_annotation_legends,
    tracks_to_frame,
)
from countcluster.plotting.colors import ColorScale, categorical_palette, quantile_color_scale
from countcluster.plotting.output import output_format, save_figure

logger = logging.getLogger(__name__)


@dataclass
class HeatmapResult:
    """Where a heatmap was written and how its axes were ordered."""

    path: Path
    row_order: list[str]
    column_order: list[str]
    row_groups: list[int] = field(default_factory=list)


def plot_heatmap(
    matrix: pd.DataFrame,
    path: str | Path,
    *,
    color_scale: ColorScale | None = None,
    cluster_rows: bool = True,
    cluster_columns: bool = True,
    row_split: pd.Series | None = None,
    annotations: Sequence[AnnotationTrack] | None = None,
    show_row_names: bool = False,
    show_column_names: bool = True,
    title: str | None = None,
    legend_title: str = "value",
    distance_metric: str = "euclidean",
    linkage_method: str = "complete",
    figsize: tuple[float, float] = (8, 10),
    dpi: int = 150,
) -> HeatmapResult:
    """
    Draw a heatmap of ``matrix`` and write it to ``path``.

    Args:
        matrix: Numeric feature-by-sample table
        path: Output file; the suffix picks the format
        color_scale: Value-to-colour map; defaults to a quantile blue-white-red scale
        cluster_rows: Reorder rows by hierarchical clustering
        cluster_columns: Reorder columns by hierarchical clustering
        row_split: Feature id -> group id; rows are grouped in ascending group
            order (clustered within each group when cluster_rows is set)
        annotations: Sample annotation tracks drawn above the columns
        show_row_names: Label every row
        show_column_names: Label every column
        title: Figure title
        legend_title: Title of the colour bar
        distance_metric: Metric used for row and column clustering
        linkage_method: Linkage used for row and column clustering
        figsize: Figure size in inches
        dpi: Resolution for raster formats

    Returns:
        HeatmapResult with the written path and the drawn row/column order
    """
    path = Path(path)
    output_format(path)

    if matrix.empty:
        raise DataFormatError("Cannot draw a heatmap of an empty matrix")

    scale = color_scale or quantile_color_scale(matrix.to_numpy())
    norm = scale.norm

    col_linkage = None
    if cluster_columns and matrix.shape[1] >= 2:
        col_linkage = _linkage(matrix, "columns", distance_metric, linkage_method).linkage

    data = matrix
    row_linkage = None
    row_colors = None
    boundaries: list[int] = []
    row_groups: list[int] = []
    split_track = None

    if row_split is not None:
        data, boundaries, row_groups = _split_rows(
            matrix, row_split, cluster_rows, distance_metric, linkage_method
        )
        palette = categorical_palette(sorted(set(row_groups)), palette="tab10")
        row_colors = pd.Series(
            [palette[g] for g in row_groups], index=data.index, name="cluster"
        )
        split_track = AnnotationTrack(
            name="cluster",
            colors=row_colors,
            legend=[(str(g), palette[g]) for g in sorted(palette)],
        )
    elif cluster_rows and matrix.shape[0] >= 2:
        undefined = _undefined_rows(matrix, distance_metric)
        if undefined.any():
            logger.warning(
                f"{int(undefined.sum())} rows have no '{distance_metric}' distance; "
                f"drawn unclustered below the others"
            )
            data = _order_rows(matrix, distance_metric, linkage_method)
        else:
            row_linkage = _linkage(matrix, "rows", distance_metric, linkage_method).linkage

    col_colors = tracks_to_frame(annotations or [])

    grid = sns.clustermap(
        data,
        row_cluster=row_linkage is not None,
        col_cluster=col_linkage is not None,
        row_linkage=row_linkage,
        col_linkage=col_linkage,
        row_colors=row_colors,
        col_colors=col_colors,
        cmap=scale.cmap,
        vmin=norm.vmin,
        vmax=norm.vmax,
        xticklabels=show_column_names,
        yticklabels=show_row_names,
        figsize=figsize,
        cbar_kws={"label": legend_title},
    )

    for boundary in boundaries:
        grid.ax_heatmap.axhline(boundary, color="black", linewidth=1.5)

    legend_tracks = list(annotations or [])
    if split_track is not None:
        legend_tracks.append(split_track)
    if legend_tracks:
        add_annotation_legends(grid.figure, legend_tracks)

    if title:
        grid.figure.suptitle(title, y=1.02)

    if row_linkage is not None:
        row_order = [str(data.index[i]) for i in grid.dendrogram_row.reordered_ind]
    else:
        row_order = [str(label) for label in data.index]
    if col_linkage is not None:
        column_order = [str(data.columns[i]) for i in grid.dendrogram_col.reordered_ind]
    else:
        column_order = [str(label) for label in data.columns]

    save_figure(grid.figure, path, dpi=dpi)
    logger.debug(f"Heatmap {path.name}: {data.shape[0]} rows x {data.shape[1]} columns")

    return HeatmapResult(
        path=path,
        row_order=row_order,
        column_order=column_order,
        row_groups=row_groups,
    )


def plot_sample_distance_heatmap(
    distance: DistanceResult,
    path: str | Path,
    *,
    linkage_method: str = "complete",
    annotations: Sequence[AnnotationTrack] | None = None,
    cmap: str = "Blues_r",
    annotate_values: bool | None = None,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 8),
    dpi: int = 150,
) -> HeatmapResult:
    """Draw the sample-to-sample distance matrix, ordered by its own tree.

    Cell values are printed when there are few samples, unless
    ``annotate_values`` says otherwise.
    """
    path = Path(path)
    output_format(path)

    square = distance.square
    tree = hierarchical_cluster(distance, method=linkage_method)
    if annotate_values is None:
        annotate_values = len(distance) <= 12

    col_colors = tracks_to_frame(annotations or [])
    grid = sns.clustermap(
        square,
        row_linkage=tree.linkage,
        col_linkage=tree.linkage,
        col_colors=col_colors,
        cmap=cmap,
        annot=annotate_values,
        fmt=".2g",
        figsize=figsize,
        cbar_kws={"label": f"{distance.metric} distance"},
    )
    if annotations:
        add_annotation_legends(grid.figure, annotations)
    if title:
        grid.figure.suptitle(title, y=1.02)

    order = [str(square.index[i]) for i in grid.dendrogram_row.reordered_ind]
    save_figure(grid.figure, path, dpi=dpi)
    return HeatmapResult(path=path, row_order=order, column_order=order)


def _linkage(
    matrix: pd.DataFrame,
    axis: str,
    metric: str,
    method: str,
) -> HierarchicalResult:
    return hierarchical_cluster(pairwise_distance(matrix, metric=metric, axis=axis), method=method)


def _split_rows(
    matrix: pd.DataFrame,
    row_split: pd.Series,
    cluster_rows: bool,
    metric: str,
    method: str,
) -> tuple[pd.DataFrame, list[int], list[int]]:
    """Order rows group by group; return the data, separator rows and group ids."""
    missing = matrix.index.difference(row_split.index)
    if len(missing):
        raise DataFormatError(
            f"row_split has no group for {len(missing)} rows, e.g. {missing[0]}"
        )
    groups = row_split.reindex(matrix.index)

    order: list = []
    boundaries: list[int] = []
    row_groups: list[int] = []
    for group in sorted(groups.unique()):
        members = matrix.loc[groups == group]
        if cluster_rows:
            members = _order_rows(members, metric, method)
        if order:
            boundaries.append(len(order))
        order.extend(members.index)
        row_groups.extend([int(group)] * len(members))

    return matrix.loc[order], boundaries, row_groups


def _has_spread(members: pd.DataFrame) -> bool:
    """Whether any two rows differ."""
    return bool(np.ptp(members.to_numpy(), axis=0).any())


def _undefined_rows(rows: pd.DataFrame, metric: str) -> np.ndarray:
    """Rows the metric cannot compare: constant ones for correlation, all-zero ones for cosine."""
    values = rows.to_numpy(dtype=np.float64)
    scipy_metric = METRICS.get(metric)
    if scipy_metric == "correlation":
        return np.ptp(values, axis=1) == 0
    if scipy_metric == "cosine":
        return ~values.any(axis=1)
    return np.zeros(len(rows), dtype=bool)


def _order_rows(rows: pd.DataFrame, metric: str, method: str) -> pd.DataFrame:
    """Rows in dendrogram order, followed by the rows the metric cannot compare."""
    undefined = _undefined_rows(rows, metric)
    defined = rows.loc[~undefined]
    if len(defined) >= 2 and _has_spread(defined):
        defined = defined.iloc[_linkage(defined, "rows", metric, method).leaf_indices]
    return pd.concat([defined, rows.loc[undefined]])
