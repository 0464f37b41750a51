"""Dendrogram and elbow plots."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
from scipy.cluster import hierarchy

from countcluster.analysis.hierarchy import HierarchicalResult, cut_tree
from countcluster.exceptions import ConfigurationError
from countcluster.plotting.colors import categorical_palette
from countcluster.plotting.output import figure_output


def cut_height(result: HierarchicalResult, k: int) -> float:
    """A height that separates the tree into exactly ``k`` branches.

    Halfway between the highest merge kept and the lowest merge undone.
    Heights are the largest merge below each node, so trees with
    inversions (centroid, median) are cut where ``cut_tree`` cuts them.
    """
    n = len(result)
    if not 1 <= k <= n:
        raise ConfigurationError(f"k must be between 1 and {n}, got {k}")

    heights = np.sort(hierarchy.maxdists(result.linkage))
    if k == 1:
        return float(heights[-1]) * 1.05 if len(heights) else 0.0
    if k == n:
        return float(heights[0]) / 2
    return float(heights[-k] + heights[-(k - 1)]) / 2


def branch_colors(result: HierarchicalResult, k: int, above: str = "grey") -> dict[int, str]:
    """Colour for every link of the tree, keyed by scipy node id.

    Links inside one of the ``cut_tree`` groups take that group's colour;
    links joining different groups take ``above``.
    """
    groups = cut_tree(result, k=k)
    palette = categorical_palette(sorted(groups.unique()), palette="tab10")

    n = len(result)
    node_group: dict[int, int | None] = dict(enumerate(groups.tolist()))
    for i, (left, right) in enumerate(result.linkage[:, :2].astype(int)):
        a, b = node_group[left], node_group[right]
        node_group[n + i] = a if a == b else None

    return {
        node: above if group is None else palette[group]
        for node, group in node_group.items()
        if node >= n
    }


def plot_dendrogram(
    result: HierarchicalResult,
    path: str | Path,
    k: int | None = None,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    dpi: int = 150,
) -> Path:
    """Draw the clustering tree; with ``k``, colour its k branches and mark the cut.

    Args:
        result: Fitted tree.
        path: Output file.
        k: Optional number of groups to highlight.
        title: Plot title (defaults to "Cluster Dendrogram").
        figsize: Figure size in inches.
        dpi: Resolution for raster formats.

    Returns:
        Path of the written file.
    """
    path = Path(path)
    with figure_output(path, figsize=figsize, dpi=dpi) as fig:
        ax = fig.add_subplot()

        if k is not None:
            colors = branch_colors(result, k)
            hierarchy.dendrogram(
                result.linkage,
                labels=result.labels,
                ax=ax,
                link_color_func=colors.__getitem__,
                leaf_rotation=90,
            )
            ax.axhline(cut_height(result, k), color="red", linestyle="--", linewidth=1)
        else:
            hierarchy.dendrogram(
                result.linkage,
                labels=result.labels,
                ax=ax,
                color_threshold=0,
                above_threshold_color="black",
                leaf_rotation=90,
            )

        ax.set_title(title or "Cluster Dendrogram")
        ax.set_ylabel("Height")
        ax.set_xlabel(f"{result.metric} distance, {result.method} linkage")
        for spine in ("top", "right"):
            ax.spines[spine].set_visible(False)

    return path


def plot_elbow(
    curve: pd.Series,
    path: str | Path,
    chosen_k: int | None = None,
    figsize: tuple[float, float] = (6, 4),
    dpi: int = 150,
) -> Path:
    """Plot total within-cluster sum of squares against k."""
    if curve.empty:
        raise ConfigurationError("Elbow curve is empty")

    path = Path(path)
    with figure_output(path, figsize=figsize, dpi=dpi) as fig:
        ax = fig.add_subplot()
        ax.plot(curve.index, curve.values, marker="o", color="black")
        if chosen_k is not None and chosen_k in curve.index:
            ax.plot([chosen_k], [curve.loc[chosen_k]], marker="o", color="red", markersize=9)
        ax.set_xlabel("Number of clusters k")
        ax.set_ylabel("Total within-cluster sum of squares")
        ax.set_xticks(list(curve.index))
        ax.set_title("k-means elbow")

    return path
