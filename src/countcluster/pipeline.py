"""
The walkthrough as one linear run.

load -> (log / top-N) -> sample distances -> tree + cut -> dendrogram
-> feature k-means -> z-scores -> heatmaps -> cluster tables

Usage:
    from countcluster.config import AnalysisConfig
    from countcluster.pipeline import run_walkthrough

    config = AnalysisConfig(counts_path=Path("counts.txt"), design_path=Path("design.tsv"))
    result = run_walkthrough(config)
    print(result.files)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from countcluster.analysis.distance import pairwise_distance
from countcluster.analysis.hierarchy import HierarchicalResult, cut_tree, hierarchical_cluster
from countcluster.analysis.kmeans import KMeansResult, kmeans, within_ss_curve
from countcluster.analysis.normalize import log_transform, top_variable, zscore
from countcluster.config import AnalysisConfig
from countcluster.data.loaders import align_design, load_count_matrix, load_design, write_table
from countcluster.exceptions import ConfigurationError
from countcluster.plotting.annotations import build_annotation_tracks
from countcluster.plotting.colors import quantile_color_scale
from countcluster.plotting.dendrogram import plot_dendrogram, plot_elbow
from countcluster.plotting.heatmap import plot_heatmap, plot_sample_distance_heatmap

logger = logging.getLogger(__name__)


@dataclass
class WalkthroughResult:
    """Everything a walkthrough run produced."""

    matrix: pd.DataFrame
    scaled: pd.DataFrame
    tree: HierarchicalResult
    sample_groups: pd.Series
    feature_clusters: KMeansResult
    files: dict[str, Path] = field(default_factory=dict)

    def summary(self) -> dict:
        return {
            "features": int(self.matrix.shape[0]),
            "samples": int(self.matrix.shape[1]),
            "sample_groups": {k: int(v) for k, v in self.sample_groups.items()},
            "sample_leaf_order": self.tree.leaf_order,
            "kmeans": self.feature_clusters.summary(),
            "files": {k: str(v) for k, v in self.files.items()},
        }


def prepare_matrix(config: AnalysisConfig) -> pd.DataFrame:
    """Load the count matrix and apply the configured pre-processing."""
    if config.counts_path is None:
        raise ConfigurationError("counts_path is required")

    matrix = load_count_matrix(config.counts_path)
    if config.log_transform:
        matrix = log_transform(matrix, pseudocount=config.pseudocount)
        logger.info(f"Applied log2(x + {config.pseudocount})")
    if config.top_n is not None:
        matrix = top_variable(matrix, config.top_n)
        logger.info(f"Kept the {len(matrix)} most variable features")
    return matrix


def run_walkthrough(config: AnalysisConfig) -> WalkthroughResult:
    """Run every step of the walkthrough and write its figures and tables.

    Output files are overwritten on every run.
    """
    config.validate()
    files: dict[str, Path] = {}

    matrix = prepare_matrix(config)

    design = None
    tracks = []
    if config.design_path is not None:
        design = align_design(load_design(config.design_path), matrix)
        tracks = build_annotation_tracks(design, columns=config.annotation_columns)

    # Samples: distance, tree, cut
    distance = pairwise_distance(matrix, metric=config.distance_metric, axis="columns")
    tree = hierarchical_cluster(distance, method=config.linkage_method)
    tree_k = min(config.tree_k, len(tree))
    if tree_k != config.tree_k:
        logger.warning(f"tree_k={config.tree_k} exceeds {len(tree)} samples; using {tree_k}")
    sample_groups = cut_tree(tree, k=tree_k)

    files["dendrogram"] = plot_dendrogram(
        tree, config.output_path("dendrogram"), k=tree_k, dpi=config.dpi
    )
    files["sample_distances"] = plot_sample_distance_heatmap(
        distance,
        config.output_path("sample_distances"),
        linkage_method=config.linkage_method,
        annotations=tracks,
        dpi=config.dpi,
    ).path

    # Features: z-scores and k-means on the scaled rows
    scaled = zscore(matrix, axis=config.zscore_axis)
    clusters = kmeans(
        scaled,
        config.kmeans_k,
        axis="rows",
        n_init=config.kmeans_n_init,
        max_iter=config.kmeans_max_iter,
        seed=config.seed,
    )

    curve = within_ss_curve(
        scaled,
        range(2, config.elbow_max_k + 1),
        axis="rows",
        n_init=config.kmeans_n_init,
        max_iter=config.kmeans_max_iter,
        seed=config.seed,
    )
    if not curve.empty:
        files["elbow"] = plot_elbow(
            curve, config.output_path("kmeans_elbow"), chosen_k=config.kmeans_k, dpi=config.dpi
        )

    heatmap_options = dict(
        distance_metric=config.distance_metric,
        linkage_method=config.linkage_method,
        show_row_names=config.show_row_names,
        figsize=config.figsize,
        dpi=config.dpi,
    )

    files["heatmap"] = plot_heatmap(
        matrix,
        config.output_path("heatmap"),
        color_scale=quantile_color_scale(matrix.to_numpy(), config.color_quantiles, config.colors),
        title="Counts",
        legend_title="log2 count" if config.log_transform else "count",
        **heatmap_options,
    ).path

    zscale = quantile_color_scale(scaled.to_numpy(), config.color_quantiles, config.colors)
    files["heatmap_zscore"] = plot_heatmap(
        scaled,
        config.output_path("heatmap_zscore"),
        color_scale=zscale,
        title=f"{config.zscore_axis.capitalize()} z-scores",
        legend_title="z-score",
        **heatmap_options,
    ).path

    files["heatmap_kmeans"] = plot_heatmap(
        scaled,
        config.output_path("heatmap_kmeans"),
        color_scale=zscale,
        row_split=clusters.clusters,
        annotations=tracks,
        title=f"k-means split (k={clusters.k})",
        legend_title="z-score",
        **heatmap_options,
    ).path

    # Tables
    out_dir = Path(config.output_dir)
    files["feature_clusters"] = write_table(
        clusters.clusters.to_frame(), out_dir / f"{config.prefix}feature_clusters.tsv"
    )
    files["sample_groups"] = write_table(
        sample_groups.to_frame(), out_dir / f"{config.prefix}sample_groups.tsv"
    )
    files["zscores"] = write_table(scaled, out_dir / f"{config.prefix}zscores.tsv")

    logger.info(f"Walkthrough complete: {len(files)} files in {out_dir}")

    return WalkthroughResult(
        matrix=matrix,
        scaled=scaled,
        tree=tree,
        sample_groups=sample_groups,
        feature_clusters=clusters,
        files=files,
    )
