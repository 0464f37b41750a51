"""Distance, clustering and normalisation steps of the walkthrough."""

from countcluster.analysis.distance import DistanceResult, pairwise_distance
from countcluster.analysis.hierarchy import (
    HierarchicalResult,
    cut_tree,
    hierarchical_cluster,
)
from countcluster.analysis.kmeans import KMeansResult, kmeans, within_ss_curve
from countcluster.analysis.normalize import log_transform, top_variable, zscore

__all__ = [
    "DistanceResult",
    "pairwise_distance",
    "HierarchicalResult",
    "hierarchical_cluster",
    "cut_tree",
    "KMeansResult",
    "kmeans",
    "within_ss_curve",
    "zscore",
    "log_transform",
    "top_variable",
]
