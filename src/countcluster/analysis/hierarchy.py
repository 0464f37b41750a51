"""Agglomerative clustering of a distance structure and flat cuts of the tree."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.cluster import hierarchy

from countcluster.analysis.distance import DistanceResult
from countcluster.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# hclust() method names mapped to scipy linkage methods
LINKAGE_METHODS = {
    "complete": "complete",
    "average": "average",
    "single": "single",
    "ward": "ward",
    "ward.D2": "ward",
    "centroid": "centroid",
    "median": "median",
    "weighted": "weighted",
    "mcquitty": "weighted",
}


@dataclass
class HierarchicalResult:
    """A fitted clustering tree.

    Attributes:
        linkage: scipy linkage matrix, shape (n - 1, 4).
        labels: Leaf labels in input order.
        method: Linkage method as requested.
        metric: Distance metric the tree was built from.
    """

    linkage: np.ndarray
    labels: list[str]
    method: str
    metric: str

    @property
    def leaf_indices(self) -> np.ndarray:
        """Input positions in left-to-right dendrogram order."""
        return hierarchy.leaves_list(self.linkage)

    @property
    def leaf_order(self) -> list[str]:
        """Labels in left-to-right dendrogram order."""
        return [self.labels[i] for i in self.leaf_indices]

    @property
    def heights(self) -> np.ndarray:
        """Merge heights, one per internal node."""
        return self.linkage[:, 2]

    def __len__(self) -> int:
        return len(self.labels)


def hierarchical_cluster(
    distance: DistanceResult,
    method: str = "complete",
) -> HierarchicalResult:
    """Build an agglomerative clustering tree from pairwise distances.

    Args:
        distance: Output of ``pairwise_distance``.
        method: One of ``LINKAGE_METHODS``.

    Returns:
        HierarchicalResult over the distance's labels.
    """
    if method not in LINKAGE_METHODS:
        raise ConfigurationError(
            f"Unknown linkage method '{method}'. "
            f"Choose one of: {', '.join(sorted(LINKAGE_METHODS))}"
        )

    Z = hierarchy.linkage(distance.condensed, method=LINKAGE_METHODS[method])
    logger.debug(
        f"Built {method} tree over {len(distance)} leaves "
        f"(max height {Z[:, 2].max():.3g})"
    )
    return HierarchicalResult(
        linkage=Z,
        labels=list(distance.labels),
        method=method,
        metric=distance.metric,
    )


def cut_tree(
    result: HierarchicalResult,
    k: int | None = None,
    height: float | None = None,
) -> pd.Series:
    """Cut a tree into flat groups.

    Exactly one of ``k`` or ``height`` must be given. Group ids are 1-based
    and numbered by first appearance in the input order, so the first leaf
    is always in group 1.

    Args:
        result: Fitted tree.
        k: Number of groups, 1 <= k <= number of leaves.
        height: Cut height; merges above it are undone.

    Returns:
        Series mapping leaf label -> group id.

    Example:
        >>> groups = cut_tree(tree, k=2)
        >>> groups.nunique()
        2
    """
    if (k is None) == (height is None):
        raise ConfigurationError("Specify exactly one of k or height")

    n = len(result)
    if k is not None:
        if not 1 <= k <= n:
            raise ConfigurationError(f"k must be between 1 and {n}, got {k}")
        if k == n:
            raw = np.arange(n)
        elif _is_monotonic(result.linkage):
            raw = hierarchy.cut_tree(result.linkage, n_clusters=k).ravel()
        else:
            # cut_tree assumes monotonic merge heights
            raw = hierarchy.fcluster(result.linkage, t=k, criterion="maxclust")
    else:
        raw = hierarchy.fcluster(result.linkage, t=height, criterion="distance")

    groups = pd.Series(_renumber(raw), index=result.labels, name="cluster")

    if k is not None and groups.nunique() != k:
        raise ConfigurationError(
            f"Tree cannot be cut into exactly {k} groups "
            f"(tied merge heights give {groups.nunique()})"
        )

    logger.debug(f"Cut tree into {groups.nunique()} groups")
    return groups


def _is_monotonic(Z: np.ndarray) -> bool:
    return bool(np.all(np.diff(Z[:, 2]) >= 0))


def _renumber(raw: np.ndarray) -> np.ndarray:
    """Relabel groups 1..k in order of first appearance."""
    mapping: dict[int, int] = {}
    for value in raw:
        if value not in mapping:
            mapping[value] = len(mapping) + 1
    return np.array([mapping[v] for v in raw], dtype=int)
