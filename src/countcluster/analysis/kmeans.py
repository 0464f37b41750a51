"""K-means partitioning of features (rows) or samples (columns).

Uses scikit-learn's Lloyd implementation with several random starts. The
returned summary mirrors what R's ``kmeans()`` reports: cluster sizes,
within-cluster sums of squares and the between/total split.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from countcluster.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class KMeansResult:
    """Partition of observations into k groups.

    Attributes:
        clusters: Observation label -> 1-based cluster id.
        centers: k x n_variables table of centroids (index 1..k).
        within_ss: Within-cluster sum of squares per cluster.
        total_ss: Total sum of squares around the grand mean.
        n_iter: Iterations run by the best start.
    """

    clusters: pd.Series
    centers: pd.DataFrame
    within_ss: pd.Series
    total_ss: float
    n_iter: int

    @property
    def k(self) -> int:
        return len(self.centers)

    @property
    def sizes(self) -> pd.Series:
        """Number of observations per cluster."""
        return self.clusters.value_counts().reindex(self.centers.index, fill_value=0)

    @property
    def tot_within_ss(self) -> float:
        return float(self.within_ss.sum())

    @property
    def between_ss(self) -> float:
        return self.total_ss - self.tot_within_ss

    @property
    def explained_ratio(self) -> float:
        """between_SS / total_SS, 0 when the data have no spread."""
        if self.total_ss == 0:
            return 0.0
        return self.between_ss / self.total_ss

    def summary(self) -> dict:
        return {
            "k": self.k,
            "sizes": {int(c): int(n) for c, n in self.sizes.items()},
            "within_ss": {int(c): round(float(v), 4) for c, v in self.within_ss.items()},
            "tot_within_ss": round(self.tot_within_ss, 4),
            "between_ss": round(self.between_ss, 4),
            "total_ss": round(self.total_ss, 4),
            "between_over_total": round(self.explained_ratio, 4),
            "iterations": self.n_iter,
        }


def kmeans(
    matrix: pd.DataFrame,
    k: int,
    axis: Literal["rows", "columns"] = "rows",
    n_init: int = 25,
    max_iter: int = 100,
    seed: int | None = 1,
) -> KMeansResult:
    """Partition rows (or columns) of ``matrix`` into ``k`` clusters.

    Args:
        matrix: Numeric feature-by-sample table.
        k: Number of clusters; 2 <= k <= number of distinct observations.
        axis: "rows" clusters features, "columns" clusters samples.
        n_init: Random starts; the start with the lowest within-SS wins.
        max_iter: Iteration cap per start.
        seed: Random seed for reproducible partitions.

    Returns:
        KMeansResult with exactly k non-empty clusters.
    """
    if axis not in ("rows", "columns"):
        raise ConfigurationError(f"axis must be 'rows' or 'columns', got '{axis}'")

    observations = matrix if axis == "rows" else matrix.T
    values = observations.to_numpy(dtype=np.float64)

    n_distinct = len(np.unique(values, axis=0))
    if not 2 <= k <= n_distinct:
        raise ConfigurationError(
            f"k must be between 2 and the number of distinct {axis} ({n_distinct}), got {k}"
        )

    model = KMeans(
        n_clusters=k,
        n_init=n_init,
        max_iter=max_iter,
        algorithm="lloyd",
        random_state=seed,
    )
    raw = model.fit_predict(values)

    # Renumber 1..k by first appearance so ids are stable across runs
    order: dict[int, int] = {}
    for label in raw:
        if label not in order:
            order[label] = len(order) + 1
    ids = np.array([order[label] for label in raw], dtype=int)
    if len(order) != k:
        raise ConfigurationError(f"k-means produced {len(order)} non-empty clusters, expected {k}")

    centers = pd.DataFrame(
        model.cluster_centers_[sorted(order, key=order.get)],
        index=pd.RangeIndex(1, k + 1, name="cluster"),
        columns=observations.columns,
    )

    within = {}
    for cluster_id in centers.index:
        members = values[ids == cluster_id]
        within[cluster_id] = float(((members - centers.loc[cluster_id].to_numpy()) ** 2).sum())

    total_ss = float(((values - values.mean(axis=0)) ** 2).sum())

    result = KMeansResult(
        clusters=pd.Series(ids, index=observations.index, name="cluster"),
        centers=centers,
        within_ss=pd.Series(within, name="within_ss"),
        total_ss=total_ss,
        n_iter=int(model.n_iter_),
    )
    logger.info(
        f"k-means on {len(observations)} {axis}: k={k}, "
        f"sizes={result.sizes.tolist()}, between/total={result.explained_ratio:.1%}"
    )
    return result


def within_ss_curve(
    matrix: pd.DataFrame,
    k_values: Iterable[int],
    axis: Literal["rows", "columns"] = "rows",
    n_init: int = 10,
    max_iter: int = 100,
    seed: int | None = 1,
) -> pd.Series:
    """Total within-cluster SS for each k, for choosing k by the elbow.

    Values of k the data cannot support are skipped.
    """
    observations = matrix if axis == "rows" else matrix.T
    n_distinct = len(np.unique(observations.to_numpy(dtype=np.float64), axis=0))

    curve = {}
    for k in k_values:
        if not 2 <= k <= n_distinct:
            logger.debug(f"Skipping k={k} for elbow curve ({n_distinct} distinct {axis})")
            continue
        result = kmeans(matrix, k, axis=axis, n_init=n_init, max_iter=max_iter, seed=seed)
        curve[k] = result.tot_within_ss

    return pd.Series(curve, name="tot_within_ss", dtype=float).rename_axis("k")
