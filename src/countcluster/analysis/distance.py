"""Pairwise distances between samples (columns) or features (rows)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from countcluster.exceptions import ConfigurationError, DataFormatError

# R dist() names on the left, scipy metric names on the right
METRICS = {
    "euclidean": "euclidean",
    "manhattan": "cityblock",
    "cityblock": "cityblock",
    "maximum": "chebyshev",
    "chebyshev": "chebyshev",
    "canberra": "canberra",
    "minkowski": "minkowski",
    "correlation": "correlation",
    "cosine": "cosine",
}


@dataclass
class DistanceResult:
    """Distances between the labelled observations of a matrix.

    Attributes:
        labels: Observation labels, in input order.
        condensed: Upper-triangle vector as returned by ``pdist``.
        metric: Metric name as requested.
    """

    labels: list[str]
    condensed: np.ndarray
    metric: str

    @property
    def square(self) -> pd.DataFrame:
        """Full symmetric distance matrix with a zero diagonal."""
        return pd.DataFrame(
            squareform(self.condensed),
            index=self.labels,
            columns=self.labels,
        )

    def __len__(self) -> int:
        return len(self.labels)


def pairwise_distance(
    matrix: pd.DataFrame,
    metric: str = "euclidean",
    axis: Literal["columns", "rows"] = "columns",
    p: float = 2.0,
) -> DistanceResult:
    """Compute distances between columns (samples) or rows (features).

    Args:
        matrix: Numeric feature-by-sample table.
        metric: One of ``METRICS`` (R or scipy spelling).
        axis: "columns" compares samples, "rows" compares features.
        p: Power for the minkowski metric.

    Returns:
        DistanceResult over the chosen observations.

    Example:
        >>> m = pd.DataFrame({"a": [0.0, 0.0], "b": [3.0, 4.0]})
        >>> pairwise_distance(m).square.loc["a", "b"]
        5.0
    """
    if metric not in METRICS:
        raise ConfigurationError(
            f"Unknown distance metric '{metric}'. Choose one of: {', '.join(sorted(METRICS))}"
        )
    if axis not in ("columns", "rows"):
        raise ConfigurationError(f"axis must be 'columns' or 'rows', got '{axis}'")

    observations = matrix.T if axis == "columns" else matrix
    if len(observations) < 2:
        raise DataFormatError(
            f"Need at least two {axis} to compute distances, got {len(observations)}"
        )

    values = observations.to_numpy(dtype=np.float64)
    scipy_metric = METRICS[metric]
    if scipy_metric == "minkowski":
        condensed = pdist(values, metric=scipy_metric, p=p)
    else:
        condensed = pdist(values, metric=scipy_metric)

    # Zero-variance vectors give NaN under correlation/cosine
    if np.isnan(condensed).any():
        raise DataFormatError(
            f"Distance '{metric}' is undefined for some {axis} (constant or all-zero vectors)"
        )

    return DistanceResult(
        labels=[str(label) for label in observations.index],
        condensed=condensed,
        metric=metric,
    )
