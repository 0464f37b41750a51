"""Normalisation helpers for count matrices.

Z-scores use the sample standard deviation (ddof=1), which is what R's
``scale()`` and ``sd()`` return, so heatmaps match the classic walkthrough.
"""

from __future__ import annotations

import logging
from typing import Literal

import numpy as np
import pandas as pd
from scipy import stats

from countcluster.exceptions import ConfigurationError, DataFormatError

logger = logging.getLogger(__name__)

Axis = Literal["row", "column"]


def zscore(matrix: pd.DataFrame, axis: Axis = "row") -> pd.DataFrame:
    """Standardise each row (or column) to zero mean and unit variance.

    Args:
        matrix: Numeric feature-by-sample table.
        axis: "row" normalises every feature across samples, "column"
            normalises every sample across features.

    Returns:
        Table with the same shape and labels. Constant rows/columns have
        no spread to scale by and come back as zeros.

    Example:
        >>> m = pd.DataFrame([[1.0, 2.0, 3.0]], index=["g1"], columns=["a", "b", "c"])
        >>> zscore(m).loc["g1"].tolist()
        [-1.0, 0.0, 1.0]
    """
    if axis not in ("row", "column"):
        raise ConfigurationError(f"axis must be 'row' or 'column', got '{axis}'")

    np_axis = 1 if axis == "row" else 0
    length = matrix.shape[np_axis]
    if length < 2:
        raise DataFormatError(
            f"Need at least two values per {axis} to compute a z-score, got {length}"
        )

    values = matrix.to_numpy(dtype=np.float64)
    with np.errstate(invalid="ignore", divide="ignore"):
        scaled = stats.zscore(values, axis=np_axis, ddof=1)

    constant = np.ptp(values, axis=np_axis) == 0
    if constant.any():
        logger.warning(
            f"{int(constant.sum())} constant {axis}(s) have zero variance; z-scores set to 0"
        )
        if axis == "row":
            scaled[constant, :] = 0.0
        else:
            scaled[:, constant] = 0.0

    return pd.DataFrame(scaled, index=matrix.index, columns=matrix.columns)


def log_transform(
    matrix: pd.DataFrame,
    pseudocount: float = 1.0,
    base: float = 2.0,
) -> pd.DataFrame:
    """Return log_base(matrix + pseudocount).

    Raises:
        DataFormatError: If the matrix has negative values, or zeros with
            no pseudocount to lift them.
    """
    values = matrix.to_numpy(dtype=np.float64)
    if (values < 0).any():
        raise DataFormatError(
            f"log transform needs non-negative values; minimum is {values.min()}"
        )
    shifted = matrix + pseudocount
    if (shifted.to_numpy() <= 0).any():
        raise DataFormatError(
            f"log transform of zero needs a positive pseudocount, got {pseudocount}"
        )
    return np.log(shifted) / np.log(base)


def top_variable(matrix: pd.DataFrame, n: int) -> pd.DataFrame:
    """Keep the ``n`` rows with the largest variance, in their original order."""
    if n < 1:
        raise ConfigurationError(f"n must be positive, got {n}")
    if n >= len(matrix):
        return matrix

    variances = matrix.var(axis=1, ddof=1)
    keep = variances.nlargest(n).index
    logger.debug(f"Keeping {n} of {len(matrix)} rows by variance")
    return matrix.loc[matrix.index.isin(keep)]
