"""Readers and writers for count matrices and experimental design tables.

The count matrix is a whitespace-delimited table with a header row of sample
names. Feature ids sit in the first column; files written by R's
``write.table`` omit the corner cell, so the header may be one field shorter
than the body.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from countcluster.exceptions import DataFormatError

logger = logging.getLogger(__name__)


def load_count_matrix(path: str | Path, sep: str | None = None) -> pd.DataFrame:
    """Load a numeric feature-by-sample matrix.

    Args:
        path: Path to the table.
        sep: Column separator. Defaults to any run of whitespace.

    Returns:
        Float DataFrame indexed by feature id, one column per sample.

    Raises:
        DataFormatError: If the file is missing, empty, has duplicated labels
            or contains non-numeric cells.
    """
    path = Path(path)
    if not path.exists():
        raise DataFormatError(f"Count matrix not found: {path}")

    try:
        frame = pd.read_csv(path, sep=sep or r"\s+", header=0)
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"Count matrix {path} is empty") from e

    # Header as long as the body: the first column holds the row names
    if not _has_inferred_index(frame):
        frame = frame.set_index(frame.columns[0])
        frame.index.name = None

    if frame.empty or frame.shape[1] == 0:
        raise DataFormatError(f"Count matrix {path} has no data rows or columns")

    frame.index = frame.index.astype(str)
    frame.columns = frame.columns.astype(str)
    _check_unique(frame.index, "feature", path)
    _check_unique(frame.columns, "sample", path)

    numeric = frame.apply(pd.to_numeric, errors="coerce")
    bad = numeric.isna() & frame.notna()
    if bad.any().any():
        row, col = next(zip(*np.nonzero(bad.to_numpy())))
        raise DataFormatError(
            f"Non-numeric value {frame.iat[row, col]!r} in {path} "
            f"(feature '{frame.index[row]}', sample '{frame.columns[col]}')"
        )
    if numeric.isna().any().any():
        raise DataFormatError(f"Count matrix {path} has missing values")

    matrix = numeric.astype(np.float64)
    if not np.isfinite(matrix.to_numpy()).all():
        raise DataFormatError(f"Count matrix {path} has non-finite values")

    logger.info(f"Loaded count matrix {path.name}: {matrix.shape[0]} features x {matrix.shape[1]} samples")
    return matrix


def load_design(path: str | Path) -> pd.DataFrame:
    """Load a tab-delimited experimental design table.

    The first column holds sample ids; the remaining columns (for example
    ``condition``, ``time``, ``ncells``) describe each sample.
    """
    path = Path(path)
    if not path.exists():
        raise DataFormatError(f"Design table not found: {path}")

    try:
        design = pd.read_csv(path, sep="\t", index_col=0)
    except pd.errors.EmptyDataError as e:
        raise DataFormatError(f"Design table {path} is empty") from e

    if design.empty:
        raise DataFormatError(f"Design table {path} has no rows")

    design.index = design.index.astype(str)
    design.index.name = None
    _check_unique(design.index, "sample", path)

    logger.info(f"Loaded design {path.name}: {len(design)} samples, columns={list(design.columns)}")
    return design


def align_design(design: pd.DataFrame, matrix: pd.DataFrame) -> pd.DataFrame:
    """Reorder design rows to follow the matrix's columns.

    Extra design rows are dropped.

    Raises:
        DataFormatError: If any matrix column has no design row.
    """
    missing = [s for s in matrix.columns if s not in design.index]
    if missing:
        raise DataFormatError(
            f"Design table has no entry for samples: {', '.join(missing)}"
        )

    extra = len(design.index.difference(matrix.columns))
    if extra:
        logger.debug(f"Ignoring {extra} design rows not present in the matrix")

    return design.loc[list(matrix.columns)]


def write_table(frame: pd.DataFrame, path: str | Path) -> Path:
    """Write a labelled table as tab-separated text, overwriting ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, sep="\t")
    logger.debug(f"Wrote {frame.shape[0]}x{frame.shape[1]} table to {path}")
    return path


def _has_inferred_index(frame: pd.DataFrame) -> bool:
    """Whether pandas already used the first body column as the index."""
    return not isinstance(frame.index, pd.RangeIndex)


def _check_unique(labels: pd.Index, kind: str, path: Path) -> None:
    duplicated = labels[labels.duplicated()].unique()
    if len(duplicated):
        raise DataFormatError(
            f"Duplicated {kind} labels in {path}: {', '.join(map(str, duplicated[:5]))}"
        )
