"""Pytest fixtures for countcluster tests."""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


SAMPLES = ["ctrl_1", "ctrl_2", "ctrl_3", "treat_1", "treat_2", "treat_3"]


@pytest.fixture
def count_matrix():
    """30 genes x 6 samples with three clear expression patterns.

    genes 0-9 are up in treated samples, 10-19 are down, 20-29 are flat
    with noise. Counts are non-negative integers stored as floats.
    """
    rng = np.random.default_rng(42)
    up = np.hstack([rng.poisson(20, (10, 3)), rng.poisson(200, (10, 3))])
    down = np.hstack([rng.poisson(300, (10, 3)), rng.poisson(30, (10, 3))])
    flat = rng.poisson(100, (10, 6))
    values = np.vstack([up, down, flat]).astype(float)
    index = [f"gene{i:02d}" for i in range(30)]
    return pd.DataFrame(values, index=index, columns=SAMPLES)


@pytest.fixture
def design():
    """Design table matching count_matrix's samples."""
    return pd.DataFrame(
        {
            "condition": ["control"] * 3 + ["treated"] * 3,
            "time": ["0h", "6h", "12h"] * 2,
            "ncells": [10500, 11200, 9800, 12300, 10100, 13400],
        },
        index=SAMPLES,
    )


@pytest.fixture
def counts_file(tmp_path, count_matrix):
    """Count matrix written R-style: space separated, header without a corner cell."""
    path = tmp_path / "counts.txt"
    lines = [" ".join(count_matrix.columns)]
    for gene, row in count_matrix.iterrows():
        lines.append(" ".join([gene] + [f"{v:g}" for v in row]))
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def design_file(tmp_path, design):
    """Design table written tab separated with sample ids as the first column."""
    path = tmp_path / "design.tsv"
    shuffled = design.iloc[::-1]
    shuffled.to_csv(path, sep="\t")
    return path


@pytest.fixture
def small_matrix():
    """Tiny matrix with hand-checkable distances."""
    return pd.DataFrame(
        {
            "a": [0.0, 0.0, 1.0],
            "b": [3.0, 4.0, 1.0],
            "c": [0.0, 1.0, 1.0],
        },
        index=["g1", "g2", "g3"],
    )


@pytest.fixture
def inverted_tree():
    """Four-leaf tree whose second merge sits below the first, as centroid linkage can produce.

    a and b join at 1.0, c joins them at 0.8, d joins everything at 2.0.
    """
    from countcluster.analysis.hierarchy import HierarchicalResult

    Z = np.array([[0, 1, 1.0, 2], [2, 4, 0.8, 3], [3, 5, 2.0, 4]])
    return HierarchicalResult(linkage=Z, labels=["a", "b", "c", "d"], method="centroid", metric="euclidean")
