"""Tests for distances, hierarchical clustering and k-means."""

import numpy as np
import pandas as pd
import pytest

from countcluster.analysis.distance import pairwise_distance
from countcluster.analysis.hierarchy import cut_tree, hierarchical_cluster
from countcluster.analysis.kmeans import kmeans, within_ss_curve
from countcluster.analysis.normalize import zscore
from countcluster.exceptions import ConfigurationError, DataFormatError


class TestPairwiseDistance:
    """Tests for pairwise_distance."""

    def test_euclidean_between_columns(self, small_matrix):
        """a=(0,0,1), b=(3,4,1): distance 5."""
        dist = pairwise_distance(small_matrix)
        assert dist.square.loc["a", "b"] == pytest.approx(5.0)
        assert dist.square.loc["a", "c"] == pytest.approx(1.0)

    def test_square_is_symmetric_with_zero_diagonal(self, count_matrix):
        square = pairwise_distance(count_matrix).square
        assert square.shape == (6, 6)
        assert np.allclose(square.to_numpy(), square.to_numpy().T)
        assert np.allclose(np.diag(square.to_numpy()), 0.0)

    def test_manhattan_and_maximum(self, small_matrix):
        assert pairwise_distance(small_matrix, "manhattan").square.loc["a", "b"] == pytest.approx(7.0)
        assert pairwise_distance(small_matrix, "maximum").square.loc["a", "b"] == pytest.approx(4.0)

    def test_rows_axis(self, small_matrix):
        dist = pairwise_distance(small_matrix, axis="rows")
        assert dist.labels == ["g1", "g2", "g3"]

    def test_condensed_length(self, count_matrix):
        dist = pairwise_distance(count_matrix)
        assert len(dist.condensed) == 6 * 5 // 2

    def test_unknown_metric_raises(self, small_matrix):
        with pytest.raises(ConfigurationError, match="Unknown distance metric"):
            pairwise_distance(small_matrix, "hamming-ish")

    def test_single_column_raises(self):
        with pytest.raises(DataFormatError):
            pairwise_distance(pd.DataFrame({"a": [1.0, 2.0]}))

    def test_correlation_of_constant_column_raises(self):
        m = pd.DataFrame({"a": [1.0, 1.0, 1.0], "b": [1.0, 2.0, 3.0]})
        with pytest.raises(DataFormatError, match="undefined"):
            pairwise_distance(m, "correlation")


class TestHierarchicalCluster:
    """Tests for hierarchical_cluster and cut_tree."""

    def test_linkage_shape(self, count_matrix):
        tree = hierarchical_cluster(pairwise_distance(count_matrix))
        assert tree.linkage.shape == (5, 4)
        assert sorted(tree.leaf_order) == sorted(count_matrix.columns)

    def test_two_groups_separate_conditions(self, count_matrix):
        """Control and treated samples fall into different branches."""
        tree = hierarchical_cluster(pairwise_distance(count_matrix), method="complete")
        groups = cut_tree(tree, k=2)
        assert groups.nunique() == 2
        assert groups["ctrl_1"] == groups["ctrl_2"] == groups["ctrl_3"] == 1
        assert groups["treat_1"] == groups["treat_2"] == groups["treat_3"] == 2

    @pytest.mark.parametrize("method", ["complete", "average", "single", "ward.D2", "mcquitty"])
    @pytest.mark.parametrize("k", [1, 2, 3, 6])
    def test_cut_gives_exactly_k_groups(self, count_matrix, method, k):
        tree = hierarchical_cluster(pairwise_distance(count_matrix), method=method)
        assert cut_tree(tree, k=k).nunique() == k

    @pytest.mark.parametrize("method", ["centroid", "median"])
    def test_inversion_methods_cut_into_two_groups(self, count_matrix, method):
        tree = hierarchical_cluster(pairwise_distance(count_matrix), method=method)
        groups = cut_tree(tree, k=2)
        assert groups["ctrl_1"] == groups["ctrl_2"] == groups["ctrl_3"] == 1
        assert groups["treat_1"] == groups["treat_2"] == groups["treat_3"] == 2

    def test_inverted_tree_cut(self, inverted_tree):
        """c sits inside the a-b branch even though it joins below their height."""
        assert cut_tree(inverted_tree, k=2).tolist() == [1, 1, 1, 2]
        assert cut_tree(inverted_tree, k=4).tolist() == [1, 2, 3, 4]

    def test_inverted_tree_unreachable_k_raises(self, inverted_tree):
        """Undoing the a-b merge also undoes the lower c merge, so three groups cannot be formed."""
        with pytest.raises(ConfigurationError, match="exactly 3"):
            cut_tree(inverted_tree, k=3)

    def test_cut_by_height(self, small_matrix):
        """b is 5 away from a; a and c are 1 apart."""
        tree = hierarchical_cluster(pairwise_distance(small_matrix), method="single")
        groups = cut_tree(tree, height=2.0)
        assert groups["a"] == groups["c"]
        assert groups["a"] != groups["b"]

    def test_ids_follow_input_order(self, count_matrix):
        tree = hierarchical_cluster(pairwise_distance(count_matrix))
        groups = cut_tree(tree, k=3)
        assert groups.iloc[0] == 1

    def test_cut_requires_exactly_one_criterion(self, count_matrix):
        tree = hierarchical_cluster(pairwise_distance(count_matrix))
        with pytest.raises(ConfigurationError):
            cut_tree(tree)
        with pytest.raises(ConfigurationError):
            cut_tree(tree, k=2, height=1.0)

    def test_k_out_of_range_raises(self, count_matrix):
        tree = hierarchical_cluster(pairwise_distance(count_matrix))
        with pytest.raises(ConfigurationError):
            cut_tree(tree, k=7)

    def test_unknown_method_raises(self, count_matrix):
        with pytest.raises(ConfigurationError, match="Unknown linkage method"):
            hierarchical_cluster(pairwise_distance(count_matrix), method="ward.D3")


class TestKMeans:
    """Tests for kmeans."""

    def test_exactly_k_groups(self, count_matrix):
        result = kmeans(zscore(count_matrix), k=3)
        assert result.clusters.nunique() == 3
        assert result.k == 3
        assert result.sizes.sum() == 30

    def test_recovers_up_and_down_genes(self, count_matrix):
        """Up- and down-regulated genes end up in different clusters."""
        result = kmeans(zscore(count_matrix), k=2)
        up = result.clusters.iloc[:10]
        down = result.clusters.iloc[10:20]
        assert up.nunique() == 1
        assert down.nunique() == 1
        assert up.iloc[0] != down.iloc[0]

    def test_first_row_in_cluster_one(self, count_matrix):
        result = kmeans(count_matrix, k=3)
        assert result.clusters.iloc[0] == 1

    def test_sum_of_squares_decomposition(self, count_matrix):
        result = kmeans(zscore(count_matrix), k=3)
        assert result.tot_within_ss + result.between_ss == pytest.approx(result.total_ss)
        assert 0.0 <= result.explained_ratio <= 1.0

    def test_centers_shape(self, count_matrix):
        result = kmeans(count_matrix, k=4)
        assert result.centers.shape == (4, 6)
        assert list(result.centers.index) == [1, 2, 3, 4]

    def test_seed_reproducible(self, count_matrix):
        a = kmeans(count_matrix, k=3, seed=7)
        b = kmeans(count_matrix, k=3, seed=7)
        assert a.clusters.equals(b.clusters)

    def test_cluster_columns(self, count_matrix):
        result = kmeans(count_matrix, k=2, axis="columns")
        assert list(result.clusters.index) == list(count_matrix.columns)

    def test_k_too_large_raises(self, small_matrix):
        with pytest.raises(ConfigurationError):
            kmeans(small_matrix, k=4)

    def test_k_one_raises(self, count_matrix):
        with pytest.raises(ConfigurationError):
            kmeans(count_matrix, k=1)

    def test_summary_keys(self, count_matrix):
        summary = kmeans(count_matrix, k=2).summary()
        assert summary["k"] == 2
        assert set(summary["sizes"]) == {1, 2}


class TestWithinSSCurve:
    """Tests for within_ss_curve."""

    def test_decreasing_curve(self, count_matrix):
        curve = within_ss_curve(zscore(count_matrix), range(2, 6))
        assert list(curve.index) == [2, 3, 4, 5]
        assert curve.is_monotonic_decreasing

    def test_skips_unsupported_k(self, small_matrix):
        curve = within_ss_curve(small_matrix, range(2, 6))
        assert list(curve.index) == [2, 3]
