"""Tests for dendrogram, heatmap and figure output."""

import subprocess
import sys

import pandas as pd
import pytest

from countcluster.analysis.distance import pairwise_distance
from countcluster.analysis.hierarchy import hierarchical_cluster
from countcluster.analysis.kmeans import kmeans, within_ss_curve
from countcluster.analysis.normalize import zscore
from countcluster.exceptions import DataFormatError, PlotOutputError
from countcluster.plotting.annotations import build_annotation_tracks
from countcluster.plotting.dendrogram import branch_colors, cut_height, plot_dendrogram, plot_elbow
from countcluster.plotting.heatmap import plot_heatmap, plot_sample_distance_heatmap
from countcluster.plotting.output import figure_output


def _non_empty(path):
    return path.exists() and path.stat().st_size > 0


@pytest.fixture
def tree(count_matrix):
    return hierarchical_cluster(pairwise_distance(count_matrix))


class TestFigureOutput:
    """Tests for the figure_output context manager."""

    @pytest.mark.parametrize("suffix", ["pdf", "svg", "png"])
    def test_writes_each_format(self, tmp_path, suffix):
        path = tmp_path / f"plot.{suffix}"
        with figure_output(path) as fig:
            fig.add_subplot().plot([0, 1], [1, 0])
        assert _non_empty(path)

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "a" / "b" / "plot.pdf"
        with figure_output(path) as fig:
            fig.add_subplot()
        assert _non_empty(path)

    def test_unknown_suffix_raises(self, tmp_path):
        with pytest.raises(PlotOutputError, match="format"):
            with figure_output(tmp_path / "plot.jpeg2000"):
                pass

    def test_error_in_block_writes_nothing(self, tmp_path):
        path = tmp_path / "plot.pdf"
        with pytest.raises(RuntimeError):
            with figure_output(path):
                raise RuntimeError("boom")
        assert not path.exists()

    def test_import_keeps_callers_backend(self):
        """Importing the plotting package leaves the matplotlib backend alone."""
        code = (
            "import matplotlib; matplotlib.use('svg'); "
            "import countcluster.plotting; print(matplotlib.get_backend())"
        )
        result = subprocess.run([sys.executable, "-c", code], capture_output=True, text=True)
        assert result.returncode == 0, result.stderr
        assert result.stdout.strip().lower() == "svg"


class TestDendrogram:
    """Tests for dendrogram plots."""

    def test_plot_dendrogram(self, tmp_path, tree):
        path = plot_dendrogram(tree, tmp_path / "tree.pdf")
        assert _non_empty(path)

    def test_plot_dendrogram_with_cut(self, tmp_path, tree):
        path = plot_dendrogram(tree, tmp_path / "tree.svg", k=2, title="Samples")
        assert _non_empty(path)

    def test_overwrites_existing_file(self, tmp_path, tree):
        path = tmp_path / "tree.pdf"
        path.write_text("old")
        plot_dendrogram(tree, path)
        assert path.read_bytes()[:4] == b"%PDF"

    @pytest.mark.parametrize("k", [1, 2, 3, 6])
    def test_cut_height_separates_k_branches(self, tree, k):
        """Exactly k - 1 merges lie above the cut height."""
        height = cut_height(tree, k)
        assert int((tree.heights > height).sum()) == k - 1

    def test_cut_height_on_inverted_tree(self, inverted_tree):
        assert cut_height(inverted_tree, 2) == pytest.approx(1.5)

    def test_branch_colors_follow_cut(self, tree):
        """Two groups of three samples: only the top link spans groups."""
        colors = branch_colors(tree, 2)
        assert len(colors) == len(tree) - 1
        assert list(colors.values()).count("grey") == 1
        assert len(set(colors.values()) - {"grey"}) == 2

    def test_branch_colors_on_inverted_tree(self, inverted_tree):
        """The low c link is inside the first group; only the top link spans groups."""
        colors = branch_colors(inverted_tree, 2)
        assert colors[4] == colors[5] != "grey"
        assert colors[6] == "grey"

    def test_plot_inverted_tree_with_cut(self, tmp_path, inverted_tree):
        path = plot_dendrogram(inverted_tree, tmp_path / "inverted.png", k=2)
        assert _non_empty(path)

    def test_plot_elbow(self, tmp_path, count_matrix):
        curve = within_ss_curve(zscore(count_matrix), range(2, 5))
        path = plot_elbow(curve, tmp_path / "elbow.png", chosen_k=3)
        assert _non_empty(path)


class TestHeatmap:
    """Tests for plot_heatmap."""

    def test_plain_heatmap(self, tmp_path, count_matrix):
        result = plot_heatmap(count_matrix, tmp_path / "heatmap.pdf")
        assert _non_empty(result.path)
        assert sorted(result.row_order) == sorted(count_matrix.index)
        assert sorted(result.column_order) == sorted(count_matrix.columns)

    def test_columns_cluster_by_condition(self, tmp_path, count_matrix):
        """Clustered column order keeps each condition contiguous."""
        result = plot_heatmap(count_matrix, tmp_path / "heatmap.png")
        conditions = [name.split("_")[0] for name in result.column_order]
        assert conditions in (["ctrl"] * 3 + ["treat"] * 3, ["treat"] * 3 + ["ctrl"] * 3)

    def test_no_clustering_keeps_order(self, tmp_path, count_matrix):
        result = plot_heatmap(
            count_matrix,
            tmp_path / "heatmap.pdf",
            cluster_rows=False,
            cluster_columns=False,
        )
        assert result.row_order == list(count_matrix.index)
        assert result.column_order == list(count_matrix.columns)

    def test_row_split_groups_rows(self, tmp_path, count_matrix):
        """Rows are drawn group by group in ascending cluster order."""
        scaled = zscore(count_matrix)
        clusters = kmeans(scaled, k=3).clusters
        result = plot_heatmap(scaled, tmp_path / "split.pdf", row_split=clusters)

        assert _non_empty(result.path)
        assert result.row_groups == sorted(result.row_groups)
        assert [clusters[g] for g in result.row_order] == result.row_groups
        assert sorted(result.row_order) == sorted(count_matrix.index)

    def test_annotations_and_names(self, tmp_path, count_matrix, design):
        tracks = build_annotation_tracks(design)
        result = plot_heatmap(
            zscore(count_matrix),
            tmp_path / "annotated.svg",
            annotations=tracks,
            show_row_names=True,
            title="Annotated",
        )
        assert _non_empty(result.path)

    @pytest.mark.parametrize("metric", ["correlation", "cosine"])
    def test_rows_without_distance_drawn_last(self, tmp_path, count_matrix, metric):
        """An all-zero gene cannot be compared by correlation or cosine; it goes below the clustered rows."""
        counts = count_matrix.copy()
        counts.loc["gene29"] = 0.0
        result = plot_heatmap(counts, tmp_path / "heatmap.png", distance_metric=metric)

        assert _non_empty(result.path)
        assert result.row_order[-1] == "gene29"
        assert sorted(result.row_order) == sorted(counts.index)

    def test_split_rows_without_distance_drawn_last_in_group(self, tmp_path, count_matrix):
        counts = count_matrix.copy()
        counts.loc["gene29"] = 0.0
        split = pd.Series(1, index=counts.index)
        split.iloc[-10:] = 2
        result = plot_heatmap(
            counts, tmp_path / "split.png", row_split=split, distance_metric="correlation"
        )

        assert result.row_order[-1] == "gene29"
        assert result.row_groups == [1] * 20 + [2] * 10

    def test_row_split_missing_rows_raises(self, tmp_path, count_matrix):
        partial = pd.Series([1, 2], index=["gene00", "gene01"])
        with pytest.raises(DataFormatError, match="row_split"):
            plot_heatmap(count_matrix, tmp_path / "bad.pdf", row_split=partial)

    def test_empty_matrix_raises(self, tmp_path):
        with pytest.raises(DataFormatError):
            plot_heatmap(pd.DataFrame(), tmp_path / "empty.pdf")

    def test_bad_suffix_raises_before_drawing(self, tmp_path, count_matrix):
        with pytest.raises(PlotOutputError):
            plot_heatmap(count_matrix, tmp_path / "heatmap.txt")


class TestSampleDistanceHeatmap:
    """Tests for plot_sample_distance_heatmap."""

    def test_writes_file(self, tmp_path, count_matrix, design):
        distance = pairwise_distance(count_matrix)
        result = plot_sample_distance_heatmap(
            distance,
            tmp_path / "distances.pdf",
            annotations=build_annotation_tracks(design, columns=["condition"]),
        )
        assert _non_empty(result.path)
        assert sorted(result.row_order) == sorted(count_matrix.columns)
