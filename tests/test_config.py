"""Tests for AnalysisConfig."""

from pathlib import Path

import pytest

from countcluster.config import AnalysisConfig
from countcluster.exceptions import ConfigurationError


class TestAnalysisConfig:
    """Tests for config defaults, validation and YAML round trips."""

    def test_defaults_are_valid(self):
        AnalysisConfig().validate()

    def test_output_path(self):
        config = AnalysisConfig(output_dir=Path("out"), output_format="svg", prefix="run1_")
        assert config.output_path("heatmap") == Path("out/run1_heatmap.svg")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"output_format": "gif"},
            {"zscore_axis": "both"},
            {"tree_k": 0},
            {"kmeans_k": 1},
            {"top_n": 0},
            {"pseudocount": -1.0},
            {"color_quantiles": [0.1, 0.9], "colors": ["blue", "white", "red"]},
            {"color_quantiles": [0.9, 0.1], "colors": ["blue", "red"]},
            {"color_quantiles": [0.5], "colors": ["blue"]},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ConfigurationError):
            AnalysisConfig(**overrides).validate()

    def test_save_and_load(self, tmp_path):
        config = AnalysisConfig(
            counts_path=Path("counts.txt"),
            kmeans_k=5,
            colors=["navy", "white", "firebrick"],
        )
        path = tmp_path / "config.yaml"
        config.save(path)

        loaded = AnalysisConfig.load(path)
        assert loaded.counts_path == Path("counts.txt")
        assert loaded.kmeans_k == 5
        assert loaded.colors == ["navy", "white", "firebrick"]
        assert loaded.output_dir == config.output_dir

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("kmeans_k: 4\ntree_k: 3\n")
        loaded = AnalysisConfig.load(path, overrides={"kmeans_k": 6, "tree_k": None})
        assert loaded.kmeans_k == 6
        assert loaded.tree_k == 3

    def test_unknown_keys_ignored(self):
        config = AnalysisConfig.from_dict({"kmeans_k": 4, "not_a_field": True})
        assert config.kmeans_k == 4

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            AnalysisConfig.load(tmp_path / "missing.yaml")

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            AnalysisConfig.load(path)
