"""
Configuration management for walkthrough runs.

Supports:
- YAML config files
- CLI overrides
- Config validation
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from countcluster.exceptions import ConfigurationError

OUTPUT_FORMATS = ("pdf", "svg", "png", "eps")
ZSCORE_AXES = ("row", "column")


@dataclass
class AnalysisConfig:
    """Configuration for a clustering and heatmap walkthrough."""

    # Inputs
    counts_path: Path | None = None
    design_path: Path | None = None

    # Outputs
    output_dir: Path = field(default_factory=lambda: Path("./figures"))
    output_format: str = "pdf"
    prefix: str = ""

    # Pre-processing
    log_transform: bool = False
    pseudocount: float = 1.0
    top_n: int | None = None  # Keep only the N most variable rows

    # Sample clustering
    distance_metric: str = "euclidean"
    linkage_method: str = "complete"
    tree_k: int = 2

    # Feature k-means
    kmeans_k: int = 3
    kmeans_n_init: int = 25
    kmeans_max_iter: int = 100
    seed: int = 1
    elbow_max_k: int = 10

    # Normalisation
    zscore_axis: str = "row"

    # Colours
    color_quantiles: list[float] = field(default_factory=lambda: [0.01, 0.5, 0.99])
    colors: list[str] = field(default_factory=lambda: ["blue", "white", "red"])

    # Annotations (None = every design column)
    annotation_columns: list[str] | None = None

    # Figure options
    show_row_names: bool = False
    figure_width: float = 8.0
    figure_height: float = 10.0
    dpi: int = 150

    def output_path(self, stem: str) -> Path:
        """Path of an output file named after ``stem`` in the configured format."""
        name = f"{self.prefix}{stem}.{self.output_format}"
        return Path(self.output_dir) / name

    @property
    def figsize(self) -> tuple[float, float]:
        return (self.figure_width, self.figure_height)

    def validate(self) -> None:
        """Raise ConfigurationError for values no analysis step could accept."""
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Unsupported output format '{self.output_format}'. "
                f"Choose one of: {', '.join(OUTPUT_FORMATS)}"
            )
        if self.zscore_axis not in ZSCORE_AXES:
            raise ConfigurationError(
                f"zscore_axis must be 'row' or 'column', got '{self.zscore_axis}'"
            )
        if self.tree_k < 1:
            raise ConfigurationError(f"tree_k must be >= 1, got {self.tree_k}")
        if self.kmeans_k < 2:
            raise ConfigurationError(f"kmeans_k must be >= 2, got {self.kmeans_k}")
        if self.kmeans_n_init < 1 or self.kmeans_max_iter < 1:
            raise ConfigurationError("kmeans_n_init and kmeans_max_iter must be positive")
        if self.top_n is not None and self.top_n < 1:
            raise ConfigurationError(f"top_n must be positive, got {self.top_n}")
        if self.pseudocount < 0:
            raise ConfigurationError(f"pseudocount must be >= 0, got {self.pseudocount}")
        if len(self.color_quantiles) != len(self.colors):
            raise ConfigurationError(
                f"color_quantiles ({len(self.color_quantiles)}) and colors "
                f"({len(self.colors)}) must have the same length"
            )
        if len(self.colors) < 2:
            raise ConfigurationError("At least two colours are needed for a colour scale")
        if any(not 0.0 <= q <= 1.0 for q in self.color_quantiles):
            raise ConfigurationError("color_quantiles must lie in [0, 1]")
        if list(self.color_quantiles) != sorted(self.color_quantiles):
            raise ConfigurationError("color_quantiles must be increasing")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Path):
                result[f.name] = str(value)
            elif isinstance(value, list):
                result[f.name] = list(value)
            else:
                result[f.name] = value
        return result

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)

    def save(self, path: Path | str) -> None:
        """Save config to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(self.to_yaml())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisConfig":
        """Create config from dictionary, ignoring unknown keys."""
        data = dict(data)

        for key in ("counts_path", "design_path", "output_dir"):
            if data.get(key) is not None:
                data[key] = Path(data[key])

        valid_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}

        return cls(**filtered)

    @classmethod
    def load(
        cls,
        path: Path | str,
        overrides: dict[str, Any] | None = None,
    ) -> "AnalysisConfig":
        """
        Load a YAML config file with optional overrides.

        Args:
            path: Path to the YAML file
            overrides: Values that replace the file's (None values are skipped)

        Returns:
            Loaded and merged AnalysisConfig
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        with open(path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})

        return cls.from_dict(data)
