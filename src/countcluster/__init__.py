"""countcluster - Hierarchical clustering, k-means, z-scores and heatmaps for genomic count tables."""

__version__ = "0.1.0"

from countcluster.config import AnalysisConfig
from countcluster.exceptions import (
    ConfigurationError,
    CountclusterError,
    DataFormatError,
    PlotOutputError,
)

__all__ = [
    "AnalysisConfig",
    "CountclusterError",
    "ConfigurationError",
    "DataFormatError",
    "PlotOutputError",
    "__version__",
]
