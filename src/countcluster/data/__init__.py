"""Input and output of tabular data."""

from countcluster.data.loaders import (
    align_design,
    load_count_matrix,
    load_design,
    write_table,
)

__all__ = ["load_count_matrix", "load_design", "align_design", "write_table"]
