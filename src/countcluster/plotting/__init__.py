"""Figures: dendrograms, heatmaps, colour scales and sample annotations."""

from countcluster.plotting.annotations import (
    AnnotationTrack,
    add_annotation_legends,
    build_annotation_tracks,
    tracks_to_frame,
)
from countcluster.plotting.colors import ColorScale, categorical_palette, quantile_color_scale
from countcluster.plotting.dendrogram import branch_colors, cut_height, plot_dendrogram, plot_elbow
from countcluster.plotting.heatmap import (
    HeatmapResult,
    plot_heatmap,
    plot_sample_distance_heatmap,
)
from countcluster.plotting.output import figure_output, save_figure

__all__ = [
    "AnnotationTrack",
    "build_annotation_tracks",
    "tracks_to_frame",
    "add_annotation_legends",
    "ColorScale",
    "quantile_color_scale",
    "categorical_palette",
    "branch_colors",
    "cut_height",
    "plot_dendrogram",
    "plot_elbow",
    "HeatmapResult",
    "plot_heatmap",
    "plot_sample_distance_heatmap",
    "figure_output",
    "save_figure",
]
