"""Command-line interface for countcluster.

This CLI runs the clustering and heatmap walkthrough end to end, or one
step at a time on a count matrix.
"""

import functools
import io
import json
import sys
from pathlib import Path

import click

from countcluster import __version__
from countcluster.config import OUTPUT_FORMATS, AnalysisConfig
from countcluster.exceptions import CountclusterError
from countcluster.utils.observability import setup_logging

try:
    from rich.console import Console
    from rich.table import Table

    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False


def _handle_errors(func):
    """Turn package errors into a message and exit status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CountclusterError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose):
    """countcluster - Clustering and heatmaps for genomic count tables.

    \b
    - Sample distances and hierarchical clustering (dendrogram)
    - k-means partitions of features
    - Row or column z-scores
    - Heatmaps with quantile colour scales and design annotations

    Use the --help flag on any command for more details.
    """
    import matplotlib

    # Files only, never a window
    matplotlib.use("Agg")
    setup_logging(verbose=verbose)


@cli.command()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="YAML config file")
@click.option("--counts", type=click.Path(exists=True), help="Whitespace-delimited count matrix")
@click.option("--design", type=click.Path(exists=True), help="Tab-delimited design table")
@click.option("--output-dir", "-o", type=click.Path(), help="Directory for figures and tables")
@click.option("--format", "output_format", type=click.Choice(OUTPUT_FORMATS), help="Image format")
@click.option("--tree-k", type=int, help="Groups to cut the sample tree into")
@click.option("--kmeans-k", type=int, help="Number of k-means feature clusters")
@click.option("--log/--no-log", "log_transform", default=None, help="log2(x + 1) the counts first")
@click.option("--top-n", type=int, help="Keep only the N most variable features")
@click.option("--seed", type=int, help="Random seed for k-means")
@click.option("--json", "as_json", is_flag=True, help="Print the run summary as JSON")
@_handle_errors
def run(config_path, counts, design, output_dir, output_format, tree_k, kmeans_k,
        log_transform, top_n, seed, as_json):
    """Run the whole walkthrough and write every figure.

    Example:
        countcluster run --counts counts.txt --design design.tsv -o figures

        countcluster run --config walkthrough.yaml --kmeans-k 4
    """
    from countcluster.pipeline import run_walkthrough

    overrides = {
        "counts_path": counts,
        "design_path": design,
        "output_dir": output_dir,
        "output_format": output_format,
        "tree_k": tree_k,
        "kmeans_k": kmeans_k,
        "log_transform": log_transform,
        "top_n": top_n,
        "seed": seed,
    }
    if config_path:
        config = AnalysisConfig.load(config_path, overrides=overrides)
    else:
        config = AnalysisConfig.from_dict({k: v for k, v in overrides.items() if v is not None})

    result = run_walkthrough(config)

    if as_json:
        click.echo(json.dumps(result.summary(), indent=2))
        return

    click.echo(f"Matrix: {result.matrix.shape[0]} features x {result.matrix.shape[1]} samples")
    click.echo(f"Sample leaf order: {', '.join(result.tree.leaf_order)}")
    click.echo(_format_kmeans(result.feature_clusters.summary()))
    click.echo("\nFiles written:")
    for name, path in result.files.items():
        click.echo(f"  {name:18} {path}")


@cli.command()
@click.argument("counts", type=click.Path(exists=True))
@click.option("--metric", "-m", default="euclidean", show_default=True, help="Distance metric")
@click.option("--axis", type=click.Choice(["columns", "rows"]), default="columns", show_default=True)
@click.option("--output", "-o", type=click.Path(), help="Write the distance matrix as TSV")
@_handle_errors
def distance(counts, metric, axis, output):
    """Pairwise distances between samples (or features).

    Example:
        countcluster distance counts.txt --metric manhattan
    """
    from countcluster.analysis.distance import pairwise_distance
    from countcluster.data.loaders import load_count_matrix, write_table

    matrix = load_count_matrix(counts)
    result = pairwise_distance(matrix, metric=metric, axis=axis)

    if output:
        write_table(result.square, output)
        click.echo(f"Results written to {output}")
    else:
        click.echo(result.square.round(4).to_string())


@cli.command()
@click.argument("counts", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), required=True, help="Image file (.pdf, .svg, .png)")
@click.option("--metric", "-m", default="euclidean", show_default=True, help="Distance metric")
@click.option("--method", default="complete", show_default=True, help="Linkage method")
@click.option("--k", "k", type=int, help="Highlight a cut into k groups")
@click.option("--title", help="Plot title")
@_handle_errors
def dendrogram(counts, output, metric, method, k, title):
    """Cluster samples hierarchically and draw the dendrogram.

    Example:
        countcluster dendrogram counts.txt -o tree.pdf --k 2
    """
    from countcluster.analysis.distance import pairwise_distance
    from countcluster.analysis.hierarchy import cut_tree, hierarchical_cluster
    from countcluster.data.loaders import load_count_matrix
    from countcluster.plotting.dendrogram import plot_dendrogram

    matrix = load_count_matrix(counts)
    tree = hierarchical_cluster(pairwise_distance(matrix, metric=metric), method=method)
    plot_dendrogram(tree, output, k=k, title=title)

    click.echo(f"Leaf order: {', '.join(tree.leaf_order)}")
    if k:
        groups = cut_tree(tree, k=k)
        for sample, group in groups.items():
            click.echo(f"  {sample:20} {group}")
    click.echo(f"Dendrogram written to {output}")


@cli.command()
@click.argument("counts", type=click.Path(exists=True))
@click.option("--k", "k", type=int, default=3, show_default=True, help="Number of clusters")
@click.option("--axis", type=click.Choice(["rows", "columns"]), default="rows", show_default=True)
@click.option("--zscore/--no-zscore", default=True, show_default=True, help="Row z-score before clustering")
@click.option("--n-init", type=int, default=25, show_default=True, help="Random starts")
@click.option("--seed", type=int, default=1, show_default=True)
@click.option("--output", "-o", type=click.Path(), help="Write cluster assignments as TSV")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@_handle_errors
def kmeans(counts, k, axis, zscore, n_init, seed, output, output_format):
    """Partition features (or samples) with k-means.

    Example:
        countcluster kmeans counts.txt --k 4 -o clusters.tsv
    """
    from countcluster.analysis.kmeans import kmeans as run_kmeans
    from countcluster.analysis.normalize import zscore as row_zscore
    from countcluster.data.loaders import load_count_matrix, write_table

    matrix = load_count_matrix(counts)
    if zscore:
        matrix = row_zscore(matrix, axis="row")

    result = run_kmeans(matrix, k, axis=axis, n_init=n_init, seed=seed)

    if output:
        write_table(result.clusters.to_frame(), output)
        click.echo(f"Cluster assignments written to {output}")

    if output_format == "json":
        click.echo(json.dumps(result.summary(), indent=2))
    else:
        click.echo(_format_kmeans(result.summary()))


@cli.command()
@click.argument("counts", type=click.Path(exists=True))
@click.option("--axis", type=click.Choice(["row", "column"]), default="row", show_default=True)
@click.option("--output", "-o", type=click.Path(), help="Write z-scores as TSV")
@_handle_errors
def zscore(counts, axis, output):
    """Z-score normalise every row (or column).

    Example:
        countcluster zscore counts.txt --axis row -o zscores.tsv
    """
    from countcluster.analysis.normalize import zscore as compute_zscore
    from countcluster.data.loaders import load_count_matrix, write_table

    scaled = compute_zscore(load_count_matrix(counts), axis=axis)

    if output:
        write_table(scaled, output)
        click.echo(f"Results written to {output}")
    else:
        click.echo(scaled.round(4).to_string())


@cli.command()
@click.argument("counts", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Path(), required=True, help="Image file (.pdf, .svg, .png)")
@click.option("--design", type=click.Path(exists=True), help="Design table for column annotations")
@click.option("--annotate", "annotate_columns", multiple=True, help="Design column to annotate (repeatable)")
@click.option("--zscore", "zscore_axis", type=click.Choice(["none", "row", "column"]), default="none",
              show_default=True, help="Normalise before drawing")
@click.option("--split-k", type=int, help="Split rows into k-means groups")
@click.option("--quantiles", default="0.01,0.5,0.99", show_default=True, help="Colour break quantiles")
@click.option("--colors", default="blue,white,red", show_default=True, help="Colours at the breaks")
@click.option("--no-row-cluster", is_flag=True, help="Keep input row order")
@click.option("--no-col-cluster", is_flag=True, help="Keep input column order")
@click.option("--show-row-names", is_flag=True, help="Label every row")
@click.option("--title", help="Plot title")
@click.option("--seed", type=int, default=1, show_default=True, help="Random seed for --split-k")
@_handle_errors
def heatmap(counts, output, design, annotate_columns, zscore_axis, split_k, quantiles, colors,
            no_row_cluster, no_col_cluster, show_row_names, title, seed):
    """Draw a clustered heatmap of a count matrix.

    Example:
        countcluster heatmap counts.txt -o heatmap.pdf --zscore row

        countcluster heatmap counts.txt -o split.pdf --zscore row --split-k 3 \\
            --design design.tsv --annotate condition --annotate time
    """
    from countcluster.analysis.kmeans import kmeans as run_kmeans
    from countcluster.analysis.normalize import zscore as compute_zscore
    from countcluster.data.loaders import align_design, load_count_matrix, load_design
    from countcluster.exceptions import ConfigurationError
    from countcluster.plotting.annotations import build_annotation_tracks
    from countcluster.plotting.colors import quantile_color_scale
    from countcluster.plotting.heatmap import plot_heatmap

    try:
        probs = [float(q) for q in quantiles.split(",")]
    except ValueError as e:
        raise ConfigurationError(f"Invalid --quantiles '{quantiles}'") from e
    color_list = [c.strip() for c in colors.split(",")]

    matrix = load_count_matrix(counts)
    if zscore_axis != "none":
        matrix = compute_zscore(matrix, axis=zscore_axis)

    tracks = []
    if design:
        aligned = align_design(load_design(design), matrix)
        tracks = build_annotation_tracks(aligned, columns=list(annotate_columns) or None)

    row_split = None
    if split_k:
        row_split = run_kmeans(matrix, split_k, axis="rows", seed=seed).clusters

    result = plot_heatmap(
        matrix,
        output,
        color_scale=quantile_color_scale(matrix.to_numpy(), probs, color_list),
        cluster_rows=not no_row_cluster,
        cluster_columns=not no_col_cluster,
        row_split=row_split,
        annotations=tracks,
        show_row_names=show_row_names,
        title=title,
        legend_title="z-score" if zscore_axis != "none" else "value",
    )
    click.echo(f"Column order: {', '.join(result.column_order)}")
    click.echo(f"Heatmap written to {result.path}")


@cli.command("init-config")
@click.argument("path", type=click.Path())
@_handle_errors
def init_config(path):
    """Write a config file with every default filled in.

    Example:
        countcluster init-config walkthrough.yaml
    """
    AnalysisConfig().save(path)
    click.echo(f"Config written to {path}")


def _format_kmeans(summary: dict) -> str:
    """Format a k-means summary as a table."""
    if RICH_AVAILABLE:
        console = Console(record=True, width=80, file=io.StringIO())
        table = Table(title=f"k-means (k={summary['k']})")
        table.add_column("cluster", style="bold")
        table.add_column("size", justify="right")
        table.add_column("within SS", justify="right")
        for cluster, size in summary["sizes"].items():
            table.add_row(str(cluster), str(size), f"{summary['within_ss'][cluster]:.3f}")
        console.print(table)
        output = console.export_text()
    else:
        lines = [f"k-means (k={summary['k']})", "cluster    size   within SS"]
        for cluster, size in summary["sizes"].items():
            lines.append(f"{cluster:>7} {size:>7} {summary['within_ss'][cluster]:>11.3f}")
        output = "\n".join(lines)

    output += (
        f"\nbetween_SS / total_SS = {summary['between_over_total']:.1%}"
        f" ({summary['iterations']} iterations)"
    )
    return output


if __name__ == "__main__":
    cli()
