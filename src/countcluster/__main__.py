from countcluster.cli import cli

cli()
