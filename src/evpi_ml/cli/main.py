"""
Main CLI entry point for evpi-ml.

Provides subcommands:
  - evpi run: Estimate EVPI curves for a logistic risk model
"""

import click

from evpi_ml import __version__
from evpi_ml.config.schema import SAMPLING_METHODS


@click.group()
@click.version_option(version=__version__, prog_name="evpi")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    evpi-ml: Expected Value of Perfect Information for risk prediction models

    Quantifies, in net benefit units, how much better threshold decisions
    could be if the true risk model were known instead of the fitted one.
    """
    from evpi_ml.utils.random import read_seed_global

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # SEED_GLOBAL seeds runs whose config leaves simulation.seed unset
    seed_global = read_seed_global()
    if seed_global is not None:
        ctx.obj["seed_global"] = seed_global


@cli.command("run")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Path to YAML configuration file",
)
@click.option(
    "--infile",
    type=click.Path(exists=True),
    default=None,
    help="Development dataset (CSV or Parquet)",
)
@click.option(
    "--outcome",
    default=None,
    help="Binary outcome column (0/1)",
)
@click.option(
    "--predictors",
    default=None,
    help="Comma-separated predictor columns (default: all other columns)",
)
@click.option(
    "--categorical",
    default=None,
    help="Comma-separated categorical predictors (default: inferred from dtypes)",
)
@click.option(
    "--n-sim",
    type=int,
    default=None,
    help="Number of Monte Carlo draws (default: 1000)",
)
@click.option(
    "--method",
    type=click.Choice(SAMPLING_METHODS),
    default=None,
    help="Sampling method for the true model (default: bootstrap)",
)
@click.option(
    "--n-thresholds",
    type=int,
    default=None,
    help="Number of evenly spaced thresholds (default: 99)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Base random seed (default: SEED_GLOBAL if set, else fresh entropy)",
)
@click.option(
    "--n-jobs",
    type=int,
    default=None,
    help="Parallel workers (-1 for all cores, default: 1)",
)
@click.option(
    "--report-points",
    default=None,
    help="Comma-separated thresholds to summarize (e.g. 0.1,0.2)",
)
@click.option(
    "--ceiling",
    type=float,
    default=None,
    help="Display ceiling for relative EVPI (default: 10)",
)
@click.option(
    "--log-file",
    type=click.Path(),
    default=None,
    help="Also write the log to this file",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config values (format: key=value or nested.key=value)",
)
@click.pass_context
def run(ctx, config, **kwargs):
    """Estimate EVPI, incremental net benefit and relative EVPI curves."""
    from evpi_ml.cli.run_evpi import run_evpi

    overrides = list(kwargs.pop("override", ()) or ())
    log_file = kwargs.pop("log_file", None)

    table = run_evpi(
        config_file=config,
        cli_args=kwargs,
        overrides=overrides,
        verbose=ctx.obj.get("verbose", 0),
        log_file=log_file,
        default_seed=ctx.obj.get("seed_global"),
    )
    click.echo(table.to_csv(index=False), nl=False)


if __name__ == "__main__":
    cli()
